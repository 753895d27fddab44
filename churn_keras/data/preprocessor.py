"""
Data Preprocessor Module
========================

Cleans the raw customer table and builds the preprocessing recipe applied
identically to training and test data: tenure binning, log transform,
dummy encoding, then centering and scaling of every predictor.
"""

from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import joblib
import numpy as np
import pandas as pd
from loguru import logger
from sklearn.compose import ColumnTransformer
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import (
    FunctionTransformer,
    KBinsDiscretizer,
    OneHotEncoder,
    StandardScaler,
)

from config import MODELS_DIR, get_config


class DataPreprocessor:
    """Preprocess customer records for the churn network."""

    def __init__(self, config: Optional[dict] = None):
        """
        Initialize DataPreprocessor.

        Args:
            config: Configuration dictionary
        """
        self.config = config or get_config()
        self.data_config = self.config.get("data", {})
        self.feature_config = self.config.get("features", {})

        self.target_column = self.data_config.get("target_column", "Churn")
        self.id_column = self.data_config.get("id_column", "customerID")
        self.positive_label = self.data_config.get("positive_label", "Yes")
        self.negative_label = self.data_config.get("negative_label", "No")

        self.numerical_features = list(self.feature_config.get("numerical", []))
        self.binned_features = dict(self.feature_config.get("binned", {}))
        self.log_features = list(self.feature_config.get("log_transformed", []))
        self.categorical_features = list(self.feature_config.get("categorical", []))

        self.preprocessor = None
        self.feature_names = []

    @property
    def input_features(self) -> List[str]:
        """Raw columns consumed by the recipe."""
        return (
            self.numerical_features
            + list(self.binned_features)
            + self.log_features
            + self.categorical_features
        )

    @property
    def is_fitted(self) -> bool:
        return self.preprocessor is not None and bool(self.feature_names)

    def clean_data(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Clean raw data.

        Drops the customer identifier, coerces charges to numbers and removes
        incomplete rows. The target column is moved to the front.

        Args:
            df: Raw DataFrame

        Returns:
            Cleaned DataFrame
        """
        df = df.copy()
        logger.info("Starting data cleaning...")

        if self.id_column in df.columns:
            df = df.drop(columns=[self.id_column])
            logger.info(f"Dropped column: {self.id_column}")

        # Blank TotalCharges for brand new customers arrive as " "
        for col in self.numerical_features + self.log_features + list(self.binned_features):
            if col in df.columns and not pd.api.types.is_numeric_dtype(df[col]):
                df[col] = pd.to_numeric(df[col], errors="coerce")

        missing_info = df.isnull().sum()
        if missing_info.any():
            logger.info(f"Missing values found:\n{missing_info[missing_info > 0]}")

        initial_rows = len(df)
        df = df.dropna().reset_index(drop=True)
        dropped_rows = initial_rows - len(df)
        if dropped_rows > 0:
            logger.info(f"Removed {dropped_rows} incomplete rows")

        if self.target_column in df.columns:
            ordered = [self.target_column] + [c for c in df.columns if c != self.target_column]
            df = df[ordered]

        logger.info(f"Data cleaned: {len(df)} rows, {len(df.columns)} columns")
        return df

    def encode_target(self, y: Union[pd.Series, np.ndarray, List]) -> np.ndarray:
        """
        Encode churn labels as integers (positive label -> 1).

        Args:
            y: Raw labels, either ``Yes``/``No`` strings or 0/1 values

        Returns:
            Integer array of 0/1 labels
        """
        y = pd.Series(y)

        if pd.api.types.is_numeric_dtype(y) or pd.api.types.is_bool_dtype(y):
            unknown = set(y.unique()) - {0, 1}
            if unknown:
                raise ValueError(f"Unknown target values: {sorted(unknown)}")
            return y.astype(int).to_numpy()

        mapping = {self.positive_label: 1, self.negative_label: 0}
        unknown = set(y.unique()) - set(mapping)
        if unknown:
            raise ValueError(f"Unknown target labels: {sorted(unknown)}")

        return y.map(mapping).astype(int).to_numpy()

    def split_features_target(self, df: pd.DataFrame) -> Tuple[pd.DataFrame, np.ndarray]:
        """Separate predictors from the encoded target."""
        if self.target_column not in df.columns:
            raise ValueError(f"Target column '{self.target_column}' not found")

        X = df.drop(columns=[self.target_column])
        y = self.encode_target(df[self.target_column])
        return X, y

    def create_recipe(self) -> ColumnTransformer:
        """
        Create the unfitted preprocessing recipe.

        Returns:
            ColumnTransformer pipeline
        """
        transformers = []

        for col, n_bins in self.binned_features.items():
            binning = Pipeline([
                ("discretizer", KBinsDiscretizer(n_bins=n_bins, encode="ordinal", strategy="quantile")),
                ("encoder", OneHotEncoder(drop="first", handle_unknown="ignore", sparse_output=False)),
                ("scaler", StandardScaler()),
            ])
            transformers.append((f"binned_{col}", binning, [col]))

        if self.log_features:
            log_pipeline = Pipeline([
                ("log", FunctionTransformer(np.log, feature_names_out="one-to-one")),
                ("scaler", StandardScaler()),
            ])
            transformers.append(("log", log_pipeline, self.log_features))

        if self.numerical_features:
            transformers.append(("numerical", StandardScaler(), self.numerical_features))

        if self.categorical_features:
            categorical_pipeline = Pipeline([
                ("encoder", OneHotEncoder(drop="first", handle_unknown="ignore", sparse_output=False)),
                ("scaler", StandardScaler()),
            ])
            transformers.append(("categorical", categorical_pipeline, self.categorical_features))

        self.preprocessor = ColumnTransformer(
            transformers=transformers,
            remainder="drop",
            verbose_feature_names_out=False
        )
        self.preprocessor.set_output(transform="pandas")

        return self.preprocessor

    def fit_transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Fit the recipe on training data and bake it.

        Args:
            df: Training predictors

        Returns:
            Baked DataFrame
        """
        missing = [col for col in self.input_features if col not in df.columns]
        if missing:
            raise ValueError(f"Missing input columns: {missing}")

        logger.info(f"Numerical features: {self.numerical_features}")
        logger.info(f"Binned features: {self.binned_features}")
        logger.info(f"Log-transformed features: {self.log_features}")
        logger.info(f"Categorical features: {self.categorical_features}")

        self.create_recipe()
        transformed = self.preprocessor.fit_transform(df)
        self.feature_names = list(self.preprocessor.get_feature_names_out())

        logger.info(f"Transformed shape: {transformed.shape}")
        return transformed

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Bake new data with the fitted recipe.

        Args:
            df: Input DataFrame

        Returns:
            Baked DataFrame
        """
        if not self.is_fitted:
            raise ValueError("Preprocessor not fitted. Call fit_transform first.")

        return self.preprocessor.transform(df)

    def get_feature_names(self) -> List[str]:
        """Get names of all features after transformation."""
        return self.feature_names

    def save(self, filepath: Optional[Path] = None) -> Path:
        """
        Persist the fitted recipe.

        Args:
            filepath: Destination file

        Returns:
            Path to the saved recipe
        """
        if not self.is_fitted:
            raise ValueError("Preprocessor not fitted. Call fit_transform first.")

        filepath = Path(filepath or MODELS_DIR / "preprocessor.joblib")
        filepath.parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(self, filepath)
        logger.info(f"Preprocessor saved to {filepath}")
        return filepath

    @classmethod
    def load(cls, filepath: Optional[Path] = None) -> "DataPreprocessor":
        """Load a recipe saved with :meth:`save`."""
        filepath = Path(filepath or MODELS_DIR / "preprocessor.joblib")
        if not filepath.exists():
            raise FileNotFoundError(f"Preprocessor not found: {filepath}")

        preprocessor = joblib.load(filepath)
        logger.info(f"Preprocessor loaded from {filepath}")
        return preprocessor

    def get_preprocessing_summary(self) -> Dict:
        """
        Get summary of preprocessing steps applied.

        Returns:
            Dictionary with preprocessing summary
        """
        summary = {
            "numerical_features": self.numerical_features,
            "binned_features": self.binned_features,
            "log_features": self.log_features,
            "categorical_features": self.categorical_features,
            "dropped_columns": [self.id_column],
            "total_features": len(self.feature_names),
            "feature_names": self.feature_names,
        }

        if self.preprocessor is not None and self.is_fitted:
            for col in self.binned_features:
                discretizer = self.preprocessor.named_transformers_[f"binned_{col}"].named_steps["discretizer"]
                summary.setdefault("bin_edges", {})[col] = discretizer.bin_edges_[0].tolist()

        return summary
