"""
Data Loader Module
==================

Fetches the Telco customer churn CSV, loads it and splits it for modeling.
"""

from pathlib import Path
from typing import Optional, Tuple

import httpx
import pandas as pd
from loguru import logger
from sklearn.model_selection import train_test_split

from config import RAW_DATA_DIR, PROCESSED_DATA_DIR, get_config


class DataLoader:
    """Load and manage the customer churn dataset."""

    def __init__(self, config: Optional[dict] = None):
        """
        Initialize DataLoader.

        Args:
            config: Configuration dictionary. If None, loads from config.yaml
        """
        self.config = config or get_config()
        self.data_config = self.config.get("data", {})
        self.raw_data_path = RAW_DATA_DIR
        self.processed_data_path = PROCESSED_DATA_DIR

    @property
    def target_column(self) -> str:
        return self.data_config.get("target_column", "Churn")

    def raw_file_path(self, filename: Optional[str] = None) -> Path:
        """Location of the raw CSV in the raw data directory."""
        return self.raw_data_path / (filename or self.data_config.get("raw_filename", "telco_churn.csv"))

    def download_raw_data(
        self,
        url: Optional[str] = None,
        filename: Optional[str] = None,
        force: bool = False
    ) -> Path:
        """
        Download the raw CSV unless it is already present.

        Args:
            url: Source URL (defaults to ``data.url``)
            filename: Target file name in the raw data directory
            force: Download even when the file exists

        Returns:
            Path to the raw data file
        """
        url = url or self.data_config["url"]
        file_path = self.raw_file_path(filename)

        if file_path.exists() and not force:
            logger.debug(f"Raw data already present at {file_path}")
            return file_path

        file_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = file_path.parent / f"{file_path.name}.part"
        timeout = self.data_config.get("download_timeout", 30)

        logger.info(f"Downloading {url} -> {file_path}")
        with httpx.stream("GET", url, timeout=timeout, follow_redirects=True) as response:
            response.raise_for_status()
            with open(tmp_path, "wb") as f:
                for chunk in response.iter_bytes():
                    f.write(chunk)

        tmp_path.replace(file_path)
        logger.info(f"Downloaded {file_path.stat().st_size} bytes")
        return file_path

    def load_raw_data(
        self,
        filename: Optional[str] = None,
        download: bool = True,
        **kwargs
    ) -> pd.DataFrame:
        """
        Load raw data from CSV file, fetching it first if needed.

        Args:
            filename: Name of the data file
            download: Download the file when it is missing
            **kwargs: Additional arguments to pass to pd.read_csv

        Returns:
            DataFrame containing raw data
        """
        file_path = self.raw_file_path(filename)

        if not file_path.exists():
            if not download:
                logger.error(f"Data file not found: {file_path}")
                raise FileNotFoundError(f"Data file not found: {file_path}")
            self.download_raw_data(filename=file_path.name)

        logger.info(f"Loading data from {file_path}")
        df = pd.read_csv(file_path, **kwargs)

        logger.info(f"Loaded {len(df)} rows and {len(df.columns)} columns")
        return df

    def load_processed_data(
        self,
        filename: str = "processed_data.parquet"
    ) -> pd.DataFrame:
        """
        Load processed data.

        Args:
            filename: Name of the processed data file

        Returns:
            DataFrame containing processed data
        """
        file_path = self.processed_data_path / filename

        if not file_path.exists():
            logger.error(f"Processed data not found: {file_path}")
            raise FileNotFoundError(f"Processed data not found: {file_path}")

        logger.info(f"Loading processed data from {file_path}")

        ext = file_path.suffix.lower()
        if ext == ".parquet":
            return pd.read_parquet(file_path)
        elif ext == ".csv":
            return pd.read_csv(file_path)
        raise ValueError(f"Unsupported file format: {ext}")

    def save_processed_data(
        self,
        df: pd.DataFrame,
        filename: str = "processed_data.parquet"
    ) -> Path:
        """
        Save processed data.

        Args:
            df: DataFrame to save
            filename: Output filename

        Returns:
            Path to saved file
        """
        file_path = self.processed_data_path / filename
        file_path.parent.mkdir(parents=True, exist_ok=True)

        ext = file_path.suffix.lower()
        if ext == ".parquet":
            df.to_parquet(file_path, index=False)
        elif ext == ".csv":
            df.to_csv(file_path, index=False)
        else:
            raise ValueError(f"Unsupported file format: {ext}")

        logger.info(f"Saved processed data to {file_path}")
        return file_path

    def get_train_test_split(
        self,
        df: pd.DataFrame,
        train_prop: Optional[float] = None,
        random_state: Optional[int] = None,
        stratify: Optional[bool] = None
    ) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """
        Split data into training and testing sets.

        Args:
            df: Cleaned DataFrame, target column included
            train_prop: Proportion of rows kept for training
            random_state: Random seed
            stratify: Whether to stratify on the target

        Returns:
            Tuple of (train_df, test_df)
        """
        train_prop = train_prop if train_prop is not None else self.data_config.get("train_prop", 0.8)
        random_state = random_state if random_state is not None else self.data_config.get("random_state", 100)
        stratify = stratify if stratify is not None else self.data_config.get("stratify", False)

        if not 0 < train_prop < 1:
            raise ValueError(f"train_prop must be between 0 and 1, got {train_prop}")

        train_df, test_df = train_test_split(
            df,
            train_size=train_prop,
            random_state=random_state,
            stratify=df[self.target_column] if stratify else None
        )

        logger.info(f"Train set: {len(train_df)} samples")
        logger.info(f"Test set: {len(test_df)} samples")

        return train_df, test_df

    def validate_data(self, df: pd.DataFrame) -> dict:
        """
        Validate data quality.

        Args:
            df: DataFrame to validate

        Returns:
            Dictionary with validation results
        """
        validation_results = {
            "total_rows": len(df),
            "total_columns": len(df.columns),
            "missing_values": df.isnull().sum().to_dict(),
            "duplicates": int(df.duplicated().sum()),
            "dtypes": df.dtypes.astype(str).to_dict(),
        }

        if self.target_column in df.columns:
            validation_results["target_distribution"] = df[self.target_column].value_counts().to_dict()
            validation_results["target_balance"] = df[self.target_column].value_counts(normalize=True).to_dict()

        return validation_results
