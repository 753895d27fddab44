"""
Pipeline stages used as plan commands.

Every stage takes its upstream values as keyword arguments named after the
producing target, plus a ``config`` holding only the sections it reads, so
a change to one section invalidates only the stages that use it.
"""

from typing import Any, Dict, Tuple

import numpy as np
import pandas as pd

from churn_keras.data import DataLoader, DataPreprocessor
from churn_keras.features import CorrelationAnalyzer
from churn_keras.models import ChurnClassifier, ModelEvaluator, ModelExplainer, ModelTrainer
from churn_keras.utils import set_seeds


def load_raw_data(config: dict) -> pd.DataFrame:
    return DataLoader(config).load_raw_data()


def clean_data(raw_data: pd.DataFrame, config: dict) -> pd.DataFrame:
    return DataPreprocessor(config).clean_data(raw_data)


def split_data(cleaned_data: pd.DataFrame, config: dict) -> Dict[str, pd.DataFrame]:
    train_df, test_df = DataLoader(config).get_train_test_split(cleaned_data)
    return {"train": train_df, "test": test_df}


def prep_recipe(data_split: Dict[str, pd.DataFrame], config: dict) -> DataPreprocessor:
    preprocessor = DataPreprocessor(config)
    X_train, _ = preprocessor.split_features_target(data_split["train"])
    preprocessor.fit_transform(X_train)
    return preprocessor


def bake_data(
    recipe: DataPreprocessor,
    data_split: Dict[str, pd.DataFrame],
    subset: str
) -> Tuple[pd.DataFrame, np.ndarray]:
    X, y = recipe.split_features_target(data_split[subset])
    return recipe.transform(X), y


def correlate_features(train_baked: Tuple[pd.DataFrame, np.ndarray], config: dict) -> pd.DataFrame:
    X_train, y_train = train_baked
    return CorrelationAnalyzer(config).correlate_with_target(X_train, y_train)


def fit_model(train_baked: Tuple[pd.DataFrame, np.ndarray], config: dict) -> Any:
    set_seeds(config.get("data", {}).get("random_state", 100))
    X_train, y_train = train_baked
    return ModelTrainer(config).train_model(X_train, y_train)


def evaluate_model(
    model: Any,
    test_baked: Tuple[pd.DataFrame, np.ndarray],
    config: dict
) -> Dict[str, Any]:
    X_test, y_test = test_baked
    evaluator = ModelEvaluator(config)
    classifier = ChurnClassifier(model, threshold=evaluator.threshold)
    metrics = evaluator.evaluate_model(classifier, X_test, y_test, model_name="keras_mlp")
    return {
        "metrics": metrics,
        "estimates": evaluator.get_stored_estimates("keras_mlp"),
        "confusion_matrix": evaluator.get_confusion_matrix(classifier, X_test, y_test),
    }


def explain_predictions(
    model: Any,
    train_baked: Tuple[pd.DataFrame, np.ndarray],
    test_baked: Tuple[pd.DataFrame, np.ndarray],
    config: dict
) -> pd.DataFrame:
    X_train, _ = train_baked
    X_test, _ = test_baked
    explainer = ModelExplainer(config)
    explainer.setup_lime_explainer(X_train)
    n_cases = config.get("explain", {}).get("n_cases", 10)
    return explainer.explain(ChurnClassifier(model), X_test.head(n_cases))
