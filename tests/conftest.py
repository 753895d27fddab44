"""
Configuration for pytest, including shared fixtures.
"""

import copy

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from config import load_config
from churn_keras.data import DataLoader, DataPreprocessor


def make_telco_frame(n_rows: int = 240, seed: int = 7) -> pd.DataFrame:
    """Synthetic customers shaped like the Telco churn CSV."""
    rng = np.random.default_rng(seed)

    tenure = rng.integers(0, 73, n_rows)
    monthly = rng.uniform(18.25, 118.75, n_rows).round(2)
    contract = rng.choice(["Month-to-month", "One year", "Two year"], n_rows, p=[0.55, 0.25, 0.2])
    internet = rng.choice(["DSL", "Fiber optic", "No"], n_rows)
    addon_choices = ["Yes", "No", "No internet service"]

    def addon() -> np.ndarray:
        values = rng.choice(addon_choices[:2], n_rows)
        return np.where(internet == "No", "No internet service", values)

    phone = rng.choice(["Yes", "No"], n_rows, p=[0.9, 0.1])
    lines = np.where(phone == "No", "No phone service", rng.choice(["Yes", "No"], n_rows))

    # Short-tenure month-to-month customers churn more often
    logit = -1.0 + 1.5 * (contract == "Month-to-month") - 0.04 * tenure + 0.01 * (monthly - 65)
    churn = rng.random(n_rows) < 1 / (1 + np.exp(-logit))

    total = (np.maximum(tenure, 1) * monthly).round(2).astype(str)
    total[tenure == 0] = " "

    return pd.DataFrame({
        "customerID": [f"{i:04d}-TEST" for i in range(n_rows)],
        "gender": rng.choice(["Male", "Female"], n_rows),
        "SeniorCitizen": rng.choice([0, 1], n_rows, p=[0.84, 0.16]),
        "Partner": rng.choice(["Yes", "No"], n_rows),
        "Dependents": rng.choice(["Yes", "No"], n_rows),
        "tenure": tenure,
        "PhoneService": phone,
        "MultipleLines": lines,
        "InternetService": internet,
        "OnlineSecurity": addon(),
        "OnlineBackup": addon(),
        "DeviceProtection": addon(),
        "TechSupport": addon(),
        "StreamingTV": addon(),
        "StreamingMovies": addon(),
        "Contract": contract,
        "PaperlessBilling": rng.choice(["Yes", "No"], n_rows),
        "PaymentMethod": rng.choice(
            ["Electronic check", "Mailed check", "Bank transfer (automatic)", "Credit card (automatic)"],
            n_rows
        ),
        "MonthlyCharges": monthly,
        "TotalCharges": total,
        "Churn": np.where(churn, "Yes", "No"),
    })


@pytest.fixture
def test_config() -> dict:
    """Project config with a fast network and no tracking."""
    config = copy.deepcopy(load_config())
    config["model"]["epochs"] = 2
    config["model"]["batch_size"] = 32
    config["mlflow"]["enabled"] = False
    config["explain"]["n_cases"] = 2
    return config


@pytest.fixture
def raw_data() -> pd.DataFrame:
    return make_telco_frame()


@pytest.fixture
def data_loader(test_config, tmp_path) -> DataLoader:
    """DataLoader reading from and writing to a temporary directory."""
    loader = DataLoader(test_config)
    loader.raw_data_path = tmp_path / "raw"
    loader.processed_data_path = tmp_path / "processed"
    loader.raw_data_path.mkdir()
    return loader


@pytest.fixture
def cleaned_data(test_config, raw_data) -> pd.DataFrame:
    return DataPreprocessor(test_config).clean_data(raw_data)


@pytest.fixture
def baked_data(test_config, cleaned_data):
    """Fitted preprocessor plus baked train and test sets."""
    preprocessor = DataPreprocessor(test_config)
    train_df, test_df = DataLoader(test_config).get_train_test_split(cleaned_data)

    X_train_raw, y_train = preprocessor.split_features_target(train_df)
    X_test_raw, y_test = preprocessor.split_features_target(test_df)
    X_train = preprocessor.fit_transform(X_train_raw)
    X_test = preprocessor.transform(X_test_raw)

    return preprocessor, X_train, y_train, X_test, y_test
