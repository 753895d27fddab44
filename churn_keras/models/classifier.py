"""
Classifier adapter giving a Keras network the scikit-learn prediction API.

Metrics, LIME and the serving layer all expect ``predict_proba`` returning
one column per class; the network itself emits a single sigmoid output.
"""

from typing import Any, Optional

import numpy as np
import pandas as pd


class ChurnClassifier:
    """Wrap a binary Keras model with ``predict``/``predict_proba``."""

    classes_ = np.array([0, 1])

    def __init__(self, model: Any, threshold: float = 0.5, batch_size: Optional[int] = None):
        self.model = model
        self.threshold = threshold
        self.batch_size = batch_size

    @staticmethod
    def _as_array(X) -> np.ndarray:
        if isinstance(X, pd.DataFrame):
            X = X.to_numpy()
        X = np.asarray(X, dtype="float32")
        if X.ndim == 1:
            X = X.reshape(1, -1)
        return X

    def predict_churn_probability(self, X) -> np.ndarray:
        """Probability of the positive (churn) class, shape ``(n,)``."""
        kwargs = {"verbose": 0}
        if self.batch_size:
            kwargs["batch_size"] = self.batch_size
        probs = self.model.predict(self._as_array(X), **kwargs)
        return np.asarray(probs, dtype=float).reshape(-1)

    def predict_proba(self, X) -> np.ndarray:
        p = self.predict_churn_probability(X)
        return np.column_stack([1.0 - p, p])

    def predict(self, X, threshold: Optional[float] = None) -> np.ndarray:
        threshold = self.threshold if threshold is None else threshold
        return (self.predict_churn_probability(X) >= threshold).astype(int)
