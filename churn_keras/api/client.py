"""
Serving Client
==============

HTTP client for a deployed churn model. Works against this project's API
and against TensorFlow Serving (``path="/v1/models/keras_mlp:predict"``).
"""

from typing import Any, Dict, List, Optional, Union

import httpx
import numpy as np
import pandas as pd
from loguru import logger

from config import get_config


class ServingClient:
    """Send feature instances to a prediction endpoint."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        path: str = "/predict",
        timeout: Optional[float] = None,
        config: Optional[dict] = None,
        transport: Optional[httpx.BaseTransport] = None
    ):
        """
        Initialize ServingClient.

        Args:
            base_url: Server URL (defaults to ``api.serving_url``)
            path: Prediction route
            timeout: Request timeout in seconds
            config: Configuration dictionary
            transport: Custom httpx transport
        """
        self.config = config or get_config()
        api_config = self.config.get("api", {})

        self.base_url = base_url or api_config.get("serving_url", "http://localhost:8000")
        self.path = path
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout or api_config.get("timeout", 10),
            transport=transport
        )

    def __enter__(self) -> "ServingClient":
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self):
        self._client.close()

    @staticmethod
    def _to_instances(instances: Union[pd.DataFrame, np.ndarray, List]) -> List[List[float]]:
        if isinstance(instances, pd.DataFrame):
            instances = instances.to_numpy()
        array = np.atleast_2d(np.asarray(instances, dtype=float))
        return array.tolist()

    def predict(self, instances: Union[pd.DataFrame, np.ndarray, List]) -> List[float]:
        """
        Request churn probabilities.

        Args:
            instances: Baked feature rows

        Returns:
            One probability per instance
        """
        payload = {"instances": self._to_instances(instances)}
        logger.info(f"POST {self.base_url}{self.path} ({len(payload['instances'])} instances)")

        response = self._client.post(self.path, json=payload)
        response.raise_for_status()

        predictions = response.json()["predictions"]
        return [self._probability(p) for p in predictions]

    @staticmethod
    def _probability(prediction: Any) -> float:
        # TF Serving returns [p] per row, or {"output_name": [p]} for named signatures
        if isinstance(prediction, dict):
            prediction = next(iter(prediction.values()))
        if isinstance(prediction, list):
            prediction = prediction[0]
        return float(prediction)

    def health(self) -> Dict[str, Any]:
        """Fetch the server health status."""
        response = self._client.get("/health")
        response.raise_for_status()
        return response.json()
