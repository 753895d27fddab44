"""FastAPI serving module and HTTP client."""

from .client import ServingClient
from .schemas import CustomerData, InstancesRequest, PredictionResponse

__all__ = ["ServingClient", "CustomerData", "InstancesRequest", "PredictionResponse"]
