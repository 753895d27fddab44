"""
API Schemas (Pydantic Models)
=============================

Data validation models for API requests and responses.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

YesNo = Literal["Yes", "No"]


class CustomerData(BaseModel):
    """Schema for a raw customer record."""

    gender: Literal["Male", "Female"] = Field(..., description="Customer gender")
    SeniorCitizen: int = Field(..., ge=0, le=1, description="Senior citizen flag (0 or 1)")
    Partner: YesNo = Field(..., description="Has a partner")
    Dependents: YesNo = Field(..., description="Has dependents")
    tenure: int = Field(..., ge=0, le=100, description="Months with the company")
    PhoneService: YesNo = Field(..., description="Has phone service")
    MultipleLines: Literal["Yes", "No", "No phone service"] = Field(..., description="Has multiple lines")
    InternetService: Literal["DSL", "Fiber optic", "No"] = Field(..., description="Internet service provider")
    OnlineSecurity: Literal["Yes", "No", "No internet service"] = Field(...)
    OnlineBackup: Literal["Yes", "No", "No internet service"] = Field(...)
    DeviceProtection: Literal["Yes", "No", "No internet service"] = Field(...)
    TechSupport: Literal["Yes", "No", "No internet service"] = Field(...)
    StreamingTV: Literal["Yes", "No", "No internet service"] = Field(...)
    StreamingMovies: Literal["Yes", "No", "No internet service"] = Field(...)
    Contract: Literal["Month-to-month", "One year", "Two year"] = Field(..., description="Contract term")
    PaperlessBilling: YesNo = Field(..., description="Uses paperless billing")
    PaymentMethod: Literal[
        "Electronic check",
        "Mailed check",
        "Bank transfer (automatic)",
        "Credit card (automatic)",
    ] = Field(..., description="Payment method")
    MonthlyCharges: float = Field(..., gt=0, description="Monthly charge amount")
    TotalCharges: float = Field(..., gt=0, description="Total amount charged")

    customerID: Optional[str] = Field(None, description="Customer identifier")

    class Config:
        json_schema_extra = {
            "example": {
                "customerID": "7590-VHVEG",
                "gender": "Female",
                "SeniorCitizen": 0,
                "Partner": "Yes",
                "Dependents": "No",
                "tenure": 1,
                "PhoneService": "No",
                "MultipleLines": "No phone service",
                "InternetService": "DSL",
                "OnlineSecurity": "No",
                "OnlineBackup": "Yes",
                "DeviceProtection": "No",
                "TechSupport": "No",
                "StreamingTV": "No",
                "StreamingMovies": "No",
                "Contract": "Month-to-month",
                "PaperlessBilling": "Yes",
                "PaymentMethod": "Electronic check",
                "MonthlyCharges": 29.85,
                "TotalCharges": 29.85
            }
        }


class InstancesRequest(BaseModel):
    """Baked feature vectors, in TensorFlow Serving's REST layout."""

    instances: List[List[float]] = Field(..., min_length=1, max_length=1000)


class InstancesResponse(BaseModel):
    """One single-element probability list per instance."""

    predictions: List[List[float]]


class PredictionResponse(BaseModel):
    """Schema for single customer prediction response."""

    customer_id: Optional[str] = Field(None, description="Customer identifier")
    churn_prediction: int = Field(..., description="Predicted churn (0 or 1)")
    churn_label: str = Field(..., description="Predicted class label")
    churn_probability: float = Field(..., ge=0, le=1, description="Probability of churn")
    risk_level: str = Field(..., description="Risk level category")
    confidence: float = Field(..., ge=0, le=1, description="Prediction confidence")
    timestamp: datetime = Field(default_factory=datetime.now, description="Prediction timestamp")
    model_used: str = Field(..., description="Model used for prediction")


class ModelInfo(BaseModel):
    """Schema for model information."""

    model_name: str
    model_type: str
    feature_count: int
    feature_names: List[str]
    threshold: float


class HealthResponse(BaseModel):
    """Schema for health check response."""

    status: str
    model_loaded: bool
    preprocessor_loaded: bool
    timestamp: datetime
