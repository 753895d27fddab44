"""
FastAPI Main Application
========================

Serves the trained churn network. ``/predict`` follows TensorFlow Serving's
REST layout so the same client can call either server.
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional

import numpy as np
import pandas as pd
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from config import get_config, MODELS_DIR
from churn_keras.data import DataPreprocessor
from churn_keras.models import ChurnClassifier
from .schemas import (
    CustomerData,
    HealthResponse,
    InstancesRequest,
    InstancesResponse,
    ModelInfo,
    PredictionResponse,
)

config = get_config()

app = FastAPI(
    title="Telco Churn API",
    description="Keras customer churn prediction service",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global variables for loaded model and preprocessor
model: Optional[ChurnClassifier] = None
preprocessor: Optional[DataPreprocessor] = None
model_name = "churn_mlp"


def load_model_and_preprocessor(models_dir: Path = MODELS_DIR):
    """Load model and preprocessor from disk."""
    global model, preprocessor

    model_path = models_dir / f"{model_name}.keras"
    if model_path.exists():
        from tensorflow import keras

        threshold = config.get("evaluation", {}).get("threshold", 0.5)
        model = ChurnClassifier(keras.models.load_model(model_path), threshold=threshold)
        logger.info(f"Loaded model from {model_path}")
    else:
        model = None
        logger.warning("No trained model found. API will return errors for predictions.")

    preprocessor_path = models_dir / "preprocessor.joblib"
    if preprocessor_path.exists():
        preprocessor = DataPreprocessor.load(preprocessor_path)
    else:
        preprocessor = None
        logger.warning("No preprocessor found. Only baked instances can be scored.")


@app.on_event("startup")
async def startup_event():
    """Execute on application startup."""
    load_model_and_preprocessor()
    logger.info("Churn Prediction API started")


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {
        "message": "Telco Churn API",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Check API health status."""
    return HealthResponse(
        status="healthy" if model is not None else "degraded",
        model_loaded=model is not None,
        preprocessor_loaded=preprocessor is not None,
        timestamp=datetime.now()
    )


def get_risk_level(probability: float) -> str:
    """Convert probability to risk level."""
    if probability >= 0.7:
        return "High"
    elif probability >= 0.4:
        return "Medium"
    else:
        return "Low"


def _require_model() -> ChurnClassifier:
    if model is None:
        raise HTTPException(
            status_code=503,
            detail="Model not loaded. Please train a model first."
        )
    return model


def _feature_names() -> List[str]:
    return preprocessor.get_feature_names() if preprocessor is not None else []


def _expected_width(classifier: ChurnClassifier) -> Optional[int]:
    """Number of features an instance must carry, if known."""
    if preprocessor is not None:
        return len(_feature_names())
    # Without a recipe fall back to the network's input layer
    shape = getattr(classifier.model, "input_shape", None)
    if shape and isinstance(shape[-1], int):
        return shape[-1]
    return None


@app.post("/predict", response_model=InstancesResponse, tags=["Predictions"])
async def predict_instances(request: InstancesRequest):
    """
    Score baked feature vectors.

    Args:
        request: ``{"instances": [[...], ...]}``

    Returns:
        ``{"predictions": [[probability], ...]}``
    """
    classifier = _require_model()

    widths = {len(instance) for instance in request.instances}
    expected = _expected_width(classifier)
    if len(widths) != 1 or (expected and widths != {expected}):
        raise HTTPException(
            status_code=422,
            detail=f"Every instance must have {expected or 'the same number of'} features, got {sorted(widths)}"
        )

    try:
        probs = classifier.predict_churn_probability(np.asarray(request.instances, dtype="float32"))
    except Exception as e:
        logger.error(f"Prediction error: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return InstancesResponse(predictions=[[float(p)] for p in probs])


@app.post("/predict/customer", response_model=PredictionResponse, tags=["Predictions"])
async def predict_customer(customer: CustomerData):
    """
    Bake a raw customer record with the recipe and score it.

    Args:
        customer: Customer data

    Returns:
        Prediction response
    """
    classifier = _require_model()
    if preprocessor is None:
        raise HTTPException(
            status_code=503,
            detail="Preprocessor not loaded. Please train a model first."
        )

    try:
        df = pd.DataFrame([customer.model_dump(exclude={"customerID"})])
        X = preprocessor.transform(df)
        probability = float(classifier.predict_churn_probability(X)[0])
    except Exception as e:
        logger.error(f"Prediction error: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    prediction = int(probability >= classifier.threshold)
    class_names = config.get("explain", {}).get("class_names", ["No", "Yes"])

    return PredictionResponse(
        customer_id=customer.customerID,
        churn_prediction=prediction,
        churn_label=class_names[prediction],
        churn_probability=probability,
        risk_level=get_risk_level(probability),
        confidence=max(probability, 1 - probability),
        timestamp=datetime.now(),
        model_used=model_name
    )


@app.get("/model/info", response_model=ModelInfo, tags=["Model"])
async def get_model_info():
    """Get information about the loaded model."""
    classifier = _require_model()
    feature_names = _feature_names()

    return ModelInfo(
        model_name=model_name,
        model_type=type(classifier.model).__name__,
        feature_count=len(feature_names),
        feature_names=feature_names,
        threshold=classifier.threshold
    )


@app.post("/model/reload", tags=["Model"])
async def reload_model():
    """Reload the model from disk."""
    load_model_and_preprocessor()

    if model is None:
        raise HTTPException(
            status_code=503,
            detail="Failed to load model"
        )

    return {"message": "Model reloaded successfully", "model_name": model_name}


# Run with: uvicorn churn_keras.api.main:app --reload
if __name__ == "__main__":
    import uvicorn

    api_config = config.get("api", {})

    uvicorn.run(
        "churn_keras.api.main:app",
        host=api_config.get("host", "0.0.0.0"),
        port=api_config.get("port", 8000),
        reload=api_config.get("reload", False)
    )
