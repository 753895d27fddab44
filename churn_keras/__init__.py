"""
Telco Churn with Keras
======================

Customer churn prediction on the IBM Telco dataset with a small Keras
network, LIME explanations and a FastAPI serving endpoint.

Modules:
    - data: Data loading and the preprocessing recipe
    - features: Correlation analysis
    - models: Network training, evaluation and explanation
    - pipeline: Linear run and cached target plan
    - api: FastAPI backend and serving client
    - utils: Utility functions
"""

__version__ = "1.0.0"
