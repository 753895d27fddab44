"""Pipeline orchestration and the cached target plan."""

from .plan import Plan, Target
from .churn_pipeline import ChurnPipeline

__all__ = ["ChurnPipeline", "Plan", "Target"]
