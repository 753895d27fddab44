"""Models module for training, evaluation and explanation."""

from .classifier import ChurnClassifier
from .trainer import ModelTrainer
from .evaluator import ModelEvaluator
from .explainer import ModelExplainer

__all__ = ["ChurnClassifier", "ModelTrainer", "ModelEvaluator", "ModelExplainer"]
