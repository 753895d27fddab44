"""
Model Evaluator Module
======================

Test-set evaluation of the churn network: class estimates, metrics,
confusion matrix and ROC curve.
"""

from typing import Any, Dict, List, Optional, Tuple

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from loguru import logger
from sklearn.metrics import (
    accuracy_score,
    precision_score,
    recall_score,
    f1_score,
    roc_auc_score,
    confusion_matrix,
    classification_report,
    roc_curve,
    log_loss,
)

from config import get_config, FIGURES_DIR


class ModelEvaluator:
    """Evaluate a fitted churn classifier."""

    def __init__(self, config: Optional[dict] = None):
        """
        Initialize ModelEvaluator.

        Args:
            config: Configuration dictionary
        """
        self.config = config or get_config()
        self.eval_config = self.config.get("evaluation", {})
        self.threshold = self.eval_config.get("threshold", 0.5)
        self.class_names = self.config.get("explain", {}).get("class_names", ["No", "Yes"])
        self.evaluation_results = {}

    def get_estimates(
        self,
        model: Any,
        X: np.ndarray,
        y_true: np.ndarray,
        threshold: Optional[float] = None
    ) -> pd.DataFrame:
        """
        Build the estimates table.

        Args:
            model: Classifier exposing ``predict_proba``
            X: Features
            y_true: True 0/1 labels
            threshold: Classification threshold

        Returns:
            DataFrame with ``truth``, ``estimate`` and ``class_prob``
        """
        threshold = self.threshold if threshold is None else threshold

        y_prob = model.predict_proba(X)[:, 1]
        y_pred = (y_prob >= threshold).astype(int)

        return pd.DataFrame({
            "truth": np.asarray(y_true).astype(int),
            "estimate": y_pred,
            "class_prob": y_prob,
        })

    def evaluate_model(
        self,
        model: Any,
        X: np.ndarray,
        y_true: np.ndarray,
        model_name: str = "model",
        threshold: Optional[float] = None
    ) -> Dict[str, float]:
        """
        Evaluate a model on held-out data.

        Args:
            model: Classifier exposing ``predict_proba``
            X: Features
            y_true: True labels
            model_name: Name of model
            threshold: Classification threshold

        Returns:
            Dictionary of metrics
        """
        estimates = self.get_estimates(model, X, y_true, threshold)
        truth, estimate, prob = estimates["truth"], estimates["estimate"], estimates["class_prob"]

        metrics = {
            "accuracy": accuracy_score(truth, estimate),
            "precision": precision_score(truth, estimate, zero_division=0),
            "recall": recall_score(truth, estimate, zero_division=0),
            "f1": f1_score(truth, estimate, zero_division=0),
        }

        # AUC is undefined with a single class present
        if truth.nunique() > 1:
            metrics["roc_auc"] = roc_auc_score(truth, prob)
            metrics["log_loss"] = log_loss(truth, prob, labels=[0, 1])
        else:
            logger.warning(f"{model_name}: only one class in y_true, skipping AUC and log loss")

        self.evaluation_results[model_name] = {
            "metrics": metrics,
            "estimates": estimates,
        }

        logger.info(
            f"{model_name} - Accuracy: {metrics['accuracy']:.4f}, F1: {metrics['f1']:.4f}, "
            f"ROC-AUC: {metrics.get('roc_auc', float('nan')):.4f}"
        )

        return metrics

    def get_stored_estimates(self, model_name: str = "model") -> pd.DataFrame:
        """Estimates table from a previous :meth:`evaluate_model` call."""
        if model_name not in self.evaluation_results:
            raise ValueError(f"Model '{model_name}' has not been evaluated")
        return self.evaluation_results[model_name]["estimates"]

    def get_classification_report(
        self,
        model: Any,
        X: np.ndarray,
        y_true: np.ndarray,
        target_names: Optional[List[str]] = None
    ) -> str:
        """
        Get detailed classification report.

        Args:
            model: Trained classifier
            X: Features
            y_true: True labels
            target_names: Names for classes

        Returns:
            Classification report string
        """
        estimates = self.get_estimates(model, X, y_true)
        target_names = target_names or self.class_names

        return classification_report(
            estimates["truth"], estimates["estimate"],
            labels=[0, 1], target_names=target_names, zero_division=0
        )

    def get_confusion_matrix(
        self,
        model: Any,
        X: np.ndarray,
        y_true: np.ndarray,
        normalize: Optional[str] = None
    ) -> np.ndarray:
        """
        Get confusion matrix (rows are truth, columns are predictions).

        Args:
            model: Trained classifier
            X: Features
            y_true: True labels
            normalize: Normalization mode ('true', 'pred', 'all', None)

        Returns:
            Confusion matrix
        """
        estimates = self.get_estimates(model, X, y_true)
        return confusion_matrix(
            estimates["truth"], estimates["estimate"], labels=[0, 1], normalize=normalize
        )

    def plot_confusion_matrix(
        self,
        model: Any,
        X: np.ndarray,
        y_true: np.ndarray,
        model_name: str = "Model",
        save: bool = True,
        figsize: Tuple[int, int] = (8, 6)
    ) -> plt.Figure:
        """
        Plot confusion matrix heatmap.

        Args:
            model: Trained classifier
            X: Features
            y_true: True labels
            model_name: Name for title
            save: Whether to save figure
            figsize: Figure size

        Returns:
            Matplotlib figure
        """
        cm = self.get_confusion_matrix(model, X, y_true)

        fig, ax = plt.subplots(figsize=figsize)
        sns.heatmap(
            cm, annot=True, fmt="d", cmap="Blues",
            xticklabels=self.class_names,
            yticklabels=self.class_names,
            ax=ax
        )
        ax.set_title(f"{model_name} - Confusion Matrix")
        ax.set_xlabel("Predicted")
        ax.set_ylabel("Actual")

        plt.tight_layout()

        if save:
            filepath = FIGURES_DIR / f"confusion_matrix_{model_name.lower().replace(' ', '_')}.png"
            plt.savefig(filepath, dpi=300, bbox_inches="tight")
            logger.info(f"Saved confusion matrix plot to {filepath}")

        return fig

    def plot_roc_curve(
        self,
        model: Any,
        X: np.ndarray,
        y_true: np.ndarray,
        model_name: str = "Model",
        save: bool = True,
        figsize: Tuple[int, int] = (8, 8)
    ) -> plt.Figure:
        """
        Plot the ROC curve.

        Args:
            model: Trained classifier
            X: Features
            y_true: True labels
            model_name: Name for legend
            save: Whether to save figure
            figsize: Figure size

        Returns:
            Matplotlib figure
        """
        y_prob = model.predict_proba(X)[:, 1]
        fpr, tpr, _ = roc_curve(y_true, y_prob)
        auc = roc_auc_score(y_true, y_prob)

        fig, ax = plt.subplots(figsize=figsize)
        ax.plot(fpr, tpr, label=f"{model_name} (AUC={auc:.3f})")
        ax.plot([0, 1], [0, 1], "k--", label="Random (AUC=0.500)")
        ax.set_xlabel("False Positive Rate")
        ax.set_ylabel("True Positive Rate")
        ax.set_title("ROC Curve")
        ax.legend(loc="lower right")
        ax.grid(True, alpha=0.3)

        plt.tight_layout()

        if save:
            filepath = FIGURES_DIR / f"roc_curve_{model_name.lower().replace(' ', '_')}.png"
            plt.savefig(filepath, dpi=300, bbox_inches="tight")
            logger.info(f"Saved ROC curve plot to {filepath}")

        return fig

    def get_evaluation_summary(self) -> Dict:
        """
        Get summary of all evaluations.

        Returns:
            Dictionary with evaluation summary
        """
        return {name: results["metrics"] for name, results in self.evaluation_results.items()}
