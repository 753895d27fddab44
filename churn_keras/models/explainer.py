"""
Model Explainability Module
===========================

LIME explanations of individual churn predictions.
"""

import math
from typing import Any, Dict, List, Optional, Union

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from lime.lime_tabular import LimeTabularExplainer
from loguru import logger

from config import get_config, FIGURES_DIR


class ModelExplainer:
    """Explain model predictions using LIME."""

    EXPLANATION_COLUMNS = ["case", "label", "label_prob", "feature", "feature_weight", "model_r2"]

    def __init__(self, config: Optional[dict] = None):
        """
        Initialize ModelExplainer.

        Args:
            config: Configuration dictionary
        """
        self.config = config or get_config()
        self.explain_config = self.config.get("explain", {})
        self.lime_explainer = None
        self.feature_names = []
        self.class_names = list(self.explain_config.get("class_names", ["No", "Yes"]))
        self.explanations = None

    def setup_lime_explainer(
        self,
        X_train: Union[np.ndarray, pd.DataFrame],
        feature_names: Optional[List[str]] = None,
        class_names: Optional[List[str]] = None,
        kernel_width: Optional[float] = None
    ) -> LimeTabularExplainer:
        """
        Setup LIME explainer on the baked training data.

        Args:
            X_train: Training data
            feature_names: List of feature names
            class_names: Names for classes
            kernel_width: Width of the exponential proximity kernel

        Returns:
            LIME TabularExplainer
        """
        logger.info("Setting up LIME explainer...")

        if feature_names is None:
            if not isinstance(X_train, pd.DataFrame):
                raise ValueError("feature_names required when X_train is not a DataFrame")
            feature_names = list(X_train.columns)

        self.feature_names = list(feature_names)
        self.class_names = list(class_names or self.class_names)
        kernel_width = kernel_width or self.explain_config.get("kernel_width", 0.5)

        self.lime_explainer = LimeTabularExplainer(
            np.asarray(X_train, dtype=float),
            feature_names=self.feature_names,
            class_names=self.class_names,
            kernel_width=kernel_width,
            mode="classification",
            random_state=self.config.get("data", {}).get("random_state")
        )

        return self.lime_explainer

    def explain(
        self,
        model: Any,
        X: Union[np.ndarray, pd.DataFrame],
        n_features: Optional[int] = None,
        n_labels: Optional[int] = None
    ) -> pd.DataFrame:
        """
        Explain each row of ``X``.

        Args:
            model: Classifier exposing ``predict_proba``
            X: Baked rows to explain
            n_features: Features kept per explanation
            n_labels: Labels explained per case (most probable first)

        Returns:
            Tidy DataFrame, one row per case, label and feature
        """
        if self.lime_explainer is None:
            raise ValueError("LIME explainer not setup. Call setup_lime_explainer first.")

        n_features = n_features or self.explain_config.get("n_features", 4)
        n_labels = n_labels or self.explain_config.get("n_labels", 1)

        if isinstance(X, pd.DataFrame):
            cases = [str(idx) for idx in X.index]
            rows = X.to_numpy(dtype=float)
        else:
            rows = np.atleast_2d(np.asarray(X, dtype=float))
            cases = [str(i + 1) for i in range(len(rows))]

        logger.info(f"Explaining {len(rows)} cases with {n_features} features each...")

        records = []
        for case, row in zip(cases, rows):
            explanation = self.lime_explainer.explain_instance(
                row,
                model.predict_proba,
                num_features=n_features,
                top_labels=n_labels
            )
            for label in explanation.available_labels():
                score = explanation.score[label] if isinstance(explanation.score, dict) else explanation.score
                for feature, weight in explanation.as_list(label=label):
                    records.append({
                        "case": case,
                        "label": self.class_names[label],
                        "label_prob": float(explanation.predict_proba[label]),
                        "feature": feature,
                        "feature_weight": float(weight),
                        "model_r2": float(score),
                    })

        self.explanations = pd.DataFrame(records, columns=self.EXPLANATION_COLUMNS)
        return self.explanations

    def _get_explanations(self, explanations: Optional[pd.DataFrame]) -> pd.DataFrame:
        explanations = explanations if explanations is not None else self.explanations
        if explanations is None or explanations.empty:
            raise ValueError("No explanations available. Call explain first.")
        return explanations

    def plot_features(
        self,
        explanations: Optional[pd.DataFrame] = None,
        ncol: int = 2,
        save: bool = True
    ) -> plt.Figure:
        """
        Plot feature weights for each explained case.

        Args:
            explanations: Output of :meth:`explain`
            ncol: Number of subplot columns
            save: Whether to save figure

        Returns:
            Matplotlib figure
        """
        explanations = self._get_explanations(explanations)
        groups = list(explanations.groupby(["case", "label"], sort=False))

        nrow = math.ceil(len(groups) / ncol)
        fig, axes = plt.subplots(nrow, ncol, figsize=(7 * ncol, 3 * nrow), squeeze=False)

        for ax, ((case, label), frame) in zip(axes.flat, groups):
            frame = frame.iloc[::-1]
            colors = np.where(frame["feature_weight"] >= 0, "#4575b4", "#d73027")
            ax.barh(frame["feature"], frame["feature_weight"], color=colors)
            ax.axvline(0, color="k", linewidth=0.8)
            ax.set_title(
                f"Case: {case} | Label: {label} | "
                f"Prob: {frame['label_prob'].iloc[0]:.2f} | R2: {frame['model_r2'].iloc[0]:.2f}",
                fontsize=9
            )
            ax.set_xlabel("Weight")

        for ax in list(axes.flat)[len(groups):]:
            ax.set_visible(False)

        plt.tight_layout()

        if save:
            filepath = FIGURES_DIR / "lime_features.png"
            plt.savefig(filepath, dpi=300, bbox_inches="tight")
            logger.info(f"Saved LIME feature plot to {filepath}")

        return fig

    def plot_explanations(
        self,
        explanations: Optional[pd.DataFrame] = None,
        save: bool = True
    ) -> plt.Figure:
        """
        Heatmap of feature weights across cases.

        Args:
            explanations: Output of :meth:`explain`
            save: Whether to save figure

        Returns:
            Matplotlib figure
        """
        explanations = self._get_explanations(explanations)
        weights = explanations.pivot_table(
            index="feature", columns="case", values="feature_weight", aggfunc="sum", sort=False
        )

        fig, ax = plt.subplots(figsize=(max(6, 0.8 * weights.shape[1] + 4), max(4, 0.4 * weights.shape[0] + 2)))
        sns.heatmap(weights, cmap="RdBu", center=0, annot=False, ax=ax, cbar_kws={"label": "Feature weight"})
        ax.set_title("LIME Explanations by Case")
        ax.set_xlabel("Case")
        ax.set_ylabel("Feature")

        plt.tight_layout()

        if save:
            filepath = FIGURES_DIR / "lime_explanations.png"
            plt.savefig(filepath, dpi=300, bbox_inches="tight")
            logger.info(f"Saved LIME explanation heatmap to {filepath}")

        return fig

    def get_explainability_summary(self) -> Dict:
        """
        Get summary of explainability analysis.

        Returns:
            Dictionary with summary
        """
        summary = {
            "lime_explainer_setup": self.lime_explainer is not None,
            "num_features": len(self.feature_names),
            "class_names": self.class_names,
            "cases_explained": 0,
        }

        if self.explanations is not None and not self.explanations.empty:
            summary["cases_explained"] = int(self.explanations["case"].nunique())
            summary["top_features"] = (
                self.explanations.assign(abs_weight=self.explanations["feature_weight"].abs())
                .groupby("feature")["abs_weight"].mean()
                .sort_values(ascending=False)
                .head(5)
                .to_dict()
            )

        return summary
