"""
Correlation Analysis Module
===========================

Exploratory checks on the baked feature matrix: which predictors move with
churn, and whether the log transform of charges strengthens that relation.
"""

from typing import Dict, Optional, Tuple

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from loguru import logger

from config import get_config, FIGURES_DIR


class CorrelationAnalyzer:
    """Correlate preprocessed features with the churn target."""

    def __init__(self, config: Optional[dict] = None):
        self.config = config or get_config()
        data_config = self.config.get("data", {})
        self.target_column = data_config.get("target_column", "Churn")
        self.positive_label = data_config.get("positive_label", "Yes")
        self.correlations = None

    def correlate_with_target(
        self,
        X: pd.DataFrame,
        y: np.ndarray
    ) -> pd.DataFrame:
        """
        Pearson correlation of every feature with the target.

        Args:
            X: Baked feature matrix
            y: Encoded 0/1 target

        Returns:
            DataFrame with ``feature`` and ``correlation``, strongest first
        """
        y = pd.Series(np.asarray(y), index=X.index, name=self.target_column)
        # Constant columns have no defined correlation
        corr = X.corrwith(y).dropna()

        df = pd.DataFrame({"feature": corr.index, "correlation": corr.values})
        df = df.reindex(df["correlation"].abs().sort_values(ascending=False).index)
        df = df.reset_index(drop=True)

        self.correlations = df
        logger.info(
            f"Top correlated features: "
            f"{', '.join(f'{f} ({c:+.3f})' for f, c in df.head(3).itertuples(index=False))}"
        )
        return df

    def log_transform_gain(
        self,
        df: pd.DataFrame,
        column: str = "TotalCharges",
        y: Optional[np.ndarray] = None
    ) -> Dict[str, float]:
        """
        Compare the target correlation of a column before and after log.

        Args:
            df: Cleaned data
            column: Numeric column to inspect
            y: Encoded target; taken from ``df`` when omitted

        Returns:
            Dictionary with ``raw``, ``log`` and ``gain`` (absolute difference)
        """
        if y is None:
            y = (df[self.target_column] == self.positive_label).astype(int)
        y = pd.Series(np.asarray(y), index=df.index)

        values = pd.to_numeric(df[column], errors="coerce")
        raw = float(values.corr(y))
        logged = float(np.log(values).corr(y))

        result = {"raw": raw, "log": logged, "gain": abs(logged) - abs(raw)}
        logger.info(f"{column} correlation: raw={raw:.4f}, log={logged:.4f}")
        return result

    def plot_correlations(
        self,
        correlations: Optional[pd.DataFrame] = None,
        save: bool = True,
        figsize: Tuple[int, int] = (10, 10)
    ) -> plt.Figure:
        """
        Plot feature correlations with churn.

        Args:
            correlations: Output of :meth:`correlate_with_target`
            save: Whether to save figure
            figsize: Figure size

        Returns:
            Matplotlib figure
        """
        correlations = correlations if correlations is not None else self.correlations
        if correlations is None:
            raise ValueError("No correlations computed. Call correlate_with_target first.")

        data = correlations.sort_values("correlation")
        colors = np.where(data["correlation"] > 0, "#2c7bb6", "#d7191c")

        fig, ax = plt.subplots(figsize=figsize)
        sns.barplot(
            x=data["correlation"],
            y=data["feature"],
            palette=list(colors),
            hue=data["feature"],
            legend=False,
            ax=ax
        )
        ax.axvline(0, color="k", linewidth=0.8)
        ax.set_xlabel("Correlation with churn")
        ax.set_ylabel("")
        ax.set_title("Churn Correlation Analysis")
        ax.grid(True, alpha=0.3, axis="x")

        plt.tight_layout()

        if save:
            filepath = FIGURES_DIR / "churn_correlations.png"
            plt.savefig(filepath, dpi=300, bbox_inches="tight")
            logger.info(f"Saved correlation plot to {filepath}")

        return fig
