"""
Model Trainer Module
====================

Builds, trains and persists the feed-forward churn network, with optional
MLflow experiment tracking.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import matplotlib.pyplot as plt
import mlflow
import numpy as np
import pandas as pd
from loguru import logger
from tensorflow import keras

from config import get_config, MODELS_DIR, EXPORT_DIR, MLFLOW_DIR, FIGURES_DIR


class ModelTrainer:
    """Train and manage the Keras churn network."""

    def __init__(self, config: Optional[dict] = None):
        """
        Initialize ModelTrainer.

        Args:
            config: Configuration dictionary
        """
        self.config = config or get_config()
        self.model_config = self.config.get("model", {})
        self.mlflow_config = self.config.get("mlflow", {})

        self.model = None
        self.history = None

        if self.mlflow_config.get("enabled", False):
            self._setup_mlflow()

    def _setup_mlflow(self):
        """Setup MLflow tracking."""
        tracking_uri = self.mlflow_config.get("tracking_uri", "mlflow_runs")
        mlflow_path = MLFLOW_DIR / tracking_uri

        mlflow.set_tracking_uri(f"file://{mlflow_path}")
        experiment_name = self.mlflow_config.get("experiment_name", "telco_churn_keras")

        experiment = mlflow.get_experiment_by_name(experiment_name)
        if experiment is None:
            mlflow.create_experiment(experiment_name)
        mlflow.set_experiment(experiment_name)

        logger.info(f"MLflow tracking URI: {mlflow_path}")
        logger.info(f"MLflow experiment: {experiment_name}")

    def get_params(self) -> Dict[str, Any]:
        """Network and fitting parameters, with defaults filled in."""
        return {
            "hidden_units": list(self.model_config.get("hidden_units", [16, 16])),
            "dropout": self.model_config.get("dropout", 0.1),
            "activation": self.model_config.get("activation", "relu"),
            "kernel_initializer": self.model_config.get("kernel_initializer", "uniform"),
            "optimizer": self.model_config.get("optimizer", "adam"),
            "loss": self.model_config.get("loss", "binary_crossentropy"),
            "metrics": list(self.model_config.get("metrics", ["accuracy"])),
            "batch_size": self.model_config.get("batch_size", 50),
            "epochs": self.model_config.get("epochs", 35),
            "validation_split": self.model_config.get("validation_split", 0.30),
        }

    def build_model(self, input_dim: int) -> keras.Sequential:
        """
        Build and compile the sequential dense network.

        Args:
            input_dim: Number of baked input features

        Returns:
            Compiled Keras model
        """
        params = self.get_params()

        layers: List[keras.layers.Layer] = [keras.Input(shape=(input_dim,))]
        for units in params["hidden_units"]:
            layers.append(keras.layers.Dense(
                units=units,
                activation=params["activation"],
                kernel_initializer=params["kernel_initializer"]
            ))
            if params["dropout"]:
                layers.append(keras.layers.Dropout(rate=params["dropout"]))

        layers.append(keras.layers.Dense(
            units=1,
            activation="sigmoid",
            kernel_initializer=params["kernel_initializer"]
        ))

        model = keras.Sequential(layers, name="churn_mlp")
        model.compile(
            optimizer=params["optimizer"],
            loss=params["loss"],
            metrics=params["metrics"]
        )

        logger.info(f"Built network with {model.count_params()} parameters")
        return model

    def train_model(
        self,
        X_train: Union[np.ndarray, pd.DataFrame],
        y_train: np.ndarray,
        log_to_mlflow: Optional[bool] = None
    ) -> keras.Sequential:
        """
        Train the network.

        Args:
            X_train: Baked training features
            y_train: Encoded 0/1 labels
            log_to_mlflow: Whether to log to MLflow (defaults to config)

        Returns:
            Trained model
        """
        if log_to_mlflow is None:
            log_to_mlflow = self.mlflow_config.get("enabled", False)

        X = np.asarray(X_train, dtype="float32")
        y = np.asarray(y_train, dtype="float32")
        if len(X) != len(y):
            raise ValueError(f"Feature rows ({len(X)}) and labels ({len(y)}) differ")

        params = self.get_params()
        model = self.build_model(X.shape[1])

        logger.info(
            f"Training for {params['epochs']} epochs "
            f"(batch_size={params['batch_size']}, validation_split={params['validation_split']})"
        )

        fit_kwargs = dict(
            batch_size=params["batch_size"],
            epochs=params["epochs"],
            validation_split=params["validation_split"],
            verbose=self.model_config.get("verbose", 0)
        )

        if log_to_mlflow:
            run_name = f"{self.model_config.get('name', 'keras_mlp')}_{datetime.now().strftime('%Y%m%d_%H%M%S')}"
            with mlflow.start_run(run_name=run_name):
                mlflow.log_params({k: str(v) for k, v in params.items()})
                mlflow.set_tag("model_type", "keras_sequential")

                self.history = model.fit(X, y, **fit_kwargs)

                for name, values in self.history.history.items():
                    for epoch, value in enumerate(values):
                        mlflow.log_metric(name, float(value), step=epoch)
        else:
            self.history = model.fit(X, y, **fit_kwargs)

        final = {k: v[-1] for k, v in self.history.history.items()}
        logger.info(
            "Final epoch - " + ", ".join(f"{k}: {v:.4f}" for k, v in final.items())
        )

        self.model = model
        return model

    def get_history_frame(self, history: Optional[Any] = None) -> pd.DataFrame:
        """Training history as a DataFrame indexed by epoch."""
        history = history or self.history
        if history is None:
            raise ValueError("No training history. Call train_model first.")

        df = pd.DataFrame(history.history)
        df.index = pd.RangeIndex(1, len(df) + 1, name="epoch")
        return df

    def plot_history(
        self,
        history: Optional[Any] = None,
        save: bool = True,
        figsize: Tuple[int, int] = (12, 5)
    ) -> plt.Figure:
        """
        Plot loss and metric curves over epochs.

        Args:
            history: Keras History (defaults to the last training run)
            save: Whether to save figure
            figsize: Figure size

        Returns:
            Matplotlib figure
        """
        df = self.get_history_frame(history)
        metrics = [c for c in df.columns if not c.startswith("val_")]

        fig, axes = plt.subplots(1, len(metrics), figsize=figsize, squeeze=False)

        for ax, metric in zip(axes[0], metrics):
            ax.plot(df.index, df[metric], marker="o", markersize=3, label="training")
            if f"val_{metric}" in df.columns:
                ax.plot(df.index, df[f"val_{metric}"], marker="o", markersize=3, label="validation")
            ax.set_xlabel("Epoch")
            ax.set_ylabel(metric)
            ax.set_title(metric.replace("_", " ").title())
            ax.legend()
            ax.grid(True, alpha=0.3)

        plt.tight_layout()

        if save:
            filepath = FIGURES_DIR / "training_history.png"
            plt.savefig(filepath, dpi=300, bbox_inches="tight")
            logger.info(f"Saved training history plot to {filepath}")

        return fig

    def save_model(
        self,
        model: keras.Model,
        model_name: str = "churn_mlp",
        filepath: Optional[Path] = None
    ) -> Path:
        """
        Save a trained model to a ``.keras`` file.

        Args:
            model: Model to save
            model_name: Name for the model file
            filepath: Optional custom filepath

        Returns:
            Path to saved model
        """
        filepath = Path(filepath or MODELS_DIR / f"{model_name}.keras")
        filepath.parent.mkdir(parents=True, exist_ok=True)
        model.save(filepath)
        logger.info(f"Model saved to {filepath}")

        if self.mlflow_config.get("enabled", False) and mlflow.active_run() is not None:
            mlflow.log_artifact(str(filepath))

        return filepath

    def load_model(self, model_name: str = "churn_mlp", filepath: Optional[Path] = None) -> keras.Model:
        """
        Load a model from disk.

        Args:
            model_name: Name of the model
            filepath: Optional custom filepath

        Returns:
            Loaded model
        """
        filepath = Path(filepath or MODELS_DIR / f"{model_name}.keras")

        if not filepath.exists():
            raise FileNotFoundError(f"Model not found: {filepath}")

        self.model = keras.models.load_model(filepath)
        logger.info(f"Model loaded from {filepath}")
        return self.model

    def export_model(
        self,
        model: keras.Model,
        export_dir: Optional[Path] = None
    ) -> Path:
        """
        Export the model as a TensorFlow SavedModel for serving.

        Args:
            model: Trained model
            export_dir: Target directory (defaults to ``models/export/<name>``)

        Returns:
            Path to the export directory
        """
        export_dir = Path(export_dir or EXPORT_DIR / self.model_config.get("name", "keras_mlp"))
        export_dir.parent.mkdir(parents=True, exist_ok=True)
        model.export(str(export_dir))
        logger.info(f"Model exported to {export_dir}")
        return export_dir
