"""
Churn Prediction Pipeline

Runs ingest -> clean -> split -> preprocess -> train -> evaluate -> explain
either as one linear pass or as a cached plan of targets.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import matplotlib.pyplot as plt
from loguru import logger

from config import ROOT_DIR, get_config
from churn_keras.data import DataLoader, DataPreprocessor
from churn_keras.features import CorrelationAnalyzer
from churn_keras.models import ChurnClassifier, ModelEvaluator, ModelExplainer, ModelTrainer
from churn_keras.pipeline import stages
from churn_keras.pipeline.plan import Plan, Target
from churn_keras.utils import format_metrics, set_seeds


def _sections(config: dict, *names: str) -> dict:
    return {name: config.get(name, {}) for name in names}


class ChurnPipeline:
    """Orchestrates the churn prediction workflow."""

    def __init__(self, config: Optional[dict] = None):
        self.config = config or get_config()
        self.data_loader = DataLoader(self.config)
        self.preprocessor = DataPreprocessor(self.config)
        self.analyzer = CorrelationAnalyzer(self.config)
        self.trainer = ModelTrainer(self.config)
        self.evaluator = ModelEvaluator(self.config)
        self.explainer = ModelExplainer(self.config)

    def run_pipeline(self, export: bool = False, plots: bool = True) -> Dict[str, Any]:
        """
        Execute every stage once, in order.

        Args:
            export: Also export a SavedModel for serving
            plots: Render and save figures

        Returns:
            Dictionary of metrics, tables and artifact paths
        """
        logger.info("=== TELCO CHURN PIPELINE ===")
        set_seeds(self.config.get("data", {}).get("random_state", 100))

        logger.info("Step 1: Loading data...")
        raw = self.data_loader.load_raw_data()
        validation = self.data_loader.validate_data(raw)
        logger.info(f"Raw data: {validation['total_rows']} rows, {validation['duplicates']} duplicates")

        logger.info("Step 2: Cleaning data...")
        cleaned = self.preprocessor.clean_data(raw)
        cleaned_path = self.data_loader.save_processed_data(cleaned, "cleaned_data.parquet")

        logger.info("Step 3: Splitting data...")
        train_df, test_df = self.data_loader.get_train_test_split(cleaned)

        logger.info("Step 4: Preparing and baking the recipe...")
        X_train_raw, y_train = self.preprocessor.split_features_target(train_df)
        X_test_raw, y_test = self.preprocessor.split_features_target(test_df)
        X_train = self.preprocessor.fit_transform(X_train_raw)
        X_test = self.preprocessor.transform(X_test_raw)
        recipe_path = self.preprocessor.save()

        logger.info("Step 5: Correlation analysis...")
        correlations = self.analyzer.correlate_with_target(X_train, y_train)
        log_gain = self.analyzer.log_transform_gain(train_df, y=y_train)

        logger.info("Step 6: Training network...")
        model = self.trainer.train_model(X_train, y_train)
        model_path = self.trainer.save_model(model)
        export_path = self.trainer.export_model(model) if export else None

        logger.info("Step 7: Evaluating on test set...")
        classifier = ChurnClassifier(model, threshold=self.evaluator.threshold)
        metrics = self.evaluator.evaluate_model(classifier, X_test, y_test, model_name="keras_mlp")
        confusion = self.evaluator.get_confusion_matrix(classifier, X_test, y_test)
        logger.info(f"\nConfusion matrix:\n{confusion}")

        logger.info("Step 8: Explaining predictions...")
        n_cases = self.config.get("explain", {}).get("n_cases", 10)
        self.explainer.setup_lime_explainer(X_train)
        explanations = self.explainer.explain(classifier, X_test.head(n_cases))

        if plots:
            self.analyzer.plot_correlations(correlations)
            self.trainer.plot_history()
            self.evaluator.plot_confusion_matrix(classifier, X_test, y_test, "keras_mlp")
            self.evaluator.plot_roc_curve(classifier, X_test, y_test, "keras_mlp")
            self.explainer.plot_features(explanations)
            self.explainer.plot_explanations(explanations)
            plt.close("all")

        logger.info(f"Test metrics: {format_metrics(metrics)}")
        logger.success("=== PIPELINE COMPLETED ===")

        return {
            "metrics": metrics,
            "confusion_matrix": confusion,
            "correlations": correlations,
            "log_transform_gain": log_gain,
            "explanations": explanations,
            "history": self.trainer.get_history_frame(),
            "validation": validation,
            "artifacts": {
                "cleaned_data": cleaned_path,
                "preprocessor": recipe_path,
                "model": model_path,
                "export": export_path,
            },
        }

    def build_plan(self, cache_dir: Optional[Path] = None) -> Plan:
        """The same workflow expressed as cached targets."""
        config = self.config
        cache_dir = cache_dir or ROOT_DIR / config.get("pipeline", {}).get("cache_dir", ".churn_cache")

        targets = [
            Target("raw_data", stages.load_raw_data,
                   params={"config": _sections(config, "data")},
                   file_inputs=[self.data_loader.raw_file_path()]),
            Target("cleaned_data", stages.clean_data, ["raw_data"],
                   params={"config": _sections(config, "data", "features")}),
            Target("data_split", stages.split_data, ["cleaned_data"],
                   params={"config": _sections(config, "data")}),
            Target("recipe", stages.prep_recipe, ["data_split"],
                   params={"config": _sections(config, "data", "features")}),
            Target("train_baked", stages.bake_data, ["recipe", "data_split"],
                   params={"subset": "train"}),
            Target("test_baked", stages.bake_data, ["recipe", "data_split"],
                   params={"subset": "test"}),
            Target("correlations", stages.correlate_features, ["train_baked"],
                   params={"config": _sections(config, "data")}),
            Target("model", stages.fit_model, ["train_baked"],
                   params={"config": _sections(config, "data", "model", "mlflow")},
                   format="keras"),
            Target("evaluation", stages.evaluate_model, ["model", "test_baked"],
                   params={"config": _sections(config, "evaluation", "explain")}),
            Target("explanations", stages.explain_predictions, ["model", "train_baked", "test_baked"],
                   params={"config": _sections(config, "data", "explain")}),
        ]

        return Plan(targets, cache_dir=cache_dir)

    def run_cached(self, plan: Optional[Plan] = None) -> Dict[str, Any]:
        """
        Build outdated targets of the plan and collect the results.

        Returns:
            Build report plus the cached evaluation
        """
        if plan is None:
            plan = self.build_plan()

        outdated = plan.outdated()
        logger.info(f"Outdated targets: {outdated or 'none'}")

        report = plan.make()
        evaluation = plan.readd("evaluation")
        logger.info(f"Test metrics: {format_metrics(evaluation['metrics'])}")

        return {"report": report, "evaluation": evaluation}
