"""
Tests for the model evaluation module.
"""

import matplotlib.pyplot as plt
import numpy as np
import pytest
from sklearn.linear_model import LogisticRegression

from churn_keras.models import ModelEvaluator


@pytest.fixture
def fitted(baked_data):
    _, X_train, y_train, X_test, y_test = baked_data
    model = LogisticRegression(max_iter=1000).fit(X_train, y_train)
    return model, X_test, y_test


def test_get_estimates(test_config, fitted):
    model, X_test, y_test = fitted

    estimates = ModelEvaluator(test_config).get_estimates(model, X_test, y_test)

    assert list(estimates.columns) == ["truth", "estimate", "class_prob"]
    assert len(estimates) == len(y_test)
    assert estimates["truth"].tolist() == list(y_test)
    assert estimates["estimate"].tolist() == (estimates["class_prob"] >= 0.5).astype(int).tolist()


def test_get_estimates_threshold(test_config, fitted):
    model, X_test, y_test = fitted
    evaluator = ModelEvaluator(test_config)

    assert evaluator.get_estimates(model, X_test, y_test, threshold=0.0)["estimate"].eq(1).all()
    assert evaluator.get_estimates(model, X_test, y_test, threshold=1.01)["estimate"].eq(0).all()


def test_evaluate_model(test_config, fitted):
    model, X_test, y_test = fitted
    evaluator = ModelEvaluator(test_config)

    metrics = evaluator.evaluate_model(model, X_test, y_test, model_name="logreg")

    assert {"accuracy", "precision", "recall", "f1", "roc_auc", "log_loss"} == set(metrics)
    for name in ["accuracy", "precision", "recall", "f1", "roc_auc"]:
        assert 0 <= metrics[name] <= 1
    assert evaluator.get_evaluation_summary() == {"logreg": metrics}
    assert len(evaluator.get_stored_estimates("logreg")) == len(y_test)


def test_evaluate_model_single_class(test_config, fitted):
    model, X_test, _ = fitted

    metrics = ModelEvaluator(test_config).evaluate_model(model, X_test, np.zeros(len(X_test), dtype=int))

    assert "roc_auc" not in metrics
    assert "log_loss" not in metrics
    assert "accuracy" in metrics


def test_stored_estimates_require_evaluation(test_config):
    with pytest.raises(ValueError):
        ModelEvaluator(test_config).get_stored_estimates("never_run")


def test_confusion_matrix_and_report(test_config, fitted):
    model, X_test, y_test = fitted
    evaluator = ModelEvaluator(test_config)

    cm = evaluator.get_confusion_matrix(model, X_test, y_test)
    report = evaluator.get_classification_report(model, X_test, y_test)

    assert cm.shape == (2, 2)
    assert cm.sum() == len(y_test)
    assert cm[1].sum() == int(np.sum(y_test))
    assert "Yes" in report and "No" in report


def test_plots(test_config, fitted):
    model, X_test, y_test = fitted
    evaluator = ModelEvaluator(test_config)

    cm_fig = evaluator.plot_confusion_matrix(model, X_test, y_test, save=False)
    roc_fig = evaluator.plot_roc_curve(model, X_test, y_test, save=False)

    assert cm_fig.axes[0].get_title() == "Model - Confusion Matrix"
    assert roc_fig.axes[0].get_title() == "ROC Curve"
    plt.close("all")
