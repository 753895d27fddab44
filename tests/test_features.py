"""
Tests for the correlation analysis.
"""

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest

from churn_keras.features import CorrelationAnalyzer


def test_correlate_with_target_sorted_by_strength(test_config, baked_data):
    _, X_train, y_train, _, _ = baked_data

    correlations = CorrelationAnalyzer(test_config).correlate_with_target(X_train, y_train)

    assert list(correlations.columns) == ["feature", "correlation"]
    strengths = correlations["correlation"].abs().to_numpy()
    assert np.all(strengths[:-1] >= strengths[1:])
    assert correlations["correlation"].between(-1, 1).all()
    assert set(correlations["feature"]) <= set(X_train.columns)


def test_correlate_with_target_skips_constant_columns(test_config):
    X = pd.DataFrame({
        "signal": [0.0, 1.0, 2.0, 3.0],
        "constant": [1.0, 1.0, 1.0, 1.0],
    })
    y = np.array([0, 0, 1, 1])

    correlations = CorrelationAnalyzer(test_config).correlate_with_target(X, y)

    assert correlations["feature"].tolist() == ["signal"]
    assert correlations["correlation"].iloc[0] > 0.8


def test_log_transform_gain(test_config, cleaned_data):
    result = CorrelationAnalyzer(test_config).log_transform_gain(cleaned_data)

    assert set(result) == {"raw", "log", "gain"}
    assert result["gain"] == pytest.approx(abs(result["log"]) - abs(result["raw"]))


def test_log_transform_gain_with_explicit_target(test_config, cleaned_data):
    analyzer = CorrelationAnalyzer(test_config)
    y = (cleaned_data["Churn"] == "Yes").astype(int).to_numpy()

    assert analyzer.log_transform_gain(cleaned_data, y=y) == analyzer.log_transform_gain(cleaned_data)


def test_plot_correlations_requires_data(test_config):
    with pytest.raises(ValueError):
        CorrelationAnalyzer(test_config).plot_correlations(save=False)


def test_plot_correlations(test_config, baked_data):
    _, X_train, y_train, _, _ = baked_data
    analyzer = CorrelationAnalyzer(test_config)
    analyzer.correlate_with_target(X_train, y_train)

    fig = analyzer.plot_correlations(save=False)

    assert fig.axes[0].get_title() == "Churn Correlation Analysis"
    plt.close(fig)
