"""
Tests for LIME explanations.
"""

import matplotlib.pyplot as plt
import pytest
from sklearn.linear_model import LogisticRegression

from churn_keras.models import ModelExplainer


@pytest.fixture
def explained(test_config, baked_data):
    _, X_train, y_train, X_test, _ = baked_data
    model = LogisticRegression(max_iter=1000).fit(X_train, y_train)

    explainer = ModelExplainer(test_config)
    explainer.setup_lime_explainer(X_train)
    explanations = explainer.explain(model, X_test.head(2), n_features=4, n_labels=1)
    return explainer, explanations, X_test.head(2)


def test_explain_returns_tidy_table(explained):
    _, explanations, cases = explained

    assert list(explanations.columns) == ModelExplainer.EXPLANATION_COLUMNS
    # One label per case, four features each
    assert len(explanations) == 2 * 4
    assert explanations["case"].unique().tolist() == [str(i) for i in cases.index]
    assert set(explanations["label"]) <= {"No", "Yes"}
    assert explanations["label_prob"].between(0.5, 1).all()


def test_explain_numpy_rows_are_numbered(test_config, baked_data):
    _, X_train, y_train, X_test, _ = baked_data
    model = LogisticRegression(max_iter=1000).fit(X_train, y_train)

    explainer = ModelExplainer(test_config)
    explainer.setup_lime_explainer(X_train.to_numpy(), feature_names=list(X_train.columns))
    explanations = explainer.explain(model, X_test.head(3).to_numpy(), n_features=2)

    assert explanations["case"].unique().tolist() == ["1", "2", "3"]


def test_explain_requires_setup(test_config, baked_data):
    X_test = baked_data[3]

    with pytest.raises(ValueError):
        ModelExplainer(test_config).explain(LogisticRegression(), X_test)


def test_setup_requires_feature_names_for_arrays(test_config, baked_data):
    X_train = baked_data[1]

    with pytest.raises(ValueError):
        ModelExplainer(test_config).setup_lime_explainer(X_train.to_numpy())


def test_explainability_summary(explained):
    explainer, _, _ = explained

    summary = explainer.get_explainability_summary()

    assert summary["lime_explainer_setup"]
    assert summary["cases_explained"] == 2
    assert 0 < len(summary["top_features"]) <= 5


def test_plots(explained):
    explainer, explanations, _ = explained

    features_fig = explainer.plot_features(explanations, save=False)
    heatmap_fig = explainer.plot_explanations(save=False)

    assert features_fig.axes[0].get_title().startswith("Case:")
    assert heatmap_fig.axes[0].get_title() == "LIME Explanations by Case"
    plt.close("all")


def test_plots_require_explanations(test_config):
    with pytest.raises(ValueError):
        ModelExplainer(test_config).plot_features(save=False)
