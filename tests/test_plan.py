"""
Tests for the cached target plan.
"""

from collections import Counter

import numpy as np
import pandas as pd
import pytest

from churn_keras.pipeline import Plan, Target

CALLS = Counter()


def make_numbers(n):
    CALLS["numbers"] += 1
    return list(range(n))


def double(numbers):
    CALLS["doubled"] += 1
    return [2 * x for x in numbers]


def total(doubled, offset=0):
    CALLS["total"] += 1
    return sum(doubled) + offset


def explode(numbers):
    raise RuntimeError("boom")


def read_text(path):
    CALLS["raw"] += 1
    with open(path) as f:
        return f.read()


def shout(raw):
    CALLS["up"] += 1
    return raw.upper()


def write_then_read(path):
    with open(path, "w") as f:
        f.write("fetched")
    return read_text(path)


def make_network():
    from tensorflow import keras

    model = keras.Sequential([keras.Input(shape=(2,)), keras.layers.Dense(1)])
    model.compile(optimizer="adam", loss="mse")
    return model


@pytest.fixture(autouse=True)
def reset_calls():
    CALLS.clear()


def build(cache_dir, n=3, offset=0):
    return Plan([
        Target("numbers", make_numbers, params={"n": n}),
        Target("doubled", double, ["numbers"]),
        Target("total", total, ["doubled"], params={"offset": offset}),
    ], cache_dir=cache_dir)


def test_make_builds_everything_once(tmp_path):
    plan = build(tmp_path)

    first = plan.make()
    second = plan.make()

    assert first["built"] == ["numbers", "doubled", "total"]
    assert second["built"] == []
    assert second["skipped"] == ["numbers", "doubled", "total"]
    assert CALLS == {"numbers": 1, "doubled": 1, "total": 1}
    assert plan.readd("total") == 6


def test_cache_survives_new_plan_instance(tmp_path):
    build(tmp_path).make()

    report = build(tmp_path).make()

    assert report["built"] == []
    assert CALLS["numbers"] == 1


def test_param_change_invalidates_downstream_only(tmp_path):
    build(tmp_path).make()

    plan = build(tmp_path, offset=10)
    assert plan.outdated() == ["total"]

    report = plan.make()
    assert report["built"] == ["total"]
    assert plan.readd("total") == 16
    assert CALLS["numbers"] == 1


def test_upstream_change_propagates(tmp_path):
    build(tmp_path).make()

    plan = build(tmp_path, n=4)

    assert plan.outdated() == ["numbers", "doubled", "total"]
    plan.make()
    assert plan.readd("total") == 12


def test_make_restricted_to_targets(tmp_path):
    plan = build(tmp_path)

    report = plan.make(["doubled"])

    assert report["built"] == ["numbers", "doubled"]
    assert "total" in plan.outdated()
    assert CALLS["total"] == 0


def test_make_loads_cached_dependencies(tmp_path):
    plan = build(tmp_path)
    plan.make(["doubled"])

    report = build(tmp_path).make()

    assert report["built"] == ["total"]
    assert report["skipped"] == ["numbers", "doubled"]
    assert CALLS["doubled"] == 1


def test_failed_target_is_not_cached(tmp_path):
    plan = Plan([
        Target("numbers", make_numbers, params={"n": 2}),
        Target("broken", explode, ["numbers"]),
    ], cache_dir=tmp_path)

    with pytest.raises(RuntimeError, match="boom"):
        plan.make()

    assert plan.is_cached("numbers")
    assert not plan.is_cached("broken")
    assert plan.outdated() == ["broken"]


def test_graph_and_neighbours(tmp_path):
    plan = build(tmp_path)

    assert plan.graph() == [("numbers", "doubled"), ("doubled", "total")]
    assert plan.upstream(["total"]) == ["numbers", "doubled", "total"]
    assert plan.downstream("numbers") == ["doubled", "total"]
    assert len(plan) == 3
    assert "doubled" in plan


def test_fingerprints_are_stable(tmp_path):
    assert build(tmp_path).fingerprints() == build(tmp_path).fingerprints()
    assert build(tmp_path).fingerprints()["numbers"] != build(tmp_path, n=5).fingerprints()["numbers"]


def test_duplicate_target_names(tmp_path):
    with pytest.raises(ValueError, match="Duplicate"):
        Plan([Target("a", make_numbers), Target("a", make_numbers)], cache_dir=tmp_path)


def test_unknown_dependency(tmp_path):
    with pytest.raises(ValueError, match="unknown"):
        Plan([Target("doubled", double, ["numbers"])], cache_dir=tmp_path)


def test_dependency_cycle(tmp_path):
    with pytest.raises(ValueError, match="cycle"):
        Plan([
            Target("numbers", double, ["doubled"]),
            Target("doubled", double, ["numbers"]),
        ], cache_dir=tmp_path)


def test_target_validation():
    with pytest.raises(ValueError):
        Target("x", make_numbers, format="pickle")
    with pytest.raises(ValueError):
        Target("doubled", double, ["numbers"], params={"numbers": [1]})


def test_readd_errors(tmp_path):
    plan = build(tmp_path)

    with pytest.raises(KeyError):
        plan.readd("missing")
    with pytest.raises(FileNotFoundError):
        plan.readd("total")


def test_clean(tmp_path):
    plan = build(tmp_path)
    plan.make()

    plan.clean("total")
    assert plan.outdated() == ["total"]

    plan.clean()
    assert plan.outdated() == ["numbers", "doubled", "total"]
    assert not tmp_path.exists()


def test_summary(tmp_path):
    plan = build(tmp_path)
    plan.make(["numbers"])

    summary = plan.summary()

    assert isinstance(summary, pd.DataFrame)
    assert summary["target"].tolist() == ["numbers", "doubled", "total"]
    assert summary["status"].tolist() == ["up to date", "outdated", "outdated"]
    assert summary.loc[0, "built_at"] is not None
    assert summary.loc[1, "dependencies"] == "numbers"


def test_keras_format(tmp_path):
    plan = Plan([Target("network", make_network, format="keras")], cache_dir=tmp_path)
    plan.make()

    assert (tmp_path / "network" / "value.keras").exists()
    model = plan.readd("network")
    assert model.predict(np.zeros((1, 2), dtype="float32"), verbose=0).shape == (1, 1)


def build_file_plan(cache_dir, path, file_inputs=True):
    return Plan([
        Target("raw", read_text, params={"path": str(path)}, file_inputs=[path] if file_inputs else ()),
        Target("up", shout, ["raw"]),
    ], cache_dir=cache_dir)


def test_rebuilt_upstream_with_new_value_rebuilds_downstream(tmp_path):
    source = tmp_path / "input.txt"
    source.write_text("a")
    plan = build_file_plan(tmp_path / "cache", source, file_inputs=False)
    plan.make()

    plan.clean("raw")
    source.write_text("b")

    assert plan.outdated() == ["raw", "up"]
    report = plan.make()
    assert report["built"] == ["raw", "up"]
    assert plan.readd("up") == "B"


def test_rebuilt_upstream_with_same_value_keeps_downstream(tmp_path):
    source = tmp_path / "input.txt"
    source.write_text("a")
    plan = build_file_plan(tmp_path / "cache", source, file_inputs=False)
    plan.make()

    plan.clean("raw")
    report = plan.make()

    assert report["built"] == ["raw"]
    assert report["skipped"] == ["up"]
    assert CALLS["up"] == 1
    assert plan.outdated() == []


def test_edited_input_file_marks_target_outdated(tmp_path):
    source = tmp_path / "input.txt"
    source.write_text("a")
    plan = build_file_plan(tmp_path / "cache", source)
    plan.make()
    assert plan.outdated() == []

    source.write_text("b")

    assert plan.outdated() == ["raw", "up"]
    plan.make()
    assert plan.readd("up") == "B"
    assert plan.outdated() == []


def test_input_file_created_by_command(tmp_path):
    source = tmp_path / "downloaded.txt"
    plan = Plan([
        Target("raw", write_then_read, params={"path": str(source)}, file_inputs=[source]),
    ], cache_dir=tmp_path / "cache")

    plan.make()

    assert plan.outdated() == []