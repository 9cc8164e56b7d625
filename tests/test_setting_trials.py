from __future__ import annotations

from pathlib import Path
from typing import Dict, List

import pytest

from conftest import running, write_stats
from mlprocess.exceptions import ErrorKind, TaskError
from mlprocess.plan.descriptor import TaskDescriptor
from mlprocess.plan.scheduler import Plan
from mlprocess.tasks.factory import create_task


def _outputs(tmp_path: Path) -> List[str]:
    return [str(tmp_path / "out" / n) for n in ("classif.csv", "stats.txt", "best.txt")]


def _selector(tmp_path: Path, dataset, **settings) -> TaskDescriptor:
    params: Dict[str, object] = {
        "measure": "accuracy",
        "tempfile": str(tmp_path / "tmp" / "s-*"),
        "class_arg": "cls",
        "model": "tree",
    }
    params.update(settings)
    return TaskDescriptor("setsel", "setting_selector", params, [dataset["train"], dataset["eval"]],
                          _outputs(tmp_path))


def _pairs(tmp_path: Path, accuracies: List[float]) -> List[str]:
    inputs: List[str] = []
    for i, acc in enumerate(accuracies):
        inputs.append(write_stats(tmp_path / "tmp" / f"s-({i}).txt", acc))
        classif = tmp_path / "tmp" / f"s-({i}).csv"
        classif.write_text(f"classif {i}\n", encoding="utf-8")
        inputs.append(str(classif))
    return inputs


# ----------------
# SettingSelector
# ----------------
def test_selector_generates_cartesian_product(tmp_path: Path, dataset) -> None:
    plan = Plan()
    desc = running(plan, _selector(tmp_path, dataset, max_depth=[1, 2], min_samples_leaf="1 5"))
    create_task(desc).run(plan)

    variants = [
        (plan.get(f"setsel#classif{i}").params["max_depth"], plan.get(f"setsel#classif{i}").params["min_samples_leaf"])
        for i in range(4)
    ]
    assert variants == [("1", "1"), ("1", "5"), ("2", "1"), ("2", "5")]
    assert plan.get("setsel#classif0").outputs == (str(tmp_path / "tmp" / "s-(0).csv"),)
    assert plan.get("setsel#eval3").outputs == (str(tmp_path / "tmp" / "s-(3).txt"),)

    select = plan.get("setsel#select")
    assert select.kind == "setting_selector"
    assert select.params["select_from_evaluations"] == "true"
    assert select.params["max_depth"] == "1 2"
    assert len(select.inputs) == 8
    assert len(select.dependencies) == 8
    assert select.outputs == desc.outputs


def test_selector_zip_pairs_values(tmp_path: Path, dataset) -> None:
    plan = Plan()
    desc = running(plan, _selector(tmp_path, dataset, combine="zip", max_depth="1 2", min_samples_leaf="1 5"))
    create_task(desc).run(plan)
    assert plan.get("setsel#classif1").params["max_depth"] == "2"
    assert plan.get("setsel#classif1").params["min_samples_leaf"] == "5"
    assert "setsel#classif2" not in plan.live_ids()


def test_selector_zip_needs_equal_counts(tmp_path: Path, dataset) -> None:
    with pytest.raises(TaskError) as exc_info:
        create_task(_selector(tmp_path, dataset, combine="zip", max_depth="1 2 3", min_samples_leaf="1 5"))
    assert exc_info.value.kind is ErrorKind.INVALID_PARAMS


def test_selector_needs_settings_and_classifier_params(tmp_path: Path, dataset) -> None:
    with pytest.raises(TaskError) as exc_info:
        create_task(_selector(tmp_path, dataset))
    assert exc_info.value.kind is ErrorKind.INVALID_PARAMS
    with pytest.raises(TaskError) as exc_info:
        create_task(_selector(tmp_path, dataset, model=None, max_depth="1"))
    assert exc_info.value.kind is ErrorKind.INVALID_PARAMS


def test_selector_selection_mode_writes_best_settings(tmp_path: Path) -> None:
    desc = TaskDescriptor(
        "setsel#select", "setting_selector",
        {"measure": "accuracy", "select_from_evaluations": True, "max_depth": "1 2", "min_samples_leaf": "1 5"},
        _pairs(tmp_path, [0.5, 0.6, 0.9, 0.9]), _outputs(tmp_path),
    )
    create_task(desc).run(Plan())

    out_classif, out_stats, out_best = _outputs(tmp_path)
    assert Path(out_classif).read_text(encoding="utf-8") == "classif 2\n"
    assert "accuracy: 0.9" in Path(out_stats).read_text(encoding="utf-8")
    assert Path(out_best).read_text(encoding="utf-8") == "max_depth:2\nmin_samples_leaf:1\n"


def test_selection_mode_checks_pair_count(tmp_path: Path) -> None:
    desc = TaskDescriptor(
        "setsel#select", "setting_selector",
        {"measure": "accuracy", "select_from_evaluations": True, "max_depth": "1 2"},
        _pairs(tmp_path, [0.5, 0.6, 0.9]), _outputs(tmp_path),
    )
    with pytest.raises(TaskError) as exc_info:
        create_task(desc)
    assert exc_info.value.kind is ErrorKind.WRONG_NUM_INPUTS


def test_selection_mode_rejects_nan_measures(tmp_path: Path) -> None:
    desc = TaskDescriptor(
        "setsel#select", "setting_selector",
        {"measure": "accuracy", "select_from_evaluations": True, "C": "1 10"},
        _pairs(tmp_path, [float("nan"), float("nan")]), _outputs(tmp_path),
    )
    with pytest.raises(TaskError) as exc_info:
        create_task(desc).run(Plan())
    assert exc_info.value.kind is ErrorKind.INVALID_DATA
    assert not any(Path(p).exists() for p in _outputs(tmp_path))


def test_selection_mode_deletes_trial_files(tmp_path: Path) -> None:
    inputs = _pairs(tmp_path, [0.5, 0.6])
    desc = TaskDescriptor(
        "setsel#select", "setting_selector",
        {"measure": "accuracy", "select_from_evaluations": True, "delete_tempfiles": True, "C": "1 10"},
        inputs, _outputs(tmp_path),
    )
    create_task(desc).run(Plan())
    assert not any(Path(p).exists() for p in inputs)
    assert Path(_outputs(tmp_path)[2]).read_text(encoding="utf-8") == "C:10\n"


# ----------------
# SubsequentAttributeAdder
# ----------------
def _adder(tmp_path: Path, dataset, order: str, **extra) -> TaskDescriptor:
    order_file = tmp_path / "order.txt"
    order_file.write_text(order, encoding="utf-8")
    params: Dict[str, object] = {
        "measure": "accuracy",
        "tempfile": str(tmp_path / "tmp" / "s-*"),
        "class_arg": "cls",
        "model": "majority",
    }
    params.update(extra)
    return TaskDescriptor("adder", "subsequent_attribute_adder", params,
                          [dataset["train"], dataset["eval"], str(order_file)], _outputs(tmp_path))


@pytest.mark.parametrize(
    "extra, n_listed, expected",
    [
        ({}, 3, [1, 2, 3]),
        ({"start": 2, "step": 2}, 5, [2, 4]),
        ({"start": 0, "end": 10}, 2, [1, 2]),
        ({"start": 4}, 3, [3]),
    ],
)
def test_adder_sizes(tmp_path: Path, dataset, extra, n_listed: int, expected: List[int]) -> None:
    task = create_task(_adder(tmp_path, dataset, "0", **extra))
    assert task.sizes(n_listed) == expected


def test_adder_rejects_bad_bounds(tmp_path: Path, dataset) -> None:
    for extra in ({"step": 0}, {"start": 3, "end": 2}):
        with pytest.raises(TaskError) as exc_info:
            create_task(_adder(tmp_path, dataset, "0", **extra))
        assert exc_info.value.kind is ErrorKind.INVALID_PARAMS


def test_adder_generates_growing_prefixes(tmp_path: Path, dataset) -> None:
    plan = Plan()
    desc = running(plan, _adder(tmp_path, dataset, "3 0\n2\n"))
    create_task(desc).run(plan)

    prefixes = [plan.get(f"adder#classif{i}").params["select_args"] for i in range(3)]
    assert prefixes == ["3", "3 0", "3 0 2"]
    select = plan.get("adder#select")
    assert select.params["attribute_order_file"] == str(tmp_path / "order.txt")
    assert select.params["start"] == "1"
    assert "end" not in select.params


def test_adder_bad_order_file(tmp_path: Path, dataset) -> None:
    plan = Plan()
    desc = running(plan, _adder(tmp_path, dataset, "3 zero\n"))
    with pytest.raises(TaskError) as exc_info:
        create_task(desc).run(plan)
    assert exc_info.value.kind is ErrorKind.INVALID_DATA


def test_adder_selection_writes_winning_prefix(tmp_path: Path) -> None:
    order_file = tmp_path / "order.txt"
    order_file.write_text("3 0 2\n", encoding="utf-8")
    desc = TaskDescriptor(
        "adder#select", "subsequent_attribute_adder",
        {"measure": "accuracy", "select_from_evaluations": True, "attribute_order_file": str(order_file)},
        _pairs(tmp_path, [0.5, 0.8, 0.7]), _outputs(tmp_path),
    )
    create_task(desc).run(Plan())
    assert Path(_outputs(tmp_path)[2]).read_text(encoding="utf-8") == "3 0\n"
