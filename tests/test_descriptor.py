from __future__ import annotations

import pytest

from mlprocess.plan.descriptor import TaskDescriptor, TaskPath, TaskStatus, expanded_id


def test_task_path_parse_child_parent() -> None:
    path = TaskPath.parse("greedy#classif3-1")
    assert path.segments == ("greedy", "classif3-1")
    assert str(path) == "greedy#classif3-1"
    assert path.root == "greedy"
    assert str(path.parent) == "greedy"
    assert str(path.parent.child("round4")) == "greedy#round4"
    assert TaskPath.parse("solo").parent == TaskPath.parse("solo")


def test_task_path_rejects_bad_segments() -> None:
    with pytest.raises(ValueError):
        TaskPath(())
    with pytest.raises(ValueError):
        TaskPath(("a", ""))


@pytest.mark.parametrize(
    "text, expected",
    [
        ("greedy", ""),
        ("greedy#round4", ""),
        ("greedy#finalize", ""),
        ("greedy#fileA#round3", "fileA"),
        ("greedy#fileA", "fileA"),
        ("a#b#c", "b_c"),
        ("a#round4#x", "round4_x"),
    ],
)
def test_expanded_id(text: str, expected: str) -> None:
    assert expanded_id(TaskPath.parse(text)) == expected


def test_descriptor_normalizes_params() -> None:
    desc = TaskDescriptor("t", "classifier", {"flag": True, "n": 3, "lst": [1, 2], "skip": None})
    assert dict(desc.params) == {"flag": "true", "n": "3", "lst": "1 2"}
    with pytest.raises(TypeError):
        desc.params["n"] = "4"  # type: ignore[index]
    assert desc.status is TaskStatus.CREATED


def test_add_dependency_is_bidirectional() -> None:
    a = TaskDescriptor("a", "k")
    b = TaskDescriptor("b", "k", inputs=["x.csv"], outputs=["y.csv"])
    b.add_dependency(a)
    assert a in b.dependencies
    assert b in a.dependents
    assert b.dependency_ids() == ["a"]
    assert not b.dependencies_done()
    a.set_status(TaskStatus.DONE)
    assert b.dependencies_done()
    assert b.inputs == ("x.csv",) and b.outputs == ("y.csv",)


def test_equality_by_id() -> None:
    assert TaskDescriptor("x#y", "k1") == TaskDescriptor(TaskPath(("x", "y")), "k2")
    assert len({TaskDescriptor("x", "k"), TaskDescriptor("x", "k")}) == 1
