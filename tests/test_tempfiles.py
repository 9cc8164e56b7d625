from __future__ import annotations

import pytest

from mlprocess.exceptions import ErrorKind, TaskError
from mlprocess.tasks.tempfiles import TempfileKind, require_pattern, tempfile_name
from mlprocess.utils.strict_cfg import TaskParams


@pytest.mark.parametrize(
    "kind, round, order, expected",
    [
        (TempfileKind.CLASSIF, 3, 1, "tmp/g-(3-1).csv"),
        (TempfileKind.STATS, 3, 1, "tmp/g-(3-1).txt"),
        (TempfileKind.BEST_CLASSIF, 3, 0, "tmp/g-(3-best).csv"),
        (TempfileKind.BEST_STATS, 3, 0, "tmp/g-(3-best).txt"),
        (TempfileKind.ROUND_STATS, 3, 0, "tmp/g-(3-stats).txt"),
        (TempfileKind.STATS, None, 2, "tmp/g-(2).txt"),
    ],
)
def test_tempfile_name(kind: TempfileKind, round, order: int, expected: str) -> None:
    assert tempfile_name("tmp/g-*", kind, round, order) == expected


def test_tempfile_name_uses_expanded_id() -> None:
    assert tempfile_name("tmp/g-*", TempfileKind.CLASSIF, 3, 1, "fileA") == "tmp/g-fileA_(3-1).csv"


def test_tempfile_names_are_distinct_per_round_and_order() -> None:
    names = {
        tempfile_name("t/*", TempfileKind.CLASSIF, r, o)
        for r in range(1, 4)
        for o in range(3)
    }
    assert len(names) == 9


@pytest.mark.parametrize("pattern", ["tmp/no-wildcard", "tmp/*-*"])
def test_pattern_needs_exactly_one_wildcard(pattern: str) -> None:
    with pytest.raises(ValueError):
        tempfile_name(pattern, TempfileKind.CLASSIF, 1, 0)
    with pytest.raises(TaskError) as exc_info:
        require_pattern(TaskParams({"tempfile": pattern}, "t"))
    assert exc_info.value.kind is ErrorKind.INVALID_PARAMS
