# -*- coding: utf-8 -*-
"""mlprocess.tasks.tempfiles

Deterministic temp-file names for trial and round artifacts.

A pattern holds exactly one "*". The wildcard becomes "<expanded id>_" (if any) plus a
round/order tag; the kind adds the extension:

    pattern "tmp/greedy-*", CLASSIF, round=3, order=1  ->  "tmp/greedy-(3-1).csv"
    pattern "tmp/greedy-*", ROUND_STATS, round=3       ->  "tmp/greedy-(3-stats).txt"

Names collide only if two runs share a pattern (no locking; that is the caller's contract).
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from mlprocess.tasks.base import WILDCARD
from mlprocess.utils.strict_cfg import TaskParams

CLASSIF_EXT = ".csv"
STATS_EXT = ".txt"


class TempfileKind(Enum):
    CLASSIF = ("order", CLASSIF_EXT)
    STATS = ("order", STATS_EXT)
    BEST_CLASSIF = ("best", CLASSIF_EXT)
    BEST_STATS = ("best", STATS_EXT)
    ROUND_STATS = ("stats", STATS_EXT)

    @property
    def tag(self) -> str:
        return self.value[0]

    @property
    def extension(self) -> str:
        return self.value[1]


def require_pattern(params: TaskParams, key: str = "tempfile") -> str:
    """Read a temp-file pattern parameter; it must contain exactly one wildcard."""
    pattern = params.require_str(key)
    if pattern.count(WILDCARD) != 1:
        raise params.error(f"Parameter '{key}' must contain exactly one '{WILDCARD}': {pattern!r}")
    return pattern


def tempfile_name(
    pattern: str,
    kind: TempfileKind,
    round: Optional[int] = None,
    order: int = 0,
    expanded_id: str = "",
) -> str:
    if pattern.count(WILDCARD) != 1:
        raise ValueError(f"temp-file pattern must contain exactly one '{WILDCARD}': {pattern!r}")

    second = str(order) if kind.tag == "order" else kind.tag
    tag = f"({second})" if round is None else f"({round}-{second})"
    prefix = f"{expanded_id}_" if expanded_id else ""
    return pattern.replace(WILDCARD, prefix + tag) + kind.extension


__all__ = ["TempfileKind", "require_pattern", "tempfile_name"]
