# -*- coding: utf-8 -*-
"""mlprocess.tasks.eval_selector

Best-selector protocol shared by the trial-and-select tasks.

Evaluation artifacts are plain text, one `Name: value` record per line (see
mlprocess.tasks.evaluation). The selector reads one named measure from each file and
keeps the running maximum with strict ">", so the first occurrence wins a tie. An
optional `order` only changes the scan sequence, never the comparison rule.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from mlprocess.exceptions import ErrorKind, TaskError
from mlprocess.plan.descriptor import TaskDescriptor
from mlprocess.tasks.base import Task

LOGGER = logging.getLogger(__name__)

MEASURE = "measure"


@dataclass(frozen=True)
class Selection:
    """Winner of a selection: position in the evaluation-file list and its measure value."""

    index: int
    value: float


def read_measure(path: str, measure: str, *, task_id: str = "") -> float:
    """Value of the first `measure` record in an evaluation file (name matched case-insensitively)."""
    wanted = measure.strip().lower()
    with Path(path).open("r", encoding="utf-8") as f:
        for line in f:
            if ":" not in line:
                continue
            name, raw = line.split(":", 1)
            if name.strip().lower() != wanted:
                continue
            try:
                value = float(raw.strip())
            except ValueError:
                value = math.nan
            if not math.isfinite(value):
                raise TaskError(
                    ErrorKind.INVALID_DATA, task_id, f"File {path}: measure {measure} not numeric ({raw.strip()!r})."
                )
            return value
    raise TaskError(ErrorKind.INVALID_DATA, task_id, f"File {path}: measure {measure} not found.")


def select_best(
    eval_files: Sequence[str],
    measure: str,
    order: Optional[Sequence[int]] = None,
    *,
    task_id: str = "",
) -> Selection:
    """Pick the evaluation file with the highest `measure`; ties go to the first one scanned."""
    if not eval_files:
        raise TaskError(ErrorKind.INVALID_DATA, task_id, "No evaluation files to select from.")
    if order is None:
        order = range(len(eval_files))
    elif sorted(order) != list(range(len(eval_files))):
        raise TaskError(
            ErrorKind.INVALID_DATA, task_id,
            f"Scan order {list(order)} is not a permutation of {len(eval_files)} evaluation files.",
        )

    best_index = -1
    best_value = float("-inf")
    for index in order:
        value = read_measure(eval_files[index], measure, task_id=task_id)
        if value > best_value:
            best_index = index
            best_value = value
    if best_index < 0:
        raise TaskError(ErrorKind.INVALID_DATA, task_id, f"No {measure} value to select from.")
    return Selection(best_index, best_value)


class EvalSelector(Task):
    """Base for tasks that choose among evaluation artifacts by a named measure."""

    def __init__(self, desc: TaskDescriptor) -> None:
        super().__init__(desc)
        self.measure = self.params.require_str(MEASURE)

    def select_best(self, eval_files: Sequence[str], order: Optional[Sequence[int]] = None) -> Selection:
        best = select_best(eval_files, self.measure, order, task_id=self.id)
        LOGGER.debug("[%s] %s: best %s=%s at %d of %d", self.kind, self.id, self.measure, best.value, best.index,
                     len(eval_files))
        return best
