# -*- coding: utf-8 -*-
"""mlprocess.tasks.base

Base task contract.

Design principles (MUST)
- Fail fast: a constructor validates parameters and input/output shape, before any I/O.
  It never leaves a task half-configured.
- Parameters are parsed once (TaskParams); unconsumed keys are the explicit pass-through map.
- `run(plan)` is the single error boundary: anything that is not a TaskError (or a fatal
  PlanError) is logged with its traceback and re-raised as TaskError(IO_ERROR).
- Tasks talk to the plan only through `spawn(plan, batch)`.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Callable, Dict, List, Sequence

from mlprocess.exceptions import ErrorKind, PlanError, TaskError
from mlprocess.plan.descriptor import TaskDescriptor
from mlprocess.plan.scheduler import Plan
from mlprocess.utils.strict_cfg import TaskParams

LOGGER = logging.getLogger(__name__)

WILDCARD = "*"


class Task:
    """Base class for all executable tasks."""

    kind: str = "base"

    def __init__(self, desc: TaskDescriptor) -> None:
        self.desc = desc
        self.id = desc.id
        self.path = desc.path
        self.inputs: List[str] = list(desc.inputs)
        self.outputs: List[str] = list(desc.outputs)
        self.params = TaskParams(desc.params, desc.id)
        for path in self.inputs + self.outputs:
            if WILDCARD in path:
                raise self.error(ErrorKind.PATTERN_SPECS, f"Wildcards are not allowed in file names: {path!r}")

    # ----------------
    # Contract
    # ----------------
    def perform(self, plan: Plan) -> None:
        raise NotImplementedError

    def run(self, plan: Plan) -> None:
        try:
            self.perform(plan)
        except (TaskError, PlanError) as exc:
            LOGGER.error("[%s] %s", self.kind, exc)
            raise
        except Exception as exc:
            LOGGER.exception("[%s] %s failed", self.kind, self.id)
            raise self.error(ErrorKind.IO_ERROR, f"{type(exc).__name__}: {exc}") from exc

    def spawn(self, plan: Plan, batch: Sequence[TaskDescriptor]) -> List[str]:
        return plan.splice_subgraph(self.id, batch)

    # ----------------
    # Helpers
    # ----------------
    def error(self, kind: ErrorKind, message: str = "") -> TaskError:
        return TaskError(kind, self.id, message)

    def check_inputs(self, ok: Callable[[int], bool], expected: str) -> None:
        if not ok(len(self.inputs)):
            raise self.error(ErrorKind.WRONG_NUM_INPUTS, f"Expected {expected}, got {len(self.inputs)}.")

    def check_outputs(self, n: int) -> None:
        if len(self.outputs) != n:
            raise self.error(ErrorKind.WRONG_NUM_OUTPUTS, f"Expected {n}, got {len(self.outputs)}.")


def copy_file(src: str, dst: str) -> None:
    Path(dst).parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(src, dst)


def delete_files(paths: Sequence[str]) -> None:
    for p in paths:
        Path(p).unlink(missing_ok=True)


def pair_inputs(paths: Sequence[str]) -> Dict[str, List[str]]:
    """Split [stats_0, classif_0, stats_1, classif_1, ...] into the two parallel lists."""
    return {"stats": list(paths[0::2]), "classif": list(paths[1::2])}
