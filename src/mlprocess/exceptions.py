# -*- coding: utf-8 -*-
"""mlprocess.exceptions

Error types shared by the plan and the tasks.

Policy
- Every task failure surfaces as one `TaskError` carrying a kind, the owning task id and a message.
- The worker only branches on "succeeded vs. failed"; the kind is for humans and tests.
- `PlanError` is an internal consistency error of the task graph (fatal, never retried).
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Task error kinds: (description, category)."""

    WRONG_NUM_INPUTS = ("Wrong number of inputs", "shape")
    WRONG_NUM_OUTPUTS = ("Wrong number of outputs", "shape")
    PATTERN_SPECS = ("Wrong pattern specifications", "shape")
    INVALID_PARAMS = ("Invalid task parameters were specified", "params")
    INVALID_DATA = ("Invalid input data", "data")
    IO_ERROR = ("I/O error during task operation", "io")
    TASK_CLASS_NOT_FOUND = ("Task class not found", "setup")

    @property
    def description(self) -> str:
        return self.value[0]

    @property
    def category(self) -> str:
        return self.value[1]


class TaskError(RuntimeError):
    """Raised by a task on construction (shape/params) or at its `run` boundary."""

    def __init__(self, kind: ErrorKind, task_id: str, message: str = "") -> None:
        self.kind = kind
        self.task_id = task_id
        self.message = message
        super().__init__(self._format())

    def _format(self) -> str:
        text = f"{self.task_id}: {self.kind.description}."
        if self.message:
            text += f" {self.message}"
        return text


class PlanError(RuntimeError):
    """Raised when the task graph would become inconsistent (unknown owner, id clash, bad batch)."""
