# -*- coding: utf-8 -*-
"""
@module: mlprocess.plan.descriptor
@role  : Task descriptors: the nodes of the plan graph
@overview:
    - TaskPath: structured, hierarchical task id ("greedy#classif3-1" = ("greedy", "classif3-1")).
    - TaskStatus: lifecycle CREATED -> WAITING / READY -> RUNNING -> DONE / FAILED.
    - TaskDescriptor: id + kind + params + inputs/outputs + status + dependency edges.

@design:
    - Descriptors describe work; they never execute it (see mlprocess.tasks).
    - Status is only advanced by the Plan, under its lock.
    - Equality / hashing are by id, so descriptors can live in dependency sets.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, List, Mapping, Optional, Set, Tuple, Union

from mlprocess.utils.strict_cfg import param_text

SEPARATOR = "#"

_ROUND_SEGMENT = re.compile(r"round[0-9]+")
FINALIZE_SEGMENT = "finalize"


@dataclass(frozen=True)
class TaskPath:
    """Ordered id segments. The first segment is the scenario-level task id."""

    segments: Tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.segments:
            raise ValueError("TaskPath needs at least one segment")
        for seg in self.segments:
            if not seg or SEPARATOR in seg:
                raise ValueError(f"invalid task id segment: {seg!r}")

    @classmethod
    def parse(cls, text: str) -> "TaskPath":
        return cls(tuple(text.split(SEPARATOR)))

    def child(self, segment: str) -> "TaskPath":
        return TaskPath(self.segments + (segment,))

    @property
    def parent(self) -> "TaskPath":
        if len(self.segments) == 1:
            return self
        return TaskPath(self.segments[:-1])

    @property
    def root(self) -> str:
        return self.segments[0]

    def __str__(self) -> str:
        return SEPARATOR.join(self.segments)


def expanded_id(path: TaskPath) -> str:
    """Stable identity of a task across its rounds, used in temp-file names.

    Segments after the first, without a trailing "round<N>" / "finalize" segment, joined by "_".
    """
    rest = list(path.segments[1:])
    if rest and (_ROUND_SEGMENT.fullmatch(rest[-1]) or rest[-1] == FINALIZE_SEGMENT):
        rest.pop()
    return "_".join(rest)


class TaskStatus(Enum):
    CREATED = "created"
    WAITING = "waiting"
    READY = "ready"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"

    @property
    def finished(self) -> bool:
        return self in (TaskStatus.DONE, TaskStatus.FAILED)


class TaskDescriptor:
    """One unit of work in the plan."""

    def __init__(
        self,
        path: Union[TaskPath, str],
        kind: str,
        params: Optional[Mapping[str, Any]] = None,
        inputs: Iterable[str] = (),
        outputs: Iterable[str] = (),
    ) -> None:
        self.path = path if isinstance(path, TaskPath) else TaskPath.parse(path)
        self.kind = kind
        self.params: Mapping[str, str] = MappingProxyType(
            {str(k): param_text(v) for k, v in (params or {}).items() if v is not None}
        )
        self.inputs: Tuple[str, ...] = tuple(str(p) for p in inputs)
        self.outputs: Tuple[str, ...] = tuple(str(p) for p in outputs)
        self.status = TaskStatus.CREATED
        self.dependencies: Set[TaskDescriptor] = set()
        self.dependents: Set[TaskDescriptor] = set()

    @property
    def id(self) -> str:
        return str(self.path)

    def add_dependency(self, other: "TaskDescriptor") -> None:
        """Mark this task as depending on `other` (no cycle check: acyclicity is the caller's job)."""
        self.dependencies.add(other)
        other.dependents.add(self)

    def set_status(self, status: TaskStatus) -> None:
        self.status = status

    def dependencies_done(self) -> bool:
        return all(dep.status is TaskStatus.DONE for dep in self.dependencies)

    def dependency_ids(self) -> List[str]:
        return sorted(dep.id for dep in self.dependencies)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TaskDescriptor):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"TaskDescriptor(id={self.id!r}, kind={self.kind!r}, status={self.status.value})"
