# -*- coding: utf-8 -*-
"""mlprocess.plan.scheduler

The Plan: single owner of the task graph.

Design principles (STRICT)
- One Plan instance per run, passed explicitly to every task (no process-wide singleton).
- All graph mutation happens under one condition lock; a spliced batch becomes visible
  in a single step, after it has been validated and fully wired.
- A task becomes READY only strictly after every declared dependency is DONE.
- A FAILED task blocks its dependents; siblings already READY / RUNNING are not cancelled.
"""

from __future__ import annotations

import logging
import threading
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence

from mlprocess.exceptions import PlanError
from mlprocess.plan.descriptor import TaskDescriptor, TaskStatus

LOGGER = logging.getLogger(__name__)


class Plan:
    """Live task graph with atomic splice and dependency-driven status advancement."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.RLock())
        self._tasks: Dict[str, TaskDescriptor] = {}
        self._archive: Dict[str, TaskDescriptor] = {}
        self._owner: Dict[str, str] = {}

    # ----------------------------------------------------------
    # Building
    # ----------------------------------------------------------
    def add_tasks(self, tasks: Iterable[TaskDescriptor]) -> None:
        """Admit the initial tasks (their mutual edges must already be set)."""
        batch = list(tasks)
        with self._cond:
            self._check_new_ids(batch)
            for task in batch:
                self._tasks[task.id] = task
            for task in batch:
                self._admit(task)
            self._cond.notify_all()

    def splice_subgraph(self, parent_id: str, new_tasks: Sequence[TaskDescriptor]) -> List[str]:
        """Insert a batch of new tasks owned by `parent_id` into the live graph.

        The batch must carry its internal edges already, and one of its tasks (the
        reduction task) must depend on all the others. Batch tasks without an in-batch
        prerequisite are made to depend on the parent; tasks that depended on the parent
        are made to wait for the batch's sink tasks as well.

        Returns the ids of the spliced tasks, in batch order.
        """
        batch = list(new_tasks)
        with self._cond:
            parent = self._tasks.get(parent_id)
            if parent is None:
                where = "already archived" if parent_id in self._archive else "unknown"
                raise PlanError(f"cannot splice into task '{parent_id}': {where}")
            if not batch:
                return []
            self._check_new_ids(batch)

            batch_ids = {t.id for t in batch}
            for task in batch:
                for dep in task.dependencies:
                    if dep.id not in batch_ids and dep.id not in self._tasks:
                        raise PlanError(f"'{task.id}' depends on '{dep.id}' which is not in the plan")
            if not any(batch_ids - {t.id} <= {d.id for d in t.dependencies} for t in batch):
                raise PlanError(f"batch spliced into '{parent_id}' has no reduction task depending on all others")

            depended_on = {d.id for t in batch for d in t.dependencies}
            sinks = [t for t in batch if t.id not in depended_on]
            downstream = [t for t in parent.dependents if t.id not in batch_ids]

            # wire, then publish
            for task in batch:
                if not any(d.id in batch_ids for d in task.dependencies):
                    task.add_dependency(parent)
            for dependent in downstream:
                for sink in sinks:
                    dependent.add_dependency(sink)
            for task in batch:
                self._tasks[task.id] = task
                self._owner[task.id] = parent_id
            for task in batch:
                self._admit(task)

            LOGGER.info("[Plan] spliced %d task(s) into %s", len(batch), parent_id)
            self._cond.notify_all()
            return [t.id for t in batch]

    spawn = splice_subgraph

    def _check_new_ids(self, batch: Sequence[TaskDescriptor]) -> None:
        seen = set()
        for task in batch:
            if task.id in seen or task.id in self._tasks or task.id in self._archive:
                raise PlanError(f"duplicate task id: '{task.id}'")
            seen.add(task.id)

    def _admit(self, task: TaskDescriptor) -> None:
        task.set_status(TaskStatus.READY if task.dependencies_done() else TaskStatus.WAITING)

    # ----------------------------------------------------------
    # Status advancement
    # ----------------------------------------------------------
    def next_ready(self, *, block: bool = True, timeout: Optional[float] = None) -> Optional[TaskDescriptor]:
        """Claim a READY task (it becomes RUNNING).

        Returns None when nothing is READY and nothing is RUNNING (the plan is finished
        or blocked by failures), or when `block` is False and nothing is READY now.
        """
        with self._cond:
            while True:
                for task in self._tasks.values():
                    if task.status is TaskStatus.READY:
                        task.set_status(TaskStatus.RUNNING)
                        return task
                if not block or not self._any(TaskStatus.RUNNING):
                    return None
                if not self._cond.wait(timeout) and timeout is not None:
                    return None

    def mark_done(self, task_id: str) -> None:
        with self._cond:
            task = self._require(task_id)
            task.set_status(TaskStatus.DONE)
            for dependent in task.dependents:
                if dependent.status is TaskStatus.WAITING and dependent.dependencies_done():
                    dependent.set_status(TaskStatus.READY)
            self.prune()
            self._cond.notify_all()

    def mark_failed(self, task_id: str) -> None:
        with self._cond:
            task = self._require(task_id)
            task.set_status(TaskStatus.FAILED)
            blocked = sorted(d.id for d in task.dependents if not d.status.finished)
            if blocked:
                LOGGER.warning("[Plan] %s failed; blocking %s", task_id, ", ".join(blocked))
            self._cond.notify_all()

    def prune(self) -> List[str]:
        """Archive DONE tasks that no unfinished task still depends on."""
        with self._cond:
            removable = [
                t.id for t in self._tasks.values()
                if t.status is TaskStatus.DONE and all(d.status.finished for d in t.dependents)
            ]
            for task_id in removable:
                self._archive[task_id] = self._tasks.pop(task_id)
            return removable

    # ----------------------------------------------------------
    # Queries
    # ----------------------------------------------------------
    def _require(self, task_id: str) -> TaskDescriptor:
        task = self._tasks.get(task_id)
        if task is None:
            raise PlanError(f"unknown task id: '{task_id}'")
        return task

    def _any(self, status: TaskStatus) -> bool:
        return any(t.status is status for t in self._tasks.values())

    def get(self, task_id: str) -> TaskDescriptor:
        with self._cond:
            task = self._tasks.get(task_id) or self._archive.get(task_id)
            if task is None:
                raise PlanError(f"unknown task id: '{task_id}'")
            return task

    def owner_of(self, task_id: str) -> Optional[str]:
        with self._cond:
            return self._owner.get(task_id)

    def snapshot(self) -> List[TaskDescriptor]:
        """All tasks (live and archived) in insertion order."""
        with self._cond:
            return list(self._archive.values()) + list(self._tasks.values())

    def live_ids(self) -> List[str]:
        with self._cond:
            return list(self._tasks)

    def status_counts(self) -> Dict[str, int]:
        with self._cond:
            counts = Counter(t.status.value for t in self.snapshot())
            return dict(counts)

    def blocked(self) -> List[str]:
        """Unfinished tasks that can never run because a dependency failed."""
        with self._cond:
            return [
                t.id for t in self._tasks.values()
                if t.status is TaskStatus.WAITING and self._failed_upstream(t)
            ]

    def _failed_upstream(self, task: TaskDescriptor) -> bool:
        stack = list(task.dependencies)
        seen = set()
        while stack:
            dep = stack.pop()
            if dep.id in seen:
                continue
            seen.add(dep.id)
            if dep.status is TaskStatus.FAILED:
                return True
            stack.extend(dep.dependencies)
        return False

    def is_complete(self) -> bool:
        with self._cond:
            return all(t.status is TaskStatus.DONE for t in self._tasks.values())

    def __len__(self) -> int:
        with self._cond:
            return len(self._tasks) + len(self._archive)
