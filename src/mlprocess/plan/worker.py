# -*- coding: utf-8 -*-
"""mlprocess.plan.worker

Worker threads that drain a Plan.

- A worker claims a READY descriptor, builds its Task through the factory, runs it and
  reports DONE / FAILED back to the plan. Tasks may splice new work while running.
- No retries, no cancellation: a failure only blocks the tasks depending on it.
- Anything other than a TaskError (a PlanError, a bug) also fails the task, but is kept and
  re-raised by run_plan once every worker has stopped, whatever the worker count.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, List

from mlprocess.exceptions import TaskError
from mlprocess.plan.descriptor import TaskDescriptor
from mlprocess.plan.scheduler import Plan

LOGGER = logging.getLogger(__name__)

TaskFactory = Callable[[TaskDescriptor], object]


def _default_factory() -> TaskFactory:
    from mlprocess.tasks.factory import create_task  # local import: plan layer stays task-agnostic

    return create_task


class Worker:
    """One execution thread body."""

    def __init__(
        self,
        plan: Plan,
        number: int = 0,
        *,
        factory: TaskFactory | None = None,
        errors: List[BaseException] | None = None,
    ) -> None:
        self.plan = plan
        self.id = f"worker-{number}"
        self.factory = factory or _default_factory()
        self.n_done = 0
        self.n_failed = 0
        self.errors: List[BaseException] = [] if errors is None else errors

    def run(self) -> None:
        LOGGER.info("[%s] started", self.id)
        while True:
            desc = self.plan.next_ready(block=True)
            if desc is None:
                break
            self._execute(desc)
        LOGGER.info("[%s] finished - nothing else to do (done=%d failed=%d)", self.id, self.n_done, self.n_failed)

    def _execute(self, desc: TaskDescriptor) -> None:
        LOGGER.info("[%s] working on %s (%s)", self.id, desc.id, desc.kind)
        t0 = time.time()
        try:
            task = self.factory(desc)
            task.run(self.plan)  # type: ignore[attr-defined]
        except TaskError as exc:
            LOGGER.error("[%s] %s", self.id, exc)
            self.plan.mark_failed(desc.id)
            self.n_failed += 1
            return
        except Exception as exc:
            LOGGER.exception("[%s] unexpected failure in %s", self.id, desc.id)
            self.plan.mark_failed(desc.id)
            self.n_failed += 1
            self.errors.append(exc)
            return
        self.plan.mark_done(desc.id)
        self.n_done += 1
        LOGGER.info("[%s] %s finished in %.2f secs", self.id, desc.id, time.time() - t0)


def run_plan(plan: Plan, *, workers: int = 1, factory: TaskFactory | None = None) -> bool:
    """Run the plan to completion on `workers` threads. True iff every task ended DONE.

    The first unexpected (non-TaskError) exception raised by a task is re-raised after the
    workers stop; the remaining ready work is still drained first.
    """
    if workers < 1:
        raise ValueError(f"workers must be >= 1, got {workers}")

    errors: List[BaseException] = []
    pool: List[Worker] = [Worker(plan, i, factory=factory, errors=errors) for i in range(workers)]
    if workers == 1:
        pool[0].run()
    else:
        threads = [threading.Thread(target=w.run, name=w.id, daemon=True) for w in pool]
        for th in threads:
            th.start()
        for th in threads:
            th.join()

    counts = plan.status_counts()
    LOGGER.info("[Plan] finished: %s", ", ".join(f"{k}={v}" for k, v in sorted(counts.items())))
    blocked = plan.blocked()
    if blocked:
        LOGGER.error("[Plan] %d task(s) blocked by failures: %s", len(blocked), ", ".join(blocked))
    if errors:
        LOGGER.error("[Plan] %d unexpected task failure(s), re-raising the first", len(errors))
        raise errors[0]
    return plan.is_complete()
