# -*- coding: utf-8 -*-
"""mlprocess.scenario

Scenario (YAML dict) -> task descriptors -> Plan.

Scenario layout
    run:
      workers: 2            # optional, default 1
      log_level: INFO       # optional
      log_file: run.log     # optional, relative to base_dir
      base_dir: .           # optional, default = directory of the config file
    tasks:
      <id>:
        kind: <task kind>
        params: {key: value, ...}        # optional; lists become space-separated strings
        inputs: [file, ...]              # optional
        outputs: [file, ...]             # optional
        depends_on: [<id>, ...]          # optional

Design principles (STRICT)
- Relative file paths and the `tempfile` pattern are resolved against base_dir.
- Edges are `depends_on` plus file occurrences: a task reading a file another task writes
  depends on the writer.
- Two writers of one file or a dependency cycle -> PlanError; malformed entries or an
  unknown `depends_on` id -> ConfigError.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Dict, List, Mapping, Optional

from mlprocess.config import abs_path
from mlprocess.exceptions import PlanError
from mlprocess.plan.descriptor import TaskDescriptor, TaskPath
from mlprocess.plan.scheduler import Plan
from mlprocess.utils.strict_cfg import ConfigError, optional_list_str, require_mapping, require_str

LOGGER = logging.getLogger(__name__)

PATH_PARAMS = ("tempfile",)


def build_descriptors(cfg: Mapping[str, Any], base_dir: str) -> List[TaskDescriptor]:
    """Descriptors for all scenario tasks, with their dependency edges set."""
    tasks_cfg = require_mapping(cfg, "tasks", ctx="scenario")
    if not tasks_cfg:
        raise ConfigError("[scenario] tasks must not be empty")

    descs: Dict[str, TaskDescriptor] = {}
    depends_on: Dict[str, List[str]] = {}
    for task_id, entry in tasks_cfg.items():
        ctx = f"tasks.{task_id}"
        if not isinstance(entry, Mapping):
            raise ConfigError(f"[{ctx}] must be a mapping, got {type(entry).__name__}")
        try:
            path = TaskPath((str(task_id),))
        except ValueError as exc:
            raise ConfigError(f"[{ctx}] {exc}") from None

        params = dict(entry.get("params") or {})
        if not all(isinstance(k, str) for k in params):
            raise ConfigError(f"[{ctx}] params keys must be strings")
        for key in PATH_PARAMS:
            if isinstance(params.get(key), str):
                params[key] = abs_path(params[key], base_dir)

        descs[path.root] = TaskDescriptor(
            path,
            require_str(entry, "kind", ctx=ctx),
            params,
            [abs_path(p, base_dir) for p in optional_list_str(entry, "inputs", ctx=ctx)],
            [abs_path(p, base_dir) for p in optional_list_str(entry, "outputs", ctx=ctx)],
        )
        depends_on[path.root] = optional_list_str(entry, "depends_on", ctx=ctx)

    writers: Dict[str, str] = {}
    for desc in descs.values():
        for out in desc.outputs:
            if out in writers:
                raise PlanError(f"file '{out}' is written by both '{writers[out]}' and '{desc.id}'")
            writers[out] = desc.id

    for desc in descs.values():
        for dep_id in depends_on[desc.id]:
            if dep_id not in descs:
                raise ConfigError(f"[tasks.{desc.id}] depends_on unknown task '{dep_id}'")
            desc.add_dependency(descs[dep_id])
        for inp in desc.inputs:
            writer = writers.get(inp)
            if writer is not None and writer != desc.id:
                desc.add_dependency(descs[writer])

    _check_acyclic(list(descs.values()))
    return list(descs.values())


def _check_acyclic(descs: List[TaskDescriptor]) -> None:
    indegree = {d.id: len(d.dependencies) for d in descs}
    queue = deque(d for d in descs if indegree[d.id] == 0)
    seen = 0
    while queue:
        desc = queue.popleft()
        seen += 1
        for dependent in desc.dependents:
            indegree[dependent.id] -= 1
            if indegree[dependent.id] == 0:
                queue.append(dependent)
    if seen != len(descs):
        cyclic = sorted(i for i, n in indegree.items() if n > 0)
        raise PlanError(f"dependency cycle among: {', '.join(cyclic)}")


def build_plan(cfg: Mapping[str, Any], base_dir: str) -> Plan:
    plan = Plan()
    plan.add_tasks(build_descriptors(cfg, base_dir))
    LOGGER.info("[Scenario] %d task(s) loaded from %s", len(plan), base_dir)
    return plan


def describe(plan: Plan) -> List[str]:
    lines: List[str] = []
    for desc in plan.snapshot():
        deps = desc.dependency_ids()
        lines.append(f"{desc.id} [{desc.kind}] {desc.status.value}")
        for key, value in desc.params.items():
            lines.append(f"    {key}: {value}")
        for label, files in (("in", desc.inputs), ("out", desc.outputs)):
            for p in files:
                lines.append(f"    {label}: {p}")
        if deps:
            lines.append(f"    after: {', '.join(deps)}")
    return lines


def show(*, argv: Optional[List[str]], cfg: Dict[str, Any]) -> int:
    """`mlprocess show`: print the initial plan."""
    plan = build_plan(cfg, cfg["run"]["base_dir"])
    for line in describe(plan):
        print(line)
    return 0
