# -*- coding: utf-8 -*-
"""mlprocess.tasks.factory

Task factory (STRICT).

- No fallback: an unknown kind is a TaskError(TASK_CLASS_NOT_FOUND).
- Task classes register themselves with `@register_task("<kind>")`; the registry imports
  the built-in task modules lazily, so `create_task` works without explicit imports.
"""

from __future__ import annotations

import logging
from typing import List

from mlprocess.exceptions import ErrorKind, TaskError
from mlprocess.plan.descriptor import TaskDescriptor
from mlprocess.registry import get as _registry_get, list_names, register as _register_global

LOGGER = logging.getLogger(__name__)

TASK_REGISTRY_PREFIX = "task/"


def register_task(kind: str, *, override: bool = False):
    """Class decorator: make a Task subclass available under `kind` and set its `kind` attribute."""
    register = _register_global(TASK_REGISTRY_PREFIX + kind, override=override)

    def _decor(cls):
        cls.kind = kind
        return register(cls)

    return _decor


def task_kinds() -> List[str]:
    return [n[len(TASK_REGISTRY_PREFIX):] for n in list_names(TASK_REGISTRY_PREFIX)]


def create_task(desc: TaskDescriptor):
    """Instantiate the Task for a descriptor (validates parameters and shape, no I/O)."""
    try:
        cls = _registry_get(TASK_REGISTRY_PREFIX + desc.kind)
    except KeyError:
        raise TaskError(
            ErrorKind.TASK_CLASS_NOT_FOUND, desc.id, f"Unknown task kind: '{desc.kind}'. (no fallback allowed)"
        ) from None
    return cls(desc)


__all__ = ["create_task", "register_task", "task_kinds"]
