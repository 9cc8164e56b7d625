"""
@module     mlprocess.registry
@role       Lightweight name -> object registry (task kinds, estimator factories)
@inputs
  - register(name: str, *, override: bool=False)(obj): decorator registration
  - get(name: str): registered object (lazy-imports the built-in modules on a miss)
  - create(name: str, **kw): call the registered factory with **kw
  - list_names(prefix=""): registered names, sorted
@contracts
  - register(name) raises KeyError on a duplicate name unless override=True
  - get raises KeyError when the name is still unknown after the lazy bootstrap
  - Names are namespaced by prefix: "task/<kind>", "model/<name>"
@design
  - Replaces reflection-by-class-name: a scenario names a kind, the registry maps it to a class.
"""

from __future__ import annotations

import importlib
import threading
from typing import Any, Dict, List

_REGISTRY: Dict[str, Any] = {}
_LOCK = threading.Lock()

# modules whose import registers the built-in task kinds and models
_BUILTIN_MODULES = (
    "mlprocess.tasks.classifier",
    "mlprocess.tasks.evaluation",
    "mlprocess.tasks.setting_trials",
    "mlprocess.tasks.greedy",
    "mlprocess.models",
)

# ===== Core API ======================================================================

def register(name: str, *, override: bool = False):
    """Decorator: register a function / class / factory under `name`."""
    def _decor(obj: Any):
        with _LOCK:
            if (not override) and (name in _REGISTRY):
                raise KeyError(f"'{name}' is already registered")
            _REGISTRY[name] = obj
        return obj
    return _decor


def _bootstrap() -> None:
    for module in _BUILTIN_MODULES:
        importlib.import_module(module)


def list_names(prefix: str = "") -> List[str]:
    _bootstrap()
    return sorted(n for n in _REGISTRY if n.startswith(prefix))


def get(name: str) -> Any:
    if name in _REGISTRY:
        return _REGISTRY[name]
    _bootstrap()
    if name in _REGISTRY:
        return _REGISTRY[name]
    raise KeyError(f"'{name}' is not registered")


def create(name: str, **kwargs: Any) -> Any:
    obj = get(name)
    return obj(**kwargs) if callable(obj) else obj
