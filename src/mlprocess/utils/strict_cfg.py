# -*- coding: utf-8 -*-
"""mlprocess.utils.strict_cfg

Strict access helpers for scenario mappings and task parameter maps.

Policy
- No fallback / no silent defaults: a missing required key raises.
- Scenario (YAML) access raises `ConfigError`; task parameter access raises
  `TaskError(INVALID_PARAMS)` carrying the task id.
- Paths are either a single key or a sequence of keys, e.g. ("run", "workers").

Notes
- This module must stay lightweight (no pandas / sklearn imports).
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Union

from mlprocess.exceptions import ErrorKind, TaskError


class ConfigError(ValueError):
    """Raised when the scenario config is missing a key or has a wrong type."""


PathLike = Union[str, Sequence[str]]

TRUE_WORDS = {"true", "1", "yes", "on"}
FALSE_WORDS = {"false", "0", "no", "off"}


def _keys(path: PathLike) -> Sequence[str]:
    return (path,) if isinstance(path, str) else path


def _lookup(cfg: Mapping[str, Any], path: PathLike, *, ctx: str) -> Any:
    node: Any = cfg
    for key in _keys(path):
        if not isinstance(node, Mapping) or key not in node:
            raise ConfigError(f"[{ctx}] missing key: {'.'.join(_keys(path))}")
        node = node[key]
    return node


def require_mapping(cfg: Mapping[str, Any], path: PathLike, *, ctx: str = "cfg") -> Mapping[str, Any]:
    value = _lookup(cfg, path, ctx=ctx)
    if not isinstance(value, Mapping):
        raise ConfigError(f"[{ctx}] {'.'.join(_keys(path))} must be a mapping, got {type(value).__name__}")
    return value


def require_str(cfg: Mapping[str, Any], path: PathLike, *, ctx: str = "cfg") -> str:
    value = _lookup(cfg, path, ctx=ctx)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"[{ctx}] {'.'.join(_keys(path))} must be non-empty str")
    return value.strip()


def optional_list_str(cfg: Mapping[str, Any], key: str, *, ctx: str = "cfg") -> List[str]:
    """A list of non-empty strings, or [] when the key is absent / null."""
    value = cfg.get(key)
    if value is None:
        return []
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise ConfigError(f"[{ctx}] {key} must be a list, got {type(value).__name__}")
    out: List[str] = []
    for i, item in enumerate(value):
        if not isinstance(item, str) or not item.strip():
            raise ConfigError(f"[{ctx}] {key}[{i}] must be non-empty str")
        out.append(item.strip())
    return out


def param_text(value: Any) -> str:
    """Normalize a parameter value to the string form tasks receive."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return " ".join(param_text(v) for v in value)
    return str(value)


class TaskParams:
    """Consuming reader over a task's string parameter map.

    Every `require_*` / `optional_*` call marks its key as consumed; whatever is
    left afterwards is the explicit pass-through map returned by `residual()`.
    """

    def __init__(self, params: Mapping[str, str], task_id: str) -> None:
        self._raw: Dict[str, str] = dict(params)
        self._used: Set[str] = set()
        self.task_id = task_id

    def error(self, message: str) -> TaskError:
        return TaskError(ErrorKind.INVALID_PARAMS, self.task_id, message)

    def has(self, key: str) -> bool:
        value = self._raw.get(key)
        return value is not None and value.strip() != ""

    def _take(self, key: str) -> Optional[str]:
        self._used.add(key)
        if not self.has(key):
            return None
        return self._raw[key].strip()

    def require_str(self, key: str) -> str:
        value = self._take(key)
        if value is None:
            raise self.error(f"Parameter '{key}' is missing.")
        return value

    def optional_str(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self._take(key)
        return default if value is None else value

    def require_int(self, key: str) -> int:
        return self._to_int(key, self.require_str(key))

    def optional_int(self, key: str, default: int) -> int:
        value = self._take(key)
        return default if value is None else self._to_int(key, value)

    def optional_float(self, key: str, default: float) -> float:
        value = self._take(key)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError:
            raise self.error(f"Parameter '{key}' must be numeric, got {value!r}.") from None

    def optional_bool(self, key: str, default: bool = False) -> bool:
        value = self._take(key)
        if value is None:
            return default
        lower = value.lower()
        if lower in TRUE_WORDS:
            return True
        if lower in FALSE_WORDS:
            return False
        raise self.error(f"Parameter '{key}' must be a boolean, got {value!r}.")

    def _to_int(self, key: str, value: str) -> int:
        try:
            return int(value)
        except ValueError:
            raise self.error(f"Parameter '{key}' must be an integer, got {value!r}.") from None

    def residual(self) -> Dict[str, str]:
        return {k: v for k, v in self._raw.items() if k not in self._used}
