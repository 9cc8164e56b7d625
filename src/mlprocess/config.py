# -*- coding: utf-8 -*-
"""
@module     : mlprocess.config
@role       : YAML scenario loading and path resolution
@overview   :
    - load_config(path, overrides): entry point used by the CLI
    - resolve_base_dir(cfg, cfg_path): directory that relative task paths are resolved against
    - abs_path(p, base_dir): normalize one path against base_dir
    - _deep_set / _apply_overrides: apply "a.b.c=1" overrides to the dict
"""
from __future__ import annotations

from typing import Any, Dict, List, MutableMapping, Optional
import os

import yaml


def parse_scalar(v: str) -> Any:
    """
    Convert strings such as "1", "true", "3.14" to Python values.

    - "true"/"false"/"yes"/"no"/"on"/"off" -> bool
    - then int, then float
    - anything else stays a string
    """
    s = v.strip()
    lower = s.lower()
    if lower in ("true", "yes", "on"):
        return True
    if lower in ("false", "no", "off"):
        return False

    # int
    try:
        return int(s)
    except ValueError:
        pass

    # float
    try:
        return float(s)
    except ValueError:
        pass

    return s


def _deep_set(d: MutableMapping[str, Any], keys: List[str], value: Any) -> None:
    """
    Write a "a.b.c" style key into a nested dict.

    Intermediate nodes that are missing or not dicts are replaced by new dicts.
    """
    x: MutableMapping[str, Any] = d
    for k in keys[:-1]:
        if k not in x or not isinstance(x[k], dict):
            x[k] = {}
        x = x[k]  # type: ignore[assignment]
    x[keys[-1]] = value


def _apply_overrides(cfg: MutableMapping[str, Any], overrides: Optional[List[str]]) -> MutableMapping[str, Any]:
    """
    Apply "section.key=value" overrides to cfg.

    Example:
        overrides = ["run.workers=4", "tasks.greedy.params.end=5"]
    """
    if not overrides:
        return cfg

    for item in overrides:
        if not item:
            continue
        if "=" not in item:
            raise ValueError(f"override must look like key=value: {item!r}")
        key_str, raw_value = item.split("=", 1)
        keys = [k for k in key_str.split(".") if k]
        if not keys:
            raise ValueError(f"override has an empty key: {item!r}")
        _deep_set(cfg, keys, parse_scalar(raw_value))

    return cfg


def abs_path(p: str, base_dir: str) -> str:
    if os.path.isabs(p):
        return os.path.normpath(p)
    return os.path.normpath(os.path.join(base_dir, p))


def resolve_base_dir(cfg: MutableMapping[str, Any], cfg_path: Optional[str]) -> str:
    """
    run.base_dir if set (relative to the config file), else the config file's directory,
    else the current directory.
    """
    cfg_dir = os.path.dirname(os.path.abspath(cfg_path)) if cfg_path else os.getcwd()
    run_cfg = cfg.get("run")
    base = run_cfg.get("base_dir") if isinstance(run_cfg, dict) else None
    if isinstance(base, str) and base:
        return abs_path(base, cfg_dir)
    return cfg_dir


def load_config(path: str, overrides: Optional[List[str]] = None) -> Dict[str, Any]:
    """
    Read a scenario YAML file and apply the optional overrides.

    Args:
        path: scenario YAML path (relative to the current directory).
        overrides: list of "a.b.c=value" strings (optional).

    Returns:
        the scenario dict; `run.base_dir` is set to an absolute directory.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"config file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        cfg: Dict[str, Any] = yaml.safe_load(f) or {}
    if not isinstance(cfg, dict):
        raise ValueError(f"config root must be a mapping: {path}")

    _apply_overrides(cfg, overrides)

    base_dir = resolve_base_dir(cfg, path)
    run_cfg = cfg.setdefault("run", {})
    if not isinstance(run_cfg, dict):
        raise ValueError(f"'run' must be a mapping: {path}")
    run_cfg["base_dir"] = base_dir
    return cfg
