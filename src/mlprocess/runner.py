# -*- coding: utf-8 -*-
"""mlprocess.runner

`mlprocess run`: configure logging, build the plan, drain it with worker threads.
`mlprocess kinds`: list what a scenario may name.

Exit code 0 iff every task (including spliced ones) ended DONE.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from mlprocess.config import abs_path
from mlprocess.plan.worker import run_plan
from mlprocess.scenario import build_plan

LOGGER = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(threadName)s %(name)s: %(message)s"


_HANDLERS: List[logging.Handler] = []


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure the root logger: stderr stream plus an optional log file.

    Handlers installed by an earlier call are replaced; foreign handlers are left alone.
    """
    root = logging.getLogger()
    while _HANDLERS:
        handler = _HANDLERS.pop()
        root.removeHandler(handler)
        handler.close()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    fmt = logging.Formatter(LOG_FORMAT)
    stream = logging.StreamHandler(sys.stderr)
    _HANDLERS.append(stream)
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        _HANDLERS.append(logging.FileHandler(log_file, encoding="utf-8"))
    for handler in _HANDLERS:
        handler.setFormatter(fmt)
        root.addHandler(handler)


def run(*, argv: Optional[List[str]], cfg: Dict[str, Any]) -> int:
    run_cfg = cfg.get("run") or {}
    base_dir = run_cfg["base_dir"]
    log_file = run_cfg.get("log_file")
    setup_logging(run_cfg.get("log_level", "INFO"), abs_path(log_file, base_dir) if log_file else None)

    workers = int(run_cfg.get("workers", 1))
    plan = build_plan(cfg, base_dir)
    LOGGER.info("[Run] %d task(s), %d worker(s)", len(plan), workers)
    ok = run_plan(plan, workers=workers)
    LOGGER.info("[Run] %s", "all tasks done" if ok else "finished with failures")
    return 0 if ok else 1


def kinds(*, argv: Optional[List[str]], cfg: Optional[Dict[str, Any]]) -> int:
    """`mlprocess kinds`: list the registered task kinds and models."""
    from mlprocess.models import model_names
    from mlprocess.tasks.factory import task_kinds

    print("Task kinds:", ", ".join(task_kinds()))
    print("Models:", ", ".join(model_names()))
    return 0
