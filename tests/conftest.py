from __future__ import annotations

from pathlib import Path
from typing import Dict

import numpy as np
import pandas as pd
import pytest

from mlprocess.plan.descriptor import TaskDescriptor
from mlprocess.plan.scheduler import Plan

# columns: a (decides the class), cls (class), b / noise (random)
HEADER = ["a", "cls", "b", "noise"]


def _frame(rng: np.random.Generator, n: int) -> pd.DataFrame:
    a = np.tile([0, 1], n // 2)
    return pd.DataFrame({
        "a": a,
        "cls": np.where(a == 1, "yes", "no"),
        "b": rng.normal(size=n).round(3),
        "noise": rng.normal(size=n).round(3),
    })


@pytest.fixture
def dataset(tmp_path: Path) -> Dict[str, str]:
    rng = np.random.default_rng(7)
    train = tmp_path / "data" / "train.csv"
    evaluation = tmp_path / "data" / "eval.csv"
    train.parent.mkdir(parents=True)
    _frame(rng, 40).to_csv(train, index=False)
    _frame(rng, 20).to_csv(evaluation, index=False)
    return {"train": str(train), "eval": str(evaluation)}


def write_stats(path: Path, accuracy: float) -> str:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"N: 20\naccuracy: {accuracy}\nf1: 0.5\n", encoding="utf-8")
    return str(path)


def running(plan: Plan, desc: TaskDescriptor) -> TaskDescriptor:
    """Admit a single descriptor and claim it, as a worker would."""
    plan.add_tasks([desc])
    claimed = plan.next_ready(block=False)
    assert claimed is desc
    return desc
