# -*- coding: utf-8 -*-
"""mlprocess.tasks.evaluation

Evaluation task: compare predicted class columns with the gold ones.

- params : class_arg
- inputs : [gold_1..gold_k, pred_1..pred_k] (first half gold, second half predictions, paired)
- outputs: [stats] with one `Name: value` line per measure (N, accuracy, macro precision /
           recall / f1), the format read by mlprocess.tasks.eval_selector
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List

import numpy as np
from sklearn.metrics import accuracy_score, precision_recall_fscore_support

from mlprocess.exceptions import ErrorKind
from mlprocess.plan.descriptor import TaskDescriptor
from mlprocess.plan.scheduler import Plan
from mlprocess.tabular import labels, read_frame
from mlprocess.tasks.base import Task
from mlprocess.tasks.factory import register_task

LOGGER = logging.getLogger(__name__)


def classification_stats(y_true: np.ndarray, y_pred: np.ndarray) -> Dict[str, float]:
    precision, recall, f1, _ = precision_recall_fscore_support(y_true, y_pred, average="macro", zero_division=0)
    return {
        "N": float(len(y_true)),
        "accuracy": float(accuracy_score(y_true, y_pred)),
        "precision": float(precision),
        "recall": float(recall),
        "f1": float(f1),
    }


def write_stats(stats: Dict[str, float], path: str) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with Path(path).open("w", encoding="utf-8") as f:
        for name, value in stats.items():
            f.write(f"{name}: {int(value) if name == 'N' else value}\n")


@register_task("eval_classification")
class EvalClassification(Task):

    def __init__(self, desc: TaskDescriptor) -> None:
        super().__init__(desc)
        self.check_inputs(lambda n: n >= 2 and n % 2 == 0, "an even number (gold files, then predictions)")
        self.check_outputs(1)
        self.class_arg = self.params.require_str("class_arg")

    def perform(self, plan: Plan) -> None:
        half = len(self.inputs) // 2
        gold: List[np.ndarray] = []
        pred: List[np.ndarray] = []
        for gold_file, pred_file in zip(self.inputs[:half], self.inputs[half:]):
            g = read_frame(gold_file)
            p = read_frame(pred_file)
            for name, df in ((gold_file, g), (pred_file, p)):
                if self.class_arg not in df.columns:
                    raise self.error(ErrorKind.INVALID_DATA, f"Class attribute '{self.class_arg}' not in {name}.")
            if len(g) != len(p):
                raise self.error(
                    ErrorKind.INVALID_DATA, f"{gold_file} has {len(g)} row(s), {pred_file} has {len(p)}."
                )
            gold.append(labels(g, self.class_arg))
            pred.append(labels(p, self.class_arg))

        stats = classification_stats(np.concatenate(gold), np.concatenate(pred))
        write_stats(stats, self.outputs[0])
        LOGGER.info("[Eval] %s: accuracy=%.4f f1=%.4f (N=%d)", self.id, stats["accuracy"], stats["f1"],
                    int(stats["N"]))
