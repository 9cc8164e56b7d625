# -*- coding: utf-8 -*-
"""
@module: mlprocess.tasks.setting_trials
@role  : Trial-and-select tasks: run N classifier variants, keep the best one
@overview:
    A trial task works in two modes.

    generation (default):
        builds, for every variant i, a pair
            classif<i>  (kind "classifier",          [train, eval] -> CLASSIF(i))
            eval<i>     (kind "eval_classification", [eval, CLASSIF(i)] -> STATS(i))
        plus one "select" task of the same kind in selection mode that depends on all of
        them, and splices the batch into the plan.
    selection (marker parameter `select_from_evaluations`):
        inputs are [stats_0, classif_0, stats_1, classif_1, ...]; the best stats file by
        `measure` wins; its classification and stats are copied to outputs 1 / 2 and the
        winning settings are written to output 3.

    SettingSelector            : variants = combinations of parameter value lists
    SubsequentAttributeAdder   : variants = growing prefixes of an attribute order file

@design:
    - Subclasses only describe variants (`trial_params`), what the select task must know
      (`selection_params`) and how to write the winner (`write_best_settings`).
    - Temp files are named "(<i>)" from the `tempfile` pattern; see mlprocess.tasks.tempfiles.
"""

from __future__ import annotations

import itertools
import logging
from pathlib import Path
from typing import Dict, List

from mlprocess.exceptions import ErrorKind
from mlprocess.plan.descriptor import TaskDescriptor, expanded_id
from mlprocess.plan.scheduler import Plan
from mlprocess.tabular import read_index_file
from mlprocess.tasks.base import copy_file, delete_files, pair_inputs
from mlprocess.tasks.eval_selector import MEASURE, EvalSelector
from mlprocess.tasks.factory import register_task
from mlprocess.tasks.tempfiles import TempfileKind, require_pattern, tempfile_name

LOGGER = logging.getLogger(__name__)

SELECT_MARKER = "select_from_evaluations"
CLASS_ARG = "class_arg"
MODEL = "model"
TEMPFILE = "tempfile"
DELETE_TEMPFILES = "delete_tempfiles"

CLASSIFIER_KIND = "classifier"
EVALUATION_KIND = "eval_classification"


class SettingTrials(EvalSelector):
    """Common two-mode machinery; subclasses define the variants."""

    # number of inputs in generation mode
    n_trial_inputs = 2

    def __init__(self, desc: TaskDescriptor) -> None:
        super().__init__(desc)
        self.check_outputs(3)
        self.selecting = self.params.optional_bool(SELECT_MARKER)
        self.delete_tempfiles = self.params.optional_bool(DELETE_TEMPFILES)

        if self.selecting:
            self.check_inputs(lambda n: n >= 2 and n % 2 == 0, "an even number of [stats, classification] inputs")
        else:
            self.check_inputs(lambda n: n == self.n_trial_inputs, str(self.n_trial_inputs))
            self.class_arg = self.params.require_str(CLASS_ARG)
            self.model = self.params.require_str(MODEL)
            self.pattern = require_pattern(self.params, TEMPFILE)

        self.parse_params()
        if not self.selecting:
            self.passthrough = self.classifier_passthrough()

    # ----------------
    # Subclass hooks
    # ----------------
    def parse_params(self) -> None:
        """Consume subclass-specific parameters (both modes)."""

    def classifier_passthrough(self) -> Dict[str, str]:
        """Options passed unchanged to every classifier trial."""
        return self.params.residual()

    def trial_params(self) -> List[Dict[str, str]]:
        raise NotImplementedError

    def selection_params(self) -> Dict[str, str]:
        return {}

    def write_best_settings(self, index: int, path: str) -> None:
        raise NotImplementedError

    # ----------------
    # Execution
    # ----------------
    def perform(self, plan: Plan) -> None:
        if self.selecting:
            self.select()
        else:
            self.generate(plan)

    def generate(self, plan: Plan) -> None:
        variants = self.trial_params()
        if not variants:
            raise self.error(ErrorKind.INVALID_PARAMS, "No settings to try.")

        train, evaluation = self.inputs[0], self.inputs[1]
        ex_id = expanded_id(self.path)
        batch: List[TaskDescriptor] = []
        select_inputs: List[str] = []
        for i, variant in enumerate(variants):
            classif_file = tempfile_name(self.pattern, TempfileKind.CLASSIF, None, i, ex_id)
            stats_file = tempfile_name(self.pattern, TempfileKind.STATS, None, i, ex_id)

            params = {CLASS_ARG: self.class_arg, MODEL: self.model}
            params.update(self.passthrough)
            params.update(variant)
            classif = TaskDescriptor(self.path.child(f"classif{i}"), CLASSIFIER_KIND, params,
                                     [train, evaluation], [classif_file])
            evaluate = TaskDescriptor(self.path.child(f"eval{i}"), EVALUATION_KIND, {CLASS_ARG: self.class_arg},
                                      [evaluation, classif_file], [stats_file])
            evaluate.add_dependency(classif)
            batch.extend([classif, evaluate])
            select_inputs.extend([stats_file, classif_file])

        select_params = {MEASURE: self.measure, SELECT_MARKER: True, DELETE_TEMPFILES: self.delete_tempfiles}
        select_params.update(self.selection_params())
        select = TaskDescriptor(self.path.child("select"), self.kind, select_params, select_inputs, self.outputs)
        for task in batch:
            select.add_dependency(task)
        batch.append(select)

        self.spawn(plan, batch)
        LOGGER.info("[%s] %s: spawned %d trial(s)", self.kind, self.id, len(variants))

    def select(self) -> None:
        pairs = pair_inputs(self.inputs)
        best = self.select_best(pairs["stats"])
        copy_file(pairs["classif"][best.index], self.outputs[0])
        copy_file(pairs["stats"][best.index], self.outputs[1])
        self.write_best_settings(best.index, self.outputs[2])
        LOGGER.info("[%s] %s: trial %d selected with %s of %s", self.kind, self.id, best.index, self.measure,
                    best.value)
        if self.delete_tempfiles:
            delete_files(self.inputs)


@register_task("setting_selector")
class SettingSelector(SettingTrials):
    """Try every combination of classifier option values.

    Residual parameters hold space-separated value lists, e.g. ``C: "0.1 1 10"``.
    By default the variants are the Cartesian product (last parameter varies fastest);
    ``combine: zip`` pairs the values positionally instead.
    """

    def parse_params(self) -> None:
        self.combine = (self.params.optional_str("combine", "product") or "product").lower()
        if self.combine not in ("product", "zip"):
            raise self.params.error(f"Parameter 'combine' must be 'product' or 'zip', got {self.combine!r}.")
        self.settings: Dict[str, List[str]] = {k: v.split() for k, v in self.params.residual().items()}
        if not self.settings:
            raise self.params.error("No settings to try.")
        self.variants = self._combine()
        if self.selecting and len(self.variants) != len(self.inputs) // 2:
            raise self.error(
                ErrorKind.WRONG_NUM_INPUTS,
                f"{len(self.variants)} setting variant(s) but {len(self.inputs) // 2} evaluation pair(s).",
            )

    def _combine(self) -> List[Dict[str, str]]:
        names = list(self.settings)
        if self.combine == "zip":
            counts = {len(vals) for vals in self.settings.values()}
            if len(counts) != 1:
                raise self.params.error(
                    "All settings must have the same number of values with 'combine: zip': "
                    + ", ".join(f"{k}={len(v)}" for k, v in self.settings.items())
                )
            rows = zip(*self.settings.values())
        else:
            rows = itertools.product(*self.settings.values())
        return [dict(zip(names, row)) for row in rows]

    def classifier_passthrough(self) -> Dict[str, str]:
        # every residual key is a setting list; constant options are one-value lists
        return {}

    def trial_params(self) -> List[Dict[str, str]]:
        return self.variants

    def selection_params(self) -> Dict[str, str]:
        params = {"combine": self.combine}
        params.update({k: " ".join(v) for k, v in self.settings.items()})
        return params

    def write_best_settings(self, index: int, path: str) -> None:
        best = self.variants[index]
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with Path(path).open("w", encoding="utf-8") as f:
            for name in sorted(best):
                f.write(f"{name}:{best[name]}\n")


@register_task("subsequent_attribute_adder")
class SubsequentAttributeAdder(SettingTrials):
    """Try growing prefixes of a ranked attribute list.

    Inputs: [train, eval, attribute_order_file]. The order file lists column indices,
    best first. Trial k classifies with the first size_k attributes, where the sizes run
    from `start` to `end` (capped at the list length) in steps of `step`.
    """

    n_trial_inputs = 3
    ORDER_FILE = "attribute_order_file"

    def parse_params(self) -> None:
        self.start = self.params.optional_int("start", 1)
        self.end = self.params.optional_int("end", 0) or None
        self.step = self.params.optional_int("step", 1)
        if self.step < 1:
            raise self.params.error(f"Parameter 'step' must be positive, got {self.step}.")
        if self.end is not None and self.end < max(self.start, 1):
            raise self.params.error(f"Parameter 'end' ({self.end}) is below 'start' ({self.start}).")
        if self.selecting:
            self.order_file = self.params.require_str(self.ORDER_FILE)
        else:
            self.order_file = self.inputs[2]

    def _read_order(self) -> List[int]:
        try:
            return read_index_file(self.order_file)
        except ValueError:
            raise self.error(ErrorKind.INVALID_DATA, f"File {self.order_file}: attribute indices expected.") from None

    def sizes(self, n_listed: int) -> List[int]:
        first = min(max(self.start, 1), n_listed)
        last = n_listed if self.end is None else min(self.end, n_listed)
        return list(range(first, last + 1, self.step))

    def trial_params(self) -> List[Dict[str, str]]:
        order = self._read_order()
        if not order:
            raise self.error(ErrorKind.INVALID_DATA, f"File {self.order_file}: no attributes listed.")
        return [{"select_args": " ".join(str(a) for a in order[:size])} for size in self.sizes(len(order))]

    def selection_params(self) -> Dict[str, str]:
        params = {"start": str(self.start), "step": str(self.step), self.ORDER_FILE: self.order_file}
        if self.end is not None:
            params["end"] = str(self.end)
        return params

    def write_best_settings(self, index: int, path: str) -> None:
        order = self._read_order()
        sizes = self.sizes(len(order))
        if index >= len(sizes):
            raise self.error(ErrorKind.INVALID_DATA, f"Trial {index} has no matching attribute prefix.")
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        Path(path).write_text(" ".join(str(a) for a in order[:sizes[index]]) + "\n", encoding="utf-8")
