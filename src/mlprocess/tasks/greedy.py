# -*- coding: utf-8 -*-
"""mlprocess.tasks.greedy

Greedy forward attribute selection as a chain of round tasks.

Each round task R(n) does (at most) three things:

1. reduce   : pick the best trial of round n-1 by `measure`, compare it with the best of
              the round before and either accept it, stop (no sufficient improvement) or
              revert to the previous best (worse result);
2. route    : stash the winner as BEST_*(n-1), or, in the final state, copy the final
              winner to the task outputs;
3. advance  : for every candidate attribute set of size n, spawn a classifier trial and
              its evaluation, plus the next round task R(n+1) (or "finalize") depending on
              all of them.

The first round (n == start) only advances; the final state (n > end) only reduces.

Round bookkeeping lives on disk, next to the trial files:
    ROUND_STATS(n)        "Last best:<v>" then one attribute-index line per candidate;
                          the next round appends its decision ("Selected: ..." or a revert line)
    BEST_STATS/CLASSIF(n) the accepted winner of round n

Ids: the trials are "<base>#classif<n>-<i>" / "<base>#eval<n>-<i>", round tasks are
siblings "<base>#round<n+1>" and "<base>#finalize", where <base> is the id of the first
round task. Temp-file names use the expanded id of <base>.
"""

from __future__ import annotations

import itertools
import logging
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from mlprocess.exceptions import ErrorKind
from mlprocess.plan.descriptor import FINALIZE_SEGMENT, TaskDescriptor, TaskPath, expanded_id
from mlprocess.plan.scheduler import Plan
from mlprocess.tabular import read_header, read_index_file
from mlprocess.tasks.base import copy_file, delete_files, pair_inputs
from mlprocess.tasks.eval_selector import MEASURE, EvalSelector
from mlprocess.tasks.factory import register_task
from mlprocess.tasks.setting_trials import (
    CLASS_ARG,
    CLASSIFIER_KIND,
    DELETE_TEMPFILES,
    EVALUATION_KIND,
    MODEL,
    TEMPFILE,
)
from mlprocess.tasks.tempfiles import TempfileKind, require_pattern, tempfile_name

LOGGER = logging.getLogger(__name__)

# reserved parameters, set on spawned rounds only
ROUND_NUMBER = "round_number"
ATTRIB_COUNT = "attrib_count"
CLASS_ATTR_NO = "class_attr_no"

LAST_BEST = "Last best:"
SELECTED = "Selected:"


class RoundState(Enum):
    FIRST_ROUND = "first_round"
    REDUCE_AND_ADVANCE = "reduce_and_advance"
    FINAL = "final"


@register_task("greedy_attribute_search")
class GreedyAttributeSearch(EvalSelector):
    """One round of a greedy forward attribute search."""

    def __init__(self, desc: TaskDescriptor) -> None:
        super().__init__(desc)
        p = self.params
        self.check_outputs(3)
        self.pattern = require_pattern(p, TEMPFILE)

        if p.has("start") == p.has("start_attrib"):
            raise p.error("Exactly one of 'start' / 'start_attrib' must be set.")
        self.start_attrib: Optional[List[str]] = None
        if p.has("start"):
            self.start = p.require_int("start")
        else:
            self.start_attrib = p.require_str("start_attrib").split()
            self.start = len(self.start_attrib)
        self.end = p.require_int("end")

        self.spawned = p.has(ROUND_NUMBER)
        self.attrib_count: Optional[int] = None
        self.class_attr_no: Optional[int] = None
        if self.spawned:
            self.round = p.require_int(ROUND_NUMBER)
            self.attrib_count = p.require_int(ATTRIB_COUNT)
            self.class_attr_no = p.require_int(CLASS_ATTR_NO)
            self.end = min(self.end, self.attrib_count)
        else:
            self.round = self.start
        self._check_bounds()

        final = self.round > self.end
        self.class_arg = p.optional_str(CLASS_ARG) if final else p.require_str(CLASS_ARG)
        self.model = p.optional_str(MODEL) if final else p.require_str(MODEL)
        self.min_improvement = p.optional_float("min_improvement", 0.0)
        self.attrib_order = p.optional_bool("attrib_order")
        self.delete_tempfiles = p.optional_bool(DELETE_TEMPFILES)
        self.passthrough: Dict[str, str] = p.residual()

        extra = 1 if self.attrib_order else 0
        if self.round == self.start:
            self.check_inputs(lambda n: n == 2 + extra, f"{2 + extra} (train, eval{', order file' if extra else ''})")
        else:
            self.check_inputs(
                lambda n: n - extra >= 4 and (n - extra) % 2 == 0,
                "[stats, classification] pairs followed by train and eval",
            )

    def _check_bounds(self) -> None:
        if not 0 < self.start <= self.end:
            raise self.params.error(f"Bounds must satisfy 0 < start <= end, got start={self.start} end={self.end}.")
        if not self.start <= self.round <= self.end + 1:
            raise self.params.error(f"Round {self.round} outside [{self.start}, {self.end + 1}].")

    # ----------------
    # Derived state
    # ----------------
    @property
    def state(self) -> RoundState:
        if self.round > self.end:
            return RoundState.FINAL
        if self.round == self.start:
            return RoundState.FIRST_ROUND
        return RoundState.REDUCE_AND_ADVANCE

    @property
    def base_path(self) -> TaskPath:
        return self.path.parent if self.spawned else self.path

    def _data_inputs(self) -> Tuple[str, str]:
        k = len(self.inputs) - (1 if self.attrib_order else 0)
        return self.inputs[k - 2], self.inputs[k - 1]

    def _trial_inputs(self) -> List[str]:
        k = len(self.inputs) - (1 if self.attrib_order else 0)
        return self.inputs[:k - 2]

    def _tempfile(self, kind: TempfileKind, round: int, order: int = 0) -> str:
        return tempfile_name(self.pattern, kind, round, order, expanded_id(self.base_path))

    # ----------------
    # Execution
    # ----------------
    def perform(self, plan: Plan) -> None:
        train, evaluation = self._data_inputs()
        header = read_header(train)
        self._resolve_columns(header)
        LOGGER.info("[Greedy] %s: round %d of %d..%d (%s)", self.id, self.round, self.start, self.end,
                    self.state.value)

        last_best = float("-inf")
        attribs: List[int] = []
        if self.round > self.start:
            last_best, attribs = self._reduce(header)

        if self.round <= self.end:
            self._advance(plan, header, attribs, last_best, train, evaluation)

    def _resolve_columns(self, header: Sequence[str]) -> None:
        if self.class_attr_no is None:
            if self.class_arg not in header:
                raise self.error(ErrorKind.INVALID_DATA, f"Class attribute '{self.class_arg}' not in data header.")
            self.class_attr_no = list(header).index(self.class_arg)
        if self.attrib_count is None:
            self.attrib_count = len(header) - 1
            self.end = min(self.end, self.attrib_count)
            if self.start > self.end:
                raise self.params.error(
                    f"start={self.start} exceeds the {self.attrib_count} selectable attribute(s)."
                )

    def _reduce(self, header: Sequence[str]) -> Tuple[float, List[int]]:
        pairs = pair_inputs(self._trial_inputs())
        trail_path = self._tempfile(TempfileKind.ROUND_STATS, self.round - 1)
        last_best, candidates = self._read_trail(trail_path)
        if len(candidates) != len(pairs["stats"]):
            raise self.error(
                ErrorKind.INVALID_DATA,
                f"File {trail_path}: {len(candidates)} candidate(s) for {len(pairs['stats'])} evaluation(s).",
            )

        order = self._scan_order(candidates) if self.attrib_order else None
        best = self.select_best(pairs["stats"], order)
        attribs = list(candidates[best.index])
        selected = True

        if best.value < last_best + self.min_improvement:
            if best.value >= last_best:
                LOGGER.info("[Greedy] %s: convergence criterion met (%s < %s + %s)", self.id, best.value, last_best,
                            self.min_improvement)
            else:
                LOGGER.info("[Greedy] %s: best %s worse than %s, reverting", self.id, best.value, last_best)
                selected = False
                attribs = attribs[:-1]
            self.end = self.round - 1
        if best.value >= last_best:
            last_best = best.value

        mask = self.create_mask(attribs)
        names = self._names(header, attribs)
        with Path(trail_path).open("a", encoding="utf-8") as f:
            if selected:
                f.write(f"{SELECTED} {best.index} with {self.measure} of {best.value}\n")
                f.write(" ".join(names) + "\n")
            else:
                f.write(f"Best {best.value} worse than previous, reverting.\n")

        self._route(pairs, best.index if selected else None, names)
        LOGGER.debug("[Greedy] %s: mask %s", self.id, np.flatnonzero(mask).tolist())
        return last_best, attribs

    def _route(self, pairs: Dict[str, List[str]], winner: Optional[int], names: List[str]) -> None:
        final = self.round > self.end
        if final:
            Path(self.outputs[2]).parent.mkdir(parents=True, exist_ok=True)
            Path(self.outputs[2]).write_text(" ".join(names) + "\n", encoding="utf-8")

        if winner is None:
            if self.round - 2 < self.start:
                raise self.error(ErrorKind.INVALID_DATA, "No earlier round to revert to.")
            copy_file(self._tempfile(TempfileKind.BEST_CLASSIF, self.round - 2), self.outputs[0])
            copy_file(self._tempfile(TempfileKind.BEST_STATS, self.round - 2), self.outputs[1])
        elif final:
            copy_file(pairs["classif"][winner], self.outputs[0])
            copy_file(pairs["stats"][winner], self.outputs[1])
        else:
            copy_file(pairs["classif"][winner], self._tempfile(TempfileKind.BEST_CLASSIF, self.round - 1))
            copy_file(pairs["stats"][winner], self._tempfile(TempfileKind.BEST_STATS, self.round - 1))

        if self.delete_tempfiles:
            delete_files(pairs["stats"] + pairs["classif"])
        if final:
            LOGGER.info("[Greedy] %s: final attribute set: %s", self.id, " ".join(names))

    def _advance(
        self,
        plan: Plan,
        header: Sequence[str],
        attribs: List[int],
        last_best: float,
        train: str,
        evaluation: str,
    ) -> None:
        if self.round == self.start:
            candidates = self.first_candidates(header)
        else:
            mask = self.create_mask(attribs)
            candidates = [attribs + [int(a)] for a in np.flatnonzero(~mask)]

        trail_path = self._tempfile(TempfileKind.ROUND_STATS, self.round)
        Path(trail_path).parent.mkdir(parents=True, exist_ok=True)
        with Path(trail_path).open("w", encoding="utf-8") as f:
            f.write(f"{LAST_BEST}{last_best}\n")
            for cand in candidates:
                f.write(" ".join(str(a) for a in cand) + "\n")

        self.spawn(plan, self.next_round(candidates, train, evaluation))
        LOGGER.info("[Greedy] %s: round %d spawned %d candidate(s)", self.id, self.round, len(candidates))

    # ----------------
    # Candidates
    # ----------------
    def first_candidates(self, header: Sequence[str]) -> List[List[int]]:
        if self.start_attrib is not None:
            unknown = [name for name in self.start_attrib if name not in header]
            if unknown:
                raise self.error(ErrorKind.INVALID_DATA, f"Unknown attribute(s): {', '.join(unknown)}")
            cand = [list(header).index(name) for name in self.start_attrib]
            self.create_mask(cand)
            return [cand]
        # combinations over non-class positions, then shifted past the class column
        return [
            [a + 1 if a >= self.class_attr_no else a for a in combo]
            for combo in itertools.combinations(range(self.attrib_count), self.start)
        ]

    def create_mask(self, attribs: Sequence[int]) -> np.ndarray:
        """Boolean column mask of an attribute set; the class column is always set."""
        mask = np.zeros(self.attrib_count + 1, dtype=bool)
        if any(a < 0 or a > self.attrib_count for a in attribs):
            raise self.error(ErrorKind.INVALID_DATA, f"Attribute index out of range in {list(attribs)}.")
        mask[list(attribs)] = True
        if mask[self.class_attr_no] or int(mask.sum()) != len(attribs):
            raise self.error(ErrorKind.INVALID_DATA, f"Invalid attribute set {list(attribs)}.")
        mask[self.class_attr_no] = True
        return mask

    def _names(self, header: Sequence[str], attribs: Sequence[int]) -> List[str]:
        return [header[a] for a in attribs]

    def _read_trail(self, path: str) -> Tuple[float, List[List[int]]]:
        with Path(path).open("r", encoding="utf-8") as f:
            lines = [line.strip() for line in f if line.strip()]
        if not lines or not lines[0].startswith(LAST_BEST):
            raise self.error(ErrorKind.INVALID_DATA, f"File {path}: missing '{LAST_BEST}' line.")
        try:
            last_best = float(lines[0][len(LAST_BEST):])
            candidates = [[int(tok) for tok in line.split()] for line in lines[1:]]
        except ValueError:
            raise self.error(ErrorKind.INVALID_DATA, f"File {path}: malformed round statistics.") from None
        return last_best, candidates

    def _scan_order(self, candidates: Sequence[Sequence[int]]) -> List[int]:
        """Candidate positions ordered by where their last-added attribute appears in the order file."""
        order_file = self.inputs[-1]
        try:
            listed = read_index_file(order_file)
        except ValueError:
            raise self.error(ErrorKind.INVALID_DATA, f"File {order_file}: attribute indices expected.") from None

        order: List[int] = []
        seen = set()
        for attrib in listed:
            for i, cand in enumerate(candidates):
                if i not in seen and cand and cand[-1] == attrib:
                    order.append(i)
                    seen.add(i)
        order.extend(i for i in range(len(candidates)) if i not in seen)
        return order

    # ----------------
    # Spawning
    # ----------------
    def next_round(self, candidates: List[List[int]], train: str, evaluation: str) -> List[TaskDescriptor]:
        base = self.base_path
        batch: List[TaskDescriptor] = []
        trial_files: List[str] = []
        for i, cand in enumerate(candidates):
            classif_file = self._tempfile(TempfileKind.CLASSIF, self.round, i)
            stats_file = self._tempfile(TempfileKind.STATS, self.round, i)

            params = {CLASS_ARG: self.class_arg, MODEL: self.model}
            params.update(self.passthrough)
            params["select_args"] = " ".join(str(a) for a in cand)
            classif = TaskDescriptor(base.child(f"classif{self.round}-{i}"), CLASSIFIER_KIND, params,
                                     [train, evaluation], [classif_file])
            evaluate = TaskDescriptor(base.child(f"eval{self.round}-{i}"), EVALUATION_KIND,
                                      {CLASS_ARG: self.class_arg}, [evaluation, classif_file], [stats_file])
            evaluate.add_dependency(classif)
            batch.extend([classif, evaluate])
            trial_files.extend([stats_file, classif_file])

        segment = FINALIZE_SEGMENT if self.round == self.end else f"round{self.round + 1}"
        inputs = trial_files + [train, evaluation]
        if self.attrib_order:
            inputs.append(self.inputs[-1])
        nxt = TaskDescriptor(base.child(segment), self.kind, self.next_params(), inputs, self.outputs)
        for task in batch:
            nxt.add_dependency(task)
        batch.append(nxt)
        return batch

    def next_params(self) -> Dict[str, object]:
        params: Dict[str, object] = dict(self.passthrough)
        params.update({
            MEASURE: self.measure,
            TEMPFILE: self.pattern,
            CLASS_ARG: self.class_arg,
            MODEL: self.model,
            "end": self.end,
            "min_improvement": self.min_improvement,
            "attrib_order": self.attrib_order,
            DELETE_TEMPFILES: self.delete_tempfiles,
            ROUND_NUMBER: self.round + 1,
            ATTRIB_COUNT: self.attrib_count,
            CLASS_ATTR_NO: self.class_attr_no,
        })
        if self.start_attrib is not None:
            params["start_attrib"] = " ".join(self.start_attrib)
        else:
            params["start"] = self.start
        return params
