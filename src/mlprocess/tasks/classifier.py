# -*- coding: utf-8 -*-
"""mlprocess.tasks.classifier

Classifier task: train on one CSV file, predict another.

- params : class_arg (class column name), model (see mlprocess.models),
           select_args (optional, column indices to use), anything else = estimator options
- inputs : [train, eval]
- outputs: [classification] = eval rows restricted to the used columns, class column
           replaced by the predictions
"""

from __future__ import annotations

import logging
from typing import Dict

from mlprocess.config import parse_scalar
from mlprocess.exceptions import ErrorKind
from mlprocess.models import create_model
from mlprocess.plan.descriptor import TaskDescriptor
from mlprocess.plan.scheduler import Plan
from mlprocess.tabular import column_names, encode_features, labels, parse_index_list, read_frame, write_frame
from mlprocess.tasks.base import Task
from mlprocess.tasks.factory import register_task

LOGGER = logging.getLogger(__name__)


@register_task("classifier")
class ClassifierTask(Task):

    def __init__(self, desc: TaskDescriptor) -> None:
        super().__init__(desc)
        self.check_inputs(lambda n: n == 2, "2 (train, eval)")
        self.check_outputs(1)
        self.class_arg = self.params.require_str("class_arg")
        self.model_name = self.params.require_str("model")
        select = self.params.optional_str("select_args")
        try:
            self.select_args = parse_index_list(select) if select is not None else None
        except ValueError:
            raise self.params.error(f"Parameter 'select_args' must list column indices, got {select!r}.") from None

        self.options: Dict[str, object] = {k: parse_scalar(v) for k, v in self.params.residual().items()}
        try:
            self.model = create_model(self.model_name, **self.options)
        except KeyError:
            raise self.params.error(f"Unknown model '{self.model_name}'.") from None
        except (TypeError, ValueError) as exc:
            raise self.params.error(f"Bad options for model '{self.model_name}': {exc}") from None

    def perform(self, plan: Plan) -> None:
        train = read_frame(self.inputs[0])
        test = read_frame(self.inputs[1])
        header = [str(c) for c in train.columns]
        if self.class_arg not in header:
            raise self.error(ErrorKind.INVALID_DATA, f"Class attribute '{self.class_arg}' not in {self.inputs[0]}.")
        if [str(c) for c in test.columns] != header:
            raise self.error(ErrorKind.INVALID_DATA, f"{self.inputs[0]} and {self.inputs[1]} have different columns.")

        if self.select_args is None:
            used = [c for c in header if c != self.class_arg]
        else:
            try:
                used = [c for c in column_names(header, self.select_args) if c != self.class_arg]
            except IndexError as exc:
                raise self.error(ErrorKind.INVALID_DATA, str(exc)) from None
        if not used:
            raise self.error(ErrorKind.INVALID_DATA, "No attributes selected.")

        x_train, x_test = encode_features(train[used], test[used])
        self.model.fit(x_train, labels(train, self.class_arg))
        out = test[used].copy()
        out[self.class_arg] = self.model.predict(x_test)
        write_frame(out, self.outputs[0])
        LOGGER.info("[Classifier] %s: %s on %d attribute(s), %d row(s) -> %s", self.id, self.model_name, len(used),
                    len(out), self.outputs[0])
