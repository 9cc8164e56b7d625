# -*- coding: utf-8 -*-
"""
@module     mlprocess.models
@role       Model name -> scikit-learn estimator factory
@inputs
  - create_model(name, **kwargs): a fresh, unfitted estimator
@contracts
  - Unknown name -> KeyError (registry); bad keyword -> TypeError / ValueError from sklearn
@design
  - Factories are registered under "model/<name>" so `mlprocess kinds` can list them.
"""

from __future__ import annotations

from typing import Any, List

from sklearn.dummy import DummyClassifier
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.naive_bayes import GaussianNB
from sklearn.neighbors import KNeighborsClassifier
from sklearn.tree import DecisionTreeClassifier

from mlprocess.registry import create, list_names, register

MODEL_PREFIX = "model/"


@register(MODEL_PREFIX + "majority")
def majority(**kw: Any) -> DummyClassifier:
    kw.setdefault("strategy", "most_frequent")
    return DummyClassifier(**kw)


@register(MODEL_PREFIX + "logreg")
def logreg(**kw: Any) -> LogisticRegression:
    kw.setdefault("max_iter", 1000)
    return LogisticRegression(**kw)


@register(MODEL_PREFIX + "tree")
def tree(**kw: Any) -> DecisionTreeClassifier:
    kw.setdefault("random_state", 0)
    return DecisionTreeClassifier(**kw)


@register(MODEL_PREFIX + "forest")
def forest(**kw: Any) -> RandomForestClassifier:
    kw.setdefault("random_state", 0)
    return RandomForestClassifier(**kw)


@register(MODEL_PREFIX + "nb")
def nb(**kw: Any) -> GaussianNB:
    return GaussianNB(**kw)


@register(MODEL_PREFIX + "knn")
def knn(**kw: Any) -> KNeighborsClassifier:
    return KNeighborsClassifier(**kw)


def create_model(name: str, **kwargs: Any):
    return create(MODEL_PREFIX + name, **kwargs)


def model_names() -> List[str]:
    return [n[len(MODEL_PREFIX):] for n in list_names(MODEL_PREFIX)]
