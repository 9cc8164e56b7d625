# -*- coding: utf-8 -*-
"""mlprocess.tabular

Thin CSV helpers for the tabular data files the tasks exchange.

- Data files are CSV with a header row; one column is the class (target) attribute.
- Attributes are addressed by their 0-based column index in the header.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd


def read_header(path: str) -> List[str]:
    return [str(c) for c in pd.read_csv(path, nrows=0).columns]


def read_frame(path: str) -> pd.DataFrame:
    return pd.read_csv(path)


def write_frame(df: pd.DataFrame, path: str) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)


def parse_index_list(text: str) -> List[int]:
    """"3 0 7" -> [3, 0, 7] (ValueError on non-integers)."""
    return [int(tok) for tok in text.split()]


def read_index_file(path: str) -> List[int]:
    """All whitespace-separated attribute indices of a side file (ValueError on non-integers)."""
    return parse_index_list(Path(path).read_text(encoding="utf-8"))


def encode_features(train: pd.DataFrame, test: pd.DataFrame) -> Tuple[np.ndarray, np.ndarray]:
    """One-hot encode non-numeric columns consistently across train and test."""
    both = pd.concat([train, test], keys=["train", "test"])
    both = pd.get_dummies(both).fillna(0)
    return both.loc["train"].to_numpy(dtype=float), both.loc["test"].to_numpy(dtype=float)


def labels(df: pd.DataFrame, column: str) -> np.ndarray:
    return df[column].astype(str).to_numpy()


def column_names(header: Sequence[str], indices: Sequence[int]) -> List[str]:
    out: List[str] = []
    for i in indices:
        if i < 0 or i >= len(header):
            raise IndexError(f"attribute index {i} out of range (0..{len(header) - 1})")
        out.append(header[i])
    return out
