"""
Multivariate Computation Module
===============================

Row-wise scale scores (count, mode, sum, mean, SD) across the items of a
scale, with reverse scoring done on the fly so no extra columns need to be
saved. Also a consecutive-identical-digits screen for careless responding.

Items are specified the same way as everywhere else (see data.resolve_vars).
"""

import re
from typing import Iterable

import pandas as pd
import numpy as np

from . import data as scale_data


def _item_frame(
    df: pd.DataFrame,
    var: str = None,
    items: Iterable = None,
    vars: list[str] = None,
    varrange: str = None,
    rev: list = None,
    likert: Iterable = None,
    func_name: str = None
) -> pd.DataFrame:
    """Select item columns and reverse the requested ones."""
    vars, rev_vars = scale_data.resolve_vars(df, var, items, vars, varrange, rev)
    frame = df[vars].apply(pd.to_numeric, errors='coerce')

    if rev_vars:
        if likert is None:
            likert = scale_data.estimate_likert(frame, vars, func_name, stacklevel=4)
        frame = scale_data.reverse_items(frame, rev_vars, likert)
    return frame


def count_value(
    df: pd.DataFrame,
    var: str = None,
    items: Iterable = None,
    vars: list[str] = None,
    varrange: str = None,
    value=np.nan
) -> pd.Series:
    """
    Count how many items in each row equal `value`.

    Parameters:
        value: Value to count. None or NaN counts missing values

    Returns:
        Series of counts aligned with df.index
    """
    vars, _ = scale_data.resolve_vars(df, var, items, vars, varrange)
    frame = df[vars]
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return frame.isna().sum(axis=1)
    return (frame == value).sum(axis=1)


def _first_mode(values: np.ndarray):
    uniques, first_pos, counts = [], {}, []
    for v in values:
        key = 'NA' if pd.isna(v) else v
        if key not in first_pos:
            first_pos[key] = len(uniques)
            uniques.append(v)
            counts.append(0)
        counts[first_pos[key]] += 1
    return uniques[int(np.argmax(counts))]


def row_mode(
    df: pd.DataFrame,
    var: str = None,
    items: Iterable = None,
    vars: list[str] = None,
    varrange: str = None
) -> pd.Series:
    """
    Most frequent value in each row.

    Ties go to the value that appears first in the row.
    """
    vars, _ = scale_data.resolve_vars(df, var, items, vars, varrange)
    return df[vars].apply(lambda row: _first_mode(row.values), axis=1)


def row_sum(
    df: pd.DataFrame,
    var: str = None,
    items: Iterable = None,
    vars: list[str] = None,
    varrange: str = None,
    rev: list = None,
    likert: Iterable = None,
    na_rm: bool = True
) -> pd.Series:
    """Sum across items per row (reverse scoring applied first)."""
    frame = _item_frame(df, var, items, vars, varrange, rev, likert, 'row_sum')
    return frame.sum(axis=1, skipna=na_rm, min_count=0)


def row_mean(
    df: pd.DataFrame,
    var: str = None,
    items: Iterable = None,
    vars: list[str] = None,
    varrange: str = None,
    rev: list = None,
    likert: Iterable = None,
    na_rm: bool = True
) -> pd.Series:
    """
    Mean across items per row (reverse scoring applied first).

    Parameters:
        df: Input DataFrame
        var, items, vars, varrange: Item selection (see data.resolve_vars)
        rev: Items to reverse
        likert: Response range, e.g. range(1, 6). Estimated from data if None
        na_rm: Ignore missing values

    Returns:
        Series of row means
    """
    frame = _item_frame(df, var, items, vars, varrange, rev, likert, 'row_mean')
    return frame.mean(axis=1, skipna=na_rm)


def row_std(
    df: pd.DataFrame,
    var: str = None,
    items: Iterable = None,
    vars: list[str] = None,
    varrange: str = None,
    rev: list = None,
    likert: Iterable = None,
    na_rm: bool = True
) -> pd.Series:
    """Sample standard deviation across items per row."""
    frame = _item_frame(df, var, items, vars, varrange, rev, likert, 'row_std')
    return frame.std(axis=1, skipna=na_rm, ddof=1)


def _as_token(value) -> str:
    if pd.isna(value):
        return 'NA'
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return str(int(value))
    return str(value)


def longest_run(text: str, values: Iterable = range(10)) -> int:
    """Length of the longest run (>= 2) of one repeated digit from `values`."""
    pattern = "|".join(f"(?:{re.escape(str(v))}){{2,}}" for v in values)
    runs = re.findall(pattern, text)
    return max((len(r) for r in runs), default=0)


def consec(
    df: pd.DataFrame,
    var: str = None,
    items: Iterable = None,
    vars: list[str] = None,
    varrange: str = None,
    values: Iterable = range(10)
) -> pd.Series:
    """
    Longest run of consecutive identical digits across items per row.

    Useful for detecting careless responding (e.g. "5555555").
    Returns 0 when no digit repeats.
    """
    vars, _ = scale_data.resolve_vars(df, var, items, vars, varrange)
    values = list(values)
    strings = df[vars].apply(lambda row: "".join(_as_token(v) for v in row.values), axis=1)
    return strings.apply(lambda s: longest_run(s, values)).astype(int)
