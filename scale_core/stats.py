"""
Descriptive Statistics Module
=============================

Functions for descriptive statistics, frequency tables, and correlation
matrices with significance tests.
"""

from pathlib import Path
from typing import Union

import pandas as pd
import numpy as np
from scipy import stats as scipy_stats

from . import report


def describe(
    df: pd.DataFrame,
    vars: list[str] = None,
    digits: int = None,
    file: Union[str, Path] = None
) -> pd.DataFrame:
    """
    Descriptive statistics for each variable.

    Parameters:
        df: Input DataFrame
        vars: Columns to describe. Defaults to all numeric columns
        digits: Decimal places in the printed table
        file: Optional text file to write the table to

    Returns:
        DataFrame with N, Missing, Mean, SD, Median, Min, Max, Skewness, Kurtosis
    """
    if vars is None:
        vars = list(df.select_dtypes(include='number').columns)
    missing = [v for v in vars if v not in df.columns]
    if missing:
        raise KeyError(f"Column(s) not found in data: {', '.join(map(str, missing))}")

    rows = []
    for v in vars:
        x = pd.to_numeric(df[v], errors='coerce')
        valid = x.dropna()
        n = len(valid)
        rows.append({
            'N': n,
            'Missing': int(x.isna().sum()),
            'Mean': valid.mean() if n else np.nan,
            'SD': valid.std(ddof=1) if n > 1 else np.nan,
            'Median': valid.median() if n else np.nan,
            'Min': valid.min() if n else np.nan,
            'Max': valid.max() if n else np.nan,
            'Skewness': scipy_stats.skew(valid, bias=False) if n > 2 else np.nan,
            'Kurtosis': scipy_stats.kurtosis(valid, bias=False) if n > 3 else np.nan,
        })

    desc = pd.DataFrame(rows, index=vars)
    desc['N'] = desc['N'].astype(int)
    desc['Missing'] = desc['Missing'].astype(int)

    report.print_table(desc, digits=digits, title="Descriptive Statistics:", file=file)
    return desc


def freq(series: pd.Series, sort: bool = False, digits: int = 1) -> pd.DataFrame:
    """
    Frequency table with counts and percentages.

    Parameters:
        series: Variable to tabulate
        sort: Sort by count (descending) instead of by value
        digits: Decimal places for percentages in the printed table

    Returns:
        DataFrame with columns N and % indexed by value; a trailing "(NA)"
        row is added when there are missing values
    """
    counts = series.value_counts(dropna=True, sort=sort)
    if not sort:
        counts = counts.sort_index()

    n_missing = int(series.isna().sum())
    if n_missing:
        counts = pd.concat([counts, pd.Series({'(NA)': n_missing})])

    table = pd.DataFrame({
        'N': counts.astype(int),
        '%': 100 * counts / len(series),
    })
    table.index = [str(i) for i in table.index]

    title = f"Frequency Statistics: {series.name}" if series.name is not None else "Frequency Statistics:"
    report.print_table(table, digits=digits, title=title, note=f"Total N = {len(series):,}")
    return table


def corr_matrix(
    df: pd.DataFrame,
    vars: list[str] = None,
    method: str = 'pearson'
) -> tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    """
    Correlation matrix with p-values (pairwise deletion).

    Parameters:
        df: Input DataFrame
        vars: Columns to correlate. Defaults to all numeric columns
        method: 'pearson' or 'spearman'

    Returns:
        Tuple of (r, p, n) DataFrames
    """
    tests = {
        'pearson': scipy_stats.pearsonr,
        'spearman': scipy_stats.spearmanr,
    }
    if method not in tests:
        raise ValueError(f"`method` should be one of {', '.join(repr(m) for m in tests)}")

    if vars is None:
        vars = list(df.select_dtypes(include='number').columns)
    data = df[vars].apply(pd.to_numeric, errors='coerce')

    r = pd.DataFrame(np.eye(len(vars)), index=vars, columns=vars)
    p = pd.DataFrame(np.zeros((len(vars), len(vars))), index=vars, columns=vars)
    n = pd.DataFrame(0, index=vars, columns=vars)

    for i, a in enumerate(vars):
        n.loc[a, a] = int(data[a].notna().sum())
        for b in vars[i + 1:]:
            pair = data[[a, b]].dropna()
            n.loc[a, b] = n.loc[b, a] = len(pair)
            if len(pair) < 3:
                r.loc[a, b] = r.loc[b, a] = np.nan
                p.loc[a, b] = p.loc[b, a] = np.nan
                continue
            stat, pval = tests[method](pair[a], pair[b])
            r.loc[a, b] = r.loc[b, a] = float(stat)
            p.loc[a, b] = p.loc[b, a] = float(pval)

    return r, p, n


def print_corr_matrix(
    r: pd.DataFrame,
    p: pd.DataFrame,
    digits: int = 2,
    file: Union[str, Path] = None
) -> str:
    """Print the lower triangle of a correlation matrix with significance markers."""
    vars = list(r.index)
    cells = pd.DataFrame("", index=vars, columns=vars)
    for i, a in enumerate(vars):
        for j, b in enumerate(vars[:i + 1]):
            if i == j:
                cells.loc[a, b] = "1"
            elif not np.isnan(r.loc[a, b]):
                cells.loc[a, b] = f"{r.loc[a, b]:.{digits}f}{report.sig_marker(p.loc[a, b])}"

    return report.print_table(
        cells, title="Correlation Matrix:",
        note="* p < .05, ** p < .01, *** p < .001", file=file
    )
