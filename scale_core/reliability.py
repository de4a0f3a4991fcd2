"""
Reliability Analysis Module
===========================

Scale reliability (Cronbach's alpha, McDonald's omega) and item statistics
(item-rest correlation, alpha if item deleted).
"""

import warnings
from pathlib import Path
from typing import Iterable, Union

import pandas as pd
import numpy as np
from factor_analyzer import FactorAnalyzer

from . import config
from . import data as scale_data
from . import report


def cronbach_alpha(df: pd.DataFrame) -> float:
    """
    Calculate Cronbach's alpha (raw scores) for internal consistency.

    Parameters:
        df: DataFrame with items as columns, cases as rows

    Returns:
        Cronbach's alpha coefficient (NaN with fewer than 2 items or cases)
    """
    df_clean = df.dropna()
    n_items = df_clean.shape[1]
    if len(df_clean) < 2 or n_items < 2:
        return np.nan

    item_variances = df_clean.var(axis=0, ddof=1)
    total_variance = df_clean.sum(axis=1).var(ddof=1)
    if total_variance == 0:
        return np.nan

    return (n_items / (n_items - 1)) * (1 - item_variances.sum() / total_variance)


def standardized_alpha(df: pd.DataFrame) -> float:
    """Cronbach's alpha based on standardized items (mean inter-item r)."""
    df_clean = df.dropna()
    k = df_clean.shape[1]
    if len(df_clean) < 2 or k < 2:
        return np.nan

    corr = df_clean.corr().values
    mean_r = corr[np.triu_indices(k, 1)].mean()
    return k * mean_r / (1 + (k - 1) * mean_r)


def mcdonald_omega(df: pd.DataFrame) -> float:
    """
    McDonald's omega total from a one-factor solution.

    omega = (sum of loadings)^2 / (sum of all item correlations),
    loadings from a minimum residual factor analysis.
    """
    df_clean = df.dropna()
    if len(df_clean) < 3 or df_clean.shape[1] < 2:
        return np.nan

    with warnings.catch_warnings():
        warnings.simplefilter('ignore')
        fa = FactorAnalyzer(n_factors=1, rotation=None, method='minres')
        fa.fit(df_clean.values)

    loadings = fa.loadings_[:, 0]
    total = df_clean.corr().values.sum()
    return float(loadings.sum() ** 2 / total)


def first_component_loadings(df: pd.DataFrame) -> pd.Series:
    """
    Loadings on the first principal component, signed so they sum positive.
    """
    with warnings.catch_warnings():
        warnings.simplefilter('ignore')
        pca = FactorAnalyzer(n_factors=1, rotation=None, method='principal')
        pca.fit(df.values)

    loadings = pca.loadings_[:, 0]
    if loadings.sum() < 0:
        loadings = -loadings
    return pd.Series(loadings, index=df.columns)


def items_needing_reversal(df: pd.DataFrame) -> list[str]:
    """Items that correlate negatively with the first principal component."""
    loadings = first_component_loadings(df.dropna())
    return list(loadings[loadings < 0].index)


def item_statistics(df: pd.DataFrame) -> pd.DataFrame:
    """
    Item statistics for a scale.

    Parameters:
        df: Complete-case item DataFrame

    Returns:
        DataFrame indexed by item with Mean, S.D., Item-Rest Cor.
        (corrected item-total correlation), and Cronbach's alpha if deleted
    """
    total = df.sum(axis=1)
    rows = []
    for item in df.columns:
        rest = total - df[item]
        rows.append({
            'Mean': df[item].mean(),
            'S.D.': df[item].std(ddof=1),
            'Item-Rest Cor.': df[item].corr(rest),
            'Cronbach’s α': cronbach_alpha(df.drop(columns=item)),
        })
    return pd.DataFrame(rows, index=df.columns)


def alpha(
    df: pd.DataFrame,
    var: str = None,
    items: Iterable = None,
    vars: list[str] = None,
    varrange: str = None,
    rev: list = None,
    digits: int = None,
    file: Union[str, Path] = None
) -> dict:
    """
    Reliability analysis: Cronbach's alpha, McDonald's omega, item statistics.

    Incomplete cases are dropped listwise. Reversed items are flipped with
    their own observed min + max and shown as "<item> (rev)".

    Parameters:
        df: Input DataFrame
        var, items, vars, varrange: Item selection (see data.resolve_vars)
        rev: Items to reverse, as names or item numbers (with `var`)
        digits: Decimal places. Defaults to config.DEFAULT_DIGITS
        file: Optional text file to write the report to

    Returns:
        Dictionary with alpha, std_alpha, omega, scale mean/SD, item table,
        items needing reversal, warnings, and the printed report text
    """
    if digits is None:
        digits = config.DEFAULT_DIGITS

    prepared = scale_data.prepare_items(df, var, items, vars, varrange, rev)
    data = prepared.data
    if prepared.n_valid < 2:
        raise ValueError(f"Reliability analysis needs at least 2 complete cases, got {prepared.n_valid}")
    if prepared.n_items < 2:
        raise ValueError("Reliability analysis needs at least 2 items")

    raw_alpha = cronbach_alpha(data)
    std_alpha = standardized_alpha(data)
    omega = mcdonald_omega(data)
    score = data.mean(axis=1)
    items_table = item_statistics(data)
    flagged = items_needing_reversal(data)
    need_rev = [v for v, col in zip(prepared.vars, data.columns) if col in flagged]
    low, high = prepared.scale_range

    lines = [
        report.banner("RELIABILITY ANALYSIS"),
        "",
        "Summary:",
        f"  Total Items: {prepared.n_items}",
        f"  Scale Range: {low:g} ~ {high:g}",
        f"  Total Cases: {prepared.n_total}",
        f"  Valid Cases: {prepared.n_valid} ({prepared.valid_pct:.1f}%)",
        "",
        "Scale Statistics:",
        f"  Mean = {score.mean():.{digits}f}",
        f"  S.D. = {score.std(ddof=1):.{digits}f}",
        f"  Cronbach’s α = {raw_alpha:.{digits}f} ({config.get_alpha_label(raw_alpha)})",
        f"  Standardized α = {std_alpha:.{digits}f}",
        f"  McDonald’s ω = {omega:.{digits}f}",
    ]

    messages = []
    if raw_alpha < config.LOW_ALPHA_THRESHOLD:
        messages.append("Warning: Scale reliability is low. You may check item codings.")
    if len(need_rev) == 1:
        messages.append(f"Item {need_rev[0]} correlates negatively with the scale and may be reversed.")
    elif len(need_rev) > 1:
        messages.append(f"Items {', '.join(need_rev)} correlate negatively with the scale and may be reversed.")
    if need_rev:
        suggestion = ", ".join(f'"{v}"' for v in need_rev)
        messages.append(f"You can specify this argument: rev=[{suggestion}]")
    if messages:
        lines += [""] + messages

    lines += [
        "",
        report.format_table(
            items_table, digits=digits,
            title="Item Statistics (Cronbach’s α If Item Deleted):",
            note="Item-Rest Cor. = Corrected Item-Total Correlation",
        ),
    ]

    text = "\n".join(lines)
    print(text)
    if file is not None:
        report.write_text(text, file)

    return {
        'alpha': raw_alpha,
        'std_alpha': std_alpha,
        'omega': omega,
        'mean': score.mean(),
        'sd': score.std(ddof=1),
        'items': items_table,
        'items_need_rev': need_rev,
        'warnings': messages,
        'n_items': prepared.n_items,
        'n_total': prepared.n_total,
        'n_valid': prepared.n_valid,
        'data': data,
        'report': text,
    }
