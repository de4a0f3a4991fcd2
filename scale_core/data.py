"""
Data Loading and Preprocessing Module
======================================

Functions for loading data, selecting questionnaire items, reverse scoring,
and recoding / rescaling variables.

Three options to specify the items of a scale (used by every analysis):
    1. var + items  - common and unique parts of names, e.g. "E", range(1, 6)
    2. vars         - explicit list of column names
    3. varrange     - "start:stop" positions in the DataFrame, e.g. "A1:E5"
"""

import re
import warnings
from dataclasses import dataclass, field
from typing import Iterable

import pandas as pd
import numpy as np
from sklearn.preprocessing import MinMaxScaler, StandardScaler


def load_csv(filepath: str) -> pd.DataFrame:
    """
    Load CSV file with basic validation.

    Parameters:
        filepath: Path to CSV file

    Returns:
        DataFrame with loaded data
    """
    df = pd.read_csv(filepath)
    print(f"Loaded {len(df):,} records with {len(df.columns)} columns from {filepath}")
    return df


# =============================================================================
# VARIABLE SELECTION
# =============================================================================
def _parse_varrange(df: pd.DataFrame, varrange: str) -> list[str]:
    parts = re.sub(r"\s", "", varrange).split(":")
    if len(parts) != 2:
        raise ValueError(f"`varrange` should look like 'start:stop', got {varrange!r}")

    columns = [str(c) for c in df.columns]
    start, stop = parts
    missing = [p for p in (start, stop) if p not in columns]
    if missing:
        raise KeyError(f"Column(s) not found in data: {', '.join(missing)}")

    i, j = columns.index(start), columns.index(stop)
    if i > j:
        raise ValueError(f"`varrange` start {start!r} comes after stop {stop!r}")
    return columns[i:j + 1]


def resolve_vars(
    df: pd.DataFrame,
    var: str = None,
    items: Iterable = None,
    vars: list[str] = None,
    varrange: str = None,
    rev: list = None
) -> tuple[list[str], list[str]]:
    """
    Resolve the item columns of a scale and the subset to be reversed.

    Parameters:
        df: Input DataFrame
        var: Common part of the item names, e.g. "RSES"
        items: Unique parts of the item names, e.g. range(1, 11)
        vars: Explicit list of item names
        varrange: "start:stop" column range (overrides vars and var + items)
        rev: Items to reverse, as names (recommended) or as item numbers
            combined with `var`

    Returns:
        Tuple of (item names, reversed item names in item order)
    """
    if varrange is not None:
        vars = _parse_varrange(df, varrange)
    elif vars is None:
        if var is None or items is None:
            raise ValueError("Specify items with `var` + `items`, `vars`, or `varrange`.")
        vars = [f"{var}{i}" for i in items]
    vars = list(vars)

    missing = [v for v in vars if v not in df.columns]
    if missing:
        raise KeyError(f"Column(s) not found in data: {', '.join(map(str, missing))}")

    rev = [] if rev is None else list(rev)
    rev_names = []
    for r in rev:
        if isinstance(r, (int, np.integer)) and not isinstance(r, bool):
            if var is None:
                raise ValueError("Numeric `rev` needs `var`; pass item names instead.")
            rev_names.append(f"{var}{r}")
        else:
            rev_names.append(str(r))

    rev_vars = [v for v in vars if v in rev_names]
    return vars, rev_vars


# =============================================================================
# REVERSE SCORING
# =============================================================================
def estimate_likert(
    df: pd.DataFrame,
    columns: list[str],
    func_name: str = None,
    stacklevel: int = 3
) -> tuple[float, float]:
    """
    Estimate the response range from the data and warn about it.

    `stacklevel` should point the warning at the user's call: 3 when
    called from a public function, one more per extra internal frame.
    """
    values = df[columns].apply(pd.to_numeric, errors='coerce')
    likert = (float(np.nanmin(values.values)), float(np.nanmax(values.values)))
    where = f" See {func_name}()." if func_name else ""
    warnings.warn(
        "The range of likert scale was automatically estimated from the given data. "
        f"If you are not sure about this, please specify the `likert` argument.{where}",
        UserWarning,
        stacklevel=stacklevel,
    )
    return likert


def reverse_items(
    df: pd.DataFrame,
    rev: list[str],
    likert: Iterable = None,
    rename: bool = False
) -> pd.DataFrame:
    """
    Reverse-score items: x -> min(likert) + max(likert) - x.

    Parameters:
        df: Input DataFrame
        rev: Columns to reverse
        likert: Response range, e.g. range(1, 6) or (1, 5). Estimated from data if None
        rename: Rename reversed columns to "<name> (rev)"

    Returns:
        Copy of df with reversed columns
    """
    df = df.copy()
    if not rev:
        return df

    if likert is None:
        low, high = estimate_likert(df, rev)
    else:
        likert = list(likert)
        low, high = min(likert), max(likert)

    for v in rev:
        df[v] = low + high - pd.to_numeric(df[v], errors='coerce')

    if rename:
        df = df.rename(columns={v: f"{v} (rev)" for v in rev})
    return df


@dataclass
class ItemData:
    """Complete-case item data ready for reliability or factor analysis."""
    data: pd.DataFrame
    vars: list[str]
    rev: list[str] = field(default_factory=list)
    n_total: int = 0

    @property
    def n_valid(self) -> int:
        return len(self.data)

    @property
    def n_items(self) -> int:
        return self.data.shape[1]

    @property
    def valid_pct(self) -> float:
        return 100 * self.n_valid / self.n_total if self.n_total else float('nan')

    @property
    def scale_range(self) -> tuple[float, float]:
        values = self.data.values
        return float(np.min(values)), float(np.max(values))


def prepare_items(
    df: pd.DataFrame,
    var: str = None,
    items: Iterable = None,
    vars: list[str] = None,
    varrange: str = None,
    rev: list = None
) -> ItemData:
    """
    Select items, drop incomplete cases, and reverse-score.

    Each reversed item uses its own observed min + max, and is renamed
    to "<name> (rev)" so that printed tables show which items were flipped.

    Returns:
        ItemData with the prepared DataFrame and case counts
    """
    vars, rev_vars = resolve_vars(df, var, items, vars, varrange, rev)
    n_total = len(df)

    data = df[vars].apply(pd.to_numeric, errors='coerce').dropna()
    for v in rev_vars:
        data[v] = data[v].min() + data[v].max() - data[v]
    data = data.rename(columns={v: f"{v} (rev)" for v in rev_vars})

    return ItemData(data=data, vars=vars, rev=rev_vars, n_total=n_total)


# =============================================================================
# RECODE / RESCALE
# =============================================================================
_RANGE = re.compile(r"^(.+?):(.+)$")


def _parse_value(token: str):
    token = token.strip()
    if len(token) >= 2 and token[0] == token[-1] and token[0] in "'\"":
        return token[1:-1]
    if token in ('NA', 'nan', 'NaN'):
        return np.nan
    try:
        number = float(token)
    except ValueError:
        raise ValueError(f"Cannot parse recode value {token!r}; quote strings") from None
    return int(number) if number.is_integer() else number


def _parse_recodes(recodes: str) -> list[tuple[str, object, object]]:
    rules = []
    for rule in re.split(r";|\n", recodes):
        rule = rule.strip()
        if not rule:
            continue
        if '=' not in rule:
            raise ValueError(f"Recode rule {rule!r} has no '='")
        lhs, rhs = (s.strip() for s in rule.rsplit('=', 1))
        target = _parse_value(rhs)

        if lhs == 'else':
            rules.append(('else', None, target))
        elif lhs.startswith('c(') and lhs.endswith(')'):
            values = [_parse_value(t) for t in lhs[2:-1].split(',') if t.strip()]
            rules.append(('in', values, target))
        elif _RANGE.match(lhs) and not lhs.startswith(("'", '"')):
            low, high = _RANGE.match(lhs).groups()
            low = None if low.strip() in ('lo', 'min') else _parse_value(low)
            high = None if high.strip() in ('hi', 'max') else _parse_value(high)
            rules.append(('range', (low, high), target))
        else:
            rules.append(('in', [_parse_value(lhs)], target))
    return rules


def recode(series: pd.Series, recodes: str) -> pd.Series:
    """
    Recode a variable with rules like "lo:1=0; c(2,3)=1; 4=2; 5:hi=3; else=999".

    Rules are matched against the original values in order; the first
    matching rule wins. `lo` and `hi` stand for the data minimum and maximum.
    Missing values stay missing unless a rule names NA explicitly.

    Parameters:
        series: Variable to recode
        recodes: Recoding rules separated by ';'

    Returns:
        Recoded Series
    """
    rules = _parse_recodes(recodes)
    result = series.astype(object).copy()
    done = pd.Series(False, index=series.index)
    numeric = pd.to_numeric(series, errors='coerce')

    for kind, lhs, target in rules:
        if kind == 'else':
            mask = ~done & series.notna()
        elif kind == 'in':
            has_na = any(isinstance(v, float) and np.isnan(v) for v in lhs)
            values = [v for v in lhs if not (isinstance(v, float) and np.isnan(v))]
            mask = series.isin(values)
            if has_na:
                mask = mask | series.isna()
            mask = mask & ~done
        else:
            low, high = lhs
            low = numeric.min() if low is None else low
            high = numeric.max() if high is None else high
            mask = (numeric >= low) & (numeric <= high) & ~done
        result[mask] = target
        done = done | mask

    try:
        return pd.to_numeric(result)
    except (ValueError, TypeError):
        return result


def rescale(series: pd.Series, to: Iterable, from_: Iterable = None) -> pd.Series:
    """
    Rescale a variable, e.g. from a 5-point to a 7-point scale.

    Parameters:
        series: Numeric variable
        to: Range of the new scale, e.g. range(1, 8)
        from_: Range of the old scale. Defaults to the observed range

    Returns:
        Rescaled Series
    """
    if from_ is None:
        from_ = (series.min(), series.max())
    from_, to = np.asarray(list(from_), dtype=float), np.asarray(list(to), dtype=float)
    mid_from, mid_to = np.median(from_), np.median(to)
    return (series - mid_from) / (from_.max() - mid_from) * (to.max() - mid_to) + mid_to


def min_max_scale(series: pd.Series, min: float = 0, max: float = 1) -> pd.Series:
    """
    Min-max normalization into [min, max]; missing values are kept.

    Equivalent to rescale(series, to=(min, max)).
    """
    scaler = MinMaxScaler(feature_range=(min, max))
    valid = series.dropna()
    result = pd.Series(np.nan, index=series.index, dtype=float)
    if len(valid):
        result.loc[valid.index] = scaler.fit_transform(valid.to_frame().astype(float)).ravel()
    return result


def standardize_features(df: pd.DataFrame, columns: list[str] = None) -> pd.DataFrame:
    """
    Z-score scale scores (or items) for use as predictors.

    The scaler is fitted on complete cases only; rows missing any of the
    columns come back as NaN so the result stays aligned with df.index.

    Parameters:
        df: Input DataFrame
        columns: Columns to standardize. Defaults to all numeric columns

    Returns:
        DataFrame of z-scores (population SD, as StandardScaler) named "<col>_z"
    """
    if columns is None:
        columns = list(df.select_dtypes('number').columns)
    complete = df[columns].apply(pd.to_numeric, errors='coerce').dropna()

    print(f"Records with complete data: {len(complete):,}")

    result = pd.DataFrame(np.nan, index=df.index, columns=[f"{c}_z" for c in columns])
    if len(complete):
        result.loc[complete.index] = StandardScaler().fit_transform(complete)
    return result
