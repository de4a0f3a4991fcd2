"""
Confirmatory Factor Analysis Module
===================================

Shorthand model syntax, translation into a full measurement-model
description, and model fitting with semopy.

Shorthand:
    "Visual =~ x[1:3]; Textual =~ x[c(4,5,6)]; Speed =~ x7 + x8 + x9"

expands to:
    Visual =~ x1 + x2 + x3
    Textual =~ x4 + x5 + x6
    Speed =~ x7 + x8 + x9
"""

import re
import warnings
from itertools import combinations
from pathlib import Path
from typing import Union

import pandas as pd
import numpy as np
import semopy

from . import config
from . import report


_BRACKET = re.compile(r"^([^\[\]]*)\[([^\[\]]+)\]$")
_INT_RANGE = re.compile(r"^(-?\d+):(-?\d+)$")


def _expand_index(index: str) -> list[str]:
    """'1:3' -> 1,2,3; 'c(1,3)' or '1,3' -> 1,3; elements may be ranges."""
    index = index.strip()
    if index.startswith('c(') and index.endswith(')'):
        index = index[2:-1]

    indices = []
    for element in index.split(','):
        element = element.strip()
        if not element:
            continue
        match = _INT_RANGE.match(element)
        if match:
            start, stop = int(match.group(1)), int(match.group(2))
            step = 1 if stop >= start else -1
            indices += [str(i) for i in range(start, stop + step, step)]
        elif re.fullmatch(r"-?\d+", element):
            indices.append(element)
        else:
            raise ValueError(f"Cannot expand index {element!r}")
    return indices


def expand_vars(text: str) -> list[str]:
    """
    Expand a '+'-separated variable list with bracket shorthand.

    Examples:
        expand_vars("X[1:5] + Y[c(1,3)] + Z")
        -> ['X1', 'X2', 'X3', 'X4', 'X5', 'Y1', 'Y3', 'Z']
    """
    terms = [re.sub(r"\s", "", t) for t in text.split('+')]
    variables = []
    for term in terms:
        if not term:
            continue
        if '[' in term or ']' in term:
            match = _BRACKET.match(term)
            if match is None:
                raise ValueError(f"Malformed variable term {term!r}")
            prefix, index = match.groups()
            variables += [f"{prefix}{i}" for i in _expand_index(index)]
        else:
            variables.append(term)
    return variables


def parse_model(model: str) -> list[dict]:
    """
    Parse a shorthand model into factor definitions.

    Statements are separated by ';' or newlines.

    Returns:
        List of {'label': factor name, 'vars': [indicators]}
    """
    statements = re.split(r"[;\n]+", model.strip())
    factors = []
    for statement in statements:
        statement = re.sub(r"\s", "", statement)
        if not statement:
            continue
        parts = statement.split('=~')
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise ValueError(f"Model statement {statement!r} should look like 'Factor =~ x1 + x2'")
        factors.append({'label': parts[0], 'vars': expand_vars(parts[1])})

    if not factors:
        raise ValueError("Model has no factor definitions")
    return factors


def to_model_syntax(model: str, highorder: str = "", orthogonal: bool = False) -> str:
    """
    Translate a shorthand model into a full model description.

    Parameters:
        model: Shorthand model, e.g. "A =~ a[1:5]; B =~ b[c(1,3,5)]"
        highorder: Name of a second-order factor over all first-order factors
        orthogonal: Fix covariances among first-order factors to zero

    Returns:
        Model description, one statement per line
    """
    factors = parse_model(model)
    lines = [f"{f['label']} =~ {' + '.join(f['vars'])}" for f in factors]
    labels = [f['label'] for f in factors]

    if highorder:
        lines.append(f"{highorder} =~ {' + '.join(labels)}")
        lines.append(f"{highorder} ~~ {highorder}")
    if orthogonal:
        lines += [f"{a} ~~ 0*{b}" for a, b in combinations(labels, 2)]

    return "\n".join(lines)


def model_variables(syntax: str) -> list[str]:
    """Observed indicators named in a model description (first-order factors only)."""
    factors = [line.split('=~') for line in syntax.splitlines() if '=~' in line]
    latent = {lhs.strip() for lhs, _ in factors}
    observed = []
    for _, rhs in factors:
        for v in rhs.split('+'):
            v = v.strip()
            if v not in latent and v not in observed:
                observed.append(v)
    return observed


def fit_measures(model: semopy.Model) -> pd.Series:
    """Selected fit measures from semopy.calc_stats as a Series."""
    stats = semopy.calc_stats(model)
    values = stats.T['Value'] if 'Value' in stats.index else stats.iloc[0]
    return values.reindex(config.CFA_FIT_MEASURES).astype(float)


def run_cfa(
    df: pd.DataFrame,
    model: str,
    highorder: str = "",
    orthogonal: bool = False,
    missing: str = 'listwise',
    digits: int = None,
    file: Union[str, Path] = None
) -> dict:
    """
    Confirmatory Factor Analysis.

    Parameters:
        df: Input DataFrame
        model: Shorthand model, e.g. "Visual =~ x[1:3]; Textual =~ x[c(4,5,6)]"
        highorder: Name of a second-order factor. Default "" (none)
        orthogonal: Fix all covariances among latent variables to zero
        missing: "listwise" (default) or "fiml" (full-information ML with
            semopy.ModelMeans, using every row with at least one indicator)
        digits: Decimal places. Defaults to config.DEFAULT_DIGITS
        file: Optional text file to write the report to

    Returns:
        Dictionary with fitted semopy model, model syntax, fit measures,
        parameter estimates, and number of observations
    """
    if digits is None:
        digits = config.DEFAULT_DIGITS
    if missing not in config.CFA_MISSING:
        valid = '", "'.join(config.CFA_MISSING)
        raise ValueError(f'`missing` should be one of "{valid}".')

    syntax = to_model_syntax(model, highorder, orthogonal)
    observed = model_variables(syntax)
    absent = [v for v in observed if v not in df.columns]
    if absent:
        raise KeyError(f"Column(s) not found in data: {', '.join(absent)}")

    data = df[observed].apply(pd.to_numeric, errors='coerce')
    if missing == 'listwise':
        data = data.dropna()
        sem = semopy.Model(syntax)
    else:
        # rows with no observed indicator carry no information
        data = data.dropna(how='all')
        sem = semopy.ModelMeans(syntax)

    with warnings.catch_warnings():
        warnings.simplefilter('ignore')
        sem.fit(data, obj=config.CFA_MISSING[missing])
        measures = fit_measures(sem)
        estimates = sem.inspect(std_est=True)

    lines = [
        report.banner("CONFIRMATORY FACTOR ANALYSIS"),
        "",
        "Model Syntax:",
        syntax,
        "",
        f"Observations: {len(data)} (missing = {missing})",
        "",
        "Model Fit:",
        "  " + report.format_chi2(measures['chi2'], measures['DoF'], measures['chi2 p-value']),
        f"  CFI = {measures['CFI']:.{digits}f}, TLI = {measures['TLI']:.{digits}f}",
        f"  RMSEA = {measures['RMSEA']:.{digits}f}, GFI = {measures['GFI']:.{digits}f}",
        f"  AIC = {measures['AIC']:.1f}, BIC = {measures['BIC']:.1f}",
        "",
        report.format_table(
            _estimates_table(estimates), digits=digits, index=False,
            title="Model Estimates:",
            note="Est.Std = Standardized Estimate\n"
                 "Identification: first loading of each factor fixed to 1 (marker variable).\n"
                 "Est. and S.E. differ from a unit-variance (std.lv) solution; Est.Std does not.",
        ),
    ]

    text = "\n".join(lines)
    print(text)
    if file is not None:
        report.write_text(text, file)

    return {
        'model': sem,
        'syntax': syntax,
        'fit_measures': measures,
        'estimates': estimates,
        'n_obs': len(data),
        'report': text,
    }


def _estimates_table(estimates: pd.DataFrame) -> pd.DataFrame:
    table = estimates.rename(columns={
        'Estimate': 'Est.', 'Est. Std': 'Est.Std', 'Std. Err': 'S.E.',
        'z-value': 'z', 'p-value': 'p',
    })
    table = table[[c for c in ['lval', 'op', 'rval', 'Est.', 'S.E.', 'z', 'p', 'Est.Std'] if c in table]]
    for col in ['Est.', 'S.E.', 'z', 'p', 'Est.Std']:
        if col in table:
            table[col] = pd.to_numeric(table[col], errors='coerce')
    if 'p' in table:
        table['p'] = [report.format_p(p).replace("= ", "") for p in table['p']]
    return table.replace({np.inf: np.nan})
