"""
Exploratory Factor Analysis Module
===================================

Principal Component Analysis (PCA) and Exploratory Factor Analysis (EFA):
factorability tests, number-of-factors heuristics (eigenvalue rule and
parallel analysis), factor extraction with rotation, and score calculation.
"""

import warnings
from pathlib import Path
from typing import Iterable, Union

import pandas as pd
import numpy as np
from factor_analyzer import FactorAnalyzer
from factor_analyzer.factor_analyzer import calculate_bartlett_sphericity, calculate_kmo

from . import config
from . import data as scale_data
from . import report
from . import viz
from . import output


NFACTORS_ERROR = '`nfactors` should be "eigen", "parallel", or an integer (>= 1).'


def check_factorability(scaled_data: np.ndarray, var_names: list[str], verbose: bool = True) -> dict:
    """
    Test whether data is suitable for factor analysis.

    Performs:
    - Bartlett's Test of Sphericity: Should be significant (p < 0.05)
    - KMO (Kaiser-Meyer-Olkin): Should be > 0.6, ideally > 0.8

    Parameters:
        scaled_data: Data array (n_samples x n_features)
        var_names: List of variable names
        verbose: Print the results

    Returns:
        Dictionary with test results and interpretations
    """
    n_vars = len(var_names)
    with warnings.catch_warnings():
        warnings.simplefilter('ignore')
        chi_square, p_value = calculate_bartlett_sphericity(scaled_data)
        kmo_all, kmo_model = calculate_kmo(scaled_data)

    results = {
        'bartlett_chi_square': chi_square,
        'bartlett_df': n_vars * (n_vars - 1) // 2,
        'bartlett_p_value': p_value,
        'bartlett_pass': p_value < 0.05,
        'kmo_overall': kmo_model,
        'kmo_label': config.get_kmo_label(kmo_model),
        'kmo_per_variable': dict(zip(var_names, kmo_all)),
    }

    if verbose:
        print(report.banner("FACTORABILITY TESTS"))

        print(f"\nBartlett's Test of Sphericity:")
        print(f"  {report.format_chi2(chi_square, results['bartlett_df'], p_value)}")
        print(f"  Result: {'PASS' if results['bartlett_pass'] else 'FAIL'}")

        print(f"\nKaiser-Meyer-Olkin (KMO) Measure:")
        print(f"  Overall KMO: {kmo_model:.3f} ({results['kmo_label']})")

        print(f"\n  Per-variable KMO:")
        for var, kmo in results['kmo_per_variable'].items():
            print(f"    {var}: {kmo:.3f} ({config.get_kmo_label(kmo)})")

    return results


def get_eigenvalues(data: Union[np.ndarray, pd.DataFrame]) -> np.ndarray:
    """Eigenvalues of the correlation matrix, in descending order."""
    corr = np.corrcoef(np.asarray(data, dtype=float), rowvar=False)
    return np.sort(np.linalg.eigvalsh(corr))[::-1]


def parallel_analysis(
    n_rows: int,
    n_cols: int,
    n_iter: int = None,
    quantile: float = None,
    random_state=None
) -> np.ndarray:
    """
    Simulated eigenvalues for parallel analysis.

    Generates `n_iter` random normal data sets of the same shape as the
    observed data and returns, for each eigenvalue position, the `quantile`
    of the simulated eigenvalues.

    Parameters:
        n_rows: Number of cases
        n_cols: Number of variables
        n_iter: Number of simulations. Defaults to config.PARALLEL_N_ITER
        quantile: Quantile of simulated eigenvalues. Defaults to config.PARALLEL_QUANTILE
        random_state: Seed or numpy Generator

    Returns:
        Array of length n_cols
    """
    if n_iter is None:
        n_iter = config.PARALLEL_N_ITER
    if quantile is None:
        quantile = config.PARALLEL_QUANTILE

    rng = np.random.default_rng(random_state)
    sim_eigen = np.empty((n_iter, n_cols))
    for i in range(n_iter):
        sim_data = rng.standard_normal((n_rows, n_cols))
        sim_eigen[i] = get_eigenvalues(sim_data)

    return np.quantile(sim_eigen, quantile, axis=0)


def determine_num_factors(
    data: Union[np.ndarray, pd.DataFrame],
    nfactors: Union[str, int] = None,
    min_eigen: float = None,
    n_iter: int = None,
    random_state=None
) -> tuple[int, np.ndarray, np.ndarray]:
    """
    Determine the number of factors to extract.

    Parameters:
        data: Item data (n_samples x n_items)
        nfactors:
            "eigen"    - eigenvalues greater than `min_eigen` (default)
            "parallel" - parallel analysis
            int >= 1   - fixed number (integral floats such as 2.0 accepted)
        min_eigen: Minimum eigenvalue. Defaults to config.DEFAULT_MIN_EIGEN
        n_iter: Simulations for parallel analysis
        random_state: Seed for parallel analysis

    Returns:
        Tuple of (number of factors, eigenvalues, simulated eigenvalues or None)
    """
    if nfactors is None:
        nfactors = config.DEFAULT_NFACTORS
    if min_eigen is None:
        min_eigen = config.DEFAULT_MIN_EIGEN

    data = np.asarray(data, dtype=float)
    eigenvalues = get_eigenvalues(data)
    parallel = None

    if isinstance(nfactors, bool):
        raise ValueError(NFACTORS_ERROR)
    if isinstance(nfactors, (float, np.floating)) and float(nfactors).is_integer():
        nfactors = int(nfactors)
    if isinstance(nfactors, (int, np.integer)):
        if nfactors < 1:
            raise ValueError(NFACTORS_ERROR)
        n = int(nfactors)
    elif nfactors == 'eigen':
        n = int(np.sum(eigenvalues > min_eigen))
    elif nfactors == 'parallel':
        parallel = parallel_analysis(data.shape[0], data.shape[1], n_iter, random_state=random_state)
        below = np.flatnonzero(eigenvalues <= parallel)
        if len(below) == 0:
            n = len(eigenvalues)
        else:
            # first position (1-based) where observed <= simulated, minus one
            n = max(int(below[0]), 1)
    else:
        raise ValueError(NFACTORS_ERROR)

    return n, eigenvalues, parallel


def _extraction(method: str) -> tuple[str, str]:
    if method not in config.EXTRACTION_METHODS:
        valid = '", "'.join(config.EXTRACTION_METHODS)
        raise ValueError(
            f'`method` should be one of "{valid}". '
            '(wls, gls and alpha extraction are not available in factor_analyzer.)'
        )
    return config.EXTRACTION_METHODS[method]


def _rotation_label(rotation: str, kaiser: bool, n_factors: int) -> str:
    if n_factors == 1:
        return "(Only one component was extracted. The solution was not rotated.)"
    label = config.ROTATION_METHODS[rotation]
    if kaiser:
        label += " (with Kaiser Normalization)"
    return label


def variance_table(
    eigenvalues: np.ndarray,
    loadings: np.ndarray,
    tag: str = 'Factor'
) -> pd.DataFrame:
    """
    Total variance explained: eigenvalues and sums of squared loadings.

    SS loading columns are empty past the number of extracted factors.
    """
    n_items = len(eigenvalues)
    ss = np.full(n_items, np.nan)
    ss[:loadings.shape[1]] = (loadings ** 2).sum(axis=0)

    table = pd.DataFrame({
        'Eigenvalue': eigenvalues,
        'Variance %': 100 * eigenvalues / n_items,
        'Cumulative %': np.cumsum(100 * eigenvalues / n_items),
        'SS Loading': ss,
        'SS Variance %': 100 * ss / n_items,
        'SS Cumulative %': np.cumsum(100 * ss / n_items),
    }, index=[f"{tag} {i}" for i in range(1, n_items + 1)])
    return table


def loadings_table(
    loadings: np.ndarray,
    communalities: np.ndarray,
    var_names: list[str],
    tag: str = 'Factor',
    sort_loadings: bool = True,
    hide_loadings: float = 0.0
) -> pd.DataFrame:
    """
    Factor loadings with communalities.

    Sorting groups items by the factor of their largest absolute loading,
    then by decreasing loading size within each group. Loadings below
    `hide_loadings` in absolute value are set to NaN (blank when printed).
    """
    n_factors = loadings.shape[1]
    columns = [f"{tag}_{i}" for i in range(1, n_factors + 1)]
    table = pd.DataFrame(loadings, index=var_names, columns=columns)

    abs_loadings = np.abs(loadings)
    if sort_loadings:
        order = np.lexsort((-abs_loadings.max(axis=1), abs_loadings.argmax(axis=1)))
        table = table.iloc[order]
        communalities = np.asarray(communalities)[order]

    table = table.mask(table.abs() < abs(hide_loadings))
    table['Communality'] = communalities
    return table


def run_efa(
    df: pd.DataFrame,
    var: str = None,
    items: Iterable = None,
    vars: list[str] = None,
    varrange: str = None,
    rev: list = None,
    method: str = None,
    rotation: str = None,
    nfactors: Union[str, int] = None,
    sort_loadings: bool = True,
    hide_loadings: float = 0.0,
    plot_scree: bool = True,
    kaiser: bool = True,
    max_iter: int = None,
    min_eigen: float = None,
    digits: int = None,
    file: Union[str, Path] = None,
    output_dir: Union[str, Path] = None,
    random_state=None
) -> dict:
    """
    Run Principal Component Analysis or Exploratory Factor Analysis.

    Parameters:
        df: Input DataFrame
        var, items, vars, varrange: Item selection (see data.resolve_vars)
        rev: Items to reverse
        method: "pca" (default), "pa" / "principal", "minres", "uls", "ols", or "ml"
        rotation: "none", "varimax" (default), "oblimin", "promax", "quartimax", "equamax"
        nfactors: "eigen" (default), "parallel", or an integer >= 1
        sort_loadings: Sort loadings by size
        hide_loadings: Hide absolute loadings below this value (0~1)
        plot_scree: Build the scree plot
        kaiser: Kaiser normalization during rotation
        max_iter: Maximum rotation iterations. Defaults to config.ROTATION_MAX_ITER
        min_eigen: Minimum eigenvalue for nfactors="eigen"
        digits: Decimal places. Defaults to config.DEFAULT_DIGITS
        file: Optional text file to write the report to
        output_dir: Directory to save the scree plot into
        random_state: Seed for parallel analysis

    Returns:
        Dictionary with factor_analyzer, method labels, eigenvalue and loading
        tables, number of factors, factorability results, and the scree plot
    """
    if method is None:
        method = config.DEFAULT_METHOD
    if rotation is None:
        rotation = config.DEFAULT_ROTATION
    if max_iter is None:
        max_iter = config.ROTATION_MAX_ITER
    if min_eigen is None:
        min_eigen = config.DEFAULT_MIN_EIGEN
    if digits is None:
        digits = config.DEFAULT_DIGITS

    fa_method, method_label = _extraction(method)
    if rotation not in config.ROTATION_METHODS:
        valid = '", "'.join(config.ROTATION_METHODS)
        raise ValueError(f'`rotation` should be one of "{valid}".')

    prepared = scale_data.prepare_items(df, var, items, vars, varrange, rev)
    data = prepared.data
    var_names = list(data.columns)
    if prepared.n_items < 2:
        raise ValueError("Factor analysis needs at least 2 items")
    if prepared.n_valid <= prepared.n_items:
        raise ValueError(
            f"Factor analysis needs more complete cases ({prepared.n_valid}) than items ({prepared.n_items})"
        )

    n_factors, eigenvalues, parallel = determine_num_factors(
        data, nfactors, min_eigen, random_state=random_state
    )
    n_factors = max(min(n_factors, prepared.n_items), 1)

    if rotation in ('none', 'equamax'):
        kaiser = False
    fa_rotation = None if rotation == 'none' or n_factors == 1 else rotation
    rotation_label = _rotation_label(rotation, kaiser, n_factors)

    factorability = check_factorability(data.values, var_names, verbose=False)

    with warnings.catch_warnings():
        warnings.simplefilter('ignore')
        fa = FactorAnalyzer(
            n_factors=n_factors,
            rotation=fa_rotation,
            method=fa_method,
            rotation_kwargs={'normalize': kaiser, 'max_iter': max_iter} if fa_rotation else {},
        )
        fa.fit(data.values)

    is_pca = method == 'pca'
    analysis = "PRINCIPAL COMPONENT ANALYSIS" if is_pca else "EXPLORATORY FACTOR ANALYSIS"
    tag = "Component" if is_pca else "Factor"
    low, high = prepared.scale_range

    eigen_df = variance_table(eigenvalues, fa.loadings_, tag)
    loadings = loadings_table(
        fa.loadings_, fa.get_communalities(), var_names, tag,
        sort_loadings=sort_loadings, hide_loadings=hide_loadings,
    )

    info = ""
    if fa_rotation is not None:
        info += " (Rotated)"
    if sort_loadings:
        info += " (Sorted by Size)"

    lines = [
        report.banner(analysis),
        "",
        "Summary:",
        f"  Total Items: {prepared.n_items}",
        f"  Scale Range: {low:g} ~ {high:g}",
        f"  Total Cases: {prepared.n_total}",
        f"  Valid Cases: {prepared.n_valid} ({prepared.valid_pct:.1f}%)",
        "",
        "Extraction Method:",
        f"  - {method_label}",
        "Rotation Method:",
        f"  - {rotation_label}",
        "",
        "KMO and Bartlett's Test:",
        f"  - Kaiser-Meyer-Olkin (KMO) Measure of Sampling Adequacy: "
        f"MSA = {factorability['kmo_overall']:.{digits}f}",
        f"  - Bartlett's Test of Sphericity: Approx. "
        + report.format_chi2(
            factorability['bartlett_chi_square'],
            factorability['bartlett_df'],
            factorability['bartlett_p_value'],
        ),
        "",
        report.format_table(eigen_df, digits=digits, title="Total Variance Explained:"),
        "",
        report.format_table(loadings, digits=digits, title=f"{tag} Loadings{info}:"),
        "Communality = Sum of Squared (SS) Factor Loadings",
        "(Uniqueness = 1 - Communality)",
    ]
    if parallel is not None:
        lines += ["", f"Parallel analysis suggests {n_factors} {tag.lower()}(s)."]

    text = "\n".join(lines)
    print(text)
    if file is not None:
        report.write_text(text, file)

    fig = None
    if plot_scree:
        fig = viz.plot_scree(eigenvalues, parallel, min_eigen=min_eigen, xlabel=tag)
        if output_dir is not None:
            output.save_figure(fig, Path(output_dir), 'efa', 'scree', close=False)

    return {
        'factor_analyzer': fa,
        'extraction_method': method_label,
        'rotation_method': rotation_label,
        'eigenvalues': eigen_df,
        'loadings': loadings,
        'n_factors': n_factors,
        'factorability': factorability,
        'parallel_eigenvalues': parallel,
        'scree_plot': fig,
        'data': data,
        'report': text,
    }


def run_pca(df: pd.DataFrame, *args, **kwargs) -> dict:
    """Principal Component Analysis: run_efa(..., method="pca")."""
    kwargs['method'] = 'pca'
    return run_efa(df, *args, **kwargs)


def calculate_factor_scores(
    fa: FactorAnalyzer,
    data: Union[np.ndarray, pd.DataFrame],
    valid_indices: pd.Index = None,
    tag: str = 'Factor'
) -> pd.DataFrame:
    """
    Calculate factor scores for each observation.

    Parameters:
        fa: Fitted FactorAnalyzer object
        data: Item data the model was fitted on (same column order)
        valid_indices: Optional index to assign to output DataFrame.
            Taken from `data` when it is a DataFrame
        tag: Column prefix ("Factor" or "Component")

    Returns:
        DataFrame with factor scores (n_samples x n_factors)
    """
    if valid_indices is None and isinstance(data, pd.DataFrame):
        valid_indices = data.index

    scores = fa.transform(np.asarray(data, dtype=float))
    n_factors = scores.shape[1]
    columns = [f'{tag}_{i+1}' for i in range(n_factors)]

    return pd.DataFrame(scores, index=valid_indices, columns=columns)


def interpret_factors(
    loadings: pd.DataFrame,
    threshold: float = None
) -> dict[str, list[tuple[str, float]]]:
    """
    Generate factor interpretations based on high loadings.

    Parameters:
        loadings: Factor loadings DataFrame (a Communality column is ignored)
        threshold: Minimum absolute loading to consider. Defaults to config.LOADING_THRESHOLD

    Returns:
        Dictionary mapping factor names to list of (variable, loading) tuples
    """
    if threshold is None:
        threshold = config.LOADING_THRESHOLD

    interpretations = {}
    for col in loadings.columns.drop('Communality', errors='ignore'):
        high_loaders = loadings[loadings[col].abs() > threshold][col]
        high_loaders = high_loaders.reindex(high_loaders.abs().sort_values(ascending=False).index)
        interpretations[col] = [(var, loading) for var, loading in high_loaders.items()]

    return interpretations


def get_factorability_summary(results: dict) -> pd.DataFrame:
    """
    Convert factorability results to a summary DataFrame.

    Parameters:
        results: Output from check_factorability()

    Returns:
        DataFrame with factorability test results
    """
    rows = [
        {'Test': 'Bartlett_Chi_Square', 'Value': results['bartlett_chi_square'], 'Interpretation': ''},
        {'Test': 'Bartlett_df', 'Value': results['bartlett_df'], 'Interpretation': ''},
        {'Test': 'Bartlett_p_value', 'Value': results['bartlett_p_value'],
         'Interpretation': 'PASS' if results['bartlett_pass'] else 'FAIL'},
        {'Test': 'KMO_Overall', 'Value': results['kmo_overall'], 'Interpretation': results['kmo_label']},
    ]

    for var, kmo in results['kmo_per_variable'].items():
        rows.append({
            'Test': f'KMO_{var}',
            'Value': kmo,
            'Interpretation': config.get_kmo_label(kmo)
        })

    return pd.DataFrame(rows)
