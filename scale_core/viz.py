"""
Visualization Utilities Module
==============================

Minimal style setup plus the scree plot and loadings heatmap used by
factor analysis.
"""

import matplotlib
matplotlib.use('Agg')  # Non-interactive backend for saving plots

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from . import config


def setup_style() -> None:
    """
    Configure matplotlib and seaborn style settings.

    Sets:
    - Seaborn whitegrid style
    - Consistent font sizes
    """
    sns.set_style('whitegrid')
    plt.rcParams.update({
        'figure.figsize': (10, 6),
        'font.size': 10,
        'axes.titlesize': 12,
        'axes.labelsize': 11,
        'legend.fontsize': 10,
    })


def get_colors() -> dict:
    """
    Return consistent color palette for plots.

    Returns:
        Dictionary with named colors
    """
    return {
        'data': '#000000',         # Observed eigenvalues
        'data_fill': '#7f7f7f',
        'simulated': '#7f7f7f',    # Parallel analysis eigenvalues
        'simulated_fill': '#e5e5e5',
        'cutoff': '#e74c3c',       # Red
    }


HEATMAP_CMAPS = {
    'loadings': 'RdBu_r',
    'correlation': 'PuOr_r',
}


def get_cmap(kind: str = 'loadings') -> str:
    """Colormap name for a heatmap of loadings or item correlations."""
    if kind not in HEATMAP_CMAPS:
        raise ValueError(f'`kind` should be one of "{", ".join(HEATMAP_CMAPS)}".')
    return HEATMAP_CMAPS[kind]


def plot_scree(
    eigenvalues: np.ndarray,
    parallel: np.ndarray = None,
    min_eigen: float = None,
    xlabel: str = 'Factor'
) -> plt.Figure:
    """
    Scree plot of observed eigenvalues, with simulated ones from parallel
    analysis when available.

    Parameters:
        eigenvalues: Observed eigenvalues (descending)
        parallel: Simulated eigenvalues from parallel analysis, or None
        min_eigen: Draw a dashed reference line here. Defaults to config.DEFAULT_MIN_EIGEN
        xlabel: "Factor" or "Component"

    Returns:
        Matplotlib figure
    """
    if min_eigen is None:
        min_eigen = config.DEFAULT_MIN_EIGEN

    colors = get_colors()
    fig, ax = plt.subplots(figsize=(8, 5))
    positions = np.arange(1, len(eigenvalues) + 1)

    ax.axhline(y=min_eigen, color=colors['cutoff'], linestyle='--', linewidth=1,
               label=f'Eigenvalue = {min_eigen:g}')
    ax.plot(positions, eigenvalues, '-o', color=colors['data'],
            markerfacecolor=colors['data_fill'], linewidth=2, markersize=7, label='Data')
    if parallel is not None:
        ax.plot(positions, parallel, '-o', color=colors['simulated'],
                markerfacecolor=colors['simulated_fill'], linewidth=2, markersize=7,
                label='Parallel (Simulation)')

    ax.set_ylim(0, np.ceil(max(np.max(eigenvalues), min_eigen)))
    ax.set_xticks(positions)
    ax.set_xlabel(xlabel)
    ax.set_ylabel('Eigenvalue')
    ax.set_title('Scree Plot')
    ax.legend(loc='upper right')
    ax.grid(True, alpha=0.3)
    fig.set_facecolor('white')
    return fig


def plot_loadings_heatmap(loadings: pd.DataFrame, title: str = 'Factor Loadings') -> plt.Figure:
    """Heatmap of a loadings table (a Communality column is left out)."""
    values = loadings.drop(columns='Communality', errors='ignore')

    fig, ax = plt.subplots(figsize=(2 + 1.5 * values.shape[1], 1 + 0.45 * values.shape[0]))
    sns.heatmap(values, annot=True, cmap=get_cmap('loadings'), center=0,
                fmt='.2f', linewidths=0.5, vmin=-1, vmax=1, ax=ax)
    ax.set_title(title)
    fig.set_facecolor('white')
    return fig


def plot_corr_heatmap(r: pd.DataFrame, title: str = 'Item Correlations') -> plt.Figure:
    """Lower-triangle heatmap of an item correlation matrix."""
    mask = np.triu(np.ones(r.shape, dtype=bool), k=1)
    size = 1.5 + 0.55 * len(r)

    fig, ax = plt.subplots(figsize=(size, size * 0.85))
    sns.heatmap(r, mask=mask, annot=True, fmt='.2f', cmap=get_cmap('correlation'),
                center=0, vmin=-1, vmax=1, square=True, linewidths=0.5, ax=ax)
    ax.set_title(title)
    fig.set_facecolor('white')
    return fig
