"""
Output Naming and Saving Module
===============================

Dated output folders for scale analyses and writers for the tables,
figures and text reports they produce.

Naming Pattern: {DATE}-{ANALYSIS}-{SUFFIX}.{EXT}
Example: 2024-02-09-efa-loadings.csv
"""

from datetime import date
from pathlib import Path
from typing import Union

import pandas as pd
import matplotlib.pyplot as plt

from . import config
from . import report

# Result-dict entries written by save_results, mapped to file suffixes
RESULT_TABLES = {
    'items': 'items',
    'eigenvalues': 'eigenvalues',
    'loadings': 'loadings',
    'estimates': 'estimates',
    'fit_measures': 'fit',
}


def get_output_dir(analysis: str, base: Union[str, Path] = None) -> Path:
    """
    Create and return the dated output folder {base}/{DATE}-{analysis}/.

    Parameters:
        analysis: Short lowercase-hyphen name, e.g. "scale" or "reliability"
        base: Parent folder. Defaults to config.DEFAULT_OUTPUT_BASE
    """
    if base is None:
        base = config.DEFAULT_OUTPUT_BASE

    output_dir = Path(base) / f"{date.today().isoformat()}-{analysis}"
    output_dir.mkdir(parents=True, exist_ok=True)

    print(f"Output directory: {output_dir}")
    return output_dir


def _build_filename(output_dir: Path, analysis: str, suffix: str, ext: str) -> Path:
    path = Path(output_dir) / f"{date.today().isoformat()}-{analysis}-{suffix}.{ext}"
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def save_csv(
    table: Union[pd.DataFrame, pd.Series],
    output_dir: Path,
    analysis: str,
    suffix: str,
    index: bool = False
) -> Path:
    """
    Save a result table as CSV.

    Written with a BOM (utf-8-sig) so spreadsheet programs read item labels
    and symbols such as α and ω correctly.

    Parameters:
        table: DataFrame, or Series (saved as a one-column table)
        output_dir: Output folder
        analysis: Analysis name for the filename
        suffix: Descriptive suffix (e.g., 'items', 'loadings')
        index: Include the index (item names for most scale tables)

    Returns:
        Path to saved file
    """
    if isinstance(table, pd.Series):
        table = table.to_frame()
    filepath = _build_filename(output_dir, analysis, suffix, 'csv')
    table.to_csv(filepath, index=index, encoding='utf-8-sig')
    print(f"Saved: {filepath}")
    return filepath


def save_figure(
    fig: plt.Figure,
    output_dir: Path,
    analysis: str,
    suffix: str,
    dpi: int = None,
    close: bool = True
) -> Path:
    """
    Save a matplotlib figure as PNG.

    Parameters:
        fig: Figure to save
        output_dir: Output folder
        analysis: Analysis name for the filename
        suffix: Descriptive suffix (e.g., 'scree', 'loadings')
        dpi: Resolution. Defaults to config.DEFAULT_DPI
        close: Close the figure after saving. Keep it open when the
            caller still returns it (e.g. run_efa's scree plot)
    """
    if dpi is None:
        dpi = config.DEFAULT_DPI

    filepath = _build_filename(output_dir, analysis, suffix, 'png')
    fig.savefig(filepath, dpi=dpi, bbox_inches='tight')
    if close:
        plt.close(fig)
    print(f"Saved: {filepath}")
    return filepath


def save_report(text: str, output_dir: Path, analysis: str, suffix: str = 'report') -> Path:
    """Save a plain-text report."""
    return report.write_text(text, _build_filename(output_dir, analysis, suffix, 'txt'))


def save_results(result: dict, output_dir: Path, analysis: str, prefix: str = None) -> list[Path]:
    """
    Save the tables and report text of an alpha / run_efa / run_cfa result.

    Only entries listed in RESULT_TABLES that are present are written, so
    the same call works for every analysis.

    Parameters:
        result: Dictionary returned by alpha(), run_efa() or run_cfa()
        output_dir: Output folder
        analysis: Analysis name for the filenames
        prefix: Optional suffix prefix, e.g. a scale name ("e" -> "e-items")

    Returns:
        Paths of the written files
    """
    lead = f"{prefix}-" if prefix else ""
    paths = []
    for key, suffix in RESULT_TABLES.items():
        table = result.get(key)
        if isinstance(table, (pd.DataFrame, pd.Series)):
            keep_index = key != 'estimates'
            paths.append(save_csv(table, output_dir, analysis, lead + suffix, index=keep_index))
    if result.get('report'):
        paths.append(save_report(result['report'], output_dir, analysis, lead + 'report'))
    return paths


def list_outputs(output_dir: Path) -> list[str]:
    """File names in the output folder, sorted."""
    output_dir = Path(output_dir)
    if not output_dir.exists():
        return []
    return sorted(p.name for p in output_dir.iterdir() if p.is_file())


def print_summary(output_dir: Path) -> None:
    """Print the files generated in the output folder, grouped by type."""
    files = list_outputs(output_dir)
    if not files:
        print(f"\nNo files generated in {output_dir}")
        return

    print(f"\nFiles generated in {output_dir}:")
    by_ext = {}
    for name in files:
        by_ext.setdefault(Path(name).suffix.lstrip('.').upper(), []).append(name)
    for ext, names in by_ext.items():
        print(f"  {ext} ({len(names)}):")
        for name in names:
            print(f"    - {name}")
