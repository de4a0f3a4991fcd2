"""
Report Formatting Module
========================

Plain-text tables and statistic strings for console output and text reports.

All analysis functions build their printed output from these helpers so
that the same text can be written to a file with output.save_report().
"""

from pathlib import Path
from typing import Union

import pandas as pd
import numpy as np

from . import config


def banner(title: str, width: int = None) -> str:
    """Section header in the style: ====\\nTITLE\\n===="""
    if width is None:
        width = config.BANNER_WIDTH
    return "\n".join(["", "=" * width, title, "=" * width])


def rule(title: str, width: int = None) -> str:
    """Sub-section header: title followed by a dashed rule."""
    if width is None:
        width = config.RULE_WIDTH
    return "\n".join([title, "-" * width])


def format_number(x, digits: int = None) -> str:
    """Fixed-decimal number; missing values become an empty string."""
    if digits is None:
        digits = config.DEFAULT_DIGITS
    if x is None:
        return ""
    if isinstance(x, (bool, np.bool_)):
        return str(x)
    if isinstance(x, (int, np.integer)):
        return f"{x:d}"
    if isinstance(x, (float, np.floating)):
        if np.isnan(x):
            return ""
        return f"{x:.{digits}f}"
    return str(x)


def sig_marker(p: float) -> str:
    if p is None or np.isnan(p):
        return ""
    if p < 0.001:
        return "***"
    elif p < 0.01:
        return "**"
    elif p < 0.05:
        return "*"
    elif p < 0.10:
        return "."
    return ""


def format_p(p: float) -> str:
    """APA-style p-value: '< .001' or '= .042'."""
    if p is None or np.isnan(p):
        return ""
    if p < 0.001:
        return "< .001"
    return "= " + f"{p:.3f}".lstrip("0")


def format_chi2(chi2: float, df: int, p: float, digits: int = 2) -> str:
    """e.g. 'χ²(10) = 123.45, p < .001 ***'"""
    marker = sig_marker(p)
    text = f"χ²({int(df)}) = {chi2:.{digits}f}, p {format_p(p)}"
    return f"{text} {marker}" if marker else text


def format_table(
    df: pd.DataFrame,
    digits: int = None,
    title: str = None,
    note: str = None,
    index: bool = True
) -> str:
    """
    Render a DataFrame as an aligned plain-text table.

    Numbers are printed with a fixed number of decimals and right-aligned,
    missing values are left blank. A dashed rule is drawn above and below
    the header and at the end of the table.

    Parameters:
        df: Table to format
        digits: Decimal places. Defaults to config.DEFAULT_DIGITS
        title: Optional line printed above the table
        note: Optional line printed below the table
        index: Include the row labels

    Returns:
        Formatted table as a single string
    """
    if digits is None:
        digits = config.DEFAULT_DIGITS

    header = [str(c) for c in df.columns]
    body = [[format_number(v, digits) for v in row] for row in df.itertuples(index=False, name=None)]
    labels = [str(i) for i in df.index] if index else []

    widths = [
        max([len(h)] + [len(r[j]) for r in body])
        for j, h in enumerate(header)
    ]
    label_width = max([0] + [len(s) for s in labels])

    def render(label: str, cells: list[str]) -> str:
        parts = [label.ljust(label_width)] if index else []
        parts += [c.rjust(w) for c, w in zip(cells, widths)]
        return "  ".join(parts).rstrip()

    head = render("", header)
    line = "─" * len(head)

    lines = []
    if title:
        lines.append(title)
    lines += [line, head, line]
    lines += [render(labels[i] if index else "", r) for i, r in enumerate(body)]
    lines.append(line)
    if note:
        lines.append(note)
    return "\n".join(lines)


def print_table(
    df: pd.DataFrame,
    digits: int = None,
    title: str = None,
    note: str = None,
    index: bool = True,
    file: Union[str, Path] = None
) -> str:
    """Print a formatted table and optionally write it to a text file."""
    text = format_table(df, digits=digits, title=title, note=note, index=index)
    print(text)
    if file is not None:
        write_text(text, file)
    return text


def write_text(text: str, file: Union[str, Path]) -> Path:
    """Write report text to a file (UTF-8)."""
    path = Path(file)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(text)
        if not text.endswith("\n"):
            f.write("\n")
    print(f"Saved: {path}")
    return path
