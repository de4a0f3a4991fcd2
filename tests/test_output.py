"""Tests for dated output files and figures."""
from datetime import date

import matplotlib.pyplot as plt
import pandas as pd
import pytest

from scale_core import output, stats, viz


def test_output_dir_is_dated(tmp_path):
    out = output.get_output_dir('reliability', tmp_path)
    assert out.is_dir()
    assert out.name == f"{date.today().isoformat()}-reliability"


def test_save_results_writes_known_tables(tmp_path, capsys):
    result = {
        'items': pd.DataFrame({'Mean': [1.0, 2.0]}, index=['q1', 'q2']),
        'fit_measures': pd.Series({'CFI': 0.95}),
        'data': pd.DataFrame({'q1': [1]}),
        'report': 'RELIABILITY ANALYSIS',
    }
    paths = output.save_results(result, tmp_path, 'scale', prefix='e')

    assert sorted(p.name.split('-', 3)[-1] for p in paths) == [
        'scale-e-fit.csv', 'scale-e-items.csv', 'scale-e-report.txt',
    ]
    items = pd.read_csv(next(p for p in paths if p.name.endswith('items.csv')),
                        index_col=0, encoding='utf-8-sig')
    assert items.index.tolist() == ['q1', 'q2']

    output.print_summary(tmp_path)
    printed = capsys.readouterr().out
    assert 'CSV (2):' in printed
    assert 'TXT (1):' in printed


def test_empty_summary(tmp_path, capsys):
    output.print_summary(tmp_path / 'missing')
    assert 'No files generated' in capsys.readouterr().out


def test_corr_heatmap_masks_upper_triangle(survey):
    r, _, _ = stats.corr_matrix(survey, ['E3', 'E4', 'E5'])
    fig = viz.plot_corr_heatmap(r)
    # 3 diagonal + 3 lower cells annotated
    assert len(fig.axes[0].texts) == 6
    plt.close(fig)


def test_unknown_cmap():
    with pytest.raises(ValueError):
        viz.get_cmap('rainbow')
