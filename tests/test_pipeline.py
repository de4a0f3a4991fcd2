"""End-to-end run of the scale analysis script."""
import sys
from pathlib import Path

import matplotlib.pyplot as plt
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / 'analyses'))

import run_scale_analysis  # noqa: E402


@pytest.fixture
def params(tmp_path):
    params = {**run_scale_analysis.DEFAULTS}
    params['scales'] = {
        'E': {'vars': ['E1', 'E2', 'E3', 'E4', 'E5'], 'rev': ['E1', 'E2']},
        'A': {'vars': ['A1', 'A2', 'A3', 'A4', 'A5']},
    }
    params['output_base'] = str(tmp_path)
    return params


def test_run_analysis(survey, params):
    results = run_scale_analysis.run_analysis(params, df=survey)
    plt.close('all')

    assert set(results['reliability']) == {'E', 'A'}
    assert results['reliability']['E']['alpha'] > 0.7
    assert results['efa']['n_factors'] == 2
    assert results['cfa']['n_obs'] == 297
    assert results['scores'].shape == (300, 2)
    assert list(results['z_scores'].columns) == ['E_z', 'A_z']

    output_dir = results['output_dir']
    # strip the {DATE}- prefix
    files = {p.name.split('-', 3)[-1] for p in output_dir.iterdir()}
    for expected in ('scale-descriptives.csv', 'scale-correlations.csv', 'scale-correlations.png',
                     'scale-e-items.csv', 'scale-a-report.txt', 'scale-scores.csv', 'scale-scores-z.csv',
                     'scale-efa-loadings.csv', 'scale-efa-eigenvalues.csv', 'scale-efa-heatmap.png',
                     'efa-scree.png', 'scale-cfa-estimates.csv', 'scale-cfa-fit.csv',
                     'scale-report.txt'):
        assert expected in files

    report_path = next(output_dir.glob('*-scale-report.txt'))
    report_text = report_path.read_text(encoding='utf-8')
    assert 'SCALE ANALYSIS REPORT' in report_text
    assert 'E =~ E1 + E2 + E3 + E4 + E5' in report_text
