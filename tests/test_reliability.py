"""Tests for Cronbach's alpha, McDonald's omega, and the alpha() report."""
import numpy as np
import pandas as pd
import pytest

from scale_core import reliability


def test_alpha_of_identical_items_is_one():
    x = pd.Series([1, 2, 3, 4, 5, 3, 2])
    df = pd.DataFrame({'a': x, 'b': x, 'c': x})
    assert reliability.cronbach_alpha(df) == pytest.approx(1.0)


def test_alpha_matches_formula(survey):
    items = survey[['A1', 'A2', 'A3', 'A4']]
    k = items.shape[1]
    expected = k / (k - 1) * (1 - items.var(ddof=1).sum() / items.sum(axis=1).var(ddof=1))
    assert reliability.cronbach_alpha(items) == pytest.approx(expected)


def test_alpha_needs_two_items():
    assert np.isnan(reliability.cronbach_alpha(pd.DataFrame({'a': [1, 2, 3]})))


def test_standardized_alpha_from_mean_correlation():
    rng = np.random.default_rng(1)
    f = rng.standard_normal(200)
    df = pd.DataFrame({f'q{i}': f + rng.standard_normal(200) for i in range(4)})
    r = df.corr().values[np.triu_indices(4, 1)].mean()
    assert reliability.standardized_alpha(df) == pytest.approx(4 * r / (1 + 3 * r))


def test_omega_close_to_alpha_for_congeneric_items(survey):
    items = survey[['A1', 'A2', 'A3', 'A4', 'A5']].dropna()
    omega = reliability.mcdonald_omega(items)
    alpha = reliability.cronbach_alpha(items)
    assert 0.6 < omega <= 1
    assert abs(omega - alpha) < 0.1


def test_items_needing_reversal(survey):
    flagged = reliability.items_needing_reversal(survey[['E1', 'E2', 'E3', 'E4', 'E5']])
    assert flagged == ['E1', 'E2']


def test_item_statistics(survey):
    items = survey[['E3', 'E4', 'E5']]
    table = reliability.item_statistics(items)
    assert list(table.columns) == ['Mean', 'S.D.', 'Item-Rest Cor.', 'Cronbach’s α']
    assert table.loc['E3', 'Mean'] == pytest.approx(items['E3'].mean())
    assert table.loc['E3', 'Cronbach’s α'] == pytest.approx(
        reliability.cronbach_alpha(items[['E4', 'E5']])
    )
    assert (table['Item-Rest Cor.'] > 0.3).all()


class TestAlphaReport:
    def test_reversed_scale(self, survey):
        result = reliability.alpha(survey, 'E', range(1, 6), rev=[1, 2])
        assert result['alpha'] > 0.7
        assert result['items_need_rev'] == []
        assert result['warnings'] == []
        assert list(result['items'].index[:2]) == ['E1 (rev)', 'E2 (rev)']
        assert 'Cronbach’s α' in result['report']
        assert 'McDonald’s ω' in result['report']

    def test_unreversed_scale_warns(self, survey):
        result = reliability.alpha(survey, vars=['E1', 'E2', 'E3', 'E4', 'E5'])
        assert result['items_need_rev'] == ['E1', 'E2']
        assert any('reliability is low' in m for m in result['warnings'])
        assert 'rev=["E1", "E2"]' in result['report']

    def test_listwise_case_counts(self, survey):
        result = reliability.alpha(survey, varrange='A1:A5')
        assert result['n_total'] == 300
        assert result['n_valid'] == 297
        assert 'Valid Cases: 297 (99.0%)' in result['report']

    def test_writes_report(self, survey, tmp_path):
        path = tmp_path / 'alpha.txt'
        reliability.alpha(survey, 'A', range(1, 5), file=path)
        assert 'RELIABILITY ANALYSIS' in path.read_text(encoding='utf-8')

    def test_single_item_rejected(self, survey):
        with pytest.raises(ValueError):
            reliability.alpha(survey, vars=['A1'])
