"""Tests for CFA model shorthand and fitting."""
import numpy as np
import pandas as pd
import pytest

from scale_core import cfa


class TestExpandVars:
    def test_range(self):
        assert cfa.expand_vars("X[1:5]") == ['X1', 'X2', 'X3', 'X4', 'X5']

    def test_mixed_terms(self):
        assert cfa.expand_vars("X[1:3] + Y[c(1,3)] + Z") == ['X1', 'X2', 'X3', 'Y1', 'Y3', 'Z']

    def test_plain_list_and_nested_range(self):
        assert cfa.expand_vars("a[c(1:3, 5)]") == ['a1', 'a2', 'a3', 'a5']
        assert cfa.expand_vars("b[2,4]") == ['b2', 'b4']

    def test_descending_range(self):
        assert cfa.expand_vars("q[3:1]") == ['q3', 'q2', 'q1']

    def test_spaces_ignored(self):
        assert cfa.expand_vars(" x7 +  x8+x9 ") == ['x7', 'x8', 'x9']

    @pytest.mark.parametrize('bad', ["X[1:", "X[a:b]", "X]1["])
    def test_malformed(self, bad):
        with pytest.raises(ValueError):
            cfa.expand_vars(bad)


class TestModelSyntax:
    MODEL = """
        Visual =~ x[1:3]
        Textual =~ x[c(4,5,6)]; Speed =~ x7 + x8 + x9
    """

    def test_parse_model(self):
        factors = cfa.parse_model(self.MODEL)
        assert [f['label'] for f in factors] == ['Visual', 'Textual', 'Speed']
        assert factors[1]['vars'] == ['x4', 'x5', 'x6']

    def test_to_model_syntax(self):
        syntax = cfa.to_model_syntax(self.MODEL)
        assert syntax.splitlines() == [
            'Visual =~ x1 + x2 + x3',
            'Textual =~ x4 + x5 + x6',
            'Speed =~ x7 + x8 + x9',
        ]

    def test_highorder(self):
        lines = cfa.to_model_syntax(self.MODEL, highorder='Ability').splitlines()
        assert lines[-2:] == ['Ability =~ Visual + Textual + Speed', 'Ability ~~ Ability']

    def test_orthogonal(self):
        lines = cfa.to_model_syntax(self.MODEL, orthogonal=True).splitlines()
        assert lines[-3:] == ['Visual ~~ 0*Textual', 'Visual ~~ 0*Speed', 'Textual ~~ 0*Speed']

    def test_model_variables_skip_latent(self):
        syntax = cfa.to_model_syntax(self.MODEL, highorder='Ability')
        assert cfa.model_variables(syntax) == [f'x{i}' for i in range(1, 10)]

    @pytest.mark.parametrize('bad', ["A ~ x1 + x2", "=~ x1", "A =~ B =~ x1", "  ;  "])
    def test_invalid_statement(self, bad):
        with pytest.raises(ValueError):
            cfa.parse_model(bad)


TWO_FACTORS = "E =~ E[1:5]; A =~ A[1:5]"


@pytest.fixture(scope='module')
def three_factor():
    """Three first-order factors sharing a general factor, 400 cases."""
    rng = np.random.default_rng(7)
    n = 400
    general = rng.standard_normal(n)
    columns = {}
    for prefix in 'xyz':
        factor = 0.7 * general + 0.7 * rng.standard_normal(n)
        for i in range(1, 4):
            columns[f'{prefix}{i}'] = 0.8 * factor + 0.6 * rng.standard_normal(n)
    return pd.DataFrame(columns)


def _rows(estimates, op, lval=None, rval=None):
    mask = estimates['op'] == op
    if lval is not None:
        mask &= estimates['lval'] == lval
    if rval is not None:
        mask &= estimates['rval'] == rval
    return estimates[mask]


class TestRunCFA:
    def test_two_factor_model(self, survey):
        result = cfa.run_cfa(survey, TWO_FACTORS)
        measures = result['fit_measures']

        assert result['n_obs'] == 297
        assert result['syntax'] == 'E =~ E1 + E2 + E3 + E4 + E5\nA =~ A1 + A2 + A3 + A4 + A5'
        assert measures['CFI'] > 0.9
        assert measures['RMSEA'] < 0.1
        assert 'Est. Std' in result['estimates'].columns
        assert 'CONFIRMATORY FACTOR ANALYSIS' in result['report']

    def test_writes_report(self, survey, tmp_path):
        path = tmp_path / 'cfa.txt'
        cfa.run_cfa(survey, "A =~ A[1:4]", file=path)
        assert 'A =~ A1 + A2 + A3 + A4' in path.read_text(encoding='utf-8')

    def test_unknown_missing_option(self, survey):
        with pytest.raises(ValueError, match='missing'):
            cfa.run_cfa(survey, "A =~ A[1:4]", missing='pairwise')

    def test_absent_column(self, survey):
        with pytest.raises(KeyError, match='A9'):
            cfa.run_cfa(survey, "A =~ A[7:9]")

    def test_identification_is_reported(self, survey):
        result = cfa.run_cfa(survey, TWO_FACTORS)
        assert 'first loading of each factor fixed to 1' in result['report']
        marker = _rows(result['estimates'], '~', lval='E1', rval='E')
        assert marker['Estimate'].iloc[0] == pytest.approx(1)

    def test_fiml_agrees_with_listwise(self, survey):
        listwise = cfa.run_cfa(survey, TWO_FACTORS)
        fiml = cfa.run_cfa(survey, TWO_FACTORS, missing='fiml')

        # the three rows with a missing A5 are kept
        assert fiml['n_obs'] == 300
        assert fiml['fit_measures']['CFI'] > 0.9

        std_listwise = _rows(listwise['estimates'], '~', rval='E').set_index('lval')['Est. Std']
        std_fiml = _rows(fiml['estimates'], '~', rval='E').set_index('lval')['Est. Std']
        np.testing.assert_allclose(
            std_fiml.reindex(std_listwise.index).astype(float), std_listwise.astype(float), atol=0.05
        )

        var_listwise = _rows(listwise['estimates'], '~~', lval='E', rval='E')['Estimate'].iloc[0]
        var_fiml = _rows(fiml['estimates'], '~~', lval='E', rval='E')['Estimate'].iloc[0]
        assert var_fiml > 0.5
        assert var_fiml == pytest.approx(var_listwise, abs=0.05)

    def test_orthogonal_fixes_factor_covariance(self, survey):
        oblique = cfa.run_cfa(survey, TWO_FACTORS)
        orthogonal = cfa.run_cfa(survey, TWO_FACTORS, orthogonal=True)

        assert orthogonal['fit_measures']['DoF'] == oblique['fit_measures']['DoF'] + 1
        estimates = orthogonal['estimates']
        cov = pd.concat([_rows(estimates, '~~', 'E', 'A'), _rows(estimates, '~~', 'A', 'E')])
        assert (cov['Estimate'].astype(float) == 0).all()

    def test_highorder_factor(self, three_factor):
        model = "X =~ x[1:3]; Y =~ y[1:3]; Z =~ z[1:3]"
        first_order = cfa.run_cfa(three_factor, model)
        result = cfa.run_cfa(three_factor, model, highorder='G')

        assert result['syntax'].splitlines()[-2:] == ['G =~ X + Y + Z', 'G ~~ G']
        second_order = _rows(result['estimates'], '~', rval='G')
        assert sorted(second_order['lval']) == ['X', 'Y', 'Z']
        assert (second_order['Est. Std'].astype(float) > 0.4).all()
        # three first-order factors: the second-order model is just-identified
        assert result['fit_measures']['DoF'] == first_order['fit_measures']['DoF']
        assert result['fit_measures']['CFI'] > 0.9
