"""Tests for row-wise scale scores."""
import numpy as np
import pandas as pd
import pytest

from scale_core import compute


def test_count_missing(small):
    counts = compute.count_value(small, 'x', range(1, 6))
    assert counts.tolist() == [0, 0, 2, 1, 0]


def test_count_value(small):
    counts = compute.count_value(small, 'x', range(1, 6), value=2)
    assert counts.tolist() == [1, 3, 0, 1, 0]


def test_row_sum(small):
    assert compute.row_sum(small, 'x', range(1, 6)).tolist() == [15, 14, 9, 14, 25]


def test_row_sum_keeps_missing_without_na_rm(small):
    sums = compute.row_sum(small, 'x', range(1, 6), na_rm=False)
    assert sums.iloc[0] == 15
    assert np.isnan(sums.iloc[2])


def test_row_sum_all_missing_is_zero():
    df = pd.DataFrame({'q1': [np.nan], 'q2': [np.nan]})
    assert compute.row_sum(df, 'q', [1, 2]).tolist() == [0]
    assert np.isnan(compute.row_mean(df, 'q', [1, 2]).iloc[0])


def test_row_mean(small):
    means = compute.row_mean(small, 'x', range(1, 6))
    assert means.tolist() == pytest.approx([3, 2.8, 3, 3.5, 5])


def test_row_mean_with_reverse_and_varrange(small):
    means = compute.row_mean(small, varrange='x1:x2', rev=['x2'], likert=range(1, 6))
    assert means.tolist() == pytest.approx([2, 2, 4, 4, 4])


def test_row_mean_numeric_rev(small):
    means = compute.row_mean(small, 'x', [1, 2], rev=[2], likert=(1, 5))
    # x2 reversed: 6 - x2
    assert means.tolist() == pytest.approx([1.5, 2, 3, 4, 3])


def test_estimated_likert_warns(small):
    with pytest.warns(UserWarning, match='likert') as record:
        compute.row_mean(small, vars=['x1', 'x5'], rev=['x5'])
    # reported at the caller, not inside scale_core
    assert record[0].filename == __file__


def test_row_std(small):
    stds = compute.row_std(small, vars=['x1', 'x5'])
    assert stds.tolist() == pytest.approx(np.std([[1, 5], [2, 4], [3, 1], [4, 4], [5, 5]], axis=1, ddof=1))


def test_row_mode_ties_go_to_first(small):
    modes = compute.row_mode(small, 'x', range(1, 6))
    # row 0 is 1, 4, 3, 2, 5: all tie, so the first value wins
    assert modes.iloc[0] == 1
    assert modes.iloc[1] == 2
    assert modes.iloc[4] == 5


def test_consec_by_item_number(small):
    assert compute.consec(small, 'x', range(1, 6)).tolist() == [0, 2, 0, 2, 5]


def test_consec_by_column_position(small):
    assert compute.consec(small, varrange='x1:x5').tolist() == [0, 3, 0, 2, 5]


def test_consec_restricted_values(small):
    assert compute.consec(small, varrange='x1:x5', values=[4]).tolist() == [0, 2, 0, 2, 0]


def test_longest_run():
    assert compute.longest_run("1222334444") == 4
    assert compute.longest_run("123") == 0
    assert compute.longest_run("NANA") == 0
