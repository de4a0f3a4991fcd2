"""Shared fixtures: synthetic questionnaire data."""
import matplotlib
matplotlib.use('Agg')

import numpy as np
import pandas as pd
import pytest


def _likert(x, low=1, high=6):
    return np.clip(np.round(3.5 + 1.2 * x), low, high)


@pytest.fixture(scope='session')
def survey():
    """
    Two-factor survey: E1-E5 and A1-A5 on a 1-6 scale, 300 respondents.

    E1 and E2 are negatively keyed, so they need reversing. A few missing
    answers are sprinkled into A5.
    """
    rng = np.random.default_rng(2024)
    n = 300
    extraversion = rng.standard_normal(n)
    agreeableness = rng.standard_normal(n)

    columns = {}
    for i in range(1, 6):
        sign = -1 if i in (1, 2) else 1
        columns[f'E{i}'] = _likert(sign * 0.8 * extraversion + 0.6 * rng.standard_normal(n))
    for i in range(1, 6):
        columns[f'A{i}'] = _likert(0.8 * agreeableness + 0.6 * rng.standard_normal(n))

    df = pd.DataFrame(columns)
    df.loc[[3, 17, 88], 'A5'] = np.nan
    df['gender'] = rng.choice(['F', 'M'], size=n)
    return df


@pytest.fixture
def small():
    """Five items with deliberately shuffled column order and missing values."""
    return pd.DataFrame({
        'x1': [1, 2, 3, 4, 5],
        'x4': [2, 2, 5, 4, 5],
        'x3': [3, 2, np.nan, np.nan, 5],
        'x2': [4, 4, np.nan, 2, 5],
        'x5': [5, 4, 1, 4, 5],
    })
