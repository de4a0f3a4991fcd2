"""
Scale Core Library
==================

Questionnaire scale analysis: descriptive statistics, scale scores with
reverse scoring, reliability, exploratory and confirmatory factor analysis.

Modules:
    config       - Global configuration parameters
    data         - Data loading, item selection, reverse scoring, recoding
    compute      - Row-wise scale scores (count, mode, sum, mean, SD, consec)
    stats        - Descriptive statistics and correlations
    reliability  - Cronbach's alpha, McDonald's omega, item statistics
    efa          - Principal component / exploratory factor analysis
    cfa          - Confirmatory factor analysis
    report       - Table and statistic formatting
    viz          - Visualization utilities
    output       - Output naming and saving
"""

from . import config
from . import data
from . import compute
from . import stats
from . import reliability
from . import efa
from . import cfa
from . import report
from . import viz
from . import output

from .reliability import alpha
from .efa import run_efa, run_pca
from .cfa import run_cfa

__version__ = '1.0.0'

__all__ = [
    'config',
    'data',
    'compute',
    'stats',
    'reliability',
    'efa',
    'cfa',
    'report',
    'viz',
    'output',
    'alpha',
    'run_efa',
    'run_pca',
    'run_cfa',
]
