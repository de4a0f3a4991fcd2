"""
Global Configuration for Scale Analysis
=======================================

Central location for default parameters used across the scale_core modules.
Every function that reads one of these also accepts it as an argument,
so override per call rather than editing this file.
"""

# =============================================================================
# OUTPUT FORMATTING
# =============================================================================
DEFAULT_DIGITS = 3          # Decimal places in printed tables
BANNER_WIDTH = 60
RULE_WIDTH = 50

# =============================================================================
# RELIABILITY CONFIGURATION
# =============================================================================
LOW_ALPHA_THRESHOLD = 0.5   # Below this, warn that reliability is low

ALPHA_THRESHOLDS = {
    0.9: "Excellent",
    0.8: "Good",
    0.7: "Acceptable",
    0.6: "Questionable",
    0.5: "Poor",
    0.0: "Unacceptable",
}

# =============================================================================
# EFA CONFIGURATION
# =============================================================================
DEFAULT_METHOD = 'pca'
DEFAULT_ROTATION = 'varimax'
DEFAULT_NFACTORS = 'eigen'
DEFAULT_MIN_EIGEN = 1.0
ROTATION_MAX_ITER = 500

# Parallel analysis (Monte Carlo simulation of random-data eigenvalues)
PARALLEL_N_ITER = 20
PARALLEL_QUANTILE = 0.95

LOADING_THRESHOLD = 0.5     # Threshold for "high" factor loadings

# Extraction methods: user-facing name -> (factor_analyzer method, label).
# factor_analyzer has no wls, gls or alpha extraction
EXTRACTION_METHODS = {
    'pca': ('principal', 'Principal Component Analysis'),
    'principal': ('principal', 'Principal Axis Factor Analysis'),
    'pa': ('principal', 'Principal Axis Factor Analysis'),
    'minres': ('minres', 'Minimum Residual Factor Analysis'),
    'uls': ('minres', 'Unweighted Least Squares Factor Analysis'),
    'ols': ('minres', 'Ordinary Least Squares Factor Analysis'),
    'ml': ('ml', 'Maximum Likelihood Factor Analysis'),
}

ROTATION_METHODS = {
    'none': 'None',
    'varimax': 'Varimax',
    'oblimin': 'Oblimin',
    'promax': 'Promax',
    'quartimax': 'Quartimax',
    'equamax': 'Equamax',
}

# =============================================================================
# CFA CONFIGURATION
# =============================================================================
# missing -> semopy objective. "fiml" fits semopy.ModelMeans, whose 'ML'
# objective is the full-information likelihood over raw rows with NaNs
CFA_MISSING = {
    'listwise': 'MLW',
    'fiml': 'ML',
}
CFA_FIT_MEASURES = ['chi2', 'DoF', 'chi2 p-value', 'CFI', 'TLI', 'RMSEA', 'GFI', 'AIC', 'BIC']

# =============================================================================
# OUTPUT CONFIGURATION
# =============================================================================
DEFAULT_OUTPUT_BASE = 'outputs'
DEFAULT_DPI = 150

# =============================================================================
# KMO INTERPRETATION LABELS
# =============================================================================
KMO_THRESHOLDS = {
    0.9: "Marvelous",
    0.8: "Meritorious",
    0.7: "Middling",
    0.6: "Mediocre",
    0.5: "Miserable",
    0.0: "Unacceptable",
}


def _label_for(value: float, thresholds: dict) -> str:
    for threshold, label in sorted(thresholds.items(), reverse=True):
        if value >= threshold:
            return label
    return "Unacceptable"


def get_kmo_label(kmo_value: float) -> str:
    """Return human-readable KMO interpretation."""
    return _label_for(kmo_value, KMO_THRESHOLDS)


def get_alpha_label(alpha_value: float) -> str:
    """Return human-readable interpretation of a reliability coefficient."""
    return _label_for(alpha_value, ALPHA_THRESHOLDS)
