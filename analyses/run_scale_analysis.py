#!/usr/bin/env python3
"""
Scale Analysis Script
=====================

Runs the standard questionnaire-scale workflow on one data file:
descriptive statistics, reliability of each subscale, EFA across all
items, and a CFA of the subscale structure.

Parameters:
    data_file    - Path to input CSV
    scales       - {scale name: {'vars': [...], 'rev': [...]}}
    likert       - Response range used for reverse scoring scale means
    method       - EFA extraction method
    rotation     - EFA rotation
    nfactors     - "eigen", "parallel", or an integer
    hide_loadings- Hide absolute loadings below this value
    highorder    - Optional second-order factor name for the CFA

Outputs:
    - Descriptive statistics (CSV)
    - Item correlations (CSV) and heatmap (PNG)
    - Reliability item statistics and report per scale (CSV, TXT)
    - Scale scores, raw and z-scored (CSV)
    - EFA eigenvalues, loadings and report (CSV, TXT)
    - Scree plot and loadings heatmap (PNG)
    - CFA estimates, fit measures and report (CSV, TXT)
    - Summary report (TXT)
"""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import argparse

import pandas as pd

from scale_core import compute, config, data, stats, reliability, efa, cfa, viz, output

# =============================================================================
# PARAMETERS
# =============================================================================
DEFAULTS = {
    'data_file': 'Data/survey.csv',
    'scales': {
        'E': {'vars': ['E1', 'E2', 'E3', 'E4', 'E5'], 'rev': ['E1', 'E2']},
        'A': {'vars': ['A1', 'A2', 'A3', 'A4', 'A5'], 'rev': ['A1']},
    },
    'likert': (1, 6),
    'method': config.DEFAULT_METHOD,
    'rotation': config.DEFAULT_ROTATION,
    'nfactors': 'parallel',
    'hide_loadings': 0.3,
    'highorder': '',
    'output_base': config.DEFAULT_OUTPUT_BASE,
    'random_state': 42,
}

TEST_NAME = 'scale'


# =============================================================================
# MAIN ANALYSIS
# =============================================================================
def run_analysis(params: dict, df: pd.DataFrame = None) -> dict:
    """
    Run the scale analysis pipeline.

    Parameters:
        params: Dictionary with analysis parameters
        df: Data to analyze. Loaded from params['data_file'] when None

    Returns:
        Dictionary with all analysis results
    """
    print("=" * 70)
    print("SCALE ANALYSIS")
    print("=" * 70)

    output_dir = output.get_output_dir(TEST_NAME, params['output_base'])
    viz.setup_style()

    # Step 1: Load data
    if df is None:
        df = data.load_csv(params['data_file'])

    scales = params['scales']
    all_items = [v for scale in scales.values() for v in scale['vars']]
    all_rev = [v for scale in scales.values() for v in scale.get('rev', [])]

    # Step 2: Descriptive statistics
    desc = stats.describe(df, all_items)
    output.save_csv(desc, output_dir, TEST_NAME, 'descriptives', index=True)

    r, p, _ = stats.corr_matrix(df, all_items)
    stats.print_corr_matrix(r, p)
    output.save_csv(r, output_dir, TEST_NAME, 'correlations', index=True)
    output.save_figure(viz.plot_corr_heatmap(r), output_dir, TEST_NAME, 'correlations')

    # Step 3: Reliability and scale scores
    reliabilities = {}
    scores = pd.DataFrame(index=df.index)
    for name, scale in scales.items():
        rel = reliability.alpha(df, vars=scale['vars'], rev=scale.get('rev'))
        reliabilities[name] = rel
        output.save_results(rel, output_dir, TEST_NAME, prefix=name.lower())

        scores[name] = compute.row_mean(
            df, vars=scale['vars'], rev=scale.get('rev'), likert=params['likert']
        )
    output.save_csv(scores, output_dir, TEST_NAME, 'scores', index=True)
    z_scores = data.standardize_features(scores, list(scales))
    output.save_csv(z_scores, output_dir, TEST_NAME, 'scores-z', index=True)

    # Step 4: EFA across all items
    efa_results = efa.run_efa(
        df, vars=all_items, rev=all_rev,
        method=params['method'], rotation=params['rotation'],
        nfactors=params['nfactors'], hide_loadings=params['hide_loadings'],
        output_dir=output_dir, random_state=params['random_state'],
    )
    output.save_results(efa_results, output_dir, TEST_NAME, prefix='efa')
    heatmap = viz.plot_loadings_heatmap(efa_results['loadings'])
    output.save_figure(heatmap, output_dir, TEST_NAME, 'efa-heatmap')

    # Step 5: CFA of the subscale structure
    model = "; ".join(f"{name} =~ {' + '.join(scale['vars'])}" for name, scale in scales.items())
    cfa_results = cfa.run_cfa(df, model, highorder=params['highorder'])
    output.save_results(cfa_results, output_dir, TEST_NAME, prefix='cfa')

    # Step 6: Generate report
    report_text = generate_report(reliabilities, efa_results, cfa_results, params)
    output.save_report(report_text, output_dir, TEST_NAME)

    print("\n" + "=" * 70)
    print("ANALYSIS COMPLETE")
    print("=" * 70)
    output.print_summary(output_dir)

    return {
        'df': df,
        'descriptives': desc,
        'reliability': reliabilities,
        'scores': scores,
        'z_scores': z_scores,
        'efa': efa_results,
        'cfa': cfa_results,
        'output_dir': output_dir,
    }


def generate_report(reliabilities, efa_results, cfa_results, params):
    """Generate text report summarizing analysis."""
    lines = [
        "=" * 70,
        "SCALE ANALYSIS REPORT",
        "=" * 70,
        "",
        "CONFIGURATION",
        "-" * 50,
        f"Data file: {params['data_file']}",
        f"Scales: {', '.join(params['scales'])}",
        f"EFA: {efa_results['extraction_method']}, {efa_results['rotation_method']}",
        f"Factors extracted: {efa_results['n_factors']} (nfactors={params['nfactors']})",
        "",
        "RELIABILITY",
        "-" * 50,
    ]

    for name, rel in reliabilities.items():
        lines.append(
            f"{name}: alpha={rel['alpha']:.3f} ({config.get_alpha_label(rel['alpha'])}), "
            f"omega={rel['omega']:.3f}, items={rel['n_items']}, n={rel['n_valid']}"
        )
        for message in rel['warnings']:
            lines.append(f"  ! {message}")

    lines.extend([
        "",
        "FACTOR INTERPRETATION",
        "-" * 50,
    ])

    for factor, loaders in efa.interpret_factors(efa_results['loadings']).items():
        if loaders:
            lines.append(f"\n{factor}:")
            for var, loading in loaders:
                sign = "+" if loading > 0 else "-"
                lines.append(f"  {sign} {var}: {loading:.2f}")

    measures = cfa_results['fit_measures']
    lines.extend([
        "",
        "CFA MODEL FIT",
        "-" * 50,
        cfa_results['syntax'],
        "",
        f"CFI={measures['CFI']:.3f}, TLI={measures['TLI']:.3f}, RMSEA={measures['RMSEA']:.3f}",
        "",
        "=" * 70,
    ])

    return "\n".join(lines)


# =============================================================================
# ENTRY POINT
# =============================================================================
if __name__ == '__main__':
    parser = argparse.ArgumentParser(description=__doc__.split('\n')[1])
    parser.add_argument('--data-file', default=DEFAULTS['data_file'])
    parser.add_argument('--nfactors', default=DEFAULTS['nfactors'],
                        help='"eigen", "parallel", or an integer')
    parser.add_argument('--output-base', default=DEFAULTS['output_base'])
    args = parser.parse_args()

    params = {**DEFAULTS}
    params['data_file'] = args.data_file
    params['nfactors'] = int(args.nfactors) if args.nfactors.isdigit() else args.nfactors
    params['output_base'] = args.output_base
    results = run_analysis(params)
