"""
Multiple-testing correction for the cyclequant pipeline.

Adjusts the per-protein p-values with the Benjamini-Hochberg procedure and
flags proteins passing the FDR threshold. This stage needs every p-value
at once, so it runs only after all proteins have been tested.
"""

import copy
import os

import numpy as np
from statsmodels.stats.multitest import multipletests

from .errors import MalformedInputError
from .utils import _check_fdr_threshold, save_data


def bh_adjust(pvalues):
    """
    Benjamini-Hochberg adjusted p-values, in the input order.

    Sorts p-values ascending, scales the p-value of rank i by m / i, takes
    the running minimum from the largest rank down and clips to 1.

    Parameters
    ----------
    pvalues : array-like
        Raw p-values in [0, 1].

    Returns
    -------
    np.ndarray
        Adjusted p-values (FDR), same length and order as the input.
    """
    pvalues = np.asarray(pvalues, dtype=float)

    if pvalues.size == 0:
        return np.array([], dtype=float)

    invalid = ~np.isfinite(pvalues) | (pvalues < 0) | (pvalues > 1)
    if invalid.any():
        position = int(np.flatnonzero(invalid)[0])
        raise MalformedInputError(
            f"Invalid p-value {pvalues[position]} at position {position}"
        )

    _, adjusted, _, _ = multipletests(pvalues, method='fdr_bh')
    return adjusted


def apply_threshold(fdr, threshold):
    """Significance flags: fdr strictly below threshold."""
    return np.asarray(fdr, dtype=float) < threshold


def fdr_cq(data, fdr_threshold=None):
    """
    Apply Benjamini-Hochberg correction to all protein p-values.

    Parameters
    ----------
    data : dict
        Output from stat_cq().
    fdr_threshold : float, optional
        FDR threshold for significance. Defaults to the config value
        (0.01 unless configured).

    Returns
    -------
    dict
        Updated data dictionary whose 'stats_results' gains the 'fdr' and
        'is_significant' columns.

    Example
    -------
    >>> data = stat_cq(data)
    >>> data = fdr_cq(data, fdr_threshold=0.01)
    """

    print("\n" + "="*80)
    print("MULTIPLE-TESTING CORRECTION")
    print("="*80)

    config = data['config']
    results = data['stats_results']

    if fdr_threshold is None:
        fdr_threshold = config['statistics']['fdr_threshold']
    _check_fdr_threshold(fdr_threshold)

    print(f"\nMethod: Benjamini-Hochberg")
    print(f"FDR threshold: {fdr_threshold}")
    print(f"Tests: {len(results)}")

    fdr = bh_adjust(results['p_value'].to_numpy())
    results = results.assign(
        fdr=fdr,
        is_significant=apply_threshold(fdr, fdr_threshold),
    )

    n_sig = int(results['is_significant'].sum())
    print(f"\n  > {n_sig} proteins with FDR < {fdr_threshold}")

    stats_params = dict(data['stats_params'])
    stats_params['correction'] = 'fdr_bh'
    stats_params['fdr_threshold'] = fdr_threshold

    data_updated = copy.copy(data)
    data_updated['stats_results'] = results
    data_updated['stats_params'] = stats_params

    output_path = os.path.join(config['data_paths']['output_dir'], 'data_after_fdr.pkl')
    save_data(data_updated, output_path)

    print("\n" + "="*80)
    print("CORRECTION COMPLETE")
    print("="*80)
    print(f"\nNext step: effect_cq() for effect-size filtering")
    print("="*80 + "\n")

    return data_updated
