"""
Effect-size filtering for the cyclequant pipeline.

A protein is called relevant only if the confidence-interval bound closest
to zero exceeds the fold-change threshold. Thresholding the point estimate
instead overstates the share of large changes: with few replicates,
sampling noise pushes some small differences past the threshold, and
keeping only those that crossed selects the inflated tail. The bound
nearest zero can only pass when the whole plausible range does.
"""

import copy
import os

import numpy as np
import pandas as pd

from .errors import MalformedInputError
from .utils import _check_fold_threshold, save_data


def conservative_effect(low, high):
    """
    Signed effect size from a confidence interval (low, high).

    - either bound exactly zero: 0.0 (the interval touches zero)
    - bounds of opposite sign: 0.0 (the interval contains zero)
    - both positive or both negative: the bound with the smaller magnitude
    """
    if np.isnan(low) or np.isnan(high):
        raise MalformedInputError(f"Confidence interval ({low}, {high}) has a missing bound")

    if low == 0 or high == 0:
        return 0.0
    if (low < 0) != (high < 0):
        return 0.0
    if abs(low) <= abs(high):
        return float(low)
    return float(high)


def relevance_threshold(fold_threshold):
    """Log2 effect-size threshold for a linear fold change (1.5 -> 0.585)."""
    _check_fold_threshold(fold_threshold)
    return float(np.log2(fold_threshold))


def classify_changes(results, fold_threshold):
    """
    Add effect size, relevance and the final call to a results table.

    Relevance is computed from the effect size alone; the final call
    ('is_changed') is the AND of significance and relevance.

    Parameters
    ----------
    results : pd.DataFrame
        Test results with 'ci_low', 'ci_high' and 'is_significant'.
    fold_threshold : float
        Minimum linear fold change (> 1).

    Returns
    -------
    pd.DataFrame
        Copy of ``results`` with 'effect_size', 'is_relevant', 'is_changed'
        and 'direction' columns.
    """
    threshold = relevance_threshold(fold_threshold)

    effect_size = np.array(
        [conservative_effect(low, high) for low, high in zip(results['ci_low'], results['ci_high'])],
        dtype=float,
    )
    is_relevant = np.abs(effect_size) > threshold
    is_changed = results['is_significant'].to_numpy(dtype=bool) & is_relevant

    direction = np.where(
        is_changed,
        np.where(effect_size > 0, 'up', 'down'),
        'unchanged',
    )

    return results.assign(
        effect_size=effect_size,
        is_relevant=is_relevant,
        is_changed=is_changed,
        direction=direction,
    )


def effect_cq(data, fold_threshold=None):
    """
    Flag proteins whose conservative effect size passes the fold threshold.

    Parameters
    ----------
    data : dict
        Output from fdr_cq().
    fold_threshold : float, optional
        Minimum linear fold change. Defaults to the config value (1.5).

    Returns
    -------
    dict
        Updated data dictionary whose 'stats_results' gains 'effect_size',
        'is_relevant', 'is_changed' and 'direction', and with
        'significant_proteins' summarizing the calls.

    Example
    -------
    >>> data = fdr_cq(data)
    >>> data = effect_cq(data, fold_threshold=1.5)
    """

    print("\n" + "="*80)
    print("EFFECT-SIZE FILTERING")
    print("="*80)

    config = data['config']
    conditions = config['conditions']
    results = data['stats_results']

    if 'is_significant' not in results.columns:
        raise MalformedInputError("Run fdr_cq() before effect_cq(): 'is_significant' is missing")

    if fold_threshold is None:
        fold_threshold = config['statistics']['fold_threshold']
    threshold = relevance_threshold(fold_threshold)

    print(f"\nFold-change threshold: {fold_threshold} (|log2| > {threshold:.3f})")
    print(f"Effect size: confidence bound nearest zero")

    results = classify_changes(results, fold_threshold)

    sig = results['is_significant'].to_numpy(dtype=bool)
    rel = results['is_relevant'].to_numpy(dtype=bool)
    table = pd.DataFrame(
        [[int((~sig & ~rel).sum()), int((~sig & rel).sum())],
         [int((sig & ~rel).sum()), int((sig & rel).sum())]],
        index=['not significant', 'significant'],
        columns=['not relevant', 'relevant'],
    )

    print(f"\n  Significance x relevance:")
    for line in table.to_string().splitlines():
        print(f"    {line}")

    n_up = int((results['direction'] == 'up').sum())
    n_down = int((results['direction'] == 'down').sum())
    point_relevant = int((results['difference'].abs() > threshold).sum())

    print(f"\n  > Higher in {conditions['group_b']}: {n_up}")
    print(f"  > Lower in {conditions['group_b']}: {n_down}")
    print(f"    (point estimate alone would call {point_relevant} proteins relevant)")

    significant_proteins = {
        'total': n_up + n_down,
        'up': n_up,
        'down': n_down,
        'protein_ids': results.index[results['is_changed']].tolist(),
    }

    stats_params = dict(data['stats_params'])
    stats_params['fold_threshold'] = fold_threshold
    stats_params['log2fc_threshold'] = threshold

    data_updated = copy.copy(data)
    data_updated['stats_results'] = results
    data_updated['stats_params'] = stats_params
    data_updated['significant_proteins'] = significant_proteins
    data_updated['decision_table'] = table

    output_path = os.path.join(config['data_paths']['output_dir'], 'data_after_effect.pkl')
    save_data(data_updated, output_path)

    print("\n" + "="*80)
    print("FILTERING COMPLETE")
    print("="*80)
    print(f"\nNext step: export_cq() for result tables and GO identifier lists")
    print("="*80 + "\n")

    return data_updated
