"""
Normalization functions for the cyclequant pipeline.

Equalizes total signal across samples to correct for loading differences.
Applied to peptide abundances before the protein roll-up.
"""

import copy
import os

import matplotlib.pyplot as plt
import numpy as np

from .errors import DegenerateNormalizationError
from .utils import _all_samples, save_data


def correction_factors(df, sample_cols):
    """
    Per-sample correction factor: column total / mean of all column totals.

    Raises
    ------
    DegenerateNormalizationError
        If any column total is zero or not finite.
    """
    totals = df[sample_cols].sum(axis=0)

    for col, total in totals.items():
        if not np.isfinite(total) or total == 0:
            raise DegenerateNormalizationError(
                f"Sample column '{col}' has total {total}; cannot normalize"
            )

    return totals / totals.mean()


def total_normalize(df, sample_cols):
    """
    Divide every sample column by its correction factor.

    After scaling, all sample columns sum to the same total (the mean of the
    original totals).

    Returns
    -------
    tuple
        (normalized DataFrame, pd.Series of correction factors)
    """
    factors = correction_factors(df, sample_cols)

    normalized = df.copy()
    normalized[sample_cols] = df[sample_cols] / factors
    return normalized, factors


def norm_cq(data, plot=True):
    """
    Normalize peptide abundances to equal total signal per sample.

    Parameters
    ----------
    data : dict
        Output from agg_cq().
    plot : bool, optional
        Save a before/after column-total bar plot (default: True).

    Returns
    -------
    dict
        Updated data dictionary with normalized abundances in 'df' and the
        correction factors in 'normalization'.

    Example
    -------
    >>> data = agg_cq(data)
    >>> data = norm_cq(data)
    """

    print("\n" + "="*80)
    print("TOTAL-SIGNAL NORMALIZATION")
    print("="*80)

    df = data['df']
    config = data['config']
    samples = _all_samples(data['sample_cols'])

    print(f"\nProcessing {len(df)} peptides across {len(samples)} samples")

    # =========================================================================
    # 1. COLUMN TOTALS BEFORE NORMALIZATION
    # =========================================================================
    print(f"\n[1/2] Column totals before normalization:")

    totals_before = df[samples].sum(axis=0)
    for col, total in totals_before.items():
        print(f"  {col}: {total:.4g}")

    # =========================================================================
    # 2. NORMALIZATION
    # =========================================================================
    print(f"\n[2/2] Scaling samples to the mean column total...")

    normalized, factors = total_normalize(df, samples)
    totals_after = normalized[samples].sum(axis=0)

    for col, factor in factors.items():
        print(f"  {col}: factor {factor:.4f} -> total {totals_after[col]:.4g}")

    spread = totals_after.max() - totals_after.min()
    print(f"  > Column total spread after normalization: {spread:.3g}")

    if plot:
        output_dir = data['output_dirs']['qc']
        os.makedirs(output_dir, exist_ok=True)

        fig, axes = plt.subplots(1, 2, figsize=(12, 5), sharey=True)
        x = np.arange(len(samples))

        axes[0].bar(x, totals_before.values, color='#7f7f7f')
        axes[0].set_title('Before Normalization', fontweight='bold')
        axes[1].bar(x, totals_after.values, color='#1f77b4')
        axes[1].set_title('After Normalization', fontweight='bold')

        for ax in axes:
            ax.set_xticks(x)
            ax.set_xticklabels(samples, rotation=45, ha='right', fontsize=8)
            ax.set_xlabel('Sample', fontsize=10)
            ax.grid(alpha=0.3, axis='y')
        axes[0].set_ylabel('Total Abundance', fontsize=10)

        plt.tight_layout()
        plt.savefig(f"{output_dir}/normalization_comparison.pdf", dpi=300, bbox_inches='tight')
        plt.close()

        print(f"  > Saved: normalization_comparison.pdf")

    data_updated = copy.copy(data)
    data_updated['df'] = normalized
    data_updated['peptides'] = normalized
    data_updated['normalization'] = {
        'method': 'total',
        'factors': factors.to_dict(),
    }

    output_path = os.path.join(config['data_paths']['output_dir'], 'data_after_norm.pkl')
    save_data(data_updated, output_path)

    print("\n" + "="*80)
    print("NORMALIZATION COMPLETE")
    print("="*80)
    print(f"\nNext step: rollup_cq() for protein roll-up")
    print("="*80 + "\n")

    return data_updated
