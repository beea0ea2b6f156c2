"""
Visualization functions for the cyclequant pipeline.

Generates volcano plots and a comparison of point-estimate and
conservative effect sizes from the final results.
"""

import os

import matplotlib.pyplot as plt
import numpy as np

_CATEGORY_STYLE = [
    ('unchanged', '#CCCCCC', 'Not changed'),
    ('down', '#3498DB', 'Decreased'),
    ('up', '#E74C3C', 'Increased'),
]


def viz_cq(data, top_n=15):
    """
    Create visualization plots for the differential results.

    Creates:
    - Volcano plot (difference vs -log10 FDR), top changes labeled
    - Point estimate vs conservative effect size scatter

    Parameters
    ----------
    data : dict
        Output from effect_cq().
    top_n : int, optional
        Number of changed proteins to label per direction (default: 15).

    Returns
    -------
    list of str
        Paths of the saved figures.

    Example
    -------
    >>> data = effect_cq(data)
    >>> viz_cq(data)
    """

    print("\n" + "="*80)
    print("CREATING VISUALIZATIONS")
    print("="*80)

    results = data['stats_results']
    stats_params = data['stats_params']
    annotation = data.get('annotation')
    comparison = stats_params['comparison']
    fdr_thresh = stats_params['fdr_threshold']
    fc_thresh = stats_params['log2fc_threshold']

    viz_dir = data['output_dirs']['viz']
    os.makedirs(viz_dir, exist_ok=True)
    print(f"\nOutput directory: {viz_dir}")

    saved = []

    # =========================================================================
    # 1. VOLCANO PLOT
    # =========================================================================
    print(f"\n[1/2] Creating volcano plot for {comparison}...")

    neg_log10_fdr = -np.log10(results['fdr'].clip(lower=1e-300))

    fig, ax = plt.subplots(figsize=(10, 8))

    for category, color, label in _CATEGORY_STYLE:
        mask = (results['direction'] == category).to_numpy()
        ax.scatter(
            results['difference'][mask],
            neg_log10_fdr[mask],
            c=color,
            label=f"{label} ({mask.sum()})",
            s=30,
            alpha=0.6,
            edgecolors='none'
        )

    ax.axhline(-np.log10(fdr_thresh), color='black', linestyle='--',
               linewidth=1, alpha=0.5, label=f'FDR = {fdr_thresh}')
    ax.axvline(fc_thresh, color='black', linestyle='--', linewidth=1, alpha=0.5)
    ax.axvline(-fc_thresh, color='black', linestyle='--', linewidth=1, alpha=0.5)

    for direction in ('up', 'down'):
        changed = results[results['direction'] == direction]
        top = changed.reindex(changed['effect_size'].abs().sort_values(ascending=False).index[:top_n])
        for protein, row in top.iterrows():
            label = protein
            if annotation is not None and protein in annotation.index and annotation.loc[protein, 'name']:
                label = annotation.loc[protein, 'name']
            ax.annotate(
                label,
                xy=(row['difference'], -np.log10(max(row['fdr'], 1e-300))),
                xytext=(10, 10),
                textcoords='offset points',
                fontsize=8,
                alpha=0.8,
                arrowprops=dict(arrowstyle='-', lw=0.5, color='black')
            )

    ax.set_xlabel('Log2 Difference', fontsize=12, fontweight='bold')
    ax.set_ylabel('-Log10 FDR', fontsize=12, fontweight='bold')
    ax.set_title(f'Volcano Plot: {comparison}', fontsize=14, fontweight='bold')
    ax.legend(loc='lower right', fontsize=10)
    ax.grid(alpha=0.3)

    volcano_path = os.path.join(viz_dir, f'volcano_{comparison}.pdf')
    plt.tight_layout()
    plt.savefig(volcano_path, dpi=300, bbox_inches='tight')
    plt.close()
    saved.append(volcano_path)

    print(f"  > Saved: volcano_{comparison}.pdf")

    # =========================================================================
    # 2. POINT ESTIMATE VS CONSERVATIVE EFFECT
    # =========================================================================
    print(f"\n[2/2] Creating effect-size comparison...")

    fig, ax = plt.subplots(figsize=(8, 8))

    relevant = results['is_relevant'].to_numpy()
    ax.scatter(results['difference'][~relevant], results['effect_size'][~relevant],
               c='#CCCCCC', s=20, alpha=0.6, edgecolors='none', label='Not relevant')
    ax.scatter(results['difference'][relevant], results['effect_size'][relevant],
               c='#E74C3C', s=20, alpha=0.7, edgecolors='none', label='Relevant')

    for value in (fc_thresh, -fc_thresh):
        ax.axvline(value, color='black', linestyle='--', linewidth=1, alpha=0.5)
        ax.axhline(value, color='black', linestyle='--', linewidth=1, alpha=0.5)
    ax.axline((0, 0), slope=1, color='#7f7f7f', linewidth=1, alpha=0.5)

    n_point = int((results['difference'].abs() > fc_thresh).sum())
    ax.set_title(
        f'Point Estimate vs Conservative Effect\n'
        f'{n_point} pass by point estimate, {int(relevant.sum())} by CI bound',
        fontsize=12, fontweight='bold'
    )
    ax.set_xlabel('Log2 Difference (point estimate)', fontsize=12)
    ax.set_ylabel('Effect Size (CI bound nearest zero)', fontsize=12)
    ax.legend(loc='upper left', fontsize=10)
    ax.grid(alpha=0.3)

    effect_path = os.path.join(viz_dir, f'effect_size_{comparison}.pdf')
    plt.tight_layout()
    plt.savefig(effect_path, dpi=300, bbox_inches='tight')
    plt.close()
    saved.append(effect_path)

    print(f"  > Saved: effect_size_{comparison}.pdf")

    print("\n" + "="*80)
    print("VISUALIZATION COMPLETE")
    print("="*80)
    print(f"\nPlots saved to: {viz_dir}")
    print("\n" + "="*80 + "\n")

    return saved
