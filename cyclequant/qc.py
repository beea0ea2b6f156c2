"""
Quality control plots for the cyclequant pipeline.

Generates missing-value, sample correlation and PCA plots from the raw
peptide measurements.
"""

import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns
from sklearn.decomposition import PCA
from sklearn.preprocessing import StandardScaler

from .utils import _all_samples

_COLORS = {
    'group_a': '#1f77b4',
    'group_b': '#d62728',
}


def _log2_or_nan(values):
    """Log2 of positive values; zeros and missing values become NaN."""
    return np.log2(values.where(values > 0))


def qc_cq(data, output_suffix=''):
    """
    Generate quality control plots and metrics.

    Creates:
    - Missing value heatmap
    - Sample correlation heatmap (log2 abundances)
    - PCA plot of samples (complete peptides only)

    Parameters
    ----------
    data : dict
        Output from prep_cq().
    output_suffix : str, optional
        Suffix to add to output filenames.

    Returns
    -------
    dict
        QC metrics: overall missing percentage and mean within-condition
        correlation.

    Example
    -------
    >>> data = prep_cq('config/cell_cycle.yaml')
    >>> qc_cq(data)
    """

    print("\n" + "="*80)
    print("QUALITY CONTROL ANALYSIS")
    if output_suffix:
        print(f"Output suffix: {output_suffix}")
    print("="*80)

    df = data['df']
    config = data['config']
    sample_cols = data['sample_cols']
    conditions = config['conditions']
    qc_dir = data['output_dirs']['qc']

    all_samples = _all_samples(sample_cols)
    log_values = _log2_or_nan(df[all_samples])

    print(f"\nGenerating QC plots...")
    print(f"  Output directory: {qc_dir}")

    metrics = {}

    # =========================================================================
    # 1. MISSING VALUES HEATMAP
    # =========================================================================
    print(f"\n[1/3] Creating missing values heatmap...")

    presence_data = df[all_samples].notna().astype(int)

    fig, ax = plt.subplots(figsize=(12, 6))

    sns.heatmap(
        presence_data.T,
        cmap='RdYlGn',
        vmin=0,
        vmax=1,
        cbar_kws={'label': 'Present (1) vs Missing (0)'},
        yticklabels=all_samples,
        xticklabels=False,
        ax=ax
    )

    ax.set_title('Missing Value Pattern Across Samples', fontsize=14, fontweight='bold')
    ax.set_xlabel('Peptide rows', fontsize=12)
    ax.set_ylabel('Samples', fontsize=12)

    plt.tight_layout()
    plt.savefig(f"{qc_dir}/01_missing_values{output_suffix}.pdf", dpi=300, bbox_inches='tight')
    plt.close()

    print(f"  > Saved: 01_missing_values{output_suffix}.pdf")

    total_values = presence_data.size
    total_missing = total_values - presence_data.sum().sum()
    pct_missing = (total_missing / total_values) * 100 if total_values else 0.0
    metrics['pct_missing'] = pct_missing
    print(f"    Overall: {pct_missing:.1f}% missing values")

    for col in all_samples:
        print(f"    {col}: {df[col].isna().sum()} missing")

    # =========================================================================
    # 2. CORRELATION HEATMAP
    # =========================================================================
    print(f"\n[2/3] Creating sample correlation heatmap...")

    corr_data = log_values.corr()

    fig, ax = plt.subplots(figsize=(8, 7))

    sns.heatmap(
        corr_data,
        annot=True,
        fmt='.2f',
        cmap='RdBu_r',
        vmin=0,
        vmax=1,
        center=0.5,
        square=True,
        cbar_kws={'label': 'Pearson Correlation (log2)'},
        ax=ax
    )

    ax.set_title('Sample-to-Sample Correlation', fontsize=14, fontweight='bold')
    ax.set_xticklabels(ax.get_xticklabels(), rotation=45, ha='right', fontsize=8)
    ax.set_yticklabels(ax.get_yticklabels(), rotation=0, fontsize=8)

    plt.tight_layout()
    plt.savefig(f"{qc_dir}/02_correlation_heatmap{output_suffix}.pdf", dpi=300, bbox_inches='tight')
    plt.close()

    print(f"  > Saved: 02_correlation_heatmap{output_suffix}.pdf")

    print(f"\n  Average correlations within conditions:")
    metrics['within_condition_correlation'] = {}
    for group, cols in sample_cols.items():
        condition_corr = corr_data.loc[cols, cols]
        mask = np.triu(np.ones(condition_corr.shape), k=1).astype(bool)
        avg_corr = condition_corr.where(mask).stack().mean()
        metrics['within_condition_correlation'][conditions[group]] = avg_corr
        print(f"    {conditions[group]}: {avg_corr:.3f}")

    # =========================================================================
    # 3. PCA PLOT
    # =========================================================================
    print(f"\n[3/3] Creating PCA plot...")

    _create_pca_plot(
        log_values, sample_cols, conditions,
        title=f"PCA - {conditions['group_a']} vs {conditions['group_b']}",
        save_path=f"{qc_dir}/03_pca_plot{output_suffix}.pdf",
    )

    print("\n" + "="*80)
    print("QC COMPLETE")
    print("="*80)
    print(f"\nPlots saved to: {qc_dir}")
    print(f"  - 01_missing_values{output_suffix}.pdf")
    print(f"  - 02_correlation_heatmap{output_suffix}.pdf")
    print(f"  - 03_pca_plot{output_suffix}.pdf")
    print("="*80 + "\n")

    return metrics


def _create_pca_plot(log_values, sample_cols, conditions, title, save_path):
    """Create and save a PCA scatter plot of the samples."""
    all_samples = _all_samples(sample_cols)
    pca_data = log_values[all_samples].dropna()

    if len(pca_data) < 2:
        print(f"  Warning: Only {len(pca_data)} complete peptides, skipping PCA")
        return None

    if len(pca_data) < 10:
        print(f"  Warning: Only {len(pca_data)} complete peptides")

    scaled_data = StandardScaler().fit_transform(pca_data.T)

    pca = PCA(n_components=2)
    pca_coords = pca.fit_transform(scaled_data)

    fig, ax = plt.subplots(figsize=(10, 8))

    offset = 0
    for group, cols in sample_cols.items():
        coords = pca_coords[offset:offset + len(cols)]
        offset += len(cols)
        ax.scatter(
            coords[:, 0],
            coords[:, 1],
            c=_COLORS[group],
            label=conditions[group],
            s=200,
            alpha=0.7,
            edgecolors='black',
            linewidth=2
        )

    for i, col in enumerate(all_samples):
        ax.annotate(
            col,
            (pca_coords[i, 0], pca_coords[i, 1]),
            xytext=(8, 8),
            textcoords='offset points',
            fontsize=10,
            fontweight='bold',
        )

    ax.set_xlabel(f'PC1 ({pca.explained_variance_ratio_[0]*100:.1f}%)', fontsize=12)
    ax.set_ylabel(f'PC2 ({pca.explained_variance_ratio_[1]*100:.1f}%)', fontsize=12)
    ax.set_title(title, fontsize=14, fontweight='bold')
    ax.legend(fontsize=12, loc='best')
    ax.grid(alpha=0.3)

    plt.tight_layout()
    plt.savefig(save_path, dpi=300, bbox_inches='tight')
    plt.close()

    print(f"  > Saved: {save_path.split('/')[-1]}")
    print(f"    PC1 explains {pca.explained_variance_ratio_[0]*100:.1f}% of variance")
    print(f"    PC2 explains {pca.explained_variance_ratio_[1]*100:.1f}% of variance")

    return pca_coords
