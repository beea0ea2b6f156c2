"""
Aggregation functions for the cyclequant pipeline.

Collapses modification variants of the same peptide by summation, removes
incomplete peptides, and rolls peptides up to master proteins by the
per-sample median.
"""

import copy
import os

import numpy as np
import pandas as pd

from .errors import ConfigError, MalformedInputError
from .utils import _all_samples, save_data


def sum_with_missing(block):
    """Column-wise sum. A missing value in any row makes the column missing."""
    return block.sum(axis=0)


def median_reduce(block):
    """Column-wise median, computed independently per column."""
    return np.median(block, axis=0)


def mean_reduce(block):
    """Column-wise mean."""
    return block.mean(axis=0)


REDUCERS = {
    'sum': sum_with_missing,
    'median': median_reduce,
    'mean': mean_reduce,
}


def get_reducer(name):
    """Resolve an aggregation statistic name to its reduction function."""
    try:
        return REDUCERS[name]
    except KeyError:
        raise ConfigError(
            f"Unknown aggregation statistic '{name}' (choose from {', '.join(REDUCERS)})"
        ) from None


def group_reduce(df, keys, value_cols, reducer):
    """
    Group rows by ``keys`` and reduce the value columns of each group.

    Groups are built explicitly as a mapping from key to the positions of
    the contributing rows, and each group's (rows x columns) block is passed
    to ``reducer``, which must return one value per column.

    Parameters
    ----------
    df : pd.DataFrame
        Input table.
    keys : list of str
        Columns identifying a group.
    value_cols : list of str
        Numeric columns to reduce.
    reducer : callable
        Function mapping a 2-D float array to a 1-D array of column values.

    Returns
    -------
    pd.DataFrame
        One row per distinct key, in order of first appearance, with the key
        columns followed by the reduced value columns.
    """
    keys = list(keys)
    value_cols = list(value_cols)

    if df.empty:
        return pd.DataFrame(columns=keys + value_cols)

    groups = df.groupby(keys, sort=False).indices
    ordered = sorted(groups.items(), key=lambda item: item[1][0])

    values = df[value_cols].to_numpy(dtype=float)

    key_rows = []
    reduced = []
    for key, positions in ordered:
        if not isinstance(key, tuple):
            key = (key,)
        key_rows.append(key)
        reduced.append(reducer(values[positions]))

    return pd.concat(
        [
            pd.DataFrame(key_rows, columns=keys),
            pd.DataFrame(np.vstack(reduced), columns=value_cols),
        ],
        axis=1,
    )


def deduplicate_variants(df, sequence_col, protein_col, sample_cols, reducer=sum_with_missing):
    """
    Collapse modification variants to one row per (sequence, protein).

    The variant column and any other non-key column are discarded.
    """
    return group_reduce(df, [sequence_col, protein_col], sample_cols, reducer)


def drop_missing(df, sample_cols):
    """
    Remove every row with a missing value in any sample column.

    Returns
    -------
    tuple
        (complete-case DataFrame, number of rows removed)
    """
    complete = df[sample_cols].notna().all(axis=1)
    kept = df[complete].reset_index(drop=True)
    return kept, int((~complete).sum())


def rollup_by_median(df, protein_col, sample_cols, reducer=median_reduce):
    """
    Roll peptide rows up to one row per protein.

    Returns a DataFrame indexed by protein with one column per sample.
    """
    proteins = group_reduce(df, [protein_col], sample_cols, reducer)
    return proteins.set_index(protein_col)


def agg_cq(data):
    """
    Collapse modification variants and drop incomplete peptides.

    Variant rows sharing a peptide sequence and master protein are combined
    with the configured variant statistic (default: sum). Peptides with a
    missing value in any sample are then removed. No values are imputed.

    Parameters
    ----------
    data : dict
        Output from prep_cq().

    Returns
    -------
    dict
        Updated data dictionary with the peptide-level table in 'df' and
        'peptides', and removal counts in 'metadata'.

    Raises
    ------
    MalformedInputError
        If every peptide has a missing value.

    Example
    -------
    >>> data = prep_cq('config/cell_cycle.yaml')
    >>> data = agg_cq(data)
    """

    print("\n" + "="*80)
    print("PEPTIDE AGGREGATION")
    print("="*80)

    df = data['df']
    config = data['config']
    columns = config['data_columns']
    samples = _all_samples(data['sample_cols'])

    statistic = config['aggregation']['variant_statistic']
    reducer = get_reducer(statistic)

    # =========================================================================
    # 1. COLLAPSE MODIFICATION VARIANTS
    # =========================================================================
    print(f"\n[1/2] Collapsing modification variants ({statistic})...")

    peptides = deduplicate_variants(
        df, columns['sequence'], columns['protein'], samples, reducer=reducer
    )
    print(f"  > {len(df)} variant rows -> {len(peptides)} unique peptides")

    # =========================================================================
    # 2. DROP INCOMPLETE PEPTIDES
    # =========================================================================
    print(f"\n[2/2] Removing peptides with missing values...")

    peptides, n_dropped = drop_missing(peptides, samples)
    print(f"  > Removed {n_dropped} peptides with at least one missing value")
    print(f"    Remaining: {len(peptides)} peptides")

    if peptides.empty:
        raise MalformedInputError("No complete peptides remain after missing-value elision")

    output_dir = data['output_dirs']['tables']
    os.makedirs(output_dir, exist_ok=True)
    peptides_path = os.path.join(output_dir, 'peptides_aggregated.tsv')
    peptides.to_csv(peptides_path, sep='\t', index=False)
    print(f"  > Saved: peptides_aggregated.tsv")

    metadata = dict(data['metadata'])
    metadata['n_unique_peptides'] = len(peptides) + n_dropped
    metadata['n_missing_dropped'] = n_dropped
    metadata['n_peptides'] = len(peptides)

    data_updated = copy.copy(data)
    data_updated['df'] = peptides
    data_updated['peptides'] = peptides
    data_updated['metadata'] = metadata

    output_path = os.path.join(config['data_paths']['output_dir'], 'data_after_agg.pkl')
    save_data(data_updated, output_path)

    print("\n" + "="*80)
    print("AGGREGATION COMPLETE")
    print("="*80)
    print(f"\nNext step: norm_cq() for total-signal normalization")
    print("="*80 + "\n")

    return data_updated


def rollup_cq(data):
    """
    Roll normalized peptides up to master proteins.

    Each protein's abundance in a sample is the configured protein statistic
    (default: median) over all of its peptides in that sample.

    Parameters
    ----------
    data : dict
        Output from norm_cq().

    Returns
    -------
    dict
        Updated data dictionary with the protein table (indexed by master
        protein) in 'df' and 'proteins'.
    """

    print("\n" + "="*80)
    print("PROTEIN ROLL-UP")
    print("="*80)

    df = data['df']
    config = data['config']
    protein_col = config['data_columns']['protein']
    samples = _all_samples(data['sample_cols'])

    statistic = config['aggregation']['protein_statistic']
    reducer = get_reducer(statistic)

    print(f"\nRolling up {len(df)} peptides by {statistic}...")

    proteins = rollup_by_median(df, protein_col, samples, reducer=reducer)

    if proteins[samples].isna().any().any():
        raise MalformedInputError("Missing values remain after protein roll-up")

    peptides_per_protein = df.groupby(protein_col).size()
    print(f"  > {len(proteins)} proteins")
    if len(peptides_per_protein):
        print(f"    Peptides per protein: median {peptides_per_protein.median():.0f}, "
              f"max {peptides_per_protein.max()}")
        print(f"    Single-peptide proteins: {(peptides_per_protein == 1).sum()}")

    output_dir = data['output_dirs']['tables']
    proteins.to_csv(os.path.join(output_dir, 'proteins_abundance.tsv'), sep='\t')
    print(f"  > Saved: proteins_abundance.tsv")

    metadata = dict(data['metadata'])
    metadata['n_proteins'] = len(proteins)

    data_updated = copy.copy(data)
    data_updated['df'] = proteins
    data_updated['proteins'] = proteins
    data_updated['metadata'] = metadata

    output_path = os.path.join(config['data_paths']['output_dir'], 'data_after_rollup.pkl')
    save_data(data_updated, output_path)

    print("\n" + "="*80)
    print("ROLL-UP COMPLETE")
    print("="*80)
    print(f"\nNext step: stat_cq() for differential testing")
    print("="*80 + "\n")

    return data_updated
