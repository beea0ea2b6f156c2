"""
Differential abundance testing for the cyclequant pipeline.

Log2-transforms protein abundances and runs an independent two-sample
Student t-test (equal variance) per protein, comparing condition B against
condition A, with a pooled-variance confidence interval for the difference
in means.
"""

import copy
import os

import numpy as np
import pandas as pd
from scipy.stats import t as t_dist
from scipy.stats import ttest_ind

from .errors import InsufficientReplicatesError, MalformedInputError
from .utils import _all_samples, _check_alternative, _check_confidence, save_data

RESULT_COLUMNS = ['mean_a', 'mean_b', 'difference', 'ci_low', 'ci_high', 'p_value']

# Standard errors below this are treated as exactly zero spread.
_ZERO_SE = 1e-12


def log2_transform(df, sample_cols):
    """
    Log2-transform the sample columns.

    Every value must be strictly positive; a zero abundance has no finite
    logarithm and is reported with its row and column.
    """
    values = df[sample_cols]
    non_positive = values <= 0
    if non_positive.any().any():
        col = non_positive.any(axis=0).idxmax()
        row = non_positive[col].idxmax()
        raise MalformedInputError(
            f"Non-positive abundance {values.loc[row, col]} for '{row}' in sample '{col}'; "
            f"cannot log2-transform"
        )

    transformed = df.copy()
    transformed[sample_cols] = np.log2(values)
    return transformed


def ttest_row(values_a, values_b, alternative='two-sided', confidence=0.95):
    """
    Student t-test of group B against group A for one protein.

    Parameters
    ----------
    values_a, values_b : array-like
        Log2 abundances of the two groups. Non-finite values are ignored.
    alternative : str, optional
        'two-sided' (default), 'greater' (B > A) or 'less' (B < A).
    confidence : float, optional
        Confidence level of the interval (default: 0.95).

    Returns
    -------
    dict
        mean_a, mean_b, difference (mean B - mean A), ci_low, ci_high,
        p_value. One-sided alternatives give a one-sided interval with an
        infinite bound.

    Raises
    ------
    InsufficientReplicatesError
        If either group has fewer than 2 finite values.
    """
    a = np.asarray(values_a, dtype=float)
    b = np.asarray(values_b, dtype=float)
    a = a[np.isfinite(a)]
    b = b[np.isfinite(b)]

    if len(a) < 2 or len(b) < 2:
        raise InsufficientReplicatesError(
            f"Need at least 2 finite values per group, got {len(a)} (A) and {len(b)} (B)"
        )

    n_a, n_b = len(a), len(b)
    mean_a, mean_b = a.mean(), b.mean()
    difference = mean_b - mean_a

    dof = n_a + n_b - 2
    pooled_var = ((n_a - 1) * a.var(ddof=1) + (n_b - 1) * b.var(ddof=1)) / dof
    se = np.sqrt(pooled_var * (1.0 / n_a + 1.0 / n_b))

    if se < _ZERO_SE:
        # No within-group spread: the t statistic is undefined.
        if alternative == 'greater':
            p_value = 0.0 if difference > 0 else 1.0
        elif alternative == 'less':
            p_value = 0.0 if difference < 0 else 1.0
        else:
            p_value = 0.0 if difference != 0 else 1.0
        ci_low, ci_high = difference, difference
    else:
        p_value = float(ttest_ind(b, a, equal_var=True, alternative=alternative).pvalue)

        if alternative == 'two-sided':
            margin = t_dist.ppf((1 + confidence) / 2, dof) * se
            ci_low, ci_high = difference - margin, difference + margin
        elif alternative == 'greater':
            ci_low, ci_high = difference - t_dist.ppf(confidence, dof) * se, np.inf
        else:
            ci_low, ci_high = -np.inf, difference + t_dist.ppf(confidence, dof) * se

    return {
        'mean_a': float(mean_a),
        'mean_b': float(mean_b),
        'difference': float(difference),
        'ci_low': float(ci_low),
        'ci_high': float(ci_high),
        'p_value': p_value,
    }


def ttest_proteins(log_df, cols_a, cols_b, alternative='two-sided', confidence=0.95):
    """
    Run ttest_row independently on every row of a log2 abundance table.

    Returns
    -------
    pd.DataFrame
        Indexed like ``log_df`` with the columns of RESULT_COLUMNS.
    """
    values_a = log_df[cols_a].to_numpy(dtype=float)
    values_b = log_df[cols_b].to_numpy(dtype=float)

    records = []
    for i, protein in enumerate(log_df.index):
        try:
            records.append(ttest_row(values_a[i], values_b[i], alternative, confidence))
        except InsufficientReplicatesError as e:
            raise InsufficientReplicatesError(f"Protein '{protein}': {e}") from e

    return pd.DataFrame(records, index=log_df.index, columns=RESULT_COLUMNS)


def stat_cq(data, alternative=None, confidence=None):
    """
    Test every protein for a difference between the two conditions.

    For each protein:
    - Log2-transforms the abundances (once, here)
    - Runs a Student t-test (equal variance, unpaired) of B against A
    - Reports the difference in means with its confidence interval

    Multiple-testing correction happens afterwards in fdr_cq(), once all
    p-values are available.

    Parameters
    ----------
    data : dict
        Output from rollup_cq().
    alternative : str, optional
        'two-sided', 'greater' or 'less'. Defaults to the config value.
    confidence : float, optional
        Confidence level of the interval. Defaults to the config value.

    Returns
    -------
    dict
        Updated data dictionary with:
        - 'log2': log2 protein abundances
        - 'stats_results': DataFrame with one test result per protein
        - 'stats_params': parameters used for testing

    Example
    -------
    >>> data = rollup_cq(data)
    >>> data = stat_cq(data)
    """

    print("\n" + "="*80)
    print("DIFFERENTIAL TESTING")
    print("="*80)

    df = data['df']
    config = data['config']
    sample_cols = data['sample_cols']
    conditions = config['conditions']

    if alternative is None:
        alternative = config['statistics']['alternative']
    if confidence is None:
        confidence = config['statistics']['confidence']
    _check_alternative(alternative)
    _check_confidence(confidence)

    if not df.index.is_unique:
        raise MalformedInputError("Protein table index must be unique before testing")

    comparison = f"{conditions['group_b']}_vs_{conditions['group_a']}"
    print(f"\nComparison: {comparison}")
    print(f"  Test: Student t-test, equal variance, {alternative}")
    print(f"  Confidence interval: {confidence:.0%}")

    # =========================================================================
    # 1. LOG2 TRANSFORM
    # =========================================================================
    print(f"\n[1/2] Log2-transforming {len(df)} proteins...")

    log_df = log2_transform(df, _all_samples(sample_cols))
    print(f"  > Log2 transformation applied")

    # =========================================================================
    # 2. PER-PROTEIN T-TESTS
    # =========================================================================
    print(f"\n[2/2] Running t-tests...")

    results = ttest_proteins(
        log_df, sample_cols['group_a'], sample_cols['group_b'],
        alternative=alternative, confidence=confidence,
    )
    results.index.name = config['data_columns']['protein']

    print(f"  > Tested {len(results)} proteins")
    if len(results):
        print(f"    Raw p < 0.05: {(results['p_value'] < 0.05).sum()}")
        print(f"    Median |difference|: {results['difference'].abs().median():.3f}")

    output_dir = data['output_dirs']['tables']
    results.to_csv(os.path.join(output_dir, f'ttest_{comparison}.tsv'), sep='\t')
    print(f"  > Saved: ttest_{comparison}.tsv")

    data_updated = copy.copy(data)
    data_updated['log2'] = log_df
    data_updated['stats_results'] = results
    data_updated['stats_params'] = {
        'comparison': comparison,
        'alternative': alternative,
        'confidence': confidence,
    }

    output_path = os.path.join(config['data_paths']['output_dir'], 'data_after_stat.pkl')
    save_data(data_updated, output_path)

    print("\n" + "="*80)
    print("TESTING COMPLETE")
    print("="*80)
    print(f"\nNext step: fdr_cq() for multiple-testing correction")
    print("="*80 + "\n")

    return data_updated
