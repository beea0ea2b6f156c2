"""
Utility functions for the cyclequant pipeline.

Internal helpers for configuration loading, sample column management,
directory management, and data serialization.
"""

import copy
import os
import pickle

import yaml

from .errors import ConfigError

DEFAULT_CONFIG = {
    'experiment': {
        'name': 'cell_cycle',
    },
    'conditions': {
        'group_a': 'M',
        'group_b': 'G1',
    },
    'design': {
        'n_replicates': 3,
    },
    'data_columns': {
        'sequence': 'Sequence',
        'variant': 'Modifications',
        'protein': 'master_protein',
    },
    'annotation_columns': {
        'protein_id': 'Accession',
        'name': 'Gene',
        'description': 'Description',
    },
    'data_paths': {
        'input_file': None,
        'annotation_file': None,
        'output_dir': 'results',
    },
    'aggregation': {
        'variant_statistic': 'sum',
        'protein_statistic': 'median',
    },
    'statistics': {
        'fdr_threshold': 0.01,
        'fold_threshold': 1.5,
        'alternative': 'two-sided',
        'confidence': 0.95,
    },
}

ALTERNATIVES = ('two-sided', 'less', 'greater')


def _merge_config(defaults, overrides):
    """Recursively merge user settings over the defaults."""
    merged = copy.deepcopy(defaults)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def _load_config(config_path):
    """Load YAML config file and fill in defaults."""
    with open(config_path, 'r') as f:
        config = yaml.safe_load(f)

    config = _merge_config(DEFAULT_CONFIG, config)
    _validate_config(config)
    return config


def _validate_config(config):
    """Fail fast on configuration values the pipeline cannot use."""
    n_replicates = config['design']['n_replicates']
    if not isinstance(n_replicates, int) or n_replicates < 2:
        raise ConfigError(f"design.n_replicates must be an integer >= 2, got {n_replicates!r}")

    stats = config['statistics']
    _check_fdr_threshold(stats['fdr_threshold'])
    _check_fold_threshold(stats['fold_threshold'])
    _check_alternative(stats['alternative'])
    _check_confidence(stats['confidence'])

    if config['conditions']['group_a'] == config['conditions']['group_b']:
        raise ConfigError("conditions.group_a and conditions.group_b must differ")


def _check_fdr_threshold(value):
    if not 0 < value < 1:
        raise ConfigError(f"FDR threshold must be in (0, 1), got {value}")
    return value


def _check_fold_threshold(value):
    if value <= 1:
        raise ConfigError(f"Fold-change threshold must be > 1, got {value}")
    return value


def _check_alternative(value):
    if value not in ALTERNATIVES:
        raise ConfigError(f"alternative must be one of {ALTERNATIVES}, got {value!r}")
    return value


def _check_confidence(value):
    if not 0 < value < 1:
        raise ConfigError(f"Confidence level must be in (0, 1), got {value}")
    return value


def _sample_groups(sample_columns, n_replicates):
    """
    Split the ordered sample columns into the two condition groups.

    The first ``n_replicates`` columns are group A and the next
    ``n_replicates`` are group B.
    """
    sample_columns = list(sample_columns)
    return {
        'group_a': sample_columns[:n_replicates],
        'group_b': sample_columns[n_replicates:2 * n_replicates],
    }


def _all_samples(sample_cols):
    """Flatten the group -> columns mapping, group A first."""
    return list(sample_cols['group_a']) + list(sample_cols['group_b'])


def _create_output_dirs(base_dir):
    """Create organized output directory structure."""
    dirs = {
        'base': base_dir,
        'figures': f"{base_dir}/figures",
        'qc': f"{base_dir}/figures/qc",
        'viz': f"{base_dir}/figures/viz",
        'tables': f"{base_dir}/tables",
        'go': f"{base_dir}/go",
    }

    for dir_path in dirs.values():
        os.makedirs(dir_path, exist_ok=True)

    return dirs


def save_data(data, filename=None):
    """
    Save analysis data to pickle file for sequential workflow.

    Parameters
    ----------
    data : dict
        Analysis data dictionary (output from prep_cq, agg_cq, etc.)
    filename : str, optional
        Custom filename. If None, uses default based on output_dir in config.

    Returns
    -------
    str
        Path where data was saved.

    Example
    -------
    >>> data = prep_cq('config/cell_cycle.yaml')
    >>> save_data(data)  # Saves to results/data_checkpoint.pkl
    """
    if filename is None:
        output_dir = data['config']['data_paths']['output_dir']
        filename = os.path.join(output_dir, 'data_checkpoint.pkl')

    os.makedirs(os.path.dirname(filename) or '.', exist_ok=True)

    with open(filename, 'wb') as f:
        pickle.dump(data, f)

    size_mb = os.path.getsize(filename) / (1024 * 1024)

    print(f"\n> Data saved: {filename} ({size_mb:.1f} MB)")
    print(f"  Reload with: load_data('{filename}')")

    return filename


def load_data(filepath):
    """
    Load analysis data from pickle file.

    Parameters
    ----------
    filepath : str
        Path to saved pickle file.

    Returns
    -------
    dict
        Analysis data dictionary.

    Example
    -------
    >>> from cyclequant import load_data
    >>> data = load_data('results/data_after_agg.pkl')
    >>> data = norm_cq(data)  # Continue from where you left off
    """
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"Data file not found: {filepath}")

    print(f"\n{'='*80}")
    print(f"LOADING DATA")
    print(f"{'='*80}")

    with open(filepath, 'rb') as f:
        data = pickle.load(f)

    size_mb = os.path.getsize(filepath) / (1024 * 1024)

    print(f"Location: {filepath}")
    print(f"Size: {size_mb:.1f} MB")

    if 'metadata' in data:
        print(f"\nData contains:")
        for key, value in data['metadata'].items():
            print(f"  {key}: {value}")

    print(f"{'='*80}\n")

    return data
