"""
Data preparation functions for the cyclequant pipeline.

Handles loading the peptide quantification table and the protein
annotation table, and checks the table shape against the experimental
design.
"""

import os

import numpy as np
import pandas as pd

from .errors import MalformedInputError
from .utils import _all_samples, _create_output_dirs, _load_config, _sample_groups, save_data


def read_measurements(path):
    """
    Read a tab-separated peptide quantification table.

    Only the literal ``NA`` is treated as missing, so empty modification
    fields stay empty strings rather than becoming missing.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Measurement file not found: {path}")

    return pd.read_csv(path, sep='\t', na_values=['NA'], keep_default_na=False)


def read_annotation(path, annotation_columns):
    """
    Read a tab-separated protein annotation table.

    Returns a DataFrame indexed by protein id with ``name`` and
    ``description`` columns. Other columns are ignored.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Annotation file not found: {path}")

    df = pd.read_csv(path, sep='\t', dtype=str, keep_default_na=False)

    id_col = annotation_columns['protein_id']
    if id_col not in df.columns:
        raise MalformedInputError(
            f"Annotation table {path} has no '{id_col}' column "
            f"(found: {', '.join(df.columns)})"
        )

    annotation = pd.DataFrame(index=pd.Index(df[id_col], name='protein'))
    for field in ('name', 'description'):
        col = annotation_columns.get(field)
        if col in df.columns:
            annotation[field] = df[col].values
        else:
            annotation[field] = ''

    annotation = annotation[~annotation.index.duplicated(keep='first')]
    return annotation


def validate_measurements(df, data_columns, n_replicates):
    """
    Check the measurement table and return it with numeric sample columns.

    The table must contain the sequence, variant and protein columns
    followed by exactly ``2 * n_replicates`` sample columns. Sample values
    must be numeric and non-negative, or missing.

    Returns
    -------
    tuple
        (validated DataFrame, ordered list of sample column names)
    """
    key_cols = [data_columns['sequence'], data_columns['variant'], data_columns['protein']]

    missing_keys = [c for c in key_cols if c not in df.columns]
    if missing_keys:
        raise MalformedInputError(f"Measurement table is missing column(s): {', '.join(missing_keys)}")

    sample_columns = [c for c in df.columns if c not in key_cols]
    expected = 2 * n_replicates
    if len(sample_columns) != expected:
        raise MalformedInputError(
            f"Expected {expected} sample columns ({n_replicates} per condition), "
            f"found {len(sample_columns)}: {', '.join(map(str, sample_columns))}"
        )

    df = df.copy()

    for col in (data_columns['sequence'], data_columns['protein']):
        blank = df[col].isna() | (df[col].astype(str).str.strip() == '')
        if blank.any():
            rows = ', '.join(str(i) for i in df.index[blank][:5])
            raise MalformedInputError(f"Column '{col}' has empty values (rows: {rows})")
        df[col] = df[col].astype(str)

    df[data_columns['variant']] = df[data_columns['variant']].fillna('').astype(str)

    for col in sample_columns:
        numeric = pd.to_numeric(df[col], errors='coerce')
        bad = numeric.isna() & df[col].notna()
        if bad.any():
            row = df.index[bad][0]
            raise MalformedInputError(
                f"Non-numeric value {df.loc[row, col]!r} in sample column '{col}' (row {row})"
            )
        negative = numeric < 0
        if negative.any():
            row = df.index[negative][0]
            raise MalformedInputError(
                f"Negative value {numeric[row]} in sample column '{col}' (row {row})"
            )
        infinite = np.isinf(numeric)
        if infinite.any():
            row = df.index[infinite][0]
            raise MalformedInputError(f"Infinite value in sample column '{col}' (row {row})")
        df[col] = numeric.astype(float)

    return df, sample_columns


def prep_cq(config_path):
    """
    Load and prepare peptide quantification data for analysis.

    This function:
    1. Loads the YAML configuration file
    2. Reads the tab-separated peptide table
    3. Validates the column layout and numeric sample values
    4. Splits the sample columns into the two conditions by position
    5. Reads the protein annotation table (if configured)
    6. Creates the output directory structure

    Parameters
    ----------
    config_path : str
        Path to YAML configuration file.

    Returns
    -------
    dict
        Dictionary containing:
        - 'df': pd.DataFrame with the raw peptide measurements
        - 'config': loaded configuration dictionary
        - 'sample_cols': maps 'group_a'/'group_b' to sample column names
        - 'annotation': protein annotation DataFrame, or None
        - 'metadata': summary statistics about the data
        - 'output_dirs': paths to output directories

    Example
    -------
    >>> data = prep_cq('config/cell_cycle.yaml')
    >>> print(f"Loaded {len(data['df'])} peptide rows")
    """

    print("\n" + "="*80)
    print("STEP 1: LOADING DATA AND CONFIGURATION")
    print("="*80)

    config = _load_config(config_path)
    conditions = config['conditions']
    n_replicates = config['design']['n_replicates']

    print(f"\n> Configuration loaded")
    print(f"  Experiment: {config['experiment']['name']}")
    print(f"  Conditions: {conditions['group_a']} (A) vs {conditions['group_b']} (B)")
    print(f"  Replicates per condition: {n_replicates}")

    # =========================================================================
    # 1. LOAD MEASUREMENTS
    # =========================================================================
    print(f"\n[1/3] Loading peptide measurements...")

    input_file = config['data_paths']['input_file']
    if not input_file:
        raise FileNotFoundError("data_paths.input_file is not set in the configuration")

    raw = read_measurements(input_file)
    print(f"  > Loaded {raw.shape[0]} rows, {raw.shape[1]} columns")

    df, sample_columns = validate_measurements(raw, config['data_columns'], n_replicates)
    sample_cols = _sample_groups(sample_columns, n_replicates)

    print(f"  {conditions['group_a']}: {', '.join(sample_cols['group_a'])}")
    print(f"  {conditions['group_b']}: {', '.join(sample_cols['group_b'])}")

    missing = df[_all_samples(sample_cols)].isna().sum().sum()
    total = len(df) * len(sample_columns)
    if total:
        print(f"  Missing values: {missing} ({missing / total * 100:.1f}%)")

    # =========================================================================
    # 2. LOAD ANNOTATION
    # =========================================================================
    print(f"\n[2/3] Loading protein annotation...")

    annotation_file = config['data_paths'].get('annotation_file')
    if annotation_file:
        annotation = read_annotation(annotation_file, config['annotation_columns'])
        print(f"  > Loaded annotation for {len(annotation)} proteins")
    else:
        annotation = None
        print(f"  Warning: No annotation file configured, results will carry protein IDs only")

    # =========================================================================
    # 3. CREATE OUTPUT DIRECTORIES
    # =========================================================================
    print(f"\n[3/3] Creating output directories...")

    output_dir = config['data_paths']['output_dir']
    output_dirs = _create_output_dirs(output_dir)
    print(f"  > Output directories created at: {output_dir}")

    protein_col = config['data_columns']['protein']
    metadata = {
        'n_input_rows': len(df),
        'n_input_proteins': df[protein_col].nunique(),
        'n_samples': len(sample_columns),
        'conditions': [conditions['group_a'], conditions['group_b']],
        'replicates_per_condition': n_replicates,
    }

    print("\n" + "="*80)
    print("DATA PREPARATION COMPLETE")
    print("="*80)
    print(f"\nPeptide rows:            {metadata['n_input_rows']}")
    print(f"Master proteins:         {metadata['n_input_proteins']}")
    print(f"Total samples:           {metadata['n_samples']}")
    print("\n" + "="*80 + "\n")

    return_data = {
        'df': df,
        'config': config,
        'sample_cols': sample_cols,
        'annotation': annotation,
        'metadata': metadata,
        'output_dirs': output_dirs,
    }

    save_path = os.path.join(output_dir, 'data_after_prep.pkl')
    save_data(return_data, save_path)

    return return_data
