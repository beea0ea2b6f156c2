"""Shared test fixtures for cyclequant pipeline tests."""

import numpy as np
import pandas as pd
import pytest
import yaml

_SAMPLES = ['M_1', 'M_2', 'M_3', 'G1_1', 'G1_2', 'G1_3']


def _write_measurements(path, rows):
    """Write measurement rows as a tab-separated table with NA for missing."""
    df = pd.DataFrame(rows, columns=['Sequence', 'Modifications', 'master_protein'] + _SAMPLES)
    df.to_csv(path, sep='\t', index=False, na_rep='NA')
    return str(path)


def _write_config(path, input_file, output_dir, annotation_file=None, **sections):
    config = {
        'experiment': {'name': 'Test_Cell_Cycle'},
        'conditions': {'group_a': 'M', 'group_b': 'G1'},
        'design': {'n_replicates': 3},
        'data_paths': {
            'input_file': str(input_file),
            'annotation_file': str(annotation_file) if annotation_file else None,
            'output_dir': str(output_dir),
        },
    }
    config.update(sections)
    with open(path, 'w') as f:
        yaml.dump(config, f)
    return str(path)


@pytest.fixture
def write_measurements():
    """Writer for small measurement tables with the six standard sample columns."""
    return _write_measurements


@pytest.fixture
def write_config():
    """Writer for YAML configs pointing at a measurement table."""
    return _write_config


@pytest.fixture
def sample_config(tmp_path):
    """Create a YAML config with matching peptide and annotation tables."""
    rng = np.random.default_rng(42)

    n_proteins = 40
    rows = []

    for p in range(n_proteins):
        protein = f'P{p:05d}'

        if p < 5:
            fold, base = 4.0, np.exp(9)
        elif p < 10:
            fold, base = 0.25, np.exp(9)
        else:
            fold, base = 1.0, np.exp(14) * rng.uniform(0.5, 2.0)

        # Peptides of one protein sit 2x apart so the median peptide is stable
        for k, scale in enumerate([1.0, 2.0, 4.0]):
            m = base * scale * rng.normal(1.0, 0.03, 3)
            g = base * scale * fold * rng.normal(1.0, 0.03, 3)
            rows.append([f'PEPTIDE{p}K{k}', '', protein, *m, *g])

        # Oxidized variant of the first peptide
        if p % 4 == 0:
            m = base * 0.1 * rng.normal(1.0, 0.03, 3)
            g = base * 0.1 * fold * rng.normal(1.0, 0.03, 3)
            rows.append([f'PEPTIDE{p}K0', '1xOxidation [M4]', protein, *m, *g])

        # Peptide with a missing value
        if p % 7 == 3:
            values = list(base * rng.normal(1.0, 0.03, 6))
            values[4] = np.nan
            rows.append([f'PEPTIDE{p}NA', '', protein, *values])

    # Protein whose only peptide is incomplete
    rows.append(['LONELYPEPTIDE', '', 'P99999', 1e5, np.nan, 1e5, 1e5, 1e5, 1e5])

    input_file = _write_measurements(tmp_path / 'peptides.tsv', rows)

    annotation = pd.DataFrame({
        'Accession': [f'P{p:05d}' for p in range(n_proteins)],
        'Gene': [f'GENE{p}' for p in range(n_proteins)],
        'Description': [f'Test protein {p}' for p in range(n_proteins)],
        'Length': rng.integers(100, 2000, n_proteins),
    })
    annotation_file = tmp_path / 'annotation.tsv'
    annotation.to_csv(annotation_file, sep='\t', index=False)

    config_path = _write_config(
        tmp_path / 'test_config.yaml', input_file, tmp_path / 'results',
        annotation_file=annotation_file,
        statistics={'fdr_threshold': 0.01, 'fold_threshold': 1.5},
    )

    return config_path, tmp_path


@pytest.fixture
def prepped_data(sample_config):
    """Run prep_cq and return the result for downstream tests."""
    from cyclequant import prep_cq

    config_path, tmp_path = sample_config
    return prep_cq(config_path)


@pytest.fixture
def protein_data(prepped_data):
    """Aggregated, normalized and rolled-up protein data."""
    from cyclequant import agg_cq, norm_cq, rollup_cq

    data = agg_cq(prepped_data)
    data = norm_cq(data, plot=False)
    return rollup_cq(data)


@pytest.fixture
def final_data(protein_data):
    """Data after testing, FDR correction and effect-size filtering."""
    from cyclequant import effect_cq, fdr_cq, stat_cq

    return effect_cq(fdr_cq(stat_cq(protein_data)))
