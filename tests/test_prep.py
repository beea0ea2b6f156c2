"""Tests for cyclequant.prep module."""

import numpy as np
import pandas as pd
import pytest

from cyclequant import prep_cq
from cyclequant.errors import MalformedInputError
from cyclequant.prep import read_annotation, validate_measurements

SAMPLES = ['M_1', 'M_2', 'M_3', 'G1_1', 'G1_2', 'G1_3']

DATA_COLUMNS = {'sequence': 'Sequence', 'variant': 'Modifications', 'protein': 'master_protein'}


def _table(values, extra=None):
    data = {
        'Sequence': ['PEPA', 'PEPB'],
        'Modifications': ['', '1xPhospho [S2]'],
        'master_protein': ['P1', 'P1'],
    }
    for col, col_values in zip(SAMPLES, values):
        data[col] = col_values
    if extra:
        data.update(extra)
    return pd.DataFrame(data)


class TestPrepCq:
    def test_returns_required_keys(self, prepped_data):
        for key in ('df', 'config', 'sample_cols', 'annotation', 'metadata', 'output_dirs'):
            assert key in prepped_data

    def test_sample_groups_follow_column_order(self, prepped_data):
        assert prepped_data['sample_cols']['group_a'] == ['M_1', 'M_2', 'M_3']
        assert prepped_data['sample_cols']['group_b'] == ['G1_1', 'G1_2', 'G1_3']

    def test_reads_na_as_missing(self, prepped_data):
        df = prepped_data['df']
        assert df['G1_2'].isna().sum() == 6
        assert df['M_2'].isna().sum() == 1

    def test_empty_modifications_stay_strings(self, prepped_data):
        mods = prepped_data['df']['Modifications']
        assert not mods.isna().any()
        assert (mods == '').sum() > 0

    def test_metadata_counts(self, prepped_data):
        metadata = prepped_data['metadata']
        assert metadata['n_input_rows'] == 137
        assert metadata['n_input_proteins'] == 41
        assert metadata['n_samples'] == 6
        assert metadata['conditions'] == ['M', 'G1']

    def test_annotation_loaded(self, prepped_data):
        annotation = prepped_data['annotation']
        assert list(annotation.columns) == ['name', 'description']
        assert annotation.loc['P00003', 'name'] == 'GENE3'

    def test_missing_input_file_raises(self, tmp_path, write_config):
        config_path = write_config(tmp_path / 'c.yaml', tmp_path / 'absent.tsv', tmp_path / 'out')
        with pytest.raises(FileNotFoundError):
            prep_cq(config_path)

    def test_without_annotation(self, tmp_path, write_measurements, write_config):
        rows = [['PEPA', '', 'P1', 1, 2, 3, 4, 5, 6]]
        input_file = write_measurements(tmp_path / 'p.tsv', rows)
        config_path = write_config(tmp_path / 'c.yaml', input_file, tmp_path / 'out')

        data = prep_cq(config_path)
        assert data['annotation'] is None


class TestValidateMeasurements:
    def test_valid_table(self):
        df, samples = validate_measurements(_table([[1.0, 2.0]] * 6), DATA_COLUMNS, 3)
        assert samples == SAMPLES
        assert df[SAMPLES].dtypes.eq(float).all()

    def test_wrong_column_count_raises(self):
        df = _table([[1.0, 2.0]] * 6, extra={'Extra': [1.0, 2.0]})
        with pytest.raises(MalformedInputError, match='Expected 6 sample columns'):
            validate_measurements(df, DATA_COLUMNS, 3)

    def test_missing_key_column_raises(self):
        df = _table([[1.0, 2.0]] * 6).drop(columns=['master_protein'])
        with pytest.raises(MalformedInputError, match='master_protein'):
            validate_measurements(df, DATA_COLUMNS, 3)

    def test_non_numeric_value_names_column(self):
        values = [[1.0, 2.0]] * 6
        values[2] = ['1.0', 'high']
        with pytest.raises(MalformedInputError, match="'M_3'"):
            validate_measurements(_table(values), DATA_COLUMNS, 3)

    def test_negative_value_raises(self):
        values = [[1.0, 2.0]] * 6
        values[5] = [1.0, -2.0]
        with pytest.raises(MalformedInputError, match='Negative'):
            validate_measurements(_table(values), DATA_COLUMNS, 3)

    def test_blank_protein_raises(self):
        df = _table([[1.0, 2.0]] * 6)
        df.loc[1, 'master_protein'] = ''
        with pytest.raises(MalformedInputError, match='empty'):
            validate_measurements(df, DATA_COLUMNS, 3)

    def test_missing_values_allowed(self):
        values = [[1.0, np.nan]] + [[1.0, 2.0]] * 5
        df, _ = validate_measurements(_table(values), DATA_COLUMNS, 3)
        assert df['M_1'].isna().sum() == 1

    def test_does_not_mutate_input(self):
        values = [[1, 2]] * 6
        original = _table(values)
        snapshot = original.copy()
        validate_measurements(original, DATA_COLUMNS, 3)
        pd.testing.assert_frame_equal(original, snapshot)


class TestReadAnnotation:
    def test_missing_id_column_raises(self, tmp_path):
        path = tmp_path / 'ann.tsv'
        pd.DataFrame({'Protein': ['P1'], 'Gene': ['G']}).to_csv(path, sep='\t', index=False)

        with pytest.raises(MalformedInputError, match='Accession'):
            read_annotation(str(path), {'protein_id': 'Accession', 'name': 'Gene',
                                        'description': 'Description'})

    def test_missing_optional_columns_blank(self, tmp_path):
        path = tmp_path / 'ann.tsv'
        pd.DataFrame({'Accession': ['P1', 'P1'], 'Gene': ['A', 'B']}).to_csv(path, sep='\t', index=False)

        annotation = read_annotation(str(path), {'protein_id': 'Accession', 'name': 'Gene',
                                                 'description': 'Description'})
        assert len(annotation) == 1
        assert annotation.loc['P1', 'name'] == 'A'
        assert annotation.loc['P1', 'description'] == ''
