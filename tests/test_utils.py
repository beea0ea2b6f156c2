"""Tests for cyclequant.utils module."""

import os

import pytest
import yaml

from cyclequant.errors import ConfigError
from cyclequant.utils import (
    _create_output_dirs,
    _load_config,
    _merge_config,
    _sample_groups,
    load_data,
    save_data,
)


class TestLoadConfig:
    def test_loads_valid_yaml(self, tmp_path):
        config = {'experiment': {'name': 'test'}, 'conditions': {'group_a': 'M', 'group_b': 'G1'}}
        path = str(tmp_path / 'config.yaml')
        with open(path, 'w') as f:
            yaml.dump(config, f)

        result = _load_config(path)
        assert result['experiment']['name'] == 'test'
        assert result['conditions']['group_b'] == 'G1'

    def test_fills_defaults(self, tmp_path):
        path = str(tmp_path / 'config.yaml')
        with open(path, 'w') as f:
            yaml.dump({'statistics': {'fdr_threshold': 0.05}}, f)

        result = _load_config(path)
        assert result['statistics']['fdr_threshold'] == 0.05
        assert result['statistics']['fold_threshold'] == 1.5
        assert result['design']['n_replicates'] == 3
        assert result['aggregation'] == {'variant_statistic': 'sum', 'protein_statistic': 'median'}

    def test_missing_file_raises(self):
        with pytest.raises(FileNotFoundError):
            _load_config('/nonexistent/config.yaml')

    @pytest.mark.parametrize('section, values', [
        ('statistics', {'fdr_threshold': 1.5}),
        ('statistics', {'fold_threshold': 0.8}),
        ('statistics', {'alternative': 'sideways'}),
        ('design', {'n_replicates': 1}),
        ('conditions', {'group_a': 'M', 'group_b': 'M'}),
    ])
    def test_invalid_values_raise(self, tmp_path, section, values):
        path = str(tmp_path / 'config.yaml')
        with open(path, 'w') as f:
            yaml.dump({section: values}, f)

        with pytest.raises(ConfigError):
            _load_config(path)

    def test_merge_does_not_mutate_defaults(self):
        defaults = {'a': {'b': 1}}
        merged = _merge_config(defaults, {'a': {'b': 2}})
        assert merged['a']['b'] == 2
        assert defaults['a']['b'] == 1


class TestSampleGroups:
    def test_splits_by_position(self):
        groups = _sample_groups(['M_1', 'M_2', 'M_3', 'G1_1', 'G1_2', 'G1_3'], 3)
        assert groups['group_a'] == ['M_1', 'M_2', 'M_3']
        assert groups['group_b'] == ['G1_1', 'G1_2', 'G1_3']

    def test_other_group_size(self):
        groups = _sample_groups(['a1', 'a2', 'b1', 'b2'], 2)
        assert groups == {'group_a': ['a1', 'a2'], 'group_b': ['b1', 'b2']}


class TestCreateOutputDirs:
    def test_creates_all_directories(self, tmp_path):
        base = str(tmp_path / 'output')
        dirs = _create_output_dirs(base)

        for key in ('base', 'figures', 'qc', 'viz', 'tables', 'go'):
            assert os.path.isdir(dirs[key])

    def test_idempotent(self, tmp_path):
        base = str(tmp_path / 'output')
        assert _create_output_dirs(base) == _create_output_dirs(base)


class TestSaveLoadData:
    def test_roundtrip(self, tmp_path):
        data = {
            'config': {'data_paths': {'output_dir': str(tmp_path)}},
            'metadata': {'n_proteins': 100, 'n_samples': 6},
            'df': 'placeholder',
        }
        path = str(tmp_path / 'test.pkl')
        save_data(data, path)

        loaded = load_data(path)
        assert loaded['metadata']['n_proteins'] == 100
        assert loaded['df'] == 'placeholder'

    def test_load_missing_file_raises(self):
        with pytest.raises(FileNotFoundError):
            load_data('/nonexistent/data.pkl')

    def test_save_default_path(self, tmp_path):
        data = {
            'config': {'data_paths': {'output_dir': str(tmp_path)}},
            'metadata': {'n_proteins': 50, 'n_samples': 6},
        }
        result_path = save_data(data)
        assert os.path.exists(result_path)
        assert 'data_checkpoint.pkl' in result_path
