"""Tests for cyclequant.export module."""

import os

import pandas as pd
import pytest

from cyclequant import export_cq
from cyclequant.errors import MalformedInputError
from cyclequant.export import annotate_results, go_identifier_lists, write_identifier_list


class TestGoIdentifierLists:
    def test_disjoint_subsets_of_background(self, final_data):
        lists = go_identifier_lists(final_data['stats_results'])

        assert len(lists['background']) == 40
        assert not set(lists['up']) & set(lists['down'])
        assert set(lists['up']) <= set(lists['background'])
        assert set(lists['down']) <= set(lists['background'])

    def test_direction_lists(self):
        results = pd.DataFrame({'direction': ['up', 'down', 'unchanged']}, index=['A', 'B', 'C'])
        lists = go_identifier_lists(results)
        assert lists == {'background': ['A', 'B', 'C'], 'up': ['A'], 'down': ['B']}

    def test_protein_in_both_directions_raises(self):
        results = pd.DataFrame({'direction': ['up', 'down']}, index=['A', 'A'])
        with pytest.raises(MalformedInputError, match='both up and down'):
            go_identifier_lists(results)


class TestWriteIdentifierList:
    def test_one_per_line(self, tmp_path):
        path = write_identifier_list(['P1', 'P2'], str(tmp_path / 'ids.txt'))
        with open(path) as f:
            assert f.read() == 'P1\nP2\n'

    def test_empty_list(self, tmp_path):
        path = write_identifier_list([], str(tmp_path / 'ids.txt'))
        assert os.path.getsize(path) == 0


class TestAnnotateResults:
    def test_joins_name_and_description(self):
        results = pd.DataFrame({'p_value': [0.1, 0.2]}, index=['P1', 'P2'])
        annotation = pd.DataFrame({'name': ['A'], 'description': ['alpha']}, index=['P1'])

        annotated = annotate_results(results, annotation)
        assert annotated.loc['P1', 'name'] == 'A'
        assert annotated.loc['P2', 'name'] == ''
        assert 'name' not in results.columns

    def test_without_annotation(self):
        results = pd.DataFrame({'p_value': [0.1]}, index=['P1'])
        assert annotate_results(results, None).columns.tolist() == ['p_value']


class TestExportCq:
    def test_writes_files(self, final_data):
        paths = export_cq(final_data)

        for key in ('results', 'changed', 'go_background', 'go_up', 'go_down'):
            assert os.path.exists(paths[key])

        with open(paths['go_up']) as f:
            assert f.read().split() == [f'P{i:05d}' for i in range(5)]
        with open(paths['go_background']) as f:
            assert len(f.read().split()) == 40

    def test_results_table_annotated(self, final_data):
        paths = export_cq(final_data)
        table = pd.read_csv(paths['results'], sep='\t', index_col=0, keep_default_na=False)

        assert table.loc['P00003', 'name'] == 'GENE3'
        assert {'p_value', 'fdr', 'effect_size', 'is_relevant', 'direction'} <= set(table.columns)

    def test_requires_effect_stage(self, protein_data):
        from cyclequant import fdr_cq, stat_cq

        with pytest.raises(MalformedInputError, match='effect_cq'):
            export_cq(fdr_cq(stat_cq(protein_data)))
