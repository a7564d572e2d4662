"""
Tests for datasets, stratified folds and toy problems.

Run with: python -m pytest tests/test_datasets.py -v
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from cgpde.datasets import (
    DataSet,
    NUM_FOLDS,
    get_index,
    get_training_data,
    get_validation_data,
    get_testing_data,
    to_one_hot,
    get_dataset,
    list_datasets,
)


def labelled_dataset(class_sizes):
    """Dataset whose single input is the sample index, one-hot outputs."""
    labels = np.concatenate([np.full(n, c) for c, n in enumerate(class_sizes)])
    inputs = np.arange(len(labels), dtype=float).reshape(-1, 1)
    return DataSet(inputs=inputs, outputs=to_one_hot(labels, len(class_sizes)))


class TestDataSet:
    """Tests for DataSet construction and file IO."""

    def test_from_arrays(self):
        data = DataSet.from_arrays(2, 1, 3, [1, 2, 3, 4, 5, 6], [0, 1, 0])
        assert data.num_inputs == 2
        assert data.num_outputs == 1
        assert data.num_samples == 3
        np.testing.assert_array_equal(data.sample_inputs(1), [3.0, 4.0])
        assert data.sample_outputs(1)[0] == 1.0

    def test_shape_mismatch(self):
        with pytest.raises(ValueError, match='Sample count mismatch'):
            DataSet(inputs=np.zeros((3, 2)), outputs=np.zeros((2, 1)))

    def test_from_file_mixed_separators(self, tmp_path):
        path = tmp_path / 'data.txt'
        path.write_text('2,1,3\n1 2 0\n3,4,1\n5\t6\t0\n')
        data = DataSet.from_file(path)
        assert data.num_samples == 3
        np.testing.assert_array_equal(data.inputs[2], [5.0, 6.0])
        np.testing.assert_array_equal(data.outputs[:, 0], [0.0, 1.0, 0.0])

    def test_from_file_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            DataSet.from_file(tmp_path / 'nope.txt')

    def test_from_file_short(self, tmp_path):
        path = tmp_path / 'data.txt'
        path.write_text('1,1,3\n1 0\n')
        with pytest.raises(ValueError):
            DataSet.from_file(path)

    def test_save_round_trip(self, tmp_path):
        data = get_dataset('xor', seed=0)
        loaded = DataSet.from_file(data.save(tmp_path / 'xor.txt'))
        np.testing.assert_array_equal(loaded.inputs, data.inputs)
        np.testing.assert_array_equal(loaded.outputs, data.outputs)

    def test_copy_is_independent(self):
        data = labelled_dataset([2, 2])
        copied = data.copy()
        copied.inputs[0, 0] = 100.0
        assert data.inputs[0, 0] == 0.0


class TestCrossValidation:
    """Tests for shuffling, reduction and fold generation."""

    def test_shuffle_keeps_pairs(self):
        data = labelled_dataset([5, 5, 5])
        original = {(float(x[0]), int(np.argmax(y))) for x, y in zip(data.inputs, data.outputs)}
        data.shuffle(np.random.default_rng(0))
        shuffled = {(float(x[0]), int(np.argmax(y))) for x, y in zip(data.inputs, data.outputs)}
        assert shuffled == original

    def test_shuffle_is_deterministic(self):
        a = labelled_dataset([5, 5])
        b = labelled_dataset([5, 5])
        a.shuffle(np.random.default_rng(9))
        b.shuffle(np.random.default_rng(9))
        np.testing.assert_array_equal(a.inputs, b.inputs)

    def test_class_indices(self):
        data = labelled_dataset([2, 3])
        np.testing.assert_array_equal(data.class_indices(1), [2, 3, 4])

    def test_reduce_sample_size_stratified(self):
        data = labelled_dataset([10, 10, 10])
        reduced = data.reduce_sample_size(0.5)
        assert reduced.num_samples == 15
        for label in range(3):
            assert len(reduced.class_indices(label)) == 5

    def test_reduce_distributes_remainder(self):
        data = labelled_dataset([5, 5, 5])
        reduced = data.reduce_sample_size(0.5)
        # int(7.5) = 7 total; 2 per class plus one extra for class 0
        assert reduced.num_samples == 7
        assert len(reduced.class_indices(0)) == 3

    def test_reduce_full_percentage_is_noop(self):
        data = labelled_dataset([3, 3])
        assert data.reduce_sample_size(1.0) is data

    def test_generate_folds_stratified(self):
        data = labelled_dataset([10, 10, 10])
        folds = data.generate_folds()
        assert len(folds) == NUM_FOLDS
        for fold in folds:
            assert fold.num_samples == 3
            for label in range(3):
                assert len(fold.class_indices(label)) == 1

    def test_folds_partition_samples(self):
        data = labelled_dataset([7, 4, 9])
        folds = data.generate_folds()
        values = sorted(float(v) for fold in folds for v in fold.inputs[:, 0])
        assert values == sorted(float(v) for v in data.inputs[:, 0])
        sizes = [fold.num_samples for fold in folds]
        assert max(sizes) - min(sizes) <= 1


class TestFoldSelection:
    """Tests for choosing training, validation and test folds."""

    def test_get_index(self):
        for test_fold in range(NUM_FOLDS):
            training, validation = get_index(test_fold, np.random.default_rng(test_fold))
            assert len(training) == 7
            assert len(validation) == 2
            chosen = set(training) | set(validation)
            assert len(chosen) == 9
            assert test_fold not in chosen

    def test_get_index_needs_enough_folds(self):
        with pytest.raises(ValueError):
            get_index(0, np.random.default_rng(0), num_folds=5)

    def test_split_sizes(self):
        data = labelled_dataset([10, 10, 10])
        folds = data.generate_folds()
        training, validation = get_index(4, np.random.default_rng(1))
        assert get_training_data(folds, training).num_samples == 21
        assert get_validation_data(folds, validation).num_samples == 6
        test = get_testing_data(folds, 4)
        assert test.num_samples == 3
        test.inputs[0, 0] = -1.0
        assert folds[4].inputs[0, 0] != -1.0


class TestToyDatasets:
    """Tests for toy dataset generators."""

    def test_one_hot(self):
        np.testing.assert_array_equal(to_one_hot([0, 2], 3), [[1, 0, 0], [0, 0, 1]])

    @pytest.mark.parametrize('name', ['xor', 'gaussian_clusters', 'circles', 'linear'])
    def test_generators(self, name):
        data = get_dataset(name, seed=0)
        assert data.num_inputs == 2
        np.testing.assert_array_equal(data.outputs.sum(axis=1), 1.0)

    def test_seeded(self):
        a = get_dataset('circles', seed=3)
        b = get_dataset('circles', seed=3)
        np.testing.assert_array_equal(a.inputs, b.inputs)

    def test_unknown(self):
        with pytest.raises(ValueError, match='Unknown dataset'):
            get_dataset('mnist')

    def test_list(self):
        listing = list_datasets()
        assert 'xor' in listing
        assert 'function' not in listing['xor']
