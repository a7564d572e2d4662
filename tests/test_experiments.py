"""
Tests for cross-validation experiments.

Run with: python -m pytest tests/test_experiments.py -v
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from cgpde.datasets import NUM_FOLDS, gaussian_clusters
from cgpde.experiments import (
    ExperimentConfig,
    FoldResult,
    ResultsSink,
    fold_seed,
    repetition_seed,
    fold_worker,
    prepare_folds,
    split_fold,
    run_experiment,
    summarise,
)


def tiny_settings(tmp_path, **overrides):
    data_path = tmp_path / 'clusters.txt'
    if not data_path.exists():
        gaussian_clusters(n_samples=60, n_classes=3, seed=0).save(data_path)
    params = dict(
        dataset_path=str(data_path),
        num_nodes=6,
        arity=3,
        np_in=4,
        max_iter_in=1,
        np_out=4,
        max_iter_out=2,
        num_gens_cgp=3,
        num_gens_in=1,
        num_gens_out=3,
        num_repetitions=1,
        output_dir=str(tmp_path / 'results'),
        n_workers=1,
    )
    params.update(overrides)
    return ExperimentConfig(**params)


class TestExperimentConfig:
    """Tests for ExperimentConfig."""

    def test_defaults_match_iris_setup(self):
        settings = ExperimentConfig()
        assert settings.num_nodes == 500
        assert settings.arity == 20
        assert settings.connection_weight_range == 5.0
        assert settings.cr == 0.9
        assert settings.f == 0.7
        assert settings.np_out == 20
        assert settings.max_iter_out == 2570
        assert settings.num_repetitions == 3

    def test_unknown_algorithm(self):
        with pytest.raises(ValueError, match='Unknown algorithm'):
            ExperimentConfig(algorithms=('cgpann', 'neat'))

    def test_invalid_percentage(self):
        with pytest.raises(ValueError):
            ExperimentConfig(percentage=0.0)
        with pytest.raises(ValueError, match="out of range"):
            ExperimentConfig(percentage=1.5)

    def test_reported_algorithms(self):
        settings = ExperimentConfig(algorithms=('cgpde_out', 'cgpann'))
        assert settings.reported_algorithms == ['cgpann', 'cgpde_out_t', 'cgpde_out_v']

    def test_dict_round_trip(self):
        settings = ExperimentConfig(num_nodes=7, algorithms=('cgpann',))
        restored = ExperimentConfig.from_dict(settings.to_dict())
        assert restored == settings

    def test_build_evolution_config(self):
        config = ExperimentConfig().build_evolution_config(4, 3)
        assert config.num_inputs == 4
        assert config.num_outputs == 3
        assert config.function_set.names == ['sig']
        assert config.fitness_function_name == 'accuracy'


class TestResultsSink:
    """Tests for the locked results file."""

    def test_header_and_lines(self, tmp_path):
        sink = ResultsSink(tmp_path / 'cgpann.txt')
        sink.write_header()
        sink.append(0, 3, 0.5)
        sink.append(1, 0, 0.96667)
        lines = sink.path.read_text().splitlines()
        assert lines[0] == 'i,\tj,\taccuracy'
        assert lines[1] == '0,\t3,\t0.5000'
        assert lines[2] == '1,\t0,\t0.9667'
        assert sink.read() == [(0, 3, 0.5), (1, 0, 0.9667)]


class TestFolds:
    """Tests for fold preparation."""

    def test_seeds(self):
        assert repetition_seed(2) == 52
        assert fold_seed(2, 3) == 28

    def test_split_fold_sizes(self, tmp_path):
        settings = tiny_settings(tmp_path)
        data = settings.load_dataset()
        folds = prepare_folds(data, 0, settings)
        assert len(folds) == NUM_FOLDS
        train, valid, test = split_fold(folds, 0, 4)
        assert train.num_samples + valid.num_samples + test.num_samples == 60
        assert test.num_samples == folds[4].num_samples

    def test_prepare_folds_is_reproducible(self, tmp_path):
        settings = tiny_settings(tmp_path)
        data = settings.load_dataset()
        a = prepare_folds(data, 1, settings)
        b = prepare_folds(data, 1, settings)
        for x, y in zip(a, b):
            np.testing.assert_array_equal(x.inputs, y.inputs)

    def test_reduced_percentage(self, tmp_path):
        settings = tiny_settings(tmp_path, percentage=0.5)
        folds = prepare_folds(settings.load_dataset(), 0, settings)
        assert sum(f.num_samples for f in folds) == 30


class TestRunExperiment:
    """End-to-end runs with tiny budgets."""

    def test_worker(self, tmp_path):
        settings = tiny_settings(tmp_path, algorithms=('cgpann',))
        folds = prepare_folds(settings.load_dataset(), 0, settings)
        train, valid, test = split_fold(folds, 0, 2)
        out = tmp_path / 'results'
        ResultsSink(out / 'cgpann.txt').write_header()
        outcome = fold_worker((settings.to_dict(), 0, 2, train, valid, test, str(out)))
        assert outcome['status'] == 'completed'
        result = FoldResult(**outcome['result'])
        assert set(result.accuracies) == {'cgpann'}
        assert 0.0 <= result.accuracies['cgpann'] <= 1.0

    def test_worker_reports_failure(self, tmp_path):
        settings = tiny_settings(tmp_path, node_functions='bogus')
        folds = prepare_folds(settings.load_dataset(), 0, settings)
        train, valid, test = split_fold(folds, 0, 0)
        outcome = fold_worker((settings.to_dict(), 0, 0, train, valid, test, str(tmp_path)))
        assert outcome['status'] == 'failed'
        assert 'bogus' in outcome['error']

    def test_full_experiment(self, tmp_path, capsys):
        settings = tiny_settings(tmp_path)
        results = run_experiment(settings)

        assert len(results) == NUM_FOLDS
        assert [r.fold for r in results] == list(range(NUM_FOLDS))
        for result in results:
            assert set(result.accuracies) == {'cgpann', 'cgpde_in', 'cgpde_out_t', 'cgpde_out_v'}

        out = Path(settings.output_dir)
        for name in ('cgpann', 'cgpde_in', 'cgpde_out_t', 'cgpde_out_v'):
            rows = ResultsSink(out / f'{name}.txt').read()
            assert len(rows) == NUM_FOLDS
        assert (out / 'splits' / 'TRN_0_0.txt').exists()
        assert (out / 'splits' / 'TST_0_9.txt').exists()

        printed = capsys.readouterr().out
        assert 'CGPDE-OUT-V' in printed

        summary = summarise(results)
        assert summary['cgpann']['n'] == NUM_FOLDS
        assert 0.0 <= summary['cgpde_in']['mean'] <= 1.0

    def test_experiment_is_reproducible(self, tmp_path):
        a = run_experiment(tiny_settings(tmp_path / 'a', algorithms=('cgpann',), save_splits=False))
        b = run_experiment(tiny_settings(tmp_path / 'b', algorithms=('cgpann',), save_splits=False))
        assert [r.accuracies for r in a] == [r.accuracies for r in b]

    def test_bad_node_function_fails_early(self, tmp_path):
        with pytest.raises(ValueError):
            run_experiment(tiny_settings(tmp_path, node_functions='bogus'))
