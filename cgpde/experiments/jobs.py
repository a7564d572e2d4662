"""
Repeated stratified cross-validation experiments.

Each repetition shuffles the dataset, optionally reduces it, and splits it
into stratified folds. Every fold is then used once as the test set while
seven other folds train and two validate. The folds of a repetition run in
parallel with Python multiprocessing; each fold runs CGPANN, CGPDE-IN and
CGPDE-OUT (T and V) one after the other from a single seeded generator.

Test accuracies are appended to one results file per algorithm, guarded by
a file lock so concurrent writers never interleave lines.
"""

import logging
import time
import traceback
from dataclasses import dataclass, field, asdict
from multiprocessing import Pool, cpu_count
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import numpy as np
from filelock import FileLock

from ..datasets import (
    DataSet,
    NUM_FOLDS,
    get_dataset,
    get_index,
    get_testing_data,
    get_training_data,
    get_validation_data,
)
from ..evolution import (
    DEType,
    EvolutionConfig,
    get_best_de_chromosome,
    get_fitness_function,
    run_cgp,
    run_cgpde_in,
    run_cgpde_out,
)

logger = logging.getLogger(__name__)

# Order in which a fold runs its algorithms; they share one random stream
ALGORITHM_ORDER = ('cgpann', 'cgpde_in', 'cgpde_out')

# Results file and console label per reported algorithm
RESULT_FILES = {
    'cgpann': 'cgpann.txt',
    'cgpde_in': 'cgpde_in.txt',
    'cgpde_out_t': 'cgpde_out_t.txt',
    'cgpde_out_v': 'cgpde_out_v.txt',
}
LABELS = {
    'cgpann': 'CGPANN',
    'cgpde_in': 'CGPDE-IN',
    'cgpde_out_t': 'CGPDE-OUT-T',
    'cgpde_out_v': 'CGPDE-OUT-V',
}


@dataclass
class ExperimentConfig:
    """
    Settings of a cross-validation experiment.

    Defaults reproduce the published iris setup: 500 sigmoid nodes of arity
    20, weights in [-5, 5], probabilistic mutation at 5%, CR 0.9, F 0.7.
    """
    # Data
    dataset_path: Optional[str] = None
    dataset_name: str = 'gaussian_clusters'
    dataset_seed: int = 0
    percentage: float = 1.0

    # Chromosome
    num_nodes: int = 500
    arity: int = 20
    node_functions: str = 'sig'
    connection_weight_range: float = 5.0
    mutation_type: str = 'probabilistic'
    mutation_rate: float = 0.05
    fitness_function: str = 'accuracy'

    # Differential evolution
    cr: float = 0.9
    f: float = 0.7
    np_in: int = 10
    max_iter_in: int = 400
    np_out: int = 20
    max_iter_out: int = 2570

    # Generations per algorithm
    num_gens_cgp: int = 50000
    num_gens_in: int = 64
    num_gens_out: int = 40000

    # Protocol
    algorithms: Tuple[str, ...] = ALGORITHM_ORDER
    num_repetitions: int = 3
    num_folds: int = NUM_FOLDS
    output_dir: str = 'results'
    save_splits: bool = True
    n_workers: Optional[int] = None

    def __post_init__(self):
        self.algorithms = tuple(self.algorithms)
        unknown = [a for a in self.algorithms if a not in ALGORITHM_ORDER]
        if unknown:
            available = ', '.join(ALGORITHM_ORDER)
            raise ValueError(f"Unknown algorithm(s) {unknown}. Available: {available}")
        if not 0.0 < self.percentage <= 1.0:
            raise ValueError(f"percentage {self.percentage} out of range (0, 1]")
        if self.num_repetitions < 1:
            raise ValueError(f"num_repetitions must be >= 1, got {self.num_repetitions}")
        for name in ('num_gens_cgp', 'num_gens_in', 'num_gens_out'):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")

    @property
    def reported_algorithms(self) -> List[str]:
        """Result keys produced by the selected algorithms."""
        keys = []
        for name in ALGORITHM_ORDER:
            if name not in self.algorithms:
                continue
            if name == 'cgpde_out':
                keys.extend(['cgpde_out_t', 'cgpde_out_v'])
            else:
                keys.append(name)
        return keys

    def build_evolution_config(self, num_inputs: int, num_outputs: int) -> EvolutionConfig:
        config = EvolutionConfig(
            num_inputs=num_inputs,
            num_nodes=self.num_nodes,
            num_outputs=num_outputs,
            arity=self.arity,
            mutation_type=self.mutation_type,
            mutation_rate=self.mutation_rate,
            connection_weight_range=self.connection_weight_range,
            np_in=self.np_in,
            np_out=self.np_out,
            max_iter_in=self.max_iter_in,
            max_iter_out=self.max_iter_out,
            cr=self.cr,
            f=self.f,
        )
        config.add_node_function(self.node_functions)
        config.set_fitness_function(
            get_fitness_function(self.fitness_function), self.fitness_function,
        )
        return config

    def load_dataset(self) -> DataSet:
        if self.dataset_path:
            return DataSet.from_file(self.dataset_path)
        return get_dataset(self.dataset_name, seed=self.dataset_seed)

    def to_dict(self) -> Dict:
        data = asdict(self)
        data['algorithms'] = list(self.algorithms)
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> 'ExperimentConfig':
        data = data.copy()
        if 'algorithms' in data:
            data['algorithms'] = tuple(data['algorithms'])
        return cls(**data)


@dataclass
class FoldResult:
    """Test accuracies of every algorithm on one fold."""
    repetition: int
    fold: int
    accuracies: Dict[str, float] = field(default_factory=dict)
    elapsed_seconds: float = 0.0

    def to_dict(self) -> Dict:
        return asdict(self)


class ResultsSink:
    """Append-only results file shared by concurrent fold workers."""

    HEADER = "i,\tj,\taccuracy\n"

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _get_lock(self) -> FileLock:
        return FileLock(str(self.path) + '.lock')

    def write_header(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._get_lock():
            self.path.write_text(self.HEADER)

    def append(self, repetition: int, fold: int, accuracy: float) -> None:
        with self._get_lock():
            with open(self.path, 'a') as f:
                f.write(f"{repetition},\t{fold},\t{accuracy:.4f}\n")

    def read(self) -> List[Tuple[int, int, float]]:
        """Parse the recorded (repetition, fold, accuracy) rows."""
        with self._get_lock():
            lines = self.path.read_text().splitlines()[1:]
        rows = []
        for line in lines:
            if not line.strip():
                continue
            i, j, acc = (part.strip() for part in line.split(','))
            rows.append((int(i), int(j), float(acc)))
        return rows


# =============================================================================
# Fold worker
# =============================================================================

def fold_seed(repetition: int, fold: int) -> int:
    return repetition * 10 + fold + 5


def repetition_seed(repetition: int) -> int:
    return repetition + 50


def _test_accuracy(config: EvolutionConfig, chromo, data_test: DataSet) -> float:
    """Test accuracy of ``chromo``; the fitness function returns its negation."""
    accuracy = -chromo.set_fitness(config, data_test)
    chromo.release()
    return accuracy


def run_fold(
    settings: ExperimentConfig,
    repetition: int,
    fold: int,
    data_train: DataSet,
    data_valid: DataSet,
    data_test: DataSet,
    rng: np.random.Generator,
) -> FoldResult:
    """
    Run the selected algorithms on one train/validation/test split.

    Args:
        settings: Experiment settings
        repetition: Cross-validation repetition index
        fold: Test fold index
        data_train: Training set
        data_valid: Validation set
        data_test: Test set
        rng: Generator shared, in order, by every algorithm of the fold

    Returns:
        FoldResult with the test accuracy of each reported algorithm
    """
    start = time.time()
    config = settings.build_evolution_config(data_train.num_inputs, data_train.num_outputs)
    result = FoldResult(repetition=repetition, fold=fold)

    if 'cgpann' in settings.algorithms:
        best = run_cgp(config, data_train, data_valid, settings.num_gens_cgp, rng)
        result.accuracies['cgpann'] = _test_accuracy(config, best, data_test)

    if 'cgpde_in' in settings.algorithms:
        best = run_cgpde_in(config, data_train, data_valid, settings.num_gens_in, rng)
        result.accuracies['cgpde_in'] = _test_accuracy(config, best, data_test)

    if 'cgpde_out' in settings.algorithms:
        population = run_cgpde_out(config, data_train, data_valid, settings.num_gens_out, rng)
        best = get_best_de_chromosome(config, population, data_valid, DEType.OUT_T)
        result.accuracies['cgpde_out_t'] = _test_accuracy(config, best, data_test)
        best = get_best_de_chromosome(config, population, data_valid, DEType.OUT_V)
        result.accuracies['cgpde_out_v'] = _test_accuracy(config, best, data_test)
        for chromo in population:
            chromo.release()

    result.elapsed_seconds = time.time() - start
    return result


def fold_worker(args: Tuple) -> Dict:
    """
    Worker function for a single fold.

    This function runs in a separate process. All inputs must be picklable.

    Args:
        args: Tuple of (settings_dict, repetition, fold, train, valid, test, output_dir)

    Returns:
        Dict with status, repetition, fold, and either the result or the error.
    """
    settings_dict, repetition, fold, data_train, data_valid, data_test, output_dir = args
    settings = ExperimentConfig.from_dict(settings_dict)

    try:
        rng = np.random.default_rng(fold_seed(repetition, fold))
        # The split itself was drawn from the same seed in the parent
        get_index(fold, rng, settings.num_folds)
        result = run_fold(settings, repetition, fold, data_train, data_valid, data_test, rng)

        for key, accuracy in result.accuracies.items():
            ResultsSink(Path(output_dir) / RESULT_FILES[key]).append(repetition, fold, accuracy)

        return {'status': 'completed', 'result': result.to_dict()}

    except Exception as e:
        return {
            'status': 'failed',
            'repetition': repetition,
            'fold': fold,
            'error': str(e),
            'traceback': traceback.format_exc(),
        }


# =============================================================================
# Experiment driver
# =============================================================================

def prepare_folds(data: DataSet, repetition: int, settings: ExperimentConfig) -> List[DataSet]:
    """Shuffle, reduce and split ``data`` for one repetition."""
    shuffled = data.copy()
    shuffled.shuffle(np.random.default_rng(repetition_seed(repetition)))
    reduced = shuffled.reduce_sample_size(settings.percentage)
    return reduced.generate_folds(settings.num_folds)


def split_fold(
    folds: List[DataSet],
    repetition: int,
    fold: int,
    num_folds: int = NUM_FOLDS,
) -> Tuple[DataSet, DataSet, DataSet]:
    """Training, validation and test sets for test fold ``fold``."""
    rng = np.random.default_rng(fold_seed(repetition, fold))
    training_index, validation_index = get_index(fold, rng, num_folds)
    return (
        get_training_data(folds, training_index),
        get_validation_data(folds, validation_index),
        get_testing_data(folds, fold),
    )


def save_split(
    output_dir: Path,
    repetition: int,
    fold: int,
    data_train: DataSet,
    data_valid: DataSet,
    data_test: DataSet,
) -> None:
    splits_dir = output_dir / 'splits'
    for prefix, data in (('TRN', data_train), ('VLD', data_valid), ('TST', data_test)):
        data.save(splits_dir / f"{prefix}_{repetition}_{fold}.txt")


def run_experiment(settings: ExperimentConfig) -> List[FoldResult]:
    """
    Run every repetition and fold of an experiment.

    Returns:
        Completed fold results, ordered by (repetition, fold)

    Raises:
        RuntimeError: If any fold failed; completed folds are still recorded
    """
    data = settings.load_dataset()
    output_dir = Path(settings.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    # Fail early on bad evolution parameters rather than inside a worker
    settings.build_evolution_config(data.num_inputs, data.num_outputs)

    sinks = {
        key: ResultsSink(output_dir / RESULT_FILES[key])
        for key in settings.reported_algorithms
    }
    for sink in sinks.values():
        sink.write_header()

    n_workers = settings.n_workers or max(1, min(settings.num_folds, cpu_count() - 1))
    logger.info(
        "Experiment: %d samples, %d repetitions x %d folds, %d workers",
        data.num_samples, settings.num_repetitions, settings.num_folds, n_workers,
    )
    print("TYPE\t\ti\tj\tFIT\n")

    results: List[FoldResult] = []
    errors: List[Dict] = []

    for i in range(settings.num_repetitions):
        folds = prepare_folds(data, i, settings)

        tasks = []
        for j in range(settings.num_folds):
            data_train, data_valid, data_test = split_fold(folds, i, j, settings.num_folds)
            if settings.save_splits:
                save_split(output_dir, i, j, data_train, data_valid, data_test)
            tasks.append((
                settings.to_dict(), i, j, data_train, data_valid, data_test, str(output_dir),
            ))

        if n_workers == 1:
            outcomes = [fold_worker(task) for task in tasks]
        else:
            with Pool(processes=n_workers) as pool:
                outcomes = pool.map(fold_worker, tasks)

        for outcome in outcomes:
            if outcome['status'] != 'completed':
                logger.error(
                    "Fold %d of repetition %d failed: %s\n%s",
                    outcome['fold'], outcome['repetition'],
                    outcome['error'], outcome['traceback'],
                )
                errors.append(outcome)
                continue
            result = FoldResult(**outcome['result'])
            results.append(result)
            for key, accuracy in result.accuracies.items():
                label = LABELS[key]
                sep = '\t\t' if len(label) < 8 else '\t'
                print(f"{label}{sep}{result.repetition}\t{result.fold}\t{accuracy:.4f}")

    print("\n* * * * * END * * * * *")
    results.sort(key=lambda r: (r.repetition, r.fold))

    if errors:
        raise RuntimeError(f"{len(errors)} fold(s) failed; see log for tracebacks")
    return results


def summarise(results: List[FoldResult]) -> Dict[str, Dict[str, float]]:
    """Mean, standard deviation and median test accuracy per algorithm."""
    by_algorithm: Dict[str, List[float]] = {}
    for result in results:
        for key, accuracy in result.accuracies.items():
            by_algorithm.setdefault(key, []).append(accuracy)
    return {
        key: {
            'mean': float(np.mean(values)),
            'std': float(np.std(values)),
            'median': float(np.median(values)),
            'n': len(values),
        }
        for key, values in by_algorithm.items()
    }
