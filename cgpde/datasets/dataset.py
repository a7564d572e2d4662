"""
Supervised datasets and stratified cross-validation splits.

A DataSet stores sample inputs and target outputs as 2D float arrays. Class
labels are one-hot encoded in the outputs, which is what the stratified fold
construction keys on (an output value of exactly 1.0 marks the class).

File format (one header line, then one sample per line):
    <num_inputs>,<num_outputs>,<num_samples>
    x1 x2 ... y1 y2 ...          (values separated by spaces or commas)
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence, Tuple, Union

import numpy as np

from ..core.genes import rand_int

logger = logging.getLogger(__name__)

NUM_FOLDS = 10
NUM_TRAINING_FOLDS = 7
NUM_VALIDATION_FOLDS = 2


@dataclass(eq=False)
class DataSet:
    """
    Input/output sample pairs.

    Attributes:
        inputs: Array of shape (num_samples, num_inputs)
        outputs: Array of shape (num_samples, num_outputs)
    """
    inputs: np.ndarray
    outputs: np.ndarray
    released: bool = field(default=False, init=False, repr=False)

    def __post_init__(self):
        self.inputs = np.asarray(self.inputs, dtype=float)
        self.outputs = np.asarray(self.outputs, dtype=float)
        if self.inputs.ndim != 2 or self.outputs.ndim != 2:
            raise ValueError("DataSet inputs and outputs must be 2D arrays")
        if len(self.inputs) != len(self.outputs):
            raise ValueError(
                f"Sample count mismatch: {len(self.inputs)} inputs, "
                f"{len(self.outputs)} outputs"
            )

    @classmethod
    def from_arrays(
        cls,
        num_inputs: int,
        num_outputs: int,
        num_samples: int,
        inputs: Sequence[float],
        outputs: Sequence[float],
    ) -> 'DataSet':
        """Build from flat (or already shaped) input and output arrays."""
        return cls(
            inputs=np.array(inputs, dtype=float).reshape(num_samples, num_inputs),
            outputs=np.array(outputs, dtype=float).reshape(num_samples, num_outputs),
        )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> 'DataSet':
        """
        Load a dataset file.

        Raises:
            FileNotFoundError: If ``path`` does not exist
            ValueError: If the header or a sample line is malformed
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Dataset file not found: {path}")

        with open(path) as f:
            header = f.readline()
            try:
                num_inputs, num_outputs, num_samples = (
                    int(v) for v in header.strip().split(',')[:3]
                )
            except ValueError as e:
                raise ValueError(f"Malformed dataset header in {path}: {header!r}") from e

            inputs = np.zeros((num_samples, num_inputs))
            outputs = np.zeros((num_samples, num_outputs))
            row = 0
            for line in f:
                values = [v for v in re.split(r'[ ,\t]+', line.strip()) if v]
                if not values:
                    continue
                if row >= num_samples:
                    logger.warning(
                        "%s holds more than the %d samples declared; extra lines ignored",
                        path, num_samples,
                    )
                    break
                if len(values) != num_inputs + num_outputs:
                    raise ValueError(
                        f"Line {row + 2} of {path} has {len(values)} values, "
                        f"expected {num_inputs + num_outputs}"
                    )
                numbers = [float(v) for v in values]
                inputs[row] = numbers[:num_inputs]
                outputs[row] = numbers[num_inputs:]
                row += 1

        if row < num_samples:
            raise ValueError(f"{path} declares {num_samples} samples but holds {row}")

        return cls(inputs=inputs, outputs=outputs)

    def save(self, path: Union[str, Path]) -> Path:
        """Write the dataset in the format read by from_file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            f.write(f"{self.num_inputs},{self.num_outputs},{self.num_samples}\n")
            for x, y in zip(self.inputs, self.outputs):
                f.write(','.join(repr(float(v)) for v in x))
                f.write(',')
                f.write(','.join(repr(float(v)) for v in y))
                f.write('\n')
        return path

    def release(self) -> None:
        if self.released:
            logger.warning("Double release of dataset prevented")
            return
        self.inputs = np.zeros((0, self.num_inputs))
        self.outputs = np.zeros((0, self.num_outputs))
        self.released = True

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def num_inputs(self) -> int:
        return self.inputs.shape[1]

    @property
    def num_outputs(self) -> int:
        return self.outputs.shape[1]

    @property
    def num_samples(self) -> int:
        return self.inputs.shape[0]

    def sample_inputs(self, sample: int) -> np.ndarray:
        return self.inputs[sample]

    def sample_outputs(self, sample: int) -> np.ndarray:
        return self.outputs[sample]

    def copy(self) -> 'DataSet':
        return DataSet(inputs=self.inputs.copy(), outputs=self.outputs.copy())

    def describe(self) -> str:
        lines = [f"DATA SET ({self.num_samples} samples)"]
        for x, y in zip(self.inputs, self.outputs):
            lines.append(
                ' '.join(f"{v:f}" for v in x) + ' : ' + ' '.join(f"{v:f}" for v in y)
            )
        return '\n'.join(lines)

    # -------------------------------------------------------------------------
    # Cross-validation
    # -------------------------------------------------------------------------

    def shuffle(self, rng: np.random.Generator) -> None:
        """Shuffle samples in place by ``num_samples`` random pair swaps."""
        n = self.num_samples
        for _ in range(n):
            a = rand_int(rng, n)
            b = rand_int(rng, n)
            self.inputs[[a, b]] = self.inputs[[b, a]]
            self.outputs[[a, b]] = self.outputs[[b, a]]

    def class_indices(self, label: int) -> np.ndarray:
        """Indices of the samples whose output ``label`` is exactly 1."""
        return np.flatnonzero(self.outputs[:, label] == 1.0)

    def reduce_sample_size(self, percentage: float) -> 'DataSet':
        """
        Keep ``percentage`` of the samples, preserving class proportions.

        Each class keeps ``int(percentage * class_size)`` samples, taken in
        order; the remainder up to ``int(percentage * num_samples)`` is handed
        out one per class starting from class 0. A percentage outside (0, 1)
        returns this dataset unchanged.
        """
        if percentage <= 0.0 or percentage >= 1.0:
            return self

        total = int(percentage * self.num_samples)
        class_sizes = [
            int(percentage * len(self.class_indices(c)))
            for c in range(self.num_outputs)
        ]
        diff = total - sum(class_sizes)
        for i in range(max(diff, 0)):
            class_sizes[i % self.num_outputs] += 1

        selected: List[int] = []
        for label, size in enumerate(class_sizes):
            remaining = total - len(selected)
            selected.extend(self.class_indices(label)[:min(size, remaining)].tolist())
            if len(selected) >= total:
                break

        return DataSet(
            inputs=self.inputs[selected].copy(),
            outputs=self.outputs[selected].copy(),
        )

    def generate_folds(self, num_folds: int = NUM_FOLDS) -> List['DataSet']:
        """
        Split into stratified folds of near-equal size.

        Samples are dealt class by class, round-robin across the folds, so
        every fold keeps roughly the class proportions of the whole set.
        """
        assignments: List[List[int]] = [[] for _ in range(num_folds)]
        k = 0
        for label in range(self.num_outputs):
            for index in self.class_indices(label):
                assignments[k].append(int(index))
                k = (k + 1) % num_folds

        return [
            DataSet(
                inputs=self.inputs[idx].reshape(len(idx), self.num_inputs),
                outputs=self.outputs[idx].reshape(len(idx), self.num_outputs),
            )
            for idx in assignments
        ]


# =============================================================================
# Fold selection
# =============================================================================

def get_index(
    testing_index: int,
    rng: np.random.Generator,
    num_folds: int = NUM_FOLDS,
) -> Tuple[List[int], List[int]]:
    """
    Randomly choose the training and validation folds for a test fold.

    Draws 7 training folds and then 2 validation folds, each distinct from
    the test fold and from every fold already chosen.

    Returns:
        (training_index, validation_index)
    """
    needed = NUM_TRAINING_FOLDS + NUM_VALIDATION_FOLDS
    if num_folds < needed + 1:
        raise ValueError(f"Need at least {needed + 1} folds, got {num_folds}")

    chosen: List[int] = []
    while len(chosen) < needed:
        candidate = rand_int(rng, num_folds)
        if candidate == testing_index or candidate in chosen:
            continue
        chosen.append(candidate)

    return chosen[:NUM_TRAINING_FOLDS], chosen[NUM_TRAINING_FOLDS:]


def _concatenate(folds: Sequence[DataSet], indices: Sequence[int]) -> DataSet:
    return DataSet(
        inputs=np.vstack([folds[i].inputs for i in indices]),
        outputs=np.vstack([folds[i].outputs for i in indices]),
    )


def get_training_data(folds: Sequence[DataSet], training_index: Sequence[int]) -> DataSet:
    return _concatenate(folds, training_index)


def get_validation_data(folds: Sequence[DataSet], validation_index: Sequence[int]) -> DataSet:
    return _concatenate(folds, validation_index)


def get_testing_data(folds: Sequence[DataSet], testing_index: int) -> DataSet:
    return folds[testing_index].copy()
