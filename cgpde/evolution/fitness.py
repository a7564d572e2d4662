"""
Fitness functions.

A fitness function has the signature
``(config, chromosome, data) -> float`` and is minimised: lower is better.
The chromosome's active nodes are resolved and its node outputs reset by the
caller (Chromosome.set_fitness) before the function runs.
"""

from typing import Callable, Dict, TYPE_CHECKING

import numpy as np

from ..core.chromosome import Chromosome
from ..datasets import DataSet

if TYPE_CHECKING:
    from .config import EvolutionConfig

FitnessFunction = Callable[['EvolutionConfig', Chromosome, DataSet], float]


def _check_dimensions(chromo: Chromosome, data: DataSet) -> None:
    if chromo.num_inputs != data.num_inputs:
        raise ValueError(
            f"Chromosome has {chromo.num_inputs} inputs but the dataset has "
            f"{data.num_inputs}"
        )
    if chromo.num_outputs != data.num_outputs:
        raise ValueError(
            f"Chromosome has {chromo.num_outputs} outputs but the dataset has "
            f"{data.num_outputs}"
        )


def supervised_learning(
    config: 'EvolutionConfig',
    chromo: Chromosome,
    data: DataSet,
) -> float:
    """
    Sum of absolute differences between chromosome and target outputs.

    Samples are executed in order, so recurrent connections carry state from
    one sample to the next.
    """
    _check_dimensions(chromo, data)

    error = 0.0
    for i in range(data.num_samples):
        outputs = chromo.execute(data.sample_inputs(i))
        error += float(np.sum(np.abs(outputs - data.sample_outputs(i))))
    return error


def accuracy(
    config: 'EvolutionConfig',
    chromo: Chromosome,
    data: DataSet,
) -> float:
    """
    Negative classification accuracy.

    The predicted class is the output with the largest value (first one on
    ties); the true class is the last output whose target is exactly 1.
    Returning ``-accuracy`` turns maximisation into minimisation.
    """
    _check_dimensions(chromo, data)
    if data.num_samples == 0:
        return 0.0

    correct = 0
    for i in range(data.num_samples):
        outputs = chromo.execute(data.sample_inputs(i))
        predicted = int(np.argmax(outputs))
        hits = np.flatnonzero(data.sample_outputs(i) == 1.0)
        actual = int(hits[-1]) if len(hits) else 0
        if predicted == actual:
            correct += 1

    return -correct / data.num_samples


FITNESS_FUNCTIONS: Dict[str, FitnessFunction] = {
    'supervised_learning': supervised_learning,
    'accuracy': accuracy,
}


def get_fitness_function(name: str) -> FitnessFunction:
    if name not in FITNESS_FUNCTIONS:
        available = ', '.join(FITNESS_FUNCTIONS.keys())
        raise ValueError(f"Unknown fitness function '{name}'. Available: {available}")
    return FITNESS_FUNCTIONS[name]
