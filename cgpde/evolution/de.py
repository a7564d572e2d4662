"""
Differential evolution of connection weights on a fixed topology.

The weights of a chromosome are viewed as one flat vector, node-major then
connection-minor (``num_nodes * arity`` values). DE/rand/1/bin evolves a
population of such vectors; a vector is written into its chromosome's node
weights (one direction only) before each fitness evaluation. The topology is
never changed.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import numpy as np

from ..core.chromosome import Chromosome
from ..core.genes import rand_int, random_weight
from ..datasets import DataSet
from .config import MIN_DE_POPULATION, EvolutionConfig

logger = logging.getLogger(__name__)


class DEType(str, Enum):
    """Which budget a DE run uses and how its best member is picked."""
    IN = 'in'          # embedded per generation; best by training fitness
    OUT_T = 'out_t'    # after evolution; best by training fitness
    OUT_V = 'out_v'    # after evolution; best by validation fitness

    @property
    def is_out(self) -> bool:
        return self is not DEType.IN


@dataclass(eq=False)
class DEChromosome:
    """A weight vector bound to a chromosome whose topology is frozen."""
    chromo: Chromosome
    weights: np.ndarray
    released: bool = field(default=False, init=False, repr=False)

    def transfer(self) -> None:
        """Write the weight vector into the chromosome's node weights."""
        transfer_weights(self.weights, self.chromo)

    def release(self) -> None:
        if self.released:
            logger.warning("Double release of DE chromosome prevented")
            return
        self.chromo.release()
        self.weights = np.zeros(0)
        self.released = True


# =============================================================================
# Weight vector view
# =============================================================================

def num_chromosome_weights(chromo: Chromosome) -> int:
    return chromo.num_nodes * chromo.arity


def chromosome_weights(chromo: Chromosome) -> np.ndarray:
    """Flatten node weights into one vector (node-major)."""
    return np.concatenate([node.weights for node in chromo.nodes]).astype(float)


def transfer_weights(weights: np.ndarray, chromo: Chromosome) -> None:
    """Copy a flat weight vector into ``chromo``'s node weight arrays."""
    if len(weights) != num_chromosome_weights(chromo):
        raise ValueError(
            f"Weight vector has {len(weights)} values, chromosome needs "
            f"{num_chromosome_weights(chromo)}"
        )
    rows = np.asarray(weights, dtype=float).reshape(chromo.num_nodes, chromo.arity)
    for node, row in zip(chromo.nodes, rows):
        node.weights = row.copy()


def _budget(config: 'EvolutionConfig', de_type: DEType):
    if de_type is DEType.IN:
        name, population_size, max_iter = 'np_in', config.np_in, config.max_iter_in
    else:
        name, population_size, max_iter = 'np_out', config.np_out, config.max_iter_out
    # Partner selection needs three members distinct from the target
    if population_size < MIN_DE_POPULATION:
        raise ValueError(
            f"{name} must be >= {MIN_DE_POPULATION}, got {population_size}"
        )
    return population_size, max_iter


# =============================================================================
# DE population
# =============================================================================

def initialise_de_population(
    config: 'EvolutionConfig',
    chromo: Chromosome,
    data: DataSet,
    de_type: DEType,
    rng: np.random.Generator,
) -> List[DEChromosome]:
    """
    Create the DE population for ``chromo``'s topology.

    Member 0 keeps the chromosome's own weights; the others get uniform
    random weights in [-weight_range, weight_range]. Every member's training
    fitness is evaluated.
    """
    population_size, _ = _budget(config, de_type)
    num_weights = num_chromosome_weights(chromo)

    population = [
        DEChromosome(chromo=chromo.clone(), weights=np.zeros(num_weights))
        for _ in range(population_size)
    ]

    population[0].weights = chromosome_weights(chromo)
    population[0].chromo.set_fitness(config, data)

    for member in population[1:]:
        member.weights = np.array([
            random_weight(config.connection_weight_range, rng)
            for _ in range(num_weights)
        ])

    for member in population[1:]:
        member.transfer()
        member.chromo.set_fitness(config, data)

    return population


def run_de(
    config: 'EvolutionConfig',
    chromo: Chromosome,
    data_train: DataSet,
    data_valid: Optional[DataSet],
    de_type: DEType,
    rng: np.random.Generator,
) -> List[Chromosome]:
    """
    Optimise the connection weights of ``chromo`` with DE/rand/1/bin.

    For every member i, three distinct partners r1, r2, r3 (all different
    from i) and a forced coordinate jr are drawn. The trial vector takes
    ``w[r3] + F * (w[r1] - w[r2])`` wherever a uniform draw is below CR or
    at jr, and member i's weights elsewhere. The trial replaces member i if
    its training fitness is less than or equal to member i's.

    Args:
        config: Supplies NP, iteration budget, CR, F and weight range
        chromo: Chromosome whose topology is optimised (left unchanged)
        data_train: Dataset driving fitness
        data_valid: Unused by the search; accepted for symmetry with callers
        de_type: DEType.IN uses the IN budget, OUT_T/OUT_V the OUT budget
        rng: Random generator

    Returns:
        Copies of every population member's chromosome, in population order
    """
    population_size, max_iter = _budget(config, de_type)
    population = initialise_de_population(config, chromo, data_train, de_type, rng)
    num_weights = num_chromosome_weights(chromo)

    trial = DEChromosome(chromo=chromo.clone(), weights=np.zeros(num_weights))

    logger.debug(
        "DE (%s): NP=%d, iterations=%d, weights=%d",
        de_type.value, population_size, max_iter, num_weights,
    )

    for iteration in range(max_iter):
        for i in range(population_size):
            r1 = i
            while r1 == i:
                r1 = rand_int(rng, population_size)
            r2 = i
            while r2 == i or r2 == r1:
                r2 = rand_int(rng, population_size)
            r3 = i
            while r3 == i or r3 == r1 or r3 == r2:
                r3 = rand_int(rng, population_size)
            jr = rand_int(rng, num_weights)

            crossover = rng.random(num_weights) < config.cr
            crossover[jr] = True
            mutant = population[r3].weights + config.f * (
                population[r1].weights - population[r2].weights
            )
            trial.weights = np.where(crossover, mutant, population[i].weights)

            trial.transfer()
            trial_fitness = trial.chromo.set_fitness(config, data_train)

            if trial_fitness <= population[i].chromo.fitness:
                population[i].chromo.copy_from(trial.chromo)
                population[i].weights = trial.weights.copy()

        if config.update_frequency and (iteration + 1) % config.update_frequency == 0:
            best = min(member.chromo.fitness for member in population)
            logger.debug("DE iteration %d: best fitness %.6f", iteration + 1, best)

    result = [member.chromo.clone() for member in population]
    for member in population:
        member.release()
    trial.release()
    return result


def get_best_de_chromosome(
    config: 'EvolutionConfig',
    population: List[Chromosome],
    data_valid: Optional[DataSet],
    selection: DEType,
    rng: Optional[np.random.Generator] = None,
) -> Chromosome:
    """
    Pick the best chromosome of a DE result population.

    IN and OUT_T pick the lowest training fitness; OUT_V first evaluates
    every member on ``data_valid`` and picks the lowest validation fitness.
    Ties go to the earliest member.

    Returns:
        A copy of the selected chromosome
    """
    if not population:
        raise ValueError("Cannot select from an empty DE population")

    if selection is DEType.OUT_V:
        if data_valid is None:
            raise ValueError("OUT_V selection requires a validation dataset")
        for chromo in population:
            chromo.set_fitness_validation(config, data_valid)
        key = 'fitness_validation'
    else:
        key = 'fitness'

    best = population[0]
    for chromo in population[1:]:
        if getattr(chromo, key) < getattr(best, key):
            best = chromo
    return best.clone()
