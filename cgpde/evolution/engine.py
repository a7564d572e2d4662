"""
Evolution loops for CGPANN, CGPDE-IN and CGPDE-OUT.

All three share one (mu + lambda) / (mu, lambda) loop:
1. Initialise mu random parents and lambda random children
2. Evaluate the children
3. Track the best chromosome on the validation set
4. Select the next parents from the candidate pool
5. Refill the children by mutating random parents
6. Repeat for a fixed number of generations

They differ in where weights are searched:
- CGPANN: mutation perturbs weights directly, no DE
- CGPDE-IN: each generation, DE tunes the weights of the best child
- CGPDE-OUT: structure-only evolution, then one long DE run on the best
"""

import logging
import time
from typing import Callable, Dict, List, Optional

import numpy as np

from ..core.chromosome import Chromosome
from ..datasets import DataSet
from .config import EvolutionConfig
from .de import DEType, get_best_de_chromosome, run_de
from .mutation import ANN_MUTATION, STRUCTURAL_MUTATION
from .operators import build_candidates, get_best_chromosome

logger = logging.getLogger(__name__)


def _prepare_run(
    config: EvolutionConfig,
    data_train: DataSet,
    data_valid: Optional[DataSet],
    num_gens: int,
) -> DataSet:
    """Validate inputs before a run; returns the validation set to use."""
    if num_gens < 0:
        raise ValueError(f"{num_gens} generations is invalid; must be >= 0")
    config.validate()
    if len(config.function_set) < 1:
        raise ValueError("The function set is empty; add node functions before running")
    config.check_dataset(data_train, 'training set')
    config.check_dataset(data_valid, 'validation set')
    # Without a validation set the best chromosome is tracked on training data
    return data_valid if data_valid is not None else data_train


def _initialise(config: EvolutionConfig, rng: np.random.Generator):
    parents = [Chromosome.random(config, rng) for _ in range(config.mu)]
    children = [Chromosome.random(config, rng) for _ in range(config.lambda_)]
    return parents, children


def _next_generation(
    config: EvolutionConfig,
    parents: List[Chromosome],
    children: List[Chromosome],
    mutation_type: int,
    generation: int,
    rng: np.random.Generator,
):
    candidates = build_candidates(parents, children, config.evolutionary_strategy)
    parents = config.selection_scheme(config, candidates, config.mu)
    children = config.reproduction_scheme(
        config, parents, config.lambda_, mutation_type, rng, generation=generation,
    )
    return parents, children


def _log_progress(
    name: str,
    config: EvolutionConfig,
    generation: int,
    parents: List[Chromosome],
    best: Chromosome,
) -> None:
    if config.update_frequency <= 0 or generation % config.update_frequency != 0:
        return
    logger.debug(
        "%s generation %d: parent fitness %.6f, best validation %.6f",
        name, generation, parents[0].fitness, best.fitness_validation,
    )


def _release_all(*groups: List[Chromosome]) -> None:
    for group in groups:
        for chromo in group:
            chromo.release()


# =============================================================================
# CGPANN
# =============================================================================

def run_cgp(
    config: EvolutionConfig,
    data_train: DataSet,
    data_valid: Optional[DataSet],
    num_gens: int,
    rng: np.random.Generator,
) -> Chromosome:
    """
    Evolve structure and weights together (CGPANN).

    Args:
        config: Evolution configuration
        data_train: Dataset driving selection
        data_valid: Dataset used to track the best chromosome
        num_gens: Number of generations
        rng: Random generator

    Returns:
        The chromosome with the best validation fitness seen
    """
    data_valid = _prepare_run(config, data_train, data_valid, num_gens)
    start = time.time()
    logger.info("CGPANN: %d generations, mu=%d, lambda=%d", num_gens, config.mu, config.lambda_)

    parents, children = _initialise(config, rng)

    best = parents[0].clone()
    best.set_fitness_validation(config, data_valid)

    for parent in parents:
        parent.set_fitness(config, data_train)
        parent.set_fitness_validation(config, data_valid)

    for gen in range(num_gens):
        for child in children:
            child.set_fitness(config, data_train)
            child.set_fitness_validation(config, data_valid)

        get_best_chromosome(parents, children, best)
        parents, children = _next_generation(
            config, parents, children, ANN_MUTATION, gen + 1, rng,
        )
        _log_progress('CGPANN', config, gen + 1, parents, best)

    _release_all(parents, children)
    logger.info(
        "CGPANN finished in %.1fs: validation fitness %.6f, %d active nodes",
        time.time() - start, best.fitness_validation, best.num_active_nodes,
    )
    return best


# =============================================================================
# CGPDE-IN
# =============================================================================

def run_cgpde_in(
    config: EvolutionConfig,
    data_train: DataSet,
    data_valid: Optional[DataSet],
    num_gens: int,
    rng: np.random.Generator,
) -> Chromosome:
    """
    Evolve structure with DE weight tuning inside every generation (CGPDE-IN).

    Each generation the child with the lowest training fitness (first one on
    ties) has its weights optimised by DE with the IN budget; the DE member
    with the lowest training fitness replaces it and is compared against the
    best chromosome on the validation set. Mutation never touches weights.

    Returns:
        The chromosome with the best validation fitness seen
    """
    data_valid = _prepare_run(config, data_train, data_valid, num_gens)
    start = time.time()
    logger.info(
        "CGPDE-IN: %d generations, NP=%d, %d DE iterations per generation",
        num_gens, config.np_in, config.max_iter_in,
    )

    parents, children = _initialise(config, rng)

    best = parents[0].clone()
    best.set_fitness_validation(config, data_valid)

    for parent in parents:
        parent.set_fitness(config, data_train)

    for gen in range(num_gens):
        best_index = 0
        best_fitness = float('inf')
        for i, child in enumerate(children):
            fitness = child.set_fitness(config, data_train)
            if fitness < best_fitness:
                best_fitness = fitness
                best_index = i

        population = run_de(config, children[best_index], data_train, data_valid, DEType.IN, rng)
        tuned = get_best_de_chromosome(config, population, data_valid, DEType.IN)
        tuned.generation = children[best_index].generation
        children[best_index].release()
        children[best_index] = tuned

        tuned.set_fitness_validation(config, data_valid)
        if tuned.fitness_validation <= best.fitness_validation:
            best.copy_from(tuned)

        parents, children = _next_generation(
            config, parents, children, STRUCTURAL_MUTATION, gen + 1, rng,
        )
        _release_all(population)
        _log_progress('CGPDE-IN', config, gen + 1, parents, best)

    _release_all(parents, children)
    logger.info(
        "CGPDE-IN finished in %.1fs: validation fitness %.6f, %d active nodes",
        time.time() - start, best.fitness_validation, best.num_active_nodes,
    )
    return best


# =============================================================================
# CGPDE-OUT
# =============================================================================

def run_cgpde_out(
    config: EvolutionConfig,
    data_train: DataSet,
    data_valid: Optional[DataSet],
    num_gens: int,
    rng: np.random.Generator,
) -> List[Chromosome]:
    """
    Evolve structure only, then optimise the best topology's weights (CGPDE-OUT).

    Runs the evolutionary loop without weight mutation, takes the chromosome
    with the best validation fitness and runs DE on it once with the OUT
    budget.

    Returns:
        The whole DE population; pick from it with get_best_de_chromosome
        (DEType.OUT_T or DEType.OUT_V). The caller owns and releases it.
    """
    data_valid = _prepare_run(config, data_train, data_valid, num_gens)
    start = time.time()
    logger.info(
        "CGPDE-OUT: %d generations, then DE with NP=%d for %d iterations",
        num_gens, config.np_out, config.max_iter_out,
    )

    parents = []
    for _ in range(config.mu):
        parent = Chromosome.random(config, rng)
        parent.set_fitness(config, data_train)
        parent.set_fitness_validation(config, data_valid)
        parents.append(parent)
    children = [Chromosome.random(config, rng) for _ in range(config.lambda_)]

    best = parents[0].clone()
    best.set_fitness_validation(config, data_valid)

    for gen in range(num_gens):
        for child in children:
            child.set_fitness(config, data_train)
            child.set_fitness_validation(config, data_valid)

        get_best_chromosome(parents, children, best)
        parents, children = _next_generation(
            config, parents, children, STRUCTURAL_MUTATION, gen + 1, rng,
        )
        _log_progress('CGPDE-OUT', config, gen + 1, parents, best)

    population = run_de(config, best, data_train, data_valid, DEType.OUT_T, rng)

    _release_all(parents, children, [best])
    logger.info("CGPDE-OUT finished in %.1fs", time.time() - start)
    return population


def run_cgpde_out_t(
    config: EvolutionConfig,
    data_train: DataSet,
    data_valid: Optional[DataSet],
    num_gens: int,
    rng: np.random.Generator,
) -> Chromosome:
    """CGPDE-OUT keeping the DE member with the lowest training fitness."""
    population = run_cgpde_out(config, data_train, data_valid, num_gens, rng)
    chosen = get_best_de_chromosome(config, population, data_valid, DEType.OUT_T)
    _release_all(population)
    return chosen


def run_cgpde_out_v(
    config: EvolutionConfig,
    data_train: DataSet,
    data_valid: Optional[DataSet],
    num_gens: int,
    rng: np.random.Generator,
) -> Chromosome:
    """CGPDE-OUT keeping the DE member with the lowest validation fitness."""
    population = run_cgpde_out(config, data_train, data_valid, num_gens, rng)
    chosen = get_best_de_chromosome(
        config, population, data_valid if data_valid is not None else data_train, DEType.OUT_V,
    )
    _release_all(population)
    return chosen


ALGORITHMS: Dict[str, Callable[..., Chromosome]] = {
    'cgpann': run_cgp,
    'cgpde_in': run_cgpde_in,
    'cgpde_out_t': run_cgpde_out_t,
    'cgpde_out_v': run_cgpde_out_v,
}


def get_algorithm(name: str) -> Callable[..., Chromosome]:
    if name not in ALGORITHMS:
        available = ', '.join(ALGORITHMS.keys())
        raise ValueError(f"Unknown algorithm '{name}'. Available: {available}")
    return ALGORITHMS[name]
