"""
Evolutionary operators: selection, reproduction and best tracking.

These operators drive the (mu + lambda) / (mu, lambda) strategy by:
- Pooling children and parents into selection candidates
- Selecting the fittest candidates as the next parents
- Filling the children by mutating copies of random parents
- Tracking the best chromosome seen on the validation set
"""

from typing import Callable, List, Optional, TYPE_CHECKING

import numpy as np

from ..core.chromosome import Chromosome
from ..core.genes import rand_int
from .mutation import mutate_chromosome

if TYPE_CHECKING:
    from .config import EvolutionConfig

SelectionScheme = Callable[['EvolutionConfig', List[Chromosome], int], List[Chromosome]]
ReproductionScheme = Callable[..., List[Chromosome]]

STRATEGIES = ('+', ',')


# =============================================================================
# Selection
# =============================================================================

def build_candidates(
    parents: List[Chromosome],
    children: List[Chromosome],
    strategy: str,
) -> List[Chromosome]:
    """
    Build the selection pool.

    Under '+' the children come first and the parents after them, so a
    stable sort prefers a child over a parent of equal fitness. Under ','
    only the children compete.
    """
    if strategy == '+':
        return list(children) + list(parents)
    if strategy == ',':
        return list(children)
    raise ValueError(f"Unknown evolutionary strategy '{strategy}'. Use '+' or ','")


def select_fittest(
    config: 'EvolutionConfig',
    candidates: List[Chromosome],
    num_parents: int,
) -> List[Chromosome]:
    """
    Keep the ``num_parents`` candidates with the lowest training fitness.

    Uses a stable sort, so among equal fitness the earlier candidate wins.

    Args:
        config: Evolution configuration
        candidates: Selection pool (see build_candidates)
        num_parents: Number of parents to return

    Returns:
        Deep copies of the selected candidates
    """
    ranked = sorted(candidates, key=lambda c: c.fitness)
    return [c.clone() for c in ranked[:num_parents]]


# =============================================================================
# Reproduction
# =============================================================================

def mutate_random_parent(
    config: 'EvolutionConfig',
    parents: List[Chromosome],
    num_children: int,
    mutation_type: int,
    rng: np.random.Generator,
    generation: int = 0,
) -> List[Chromosome]:
    """
    Create children by mutating copies of uniformly chosen parents.

    Args:
        config: Evolution configuration (mutation operator and rate)
        parents: Current parents
        num_children: Number of children to create
        mutation_type: ANN_MUTATION or STRUCTURAL_MUTATION
        rng: Random generator
        generation: Generation number recorded on each child

    Returns:
        New list of children
    """
    children = []
    for _ in range(num_children):
        child = parents[rand_int(rng, len(parents))].clone()
        mutate_chromosome(config, child, mutation_type, rng)
        child.generation = generation
        children.append(child)
    return children


# =============================================================================
# Best tracking
# =============================================================================

def get_best_chromosome(
    parents: List[Chromosome],
    children: List[Chromosome],
    best: Chromosome,
) -> bool:
    """
    Copy into ``best`` the candidate with the lowest validation fitness.

    Parents are scanned before children and ``<=`` is used, so on ties the
    most recently scanned candidate wins.

    Returns:
        True if ``best`` was overwritten
    """
    winner: Optional[Chromosome] = None
    threshold = best.fitness_validation
    for chromo in list(parents) + list(children):
        if chromo.fitness_validation <= threshold:
            winner = chromo
            threshold = chromo.fitness_validation
    if winner is None:
        return False
    best.copy_from(winner)
    return True
