"""
CGP and CGPDE evolution.

This module evolves neural-network classifiers encoded as CGP chromosomes,
optionally optimising their connection weights with differential evolution.

Key components:
- EvolutionConfig: Dimensions, strategy, mutation and DE parameters
- Mutation operators: probabilistic, onlyActive, point, pointANN, single
- Operators: selection, reproduction and best tracking
- DE: weight-vector optimisation on a fixed topology
- Engine: run_cgp (CGPANN), run_cgpde_in, run_cgpde_out

Example usage:
    import numpy as np
    from cgpde.evolution import EvolutionConfig, run_cgp
    from cgpde.evolution.fitness import accuracy
    from cgpde.datasets import get_dataset

    data = get_dataset('gaussian_clusters', seed=1)

    config = EvolutionConfig(num_inputs=2, num_nodes=50, num_outputs=3, arity=5)
    config.add_node_function('sig')
    config.set_fitness_function(accuracy, 'accuracy')

    best = run_cgp(config, data, data, num_gens=200, rng=np.random.default_rng(0))
    print(f"Accuracy: {-best.fitness_validation:.3f}")
"""

from .fitness import (
    supervised_learning,
    accuracy,
    FITNESS_FUNCTIONS,
    get_fitness_function,
)
from .mutation import (
    ANN_MUTATION,
    STRUCTURAL_MUTATION,
    MUTATION_TYPES,
    probabilistic_mutation,
    probabilistic_mutation_only_active,
    point_mutation,
    point_mutation_ann,
    single_mutation,
    mutate_chromosome,
)
from .operators import (
    build_candidates,
    select_fittest,
    mutate_random_parent,
    get_best_chromosome,
)
from .config import EvolutionConfig
from .de import (
    DEType,
    DEChromosome,
    num_chromosome_weights,
    chromosome_weights,
    transfer_weights,
    initialise_de_population,
    run_de,
    get_best_de_chromosome,
)
from .engine import (
    run_cgp,
    run_cgpde_in,
    run_cgpde_out,
    run_cgpde_out_t,
    run_cgpde_out_v,
    ALGORITHMS,
    get_algorithm,
)
from .results import Results, RunSummary, repeat_cgp

__all__ = [
    # Configuration
    'EvolutionConfig',
    # Fitness
    'supervised_learning',
    'accuracy',
    'FITNESS_FUNCTIONS',
    'get_fitness_function',
    # Mutation
    'ANN_MUTATION',
    'STRUCTURAL_MUTATION',
    'MUTATION_TYPES',
    'probabilistic_mutation',
    'probabilistic_mutation_only_active',
    'point_mutation',
    'point_mutation_ann',
    'single_mutation',
    'mutate_chromosome',
    # Operators
    'build_candidates',
    'select_fittest',
    'mutate_random_parent',
    'get_best_chromosome',
    # Differential evolution
    'DEType',
    'DEChromosome',
    'num_chromosome_weights',
    'chromosome_weights',
    'transfer_weights',
    'initialise_de_population',
    'run_de',
    'get_best_de_chromosome',
    # Engine
    'run_cgp',
    'run_cgpde_in',
    'run_cgpde_out',
    'run_cgpde_out_t',
    'run_cgpde_out_v',
    'ALGORITHMS',
    'get_algorithm',
    # Results
    'Results',
    'RunSummary',
    'repeat_cgp',
]
