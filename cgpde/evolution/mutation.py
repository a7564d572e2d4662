"""
Mutation operators.

Every operator has the signature ``(config, chromosome, mutation_type, rng)``
and returns the number of genes it resampled. ``mutation_type`` selects what
may change:

- ``ANN_MUTATION`` (0): connection weights are mutated along with the
  structure (CGPANN)
- ``STRUCTURAL_MUTATION`` (1): only function, connection and output genes
  change, leaving weight search to differential evolution (CGPDE)

Resampled genes are drawn from the same distributions used to build a
random chromosome. Operators leave active-node flags stale; callers go
through mutate_chromosome, which re-resolves them.
"""

import logging
import math
from typing import Callable, Dict, TYPE_CHECKING

import numpy as np

from ..core.chromosome import Chromosome
from ..core.genes import (
    rand_int,
    rand_decimal,
    random_function,
    random_node_input,
    random_output,
    random_weight,
)

if TYPE_CHECKING:
    from .config import EvolutionConfig

logger = logging.getLogger(__name__)

ANN_MUTATION = 0
STRUCTURAL_MUTATION = 1

# Upper bound on draws for single_mutation, per gene in the chromosome
SINGLE_MUTATION_ATTEMPTS_PER_GENE = 1000

MutationOperator = Callable[['EvolutionConfig', Chromosome, int, np.random.Generator], int]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _resample_input(config, chromo: Chromosome, node_index: int, slot: int, rng) -> None:
    chromo.nodes[node_index].inputs[slot] = random_node_input(
        chromo.num_inputs,
        chromo.num_nodes,
        node_index,
        config.recurrent_connection_probability,
        rng,
    )


def _resample_output(config, chromo: Chromosome, index: int, rng) -> None:
    chromo.output_genes[index] = random_output(
        chromo.num_inputs,
        chromo.num_nodes,
        config.shortcut_connections,
        rng,
    )


# =============================================================================
# Probabilistic
# =============================================================================

def probabilistic_mutation(
    config: 'EvolutionConfig',
    chromo: Chromosome,
    mutation_type: int,
    rng: np.random.Generator,
) -> int:
    """
    Resample each gene independently with probability ``mutation_rate``.

    The function gene is only considered when there is more than one
    function to choose from; weight genes only for ANN mutation.
    """
    rate = config.mutation_rate
    num_functions = len(chromo.function_set)
    mutated = 0

    for i, node in enumerate(chromo.nodes):
        if num_functions > 1 and rand_decimal(rng) < rate:
            node.function = random_function(num_functions, rng)
            mutated += 1
        for j in range(chromo.arity):
            if rand_decimal(rng) < rate:
                _resample_input(config, chromo, i, j, rng)
                mutated += 1
            if mutation_type == ANN_MUTATION and rand_decimal(rng) < rate:
                node.weights[j] = random_weight(config.connection_weight_range, rng)
                mutated += 1

    for i in range(chromo.num_outputs):
        if rand_decimal(rng) < rate:
            _resample_output(config, chromo, i, rng)
            mutated += 1

    return mutated


def probabilistic_mutation_only_active(
    config: 'EvolutionConfig',
    chromo: Chromosome,
    mutation_type: int,
    rng: np.random.Generator,
) -> int:
    """
    Same as probabilistic_mutation, restricted to the active nodes.

    Output genes are always candidates.
    """
    rate = config.mutation_rate
    num_functions = len(chromo.function_set)
    mutated = 0

    for i in list(chromo.active_nodes):
        node = chromo.nodes[i]
        if num_functions > 1 and rand_decimal(rng) < rate:
            node.function = random_function(num_functions, rng)
            mutated += 1
        for j in range(chromo.arity):
            if rand_decimal(rng) < rate:
                _resample_input(config, chromo, i, j, rng)
                mutated += 1
            if mutation_type == ANN_MUTATION and rand_decimal(rng) < rate:
                node.weights[j] = random_weight(config.connection_weight_range, rng)
                mutated += 1

    for i in range(chromo.num_outputs):
        if rand_decimal(rng) < rate:
            _resample_output(config, chromo, i, rng)
            mutated += 1

    return mutated


# =============================================================================
# Point
# =============================================================================

def point_mutation(
    config: 'EvolutionConfig',
    chromo: Chromosome,
    mutation_type: int,
    rng: np.random.Generator,
) -> int:
    """
    Resample exactly ``round(num_genes * mutation_rate)`` genes.

    Genes are picked uniformly with replacement from the function, input and
    output genes. Weights are never touched.
    """
    num_function_genes = chromo.num_nodes
    num_input_genes = chromo.num_nodes * chromo.arity
    num_genes = num_function_genes + num_input_genes + chromo.num_outputs
    num_to_mutate = _round_half_up(num_genes * config.mutation_rate)

    for _ in range(num_to_mutate):
        gene = rand_int(rng, num_genes)
        if gene < num_function_genes:
            chromo.nodes[gene].function = random_function(len(chromo.function_set), rng)
        elif gene < num_function_genes + num_input_genes:
            node_index, slot = divmod(gene - num_function_genes, chromo.arity)
            _resample_input(config, chromo, node_index, slot, rng)
        else:
            _resample_output(config, chromo, gene - num_function_genes - num_input_genes, rng)

    return num_to_mutate


def point_mutation_ann(
    config: 'EvolutionConfig',
    chromo: Chromosome,
    mutation_type: int,
    rng: np.random.Generator,
) -> int:
    """
    Point mutation over function, input, weight and output genes.

    The quota ``round(num_genes * mutation_rate)`` counts only hits that land
    on a gene of a node that was active when the call started; output genes
    always count. Hits on inactive nodes are still applied, and sampling
    continues until the quota is met.
    """
    num_function_genes = chromo.num_nodes
    num_input_genes = chromo.num_nodes * chromo.arity
    num_weight_genes = chromo.num_nodes * chromo.arity
    num_genes = num_function_genes + num_input_genes + num_weight_genes + chromo.num_outputs
    num_to_mutate = _round_half_up(num_genes * config.mutation_rate)

    counted = 0
    while counted < num_to_mutate:
        gene = rand_int(rng, num_genes)
        if gene < num_function_genes:
            node = chromo.nodes[gene]
            if node.active:
                counted += 1
            node.function = random_function(len(chromo.function_set), rng)
        elif gene < num_function_genes + num_input_genes:
            node_index, slot = divmod(gene - num_function_genes, chromo.arity)
            if chromo.nodes[node_index].active:
                counted += 1
            _resample_input(config, chromo, node_index, slot, rng)
        elif gene < num_function_genes + num_input_genes + num_weight_genes:
            node_index, slot = divmod(gene - num_function_genes - num_input_genes, chromo.arity)
            node = chromo.nodes[node_index]
            if node.active:
                counted += 1
            node.weights[slot] = random_weight(config.connection_weight_range, rng)
        else:
            counted += 1
            _resample_output(
                config, chromo,
                gene - num_function_genes - num_input_genes - num_weight_genes,
                rng,
            )

    return counted


# =============================================================================
# Single active
# =============================================================================

def single_mutation(
    config: 'EvolutionConfig',
    chromo: Chromosome,
    mutation_type: int,
    rng: np.random.Generator,
) -> int:
    """
    Resample one gene at a time until the phenotype changes.

    Stops after a function or input gene of an active node, or any output
    gene, takes a new value. Weights are never touched.

    Returns:
        Number of genes resampled
    """
    num_function_genes = chromo.num_nodes
    num_input_genes = chromo.num_nodes * chromo.arity
    num_genes = num_function_genes + num_input_genes + chromo.num_outputs
    max_attempts = SINGLE_MUTATION_ATTEMPTS_PER_GENE * num_genes

    attempts = 0
    while attempts < max_attempts:
        attempts += 1
        gene = rand_int(rng, num_genes)
        if gene < num_function_genes:
            node = chromo.nodes[gene]
            previous = node.function
            node.function = random_function(len(chromo.function_set), rng)
            if node.function != previous and node.active:
                return attempts
        elif gene < num_function_genes + num_input_genes:
            node_index, slot = divmod(gene - num_function_genes, chromo.arity)
            node = chromo.nodes[node_index]
            previous = node.inputs[slot]
            _resample_input(config, chromo, node_index, slot, rng)
            if node.inputs[slot] != previous and node.active:
                return attempts
        else:
            index = gene - num_function_genes - num_input_genes
            previous = chromo.output_genes[index]
            _resample_output(config, chromo, index, rng)
            if chromo.output_genes[index] != previous:
                return attempts

    logger.warning(
        "single mutation found no active change in %d attempts; "
        "the chromosome may have no alternative alleles", max_attempts,
    )
    return attempts


MUTATION_TYPES: Dict[str, MutationOperator] = {
    'probabilistic': probabilistic_mutation,
    'point': point_mutation,
    'pointANN': point_mutation_ann,
    'onlyActive': probabilistic_mutation_only_active,
    'single': single_mutation,
}


def get_mutation_operator(name: str) -> MutationOperator:
    if name not in MUTATION_TYPES:
        available = ', '.join(MUTATION_TYPES.keys())
        raise ValueError(f"Unknown mutation type '{name}'. Available: {available}")
    return MUTATION_TYPES[name]


def mutate_chromosome(
    config: 'EvolutionConfig',
    chromo: Chromosome,
    mutation_type: int,
    rng: np.random.Generator,
) -> int:
    """
    Apply the configured mutation operator and re-resolve active nodes.

    Returns:
        Number of genes the operator resampled
    """
    operator = get_mutation_operator(config.mutation_type)
    mutated = operator(config, chromo, mutation_type, rng)
    chromo.set_active_nodes()
    return mutated
