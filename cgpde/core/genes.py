"""
Gene samplers.

Every random draw made while building or mutating a chromosome goes through
these helpers with an explicit numpy Generator, so a run is fully determined
by the seed it was started with.
"""

import numpy as np


def rand_int(rng: np.random.Generator, n: int) -> int:
    """Uniform integer in [0, n); 0 when n is 0."""
    if n <= 0:
        return 0
    return int(rng.integers(n))


def rand_decimal(rng: np.random.Generator) -> float:
    """Uniform float in [0, 1)."""
    return float(rng.random())


def random_function(num_functions: int, rng: np.random.Generator) -> int:
    if num_functions < 1:
        raise ValueError(
            "Cannot assign a function gene: the function set is empty"
        )
    return rand_int(rng, num_functions)


def random_node_input(
    num_inputs: int,
    num_nodes: int,
    position: int,
    recurrent_probability: float,
    rng: np.random.Generator,
) -> int:
    """
    Draw an input gene for the node at ``position``.

    With probability ``recurrent_probability`` the connection points at the
    node itself or any node after it (a recurrent edge); otherwise it points
    at a chromosome input or any earlier node.

    Returns:
        Absolute connection index (inputs first, then nodes)
    """
    if rand_decimal(rng) < recurrent_probability:
        return rand_int(rng, num_nodes - position) + position + num_inputs
    return rand_int(rng, num_inputs + position)


def random_output(
    num_inputs: int,
    num_nodes: int,
    shortcut_connections: bool,
    rng: np.random.Generator,
) -> int:
    """Draw an output gene; inputs are eligible only with shortcut connections."""
    if shortcut_connections:
        return rand_int(rng, num_inputs + num_nodes)
    return rand_int(rng, num_nodes) + num_inputs


def random_weight(weight_range: float, rng: np.random.Generator) -> float:
    """Uniform connection weight in [-weight_range, weight_range)."""
    return rand_decimal(rng) * 2 * weight_range - weight_range
