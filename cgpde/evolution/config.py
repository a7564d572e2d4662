"""
Configuration for CGP and CGPDE runs.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..core.functions import FunctionSet, PrimitiveFunc
from ..datasets import DataSet
from .fitness import FitnessFunction, supervised_learning
from .mutation import MUTATION_TYPES
from .operators import (
    STRATEGIES,
    ReproductionScheme,
    SelectionScheme,
    mutate_random_parent,
    select_fittest,
)

logger = logging.getLogger(__name__)

# Smallest DE population that allows three distinct partners per individual
MIN_DE_POPULATION = 4


@dataclass(eq=False)
class EvolutionConfig:
    """
    Parameters shared by CGPANN, CGPDE-IN and CGPDE-OUT.

    Attributes:
        num_inputs, num_nodes, num_outputs, arity: Chromosome dimensions
        mu, lambda_: Number of parents and children
        evolutionary_strategy: '+' (parents compete) or ',' (children only)
        mutation_type: Name of a mutation operator in MUTATION_TYPES
        mutation_rate: Per-gene mutation probability / point mutation fraction
        recurrent_connection_probability: Chance a connection gene points
            at the same or a later node
        connection_weight_range: Weights are drawn from [-range, range]
        shortcut_connections: Whether output genes may address inputs
        np_in, max_iter_in: DE population size and iterations for CGPDE-IN
        np_out, max_iter_out: DE population size and iterations for CGPDE-OUT
        cr: DE crossover rate in [0, 1]
        f: DE differential weight in [0, 2]
        update_frequency: Log progress every N generations (0 disables)
    """
    num_inputs: int
    num_nodes: int
    num_outputs: int
    arity: int

    # Evolutionary strategy
    mu: int = 1
    lambda_: int = 4
    evolutionary_strategy: str = '+'

    # Mutation
    mutation_type: str = 'probabilistic'
    mutation_rate: float = 0.05
    recurrent_connection_probability: float = 0.0
    connection_weight_range: float = 1.0
    shortcut_connections: bool = True

    # Differential evolution
    np_in: int = 10
    np_out: int = 10
    max_iter_in: int = 100
    max_iter_out: int = 100
    cr: float = 0.5
    f: float = 1.0

    # Pluggable schemes
    function_set: FunctionSet = field(default_factory=FunctionSet)
    fitness_function: FitnessFunction = supervised_learning
    fitness_function_name: str = 'supervised_learning'
    selection_scheme: SelectionScheme = select_fittest
    selection_scheme_name: str = 'select_fittest'
    reproduction_scheme: ReproductionScheme = mutate_random_parent
    reproduction_scheme_name: str = 'mutate_random_parent'

    # Reporting
    update_frequency: int = 0

    released: bool = field(default=False, init=False, repr=False)

    def __post_init__(self):
        """Validate dimensions and rates."""
        self.validate()

    def validate(self) -> None:
        """
        Raise ValueError if any parameter is outside its valid range.

        The function set may still be empty here; that is reported when a
        chromosome is built.
        """
        for name in ('num_inputs', 'num_nodes', 'num_outputs', 'arity'):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be > 0, got {value}")
        if self.mu < 1:
            raise ValueError(f"mu must be >= 1, got {self.mu}")
        if self.lambda_ < 1:
            raise ValueError(f"lambda must be >= 1, got {self.lambda_}")
        if self.evolutionary_strategy not in STRATEGIES:
            raise ValueError(
                f"Unknown evolutionary strategy '{self.evolutionary_strategy}'. "
                f"Use '+' or ','"
            )
        if self.evolutionary_strategy == ',' and self.lambda_ < self.mu:
            raise ValueError(
                f"lambda ({self.lambda_}) must be >= mu ({self.mu}) for the ',' strategy"
            )
        if self.mutation_type not in MUTATION_TYPES:
            available = ', '.join(MUTATION_TYPES.keys())
            raise ValueError(
                f"Unknown mutation type '{self.mutation_type}'. Available: {available}"
            )
        if not 0.0 <= self.mutation_rate <= 1.0:
            raise ValueError(f"mutation_rate {self.mutation_rate} out of range [0, 1]")
        if not 0.0 <= self.recurrent_connection_probability <= 1.0:
            raise ValueError(
                f"recurrent_connection_probability "
                f"{self.recurrent_connection_probability} out of range [0, 1]"
            )
        if self.connection_weight_range < 0:
            raise ValueError(
                f"connection_weight_range must be >= 0, got {self.connection_weight_range}"
            )
        for name in ('np_in', 'np_out'):
            value = getattr(self, name)
            if value < MIN_DE_POPULATION:
                raise ValueError(
                    f"{name} must be >= {MIN_DE_POPULATION}, got {value}"
                )
        for name in ('max_iter_in', 'max_iter_out'):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")
        if not 0.0 <= self.cr <= 1.0:
            raise ValueError(f"CR {self.cr} out of range [0, 1]")
        if not 0.0 <= self.f <= 2.0:
            raise ValueError(f"F {self.f} out of range [0, 2]")

    def check_dataset(self, data: Optional[DataSet], label: str = 'dataset') -> None:
        """Raise ValueError if ``data`` does not match the chromosome dimensions."""
        if data is None:
            return
        if data.num_inputs != self.num_inputs:
            raise ValueError(
                f"The {label} has {data.num_inputs} inputs but the configuration "
                f"specifies {self.num_inputs}"
            )
        if data.num_outputs != self.num_outputs:
            raise ValueError(
                f"The {label} has {data.num_outputs} outputs but the configuration "
                f"specifies {self.num_outputs}"
            )

    # -------------------------------------------------------------------------
    # Function set and schemes
    # -------------------------------------------------------------------------

    def add_node_function(self, names: str) -> None:
        """Add preset node functions, e.g. ``"add,sub,sig"``."""
        self.function_set.add_node_function(names)

    def add_custom_node_function(self, func: PrimitiveFunc, name: str, max_inputs: int) -> None:
        self.function_set.add_custom_node_function(func, name, max_inputs)

    def clear_function_set(self) -> None:
        self.function_set.clear()

    def set_fitness_function(self, func: FitnessFunction, name: str) -> None:
        self.fitness_function = func
        self.fitness_function_name = name

    def set_selection_scheme(self, func: SelectionScheme, name: str) -> None:
        self.selection_scheme = func
        self.selection_scheme_name = name

    def set_reproduction_scheme(self, func: ReproductionScheme, name: str) -> None:
        self.reproduction_scheme = func
        self.reproduction_scheme_name = name

    def release(self) -> None:
        if self.released:
            logger.warning("Double release of configuration prevented")
            return
        self.function_set.clear()
        self.released = True

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            'num_inputs': self.num_inputs,
            'num_nodes': self.num_nodes,
            'num_outputs': self.num_outputs,
            'arity': self.arity,
            'mu': self.mu,
            'lambda': self.lambda_,
            'evolutionary_strategy': self.evolutionary_strategy,
            'mutation_type': self.mutation_type,
            'mutation_rate': self.mutation_rate,
            'recurrent_connection_probability': self.recurrent_connection_probability,
            'connection_weight_range': self.connection_weight_range,
            'shortcut_connections': self.shortcut_connections,
            'np_in': self.np_in,
            'np_out': self.np_out,
            'max_iter_in': self.max_iter_in,
            'max_iter_out': self.max_iter_out,
            'cr': self.cr,
            'f': self.f,
            'function_set': self.function_set.names,
            'fitness_function': self.fitness_function_name,
            'selection_scheme': self.selection_scheme_name,
            'reproduction_scheme': self.reproduction_scheme_name,
            'update_frequency': self.update_frequency,
        }

    def describe(self) -> str:
        d = self.to_dict()
        lines = ['-----------------------------------------------------------']
        lines.extend(f"{key}:\t{value}" for key, value in d.items())
        lines.append('-----------------------------------------------------------')
        return '\n'.join(lines)
