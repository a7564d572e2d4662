"""
Chromosome representation for Cartesian Genetic Programming.

A Chromosome encodes a computational graph as a fixed-size array of nodes,
each holding a function gene, ``arity`` connection genes and ``arity``
connection weights, plus one output gene per program output. Connection and
output genes use absolute addressing: values below ``num_inputs`` refer to a
chromosome input, values at or above refer to node ``value - num_inputs``.

Key features:
- Active-node resolution (only nodes reachable from the outputs are evaluated)
- Recurrent connections read a node's output from the previous execution
- Numeric clamping of NaN and infinite node outputs
- Deep copies only; nodes and weights are never shared between chromosomes
"""

import logging
import math
import sys
from dataclasses import dataclass, field
from typing import List, Dict, Any, Sequence, TYPE_CHECKING

import numpy as np

from .functions import FunctionSet
from .genes import (
    random_function,
    random_node_input,
    random_output,
    random_weight,
)

if TYPE_CHECKING:
    from ..datasets import DataSet
    from ..evolution.config import EvolutionConfig

logger = logging.getLogger(__name__)

# Replacement values for infinite node outputs
MAX_OUTPUT = sys.float_info.max
MIN_OUTPUT = sys.float_info.min


def clamp_output(value: float) -> float:
    """Map NaN to 0, +inf to the largest float and -inf to the smallest."""
    if math.isnan(value):
        return 0.0
    if math.isinf(value):
        return MAX_OUTPUT if value > 0 else MIN_OUTPUT
    return value


@dataclass(eq=False)
class Node:
    """
    A single CGP node.

    Attributes:
        function: Index into the owning chromosome's function set
        inputs: Absolute connection indices, always ``arity`` long
        weights: Connection weights, parallel to ``inputs``
        output: Value computed by the most recent execution (0 after reset)
        active: Whether the node is reachable from an output gene
        act_arity: Number of connections the node's function actually uses
    """
    function: int
    inputs: List[int]
    weights: np.ndarray
    output: float = 0.0
    active: bool = False
    act_arity: int = 0

    def __post_init__(self):
        self.inputs = [int(i) for i in self.inputs]
        self.weights = np.asarray(self.weights, dtype=float)
        if len(self.weights) != len(self.inputs):
            raise ValueError(
                f"Node has {len(self.inputs)} inputs but {len(self.weights)} weights"
            )

    def copy(self) -> 'Node':
        return Node(
            function=self.function,
            inputs=list(self.inputs),
            weights=self.weights.copy(),
            output=self.output,
            active=self.active,
            act_arity=self.act_arity,
        )


@dataclass(eq=False)
class Chromosome:
    """
    Genotype of a CGP program.

    Attributes:
        num_inputs: Number of program inputs
        arity: Connections per node (uniform across nodes)
        nodes: The node array, index 0..num_nodes-1
        output_genes: One absolute connection index per program output
        function_set: Private copy of the function set the genes index into
        fitness: Training fitness (lower is better)
        fitness_validation: Validation fitness (lower is better)
        generation: Generation at which this genotype was produced
    """
    num_inputs: int
    arity: int
    nodes: List[Node]
    output_genes: List[int]
    function_set: FunctionSet
    fitness: float = 0.0
    fitness_validation: float = 0.0
    generation: int = 0
    active_nodes: List[int] = field(default_factory=list, init=False)
    released: bool = field(default=False, init=False, repr=False)

    def __post_init__(self):
        """Validate the genotype and resolve active nodes."""
        if self.num_inputs <= 0:
            raise ValueError(f"num_inputs must be > 0, got {self.num_inputs}")
        if not self.nodes:
            raise ValueError("A chromosome needs at least one node")
        if not self.output_genes:
            raise ValueError("A chromosome needs at least one output")
        if self.arity <= 0:
            raise ValueError(f"arity must be > 0, got {self.arity}")
        if len(self.function_set) < 1:
            raise ValueError("Cannot build a chromosome from an empty function set")

        limit = self.num_inputs + len(self.nodes)
        for index, node in enumerate(self.nodes):
            if len(node.inputs) != self.arity:
                raise ValueError(
                    f"Node {index} has {len(node.inputs)} connections, expected {self.arity}"
                )
            if not 0 <= node.function < len(self.function_set):
                raise ValueError(f"Node {index} has invalid function gene {node.function}")
            for gene in node.inputs:
                if not 0 <= gene < limit:
                    raise ValueError(f"Node {index} has invalid connection gene {gene}")
        self.output_genes = [int(o) for o in self.output_genes]
        for gene in self.output_genes:
            if not 0 <= gene < limit:
                raise ValueError(f"Invalid output gene {gene}")

        self._output_values = np.zeros(len(self.output_genes))
        self._hold = np.zeros(self.arity)
        self.set_active_nodes()

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def random(
        cls,
        config: 'EvolutionConfig',
        rng: np.random.Generator,
    ) -> 'Chromosome':
        """
        Create a chromosome with every gene drawn at random.

        Args:
            config: Supplies dimensions, function set, weight range,
                recurrent connection probability and shortcut setting
            rng: Random generator for all gene draws

        Returns:
            A new chromosome with active nodes resolved
        """
        num_functions = len(config.function_set)
        if num_functions < 1:
            raise ValueError("Cannot build a chromosome from an empty function set")

        nodes = []
        for position in range(config.num_nodes):
            function = random_function(num_functions, rng)
            inputs = []
            weights = []
            for _ in range(config.arity):
                inputs.append(random_node_input(
                    config.num_inputs,
                    config.num_nodes,
                    position,
                    config.recurrent_connection_probability,
                    rng,
                ))
                weights.append(random_weight(config.connection_weight_range, rng))
            nodes.append(Node(function=function, inputs=inputs, weights=weights))

        outputs = [
            random_output(
                config.num_inputs,
                config.num_nodes,
                config.shortcut_connections,
                rng,
            )
            for _ in range(config.num_outputs)
        ]

        return cls(
            num_inputs=config.num_inputs,
            arity=config.arity,
            nodes=nodes,
            output_genes=outputs,
            function_set=config.function_set.copy(),
        )

    def clone(self) -> 'Chromosome':
        """Deep copy; node outputs of the clone start at zero."""
        nodes = []
        for node in self.nodes:
            new_node = node.copy()
            new_node.output = 0.0
            nodes.append(new_node)
        return Chromosome(
            num_inputs=self.num_inputs,
            arity=self.arity,
            nodes=nodes,
            output_genes=list(self.output_genes),
            function_set=self.function_set.copy(),
            fitness=self.fitness,
            fitness_validation=self.fitness_validation,
            generation=self.generation,
        )

    def copy_from(self, other: 'Chromosome') -> None:
        """
        Overwrite this chromosome's genes and scores with those of ``other``.

        Both chromosomes must have the same dimensions. Node output registers
        of this chromosome are left as they are.
        """
        for attr in ('num_inputs', 'num_nodes', 'num_outputs', 'arity'):
            if getattr(self, attr) != getattr(other, attr):
                raise ValueError(
                    f"Cannot copy a chromosome of different dimensions: "
                    f"{attr} {getattr(other, attr)} != {getattr(self, attr)}"
                )
        for dest, src in zip(self.nodes, other.nodes):
            dest.function = src.function
            dest.inputs = list(src.inputs)
            dest.weights = src.weights.copy()
            dest.active = src.active
            dest.act_arity = src.act_arity
        self.active_nodes = list(other.active_nodes)
        self.function_set = other.function_set.copy()
        self.output_genes = list(other.output_genes)
        self.fitness = other.fitness
        self.fitness_validation = other.fitness_validation
        self.generation = other.generation

    def release(self) -> None:
        """Drop owned node storage. Releasing twice is a logged no-op."""
        if self.released:
            logger.warning("Double release of chromosome prevented")
            return
        self.nodes = []
        self.active_nodes = []
        self.released = True

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def num_nodes(self) -> int:
        return len(self.nodes)

    @property
    def num_outputs(self) -> int:
        return len(self.output_genes)

    @property
    def num_active_nodes(self) -> int:
        return len(self.active_nodes)

    @property
    def outputs(self) -> np.ndarray:
        """Output values produced by the most recent execution."""
        return self._output_values.copy()

    def output(self, index: int) -> float:
        return float(self._output_values[index])

    def node_value(self, index: int) -> float:
        return self.nodes[index].output

    def is_node_active(self, index: int) -> bool:
        return self.nodes[index].active

    def node_arity(self, index: int) -> int:
        """Number of connections node ``index`` uses given its function."""
        max_inputs = self.function_set[self.nodes[index].function].max_inputs
        if max_inputs == -1:
            return self.arity
        return min(max_inputs, self.arity)

    def num_active_connections(self) -> int:
        return sum(self.nodes[i].act_arity for i in self.active_nodes)

    # -------------------------------------------------------------------------
    # Active nodes
    # -------------------------------------------------------------------------

    def set_active_nodes(self) -> None:
        """
        Mark the nodes reachable from the output genes as active.

        Traverses connections backward from every output gene with an
        explicit stack, sets each active node's act_arity, and stores the
        active indices in ascending order.
        """
        for node in self.nodes:
            node.active = False

        active = []
        stack = [g for g in reversed(self.output_genes) if g >= self.num_inputs]
        while stack:
            index = stack.pop() - self.num_inputs
            node = self.nodes[index]
            if node.active:
                continue
            node.active = True
            node.act_arity = self.node_arity(index)
            active.append(index)
            for gene in reversed(node.inputs[:node.act_arity]):
                if gene >= self.num_inputs and not self.nodes[gene - self.num_inputs].active:
                    stack.append(gene)

        active.sort()
        self.active_nodes = active

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def execute(self, inputs: Sequence[float], active_only: bool = True) -> np.ndarray:
        """
        Evaluate the chromosome on one input vector.

        Nodes run in ascending index order and keep their output between
        calls, so a connection to a node at the same or a later position
        reads the value that node produced on the previous call.

        Args:
            inputs: ``num_inputs`` values
            active_only: Evaluate only active nodes. When False every node is
                evaluated, which yields the same outputs.

        Returns:
            Array of ``num_outputs`` values
        """
        values = np.asarray(inputs, dtype=float)
        if values.shape != (self.num_inputs,):
            raise ValueError(
                f"Expected {self.num_inputs} inputs, got shape {values.shape}"
            )

        num_inputs = self.num_inputs
        nodes = self.nodes
        hold = self._hold
        order = self.active_nodes if active_only else range(len(nodes))

        with np.errstate(all='ignore'):
            for index in order:
                node = nodes[index]
                arity = node.act_arity if active_only else self.node_arity(index)
                for j in range(arity):
                    gene = node.inputs[j]
                    if gene < num_inputs:
                        hold[j] = values[gene]
                    else:
                        hold[j] = nodes[gene - num_inputs].output
                function = self.function_set[node.function]
                try:
                    result = float(function(hold[:arity], node.weights[:arity]))
                except (ArithmeticError, ValueError):
                    result = math.nan
                node.output = clamp_output(result)

        for i, gene in enumerate(self.output_genes):
            if gene < num_inputs:
                self._output_values[i] = values[gene]
            else:
                self._output_values[i] = nodes[gene - num_inputs].output

        return self._output_values.copy()

    def reset(self) -> None:
        """Zero every node's output register."""
        for node in self.nodes:
            node.output = 0.0

    def set_fitness(self, config: 'EvolutionConfig', data: 'DataSet') -> float:
        """Evaluate and store the training fitness."""
        self.set_active_nodes()
        self.reset()
        self.fitness = config.fitness_function(config, self, data)
        return self.fitness

    def set_fitness_validation(self, config: 'EvolutionConfig', data: 'DataSet') -> float:
        """Evaluate and store the validation fitness."""
        self.set_active_nodes()
        self.reset()
        self.fitness_validation = config.fitness_function(config, self, data)
        return self.fitness_validation

    # -------------------------------------------------------------------------
    # Structure analysis
    # -------------------------------------------------------------------------

    def depth(self) -> int:
        """
        Largest number of active nodes on a path from an input to an output.

        Only feed-forward connections are followed, so recurrent edges do not
        create cycles. An output wired straight to an input has depth 0.
        """
        memo: Dict[int, int] = {}

        def node_depth(index: int) -> int:
            # Iterative post-order over feed-forward edges
            stack = [index]
            while stack:
                current = stack[-1]
                if current in memo:
                    stack.pop()
                    continue
                node = self.nodes[current]
                pending = []
                for gene in node.inputs[:self.node_arity(current)]:
                    source = gene - self.num_inputs
                    if 0 <= source < current and source not in memo:
                        pending.append(source)
                if pending:
                    stack.extend(pending)
                    continue
                deepest = 0
                for gene in node.inputs[:self.node_arity(current)]:
                    source = gene - self.num_inputs
                    if 0 <= source < current:
                        deepest = max(deepest, memo[source])
                memo[current] = deepest + 1
                stack.pop()
            return memo[index]

        best = 0
        for gene in self.output_genes:
            if gene >= self.num_inputs:
                best = max(best, node_depth(gene - self.num_inputs))
        return best

    def remove_inactive_nodes(self) -> None:
        """
        Delete inactive nodes and renumber the remaining connections.

        A chromosome with no active nodes is left unchanged, since at least
        one node must remain.
        """
        self.set_active_nodes()
        if not self.active_nodes:
            logger.debug("No active nodes; nothing removed")
            return

        kept = list(self.active_nodes)
        new_index = {old: new for new, old in enumerate(kept)}

        def remap(gene: int) -> int:
            if gene < self.num_inputs:
                return gene
            old = gene - self.num_inputs
            if old in new_index:
                return new_index[old] + self.num_inputs
            # Unused slot pointing at a removed node
            return 0

        nodes = []
        for old in kept:
            node = self.nodes[old].copy()
            node.inputs = [remap(g) for g in node.inputs]
            nodes.append(node)

        removed = self.num_nodes - len(kept)
        self.nodes = nodes
        self.output_genes = [remap(g) for g in self.output_genes]
        self.set_active_nodes()
        logger.debug("Removed %d inactive nodes", removed)

    def compare(
        self,
        other: 'Chromosome',
        weights: bool = False,
        active_only: bool = False,
    ) -> bool:
        """
        Return True if both chromosomes encode the same genes.

        Args:
            other: Chromosome to compare against
            weights: Also compare connection weights
            active_only: Compare only the active nodes (and their used
                connections) instead of every node
        """
        if (self.num_inputs != other.num_inputs
                or self.num_nodes != other.num_nodes
                or self.num_outputs != other.num_outputs
                or self.arity != other.arity):
            return False

        if active_only:
            if self.active_nodes != other.active_nodes:
                return False
            indices = self.active_nodes
        else:
            indices = range(self.num_nodes)

        for i in indices:
            a, b = self.nodes[i], other.nodes[i]
            if a.function != b.function:
                return False
            used = a.act_arity if active_only else self.arity
            if a.inputs[:used] != b.inputs[:used]:
                return False
            if weights and not np.array_equal(a.weights[:used], b.weights[:used]):
                return False

        return self.output_genes == other.output_genes

    def describe(self, weights: bool = False) -> str:
        """Human readable dump: inputs, nodes (active ones starred), outputs."""
        lines = []
        for i in range(self.num_inputs):
            lines.append(f"({i}):\tinput")
        for i, node in enumerate(self.nodes):
            parts = [f"({i + self.num_inputs}):\t{self.function_set[node.function].name}\t"]
            for gene, weight in zip(node.inputs, node.weights):
                if weights:
                    parts.append(f"{gene},{weight:+.1f}\t")
                else:
                    parts.append(f"{gene} ")
            if node.active:
                parts.append('*')
            lines.append(''.join(parts))
        lines.append('outputs: ' + ' '.join(str(g) for g in self.output_genes))
        return '\n'.join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'num_inputs': self.num_inputs,
            'num_nodes': self.num_nodes,
            'num_outputs': self.num_outputs,
            'arity': self.arity,
            'function_set': self.function_set.names,
            'nodes': [
                {
                    'function': n.function,
                    'inputs': list(n.inputs),
                    'weights': [float(w) for w in n.weights],
                }
                for n in self.nodes
            ],
            'outputs': list(self.output_genes),
            'fitness': self.fitness,
            'fitness_validation': self.fitness_validation,
            'generation': self.generation,
            'active_nodes': list(self.active_nodes),
        }
