"""
Node functions - the primitives a CGP node can compute.

Each node applies one function from a FunctionSet to the values on its
connections. Functions fall into a few families:
- Arithmetic: add, sub, mul, div, abs, sqrt, sq, cube, pow, exp
- Trigonometric: sin, cos, tan
- Logic: and, nand, or, nor, xor, xnor, not, wire
- Neurons: sig, gauss, step, soft, tanh (applied to the weighted input sum)
- Constants: 1, 0, pi

Functions operate on numpy float64 scalars so that numeric faults surface as
inf/nan (later clamped by the chromosome) instead of Python exceptions.
"""

import logging
from enum import Enum
from typing import Callable, Dict, List, Optional

import numpy as np

logger = logging.getLogger(__name__)

# Maximum number of functions a FunctionSet can hold
MAX_FUNCTIONS = 50

# Marker for functions that use every connected input
VARIADIC = -1

PrimitiveFunc = Callable[[np.ndarray, np.ndarray], float]


class Primitive(str, Enum):
    ADD = 'add'
    SUB = 'sub'
    MUL = 'mul'
    DIV = 'div'
    ABS = 'abs'
    SQRT = 'sqrt'
    SQ = 'sq'
    CUBE = 'cube'
    POW = 'pow'
    EXP = 'exp'
    SIN = 'sin'
    COS = 'cos'
    TAN = 'tan'
    ONE = '1'
    ZERO = '0'
    PI = 'pi'
    AND = 'and'
    NAND = 'nand'
    OR = 'or'
    NOR = 'nor'
    XOR = 'xor'
    XNOR = 'xnor'
    NOT = 'not'
    WIRE = 'wire'
    SIG = 'sig'
    GAUSS = 'gauss'
    STEP = 'step'
    SOFTSIGN = 'soft'
    TANH = 'tanh'


# =============================================================================
# Arithmetic
# =============================================================================

def add(inputs: np.ndarray, weights: np.ndarray) -> float:
    """Sum of all inputs."""
    total = inputs[0]
    for value in inputs[1:]:
        total = total + value
    return total


def sub(inputs: np.ndarray, weights: np.ndarray) -> float:
    """First input minus all remaining inputs."""
    total = inputs[0]
    for value in inputs[1:]:
        total = total - value
    return total


def mul(inputs: np.ndarray, weights: np.ndarray) -> float:
    total = inputs[0]
    for value in inputs[1:]:
        total = total * value
    return total


def div(inputs: np.ndarray, weights: np.ndarray) -> float:
    """First input divided by each remaining input in turn."""
    total = inputs[0]
    for value in inputs[1:]:
        total = total / value
    return total


def absolute(inputs: np.ndarray, weights: np.ndarray) -> float:
    return np.abs(inputs[0])


def square_root(inputs: np.ndarray, weights: np.ndarray) -> float:
    return np.sqrt(inputs[0])


def square(inputs: np.ndarray, weights: np.ndarray) -> float:
    return np.power(inputs[0], 2)


def cube(inputs: np.ndarray, weights: np.ndarray) -> float:
    return np.power(inputs[0], 3)


def power(inputs: np.ndarray, weights: np.ndarray) -> float:
    """First input raised to the second."""
    return np.power(inputs[0], inputs[1])


def exponential(inputs: np.ndarray, weights: np.ndarray) -> float:
    return np.exp(inputs[0])


def sine(inputs: np.ndarray, weights: np.ndarray) -> float:
    return np.sin(inputs[0])


def cosine(inputs: np.ndarray, weights: np.ndarray) -> float:
    return np.cos(inputs[0])


def tangent(inputs: np.ndarray, weights: np.ndarray) -> float:
    return np.tan(inputs[0])


def const_one(inputs: np.ndarray, weights: np.ndarray) -> float:
    return 1.0


def const_zero(inputs: np.ndarray, weights: np.ndarray) -> float:
    return 0.0


def const_pi(inputs: np.ndarray, weights: np.ndarray) -> float:
    return np.pi


# =============================================================================
# Logic (inputs compared against exact 0 / 1)
# =============================================================================

def logic_and(inputs: np.ndarray, weights: np.ndarray) -> float:
    """1 unless any input is 0."""
    return 0.0 if np.any(inputs == 0) else 1.0


def logic_nand(inputs: np.ndarray, weights: np.ndarray) -> float:
    return 1.0 if np.any(inputs == 0) else 0.0


def logic_or(inputs: np.ndarray, weights: np.ndarray) -> float:
    """1 if any input is 1."""
    return 1.0 if np.any(inputs == 1) else 0.0


def logic_nor(inputs: np.ndarray, weights: np.ndarray) -> float:
    return 0.0 if np.any(inputs == 1) else 1.0


def logic_xor(inputs: np.ndarray, weights: np.ndarray) -> float:
    """1 iff exactly one input is 1 (one-hot)."""
    return 1.0 if np.count_nonzero(inputs == 1) == 1 else 0.0


def logic_xnor(inputs: np.ndarray, weights: np.ndarray) -> float:
    return 0.0 if np.count_nonzero(inputs == 1) == 1 else 1.0


def logic_not(inputs: np.ndarray, weights: np.ndarray) -> float:
    return 1.0 if inputs[0] == 0 else 0.0


def wire(inputs: np.ndarray, weights: np.ndarray) -> float:
    """Pass the first input through unchanged."""
    return inputs[0]


# =============================================================================
# Neurons (applied to the weighted sum of inputs)
# =============================================================================

def weighted_sum(inputs: np.ndarray, weights: np.ndarray) -> float:
    total = np.float64(0.0)
    for value, weight in zip(inputs, weights):
        total = total + value * weight
    return total


def sigmoid(inputs: np.ndarray, weights: np.ndarray) -> float:
    """Logistic sigmoid, range [0, 1]."""
    return 1.0 / (1.0 + np.exp(-weighted_sum(inputs, weights)))


def gaussian(inputs: np.ndarray, weights: np.ndarray) -> float:
    """Gaussian centred at 0 with unit width, range [0, 1]."""
    centre, width = 0.0, 1.0
    x = weighted_sum(inputs, weights)
    return np.exp(-np.power(x - centre, 2) / (2 * width ** 2))


def step(inputs: np.ndarray, weights: np.ndarray) -> float:
    return 0.0 if weighted_sum(inputs, weights) < 0 else 1.0


def softsign(inputs: np.ndarray, weights: np.ndarray) -> float:
    """x / (1 + |x|), range [-1, 1]."""
    x = weighted_sum(inputs, weights)
    return x / (1.0 + np.abs(x))


def hyperbolic_tangent(inputs: np.ndarray, weights: np.ndarray) -> float:
    return np.tanh(weighted_sum(inputs, weights))


class NodeFunction:
    """A named node primitive together with its maximum number of inputs."""

    def __init__(
        self,
        name: str,
        func: PrimitiveFunc,
        max_inputs: int,
        description: str = '',
    ):
        self.name = name
        self.func = func
        self.max_inputs = max_inputs
        self.description = description

    @property
    def is_variadic(self) -> bool:
        return self.max_inputs == VARIADIC

    @property
    def uses_weights(self) -> bool:
        return self.name in NEURON_FUNCTIONS

    def __call__(self, inputs: np.ndarray, weights: np.ndarray) -> float:
        return self.func(inputs, weights)

    def __repr__(self):
        return f"NodeFunction({self.name}, max_inputs={self.max_inputs})"


# Registry of preset node functions
PRESET_FUNCTIONS: Dict[str, NodeFunction] = {
    f.name: f for f in [
        NodeFunction(Primitive.ADD.value, add, VARIADIC, 'sum of inputs'),
        NodeFunction(Primitive.SUB.value, sub, VARIADIC, 'first input minus the rest'),
        NodeFunction(Primitive.MUL.value, mul, VARIADIC, 'product of inputs'),
        NodeFunction(Primitive.DIV.value, div, VARIADIC, 'first input divided by the rest'),
        NodeFunction(Primitive.ABS.value, absolute, 1, 'absolute value'),
        NodeFunction(Primitive.SQRT.value, square_root, 1, 'square root'),
        NodeFunction(Primitive.SQ.value, square, 1, 'square'),
        NodeFunction(Primitive.CUBE.value, cube, 1, 'cube'),
        NodeFunction(Primitive.POW.value, power, 2, 'first input to the power of the second'),
        NodeFunction(Primitive.EXP.value, exponential, 1, 'exponential'),
        NodeFunction(Primitive.SIN.value, sine, 1, 'sine'),
        NodeFunction(Primitive.COS.value, cosine, 1, 'cosine'),
        NodeFunction(Primitive.TAN.value, tangent, 1, 'tangent'),
        NodeFunction(Primitive.ONE.value, const_one, 0, 'constant 1'),
        NodeFunction(Primitive.ZERO.value, const_zero, 0, 'constant 0'),
        NodeFunction(Primitive.PI.value, const_pi, 0, 'constant pi'),
        NodeFunction(Primitive.AND.value, logic_and, VARIADIC, 'logical AND'),
        NodeFunction(Primitive.NAND.value, logic_nand, VARIADIC, 'logical NAND'),
        NodeFunction(Primitive.OR.value, logic_or, VARIADIC, 'logical OR'),
        NodeFunction(Primitive.NOR.value, logic_nor, VARIADIC, 'logical NOR'),
        NodeFunction(Primitive.XOR.value, logic_xor, VARIADIC, 'logical XOR (one hot)'),
        NodeFunction(Primitive.XNOR.value, logic_xnor, VARIADIC, 'logical XNOR'),
        NodeFunction(Primitive.NOT.value, logic_not, 1, 'logical NOT'),
        NodeFunction(Primitive.WIRE.value, wire, 1, 'pass-through'),
        NodeFunction(Primitive.SIG.value, sigmoid, VARIADIC, 'logistic sigmoid neuron'),
        NodeFunction(Primitive.GAUSS.value, gaussian, VARIADIC, 'gaussian neuron'),
        NodeFunction(Primitive.STEP.value, step, VARIADIC, 'step neuron'),
        NodeFunction(Primitive.SOFTSIGN.value, softsign, VARIADIC, 'softsign neuron'),
        NodeFunction(Primitive.TANH.value, hyperbolic_tangent, VARIADIC, 'tanh neuron'),
    ]
}

NEURON_FUNCTIONS = {
    Primitive.SIG.value,
    Primitive.GAUSS.value,
    Primitive.STEP.value,
    Primitive.SOFTSIGN.value,
    Primitive.TANH.value,
}


def get_preset_function(name: str) -> NodeFunction:
    """Get a preset node function by name."""
    if name not in PRESET_FUNCTIONS:
        available = ', '.join(PRESET_FUNCTIONS.keys())
        raise ValueError(f"Unknown node function '{name}'. Available: {available}")
    return PRESET_FUNCTIONS[name]


def list_functions() -> Dict[str, Dict]:
    """List all preset node functions with their arity and description."""
    return {
        name: {
            'max_inputs': f.max_inputs,
            'description': f.description,
        }
        for name, f in PRESET_FUNCTIONS.items()
    }


class FunctionSet:
    """
    Ordered, fixed-capacity registry of node functions.

    Chromosomes refer to functions by index into this list, so the order of
    registration is part of the genotype. Each chromosome holds its own copy;
    editing a FunctionSet never affects chromosomes already built from it.
    """

    def __init__(self, functions: Optional[List[NodeFunction]] = None):
        self.functions: List[NodeFunction] = []
        for f in functions or []:
            self._append(f)

    def _append(self, function: NodeFunction) -> bool:
        if len(self.functions) >= MAX_FUNCTIONS:
            logger.warning(
                "Function set is full (%d functions); '%s' was not added",
                MAX_FUNCTIONS, function.name,
            )
            return False
        self.functions.append(function)
        return True

    def add_node_function(self, names: str) -> None:
        """
        Add preset functions given as a comma separated list, e.g. "add,sub,sig".

        Raises:
            ValueError: If any name is not a preset function
        """
        for name in names.split(','):
            name = name.strip()
            if not name:
                continue
            self._append(get_preset_function(name))

    def add_custom_node_function(
        self,
        func: PrimitiveFunc,
        name: str,
        max_inputs: int,
    ) -> None:
        """
        Add a user supplied node function.

        Args:
            func: Callable taking (inputs, weights) arrays and returning a float
            name: Name used when printing or saving chromosomes
            max_inputs: Maximum inputs used, or -1 to use every connection
        """
        if max_inputs < VARIADIC:
            raise ValueError(f"max_inputs must be >= -1, got {max_inputs}")
        self._append(NodeFunction(name, func, max_inputs, 'custom'))

    def clear(self) -> None:
        self.functions = []

    def copy(self) -> 'FunctionSet':
        return FunctionSet([
            NodeFunction(f.name, f.func, f.max_inputs, f.description)
            for f in self.functions
        ])

    @property
    def names(self) -> List[str]:
        return [f.name for f in self.functions]

    @property
    def is_preset_only(self) -> bool:
        return all(
            f.name in PRESET_FUNCTIONS and PRESET_FUNCTIONS[f.name].func is f.func
            for f in self.functions
        )

    def __len__(self) -> int:
        return len(self.functions)

    def __getitem__(self, index: int) -> NodeFunction:
        return self.functions[index]

    def __iter__(self):
        return iter(self.functions)

    def __repr__(self):
        return f"FunctionSet({', '.join(self.names)})"
