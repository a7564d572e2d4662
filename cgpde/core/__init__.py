"""
Core CGP genotype: node functions, gene samplers, chromosomes and their file format.
"""

from .functions import (
    FunctionSet,
    NodeFunction,
    Primitive,
    PRESET_FUNCTIONS,
    MAX_FUNCTIONS,
    get_preset_function,
    list_functions,
)
from .genes import (
    rand_int,
    rand_decimal,
    random_function,
    random_node_input,
    random_output,
    random_weight,
)
from .chromosome import Chromosome, Node, clamp_output
from .persistence import save_chromosome, load_chromosome

__all__ = [
    'FunctionSet',
    'NodeFunction',
    'Primitive',
    'PRESET_FUNCTIONS',
    'MAX_FUNCTIONS',
    'get_preset_function',
    'list_functions',
    'rand_int',
    'rand_decimal',
    'random_function',
    'random_node_input',
    'random_output',
    'random_weight',
    'Chromosome',
    'Node',
    'clamp_output',
    'save_chromosome',
    'load_chromosome',
]
