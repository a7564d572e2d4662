"""
Chromosome file format.

Layout:
    numInputs,<n>
    numNodes,<n>
    numOutputs,<n>
    arity,<n>
    functionSet,<name>,<name>,...
    <function index>            } repeated for each node
    <input>,<weight>            } ``arity`` lines per node
    <output>,<output>,...,

Only preset node functions can be restored from a file.
"""

import logging
from pathlib import Path
from typing import List, Union

from .chromosome import Chromosome, Node
from .functions import FunctionSet

logger = logging.getLogger(__name__)

HEADER_FIELDS = ('numInputs', 'numNodes', 'numOutputs', 'arity')


def save_chromosome(chromo: Chromosome, path: Union[str, Path]) -> Path:
    """
    Write a chromosome to ``path``.

    Weights are written with full precision so that loading the file back
    reproduces the chromosome exactly.

    Returns:
        The path written to
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    lines = [
        f"numInputs,{chromo.num_inputs}",
        f"numNodes,{chromo.num_nodes}",
        f"numOutputs,{chromo.num_outputs}",
        f"arity,{chromo.arity}",
        ''.join(['functionSet'] + [f",{name}" for name in chromo.function_set.names]),
    ]
    for node in chromo.nodes:
        lines.append(str(node.function))
        for gene, weight in zip(node.inputs, node.weights):
            lines.append(f"{gene},{float(weight)!r}")
    lines.append(''.join(f"{gene}," for gene in chromo.output_genes))

    with open(path, 'w') as f:
        f.write('\n'.join(lines))

    logger.debug("Saved chromosome to %s", path)
    return path


def _header_value(line: str, expected: str) -> int:
    key, _, value = line.strip().partition(',')
    if key != expected:
        raise ValueError(f"Expected '{expected}' header, found '{line.strip()}'")
    return int(value.split(',')[0])


def load_chromosome(path: Union[str, Path]) -> Chromosome:
    """
    Read a chromosome written by save_chromosome.

    Raises:
        FileNotFoundError: If ``path`` does not exist
        ValueError: If the file is malformed or names a custom node function
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Chromosome file not found: {path}")

    with open(path) as f:
        lines: List[str] = [line.rstrip('\n') for line in f]

    if len(lines) < len(HEADER_FIELDS) + 1:
        raise ValueError(f"Chromosome file {path} is truncated")

    num_inputs, num_nodes, num_outputs, arity = (
        _header_value(lines[i], name) for i, name in enumerate(HEADER_FIELDS)
    )

    names = [n for n in lines[4].strip().split(',')[1:] if n]
    function_set = FunctionSet()
    try:
        for name in names:
            function_set.add_node_function(name)
    except ValueError as e:
        raise ValueError(
            f"Cannot load chromosome with custom node functions: {e}"
        ) from e

    cursor = 5
    expected = cursor + num_nodes * (arity + 1) + 1
    if len(lines) < expected:
        raise ValueError(f"Chromosome file {path} is truncated")

    nodes = []
    for _ in range(num_nodes):
        function = int(lines[cursor].split(',')[0])
        cursor += 1
        inputs = []
        weights = []
        for _ in range(arity):
            gene, weight = lines[cursor].split(',')[:2]
            inputs.append(int(gene))
            weights.append(float(weight))
            cursor += 1
        nodes.append(Node(function=function, inputs=inputs, weights=weights))

    outputs = [int(o) for o in lines[cursor].strip().split(',') if o.strip()]
    if len(outputs) != num_outputs:
        raise ValueError(
            f"Expected {num_outputs} outputs in {path}, found {len(outputs)}"
        )

    return Chromosome(
        num_inputs=num_inputs,
        arity=arity,
        nodes=nodes,
        output_genes=outputs,
        function_set=function_set,
    )
