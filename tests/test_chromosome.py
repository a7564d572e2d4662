"""
Tests for chromosomes: construction, active nodes, execution and analysis.

Run with: python -m pytest tests/test_chromosome.py -v
"""

import logging

import pytest
import numpy as np
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from cgpde.core.chromosome import (
    Chromosome,
    Node,
    clamp_output,
    MAX_OUTPUT,
    MIN_OUTPUT,
)
from cgpde.core.functions import FunctionSet
from cgpde.evolution.config import EvolutionConfig


def make_chromosome(num_inputs, node_specs, outputs, functions='add'):
    """Build a chromosome from (function index, inputs) pairs."""
    fs = FunctionSet()
    fs.add_node_function(functions)
    nodes = [
        Node(function=f, inputs=list(ins), weights=[1.0] * len(ins))
        for f, ins in node_specs
    ]
    return Chromosome(
        num_inputs=num_inputs,
        arity=len(node_specs[0][1]),
        nodes=nodes,
        output_genes=outputs,
        function_set=fs,
    )


def make_config(**overrides):
    params = dict(num_inputs=2, num_nodes=10, num_outputs=2, arity=3)
    params.update(overrides)
    config = EvolutionConfig(**params)
    config.add_node_function('add,sub,mul,sig')
    return config


class TestClamp:
    """Tests for numeric clamping of node outputs."""

    def test_nan_to_zero(self):
        assert clamp_output(float('nan')) == 0.0

    def test_infinities(self):
        assert clamp_output(float('inf')) == MAX_OUTPUT
        assert clamp_output(float('-inf')) == MIN_OUTPUT

    def test_finite_unchanged(self):
        assert clamp_output(-2.5) == -2.5


class TestConstruction:
    """Tests for building chromosomes."""

    def test_random_dimensions(self):
        config = make_config()
        chromo = Chromosome.random(config, np.random.default_rng(0))
        assert chromo.num_inputs == 2
        assert chromo.num_nodes == 10
        assert chromo.num_outputs == 2
        assert chromo.arity == 3
        for node in chromo.nodes:
            assert len(node.inputs) == 3
            assert len(node.weights) == 3

    def test_random_is_deterministic(self):
        config = make_config()
        a = Chromosome.random(config, np.random.default_rng(42))
        b = Chromosome.random(config, np.random.default_rng(42))
        assert a.compare(b, weights=True)

    def test_feed_forward_connections(self):
        config = make_config()
        chromo = Chromosome.random(config, np.random.default_rng(3))
        for position, node in enumerate(chromo.nodes):
            for gene in node.inputs:
                assert gene < config.num_inputs + position

    def test_weights_within_range(self):
        config = make_config(connection_weight_range=2.0)
        chromo = Chromosome.random(config, np.random.default_rng(1))
        for node in chromo.nodes:
            assert np.all(np.abs(node.weights) <= 2.0)

    def test_no_shortcut_outputs(self):
        config = make_config(shortcut_connections=False)
        for seed in range(10):
            chromo = Chromosome.random(config, np.random.default_rng(seed))
            assert all(g >= config.num_inputs for g in chromo.output_genes)

    def test_empty_function_set_raises(self):
        config = EvolutionConfig(num_inputs=2, num_nodes=5, num_outputs=1, arity=2)
        with pytest.raises(ValueError, match="empty function set"):
            Chromosome.random(config, np.random.default_rng(0))

    def test_invalid_connection_gene_raises(self):
        with pytest.raises(ValueError, match="invalid connection gene"):
            make_chromosome(1, [(0, [0, 5])], [1])

    def test_function_set_is_private_copy(self):
        config = make_config()
        chromo = Chromosome.random(config, np.random.default_rng(0))
        config.add_node_function('tanh')
        assert len(chromo.function_set) == 4


class TestActiveNodes:
    """Tests for active node resolution."""

    def test_simple_graph(self):
        # node0 = in0 + in1, node1 = node0 + node0, node2 unused
        chromo = make_chromosome(2, [(0, [0, 1]), (0, [2, 2]), (0, [0, 0])], [3])
        assert chromo.active_nodes == [0, 1]
        assert chromo.is_node_active(0)
        assert not chromo.is_node_active(2)
        assert chromo.num_active_connections() == 4

    def test_output_to_input_has_no_active_nodes(self):
        chromo = make_chromosome(2, [(0, [0, 1])], [1])
        assert chromo.active_nodes == []
        assert chromo.execute([4.0, 7.0])[0] == 7.0

    def test_act_arity_follows_function(self):
        # abs uses one input, so the second connection does not activate node1
        chromo = make_chromosome(1, [(1, [0, 0]), (0, [0, 0]), (1, [1, 2])], [3], 'add,abs')
        assert chromo.nodes[2].act_arity == 1
        assert chromo.active_nodes == [0, 2]

    def test_active_subgraph_is_closed(self):
        config = make_config(num_nodes=30, arity=4)
        for seed in range(20):
            chromo = Chromosome.random(config, np.random.default_rng(seed))
            active = set(chromo.active_nodes)
            for gene in chromo.output_genes:
                if gene >= chromo.num_inputs:
                    assert gene - chromo.num_inputs in active
            for index in active:
                node = chromo.nodes[index]
                for gene in node.inputs[:node.act_arity]:
                    if gene >= chromo.num_inputs:
                        assert gene - chromo.num_inputs in active
            assert chromo.active_nodes == sorted(active)

    def test_idempotent(self):
        chromo = Chromosome.random(make_config(), np.random.default_rng(5))
        first = list(chromo.active_nodes)
        chromo.set_active_nodes()
        assert chromo.active_nodes == first


class TestExecution:
    """Tests for executing chromosomes."""

    def test_feed_forward_value(self):
        chromo = make_chromosome(2, [(0, [0, 1]), (0, [2, 2]), (0, [0, 0])], [3, 2])
        outputs = chromo.execute([1.0, 2.0])
        assert outputs[0] == 6.0
        assert outputs[1] == 3.0
        assert chromo.output(0) == 6.0
        assert chromo.node_value(0) == 3.0

    def test_wrong_input_count_raises(self):
        chromo = make_chromosome(2, [(0, [0, 1])], [2])
        with pytest.raises(ValueError):
            chromo.execute([1.0])

    def test_division_by_zero_is_clamped(self):
        chromo = make_chromosome(2, [(0, [0, 1])], [2], 'div')
        assert chromo.execute([1.0, 0.0])[0] == MAX_OUTPUT
        assert chromo.execute([-1.0, 0.0])[0] == MIN_OUTPUT
        assert chromo.execute([0.0, 0.0])[0] == 0.0

    def test_recurrent_connection_reads_previous_value(self):
        # node0 = in0 + node1 (later node), node1 = in0 + in0
        chromo = make_chromosome(1, [(0, [0, 2]), (0, [0, 0])], [1])
        assert chromo.active_nodes == [0, 1]
        assert chromo.execute([1.0])[0] == 1.0
        # node1 still holds 2.0 from the first call, not the fresh 10.0
        assert chromo.execute([5.0])[0] == 7.0
        chromo.reset()
        assert chromo.execute([1.0])[0] == 1.0

    def test_all_nodes_matches_active_only(self):
        config = make_config(num_nodes=20)
        chromo = Chromosome.random(config, np.random.default_rng(11))
        other = chromo.clone()
        for x in ([0.5, -1.0], [2.0, 3.0]):
            expected = chromo.execute(x, active_only=True)
            np.testing.assert_array_equal(other.execute(x, active_only=False), expected)

    def test_deterministic(self):
        chromo = Chromosome.random(make_config(), np.random.default_rng(2))
        first = chromo.execute([0.3, 0.7])
        chromo.reset()
        np.testing.assert_array_equal(chromo.execute([0.3, 0.7]), first)

    def test_feed_forward_has_no_memory(self):
        config = make_config(num_nodes=30, recurrent_connection_probability=0.0)
        for seed in range(5):
            chromo = Chromosome.random(config, np.random.default_rng(seed))
            first = chromo.execute([0.3, 0.7]).copy()
            np.testing.assert_array_equal(chromo.execute([0.3, 0.7]), first)
            chromo.execute([-4.0, 9.0])
            np.testing.assert_array_equal(chromo.execute([0.3, 0.7]), first)


class TestCopying:
    """Tests for clone, copy_from and release."""

    def test_clone_is_deep(self):
        chromo = Chromosome.random(make_config(), np.random.default_rng(0))
        clone = chromo.clone()
        clone.nodes[0].weights[0] = 99.0
        clone.nodes[0].inputs[0] = 0
        assert chromo.nodes[0].weights[0] != 99.0
        assert chromo.compare(chromo.clone(), weights=True)

    def test_clone_zeroes_node_outputs(self):
        chromo = make_chromosome(2, [(0, [0, 1])], [2])
        chromo.execute([1.0, 1.0])
        assert chromo.clone().node_value(0) == 0.0

    def test_copy_from(self):
        config = make_config()
        a = Chromosome.random(config, np.random.default_rng(0))
        b = Chromosome.random(config, np.random.default_rng(1))
        b.fitness = -3.0
        a.copy_from(b)
        assert a.compare(b, weights=True)
        assert a.fitness == -3.0
        assert a.active_nodes == b.active_nodes

    def test_copy_from_dimension_mismatch(self):
        a = Chromosome.random(make_config(), np.random.default_rng(0))
        b = Chromosome.random(make_config(num_nodes=4), np.random.default_rng(0))
        with pytest.raises(ValueError):
            a.copy_from(b)

    def test_double_release_warns(self, caplog):
        chromo = Chromosome.random(make_config(), np.random.default_rng(0))
        chromo.release()
        with caplog.at_level(logging.WARNING):
            chromo.release()
        assert 'Double release' in caplog.text


class TestAnalysis:
    """Tests for depth, compare, remove_inactive_nodes and describe."""

    def test_depth(self):
        chromo = make_chromosome(2, [(0, [0, 1]), (0, [2, 2]), (0, [0, 0])], [3])
        assert chromo.depth() == 2

    def test_depth_of_input_output(self):
        chromo = make_chromosome(2, [(0, [0, 1])], [0])
        assert chromo.depth() == 0

    def test_depth_ignores_recurrent_edges(self):
        chromo = make_chromosome(1, [(0, [0, 2]), (0, [0, 0])], [1])
        assert chromo.depth() == 1

    def test_remove_inactive_nodes(self):
        chromo = make_chromosome(2, [(0, [0, 1]), (0, [0, 0]), (0, [2, 2])], [4])
        before = chromo.execute([1.0, 2.0])
        chromo.remove_inactive_nodes()
        assert chromo.num_nodes == 2
        assert chromo.active_nodes == [0, 1]
        chromo.reset()
        np.testing.assert_array_equal(chromo.execute([1.0, 2.0]), before)

    def test_remove_inactive_nodes_unused_slots_stay_feed_forward(self):
        # node2 = abs(in0); its unused second slot points at removed node1
        chromo = make_chromosome(1, [(0, [0, 0]), (0, [0, 0]), (1, [0, 2])], [3], 'add,abs')
        assert chromo.active_nodes == [2]
        chromo.remove_inactive_nodes()
        assert chromo.num_nodes == 1
        assert chromo.nodes[0].inputs == [0, 0]
        for position, node in enumerate(chromo.nodes):
            assert all(gene < chromo.num_inputs + position for gene in node.inputs)

    def test_remove_inactive_nodes_keeps_all_when_none_active(self):
        chromo = make_chromosome(2, [(0, [0, 1]), (0, [0, 0])], [1])
        chromo.remove_inactive_nodes()
        assert chromo.num_nodes == 2

    def test_compare_active_only(self):
        a = make_chromosome(2, [(0, [0, 1]), (0, [0, 0])], [2])
        b = make_chromosome(2, [(0, [0, 1]), (0, [1, 1])], [2])
        assert not a.compare(b)
        assert a.compare(b, active_only=True)

    def test_compare_weights(self):
        a = make_chromosome(2, [(0, [0, 1])], [2])
        b = a.clone()
        b.nodes[0].weights[1] = -1.0
        assert a.compare(b)
        assert not a.compare(b, weights=True)

    def test_describe_marks_active(self):
        chromo = make_chromosome(2, [(0, [0, 1]), (0, [0, 0])], [2])
        text = chromo.describe(weights=True)
        assert '(2):\tadd' in text
        assert text.splitlines()[2].endswith('*')
        assert not text.splitlines()[3].endswith('*')
        assert text.splitlines()[-1] == 'outputs: 2'

    def test_to_dict(self):
        chromo = make_chromosome(2, [(0, [0, 1])], [2])
        d = chromo.to_dict()
        assert d['num_nodes'] == 1
        assert d['function_set'] == ['add']
        assert d['nodes'][0]['inputs'] == [0, 1]
