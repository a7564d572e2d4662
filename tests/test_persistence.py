"""
Tests for saving and loading chromosomes.

Run with: python -m pytest tests/test_persistence.py -v
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from cgpde.core.chromosome import Chromosome
from cgpde.core.persistence import save_chromosome, load_chromosome
from cgpde.evolution.config import EvolutionConfig


@pytest.fixture
def config():
    config = EvolutionConfig(
        num_inputs=3, num_nodes=8, num_outputs=2, arity=3,
        connection_weight_range=5.0,
    )
    config.add_node_function('add,sig,abs,1')
    return config


class TestSaveLoad:
    """Tests for the chromosome file format."""

    def test_round_trip(self, config, tmp_path):
        chromo = Chromosome.random(config, np.random.default_rng(7))
        path = save_chromosome(chromo, tmp_path / 'best.chromo')
        loaded = load_chromosome(path)

        assert loaded.compare(chromo, weights=True)
        assert loaded.function_set.names == ['add', 'sig', 'abs', '1']
        assert loaded.active_nodes == chromo.active_nodes
        x = [0.1, -0.4, 2.0]
        np.testing.assert_array_equal(loaded.execute(x), chromo.execute(x))

    def test_file_layout(self, config, tmp_path):
        chromo = Chromosome.random(config, np.random.default_rng(0))
        path = save_chromosome(chromo, tmp_path / 'c.txt')
        lines = path.read_text().splitlines()
        assert lines[0] == 'numInputs,3'
        assert lines[1] == 'numNodes,8'
        assert lines[2] == 'numOutputs,2'
        assert lines[3] == 'arity,3'
        assert lines[4] == 'functionSet,add,sig,abs,1'
        assert len(lines) == 5 + 8 * 4 + 1
        assert lines[-1].endswith(',')

    def test_creates_parent_directory(self, config, tmp_path):
        chromo = Chromosome.random(config, np.random.default_rng(0))
        path = save_chromosome(chromo, tmp_path / 'nested' / 'dir' / 'c.txt')
        assert path.exists()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_chromosome(tmp_path / 'missing.txt')

    def test_truncated_file(self, config, tmp_path):
        chromo = Chromosome.random(config, np.random.default_rng(0))
        path = save_chromosome(chromo, tmp_path / 'c.txt')
        lines = path.read_text().splitlines()
        path.write_text('\n'.join(lines[:10]))
        with pytest.raises(ValueError, match='truncated'):
            load_chromosome(path)

    def test_custom_function_cannot_be_loaded(self, tmp_path):
        config = EvolutionConfig(num_inputs=1, num_nodes=2, num_outputs=1, arity=1)
        config.add_custom_node_function(lambda x, w: float(x[0]), 'ident', 1)
        chromo = Chromosome.random(config, np.random.default_rng(0))
        path = save_chromosome(chromo, tmp_path / 'c.txt')
        with pytest.raises(ValueError, match='custom'):
            load_chromosome(path)

    def test_bad_header(self, tmp_path):
        path = tmp_path / 'c.txt'
        path.write_text('numNodes,3\nnumInputs,1\nnumOutputs,1\narity,1\nfunctionSet,add\n')
        with pytest.raises(ValueError, match='numInputs'):
            load_chromosome(path)
