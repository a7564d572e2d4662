#!/usr/bin/env python3
"""
Quick Start - Minimal example to get started with CGPDE.

Evolves a small sigmoid network on a toy problem with CGPANN, then tunes
the weights of a structure-only run with differential evolution.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import numpy as np

from cgpde.datasets import get_dataset
from cgpde.evolution import EvolutionConfig, accuracy, run_cgp, run_cgpde_out_v

print("CGPDE - Quick Start")
print("="*40)

data = get_dataset('gaussian_clusters', seed=1)
print(f"Dataset: Gaussian clusters ({data.num_samples} samples, {data.num_outputs} classes)")

config = EvolutionConfig(
    num_inputs=data.num_inputs,
    num_nodes=30,
    num_outputs=data.num_outputs,
    arity=4,
    connection_weight_range=5.0,
    np_out=10,
    max_iter_out=50,
)
config.add_node_function('sig')
config.set_fitness_function(accuracy, 'accuracy')

print("\nCGPANN...")
best = run_cgp(config, data, None, num_gens=300, rng=np.random.default_rng(0))
print(f"Accuracy: {-best.fitness_validation*100:.1f}% with {best.num_active_nodes} active nodes")

print("\nCGPDE-OUT-V...")
best = run_cgpde_out_v(config, data, None, num_gens=300, rng=np.random.default_rng(0))
print(f"Accuracy: {-best.fitness_validation*100:.1f}% with {best.num_active_nodes} active nodes")

print("\n" + best.describe())
