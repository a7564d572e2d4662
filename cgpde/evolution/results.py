"""
Results of repeated evolutionary runs.

Collects the best chromosome of each independent run and summarises
fitness, generation and active-node statistics across runs.
"""

import json
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np

from ..core.chromosome import Chromosome
from ..datasets import DataSet
from .config import EvolutionConfig
from .engine import get_algorithm

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    """Per-run statistics."""
    run: int
    fitness: float
    fitness_validation: float
    generations: int
    active_nodes: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class Results:
    """Best chromosome of each run, in run order."""

    def __init__(self, chromosomes: Optional[List[Chromosome]] = None):
        self.chromosomes: List[Chromosome] = []
        for chromo in chromosomes or []:
            self.add(chromo)
        self.released = False

    def add(self, chromo: Chromosome) -> None:
        self.chromosomes.append(chromo.clone())

    @property
    def num_runs(self) -> int:
        return len(self.chromosomes)

    def get_chromosome(self, run: int) -> Chromosome:
        """Copy of the best chromosome of ``run``."""
        if not 0 <= run < self.num_runs:
            raise IndexError(f"Run {run} out of range (0..{self.num_runs - 1})")
        return self.chromosomes[run].clone()

    def _values(self, attr: str) -> np.ndarray:
        return np.array([getattr(c, attr) for c in self.chromosomes], dtype=float)

    def average_fitness(self) -> float:
        return float(np.mean(self._values('fitness'))) if self.chromosomes else 0.0

    def median_fitness(self) -> float:
        return float(np.median(self._values('fitness'))) if self.chromosomes else 0.0

    def average_active_nodes(self) -> float:
        return float(np.mean(self._values('num_active_nodes'))) if self.chromosomes else 0.0

    def median_active_nodes(self) -> float:
        return float(np.median(self._values('num_active_nodes'))) if self.chromosomes else 0.0

    def average_generations(self) -> float:
        return float(np.mean(self._values('generation'))) if self.chromosomes else 0.0

    def median_generations(self) -> float:
        return float(np.median(self._values('generation'))) if self.chromosomes else 0.0

    def summaries(self) -> List[RunSummary]:
        return [
            RunSummary(
                run=i,
                fitness=c.fitness,
                fitness_validation=c.fitness_validation,
                generations=c.generation,
                active_nodes=c.num_active_nodes,
            )
            for i, c in enumerate(self.chromosomes)
        ]

    def save(self, path: Union[str, Path]) -> Path:
        """Write one CSV line per run: Run,Fitness,Generations,Active Nodes."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            f.write("Run,Fitness,Generations,Active Nodes\n")
            for s in self.summaries():
                f.write(f"{s.run},{s.fitness:f},{s.generations},{s.active_nodes}\n")
        return path

    def save_json(self, path: Union[str, Path]) -> Path:
        """Write summaries and aggregate statistics as JSON."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)
        return path

    def to_dict(self) -> Dict[str, Any]:
        return {
            'num_runs': self.num_runs,
            'average_fitness': self.average_fitness(),
            'median_fitness': self.median_fitness(),
            'average_active_nodes': self.average_active_nodes(),
            'median_active_nodes': self.median_active_nodes(),
            'average_generations': self.average_generations(),
            'median_generations': self.median_generations(),
            'runs': [s.to_dict() for s in self.summaries()],
        }

    def release(self) -> None:
        if self.released:
            logger.warning("Double release of results prevented")
            return
        for chromo in self.chromosomes:
            chromo.release()
        self.chromosomes = []
        self.released = True


def repeat_cgp(
    config: EvolutionConfig,
    data_train: DataSet,
    data_valid: Optional[DataSet],
    num_gens: int,
    num_runs: int,
    seed: int = 0,
    algorithm: str = 'cgpann',
) -> Results:
    """
    Run an algorithm ``num_runs`` times with seeds ``seed``, ``seed + 1``, ...

    Args:
        config: Evolution configuration
        data_train: Training set
        data_valid: Validation set (training set when None)
        num_gens: Generations per run
        num_runs: Number of independent runs
        seed: Seed of the first run
        algorithm: Key of ALGORITHMS in the engine module

    Returns:
        Results holding the best chromosome of every run
    """
    if num_runs < 1:
        raise ValueError(f"num_runs must be >= 1, got {num_runs}")
    run = get_algorithm(algorithm)

    results = Results()
    for i in range(num_runs):
        rng = np.random.default_rng(seed + i)
        best = run(config, data_train, data_valid, num_gens, rng)
        results.add(best)
        logger.info(
            "Run %d: fitness %.6f, validation %.6f, %d active nodes",
            i, best.fitness, best.fitness_validation, best.num_active_nodes,
        )
    return results
