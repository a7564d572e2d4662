"""
Toy classification datasets for quick CGP experiments.

Each generator returns a DataSet with 2D inputs and one-hot outputs, so it
can be fed straight to the accuracy fitness function or to the stratified
cross-validation helpers.
"""

import numpy as np
from typing import Dict, Optional

from .dataset import DataSet


def to_one_hot(labels: np.ndarray, num_classes: Optional[int] = None) -> np.ndarray:
    """Encode integer labels as one-hot rows."""
    labels = np.asarray(labels, dtype=int)
    if num_classes is None:
        num_classes = int(labels.max()) + 1
    encoded = np.zeros((len(labels), num_classes))
    encoded[np.arange(len(labels)), labels] = 1.0
    return encoded


def xor_dataset(
    n_samples: int = 200,
    noise: float = 0.1,
    seed: Optional[int] = None,
) -> DataSet:
    """
    Classic XOR problem: opposite quadrants share a class.

    Args:
        n_samples: Number of samples (rounded down to a multiple of 4)
        noise: Standard deviation of Gaussian noise
        seed: Random seed
    """
    rng = np.random.default_rng(seed)
    n_per_quadrant = n_samples // 4

    centres = np.array([[-1, 1], [1, -1], [1, 1], [-1, -1]])
    labels = np.array([0, 0, 1, 1])

    X = np.vstack([
        rng.standard_normal((n_per_quadrant, 2)) * noise + c for c in centres
    ])
    y = np.repeat(labels, n_per_quadrant)

    indices = rng.permutation(len(y))
    return DataSet(inputs=X[indices], outputs=to_one_hot(y[indices], 2))


def gaussian_clusters(
    n_samples: int = 200,
    n_classes: int = 3,
    cluster_std: float = 0.3,
    seed: Optional[int] = None,
) -> DataSet:
    """
    One Gaussian cluster per class, arranged on a circle.

    Args:
        n_samples: Total number of samples
        n_classes: Number of clusters / classes
        cluster_std: Standard deviation of each cluster
        seed: Random seed
    """
    rng = np.random.default_rng(seed)
    n_per_class = n_samples // n_classes

    angles = np.linspace(0, 2 * np.pi, n_classes, endpoint=False)
    centres = np.column_stack([np.cos(angles), np.sin(angles)]) * 1.5

    X = np.vstack([
        rng.standard_normal((n_per_class, 2)) * cluster_std + c for c in centres
    ])
    y = np.repeat(np.arange(n_classes), n_per_class)

    indices = rng.permutation(len(y))
    return DataSet(inputs=X[indices], outputs=to_one_hot(y[indices], n_classes))


def circles(
    n_samples: int = 200,
    noise: float = 0.1,
    factor: float = 0.5,
    seed: Optional[int] = None,
) -> DataSet:
    """Two concentric circles; the inner one is class 1."""
    rng = np.random.default_rng(seed)
    n_outer = n_samples // 2
    n_inner = n_samples - n_outer

    outer = rng.uniform(0, 2 * np.pi, n_outer)
    inner = rng.uniform(0, 2 * np.pi, n_inner)
    X = np.vstack([
        np.column_stack([np.cos(outer), np.sin(outer)]),
        np.column_stack([np.cos(inner), np.sin(inner)]) * factor,
    ])
    X += rng.standard_normal(X.shape) * noise
    y = np.hstack([np.zeros(n_outer, dtype=int), np.ones(n_inner, dtype=int)])

    indices = rng.permutation(len(y))
    return DataSet(inputs=X[indices], outputs=to_one_hot(y[indices], 2))


def linear_separable(
    n_samples: int = 200,
    margin: float = 0.5,
    noise: float = 0.1,
    seed: Optional[int] = None,
) -> DataSet:
    """Two classes split by the line x1 = x2."""
    rng = np.random.default_rng(seed)
    n_per_class = n_samples // 2

    X0 = rng.standard_normal((n_per_class, 2)) * noise + np.array([-margin, margin])
    X1 = rng.standard_normal((n_per_class, 2)) * noise + np.array([margin, -margin])
    X = np.vstack([X0, X1])
    y = np.repeat([0, 1], n_per_class)

    indices = rng.permutation(len(y))
    return DataSet(inputs=X[indices], outputs=to_one_hot(y[indices], 2))


DATASETS: Dict[str, Dict] = {
    'xor': {
        'function': xor_dataset,
        'name': 'XOR',
        'description': 'Classic XOR problem - simplest non-linear dataset',
        'default_params': {'n_samples': 200, 'noise': 0.1},
    },
    'gaussian_clusters': {
        'function': gaussian_clusters,
        'name': 'Gaussian Clusters',
        'description': 'One Gaussian cluster per class',
        'default_params': {'n_samples': 150, 'n_classes': 3, 'cluster_std': 0.3},
    },
    'circles': {
        'function': circles,
        'name': 'Circles',
        'description': 'Two concentric circles',
        'default_params': {'n_samples': 200, 'noise': 0.1, 'factor': 0.5},
    },
    'linear': {
        'function': linear_separable,
        'name': 'Linear',
        'description': 'Linearly separable - baseline dataset',
        'default_params': {'n_samples': 200, 'margin': 0.5, 'noise': 0.1},
    },
}


def get_dataset(name: str, **kwargs) -> DataSet:
    """
    Get a toy dataset by name.

    Args:
        name: Dataset name
        **kwargs: Override default parameters
    """
    if name not in DATASETS:
        available = ', '.join(DATASETS.keys())
        raise ValueError(f"Unknown dataset '{name}'. Available: {available}")

    info = DATASETS[name]
    params = info['default_params'].copy()
    params.update(kwargs)
    return info['function'](**params)


def list_datasets() -> Dict[str, Dict]:
    """List all available datasets with their metadata."""
    return {
        name: {k: v for k, v in info.items() if k != 'function'}
        for name, info in DATASETS.items()
    }
