"""Datasets, stratified cross-validation folds and toy problems."""

from .dataset import (
    DataSet,
    get_index,
    get_training_data,
    get_validation_data,
    get_testing_data,
    NUM_FOLDS,
)
from .toy import (
    to_one_hot,
    xor_dataset,
    gaussian_clusters,
    circles,
    linear_separable,
    DATASETS,
    get_dataset,
    list_datasets,
)

__all__ = [
    'DataSet',
    'get_index',
    'get_training_data',
    'get_validation_data',
    'get_testing_data',
    'NUM_FOLDS',
    'to_one_hot',
    'xor_dataset',
    'gaussian_clusters',
    'circles',
    'linear_separable',
    'DATASETS',
    'get_dataset',
    'list_datasets',
]
