"""Cross-validation experiments comparing CGPANN and CGPDE variants."""

from .jobs import (
    ExperimentConfig,
    FoldResult,
    ResultsSink,
    ALGORITHM_ORDER,
    RESULT_FILES,
    fold_seed,
    repetition_seed,
    run_fold,
    fold_worker,
    prepare_folds,
    split_fold,
    save_split,
    run_experiment,
    summarise,
)

__all__ = [
    'ExperimentConfig',
    'FoldResult',
    'ResultsSink',
    'ALGORITHM_ORDER',
    'RESULT_FILES',
    'fold_seed',
    'repetition_seed',
    'run_fold',
    'fold_worker',
    'prepare_folds',
    'split_fold',
    'save_split',
    'run_experiment',
    'summarise',
]
