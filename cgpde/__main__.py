"""
Command-line entry point.

Usage:
    python -m cgpde functions                       List node functions
    python -m cgpde datasets                        List toy datasets
    python -m cgpde run --algorithm cgpann ...      Evolve one classifier
    python -m cgpde experiment --output results     Cross-validation study
"""

import argparse
import json
import logging
import sys

from .core import list_functions, save_chromosome
from .datasets import DataSet, get_dataset, list_datasets
from .evolution import (
    ALGORITHMS,
    EvolutionConfig,
    MUTATION_TYPES,
    get_fitness_function,
    repeat_cgp,
)
from .experiments import ALGORITHM_ORDER, ExperimentConfig, run_experiment, summarise


def _load_data(args) -> DataSet:
    if args.data:
        return DataSet.from_file(args.data)
    return get_dataset(args.dataset, seed=args.dataset_seed)


def cmd_functions(args) -> int:
    for name, info in list_functions().items():
        arity = 'any' if info['max_inputs'] < 0 else info['max_inputs']
        print(f"{name:10s} inputs={arity:<4} {info['description']}")
    return 0


def cmd_datasets(args) -> int:
    for name, info in list_datasets().items():
        print(f"{name:20s} {info['description']}")
    return 0


def cmd_run(args) -> int:
    data = _load_data(args)
    valid = DataSet.from_file(args.valid) if args.valid else None

    config = EvolutionConfig(
        num_inputs=data.num_inputs,
        num_nodes=args.nodes,
        num_outputs=data.num_outputs,
        arity=args.arity,
        mu=args.mu,
        lambda_=args.lam,
        evolutionary_strategy=args.strategy,
        mutation_type=args.mutation_type,
        mutation_rate=args.mutation_rate,
        connection_weight_range=args.weight_range,
        np_in=args.np_in,
        np_out=args.np_out,
        max_iter_in=args.max_iter_in,
        max_iter_out=args.max_iter_out,
        cr=args.cr,
        f=args.f,
        update_frequency=args.update_frequency,
    )
    config.add_node_function(args.functions)
    config.set_fitness_function(get_fitness_function(args.fitness), args.fitness)
    print(config.describe())

    results = repeat_cgp(
        config, data, valid, args.generations, args.runs,
        seed=args.seed, algorithm=args.algorithm,
    )

    for summary in results.summaries():
        print(
            f"Run {summary.run}: fitness {summary.fitness:.6f}, "
            f"validation {summary.fitness_validation:.6f}, "
            f"{summary.active_nodes} active nodes"
        )
    print(f"Average fitness: {results.average_fitness():.6f}")
    print(f"Median fitness: {results.median_fitness():.6f}")
    print(f"Average active nodes: {results.average_active_nodes():.1f}")

    if args.save_results:
        results.save(args.save_results)
        print(f"Results written to {args.save_results}")
    if args.save_best:
        best = min(
            (results.get_chromosome(i) for i in range(results.num_runs)),
            key=lambda c: c.fitness_validation,
        )
        save_chromosome(best, args.save_best)
        print(f"Best chromosome written to {args.save_best}")
    return 0


def cmd_experiment(args) -> int:
    settings = ExperimentConfig(
        dataset_path=args.data,
        dataset_name=args.dataset,
        dataset_seed=args.dataset_seed,
        percentage=args.percentage,
        num_nodes=args.nodes,
        arity=args.arity,
        node_functions=args.functions,
        connection_weight_range=args.weight_range,
        mutation_rate=args.mutation_rate,
        cr=args.cr,
        f=args.f,
        np_in=args.np_in,
        max_iter_in=args.max_iter_in,
        np_out=args.np_out,
        max_iter_out=args.max_iter_out,
        num_gens_cgp=args.gens_cgp,
        num_gens_in=args.gens_in,
        num_gens_out=args.gens_out,
        algorithms=tuple(args.algorithms),
        num_repetitions=args.repetitions,
        output_dir=args.output,
        save_splits=not args.no_splits,
        n_workers=args.workers,
    )
    results = run_experiment(settings)
    print(json.dumps(summarise(results), indent=2))
    return 0


def _add_data_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--data', help='Dataset file (header "inputs,outputs,samples")')
    parser.add_argument('--dataset', default='gaussian_clusters',
                        help='Toy dataset used when --data is not given')
    parser.add_argument('--dataset-seed', type=int, default=0)


def _add_model_args(parser: argparse.ArgumentParser, nodes: int, arity: int,
                    weight_range: float, cr: float, f: float) -> None:
    parser.add_argument('--nodes', type=int, default=nodes)
    parser.add_argument('--arity', type=int, default=arity)
    parser.add_argument('--functions', default='sig', help='Comma-separated node functions')
    parser.add_argument('--weight-range', type=float, default=weight_range)
    parser.add_argument('--mutation-rate', type=float, default=0.05)
    parser.add_argument('--cr', type=float, default=cr)
    parser.add_argument('--f', type=float, default=f)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='cgpde',
        description='Evolve neural-network classifiers with CGP and differential evolution',
    )
    parser.add_argument('-v', '--verbose', action='count', default=0,
                        help='-v for progress, -vv for debug output')
    sub = parser.add_subparsers(dest='command')

    sub.add_parser('functions', help='List preset node functions')
    sub.add_parser('datasets', help='List toy datasets')

    run = sub.add_parser('run', help='Evolve classifiers with one algorithm')
    _add_data_args(run)
    run.add_argument('--valid', help='Validation dataset file')
    run.add_argument('--algorithm', choices=sorted(ALGORITHMS), default='cgpann')
    _add_model_args(run, nodes=50, arity=5, weight_range=1.0, cr=0.5, f=1.0)
    run.add_argument('--mu', type=int, default=1)
    run.add_argument('--lambda', dest='lam', type=int, default=4)
    run.add_argument('--strategy', choices=['+', ','], default='+')
    run.add_argument('--mutation-type', choices=sorted(MUTATION_TYPES), default='probabilistic')
    run.add_argument('--fitness', default='accuracy')
    run.add_argument('--np-in', type=int, default=10)
    run.add_argument('--np-out', type=int, default=10)
    run.add_argument('--max-iter-in', type=int, default=100)
    run.add_argument('--max-iter-out', type=int, default=100)
    run.add_argument('--generations', type=int, default=1000)
    run.add_argument('--runs', type=int, default=1)
    run.add_argument('--seed', type=int, default=0)
    run.add_argument('--update-frequency', type=int, default=0)
    run.add_argument('--save-results', help='CSV file for per-run statistics')
    run.add_argument('--save-best', help='File for the best chromosome')

    exp = sub.add_parser('experiment', help='Repeated stratified cross-validation')
    _add_data_args(exp)
    exp.add_argument('--percentage', type=float, default=1.0)
    _add_model_args(exp, nodes=500, arity=20, weight_range=5.0, cr=0.9, f=0.7)
    exp.add_argument('--np-in', type=int, default=10)
    exp.add_argument('--max-iter-in', type=int, default=400)
    exp.add_argument('--np-out', type=int, default=20)
    exp.add_argument('--max-iter-out', type=int, default=2570)
    exp.add_argument('--gens-cgp', type=int, default=50000)
    exp.add_argument('--gens-in', type=int, default=64)
    exp.add_argument('--gens-out', type=int, default=40000)
    exp.add_argument('--algorithms', nargs='+', choices=ALGORITHM_ORDER,
                     default=list(ALGORITHM_ORDER))
    exp.add_argument('--repetitions', type=int, default=3)
    exp.add_argument('--output', default='results')
    exp.add_argument('--no-splits', action='store_true', help='Do not save TRN/VLD/TST files')
    exp.add_argument('--workers', type=int, default=None)

    return parser


COMMANDS = {
    'functions': cmd_functions,
    'datasets': cmd_datasets,
    'run': cmd_run,
    'experiment': cmd_experiment,
}


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format='%(asctime)s %(name)s %(levelname)s: %(message)s')

    if args.command is None:
        parser.print_help()
        return 1

    return COMMANDS[args.command](args)


if __name__ == '__main__':
    sys.exit(main())
