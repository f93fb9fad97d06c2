"""
Command-line interface for Symforge.

Provides commands for:
- Running symbolic regression on a CSV file
- Showing installation info
"""

import json
import logging
import sys
from pathlib import Path

import click

from symforge import __version__

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("symforge")


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
def main(verbose: bool) -> None:
    """Symforge - Evolutionary Symbolic Regression."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


@main.command()
@click.argument("csv_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--target", "-t", required=True, help="Target column name")
@click.option("--inputs", "-i", default=None, help="Comma-separated input columns (default: all others)")
@click.option(
    "--algorithm",
    "-a",
    type=click.Choice(["gp", "nsga2"], case_sensitive=False),
    default="gp",
    help="gp: error only, nsga2: error and length",
)
@click.option(
    "--preset",
    type=click.Choice(["arithmetic", "type_coherent", "full"], case_sensitive=False),
    default="arithmetic",
    help="Primitive set",
)
@click.option("--metric", "-m", default="r2", help="Error metric (r2, c2, mse, nmse, rmse, mae)")
@click.option("--population-size", default=1000, show_default=True)
@click.option("--pool-size", default=None, type=int, help="Offspring per generation (default: population size)")
@click.option("--generations", "-g", default=100, show_default=True)
@click.option("--evaluations", default=1_000_000, show_default=True, help="Evaluation budget")
@click.option("--iterations", default=0, show_default=True, help="Local search steps per evaluation")
@click.option("--crossover-probability", default=1.0, show_default=True)
@click.option("--mutation-probability", default=0.25, show_default=True)
@click.option("--epsilon", default=1e-5, show_default=True)
@click.option("--seed", "-s", default=None, type=int, help="Random seed")
@click.option("--time-limit", default=None, type=float, help="Time limit in seconds")
@click.option("--max-length", default=50, show_default=True)
@click.option("--max-depth", default=10, show_default=True)
@click.option("--tournament-size", default=5, show_default=True)
@click.option("--training-fraction", default=1.0, show_default=True, help="Leading share of rows used for training")
@click.option("--no-linear-scaling", is_flag=True, help="Score raw predictions")
@click.option("--workers", default=None, type=int, help="Worker threads")
@click.option("--precision", default=4, show_default=True, help="Digits shown in formulas")
@click.option("--output", "-o", default=None, help="Write the final front as JSON")
def run(
    csv_path: str,
    target: str,
    inputs: str | None,
    algorithm: str,
    preset: str,
    metric: str,
    population_size: int,
    pool_size: int | None,
    generations: int,
    evaluations: int,
    iterations: int,
    crossover_probability: float,
    mutation_probability: float,
    epsilon: float,
    seed: int | None,
    time_limit: float | None,
    max_length: int,
    max_depth: int,
    tournament_size: int,
    training_fraction: float,
    no_linear_scaling: bool,
    workers: int | None,
    precision: int,
    output: str | None,
) -> None:
    """Evolve a formula predicting TARGET from the columns of CSV_PATH."""
    from symforge.data import Dataset, Problem
    from symforge.errors import SymforgeError
    from symforge.evolution import GeneticAlgorithmConfig, build_algorithm
    from symforge.expression import InfixFormatter, PrimitiveSet

    config = GeneticAlgorithmConfig(
        generations=generations,
        evaluations=evaluations,
        iterations=iterations,
        population_size=population_size,
        pool_size=pool_size,
        crossover_probability=crossover_probability,
        mutation_probability=mutation_probability,
        epsilon=epsilon,
        seed=seed,
        time_limit=time_limit,
    )

    try:
        dataset = Dataset.from_csv(csv_path)
        problem = Problem.from_dataset(
            dataset,
            target=target,
            inputs=[name.strip() for name in inputs.split(",")] if inputs else None,
            pset=PrimitiveSet.from_preset(preset),
            training_fraction=training_fraction,
        )
        engine = build_algorithm(
            problem,
            config,
            algorithm=algorithm,
            metric=metric,
            linear_scaling=not no_linear_scaling,
            max_length=max_length,
            max_depth=max_depth,
            tournament_size=tournament_size,
            n_workers=workers,
        )
    except (SymforgeError, ValueError, KeyError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Loaded {dataset.rows} rows, {dataset.cols} columns from {csv_path}")
    click.echo(f"Running {algorithm} on target '{target}'...")

    result = engine.run()

    # The first objective is always the error evaluator
    error = engine.evaluator.evaluators[0] if algorithm == "nsga2" else engine.evaluator

    def describe(individual) -> dict:
        tree = individual.genotype
        return {
            "formula": InfixFormatter.format(tree, dataset, precision),
            "fitness": individual.fitness.tolist(),
            "length": tree.length,
            "depth": tree.depth,
            "test_error": error.error(tree, problem.test_range) if problem.test_range.size else None,
        }

    best = describe(result.best)
    click.echo("\n" + "=" * 50)
    click.echo(f"Best: {best['formula']}")
    click.echo(f"  {metric} objective (train): {result.best.fitness[0]:.6g}")
    if best["test_error"] is not None:
        click.echo(f"  {metric} objective (test):  {best['test_error']:.6g}")
    click.echo(f"  Length: {best['length']}, depth: {best['depth']}")
    click.echo(f"Generations: {result.generations}, evaluations: {result.evaluation_count}")
    click.echo(f"Stopped by: {result.stop_reason.value} after {result.elapsed:.2f}s")
    click.echo("=" * 50)

    if output:
        front = sorted(result.pareto_front, key=lambda ind: tuple(ind.fitness))
        payload = {
            "config": config.replace(seed=result.seed).to_dict(),
            "summary": result.summary(),
            "best": best,
            "front": [describe(ind) for ind in front],
        }
        output_path = Path(output)
        output_path.write_text(json.dumps(payload, indent=2))
        click.echo(f"\nResults saved to {output}")


@main.command()
def info() -> None:
    """Show Symforge installation info."""
    import numba
    import numpy as np
    import pandas as pd
    import scipy

    from symforge.expression.pset import PRESETS

    click.echo(f"Symforge v{__version__}\n")
    click.echo("Dependencies:")
    click.echo(f"  numpy: {np.__version__}")
    click.echo(f"  pandas: {pd.__version__}")
    click.echo(f"  numba: {numba.__version__}")
    click.echo(f"  scipy: {scipy.__version__}")

    click.echo("\nPrimitive set presets:")
    for name, symbols in PRESETS.items():
        click.echo(f"  {name}: {', '.join(sorted(t.symbol for t in symbols))}")


if __name__ == "__main__":
    main()
