"""Example: Symbolic Regression with Genetic Programming.

This example demonstrates:
- Building a Dataset and Problem from a pandas DataFrame
- Single-objective GP with coefficient local search
- Multi-objective NSGA-II trading error against formula length
- Warm-starting a run with known formulas
- Re-evaluating a formula on held-out rows
"""

import numpy as np
import pandas as pd

from symforge import (
    Dataset,
    GeneticAlgorithmConfig,
    InfixFormatter,
    InfixParser,
    Interpreter,
    PrimitiveSet,
    Problem,
    build_algorithm,
)


def make_data(rows: int = 500, seed: int = 0) -> pd.DataFrame:
    """Synthetic data for y = 1.5 * x1 * x2 + sin(x3)."""
    gen = np.random.default_rng(seed)
    frame = pd.DataFrame({
        "x1": gen.uniform(-3, 3, rows),
        "x2": gen.uniform(-3, 3, rows),
        "x3": gen.uniform(-3, 3, rows),
    })
    frame["y"] = 1.5 * frame["x1"] * frame["x2"] + np.sin(frame["x3"])
    return frame


def main():
    """Run the regression examples."""
    print("=" * 80)
    print("Symforge Symbolic Regression")
    print("=" * 80)

    # =========================================================================
    # Step 1: Load Data
    # =========================================================================
    print("\n[Step 1] Building dataset...")

    dataset = Dataset.from_frame(make_data())
    problem = Problem.from_dataset(
        dataset,
        target="y",
        pset=PrimitiveSet.from_preset("type_coherent"),
        training_fraction=0.7,
    )

    print(f"Rows: {dataset.rows}, inputs: {[v.name for v in problem.inputs]}")
    print(f"Training rows: {problem.training_range.size}, test rows: {problem.test_range.size}")

    # =========================================================================
    # Step 2: Single-Objective GP
    # =========================================================================
    print("\n[Step 2] Running single-objective GP...")

    config = GeneticAlgorithmConfig(
        population_size=200,
        generations=30,
        iterations=10,  # Local search steps per evaluation
        seed=42,
    )
    engine = build_algorithm(problem, config, algorithm="gp", metric="r2")

    def progress(report):
        if report.generation % 10 == 0:
            print(f"  Gen {report.generation:3d}: best 1-R2 = {report.best.fitness[0]:.6f}")

    result = engine.run(on_generation=progress)
    error = engine.evaluator

    print(f"\nBest: {InfixFormatter.format(result.best.genotype, dataset, precision=3)}")
    print(f"  1-R2 train: {result.best.fitness[0]:.6f}")
    print(f"  1-R2 test:  {error.error(result.best.genotype, problem.test_range):.6f}")
    print(f"  Evaluations: {result.evaluation_count} (+{result.local_evaluation_count} local)")

    # =========================================================================
    # Step 3: Multi-Objective NSGA-II
    # =========================================================================
    print("\n[Step 3] Running NSGA-II (error vs. length)...")

    nsga2 = build_algorithm(problem, config.replace(iterations=0), algorithm="nsga2")
    front_result = nsga2.run()

    front = sorted(front_result.pareto_front, key=lambda ind: ind.fitness[1])
    print(f"\n{'='*80}")
    print("PARETO FRONT")
    print(f"{'='*80}")
    seen = set()
    for ind in front:
        key = tuple(ind.fitness)
        if key in seen:
            continue
        seen.add(key)
        formula = InfixFormatter.format(ind.genotype, dataset, precision=2)
        print(f"  length {int(ind.fitness[1]):3d}  error {ind.fitness[0]:.5f}  {formula[:60]}")

    # =========================================================================
    # Step 4: Warm Start
    # =========================================================================
    print("\n[Step 4] Warm-starting from a known formula...")

    seeds = [InfixParser.parse("x1 * x2 + x3", dataset)]
    warm = build_algorithm(problem, config.replace(generations=5)).run(warm_start=seeds)
    print(f"  Best after 5 generations: {warm.best.fitness[0]:.6f}")

    # =========================================================================
    # Step 5: Evaluate a Formula Directly
    # =========================================================================
    print("\n[Step 5] Evaluating a formula on held-out rows...")

    tree = InfixParser.parse("1.5 * x1 * x2 + sin(x3)", dataset)
    predicted = Interpreter(dataset).evaluate(tree, problem.test_range)
    target = problem.target_values(problem.test_range)
    print(f"  Max abs error: {np.max(np.abs(predicted - target)):.2e}")

    print("=" * 80)


if __name__ == "__main__":
    main()
