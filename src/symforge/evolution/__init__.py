"""Evolutionary search: individuals, ranking, reinsertion and the generational loop."""

from symforge.evolution.individual import (
    Individual,
    SingleObjectiveComparison,
    CrowdedComparison,
    dominates,
)
from symforge.evolution.sorting import (
    NondominatedSorter,
    FastNondominatedSorter,
    EfficientNondominatedSorter,
    crowding_distance,
    assign_ranks,
)
from symforge.evolution.population import Population, PopulationStats
from symforge.evolution.reinserter import (
    Reinserter,
    ReplaceWorstReinserter,
    KeepBestReinserter,
    GenerationalReinserter,
    RankCrowdingReinserter,
)
from symforge.evolution.config import GeneticAlgorithmConfig
from symforge.evolution.generator import (
    Offspring,
    OffspringGenerator,
    BasicOffspringGenerator,
    BroodOffspringGenerator,
)
from symforge.evolution.algorithm import (
    StopReason,
    GenerationReport,
    AlgorithmResult,
    GeneticAlgorithm,
    GeneticProgrammingAlgorithm,
    NSGA2,
    build_algorithm,
)

__all__ = [
    "Individual",
    "SingleObjectiveComparison",
    "CrowdedComparison",
    "dominates",
    "NondominatedSorter",
    "FastNondominatedSorter",
    "EfficientNondominatedSorter",
    "crowding_distance",
    "assign_ranks",
    "Population",
    "PopulationStats",
    "Reinserter",
    "ReplaceWorstReinserter",
    "KeepBestReinserter",
    "GenerationalReinserter",
    "RankCrowdingReinserter",
    "GeneticAlgorithmConfig",
    "Offspring",
    "OffspringGenerator",
    "BasicOffspringGenerator",
    "BroodOffspringGenerator",
    "StopReason",
    "GenerationReport",
    "AlgorithmResult",
    "GeneticAlgorithm",
    "GeneticProgrammingAlgorithm",
    "NSGA2",
    "build_algorithm",
]
