"""Tests for random tree creation."""

import numpy as np
import pytest

from symforge.errors import ConfigError, GrammarError
from symforge.expression import NodeType, PrimitiveSet, Tree
from symforge.operators import BalancedTreeCreator, GrowTreeCreator, UniformInitializer

VARIABLES = [11, 22, 33]


def assert_well_formed(tree: Tree, pset: PrimitiveSet, max_length: int, max_depth: int) -> None:
    # Re-deriving the structure from the nodes checks arity balance
    Tree(tree.nodes)
    assert tree.length <= max_length
    assert tree.depth <= max_depth
    for node in tree:
        assert pset.is_enabled(node.type)
        if node.is_variable:
            assert node.hash in VARIABLES


@pytest.mark.parametrize("creator_cls", [GrowTreeCreator, BalancedTreeCreator])
class TestCreators:
    """Properties shared by both creators."""

    @pytest.mark.parametrize("preset", ["arithmetic", "type_coherent", "full"])
    def test_trees_within_bounds(self, creator_cls, preset):
        pset = PrimitiveSet.from_preset(preset)
        creator = creator_cls(pset, VARIABLES, max_length=30, max_depth=6)
        rng = np.random.default_rng(0)

        for _ in range(200):
            target = int(rng.integers(1, 40))
            assert_well_formed(creator.create(rng, target), pset, 30, 6)

    def test_depth_override(self, creator_cls):
        pset = PrimitiveSet.from_preset("full")
        creator = creator_cls(pset, VARIABLES, max_length=50, max_depth=10)
        rng = np.random.default_rng(1)

        for _ in range(100):
            assert creator.create(rng, 50, max_depth=3).depth <= 3

    def test_single_node_target(self, creator_cls):
        creator = creator_cls(PrimitiveSet(), VARIABLES)
        tree = creator.create(np.random.default_rng(2), 1)
        assert tree.length == 1
        assert tree.root.is_leaf

    def test_no_leaves_is_grammar_error(self, creator_cls):
        with pytest.raises(GrammarError):
            creator_cls(PrimitiveSet(["add", "mul"]), VARIABLES)

    def test_variables_only_without_inputs(self, creator_cls):
        with pytest.raises(GrammarError):
            creator_cls(PrimitiveSet(["add", "variable"]), [])

    def test_grammar_checked_at_create(self, creator_cls):
        pset = PrimitiveSet()
        creator = creator_cls(pset, VARIABLES)
        pset.disable("constant")
        pset.disable("variable")
        with pytest.raises(GrammarError):
            creator.create(np.random.default_rng(0), 10)

    def test_invalid_bounds(self, creator_cls):
        with pytest.raises(ConfigError):
            creator_cls(PrimitiveSet(), VARIABLES, max_length=0)

    def test_repeatable(self, creator_cls):
        creator = creator_cls(PrimitiveSet.from_preset("full"), VARIABLES)
        first = creator.create(np.random.default_rng(9), 20)
        second = creator.create(np.random.default_rng(9), 20)
        assert first == second


class TestBalancedTreeCreator:
    def test_hits_target_length_with_binary_grammar(self):
        """With only binary functions every odd target is reachable."""
        pset = PrimitiveSet(["add", "mul", "constant", "variable"])
        creator = BalancedTreeCreator(pset, VARIABLES, max_length=50, max_depth=20)
        rng = np.random.default_rng(3)

        for target in (1, 3, 7, 15, 31):
            assert creator.create(rng, target).length == target

    def test_leaf_weights(self):
        pset = PrimitiveSet(["add", "constant", "variable"])
        pset.set_frequency("variable", 0.0)
        creator = BalancedTreeCreator(pset, VARIABLES)
        tree = creator.create(np.random.default_rng(4), 15)
        assert all(n.type != NodeType.VARIABLE for n in tree)

    def test_irregularity_bias_range(self):
        with pytest.raises(ConfigError):
            BalancedTreeCreator(PrimitiveSet(), VARIABLES, irregularity_bias=1.5)


class TestUniformInitializer:
    def test_lengths_within_range(self):
        creator = BalancedTreeCreator(PrimitiveSet(), VARIABLES, max_length=40, max_depth=12)
        initializer = UniformInitializer(creator, min_length=5, max_length=25)
        rng = np.random.default_rng(5)

        lengths = [initializer(rng).length for _ in range(100)]
        assert max(lengths) <= 25
        assert len(set(lengths)) > 5

    def test_invalid_range(self):
        creator = GrowTreeCreator(PrimitiveSet(), VARIABLES)
        with pytest.raises(ConfigError):
            UniformInitializer(creator, min_length=10, max_length=5)
