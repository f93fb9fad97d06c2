"""Tests for Dataset, Variable, Range and Problem."""

import numpy as np
import pandas as pd
import pytest

from symforge.data import Dataset, Problem, Range, Variable, hash_name
from symforge.errors import InvalidShape


class TestConstruction:
    """Test the construction surface."""

    def test_round_trip_values(self):
        """Reading back every column reproduces the input exactly."""
        data = np.random.default_rng(3).normal(size=(50, 4))
        ds = Dataset(data, variable_names=["a", "b", "c", "d"])

        assert ds.rows == 50
        assert ds.cols == 4
        for j, name in enumerate(ds.variable_names):
            np.testing.assert_array_equal(ds.get_values(name), data[:, j])
            np.testing.assert_array_equal(ds.get_values(j), data[:, j])

    def test_three_dimensional_input_rejected(self):
        """Non-2D input fails with InvalidShape."""
        with pytest.raises(InvalidShape):
            Dataset(np.zeros((2, 3, 4)))

    def test_one_dimensional_input_rejected(self):
        with pytest.raises(InvalidShape):
            Dataset(np.zeros(5))

    def test_non_numeric_input_rejected(self):
        with pytest.raises(InvalidShape):
            Dataset(np.array([["a", "b"], ["c", "d"]]))

    def test_ragged_rows_rejected(self):
        with pytest.raises(InvalidShape):
            Dataset.from_rows(["a", "b"], [[1.0, 2.0], [3.0]])

    def test_invalid_shape_is_value_error(self):
        """Construction errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            Dataset(np.zeros((1, 1, 1)))

    def test_fortran_float64_is_zero_copy(self):
        """Column-major float64 input is borrowed, not copied."""
        data = np.asfortranarray(np.arange(12, dtype=np.float64).reshape(4, 3))
        ds = Dataset(data)

        assert np.shares_memory(ds.values, data)

    def test_c_order_input_is_copied(self):
        data = np.arange(12, dtype=np.float64).reshape(4, 3)
        ds = Dataset(data)

        assert not np.shares_memory(ds.values, data)
        assert ds.values.flags.f_contiguous
        np.testing.assert_array_equal(ds.values, data)

    def test_integer_and_float32_input(self):
        ints = Dataset(np.arange(6).reshape(3, 2))
        floats = Dataset(np.ones((3, 2), dtype=np.float32))

        assert ints.values.dtype == np.float64
        assert floats.values.dtype == np.float64

    def test_default_names(self):
        ds = Dataset(np.zeros((2, 3)))
        assert ds.variable_names == ["X1", "X2", "X3"]

    def test_from_columns_and_rows_agree(self):
        columns = Dataset.from_columns(["a", "b"], [[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])
        rows = Dataset.from_rows(["a", "b"], [[1.0, 4.0], [2.0, 5.0], [3.0, 6.0]])

        np.testing.assert_array_equal(columns.values, rows.values)

    def test_from_columns_length_mismatch(self):
        with pytest.raises(InvalidShape):
            Dataset.from_columns(["a", "b"], [[1.0, 2.0], [1.0]])

    def test_duplicate_names_rejected(self):
        with pytest.raises(InvalidShape):
            Dataset(np.zeros((2, 2)), variable_names=["a", "a"])

    def test_copy_is_independent(self):
        ds = Dataset.from_columns(["a"], [[1.0, 2.0, 3.0]])
        clone = ds.copy()
        clone.normalize("a")

        np.testing.assert_array_equal(ds.get_values("a"), [1.0, 2.0, 3.0])
        assert clone.variable_names == ds.variable_names

    def test_from_csv(self, tmp_path):
        path = tmp_path / "data.csv"
        pd.DataFrame({"x": [1.0, 2.0], "y": [3.0, 4.0]}).to_csv(path, index=False)

        ds = Dataset.from_csv(path)

        assert ds.variable_names == ["x", "y"]
        np.testing.assert_array_equal(ds.get_values("y"), [3.0, 4.0])

    def test_from_csv_without_header(self, tmp_path):
        path = tmp_path / "data.csv"
        path.write_text("1,2\n3,4\n5,6\n")

        ds = Dataset.from_csv(path, has_header=False, delimiter=",")

        assert ds.shape == (3, 2)
        assert ds.variable_names == ["X1", "X2"]

    def test_from_frame_rejects_text(self):
        with pytest.raises(InvalidShape):
            Dataset.from_frame(pd.DataFrame({"a": [1.0], "b": ["x"]}))


class TestVariables:
    """Test variable lookup."""

    def test_hash_is_derived_from_name(self, xy_dataset):
        x = xy_dataset.get_variable("x")
        assert x == Variable("x", hash_name("x"), 0)
        assert xy_dataset.get_variable_by_hash(x.hash) == x

    def test_unknown_lookups_raise_key_error(self, xy_dataset):
        with pytest.raises(KeyError):
            xy_dataset.get_variable("missing")
        with pytest.raises(KeyError):
            xy_dataset.get_variable_by_hash(12345)
        with pytest.raises(KeyError):
            xy_dataset.get_values(7)

    def test_values_by_hash(self, xy_dataset):
        y = xy_dataset.get_variable("y")
        np.testing.assert_array_equal(
            xy_dataset.get_values_by_hash(y.hash), xy_dataset.get_values("y")
        )

    def test_rename_rehashes(self):
        ds = Dataset(np.zeros((2, 2)), variable_names=["a", "b"])
        ds.variable_names = ["u", "v"]

        assert "u" in ds
        assert "a" not in ds
        assert ds.get_variable("v").hash == hash_name("v")


class TestValues:
    """Test column views and in-place rescaling."""

    def test_views_are_read_only(self, xy_dataset):
        with pytest.raises(ValueError):
            xy_dataset.get_values("x")[0] = 1.0
        with pytest.raises(ValueError):
            xy_dataset.values[0, 0] = 1.0

    def test_range_restriction(self, xy_dataset):
        full = xy_dataset.get_values("x")
        part = xy_dataset.get_values("x", Range(10, 20))

        assert len(part) == 10
        np.testing.assert_array_equal(part, full[10:20])

    def test_range_beyond_rows(self, xy_dataset):
        with pytest.raises(IndexError):
            xy_dataset.get_values("x", Range(0, 1000))

    def test_normalize(self):
        ds = Dataset.from_columns(["a", "b"], [[2.0, 4.0, 6.0], [1.0, 1.0, 1.0]])
        ds.normalize("a")
        ds.normalize("b")

        np.testing.assert_allclose(ds.get_values("a"), [0.0, 0.5, 1.0])
        np.testing.assert_array_equal(ds.get_values("b"), [0.0, 0.0, 0.0])

    def test_standardize_with_range(self):
        ds = Dataset.from_columns(["a"], [[1.0, 3.0, 100.0]])
        ds.standardize("a", Range(0, 2))

        np.testing.assert_allclose(ds.get_values("a")[:2], [-1.0, 1.0])

    @pytest.mark.parametrize("method", ["normalize", "standardize"])
    def test_rescale_empty_range(self, method):
        ds = Dataset.from_columns(["a"], [[1.0, 2.0, 3.0]])
        with pytest.raises(ValueError):
            getattr(ds, method)("a", Range(2, 2))
        np.testing.assert_array_equal(ds.get_values("a"), [1.0, 2.0, 3.0])

    @pytest.mark.parametrize("method", ["normalize", "standardize"])
    def test_rescale_range_beyond_rows(self, method):
        ds = Dataset.from_columns(["a"], [[1.0, 2.0, 3.0]])
        with pytest.raises(IndexError):
            getattr(ds, method)("a", Range(1, 10))

    def test_mutation_does_not_touch_borrowed_buffer(self):
        data = np.asfortranarray(np.array([[1.0], [2.0], [3.0]]))
        ds = Dataset(data)
        ds.normalize(0)

        np.testing.assert_array_equal(data[:, 0], [1.0, 2.0, 3.0])

    def test_shuffle_permutes_rows(self):
        ds = Dataset.from_columns(["a", "b"], [np.arange(20.0), np.arange(20.0) * 2])
        ds.shuffle(7)

        a, b = ds.get_values("a"), ds.get_values("b")
        assert sorted(a) == list(np.arange(20.0))
        np.testing.assert_array_equal(b, a * 2)

    def test_shuffle_is_deterministic(self):
        first = Dataset.from_columns(["a"], [np.arange(10.0)])
        second = Dataset.from_columns(["a"], [np.arange(10.0)])
        first.shuffle(3)
        second.shuffle(3)

        np.testing.assert_array_equal(first.values, second.values)


class TestRange:
    def test_size_and_slice(self):
        r = Range(2, 5)
        assert r.size == 3
        assert len(r) == 3
        assert list(range(10))[r.slice] == [2, 3, 4]
        assert Range.from_pair((2, 5)) == r

    def test_invalid(self):
        with pytest.raises(ValueError):
            Range(5, 2)
        with pytest.raises(ValueError):
            Range(-1, 2)


class TestProblem:
    def test_default_inputs_exclude_target(self, xyz_dataset):
        problem = Problem.from_dataset(xyz_dataset, target="z")

        assert [v.name for v in problem.inputs] == ["x", "y", "w"]
        assert problem.training_range == Range(0, 200)
        assert problem.test_range.size == 0

    def test_training_fraction_split(self, xyz_dataset):
        problem = Problem.from_dataset(xyz_dataset, target="z", training_fraction=0.75)

        assert problem.training_range == Range(0, 150)
        assert problem.test_range == Range(150, 200)
        assert len(problem.target_values()) == 150

    def test_unknown_target(self, xyz_dataset):
        with pytest.raises(KeyError):
            Problem.from_dataset(xyz_dataset, target="nope")
