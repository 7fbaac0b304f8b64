import numpy as np
import pytest

from abcpmc.inference.distances import EuclideanDistance, UninitializedDistance
from abcpmc.inference.particles import ParticleTable


def make_table():
    return ParticleTable(
        parameters=np.array([[3.0], [1.0], [2.0]]),
        sumstats=np.array([[30.0], [10.0], [20.0]]),
        weights=np.ones(3),
        distances=np.array([3.0, 1.0, 2.0]),
    )


def test_sort_by_distance_reorders_every_column():
    table = make_table().sort_by_distance()
    assert np.array_equal(table.distances, [1.0, 2.0, 3.0])
    assert np.array_equal(table.parameters[:, 0], [1.0, 2.0, 3.0])
    assert np.array_equal(table.sumstats[:, 0], [10.0, 20.0, 30.0])


def test_tables_are_immutable():
    table = make_table()
    table.sort_by_distance()
    assert np.array_equal(table.distances, [3.0, 1.0, 2.0])
    with pytest.raises(ValueError):
        table.parameters[0, 0] = 5.0
    with pytest.raises(ValueError):
        table.weights[0] = 0.0


def test_threshold_prefix():
    table = make_table().sort_by_distance()
    assert len(table.threshold_prefix(2.0)) == 2
    assert len(table.threshold_prefix(0.5)) == 0
    assert len(table.threshold_prefix(10.0)) == 3


def test_head_and_uniform_weights():
    table = make_table().sort_by_distance().head(2).uniform_weights()
    assert len(table) == 2
    assert np.allclose(table.weights, [0.5, 0.5])
    assert table.effective_sample_size() == pytest.approx(2.0)


def test_mismatched_lengths_raise():
    with pytest.raises(ValueError):
        ParticleTable(parameters=np.zeros((3, 1)), sumstats=np.zeros((2, 1)), weights=np.ones(3))


def test_with_distances_evaluates_each_row():
    distance = UninitializedDistance(EuclideanDistance([15.0]))
    table = make_table().with_distances(distance)
    assert np.allclose(table.distances, [15.0, 5.0, 5.0])
    assert table.distance is distance


def test_empty_table_shapes():
    table = ParticleTable.empty(2, 3)
    assert len(table) == 0
    assert table.parameters.shape == (0, 2)
    assert table.sumstats.shape == (0, 3)
    assert len(table.uniform_weights()) == 0
