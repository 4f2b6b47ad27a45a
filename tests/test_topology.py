import numpy as np
import pytest

from TiledAPSP.driver import floyd_warshall
from TiledAPSP.exceptions import InvalidTopology
from TiledAPSP.topology import INF, NONE, GraphTopology, initial_predecessors

from common import *


def test_initial_predecessors():
    D = np.array([
        [0, 4, INF],
        [INF, 0, 2],
        [7, INF, 0],
    ])
    P = initial_predecessors(D)
    expected = np.array([
        [NONE, 0, NONE],
        [NONE, NONE, 1],
        [2, NONE, NONE],
    ])
    assert np.array_equal(P, expected)
    assert P.dtype == np.int32


def test_topology_normalizes_distances():
    D = np.array([[5, 2], [INF + 10, 0]], dtype=np.int64)
    g = GraphTopology(D)
    assert g.nvertex == 2
    assert g.dist.dtype == np.int32
    # self loops never shorten a path and weights beyond INF mean "no edge"
    assert g.dist[0, 0] == 0
    assert g.dist[1, 0] == INF
    assert not g.reachable(1, 0)
    assert g.reachable(0, 1)


def test_topology_accepts_float_infinity():
    D = np.array([[0.0, 3.0], [np.inf, 0.0]])
    g = GraphTopology(D)
    assert g.dist[0, 1] == 3
    assert g.dist[1, 0] == INF


def test_topology_does_not_alias_input():
    D = np.array([[0, 1], [1, 0]], dtype=np.int32)
    g = GraphTopology(D)
    g.dist[0, 1] = 9
    assert D[0, 1] == 1


@pytest.mark.parametrize('D', [
    np.zeros((2, 3), dtype=np.int32),
    np.zeros((0, 0), dtype=np.int32),
    np.zeros(4, dtype=np.int32),
    np.array([[0.0, 1.5], [1.0, 0.0]]),
    np.array([[0.0, np.nan], [1.0, 0.0]]),
    np.array([[0.0, -np.inf], [1.0, 0.0]]),
    np.array([[0, -INF], [1, 0]], dtype=np.int64),
    np.array([["a", "b"], ["c", "d"]]),
])
def test_topology_rejects_invalid_input(D):
    with pytest.raises(InvalidTopology):
        GraphTopology(D)


def test_topology_rejects_weights_that_overflow_paths():
    w = -(INF - 1)
    # three such edges in a row would sum far below the int32 range
    with pytest.raises(InvalidTopology):
        GraphTopology.from_edges(4, [(0, 1, w), (1, 2, w), (2, 3, w)])
    # long positive paths must not reach the INF sentinel either
    with pytest.raises(InvalidTopology):
        GraphTopology.from_edges(3, [(0, 1, INF // 2 + 1), (1, 2, INF // 2 + 1)])


def test_topology_accepts_weights_at_the_path_bound():
    w = -((INF - 1) // 3)
    g = GraphTopology.from_edges(4, [(0, 1, w), (1, 2, w), (2, 3, w)])
    floyd_warshall(g, device='cpu')
    assert int(g.dist[0, 3]) == 3 * w
    assert g.dist[0, 3] > -INF
    # converged path lengths are not re-checked as edge weights
    assert g.copy().dist[0, 3] == g.dist[0, 3]


def test_topology_rejects_invalid_predecessors():
    D = np.zeros((3, 3), dtype=np.int32)
    with pytest.raises(InvalidTopology):
        GraphTopology(D, np.zeros((2, 2), dtype=np.int32))
    with pytest.raises(InvalidTopology):
        GraphTopology(D, np.full((3, 3), 3, dtype=np.int32))
    with pytest.raises(InvalidTopology):
        GraphTopology(D, np.zeros((3, 3)))


def test_invalid_topology_is_a_value_error():
    with pytest.raises(ValueError):
        GraphTopology(np.zeros((1, 2)))


def test_from_weights_zero_means_missing():
    W = np.array([
        [0, 3, 0],
        [0, 0, 1],
        [4, 0, 0],
    ])
    g = GraphTopology.from_weights(W)
    assert g.dist[0, 1] == 3
    assert g.dist[0, 2] == INF
    assert g.dist[2, 0] == 4
    assert g.pred[0, 1] == 0
    assert g.pred[0, 2] == NONE


def test_from_weights_custom_missing_value():
    W = np.array([[0.0, 0.0], [np.inf, 0.0]])
    g = GraphTopology.from_weights(W, missing=np.inf)
    # zero-weight edges are kept when another value marks absence
    assert g.dist[0, 1] == 0
    assert g.pred[0, 1] == 0
    assert g.dist[1, 0] == INF


def test_from_edges_keeps_lighter_duplicate():
    g = GraphTopology.from_edges(3, [(0, 1, 7), (0, 1, 2), (1, 2, 5)])
    assert g.dist[0, 1] == 2
    assert g.dist[1, 2] == 5
    assert g.dist[2, 0] == INF


def test_from_edges_rejects_out_of_range():
    with pytest.raises(InvalidTopology):
        GraphTopology.from_edges(2, [(0, 2, 1)])
    with pytest.raises(InvalidTopology):
        GraphTopology.from_edges(0, [])


def test_copy_is_independent():
    g = scenario_graph()
    c = g.copy()
    c.dist[0, 1] = 42
    c.pred[0, 1] = 3
    assert g.dist[0, 1] == 3
    assert g.pred[0, 1] == 0
