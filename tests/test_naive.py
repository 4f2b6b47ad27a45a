import numpy as np
import pytest
import torch

from TiledAPSP.device import upload
from TiledAPSP.naive import naive_floyd_warshall, naive_grid, naive_relax_step, relax
from TiledAPSP.shortest_paths_cpu import apsp_floyd_warshall_matrix
from TiledAPSP.topology import INF, NONE, GraphTopology
from TiledAPSP.utils import random_dense_graph

from common import *


@pytest.mark.parametrize('nvertex,block_width,expected', [
    (1, 32, ((1, 1), (32, 32))),
    (32, 32, ((1, 1), (32, 32))),
    (33, 32, ((2, 2), (32, 32))),
    (129, 16, ((9, 9), (16, 16))),
])
def test_naive_grid(nvertex, block_width, expected):
    assert naive_grid(nvertex, block_width) == expected


def test_relax_ignores_infinite_operands():
    D = torch.tensor([[0, INF], [INF, 0]], dtype=torch.int64)
    P = torch.tensor([[NONE, NONE], [NONE, NONE]], dtype=torch.int64)
    # a negative edge out of an unreachable vertex must not make it reachable
    via_row = torch.tensor([[INF], [INF]], dtype=torch.int64)
    via_col = torch.tensor([[-5, -5]], dtype=torch.int64)
    via_pred = torch.tensor([[1, 1]], dtype=torch.int64)
    relax(D, P, via_row, via_col, via_pred)
    assert D.tolist() == [[0, INF], [INF, 0]]
    assert P.tolist() == [[NONE, NONE], [NONE, NONE]]


def test_relax_is_strict():
    D = torch.tensor([[0, 4]], dtype=torch.int64)
    P = torch.tensor([[NONE, 0]], dtype=torch.int64)
    relax(D, P, torch.tensor([[2]]), torch.tensor([[0, 2]]), torch.tensor([[7, 7]]))
    # equal length paths keep the existing predecessor
    assert D.tolist() == [[0, 4]]
    assert P.tolist() == [[NONE, 0]]


@pytest.mark.parametrize('device', devices)
def test_single_pivot_step(device):
    g = scenario_graph()
    dist, pred, _ = upload(g.dist, g.pred, device)
    naive_relax_step(dist, pred, 1, 4)
    # 0 -> 1 -> 2 becomes available through pivot 1
    assert int(dist[0, 2]) == 4
    assert int(pred[0, 2]) == 1
    # 0 -> 3 needs pivot 2 as well
    assert int(dist[0, 3]) == 100


@pytest.mark.parametrize('device', devices)
@pytest.mark.parametrize('nvertex', sizes)
def test_naive_matches_reference_exactly(device, nvertex):
    g = GraphTopology(random_dense_graph(nvertex, density=0.3, seed=nvertex))
    D_ref, P_ref = apsp_floyd_warshall_matrix(g.dist)
    dist, pred, _ = upload(g.dist, g.pred, device, 32)
    steps = naive_floyd_warshall(dist, pred, nvertex)
    assert steps == nvertex
    assert np.array_equal(dist[:nvertex, :nvertex].cpu().numpy(), D_ref)
    # the naive kernel applies pivots in the same order as the reference
    assert np.array_equal(pred[:nvertex, :nvertex].cpu().numpy(), P_ref)


@pytest.mark.parametrize('device', devices)
def test_naive_never_touches_padding(device):
    g = GraphTopology(random_dense_graph(5, density=0.8, seed=2, negative=True))
    dist, pred, _ = upload(g.dist, g.pred, device, 4)
    naive_floyd_warshall(dist, pred, 5)
    assert bool((dist[5:, :] == INF).all()) and bool((dist[:, 5:] == INF).all())
    assert bool((pred[5:, :] == NONE).all()) and bool((pred[:, 5:] == NONE).all())


def test_naive_calls_hook_before_each_pivot():
    g = scenario_graph()
    dist, pred, _ = upload(g.dist, g.pred, 'cpu')
    seen = []
    naive_floyd_warshall(dist, pred, 4, seen.append)
    assert seen == [0, 1, 2, 3]
