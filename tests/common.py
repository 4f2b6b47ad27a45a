import numpy as np
import pytest
import torch

from TiledAPSP.apsp import path_weight, reconstruct_path
from TiledAPSP.topology import INF, NONE, GraphTopology

# The CPU device runs the same step sequence as CUDA, so every test runs on it.
# CUDA is added when the machine has a GPU.
devices = ['cpu'] + (['cuda:0'] if torch.cuda.is_available() else [])

strategies = ['naive', 'blocked']

# Below, at and not a multiple of the default tile size
sizes = [1, 2, 5, 32, 33, 64, 129]

requires_cuda = pytest.mark.skipif(not torch.cuda.is_available(), reason="CUDA is not available")


def scenario_graph():
    edges = [(0, 1, 3), (1, 2, 1), (2, 3, 2), (0, 3, 100)]
    return GraphTopology.from_edges(4, edges)


def assert_paths_valid(topology, W):
    D, P = topology.dist, topology.pred
    N = topology.nvertex
    for i in range(N):
        for j in range(N):
            path = reconstruct_path(P, i, j)
            if D[i, j] >= INF:
                assert path is None
                assert P[i, j] == NONE
            else:
                assert path[0] == i and path[-1] == j
                assert len(path) <= N
                assert path_weight(W, path) == D[i, j]


def assert_zero_diagonal(topology):
    assert np.all(np.diag(topology.dist) == 0)
    assert np.all(np.diag(topology.pred) == NONE)
