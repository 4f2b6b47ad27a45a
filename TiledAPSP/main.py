import logging

import numpy as np
import torch

from TiledAPSP.apsp import path_weight, reconstruct_path
from TiledAPSP.decorators import cpu_timer
from TiledAPSP.driver import floyd_warshall
from TiledAPSP.shortest_paths_cpu import apsp_floyd_warshall_matrix
from TiledAPSP.topology import GraphTopology
from TiledAPSP.utils import create_base_network, ensure_weak_connectivity

N = 1000
k = 10
seed = 1


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    W = create_base_network(N, k, seed)
    W = ensure_weak_connectivity(W, seed)
    graph = GraphTopology.from_weights(W)
    device = 'cuda:0' if torch.cuda.is_available() else 'cpu'

    print("="*60)
    print(f"开始 APSP 计算 (N={N}, 设备={device})")
    print("="*60)

    D_ref, _ = cpu_timer(apsp_floyd_warshall_matrix)(graph.dist)

    results = {}
    for strategy in ('naive', 'blocked'):
        run = graph.copy()
        report = floyd_warshall(run, strategy=strategy, block_size=32, device=device)
        results[strategy] = run
        print(report)
        print(f"{strategy} 与参考实现一致: {np.array_equal(run.dist, D_ref)}")

    blocked = results['blocked']
    src, dst = 0, N - 1
    path = reconstruct_path(blocked.pred, src, dst)
    print(f"\n从节点 {src} 到节点 {dst}:")
    if path is None:
        print("  状态: 不可达")
    else:
        print(f"  路径: {' → '.join(map(str, path))}")
        print(f"  距离: {blocked.dist[src, dst]} (按边权累加: {path_weight(graph.dist, path)})")


if __name__ == '__main__':
    main()
