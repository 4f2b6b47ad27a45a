import numpy as np
import torch

from TiledAPSP.exceptions import PathError
from TiledAPSP.topology import INF, NONE


def _as_numpy(M):
    if torch.is_tensor(M):
        return M.cpu().numpy()
    return np.asarray(M)


def reconstruct_path(P, src, dst):
    """
    根据前驱矩阵回溯从 src 到 dst 的最短路径。

    参数:
        P: np.ndarray 或 torch.Tensor, 前驱矩阵，P[src, j] 为 src 出发的路径上 j 的前驱
        src (int): 源节点
        dst (int): 目标节点

    返回:
        list: 路径节点列表 [src, ..., dst]，不可达时返回 None
    """
    P = _as_numpy(P)
    N = P.shape[0]
    if src == dst:
        return [src]
    if P[src, dst] == NONE:
        return None

    path = [dst]
    curr = dst
    # 没有负权环时，回溯必然在 N 步之内回到源节点
    for _ in range(N):
        prev = int(P[src, curr])
        if prev == NONE:
            raise PathError(f"从 {src} 到 {dst} 的路径在节点 {curr} 处中断")
        path.append(prev)
        if prev == src:
            path.reverse()
            return path
        curr = prev
    raise PathError(f"从 {src} 到 {dst} 的路径在 {N} 步内没有回到源节点")


def reconstruct_all_paths(P, src):
    """
    重建从源点 src 到所有可达节点的路径

    返回:
        dict: {dst: path_list} 映射
    """
    P = _as_numpy(P)
    paths = {}
    for dst in range(P.shape[0]):
        if dst != src:
            path = reconstruct_path(P, src, dst)
            if path is not None:
                paths[dst] = path
    return paths


def path_weight(W, path):
    """按原始权重矩阵累加路径上的边权，路径中出现不存在的边时返回 INF"""
    W = _as_numpy(W)
    total = 0
    for u, v in zip(path[:-1], path[1:]):
        if W[u, v] >= INF:
            return INF
        total += int(W[u, v])
    return total
