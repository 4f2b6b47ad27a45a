import numpy as np
from scipy.sparse.csgraph import csgraph_from_dense, floyd_warshall

from TiledAPSP.topology import INF, initial_predecessors


def apsp_floyd_warshall_matrix(dist, pred=None):
    """
    使用矩阵化的 Floyd-Warshall 算法在 CPU 上顺序计算 APSP，作为设备内核的参考实现。

    参数:
        dist (np.ndarray): N×N 距离矩阵，INF 表示无边，对角线为 0
        pred (np.ndarray, optional): N×N 前驱矩阵，缺省时按初始边构造

    返回:
        (np.ndarray, np.ndarray): 最终的距离矩阵 D 和前驱矩阵 P (int32)
    """
    D = np.array(dist, dtype=np.int64)
    P = initial_predecessors(D) if pred is None else np.array(pred, dtype=np.int32)

    for k in range(D.shape[0]):
        # 计算通过中间节点 k 的新路径距离
        via_row = D[:, k, np.newaxis]
        via_col = D[np.newaxis, k, :]
        D_candidates = via_row + via_col
        update_mask = (via_row < INF) & (via_col < INF) & (D_candidates < D)

        # 如果 i 到 j 的路径现在经过 k，那么 j 的新前驱就是 k 到 j 路径上 j 的前驱
        D = np.where(update_mask, D_candidates, D)
        P = np.where(update_mask, P[np.newaxis, k, :], P)

    return D.astype(np.int32), P.astype(np.int32)


def scipy_reference(dist):
    """
    用 scipy.sparse.csgraph.floyd_warshall 独立计算最短距离，用于交叉验证。
    0 权重的边会被保留（只有 INF 表示无边）。

    返回:
        np.ndarray: N×N int64 距离矩阵，不可达为 INF
    """
    W = np.where(np.asarray(dist) >= INF, np.inf, np.asarray(dist, dtype=np.float64))
    np.fill_diagonal(W, np.inf)
    graph = csgraph_from_dense(W, null_value=np.inf)
    D = floyd_warshall(graph, directed=True)
    return np.where(np.isinf(D), INF, D).astype(np.int64)
