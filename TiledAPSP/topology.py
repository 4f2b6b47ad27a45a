import numpy as np

from TiledAPSP.exceptions import InvalidTopology

# 不可达距离的哨兵值，严格小于 int32 范围的一半，两个 INF 相加也不会溢出
INF = (2**31 - 1) // 2
# 无前驱的哨兵值
NONE = -1


def initial_predecessors(dist):
    """
    根据初始距离矩阵构造前驱矩阵。

    参数:
        dist (np.ndarray): N×N 距离矩阵，INF 表示无边

    返回:
        np.ndarray: N×N int32 前驱矩阵。存在边 i->j (i != j) 时 P[i, j] = i，
                    否则为 NONE。
    """
    N = dist.shape[0]
    src_indices = np.broadcast_to(np.arange(N, dtype=np.int32)[:, np.newaxis], (N, N))
    P = np.where(dist < INF, src_indices, NONE).astype(np.int32)
    np.fill_diagonal(P, NONE)
    return P


def _as_distance_matrix(dist):
    arr = np.asarray(dist)
    if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
        raise InvalidTopology(f"距离矩阵必须是方阵，得到形状 {arr.shape}")
    if arr.shape[0] < 1:
        raise InvalidTopology("距离矩阵至少需要一个节点")

    if np.issubdtype(arr.dtype, np.floating):
        if np.isnan(arr).any():
            raise InvalidTopology("距离矩阵包含 NaN")
        if np.isneginf(arr).any():
            raise InvalidTopology("距离矩阵包含 -inf")
        finite = np.isfinite(arr)
        if not np.array_equal(arr[finite], np.round(arr[finite])):
            raise InvalidTopology("边权重必须是整数")
        arr = np.where(finite, arr, INF)
    elif not (np.issubdtype(arr.dtype, np.integer) or arr.dtype == np.bool_):
        raise InvalidTopology(f"不支持的距离矩阵类型 {arr.dtype}")

    if arr.size and arr.min() <= -INF:
        raise InvalidTopology(f"负权重的绝对值必须小于 INF={INF}")

    # 超过 INF 的权重视为无边
    arr = np.minimum(arr, INF).astype(np.int64)
    # 自环不会缩短任何路径
    np.fill_diagonal(arr, 0)

    # 最短路径至多 N-1 条边，其长度必须落在 (-INF, INF) 内，既不与哨兵混淆也不溢出 int32
    weights = arr[arr < INF]
    max_abs = int(np.abs(weights).max()) if weights.size else 0
    if (arr.shape[0] - 1) * max_abs >= INF:
        raise InvalidTopology(
            f"边权重绝对值 {max_abs} 过大：{arr.shape[0] - 1} 条边的路径长度可能超出 ±INF={INF}")
    return np.ascontiguousarray(arr, dtype=np.int32)


class GraphTopology:
    """
    稠密有向图的主机端容器，持有距离矩阵和前驱矩阵。

    算法原地修改 dist 和 pred，运行结束后它们即为最终结果：
    dist[i, j] 为 i 到 j 的最短距离（不可达为 INF），
    pred[i, j] 为该最短路径上 j 的前一个节点（i == j 或不可达时为 NONE）。
    """

    def __init__(self, dist, pred=None):
        self.dist = _as_distance_matrix(dist)
        N = self.dist.shape[0]
        if pred is None:
            self.pred = initial_predecessors(self.dist)
        else:
            pred = np.asarray(pred)
            if pred.shape != self.dist.shape:
                raise InvalidTopology(
                    f"前驱矩阵形状 {pred.shape} 与距离矩阵形状 {self.dist.shape} 不一致")
            if not np.issubdtype(pred.dtype, np.integer):
                raise InvalidTopology(f"前驱矩阵必须是整数类型，得到 {pred.dtype}")
            if pred.min() < NONE or pred.max() >= N:
                raise InvalidTopology("前驱矩阵包含越界的节点索引")
            self.pred = np.ascontiguousarray(pred, dtype=np.int32).copy()

    @classmethod
    def from_weights(cls, W, missing=0):
        """
        从邻接权重矩阵构造拓扑。

        参数:
            W (np.ndarray): N×N 邻接权重矩阵，W[i, j] 为 i->j 的边权
            missing: 表示无边的取值（默认 0，与 utils.create_base_network 一致）；
                     inf 也总是视为无边

        返回:
            GraphTopology
        """
        W = np.asarray(W)
        if W.ndim != 2 or W.shape[0] != W.shape[1]:
            raise InvalidTopology(f"权重矩阵必须是方阵，得到形状 {W.shape}")
        absent = W == missing
        if np.issubdtype(W.dtype, np.floating):
            absent |= np.isposinf(W)
            W = np.where(absent, 0, W)
        D = np.where(absent, INF, W)
        return cls(D)

    @classmethod
    def from_edges(cls, nvertex, edges):
        """从 (src, dst, weight) 三元组构造拓扑，重复边保留较小的权重"""
        if nvertex < 1:
            raise InvalidTopology("节点数量至少为 1")
        D = np.full((nvertex, nvertex), INF, dtype=np.int64)
        for src, dst, weight in edges:
            if not (0 <= src < nvertex and 0 <= dst < nvertex):
                raise InvalidTopology(f"边 ({src}, {dst}) 超出节点范围 [0, {nvertex})")
            D[src, dst] = min(D[src, dst], weight)
        return cls(D)

    @property
    def nvertex(self):
        return self.dist.shape[0]

    def reachable(self, i, j):
        return bool(self.dist[i, j] < INF)

    def copy(self):
        # 收敛后的距离是路径长度而不是边权，不再按边权重新校验
        g = GraphTopology.__new__(GraphTopology)
        g.dist = self.dist.copy()
        g.pred = self.pred.copy()
        return g

    def __repr__(self):
        return f"GraphTopology(nvertex={self.nvertex})"
