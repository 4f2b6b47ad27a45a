import numpy as np
from scipy.sparse import csr_matrix
from scipy.sparse.csgraph import connected_components

from TiledAPSP.topology import INF


def create_base_network(N, k, seed=None, max_weight=50):
    """
    创建基于k-近邻的有向图初始网络。

    参数:
        N (int): 节点数量
        k (int): 每个节点的出度（向外连接的邻居数量）
        seed (int, optional): 随机数种子
        max_weight (int): 边权重上限，权重在 [1, max_weight] 内均匀取整数

    返回:
        adj_matrix (np.ndarray): N×N 有向带权邻接矩阵，0 表示无边
    """
    rng = np.random.default_rng(seed)
    k = min(k, N - 1)

    # 生成节点坐标
    node_list = rng.random((N, 2))
    adj_matrix = np.zeros((N, N), dtype=np.int64)

    for i in range(N):
        # 找到k个最近邻居（排除自己）
        distance = np.linalg.norm(node_list[i] - node_list, axis=1)
        neighbors = np.argsort(distance)[1:(k+1)]
        adj_matrix[i, neighbors] = rng.integers(1, max_weight + 1, size=len(neighbors))

    return adj_matrix


def ensure_weak_connectivity(adj_matrix, seed=None, max_weight=50):
    """
    检查有向图的弱连通性，如果不满足则增边使其弱连通。

    参数:
        adj_matrix (np.ndarray): N×N 有向带权邻接矩阵，0 表示无边
        seed (int, optional): 随机数种子，仅在需要增边时使用

    返回:
        connected_adj_matrix (np.ndarray): 弱连通的 N×N 有向带权邻接矩阵
    """
    N = adj_matrix.shape[0]

    # 如果 adj[i,j] 或 adj[j,i] 有边，则无向图中 i-j 有边
    undirected = (adj_matrix != 0) | (adj_matrix.T != 0)
    n_components, labels = connected_components(
        csgraph=csr_matrix(undirected),
        directed=False,
        return_labels=True
    )

    if n_components == 1:
        return adj_matrix.copy()

    rng = np.random.default_rng(seed)
    result_adj = adj_matrix.copy()

    # 连接相邻编号的连通分量
    for comp_id in range(n_components - 1):
        nodes_comp_i = np.where(labels == comp_id)[0]
        nodes_comp_next = np.where(labels == comp_id + 1)[0]
        u = rng.choice(nodes_comp_i)
        v = rng.choice(nodes_comp_next)
        cost = rng.integers(1, max_weight + 1)
        # 添加双向边
        result_adj[u, v] = cost
        result_adj[v, u] = cost

    return result_adj


def random_dense_graph(N, density=0.5, seed=None, max_weight=100, negative=False):
    """
    生成随机稠密有向图的距离矩阵。

    参数:
        N (int): 节点数量
        density (float): 每条有向边出现的概率
        seed (int, optional): 随机数种子
        max_weight (int): 边权重绝对值上限
        negative (bool): 允许负权重。此时只生成 i < j 的边（有向无环图），
                         保证不存在负权环

    返回:
        np.ndarray: N×N int64 距离矩阵，INF 表示无边，对角线为 0
    """
    rng = np.random.default_rng(seed)
    present = rng.random((N, N)) < density
    if negative:
        present &= np.triu(np.ones((N, N), dtype=bool), k=1)
        weights = rng.integers(-max_weight, max_weight + 1, size=(N, N))
    else:
        weights = rng.integers(1, max_weight + 1, size=(N, N))

    D = np.where(present, weights, INF).astype(np.int64)
    np.fill_diagonal(D, 0)
    return D
