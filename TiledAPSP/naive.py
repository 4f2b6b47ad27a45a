import torch

from TiledAPSP.topology import INF


def naive_grid(nvertex, block_width=32):
    """
    朴素内核的二维启动几何：每个线程负责一个 (x, y) 单元。

    返回:
        grid (tuple): 每个维度 ceil(nvertex / block_width) 个线程块
        block (tuple): (block_width, block_width)
    """
    blocks = -(-nvertex // block_width)
    return (blocks, blocks), (block_width, block_width)


def relax(D, P, via_row, via_col, via_pred):
    """
    一次 (min, +) 松弛：D = min(D, via_row + via_col)，更新处的前驱取 via_pred。

    via_row 的形状为 (..., B, 1)，对应 D[y][u]；via_col 和 via_pred 的形状为
    (..., 1, B)，对应 D[u][x] 与 P[u][x]。先完整计算候选值再统一写回，
    因此一次调用就是一个同步步骤。任一操作数为 INF 时不产生候选路径。
    """
    new_path = via_row + via_col
    update = (via_row < INF) & (via_col < INF) & (new_path < D)
    D.copy_(torch.where(update, new_path, D))
    P.copy_(torch.where(update, via_pred, P))


def naive_relax_step(dist, pred, u, nvertex):
    """
    以 u 为中间节点对整个矩阵做一次并行松弛。

    只访问前 nvertex 行和列，超出范围的线程不做任何操作。
    """
    D = dist[:nvertex, :nvertex]
    P = pred[:nvertex, :nvertex]
    relax(D, P, D[:, u:u + 1], D[u:u + 1, :], P[u:u + 1, :])


def naive_floyd_warshall(dist, pred, nvertex, on_step=None):
    """
    朴素 Floyd-Warshall：每个中间节点一个独立的并行步骤。

    参数:
        dist (torch.Tensor): 设备端距离矩阵 (rows, pitch)
        pred (torch.Tensor): 设备端前驱矩阵 (rows, pitch)
        nvertex (int): 节点数量
        on_step (callable or None): 在每个步骤提交前调用 on_step(u)

    返回:
        int: 提交的并行步骤数
    """
    # 中间节点必须严格按顺序处理，第 u 步的写入在第 u+1 步开始前全部可见
    for u in range(nvertex):
        if on_step is not None:
            on_step(u)
        naive_relax_step(dist, pred, u, nvertex)
    return nvertex
