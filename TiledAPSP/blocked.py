import logging

import torch

from TiledAPSP.naive import relax

logger = logging.getLogger(__name__)

DEPENDENT = 'dependent'
PARTIALLY_DEPENDENT = 'partially_dependent'
INDEPENDENT = 'independent'
PHASES = (DEPENDENT, PARTIALLY_DEPENDENT, INDEPENDENT)


def tile_count(nvertex, block_size):
    """numBlocks = ceil(nvertex / B)"""
    return -(-nvertex // block_size)


def blocked_grids(nblocks, block_size):
    """
    分块内核三个阶段的启动几何，每个线程块处理一个 B×B 分块。

    返回:
        dict: 阶段名 -> (grid, block)
    """
    block = (block_size, block_size)
    return {
        DEPENDENT: ((1, 1), block),
        PARTIALLY_DEPENDENT: ((nblocks - 1, 2), block),
        INDEPENDENT: ((nblocks - 1, nblocks - 1), block),
    }


def _tiles(matrix, nblocks, block_size):
    """
    将 (rows, pitch) 的设备矩阵视为 (nblocks, nblocks, B, B) 的分块视图。
    视图与原矩阵共享存储，写入视图即写回设备矩阵。
    """
    side = nblocks * block_size
    return matrix[:side, :side].view(nblocks, block_size, nblocks, block_size).permute(0, 2, 1, 3)


def _other_blocks(k, nblocks, device):
    idx = torch.arange(nblocks, device=device)
    return idx[idx != k]


# ============================================================
# 阶段 1：依赖阶段，只更新对角分块 (k, k)
# ============================================================

def dependent_phase(dist, pred, k, block_size, nblocks):
    """
    在块内缓存中对对角分块 (k, k) 执行完整的 B 轮松弛。

    每一轮 p 都读取上一轮刚写入的第 p 行/第 p 列，两轮之间的边界就是块内屏障，
    缺少它会读到一半更新的行。
    """
    D = _tiles(dist, nblocks, block_size)
    P = _tiles(pred, nblocks, block_size)
    cache = D[k, k].clone()
    cache_pred = P[k, k].clone()

    for p in range(block_size):
        relax(cache, cache_pred,
              cache[:, p:p + 1], cache[p:p + 1, :], cache_pred[p:p + 1, :])

    D[k, k] = cache
    P[k, k] = cache_pred


# ============================================================
# 阶段 2：部分依赖阶段，更新第 k 块行和第 k 块列
# ============================================================

def partially_dependent_phase(dist, pred, k, block_size, nblocks):
    """
    以已完成的对角分块为固定的主元来源，更新第 k 块行与第 k 块列中的其它分块。

    行分块 (k, j)：D[y][x] 与 diag[y][p] + cache[p][x] 比较，前驱取 cache_pred[p][x]
    列分块 (i, k)：D[y][x] 与 cache[y][p] + diag[p][x] 比较，前驱取 diag_pred[p][x]

    返回:
        int: 更新的分块数
    """
    others = _other_blocks(k, nblocks, dist.device)
    if others.numel() == 0:
        return 0

    D = _tiles(dist, nblocks, block_size)
    P = _tiles(pred, nblocks, block_size)
    diag = D[k, k].clone()
    diag_pred = P[k, k].clone()

    # (m, B, B) 的块内缓存，每个分块一份
    row_cache = D[k, others].clone()
    row_pred = P[k, others].clone()
    col_cache = D[others, k].clone()
    col_pred = P[others, k].clone()

    for p in range(block_size):
        relax(row_cache, row_pred,
              diag[:, p:p + 1], row_cache[:, p:p + 1, :], row_pred[:, p:p + 1, :])
        relax(col_cache, col_pred,
              col_cache[:, :, p:p + 1], diag[p:p + 1, :], diag_pred[p:p + 1, :])

    D[k, others] = row_cache
    P[k, others] = row_pred
    D[others, k] = col_cache
    P[others, k] = col_pred
    return 2 * others.numel()


# ============================================================
# 阶段 3：独立阶段，更新其余所有分块
# ============================================================

def independent_phase(dist, pred, k, block_size, nblocks):
    """
    用第 2 阶段完成的分块 (i, k) 与 (k, j) 更新所有 i != k, j != k 的分块 (i, j)。
    同一阶段内的分块互不依赖，因此在一个批量步骤中一起更新。

    返回:
        int: 更新的分块数
    """
    others = _other_blocks(k, nblocks, dist.device)
    if others.numel() == 0:
        return 0

    D = _tiles(dist, nblocks, block_size)
    P = _tiles(pred, nblocks, block_size)
    rows = others[:, None]
    cols = others[None, :]

    # (m, m, B, B) 的块内缓存
    cache = D[rows, cols].clone()
    cache_pred = P[rows, cols].clone()
    # (m, 1, B, B) 与 (1, m, B, B) 的两个主元来源分块
    col_src = D[others, k].clone()[:, None]
    row_src = D[k, others].clone()[None, :]
    row_src_pred = P[k, others].clone()[None, :]

    for p in range(block_size):
        relax(cache, cache_pred,
              col_src[..., p:p + 1], row_src[..., p:p + 1, :], row_src_pred[..., p:p + 1, :])

    D[rows, cols] = cache
    P[rows, cols] = cache_pred
    return others.numel() ** 2


def blocked_floyd_warshall(dist, pred, nvertex, block_size, on_step=None):
    """
    分块 Floyd-Warshall。对每个对角分块 k 依次执行三个阶段，每个阶段是一个
    独立的并行步骤，后一个阶段必须等前一个阶段的写入全部可见后才能开始。

    参数:
        dist (torch.Tensor): 设备端距离矩阵，行数与 pitch 都是 B 的整数倍
        pred (torch.Tensor): 设备端前驱矩阵
        nvertex (int): 节点数量
        block_size (int): 分块大小 B
        on_step (callable or None): 每个阶段提交前调用 on_step((k, phase))

    返回:
        int: 提交的并行步骤数
    """
    nblocks = tile_count(nvertex, block_size)
    side = nblocks * block_size
    if dist.shape[0] < side or dist.shape[1] < side:
        raise ValueError(
            f"设备矩阵 {tuple(dist.shape)} 不足以容纳 {nblocks}x{nblocks} 个 {block_size} 分块")

    steps = 0
    for k in range(nblocks):
        if on_step is not None:
            on_step((k, DEPENDENT))
        dependent_phase(dist, pred, k, block_size, nblocks)
        steps += 1

        # nvertex <= B 时只有对角分块，后两个阶段没有分块可更新
        if nblocks == 1:
            continue

        if on_step is not None:
            on_step((k, PARTIALLY_DEPENDENT))
        partially_dependent_phase(dist, pred, k, block_size, nblocks)
        steps += 1

        if on_step is not None:
            on_step((k, INDEPENDENT))
        independent_phase(dist, pred, k, block_size, nblocks)
        steps += 1

        logger.debug("对角分块 %d/%d 完成", k + 1, nblocks)
    return steps
