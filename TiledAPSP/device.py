import logging

import numpy as np
import torch

from TiledAPSP.exceptions import (
    DeviceAllocationError,
    InvalidTopology,
    MemoryTransferError,
    SynchronizationError,
)
from TiledAPSP.topology import INF, NONE

logger = logging.getLogger(__name__)

# 行对齐的元素个数（32 个 int64 = 256 字节）
ROW_ALIGNMENT = 32
# 设备端统一使用 int64：距离相加不会溢出，前驱可直接作为索引
DEVICE_DTYPE = torch.int64


def resolve_device(device=None):
    """
    解析运行设备。None 时优先使用 cuda:0，没有 GPU 时退回 cpu。
    不带编号的 'cuda' 解析为当前 CUDA 设备，同一块 GPU 总是得到同一个 torch.device。
    """
    if device is None:
        return torch.device('cuda:0' if torch.cuda.is_available() else 'cpu')
    device = torch.device(device)
    if device.type == 'cuda':
        if not torch.cuda.is_available():
            raise DeviceAllocationError(f"设备 {device} 不可用：当前环境没有 CUDA")
        if device.index is None:
            device = torch.device('cuda', torch.cuda.current_device())
    return device


def _round_up(n, multiple):
    return -(-n // multiple) * multiple


def row_pitch(nvertex, block_size=None, alignment=ROW_ALIGNMENT):
    """
    计算设备端矩阵的行跨度 (pitch)。

    参数:
        nvertex (int): 节点数量
        block_size (int or None): 分块大小 B，pitch 同时是 B 的整数倍
        alignment (int): 行对齐的元素个数

    返回:
        int: 不小于 nvertex 的行跨度
    """
    multiple = max(alignment, block_size or 1)
    return _round_up(nvertex, multiple)


def _check_host_pair(host_dist, host_pred):
    if host_dist.ndim != 2 or host_dist.shape[0] != host_dist.shape[1]:
        raise InvalidTopology(f"距离矩阵必须是方阵，得到形状 {host_dist.shape}")
    if host_pred.shape != host_dist.shape:
        raise InvalidTopology(
            f"前驱矩阵形状 {host_pred.shape} 与距离矩阵形状 {host_dist.shape} 不一致")
    if host_dist.shape[0] < 1:
        raise InvalidTopology("距离矩阵至少需要一个节点")
    return host_dist.shape[0]


def upload(host_dist, host_pred, device=None, block_size=None):
    """
    在设备上分配带填充的矩阵并拷入主机数据。

    参数:
        host_dist (np.ndarray): N×N 距离矩阵
        host_pred (np.ndarray): N×N 前驱矩阵
        device: 目标设备
        block_size (int or None): 行数填充到 B 的整数倍，保证所有分块都在分配范围内

    返回:
        device_dist (torch.Tensor): (rows, pitch) 距离矩阵，填充部分为 INF
        device_pred (torch.Tensor): (rows, pitch) 前驱矩阵，填充部分为 NONE
        pitch (int): 行跨度
    """
    N = _check_host_pair(host_dist, host_pred)
    device = resolve_device(device)
    pitch = row_pitch(N, block_size)
    rows = _round_up(N, block_size or 1)

    try:
        device_dist = torch.full((rows, pitch), INF, dtype=DEVICE_DTYPE, device=device)
        device_pred = torch.full((rows, pitch), NONE, dtype=DEVICE_DTYPE, device=device)
    except RuntimeError as exc:
        raise DeviceAllocationError(
            f"无法在 {device} 上分配 {rows}x{pitch} 的设备矩阵") from exc

    try:
        device_dist[:N, :N].copy_(torch.from_numpy(np.ascontiguousarray(host_dist)))
        device_pred[:N, :N].copy_(torch.from_numpy(np.ascontiguousarray(host_pred)))
    except RuntimeError as exc:
        del device_dist, device_pred
        raise MemoryTransferError(f"主机到 {device} 的数据拷贝失败") from exc

    logger.debug("已上传 %dx%d 矩阵到 %s (pitch=%d, rows=%d)", N, N, device, pitch, rows)
    return device_dist, device_pred, pitch


def download(device_dist, device_pred, pitch, host_dist, host_pred):
    """
    将设备矩阵的有效区域 (N×N) 原地拷回主机数组。
    调用方在返回后不应再使用设备矩阵。
    """
    N = _check_host_pair(host_dist, host_pred)
    if device_dist.shape[1] != pitch or device_dist.shape[0] < N:
        raise InvalidTopology(
            f"设备矩阵形状 {tuple(device_dist.shape)} 与 pitch={pitch}, N={N} 不匹配")
    # 两个矩阵都拷贝成功后才写入主机数组，失败时主机数据保持不变
    try:
        dist = device_dist[:N, :N].cpu().numpy()
        pred = device_pred[:N, :N].cpu().numpy()
    except RuntimeError as exc:
        raise MemoryTransferError(f"{device_dist.device} 到主机的数据拷贝失败") from exc
    host_dist[...] = dist
    host_pred[...] = pred


def synchronize(device):
    """等待设备上已提交的并行步骤全部完成"""
    if device.type != 'cuda':
        return
    try:
        torch.cuda.synchronize(device)
    except RuntimeError as exc:
        raise SynchronizationError(f"{device} 同步失败") from exc


class DeviceMirror:
    """
    一次运行期间独占的设备端镜像（距离矩阵 + 前驱矩阵）。

    作为上下文管理器使用：进入时上传，正常退出时拷回主机并释放，
    异常退出时只释放，不会用中途状态覆盖主机数据。
    """

    def __init__(self, topology, device=None, block_size=None):
        self.topology = topology
        self.device = resolve_device(device)
        self.block_size = block_size
        self.dist = None
        self.pred = None
        self.pitch = None

    @property
    def nvertex(self):
        return self.topology.nvertex

    @property
    def released(self):
        return self.dist is None and self.pred is None

    def __enter__(self):
        self.dist, self.pred, self.pitch = upload(
            self.topology.dist, self.topology.pred, self.device, self.block_size)
        return self

    def __exit__(self, exc_type, exc, tb):
        try:
            if exc_type is None:
                download(self.dist, self.pred, self.pitch,
                         self.topology.dist, self.topology.pred)
        finally:
            self.release()
        return False

    def release(self):
        if self.released:
            return
        self.dist = None
        self.pred = None
        if self.device.type == 'cuda':
            torch.cuda.empty_cache()
        logger.debug("已释放 %s 上的设备镜像", self.device)
