import logging
import threading

from TiledAPSP.blocked import blocked_floyd_warshall, blocked_grids, tile_count
from TiledAPSP.decorators import run_timer
from TiledAPSP.device import DeviceMirror, resolve_device, synchronize
from TiledAPSP.exceptions import APSPError, InvalidTopology, KernelLaunchError, RunCancelled
from TiledAPSP.naive import naive_floyd_warshall, naive_grid
from TiledAPSP.topology import GraphTopology

logger = logging.getLogger(__name__)

NAIVE = 'naive'
BLOCKED = 'blocked'
STRATEGIES = (NAIVE, BLOCKED)
DEFAULT_BLOCK_SIZE = 32
# 一个 B×B 分块对应一个线程块，B*B 不能超过 1024 个线程
MAX_BLOCK_SIZE = 32

# 同一设备上的两次运行不能交错使用设备镜像
_device_locks = {}
_device_locks_guard = threading.Lock()


def _device_lock(device):
    # 'cuda' 与 'cuda:0' 指向同一块 GPU 时必须拿到同一把锁
    key = str(resolve_device(device))
    with _device_locks_guard:
        return _device_locks.setdefault(key, threading.Lock())


class RunReport:
    """一次运行的摘要，仅用于观测，不影响结果"""

    def __init__(self, strategy, block_size, nvertex, pitch, steps, device, geometry):
        self.strategy = strategy
        self.block_size = block_size
        self.nvertex = nvertex
        self.pitch = pitch
        self.steps = steps
        self.device = device
        self.geometry = geometry
        self.elapsed_ms = None

    def __repr__(self):
        return (f"RunReport(strategy={self.strategy!r}, block_size={self.block_size}, "
                f"nvertex={self.nvertex}, pitch={self.pitch}, steps={self.steps}, "
                f"device={self.device}, elapsed_ms={self.elapsed_ms})")


def check_config(strategy, block_size):
    if strategy not in STRATEGIES:
        raise ValueError(f"未知的策略 {strategy!r}，可选: {STRATEGIES}")
    if isinstance(block_size, bool) or not isinstance(block_size, int):
        raise ValueError(f"block_size 必须是整数，得到 {block_size!r}")
    if block_size < 1 or block_size > MAX_BLOCK_SIZE or block_size & (block_size - 1):
        raise ValueError(f"block_size 必须是不超过 {MAX_BLOCK_SIZE} 的 2 的幂，得到 {block_size}")


def launch_geometry(strategy, nvertex, block_size):
    """
    计算启动几何。

    返回:
        dict: 步骤名 -> (grid, block)
    """
    if strategy == NAIVE:
        return {'relax': naive_grid(nvertex, block_size)}
    return blocked_grids(tile_count(nvertex, block_size), block_size)


@run_timer
def _execute(mirror, strategy, block_size, geometry, cancel=None, sync_every_step=False):
    N = mirror.nvertex

    def on_step(label):
        if sync_every_step:
            synchronize(mirror.device)
        if cancel is not None and cancel.is_set():
            raise RunCancelled(f"运行在步骤 {label} 之前被取消")

    try:
        if strategy == NAIVE:
            steps = naive_floyd_warshall(mirror.dist, mirror.pred, N, on_step)
        else:
            steps = blocked_floyd_warshall(mirror.dist, mirror.pred, N, block_size, on_step)
    except APSPError:
        raise
    except RuntimeError as exc:
        raise KernelLaunchError(f"{strategy} 内核在 {mirror.device} 上执行失败") from exc

    synchronize(mirror.device)
    return RunReport(strategy, block_size, N, mirror.pitch, steps, mirror.device, geometry)


def floyd_warshall(topology, strategy=BLOCKED, block_size=DEFAULT_BLOCK_SIZE, device=None,
                   cancel=None, sync_every_step=False):
    """
    在加速设备上计算全源最短路径 (APSP)，原地修改 topology。

    参数:
        topology (GraphTopology): 输入图，运行结束后持有最短距离与前驱矩阵
        strategy (str): 'naive' 或 'blocked'
        block_size (int): 分块大小 B（朴素策略下为线程块宽度），2 的幂
        device: 运行设备，None 时自动选择
        cancel: threading.Event 或任何带 is_set() 的对象，在步骤之间检查
        sync_every_step (bool): 每个步骤后同步设备，使设备错误在出错的步骤处暴露

    返回:
        RunReport: 运行摘要

    前提：图中没有负权环，否则结果未定义。
    """
    if not isinstance(topology, GraphTopology):
        raise InvalidTopology(f"需要 GraphTopology，得到 {type(topology).__name__}")
    check_config(strategy, block_size)
    device = resolve_device(device)
    geometry = launch_geometry(strategy, topology.nvertex, block_size)
    logger.info("APSP 开始: 策略=%s, N=%d, B=%d, 设备=%s, 几何=%s",
                strategy, topology.nvertex, block_size, device, geometry)

    with _device_lock(device):
        with DeviceMirror(topology, device, block_size) as mirror:
            report = _execute(mirror, strategy, block_size, geometry,
                              cancel=cancel, sync_every_step=sync_every_step)
    return report


def shortest_paths(W, missing=0, **kwargs):
    """
    便捷入口：从邻接权重矩阵计算最短距离矩阵与前驱矩阵。

    参数:
        W (np.ndarray): N×N 邻接权重矩阵，missing 或 inf 表示无边
        **kwargs: 传给 floyd_warshall 的配置

    返回:
        D (np.ndarray): N×N 最短距离矩阵，不可达为 INF
        P (np.ndarray): N×N 前驱矩阵，无前驱为 NONE
    """
    topology = GraphTopology.from_weights(W, missing=missing)
    floyd_warshall(topology, **kwargs)
    return topology.dist, topology.pred
