class APSPError(Exception):
    """所有 APSP 运行错误的基类"""


class InvalidTopology(APSPError, ValueError):
    """输入图不合法（非方阵、空矩阵、非整数权重等），在任何设备操作之前抛出"""


class RunCancelled(APSPError):
    """运行在两个并行步骤之间被放弃"""


class PathError(APSPError):
    """前驱矩阵中的路径无法在 nvertex 步内回溯到源节点"""


# ============================================================
# 设备端错误：一旦发生，本次运行不可恢复
# ============================================================

class DeviceError(APSPError):
    pass


class DeviceMemoryError(DeviceError):
    pass


class DeviceAllocationError(DeviceMemoryError):
    pass


class MemoryTransferError(DeviceMemoryError):
    pass


class KernelLaunchError(DeviceError):
    pass


class SynchronizationError(DeviceError):
    pass
