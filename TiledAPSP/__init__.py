from TiledAPSP.apsp import path_weight, reconstruct_all_paths, reconstruct_path
from TiledAPSP.device import DeviceMirror, download, upload
from TiledAPSP.driver import (
    BLOCKED,
    DEFAULT_BLOCK_SIZE,
    NAIVE,
    STRATEGIES,
    RunReport,
    floyd_warshall,
    shortest_paths,
)
from TiledAPSP.exceptions import (
    APSPError,
    DeviceAllocationError,
    DeviceError,
    DeviceMemoryError,
    InvalidTopology,
    KernelLaunchError,
    MemoryTransferError,
    PathError,
    RunCancelled,
    SynchronizationError,
)
from TiledAPSP.topology import INF, NONE, GraphTopology

__version__ = "0.1.0"
