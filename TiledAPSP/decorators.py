import logging
import time
from functools import wraps

import torch

logger = logging.getLogger(__name__)


def _find_device(args, kwargs):
    for value in list(args) + list(kwargs.values()):
        device = getattr(value, 'device', None)
        if isinstance(device, torch.device):
            return device
    return None


def run_timer(func):
    """
    运行计时装饰器
    测量：执行时间、并行步骤数

    参数中带有 CUDA 设备时使用 CUDA 事件计时，否则使用 time.perf_counter。
    返回值若带有 elapsed_ms 与 steps 属性（如 RunReport），会把耗时写回。
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        device = _find_device(args, kwargs)
        use_cuda = device is not None and device.type == 'cuda'

        if use_cuda:
            # 确保之前的 GPU 操作完成
            torch.cuda.synchronize(device)
            start_event = torch.cuda.Event(enable_timing=True)
            end_event = torch.cuda.Event(enable_timing=True)
            start_event.record(torch.cuda.current_stream(device))
        else:
            start_time = time.perf_counter()

        result = func(*args, **kwargs)

        if use_cuda:
            end_event.record(torch.cuda.current_stream(device))
            torch.cuda.synchronize(device)
            elapsed = start_event.elapsed_time(end_event)
        else:
            elapsed = (time.perf_counter() - start_time) * 1000

        if hasattr(result, 'elapsed_ms'):
            result.elapsed_ms = elapsed

        steps = getattr(result, 'steps', 0)
        if steps:
            logger.info("%s: 执行时间 %.2f ms, 并行步骤 %d, 平均每步 %.4f ms",
                        func.__name__, elapsed, steps, elapsed / steps)
        else:
            logger.info("%s: 执行时间 %.2f ms", func.__name__, elapsed)
        return result

    return wrapper


def cpu_timer(func):
    """
    CPU 性能测试装饰器
    测量：CPU执行时间
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.perf_counter()
        result = func(*args, **kwargs)
        cpu_time = (time.perf_counter() - start_time) * 1000
        logger.info("%s: CPU 执行时间 %.2f ms (%.4f s)", func.__name__, cpu_time, cpu_time / 1000)
        return result

    return wrapper
