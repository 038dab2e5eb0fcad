"""
主机指标采集模块。

使用 psutil 采集 CPU、内存、磁盘、网络指标，转换为 Sample 列表，
供命令行 send 子命令一次性上报。
"""
import logging
import time
from typing import List

import psutil

from nrplugin_agent.models import Sample

logger = logging.getLogger(__name__)


def collect_samples(disk_path: str = "/") -> List[Sample]:
    """采集当前主机指标。

    Returns:
        cpu / mem / disk / net 四个 Sample，时间戳相同。
    """
    now = time.time()
    cpu_percent = psutil.cpu_percent(interval=1)

    try:
        load1, load5, load15 = psutil.getloadavg()
    except (AttributeError, OSError):
        load1 = load5 = load15 = 0.0

    mem = psutil.virtual_memory()
    samples = [
        Sample(
            name="cpu",
            fields={
                "usage_percent": round(cpu_percent, 1),
                "load1": round(load1, 2),
                "load5": round(load5, 2),
                "load15": round(load15, 2),
            },
            timestamp=now,
        ),
        Sample(
            name="mem",
            fields={
                "used_mb": int(mem.used / (1024 * 1024)),
                "percent": round(mem.percent, 1),
            },
            timestamp=now,
        ),
    ]

    # 磁盘不可读时跳过，不影响其他指标
    try:
        disk = psutil.disk_usage(disk_path)
    except OSError as e:
        logger.warning("Disk usage unavailable for %s: %s", disk_path, e)
    else:
        samples.append(Sample(
            name="disk",
            tags={"path": disk_path},
            fields={
                "used_mb": int(disk.used / (1024 * 1024)),
                "total_mb": int(disk.total / (1024 * 1024)),
                "percent": round(disk.percent, 1),
            },
            timestamp=now,
        ))

    net = psutil.net_io_counters()
    samples.append(Sample(
        name="net",
        fields={"bytes_sent": net.bytes_sent, "bytes_recv": net.bytes_recv},
        timestamp=now,
    ))
    return samples
