"""
指标数据模型。

定义输入样本 Sample、单个指标路径的统计量 FieldStat，
以及按主机分组上报的 Component。
"""
import time
from dataclasses import dataclass, field
from typing import Any, Dict

# 每个 Component 上报的统计周期（秒），固定值
DEFAULT_DURATION = 60


@dataclass
class Sample:
    """单条指标观测值。"""
    name: str
    tags: Dict[str, str] = field(default_factory=dict)
    fields: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def from_dict(cls, data: dict) -> "Sample":
        """从 JSON 对象构造样本，name 必填，其余字段可省略。"""
        if not isinstance(data, dict) or not data.get("name"):
            raise ValueError(f"Sample must be an object with a 'name': {data!r}")
        ts = data.get("timestamp")
        return cls(
            name=str(data["name"]),
            tags={str(k): str(v) for k, v in (data.get("tags") or {}).items()},
            fields=dict(data.get("fields") or {}),
            timestamp=float(ts) if ts is not None else time.time(),
        )


@dataclass
class FieldStat:
    """单个指标路径的累计统计量。"""
    count: int
    total: float
    min: float
    max: float
    sum_of_squares: float

    @classmethod
    def first(cls, value: float) -> "FieldStat":
        return cls(count=1, total=value, min=value, max=value, sum_of_squares=value * value)

    def merge(self, value: float) -> None:
        """合并一个新观测值。"""
        self.count += 1
        self.total += value
        self.sum_of_squares += value * value
        if value > self.max:
            self.max = value
        if value < self.min:
            self.min = value


@dataclass
class Component:
    """一次上报中的一个分组单元，name 为有效主机名。"""
    name: str
    guid: str
    duration: int = DEFAULT_DURATION
    metrics: Dict[str, FieldStat] = field(default_factory=dict)

    def add(self, path: str, value: float) -> None:
        stat = self.metrics.get(path)
        if stat is None:
            self.metrics[path] = FieldStat.first(value)
        else:
            stat.merge(value)
