"""
插件 API 请求/响应模型

定义上报到 New Relic plugin API 的请求体结构与响应体结构。
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_serializer

from nrplugin_agent.models import Component


class AgentInfo(BaseModel):
    """Agent 身份信息，connect 时生成一次，之后只读。"""
    host: str
    pid: int
    version: str

    model_config = {"frozen": True}


class MetricValue(BaseModel):
    """单个指标路径的统计值。"""
    count: int
    total: float = Field(allow_inf_nan=False)
    min: float = Field(allow_inf_nan=False)
    max: float = Field(allow_inf_nan=False)
    sum_of_squares: float = Field(allow_inf_nan=False)


class ComponentPayload(BaseModel):
    """请求体中的一个 Component。"""
    name: str
    guid: str
    duration: int
    metrics: Dict[str, MetricValue]

    @field_serializer("duration")
    def serialize_duration(self, duration: int) -> str:
        # 接口要求 duration 为字符串形式的整数
        return str(duration)

    @classmethod
    def from_component(cls, component: Component) -> "ComponentPayload":
        return cls(
            name=component.name,
            guid=component.guid,
            duration=component.duration,
            metrics={
                path: MetricValue(
                    count=stat.count,
                    total=stat.total,
                    min=stat.min,
                    max=stat.max,
                    sum_of_squares=stat.sum_of_squares,
                )
                for path, stat in component.metrics.items()
            },
        )


class MetricRequest(BaseModel):
    """上报请求体：agent 身份 + Component 列表。"""
    agent: AgentInfo
    components: List[ComponentPayload]

    @classmethod
    def build(cls, agent: AgentInfo, components: List[Component]) -> "MetricRequest":
        return cls(agent=agent, components=[ComponentPayload.from_component(c) for c in components])


class PluginResponse(BaseModel):
    """接口响应体。"""
    error: Optional[str] = None
    status: Optional[str] = None
