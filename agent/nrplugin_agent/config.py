"""
Agent 配置加载模块。

定义配置数据类，并从 YAML 文件加载配置。
支持环境变量覆盖 license（NEWRELIC_LICENSE_KEY）和超时简写（如 '30s'、'1m'）。
"""
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from nrplugin_agent.exceptions import ConfigError

DEFAULT_URL = "https://platform-api.newrelic.com/platform/v1/metrics"
DEFAULT_GUID = "com.influxdata.telegraf"
LICENSE_ENV = "NEWRELIC_LICENSE_KEY"

SAMPLE_CONFIG = """\
newrelic:
  ## NewRelic license key
  license: ""
  ## Your newrelic plugin identifier
  # guid: "com.influxdata.telegraf"
  # url: "https://platform-api.newrelic.com/platform/v1/metrics"
  # timeout: 30s
host:
  ## Defaults to the local hostname
  # name: ""
"""


@dataclass
class NewRelicConfig:
    """插件 API 连接配置。url / guid 留空时在 connect 时填充默认值。"""
    url: str = ""
    license: str = ""
    guid: str = ""
    timeout: int = 30  # HTTP 超时（秒）


@dataclass
class HostConfig:
    """主机标识配置。"""
    name: str = ""


@dataclass
class AgentConfig:
    """Agent 主配置。"""
    newrelic: NewRelicConfig = field(default_factory=NewRelicConfig)
    host: HostConfig = field(default_factory=HostConfig)


def _parse_interval(val) -> int:
    """解析时间间隔，支持 '15s'、'1m' 等简写格式。"""
    if isinstance(val, int):
        return val
    s = str(val).strip().lower()
    try:
        if s.endswith("s"):
            return int(s[:-1])
        if s.endswith("m"):
            return int(s[:-1]) * 60
        return int(s)
    except ValueError:
        raise ConfigError(f"Invalid interval: {val!r}") from None


def load_config(path: str) -> AgentConfig:
    """从 YAML 文件加载 Agent 配置。

    Args:
        path: 配置文件路径。

    Returns:
        解析后的 AgentConfig 实例。

    Raises:
        FileNotFoundError: 配置文件不存在时抛出。
        ConfigError: 配置格式错误时抛出。
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(p) as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be a mapping: {path}")

    cfg = AgentConfig()

    # 插件 API 配置，license 优先从环境变量读取
    nr = data.get("newrelic") or {}
    cfg.newrelic.url = str(nr.get("url", "") or "").rstrip("/")
    cfg.newrelic.license = os.environ.get(LICENSE_ENV, str(nr.get("license", "") or ""))
    cfg.newrelic.guid = str(nr.get("guid", "") or "")
    cfg.newrelic.timeout = _parse_interval(nr.get("timeout", 30))

    h = data.get("host") or {}
    cfg.host.name = str(h.get("name", "") or "")

    return cfg
