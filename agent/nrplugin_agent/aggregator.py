"""
指标聚合模块。

将一批 Sample 按 (指标名, 规范化标签串) 分组为 Component，
同一路径的多次观测合并为 count / total / min / max / sum_of_squares。

指标路径格式：
    Component/<name>/<tag values...>/<field key>

标签串只保留按 key 排序后的 value（key 本身不出现在路径中），
下游仪表盘依赖这一命名，不要改成 key=value 形式。
"""
from typing import Dict, List, Optional, Tuple

from nrplugin_agent.models import Component, Sample

PATH_PREFIX = "Component/"
HOST_TAG = "host"
ROOT_TAG_VALUE = "ROOT"

# 单字符同时替换，替换结果不会被其他规则再次处理
_SANITIZE_TABLE = str.maketrans({
    "/": "_",
    " ": "",
    "%": "Percent",
    ":": "_",
    "\\": "_",
    "[": "",
    "]": "",
    ".": "",
    "#": "",
    "_": "",
})


def sanitize(value: str) -> str:
    """清理名称、标签值、字段名中的特殊字符。"""
    return value.translate(_SANITIZE_TABLE)


def sanitize_tag_value(value: str) -> str:
    """标签值为 "/"（如根分区）时映射为 ROOT。"""
    if value == "/":
        return ROOT_TAG_VALUE
    return sanitize(value)


def canonical_tags(tags: Dict[str, str]) -> str:
    """构建规范化标签串：去掉 host，按 key 排序，只拼接清理后的 value。"""
    keys = sorted(k for k in tags if k != HOST_TAG)
    return "/".join(sanitize_tag_value(tags[k]) for k in keys)


def metric_path(name: str, tag_str: str, key: str) -> str:
    parts = [sanitize(name)]
    if tag_str:
        parts.append(tag_str)
    parts.append(sanitize(key))
    return PATH_PREFIX + "/".join(parts)


def field_value(value) -> Optional[float]:
    """把字段值转为 float。

    bool 转为 1.0 / 0.0，整数和浮点数转为 float。
    其他类型（字符串等）返回 None，调用方静默跳过该字段，不视为错误。
    """
    # bool 是 int 的子类，必须先判断
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            # 超出 float 范围的整数同样跳过
            return None
    return None


def build_components(samples: List[Sample], default_host: str, guid: str) -> List[Component]:
    """将样本聚合为 Component 列表。

    Args:
        samples: 本次写入的样本，可以为空。
        default_host: 样本没有 host 标签时使用的主机名。
        guid: 写入每个 Component 的插件标识。

    Returns:
        按分组首次出现顺序排列的 Component 列表。
    """
    groups: Dict[Tuple[str, str], Component] = {}

    for sample in samples:
        tag_str = canonical_tags(sample.tags)
        key = (sample.name, tag_str)
        component = groups.get(key)
        if component is None:
            component = Component(name=sample.tags.get(HOST_TAG) or default_host, guid=guid)
            groups[key] = component

        for field_key, raw in sample.fields.items():
            value = field_value(raw)
            if value is None:
                continue
            component.add(metric_path(sample.name, tag_str, field_key), value)

    return list(groups.values())
