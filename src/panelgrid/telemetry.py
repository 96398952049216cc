"""Telemetry - 统一日志和指标入口

提供统一的日志工厂和指标 facade，便于观测性追踪。

日志格式: [module:group[:12]] msg
指标示例: grid.split, grid.close, resize.rejected, persist.error
"""

import logging

from .config import LOG_LEVEL, METRICS_ENABLED
from .core.ids import short_id

_LOG_FORMAT = "[%(name)s] %(message)s"


def get_logger(name: str) -> logging.Logger:
    """获取带模块前缀的 logger

    Args:
        name: 模块名（通常使用 __name__）

    Returns:
        配置好的 Logger 实例
    """
    return logging.getLogger(name)


def setup_logging(level: str | None = None) -> None:
    """配置根 logger（仅入口调用）"""
    logging.basicConfig(level=(level or LOG_LEVEL).upper(), format=_LOG_FORMAT)


def format_group_log(module: str, group_id: str, msg: str) -> str:
    """格式化带 group_id 的日志消息

    group id 形如 ``panel-group-<ms>-<rand>``，只保留随机尾部。

    Returns:
        格式化的消息: [module:group_id] msg
    """
    short = short_id(group_id)
    return f"[{module}:{short}] {msg}"


class Metrics:
    """指标收集 facade

    提供简单的计数器和 gauge 接口，内存存储。
    """

    def __init__(self, enabled: bool = METRICS_ENABLED):
        self.enabled = enabled
        self._counters: dict[str, int] = {}
        self._gauges: dict[str, float] = {}

    def inc(self, name: str, labels: dict[str, str] | None = None, value: int = 1) -> None:
        """递增计数器

        Args:
            name: 指标名（如 "resize.rejected"）
            labels: 可选标签（如 {"reason": "flap"}）
            value: 递增值，默认 1
        """
        if not self.enabled:
            return
        key = self._make_key(name, labels)
        self._counters[key] = self._counters.get(key, 0) + value

    def gauge(self, name: str, value: float, labels: dict[str, str] | None = None) -> None:
        """设置 gauge 值"""
        if not self.enabled:
            return
        key = self._make_key(name, labels)
        self._gauges[key] = value

    def get_counter(self, name: str, labels: dict[str, str] | None = None) -> int:
        """获取计数器值（用于测试）"""
        return self._counters.get(self._make_key(name, labels), 0)

    def get_gauge(self, name: str, labels: dict[str, str] | None = None) -> float:
        """获取 gauge 值（用于测试）"""
        return self._gauges.get(self._make_key(name, labels), 0.0)

    def reset(self) -> None:
        """重置所有指标（用于测试）"""
        self._counters.clear()
        self._gauges.clear()

    def _make_key(self, name: str, labels: dict[str, str] | None) -> str:
        if not labels:
            return name
        label_str = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
        return f"{name}{{{label_str}}}"


# 全局指标实例
metrics = Metrics()
