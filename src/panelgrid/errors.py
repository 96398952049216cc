"""panelgrid 异常层次

网格与面板变更同步抛出异常且不修改状态，调用方可在宿主边界捕获
``PanelGridError`` 后继续运行。

异常层次:
    PanelGridError (基类)
    ├── InvalidLocation - 不存在的网格位置、group 或索引
    ├── CannotCloseLastPanel - 关闭唯一剩余的 group
    ├── MaxSplitDepthExceeded - 分支已达到 group 数量上限
    └── SerializationError - 持久化布局文档结构不合法
"""

from typing import Any


class PanelGridError(Exception):
    """panelgrid 所有异常的基类

    Attributes:
        message: 错误描述
        context: 附加上下文（位置、group id、索引等）
    """

    def __init__(self, message: str, **context: Any) -> None:
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class InvalidLocation(PanelGridError):
    """位置、group id 或索引无法解析到节点"""


class CannotCloseLastPanel(PanelGridError):
    """不能关闭最后一个 panel group"""


class MaxSplitDepthExceeded(PanelGridError):
    """分支中的兄弟 group 已达上限"""


class SerializationError(PanelGridError):
    """持久化布局文档结构不合法"""
