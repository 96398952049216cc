"""Panel 模块数据类型定义

包含：
- TabKind: 标签页种类（封闭集合）
- Tab: 标签页，payload 对引擎不透明
- PanelGroup: 网格叶子上的标签页容器
- TabContextMenuAction: 标签页右键菜单动作
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Generic, TypeVar

from ..errors import SerializationError

PayloadT = TypeVar("PayloadT")


class TabKind(Enum):
    """标签页种类

    引擎本身不按 kind 分支，仅在加载旧数据时做 kind 迁移。
    """
    AGENT = "agent"
    WORKSPACE = "workspace"
    DECK = "deck"
    TERMINAL = "terminal"
    EDITOR = "editor"
    SERVER = "server"
    MCP = "mcp"
    REMOTE_ACCESS = "remoteAccess"
    SERVER_SETTINGS = "serverSettings"
    AGENT_STATUS = "agentStatus"
    AGENT_CONFIG = "agentConfig"
    AGENT_CONFIG_LOCAL = "agentConfigLocal"
    SETUP = "setup"


class TabContextMenuAction(Enum):
    """标签页右键菜单动作"""
    CLOSE = "close"
    CLOSE_OTHERS = "closeOthers"
    CLOSE_TO_THE_RIGHT = "closeToTheRight"
    CLOSE_TO_THE_LEFT = "closeToTheLeft"
    CLOSE_ALL = "closeAll"
    SPLIT_RIGHT = "splitRight"
    SPLIT_LEFT = "splitLeft"
    SPLIT_UP = "splitUp"
    SPLIT_DOWN = "splitDown"
    PIN = "pin"
    UNPIN = "unpin"
    DUPLICATE = "duplicate"


@dataclass
class Tab(Generic[PayloadT]):
    """标签页

    同一时刻只属于一个 PanelGroup；跨组移动是所有权转移，不会复制。
    synced 标签页来自其它设备镜像，不参与持久化。
    """
    id: str
    kind: TabKind
    title: str
    data: PayloadT | None = None
    icon: str | None = None
    dirty: bool = False
    pinned: bool = False
    synced: bool = False
    sync_key: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "kind": self.kind.value,
            "title": self.title,
            "data": self.data if self.data is not None else {},
        }
        if self.icon is not None:
            result["icon"] = self.icon
        if self.dirty:
            result["dirty"] = True
        if self.pinned:
            result["pinned"] = True
        if self.sync_key is not None:
            result["syncKey"] = self.sync_key
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Tab":
        """从持久化字典恢复；kind 需已迁移为当前值

        Raises:
            SerializationError: 缺少字段或 kind 未知
        """
        if not isinstance(data, dict):
            raise SerializationError("tab must be an object")
        tab_id, title = data.get("id"), data.get("title")
        if not isinstance(tab_id, str) or not isinstance(title, str):
            raise SerializationError("tab id/title must be strings", id=tab_id)
        try:
            kind = TabKind(data.get("kind"))
        except ValueError as e:
            raise SerializationError("unknown tab kind", id=tab_id, kind=data.get("kind")) from e
        return cls(
            id=tab_id,
            kind=kind,
            title=title,
            data=data.get("data"),
            icon=data.get("icon"),
            dirty=bool(data.get("dirty", False)),
            pinned=bool(data.get("pinned", False)),
            sync_key=data.get("syncKey"),
        )


@dataclass
class PanelGroup:
    """网格叶子上的标签页容器

    不变量：active_tab_id 为 None（无标签页）或 tabs 中某个标签页的 id。
    percentage 为该叶子占父分支的百分比，由 PanelManager 同步。
    """
    id: str
    tabs: list[Tab] = field(default_factory=list)
    active_tab_id: str | None = None
    focused: bool = False
    percentage: float = 100.0

    @property
    def is_empty(self) -> bool:
        return not self.tabs

    @property
    def active_tab(self) -> Tab | None:
        return self.get_tab(self.active_tab_id) if self.active_tab_id else None

    def get_tab(self, tab_id: str) -> Tab | None:
        for tab in self.tabs:
            if tab.id == tab_id:
                return tab
        return None

    def index_of(self, tab_id: str) -> int:
        for index, tab in enumerate(self.tabs):
            if tab.id == tab_id:
                return index
        return -1

    def has_tab(self, tab_id: str) -> bool:
        return self.index_of(tab_id) >= 0

    def repair_active_tab(self) -> None:
        """active_tab_id 失效时回退到第一个标签页"""
        if self.active_tab_id is None or not self.has_tab(self.active_tab_id):
            self.active_tab_id = self.tabs[0].id if self.tabs else None

    def copy(self) -> "PanelGroup":
        return replace(self, tabs=list(self.tabs))

    def to_dict(self, include_synced: bool = False) -> dict[str, Any]:
        tabs = [tab for tab in self.tabs if include_synced or not tab.synced]
        active = self.active_tab_id
        if active is not None and not any(tab.id == active for tab in tabs):
            active = tabs[0].id if tabs else None
        return {
            "id": self.id,
            "tabs": [tab.to_dict() for tab in tabs],
            "activeTabId": active,
            "focused": self.focused,
            "percentage": self.percentage,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PanelGroup":
        """从持久化字典恢复

        Raises:
            SerializationError: 结构不合法
        """
        if not isinstance(data, dict) or not isinstance(data.get("id"), str):
            raise SerializationError("panel group must be an object with a string id")
        raw_tabs = data.get("tabs", [])
        if not isinstance(raw_tabs, list):
            raise SerializationError("panel group tabs must be a list", id=data["id"])
        percentage = data.get("percentage", 100.0)
        if not isinstance(percentage, (int, float)) or isinstance(percentage, bool):
            raise SerializationError("panel group percentage must be a number", id=data["id"])
        tabs: list[Tab] = []
        for raw in raw_tabs:
            tab = Tab.from_dict(raw)
            if not any(existing.id == tab.id for existing in tabs):
                tabs.append(tab)
        group = cls(
            id=data["id"],
            tabs=tabs,
            active_tab_id=data.get("activeTabId"),
            focused=bool(data.get("focused", False)),
            percentage=float(percentage),
        )
        group.repair_active_tab()
        return group
