"""拖拽会话

把拖拽过程中的指针事件接到 Edge/Split 检测与 PanelManager：
- move(): 采样指针位置，计算目标叶子与分割方向
- over_tab(): 指针悬停在某个 group 的标签栏上
- end(): 松开时若分割区域激活则 split_panel，否则 reorder_tabs / move_tab
"""

from dataclasses import dataclass
from enum import Enum

from ..errors import InvalidLocation
from ..layout.edges import detect_edge_direction
from ..layout.types import SplitDirection
from ..telemetry import get_logger
from .manager import PanelManager

logger = get_logger(__name__)


class DropKind(Enum):
    SPLIT = "split"
    MOVE = "move"
    REORDER = "reorder"
    NONE = "none"


@dataclass
class DropResult:
    """松开后的结果；group_id 为标签页最终所在的 group"""
    kind: DropKind
    tab_id: str
    group_id: str
    direction: SplitDirection | None = None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "tabId": self.tab_id,
            "groupId": self.group_id,
            "direction": self.direction.value if self.direction else None,
        }


class DragSession:
    """一次标签页拖拽"""

    def __init__(
        self,
        manager: PanelManager,
        tab_id: str,
        source_group_id: str,
        prefer_vertical: bool = False,
    ):
        source = manager.get_group(source_group_id)
        if not source.has_tab(tab_id):
            raise InvalidLocation("tab not in group", group_id=source_group_id, tab_id=tab_id)
        self.manager = manager
        self.tab_id = tab_id
        self.source_group_id = source_group_id
        self.prefer_vertical = prefer_vertical
        self.target_group_id: str | None = None
        self.direction: SplitDirection | None = None
        self.tab_index: int | None = None
        self.active = True

    def move(self, x: float, y: float, target_group_id: str | None = None) -> SplitDirection | None:
        """采样一次指针移动

        Args:
            x: 指针 x
            y: 指针 y
            target_group_id: 宿主已知的目标 group；省略时按坐标命中测试

        Returns:
            当前分割方向，中心区域为 None
        """
        if not self.active:
            return None
        if target_group_id is not None:
            box = self.manager.leaf_box(target_group_id)
        else:
            box = self.manager.hit_test(x, y)
        self.tab_index = None
        if box is None:
            self.target_group_id = None
            self.direction = None
            return None
        self.target_group_id = box.group_id
        self.direction = detect_edge_direction(
            x,
            y,
            box.rect,
            prefer_vertical=self.prefer_vertical,
            current_orientation=box.parent_orientation,
        )
        return self.direction

    def over_tab(self, group_id: str, index: int) -> None:
        """指针悬停在标签栏的第 index 个位置"""
        if not self.active:
            return
        self.manager.get_group(group_id)
        self.target_group_id = group_id
        self.direction = None
        self.tab_index = index

    def cancel(self) -> None:
        self.active = False
        self.target_group_id = None
        self.direction = None
        self.tab_index = None

    def end(self) -> DropResult:
        """松开指针，执行对应操作"""
        if not self.active or self.target_group_id is None:
            self.cancel()
            return DropResult(DropKind.NONE, self.tab_id, self.source_group_id)

        target, direction, index = self.target_group_id, self.direction, self.tab_index
        self.active = False

        if direction is not None:
            new_group_id = self.manager.split_panel(
                target, direction, moving_tab_id=self.tab_id, source_group_id=self.source_group_id
            )
            logger.debug(f"[Drag] {self.tab_id} split {direction.value} of {target}")
            return DropResult(DropKind.SPLIT, self.tab_id, new_group_id, direction)

        if target == self.source_group_id:
            source = self.manager.get_group(self.source_group_id)
            from_index = source.index_of(self.tab_id)
            if index is None or from_index < 0:
                return DropResult(DropKind.NONE, self.tab_id, self.source_group_id)
            to_index = min(max(index, 0), len(source.tabs) - 1)
            self.manager.reorder_tabs(self.source_group_id, from_index, to_index)
            return DropResult(DropKind.REORDER, self.tab_id, self.source_group_id)

        self.manager.move_tab(self.tab_id, self.source_group_id, target, index)
        return DropResult(DropKind.MOVE, self.tab_id, target)
