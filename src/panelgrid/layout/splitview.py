"""SplitView - 一维可伸缩视图序列

沿一个轴排列若干 view，负责尺寸再分配：
- resize: 拖动 sash，up 组与 down 组按优先级级联吸收 delta
- distribute_empty_space: 容器尺寸变化 / 删除 view 后填补差额
- layout: 容器尺寸变化（比例布局 + 填补差额）

所有路径都经过纯函数 redistribute()，便于脱离事件单独测试。
"""

from dataclasses import dataclass
from typing import Iterable, Sequence

from ..config import SIZE_EPSILON
from ..errors import InvalidLocation
from ..telemetry import get_logger
from .types import LayoutPriority, Orientation, Sizing, SizingKind, View

logger = get_logger(__name__)


def _clamp(value: float, minimum: float, maximum: float) -> float:
    return max(minimum, min(maximum, value))


def redistribute(
    sizes: Sequence[float],
    bounds: Sequence[tuple[float, float]],
    order: Iterable[int],
    delta: float,
) -> tuple[list[float], float]:
    """按顺序把 delta 级联分给各 view，每个 view 夹在自身 bounds 内

    Args:
        sizes: 当前尺寸
        bounds: 每个 view 的 (min, max)
        order: 参与分配的下标，按吸收顺序
        delta: 待分配量（正数为增长，负数为收缩）

    Returns:
        (新尺寸列表, 未能分配的剩余量)
    """
    result = list(sizes)
    for index in order:
        minimum, maximum = bounds[index]
        current = result[index]
        target = _clamp(current + delta, minimum, maximum)
        delta -= target - current
        result[index] = target
    return result, delta


def priority_order(
    indexes: Iterable[int],
    priorities: Sequence[LayoutPriority],
    low_priority_indexes: Iterable[int] = (),
    high_priority_indexes: Iterable[int] = (),
) -> list[int]:
    """构造确定性的吸收顺序

    在给定顺序上依次：High view 逐个移到最前，Low view 逐个移到最后，
    调用方指定的 high 下标移到最前，调用方指定的 low 下标移到最后。
    不在 indexes 中的指定下标会被忽略。
    """
    order = list(indexes)

    def to_front(index: int) -> None:
        if index in order:
            order.remove(index)
            order.insert(0, index)

    def to_back(index: int) -> None:
        if index in order:
            order.remove(index)
            order.append(index)

    for index in [i for i in order if priorities[i] is LayoutPriority.HIGH]:
        to_front(index)
    for index in [i for i in order if priorities[i] is LayoutPriority.LOW]:
        to_back(index)
    for index in high_priority_indexes:
        to_front(index)
    for index in low_priority_indexes:
        to_back(index)
    return order


@dataclass
class SplitViewItem:
    """SplitView 中的一项；cached_visible_size 非空表示逻辑隐藏"""
    view: View
    size: float
    cached_visible_size: float | None = None

    @property
    def visible(self) -> bool:
        return self.cached_visible_size is None

    @property
    def minimum_size(self) -> float:
        return self.view.minimum_size if self.visible else 0.0

    @property
    def maximum_size(self) -> float:
        return self.view.maximum_size if self.visible else 0.0

    @property
    def bounds(self) -> tuple[float, float]:
        return self.minimum_size, self.maximum_size


def _reveal(item: SplitViewItem) -> None:
    """恢复隐藏前的尺寸（夹到约束内）"""
    item.size = _clamp(item.cached_visible_size, item.view.minimum_size, item.view.maximum_size)
    item.cached_visible_size = None


class SplitView:
    """一维可伸缩视图序列

    size 为容器尺寸；size <= 0 表示尚未布局，此时不做再分配。
    """

    def __init__(
        self,
        orientation: Orientation = Orientation.HORIZONTAL,
        size: float = 0.0,
        proportional_layout: bool = True,
    ):
        self.orientation = orientation
        self.proportional_layout = proportional_layout
        self._size = size
        self._items: list[SplitViewItem] = []
        self._proportions: list[float | None] | None = None

    @classmethod
    def restore(
        cls,
        views: Sequence[View],
        sizes: Sequence[float],
        size: float | None = None,
        orientation: Orientation = Orientation.HORIZONTAL,
        cached_visible_sizes: Sequence[float | None] | None = None,
    ) -> "SplitView":
        """从已有尺寸构造，不触发再分配（用于网格分支）"""
        if len(views) != len(sizes):
            raise InvalidLocation("views and sizes differ in length", views=len(views), sizes=len(sizes))
        split_view = cls(orientation=orientation)
        cached = cached_visible_sizes or [None] * len(views)
        split_view._items = [
            SplitViewItem(view=view, size=0.0 if hidden is not None else view_size, cached_visible_size=hidden)
            for view, view_size, hidden in zip(views, sizes, cached)
        ]
        split_view._size = split_view.content_size if size is None else size
        split_view._save_proportions()
        return split_view

    # === 查询 ===

    @property
    def size(self) -> float:
        return self._size

    @property
    def length(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    @property
    def views(self) -> list[View]:
        return [item.view for item in self._items]

    @property
    def content_size(self) -> float:
        """可见 view 尺寸之和"""
        return sum(item.size for item in self._items if item.visible)

    @property
    def proportions(self) -> list[float | None] | None:
        return list(self._proportions) if self._proportions is not None else None

    def get_view_sizes(self) -> list[float]:
        return [item.size for item in self._items]

    def get_view_size(self, index: int) -> float:
        self._check_index(index)
        return self._items[index].size

    def get_cached_visible_size(self, index: int) -> float | None:
        self._check_index(index)
        return self._items[index].cached_visible_size

    def is_view_visible(self, index: int) -> bool:
        self._check_index(index)
        return self._items[index].visible

    def is_sash_enabled(self, sash_index: int) -> bool:
        """sash 两侧是否存在一侧能缩、另一侧能涨"""
        self._check_sash(sash_index)
        up = [item for item in self._items[: sash_index + 1] if item.visible]
        down = [item for item in self._items[sash_index + 1:] if item.visible]
        up_can_shrink = any(item.size - item.minimum_size > SIZE_EPSILON for item in up)
        up_can_grow = any(item.maximum_size - item.size > SIZE_EPSILON for item in up)
        down_can_shrink = any(item.size - item.minimum_size > SIZE_EPSILON for item in down)
        down_can_grow = any(item.maximum_size - item.size > SIZE_EPSILON for item in down)
        return (up_can_shrink and down_can_grow) or (up_can_grow and down_can_shrink)

    # === 增删 ===

    def add_view(self, view: View, size: float | Sizing, index: int | None = None) -> None:
        """插入 view

        Args:
            view: 要插入的 view
            size: 具体尺寸或 Sizing 策略
            index: 插入位置，默认追加到末尾

        Raises:
            InvalidLocation: index 或 Sizing.split 的下标越界
        """
        if index is None:
            index = len(self._items)
        if not 0 <= index <= len(self._items):
            raise InvalidLocation("view index out of range", index=index, length=len(self._items))

        cached_visible_size = None
        high_priority: list[int] = []
        low_priority: int | None = None
        distribute = False

        if isinstance(size, Sizing):
            kind = size.kind
            if kind is SizingKind.AUTO:
                kind = SizingKind.DISTRIBUTE
            if kind is SizingKind.SPLIT:
                self._check_index(size.index)
                view_size = self._items[size.index].size / 2
                target = size.index + 1 if index <= size.index else size.index
                high_priority.append(target)
            elif kind is SizingKind.INVISIBLE:
                view_size = 0.0
                cached_visible_size = size.cached_visible_size
            else:
                view_size = view.minimum_size
                distribute = True
        else:
            view_size = size
            low_priority = index

        self._items.insert(index, SplitViewItem(view, view_size, cached_visible_size))
        self._relayout(low_priority_index=low_priority, high_priority_indexes=high_priority)
        if distribute:
            self.distribute_view_sizes()
        else:
            self._save_proportions()

    def remove_view(self, index: int) -> View:
        """删除 view，空出的尺寸按分配顺序交给剩余 view

        剩余 view 全部隐藏时把它们重新显示。
        """
        self._check_index(index)
        item = self._items.pop(index)
        if self._items and not any(other.visible for other in self._items):
            for other in self._items:
                _reveal(other)
        self._relayout()
        self._save_proportions()
        return item.view

    def move_view(self, from_index: int, to_index: int) -> None:
        """调整 view 顺序，尺寸不变"""
        self._check_index(from_index)
        self._check_index(to_index)
        item = self._items.pop(from_index)
        self._items.insert(to_index, item)
        self._save_proportions()

    def set_view_visible(self, index: int, visible: bool) -> None:
        """显示/隐藏 view；隐藏时记住可见尺寸，显示时恢复

        Raises:
            InvalidLocation: 试图隐藏最后一个可见 view
        """
        self._check_index(index)
        item = self._items[index]
        if visible == item.visible:
            return
        if visible:
            _reveal(item)
        else:
            if not any(other.visible for other in self._items if other is not item):
                raise InvalidLocation("cannot hide the last visible view", index=index)
            item.cached_visible_size = item.size
            item.size = 0.0
        self._relayout(low_priority_index=index)
        self._save_proportions()

    # === 尺寸再分配 ===

    def resize(
        self,
        sash_index: int,
        delta: float,
        low_priority_indexes: Iterable[int] = (),
        high_priority_indexes: Iterable[int] = (),
    ) -> float:
        """拖动 sash

        up 组为 [sash_index..0]，down 组为 [sash_index+1..n-1]。delta 先夹到
        两组都能承受的范围，再在 up 组按优先级级联施加，down 组施加相反量。

        Returns:
            实际生效的 delta
        """
        self._check_sash(sash_index)
        low_priority_indexes = list(low_priority_indexes)
        high_priority_indexes = list(high_priority_indexes)
        priorities = [item.view.priority for item in self._items]
        up = priority_order(
            range(sash_index, -1, -1), priorities, low_priority_indexes, high_priority_indexes
        )
        down = priority_order(
            range(sash_index + 1, len(self._items)), priorities, low_priority_indexes, high_priority_indexes
        )

        sizes = self.get_view_sizes()
        bounds = [item.bounds for item in self._items]

        min_delta_up = sum(bounds[i][0] - sizes[i] for i in up)
        max_delta_up = sum(bounds[i][1] - sizes[i] for i in up)
        max_delta_down = sum(sizes[i] - bounds[i][0] for i in down) if down else float("inf")
        min_delta_down = sum(sizes[i] - bounds[i][1] for i in down) if down else float("-inf")

        min_delta = max(min_delta_up, min_delta_down)
        max_delta = min(max_delta_down, max_delta_up)
        applied = _clamp(delta, min_delta, max_delta)

        sizes, _ = redistribute(sizes, bounds, up, applied)
        sizes, _ = redistribute(sizes, bounds, down, -applied)
        for item, new_size in zip(self._items, sizes):
            item.size = new_size

        self._save_proportions()
        return applied

    def distribute_empty_space(
        self,
        target_size: float | None = None,
        low_priority_index: int | None = None,
        high_priority_indexes: Iterable[int] = (),
    ) -> float:
        """把 target_size 与 content_size 的差额分给各 view

        顺序：逆序下标，High 提前，Low 置后，low_priority_index 最后。

        Returns:
            未能吸收的剩余量
        """
        target = self._size if target_size is None else target_size
        priorities = [item.view.priority for item in self._items]
        low = [low_priority_index] if low_priority_index is not None else []
        order = priority_order(
            range(len(self._items) - 1, -1, -1), priorities, low, high_priority_indexes
        )
        sizes, remaining = redistribute(
            self.get_view_sizes(),
            [item.bounds for item in self._items],
            order,
            target - self.content_size,
        )
        for item, new_size in zip(self._items, sizes):
            item.size = new_size
        return remaining

    def distribute_view_sizes(self) -> None:
        """所有可见 view 均分容器尺寸（受 bounds 限制）"""
        visible = [item for item in self._items if item.visible]
        if visible and self._size > 0:
            share = self._size / len(visible)
            for item in visible:
                item.size = _clamp(share, item.minimum_size, item.maximum_size)
        self._relayout()
        self._save_proportions()

    def layout(self, size: float) -> None:
        """容器尺寸变化

        开启比例布局且已有比例时先按比例缩放，再填补差额。
        """
        previous = self._size
        self._size = size
        if size <= 0:
            return
        if self.proportional_layout and self._proportions is not None:
            for item, proportion in zip(self._items, self._proportions):
                if proportion is not None and item.visible:
                    item.size = _clamp(proportion * size, item.minimum_size, item.maximum_size)
        self.distribute_empty_space(size)
        if previous != size:
            logger.debug(f"[SplitView] layout {previous:.1f} -> {size:.1f} ({len(self._items)} views)")

    def resize_view(self, index: int, size: float) -> None:
        """直接设置某个 view 的尺寸（夹到 bounds），其余 view 补齐差额"""
        self._check_index(index)
        item = self._items[index]
        if not item.visible:
            item.cached_visible_size = _clamp(size, item.view.minimum_size, item.view.maximum_size)
            return
        item.size = _clamp(size, item.minimum_size, item.maximum_size)
        self._relayout(low_priority_index=index)
        self._save_proportions()

    # === 内部 ===

    def _relayout(
        self,
        low_priority_index: int | None = None,
        high_priority_indexes: Iterable[int] = (),
    ) -> None:
        for item in self._items:
            if item.visible:
                item.size = _clamp(item.size, item.minimum_size, item.maximum_size)
        if self._size > 0:
            self.distribute_empty_space(self._size, low_priority_index, high_priority_indexes)

    def _save_proportions(self) -> None:
        content_size = self.content_size
        if self.proportional_layout and content_size > 0:
            self._proportions = [
                item.size / content_size if item.visible and item.view.proportional_layout else None
                for item in self._items
            ]

    def _check_index(self, index: int | None) -> None:
        if index is None or not 0 <= index < len(self._items):
            raise InvalidLocation("view index out of range", index=index, length=len(self._items))

    def _check_sash(self, sash_index: int) -> None:
        if not 0 <= sash_index < len(self._items) - 1:
            raise InvalidLocation("sash index out of range", sash=sash_index, length=len(self._items))
