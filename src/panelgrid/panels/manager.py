"""PanelManager - 面板 / 标签页管理

单写者控制器：独占一个 GridState 和 {group_id: PanelGroup} 映射。
所有操作同步执行，先在新网格上计算，成功后再一次性提交；失败时抛出
PanelGridError 子类，网格与 group 均保持不变。

职责：
1. 标签页选择 / 关闭 / 移动 / 重排
2. 面板分割 / 关闭 / 调整尺寸 / 聚焦
3. 外部尺寸上报经 ResizeFlapGuard 过滤后再应用
4. 渲染模型与持久化快照
"""

import time
from dataclasses import replace
from typing import Any, Callable

from ..config import EDITOR_MAX_GROUPS_PER_BRANCH, MAX_GROUPS_PER_BRANCH, PERSIST_KEY
from ..core.ids import generate_group_id, generate_tab_id
from ..errors import CannotCloseLastPanel, InvalidLocation, MaxSplitDepthExceeded
from ..layout.flap_guard import ResizeFlapGuard
from ..layout.grid import (
    add_view_to_grid,
    create_grid_state,
    find_first_sibling_leaf,
    find_leaf_by_group_id,
    find_node_at_location,
    get_all_leaves,
    insertion_target,
    layout_grid,
    leaf_boxes,
    parent_orientation,
    remove_view_from_grid,
    resize_leaf,
    resize_leaf_by,
    serialize_grid,
    set_leaf_visible,
)
from ..layout.types import GridLeaf, GridState, LeafBox, Orientation, SplitDirection, ViewConstraints
from ..telemetry import format_group_log, get_logger, metrics
from .migration import leaf_percentage
from .persistence import LayoutStorage, build_layout_document, load_layout, save_layout
from .types import PanelGroup, Tab, TabContextMenuAction

logger = get_logger(__name__)

ChangeCallback = Callable[["PanelManager"], None]

_SPLIT_ACTIONS = {
    TabContextMenuAction.SPLIT_RIGHT: SplitDirection.RIGHT,
    TabContextMenuAction.SPLIT_LEFT: SplitDirection.LEFT,
    TabContextMenuAction.SPLIT_UP: SplitDirection.UP,
    TabContextMenuAction.SPLIT_DOWN: SplitDirection.DOWN,
}


class PanelManager:
    """网格叶子 + PanelGroup 的单写者控制器"""

    def __init__(
        self,
        grid: GridState | None = None,
        groups: dict[str, PanelGroup] | None = None,
        max_groups_per_branch: int = MAX_GROUPS_PER_BRANCH,
        constraints: dict[str, ViewConstraints] | None = None,
        editor: bool = False,
    ):
        self.max_groups_per_branch = max_groups_per_branch
        self.editor = editor
        self._constraints: dict[str, ViewConstraints] = dict(constraints or {})
        self._groups: dict[str, PanelGroup] = dict(groups or {})
        self._guards: dict[str, ResizeFlapGuard] = {}
        self._callbacks: list[ChangeCallback] = []

        if grid is None:
            group_id = next(iter(self._groups), None) or generate_group_id(editor)
            grid = create_grid_state(group_id)
        self._grid = grid
        self._reconcile()

        focused = [group_id for group_id, group in self._groups.items() if group.focused]
        self._focused_group_id = focused[0] if focused else get_all_leaves(self._grid)[0][1].group_id
        self._apply_focus()
        self._sync_percentages()

    @classmethod
    def for_editor(cls, **kwargs: Any) -> "PanelManager":
        """编辑器变体：每个 branch 最多 3 个 group"""
        kwargs.setdefault("max_groups_per_branch", EDITOR_MAX_GROUPS_PER_BRANCH)
        return cls(editor=True, **kwargs)

    @classmethod
    def restore(
        cls,
        storage: LayoutStorage,
        key: str = PERSIST_KEY,
        **kwargs: Any,
    ) -> "PanelManager":
        """从存储恢复；没有或不合法的布局从单叶子新布局开始"""
        loaded = load_layout(storage, key)
        if loaded is None:
            return cls(**kwargs)
        return cls(grid=loaded.to_grid_state(), groups=loaded.groups, **kwargs)

    # === 查询 ===

    @property
    def grid(self) -> GridState:
        return self._grid

    @property
    def groups(self) -> dict[str, PanelGroup]:
        return dict(self._groups)

    @property
    def focused_group_id(self) -> str:
        return self._focused_group_id

    def get_group(self, group_id: str) -> PanelGroup:
        group = self._groups.get(group_id)
        if group is None:
            raise InvalidLocation("unknown panel group", group_id=group_id)
        return group

    def group_ids(self) -> list[str]:
        """按网格先序排列的 group id"""
        return [leaf.group_id for _, leaf in get_all_leaves(self._grid)]

    def find_group_of_tab(self, tab_id: str) -> PanelGroup | None:
        for group in self._groups.values():
            if group.has_tab(tab_id):
                return group
        return None

    def leaf_box(self, group_id: str) -> LeafBox:
        for box in leaf_boxes(self._grid):
            if box.group_id == group_id:
                return box
        raise InvalidLocation("group not in grid", group_id=group_id)

    def hit_test(self, x: float, y: float) -> LeafBox | None:
        """指针所在的叶子"""
        for box in leaf_boxes(self._grid):
            if box.leaf.visible and box.rect.contains(x, y):
                return box
        return None

    def on_change(self, callback: ChangeCallback) -> None:
        """注册变更回调"""
        self._callbacks.append(callback)

    def set_constraints(self, group_id: str, constraints: ViewConstraints) -> None:
        self._constraints[group_id] = constraints

    # === 标签页操作 ===

    def add_tab(
        self, group_id: str, tab: Tab, index: int | None = None, activate: bool = True
    ) -> Tab:
        """向 group 添加标签页

        Raises:
            InvalidLocation: group 不存在，或该标签页已在其它 group 中
        """
        group = self.get_group(group_id)
        owner = self.find_group_of_tab(tab.id)
        if owner is group:
            return group.get_tab(tab.id)
        if owner is not None:
            raise InvalidLocation("tab already open in another group", tab_id=tab.id, group_id=owner.id)
        if index is None or not 0 <= index <= len(group.tabs):
            index = len(group.tabs)
        group.tabs.insert(index, tab)
        if activate or group.active_tab_id is None:
            group.active_tab_id = tab.id
        self._notify()
        return tab

    def select_tab(self, group_id: str, tab_id: str) -> None:
        group = self.get_group(group_id)
        if not group.has_tab(tab_id):
            raise InvalidLocation("tab not in group", group_id=group_id, tab_id=tab_id)
        group.active_tab_id = tab_id
        self._set_focus(group_id)
        self._notify()

    def close_tab(self, group_id: str, tab_id: str) -> Tab:
        """关闭标签页

        关闭 active 标签页时选中其后一个，若是最后一个则选中前一个，
        group 变空时为 None。
        """
        group = self.get_group(group_id)
        if not group.has_tab(tab_id):
            raise InvalidLocation("tab not in group", group_id=group_id, tab_id=tab_id)
        tab = self._detach_tab(group, tab_id)
        self._notify()
        return tab

    def move_tab(
        self,
        tab_id: str,
        source_group_id: str,
        target_group_id: str,
        index: int | None = None,
    ) -> bool:
        """把标签页的所有权从 source 转移到 target，并在 target 中激活

        target 已包含该标签页时为幂等空操作。source 变空后保留。
        """
        source = self.get_group(source_group_id)
        target = self.get_group(target_group_id)
        if target.has_tab(tab_id):
            return True
        if not source.has_tab(tab_id):
            raise InvalidLocation("tab not in group", group_id=source_group_id, tab_id=tab_id)

        tab = self._detach_tab(source, tab_id)
        if index is None or not 0 <= index <= len(target.tabs):
            index = len(target.tabs)
        target.tabs.insert(index, tab)
        target.active_tab_id = tab_id
        self._set_focus(target_group_id)
        logger.debug(format_group_log("Panels", target_group_id, f"moved tab {tab_id} from {source_group_id}"))
        self._notify()
        return True

    def reorder_tabs(self, group_id: str, from_index: int, to_index: int) -> None:
        group = self.get_group(group_id)
        count = len(group.tabs)
        if not (0 <= from_index < count and 0 <= to_index < count):
            raise InvalidLocation("tab index out of range", group_id=group_id, from_index=from_index, to_index=to_index)
        if from_index == to_index:
            return
        group.tabs.insert(to_index, group.tabs.pop(from_index))
        self._notify()

    def duplicate_tab(self, group_id: str, tab_id: str) -> Tab:
        """复制标签页（新 id），插在原标签页之后并激活"""
        group = self.get_group(group_id)
        index = group.index_of(tab_id)
        if index < 0:
            raise InvalidLocation("tab not in group", group_id=group_id, tab_id=tab_id)
        original = group.tabs[index]
        copy = replace(original, id=generate_tab_id(), pinned=False, synced=False, sync_key=None)
        return self.add_tab(group_id, copy, index + 1)

    def handle_context_action(
        self, group_id: str, tab_id: str, action: TabContextMenuAction | str
    ) -> str | None:
        """执行标签页右键菜单动作

        Returns:
            分割动作返回新 group id，复制动作返回新 tab id，其余为 None
        """
        action = TabContextMenuAction(action)
        group = self.get_group(group_id)
        index = group.index_of(tab_id)
        if index < 0:
            raise InvalidLocation("tab not in group", group_id=group_id, tab_id=tab_id)

        if action in _SPLIT_ACTIONS:
            return self.split_panel(group_id, _SPLIT_ACTIONS[action])
        if action is TabContextMenuAction.DUPLICATE:
            return self.duplicate_tab(group_id, tab_id).id
        if action is TabContextMenuAction.CLOSE:
            self.close_tab(group_id, tab_id)
            return None
        if action in (TabContextMenuAction.PIN, TabContextMenuAction.UNPIN):
            group.tabs[index].pinned = action is TabContextMenuAction.PIN
            self._notify()
            return None

        if action is TabContextMenuAction.CLOSE_OTHERS:
            keep = [tab for tab in group.tabs if tab.id == tab_id]
            group.active_tab_id = tab_id
        elif action is TabContextMenuAction.CLOSE_TO_THE_RIGHT:
            keep = group.tabs[: index + 1]
        elif action is TabContextMenuAction.CLOSE_TO_THE_LEFT:
            keep = group.tabs[index:]
        else:
            keep = []
        group.tabs = keep
        if group.active_tab_id is None or not group.has_tab(group.active_tab_id):
            group.active_tab_id = tab_id if group.has_tab(tab_id) else None
        self._notify()
        return None

    # === 面板操作 ===

    def split_panel(
        self,
        group_id: str,
        direction: SplitDirection | str,
        moving_tab_id: str | None = None,
        source_group_id: str | None = None,
    ) -> str:
        """在 group 旁分割出新 group

        Args:
            group_id: 目标 group
            direction: 分割方向（up/down ⇒ vertical, left/right ⇒ horizontal）
            moving_tab_id: 可选，移入新 group 的标签页
            source_group_id: moving_tab_id 所在 group，默认为 group_id

        Returns:
            新 group id

        Raises:
            InvalidLocation: group 或标签页不存在
            MaxSplitDepthExceeded: 目标分支已有最大数量的 group
        """
        direction = SplitDirection(direction)
        self.get_group(group_id)
        source = self.get_group(source_group_id or group_id)
        if moving_tab_id is not None and not source.has_tab(moving_tab_id):
            raise InvalidLocation("tab not in group", group_id=source.id, tab_id=moving_tab_id)

        location = self._location_of(group_id)
        orientation = direction.orientation
        branch_location = insertion_target(self._grid, location, orientation)
        if branch_location is not None:
            branch = find_node_at_location(self._grid, branch_location)
            if len(branch.children) >= self.max_groups_per_branch:
                metrics.inc("grid.split_rejected")
                raise MaxSplitDepthExceeded(
                    "branch already holds the maximum number of groups",
                    group_id=group_id,
                    maximum=self.max_groups_per_branch,
                )

        new_group = PanelGroup(id=generate_group_id(self.editor))
        new_grid = add_view_to_grid(
            self._grid,
            location,
            GridLeaf(new_group.id),
            orientation,
            before=direction.inserts_before,
            constraints=self._constraints,
        )

        self._grid = new_grid
        self._groups[new_group.id] = new_group
        if moving_tab_id is not None:
            tab = self._detach_tab(source, moving_tab_id)
            new_group.tabs.append(tab)
            new_group.active_tab_id = tab.id
        self._set_focus(new_group.id)
        self._sync_percentages()
        metrics.inc("grid.split", {"direction": direction.value})
        logger.info(format_group_log("Panels", group_id, f"split {direction.value} -> {new_group.id}"))
        self._notify()
        return new_group.id

    def close_panel(self, group_id: str) -> str:
        """关闭 group，标签页转移到父分支中第一个剩余的兄弟 group

        Returns:
            接收标签页的 group id

        Raises:
            CannotCloseLastPanel: 网格中只剩这一个叶子
        """
        group = self.get_group(group_id)
        location = self._location_of(group_id)
        if not location:
            raise CannotCloseLastPanel("cannot close the last panel group", group_id=group_id)

        _, sibling_leaf = find_first_sibling_leaf(self._grid, location)
        new_grid = remove_view_from_grid(self._grid, location, self._constraints)

        target = self._groups[sibling_leaf.group_id]
        target.tabs.extend(group.tabs)
        if target.active_tab_id is None:
            target.active_tab_id = group.active_tab_id
        target.repair_active_tab()

        self._grid = new_grid
        del self._groups[group_id]
        self._guards.pop(group_id, None)
        self._constraints.pop(group_id, None)
        if self._focused_group_id == group_id:
            self._set_focus(target.id)
        self._sync_percentages()
        metrics.inc("grid.close")
        logger.info(format_group_log("Panels", group_id, f"closed, {len(group.tabs)} tabs -> {target.id}"))
        self._notify()
        return target.id

    def resize_panel(self, group_id: str, delta: float) -> float:
        """沿父分支方向把 group 增大 delta（负数为缩小）

        Returns:
            实际生效的 delta
        """
        self.get_group(group_id)
        new_grid, applied = resize_leaf_by(self._grid, group_id, delta, self._constraints)
        self._grid = new_grid
        self._sync_percentages()
        self._notify()
        return applied

    def set_panel_size(self, group_id: str, size: float) -> None:
        self.get_group(group_id)
        self._grid = resize_leaf(self._grid, group_id, size, self._constraints)
        self._sync_percentages()
        self._notify()

    def set_panel_visible(self, group_id: str, visible: bool) -> None:
        self.get_group(group_id)
        self._grid = set_leaf_visible(self._grid, group_id, visible, self._constraints)
        self._sync_percentages()
        self._notify()

    def focus_panel(self, group_id: str) -> None:
        self.get_group(group_id)
        self._set_focus(group_id)
        self._notify()

    def layout(self, width: float, height: float) -> None:
        """容器尺寸变化"""
        self._grid = layout_grid(self._grid, width, height, self._constraints)
        self._sync_percentages()
        self._notify()

    def apply_external_resize(
        self, group_id: str, width: float, height: float, now: float | None = None
    ) -> bool:
        """外部（终端 / PTY）上报的尺寸，经 flap guard 过滤后应用到叶子

        Returns:
            是否被接受
        """
        self.get_group(group_id)
        guard = self._guards.setdefault(group_id, ResizeFlapGuard(name=group_id))
        if not guard.should_apply_resize(width, height, now):
            return False
        location = self._location_of(group_id)
        orientation = parent_orientation(self._grid, location)
        if orientation is None:
            return True
        size = width if orientation is Orientation.HORIZONTAL else height
        self._grid = resize_leaf(self._grid, group_id, size, self._constraints)
        self._sync_percentages()
        self._notify()
        return True

    # === 渲染 / 持久化 ===

    def render_model(self) -> dict[str, Any]:
        """渲染边界：每个叶子的位置、尺寸和标签页"""
        leaves = []
        for box in leaf_boxes(self._grid):
            group = self._groups[box.group_id]
            leaves.append({
                "groupId": box.group_id,
                "location": list(box.location),
                "size": box.leaf.size,
                "visible": box.leaf.visible,
                "rect": box.rect.to_dict(),
                "parentOrientation": box.parent_orientation.value if box.parent_orientation else None,
                "tabs": [tab.to_dict() for tab in group.tabs],
                "activeTabId": group.active_tab_id,
                "focused": group.focused,
                "percentage": group.percentage,
            })
        return {
            "type": "layout",
            "width": self._grid.width,
            "height": self._grid.height,
            "orientation": self._grid.orientation.value,
            "focusedGroupId": self._focused_group_id,
            "grid": serialize_grid(self._grid),
            "leaves": leaves,
        }

    def snapshot(self, timestamp: float | None = None) -> dict[str, Any]:
        """当前状态的 version 2 持久化文档"""
        return build_layout_document(self._grid, self._groups, timestamp)

    def save(self, storage: LayoutStorage, key: str = PERSIST_KEY) -> bool:
        return save_layout(storage, self._grid, self._groups, key, time.time())

    # === 内部 ===

    def _location_of(self, group_id: str) -> tuple[int, ...]:
        found = find_leaf_by_group_id(self._grid, group_id)
        if found is None:
            raise InvalidLocation("group not in grid", group_id=group_id)
        return found[0]

    def _detach_tab(self, group: PanelGroup, tab_id: str) -> Tab:
        index = group.index_of(tab_id)
        tab = group.tabs.pop(index)
        if group.active_tab_id == tab_id:
            if index < len(group.tabs):
                group.active_tab_id = group.tabs[index].id
            elif group.tabs:
                group.active_tab_id = group.tabs[index - 1].id
            else:
                group.active_tab_id = None
        return tab

    def _reconcile(self) -> None:
        """叶子与 group 一一对应：补齐缺失的 group，丢弃不在网格中的 group"""
        leaf_ids = [leaf.group_id for _, leaf in get_all_leaves(self._grid)]
        for group_id in leaf_ids:
            if group_id not in self._groups:
                self._groups[group_id] = PanelGroup(id=group_id)
        orphans = [group_id for group_id in self._groups if group_id not in leaf_ids]
        for group_id in orphans:
            logger.warning(format_group_log("Panels", group_id, "dropped group not present in grid"))
            del self._groups[group_id]

    def _set_focus(self, group_id: str) -> None:
        self._focused_group_id = group_id
        self._apply_focus()

    def _apply_focus(self) -> None:
        for group_id, group in self._groups.items():
            group.focused = group_id == self._focused_group_id

    def _sync_percentages(self) -> None:
        for location, leaf in get_all_leaves(self._grid):
            self._groups[leaf.group_id].percentage = leaf_percentage(self._grid, location)
        metrics.gauge("panels.groups", len(self._groups))

    def _notify(self) -> None:
        for callback in self._callbacks:
            try:
                callback(self)
            except Exception as e:
                logger.error(f"[Panels] Change callback failed: {e}")
