"""旧数据迁移

- 标签页 kind 迁移：旧 kind 字符串映射到当前值，未知 kind 丢弃
- 布局迁移：旧版平铺 panelGroups + panelLayout 与网格树互转
"""

from typing import Any

from ..config import DEFAULT_GRID_HEIGHT, DEFAULT_GRID_WIDTH
from ..layout.grid import create_grid_state, get_all_leaves, normalize_grid
from ..layout.types import GridBranch, GridLeaf, GridState, Orientation
from ..telemetry import get_logger
from .types import PanelGroup, TabKind

logger = get_logger(__name__)

# 旧 kind → 当前 kind
LEGACY_TAB_KINDS: dict[str, TabKind] = {
    "tunnel": TabKind.REMOTE_ACCESS,
}

LEGACY_DIRECTIONS = {"horizontal", "vertical", "single"}


def migrate_tab_kind(kind: Any) -> TabKind | None:
    """把持久化的 kind 字符串映射为 TabKind，未知返回 None

    Example:
        >>> migrate_tab_kind("tunnel")
        <TabKind.REMOTE_ACCESS: 'remoteAccess'>
    """
    if not isinstance(kind, str):
        return None
    if kind in LEGACY_TAB_KINDS:
        return LEGACY_TAB_KINDS[kind]
    try:
        return TabKind(kind)
    except ValueError:
        return None


def migrate_tab(raw: Any) -> dict[str, Any] | None:
    """迁移单个标签页字典；kind 未知或结构不是字典时返回 None"""
    if not isinstance(raw, dict):
        return None
    kind = migrate_tab_kind(raw.get("kind"))
    if kind is None:
        logger.warning(f"[Migration] Dropped tab {raw.get('id')!r} with unknown kind {raw.get('kind')!r}")
        return None
    if kind.value == raw.get("kind"):
        return raw
    return {**raw, "kind": kind.value}


def migrate_panel_group(raw: Any) -> Any:
    """迁移 panel group 字典中的所有标签页

    被丢弃的标签页若是 active，则回退到第一个剩余标签页。
    非字典输入原样返回，由后续校验报错。
    """
    if not isinstance(raw, dict) or not isinstance(raw.get("tabs"), list):
        return raw
    tabs = [tab for tab in (migrate_tab(t) for t in raw["tabs"]) if tab is not None]
    active = raw.get("activeTabId")
    if not any(tab.get("id") == active for tab in tabs):
        active = tabs[0].get("id") if tabs else None
    return {**raw, "tabs": tabs, "activeTabId": active}


def migrate_panel_groups_map(raw: Any) -> Any:
    """迁移 {group_id: group} 映射"""
    if not isinstance(raw, dict):
        return raw
    return {group_id: migrate_panel_group(group) for group_id, group in raw.items()}


def migrate_to_grid_state(
    panel_groups: list[PanelGroup],
    panel_layout: dict[str, Any],
    width: float = DEFAULT_GRID_WIDTH,
    height: float = DEFAULT_GRID_HEIGHT,
) -> GridState:
    """旧版平铺布局 → 网格树

    sizes 为百分比；长度不符时改用各 group 的 percentage，仍无效则均分。
    """
    if not panel_groups:
        return create_grid_state(width=width, height=height)
    if len(panel_groups) == 1:
        return create_grid_state(panel_groups[0].id, width, height)

    direction = panel_layout.get("direction")
    orientation = Orientation(direction) if direction in ("horizontal", "vertical") else Orientation.HORIZONTAL

    shares = panel_layout.get("sizes")
    if not isinstance(shares, list) or len(shares) != len(panel_groups):
        shares = [group.percentage for group in panel_groups]
    if any(not isinstance(s, (int, float)) or s < 0 for s in shares) or sum(shares) <= 0:
        shares = [1.0] * len(panel_groups)

    extent = width if orientation is Orientation.HORIZONTAL else height
    total = float(sum(shares))
    sizes = tuple(extent * share / total for share in shares)
    root = GridBranch(
        orientation=orientation,
        children=tuple(GridLeaf(group.id, size) for group, size in zip(panel_groups, sizes)),
        sizes=sizes,
        size=extent,
    )
    logger.info(f"[Migration] Converted {len(panel_groups)} legacy groups to grid ({orientation.value})")
    return normalize_grid(GridState(root=root, orientation=orientation, width=width, height=height))


def migrate_from_grid_state(
    state: GridState, groups: dict[str, PanelGroup]
) -> tuple[list[PanelGroup], dict[str, Any]]:
    """网格树 → 旧版平铺布局（嵌套结构会被压平为叶子顺序）

    Returns:
        (groups, {"direction", "sizes"})，sizes 为百分比
    """
    leaves = get_all_leaves(state)
    result: list[PanelGroup] = []
    for location, leaf in leaves:
        group = groups.get(leaf.group_id)
        group = group.copy() if group is not None else PanelGroup(id=leaf.group_id)
        result.append(group)

    if len(leaves) <= 1 or not isinstance(state.root, GridBranch):
        for group in result:
            group.percentage = 100.0
        return result, {"direction": "single", "sizes": [100.0]}

    for (location, leaf), group in zip(leaves, result):
        group.percentage = leaf_percentage(state, location)
    return result, {
        "direction": state.root.orientation.value,
        "sizes": [group.percentage for group in result],
    }


def leaf_percentage(state: GridState, location: tuple[int, ...]) -> float:
    """叶子占父分支的百分比；根叶子为 100"""
    if not location:
        return 100.0
    parent = state.root
    for index in location[:-1]:
        parent = parent.children[index]
    if parent.size <= 0:
        return 0.0
    return parent.sizes[location[-1]] / parent.size * 100
