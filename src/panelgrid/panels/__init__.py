"""Panels 模块 - 标签页 / PanelGroup / 持久化"""

from panelgrid.panels.drag import DragSession, DropKind, DropResult
from panelgrid.panels.manager import PanelManager
from panelgrid.panels.migration import (
    migrate_from_grid_state,
    migrate_panel_group,
    migrate_panel_groups_map,
    migrate_tab,
    migrate_tab_kind,
    migrate_to_grid_state,
)
from panelgrid.panels.persistence import (
    FileStorage,
    LayoutStorage,
    LoadedLayout,
    MemoryStorage,
    clear_layout,
    load_layout,
    parse_layout_document,
    save_layout,
)
from panelgrid.panels.types import PanelGroup, Tab, TabContextMenuAction, TabKind

__all__ = [
    "DragSession",
    "DropKind",
    "DropResult",
    "PanelManager",
    "PanelGroup",
    "Tab",
    "TabContextMenuAction",
    "TabKind",
    "migrate_from_grid_state",
    "migrate_panel_group",
    "migrate_panel_groups_map",
    "migrate_tab",
    "migrate_tab_kind",
    "migrate_to_grid_state",
    "FileStorage",
    "LayoutStorage",
    "LoadedLayout",
    "MemoryStorage",
    "clear_layout",
    "load_layout",
    "parse_layout_document",
    "save_layout",
]
