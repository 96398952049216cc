"""Layout 模块 - SplitView / GridTree / 分割检测 / flap guard"""

from panelgrid.layout.edges import detect_edge_direction
from panelgrid.layout.flap_guard import (
    GuardState,
    ResizeEmitGuard,
    ResizeFlapGuard,
    TerminalSize,
    should_apply_resize,
)
from panelgrid.layout.grid import (
    add_view_to_grid,
    create_grid_state,
    deserialize_grid,
    find_first_sibling_leaf,
    find_leaf_by_group_id,
    find_node_at_location,
    get_all_leaves,
    get_parent_location,
    layout_grid,
    leaf_boxes,
    move_view_in_grid,
    normalize_grid,
    remove_view_from_grid,
    resize_leaf,
    resize_leaf_by,
    resize_sash,
    serialize_grid,
    set_leaf_visible,
)
from panelgrid.layout.splitview import SplitView, priority_order, redistribute
from panelgrid.layout.types import (
    GridBranch,
    GridLeaf,
    GridLocation,
    GridNode,
    GridState,
    LayoutPriority,
    LeafBox,
    Orientation,
    Rect,
    Sizing,
    SplitDirection,
    View,
    ViewConstraints,
)

__all__ = [
    # types
    "GridBranch",
    "GridLeaf",
    "GridLocation",
    "GridNode",
    "GridState",
    "LayoutPriority",
    "LeafBox",
    "Orientation",
    "Rect",
    "Sizing",
    "SplitDirection",
    "View",
    "ViewConstraints",
    # splitview
    "SplitView",
    "priority_order",
    "redistribute",
    # grid
    "add_view_to_grid",
    "create_grid_state",
    "deserialize_grid",
    "find_first_sibling_leaf",
    "find_leaf_by_group_id",
    "find_node_at_location",
    "get_all_leaves",
    "get_parent_location",
    "layout_grid",
    "leaf_boxes",
    "move_view_in_grid",
    "normalize_grid",
    "remove_view_from_grid",
    "resize_leaf",
    "resize_leaf_by",
    "resize_sash",
    "serialize_grid",
    "set_leaf_visible",
    # edges / flap guard
    "detect_edge_direction",
    "GuardState",
    "ResizeEmitGuard",
    "ResizeFlapGuard",
    "TerminalSize",
    "should_apply_resize",
]
