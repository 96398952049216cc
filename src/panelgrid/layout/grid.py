"""GridTree - 嵌套 SplitView 组成的二维网格

网格是 GridLeaf / GridBranch 组成的不可变树，所有操作都是纯函数：
接收 GridState，返回新的 GridState，未触及的子树原样共享（写时复制）。

尺寸语义：
- branch.size 为该分支沿自身轴的尺寸，sum(branch.sizes) == branch.size
- leaf.size 与父分支的 sizes[i] 一致；根叶子取容器沿根轴的尺寸
- 子分支与父分支方向交替（同方向嵌套会被展平）

任何不存在的位置都抛出 InvalidLocation，且不修改输入。
"""

from dataclasses import replace
from typing import Any, Mapping

from ..config import DEFAULT_GRID_HEIGHT, DEFAULT_GRID_WIDTH, SIZE_EPSILON
from ..core.ids import generate_group_id
from ..errors import InvalidLocation, SerializationError
from ..telemetry import get_logger
from .splitview import SplitView
from .types import (
    DEFAULT_VIEW_CONSTRAINTS,
    GridBranch,
    GridLeaf,
    GridLocation,
    GridNode,
    GridState,
    LeafBox,
    Orientation,
    Rect,
    Sizing,
    View,
    ViewConstraints,
)

logger = get_logger(__name__)

Constraints = Mapping[str, ViewConstraints] | None


# === 构造与查询 ===


def create_grid_state(
    group_id: str | None = None,
    width: float = DEFAULT_GRID_WIDTH,
    height: float = DEFAULT_GRID_HEIGHT,
    orientation: Orientation = Orientation.HORIZONTAL,
) -> GridState:
    """创建只有一个叶子的网格"""
    group_id = group_id or generate_group_id()
    extent = width if orientation is Orientation.HORIZONTAL else height
    return GridState(
        root=GridLeaf(group_id=group_id, size=extent),
        orientation=orientation,
        width=width,
        height=height,
    )


def _root_of(state: GridState | GridNode) -> GridNode:
    return state.root if isinstance(state, GridState) else state


def find_node_at_location(state: GridState | GridNode, location: GridLocation) -> GridNode:
    """沿路径查找节点

    Raises:
        InvalidLocation: 任一下标越界或路径穿过叶子
    """
    node = _root_of(state)
    for depth, index in enumerate(location):
        if not isinstance(node, GridBranch):
            raise InvalidLocation("location passes through a leaf", location=tuple(location), depth=depth)
        if not 0 <= index < len(node.children):
            raise InvalidLocation("location index out of range", location=tuple(location), depth=depth)
        node = node.children[index]
    return node


def validate_location(state: GridState | GridNode, location: GridLocation) -> bool:
    try:
        find_node_at_location(state, location)
    except InvalidLocation:
        return False
    return True


def get_parent_location(location: GridLocation) -> GridLocation:
    """父节点位置

    Raises:
        InvalidLocation: 根节点没有父节点
    """
    if not location:
        raise InvalidLocation("root has no parent")
    return tuple(location[:-1])


def are_siblings(a: GridLocation, b: GridLocation) -> bool:
    """除最后一个下标外全部相同"""
    return len(a) == len(b) and len(a) > 0 and tuple(a[:-1]) == tuple(b[:-1])


def get_all_leaves(state: GridState | GridNode) -> list[tuple[GridLocation, GridLeaf]]:
    """先序遍历收集所有叶子"""
    leaves: list[tuple[GridLocation, GridLeaf]] = []

    def walk(node: GridNode, location: GridLocation) -> None:
        if isinstance(node, GridLeaf):
            leaves.append((location, node))
            return
        for index, child in enumerate(node.children):
            walk(child, location + (index,))

    walk(_root_of(state), ())
    return leaves


def find_leaf_by_group_id(
    state: GridState | GridNode, group_id: str
) -> tuple[GridLocation, GridLeaf] | None:
    for location, leaf in get_all_leaves(state):
        if leaf.group_id == group_id:
            return location, leaf
    return None


def _require_leaf(state: GridState, group_id: str) -> tuple[GridLocation, GridLeaf]:
    found = find_leaf_by_group_id(state, group_id)
    if found is None:
        raise InvalidLocation("group not in grid", group_id=group_id)
    return found


def _first_leaf(node: GridNode, location: GridLocation) -> tuple[GridLocation, GridLeaf]:
    while isinstance(node, GridBranch):
        node = node.children[0]
        location = location + (0,)
    return location, node


def find_first_sibling_leaf(
    state: GridState, location: GridLocation
) -> tuple[GridLocation, GridLeaf] | None:
    """父分支中除自身外的第一个子节点；为分支时取其第一个叶子

    根节点没有兄弟，返回 None。
    """
    if not location:
        return None
    parent_location = get_parent_location(location)
    parent = find_node_at_location(state, parent_location)
    if not isinstance(parent, GridBranch):
        raise InvalidLocation("parent is not a branch", location=tuple(location))
    index = 0 if location[-1] != 0 else 1
    if index >= len(parent.children):
        return None
    return _first_leaf(parent.children[index], parent_location + (index,))


def node_box(state: GridState, location: GridLocation) -> tuple[float, float]:
    """节点占据的 (width, height)"""
    width, height = state.width, state.height
    node = state.root
    for depth, index in enumerate(location):
        if not isinstance(node, GridBranch) or not 0 <= index < len(node.children):
            raise InvalidLocation("location index out of range", location=tuple(location), depth=depth)
        width, height = _child_box(node.orientation, width, height, node.sizes[index])
        node = node.children[index]
    return width, height


def parent_orientation(state: GridState, location: GridLocation) -> Orientation | None:
    """节点所在分支的方向；根节点返回 None"""
    if not location:
        return None
    parent = find_node_at_location(state, get_parent_location(location))
    return parent.orientation


def leaf_boxes(state: GridState) -> list[LeafBox]:
    """每个叶子的绝对矩形（渲染边界）"""
    boxes: list[LeafBox] = []

    def walk(node, location, left, top, width, height, orientation):
        if isinstance(node, GridLeaf):
            boxes.append(LeafBox(location, node, Rect(left, top, width, height), orientation))
            return
        offset = 0.0
        for index, (child, size) in enumerate(zip(node.children, node.sizes)):
            child_width, child_height = _child_box(node.orientation, width, height, size)
            if node.orientation is Orientation.HORIZONTAL:
                walk(child, location + (index,), left + offset, top, child_width, child_height, node.orientation)
            else:
                walk(child, location + (index,), left, top + offset, child_width, child_height, node.orientation)
            offset += size

    walk(state.root, (), 0.0, 0.0, state.width, state.height, None)
    return boxes


# === 尺寸工具 ===


def _extent(width: float, height: float, orientation: Orientation) -> float:
    return width if orientation is Orientation.HORIZONTAL else height


def _child_box(
    orientation: Orientation, width: float, height: float, size: float
) -> tuple[float, float]:
    if orientation is Orientation.HORIZONTAL:
        return size, height
    return width, size


def _constraints_for(group_id: str, constraints: Constraints) -> ViewConstraints:
    if constraints is None:
        return DEFAULT_VIEW_CONSTRAINTS
    return constraints.get(group_id, DEFAULT_VIEW_CONSTRAINTS)


def node_size_range(
    node: GridNode, orientation: Orientation, constraints: Constraints = None
) -> tuple[float, float]:
    """子树沿某轴的 (min, max)

    同轴分支求和；正交分支取最小值中的最大、最大值中的最小。
    """
    if isinstance(node, GridLeaf):
        return _constraints_for(node.group_id, constraints).size_range(orientation)
    ranges = [
        node_size_range(child, orientation, constraints)
        for child in node.children
        if not (isinstance(child, GridLeaf) and not child.visible)
    ]
    if not ranges:
        return 0.0, 0.0
    if node.orientation is orientation:
        return sum(r[0] for r in ranges), sum(r[1] for r in ranges)
    return max(r[0] for r in ranges), min(r[1] for r in ranges)


def _node_view(node: GridNode, orientation: Orientation, constraints: Constraints) -> View:
    if isinstance(node, GridLeaf):
        return View.from_constraints(node.group_id, _constraints_for(node.group_id, constraints), orientation)
    minimum, maximum = node_size_range(node, orientation, constraints)
    return View(id=f"branch:{_first_leaf(node, ())[1].group_id}", minimum_size=minimum, maximum_size=maximum)


def _split_view_for(branch: GridBranch, constraints: Constraints) -> SplitView:
    return SplitView.restore(
        [_node_view(child, branch.orientation, constraints) for child in branch.children],
        branch.sizes,
        size=branch.size,
        orientation=branch.orientation,
        cached_visible_sizes=[
            child.cached_visible_size if isinstance(child, GridLeaf) else None
            for child in branch.children
        ],
    )


def _exact_sizes(sizes: list[float], total: float) -> tuple[float, ...]:
    """约束无法满足时按比例缩放，保证 sum(sizes) == total"""
    current = sum(sizes)
    if abs(current - total) > SIZE_EPSILON and current > 0:
        sizes = [size * total / current for size in sizes]
    return tuple(sizes)


def _branch_from_split_view(
    branch: GridBranch, children: list[GridNode], split_view: SplitView
) -> GridBranch:
    synced: list[GridNode] = []
    for index, child in enumerate(children):
        if isinstance(child, GridLeaf):
            child = replace(child, cached_visible_size=split_view.get_cached_visible_size(index))
        synced.append(child)
    return GridBranch(
        orientation=branch.orientation,
        children=tuple(synced),
        sizes=_exact_sizes(split_view.get_view_sizes(), branch.size),
        size=branch.size,
    )


def _layout_node(
    node: GridNode,
    width: float,
    height: float,
    axis: Orientation,
    constraints: Constraints,
) -> GridNode:
    """按新盒子尺寸自顶向下重新布局；已满足的分支保持原 sizes"""
    if isinstance(node, GridLeaf):
        size = _extent(width, height, axis) if node.visible else 0.0
        return node if node.size == size else replace(node, size=size)

    own = _extent(width, height, node.orientation)
    settled = (
        abs(node.size - own) <= SIZE_EPSILON
        and abs(sum(node.sizes) - own) <= SIZE_EPSILON
    )
    if settled:
        sizes = node.sizes
    else:
        split_view = _split_view_for(node, constraints)
        split_view.layout(own)
        sizes = _exact_sizes(split_view.get_view_sizes(), own)

    children = tuple(
        _layout_node(child, *_child_box(node.orientation, width, height, size), node.orientation, constraints)
        for child, size in zip(node.children, sizes)
    )
    return GridBranch(node.orientation, children, tuple(sizes), own)


def _reduce(node: GridNode) -> GridNode:
    """折叠单子节点分支，展平同方向嵌套"""
    if isinstance(node, GridLeaf):
        return node
    children: list[GridNode] = []
    sizes: list[float] = []
    for child, size in zip(node.children, node.sizes):
        child = _reduce(child)
        if isinstance(child, GridBranch) and child.orientation is node.orientation:
            inner_total = sum(child.sizes)
            for grandchild, inner in zip(child.children, child.sizes):
                children.append(grandchild)
                if inner_total > 0:
                    sizes.append(inner * size / inner_total)
                else:
                    sizes.append(size / len(child.children))
        else:
            children.append(child)
            sizes.append(size)
    if not children:
        raise InvalidLocation("branch has no children")
    if len(children) == 1:
        return children[0]
    return GridBranch(node.orientation, tuple(children), tuple(sizes), node.size)


def _finalize(state: GridState, root: GridNode, constraints: Constraints) -> GridState:
    root = _reduce(root)
    orientation = root.orientation if isinstance(root, GridBranch) else state.orientation
    root = _layout_node(root, state.width, state.height, orientation, constraints)
    return replace(state, root=root, orientation=orientation)


def _replace_at(node: GridNode, location: GridLocation, new_node: GridNode) -> GridNode:
    if not location:
        return new_node
    index = location[0]
    children = list(node.children)
    children[index] = _replace_at(children[index], location[1:], new_node)
    return replace(node, children=tuple(children))


# === 变更操作 ===


def insertion_target(
    state: GridState, location: GridLocation, orientation: Orientation
) -> GridLocation | None:
    """add_view_to_grid 会向哪个分支追加子节点；包裹成新分支时返回 None"""
    node = find_node_at_location(state, location)
    if isinstance(node, GridBranch) and node.orientation is orientation:
        return tuple(location)
    if location:
        parent_location = get_parent_location(location)
        if find_node_at_location(state, parent_location).orientation is orientation:
            return parent_location
    return None


def add_view_to_grid(
    state: GridState,
    location: GridLocation,
    leaf: GridLeaf,
    orientation: Orientation,
    sizing: Sizing | float | None = None,
    before: bool = False,
    constraints: Constraints = None,
) -> GridState:
    """在 location 处沿 orientation 插入新叶子

    - 目标是同方向分支：作为新子节点追加（默认 Sizing.distribute）
    - 目标的父分支已是该方向：作为兄弟插入目标前/后（默认 Sizing.split）
    - 否则把目标包进新分支，与新叶子对半分（Sizing.split）

    Raises:
        InvalidLocation: 位置不存在、目标叶子已隐藏，或 group 已在网格中
    """
    location = tuple(location)
    target = find_node_at_location(state, location)
    if find_leaf_by_group_id(state, leaf.group_id) is not None:
        raise InvalidLocation("group already in grid", group_id=leaf.group_id)
    if isinstance(target, GridLeaf) and not target.visible:
        raise InvalidLocation("cannot add next to a hidden group", group_id=target.group_id)
    leaf = GridLeaf(group_id=leaf.group_id)

    branch_location = insertion_target(state, location, orientation)
    if branch_location is not None:
        branch = find_node_at_location(state, branch_location)
        if branch_location == location:
            index = 0 if before else len(branch.children)
            default_sizing = Sizing.distribute()
        else:
            target_index = location[-1]
            index = target_index if before else target_index + 1
            default_sizing = Sizing.split(target_index)
        split_view = _split_view_for(branch, constraints)
        split_view.add_view(
            _node_view(leaf, orientation, constraints),
            default_sizing if sizing is None else sizing,
            index,
        )
        children = list(branch.children)
        children.insert(index, leaf)
        new_node = _branch_from_split_view(branch, children, split_view)
        root = _replace_at(state.root, branch_location, new_node)
    else:
        width, height = node_box(state, location)
        own = _extent(width, height, orientation)
        split_view = SplitView.restore(
            [_node_view(target, orientation, constraints)], [own], size=own, orientation=orientation
        )
        index = 0 if before else 1
        split_view.add_view(
            _node_view(leaf, orientation, constraints),
            Sizing.split(0) if sizing is None else sizing,
            index,
        )
        children = [leaf, target] if before else [target, leaf]
        wrapper = GridBranch(orientation, tuple(children), (own / 2, own / 2), own)
        new_node = _branch_from_split_view(wrapper, children, split_view)
        root = _replace_at(state.root, location, new_node)
        branch_location = location

    logger.debug(
        f"[Grid] Added {leaf.group_id} at {branch_location} ({orientation.value}, before={before})"
    )
    return _finalize(state, root, constraints)


def remove_view_from_grid(
    state: GridState, location: GridLocation, constraints: Constraints = None
) -> GridState:
    """删除 location 处的节点，空出尺寸交给兄弟节点，并逐级折叠单子节点分支

    Raises:
        InvalidLocation: 位置不存在或为根节点
    """
    location = tuple(location)
    find_node_at_location(state, location)
    parent_location = get_parent_location(location)
    parent = find_node_at_location(state, parent_location)
    index = location[-1]

    split_view = _split_view_for(parent, constraints)
    split_view.remove_view(index)
    children = list(parent.children)
    removed = children.pop(index)

    if len(children) == 1:
        new_parent: GridNode = children[0]
        if isinstance(new_parent, GridLeaf) and not new_parent.visible:
            new_parent = replace(new_parent, cached_visible_size=None)
    else:
        new_parent = _branch_from_split_view(parent, children, split_view)

    root = _replace_at(state.root, parent_location, new_parent)
    if isinstance(removed, GridLeaf):
        logger.debug(f"[Grid] Removed {removed.group_id} from {parent_location}")
    return _finalize(state, root, constraints)


def move_view_in_grid(
    state: GridState,
    from_location: GridLocation,
    to_location: GridLocation,
    orientation: Orientation | None = None,
    before: bool = False,
    constraints: Constraints = None,
) -> GridState:
    """原子移动叶子

    同一父分支内（且未指定其它方向）为重排；否则先删除再插到目标叶子旁。
    任何一步失败都抛出异常，输入不变。

    Raises:
        InvalidLocation: 源不是叶子、目标不存在、跨父移动时目标不是叶子
    """
    from_location, to_location = tuple(from_location), tuple(to_location)
    source = find_node_at_location(state, from_location)
    target = find_node_at_location(state, to_location)
    if not isinstance(source, GridLeaf):
        raise InvalidLocation("can only move leaves", location=from_location)
    if from_location == to_location:
        return state

    if are_siblings(from_location, to_location):
        parent_location = get_parent_location(from_location)
        parent = find_node_at_location(state, parent_location)
        if orientation is None or orientation is parent.orientation:
            split_view = _split_view_for(parent, constraints)
            split_view.move_view(from_location[-1], to_location[-1])
            children = list(parent.children)
            children.insert(to_location[-1], children.pop(from_location[-1]))
            new_parent = _branch_from_split_view(parent, children, split_view)
            root = _replace_at(state.root, parent_location, new_parent)
            return _finalize(state, root, constraints)

    if not isinstance(target, GridLeaf):
        raise InvalidLocation("move target must be a leaf", location=to_location)
    if orientation is None:
        orientation = parent_orientation(state, to_location) or state.orientation.orthogonal

    removed = remove_view_from_grid(state, from_location, constraints)
    new_location, _ = _require_leaf(removed, target.group_id)
    return add_view_to_grid(
        removed,
        new_location,
        GridLeaf(group_id=source.group_id),
        orientation,
        before=before,
        constraints=constraints,
    )


def resize_sash(
    state: GridState,
    branch_location: GridLocation,
    sash_index: int,
    delta: float,
    constraints: Constraints = None,
    high_priority_indexes: tuple[int, ...] = (),
) -> tuple[GridState, float]:
    """拖动某分支的 sash

    Returns:
        (新网格, 实际生效的 delta)
    """
    branch_location = tuple(branch_location)
    branch = find_node_at_location(state, branch_location)
    if not isinstance(branch, GridBranch):
        raise InvalidLocation("sash location is not a branch", location=branch_location)
    split_view = _split_view_for(branch, constraints)
    applied = split_view.resize(sash_index, delta, high_priority_indexes=high_priority_indexes)
    new_branch = _branch_from_split_view(branch, list(branch.children), split_view)
    root = _replace_at(state.root, branch_location, new_branch)
    return _finalize(state, root, constraints), applied


def resize_leaf_by(
    state: GridState, group_id: str, delta: float, constraints: Constraints = None
) -> tuple[GridState, float]:
    """让某叶子沿父分支方向增长 delta（负数为收缩），相邻叶子承担差额"""
    location, _ = _require_leaf(state, group_id)
    if not location:
        return state, 0.0
    parent_location = get_parent_location(location)
    parent = find_node_at_location(state, parent_location)
    index = location[-1]
    if index < len(parent.children) - 1:
        return resize_sash(state, parent_location, index, delta, constraints, (index,))
    new_state, applied = resize_sash(state, parent_location, index - 1, -delta, constraints, (index,))
    return new_state, -applied


def resize_leaf(
    state: GridState, group_id: str, size: float, constraints: Constraints = None
) -> GridState:
    """把叶子沿父分支方向设为 size（夹到约束内），其余兄弟补齐

    根叶子尺寸由容器决定，直接返回原网格。
    """
    location, _ = _require_leaf(state, group_id)
    if not location:
        return state
    parent_location = get_parent_location(location)
    parent = find_node_at_location(state, parent_location)
    split_view = _split_view_for(parent, constraints)
    split_view.resize_view(location[-1], size)
    new_parent = _branch_from_split_view(parent, list(parent.children), split_view)
    root = _replace_at(state.root, parent_location, new_parent)
    return _finalize(state, root, constraints)


def set_leaf_visible(
    state: GridState, group_id: str, visible: bool, constraints: Constraints = None
) -> GridState:
    """显示/隐藏叶子；隐藏时记住可见尺寸

    每个分支至少保留一个可见子节点。

    Raises:
        InvalidLocation: group 不存在、试图隐藏根叶子，或它是分支中最后一个可见子节点
    """
    location, _ = _require_leaf(state, group_id)
    if not location:
        raise InvalidLocation("cannot hide the root leaf", group_id=group_id)
    parent_location = get_parent_location(location)
    parent = find_node_at_location(state, parent_location)
    split_view = _split_view_for(parent, constraints)
    split_view.set_view_visible(location[-1], visible)
    new_parent = _branch_from_split_view(parent, list(parent.children), split_view)
    root = _replace_at(state.root, parent_location, new_parent)
    return _finalize(state, root, constraints)


def layout_grid(
    state: GridState, width: float, height: float, constraints: Constraints = None
) -> GridState:
    """容器尺寸变化后整棵树重新布局"""
    resized = replace(state, width=width, height=height)
    root = _layout_node(resized.root, width, height, resized.orientation, constraints)
    return replace(resized, root=root)


def normalize_grid(state: GridState) -> GridState:
    """折叠/展平分支，并把每个分支的 sizes 缩放到正好等于其 size

    只在漂移超过 SIZE_EPSILON 时缩放，不考虑最小/最大约束。
    """
    root = _reduce(state.root)
    orientation = root.orientation if isinstance(root, GridBranch) else state.orientation

    def fit(node: GridNode, width: float, height: float, axis: Orientation) -> GridNode:
        if isinstance(node, GridLeaf):
            size = _extent(width, height, axis) if node.visible else 0.0
            return node if node.size == size else replace(node, size=size)
        own = _extent(width, height, node.orientation)
        sizes = list(node.sizes)
        total = sum(sizes)
        if abs(total - own) > SIZE_EPSILON:
            if total > 0:
                sizes = [size * own / total for size in sizes]
            else:
                visible = [
                    i for i, child in enumerate(node.children)
                    if not (isinstance(child, GridLeaf) and not child.visible)
                ]
                sizes = [own / len(visible) if i in visible else 0.0 for i in range(len(sizes))]
        children = tuple(
            fit(child, *_child_box(node.orientation, width, height, size), node.orientation)
            for child, size in zip(node.children, sizes)
        )
        return GridBranch(node.orientation, children, tuple(sizes), own)

    root = fit(root, state.width, state.height, orientation)
    return replace(state, root=root, orientation=orientation)


# === 序列化 ===


def serialize_grid(state: GridState) -> dict[str, Any]:
    """序列化为普通字典

    节点 size 为沿父分支方向的尺寸；隐藏叶子写 visible=false，size 为缓存的可见尺寸。
    """

    def serialize_node(node: GridNode, size: float) -> dict[str, Any]:
        if isinstance(node, GridLeaf):
            return {
                "type": "leaf",
                "data": {"groupId": node.group_id},
                "size": size if node.visible else node.cached_visible_size,
                "visible": node.visible,
            }
        return {
            "type": "branch",
            "data": [serialize_node(child, s) for child, s in zip(node.children, node.sizes)],
            "size": size,
            "visible": True,
        }

    return {
        "root": serialize_node(state.root, state.root_extent),
        "orientation": state.orientation.value,
        "width": state.width,
        "height": state.height,
    }


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def deserialize_grid(doc: Any, group_ids: set[str] | None = None) -> GridState:
    """从 serialize_grid 的输出重建网格

    分支方向从根方向交替推导。给定 group_ids 时丢弃未知 group 的叶子，
    随后折叠并重新缩放。

    Raises:
        SerializationError: 文档结构不合法，或没有剩余叶子
    """
    if not isinstance(doc, dict):
        raise SerializationError("grid document must be an object")
    width, height = doc.get("width"), doc.get("height")
    if not _is_number(width) or not _is_number(height):
        raise SerializationError("grid width/height must be numbers")
    try:
        orientation = Orientation(doc.get("orientation"))
    except ValueError as e:
        raise SerializationError("invalid grid orientation", orientation=doc.get("orientation")) from e

    dropped: list[str] = []

    def build(raw: Any, axis: Orientation, width: float, height: float) -> GridNode | None:
        if not isinstance(raw, dict):
            raise SerializationError("grid node must be an object")
        kind = raw.get("type")
        if kind == "leaf":
            data = raw.get("data")
            group_id = data.get("groupId") if isinstance(data, dict) else None
            if not isinstance(group_id, str):
                raise SerializationError("leaf groupId must be a string")
            size = raw.get("size")
            if not _is_number(size):
                raise SerializationError("leaf size must be a number", group_id=group_id)
            if group_ids is not None and group_id not in group_ids:
                dropped.append(group_id)
                return None
            if raw.get("visible", True) is False:
                return GridLeaf(group_id=group_id, size=0.0, cached_visible_size=float(size))
            return GridLeaf(group_id=group_id, size=float(size))
        if kind == "branch":
            data = raw.get("data")
            if not isinstance(data, list) or not data:
                raise SerializationError("branch data must be a non-empty list")
            branch_orientation = axis.orthogonal
            own = _extent(width, height, branch_orientation)
            children: list[GridNode] = []
            sizes: list[float] = []
            for child_raw in data:
                child_size = child_raw.get("size") if isinstance(child_raw, dict) else None
                if not _is_number(child_size):
                    raise SerializationError("node size must be a number")
                visible = child_raw.get("visible", True) is not False
                slot = float(child_size) if visible else 0.0
                child = build(
                    child_raw,
                    branch_orientation,
                    *_child_box(branch_orientation, width, height, slot),
                )
                if child is None:
                    continue
                children.append(child)
                sizes.append(slot)
            if not children:
                return None
            if not any(not isinstance(c, GridLeaf) or c.visible for c in children):
                raise SerializationError("branch has no visible children")
            return GridBranch(branch_orientation, tuple(children), tuple(sizes), own)
        raise SerializationError("unknown grid node type", type=kind)

    root = build(doc.get("root"), orientation.orthogonal, float(width), float(height))
    if root is None:
        raise SerializationError("grid has no known groups")
    if isinstance(root, GridLeaf) and not root.visible:
        root = replace(root, cached_visible_size=None)
    if dropped:
        logger.warning(f"[Grid] Dropped {len(dropped)} unknown groups on load: {dropped}")
    state = GridState(root=root, orientation=orientation, width=float(width), height=float(height))
    return normalize_grid(state)
