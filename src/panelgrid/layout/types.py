"""Layout 数据类型定义

包含：
- Orientation / SplitDirection: 轴与分割方向
- LayoutPriority / ViewConstraints / View: 单个可伸缩槽位的约束
- Sizing: add_view 的尺寸策略
- GridLeaf / GridBranch / GridState: 网格树（不可变，写时复制）
- Rect: 命中测试与渲染用矩形
"""

from dataclasses import dataclass
from enum import Enum

from ..config import DEFAULT_VIEW_MAXIMUM_SIZE, DEFAULT_VIEW_MINIMUM_SIZE


class Orientation(Enum):
    """Branch 排列轴

    - HORIZONTAL: 子节点从左到右排列，sizes 为宽度
    - VERTICAL: 子节点从上到下排列，sizes 为高度
    """
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"

    @property
    def orthogonal(self) -> "Orientation":
        """正交方向"""
        if self is Orientation.HORIZONTAL:
            return Orientation.VERTICAL
        return Orientation.HORIZONTAL


class SplitDirection(Enum):
    """分割方向（拖拽落点 / 右键菜单）"""
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"

    @property
    def orientation(self) -> Orientation:
        """up/down ⇒ vertical, left/right ⇒ horizontal"""
        if self in (SplitDirection.UP, SplitDirection.DOWN):
            return Orientation.VERTICAL
        return Orientation.HORIZONTAL

    @property
    def inserts_before(self) -> bool:
        """新 view 是否插在目标之前"""
        return self in (SplitDirection.UP, SplitDirection.LEFT)


class LayoutPriority(Enum):
    """分配空间时的优先级"""
    NORMAL = 0
    LOW = 1
    HIGH = 2


@dataclass(frozen=True)
class ViewConstraints:
    """面板在两个轴上的尺寸约束"""
    minimum_width: float = DEFAULT_VIEW_MINIMUM_SIZE
    maximum_width: float = DEFAULT_VIEW_MAXIMUM_SIZE
    minimum_height: float = DEFAULT_VIEW_MINIMUM_SIZE
    maximum_height: float = DEFAULT_VIEW_MAXIMUM_SIZE
    priority: LayoutPriority = LayoutPriority.NORMAL

    def size_range(self, orientation: Orientation) -> tuple[float, float]:
        """沿某个轴的 (min, max)"""
        if orientation is Orientation.HORIZONTAL:
            return self.minimum_width, self.maximum_width
        return self.minimum_height, self.maximum_height


DEFAULT_VIEW_CONSTRAINTS = ViewConstraints()


@dataclass
class View:
    """SplitView 中的一个可伸缩槽位，内容对引擎不透明"""
    id: str
    minimum_size: float = 0.0
    maximum_size: float = float("inf")
    priority: LayoutPriority = LayoutPriority.NORMAL
    proportional_layout: bool = True
    snap: bool = False

    @classmethod
    def from_constraints(
        cls,
        view_id: str,
        constraints: ViewConstraints,
        orientation: Orientation,
    ) -> "View":
        """按轴从 ViewConstraints 构造"""
        minimum, maximum = constraints.size_range(orientation)
        return cls(
            id=view_id,
            minimum_size=minimum,
            maximum_size=maximum,
            priority=constraints.priority,
        )


class SizingKind(Enum):
    DISTRIBUTE = "distribute"
    SPLIT = "split"
    AUTO = "auto"
    INVISIBLE = "invisible"


@dataclass(frozen=True)
class Sizing:
    """add_view 尺寸策略

    - distribute(): 以最小尺寸插入，然后均分
    - split(i): 取第 i 个 view 的一半
    - auto(i): 与 distribute 等价
    - invisible(cached): 以隐藏状态插入，记住可见尺寸
    """
    kind: SizingKind
    index: int | None = None
    cached_visible_size: float | None = None

    @classmethod
    def distribute(cls) -> "Sizing":
        return cls(SizingKind.DISTRIBUTE)

    @classmethod
    def split(cls, index: int) -> "Sizing":
        return cls(SizingKind.SPLIT, index=index)

    @classmethod
    def auto(cls, index: int | None = None) -> "Sizing":
        return cls(SizingKind.AUTO, index=index)

    @classmethod
    def invisible(cls, cached_visible_size: float) -> "Sizing":
        return cls(SizingKind.INVISIBLE, cached_visible_size=cached_visible_size)


@dataclass(frozen=True)
class Rect:
    """屏幕坐标矩形"""
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    def contains(self, x: float, y: float) -> bool:
        return self.left <= x <= self.right and self.top <= y <= self.bottom

    def to_dict(self) -> dict:
        return {"left": self.left, "top": self.top, "width": self.width, "height": self.height}


# === Grid 树 ===

GridLocation = tuple[int, ...]


@dataclass(frozen=True)
class GridLeaf:
    """叶子节点：承载一个 panel group

    size 与父 branch 的 sizes[i] 一致；cached_visible_size 非空表示隐藏。
    """
    group_id: str
    size: float = 0.0
    cached_visible_size: float | None = None

    @property
    def visible(self) -> bool:
        return self.cached_visible_size is None


@dataclass(frozen=True)
class GridBranch:
    """分支节点：沿 orientation 排列 ≥2 个子节点

    sizes 为子节点沿本轴的尺寸，sum(sizes) == size。
    """
    orientation: Orientation
    children: tuple["GridNode", ...]
    sizes: tuple[float, ...]
    size: float = 0.0

    def __post_init__(self):
        if len(self.children) != len(self.sizes):
            raise ValueError(
                f"children/sizes length mismatch: {len(self.children)} != {len(self.sizes)}"
            )


GridNode = GridLeaf | GridBranch


@dataclass(frozen=True)
class GridState:
    """整棵网格树 + 布局时的容器尺寸

    orientation 为根轴：根为 branch 时与其 orientation 一致；根为叶子时
    决定根叶子 size 取宽还是高。
    """
    root: GridNode
    orientation: Orientation = Orientation.HORIZONTAL
    width: float = 0.0
    height: float = 0.0

    @property
    def root_extent(self) -> float:
        """根节点沿根轴的尺寸"""
        return self.extent(self.orientation)

    def extent(self, orientation: Orientation) -> float:
        if orientation is Orientation.HORIZONTAL:
            return self.width
        return self.height


@dataclass
class LeafBox:
    """渲染边界：一个叶子的位置、尺寸和绝对矩形"""
    location: GridLocation
    leaf: GridLeaf
    rect: Rect
    parent_orientation: Orientation | None = None

    @property
    def group_id(self) -> str:
        return self.leaf.group_id
