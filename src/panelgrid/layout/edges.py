"""Edge/Split 检测

把拖拽指针在目标面板矩形中的位置映射为分割方向：
- 中心区域（两个轴都在边缘带内侧）返回 None，表示合并 / 重排
- 优先轴使用较宽的 split 阈值，两端给出该轴的两个方向
- 优先轴中间带按另一轴的中点分成两个正交方向（T 形命中区）
"""

from ..config import EDGE_THRESHOLD, SPLIT_THRESHOLD
from .types import Orientation, Rect, SplitDirection


def resolve_prefer_vertical(
    prefer_vertical: bool, current_orientation: Orientation | None
) -> bool:
    """父分支方向覆盖调用方偏好

    已水平分割时优先上下，已垂直分割时优先左右，鼓励形成真正的二维网格。
    """
    if current_orientation is Orientation.HORIZONTAL:
        return True
    if current_orientation is Orientation.VERTICAL:
        return False
    return prefer_vertical


def detect_edge_direction(
    x: float,
    y: float,
    rect: Rect,
    prefer_vertical: bool = False,
    current_orientation: Orientation | None = None,
    edge_threshold: float = EDGE_THRESHOLD,
    split_threshold: float = SPLIT_THRESHOLD,
) -> SplitDirection | None:
    """计算指针位置对应的分割方向

    Args:
        x: 指针屏幕 x
        y: 指针屏幕 y
        rect: 目标面板矩形
        prefer_vertical: 调用方是否偏好上下分割
        current_orientation: 目标所在分支的方向（覆盖偏好）
        edge_threshold: 非优先轴的边缘带比例
        split_threshold: 优先轴的边缘带比例

    Returns:
        分割方向；中心区域、矩形外或退化矩形返回 None
    """
    if rect.width <= 0 or rect.height <= 0 or not rect.contains(x, y):
        return None

    prefer_vertical = resolve_prefer_vertical(prefer_vertical, current_orientation)
    local_x = x - rect.left
    local_y = y - rect.top
    width, height = rect.width, rect.height

    if prefer_vertical:
        edge_x, edge_y = edge_threshold, split_threshold
    else:
        edge_x, edge_y = split_threshold, edge_threshold

    inside_x = edge_x * width < local_x < width - edge_x * width
    inside_y = edge_y * height < local_y < height - edge_y * height
    if inside_x and inside_y:
        return None

    if prefer_vertical:
        if local_y < split_threshold * height:
            return SplitDirection.UP
        if local_y > (1 - split_threshold) * height:
            return SplitDirection.DOWN
        return SplitDirection.LEFT if local_x < width / 2 else SplitDirection.RIGHT

    if local_x < split_threshold * width:
        return SplitDirection.LEFT
    if local_x > (1 - split_threshold) * width:
        return SplitDirection.RIGHT
    return SplitDirection.UP if local_y < height / 2 else SplitDirection.DOWN
