"""布局持久化

提供布局文档的保存 / 加载：
- 存储边界只要求 get / set / remove（LayoutStorage）
- version 2 文档：{version, gridState, panelGroupsMap, timestamp, checksum}
- 旧版文档（无 version）：{panelGroups, panelLayout{direction, sizes}}
- 加载时迁移标签页 kind，结构不合法视为"没有保存的布局"
- 保存失败只记录日志，不影响内存状态
"""

import hashlib
import json
import os
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from ..config import PERSIST_DIR, PERSIST_KEY, PERSIST_VERSION
from ..errors import PanelGridError, SerializationError
from ..layout.grid import deserialize_grid, get_all_leaves, serialize_grid
from ..layout.types import GridState
from ..telemetry import get_logger, metrics
from .migration import LEGACY_DIRECTIONS, migrate_panel_group, migrate_panel_groups_map, migrate_to_grid_state
from .types import PanelGroup

logger = get_logger(__name__)


class LayoutStorage(Protocol):
    """宿主提供的键值存储"""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStorage:
    """内存存储（测试 / 无持久化宿主）"""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class FileStorage:
    """每个 key 一个 JSON 文件，temp + rename 原子写入"""

    def __init__(self, directory: Path | str = PERSIST_DIR):
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        safe = "".join(c if c.isalnum() or c in "-_." else "_" for c in key)
        return self.directory / f"{safe}.json"

    def get(self, key: str) -> str | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(prefix="panelgrid_layout_", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(temp_path, path)
        except Exception:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

    def remove(self, key: str) -> None:
        path = self.path_for(key)
        if path.exists():
            os.unlink(path)


@dataclass
class LoadedLayout:
    """加载结果

    format 为 "grid"（version 2）或 "legacy"（平铺布局，调用方按需转换）。
    """
    format: str
    groups: dict[str, PanelGroup]
    grid: GridState | None = None
    legacy_layout: dict[str, Any] | None = None
    timestamp: float | None = None

    def to_grid_state(self) -> GridState:
        if self.grid is not None:
            return self.grid
        return migrate_to_grid_state(list(self.groups.values()), self.legacy_layout or {})


def _calculate_checksum(data: dict[str, Any]) -> str:
    """计算 SHA256 checksum（不含 checksum 字段）"""
    payload = json.dumps(data, ensure_ascii=False, sort_keys=True).encode("utf-8")
    return hashlib.sha256(payload).hexdigest()


def build_layout_document(
    grid: GridState,
    groups: dict[str, PanelGroup],
    timestamp: float | None = None,
) -> dict[str, Any]:
    """构建 version 2 文档（含 checksum）"""
    document = {
        "version": PERSIST_VERSION,
        "gridState": serialize_grid(grid),
        "panelGroupsMap": {group_id: group.to_dict() for group_id, group in groups.items()},
        "timestamp": int((time.time() if timestamp is None else timestamp) * 1000),
    }
    document["checksum"] = _calculate_checksum(document)
    return document


def save_layout(
    storage: LayoutStorage,
    grid: GridState,
    groups: dict[str, PanelGroup],
    key: str = PERSIST_KEY,
    timestamp: float | None = None,
) -> bool:
    """保存布局

    Returns:
        是否成功；失败只记录日志与指标
    """
    try:
        document = build_layout_document(grid, groups, timestamp)
        storage.set(key, json.dumps(document, ensure_ascii=False))
        logger.debug(f"[Persist] Saved {len(groups)} groups to {key!r}")
        return True
    except Exception as e:
        logger.error(f"[Persist] Save failed: {e}")
        metrics.inc("persist.error", {"op": "save"})
        return False


def _parse_groups(raw_groups: list[Any]) -> dict[str, PanelGroup]:
    groups: dict[str, PanelGroup] = {}
    for raw in raw_groups:
        group = PanelGroup.from_dict(raw)
        if group.id in groups:
            raise SerializationError("duplicate panel group id", id=group.id)
        groups[group.id] = group
    return groups


def _drop_duplicate_tabs(groups: dict[str, PanelGroup]) -> None:
    """标签页只能属于一个 group：保留第一次出现"""
    seen: set[str] = set()
    for group in groups.values():
        kept = [tab for tab in group.tabs if tab.id not in seen]
        if len(kept) != len(group.tabs):
            logger.warning(f"[Persist] Dropped {len(group.tabs) - len(kept)} duplicate tabs in {group.id}")
            group.tabs = kept
            group.repair_active_tab()
        seen.update(tab.id for tab in kept)


def parse_layout_document(raw: str | dict[str, Any]) -> LoadedLayout:
    """严格解析布局文档

    Raises:
        SerializationError: JSON 无效、checksum 不符、版本未知或结构不合法
    """
    if isinstance(raw, str):
        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            raise SerializationError(f"invalid JSON: {e}") from e
    else:
        document = dict(raw)
    if not isinstance(document, dict):
        raise SerializationError("layout document must be an object")

    stored_checksum = document.pop("checksum", None)
    if stored_checksum is not None and stored_checksum != _calculate_checksum(document):
        raise SerializationError("checksum mismatch")

    version = document.get("version")
    timestamp = document.get("timestamp")
    timestamp = timestamp / 1000 if isinstance(timestamp, (int, float)) else None

    if version == PERSIST_VERSION or "gridState" in document:
        raw_map = migrate_panel_groups_map(document.get("panelGroupsMap"))
        if not isinstance(raw_map, dict):
            raise SerializationError("panelGroupsMap must be an object")
        groups = _parse_groups(list(raw_map.values()))
        _drop_duplicate_tabs(groups)
        try:
            grid = deserialize_grid(document.get("gridState"), set(groups))
        except PanelGridError as e:
            raise SerializationError(f"invalid gridState: {e.message}") from e
        in_grid = {leaf.group_id for _, leaf in get_all_leaves(grid)}
        orphans = set(groups) - in_grid
        if orphans:
            logger.warning(f"[Persist] Dropped {len(orphans)} groups missing from grid")
        groups = {group_id: group for group_id, group in groups.items() if group_id in in_grid}
        return LoadedLayout(format="grid", groups=groups, grid=grid, timestamp=timestamp)

    if version is not None and version != 1:
        raise SerializationError("unsupported layout version", version=version)

    raw_groups = document.get("panelGroups")
    layout = document.get("panelLayout")
    if not isinstance(raw_groups, list) or not isinstance(layout, dict):
        raise SerializationError("legacy document needs panelGroups and panelLayout")
    if layout.get("direction") not in LEGACY_DIRECTIONS:
        raise SerializationError("invalid legacy direction", direction=layout.get("direction"))
    sizes = layout.get("sizes")
    if not isinstance(sizes, list) or not all(
        isinstance(s, (int, float)) and not isinstance(s, bool) for s in sizes
    ):
        raise SerializationError("legacy sizes must be a list of numbers")
    groups = _parse_groups([migrate_panel_group(g) for g in raw_groups])
    _drop_duplicate_tabs(groups)
    return LoadedLayout(
        format="legacy",
        groups=groups,
        legacy_layout={"direction": layout["direction"], "sizes": list(sizes)},
        timestamp=timestamp,
    )


def load_layout(storage: LayoutStorage, key: str = PERSIST_KEY) -> LoadedLayout | None:
    """加载布局

    Returns:
        LoadedLayout；不存在或不合法返回 None（调用方从新布局开始）
    """
    try:
        raw = storage.get(key)
    except OSError as e:
        logger.error(f"[Persist] Read failed: {e}")
        metrics.inc("persist.error", {"op": "load", "reason": "io"})
        return None

    if raw is None:
        logger.debug(f"[Persist] No saved layout for {key!r}")
        return None

    try:
        loaded = parse_layout_document(raw)
    except SerializationError as e:
        logger.warning(f"[Persist] Ignoring saved layout: {e}")
        metrics.inc("persist.error", {"op": "load", "reason": "invalid"})
        return None

    logger.info(f"[Persist] Loaded {loaded.format} layout with {len(loaded.groups)} groups")
    return loaded


def clear_layout(storage: LayoutStorage, key: str = PERSIST_KEY) -> bool:
    """删除保存的布局"""
    try:
        storage.remove(key)
        logger.info(f"[Persist] Cleared {key!r}")
        return True
    except OSError as e:
        logger.error(f"[Persist] Clear failed: {e}")
        return False
