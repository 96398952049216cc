"""WebSocket 消息处理器

客户端发送 JSON 消息 ``{"action": ..., ...}``，处理器调用 PanelManager
对应操作，回复 ``{"type": "<action>_result", "success": ...}``。
变更成功后保存布局并广播最新渲染模型。
"""

import json
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from fastapi import WebSocket

from ..errors import PanelGridError
from ..layout.edges import detect_edge_direction
from ..panels.drag import DragSession
from ..panels.manager import PanelManager
from ..panels.persistence import LayoutStorage
from ..panels.types import Tab
from ..telemetry import get_logger, metrics

logger = get_logger(__name__)

# 不改变布局的查询类动作
_READ_ONLY_ACTIONS = {"get_layout", "detect", "drag_start", "drag_move", "drag_over_tab", "drag_cancel"}


@dataclass
class MessageHandler:
    """WebSocket 消息处理器"""

    manager: PanelManager
    broadcast: Callable[[dict], Awaitable[None]]
    storage: LayoutStorage | None = None
    drags: dict[int, DragSession] = field(default_factory=dict)

    async def handle(self, websocket: WebSocket, data: str):
        """处理 WebSocket 消息"""
        try:
            msg = json.loads(data)
        except json.JSONDecodeError:
            logger.warning(f"[Web] Ignoring non-JSON message: {data[:40]!r}")
            return
        if not isinstance(msg, dict) or not isinstance(msg.get("action"), str):
            logger.warning("[Web] Ignoring message without action")
            return

        action = msg["action"]
        method = getattr(self, f"_handle_{action}", None)
        if method is None:
            await websocket.send_json({"type": "error", "action": action, "error": "unknown action"})
            return

        try:
            result = method(websocket, msg) or {}
        except (PanelGridError, KeyError, ValueError, TypeError) as e:
            metrics.inc("web.action_failed", {"action": action})
            logger.warning(f"[Web] {action} failed: {e}")
            await websocket.send_json({"type": f"{action}_result", "success": False, "error": str(e)})
            return

        await websocket.send_json({"type": f"{action}_result", "success": True, **result})
        if action not in _READ_ONLY_ACTIONS:
            self._save()
            await self.broadcast(self.manager.render_model())

    def _save(self) -> None:
        if self.storage is not None:
            self.manager.save(self.storage)

    # === 标签页 ===

    def _handle_get_layout(self, websocket: WebSocket, msg: dict) -> dict[str, Any]:
        return {"layout": self.manager.render_model()}

    def _handle_add_tab(self, websocket: WebSocket, msg: dict) -> dict[str, Any]:
        tab = self.manager.add_tab(msg["group_id"], Tab.from_dict(msg["tab"]), msg.get("index"))
        return {"tab_id": tab.id}

    def _handle_select_tab(self, websocket: WebSocket, msg: dict) -> None:
        self.manager.select_tab(msg["group_id"], msg["tab_id"])

    def _handle_close_tab(self, websocket: WebSocket, msg: dict) -> None:
        self.manager.close_tab(msg["group_id"], msg["tab_id"])

    def _handle_move_tab(self, websocket: WebSocket, msg: dict) -> None:
        self.manager.move_tab(msg["tab_id"], msg["source_group_id"], msg["target_group_id"], msg.get("index"))

    def _handle_reorder_tabs(self, websocket: WebSocket, msg: dict) -> None:
        self.manager.reorder_tabs(msg["group_id"], int(msg["from_index"]), int(msg["to_index"]))

    def _handle_context_action(self, websocket: WebSocket, msg: dict) -> dict[str, Any]:
        created = self.manager.handle_context_action(msg["group_id"], msg["tab_id"], msg["menu_action"])
        return {"created": created}

    # === 面板 ===

    def _handle_split(self, websocket: WebSocket, msg: dict) -> dict[str, Any]:
        group_id = self.manager.split_panel(
            msg["group_id"],
            msg["direction"],
            moving_tab_id=msg.get("tab_id"),
            source_group_id=msg.get("source_group_id"),
        )
        return {"group_id": group_id}

    def _handle_close_panel(self, websocket: WebSocket, msg: dict) -> dict[str, Any]:
        return {"target_group_id": self.manager.close_panel(msg["group_id"])}

    def _handle_resize(self, websocket: WebSocket, msg: dict) -> dict[str, Any]:
        if "size" in msg:
            self.manager.set_panel_size(msg["group_id"], float(msg["size"]))
            return {}
        return {"applied": self.manager.resize_panel(msg["group_id"], float(msg["delta"]))}

    def _handle_set_visible(self, websocket: WebSocket, msg: dict) -> None:
        self.manager.set_panel_visible(msg["group_id"], bool(msg["visible"]))

    def _handle_focus(self, websocket: WebSocket, msg: dict) -> None:
        self.manager.focus_panel(msg["group_id"])

    def _handle_layout(self, websocket: WebSocket, msg: dict) -> None:
        self.manager.layout(float(msg["width"]), float(msg["height"]))

    def _handle_terminal_resize(self, websocket: WebSocket, msg: dict) -> dict[str, Any]:
        accepted = self.manager.apply_external_resize(msg["group_id"], float(msg["width"]), float(msg["height"]))
        return {"accepted": accepted}

    # === 拖拽 ===

    def _handle_detect(self, websocket: WebSocket, msg: dict) -> dict[str, Any]:
        box = self.manager.leaf_box(msg["group_id"])
        direction = detect_edge_direction(
            float(msg["x"]),
            float(msg["y"]),
            box.rect,
            prefer_vertical=bool(msg.get("prefer_vertical", False)),
            current_orientation=box.parent_orientation,
        )
        return {"direction": direction.value if direction else None}

    def _handle_drag_start(self, websocket: WebSocket, msg: dict) -> None:
        self.drags[id(websocket)] = DragSession(
            self.manager,
            msg["tab_id"],
            msg["group_id"],
            prefer_vertical=bool(msg.get("prefer_vertical", False)),
        )

    def _handle_drag_move(self, websocket: WebSocket, msg: dict) -> dict[str, Any]:
        session = self._drag_for(websocket)
        direction = session.move(float(msg["x"]), float(msg["y"]), msg.get("group_id"))
        return {"target_group_id": session.target_group_id, "direction": direction.value if direction else None}

    def _handle_drag_over_tab(self, websocket: WebSocket, msg: dict) -> None:
        self._drag_for(websocket).over_tab(msg["group_id"], int(msg["index"]))

    def _handle_drag_end(self, websocket: WebSocket, msg: dict) -> dict[str, Any]:
        session = self.drags.pop(id(websocket), None)
        if session is None:
            raise KeyError("no drag in progress")
        return {"drop": session.end().to_dict()}

    def _handle_drag_cancel(self, websocket: WebSocket, msg: dict) -> None:
        session = self.drags.pop(id(websocket), None)
        if session is not None:
            session.cancel()

    def _drag_for(self, websocket: WebSocket) -> DragSession:
        session = self.drags.get(id(websocket))
        if session is None:
            raise KeyError("no drag in progress")
        return session

    def forget(self, websocket: WebSocket) -> None:
        """客户端断开时丢弃其拖拽会话"""
        self.drags.pop(id(websocket), None)
