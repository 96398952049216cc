"""Web 服务器"""

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from ..panels.manager import PanelManager
from ..panels.persistence import LayoutStorage, clear_layout
from ..telemetry import get_logger
from .handlers import MessageHandler
from .receiver import ResizeReceiver

logger = get_logger(__name__)


class WebServer:
    """WebSocket 服务器"""

    def __init__(self, manager: PanelManager, storage: LayoutStorage | None = None):
        self.app = FastAPI(title="panelgrid")
        self.manager = manager
        self.storage = storage
        self.clients: list[WebSocket] = []

        self._handler = MessageHandler(
            manager=manager,
            broadcast=self.broadcast,
            storage=storage,
        )
        self._receiver = ResizeReceiver(manager, on_change=self.publish)

        self._setup_routes()
        self._receiver.setup_routes(self.app)

    def _setup_routes(self):
        @self.app.get("/api/layout")
        async def get_layout():
            return self.manager.render_model()

        @self.app.get("/api/layout/snapshot")
        async def get_snapshot():
            """当前状态的持久化文档"""
            return self.manager.snapshot()

        @self.app.delete("/api/layout")
        async def delete_layout():
            if self.storage is None:
                return {"success": False}
            return {"success": clear_layout(self.storage)}

        @self.app.websocket("/ws")
        async def websocket_endpoint(websocket: WebSocket):
            await websocket.accept()
            self.clients.append(websocket)
            try:
                await websocket.send_json(self.manager.render_model())
                while True:
                    data = await websocket.receive_text()
                    await self._handler.handle(websocket, data)
            except WebSocketDisconnect:
                self._drop_client(websocket)

    def _drop_client(self, websocket: WebSocket) -> None:
        if websocket in self.clients:
            self.clients.remove(websocket)
        self._handler.forget(websocket)

    async def publish(self):
        """保存布局并广播最新渲染模型"""
        if self.storage is not None:
            self.manager.save(self.storage)
        await self.broadcast(self.manager.render_model())

    async def broadcast(self, data: dict):
        """广播消息给所有客户端"""
        for client in list(self.clients):
            try:
                await client.send_json(data)
            except Exception as e:
                logger.warning(f"[Web] Dropping client after send failure: {e}")
                self._drop_client(client)
