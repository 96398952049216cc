"""HTTP 尺寸接收器 - 接收终端 / 容器上报的尺寸"""

from typing import TYPE_CHECKING, Awaitable, Callable

from pydantic import BaseModel

from ..errors import PanelGridError
from ..telemetry import get_logger

if TYPE_CHECKING:
    from fastapi import FastAPI

    from ..panels.manager import PanelManager

logger = get_logger(__name__)


class TerminalResizeRequest(BaseModel):
    """终端尺寸上报请求体"""

    group_id: str  # 终端所在 group
    width: float
    height: float


class ContainerResizeRequest(BaseModel):
    """容器尺寸变化请求体"""

    width: float
    height: float


class ResizeResponse(BaseModel):
    """尺寸上报响应"""

    success: bool
    accepted: bool = False
    message: str = ""


class ResizeReceiver:
    """HTTP 尺寸接收器

    提供 `/api/resize/*` 端点。终端上报经 flap guard 过滤，
    被接受后触发 on_change（保存 + 广播）。
    """

    def __init__(
        self,
        manager: "PanelManager",
        on_change: Callable[[], Awaitable[None]] | None = None,
    ):
        self.manager = manager
        self.on_change = on_change

    def setup_routes(self, app: "FastAPI") -> None:
        """设置 API 路由"""

        @app.post("/api/resize/terminal", response_model=ResizeResponse)
        async def terminal_resize(request: TerminalResizeRequest):
            """终端 / PTY 上报尺寸"""
            try:
                accepted = self.manager.apply_external_resize(
                    request.group_id, request.width, request.height
                )
            except PanelGridError as e:
                logger.warning(f"[ResizeReceiver] Rejected report for {request.group_id}: {e}")
                return ResizeResponse(success=False, message=str(e))

            if not accepted:
                return ResizeResponse(success=True, accepted=False, message="blocked by flap guard")
            await self._changed()
            return ResizeResponse(success=True, accepted=True, message="applied")

        @app.post("/api/resize/container", response_model=ResizeResponse)
        async def container_resize(request: ContainerResizeRequest):
            """宿主容器尺寸变化"""
            if request.width <= 0 or request.height <= 0:
                return ResizeResponse(success=False, message="width and height must be positive")
            self.manager.layout(request.width, request.height)
            await self._changed()
            return ResizeResponse(success=True, accepted=True, message="applied")

    async def _changed(self) -> None:
        if self.on_change is not None:
            await self.on_change()
