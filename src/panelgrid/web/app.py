"""FastAPI 应用初始化"""

import uvicorn

from panelgrid.config import PERSIST_DIR, WEB_HOST, WEB_PORT
from panelgrid.panels.manager import PanelManager
from panelgrid.panels.persistence import FileStorage, LayoutStorage
from panelgrid.telemetry import get_logger, setup_logging
from panelgrid.web.server import WebServer

logger = get_logger(__name__)


def create_app(manager: PanelManager | None = None, storage: LayoutStorage | None = None) -> WebServer:
    """创建 Web 应用

    未传入 manager 时从 storage 恢复（storage 也为空则新建单面板布局）。
    """
    if manager is None:
        manager = PanelManager.restore(storage) if storage is not None else PanelManager()
    return WebServer(manager, storage)


def main():
    """入口函数"""
    setup_logging()
    storage = FileStorage(PERSIST_DIR)
    server = create_app(storage=storage)

    print(f"panelgrid Web Server starting at http://{WEB_HOST}:{WEB_PORT}")
    try:
        uvicorn.run(server.app, host=WEB_HOST, port=WEB_PORT, log_level="info")
    except KeyboardInterrupt:
        print("\nServer stopped")
    finally:
        server.manager.save(storage)
        logger.info("[Web] Layout saved on shutdown")
