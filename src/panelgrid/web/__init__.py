"""Web 服务模块"""

from panelgrid.web.app import create_app
from panelgrid.web.handlers import MessageHandler
from panelgrid.web.receiver import ResizeReceiver
from panelgrid.web.server import WebServer

__all__ = ["create_app", "MessageHandler", "ResizeReceiver", "WebServer"]
