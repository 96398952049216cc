"""Web 服务器测试"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from panelgrid.config import PERSIST_KEY
from panelgrid.panels.manager import PanelManager
from panelgrid.panels.persistence import MemoryStorage
from panelgrid.web.app import create_app
from panelgrid.web.server import WebServer


def _endpoint(server: WebServer, path: str, method: str):
    for route in server.app.routes:
        if getattr(route, "path", None) == path and method in getattr(route, "methods", set()):
            return route.endpoint
    raise AssertionError(f"no route {method} {path}")


def _client(fail: bool = False):
    client = MagicMock()
    client.send_json = AsyncMock(side_effect=RuntimeError("closed") if fail else None)
    return client


class TestWebServer:
    """WebServer 测试"""

    def test_routes(self):
        server = WebServer(PanelManager())
        paths = {route.path for route in server.app.routes}
        assert {"/api/layout", "/api/layout/snapshot", "/ws"} <= paths

    @pytest.mark.asyncio
    async def test_get_layout(self):
        manager = PanelManager()
        server = WebServer(manager)
        model = await _endpoint(server, "/api/layout", "GET")()
        assert model["type"] == "layout"
        assert model["focusedGroupId"] == manager.focused_group_id

    @pytest.mark.asyncio
    async def test_snapshot(self):
        server = WebServer(PanelManager())
        document = await _endpoint(server, "/api/layout/snapshot", "GET")()
        assert document["version"] == 2
        assert "checksum" in document

    @pytest.mark.asyncio
    async def test_delete_layout(self):
        storage = MemoryStorage()
        manager = PanelManager()
        manager.save(storage)
        server = WebServer(manager, storage)
        assert await _endpoint(server, "/api/layout", "DELETE")() == {"success": True}
        assert PERSIST_KEY not in storage

    @pytest.mark.asyncio
    async def test_delete_without_storage(self):
        server = WebServer(PanelManager())
        assert await _endpoint(server, "/api/layout", "DELETE")() == {"success": False}

    @pytest.mark.asyncio
    async def test_broadcast(self):
        server = WebServer(PanelManager())
        good, bad = _client(), _client(fail=True)
        server.clients.extend([good, bad])

        await server.broadcast({"type": "layout"})

        good.send_json.assert_awaited_once_with({"type": "layout"})
        assert server.clients == [good]

    def test_resize_routes(self):
        paths = {route.path for route in WebServer(PanelManager()).app.routes}
        assert {"/api/resize/terminal", "/api/resize/container"} <= paths

    @pytest.mark.asyncio
    async def test_publish_saves_and_broadcasts(self):
        storage = MemoryStorage()
        server = WebServer(PanelManager(), storage)
        client = _client()
        server.clients.append(client)

        await server.publish()

        assert PERSIST_KEY in storage
        assert client.send_json.await_args.args[0]["type"] == "layout"

    @pytest.mark.asyncio
    async def test_drop_client_forgets_drag(self, make_tab):
        manager = PanelManager()
        manager.add_tab(manager.focused_group_id, make_tab("a"))
        server = WebServer(manager)
        client = _client()
        server.clients.append(client)
        await server._handler.handle(
            client, f'{{"action": "drag_start", "group_id": "{manager.focused_group_id}", "tab_id": "a"}}'
        )
        assert server._handler.drags

        server._drop_client(client)
        assert server.clients == []
        assert server._handler.drags == {}


class TestCreateApp:
    """create_app 测试"""

    def test_new_layout(self):
        server = create_app()
        assert len(server.manager.group_ids()) == 1
        assert server.storage is None

    def test_restores_from_storage(self):
        storage = MemoryStorage()
        manager = PanelManager()
        new_group = manager.split_panel(manager.focused_group_id, "down")
        manager.save(storage)

        server = create_app(storage=storage)
        assert server.manager.group_ids() == manager.group_ids()
        assert server.manager.focused_group_id == new_group

    def test_uses_given_manager(self):
        manager = PanelManager()
        assert create_app(manager).manager is manager
