"""Panel 数据类型测试"""

import pytest

from panelgrid.errors import SerializationError
from panelgrid.panels.types import PanelGroup, Tab, TabKind


class TestTab:
    """Tab 序列化测试"""

    def test_to_dict_omits_defaults(self, make_tab):
        data = make_tab("t1", title="Shell").to_dict()
        assert data == {"id": "t1", "kind": "terminal", "title": "Shell", "data": {}}

    def test_to_dict_optional_fields(self, make_tab):
        tab = make_tab("t1", icon="term", dirty=True, pinned=True, sync_key="k1", data={"cwd": "/"})
        data = tab.to_dict()
        assert data["icon"] == "term"
        assert data["dirty"] is True
        assert data["pinned"] is True
        assert data["syncKey"] == "k1"
        assert data["data"] == {"cwd": "/"}

    def test_from_dict_round_trip(self, make_tab):
        tab = make_tab("t1", kind=TabKind.EDITOR, pinned=True, data={"path": "a.py"})
        assert Tab.from_dict(tab.to_dict()) == tab

    def test_from_dict_unknown_kind(self):
        with pytest.raises(SerializationError):
            Tab.from_dict({"id": "t1", "kind": "tunnel", "title": "x"})

    @pytest.mark.parametrize("data", [None, {"kind": "agent", "title": "x"}, {"id": "t1", "kind": "agent"}])
    def test_from_dict_missing_fields(self, data):
        with pytest.raises(SerializationError):
            Tab.from_dict(data)


class TestPanelGroup:
    """PanelGroup 测试"""

    def test_helpers(self, make_tab):
        group = PanelGroup("g1", [make_tab("a"), make_tab("b")], active_tab_id="b")
        assert group.is_empty is False
        assert group.active_tab.id == "b"
        assert group.index_of("b") == 1
        assert group.index_of("zzz") == -1
        assert group.has_tab("a") is True
        assert PanelGroup("g2").is_empty is True

    def test_repair_active_tab(self, make_tab):
        group = PanelGroup("g1", [make_tab("a"), make_tab("b")], active_tab_id="gone")
        group.repair_active_tab()
        assert group.active_tab_id == "a"
        empty = PanelGroup("g2", active_tab_id="gone")
        empty.repair_active_tab()
        assert empty.active_tab_id is None

    def test_to_dict_skips_synced_tabs(self, make_tab):
        group = PanelGroup("g1", [make_tab("a"), make_tab("s", synced=True)], active_tab_id="s")
        data = group.to_dict()
        assert [tab["id"] for tab in data["tabs"]] == ["a"]
        assert data["activeTabId"] == "a"
        assert len(group.to_dict(include_synced=True)["tabs"]) == 2

    def test_from_dict_dedups_tabs(self):
        tab = {"id": "a", "kind": "agent", "title": "A"}
        group = PanelGroup.from_dict({"id": "g1", "tabs": [tab, dict(tab)], "activeTabId": "missing"})
        assert [t.id for t in group.tabs] == ["a"]
        assert group.active_tab_id == "a"

    def test_from_dict_round_trip(self, make_tab):
        group = PanelGroup("g1", [make_tab("a", data={"x": 1})], active_tab_id="a", focused=True, percentage=40.0)
        assert PanelGroup.from_dict(group.to_dict()) == group

    @pytest.mark.parametrize(
        "data",
        [
            [],
            {"tabs": []},
            {"id": "g1", "tabs": "nope"},
            {"id": "g1", "tabs": [], "percentage": "50"},
        ],
    )
    def test_from_dict_invalid(self, data):
        with pytest.raises(SerializationError):
            PanelGroup.from_dict(data)
