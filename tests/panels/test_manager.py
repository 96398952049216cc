"""PanelManager 测试"""

import pytest

from panelgrid.errors import CannotCloseLastPanel, InvalidLocation, MaxSplitDepthExceeded
from panelgrid.layout.grid import create_grid_state, get_all_leaves, serialize_grid
from panelgrid.layout.types import GridBranch, Orientation, SplitDirection, ViewConstraints
from panelgrid.panels.manager import PanelManager
from panelgrid.panels.persistence import MemoryStorage
from panelgrid.panels.types import PanelGroup, TabContextMenuAction
from panelgrid.telemetry import metrics

T0 = 1000.0


@pytest.fixture(autouse=True)
def reset_metrics():
    """每次测试前重置指标"""
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def manager(make_tab):
    """单个 group g1，标签页 a/b/c，b 为 active"""
    group = PanelGroup("g1", [make_tab("a"), make_tab("b"), make_tab("c")], active_tab_id="b")
    return PanelManager(grid=create_grid_state("g1"), groups={"g1": group})


def owners(manager, tab_id):
    return [group.id for group in manager.groups.values() if group.has_tab(tab_id)]


class TestConstruction:
    """构造与对账测试"""

    def test_default_single_group(self):
        manager = PanelManager()
        assert len(manager.group_ids()) == 1
        group_id = manager.group_ids()[0]
        assert group_id.startswith("panel-group-")
        assert manager.focused_group_id == group_id
        assert manager.get_group(group_id).focused is True
        assert manager.get_group(group_id).percentage == 100.0

    def test_editor_variant(self):
        manager = PanelManager.for_editor()
        assert manager.max_groups_per_branch == 3
        assert manager.group_ids()[0].startswith("editor-group-")

    def test_reconcile_groups_with_grid(self):
        manager = PanelManager(
            grid=create_grid_state("g1"),
            groups={"orphan": PanelGroup("orphan")},
        )
        assert list(manager.groups) == ["g1"]

    def test_unknown_group(self, manager):
        with pytest.raises(InvalidLocation):
            manager.get_group("nope")


class TestTabs:
    """标签页操作测试"""

    def test_select_tab(self, manager):
        manager.select_tab("g1", "c")
        assert manager.get_group("g1").active_tab_id == "c"

    def test_select_missing_tab(self, manager):
        with pytest.raises(InvalidLocation):
            manager.select_tab("g1", "zzz")

    def test_close_active_selects_next(self, manager):
        manager.close_tab("g1", "b")
        group = manager.get_group("g1")
        assert [tab.id for tab in group.tabs] == ["a", "c"]
        assert group.active_tab_id == "c"

    def test_close_last_active_selects_previous(self, manager):
        manager.select_tab("g1", "c")
        manager.close_tab("g1", "c")
        assert manager.get_group("g1").active_tab_id == "b"

    def test_close_inactive_keeps_active(self, manager):
        manager.close_tab("g1", "a")
        assert manager.get_group("g1").active_tab_id == "b"

    def test_close_all_tabs_clears_active(self, manager):
        for tab_id in ("a", "b", "c"):
            manager.close_tab("g1", tab_id)
        group = manager.get_group("g1")
        assert group.is_empty
        assert group.active_tab_id is None

    def test_add_tab(self, manager, make_tab):
        manager.add_tab("g1", make_tab("d"), index=1)
        group = manager.get_group("g1")
        assert [tab.id for tab in group.tabs] == ["a", "d", "b", "c"]
        assert group.active_tab_id == "d"

    def test_add_tab_owned_elsewhere(self, manager, make_tab):
        new_group = manager.split_panel("g1", "right")
        with pytest.raises(InvalidLocation):
            manager.add_tab(new_group, make_tab("a"))

    def test_reorder_tabs(self, manager):
        manager.reorder_tabs("g1", 0, 2)
        assert [tab.id for tab in manager.get_group("g1").tabs] == ["b", "c", "a"]

    def test_reorder_out_of_range(self, manager):
        with pytest.raises(InvalidLocation):
            manager.reorder_tabs("g1", 0, 3)

    def test_move_tab(self, manager):
        target = manager.split_panel("g1", "right")
        manager.focus_panel("g1")
        assert manager.move_tab("a", "g1", target) is True
        assert owners(manager, "a") == [target]
        assert manager.get_group(target).active_tab_id == "a"
        assert manager.focused_group_id == target

    def test_move_tab_idempotent(self, manager):
        """目标已包含该标签页时为空操作"""
        before = [tab.id for tab in manager.get_group("g1").tabs]
        assert manager.move_tab("a", "g1", "g1") is True
        assert [tab.id for tab in manager.get_group("g1").tabs] == before

    def test_move_tab_keeps_empty_source(self, make_tab):
        group = PanelGroup("g1", [make_tab("a")], active_tab_id="a")
        manager = PanelManager(grid=create_grid_state("g1"), groups={"g1": group})
        target = manager.split_panel("g1", "down")
        manager.move_tab("a", "g1", target)
        assert manager.get_group("g1").is_empty
        assert len(manager.group_ids()) == 2

    def test_duplicate_tab(self, manager):
        duplicate = manager.duplicate_tab("g1", "a")
        group = manager.get_group("g1")
        assert group.tabs[1].id == duplicate.id
        assert duplicate.id != "a"
        assert duplicate.title == "a"
        assert group.active_tab_id == duplicate.id


class TestContextActions:
    """右键菜单动作测试"""

    def test_close_others(self, manager):
        manager.handle_context_action("g1", "a", "closeOthers")
        group = manager.get_group("g1")
        assert [tab.id for tab in group.tabs] == ["a"]
        assert group.active_tab_id == "a"

    def test_close_to_the_right(self, manager):
        manager.handle_context_action("g1", "a", TabContextMenuAction.CLOSE_TO_THE_RIGHT)
        group = manager.get_group("g1")
        assert [tab.id for tab in group.tabs] == ["a"]
        assert group.active_tab_id == "a"

    def test_close_to_the_left(self, manager):
        manager.handle_context_action("g1", "b", "closeToTheLeft")
        group = manager.get_group("g1")
        assert [tab.id for tab in group.tabs] == ["b", "c"]
        assert group.active_tab_id == "b"

    def test_close_all(self, manager):
        manager.handle_context_action("g1", "b", "closeAll")
        assert manager.get_group("g1").is_empty
        assert manager.get_group("g1").active_tab_id is None

    def test_pin_unpin(self, manager):
        manager.handle_context_action("g1", "a", "pin")
        assert manager.get_group("g1").get_tab("a").pinned is True
        manager.handle_context_action("g1", "a", "unpin")
        assert manager.get_group("g1").get_tab("a").pinned is False

    def test_split_action_creates_empty_group(self, manager):
        new_group = manager.handle_context_action("g1", "a", "splitDown")
        assert manager.get_group(new_group).is_empty
        assert owners(manager, "a") == ["g1"]
        assert manager.grid.root.orientation is Orientation.VERTICAL

    def test_unknown_action(self, manager):
        with pytest.raises(ValueError):
            manager.handle_context_action("g1", "a", "explode")


class TestSplitPanel:
    """面板分割测试"""

    def test_split_moves_tab_to_new_group(self, manager):
        """分割后被移动的标签页只属于新 group"""
        new_group = manager.split_panel("g1", "right", moving_tab_id="b")
        assert owners(manager, "b") == [new_group]
        assert manager.get_group(new_group).active_tab_id == "b"
        assert manager.get_group("g1").active_tab_id == "c"
        assert manager.focused_group_id == new_group
        assert manager.group_ids() == ["g1", new_group]

    def test_split_left_inserts_before(self, manager):
        new_group = manager.split_panel("g1", SplitDirection.LEFT)
        assert manager.group_ids() == [new_group, "g1"]

    def test_split_percentages(self, manager):
        new_group = manager.split_panel("g1", "right")
        assert manager.get_group("g1").percentage == pytest.approx(50)
        assert manager.get_group(new_group).percentage == pytest.approx(50)

    def test_split_from_other_source(self, manager):
        right = manager.split_panel("g1", "right")
        below = manager.split_panel(right, "down", moving_tab_id="a", source_group_id="g1")
        assert owners(manager, "a") == [below]
        assert isinstance(manager.grid.root.children[1], GridBranch)

    def test_split_missing_tab(self, manager):
        with pytest.raises(InvalidLocation):
            manager.split_panel("g1", "right", moving_tab_id="zzz")

    def test_max_groups_per_branch(self, manager):
        for _ in range(3):
            manager.split_panel("g1", "right")
        before = serialize_grid(manager.grid)
        with pytest.raises(MaxSplitDepthExceeded):
            manager.split_panel("g1", "right")
        assert serialize_grid(manager.grid) == before
        assert len(manager.groups) == 4
        assert metrics.get_counter("grid.split_rejected") == 1

    def test_orthogonal_split_allowed_in_full_branch(self, manager):
        for _ in range(3):
            manager.split_panel("g1", "right")
        manager.split_panel("g1", "down")
        assert len(manager.group_ids()) == 5

    def test_editor_limit(self):
        manager = PanelManager.for_editor()
        group_id = manager.group_ids()[0]
        manager.split_panel(group_id, "right")
        manager.split_panel(group_id, "right")
        with pytest.raises(MaxSplitDepthExceeded):
            manager.split_panel(group_id, "right")

    def test_split_metrics(self, manager):
        manager.split_panel("g1", "right")
        assert metrics.get_counter("grid.split", {"direction": "right"}) == 1
        assert metrics.get_gauge("panels.groups") == 2


class TestClosePanel:
    """面板关闭测试"""

    def test_close_last_panel(self, manager):
        before = serialize_grid(manager.grid)
        with pytest.raises(CannotCloseLastPanel):
            manager.close_panel("g1")
        assert serialize_grid(manager.grid) == before

    def test_close_transfers_tabs(self, manager):
        new_group = manager.split_panel("g1", "right", moving_tab_id="b")
        target = manager.close_panel(new_group)
        assert target == "g1"
        group = manager.get_group("g1")
        assert [tab.id for tab in group.tabs] == ["a", "c", "b"]
        assert group.active_tab_id == "c"
        assert manager.focused_group_id == "g1"
        assert manager.group_ids() == ["g1"]
        assert metrics.get_counter("grid.close") == 1

    def test_close_into_group_without_active(self, manager):
        new_group = manager.split_panel("g1", "right")
        target = manager.close_panel("g1")
        assert target == new_group
        group = manager.get_group(new_group)
        assert [tab.id for tab in group.tabs] == ["a", "b", "c"]
        assert group.active_tab_id == "b"

    def test_close_transfers_to_first_sibling(self, manager):
        middle = manager.split_panel("g1", "right", moving_tab_id="c")
        last = manager.split_panel(middle, "right", moving_tab_id="c", source_group_id=middle)
        target = manager.close_panel(last)
        assert target == "g1"
        assert [tab.id for tab in manager.get_group("g1").tabs] == ["a", "b", "c"]
        assert manager.get_group(middle).tabs == []
        assert manager.group_ids() == ["g1", middle]

    def test_close_reduces_tree(self, manager):
        right = manager.split_panel("g1", "right")
        below = manager.split_panel(right, "down")
        manager.close_panel(right)
        assert manager.group_ids() == ["g1", below]
        assert all(leaf.size == pytest.approx(400) for _, leaf in get_all_leaves(manager.grid))


class TestSizing:
    """尺寸与焦点测试"""

    def test_resize_panel(self, manager):
        other = manager.split_panel("g1", "right")
        applied = manager.resize_panel("g1", 100)
        assert applied == pytest.approx(100)
        assert manager.get_group("g1").percentage == pytest.approx(62.5)
        assert manager.get_group(other).percentage == pytest.approx(37.5)

    def test_set_panel_size_respects_constraints(self, manager):
        other = manager.split_panel("g1", "right")
        manager.set_constraints(other, ViewConstraints(minimum_width=300))
        manager.set_panel_size("g1", 700)
        leaves = dict((leaf.group_id, leaf.size) for _, leaf in get_all_leaves(manager.grid))
        assert leaves == pytest.approx({"g1": 500, other: 300})

    def test_set_panel_visible(self, manager):
        other = manager.split_panel("g1", "right")
        manager.set_panel_visible(other, False)
        assert manager.get_group("g1").percentage == pytest.approx(100)
        manager.set_panel_visible(other, True)
        assert manager.get_group(other).percentage == pytest.approx(50)

    @pytest.mark.parametrize("direction", ["down", "right"])
    def test_cannot_split_hidden_panel(self, manager, direction):
        other = manager.split_panel("g1", "right")
        manager.set_panel_visible(other, False)
        with pytest.raises(InvalidLocation):
            manager.split_panel(other, direction)
        assert manager.group_ids() == ["g1", other]
        manager.set_panel_visible(other, True)
        assert manager.grid.root.sizes == pytest.approx((400, 400))

    def test_cannot_hide_every_panel(self, manager):
        other = manager.split_panel("g1", "right")
        manager.set_panel_visible(other, False)
        with pytest.raises(InvalidLocation):
            manager.set_panel_visible("g1", False)
        assert manager.get_group("g1").percentage == pytest.approx(100)

    def test_focus_panel(self, manager):
        other = manager.split_panel("g1", "right")
        manager.focus_panel("g1")
        assert manager.get_group("g1").focused is True
        assert manager.get_group(other).focused is False

    def test_layout(self, manager):
        manager.split_panel("g1", "right")
        manager.layout(1200, 900)
        assert (manager.grid.width, manager.grid.height) == (1200, 900)
        assert manager.grid.root.sizes == pytest.approx((600, 600))

    def test_hit_test(self, manager):
        other = manager.split_panel("g1", "right")
        assert manager.hit_test(100, 100).group_id == "g1"
        assert manager.hit_test(700, 100).group_id == other
        assert manager.hit_test(900, 100) is None


class TestExternalResize:
    """外部尺寸上报测试"""

    def test_root_leaf_accepts_without_change(self, manager):
        assert manager.apply_external_resize("g1", 500, 600, now=T0) is True
        assert manager.grid.root.size == 800

    def test_applies_along_parent_axis(self, manager):
        other = manager.split_panel("g1", "right")
        assert manager.apply_external_resize("g1", 300, 600, now=T0) is True
        sizes = dict((leaf.group_id, leaf.size) for _, leaf in get_all_leaves(manager.grid))
        assert sizes == pytest.approx({"g1": 300, other: 500})

    def test_flapping_sizes_blocked(self, manager):
        manager.split_panel("g1", "right")
        assert manager.apply_external_resize("g1", 300, 600, now=T0) is True
        assert manager.apply_external_resize("g1", 500, 600, now=T0 + 0.1) is True
        assert manager.apply_external_resize("g1", 300, 600, now=T0 + 0.2) is False
        assert manager.grid.root.sizes == pytest.approx((500, 300))


class TestRenderAndPersist:
    """渲染与持久化测试"""

    def test_render_model(self, manager):
        other = manager.split_panel("g1", "right", moving_tab_id="c")
        model = manager.render_model()
        assert model["type"] == "layout"
        assert model["focusedGroupId"] == other
        leaves = {leaf["groupId"]: leaf for leaf in model["leaves"]}
        assert leaves["g1"]["rect"] == {"left": 0, "top": 0, "width": 400, "height": 600}
        assert [tab["id"] for tab in leaves[other]["tabs"]] == ["c"]
        assert leaves[other]["activeTabId"] == "c"
        assert leaves["g1"]["parentOrientation"] == "horizontal"

    def test_save_and_restore(self, manager):
        storage = MemoryStorage()
        other = manager.split_panel("g1", "down", moving_tab_id="a")
        manager.resize_panel("g1", 50)
        assert manager.save(storage) is True

        restored = PanelManager.restore(storage)
        assert restored.group_ids() == ["g1", other]
        assert serialize_grid(restored.grid) == serialize_grid(manager.grid)
        assert [tab.id for tab in restored.get_group(other).tabs] == ["a"]
        assert restored.focused_group_id == other

    def test_restore_empty_storage(self):
        manager = PanelManager.restore(MemoryStorage())
        assert len(manager.group_ids()) == 1

    def test_on_change(self, manager):
        calls = []
        manager.on_change(lambda m: calls.append(m.focused_group_id))
        manager.select_tab("g1", "a")
        assert calls == ["g1"]

    def test_failing_callback_does_not_break(self, manager):
        def boom(_):
            raise RuntimeError("boom")

        manager.on_change(boom)
        manager.select_tab("g1", "a")
        assert manager.get_group("g1").active_tab_id == "a"
