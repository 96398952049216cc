"""Pytest 配置"""

import pytest

from panelgrid.layout.grid import add_view_to_grid, create_grid_state
from panelgrid.layout.types import GridBranch, GridLeaf, Orientation
from panelgrid.panels.types import Tab, TabKind


@pytest.fixture
def two_leaf_grid():
    """800x600，水平 [g1 | g2]，各 400"""
    state = create_grid_state("g1", 800, 600)
    return add_view_to_grid(state, (), GridLeaf("g2"), Orientation.HORIZONTAL)


@pytest.fixture
def nested_grid(two_leaf_grid):
    """水平 [g1 | 垂直 [g2 / g3]]"""
    return add_view_to_grid(two_leaf_grid, (1,), GridLeaf("g3"), Orientation.VERTICAL)


def _make_tab(tab_id: str, kind: TabKind = TabKind.TERMINAL, **kwargs) -> Tab:
    return Tab(id=tab_id, kind=kind, title=kwargs.pop("title", tab_id), **kwargs)


@pytest.fixture
def make_tab():
    """标签页工厂"""
    return _make_tab


def _assert_sizes_consistent(node, size=None):
    """每个分支 sum(sizes) == size，子节点 size 与父分支槽位一致"""
    if isinstance(node, GridLeaf):
        if size is not None and node.visible:
            assert node.size == pytest.approx(size)
        return
    assert isinstance(node, GridBranch)
    if size is not None:
        assert node.size == pytest.approx(size)
    assert sum(node.sizes) == pytest.approx(node.size)
    for child, child_size in zip(node.children, node.sizes):
        if isinstance(child, GridBranch):
            assert child.orientation is not node.orientation
        _assert_sizes_consistent(child, child_size)


@pytest.fixture
def assert_sizes():
    """尺寸不变量检查"""
    return _assert_sizes_consistent
