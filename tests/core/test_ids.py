"""Tests for core.ids - tab and panel group identifiers"""

import re

from panelgrid.core.ids import (
    generate_group_id,
    generate_tab_id,
    make_id,
    short_id,
)

ID_PATTERN = re.compile(r"^(?P<prefix>.+)-(?P<ms>\d+)-(?P<rand>[0-9a-z]{9})$")


class TestMakeId:
    """Test make_id and the typed generators"""

    def test_format(self):
        """ID should be prefix, epoch millis and a base36 suffix"""
        match = ID_PATTERN.match(make_id("thing"))
        assert match is not None
        assert match.group("prefix") == "thing"

    def test_unique(self):
        """Consecutive IDs should differ"""
        assert len({make_id("tab") for _ in range(50)}) == 50

    def test_tab_id(self):
        assert generate_tab_id().startswith("tab-")

    def test_group_id(self):
        assert generate_group_id().startswith("panel-group-")

    def test_editor_group_id(self):
        assert generate_group_id(editor=True).startswith("editor-group-")


class TestShortId:
    """Test short_id function"""

    def test_keeps_random_tail(self):
        assert short_id("panel-group-1718000000000-k3j9x0a2b") == "k3j9x0a2"

    def test_custom_length(self):
        assert short_id("tab-1718000000000-k3j9x0a2b", length=4) == "k3j9"

    def test_plain_value(self):
        assert short_id("g1") == "g1"

    def test_empty(self):
        assert short_id("") == "unknown"
