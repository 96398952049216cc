"""日志与指标测试"""

import pytest

from panelgrid.errors import InvalidLocation, PanelGridError
from panelgrid.telemetry import Metrics, format_group_log


class TestFormatGroupLog:
    """format_group_log 测试"""

    def test_generated_id(self):
        msg = format_group_log("Panels", "panel-group-1718000000000-k3j9x0a2b", "split")
        assert msg == "[Panels:k3j9x0a2] split"

    def test_plain_id(self):
        assert format_group_log("Grid", "g1", "resized") == "[Grid:g1] resized"

    def test_empty_id(self):
        assert format_group_log("Grid", "", "x") == "[Grid:unknown] x"


class TestMetrics:
    """Metrics 测试"""

    def test_counter_labels(self):
        metrics = Metrics()
        metrics.inc("persist.error", {"op": "save"})
        metrics.inc("persist.error", {"op": "save"})
        metrics.inc("persist.error", {"op": "load"})
        assert metrics.get_counter("persist.error", {"op": "save"}) == 2
        assert metrics.get_counter("persist.error", {"op": "load"}) == 1
        assert metrics.get_counter("persist.error") == 0

    def test_gauge(self):
        metrics = Metrics()
        metrics.gauge("panels.groups", 3)
        assert metrics.get_gauge("panels.groups") == 3

    def test_disabled(self):
        metrics = Metrics(enabled=False)
        metrics.inc("grid.split")
        assert metrics.get_counter("grid.split") == 0

    def test_reset(self):
        metrics = Metrics()
        metrics.inc("grid.close")
        metrics.gauge("panels.groups", 1)
        metrics.reset()
        assert metrics.get_counter("grid.close") == 0
        assert metrics.get_gauge("panels.groups") == 0.0


class TestErrors:
    """异常上下文测试"""

    def test_message_with_context(self):
        error = InvalidLocation("unknown panel group", group_id="g9")
        assert isinstance(error, PanelGridError)
        assert error.message == "unknown panel group"
        assert error.context == {"group_id": "g9"}
        assert str(error) == "unknown panel group (group_id='g9')"

    def test_message_without_context(self):
        assert str(PanelGridError("boom")) == "boom"

    def test_raises(self):
        with pytest.raises(PanelGridError, match="unknown"):
            raise InvalidLocation("unknown location", location=(0, 3))
