"""Tests for the host-facing commands."""

import pytest

from packages.core.monitor.errors import InvalidPortInput, MonitorError
from packages.core.monitor.port_detect import detect_port
from packages.core.status import commands
from packages.core.status.commands import open_endpoint, parse_port_input, resolve_detected_port
from tests.helpers import DOWN, UP


class TestParsePortInput:
    @pytest.mark.parametrize("text, expected", [("3000", 3000), (" 5173 ", 5173), ("1", 1), ("65535", 65535)])
    def test_valid(self, text: str, expected: int) -> None:
        assert parse_port_input(text) == expected

    @pytest.mark.parametrize("text", ["", "abc", "0", "65536", "-1", "30.5", None])
    def test_invalid(self, text) -> None:
        with pytest.raises(InvalidPortInput):
            parse_port_input(text)

    def test_error_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse_port_input("nope")
        assert issubclass(InvalidPortInput, MonitorError)


def test_open_endpoint_opens_browser(monkeypatch) -> None:
    opened: list[str] = []
    monkeypatch.setattr(commands.webbrowser, "open", lambda url: opened.append(url) or True)

    assert open_endpoint(5173) is True
    assert opened == ["http://localhost:5173/"]


class TestResolveDetectedPort:
    def test_declined_keeps_configured_port(self) -> None:
        asked: list[int] = []

        def decline(port: int) -> bool:
            asked.append(port)
            return False

        assert resolve_detected_port(3000, 5173, decline) == 3000
        assert asked == [5173]

    def test_confirmed_adopts_detected_port(self) -> None:
        assert resolve_detected_port(3000, 5173, lambda port: True) == 5173

    def test_same_port_does_not_ask(self) -> None:
        def never(port: int) -> bool:
            raise AssertionError("should not ask")

        assert resolve_detected_port(5173, 5173, never) == 5173

    def test_nothing_detected_keeps_current(self) -> None:
        def never(port: int) -> bool:
            raise AssertionError("should not ask")

        assert resolve_detected_port(3000, None, never) == 3000
        assert resolve_detected_port(None, None, never) is None

    def test_unconfigured_port_still_asks(self) -> None:
        assert resolve_detected_port(None, 5173, lambda port: False) is None
        assert resolve_detected_port(None, 5173, lambda port: True) == 5173

    def test_detect_then_decline_scenario(self) -> None:
        """Only 5173 answers among [3000, 5173]; a configured 3000 survives a declined prompt."""
        found = detect_port([3000, 5173], probe=lambda host, port, timeout_ms: UP if port == 5173 else DOWN)

        assert found == 5173
        assert resolve_detected_port(3000, found, lambda port: False) == 3000
