"""Host-facing commands that are not state transitions."""

from __future__ import annotations

import logging
import webbrowser
from typing import Callable, Optional

from packages.core.monitor.errors import InvalidPortInput
from packages.core.monitor.probe import endpoint_url

log = logging.getLogger(__name__)


def parse_port_input(text: str) -> int:
    """Validate a port typed by the user. Raises InvalidPortInput so the caller can re-prompt."""
    value = (text or "").strip()
    try:
        port = int(value)
    except ValueError:
        raise InvalidPortInput(f"Not a number: {value!r}") from None
    if not 1 <= port <= 65535:
        raise InvalidPortInput("Enter a valid port number (1-65535)")
    return port


def open_endpoint(port: int, host: str = "localhost") -> bool:
    url = endpoint_url(host, port)
    log.info(f"Opening browser: {url}")
    return webbrowser.open(url)


def resolve_detected_port(
    current: Optional[int],
    detected: Optional[int],
    confirm: Callable[[int], bool],
) -> Optional[int]:
    """
    Port to monitor after an auto-detect run. Switching away from the
    configured port (or setting one where none is configured) only happens
    when ``confirm(detected)`` agrees; otherwise the current port stays.
    """
    if detected is None or detected == current:
        return current
    if confirm(detected):
        log.info(f"Auto-detect: switching port {current} -> {detected}")
        return detected
    log.info(f"Auto-detect: kept port {current}, found {detected}")
    return current
