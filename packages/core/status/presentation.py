from __future__ import annotations

from typing import Optional

from packages.core.monitor.probe import endpoint_url
from packages.core.monitor.types import ClickAction, Phase, StatusPayload

_PHASE_DISPLAY: dict[Phase, dict] = {
    Phase.IDLE: {
        "text": "○ Idle",
        "color": None,
        "tooltip": "Dev server is not running",
    },
    Phase.BUILDING: {
        "text": "⟳ Building",
        "color": "warning",
        "tooltip": "Code is being built...",
    },
    Phase.READY: {
        "text": "▲ Running",
        "color": "success",
        "tooltip": "Dev server is ready",
    },
    Phase.ERROR: {
        "text": "✕ Error",
        "color": "error",
        "tooltip": "The server may have a problem",
    },
}

_CLICK_ACTIONS: dict[Phase, ClickAction] = {
    Phase.IDLE: "toggle-terminal",
    Phase.BUILDING: "toggle-terminal",
    Phase.READY: "toggle-terminal",
    Phase.ERROR: "manual-check",
}


def build_status_payload(phase: Phase, message: str = "", port: Optional[int] = None) -> StatusPayload:
    display = _PHASE_DISPLAY.get(phase, _PHASE_DISPLAY[Phase.IDLE])
    tooltip_lines = [display["tooltip"]]
    if message:
        tooltip_lines.append(message)
    if phase == Phase.READY and port is not None:
        tooltip_lines.append(f"Port: {port}")
    return StatusPayload(
        phase=phase,
        text=display["text"],
        tooltip="\n".join(tooltip_lines),
        color=display["color"],
        click_action=_CLICK_ACTIONS.get(phase, "none"),
    )


def build_notification(phase: Phase, message: str, port: Optional[int] = None, host: str = "localhost") -> dict:
    title = "Dev Server Monitor"
    body = f"{phase.value.capitalize()}: {message}" if message else phase.value.capitalize()
    if phase == Phase.READY and port is not None:
        body += "\n" + endpoint_url(host, port)
    return {"title": title, "body": body}
