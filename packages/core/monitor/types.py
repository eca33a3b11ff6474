from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal, Optional

from .errors import ProbeError

DEFAULT_CANDIDATE_PORTS: tuple[int, ...] = (3000, 8080, 5173, 8901, 3001, 8081, 4173)


class Phase(str, Enum):
    IDLE = "idle"
    BUILDING = "building"
    READY = "ready"
    ERROR = "error"


class MonitorEvent(str, Enum):
    TICK = "tick"
    SAVED = "saved"
    MANUAL_CHECK = "manual_check"
    PORT_CHANGED = "port_changed"
    CONFIG_CHANGED = "config_changed"
    RELOAD_CHECK = "reload_check"  # accelerated probe after a save


class Ownership(str, Enum):
    UNKNOWN = "unknown"
    OWNED = "owned"
    FOREIGN = "foreign"


ClickAction = Literal["toggle-terminal", "manual-check", "none"]


@dataclass(frozen=True)
class MonitorConfig:
    port: Optional[int]
    poll_interval_ms: int = 3000
    failure_threshold: int = 3
    candidate_ports: tuple[int, ...] = DEFAULT_CANDIDATE_PORTS
    host: str = "localhost"
    probe_timeout_ms: int = 2000
    reload_check_delay_ms: int = 2000
    ownership_check_enabled: bool = True

    def __post_init__(self) -> None:
        if self.port is not None and not 1 <= self.port <= 65535:
            raise ValueError(f"port out of range: {self.port}")
        if self.poll_interval_ms <= 0:
            raise ValueError("poll_interval_ms must be > 0")
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        # accept any iterable from config dicts, keep the snapshot immutable
        object.__setattr__(self, "candidate_ports", tuple(self.candidate_ports))


@dataclass(frozen=True)
class ProbeResult:
    responding: bool
    status_code: Optional[int] = None
    error: Optional[ProbeError] = None


@dataclass(frozen=True)
class CandidateProcess:
    pid: int
    command_line: str
    working_directory: Optional[str] = None


@dataclass(frozen=True)
class Observation:
    """What one check cycle saw before any state was touched."""
    ownership: Ownership = Ownership.UNKNOWN
    probe: Optional[ProbeResult] = None  # None when no probe was issued


@dataclass(frozen=True)
class MonitorStatus:
    phase: Phase = Phase.IDLE
    message: str = ""
    failure_count: int = 0
    port: Optional[int] = None


@dataclass(frozen=True)
class StatusPayload:
    phase: Phase
    text: str
    tooltip: str
    color: Optional[str]  # semantic token, resolved by the theme
    click_action: ClickAction = "none"
