from __future__ import annotations


class MonitorError(Exception):
    """Base class for dev server monitor errors."""


class ProbeError(MonitorError):
    """A probe did not get a usable answer. Carried in ProbeResult, never raised to callers."""


class ProbeTimeout(ProbeError):
    def __init__(self, message: str = "timeout") -> None:
        super().__init__(message)


class ProbeConnectionError(ProbeError):
    """Connection refused or reset."""


class ProbeTransportError(ProbeError):
    """DNS failure, protocol error, anything else on the wire."""


class ProcessEnumerationUnavailable(MonitorError):
    """The platform cannot enumerate processes or resolve their working directory."""


class InvalidPortInput(MonitorError, ValueError):
    """User entered something that is not a port in 1-65535."""
