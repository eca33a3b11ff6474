from __future__ import annotations

import logging
from typing import Iterable, Optional

from .probe import ProbeFn, probe as http_probe

log = logging.getLogger(__name__)

DETECT_TIMEOUT_MS = 1000


def detect_port(
    candidate_ports: Iterable[int],
    host: str = "localhost",
    timeout_ms: int = DETECT_TIMEOUT_MS,
    probe: Optional[ProbeFn] = None,
) -> Optional[int]:
    """
    Probe each candidate port in order, one at a time, and return the first
    that answers. Does not touch any configuration; the caller decides whether
    to adopt the result.
    """
    probe_fn = probe or http_probe
    for port in candidate_ports:
        result = probe_fn(host, port, timeout_ms)
        if result.responding:
            log.info(f"Detected dev server on port {port}")
            return port
        log.debug(f"Port {port}: no server ({result.error or result.status_code})")
    log.info("Auto-detect: no dev server found on candidate ports")
    return None
