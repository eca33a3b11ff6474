"""
Phase state machine for the dev server monitor.

States: IDLE -> BUILDING <-> READY, plus ERROR for failed checks.

  - responding probe            -> READY, failure counter reset
  - first failure after READY   -> BUILDING ("rebuilding"), counter = 1
  - failures while BUILDING     -> stay BUILDING until failure_threshold, then IDLE
  - failures while IDLE/ERROR   -> unchanged; a never-seen server does not start "building"
  - process owned by another workspace, or no port -> IDLE without probing

Every mutation takes the internal lock; callbacks run after it is released.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from .types import MonitorConfig, MonitorStatus, Observation, Ownership, Phase

log = logging.getLogger(__name__)


MSG_NO_PORT = "no port configured"
MSG_FOREIGN = "running in another workspace"
MSG_REBUILDING = "rebuilding"
MSG_STOPPED = "stopped"
MSG_NOT_DETECTED = "not detected"
MSG_RELOAD = "reload triggered"


def _now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%S", time.localtime())


def ready_message(port: int) -> str:
    return f"server running on port {port}"


class PhaseStateMachine:
    def __init__(self, config: MonitorConfig) -> None:
        self._cfg = config
        self._phase = Phase.IDLE
        self._message = ""
        self._failures = 0
        self._generation = 0
        self._lock = threading.Lock()

        self._last_emitted: tuple[Phase, str] = (self._phase, self._message)
        self._event_cb: Optional[Callable[[dict], None]] = None
        self._status_cb: Optional[Callable[[MonitorStatus], None]] = None

    def on_event(self, cb: Callable[[dict], None]) -> None:
        """Called once per phase change with a PHASE_CHANGED dict."""
        self._event_cb = cb

    def on_status(self, cb: Callable[[MonitorStatus], None]) -> None:
        """Called whenever (phase, message) differs from what was last reported."""
        self._status_cb = cb

    @property
    def config(self) -> MonitorConfig:
        with self._lock:
            return self._cfg

    @property
    def generation(self) -> int:
        """Bumped on every config change; work scheduled under an older generation is stale."""
        with self._lock:
            return self._generation

    def get_state(self) -> MonitorStatus:
        with self._lock:
            return self._snapshot()

    def _snapshot(self) -> MonitorStatus:
        return MonitorStatus(
            phase=self._phase,
            message=self._message,
            failure_count=self._failures,
            port=self._cfg.port,
        )

    # Transitions

    def apply_observation(self, obs: Observation) -> MonitorStatus:
        """Run the core algorithm for one check cycle (tick, manual check, reload check)."""
        with self._lock:
            prev = self._phase
            self._evaluate(obs)
            status = self._snapshot()
            emit = self._claim_emission(status)
        if emit:
            self._publish(prev, status)
        return status

    def apply_saved(self) -> bool:
        """
        A watched source file was saved. Returns True when an accelerated probe
        should follow (a server was up, or erroring); IDLE has nothing to reload.
        """
        with self._lock:
            prev = self._phase
            if prev == Phase.IDLE:
                return False
            self._failures = 0
            self._set(Phase.BUILDING, MSG_RELOAD)
            status = self._snapshot()
            emit = self._claim_emission(status)
        if emit:
            self._publish(prev, status)
        return True

    def apply_config(self, config: MonitorConfig) -> int:
        """Swap in a new config snapshot atomically. Returns the new generation."""
        with self._lock:
            self._cfg = config
            self._failures = 0
            self._generation += 1
            return self._generation

    def apply_failure(self, error: BaseException) -> MonitorStatus:
        """The check itself blew up (not the server); show it instead of guessing."""
        with self._lock:
            prev = self._phase
            self._failures = 0
            self._set(Phase.ERROR, f"check failed: {error}")
            status = self._snapshot()
            emit = self._claim_emission(status)
        if emit:
            self._publish(prev, status)
        return status

    def _evaluate(self, obs: Observation) -> None:
        cfg = self._cfg

        if obs.ownership == Ownership.FOREIGN:
            self._failures = 0
            self._set(Phase.IDLE, MSG_FOREIGN)
            return

        if cfg.port is None:
            self._failures = 0
            self._set(Phase.IDLE, MSG_NO_PORT)
            return

        result = obs.probe
        if result is None:
            return

        if result.responding:
            self._failures = 0
            self._set(Phase.READY, ready_message(cfg.port))
            return

        if self._phase == Phase.READY:
            self._failures = 1
            self._set(Phase.BUILDING, MSG_REBUILDING)
        elif self._phase == Phase.BUILDING:
            self._failures += 1
            if self._failures >= cfg.failure_threshold:
                self._failures = 0
                self._set(Phase.IDLE, MSG_STOPPED)
            else:
                self._set(Phase.BUILDING, f"waiting ({self._failures}/{cfg.failure_threshold})")
        else:
            self._failures = 0
            self._set(self._phase, MSG_NOT_DETECTED)

    def _set(self, phase: Phase, message: str) -> None:
        self._phase = phase
        self._message = message

    # Emission

    def _claim_emission(self, status: MonitorStatus) -> bool:
        """Dedup on (phase, message). Caller holds the lock; callbacks run after it is released."""
        key = (status.phase, status.message)
        if key == self._last_emitted:
            return False
        self._last_emitted = key
        return True

    def _publish(self, prev: Phase, status: MonitorStatus) -> None:
        if status.phase != prev:
            log.info(f"Phase changed: {prev.value} -> {status.phase.value} ({status.message})")
            if self._event_cb:
                self._event_cb({
                    "type": "PHASE_CHANGED",
                    "from": prev,
                    "to": status.phase,
                    "message": status.message,
                    "port": status.port,
                    "at": _now_iso(),
                })

        if self._status_cb:
            self._status_cb(status)
