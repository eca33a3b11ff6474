"""
Drives the phase state machine from a timer and from external triggers.

Every trigger becomes a queued work item. The I/O part of an item (process
lookup + HTTP probe) runs on a small thread pool, so a slow probe never holds
up the next tick. A single applier thread takes items in arrival order, waits
for each one's observation and applies it to the state machine, so
transitions are never interleaved or reordered.
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from .ownership import classify_ownership
from .probe import ProbeFn, probe as http_probe
from .process_locator import NoopProcessLocator, ProcessLocator
from .state_machine import PhaseStateMachine
from .errors import ProbeTimeout
from .types import MonitorConfig, MonitorEvent, MonitorStatus, Observation, Ownership, ProbeResult

log = logging.getLogger(__name__)

# events that run the check algorithm once they are applied
_CHECK_EVENTS = (
    MonitorEvent.TICK,
    MonitorEvent.MANUAL_CHECK,
    MonitorEvent.RELOAD_CHECK,
    MonitorEvent.PORT_CHANGED,
    MonitorEvent.CONFIG_CHANGED,
)

# extra wait on top of the probe timeout before an observation counts as hung
OBSERVE_SLACK_S = 2.0


@dataclass
class _WorkItem:
    event: MonitorEvent
    generation: int
    observation: Optional[Future] = None
    config: Optional[MonitorConfig] = None
    deadline_s: Optional[float] = None


class MonitorScheduler:
    """Background monitor that keeps a PhaseStateMachine up to date for one workspace."""

    def __init__(
        self,
        config: dict,
        workspace_roots: Sequence[str] = (),
        locator: Optional[ProcessLocator] = None,
        probe: Optional[ProbeFn] = None,
        max_workers: int = 4,
    ) -> None:
        self._cfg = MonitorConfig(**config)
        self._roots: tuple[str, ...] = tuple(workspace_roots)
        self._locator = locator or NoopProcessLocator()
        self._probe: ProbeFn = probe or http_probe
        self._machine = PhaseStateMachine(self._cfg)
        self._lock = threading.Lock()
        self._max_workers = max_workers

        self._error_cb: Optional[Callable[[str], None]] = None

        self._queue: "queue.Queue[Optional[_WorkItem]]" = queue.Queue()
        self._pool: Optional[ThreadPoolExecutor] = None
        self._timer_thread: Optional[threading.Thread] = None
        self._applier_thread: Optional[threading.Thread] = None
        self._stop_evt = threading.Event()
        self._wake_evt = threading.Event()
        self._reload_timer: Optional[threading.Timer] = None
        self._generation = 0
        self._running = False

    # Callbacks, forwarded to the state machine

    def on_event(self, cb: Callable[[dict], None]) -> None:
        self._machine.on_event(cb)

    def on_status(self, cb: Callable[[MonitorStatus], None]) -> None:
        self._machine.on_status(cb)

    def on_error(self, cb: Callable[[str], None]) -> None:
        self._error_cb = cb

    @property
    def machine(self) -> PhaseStateMachine:
        return self._machine

    def get_state(self) -> MonitorStatus:
        return self._machine.get_state()

    def is_running(self) -> bool:
        with self._lock:
            return self._running

    # Lifecycle

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            self._running = True
            self._stop_evt.clear()
            self._wake_evt.clear()
            self._pool = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="DevServerProbe")
            self._queue = queue.Queue()
            q = self._queue

        self._applier_thread = threading.Thread(
            target=self._run_applier, args=(q,), name="DevServerMonitorApply", daemon=True
        )
        self._applier_thread.start()
        self._timer_thread = threading.Thread(target=self._run_timer, name="DevServerMonitorTimer", daemon=True)
        self._timer_thread.start()
        log.info(f"Monitoring started (port={self._cfg.port}, every {self._cfg.poll_interval_ms}ms)")

    def stop(self, timeout: float = 5.0) -> None:
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._cancel_reload_locked()
            pool = self._pool
            self._pool = None

        self._stop_evt.set()
        self._wake_evt.set()
        self._queue.put(None)

        for t in (self._timer_thread, self._applier_thread):
            if t is not None and t is not threading.current_thread():
                t.join(timeout)
        if pool is not None:
            pool.shutdown(wait=False, cancel_futures=True)
        self._timer_thread = None
        self._applier_thread = None
        log.info("Monitoring stopped")

    # Triggers

    def tick(self) -> None:
        self._submit(MonitorEvent.TICK)

    def check_now(self) -> None:
        """Out-of-cycle check; the timer keeps its schedule."""
        self._submit(MonitorEvent.MANUAL_CHECK)

    def file_saved(self, filename: str = "") -> None:
        if filename:
            log.debug(f"File saved: {filename}")
        self._submit(MonitorEvent.SAVED)

    def update_config(self, config: dict, workspace_roots: Optional[Sequence[str]] = None) -> None:
        new_cfg = MonitorConfig(**config)
        with self._lock:
            old_cfg = self._cfg
            self._cfg = new_cfg
            if workspace_roots is not None:
                self._roots = tuple(workspace_roots)
            self._generation += 1
            self._cancel_reload_locked()

        event = MonitorEvent.PORT_CHANGED if new_cfg.port != old_cfg.port else MonitorEvent.CONFIG_CHANGED
        log.info(f"Config updated ({event.value}): port={new_cfg.port} interval={new_cfg.poll_interval_ms}ms "
                 f"threshold={new_cfg.failure_threshold}")
        if not self._submit(event, config=new_cfg):
            self._machine.apply_config(new_cfg)

        if new_cfg.poll_interval_ms != old_cfg.poll_interval_ms:
            # restart the period from now
            self._wake_evt.set()

    def set_locator(self, locator: ProcessLocator) -> None:
        with self._lock:
            self._locator = locator

    # Internals

    def _submit(self, event: MonitorEvent, config: Optional[MonitorConfig] = None, generation: Optional[int] = None) -> bool:
        with self._lock:
            if not self._running:
                log.debug(f"Ignoring {event.value}: monitor not running")
                return False
            cfg = self._cfg
            roots = self._roots
            locator = self._locator
            item = _WorkItem(
                event=event,
                generation=self._generation if generation is None else generation,
                config=config,
            )
            if event in _CHECK_EVENTS:
                item.observation = self._pool.submit(self._observe, cfg, roots, locator)
                item.deadline_s = cfg.probe_timeout_ms / 1000.0 + OBSERVE_SLACK_S
            self._queue.put(item)
        return True

    def _observe(self, cfg: MonitorConfig, roots: tuple[str, ...], locator: ProcessLocator) -> Observation:
        ownership = Ownership.UNKNOWN
        if cfg.ownership_check_enabled:
            ownership = classify_ownership(locator.locate_candidates(), roots)
            if ownership == Ownership.FOREIGN:
                return Observation(ownership=ownership)

        if cfg.port is None:
            return Observation(ownership=ownership)

        return Observation(ownership=ownership, probe=self._probe(cfg.host, cfg.port, cfg.probe_timeout_ms))

    def _run_timer(self) -> None:
        self.tick()
        while not self._stop_evt.is_set():
            with self._lock:
                interval = self._cfg.poll_interval_ms / 1000.0
            woke = self._wake_evt.wait(interval)
            if self._stop_evt.is_set():
                return
            if woke:
                self._wake_evt.clear()
                continue
            self.tick()

    def _run_applier(self, q: "queue.Queue[Optional[_WorkItem]]") -> None:
        while True:
            item = q.get()
            if item is None or self._stop_evt.is_set():
                return
            try:
                self._apply(item)
            except Exception as e:
                log.exception("Monitor loop error")
                self._emit_error(str(e))

    def _apply(self, item: _WorkItem) -> None:
        if item.event in (MonitorEvent.PORT_CHANGED, MonitorEvent.CONFIG_CHANGED) and item.config is not None:
            self._machine.apply_config(item.config)

        if item.event == MonitorEvent.RELOAD_CHECK and item.generation != self._current_generation():
            log.debug("Dropping stale reload check")
            return

        if item.event == MonitorEvent.SAVED:
            if self._machine.apply_saved():
                self._schedule_reload_check(item.generation)
            return

        try:
            obs = item.observation.result(timeout=item.deadline_s)
        except FutureTimeout:
            log.warning(f"Check did not finish within {item.deadline_s:.1f}s ({item.event.value}), "
                        f"treating the server as not responding")
            obs = Observation(probe=ProbeResult(responding=False, error=ProbeTimeout()))
        except Exception as e:
            if self._stop_evt.is_set():
                return
            log.exception(f"Check failed ({item.event.value})")
            self._machine.apply_failure(e)
            self._emit_error(str(e))
            return

        self._machine.apply_observation(obs)

    def _current_generation(self) -> int:
        with self._lock:
            return self._generation

    def _schedule_reload_check(self, generation: int) -> None:
        with self._lock:
            if not self._running or generation != self._generation:
                return
            self._cancel_reload_locked()
            delay = self._cfg.reload_check_delay_ms / 1000.0
            timer = threading.Timer(delay, self._submit, args=(MonitorEvent.RELOAD_CHECK,), kwargs={"generation": generation})
            timer.daemon = True
            self._reload_timer = timer
        timer.start()

    def _cancel_reload_locked(self) -> None:
        if self._reload_timer is not None:
            self._reload_timer.cancel()
            self._reload_timer = None

    def _emit_error(self, msg: str) -> None:
        if self._error_cb:
            self._error_cb(msg)
