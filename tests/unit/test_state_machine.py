"""Tests for the phase state machine transition rules."""

import itertools
import threading

import pytest

from packages.core.monitor.state_machine import (
    MSG_FOREIGN,
    MSG_NO_PORT,
    MSG_NOT_DETECTED,
    MSG_REBUILDING,
    MSG_RELOAD,
    MSG_STOPPED,
    PhaseStateMachine,
    ready_message,
)
from packages.core.monitor.types import Observation, Ownership, Phase, ProbeResult
from tests.helpers import DOWN, UP

OBS_UP = Observation(probe=UP)
OBS_DOWN = Observation(probe=DOWN)
OBS_5XX = Observation(probe=ProbeResult(responding=False, status_code=503))
OBS_FOREIGN = Observation(ownership=Ownership.FOREIGN)


@pytest.fixture
def machine(make_config) -> PhaseStateMachine:
    return PhaseStateMachine(make_config())


def _ready(machine: PhaseStateMachine) -> PhaseStateMachine:
    machine.apply_observation(OBS_UP)
    assert machine.get_state().phase == Phase.READY
    return machine


class TestInitialState:
    def test_starts_idle_with_zero_failures(self, machine: PhaseStateMachine) -> None:
        state = machine.get_state()
        assert state.phase == Phase.IDLE
        assert state.failure_count == 0
        assert state.port == 3000


class TestResponding:
    def test_idle_to_ready(self, machine: PhaseStateMachine) -> None:
        status = machine.apply_observation(OBS_UP)

        assert status.phase == Phase.READY
        assert status.message == ready_message(3000)
        assert "3000" in status.message

    def test_error_to_ready(self, machine: PhaseStateMachine) -> None:
        machine.apply_failure(RuntimeError("boom"))

        assert machine.apply_observation(OBS_UP).phase == Phase.READY

    def test_responding_resets_counter(self, machine: PhaseStateMachine) -> None:
        _ready(machine)
        machine.apply_observation(OBS_DOWN)
        machine.apply_observation(OBS_DOWN)
        assert machine.get_state().failure_count == 2

        status = machine.apply_observation(OBS_UP)

        assert status.phase == Phase.READY
        assert status.failure_count == 0


class TestNotResponding:
    @pytest.mark.parametrize("threshold", [1, 2, 3, 10])
    def test_first_failure_after_ready_is_rebuild(self, make_config, threshold: int) -> None:
        """A single failure from READY always lands in BUILDING with count 1, whatever the threshold."""
        machine = _ready(PhaseStateMachine(make_config(failure_threshold=threshold)))

        status = machine.apply_observation(OBS_DOWN)

        assert status.phase == Phase.BUILDING
        assert status.failure_count == 1
        assert status.message == MSG_REBUILDING

    def test_server_error_status_counts_as_failure(self, machine: PhaseStateMachine) -> None:
        _ready(machine)

        assert machine.apply_observation(OBS_5XX).phase == Phase.BUILDING

    def test_threshold_three_trace_from_ready(self, machine: PhaseStateMachine) -> None:
        _ready(machine)

        trace = [machine.apply_observation(OBS_DOWN) for _ in range(3)]

        assert [(s.phase, s.failure_count) for s in trace] == [
            (Phase.BUILDING, 1),
            (Phase.BUILDING, 2),
            (Phase.IDLE, 0),
        ]
        assert trace[1].message == "waiting (2/3)"
        assert trace[2].message == MSG_STOPPED

    @pytest.mark.parametrize("threshold", [2, 4, 5])
    def test_threshold_law(self, make_config, threshold: int) -> None:
        """Stays BUILDING below the threshold, drops to IDLE exactly when it is reached."""
        machine = _ready(PhaseStateMachine(make_config(failure_threshold=threshold)))
        machine.apply_observation(OBS_DOWN)

        for expected in range(2, threshold):
            status = machine.apply_observation(OBS_DOWN)
            assert status.phase == Phase.BUILDING
            assert status.failure_count == expected

        final = machine.apply_observation(OBS_DOWN)
        assert final.phase == Phase.IDLE
        assert final.failure_count == 0

    def test_cold_idle_never_escalates_to_building(self, machine: PhaseStateMachine) -> None:
        for _ in range(10):
            status = machine.apply_observation(OBS_DOWN)
            assert status.phase == Phase.IDLE
            assert status.failure_count == 0
        assert machine.get_state().message == MSG_NOT_DETECTED

    def test_error_stays_error_on_failure(self, machine: PhaseStateMachine) -> None:
        machine.apply_failure(RuntimeError("boom"))

        status = machine.apply_observation(OBS_DOWN)

        assert status.phase == Phase.ERROR
        assert status.failure_count == 0
        assert status.message == MSG_NOT_DETECTED


class TestNoPort:
    @pytest.mark.parametrize("obs", [OBS_UP, OBS_DOWN, Observation()])
    def test_forced_idle_from_any_state(self, make_config, obs: Observation) -> None:
        machine = _ready(PhaseStateMachine(make_config()))
        machine.apply_observation(OBS_DOWN)
        machine.apply_config(make_config(port=None))

        status = machine.apply_observation(obs)

        assert status.phase == Phase.IDLE
        assert status.failure_count == 0
        assert status.message == MSG_NO_PORT
        assert status.port is None


class TestOwnership:
    def test_foreign_process_forces_idle(self, machine: PhaseStateMachine) -> None:
        _ready(machine)

        status = machine.apply_observation(OBS_FOREIGN)

        assert status.phase == Phase.IDLE
        assert status.message == MSG_FOREIGN
        assert status.failure_count == 0

    def test_foreign_wins_over_responding_probe(self, machine: PhaseStateMachine) -> None:
        status = machine.apply_observation(Observation(ownership=Ownership.FOREIGN, probe=UP))

        assert status.phase == Phase.IDLE

    @pytest.mark.parametrize("ownership", [Ownership.OWNED, Ownership.UNKNOWN])
    def test_owned_or_unknown_falls_through_to_probe(self, machine: PhaseStateMachine, ownership: Ownership) -> None:
        status = machine.apply_observation(Observation(ownership=ownership, probe=UP))

        assert status.phase == Phase.READY


class TestSaved:
    def test_saved_while_ready_enters_building(self, machine: PhaseStateMachine) -> None:
        _ready(machine)

        assert machine.apply_saved() is True
        state = machine.get_state()
        assert state.phase == Phase.BUILDING
        assert state.failure_count == 0
        assert state.message == MSG_RELOAD

    def test_saved_while_building_resets_counter(self, machine: PhaseStateMachine) -> None:
        _ready(machine)
        machine.apply_observation(OBS_DOWN)
        machine.apply_observation(OBS_DOWN)

        assert machine.apply_saved() is True
        assert machine.get_state().failure_count == 0

    def test_saved_while_error_triggers_reload(self, machine: PhaseStateMachine) -> None:
        machine.apply_failure(RuntimeError("boom"))

        assert machine.apply_saved() is True
        assert machine.get_state().phase == Phase.BUILDING

    def test_saved_while_idle_is_noop(self, machine: PhaseStateMachine) -> None:
        assert machine.apply_saved() is False
        assert machine.get_state().phase == Phase.IDLE

    def test_reload_check_success_returns_to_ready(self, machine: PhaseStateMachine) -> None:
        _ready(machine)
        machine.apply_saved()

        assert machine.apply_observation(OBS_UP).phase == Phase.READY

    def test_reload_check_failure_uses_threshold(self, machine: PhaseStateMachine) -> None:
        _ready(machine)
        machine.apply_saved()

        status = machine.apply_observation(OBS_DOWN)

        assert status.phase == Phase.BUILDING
        assert status.failure_count == 1


class TestConfigChange:
    def test_config_change_resets_counter_and_bumps_generation(self, machine: PhaseStateMachine, make_config) -> None:
        _ready(machine)
        machine.apply_observation(OBS_DOWN)
        before = machine.generation

        machine.apply_config(make_config(port=5173))

        state = machine.get_state()
        assert state.failure_count == 0
        assert state.port == 5173
        assert machine.generation == before + 1

    def test_new_port_reflected_in_ready_message(self, machine: PhaseStateMachine, make_config) -> None:
        _ready(machine)
        machine.apply_config(make_config(port=5173))

        assert machine.apply_observation(OBS_UP).message == ready_message(5173)


class TestEmission:
    def test_repeated_responding_ticks_emit_once(self, machine: PhaseStateMachine, caplog) -> None:
        events: list[dict] = []
        statuses = []
        machine.on_event(events.append)
        machine.on_status(statuses.append)

        with caplog.at_level("INFO", logger="packages.core.monitor.state_machine"):
            for _ in range(5):
                machine.apply_observation(OBS_UP)

        assert len(events) == 1
        assert len(statuses) == 1
        assert events[0]["type"] == "PHASE_CHANGED"
        assert events[0]["from"] == Phase.IDLE
        assert events[0]["to"] == Phase.READY
        assert len([r for r in caplog.records if "Phase changed" in r.getMessage()]) == 1

    def test_message_only_change_updates_status_without_event(self, machine: PhaseStateMachine) -> None:
        _ready(machine)
        machine.apply_observation(OBS_DOWN)
        events: list[dict] = []
        statuses = []
        machine.on_event(events.append)
        machine.on_status(statuses.append)

        machine.apply_observation(OBS_DOWN)

        assert events == []
        assert [s.message for s in statuses] == ["waiting (2/3)"]

    def test_failure_calls_back_with_error_phase(self, machine: PhaseStateMachine) -> None:
        events: list[dict] = []
        machine.on_event(events.append)

        status = machine.apply_failure(RuntimeError("locator exploded"))

        assert status.phase == Phase.ERROR
        assert "locator exploded" in status.message
        assert events[0]["to"] == Phase.ERROR


class TestInvariants:
    STEPS = {
        "up": lambda m: m.apply_observation(OBS_UP),
        "down": lambda m: m.apply_observation(OBS_DOWN),
        "saved": lambda m: m.apply_saved(),
        "foreign": lambda m: m.apply_observation(OBS_FOREIGN),
        "error": lambda m: m.apply_failure(RuntimeError("x")),
    }

    @pytest.mark.parametrize("threshold", [1, 2, 3])
    def test_counter_positive_only_while_building(self, make_config, threshold: int) -> None:
        """Exhaustive over all step sequences up to length 5."""
        for length in range(1, 6):
            for seq in itertools.product(self.STEPS, repeat=length):
                machine = PhaseStateMachine(make_config(failure_threshold=threshold))
                for step in seq:
                    self.STEPS[step](machine)
                    state = machine.get_state()
                    assert state.phase in set(Phase)
                    if state.failure_count > 0:
                        assert state.phase == Phase.BUILDING, seq
                    assert state.failure_count < threshold or threshold == 1, seq


class TestConcurrentCallers:
    def test_parallel_observations_emit_each_change_once(self, machine: PhaseStateMachine) -> None:
        events: list[dict] = []
        statuses = []
        machine.on_event(events.append)
        machine.on_status(statuses.append)
        start = threading.Barrier(8)

        def hammer() -> None:
            start.wait()
            for _ in range(200):
                machine.apply_observation(OBS_UP)

        threads = [threading.Thread(target=hammer) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(events) == 1
        assert events[0]["from"] == Phase.IDLE
        assert len(statuses) == 1
