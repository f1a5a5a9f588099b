"""Unit tests for the generic transition-table engine."""
from dataclasses import FrozenInstanceError
from enum import Enum

import pytest

from campus_exchange.domain.state_machine.transition_table import (
    HistoryEntry,
    InvalidTransitionError,
    MachineDefinition,
    MachineSnapshot,
    create_machine,
)


class Light(str, Enum):
    RED = "red"
    GREEN = "green"
    YELLOW = "yellow"
    OFF = "off"


class Signal(str, Enum):
    GO = "GO"
    SLOW = "SLOW"
    STOP = "STOP"
    SHUTDOWN = "SHUTDOWN"


TRAFFIC = MachineDefinition(
    id="Traffic",
    initial=Light.RED,
    transitions={
        Light.RED: {Signal.GO: Light.GREEN, Signal.SHUTDOWN: Light.OFF},
        Light.GREEN: {Signal.SLOW: Light.YELLOW},
        Light.YELLOW: {Signal.STOP: Light.RED},
        Light.OFF: {},
    },
)


class TestCreateMachine:
    def test_starts_at_initial_state_with_empty_history(self) -> None:
        machine = create_machine(TRAFFIC)
        assert machine.state is Light.RED
        assert machine.history == ()

    def test_rehydrates_from_snapshot(self) -> None:
        history = (HistoryEntry(Signal.GO, Light.RED, Light.GREEN),)
        machine = create_machine(TRAFFIC, MachineSnapshot(state=Light.GREEN, history=history))
        assert machine.state is Light.GREEN
        assert machine.history == history

    def test_rejects_snapshot_in_unknown_state(self) -> None:
        partial = MachineDefinition(
            id="Partial", initial=Light.RED, transitions={Light.RED: {}}
        )
        with pytest.raises(ValueError):
            create_machine(partial, MachineSnapshot(state=Light.GREEN))


class TestDefinitionValidation:
    def test_rejects_target_without_row(self) -> None:
        with pytest.raises(ValueError, match="no row"):
            MachineDefinition(
                id="Broken",
                initial=Light.RED,
                transitions={Light.RED: {Signal.GO: Light.GREEN}},
            )

    def test_rejects_initial_without_row(self) -> None:
        with pytest.raises(ValueError):
            MachineDefinition(id="Broken", initial=Light.OFF, transitions={Light.RED: {}})

    def test_table_cannot_be_mutated(self) -> None:
        with pytest.raises(TypeError):
            TRAFFIC.transitions[Light.RED][Signal.STOP] = Light.OFF  # type: ignore[index]


class TestSend:
    def test_returns_new_instance_and_leaves_receiver_untouched(self) -> None:
        machine = create_machine(TRAFFIC)
        moved = machine.send(Signal.GO)

        assert moved is not machine
        assert moved.state is Light.GREEN
        assert machine.state is Light.RED
        assert machine.history == ()

    def test_history_records_each_step(self) -> None:
        machine = create_machine(TRAFFIC)
        for signal in (Signal.GO, Signal.SLOW, Signal.STOP, Signal.GO):
            machine = machine.send(signal)

        assert len(machine.history) == 4
        assert machine.history[0] == HistoryEntry(Signal.GO, Light.RED, Light.GREEN)
        assert machine.history[2] == HistoryEntry(Signal.STOP, Light.YELLOW, Light.RED)
        for previous, current in zip(machine.history, machine.history[1:]):
            assert previous.to_state is current.from_state

    def test_illegal_event_raises_with_diagnostics(self) -> None:
        machine = create_machine(TRAFFIC)
        with pytest.raises(InvalidTransitionError) as exc_info:
            machine.send(Signal.STOP)

        error = exc_info.value
        assert error.machine_id == "Traffic"
        assert error.state is Light.RED
        assert error.event is Signal.STOP
        assert str(error) == "[Traffic] Invalid transition: cannot apply 'STOP' in state 'red'."

    def test_instance_is_frozen(self) -> None:
        machine = create_machine(TRAFFIC)
        with pytest.raises(FrozenInstanceError):
            machine.state = Light.GREEN  # type: ignore[misc]


class TestCanAndAvailableEvents:
    def test_can_matches_table_row(self) -> None:
        machine = create_machine(TRAFFIC)
        assert machine.can(Signal.GO) is True
        assert machine.can(Signal.SHUTDOWN) is True
        assert machine.can(Signal.SLOW) is False

    def test_can_does_not_affect_state_or_later_send(self) -> None:
        machine = create_machine(TRAFFIC)
        for _ in range(3):
            machine.can(Signal.GO)
            machine.can(Signal.STOP)

        assert machine.state is Light.RED
        assert machine.history == ()
        assert machine.send(Signal.GO).state is Light.GREEN

    def test_available_events(self) -> None:
        assert create_machine(TRAFFIC).available_events() == frozenset(
            {Signal.GO, Signal.SHUTDOWN}
        )

    def test_empty_available_events_means_terminal(self) -> None:
        off = create_machine(TRAFFIC).send(Signal.SHUTDOWN)
        assert off.available_events() == frozenset()
        assert off.is_terminal is True
        assert create_machine(TRAFFIC).is_terminal is False

    def test_snapshot_round_trips_position(self) -> None:
        machine = create_machine(TRAFFIC).send(Signal.GO)
        restored = create_machine(TRAFFIC, machine.snapshot())
        assert restored == machine
