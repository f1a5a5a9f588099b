"""
Generic transition-table engine.

A ``MachineDefinition`` is a table of ``state -> {event -> next_state}``.
``create_machine`` turns a definition into an immutable ``MachineInstance``;
``send`` returns a new instance and never mutates the receiver. Nothing in
this module touches storage.
"""
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Generic, TypeVar

S = TypeVar("S", bound=Enum)
E = TypeVar("E", bound=Enum)


class InvalidTransitionError(Exception):
    """Raised when an event has no edge from the machine's current state."""

    def __init__(self, machine_id: str, state: Enum, event: Enum) -> None:
        self.machine_id = machine_id
        self.state = state
        self.event = event
        super().__init__(
            f"[{machine_id}] Invalid transition: cannot apply "
            f"{event.value!r} in state {state.value!r}."
        )


@dataclass(frozen=True)
class HistoryEntry(Generic[S, E]):
    event: E
    from_state: S
    to_state: S


@dataclass(frozen=True)
class MachineSnapshot(Generic[S, E]):
    """Persisted position of a machine, used to rehydrate an instance."""

    state: S
    history: tuple[HistoryEntry[S, E], ...] = ()


@dataclass(frozen=True)
class MachineDefinition(Generic[S, E]):
    id: str
    initial: S
    transitions: Mapping[S, Mapping[E, S]]

    def __post_init__(self) -> None:
        table = MappingProxyType(
            {state: MappingProxyType(dict(edges)) for state, edges in self.transitions.items()}
        )
        if self.initial not in table:
            raise ValueError(f"[{self.id}] initial state {self.initial.value!r} has no row")
        for state, edges in table.items():
            for event, target in edges.items():
                if target not in table:
                    raise ValueError(
                        f"[{self.id}] {state.value!r} --{event.value}--> "
                        f"{target.value!r} targets a state with no row"
                    )
        object.__setattr__(self, "transitions", table)

    @property
    def states(self) -> frozenset[S]:
        return frozenset(self.transitions)

    def target(self, state: S, event: E) -> S | None:
        """Return the table's target for (state, event), or None if there is no edge."""
        return self.transitions.get(state, MappingProxyType({})).get(event)


@dataclass(frozen=True)
class MachineInstance(Generic[S, E]):
    definition: MachineDefinition[S, E]
    state: S
    history: tuple[HistoryEntry[S, E], ...] = field(default=())

    def can(self, event: E) -> bool:
        return self.definition.target(self.state, event) is not None

    def available_events(self) -> frozenset[E]:
        return frozenset(self.definition.transitions.get(self.state, {}))

    @property
    def is_terminal(self) -> bool:
        return not self.available_events()

    def send(self, event: E) -> "MachineInstance[S, E]":
        """Apply ``event`` and return the resulting instance.

        Raises InvalidTransitionError when the current state has no edge for
        ``event``. Guard with ``can`` to avoid the error path.
        """
        target = self.definition.target(self.state, event)
        if target is None:
            raise InvalidTransitionError(self.definition.id, self.state, event)
        entry = HistoryEntry(event=event, from_state=self.state, to_state=target)
        return replace(self, state=target, history=self.history + (entry,))

    def snapshot(self) -> MachineSnapshot[S, E]:
        return MachineSnapshot(state=self.state, history=self.history)


def create_machine(
    definition: MachineDefinition[S, E],
    snapshot: MachineSnapshot[S, E] | None = None,
) -> MachineInstance[S, E]:
    """Build an instance at the definition's initial state, or at ``snapshot``."""
    if snapshot is None:
        return MachineInstance(definition=definition, state=definition.initial)
    if snapshot.state not in definition.transitions:
        raise ValueError(f"[{definition.id}] unknown state {snapshot.state.value!r}")
    return MachineInstance(
        definition=definition,
        state=snapshot.state,
        history=tuple(snapshot.history),
    )
