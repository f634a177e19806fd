"""ORDERFLOW — Table-driven state machine used by every order kind."""
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from orderflow.core.errors import InvalidStateTransition
from orderflow.domain.effects import Effect, NotifyWebhooks, RecordAudit

S = TypeVar("S", bound=Enum)


@dataclass
class Transition(Generic[S]):
    operation: str
    previous: S
    current: S
    effects: list[Effect] = field(default_factory=list)


class StateMachine(Generic[S]):
    """
    Closed transition table: operation -> {from_state: to_state}.

    Any (state, operation) pair missing from the table is rejected with
    InvalidStateTransition. ``apply`` is the only code path that writes an
    order's ``status`` field.
    """

    def __init__(
        self,
        entity: str,
        states: type[S],
        transitions: Mapping[str, Mapping[S, S]],
        audit_source: str,
        webhook_states: Iterable[S] = (),
    ):
        self.entity = entity
        self.states = states
        self.audit_source = audit_source
        self.webhook_states = frozenset(webhook_states)
        self._table: dict[str, dict[S, S]] = {op: dict(edges) for op, edges in transitions.items()}

    @property
    def operations(self) -> list[str]:
        return list(self._table)

    def coerce(self, status: Any) -> S:
        return status if isinstance(status, self.states) else self.states(status)

    def allowed_from(self, operation: str) -> set[S]:
        return set(self._table.get(operation, {}))

    def can(self, current: Any, operation: str) -> bool:
        return self.coerce(current) in self._table.get(operation, {})

    def next_state(self, current: Any, operation: str) -> S:
        state = self.coerce(current)
        edges = self._table.get(operation)
        if edges is None:
            raise ValueError(f"Unknown {self.entity} operation: {operation}")
        if state not in edges:
            targets = set(edges.values())
            raise InvalidStateTransition(
                entity=self.entity,
                current=state.value,
                operation=operation,
                allowed_from=[s.value for s in edges],
                requested=targets.pop().value if len(targets) == 1 else None,
            )
        return edges[state]

    def require(self, current: Any, operation: str, allowed: Iterable[S]) -> None:
        """Guard for operations that do not change status (e.g. delete)."""
        state = self.coerce(current)
        allowed = set(allowed)
        if state not in allowed:
            raise InvalidStateTransition(
                entity=self.entity,
                current=state.value,
                operation=operation,
                allowed_from=[s.value for s in allowed],
            )

    def apply(self, order: Any, operation: str, message: str | None = None) -> Transition[S]:
        """Move ``order`` along ``operation`` and return the resulting effects."""
        previous = self.coerce(order.status)
        target = self.next_state(previous, operation)
        order.status = target.value
        description = message or f"{self.entity} {operation}: {previous.value} -> {target.value}"
        effects: list[Effect] = [RecordAudit(self.audit_source, order.id, target.value, description)]
        if target in self.webhook_states:
            effects.append(NotifyWebhooks(self.audit_source, order.id, target.value, description))
        return Transition(operation=operation, previous=previous, current=target, effects=effects)
