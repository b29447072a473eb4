from __future__ import annotations

from enum import Enum
from typing import Any, Generic, Mapping, TypeVar

from .exceptions import InvalidTransitionError

S = TypeVar("S", bound=Enum)


class StateMachine(Generic[S]):
    """Statically enumerated status transitions for one entity type."""

    def __init__(self, name: str, transitions: Mapping[S, frozenset[S]]) -> None:
        self.name = name
        self.transitions = dict(transitions)

    def can_transition(self, current: S, target: S) -> bool:
        return target in self.transitions.get(current, frozenset())

    def is_terminal(self, state: S) -> bool:
        return not self.transitions.get(state)

    def advance(self, record: Any, target: S, *, attr: str = "status") -> None:
        current = getattr(record, attr)
        if not self.can_transition(current, target):
            raise InvalidTransitionError(
                f"Cannot move {self.name} from {current.value} to {target.value}",
                current=current.value,
                target=target.value,
            )
        setattr(record, attr, target)


__all__ = ["StateMachine"]
