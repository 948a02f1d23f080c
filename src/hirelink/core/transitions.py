"""Declarative transition tables shared by every state machine."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional

from hirelink.core.errors import Conflict, PreconditionFailed, TerminalStateError


@dataclass(frozen=True)
class Transition:
    """A named action, the states it may start from, and where it lands."""
    action: str
    sources: FrozenSet[Enum]
    target: Optional[Enum] = None  # None when the target depends on the input
    # False when the target is also a review state reached by other paths
    repeat_is_conflict: bool = True


class TransitionTable:
    """
    Transition rules for one entity type.

    ``check`` is the single guard every operation goes through before it
    writes. In order: a stale expected version or a repeat of an action
    that already landed is a ``Conflict`` (unless the transition sets
    ``repeat_is_conflict=False``); an action on a terminal record is a
    ``TerminalStateError``; anything else outside ``sources`` is a
    ``PreconditionFailed``.
    """

    def __init__(self, entity: str, transitions: Iterable[Transition], terminal: Iterable[Enum] = ()):
        self.entity = entity
        self.terminal: FrozenSet[Enum] = frozenset(terminal)
        self._transitions: Dict[str, Transition] = {t.action: t for t in transitions}

    def __getitem__(self, action: str) -> Transition:
        return self._transitions[action]

    def __contains__(self, action: str) -> bool:
        return action in self._transitions

    @property
    def actions(self) -> list[str]:
        return list(self._transitions)

    def is_terminal(self, state: Enum) -> bool:
        return state in self.terminal

    def allowed_actions(self, state: Enum) -> list[str]:
        """Actions that may start from ``state``."""
        return [name for name, t in self._transitions.items() if state in t.sources]

    def check(
        self,
        action: str,
        current: Enum,
        *,
        expected_version: Optional[int] = None,
        actual_version: Optional[int] = None,
    ) -> Transition:
        transition = self._transitions[action]

        if expected_version is not None and expected_version != actual_version:
            raise Conflict(
                f"{self.entity} version mismatch: expected {expected_version}, found {actual_version}",
                details={"expected_version": expected_version, "actual_version": actual_version},
            )

        # Another writer already applied this action; the caller's view is stale
        if (
            transition.repeat_is_conflict
            and transition.target is not None
            and current == transition.target
            and current not in self.terminal
        ):
            raise Conflict(
                f"{self.entity} is already '{current.value}'",
                details={"status": current.value, "action": action},
            )

        if current in self.terminal:
            raise TerminalStateError(
                f"Cannot {action} {self.entity}: status '{current.value}' is terminal",
                details={"status": current.value, "action": action},
            )

        if current not in transition.sources:
            raise PreconditionFailed(
                f"Cannot {action} {self.entity} in status '{current.value}'",
                details={
                    "status": current.value,
                    "action": action,
                    "allowed_from": sorted(s.value for s in transition.sources),
                },
            )

        return transition
