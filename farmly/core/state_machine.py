from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional, Sequence
from datetime import datetime


class InvalidTransition(ValueError):
    pass


class OptimisticLockError(Exception):
    pass


HistoryEntry = Dict[str, Any]


class StatusMachine:
    """
    Status lifecycle with an allowed-transitions map, a recorded history and an
    optimistic version counter.

    Usage:
      sm = StatusMachine(order.status, ORDER_TRANSITIONS, version=order.version, history=order.status_history)
      result = sm.apply("CANCELED", actor="buyer@example.com", action="ORDER_CANCELED")
      order.status, order.status_history, order.version = result["state"], result["history"], result["version"]
    """

    def __init__(self, state: str, allowed_transitions: Mapping[str, Sequence[str]], version: int = 0,
                 history: Optional[List[HistoryEntry]] = None):
        self.state = (state or "").upper()
        self.allowed_transitions = allowed_transitions or {}
        self.version = int(version or 0)
        self.history: List[HistoryEntry] = list(history or [])

    def can_transition(self, to_state: str) -> bool:
        return to_state in self.allowed_transitions.get(self.state, ())

    def is_terminal(self) -> bool:
        return not self.allowed_transitions.get(self.state)

    def record(self, action: str, actor: Optional[str] = None, message: str = "",
               meta: Optional[Dict[str, Any]] = None) -> HistoryEntry:
        """Append a history entry that does not change the status (e.g. ORDER_CREATED)."""
        entry: HistoryEntry = {
            "action": action,
            "from": self.state,
            "to": self.state,
            "at": datetime.utcnow().isoformat(sep=" "),
            "actor": actor,
            "message": message,
            "meta": dict(meta or {}),
        }
        self.history.append(entry)
        return entry

    def apply(self, to_state: str, actor: Optional[str] = None, action: Optional[str] = None,
              message: str = "", meta: Optional[Dict[str, Any]] = None,
              expected_version: Optional[int] = None) -> Dict[str, Any]:
        """
        Move to `to_state`. Raises InvalidTransition or OptimisticLockError.
        Returns dict with keys: state, history (full list), version (new).
        """
        to_state = (to_state or "").strip().upper()
        if not to_state:
            raise InvalidTransition("Empty target status")

        if expected_version is not None and int(expected_version) != self.version:
            raise OptimisticLockError(f"Version mismatch (expected {expected_version}, got {self.version})")

        # already there: no-op, version unchanged
        if to_state == self.state:
            return {"state": self.state, "history": list(self.history), "version": self.version}

        if not self.can_transition(to_state):
            raise InvalidTransition(f"Invalid transition: {self.state} -> {to_state}")

        self.history.append({
            "action": action or f"STATUS_{to_state}",
            "from": self.state,
            "to": to_state,
            "at": datetime.utcnow().isoformat(sep=" "),
            "actor": actor,
            "message": message,
            "meta": dict(meta or {}),
        })
        self.state = to_state
        self.version += 1
        return {"state": self.state, "history": list(self.history), "version": self.version}
