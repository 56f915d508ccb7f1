"""Per-session wizard state.

`SessionStore` is the transport-owned key/value session. `StepDataStore`
is the only thing that reads or writes wizard state through it, and exposes
that state as typed per-step mappings keyed by (session, form, step number).

Key layout within a session:

    wizard:<form>:step:<n>       validated data for step n
    wizard:<form>:consolidated   merged view of every step slot
    wizard:<form>:visited        {'steps': [n, ...]} on the current path, in visit order
    wizard:<form>:submitted      final record written on completion
"""

import copy
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


logger = logging.getLogger(__name__)

StepData = Dict[str, Any]


class SessionStore(ABC):
    """Interface for the session backend."""

    @abstractmethod
    def get(self, session_id: str, key: str) -> Optional[Dict[str, Any]]:
        """Read a mapping, or None if the key is unset."""
        pass

    @abstractmethod
    def put(self, session_id: str, key: str, value: Dict[str, Any]) -> None:
        """Write a mapping, replacing any previous value."""
        pass

    @abstractmethod
    def clear(self, session_id: str, key_prefix: str) -> None:
        """Remove every key starting with key_prefix."""
        pass


class InMemorySessionStore(SessionStore):
    """Dict-backed sessions for tests and single-process use."""

    def __init__(self):
        self._sessions: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            value = self._sessions.get(session_id, {}).get(key)
            return copy.deepcopy(value) if value is not None else None

    def put(self, session_id: str, key: str, value: Dict[str, Any]) -> None:
        with self._lock:
            self._sessions.setdefault(session_id, {})[key] = copy.deepcopy(value)

    def clear(self, session_id: str, key_prefix: str) -> None:
        with self._lock:
            session = self._sessions.get(session_id, {})
            for key in [k for k in session if k.startswith(key_prefix)]:
                del session[key]

    def keys(self, session_id: str, key_prefix: str = '') -> List[str]:
        with self._lock:
            return sorted(k for k in self._sessions.get(session_id, {}) if k.startswith(key_prefix))


class StepDataStore:
    """
    Typed access to one form's wizard state within a session.

    The consolidated view is always recomputed from the step slots, so
    writing the same step twice leaves the same state as writing it once.
    """

    def __init__(self, backend: SessionStore, step_count: int):
        """
        Args:
            backend: Session backend
            step_count: Number of steps in the form (bounds the slot scan)
        """
        self.backend = backend
        self.step_count = step_count

    # Keys

    @staticmethod
    def form_prefix(form_id: str) -> str:
        return f"wizard:{form_id}:"

    def step_key(self, form_id: str, step_number: int) -> str:
        return f"{self.form_prefix(form_id)}step:{step_number}"

    def consolidated_key(self, form_id: str) -> str:
        return f"{self.form_prefix(form_id)}consolidated"

    def visited_key(self, form_id: str) -> str:
        return f"{self.form_prefix(form_id)}visited"

    def submitted_key(self, form_id: str) -> str:
        return f"{self.form_prefix(form_id)}submitted"

    # Step slots

    def get_step(self, session_id: str, form_id: str, step_number: int) -> StepData:
        return self.backend.get(session_id, self.step_key(form_id, step_number)) or {}

    def step_slots(self, session_id: str, form_id: str, up_to: Optional[int] = None) -> Dict[int, StepData]:
        """
        Read every stored step slot.

        Args:
            up_to: Only include steps numbered up to and including this one

        Returns:
            {step_number: data} for steps that have data, in step order
        """
        last = self.step_count if up_to is None else min(up_to, self.step_count)
        slots = {}
        for step_number in range(1, last + 1):
            data = self.backend.get(session_id, self.step_key(form_id, step_number))
            if data is not None:
                slots[step_number] = data
        return slots

    def consolidated(self, session_id: str, form_id: str, up_to: Optional[int] = None) -> StepData:
        """Union of step slots in step order; later steps win on duplicate names."""
        merged = {}
        for data in self.step_slots(session_id, form_id, up_to).values():
            merged.update(data)
        return merged

    def save_step(self, session_id: str, form_id: str, step_number: int, data: StepData) -> StepData:
        """
        Store validated data for a step, replacing only that step's slot.

        Steps visited after this one drop off the current path.

        Returns:
            The refreshed consolidated view
        """
        self.backend.put(session_id, self.step_key(form_id, step_number), dict(data))
        merged = self.consolidated(session_id, form_id)
        self.backend.put(session_id, self.consolidated_key(form_id), merged)
        self._extend_path(session_id, form_id, step_number)
        logger.debug(f"Stored step {step_number} of '{form_id}' for session {session_id}")
        return merged

    # Visited steps

    def visited(self, session_id: str, form_id: str) -> List[int]:
        record = self.backend.get(session_id, self.visited_key(form_id)) or {}
        return [int(n) for n in record.get('steps', [])]

    def mark_visited(self, session_id: str, form_id: str, step_number: int) -> None:
        steps = self.visited(session_id, form_id)
        if step_number not in steps:
            steps.append(step_number)
            self.backend.put(session_id, self.visited_key(form_id), {'steps': steps})

    def _extend_path(self, session_id: str, form_id: str, step_number: int) -> None:
        # Submitting an earlier step abandons whatever was visited after it
        steps = self.visited(session_id, form_id)
        if step_number in steps:
            steps = steps[:steps.index(step_number) + 1]
        else:
            steps.append(step_number)
        self.backend.put(session_id, self.visited_key(form_id), {'steps': steps})

    # Lifecycle

    def reset(self, session_id: str, form_id: str) -> None:
        """Drop all state for the form, including any previous final record."""
        self.backend.clear(session_id, self.form_prefix(form_id))
        logger.info(f"Reset wizard '{form_id}' for session {session_id}")

    def finalize(self, session_id: str, form_id: str) -> StepData:
        """
        Write the final record and clear in-progress state.

        The record merges, in step order, only the slots of steps on the path
        actually taken. Answers left on a branch the user backed out of are
        dropped.

        Returns:
            The final record
        """
        path = set(self.visited(session_id, form_id))
        record = {}
        for step_number, data in self.step_slots(session_id, form_id).items():
            if step_number in path:
                record.update(data)
        self.backend.put(session_id, self.submitted_key(form_id), record)
        prefix = self.form_prefix(form_id)
        self.backend.clear(session_id, f"{prefix}step:")
        self.backend.clear(session_id, self.consolidated_key(form_id))
        self.backend.clear(session_id, self.visited_key(form_id))
        logger.info(f"Completed wizard '{form_id}' for session {session_id}")
        return record

    def final_record(self, session_id: str, form_id: str) -> StepData:
        return self.backend.get(session_id, self.submitted_key(form_id)) or {}
