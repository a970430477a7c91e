"""
Storage interfaces for live sessions and respondent abilities.

The session controller talks only to these abstractions, so a durable
backend can replace the in-memory implementations without touching it.
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Optional
import threading

from adaptive_assessment.core.cat.session import Ability, AdaptiveSession


class SessionRepository(ABC):
    """Abstract store for active (not yet completed) sessions."""

    @abstractmethod
    def get(self, session_id: str) -> Optional[AdaptiveSession]:
        """
        Get a session by id.

        Args:
            session_id: Session identifier

        Returns:
            The session or None if not found
        """
        pass

    @abstractmethod
    def add(self, session: AdaptiveSession) -> None:
        """
        Store a new session.

        Raises:
            ValueError: If a session with the same id is already stored
        """
        pass

    @abstractmethod
    def delete(self, session_id: str) -> None:
        """Remove a session. Unknown ids are ignored."""
        pass

    @abstractmethod
    def list_ids(self) -> List[str]:
        """Ids of all stored sessions."""
        pass


class AbilityRepository(ABC):
    """Abstract store for the latest ability estimate of each respondent."""

    @abstractmethod
    def get(self, respondent_id: str) -> Optional[Ability]:
        """Latest stored ability, or None for an unknown respondent."""
        pass

    @abstractmethod
    def save(self, ability: Ability) -> None:
        """Store an ability, replacing any previous one for the respondent."""
        pass


class InMemorySessionRepository(SessionRepository):
    """
    In-memory session store.

    Thread-safe. Data is lost on process restart.
    """

    def __init__(self):
        self._sessions: Dict[str, AdaptiveSession] = {}
        self._lock = threading.RLock()

    def get(self, session_id: str) -> Optional[AdaptiveSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def add(self, session: AdaptiveSession) -> None:
        with self._lock:
            if session.session_id in self._sessions:
                raise ValueError(f"Session '{session.session_id}' already exists")
            self._sessions[session.session_id] = session

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def list_ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions)


class InMemoryAbilityRepository(AbilityRepository):
    """
    In-memory ability store keyed by respondent id.

    Thread-safe. Data is lost on process restart.
    """

    def __init__(self):
        self._abilities: Dict[str, Ability] = {}
        self._lock = threading.RLock()

    def get(self, respondent_id: str) -> Optional[Ability]:
        with self._lock:
            return self._abilities.get(respondent_id)

    def save(self, ability: Ability) -> None:
        with self._lock:
            self._abilities[ability.respondent_id] = ability
