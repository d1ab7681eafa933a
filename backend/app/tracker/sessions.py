"""Registry of per-client tracking sessions."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from threading import Lock

from .exceptions import InvalidRequest
from .symbols import SymbolSet

logger = logging.getLogger(__name__)


@dataclass
class ClientSession:
    """Server-side state for one client: its symbols and its cycle lock."""

    client_id: str
    symbols: SymbolSet = field(default_factory=SymbolSet)
    # Held for the duration of a poll cycle; one cycle per session at a time
    cycle_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    # Open streams reading this session; guarded by the registry lock
    streams: int = 0


class SessionRegistry:
    """Process-wide map of client id -> ClientSession.

    Shared by every request handler. Entries are created lazily on first
    contact and pruned when the last stream reading them ends.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, ClientSession] = {}
        self._lock = Lock()

    def get_or_create(self, client_id: str | None) -> ClientSession:
        """Return the session for ``client_id``, creating an empty one if needed.

        Raises InvalidRequest if the id is missing or blank.
        """
        _validate(client_id)
        with self._lock:
            return self._get_or_create_locked(client_id)

    def attach(self, client_id: str | None) -> ClientSession:
        """Like get_or_create, but also registers an open stream on the session."""
        _validate(client_id)
        with self._lock:
            session = self._get_or_create_locked(client_id)
            session.streams += 1
            return session

    def detach(self, session: ClientSession) -> None:
        """Release a stream. The entry is pruned once no stream reads it."""
        with self._lock:
            session.streams = max(session.streams - 1, 0)
            if session.streams > 0:
                return
            if self._sessions.get(session.client_id) is not session:
                return
            del self._sessions[session.client_id]
        logger.info("Client session removed: %s", session.client_id)

    def get(self, client_id: str) -> ClientSession | None:
        with self._lock:
            return self._sessions.get(client_id)

    def remove(self, client_id: str, session: ClientSession | None = None) -> None:
        """Discard a session. No-op if it does not exist.

        When ``session`` is given, the entry is only dropped if it is still
        that session object.
        """
        with self._lock:
            current = self._sessions.get(client_id)
            if current is None or (session is not None and current is not session):
                return
            del self._sessions[client_id]
        logger.info("Client session removed: %s", client_id)

    def client_ids(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, client_id: str) -> bool:
        with self._lock:
            return client_id in self._sessions

    def _get_or_create_locked(self, client_id: str) -> ClientSession:
        session = self._sessions.get(client_id)
        if session is None:
            session = ClientSession(client_id=client_id)
            self._sessions[client_id] = session
            logger.info("New client session: %s", client_id)
        return session


def _validate(client_id: str | None) -> None:
    if not client_id or not client_id.strip():
        raise InvalidRequest("client_id is required")
