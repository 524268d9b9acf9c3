"""Sessions of one till.

A terminal owns the live ``SaleSession`` values of its cashiers and the
parked-sale store they share. Every action on a session runs under that
session's lock, so a cancel or a second commit arriving while a commit is
running waits for it to finish and then sees its outcome.
"""

from __future__ import annotations

import logging
import threading
from uuid import UUID

from backend.salepoint.core.errors import CommitError, CommitInProgress, SessionNotFound
from backend.salepoint.schemas.session import CheckoutState, Commit, SaleSession
from backend.salepoint.services.parking import ParkedSaleStore
from backend.salepoint.services.session import SaleEngine

logger = logging.getLogger(__name__)


class Terminal:
    def __init__(self, terminal_id: str, parked: ParkedSaleStore | None = None) -> None:
        self.terminal_id = terminal_id
        self.parked = parked or ParkedSaleStore()
        self._sessions: dict[UUID, SaleSession] = {}
        self._locks: dict[UUID, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def open_session(self) -> SaleSession:
        session = SaleSession()
        with self._registry_lock:
            self._sessions[session.id] = session
            self._locks[session.id] = threading.Lock()
        logger.info("Terminal %s opened session %s", self.terminal_id, session.id)
        return session

    def get(self, session_id: UUID) -> SaleSession:
        with self._registry_lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(f"Session {session_id} not found")
        return session

    def sessions(self) -> list[SaleSession]:
        with self._registry_lock:
            return list(self._sessions.values())

    def _lock_for(self, session_id: UUID) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(session_id)
        if lock is None:
            raise SessionNotFound(f"Session {session_id} not found")
        return lock

    def _store(self, session: SaleSession) -> None:
        with self._registry_lock:
            self._sessions[session.id] = session

    def close_session(self, session_id: UUID) -> None:
        with self._lock_for(session_id):
            session = self.get(session_id)
            if session.state == CheckoutState.COMMITTING:
                raise CommitInProgress()
            with self._registry_lock:
                self._sessions.pop(session_id, None)
                self._locks.pop(session_id, None)
        logger.info("Terminal %s closed session %s", self.terminal_id, session_id)

    def dispatch(self, session_id: UUID, action: object, engine: SaleEngine) -> SaleSession:
        with self._lock_for(session_id):
            session = self.get(session_id)
            if isinstance(action, Commit):
                # Readers see the commit in flight
                self._store(session.model_copy(update={"state": CheckoutState.COMMITTING}))
            try:
                new = engine.dispatch(session, action)
            except CommitError as exc:
                self._store(exc.session if isinstance(exc.session, SaleSession) else session)
                raise
            except Exception:
                self._store(session)
                raise
            self._store(new)
            return new
