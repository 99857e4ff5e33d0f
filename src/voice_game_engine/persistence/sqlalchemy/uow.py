from __future__ import annotations

import logging

from sqlalchemy.orm import Session, sessionmaker

from .repos import SessionRepo, TurnRepo


class SQLAlchemyUnitOfWork:
    """One journal transaction: session and turn repos sharing a database session."""

    def __init__(self, session_factory: sessionmaker[Session], logger: logging.Logger | None = None):
        self._session_factory = session_factory
        self._logger = logger or logging.getLogger(__name__)
        self.session: Session | None = None

    def __enter__(self) -> "SQLAlchemyUnitOfWork":
        if self.session is not None:
            raise RuntimeError("unit of work is already open")
        self.session = self._session_factory()
        self.sessions = SessionRepo(self.session)
        self.turns = TurnRepo(self.session)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self.session is None:
            return
        try:
            if exc_type is not None:
                self._logger.debug("Rolling back journal write after %s", exc_type.__name__)
                self.rollback()
        finally:
            self.session.close()
            self.session = None

    def commit(self) -> None:
        self._require_session().commit()

    def rollback(self) -> None:
        self._require_session().rollback()

    def _require_session(self) -> Session:
        if self.session is None:
            raise RuntimeError("unit of work is not open")
        return self.session

    def __repr__(self) -> str:
        state = "open" if self.session is not None else "closed"
        return f"SQLAlchemyUnitOfWork({state})"
