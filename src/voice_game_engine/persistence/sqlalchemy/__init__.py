from .db import build_engine, build_session_factory, create_schema
from .journal import SQLAlchemyTurnJournal
from .uow import SQLAlchemyUnitOfWork

__all__ = [
    "build_engine",
    "build_session_factory",
    "create_schema",
    "SQLAlchemyTurnJournal",
    "SQLAlchemyUnitOfWork",
]
