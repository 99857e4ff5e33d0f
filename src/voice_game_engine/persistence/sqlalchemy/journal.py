from __future__ import annotations

import logging
from typing import Any, Callable

from ...core.normalize import dump_json, parse_json_dict
from ..interfaces import UnitOfWork


class SQLAlchemyTurnJournal:
    """Records a session's narration, utterances and state through a unit of work."""

    def __init__(self, uow_factory: Callable[[], UnitOfWork], logger: logging.Logger | None = None):
        self._uow_factory = uow_factory
        self._logger = logger or logging.getLogger(__name__)

    def open_session(self, session_id: str, story_id: str) -> None:
        with self._uow_factory() as uow:
            if uow.sessions.get(session_id) is None:
                uow.sessions.create(session_id, story_id)
                self._logger.info("Opened journal for session %s (%s)", session_id, story_id)
            uow.commit()

    def record(
        self,
        session_id: str,
        kind: str,
        content: str,
        node_path: str,
        meta: dict[str, Any] | None = None,
    ) -> None:
        with self._uow_factory() as uow:
            uow.turns.add(
                session_id=session_id,
                kind=kind,
                content=content,
                node_path=node_path,
                meta_json=dump_json(meta or {}),
            )
            uow.commit()

    def save_state(self, session_id: str, node_path: str, state: dict[str, Any]) -> None:
        with self._uow_factory() as uow:
            updated = uow.sessions.update_state(
                session_id,
                node_path=node_path,
                player_name=str(state.get("player_name") or ""),
                state_json=dump_json(state),
            )
            if not updated:
                uow.rollback()
                self._logger.warning("No journal session %s to update", session_id)
                return
            uow.commit()

    def transcript(self, session_id: str, limit: int = 50, kinds: tuple[str, ...] | None = None) -> list[dict[str, Any]]:
        with self._uow_factory() as uow:
            rows = uow.turns.recent(session_id, limit=limit)
            return [
                {
                    "id": row.id,
                    "kind": row.kind,
                    "content": row.content,
                    "node_path": row.node_path,
                    "meta": parse_json_dict(row.meta_json),
                }
                for row in rows
                if kinds is None or row.kind in kinds
            ]

    def load_state(self, session_id: str) -> dict[str, Any] | None:
        with self._uow_factory() as uow:
            row = uow.sessions.get(session_id)
            if row is None:
                return None
            state = parse_json_dict(row.state_json)
            state["node_path"] = row.node_path
            return state
