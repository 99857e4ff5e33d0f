from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session as OrmSession

from .models import Session, Turn


class SessionRepo:
    def __init__(self, session: OrmSession):
        self.session = session

    def get(self, session_id: str) -> Session | None:
        return self.session.get(Session, session_id)

    def create(self, session_id: str, story_id: str) -> Session:
        row = Session(id=session_id, story_id=story_id)
        self.session.add(row)
        self.session.flush()
        return row

    def update_state(self, session_id: str, node_path: str, player_name: str, state_json: str) -> bool:
        stmt = (
            update(Session)
            .where(Session.id == session_id)
            .values(
                node_path=node_path,
                player_name=player_name,
                state_json=state_json,
                updated_at=datetime.utcnow(),
            )
        )
        result = self.session.execute(stmt)
        return result.rowcount == 1


class TurnRepo:
    def __init__(self, session: OrmSession):
        self.session = session

    def add(
        self,
        session_id: str,
        kind: str,
        content: str,
        node_path: str,
        meta_json: str = "{}",
    ) -> Turn:
        row = Turn(
            session_id=session_id,
            kind=kind,
            content=content,
            node_path=node_path,
            meta_json=meta_json,
        )
        self.session.add(row)
        self.session.flush()
        return row

    def recent(self, session_id: str, limit: int) -> list[Turn]:
        stmt = (
            select(Turn)
            .where(Turn.session_id == session_id)
            .order_by(Turn.id.desc())
            .limit(limit)
        )
        rows = list(self.session.execute(stmt).scalars().all())
        rows.reverse()
        return rows

    def count(self, session_id: str, kind: str | None = None) -> int:
        stmt = select(func.count(Turn.id)).where(Turn.session_id == session_id)
        if kind is not None:
            stmt = stmt.where(Turn.kind == kind)
        return int(self.session.execute(stmt).scalar_one())
