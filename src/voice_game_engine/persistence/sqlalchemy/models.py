from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


TurnIDType = BigInteger().with_variant(Integer, "sqlite")


class Session(TimestampMixin, Base):
    __tablename__ = "vge_sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: uuid.uuid4().hex)
    story_id: Mapped[str] = mapped_column(String(64), nullable=False)
    player_name: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    node_path: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    state_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")


class Turn(Base):
    __tablename__ = "vge_turns"

    id: Mapped[int] = mapped_column(TurnIDType, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(String(64), ForeignKey("vge_sessions.id"), nullable=False)

    # narrator | player | transition
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    node_path: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    meta_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


Index("ix_vge_turn_session_id_desc", Turn.session_id, Turn.id.desc())
