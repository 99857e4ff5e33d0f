from __future__ import annotations

from typing import Protocol


class SessionRepo(Protocol):
    def get(self, session_id: str): ...
    def create(self, session_id: str, story_id: str): ...
    def update_state(self, session_id: str, node_path: str, player_name: str, state_json: str) -> bool: ...


class TurnRepo(Protocol):
    def add(
        self,
        session_id: str,
        kind: str,
        content: str,
        node_path: str,
        meta_json: str = "{}",
    ): ...
    def recent(self, session_id: str, limit: int): ...
    def count(self, session_id: str, kind: str | None = None) -> int: ...


class UnitOfWork(Protocol):
    sessions: SessionRepo
    turns: TurnRepo

    def commit(self) -> None: ...
    def rollback(self) -> None: ...

    def __enter__(self) -> "UnitOfWork": ...
    def __exit__(self, exc_type, exc, tb) -> None: ...
