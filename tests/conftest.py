from __future__ import annotations

import pytest

from voice_game_engine.persistence.sqlalchemy.db import build_engine, build_session_factory, create_schema
from voice_game_engine.persistence.sqlalchemy.uow import SQLAlchemyUnitOfWork


class StubSpeech:
    def __init__(self):
        self.calls: list[tuple[str, object]] = []
        self.settings = None

    def prepare(self, settings) -> None:
        self.settings = settings
        self.calls.append(("prepare", settings))

    def speak(self, text: str) -> None:
        self.calls.append(("speak", text))

    def speak_markup(self, markup: str) -> None:
        self.calls.append(("speak_markup", markup))

    def listen(self, *, nlu: bool = True) -> None:
        self.calls.append(("listen", nlu))

    def spoken(self) -> list[str]:
        return [str(arg) for kind, arg in self.calls if kind in ("speak", "speak_markup")]


class StubPresentation:
    def __init__(self):
        self.presented = []
        self.stops = 0

    def present(self, media) -> None:
        self.presented.append(media)

    def stop_media(self) -> None:
        self.stops += 1


class StubJournal:
    def __init__(self):
        self.sessions: list[tuple[str, str]] = []
        self.records: list[tuple[str, str, str, str, dict | None]] = []
        self.states: list[tuple[str, str, dict]] = []

    def open_session(self, session_id: str, story_id: str) -> None:
        self.sessions.append((session_id, story_id))

    def record(self, session_id, kind, content, node_path, meta=None) -> None:
        self.records.append((session_id, kind, content, node_path, meta))

    def save_state(self, session_id, node_path, state) -> None:
        self.states.append((session_id, node_path, state))

    def kinds(self) -> list[str]:
        return [record[1] for record in self.records]


@pytest.fixture()
def speech():
    return StubSpeech()


@pytest.fixture()
def presentation():
    return StubPresentation()


@pytest.fixture()
def journal():
    return StubJournal()


@pytest.fixture()
def session_factory():
    engine = build_engine("sqlite+pysqlite:///:memory:")
    create_schema(engine)
    return build_session_factory(engine)


@pytest.fixture()
def uow_factory(session_factory):
    def _factory():
        return SQLAlchemyUnitOfWork(session_factory)

    return _factory
