from __future__ import annotations

from typing import Any, Protocol

from .config import SpeechSettings
from .types import MediaState


class SpeechPort(Protocol):
    """Speech output and input+NLU capability.

    Every request completes later by posting a SessionEvent back into the
    session (ASRTTS_READY, SPEAK_COMPLETE, RECOGNISED, ASR_NOINPUT or
    CAPABILITY_ERROR). Implementations must not call back synchronously.
    """

    def prepare(self, settings: SpeechSettings) -> None:
        ...

    def speak(self, text: str) -> None:
        ...

    def speak_markup(self, markup: str) -> None:
        ...

    def listen(self, *, nlu: bool = True) -> None:
        ...


class PresentationPort(Protocol):
    def present(self, media: MediaState) -> None:
        ...

    def stop_media(self) -> None:
        ...


class TurnJournalPort(Protocol):
    def open_session(self, session_id: str, story_id: str) -> None:
        ...

    def record(
        self,
        session_id: str,
        kind: str,
        content: str,
        node_path: str,
        meta: dict[str, Any] | None = None,
    ) -> None:
        ...

    def save_state(self, session_id: str, node_path: str, state: dict[str, Any]) -> None:
        ...
