from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional


@dataclass(frozen=True)
class Intent:
    category: str
    confidence_score: float = 0.0


@dataclass(frozen=True)
class Entity:
    category: str
    text: str
    confidence_score: float = 0.0
    offset: int = 0
    length: int = 0


@dataclass(frozen=True)
class Interpretation:
    top_intent: str
    intents: tuple[Intent, ...] = ()
    entities: tuple[Entity, ...] = ()
    project_kind: str = "Conversation"

    def first_entity(self, category: str) -> Optional[Entity]:
        for entity in self.entities:
            if entity.category == category:
                return entity
        return None

    def entity_text(self, category: str, *, lower: bool = True) -> Optional[str]:
        """Text of the first entity in ``category``; later matches are ignored."""
        entity = self.first_entity(category)
        if entity is None:
            return None
        return entity.text.lower() if lower else entity.text


@dataclass(frozen=True)
class RecognitionHypothesis:
    utterance: str
    confidence: float = 0.0


@dataclass
class MediaState:
    image: Optional[str] = None
    video: Optional[str] = None
    sound: Optional[str] = None
    loop: bool = False

    def copy(self) -> "MediaState":
        return MediaState(image=self.image, video=self.video, sound=self.sound, loop=self.loop)


@dataclass
class GameState:
    inventory: list[str] = field(default_factory=list)
    player_name: str = ""
    last_interpretation: Optional[Interpretation] = None
    last_raw_result: Optional[list[RecognitionHypothesis]] = None
    media: MediaState = field(default_factory=MediaState)

    @classmethod
    def new(cls, initial_inventory: Iterable[str] = ()) -> "GameState":
        return cls(inventory=list(initial_inventory))

    def has_item(self, item: str) -> bool:
        return item in self.inventory

    def add_item(self, item: str) -> None:
        # Unconditional: the narrative graph routes away from granting nodes once held.
        self.inventory.append(item)

    @property
    def last_utterance(self) -> Optional[str]:
        if not self.last_raw_result:
            return None
        return self.last_raw_result[0].utterance

    def record_recognition(
        self,
        hypotheses: list[RecognitionHypothesis] | None,
        interpretation: Interpretation | None,
    ) -> None:
        self.last_raw_result = list(hypotheses) if hypotheses is not None else None
        self.last_interpretation = interpretation

    def clear_raw_result(self) -> None:
        self.last_raw_result = None

    def reset_progress(self, initial_inventory: Iterable[str] = ()) -> None:
        self.inventory = list(initial_inventory)
        self.player_name = ""
        self.last_interpretation = None
        self.last_raw_result = None

    def to_dict(self) -> dict[str, Any]:
        interpretation = self.last_interpretation
        return {
            "inventory": list(self.inventory),
            "player_name": self.player_name,
            "top_intent": interpretation.top_intent if interpretation is not None else None,
            "last_utterance": self.last_utterance,
            "media": {
                "image": self.media.image,
                "video": self.media.video,
                "sound": self.media.sound,
                "loop": self.media.loop,
            },
        }


class EventType(str, Enum):
    ASRTTS_READY = "ASRTTS_READY"
    SPEAK_COMPLETE = "SPEAK_COMPLETE"
    RECOGNISED = "RECOGNISED"
    ASR_NOINPUT = "ASR_NOINPUT"
    LISTEN_COMPLETE = "LISTEN_COMPLETE"
    CLICK = "CLICK"
    CAPABILITY_ERROR = "CAPABILITY_ERROR"


class TurnPhase(str, Enum):
    IDLE = "idle"
    SPEAKING = "speaking"
    LISTENING = "listening"
    DISPATCHING = "dispatching"


@dataclass(frozen=True)
class SessionEvent:
    type: EventType
    hypotheses: Optional[tuple[RecognitionHypothesis, ...]] = None
    interpretation: Optional[Interpretation] = None
    error: Optional[str] = None

    @classmethod
    def recognised(
        cls,
        hypotheses: Iterable[RecognitionHypothesis],
        interpretation: Interpretation | None = None,
    ) -> "SessionEvent":
        return cls(EventType.RECOGNISED, hypotheses=tuple(hypotheses), interpretation=interpretation)

    @classmethod
    def no_input(cls) -> "SessionEvent":
        return cls(EventType.ASR_NOINPUT)

    @classmethod
    def speak_complete(cls) -> "SessionEvent":
        return cls(EventType.SPEAK_COMPLETE)

    @classmethod
    def click(cls) -> "SessionEvent":
        return cls(EventType.CLICK)

    @classmethod
    def ready(cls) -> "SessionEvent":
        return cls(EventType.ASRTTS_READY)

    @classmethod
    def capability_error(cls, message: str) -> "SessionEvent":
        return cls(EventType.CAPABILITY_ERROR, error=message)
