from .core.config import SessionConfig, SpeechSettings
from .core.engine import TurnController
from .core.graph import NarrativeGraph, build_graph
from .core.ports import PresentationPort, SpeechPort, TurnJournalPort
from .core.runner import SessionRunner
from .core.types import GameState, Interpretation, SessionEvent
from .story import build_house_story

__all__ = [
    "TurnController",
    "SessionRunner",
    "NarrativeGraph",
    "build_graph",
    "build_house_story",
    "SessionConfig",
    "SpeechSettings",
    "GameState",
    "Interpretation",
    "SessionEvent",
    "SpeechPort",
    "PresentationPort",
    "TurnJournalPort",
]
