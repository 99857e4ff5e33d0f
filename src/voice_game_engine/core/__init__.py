from .actions import (
    Action,
    ActionExecutor,
    MutateState,
    RequestListen,
    RequestSpeak,
    StopMedia,
    add_item,
    capture_player_name,
    listen,
    reset_progress,
    show,
    speak,
    speak_markup,
    stop_media,
)
from .config import SessionConfig, SpeechSettings
from .engine import TurnController
from .errors import GraphConfigurationError, SessionNotStartedError, UnknownNodeError, VoiceGameError
from .graph import (
    NarrativeGraph,
    NarrativeNode,
    NodeKind,
    NodeSpec,
    Transition,
    TransitionResult,
    absolute,
    build_graph,
    child,
    composite,
    go,
    leaf,
    sibling,
    stay,
)
from .guards import (
    Guard,
    entity_equals,
    entity_in,
    evaluate_guard,
    has_item,
    has_player_name,
    heard_utterance,
    intent_is,
    lacks_item,
    utterance_equals,
)
from .normalize import hypotheses_from_payload, interpretation_from_payload
from .ports import PresentationPort, SpeechPort, TurnJournalPort
from .runner import SessionRunner
from .types import (
    Entity,
    EventType,
    GameState,
    Intent,
    Interpretation,
    MediaState,
    RecognitionHypothesis,
    SessionEvent,
    TurnPhase,
)

__all__ = [
    "Action",
    "ActionExecutor",
    "MutateState",
    "RequestListen",
    "RequestSpeak",
    "StopMedia",
    "add_item",
    "capture_player_name",
    "listen",
    "reset_progress",
    "show",
    "speak",
    "speak_markup",
    "stop_media",
    "SessionConfig",
    "SpeechSettings",
    "TurnController",
    "GraphConfigurationError",
    "SessionNotStartedError",
    "UnknownNodeError",
    "VoiceGameError",
    "NarrativeGraph",
    "NarrativeNode",
    "NodeKind",
    "NodeSpec",
    "Transition",
    "TransitionResult",
    "absolute",
    "build_graph",
    "child",
    "composite",
    "go",
    "leaf",
    "sibling",
    "stay",
    "Guard",
    "entity_equals",
    "entity_in",
    "evaluate_guard",
    "has_item",
    "has_player_name",
    "heard_utterance",
    "intent_is",
    "lacks_item",
    "utterance_equals",
    "hypotheses_from_payload",
    "interpretation_from_payload",
    "PresentationPort",
    "SpeechPort",
    "TurnJournalPort",
    "SessionRunner",
    "Entity",
    "EventType",
    "GameState",
    "Intent",
    "Interpretation",
    "MediaState",
    "RecognitionHypothesis",
    "SessionEvent",
    "TurnPhase",
]
