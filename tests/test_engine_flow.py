from __future__ import annotations

import logging

import pytest

from voice_game_engine.core.actions import MutateState, capture_player_name, listen, show, speak, stop_media
from voice_game_engine.core.config import SessionConfig
from voice_game_engine.core.engine import TurnController
from voice_game_engine.core.errors import SessionNotStartedError
from voice_game_engine.core.graph import absolute, build_graph, child, composite, go, leaf, sibling, stay
from voice_game_engine.core.guards import has_player_name, intent_is
from voice_game_engine.core.types import (
    Entity,
    EventType,
    Interpretation,
    RecognitionHypothesis,
    SessionEvent,
    TurnPhase,
)


def _count_entry(state):
    state.inventory.append("entered-room")


def _graph():
    return build_graph(
        composite(
            "demo",
            [
                leaf("hall", show(image="hall.png"), on={EventType.CLICK: go(sibling("room"))}),
                composite(
                    "room",
                    [
                        leaf("prompt", speak("What is your name?"), on={EventType.SPEAK_COMPLETE: go(sibling("ask"))}),
                        leaf("ask", listen(), on={EventType.RECOGNISED: stay(capture_player_name())}),
                        leaf("no_input", speak("Say again."), on={EventType.SPEAK_COMPLETE: go(sibling("ask"))}),
                        leaf(
                            "greet",
                            speak(lambda state: f"Hello {state.player_name}."),
                            on={EventType.SPEAK_COMPLETE: go(absolute("end"))},
                        ),
                    ],
                    initial="prompt",
                    entry=[MutateState(_count_entry, "count")],
                    on={
                        EventType.LISTEN_COMPLETE: [
                            go(child("greet"), when=has_player_name()),
                            go(child("no_input"), when=intent_is("Leave"), actions=[show(image="leave.png")]),
                            go(child("no_input")),
                        ],
                        EventType.CAPABILITY_ERROR: go(child("no_input")),
                    },
                ),
                leaf("end", stop_media(), on={EventType.CLICK: go(sibling("hall"))}),
            ],
            initial="hall",
        )
    )


def _recognised(utterance: str, top_intent: str = "None", **entities: str) -> SessionEvent:
    return SessionEvent.recognised(
        [RecognitionHypothesis(utterance, 0.9)],
        Interpretation(
            top_intent=top_intent,
            entities=tuple(Entity(category=k, text=v) for k, v in entities.items()),
        ),
    )


def _controller(speech, **kwargs) -> TurnController:
    controller = TurnController(_graph(), speech, **kwargs)
    controller.start()
    return controller


def test_start_prepares_speech_and_enters_initial_leaf(speech, presentation):
    config = SessionConfig()
    controller = _controller(speech, presentation=presentation, config=config)
    assert controller.current_path == "hall"
    assert controller.phase is TurnPhase.IDLE
    assert speech.calls[0] == ("prepare", config.speech)
    assert presentation.presented[-1].image == "hall.png"
    assert controller.state.inventory == ["your notepad", "your pen"]


def test_start_twice_is_harmless(speech):
    controller = _controller(speech)
    controller.start()
    assert controller.current_path == "hall"
    assert [kind for kind, _ in speech.calls].count("prepare") == 1


def test_dispatch_before_start_raises(speech):
    controller = TurnController(_graph(), speech)
    assert not controller.started
    with pytest.raises(SessionNotStartedError):
        controller.dispatch(SessionEvent.click())
    with pytest.raises(SessionNotStartedError):
        controller.current_path


def test_full_turn_speak_listen_dispatch(speech):
    controller = _controller(speech)

    controller.dispatch(SessionEvent.click())
    assert controller.current_path == "room.prompt"
    assert controller.phase is TurnPhase.SPEAKING
    assert speech.calls[-1] == ("speak", "What is your name?")

    controller.dispatch(SessionEvent.speak_complete())
    assert controller.current_path == "room.ask"
    assert controller.phase is TurnPhase.LISTENING
    assert speech.calls[-1] == ("listen", True)

    result = controller.dispatch(_recognised("I am Alex", "NameCapture", PersonName=" Alex "))
    assert result.leaf.key == "room.greet"
    assert controller.state.player_name == "Alex"
    assert controller.state.last_utterance == "I am Alex"
    assert speech.calls[-1] == ("speak", "Hello Alex.")
    assert controller.phase is TurnPhase.SPEAKING

    controller.dispatch(SessionEvent.speak_complete())
    assert controller.current_path == "end"
    assert controller.phase is TurnPhase.IDLE


def test_transition_into_child_does_not_rerun_composite_entry(speech):
    controller = _controller(speech)
    controller.dispatch(SessionEvent.click())
    controller.dispatch(SessionEvent.speak_complete())
    controller.dispatch(_recognised("hmm"))
    controller.dispatch(SessionEvent.speak_complete())
    controller.dispatch(_recognised("hmm"))
    assert controller.current_path == "room.no_input"
    assert controller.state.inventory.count("entered-room") == 1


def test_transition_actions_run_before_entry_actions(speech, presentation):
    controller = _controller(speech, presentation=presentation)
    controller.dispatch(SessionEvent.click())
    controller.dispatch(SessionEvent.speak_complete())
    controller.dispatch(_recognised("bye", "Leave"))
    assert controller.current_path == "room.no_input"
    assert controller.state.media.image == "leave.png"
    assert presentation.presented[-1].image == "leave.png"


def test_no_input_clears_raw_result_but_keeps_interpretation(speech):
    controller = _controller(speech)
    controller.dispatch(SessionEvent.click())
    controller.dispatch(SessionEvent.speak_complete())
    controller.dispatch(_recognised("bye", "Leave"))
    controller.dispatch(SessionEvent.speak_complete())

    result = controller.dispatch(SessionEvent.no_input())
    assert result.leaf.key == "room.no_input"
    assert controller.state.last_raw_result is None
    assert controller.state.last_interpretation.top_intent == "Leave"
    assert controller.state.player_name == ""

    controller.dispatch(SessionEvent.speak_complete())
    assert controller.current_path == "room.ask"
    assert speech.calls[-1] == ("listen", True)


def test_stale_completions_are_ignored(speech, caplog):
    controller = _controller(speech)
    with caplog.at_level(logging.WARNING):
        assert controller.dispatch(SessionEvent.speak_complete()) is None
        assert controller.dispatch(_recognised("hello")) is None
        assert controller.dispatch(SessionEvent.no_input()) is None
    assert controller.current_path == "hall"
    assert controller.state.last_raw_result is None
    assert "Ignoring" in caplog.text

    controller.dispatch(SessionEvent.click())
    assert controller.dispatch(SessionEvent.no_input()) is None
    assert controller.current_path == "room.prompt"


def test_unhandled_event_is_a_noop(speech):
    controller = _controller(speech)
    controller.dispatch(SessionEvent.click())
    controller.dispatch(SessionEvent.speak_complete())
    assert controller.dispatch(SessionEvent.click()) is None
    assert controller.current_path == "room.ask"
    assert controller.phase is TurnPhase.LISTENING


def test_capability_error_reprompts(speech, caplog):
    controller = _controller(speech)
    controller.dispatch(SessionEvent.click())
    with caplog.at_level(logging.ERROR):
        result = controller.dispatch(SessionEvent.capability_error("synthesis failed"))
    assert result.leaf.key == "room.no_input"
    assert controller.phase is TurnPhase.SPEAKING
    assert "synthesis failed" in caplog.text


def test_stop_media_clears_playback(speech, presentation):
    controller = _controller(speech, presentation=presentation)
    controller.state.media.video = "clip.mp4"
    controller.state.media.loop = True
    controller.dispatch(SessionEvent.click())
    controller.dispatch(SessionEvent.speak_complete())
    controller.dispatch(_recognised("Alex", PersonName="Alex"))
    controller.dispatch(SessionEvent.speak_complete())
    assert controller.current_path == "end"
    assert presentation.stops == 1
    assert controller.state.media.video is None
    assert controller.state.media.loop is False
    assert controller.state.media.image == "hall.png"


def test_journal_receives_narration_player_turns_and_state(speech, journal):
    controller = _controller(speech, journal=journal, session_id="s-1")
    controller.dispatch(SessionEvent.click())
    controller.dispatch(SessionEvent.speak_complete())
    controller.dispatch(_recognised("I am Alex", "NameCapture", PersonName="Alex"))

    assert journal.sessions == [("s-1", "demo")]
    assert "narrator" in journal.kinds()
    player = [r for r in journal.records if r[1] == "player"]
    assert player[0][2] == "I am Alex"
    assert player[0][3] == "room.ask"
    assert player[0][4] == {"top_intent": "NameCapture", "entities": {"PersonName": "Alex"}}
    transitions = [r for r in journal.records if r[1] == "transition"]
    assert transitions[-1][3] == "room.greet"
    assert journal.states[-1][1] == "room.greet"
    assert journal.states[-1][2]["player_name"] == "Alex"


def test_journal_failures_do_not_break_the_session(speech, caplog):
    class BrokenJournal:
        def open_session(self, session_id, story_id):
            raise RuntimeError("db down")

        def record(self, *args):
            raise RuntimeError("db down")

        def save_state(self, *args):
            raise RuntimeError("db down")

    with caplog.at_level(logging.WARNING):
        controller = _controller(speech, journal=BrokenJournal())
        controller.dispatch(SessionEvent.click())
    assert controller.current_path == "room.prompt"
    assert "Journal" in caplog.text


def test_journal_keeps_first_entity_of_each_category(speech, journal):
    controller = _controller(speech, journal=journal)
    controller.dispatch(SessionEvent.click())
    controller.dispatch(SessionEvent.speak_complete())
    controller.dispatch(
        SessionEvent.recognised(
            [RecognitionHypothesis("Alex or Sam", 0.8)],
            Interpretation(
                top_intent="NameCapture",
                entities=(Entity("PersonName", "Alex"), Entity("PersonName", "Sam"), Entity("Title", "Dr")),
            ),
        )
    )
    player = [r for r in journal.records if r[1] == "player"]
    assert player[0][4]["entities"] == {"PersonName": "Alex", "Title": "Dr"}
    assert controller.state.player_name == "Alex"


def test_recognised_turn_settles_once(speech, journal):
    controller = _controller(speech, journal=journal)
    controller.dispatch(SessionEvent.click())
    controller.dispatch(SessionEvent.speak_complete())
    before = len(journal.states)

    controller.dispatch(_recognised("I am Alex", "NameCapture", PersonName="Alex"))
    assert len(journal.states) == before + 1
    assert journal.states[-1][1] == "room.greet"

    controller.dispatch(SessionEvent.speak_complete())
    controller.dispatch(SessionEvent.click())
    controller.dispatch(SessionEvent.click())
    controller.dispatch(SessionEvent.speak_complete())
    assert controller.current_path == "room.ask"
    before = len(journal.states)
    controller.dispatch(SessionEvent.no_input())
    assert len(journal.states) == before + 1
    assert controller.phase is TurnPhase.SPEAKING
