from __future__ import annotations

import asyncio

import pytest

from voice_game_engine.core.actions import listen, speak
from voice_game_engine.core.config import SessionConfig
from voice_game_engine.core.engine import TurnController
from voice_game_engine.core.graph import absolute, build_graph, child, composite, go, leaf, sibling
from voice_game_engine.core.guards import intent_is
from voice_game_engine.core.runner import SessionRunner
from voice_game_engine.core.types import EventType, Interpretation, RecognitionHypothesis, SessionEvent


def _graph():
    return build_graph(
        composite(
            "demo",
            [
                leaf("hall", on={EventType.CLICK: go(sibling("room"))}),
                composite(
                    "room",
                    [
                        leaf("prompt", speak("Ready?"), on={EventType.SPEAK_COMPLETE: go(sibling("ask"))}),
                        leaf("ask", listen()),
                        leaf("no_input", speak("Ready?"), on={EventType.SPEAK_COMPLETE: go(sibling("ask"))}),
                    ],
                    initial="prompt",
                    on={
                        EventType.LISTEN_COMPLETE: [
                            go(absolute("done"), when=intent_is("Affirm")),
                            go(child("no_input")),
                        ],
                        EventType.CAPABILITY_ERROR: go(child("no_input")),
                    },
                ),
                leaf("done"),
            ],
            initial="hall",
        )
    )


class ScriptedSpeech:
    """Completes every request on the next loop iteration; listens pop the script."""

    def __init__(self, script):
        self.script = list(script)
        self.runner: SessionRunner | None = None
        self.spoken: list[str] = []

    def prepare(self, settings) -> None:
        pass

    def speak(self, text: str) -> None:
        self.spoken.append(text)
        asyncio.get_running_loop().call_soon(self.runner.post, SessionEvent.speak_complete())

    def speak_markup(self, markup: str) -> None:
        self.speak(markup)

    def listen(self, *, nlu: bool = True) -> None:
        event = self.script.pop(0) if self.script else SessionEvent.no_input()
        asyncio.get_running_loop().call_soon(self.runner.post, event)


class SilentSpeech:
    def __init__(self):
        self.spoken: list[str] = []

    def prepare(self, settings) -> None:
        pass

    def speak(self, text: str) -> None:
        self.spoken.append(text)

    def speak_markup(self, markup: str) -> None:
        self.spoken.append(markup)

    def listen(self, *, nlu: bool = True) -> None:
        pass


def test_runner_drives_turns_until_condition():
    async def run_test():
        speech = ScriptedSpeech(
            [
                SessionEvent.no_input(),
                SessionEvent.recognised([RecognitionHypothesis("yes", 0.9)], Interpretation(top_intent="Affirm")),
            ]
        )
        runner = SessionRunner(TurnController(_graph(), speech))
        speech.runner = runner
        runner.post(SessionEvent.click())

        processed = await runner.run(until=lambda controller: controller.current_path == "done")
        assert runner.controller.current_path == "done"
        assert speech.spoken == ["Ready?", "Ready?"]
        # click, speak, no-input, speak, recognised
        assert processed == 5
        assert not runner.running

    asyncio.run(run_test())


def test_speak_timeout_posts_capability_error():
    async def run_test():
        speech = SilentSpeech()
        controller = TurnController(_graph(), speech, config=SessionConfig(speak_timeout_seconds=0.01))
        runner = SessionRunner(controller)
        runner.post(SessionEvent.click())

        processed = await runner.run(until=lambda c: c.current_path == "room.no_input")
        assert processed == 2
        assert speech.spoken == ["Ready?", "Ready?"]

    asyncio.run(run_test())


def test_without_speak_timeout_runner_waits_for_events():
    async def run_test():
        speech = SilentSpeech()
        runner = SessionRunner(TurnController(_graph(), speech))
        runner.post(SessionEvent.click())

        async def stop_later():
            await asyncio.sleep(0.05)
            runner.stop()

        stopper = asyncio.create_task(stop_later())
        processed = await runner.run()
        await stopper
        assert processed == 1
        assert runner.controller.current_path == "room.prompt"

    asyncio.run(run_test())


def test_post_threadsafe_requires_a_running_loop():
    async def run_test():
        runner = SessionRunner(TurnController(_graph(), SilentSpeech()))
        with pytest.raises(RuntimeError):
            runner.post_threadsafe(SessionEvent.click())

        runner.stop()
        assert await runner.run() == 0
        assert runner.controller.current_path == "hall"

    asyncio.run(run_test())


def test_runner_can_be_reused_across_event_loops():
    controller = TurnController(_graph(), SilentSpeech())
    runner = SessionRunner(controller)

    runner.post(SessionEvent.click())
    runner.stop()
    assert asyncio.run(runner.run()) == 1
    assert controller.current_path == "room.prompt"

    runner.post(SessionEvent.speak_complete())
    runner.stop()
    assert asyncio.run(runner.run()) == 1
    assert controller.current_path == "room.ask"
