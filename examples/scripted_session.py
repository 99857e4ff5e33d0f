from __future__ import annotations

import asyncio
import logging

from voice_game_engine import SessionConfig, SessionEvent, SessionRunner, TurnController, build_house_story
from voice_game_engine.core.normalize import hypotheses_from_payload, interpretation_from_payload
from voice_game_engine.persistence.sqlalchemy import (
    SQLAlchemyTurnJournal,
    SQLAlchemyUnitOfWork,
    build_engine,
    build_session_factory,
    create_schema,
)

# What a browser speech client would post back: raw hypotheses plus the NLU value.
SCRIPT = [
    ([{"utterance": "My name is Alex", "confidence": 0.93}],
     {"topIntent": "NameCapture", "entities": [{"category": "PersonName", "text": "Alex"}]}),
    ([{"utterance": "Let's go", "confidence": 0.9}],
     {"topIntent": "MoveToX", "entities": [{"category": "Direction", "text": "forward"}]}),
    ([{"utterance": "Approach the car", "confidence": 0.88}],
     {"topIntent": "ApproachX", "entities": [{"category": "NonPickupObject", "text": "car"}]}),
    ([{"utterance": "Take the stick", "confidence": 0.91}], {"topIntent": "TakeTheStick", "entities": []}),
    None,
    ([{"utterance": "Go right", "confidence": 0.9}],
     {"topIntent": "MoveToX", "entities": [{"category": "Direction", "text": "right"}]}),
    ([{"utterance": "Use the stick", "confidence": 0.87}],
     {"topIntent": "UseItemX", "entities": [{"category": "UsableObject", "text": "stick"}]}),
    ([{"utterance": "What do I have", "confidence": 0.9}], {"topIntent": "ExamineInventory", "entities": []}),
]


class ConsoleSpeech:
    def __init__(self, runner_ref: list):
        self._runner_ref = runner_ref
        self._script = list(SCRIPT)

    @property
    def runner(self) -> SessionRunner:
        return self._runner_ref[0]

    def prepare(self, settings) -> None:
        print(f"[speech] {settings.locale} / {settings.tts_default_voice}")
        loop = asyncio.get_running_loop()
        loop.call_soon(self.runner.post, SessionEvent.ready())
        # The player clicks the start screen as soon as it shows.
        loop.call_soon(self.runner.post, SessionEvent.click())

    def speak(self, text: str) -> None:
        if text:
            print(f"NARRATOR: {text}")
        asyncio.get_running_loop().call_soon(self.runner.post, SessionEvent.speak_complete())

    def speak_markup(self, markup: str) -> None:
        print(f"NARRATOR (ssml): {markup}")
        asyncio.get_running_loop().call_soon(self.runner.post, SessionEvent.speak_complete())

    def listen(self, *, nlu: bool = True) -> None:
        loop = asyncio.get_running_loop()
        if not self._script:
            loop.call_soon(self.runner.stop)
            return
        turn = self._script.pop(0)
        if turn is None:
            print("PLAYER: ...")
            loop.call_soon(self.runner.post, SessionEvent.no_input())
            return
        raw, nlu_value = turn
        hypotheses = hypotheses_from_payload(raw)
        print(f"PLAYER: {hypotheses[0].utterance}")
        loop.call_soon(
            self.runner.post,
            SessionEvent.recognised(hypotheses, interpretation_from_payload(nlu_value)),
        )


class ConsolePresentation:
    def present(self, media) -> None:
        print(f"[screen] image={media.image} video={media.video} sound={media.sound} loop={media.loop}")

    def stop_media(self) -> None:
        print("[screen] stop media")


async def main() -> None:
    logging.basicConfig(level=logging.INFO)

    engine = build_engine("sqlite+pysqlite:///:memory:")
    create_schema(engine)
    session_factory = build_session_factory(engine)
    journal = SQLAlchemyTurnJournal(lambda: SQLAlchemyUnitOfWork(session_factory))

    config = SessionConfig(speak_timeout_seconds=5.0)
    runner_ref: list = []
    controller = TurnController(
        build_house_story(config),
        ConsoleSpeech(runner_ref),
        presentation=ConsolePresentation(),
        journal=journal,
        config=config,
    )
    runner = SessionRunner(controller)
    runner_ref.append(runner)

    processed = await runner.run()
    print("events processed:", processed)
    print("final node:", controller.current_path)
    print("inventory:", controller.state.inventory)
    for entry in journal.transcript(controller.session_id, limit=10, kinds=("player",)):
        print("journal:", entry["node_path"], "->", entry["content"])


if __name__ == "__main__":
    asyncio.run(main())
