from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from .actions import ActionExecutor, IssuedRequest, RequestListen, RequestSpeak, StopMedia
from .config import SessionConfig
from .errors import SessionNotStartedError
from .graph import NarrativeGraph, NarrativeNode, TransitionResult
from .ports import PresentationPort, SpeechPort, TurnJournalPort
from .types import EventType, GameState, Interpretation, MediaState, SessionEvent, TurnPhase


class TurnController:
    """Drives speak -> listen -> dispatch turns over a narrative graph.

    One event is processed to completion per ``dispatch`` call: the chosen
    transition's actions and every entered node's entry actions run in order,
    then the controller waits for the capability to post the next event.
    """

    def __init__(
        self,
        graph: NarrativeGraph,
        speech: SpeechPort,
        presentation: PresentationPort | None = None,
        journal: TurnJournalPort | None = None,
        config: SessionConfig | None = None,
        state: GameState | None = None,
        session_id: str | None = None,
        logger: logging.Logger | None = None,
    ):
        self._graph = graph
        self._speech = speech
        self._presentation = presentation
        self._journal = journal
        self._config = config or SessionConfig()
        self.state = state if state is not None else GameState.new(self._config.initial_inventory)
        self.session_id = session_id or uuid.uuid4().hex
        self._logger = logger or logging.getLogger(__name__)
        self._executor = ActionExecutor(speech, presentation, logger=self._logger)
        self._current: NarrativeNode | None = None
        self._presented: MediaState | None = None
        self.phase = TurnPhase.IDLE

    @property
    def graph(self) -> NarrativeGraph:
        return self._graph

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def started(self) -> bool:
        return self._current is not None

    @property
    def current(self) -> NarrativeNode:
        if self._current is None:
            raise SessionNotStartedError("session has not been started")
        return self._current

    @property
    def current_path(self) -> str:
        return self.current.key

    def start(self) -> NarrativeNode:
        if self._current is not None:
            self._logger.warning("Session %s already started at %s", self.session_id, self._current.key)
            return self._current
        self._journal_call("open_session", self.session_id, self._graph.id)
        self._speech.prepare(self._config.speech)

        path = self._graph.entry_path()
        self._current = path[-1]
        issued: list[IssuedRequest] = []
        for node in path:
            issued.extend(self._executor.run(node.entry, self.state))
        self._logger.info("Session %s started at %s", self.session_id, self._current.key)
        self._settle(issued, entered=True)
        return self._current

    def dispatch(self, event: SessionEvent) -> Optional[TransitionResult]:
        if self._current is None:
            raise SessionNotStartedError("dispatch before start")

        if event.type is EventType.RECOGNISED:
            return self._on_recognised(event)
        if event.type is EventType.ASR_NOINPUT:
            return self._on_no_input()
        if event.type is EventType.SPEAK_COMPLETE and self.phase is not TurnPhase.SPEAKING:
            self._logger.warning("Ignoring SPEAK_COMPLETE while %s at %s", self.phase.value, self._current.key)
            return None
        if event.type is EventType.CAPABILITY_ERROR:
            self._logger.error(
                "Speech capability failed while %s at %s: %s",
                self.phase.value,
                self._current.key,
                event.error or "unknown error",
            )
        return self._step(event.type)

    def _on_recognised(self, event: SessionEvent) -> Optional[TransitionResult]:
        if self.phase is not TurnPhase.LISTENING:
            self._logger.warning("Ignoring RECOGNISED while %s at %s", self.phase.value, self.current.key)
            return None
        self.state.record_recognition(list(event.hypotheses or ()), event.interpretation)
        interpretation = self.state.last_interpretation
        self._journal_call(
            "record",
            self.session_id,
            "player",
            self.state.last_utterance or "",
            self.current.key,
            {
                "top_intent": interpretation.top_intent if interpretation is not None else None,
                "entities": _first_entities(interpretation),
            },
        )
        self.phase = TurnPhase.DISPATCHING
        self._step(EventType.RECOGNISED, absorbed=True)
        return self._step(EventType.LISTEN_COMPLETE)

    def _on_no_input(self) -> Optional[TransitionResult]:
        if self.phase is not TurnPhase.LISTENING:
            self._logger.warning("Ignoring ASR_NOINPUT while %s at %s", self.phase.value, self.current.key)
            return None
        self.state.clear_raw_result()
        self.phase = TurnPhase.DISPATCHING
        self._step(EventType.ASR_NOINPUT, absorbed=True)
        return self._step(EventType.LISTEN_COMPLETE)

    def _step(self, event_type: EventType, *, absorbed: bool = False) -> Optional[TransitionResult]:
        """Process one event against the graph.

        ``absorbed`` marks the listen result itself, which is followed by a
        synthetic LISTEN_COMPLETE: when its handler neither issues requests
        nor moves the session, the turn is settled by that LISTEN_COMPLETE.
        """
        active = self.current
        result = self._graph.resolve_transition(active, event_type, self.state)
        if result is None:
            if event_type is EventType.LISTEN_COMPLETE:
                self._logger.warning("No LISTEN_COMPLETE route from %s; turn stalls", active.key)
            if not absorbed and self.phase is TurnPhase.DISPATCHING:
                self.phase = TurnPhase.IDLE
            return None

        issued = self._executor.run(result.transition.actions, self.state)
        for node in result.entered:
            issued.extend(self._executor.run(node.entry, self.state))
        if absorbed and not issued and not result.changed:
            return result
        self._current = result.leaf
        if result.changed:
            self._logger.debug("%s: %s -> %s", event_type.value, active.key, result.leaf.key)
            self._journal_call(
                "record",
                self.session_id,
                "transition",
                event_type.value,
                result.leaf.key,
                {"from": active.key},
            )
        self._settle(issued, entered=result.changed)
        return result

    def _settle(self, issued: list[IssuedRequest], *, entered: bool) -> None:
        for request in issued:
            if isinstance(request.action, RequestSpeak):
                self._journal_call("record", self.session_id, "narrator", request.text or "", self.current.key, None)

        outstanding = [r for r in issued if not isinstance(r.action, StopMedia)]
        if outstanding:
            last = outstanding[-1].action
            self.phase = TurnPhase.LISTENING if isinstance(last, RequestListen) else TurnPhase.SPEAKING
        elif entered or self.phase is TurnPhase.DISPATCHING:
            self.phase = TurnPhase.IDLE

        if self._presentation is not None and self.state.media != self._presented:
            self._presented = self.state.media.copy()
            self._presentation.present(self._presented)

        self._journal_call("save_state", self.session_id, self.current.key, self.state.to_dict())

    def _journal_call(self, method: str, *args: Any) -> None:
        if self._journal is None:
            return
        try:
            getattr(self._journal, method)(*args)
        except Exception:
            self._logger.warning("Journal %s failed for session %s", method, self.session_id, exc_info=True)


def _first_entities(interpretation: Interpretation | None) -> dict[str, str]:
    out: dict[str, str] = {}
    if interpretation is None:
        return out
    for entity in interpretation.entities:
        out.setdefault(entity.category, entity.text)
    return out
