from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence, Union

from .ports import PresentationPort, SpeechPort
from .types import GameState

TextSource = Union[str, Callable[[GameState], str]]


@dataclass(frozen=True)
class MutateState:
    apply: Callable[[GameState], None]
    label: str = "mutate"


@dataclass(frozen=True)
class RequestSpeak:
    text: TextSource
    markup: bool = False

    def render(self, state: GameState) -> str:
        if callable(self.text):
            return self.text(state)
        return self.text


@dataclass(frozen=True)
class RequestListen:
    nlu: bool = True


@dataclass(frozen=True)
class StopMedia:
    pass


Action = Union[MutateState, RequestSpeak, RequestListen, StopMedia]

_UNSET = object()


def speak(text: TextSource) -> RequestSpeak:
    return RequestSpeak(text=text)


def speak_markup(markup: TextSource) -> RequestSpeak:
    return RequestSpeak(text=markup, markup=True)


def listen(*, nlu: bool = True) -> RequestListen:
    return RequestListen(nlu=nlu)


def stop_media() -> StopMedia:
    return StopMedia()


def add_item(item: str) -> MutateState:
    return MutateState(apply=lambda state: state.add_item(item), label=f"add_item:{item}")


def show(
    *,
    image: object = _UNSET,
    video: object = _UNSET,
    sound: object = _UNSET,
    loop: object = _UNSET,
) -> MutateState:
    """Set presentation fields; fields left out keep their current value."""

    def _apply(state: GameState) -> None:
        if image is not _UNSET:
            state.media.image = image
        if video is not _UNSET:
            state.media.video = video
        if sound is not _UNSET:
            state.media.sound = sound
        if loop is not _UNSET:
            state.media.loop = bool(loop)

    return MutateState(apply=_apply, label="show")


def capture_player_name(category: str = "PersonName") -> MutateState:
    def _apply(state: GameState) -> None:
        interpretation = state.last_interpretation
        if interpretation is None:
            return
        name = interpretation.entity_text(category, lower=False)
        if name:
            state.player_name = name.strip()

    return MutateState(apply=_apply, label="capture_player_name")


def reset_progress(initial_inventory: Iterable[str]) -> MutateState:
    items = tuple(initial_inventory)
    return MutateState(apply=lambda state: state.reset_progress(items), label="reset_progress")


CapabilityRequest = Union[RequestSpeak, RequestListen, StopMedia]


@dataclass(frozen=True)
class IssuedRequest:
    action: CapabilityRequest
    text: Optional[str] = None


class ActionExecutor:
    """Runs entry and transition actions top-to-bottom against one GameState."""

    def __init__(
        self,
        speech: SpeechPort,
        presentation: PresentationPort | None = None,
        logger: logging.Logger | None = None,
    ):
        self._speech = speech
        self._presentation = presentation
        self._logger = logger or logging.getLogger(__name__)

    def run(self, actions: Sequence[Action], state: GameState) -> list[IssuedRequest]:
        issued: list[IssuedRequest] = []
        for action in actions:
            if isinstance(action, MutateState):
                action.apply(state)
            elif isinstance(action, RequestSpeak):
                text = action.render(state)
                if action.markup:
                    self._speech.speak_markup(text)
                else:
                    self._speech.speak(text)
                issued.append(IssuedRequest(action=action, text=text))
            elif isinstance(action, RequestListen):
                self._speech.listen(nlu=action.nlu)
                issued.append(IssuedRequest(action=action))
            elif isinstance(action, StopMedia):
                state.media.video = None
                state.media.sound = None
                state.media.loop = False
                if self._presentation is not None:
                    self._presentation.stop_media()
                issued.append(IssuedRequest(action=action))
            else:
                raise TypeError(f"unsupported action: {action!r}")
        return issued
