from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from .types import GameState, Interpretation

logger = logging.getLogger(__name__)

Predicate = Callable[[GameState, Optional[Interpretation]], bool]


class Guard:
    """Boolean precondition over the game state and the last interpretation.

    Guards compose only through ``&``, ``|`` and ``~`` so every combination
    is an explicit tree: ``a & (b | c)`` never silently becomes ``(a & b) | c``.
    """

    def __init__(self, predicate: Predicate, label: str):
        self._predicate = predicate
        self.label = label

    def __call__(self, state: GameState, interpretation: Interpretation | None = None) -> bool:
        return bool(self._predicate(state, interpretation))

    def __and__(self, other: "Guard") -> "Guard":
        return all_of(self, other)

    def __or__(self, other: "Guard") -> "Guard":
        return any_of(self, other)

    def __invert__(self) -> "Guard":
        return Guard(lambda state, interp: not self(state, interp), f"not({self.label})")

    def __repr__(self) -> str:
        return f"Guard({self.label})"


def all_of(*guards: Guard) -> Guard:
    label = " & ".join(g.label for g in guards)
    return Guard(lambda state, interp: all(g(state, interp) for g in guards), f"({label})")


def any_of(*guards: Guard) -> Guard:
    label = " | ".join(g.label for g in guards)
    return Guard(lambda state, interp: any(g(state, interp) for g in guards), f"({label})")


def intent_is(name: str) -> Guard:
    return Guard(
        lambda state, interp: interp is not None and interp.top_intent == name,
        f"intent={name}",
    )


def entity_equals(category: str, value: str) -> Guard:
    """First entity of ``category``, lower-cased, equals ``value``."""
    return Guard(
        lambda state, interp: interp is not None and interp.entity_text(category) == value,
        f"{category}={value}",
    )


def entity_in(category: str, values: Iterable[str]) -> Guard:
    accepted = frozenset(values)
    return Guard(
        lambda state, interp: interp is not None and interp.entity_text(category) in accepted,
        f"{category} in {sorted(accepted)}",
    )


def has_item(item: str) -> Guard:
    return Guard(lambda state, interp: state.has_item(item), f"has:{item}")


def lacks_item(item: str) -> Guard:
    return ~has_item(item)


def utterance_equals(candidates: Iterable[str]) -> Guard:
    """Case-sensitive match of the raw top recognition hypothesis."""
    accepted = frozenset(candidates)
    return Guard(lambda state, interp: state.last_utterance in accepted, "utterance")


def heard_utterance() -> Guard:
    return Guard(lambda state, interp: state.last_utterance is not None, "heard")


def has_player_name() -> Guard:
    return Guard(lambda state, interp: bool(state.player_name), "player_name")


def evaluate_guard(guard: Guard | Predicate, state: GameState) -> bool:
    try:
        return bool(guard(state, state.last_interpretation))
    except Exception:
        logger.warning("Guard %r raised; treating as false", guard, exc_info=True)
        return False
