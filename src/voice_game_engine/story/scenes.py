from __future__ import annotations

from dataclasses import replace
from typing import Sequence

from ..core.actions import Action, TextSource, listen, speak
from ..core.graph import NodeSpec, Target, Transition, child, composite, go, leaf, sibling, stay
from ..core.guards import heard_utterance, intent_is
from ..core.normalize import unique_items
from ..core.types import EventType, GameState

EXPLORE_AROUND = "ExploreAround"
EXAMINE_INVENTORY = "ExamineInventory"
ASK_CONTEXTUAL_HELP = "AskContextualHelp"


def inventory_sentence(state: GameState) -> str:
    items = unique_items(state.inventory)
    if not items:
        return "Your inventory is empty."
    return "You have the following items in your inventory: " + ", ".join(items)


def _heard(transition: Transition) -> Transition:
    heard = heard_utterance()
    guard = heard if transition.guard is None else heard & transition.guard
    return replace(transition, guard=guard)


def narrate(id: str, *entry: Action, then: Target) -> NodeSpec:
    """Leaf that speaks once and moves on; a failed synthesis moves on too."""
    return leaf(
        id,
        *entry,
        on={
            EventType.SPEAK_COMPLETE: go(then),
            EventType.CAPABILITY_ERROR: go(then),
        },
    )


def scene(
    id: str,
    *,
    prompt: Sequence[Action],
    routes: Sequence[Transition] = (),
    late_routes: Sequence[Transition] = (),
    explore: TextSource | None = None,
    hint: TextSource | None = None,
    inventory: bool = True,
    no_input: Sequence[Action] = (speak(""),),
    on_recognised: Sequence[Action] = (),
    extra: Sequence[NodeSpec] = (),
    info_then: str = "no_input",
) -> NodeSpec:
    """Build the prompt -> ask -> dispatch family shared by every spoken scene.

    LISTEN_COMPLETE tries ``routes``, then the explore/inventory/help
    intents, then ``late_routes``, and finally falls back to ``no_input``,
    which re-prompts and listens again. Every route except that fallback
    also requires a fresh utterance, so a timed-out turn always re-prompts
    even when the previous interpretation would still match a route.
    """
    children: list[NodeSpec] = [
        narrate("prompt", *prompt, then=sibling("ask")),
        narrate("no_input", *no_input, then=sibling("ask")),
        leaf(
            "ask",
            listen(),
            on={EventType.RECOGNISED: stay(*on_recognised)} if on_recognised else None,
        ),
    ]
    info: list[Transition] = []
    if explore is not None:
        children.append(narrate("explore_around", speak(explore), then=sibling(info_then)))
        info.append(go(child("explore_around"), when=intent_is(EXPLORE_AROUND)))
    if inventory:
        children.append(narrate("examine_inventory", speak(inventory_sentence), then=sibling(info_then)))
        info.append(go(child("examine_inventory"), when=intent_is(EXAMINE_INVENTORY)))
    if hint is not None:
        children.append(narrate("contextual_help", speak(hint), then=sibling(info_then)))
        info.append(go(child("contextual_help"), when=intent_is(ASK_CONTEXTUAL_HELP)))
    children.extend(extra)

    return composite(
        id,
        children,
        initial="prompt",
        on={
            EventType.LISTEN_COMPLETE: [
                *(_heard(t) for t in (*routes, *info, *late_routes)),
                go(child("no_input")),
            ],
            EventType.CAPABILITY_ERROR: go(child("no_input")),
        },
    )
