from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Mapping, Optional, Sequence, Union

from .actions import Action, RequestListen
from .errors import GraphConfigurationError, UnknownNodeError
from .guards import Guard, evaluate_guard
from .types import EventType, GameState

logger = logging.getLogger(__name__)


class NodeKind(str, Enum):
    LEAF = "leaf"
    COMPOSITE = "composite"


def _split(path: str) -> tuple[str, ...]:
    parts = tuple(part.strip() for part in (path or "").split("."))
    if not path or any(not part for part in parts):
        raise GraphConfigurationError(f"invalid node path: {path!r}")
    return parts


@dataclass(frozen=True)
class AbsoluteTarget:
    """Path from the graph root."""

    path: tuple[str, ...]


@dataclass(frozen=True)
class ChildTarget:
    """Path below the node declaring the transition."""

    path: tuple[str, ...]


@dataclass(frozen=True)
class SiblingTarget:
    """Path below the parent of the node declaring the transition."""

    path: tuple[str, ...]


Target = Union[AbsoluteTarget, ChildTarget, SiblingTarget]


def absolute(path: str) -> AbsoluteTarget:
    return AbsoluteTarget(_split(path))


def child(path: str) -> ChildTarget:
    return ChildTarget(_split(path))


def sibling(path: str) -> SiblingTarget:
    return SiblingTarget(_split(path))


@dataclass(frozen=True)
class Transition:
    target: Optional[Target] = None
    guard: Optional[Guard] = None
    actions: tuple[Action, ...] = ()


def go(target: Target, when: Guard | None = None, actions: Sequence[Action] = ()) -> Transition:
    return Transition(target=target, guard=when, actions=tuple(actions))


def stay(*actions: Action, when: Guard | None = None) -> Transition:
    """Targetless transition: runs ``actions`` without leaving the active node."""
    return Transition(target=None, guard=when, actions=tuple(actions))


Handlers = Mapping[Union[EventType, str], Union[Transition, Sequence[Transition]]]


@dataclass(frozen=True)
class NodeSpec:
    id: str
    entry: tuple[Action, ...] = ()
    on: Mapping[EventType, tuple[Transition, ...]] = field(default_factory=dict)
    children: tuple["NodeSpec", ...] = ()
    initial: Optional[str] = None

    @property
    def kind(self) -> NodeKind:
        return NodeKind.COMPOSITE if self.children else NodeKind.LEAF


def _normalize_handlers(on: Handlers | None) -> dict[EventType, tuple[Transition, ...]]:
    out: dict[EventType, tuple[Transition, ...]] = {}
    for key, value in (on or {}).items():
        try:
            event = EventType(key)
        except ValueError as exc:
            raise GraphConfigurationError(f"unknown event type: {key!r}") from exc
        transitions = (value,) if isinstance(value, Transition) else tuple(value)
        if not transitions:
            raise GraphConfigurationError(f"empty transition list for {event.value}")
        out[event] = transitions
    return out


def leaf(id: str, *entry: Action, on: Handlers | None = None) -> NodeSpec:
    return NodeSpec(id=id, entry=tuple(entry), on=_normalize_handlers(on))


def composite(
    id: str,
    children: Sequence[NodeSpec],
    *,
    initial: str,
    entry: Sequence[Action] = (),
    on: Handlers | None = None,
) -> NodeSpec:
    return NodeSpec(
        id=id,
        entry=tuple(entry),
        on=_normalize_handlers(on),
        children=tuple(children),
        initial=initial,
    )


class NarrativeNode:
    def __init__(self, id: str, kind: NodeKind, parent: NarrativeNode | None, entry: tuple[Action, ...]):
        self.id = id
        self.kind = kind
        self.parent = parent
        self.entry = entry
        self.children: dict[str, NarrativeNode] = {}
        self.initial: NarrativeNode | None = None
        self.transitions: dict[EventType, tuple[ResolvedTransition, ...]] = {}
        self.path: tuple[str, ...] = parent.path + (id,) if parent is not None else ()

    @property
    def key(self) -> str:
        return ".".join(self.path)

    @property
    def listens(self) -> bool:
        return any(isinstance(action, RequestListen) for action in self.entry)

    def lineage(self) -> Iterator["NarrativeNode"]:
        node: NarrativeNode | None = self
        while node is not None:
            yield node
            node = node.parent

    def is_descendant_of(self, other: "NarrativeNode") -> bool:
        return any(node is other for node in self.lineage() if node is not self)

    def descend_to_leaf(self) -> list["NarrativeNode"]:
        out = [self]
        node = self
        while node.initial is not None:
            node = node.initial
            out.append(node)
        return out

    def __repr__(self) -> str:
        return f"NarrativeNode({self.key or self.id!r}, {self.kind.value})"


@dataclass(frozen=True, eq=False)
class ResolvedTransition:
    source: NarrativeNode
    target: Optional[NarrativeNode]
    guard: Optional[Guard]
    actions: tuple[Action, ...]
    index: int


@dataclass(frozen=True)
class TransitionResult:
    event: EventType
    transition: ResolvedTransition
    exited: tuple[NarrativeNode, ...]
    entered: tuple[NarrativeNode, ...]
    leaf: NarrativeNode

    @property
    def changed(self) -> bool:
        return bool(self.entered)


class NarrativeGraph:
    def __init__(self, root: NarrativeNode):
        self.root = root
        self._index = {node.key: node for node in self.nodes()}

    @property
    def id(self) -> str:
        return self.root.id

    def nodes(self) -> Iterator[NarrativeNode]:
        stack = [self.root]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(list(node.children.values())))

    def node(self, path: str) -> NarrativeNode:
        try:
            return self._index[path]
        except KeyError:
            raise UnknownNodeError(path) from None

    def initial_leaf(self) -> NarrativeNode:
        return self.root.descend_to_leaf()[-1]

    def entry_path(self) -> list[NarrativeNode]:
        return self.root.descend_to_leaf()

    def resolve_transition(
        self,
        current: NarrativeNode | str,
        event: EventType | str,
        state: GameState,
    ) -> TransitionResult | None:
        """Pick the transition ``event`` triggers from the active leaf ``current``.

        The innermost node holding a handler list for ``event`` decides; its
        guards run in declared order and the first true one (or an unguarded
        entry) wins. Returns ``None`` when nothing handles or matches.
        """
        active = self.node(current) if isinstance(current, str) else current
        if active.kind is not NodeKind.LEAF:
            raise ValueError(f"active node must be a leaf: {active!r}")
        try:
            event = EventType(event)
        except ValueError:
            logger.debug("Ignoring unknown event %r at %s", event, active.key)
            return None

        for holder in active.lineage():
            candidates = holder.transitions.get(event)
            if not candidates:
                continue
            for transition in candidates:
                if transition.guard is None or evaluate_guard(transition.guard, state):
                    result = self._plan(active, transition, event)
                    logger.debug(
                        "%s: %s --[%d]--> %s",
                        event.value,
                        active.key,
                        transition.index,
                        result.leaf.key,
                    )
                    return result
            logger.debug("%s: no guard matched at %s", event.value, holder.key or holder.id)
            return None
        return None

    @staticmethod
    def _plan(active: NarrativeNode, transition: ResolvedTransition, event: EventType) -> TransitionResult:
        target = transition.target
        if target is None:
            return TransitionResult(event=event, transition=transition, exited=(), entered=(), leaf=active)

        source = transition.source
        if target.is_descendant_of(source):
            domain = source
        else:
            domain = source.parent
            while domain is not None and not target.is_descendant_of(domain):
                domain = domain.parent
        if domain is None:
            raise GraphConfigurationError(f"{target.key!r} shares no ancestor with {source.key or source.id!r}")

        exited: list[NarrativeNode] = []
        for node in active.lineage():
            if node is domain:
                break
            exited.append(node)

        downward: list[NarrativeNode] = []
        node = target
        while node is not domain:
            downward.append(node)
            node = node.parent
        entered = list(reversed(downward)) + target.descend_to_leaf()[1:]
        return TransitionResult(
            event=event,
            transition=transition,
            exited=tuple(exited),
            entered=tuple(entered),
            leaf=entered[-1],
        )


def _instantiate(spec: NodeSpec, parent: NarrativeNode | None, pairs: list[tuple[NarrativeNode, NodeSpec]]) -> NarrativeNode:
    if not spec.id or "." in spec.id:
        raise GraphConfigurationError(f"invalid node id: {spec.id!r}")
    node = NarrativeNode(spec.id, spec.kind, parent, spec.entry)
    pairs.append((node, spec))
    if spec.kind is NodeKind.LEAF:
        if spec.initial is not None:
            raise GraphConfigurationError(f"leaf {node.key!r} declares an initial child")
        return node

    for child_spec in spec.children:
        if child_spec.id in node.children:
            raise GraphConfigurationError(f"duplicate node id {child_spec.id!r} under {node.key or node.id!r}")
        node.children[child_spec.id] = _instantiate(child_spec, node, pairs)
    if spec.initial is None:
        raise GraphConfigurationError(f"composite {node.key or node.id!r} has no initial child")
    initial = node.children.get(spec.initial)
    if initial is None:
        raise GraphConfigurationError(
            f"initial child {spec.initial!r} of {node.key or node.id!r} does not exist"
        )
    node.initial = initial
    return node


def _lookup(base: NarrativeNode, parts: tuple[str, ...]) -> NarrativeNode | None:
    node = base
    for part in parts:
        node = node.children.get(part)
        if node is None:
            return None
    return node


def _resolve_target(root: NarrativeNode, source: NarrativeNode, target: Target) -> NarrativeNode:
    if isinstance(target, AbsoluteTarget):
        base: NarrativeNode | None = root
    elif isinstance(target, ChildTarget):
        if source.kind is NodeKind.LEAF:
            raise GraphConfigurationError(f"leaf {source.key!r} cannot target a child")
        base = source
    elif isinstance(target, SiblingTarget):
        base = source.parent
        if base is None:
            raise GraphConfigurationError("the graph root has no siblings")
    else:
        raise GraphConfigurationError(f"unsupported target reference: {target!r}")
    resolved = _lookup(base, target.path)
    if resolved is None:
        raise GraphConfigurationError(
            f"unresolvable target {'.'.join(target.path)!r} ({type(target).__name__}) from {source.key or source.id!r}"
        )
    return resolved


def build_graph(spec: NodeSpec, *, require_listen_fallbacks: bool = True) -> NarrativeGraph:
    """Build and validate a graph; every target is resolved to a node handle here."""
    pairs: list[tuple[NarrativeNode, NodeSpec]] = []
    root = _instantiate(spec, None, pairs)

    for node, node_spec in pairs:
        for event, transitions in node_spec.on.items():
            node.transitions[event] = tuple(
                ResolvedTransition(
                    source=node,
                    target=_resolve_target(root, node, t.target) if t.target is not None else None,
                    guard=t.guard,
                    actions=t.actions,
                    index=index,
                )
                for index, t in enumerate(transitions)
            )

    if require_listen_fallbacks:
        for node, _ in pairs:
            handlers = node.transitions.get(EventType.LISTEN_COMPLETE)
            if handlers and handlers[-1].guard is not None:
                raise GraphConfigurationError(
                    f"LISTEN_COMPLETE handlers of {node.key or node.id!r} must end with an unguarded fallback"
                )
            if node.listens and not any(
                ancestor.transitions.get(EventType.LISTEN_COMPLETE) for ancestor in node.lineage()
            ):
                raise GraphConfigurationError(f"listening node {node.key!r} has no LISTEN_COMPLETE handler")

    return NarrativeGraph(root)
