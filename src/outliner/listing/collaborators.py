"""Search and grouping collaborators used by list views.

List views accept any callables matching :class:`Search` and
:class:`Grouper`; the functions here are the built-in defaults.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Callable, Iterator, Protocol, Sequence

from ..core.ranges import TextRange
from ..outline.model import Document, Node

__all__ = [
    "SearchScope",
    "Predicate",
    "GroupingSpec",
    "Search",
    "Grouper",
    "Group",
    "linear_search",
    "group_nodes",
    "todo_items",
    "upcoming_items",
    "title_matches",
    "planning_date",
]

Predicate = Callable[[Document, Node], bool]
GroupingSpec = Sequence["str | Callable[[Node], Any]"]

_NO_VALUE = "(none)"


@dataclass(slots=True, frozen=True)
class SearchScope:
    """A document, optionally narrowed to a range."""

    document: Document
    restriction: TextRange | None = None

    def nodes(self) -> tuple[Node, ...]:
        return self.document.nodes_in(self.restriction)


class Search(Protocol):
    """Return matching nodes in document order without touching the document."""

    def __call__(self, scope: SearchScope, predicate: Predicate) -> Sequence[Node]:  # pragma: no cover - protocol
        ...


class Grouper(Protocol):
    """Arrange nodes into a presentation tree without dropping or duplicating any."""

    def __call__(self, nodes: Sequence[Node], spec: GroupingSpec) -> Group:  # pragma: no cover - protocol
        ...


@dataclass(slots=True)
class Group:
    """Presentation tree node: a label, the nodes filed directly under it, and subgroups."""

    label: str
    nodes: list[Node] = field(default_factory=list)
    subgroups: list[Group] = field(default_factory=list)

    def iter_nodes(self) -> Iterator[Node]:
        yield from self.nodes
        for subgroup in self.subgroups:
            yield from subgroup.iter_nodes()

    def node_count(self) -> int:
        return sum(1 for _ in self.iter_nodes())

    def render_lines(self, depth: int = 0) -> list[str]:
        lines: list[str] = []
        indent = "  " * depth
        if self.label:
            lines.append(f"{indent}{self.label}")
            indent = "  " * (depth + 1)
        for node in self.nodes:
            lines.append(f"{indent}{_describe(node)}")
        for subgroup in self.subgroups:
            lines.extend(subgroup.render_lines(depth + 1 if self.label else depth))
        return lines


def linear_search(scope: SearchScope, predicate: Predicate) -> list[Node]:
    """Filter the scope's nodes in document order."""

    return [node for node in scope.nodes() if predicate(scope.document, node)]


def group_nodes(nodes: Sequence[Node], spec: GroupingSpec) -> Group:
    """Group ``nodes`` by each key of ``spec`` in turn.

    Keys are callables or one of the attribute names ``todo``, ``tags``
    (first tag), ``level``, ``priority``, ``scheduled``, ``deadline``.
    Groups appear in order of first occurrence.
    """

    root = Group(label="")
    _fill(root, list(nodes), list(spec))
    return root


def _fill(group: Group, nodes: list[Node], spec: list[Any]) -> None:
    if not spec:
        group.nodes.extend(nodes)
        return
    key = _key_function(spec[0])
    buckets: dict[str, list[Node]] = {}
    for node in nodes:
        value = key(node)
        label = _NO_VALUE if value is None or value == "" else str(value)
        buckets.setdefault(label, []).append(node)
    for label, members in buckets.items():
        child = Group(label=label)
        _fill(child, members, spec[1:])
        group.subgroups.append(child)


def _key_function(key: Any) -> Callable[[Node], Any]:
    if callable(key):
        return key
    if key == "tags":
        return lambda node: node.tags[0] if node.tags else None
    if key in {"todo", "level", "priority", "scheduled", "deadline"}:
        return lambda node: getattr(node, key)
    raise ValueError(f"Unknown grouping key: {key!r}")


def _describe(node: Node) -> str:
    parts = []
    if node.todo:
        parts.append(node.todo)
    if node.priority:
        parts.append(f"[#{node.priority}]")
    parts.append(node.title)
    stamp = planning_date(node)
    if stamp is not None:
        parts.append(f"<{stamp.isoformat()}>")
    return " ".join(parts)


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------
def planning_date(node: Node) -> date | None:
    """Return the earliest of the node's scheduled and deadline dates."""

    stamps = [stamp for stamp in (node.scheduled, node.deadline) if stamp is not None]
    return min(stamps) if stamps else None


def todo_items(document: Document, node: Node) -> bool:
    """Match headings carrying an open (not done) TODO keyword."""

    return bool(node.todo) and node.todo not in document.metadata.done_keywords


def upcoming_items(today: date | None = None, days: int = 7) -> Predicate:
    """Match open headings scheduled or due on or before ``today + days``."""

    def predicate(document: Document, node: Node) -> bool:
        stamp = planning_date(node)
        if stamp is None:
            return False
        if node.todo and node.todo in document.metadata.done_keywords:
            return False
        horizon = (today or date.today()) + timedelta(days=days)
        return stamp <= horizon

    return predicate


def title_matches(pattern: str) -> Predicate:
    compiled = re.compile(pattern, re.IGNORECASE)
    return lambda _document, node: bool(compiled.search(node.title))
