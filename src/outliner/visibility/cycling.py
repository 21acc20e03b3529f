"""Local and global visibility cycling.

The cycle functions are pure: they take the current overlay and return a
new one. Repeat detection lives in :class:`CommandTracker`, which callers
thread explicitly through every command they execute.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..core.ranges import TextRange
from ..errors import EmptyScopeError
from ..outline.model import Document, Node, Visibility
from .overlay import Overlay, VisibilityResolver, revealed_by_ancestor, state_of

__all__ = [
    "CommandKey",
    "CommandTracker",
    "cycle_local",
    "cycle_global",
    "collapse_subtree",
    "expand_all_headings",
    "reveal_entry",
]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class CommandKey:
    """Identity of one command invocation, used for repeat detection."""

    command: str
    view_key: str | None = None
    node_index: int | None = None


class CommandTracker:
    """Remembers the previous command so a consecutive repeat can be detected."""

    __slots__ = ("_last",)

    def __init__(self) -> None:
        self._last: CommandKey | None = None

    @property
    def last(self) -> CommandKey | None:
        return self._last

    def record(
        self,
        command: str,
        *,
        view_key: str | None = None,
        node_index: int | None = None,
    ) -> bool:
        """Record a command and return ``True`` when it repeats the previous one."""

        key = CommandKey(command=command, view_key=view_key, node_index=node_index)
        repeat = key == self._last
        self._last = key
        return repeat

    def reset(self) -> None:
        self._last = None


def cycle_local(
    document: Document,
    overlay: Overlay,
    node: Node | None,
    *,
    scope: TextRange | None = None,
    repeat: bool = False,
) -> dict[int, Visibility]:
    """Advance ``node`` through children → branches → collapsed.

    1. Hidden direct children are revealed one level deep.
    2. On a consecutive repeat, all descendant headings are revealed when
       any is hidden or the node is still showing only its children.
    3. Otherwise the whole subtree is collapsed.
    """

    if node is None:
        raise EmptyScopeError()
    resolver = VisibilityResolver(document, overlay, scope)
    if not resolver.in_scope(node):
        raise EmptyScopeError(
            message=f"Heading {node.title!r} is outside the view",
            details={"index": node.index},
        )

    updated = dict(overlay)
    if resolver.hidden_children(node):
        updated[node.index] = Visibility.CHILDREN
        return updated
    if repeat and (
        resolver.hidden_descendants(node)
        or state_of(overlay, node) is Visibility.CHILDREN
    ):
        updated[node.index] = Visibility.BRANCHES
        for descendant in document.descendants(node):
            if updated.get(descendant.index) is Visibility.COLLAPSED:
                del updated[descendant.index]
        return updated
    return collapse_subtree(document, updated, node)


def cycle_global(
    document: Document,
    overlay: Overlay,
    *,
    scope: TextRange | None = None,
) -> dict[int, Visibility]:
    """Reveal one more level across the whole scope, or collapse everything."""

    resolver = VisibilityResolver(document, overlay, scope)
    pending = [node for node in resolver.nodes if resolver.hidden_children(node)]
    updated = dict(overlay)
    if pending:
        level = min(node.level for node in pending)
        for node in pending:
            if node.level == level:
                updated[node.index] = Visibility.CHILDREN
        LOGGER.debug("Global cycle revealed children at level %d", level)
        return updated

    for node in resolver.nodes:
        updated.pop(node.index, None)
    LOGGER.debug("Global cycle collapsed %d heading(s)", len(resolver.nodes))
    return updated


def collapse_subtree(document: Document, overlay: Overlay, node: Node) -> dict[int, Visibility]:
    """Fold ``node`` and every heading below it.

    Under an ancestor that reveals branches or entries, ``node`` and each
    descendant with children are stored as ``COLLAPSED``; elsewhere their
    entries are dropped.
    """

    updated = dict(overlay)
    descendants = document.descendants(node)
    for descendant in descendants:
        updated.pop(descendant.index, None)
    if not revealed_by_ancestor(document, updated, node):
        updated.pop(node.index, None)
        return updated
    updated[node.index] = Visibility.COLLAPSED
    for descendant in descendants:
        if document.has_children(descendant):
            updated[descendant.index] = Visibility.COLLAPSED
    return updated


def expand_all_headings(document: Document, scope: TextRange | None = None) -> dict[int, Visibility]:
    """Return an overlay showing every heading in ``scope`` and no bodies."""

    resolver = VisibilityResolver(document, {}, scope)
    return {
        node.index: Visibility.BRANCHES
        for node in resolver.nodes
        if resolver.heading_visible(node) and document.has_children(node)
    }


def reveal_entry(document: Document, overlay: Overlay, node: Node) -> dict[int, Visibility]:
    """Open every ancestor of ``node`` and show ``node``'s entry."""

    updated = dict(overlay)
    for ancestor in document.ancestors(node):
        if state_of(updated, ancestor) is Visibility.COLLAPSED:
            updated[ancestor.index] = Visibility.CHILDREN
    updated[node.index] = Visibility.ENTRIES
    return updated
