"""Resolve which headings and bodies an overlay makes visible."""

from __future__ import annotations

from typing import Mapping

from ..core.ranges import TextRange
from ..outline.model import Document, Node, Visibility

__all__ = ["Overlay", "VisibilityResolver", "revealed_by_ancestor", "state_of"]

Overlay = Mapping[int, Visibility]

_REVEALING = (Visibility.BRANCHES, Visibility.ENTRIES)


def state_of(overlay: Overlay, node: Node) -> Visibility:
    """Return ``node``'s state in ``overlay``; absent nodes are collapsed."""

    return overlay.get(node.index, Visibility.COLLAPSED)


def revealed_by_ancestor(document: Document, overlay: Overlay, node: Node) -> bool:
    """Return ``True`` when an open ancestor shows ``node``'s subtree without its own state."""

    for ancestor in document.ancestors(node):
        if _marked_collapsed(overlay, ancestor):
            return False
        if state_of(overlay, ancestor) in _REVEALING:
            return True
    return False


def _marked_collapsed(overlay: Overlay, node: Node) -> bool:
    return overlay.get(node.index) is Visibility.COLLAPSED


class VisibilityResolver:
    """Answers visibility questions for one ``(document, overlay, scope)`` snapshot.

    Headings whose parent lies outside ``scope`` are roots and always shown.
    A child heading is shown when its parent heading is shown and the parent
    is not collapsed, or a shown ancestor reveals branches or entries. A node
    stored explicitly as ``COLLAPSED`` hides its subtree even under such an
    ancestor. A body is shown when its heading is shown and the node, or an
    ancestor, is in the ``ENTRIES`` state, unless the node is marked collapsed.
    """

    __slots__ = ("_document", "_overlay", "_scope", "_nodes", "_heading", "_body")

    def __init__(self, document: Document, overlay: Overlay, scope: TextRange | None = None) -> None:
        self._document = document
        self._overlay = overlay
        self._scope = scope
        self._nodes = document.nodes_in(scope)
        self._heading: dict[int, bool] = {}
        self._body: dict[int, bool] = {}
        self._resolve()

    def _resolve(self) -> None:
        inherited: dict[int, Visibility | None] = {}
        for node in self._nodes:
            parent = self._document.parent(node)
            if parent is None or parent.index not in self._heading:
                visible = True
                reveal: Visibility | None = None
            else:
                parent_state = state_of(self._overlay, parent)
                # An explicit collapse stops a revealing ancestor at this node.
                parent_reveal = None if _marked_collapsed(self._overlay, parent) else inherited[parent.index]
                visible = self._heading[parent.index] and (
                    parent_state is not Visibility.COLLAPSED or parent_reveal is not None
                )
                reveal = parent_reveal
                if parent_state in _REVEALING and (
                    reveal is None or parent_state is Visibility.ENTRIES
                ):
                    reveal = parent_state
            own = self._overlay.get(node.index)
            inherited[node.index] = reveal
            self._heading[node.index] = visible
            self._body[node.index] = visible and (
                own is Visibility.ENTRIES
                or (reveal is Visibility.ENTRIES and own is not Visibility.COLLAPSED)
            )

    @property
    def nodes(self) -> tuple[Node, ...]:
        """Nodes inside the resolver's scope, in document order."""

        return self._nodes

    def in_scope(self, node: Node) -> bool:
        return node.index in self._heading

    def heading_visible(self, node: Node) -> bool:
        return self._heading.get(node.index, False)

    def body_visible(self, node: Node) -> bool:
        return self._body.get(node.index, False)

    def hidden_children(self, node: Node) -> bool:
        """Return ``True`` when ``node`` has an in-scope direct child whose heading is hidden."""

        return self._document.has_children(
            node,
            require_invisible=True,
            is_visible=lambda child: not self.in_scope(child) or self.heading_visible(child),
        )

    def hidden_descendants(self, node: Node) -> bool:
        return any(
            not self.heading_visible(descendant)
            for descendant in self._document.descendants(node)
            if self.in_scope(descendant)
        )
