"""Dataclasses representing an outline: headings, their ranges and nesting."""

from __future__ import annotations

import hashlib
import uuid
from bisect import bisect_right
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, Optional, Sequence

from ..core.ranges import TextRange
from ..errors import MalformedDocumentError

__all__ = ["Visibility", "Node", "DocumentMetadata", "Document"]


def _hash_text(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


class Visibility(str, Enum):
    """Display state of one node inside one view."""

    COLLAPSED = "collapsed"
    CHILDREN = "children"
    BRANCHES = "branches"
    ENTRIES = "entries"


@dataclass(slots=True, frozen=True)
class Node:
    """A heading and the text range it owns.

    ``start`` is the offset of the heading line, ``heading_end`` the offset
    just after it, ``body_end`` the start of the next heading of any level and
    ``end`` the offset just after the last descendant.
    """

    level: int
    title: str
    start: int
    end: int
    heading_end: int | None = None
    body_end: int | None = None
    index: int = -1
    todo: str | None = None
    priority: str | None = None
    tags: tuple[str, ...] = ()
    scheduled: date | None = None
    deadline: date | None = None

    @property
    def range(self) -> TextRange:
        return TextRange(self.start, self.end)


@dataclass(slots=True)
class DocumentMetadata:
    """Metadata describing where a document came from."""

    path: Optional[Path] = None
    syntax: str = "markdown"
    title: str | None = None
    source_id: str | None = None
    frontmatter: dict[str, Any] = field(default_factory=dict)
    done_keywords: tuple[str, ...] = ("DONE",)


class Document:
    """Canonical text plus its ordered heading nodes.

    A document is never mutated by views; every view holds only the
    document id and resolves it through a :class:`~outliner.views.documents.DocumentTable`.
    Structural queries run on adjacency tables built once at construction.
    """

    __slots__ = (
        "_text",
        "_nodes",
        "_starts",
        "_parents",
        "_children",
        "_subtree_stop",
        "metadata",
        "document_id",
        "content_hash",
    )

    def __init__(
        self,
        text: str,
        nodes: Sequence[Node] = (),
        *,
        metadata: DocumentMetadata | None = None,
        document_id: str | None = None,
    ) -> None:
        self._text = text
        self.metadata = metadata or DocumentMetadata()
        self.document_id = document_id or uuid.uuid4().hex
        self.content_hash = _hash_text(text)
        self._nodes = self._normalize(text, nodes)
        self._starts = [node.start for node in self._nodes]
        self._parents, self._children, self._subtree_stop = self._scan(self._nodes)

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------
    @classmethod
    def from_nodes(cls, text: str, nodes: Iterable[Node], **kwargs: Any) -> Document:
        """Build a document from hand-made nodes, validating the outline."""

        return cls(text, tuple(nodes), **kwargs)

    @staticmethod
    def _normalize(text: str, nodes: Sequence[Node]) -> tuple[Node, ...]:
        size = len(text)
        normalized: list[Node] = []
        previous_start = -1
        for position, node in enumerate(nodes):
            if node.level < 1:
                raise MalformedDocumentError(
                    message=f"Heading {node.title!r} has level {node.level}",
                    details={"index": position, "level": node.level},
                )
            if node.start <= previous_start:
                raise MalformedDocumentError(
                    message=f"Heading {node.title!r} is out of document order",
                    details={"index": position, "start": node.start},
                )
            if node.end < node.start or node.end > size:
                raise MalformedDocumentError(
                    message=f"Heading {node.title!r} has invalid range ({node.start}, {node.end})",
                    details={"index": position, "start": node.start, "end": node.end},
                )
            previous_start = node.start

        expected_ends = [size] * len(nodes)
        open_positions: list[int] = []
        for position, node in enumerate(nodes):
            while open_positions and nodes[open_positions[-1]].level >= node.level:
                expected_ends[open_positions.pop()] = node.start
            open_positions.append(position)

        for position, node in enumerate(nodes):
            expected_end = expected_ends[position]
            if node.end != expected_end:
                raise MalformedDocumentError(
                    message=(
                        f"Heading {node.title!r} ends at {node.end}, "
                        f"expected {expected_end}"
                    ),
                    details={"index": position, "end": node.end, "expected": expected_end},
                )
            body_end = nodes[position + 1].start if position + 1 < len(nodes) else size
            heading_end = node.heading_end
            if heading_end is None:
                newline = text.find("\n", node.start, body_end)
                heading_end = body_end if newline == -1 else newline + 1
            if not node.start <= heading_end <= body_end:
                raise MalformedDocumentError(
                    message=f"Heading {node.title!r} has an invalid heading line",
                    details={"index": position, "heading_end": heading_end},
                )
            normalized.append(
                replace(node, index=position, heading_end=heading_end, body_end=body_end)
            )
        return tuple(normalized)

    @staticmethod
    def _scan(nodes: Sequence[Node]) -> tuple[list[int | None], list[list[int]], list[int]]:
        parents: list[int | None] = [None] * len(nodes)
        children: list[list[int]] = [[] for _ in nodes]
        subtree_stop = [len(nodes)] * len(nodes)
        stack: list[int] = []
        for position, node in enumerate(nodes):
            while stack and nodes[stack[-1]].level >= node.level:
                subtree_stop[stack.pop()] = position
            if stack:
                parents[position] = stack[-1]
                children[stack[-1]].append(position)
            stack.append(position)
        return parents, children, subtree_stop

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    @property
    def text(self) -> str:
        return self._text

    @property
    def nodes(self) -> tuple[Node, ...]:
        return self._nodes

    @property
    def source_id(self) -> str:
        """Identity of the document's origin, used to build view keys."""

        if self.metadata.source_id:
            return self.metadata.source_id
        if self.metadata.path is not None:
            return self.metadata.path.name or str(self.metadata.path)
        return self.document_id

    @property
    def title(self) -> str:
        return self.metadata.title or self.source_id

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(self._nodes)

    def __repr__(self) -> str:
        return f"Document(source_id={self.source_id!r}, nodes={len(self._nodes)})"

    # ------------------------------------------------------------------
    # Outline queries
    # ------------------------------------------------------------------
    def node_at(self, offset: int) -> Node | None:
        """Return the innermost heading owning ``offset``; ``None`` before the first heading."""

        position = bisect_right(self._starts, offset) - 1
        if position < 0:
            return None
        return self._nodes[position]

    def parse_level(self, position: Node | int) -> int:
        """Return the level of the node at ``position`` (0 outside any heading)."""

        node = self.node_at(position) if isinstance(position, int) else self._own(position)
        return node.level if node is not None else 0

    def parent(self, node: Node) -> Node | None:
        index = self._parents[self._own(node).index]
        return None if index is None else self._nodes[index]

    def ancestors(self, node: Node) -> list[Node]:
        """Return ancestors of ``node`` from the closest outward."""

        chain: list[Node] = []
        current = self.parent(node)
        while current is not None:
            chain.append(current)
            current = self.parent(current)
        return chain

    def children(self, node: Node) -> list[Node]:
        return [self._nodes[index] for index in self._children[self._own(node).index]]

    def descendants(self, node: Node) -> tuple[Node, ...]:
        own = self._own(node)
        return self._nodes[own.index + 1 : self._subtree_stop[own.index]]

    def has_children(
        self,
        node: Node,
        require_invisible: bool = False,
        *,
        is_visible: Callable[[Node], bool] | None = None,
    ) -> bool:
        """Return ``True`` when the next node is a deeper heading.

        With ``require_invisible`` at least one direct child must also fail
        ``is_visible``, the heading-visibility predicate of the active view.
        """

        own = self._own(node)
        following = own.index + 1
        if following >= len(self._nodes) or self._nodes[following].level <= own.level:
            return False
        if not require_invisible:
            return True
        if is_visible is None:
            raise ValueError("require_invisible needs an is_visible predicate")
        return any(not is_visible(child) for child in self.children(own))

    def entry_bounds(self, node: Node, include_descendants: bool) -> TextRange:
        """Return the heading+body range, extended over descendants when requested."""

        own = self._own(node)
        if own.body_end is None:
            raise MalformedDocumentError(
                message=f"Heading {own.title!r} has no body range",
                details={"index": own.index},
            )
        end = own.end if include_descendants else own.body_end
        return TextRange(own.start, end)

    def body_range(self, node: Node) -> TextRange:
        own = self._own(node)
        return TextRange(own.heading_end, own.body_end)

    def heading_line(self, node: Node) -> str:
        own = self._own(node)
        return self._text[own.start : own.heading_end]

    def body_text(self, node: Node) -> str:
        span = self.body_range(node)
        return self._text[span.start : span.end]

    def nodes_in(self, scope: TextRange | None = None) -> tuple[Node, ...]:
        """Return nodes whose heading starts inside ``scope`` (all nodes for ``None``)."""

        if scope is None:
            return self._nodes
        low = bisect_right(self._starts, scope.start - 1)
        high = bisect_right(self._starts, scope.end - 1)
        return self._nodes[low:high]

    def find(self, title: str) -> Node | None:
        """Return the first node whose title equals ``title`` (case-insensitive)."""

        wanted = title.strip().casefold()
        for node in self._nodes:
            if node.title.casefold() == wanted:
                return node
        return None

    def _own(self, node: Node) -> Node:
        index = node.index
        if not 0 <= index < len(self._nodes) or self._nodes[index].start != node.start:
            raise MalformedDocumentError(
                message=f"Heading {node.title!r} does not belong to this outline",
                details={"index": index, "document_id": self.document_id},
            )
        return self._nodes[index]
