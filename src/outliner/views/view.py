"""Views: independently restricted, independently folded aliases of a document."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterator

from ..core.ranges import TextRange
from ..errors import InvalidViewError
from ..outline.model import Document, Node, Visibility
from ..visibility.overlay import VisibilityResolver, state_of

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from .documents import DocumentTable

__all__ = ["View", "ViewKind"]


class ViewKind(str, Enum):
    SOURCE = "source"
    CLONE = "clone"
    TREE = "tree"


@dataclass(slots=True, eq=False)
class View:
    """Per-view state over a shared document.

    The view stores only the document id plus its own restriction, overlay
    and cursor. The document itself is looked up through the owning
    :class:`~outliner.views.documents.DocumentTable` on every access.
    """

    key: str
    document_id: str
    kind: ViewKind
    documents: DocumentTable = field(repr=False)
    title: str = ""
    anchor_index: int | None = None
    restriction: TextRange | None = None
    overlay: dict[int, Visibility] = field(default_factory=dict)
    cursor: int = 0
    destroyed: bool = False

    @property
    def is_clone(self) -> bool:
        return self.kind is not ViewKind.SOURCE

    @property
    def alive(self) -> bool:
        return not self.destroyed and self.document_id in self.documents

    @property
    def document(self) -> Document:
        """Return the backing document or raise :class:`InvalidViewError`."""

        document = None if self.destroyed else self.documents.get(self.document_id)
        if document is None:
            raise InvalidViewError(
                message=f"View {self.key!r} has no backing document",
                key=self.key,
                document_id=self.document_id,
            )
        return document

    @property
    def anchor(self) -> Node | None:
        if self.anchor_index is None:
            return None
        return self.document.nodes[self.anchor_index]

    @property
    def content(self) -> str:
        """Text of the document inside the view's restriction."""

        text = self.document.text
        if self.restriction is None:
            return text
        return text[self.restriction.start : self.restriction.end]

    # ------------------------------------------------------------------
    # Visibility
    # ------------------------------------------------------------------
    def resolver(self) -> VisibilityResolver:
        return VisibilityResolver(self.document, self.overlay, self.restriction)

    def state(self, node: Node) -> Visibility:
        return state_of(self.overlay, node)

    def is_heading_visible(self, node: Node) -> bool:
        return self.resolver().heading_visible(node)

    def is_body_visible(self, node: Node) -> bool:
        return self.resolver().body_visible(node)

    def visible_nodes(self) -> list[Node]:
        resolver = self.resolver()
        return [node for node in resolver.nodes if resolver.heading_visible(node)]

    def node_at_cursor(self) -> Node | None:
        node = self.document.node_at(self.cursor)
        if node is None:
            return None
        if self.restriction is not None and not self.restriction.contains(node.start):
            return None
        return node

    def move_cursor(self, offset: int) -> int:
        """Move the cursor, clamped to the restriction; returns the new offset."""

        lower, upper = (0, len(self.document.text))
        if self.restriction is not None:
            lower, upper = self.restriction.start, self.restriction.end
        self.cursor = max(lower, min(offset, upper))
        return self.cursor

    def iter_segments(self) -> Iterator[str]:
        """Yield visible text: the preamble, then visible headings and bodies."""

        document = self.document
        resolver = self.resolver()
        scope = self.restriction or TextRange(0, len(document.text))
        nodes = resolver.nodes
        first_heading = nodes[0].start if nodes else scope.end
        if scope.start < first_heading:
            yield document.text[scope.start : first_heading]
        for node in nodes:
            if not resolver.heading_visible(node):
                continue
            yield document.heading_line(node)
            if resolver.body_visible(node):
                body = document.body_range(node).intersect(scope)
                if body is not None and not body.is_empty:
                    yield document.text[body.start : body.end]

    def render(self) -> str:
        return "".join(self.iter_segments())

    def snapshot(self) -> Dict[str, Any]:
        """Return the payload handed to the display layer."""

        payload: Dict[str, Any] = {
            "key": self.key,
            "kind": self.kind.value,
            "title": self.title,
            "content": self.render(),
            "restriction": self.restriction.to_tuple() if self.restriction else None,
            "cursor": self.cursor,
        }
        return payload
