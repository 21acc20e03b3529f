"""Clone registry: at most one live view per identity key.

The registry is constructed once by the application and injected into the
components that need it. Keys may also be held by *foreign* resources (any
object that is not a :class:`View` managed here); such keys are never
overwritten.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator

from ..errors import ResourceCollisionError
from ..events import DocumentClosed, EventBus, ViewCreated, ViewDestroyed
from ..outline.model import Document, Node
from .documents import DocumentTable
from .view import View, ViewKind

__all__ = ["CloneRegistry", "DEFAULT_CLONE_NAME_FORMAT", "DEFAULT_TREE_NAME_FORMAT"]

LOGGER = logging.getLogger(__name__)

DEFAULT_CLONE_NAME_FORMAT = "{title}::{source}"
DEFAULT_TREE_NAME_FORMAT = "<tree>{source}"


class CloneRegistry:
    """Creates, looks up and destroys views keyed by identity.

    ``get_or_create_view`` replaces a recognised clone of the same document
    with a fresh one, and refuses (``ResourceCollisionError``) when the key
    is held by anything else. A failed request leaves the registry as it was.
    """

    def __init__(
        self,
        documents: DocumentTable,
        *,
        event_bus: EventBus | None = None,
        clone_name_format: str = DEFAULT_CLONE_NAME_FORMAT,
        tree_name_format: str = DEFAULT_TREE_NAME_FORMAT,
    ) -> None:
        self._documents = documents
        self._bus = event_bus
        self._clone_name_format = clone_name_format
        self._tree_name_format = tree_name_format
        self._entries: Dict[str, Any] = {}
        if event_bus is not None:
            event_bus.subscribe(DocumentClosed, self._on_document_closed)

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------
    @property
    def documents(self) -> DocumentTable:
        return self._documents

    def identity_key(self, document: Document, anchor: Node) -> str:
        return self._clone_name_format.format(title=anchor.title, source=document.source_id)

    def tree_key(self, document: Document) -> str:
        return self._tree_name_format.format(source=document.source_id)

    def is_recognized_clone(self, resource: Any, document: Document) -> bool:
        """Return ``True`` for clones managed here of ``document`` or of a closed document."""

        if not isinstance(resource, View) or not resource.is_clone:
            return False
        if resource.documents is not self._documents:
            return False
        return resource.document_id == document.document_id or not resource.alive

    # ------------------------------------------------------------------
    # View lifecycle
    # ------------------------------------------------------------------
    def source_view(self, document: Document) -> View:
        """Return the document's single non-clone view, creating it on first use."""

        key = document.source_id
        existing = self._entries.get(key)
        if (
            isinstance(existing, View)
            and existing.kind is ViewKind.SOURCE
            and existing.document_id == document.document_id
            and not existing.destroyed
        ):
            return existing
        if isinstance(existing, View) and existing.documents is self._documents and not existing.alive:
            self.destroy_view(existing, replaced=True)
        elif existing is not None:
            raise self._collision(key, existing)
        return self._register(
            View(
                key=key,
                document_id=document.document_id,
                kind=ViewKind.SOURCE,
                documents=self._documents,
                title=document.title,
            )
        )

    def get_or_create_view(self, document: Document, anchor: Node) -> View:
        """Return a fresh clone of ``document`` anchored at ``anchor``."""

        return self._recreate(
            self.identity_key(document, anchor),
            document,
            kind=ViewKind.CLONE,
            title=anchor.title,
            anchor=anchor,
        )

    def get_or_create_tree_view(self, document: Document) -> View:
        return self._recreate(
            self.tree_key(document),
            document,
            kind=ViewKind.TREE,
            title=document.title,
            anchor=None,
        )

    def destroy_view(self, view: View, *, replaced: bool = False) -> None:
        """Release ``view``; calling it again is a no-op."""

        if view.destroyed:
            return
        view.destroyed = True
        if self._entries.get(view.key) is view:
            del self._entries[view.key]
        LOGGER.debug("Destroyed view %r (replaced=%s)", view.key, replaced)
        if self._bus is not None:
            self._bus.publish(
                ViewDestroyed(key=view.key, document_id=view.document_id, replaced=replaced)
            )

    def discard_document(self, document_id: str) -> int:
        """Destroy every view of a closed document; returns how many were released."""

        doomed = [view for view in self.views() if view.document_id == document_id]
        for view in doomed:
            self.destroy_view(view)
        return len(doomed)

    # ------------------------------------------------------------------
    # Foreign resources
    # ------------------------------------------------------------------
    def claim(self, key: str, resource: Any) -> None:
        """Hold ``key`` for an unmanaged resource."""

        existing = self._entries.get(key)
        if existing is not None and existing is not resource:
            raise self._collision(key, existing)
        self._entries[key] = resource

    def release(self, key: str) -> Any:
        """Drop a foreign resource; managed views must go through :meth:`destroy_view`."""

        existing = self._entries.get(key)
        if isinstance(existing, View):
            raise ValueError(f"{key!r} is a managed view; use destroy_view()")
        return self._entries.pop(key, None)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get(self, key: str) -> Any:
        return self._entries.get(key)

    def keys(self) -> tuple[str, ...]:
        return tuple(self._entries)

    def views(self) -> Iterator[View]:
        for resource in list(self._entries.values()):
            if isinstance(resource, View):
                yield resource

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _recreate(
        self,
        key: str,
        document: Document,
        *,
        kind: ViewKind,
        title: str,
        anchor: Node | None,
    ) -> View:
        existing = self._entries.get(key)
        if existing is not None and not self.is_recognized_clone(existing, document):
            raise self._collision(key, existing)

        view = View(
            key=key,
            document_id=document.document_id,
            kind=kind,
            documents=self._documents,
            title=title,
            anchor_index=anchor.index if anchor is not None else None,
            cursor=anchor.start if anchor is not None else 0,
        )
        if existing is not None:
            self.destroy_view(existing, replaced=True)
        return self._register(view)

    def _register(self, view: View) -> View:
        self._entries[view.key] = view
        LOGGER.debug("Created %s view %r", view.kind.value, view.key)
        if self._bus is not None:
            self._bus.publish(
                ViewCreated(key=view.key, document_id=view.document_id, kind=view.kind.value)
            )
        return view

    def _on_document_closed(self, event: DocumentClosed) -> None:
        self.discard_document(event.document_id)

    def _collision(self, key: str, existing: Any) -> ResourceCollisionError:
        LOGGER.warning(
            "View name %r is held by an unmanaged %s; not replacing it",
            key,
            type(existing).__name__,
        )
        return ResourceCollisionError(
            message=f"{key!r} is already used by an unrelated {type(existing).__name__}",
            key=key,
            details={"resource_type": type(existing).__name__},
        )
