"""Id-indexed table owning every open :class:`Document`."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List

from ..events import DocumentClosed, EventBus
from ..outline.model import Document
from ..outline.parser import parse_document
from ..utils.file_io import read_text

__all__ = ["DocumentTable"]

LOGGER = logging.getLogger(__name__)


class DocumentTable:
    """Owns documents; views reference them only by id.

    Registering a document assigns it a unique ``source_id``: the file name,
    else the front matter title, else ``untitled-<n>``. Clashing names get a
    ``<2>``, ``<3>``... suffix.
    """

    def __init__(self, *, event_bus: EventBus | None = None) -> None:
        self._documents: Dict[str, Document] = {}
        self._order: List[str] = []
        self._bus = event_bus
        self._untitled_counter = 1

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def add(self, document: Document) -> Document:
        if document.document_id in self._documents:
            return self._documents[document.document_id]
        document.metadata.source_id = self._unique_source_id(self._base_source_id(document))
        self._documents[document.document_id] = document
        self._order.append(document.document_id)
        LOGGER.debug(
            "Registered document %s as %r (%d heading(s))",
            document.document_id,
            document.source_id,
            len(document),
        )
        return document

    def open(self, path: Path | str, **parse_options: Any) -> Document:
        """Read ``path``, parse it and register the resulting document."""

        resolved = Path(path).expanduser().resolve()
        existing = self.find_by_path(resolved)
        if existing is not None:
            return existing
        document = parse_document(read_text(resolved), path=resolved, **parse_options)
        return self.add(document)

    def close(self, document_id: str) -> Document:
        if document_id not in self._documents:
            raise KeyError(f"Unknown document_id: {document_id}")
        document = self._documents.pop(document_id)
        self._order.remove(document_id)
        LOGGER.debug("Closed document %s (%r)", document_id, document.source_id)
        if self._bus is not None:
            self._bus.publish(DocumentClosed(document_id=document_id))
        return document

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get(self, document_id: str) -> Document | None:
        return self._documents.get(document_id)

    def find_by_path(self, path: Path | str) -> Document | None:
        normalized = Path(path).expanduser().resolve()
        for document in self:
            doc_path = document.metadata.path
            if doc_path is not None and doc_path.expanduser().resolve() == normalized:
                return document
        return None

    def find_by_source(self, source_id: str) -> Document | None:
        for document in self:
            if document.source_id == source_id:
                return document
        return None

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._documents

    def __iter__(self) -> Iterator[Document]:
        for document_id in self._order:
            yield self._documents[document_id]

    def __len__(self) -> int:
        return len(self._order)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _base_source_id(self, document: Document) -> str:
        metadata = document.metadata
        if metadata.source_id:
            return metadata.source_id
        if metadata.path is not None:
            return metadata.path.name or str(metadata.path)
        if metadata.title:
            return metadata.title
        value = self._untitled_counter
        self._untitled_counter += 1
        return f"untitled-{value}"

    def _unique_source_id(self, base: str) -> str:
        taken = {document.source_id for document in self}
        if base not in taken:
            return base
        suffix = 2
        while f"{base}<{suffix}>" in taken:
            suffix += 1
        return f"{base}<{suffix}>"
