"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from outliner.events import EventBus
from outliner.navigation.dispatcher import DisplayLayout, NavigationDispatcher
from outliner.outline.model import Document
from outliner.outline.parser import parse_document
from outliner.views.documents import DocumentTable
from outliner.views.registry import CloneRegistry
from outliner.visibility.cycling import CommandTracker
from tests.helpers import DEEP_MARKDOWN, build_scenario


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def documents(event_bus: EventBus) -> DocumentTable:
    return DocumentTable(event_bus=event_bus)


@pytest.fixture
def registry(documents: DocumentTable, event_bus: EventBus) -> CloneRegistry:
    return CloneRegistry(documents, event_bus=event_bus)


@pytest.fixture
def dispatcher(registry: CloneRegistry, event_bus: EventBus) -> NavigationDispatcher:
    return NavigationDispatcher(
        registry,
        layout=DisplayLayout(),
        tracker=CommandTracker(),
        event_bus=event_bus,
    )


@pytest.fixture
def scenario(documents: DocumentTable) -> Document:
    return documents.add(build_scenario())


@pytest.fixture
def deep(documents: DocumentTable) -> Document:
    return documents.add(parse_document(DEEP_MARKDOWN, path="deep.md", document_id="deep"))
