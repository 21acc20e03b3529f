"""Sidebar facade: the entry point used by a display layer.

A :class:`Sidebar` is the composition root. It constructs (or receives) the
document table, clone registry, navigation dispatcher and list controller,
and exposes the three inbound operations a display layer needs:
``request_sidebar``, ``request_tree_view`` and ``refresh_all``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Callable, Iterable, List, Sequence, Union

from .events import EventBus
from .listing.collaborators import Grouper, Search, group_nodes, linear_search, planning_date, todo_items, upcoming_items
from .listing.controller import ListView, ListViewController, SiblingSet
from .navigation.dispatcher import DisplayLayout, NavigationDispatcher
from .outline.model import Document
from .services.settings import Settings
from .views.documents import DocumentTable
from .views.registry import CloneRegistry
from .views.view import View
from .visibility.cycling import CommandTracker, expand_all_headings

__all__ = ["Sidebar", "SidebarPanel", "SidebarFunction", "UPCOMING_TITLE", "TODO_TITLE"]

LOGGER = logging.getLogger(__name__)

UPCOMING_TITLE = "Upcoming items"
TODO_TITLE = "To-do items"

SidebarItem = Union[ListView, View]
SidebarFunction = Callable[[Document], SidebarItem]


@dataclass(slots=True)
class SidebarPanel:
    """Items produced by one ``request_sidebar`` call."""

    document_id: str
    items: List[SidebarItem] = field(default_factory=list)
    sibling_set: SiblingSet | None = None

    def lists(self) -> list[ListView]:
        return [item for item in self.items if isinstance(item, ListView)]

    def views(self) -> list[View]:
        return [item for item in self.items if isinstance(item, View)]

    def render(self) -> str:
        chunks = []
        for item in self.items:
            if isinstance(item, ListView):
                chunks.append(item.render())
            elif item.alive:
                chunks.append(f"{item.title}\n{item.render()}")
        return "\n".join(chunks)


class Sidebar:
    """Builds list and tree views for a document and keeps them fresh."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        documents: DocumentTable | None = None,
        registry: CloneRegistry | None = None,
        lists: ListViewController | None = None,
        dispatcher: NavigationDispatcher | None = None,
        event_bus: EventBus | None = None,
        search: Search = linear_search,
        group: Grouper = group_nodes,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._settings = settings or Settings()
        self._bus = event_bus or EventBus()
        self._documents = documents or DocumentTable(event_bus=self._bus)
        self._registry = registry or CloneRegistry(
            self._documents,
            event_bus=self._bus,
            clone_name_format=self._settings.clone_name_format,
            tree_name_format=self._settings.tree_name_format,
        )
        self._lists = lists or ListViewController(
            self._documents,
            search=search,
            group=group,
            event_bus=self._bus,
            refresh_interval=self._settings.refresh_interval,
        )
        self._dispatcher = dispatcher or NavigationDispatcher(
            self._registry,
            layout=DisplayLayout(),
            tracker=CommandTracker(),
            event_bus=self._bus,
            default_depth=self._settings.default_jump_depth,
        )
        self._today = today

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------
    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    @property
    def documents(self) -> DocumentTable:
        return self._documents

    @property
    def registry(self) -> CloneRegistry:
        return self._registry

    @property
    def lists(self) -> ListViewController:
        return self._lists

    @property
    def dispatcher(self) -> NavigationDispatcher:
        return self._dispatcher

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------
    def open(self, path: Path | str) -> Document:
        """Open ``path`` with the configured syntax and keyword sets."""

        return self._documents.open(
            path,
            syntax=self._settings.heading_syntax,
            todo_keywords=tuple(self._settings.todo_keywords),
            done_keywords=tuple(self._settings.done_keywords),
        )

    def source_view(self, document: Document) -> View:
        return self._registry.source_view(document)

    # ------------------------------------------------------------------
    # Default sidebar functions
    # ------------------------------------------------------------------
    def upcoming_items(self, document: Document) -> ListView:
        """Open items scheduled or due within ``upcoming_days``, earliest first."""

        predicate = upcoming_items(self._today(), self._settings.upcoming_days)
        return self._lists.build_list(
            document,
            predicate,
            sort_key=lambda node: (planning_date(node) or date.max, node.start),
            title=UPCOMING_TITLE,
        )

    def todo_items(self, document: Document) -> ListView:
        """Open TODO items grouped by keyword."""

        return self._lists.build_list(document, todo_items, ("todo",), title=TODO_TITLE)

    def default_functions(self) -> list[SidebarFunction]:
        return [self.upcoming_items, self.todo_items]

    # ------------------------------------------------------------------
    # Inbound operations
    # ------------------------------------------------------------------
    def request_sidebar(
        self,
        document: Document,
        fns: Sequence[SidebarFunction] | None = None,
    ) -> SidebarPanel:
        """Run each sidebar function on ``document``; the lists form one sibling set."""

        self._dispatcher.note_command("sidebar")
        functions = list(fns) if fns is not None else self.default_functions()
        sibling_set = self._lists.open_set(f"sidebar:{document.source_id}")
        panel = SidebarPanel(document_id=document.document_id, sibling_set=sibling_set)
        for function in functions:
            item = function(document)
            if isinstance(item, ListView):
                sibling_set.add(item)
            panel.items.append(item)
        LOGGER.debug(
            "Sidebar for %r: %d item(s), %d list(s)",
            document.source_id,
            len(panel.items),
            len(sibling_set),
        )
        return panel

    def request_tree_view(self, document: Document) -> View:
        """Return a fresh clone of ``document`` showing every heading and no bodies."""

        previous = self._registry.get(self._registry.tree_key(document))
        layout = self._dispatcher.layout
        surface = layout.surface_of(previous) if isinstance(previous, View) else None
        view = self._registry.get_or_create_tree_view(document)
        view.overlay = expand_all_headings(document)
        layout.show(view, surface)
        self._dispatcher.note_command("tree-view", view=view)
        return view

    def refresh_all(self, related: Iterable[SidebarItem | SidebarPanel]) -> list[ListView]:
        """Refresh every list (and its siblings) in ``related``.

        Views whose document has been closed are destroyed.
        """

        self._dispatcher.note_command("refresh")
        pending: list[ListView] = []
        for item in related:
            members = item.items if isinstance(item, SidebarPanel) else [item]
            for member in members:
                if isinstance(member, ListView):
                    pending.append(member)
                elif not member.alive:
                    LOGGER.debug("Dropping view %r: its document is gone", member.key)
                    self._registry.destroy_view(member)
        return self._lists.refresh_all(pending)

    def refresh_due(self, now: float | None = None) -> list[ListView]:
        return self._lists.refresh_due(now)
