"""List views: search results grouped into a presentation tree.

The controller owns no query logic. It hands a scope and predicate to the
injected ``search`` collaborator, passes the result to ``group`` and keeps
the outcome on a :class:`ListView`. Lists opened together share a
:class:`SiblingSet` so refreshing any one of them refreshes the set.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Sequence

from ..core.ranges import TextRange
from ..events import EventBus, ListRefreshed
from ..outline.model import Document, Node
from ..views.documents import DocumentTable
from .collaborators import Group, Grouper, GroupingSpec, Predicate, Search, SearchScope, group_nodes, linear_search

__all__ = ["ListView", "SiblingSet", "ListViewController"]

LOGGER = logging.getLogger(__name__)

SortKey = Callable[[Node], Any]


@dataclass(slots=True, eq=False)
class ListView:
    """A titled, refreshable list of matching headings."""

    title: str
    document_ids: tuple[str, ...]
    predicate: Predicate = field(repr=False)
    grouping: GroupingSpec = ()
    sort_key: SortKey | None = field(default=None, repr=False)
    restriction: TextRange | None = None
    content: Group = field(default_factory=lambda: Group(label=""))
    refreshed_at: float = 0.0
    sibling_set: SiblingSet | None = field(default=None, repr=False)

    @property
    def node_count(self) -> int:
        return self.content.node_count()

    def nodes(self) -> list[Node]:
        return list(self.content.iter_nodes())

    def render(self) -> str:
        lines = [self.title]
        body = self.content.render_lines(1)
        lines.extend(body if body else ["  (no items)"])
        return "\n".join(lines) + "\n"

    def snapshot(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "content": self.render(),
            "restriction": self.restriction.to_tuple() if self.restriction else None,
            "cursor": 0,
        }


@dataclass(slots=True, eq=False)
class SiblingSet:
    """Lists opened together; they refresh as one."""

    name: str
    members: List[ListView] = field(default_factory=list)
    refreshed_at: float = 0.0

    def add(self, list_view: ListView) -> ListView:
        if list_view.sibling_set is not None and list_view.sibling_set is not self:
            list_view.sibling_set.discard(list_view)
        if not any(member is list_view for member in self.members):
            self.members.append(list_view)
        list_view.sibling_set = self
        return list_view

    def discard(self, list_view: ListView) -> None:
        self.members = [member for member in self.members if member is not list_view]
        if list_view.sibling_set is self:
            list_view.sibling_set = None

    def __iter__(self):
        return iter(list(self.members))

    def __len__(self) -> int:
        return len(self.members)


class ListViewController:
    """Builds and refreshes list views through injected collaborators."""

    def __init__(
        self,
        documents: DocumentTable,
        *,
        search: Search = linear_search,
        group: Grouper = group_nodes,
        event_bus: EventBus | None = None,
        clock: Callable[[], float] = time.monotonic,
        refresh_interval: float = 0.0,
    ) -> None:
        self._documents = documents
        self._search = search
        self._group = group
        self._bus = event_bus
        self._clock = clock
        self.refresh_interval = max(0.0, float(refresh_interval))
        self._sets: List[SiblingSet] = []
        self._set_counter = 0

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    def open_set(self, name: str | None = None) -> SiblingSet:
        """Start a sibling set tracked for periodic refresh."""

        if name is None:
            self._set_counter += 1
            name = f"set-{self._set_counter}"
        sibling_set = SiblingSet(name=name, refreshed_at=self._clock())
        self._sets.append(sibling_set)
        return sibling_set

    def close_set(self, sibling_set: SiblingSet) -> None:
        self._sets = [item for item in self._sets if item is not sibling_set]

    def build_list(
        self,
        documents: Document | Sequence[Document],
        predicate: Predicate,
        grouping: GroupingSpec = (),
        sort_key: SortKey | None = None,
        *,
        title: str = "",
        restriction: TextRange | None = None,
        sibling_set: SiblingSet | None = None,
    ) -> ListView:
        """Search ``documents`` with ``predicate`` and group the matches.

        ``restriction`` narrows the search to a range and only applies to a
        single document.
        """

        if isinstance(documents, Document):
            documents = [documents]
        if restriction is not None and len(documents) != 1:
            raise ValueError("A restriction can only narrow a single-document list")
        for document in documents:
            if document.document_id not in self._documents:
                self._documents.add(document)
        list_view = ListView(
            title=title or ", ".join(document.title for document in documents),
            document_ids=tuple(document.document_id for document in documents),
            predicate=predicate,
            grouping=tuple(grouping),
            sort_key=sort_key,
            restriction=restriction,
        )
        if sibling_set is not None:
            sibling_set.add(list_view)
        self._populate(list_view)
        return list_view

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------
    def refresh(self, list_view: ListView) -> list[ListView]:
        """Refresh ``list_view`` and every list in its sibling set."""

        sibling_set = list_view.sibling_set
        if sibling_set is None:
            self._populate(list_view)
            return [list_view]
        members = list(sibling_set)
        for member in members:
            self._populate(member)
        sibling_set.refreshed_at = self._clock()
        return members

    def refresh_all(self, related: Iterable[ListView]) -> list[ListView]:
        """Refresh each list and its siblings once."""

        refreshed: list[ListView] = []
        seen: set[int] = set()
        for list_view in related:
            if id(list_view) in seen:
                continue
            for member in self.refresh(list_view):
                seen.add(id(member))
                refreshed.append(member)
        return refreshed

    def refresh_due(self, now: float | None = None) -> list[ListView]:
        """Refresh sibling sets older than ``refresh_interval``; ``0`` disables."""

        if self.refresh_interval <= 0:
            return []
        current = self._clock() if now is None else now
        refreshed: list[ListView] = []
        for sibling_set in list(self._sets):
            if not sibling_set.members:
                continue
            if current - sibling_set.refreshed_at < self.refresh_interval:
                continue
            LOGGER.debug("Periodic refresh of %r", sibling_set.name)
            refreshed.extend(self.refresh(sibling_set.members[0]))
            sibling_set.refreshed_at = current
        return refreshed

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _populate(self, list_view: ListView) -> None:
        matches: list[Node] = []
        for document_id in list_view.document_ids:
            document = self._documents.get(document_id)
            if document is None:
                LOGGER.debug("Skipping closed document %s in %r", document_id, list_view.title)
                continue
            scope = SearchScope(document, list_view.restriction)
            matches.extend(self._search(scope, list_view.predicate))
        if list_view.sort_key is not None:
            matches.sort(key=list_view.sort_key)
        content = self._group(matches, list_view.grouping)
        self._check_grouping(list_view, matches, content)
        list_view.content = content
        list_view.refreshed_at = self._clock()
        LOGGER.debug("Refreshed %r: %d item(s)", list_view.title, len(matches))
        if self._bus is not None:
            self._bus.publish(ListRefreshed(title=list_view.title, node_count=len(matches)))

    def _check_grouping(self, list_view: ListView, searched: Sequence[Node], content: Group) -> None:
        expected = Counter(id(node) for node in searched)
        actual = Counter(id(node) for node in content.iter_nodes())
        if expected != actual:
            LOGGER.warning(
                "Grouping for %r returned %d item(s) for %d match(es); nodes were dropped or duplicated",
                list_view.title,
                sum(actual.values()),
                sum(expected.values()),
            )
