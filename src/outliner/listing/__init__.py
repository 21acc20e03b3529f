"""Search-backed list views."""

from .collaborators import (
    Group,
    Grouper,
    GroupingSpec,
    Predicate,
    Search,
    SearchScope,
    group_nodes,
    linear_search,
    planning_date,
    title_matches,
    todo_items,
    upcoming_items,
)
from .controller import ListView, ListViewController, SiblingSet

__all__ = [
    "Group",
    "Grouper",
    "GroupingSpec",
    "ListView",
    "ListViewController",
    "Predicate",
    "Search",
    "SearchScope",
    "SiblingSet",
    "group_nodes",
    "linear_search",
    "planning_date",
    "title_matches",
    "todo_items",
    "upcoming_items",
]
