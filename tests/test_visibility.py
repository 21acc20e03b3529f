"""Tests for visibility overlays and the cycling state machine."""

from __future__ import annotations

import pytest

from outliner.core.ranges import TextRange
from outliner.errors import EmptyScopeError
from outliner.outline.model import Document, Visibility
from outliner.outline.parser import parse_document
from outliner.visibility.cycling import (
    CommandTracker,
    collapse_subtree,
    cycle_global,
    cycle_local,
    expand_all_headings,
    reveal_entry,
)
from outliner.visibility.overlay import VisibilityResolver

from tests.helpers import DEEP_MARKDOWN, build_scenario


def _visible_titles(document: Document, overlay: dict, scope: TextRange | None = None) -> list[str]:
    resolver = VisibilityResolver(document, overlay, scope)
    return [node.title for node in resolver.nodes if resolver.heading_visible(node)]


@pytest.fixture
def outline() -> Document:
    return parse_document(DEEP_MARKDOWN)


class TestResolver:
    def test_empty_overlay_shows_only_roots(self, outline: Document) -> None:
        assert _visible_titles(outline, {}) == ["A", "B"]

    def test_children_state_reveals_one_level(self, outline: Document) -> None:
        overlay = {0: Visibility.CHILDREN}

        assert _visible_titles(outline, overlay) == ["A", "A1", "A2", "B"]
        resolver = VisibilityResolver(outline, overlay)
        assert not resolver.body_visible(outline.nodes[1])

    def test_branches_reveal_every_descendant_heading(self, outline: Document) -> None:
        overlay = {0: Visibility.BRANCHES}

        assert _visible_titles(outline, overlay) == ["A", "A1", "A1a", "A2", "B"]
        resolver = VisibilityResolver(outline, overlay)
        assert not any(resolver.body_visible(node) for node in outline.nodes)

    def test_entries_reveal_bodies_of_the_subtree(self, outline: Document) -> None:
        resolver = VisibilityResolver(outline, {1: Visibility.ENTRIES, 0: Visibility.CHILDREN})

        assert resolver.body_visible(outline.nodes[1])
        assert resolver.body_visible(outline.nodes[2])
        assert not resolver.body_visible(outline.nodes[0])
        assert not resolver.body_visible(outline.nodes[3])

    def test_restricted_scope_treats_top_nodes_as_roots(self, outline: Document) -> None:
        a1 = outline.nodes[1]
        scope = outline.entry_bounds(a1, True)

        assert _visible_titles(outline, {}, scope) == ["A1"]
        resolver = VisibilityResolver(outline, {}, scope)
        assert not resolver.in_scope(outline.nodes[0])
        assert resolver.hidden_children(a1)


class TestLocalCycle:
    def test_three_consecutive_cycles_return_to_collapsed(self, outline: Document) -> None:
        a = outline.nodes[0]

        first = cycle_local(outline, {}, a, repeat=False)
        second = cycle_local(outline, first, a, repeat=True)
        third = cycle_local(outline, second, a, repeat=True)

        assert first[a.index] is Visibility.CHILDREN
        assert _visible_titles(outline, first) == ["A", "A1", "A2", "B"]
        assert second[a.index] is Visibility.BRANCHES
        assert _visible_titles(outline, second) == ["A", "A1", "A1a", "A2", "B"]
        assert third == {}
        assert cycle_local(outline, third, a, repeat=True) == first

    def test_intervening_command_resets_the_ratchet(self, outline: Document) -> None:
        tracker = CommandTracker()
        a = outline.nodes[0]

        overlay = cycle_local(outline, {}, a, repeat=tracker.record("cycle", view_key="v", node_index=a.index))
        tracker.record("jump-children", view_key="v", node_index=a.index)
        repeat = tracker.record("cycle", view_key="v", node_index=a.index)
        overlay = cycle_local(outline, overlay, a, repeat=repeat)

        assert repeat is False
        assert overlay.get(a.index) is not Visibility.BRANCHES
        assert "A1a" not in _visible_titles(outline, overlay)

    def test_one_level_subtree_scenario(self) -> None:
        document = build_scenario()
        a = document.nodes[0]

        first = cycle_local(document, {}, a)
        second = cycle_local(document, first, a, repeat=True)
        third = cycle_local(document, second, a, repeat=True)

        assert _visible_titles(document, first) == ["A", "A1", "A2"]
        assert _visible_titles(document, second) == ["A", "A1", "A2"]
        assert _visible_titles(document, third) == ["A"]

    def test_leaf_cycle_collapses(self, outline: Document) -> None:
        leaf = outline.nodes[4]

        assert cycle_local(outline, {leaf.index: Visibility.ENTRIES}, leaf) == {}

    def test_collapse_below_branches_ancestor(self, outline: Document) -> None:
        a1 = outline.nodes[1]
        revealed = {0: Visibility.BRANCHES}

        first = cycle_local(outline, revealed, a1)
        second = cycle_local(outline, first, a1, repeat=True)
        third = cycle_local(outline, second, a1, repeat=True)

        assert first == {0: Visibility.BRANCHES, 1: Visibility.COLLAPSED}
        assert _visible_titles(outline, first) == ["A", "A1", "A2", "B"]
        assert second[a1.index] is Visibility.CHILDREN
        assert _visible_titles(outline, second) == ["A", "A1", "A1a", "A2", "B"]
        assert third[a1.index] is Visibility.BRANCHES
        assert cycle_local(outline, third, a1, repeat=True) == first

    def test_reopening_below_branches_ancestor_goes_one_level_at_a_time(self) -> None:
        document = parse_document("# R\n## S\n### T\n#### U\n")
        s = document.nodes[1]

        collapsed = cycle_local(document, {0: Visibility.BRANCHES}, s)
        children = cycle_local(document, collapsed, s, repeat=True)
        branches = cycle_local(document, children, s, repeat=True)

        assert collapsed == {0: Visibility.BRANCHES, 1: Visibility.COLLAPSED, 2: Visibility.COLLAPSED}
        assert _visible_titles(document, collapsed) == ["R", "S"]
        assert _visible_titles(document, children) == ["R", "S", "T"]
        assert branches == {0: Visibility.BRANCHES, 1: Visibility.BRANCHES}
        assert _visible_titles(document, branches) == ["R", "S", "T", "U"]

    def test_collapse_below_entries_ancestor_hides_body_and_subtree(self, outline: Document) -> None:
        a1 = outline.nodes[1]

        overlay = cycle_local(outline, {0: Visibility.ENTRIES}, a1)
        resolver = VisibilityResolver(outline, overlay)

        assert _visible_titles(outline, overlay) == ["A", "A1", "A2", "B"]
        assert resolver.body_visible(outline.nodes[0])
        assert not resolver.body_visible(a1)
        assert resolver.body_visible(outline.nodes[3])

    def test_missing_or_out_of_scope_node_raises(self, outline: Document) -> None:
        with pytest.raises(EmptyScopeError):
            cycle_local(outline, {}, None)
        scope = outline.entry_bounds(outline.nodes[1], True)
        with pytest.raises(EmptyScopeError):
            cycle_local(outline, {}, outline.nodes[4], scope=scope)

    def test_cycle_does_not_mutate_input_overlay(self, outline: Document) -> None:
        overlay: dict = {}

        cycle_local(outline, overlay, outline.nodes[0])

        assert overlay == {}


class TestGlobalCycle:
    def test_monotonic_until_fully_expanded_then_collapses(self, outline: Document) -> None:
        overlay: dict = {}
        counts = [len(_visible_titles(outline, overlay))]
        for _ in range(2):
            overlay = cycle_global(outline, overlay)
            counts.append(len(_visible_titles(outline, overlay)))

        assert counts == [2, 4, 5]
        assert cycle_global(outline, overlay) == {}

    def test_global_cycle_respects_scope(self, outline: Document) -> None:
        scope = outline.entry_bounds(outline.nodes[1], True)
        overlay = {outline.nodes[4].index: Visibility.ENTRIES}

        expanded = cycle_global(outline, overlay, scope=scope)
        collapsed = cycle_global(outline, expanded, scope=scope)

        assert expanded[1] is Visibility.CHILDREN
        assert collapsed == {outline.nodes[4].index: Visibility.ENTRIES}


class TestOverlayHelpers:
    def test_expand_all_headings_hides_bodies(self, outline: Document) -> None:
        overlay = expand_all_headings(outline)
        resolver = VisibilityResolver(outline, overlay)

        assert _visible_titles(outline, overlay) == ["A", "A1", "A1a", "A2", "B"]
        assert not any(resolver.body_visible(node) for node in outline.nodes)

    def test_reveal_entry_opens_ancestors(self, outline: Document) -> None:
        target = outline.nodes[2]

        overlay = reveal_entry(outline, {}, target)
        resolver = VisibilityResolver(outline, overlay)

        assert resolver.heading_visible(target)
        assert resolver.body_visible(target)
        assert overlay[0] is Visibility.CHILDREN
        assert overlay[1] is Visibility.CHILDREN

    def test_collapse_subtree_keeps_other_entries(self, outline: Document) -> None:
        overlay = {0: Visibility.BRANCHES, 1: Visibility.CHILDREN, 4: Visibility.ENTRIES}

        assert collapse_subtree(outline, overlay, outline.nodes[0]) == {4: Visibility.ENTRIES}

    def test_collapse_subtree_marks_nodes_under_revealing_ancestor(self, outline: Document) -> None:
        overlay = expand_all_headings(outline)

        collapsed = collapse_subtree(outline, overlay, outline.nodes[1])

        assert collapsed == {0: Visibility.BRANCHES, 1: Visibility.COLLAPSED}
        assert _visible_titles(outline, collapsed) == ["A", "A1", "A2", "B"]


def test_command_tracker_detects_only_identical_consecutive_commands() -> None:
    tracker = CommandTracker()

    assert tracker.record("cycle", view_key="v", node_index=1) is False
    assert tracker.record("cycle", view_key="v", node_index=1) is True
    assert tracker.record("cycle", view_key="v", node_index=2) is False
    assert tracker.record("cycle", view_key="w", node_index=2) is False
    tracker.reset()
    assert tracker.last is None
