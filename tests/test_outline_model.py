"""Tests for the outline model."""

from __future__ import annotations

import pytest

from outliner.core.ranges import TextRange
from outliner.errors import MalformedDocumentError
from outliner.outline.model import Document, Node
from outliner.outline.parser import parse_document

from tests.helpers import DEEP_MARKDOWN, SCENARIO_TEXT, build_scenario


class TestStructure:
    """Parent/child queries on a hand-built outline."""

    def test_nodes_are_indexed_with_heading_and_body_offsets(self) -> None:
        document = build_scenario()
        a, a1, a2 = document.nodes

        assert [node.index for node in document.nodes] == [0, 1, 2]
        assert (a.heading_end, a.body_end) == (4, 10)
        assert (a1.heading_end, a1.body_end) == (16, 50)
        assert (a2.heading_end, a2.body_end) == (56, 100)

    def test_parent_children_and_ancestors(self) -> None:
        document = parse_document(DEEP_MARKDOWN)
        a, a1, a1a, a2, b = document.nodes

        assert document.parent(a) is None
        assert document.parent(a1a) == a1
        assert document.ancestors(a1a) == [a1, a]
        assert document.children(a) == [a1, a2]
        assert document.descendants(a) == (a1, a1a, a2)
        assert document.descendants(b) == ()

    def test_has_children_with_visibility_predicate(self) -> None:
        document = build_scenario()
        a, a1, _ = document.nodes

        assert document.has_children(a)
        assert not document.has_children(a1)
        assert document.has_children(a, True, is_visible=lambda node: node.title != "A2")
        assert not document.has_children(a, True, is_visible=lambda node: True)
        with pytest.raises(ValueError):
            document.has_children(a, True)

    def test_node_at_returns_innermost_heading(self) -> None:
        document = parse_document(DEEP_MARKDOWN)

        assert document.node_at(0) is None
        assert document.node_at(document.nodes[2].start + 3).title == "A1a"
        assert document.node_at(len(DEEP_MARKDOWN) - 1).title == "B"
        assert document.parse_level(0) == 0
        assert document.parse_level(document.nodes[2]) == 3

    def test_find_is_case_insensitive(self) -> None:
        document = parse_document(DEEP_MARKDOWN)

        assert document.find("a1a") is document.nodes[2]
        assert document.find("missing") is None

    def test_nodes_in_restricts_by_heading_start(self) -> None:
        document = build_scenario()

        assert [node.title for node in document.nodes_in(TextRange(10, 100))] == ["A1", "A2"]
        assert [node.title for node in document.nodes_in(TextRange(0, 10))] == ["A"]
        assert document.nodes_in(None) == document.nodes


class TestEntryBounds:
    def test_entry_bounds_with_and_without_descendants(self) -> None:
        document = build_scenario()
        a, a1, a2 = document.nodes

        assert document.entry_bounds(a, True) == TextRange(0, 100)
        assert document.entry_bounds(a, False) == TextRange(0, 10)
        assert document.entry_bounds(a1, True) == document.entry_bounds(a1, False) == TextRange(10, 50)
        assert document.entry_bounds(a2, True) == TextRange(50, 100)

    def test_child_entries_tile_the_parent_entry(self) -> None:
        document = parse_document(DEEP_MARKDOWN)

        for node in document.nodes:
            full = document.entry_bounds(node, True)
            own = document.entry_bounds(node, False)
            assert full.contains(own)
            pieces = [own] + [document.entry_bounds(child, True) for child in document.children(node)]
            cursor = full.start
            for piece in pieces:
                assert piece.start == cursor
                cursor = piece.end
            assert cursor == full.end

    def test_body_text_excludes_heading_line(self) -> None:
        document = build_scenario()

        assert document.heading_line(document.nodes[0]) == "# A\n"
        assert document.body_text(document.nodes[0]) == "aaaaa\n"

    def test_foreign_node_is_rejected(self) -> None:
        document = build_scenario()
        stranger = Node(level=1, title="Elsewhere", start=42, end=60, index=0)

        with pytest.raises(MalformedDocumentError):
            document.entry_bounds(stranger, True)


class TestValidation:
    @pytest.mark.parametrize(
        "nodes",
        [
            [Node(level=0, title="zero", start=0, end=100)],
            [Node(level=1, title="A", start=10, end=100), Node(level=1, title="B", start=0, end=10)],
            [Node(level=1, title="A", start=0, end=50), Node(level=2, title="A1", start=10, end=100)],
            [Node(level=1, title="A", start=0, end=120)],
            [Node(level=1, title="A", start=20, end=10)],
        ],
        ids=["level-zero", "out-of-order", "escapes-parent", "past-end", "negative-width"],
    )
    def test_inconsistent_outlines_raise(self, nodes: list[Node]) -> None:
        with pytest.raises(MalformedDocumentError) as excinfo:
            Document.from_nodes(SCENARIO_TEXT, nodes)

        assert excinfo.value.to_dict()["error"] == "malformed_document"

    def test_document_without_headings_is_valid(self) -> None:
        document = Document.from_nodes("just text\n", [])

        assert len(document) == 0
        assert document.node_at(3) is None


def test_source_id_prefers_registered_name_then_path() -> None:
    document = parse_document("# A\n", path="/tmp/notes/todo.md", document_id="doc-1")

    assert document.source_id == "todo.md"
    assert document.title == "todo.md"
    document.metadata.source_id = "todo.md<2>"
    assert document.source_id == "todo.md<2>"
    assert parse_document("# A\n", document_id="doc-2").source_id == "doc-2"
