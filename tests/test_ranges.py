"""Tests for :mod:`outliner.core.ranges`."""

from __future__ import annotations

import pytest

from outliner.core.ranges import TextRange
from outliner.outline.parser import parse_document

from tests.helpers import DEEP_MARKDOWN


@pytest.mark.parametrize(("start", "end"), [(10, 4), (-1, 3)])
def test_invalid_bounds_are_rejected(start: int, end: int) -> None:
    with pytest.raises(ValueError):
        TextRange(start, end)


def test_contains_offsets_and_ranges() -> None:
    span = TextRange(10, 20)

    assert span.contains(10)
    assert not span.contains(20)
    assert span.contains(TextRange(12, 20))
    assert not span.contains(TextRange(5, 15))


def test_intersect_returns_none_when_disjoint() -> None:
    assert TextRange(0, 5).intersect(TextRange(6, 9)) is None
    assert TextRange(0, 10).intersect(TextRange(5, 20)) == TextRange(5, 10)
    touching = TextRange(0, 5).intersect(TextRange(5, 9))
    assert touching == TextRange(5, 5) and touching.is_empty


def test_node_range_matches_entry_with_descendants() -> None:
    document = parse_document(DEEP_MARKDOWN)

    for node in document.nodes:
        assert node.range == document.entry_bounds(node, True)
    assert document.nodes[0].range.to_tuple() == (document.nodes[0].start, document.nodes[-1].start)
