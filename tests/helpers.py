"""Shared outline builders for the test suite."""

from __future__ import annotations

from outliner.outline.model import Document, DocumentMetadata, Node

# A(0-100) with children A1(10-50) and A2(50-100).
SCENARIO_TEXT = (
    "# A\n" + "a" * 5 + "\n"
    + "## A1\n" + "x" * 33 + "\n"
    + "## A2\n" + "y" * 43 + "\n"
)

DEEP_MARKDOWN = """Preamble line.
# A
intro
## A1
a1 body
### A1a
deep body
## A2
a2 body
# B
b body
"""

AGENDA_ORG = """#+TITLE: Agenda
* TODO Write report :work:
SCHEDULED: <2026-10-20 Tue>
Draft the summary.
* DONE Send invoice :work:billing:
DEADLINE: <2026-10-19 Mon>
* NEXT [#A] Call plumber :home:
DEADLINE: <2026-10-17 Sat>
* Someday
** TODO Learn the cello
** WAITING Parcel delivery
SCHEDULED: <2026-12-01 Tue>
"""


def build_scenario(document_id: str = "scenario") -> Document:
    return Document.from_nodes(
        SCENARIO_TEXT,
        [
            Node(level=1, title="A", start=0, end=100),
            Node(level=2, title="A1", start=10, end=50),
            Node(level=2, title="A2", start=50, end=100),
        ],
        metadata=DocumentMetadata(source_id=document_id),
        document_id=document_id,
    )
