"""Build :class:`Document` outlines from Markdown or Org text."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Sequence

from markdown_it import MarkdownIt
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .model import Document, DocumentMetadata, Node

__all__ = ["parse_document", "detect_syntax", "detect_frontmatter", "SYNTAX_CHOICES"]

LOGGER = logging.getLogger(__name__)

SYNTAX_CHOICES: tuple[str, ...] = ("auto", "markdown", "org")
DEFAULT_TODO_KEYWORDS: tuple[str, ...] = ("TODO", "NEXT", "WAITING")
DEFAULT_DONE_KEYWORDS: tuple[str, ...] = ("DONE", "CANCELLED")

_ORG_HEADING = re.compile(r"^(?P<stars>\*+)[ \t]+(?P<title>.*?)[ \t]*$", re.MULTILINE)
_ORG_TITLE = re.compile(r"^#\+title:[ \t]*(?P<title>.+?)[ \t]*$", re.MULTILINE | re.IGNORECASE)
_MD_HEADING = re.compile(r"^ {0,3}#{1,6}(?:[ \t]|$)", re.MULTILINE)
_ORG_TAGS = re.compile(r"[ \t]+(?P<tags>:(?:[\w@#%]+:)+)$")
_PRIORITY = re.compile(r"^\[#(?P<priority>[A-Z0-9])\][ \t]*")
_PLANNING = re.compile(r"(?P<kind>SCHEDULED|DEADLINE):[ \t]*[<\[](?P<date>\d{4}-\d{2}-\d{2})[^>\]]*[>\]]")

_MARKDOWN_PARSER: Optional[MarkdownIt] = None


@dataclass(slots=True)
class _Heading:
    level: int
    raw_title: str
    start: int
    heading_end: int


def _build_parser() -> MarkdownIt:
    global _MARKDOWN_PARSER
    if _MARKDOWN_PARSER is None:
        _MARKDOWN_PARSER = MarkdownIt("commonmark")
    return _MARKDOWN_PARSER


def parse_document(
    text: str,
    *,
    path: Path | str | None = None,
    syntax: str = "auto",
    todo_keywords: Sequence[str] = DEFAULT_TODO_KEYWORDS,
    done_keywords: Sequence[str] = DEFAULT_DONE_KEYWORDS,
    document_id: str | None = None,
) -> Document:
    """Parse ``text`` into a :class:`Document` with one node per heading."""

    resolved_path = Path(path).expanduser() if path is not None else None
    resolved_syntax = detect_syntax(text, path=resolved_path) if syntax == "auto" else syntax
    if resolved_syntax not in SYNTAX_CHOICES[1:]:
        raise ValueError(f"Unsupported heading syntax: {syntax!r}")

    frontmatter, body_offset = _split_frontmatter(text)
    if resolved_syntax == "org":
        headings = list(_scan_org(text, body_offset))
        title_match = _ORG_TITLE.search(text)
        title = title_match.group("title") if title_match else None
    else:
        headings = list(_scan_markdown(text, body_offset))
        title = None
    if isinstance(frontmatter.get("title"), str):
        title = frontmatter["title"]

    keywords = tuple(todo_keywords) + tuple(done_keywords)
    nodes = _build_nodes(text, headings, keywords, resolved_syntax)
    metadata = DocumentMetadata(
        path=resolved_path,
        syntax=resolved_syntax,
        title=title,
        frontmatter=frontmatter,
        done_keywords=tuple(done_keywords),
    )
    LOGGER.debug(
        "Parsed %s outline: %d heading(s), path=%s",
        resolved_syntax,
        len(nodes),
        resolved_path,
    )
    return Document(text, nodes, metadata=metadata, document_id=document_id)


def detect_syntax(text: str, *, path: Path | None = None) -> str:
    """Pick ``"org"`` or ``"markdown"`` from the file suffix, else from the text."""

    if path is not None:
        return "org" if path.suffix.lower() == ".org" else "markdown"
    if _ORG_HEADING.search(text or "") and not _MD_HEADING.search(text or ""):
        return "org"
    return "markdown"


def detect_frontmatter(text: str) -> Dict[str, Any]:
    """Return parsed YAML front matter from ``text`` if present."""

    frontmatter, _ = _split_frontmatter(text or "")
    return frontmatter


# ---------------------------------------------------------------------------
# Front matter
# ---------------------------------------------------------------------------
def _split_frontmatter(text: str) -> tuple[Dict[str, Any], int]:
    """Return ``(frontmatter, body_offset)``; offsets stay valid for ``text``."""

    offset = 1 if text.startswith("\ufeff") else 0
    if not text.startswith("---", offset):
        return {}, 0
    first_break = text.find("\n", offset)
    if first_break == -1 or text[offset:first_break].strip() != "---":
        return {}, 0

    cursor = first_break + 1
    while cursor < len(text):
        line_end = text.find("\n", cursor)
        stop = len(text) if line_end == -1 else line_end
        if text[cursor:stop].strip() == "---":
            block = text[first_break + 1 : cursor]
            body_offset = len(text) if line_end == -1 else line_end + 1
            return _parse_frontmatter_block(block), body_offset
        cursor = stop + 1
    return {}, 0


def _parse_frontmatter_block(block: str) -> Dict[str, Any]:
    if not block.strip():
        return {}
    parser = YAML(typ="safe")
    parser.allow_duplicate_keys = False
    try:
        loaded = parser.load(block) or {}
    except YAMLError as exc:
        LOGGER.debug("Ignoring unparsable front matter: %s", exc)
        return {}
    if isinstance(loaded, dict):
        return dict(loaded)
    return {}


# ---------------------------------------------------------------------------
# Heading scanners
# ---------------------------------------------------------------------------
def _line_offsets(text: str) -> list[int]:
    offsets = [0]
    offsets.extend(match.end() for match in re.finditer("\n", text))
    if offsets[-1] != len(text):
        offsets.append(len(text))
    return offsets


def _scan_markdown(text: str, body_offset: int) -> Iterable[_Heading]:
    body = text[body_offset:]
    offsets = _line_offsets(body)
    last = len(offsets) - 1
    tokens = _build_parser().parse(body)
    for position, token in enumerate(tokens):
        if token.type != "heading_open" or token.map is None or token.level != 0:
            continue
        inline = tokens[position + 1] if position + 1 < len(tokens) else None
        raw_title = inline.content if inline is not None and inline.type == "inline" else ""
        begin, finish = token.map
        yield _Heading(
            level=int(token.tag[1:]),
            raw_title=raw_title.strip(),
            start=body_offset + offsets[min(begin, last)],
            heading_end=body_offset + offsets[min(finish, last)],
        )


def _scan_org(text: str, body_offset: int) -> Iterable[_Heading]:
    for match in _ORG_HEADING.finditer(text, body_offset):
        line_end = text.find("\n", match.end())
        yield _Heading(
            level=len(match.group("stars")),
            raw_title=match.group("title"),
            start=match.start(),
            heading_end=len(text) if line_end == -1 else line_end + 1,
        )


# ---------------------------------------------------------------------------
# Node construction
# ---------------------------------------------------------------------------
def _build_nodes(
    text: str,
    headings: Sequence[_Heading],
    keywords: Sequence[str],
    syntax: str,
) -> list[Node]:
    ends = [len(text)] * len(headings)
    open_positions: list[int] = []
    for position, heading in enumerate(headings):
        while open_positions and headings[open_positions[-1]].level >= heading.level:
            ends[open_positions.pop()] = heading.start
        open_positions.append(position)

    nodes: list[Node] = []
    for position, heading in enumerate(headings):
        title, todo, priority, tags = _split_title(heading.raw_title, keywords, syntax)
        body_end = headings[position + 1].start if position + 1 < len(headings) else len(text)
        scheduled, deadline = _planning_dates(text, heading.heading_end, body_end)
        nodes.append(
            Node(
                level=heading.level,
                title=title,
                start=heading.start,
                end=ends[position],
                heading_end=min(heading.heading_end, body_end),
                todo=todo,
                priority=priority,
                tags=tags,
                scheduled=scheduled,
                deadline=deadline,
            )
        )
    return nodes


def _split_title(
    raw_title: str,
    keywords: Sequence[str],
    syntax: str,
) -> tuple[str, str | None, str | None, tuple[str, ...]]:
    title = raw_title.strip()
    tags: tuple[str, ...] = ()
    if syntax == "org":
        tag_match = _ORG_TAGS.search(title)
        if tag_match:
            tags = tuple(part for part in tag_match.group("tags").split(":") if part)
            title = title[: tag_match.start()].rstrip()

    todo: str | None = None
    first, _, rest = title.partition(" ")
    if first in keywords:
        todo = first
        title = rest.lstrip()

    priority: str | None = None
    priority_match = _PRIORITY.match(title)
    if priority_match:
        priority = priority_match.group("priority")
        title = title[priority_match.end() :]
    return title.strip(), todo, priority, tags


def _planning_dates(text: str, body_start: int, body_end: int) -> tuple[date | None, date | None]:
    """Read SCHEDULED/DEADLINE stamps from the line directly under a heading."""

    if body_start >= body_end:
        return None, None
    line_end = text.find("\n", body_start, body_end)
    line = text[body_start : body_end if line_end == -1 else line_end]
    scheduled: date | None = None
    deadline: date | None = None
    for match in _PLANNING.finditer(line):
        try:
            stamp = date.fromisoformat(match.group("date"))
        except ValueError:
            LOGGER.debug("Ignoring invalid planning date %s", match.group("date"))
            continue
        if match.group("kind") == "SCHEDULED":
            scheduled = stamp
        else:
            deadline = stamp
    return scheduled, deadline
