"""Outline model: headings, their nesting and owned text ranges."""

from .model import Document, DocumentMetadata, Node, Visibility
from .parser import detect_frontmatter, detect_syntax, parse_document

__all__ = [
    "Document",
    "DocumentMetadata",
    "Node",
    "Visibility",
    "detect_frontmatter",
    "detect_syntax",
    "parse_document",
]
