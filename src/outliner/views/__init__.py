"""Views over shared documents and the registry that owns them."""

from .documents import DocumentTable
from .registry import CloneRegistry
from .view import View, ViewKind

__all__ = ["CloneRegistry", "DocumentTable", "View", "ViewKind"]
