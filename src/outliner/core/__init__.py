"""Core value types shared by the outline, view and listing layers."""

from .ranges import TextRange

__all__ = ["TextRange"]
