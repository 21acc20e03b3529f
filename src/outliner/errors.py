"""Error taxonomy for outline views and navigation.

Every error is local to a single command: the registry and existing views
are left untouched when one is raised.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar


class ErrorCode:
    """Constants for machine-readable error codes."""

    RESOURCE_COLLISION = "resource_collision"
    INVALID_VIEW = "invalid_view"
    MALFORMED_DOCUMENT = "malformed_document"
    EMPTY_SCOPE = "empty_scope"
    UNKNOWN_DEPTH = "unknown_depth"


@dataclass
class OutlinerError(Exception):
    """Base exception class for all outline view errors.

    Attributes:
        error_code: Machine-readable error identifier.
        message: Human-readable error description.
        details: Additional structured error information.
        suggestion: Actionable guidance for recovery.
    """

    error_code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = ""

    severity: ClassVar[str] = "error"

    def __post_init__(self) -> None:
        Exception.__init__(self, self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary for status displays and logs."""
        result: dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
            "severity": self.severity,
        }
        if self.details:
            result["details"] = dict(self.details)
        if self.suggestion:
            result["suggestion"] = self.suggestion
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


@dataclass
class ResourceCollisionError(OutlinerError):
    """A view identity key is held by something that is not a managed clone."""

    error_code: str = field(default=ErrorCode.RESOURCE_COLLISION)
    message: str = field(default="View name is already used by an unrelated resource")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="Close or rename the conflicting resource and retry")

    key: str | None = field(default=None)

    severity: ClassVar[str] = "warning"

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.key is not None:
            result["key"] = self.key
        return result


@dataclass
class InvalidViewError(OutlinerError):
    """The view's backing document no longer exists."""

    error_code: str = field(default=ErrorCode.INVALID_VIEW)
    message: str = field(default="View has no backing document")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="Reopen the document and request a new view")

    key: str | None = field(default=None)
    document_id: str | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.key is not None:
            result["key"] = self.key
        if self.document_id is not None:
            result["document_id"] = self.document_id
        return result


@dataclass
class MalformedDocumentError(OutlinerError):
    """The outline structure is inconsistent (ordering, nesting or ranges)."""

    error_code: str = field(default=ErrorCode.MALFORMED_DOCUMENT)
    message: str = field(default="Outline structure is inconsistent")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="Reparse the document")


@dataclass
class EmptyScopeError(OutlinerError):
    """A node-scoped command was issued outside any heading."""

    error_code: str = field(default=ErrorCode.EMPTY_SCOPE)
    message: str = field(default="No heading at point")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="Move point onto a heading and retry")


@dataclass
class UnknownDepthError(OutlinerError, ValueError):
    """A jump depth value is not one of none/children/branches/entries."""

    error_code: str = field(default=ErrorCode.UNKNOWN_DEPTH)
    message: str = field(default="Unknown jump depth")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="Use one of: none, children, branches, entries")

    value: Any = field(default=None)


__all__ = [
    "ErrorCode",
    "OutlinerError",
    "ResourceCollisionError",
    "InvalidViewError",
    "MalformedDocumentError",
    "EmptyScopeError",
    "UnknownDepthError",
]
