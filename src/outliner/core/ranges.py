"""Half-open character spans used for restrictions, entries and search scopes."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class TextRange:
    """Half-open ``[start, end)`` span of absolute character offsets."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid text range ({self.start}, {self.end})")

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    def to_tuple(self) -> tuple[int, int]:
        return (self.start, self.end)

    def contains(self, other: TextRange | int) -> bool:
        """Return ``True`` when ``other`` (an offset or range) lies inside this range."""

        if isinstance(other, TextRange):
            return self.start <= other.start and other.end <= self.end
        return self.start <= other < self.end

    def intersect(self, other: TextRange) -> TextRange | None:
        """Return the shared span of both ranges, or ``None`` when disjoint."""

        start = max(self.start, other.start)
        end = min(self.end, other.end)
        if end < start:
            return None
        return TextRange(start, end)


__all__ = ["TextRange"]
