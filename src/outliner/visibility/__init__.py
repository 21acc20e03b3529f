"""Per-view visibility overlays and the cycling state machine."""

from .cycling import (
    CommandKey,
    CommandTracker,
    collapse_subtree,
    cycle_global,
    cycle_local,
    expand_all_headings,
    reveal_entry,
)
from .overlay import Overlay, VisibilityResolver, state_of

__all__ = [
    "CommandKey",
    "CommandTracker",
    "Overlay",
    "VisibilityResolver",
    "collapse_subtree",
    "cycle_global",
    "cycle_local",
    "expand_all_headings",
    "reveal_entry",
    "state_of",
]
