"""Jump and cycle command dispatch."""

from .dispatcher import DisplayLayout, JumpDepth, NavigationDispatcher, expand_to_depth

__all__ = ["DisplayLayout", "JumpDepth", "NavigationDispatcher", "expand_to_depth"]
