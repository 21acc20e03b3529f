"""Navigation commands: jump to a heading in a clone, cycle visibility, jump back."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Iterable

from ..errors import EmptyScopeError, InvalidViewError, UnknownDepthError
from ..events import EventBus, VisibilityChanged
from ..outline.model import Document, Node, Visibility
from ..views.registry import CloneRegistry
from ..views.view import View, ViewKind
from ..visibility.cycling import CommandTracker, cycle_global, cycle_local, reveal_entry

__all__ = ["JumpDepth", "DisplayLayout", "NavigationDispatcher", "expand_to_depth"]

LOGGER = logging.getLogger(__name__)


class JumpDepth(str, Enum):
    """How much of a jump target's subtree is revealed."""

    NONE = "none"
    CHILDREN = "children"
    BRANCHES = "branches"
    ENTRIES = "entries"

    @classmethod
    def coerce(cls, value: Any) -> JumpDepth:
        """Accept a member, its name/value string, or ``None``; reject anything else."""

        if isinstance(value, JumpDepth):
            return value
        if value is None:
            return cls.NONE
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise UnknownDepthError(message=f"Unknown jump depth: {value!r}", value=value)


_DEPTH_STATES: Dict[JumpDepth, Visibility] = {
    JumpDepth.NONE: Visibility.ENTRIES,
    JumpDepth.CHILDREN: Visibility.CHILDREN,
    JumpDepth.BRANCHES: Visibility.BRANCHES,
    JumpDepth.ENTRIES: Visibility.ENTRIES,
}


def expand_to_depth(node: Node, depth: JumpDepth) -> dict[int, Visibility]:
    """Return a clean overlay with ``node`` expanded to ``depth``.

    ``NONE`` pairs with a restriction that excludes descendants, so showing
    the entry reveals only the node's own body.
    """

    state = _DEPTH_STATES.get(depth) if isinstance(depth, JumpDepth) else None
    if state is None:
        raise UnknownDepthError(message=f"Unknown jump depth: {depth!r}", value=depth)
    return {node.index: state}


class DisplayLayout:
    """Tracks which view each display surface shows.

    Placement itself belongs to the display layer; this only remembers the
    assignment so a jump can reuse a surface already showing a clone.
    """

    def __init__(self) -> None:
        self._surfaces: Dict[str, View] = {}
        self._counter = 0

    def show(self, view: View, surface_id: str | None = None) -> str:
        if surface_id is None:
            self._counter += 1
            surface_id = f"surface-{self._counter}"
        self._surfaces[surface_id] = view
        return surface_id

    def close(self, surface_id: str) -> View | None:
        return self._surfaces.pop(surface_id, None)

    def view_in(self, surface_id: str) -> View | None:
        return self._surfaces.get(surface_id)

    def surface_of(self, view: View) -> str | None:
        for surface_id, shown in self._surfaces.items():
            if shown is view:
                return surface_id
        return None

    def surfaces(self) -> Dict[str, View]:
        return dict(self._surfaces)

    def place_jump_target(self, view: View, *, exclude: Iterable[View] = ()) -> str:
        """Redirect a surface showing another clone of the same document, else open one."""

        excluded = {id(item) for item in exclude}
        excluded.add(id(view))
        for surface_id, shown in self._surfaces.items():
            if id(shown) in excluded:
                continue
            if shown.kind is ViewKind.CLONE and shown.document_id == view.document_id:
                self._surfaces[surface_id] = view
                LOGGER.debug("Reusing %s for %r (was %r)", surface_id, view.key, shown.key)
                return surface_id
        existing = self.surface_of(view)
        if existing is not None:
            return existing
        return self.show(view)


class NavigationDispatcher:
    """Resolves jump and cycle commands against the registry.

    Every command records itself in the shared :class:`CommandTracker`, so a
    local cycle only counts as a repeat when nothing else ran in between.
    """

    def __init__(
        self,
        registry: CloneRegistry,
        *,
        layout: DisplayLayout | None = None,
        tracker: CommandTracker | None = None,
        event_bus: EventBus | None = None,
        default_depth: JumpDepth | str = JumpDepth.CHILDREN,
    ) -> None:
        self._registry = registry
        self._layout = layout or DisplayLayout()
        self._tracker = tracker or CommandTracker()
        self._bus = event_bus
        self._default_depth = JumpDepth.coerce(default_depth)

    @property
    def layout(self) -> DisplayLayout:
        return self._layout

    @property
    def tracker(self) -> CommandTracker:
        return self._tracker

    # ------------------------------------------------------------------
    # Jumps
    # ------------------------------------------------------------------
    def jump(
        self,
        origin: View,
        node: Node | None,
        depth: JumpDepth | str | None = None,
    ) -> View:
        """Show ``node`` in a fresh clone expanded to ``depth``.

        ``origin`` is the view the command was issued from. Without a node
        (point before the first heading) the document's source view is
        returned instead of a clone.
        """

        document = self._require_document(origin)
        resolved_depth = self._default_depth if depth is None else JumpDepth.coerce(depth)
        self._tracker.record(
            f"jump-{resolved_depth.value}",
            view_key=origin.key,
            node_index=node.index if node is not None else None,
        )
        if node is None:
            return self._registry.source_view(document)

        bounds = document.entry_bounds(node, include_descendants=resolved_depth is not JumpDepth.NONE)
        overlay = expand_to_depth(node, resolved_depth)
        view = self._registry.get_or_create_view(document, node)
        view.restriction = bounds
        view.overlay = overlay
        view.move_cursor(node.start)
        excluded = [origin]
        source = self._registry.get(document.source_id)
        if isinstance(source, View):
            excluded.append(source)
        surface = self._layout.place_jump_target(view, exclude=excluded)
        LOGGER.debug(
            "Jumped to %r at depth %s in %s",
            node.title,
            resolved_depth.value,
            surface,
        )
        self._publish(view, f"jump-{resolved_depth.value}", node)
        return view

    def jump_at(self, origin: View, offset: int | None = None, depth: JumpDepth | str | None = None) -> View:
        """Jump to the heading owning ``offset`` (the origin's cursor by default)."""

        document = self._require_document(origin)
        target = document.node_at(origin.cursor if offset is None else offset)
        return self.jump(origin, target, depth)

    def jump_source(self, origin: View, node: Node | None = None) -> View:
        """Reveal ``node`` (default: the heading at the origin's cursor) in the source view."""

        document = self._require_document(origin)
        target = node if node is not None else document.node_at(origin.cursor)
        self._tracker.record(
            "jump-source",
            view_key=origin.key,
            node_index=target.index if target is not None else None,
        )
        source = self._registry.source_view(document)
        if target is None:
            return source
        source.overlay = reveal_entry(document, source.overlay, target)
        source.move_cursor(target.start)
        self._publish(source, "jump-source", target)
        return source

    # ------------------------------------------------------------------
    # Visibility cycling
    # ------------------------------------------------------------------
    def cycle(self, view: View, node: Node | None = None) -> View:
        """Local cycle on ``node`` (default: the heading at the view's cursor)."""

        document = self._require_document(view)
        target = node if node is not None else view.node_at_cursor()
        if target is None:
            raise EmptyScopeError(details={"view": view.key})
        repeat = self._tracker.record("cycle", view_key=view.key, node_index=target.index)
        view.overlay = cycle_local(
            document,
            view.overlay,
            target,
            scope=view.restriction,
            repeat=repeat,
        )
        self._publish(view, "cycle", target)
        return view

    def cycle_global(self, view: View) -> View:
        document = self._require_document(view)
        self._tracker.record("cycle-global", view_key=view.key)
        view.overlay = cycle_global(document, view.overlay, scope=view.restriction)
        self._publish(view, "cycle-global", None)
        return view

    def note_command(self, command: str, *, view: View | None = None) -> None:
        """Record an unrelated command so the next cycle does not count as a repeat."""

        self._tracker.record(command, view_key=view.key if view is not None else None)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _require_document(self, view: View) -> Document:
        try:
            return view.document
        except InvalidViewError:
            LOGGER.warning("Discarding view %r: its document is gone", view.key)
            self._registry.destroy_view(view)
            surface = self._layout.surface_of(view)
            if surface is not None:
                self._layout.close(surface)
            raise

    def _publish(self, view: View, command: str, node: Node | None) -> None:
        if self._bus is None:
            return
        self._bus.publish(
            VisibilityChanged(
                key=view.key,
                command=command,
                node_index=node.index if node is not None else None,
            )
        )
