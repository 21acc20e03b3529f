"""Synchronous event bus and the view lifecycle events published on it.

Commands run to completion on a single thread, so handlers are invoked
inline, in subscription order, before ``publish`` returns.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, TYPE_CHECKING
from weakref import WeakMethod, ref

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from typing import DefaultDict

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for all events published on an :class:`EventBus`."""


@dataclass(slots=True)
class ViewCreated(Event):
    """Emitted when a view is registered.

    Attributes:
        key: Identity key of the new view.
        document_id: Identifier of the aliased document.
        kind: ``"source"``, ``"clone"`` or ``"tree"``.
    """

    key: str
    document_id: str
    kind: str


@dataclass(slots=True)
class ViewDestroyed(Event):
    """Emitted when a view is released, either explicitly or by recreation."""

    key: str
    document_id: str
    replaced: bool = False


@dataclass(slots=True)
class VisibilityChanged(Event):
    """Emitted after a cycle or jump rewrites a view's visibility overlay.

    Attributes:
        key: Identity key of the affected view.
        command: Name of the command that produced the change.
        node_index: Index of the target node, or ``None`` for whole-view commands.
    """

    key: str
    command: str
    node_index: int | None = None


@dataclass(slots=True)
class ListRefreshed(Event):
    """Emitted once per list view after its content is rebuilt."""

    title: str
    node_count: int


@dataclass(slots=True)
class DocumentClosed(Event):
    document_id: str


class EventBus(Generic[E]):
    """Typed publish/subscribe bus.

    Bound-method handlers are held through :class:`weakref.WeakMethod` so a
    subscriber's lifetime is not extended by the bus; plain functions and
    lambdas are held strongly.

    Example::

        bus = EventBus()
        bus.subscribe(ViewCreated, lambda event: print(event.key))
        bus.publish(ViewCreated(key="Tasks::notes.org", document_id="d1", kind="clone"))
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: DefaultDict[type[Event], list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Register ``handler`` for events of exactly ``event_type``.

        Subscribing the same handler twice results in two invocations.
        """
        self._handlers[event_type].append(_HandlerRef.create(handler))
        logger.debug(
            "Subscribed handler %s to event type %s",
            _handler_name(handler),
            event_type.__name__,
        )

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove the first registration of ``handler``; unknown handlers are ignored."""
        handlers = self._handlers.get(event_type)
        if handlers is None:
            return
        for index, handler_ref in enumerate(handlers):
            if handler_ref.matches(handler):
                handlers.pop(index)
                logger.debug(
                    "Unsubscribed handler %s from event type %s",
                    _handler_name(handler),
                    event_type.__name__,
                )
                return

    def publish(self, event: E) -> None:
        """Deliver ``event`` to every live handler.

        A handler that raises is logged and the remaining handlers still run.
        """
        event_type = type(event)
        handlers = self._handlers.get(event_type)
        if not handlers:
            logger.debug("No handlers for event type %s", event_type.__name__)
            return

        logger.debug("Publishing %s to %d handler(s)", event_type.__name__, len(handlers))
        dead: list[_HandlerRef] = []
        for handler_ref in list(handlers):
            handler = handler_ref.resolve()
            if handler is None:
                dead.append(handler_ref)
                continue
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s raised exception for event %s",
                    _handler_name(handler),
                    event_type.__name__,
                )

        for handler_ref in dead:
            if handler_ref in handlers:
                handlers.remove(handler_ref)

    def clear(self) -> None:
        """Remove all registered handlers."""
        self._handlers.clear()

    def handler_count(self, event_type: type[E] | None = None) -> int:
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())


class _HandlerRef:
    """Weak reference for bound methods, strong reference for everything else."""

    __slots__ = ("_ref", "_is_weak")

    def __init__(self, handler_ref: WeakMethod | ref | Handler, is_weak: bool) -> None:
        self._ref = handler_ref
        self._is_weak = is_weak

    @classmethod
    def create(cls, handler: Handler) -> _HandlerRef:
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), is_weak=True)
            except TypeError:
                pass
        return cls(handler, is_weak=False)

    def resolve(self) -> Handler | None:
        if not self._is_weak:
            return self._ref  # type: ignore[return-value]
        return self._ref()  # type: ignore[operator]

    def matches(self, handler: Handler) -> bool:
        resolved = self.resolve()
        if resolved is None:
            return False
        return resolved == handler


def _handler_name(handler: Any) -> str:
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        return f"{type(handler.__self__).__name__}.{handler.__func__.__name__}"
    if hasattr(handler, "__name__"):
        return handler.__name__
    return repr(handler)


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "ViewCreated",
    "ViewDestroyed",
    "VisibilityChanged",
    "ListRefreshed",
    "DocumentClosed",
]
