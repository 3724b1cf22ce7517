"""
Message passing between the viewer and the pages around it.

Rendered markdown reports link clicks and the viewer reports navigation to
an embedding host. Both travel as typed events through a MessageChannel
instead of reaching into another page's globals.
"""

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NavigateEvent:
    """The displayed page changed."""
    path: str
    name: str
    kind: str = field(default="navigate", init=False)


@dataclass(frozen=True)
class LinkClickEvent:
    """A link was clicked inside a rendered markdown document."""
    path: str
    kind: str = field(default="markdown-link-click", init=False)


class MessageChannel:
    """Dispatches events to the handlers registered for their kind."""

    def __init__(self):
        self._handlers: Dict[str, List[Callable]] = defaultdict(list)

    def register(self, kind: str, handler: Callable) -> None:
        """Register a handler (plain or async) for an event kind."""
        self._handlers[kind].append(handler)
        logger.debug(f"Registered handler for {kind}: {getattr(handler, '__name__', handler)}")

    def unregister(self, kind: str, handler: Callable) -> bool:
        if handler in self._handlers.get(kind, []):
            self._handlers[kind].remove(handler)
            return True
        return False

    async def post(self, event: Any) -> List[Any]:
        """
        Deliver an event to its handlers, in registration order.

        Returns:
            Non-None results of the handlers
        """
        handlers = self._handlers.get(event.kind, [])
        if not handlers:
            logger.debug(f"Unhandled event of type {event.kind}")
            return []

        results = []
        for handler in handlers:
            result = handler(event)
            if asyncio.iscoroutine(result):
                result = await result
            if result is not None:
                results.append(result)
        return results
