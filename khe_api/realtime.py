# khe_api/realtime.py
"""
Namespaced real-time events.

Each namespace ("/tickets", "/users", ...) is registered with the roles that
may listen to it. Routes call `hub.emit(namespace, action, document)` after a
write; every websocket subscribed to that namespace receives
{"action": <create|update|delete>, "data": <document>}.

`emit` is safe to call from sync routes (threadpool) and from async code:
delivery goes through each subscriber's own event loop.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from khe_api.data_client.tables import ROLE_ADMIN, ROLE_STAFF

logger = logging.getLogger("khe-api.realtime")


@dataclass(eq=False)
class Subscriber:
    loop: asyncio.AbstractEventLoop
    queue: "asyncio.Queue[Dict[str, Any]]" = field(default_factory=asyncio.Queue)


class EventHub:
    def __init__(self) -> None:
        self._roles: Dict[str, Tuple[str, ...]] = {}
        self._subscribers: Dict[str, Set[Subscriber]] = {}
        self._lock = threading.Lock()

    def register(self, namespace: str, roles: Sequence[str] = ()) -> None:
        """An empty `roles` means any authenticated user may listen."""
        self._roles[namespace] = tuple(roles)
        self._subscribers.setdefault(namespace, set())

    def namespaces(self) -> List[str]:
        return sorted(self._roles)

    def allowed(self, namespace: str, role: Optional[str]) -> bool:
        if namespace not in self._roles:
            return False
        roles = self._roles[namespace]
        return not roles or role in roles

    def subscribe(self, namespace: str) -> Subscriber:
        """Must be called from inside the event loop that will consume the queue."""
        sub = Subscriber(loop=asyncio.get_running_loop())
        with self._lock:
            self._subscribers.setdefault(namespace, set()).add(sub)
        return sub

    def unsubscribe(self, namespace: str, sub: Subscriber) -> None:
        with self._lock:
            self._subscribers.get(namespace, set()).discard(sub)

    def subscriber_count(self, namespace: str) -> int:
        with self._lock:
            return len(self._subscribers.get(namespace, ()))

    def emit(self, namespace: str, action: str, document: Any) -> int:
        """Queue the event for every listener. Returns how many were reached."""
        message = {"action": action, "data": document}
        with self._lock:
            targets = list(self._subscribers.get(namespace, ()))

        delivered = 0
        for sub in targets:
            try:
                sub.loop.call_soon_threadsafe(sub.queue.put_nowait, message)
                delivered += 1
            except RuntimeError:
                # Loop already closed: the socket is gone
                self.unsubscribe(namespace, sub)
        logger.debug(f"[Realtime] emit {namespace} {action} -> {delivered} listener(s)")
        return delivered


hub = EventHub()
hub.register("/users", (ROLE_ADMIN, ROLE_STAFF))
hub.register("/users/application", (ROLE_ADMIN, ROLE_STAFF))
hub.register("/tickets", (ROLE_ADMIN, ROLE_STAFF))
hub.register("/gamify")
