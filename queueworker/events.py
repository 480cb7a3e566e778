"""Event manager used by the worker to publish lifecycle events.

Listeners attach either directly to an :class:`EventManager` or, scoped by
identifier, to a :class:`SharedEventManager`.  A worker's event manager
carries the identifiers of the worker classes it belongs to, so a listener
attached to ``"queueworker.worker.AbstractWorker"`` on the shared manager
hears every worker, while one attached to a concrete class name hears only
that kind of worker.

Usage:
    shared = SharedEventManager()
    shared.attach("myapp.EmailWorker", "handle_signal", on_signal)
    worker = EmailWorker(queues, options, events=EventManager(shared=shared))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from collections.abc import Iterable
from typing import Any, Callable

logger = logging.getLogger("queueworker.events")

WILDCARD = "*"

Listener = Callable[["Event"], Any]


@dataclass
class Event:
    name: str
    target: Any = None
    params: dict[str, Any] = field(default_factory=dict)
    identifiers: tuple[str, ...] = ()

    def get_param(self, key: str, default: Any = None) -> Any:
        return self.params.get(key, default)


def normalize_identifiers(identifiers: Iterable[str] | str | None) -> tuple[str, ...]:
    """Return *identifiers* as an ordered tuple without duplicates.

    Raises TypeError for anything other than a string or an iterable of
    non-empty strings.
    """
    if identifiers is None:
        return ()
    if isinstance(identifiers, str):
        identifiers = (identifiers,)
    elif isinstance(identifiers, (bytes, dict)) or not isinstance(identifiers, Iterable):
        raise TypeError(
            f"Event identifiers must be a string or an iterable of strings, "
            f"got {type(identifiers).__name__}"
        )
    result: list[str] = []
    for ident in identifiers:
        if not isinstance(ident, str) or not ident:
            raise TypeError(f"Event identifier must be a non-empty string, got {ident!r}")
        if ident not in result:
            result.append(ident)
    return tuple(result)


class SharedEventManager:
    """Listeners keyed by (identifier, event name)."""

    def __init__(self):
        self._listeners: dict[str, dict[str, list[Listener]]] = {}

    def attach(self, identifier: str, event_name: str, listener: Listener) -> Listener:
        self._listeners.setdefault(identifier, {}).setdefault(event_name, []).append(listener)
        return listener

    def detach(self, identifier: str, event_name: str, listener: Listener) -> bool:
        listeners = self._listeners.get(identifier, {}).get(event_name, [])
        if listener in listeners:
            listeners.remove(listener)
            return True
        return False

    def listeners_for(self, identifiers: Iterable[str], event_name: str) -> list[Listener]:
        found: list[Listener] = []
        for ident in identifiers:
            by_event = self._listeners.get(ident, {})
            found.extend(by_event.get(event_name, []))
            if event_name != WILDCARD:
                found.extend(by_event.get(WILDCARD, []))
        return found


class EventManager:
    """Dispatches named events to local and shared listeners.

    With no listeners attached ``trigger()`` does nothing and returns ``[]``.
    """

    def __init__(
        self,
        identifiers: Iterable[str] | str | None = None,
        listeners: dict[str, list[Listener]] | None = None,
        shared: SharedEventManager | None = None,
    ):
        self._identifiers = normalize_identifiers(identifiers)
        self._listeners: dict[str, list[Listener]] = {
            name: list(fns) for name, fns in (listeners or {}).items()
        }
        self.shared = shared

    @property
    def identifiers(self) -> tuple[str, ...]:
        return self._identifiers

    def set_identifiers(self, identifiers: Iterable[str] | str) -> None:
        self._identifiers = normalize_identifiers(identifiers)

    def attach(self, event_name: str, listener: Listener) -> Listener:
        self._listeners.setdefault(event_name, []).append(listener)
        return listener

    def detach(self, event_name: str, listener: Listener) -> bool:
        listeners = self._listeners.get(event_name, [])
        if listener in listeners:
            listeners.remove(listener)
            return True
        return False

    def listeners(self, event_name: str) -> list[Listener]:
        found = list(self._listeners.get(event_name, []))
        if event_name != WILDCARD:
            found.extend(self._listeners.get(WILDCARD, []))
        if self.shared is not None:
            found.extend(self.shared.listeners_for(self._identifiers, event_name))
        return found

    def trigger(self, event_name: str, target: Any = None, params: dict[str, Any] | None = None) -> list[Any]:
        listeners = self.listeners(event_name)
        if not listeners:
            return []
        event = Event(event_name, target, dict(params or {}), self._identifiers)
        logger.debug("Triggering %s to %d listener(s)", event_name, len(listeners))
        return [listener(event) for listener in listeners]
