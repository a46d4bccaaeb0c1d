"""In-process change notification bus for library items."""

from __future__ import annotations

import itertools
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Optional, Sequence

LOGGER = logging.getLogger(__name__)

NotifyCallback = Callable[[str, str, list[int], dict[str, Any]], None]


@dataclass(slots=True)
class _Observer:
    callback: NotifyCallback
    types: frozenset[str]
    events: Optional[frozenset[str]]

    def accepts(self, event: str, type_: str) -> bool:
        if type_ not in self.types:
            return False
        return self.events is None or event in self.events


class Notifier:
    """Dispatch ``(event, type, ids, extra)`` notifications to registered observers.

    Notifications raised inside :meth:`deferred` are queued and dispatched once
    the outermost deferred block exits, so work committed inside the block is
    visible to observers before they run.
    """

    def __init__(self) -> None:
        self._observers: dict[str, _Observer] = {}
        self._ids = itertools.count(1)
        self._depth = 0
        self._queue: list[tuple[str, str, list[int], dict[str, Any]]] = []

    def register_observer(
        self,
        callback: NotifyCallback,
        types: Iterable[str],
        events: Iterable[str] | None = None,
    ) -> str:
        """Register ``callback`` for the given object types and, optionally, event names.

        Returns:
            str: Identifier to pass to :meth:`unregister_observer`.
        """
        observer_id = f"observer-{next(self._ids)}"
        self._observers[observer_id] = _Observer(
            callback=callback,
            types=frozenset(types),
            events=frozenset(events) if events is not None else None,
        )
        return observer_id

    def unregister_observer(self, observer_id: str) -> None:
        self._observers.pop(observer_id, None)

    def trigger(
        self,
        event: str,
        type_: str,
        ids: Sequence[int],
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Dispatch a notification now, or queue it while inside :meth:`deferred`."""
        payload = (event, type_, list(ids), dict(extra or {}))
        if self._depth:
            self._queue.append(payload)
            return
        self._dispatch(*payload)

    @contextmanager
    def deferred(self) -> Iterator[None]:
        """Queue notifications until the block exits."""
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1
            if self._depth == 0:
                self._flush()

    def _flush(self) -> None:
        while self._queue:
            pending, self._queue = self._queue, []
            for payload in pending:
                self._dispatch(*payload)

    def _dispatch(self, event: str, type_: str, ids: list[int], extra: dict[str, Any]) -> None:
        for observer_id, observer in list(self._observers.items()):
            if not observer.accepts(event, type_):
                continue
            try:
                observer.callback(event, type_, list(ids), extra)
            except Exception:
                LOGGER.exception("Observer %s failed handling %s/%s", observer_id, type_, event)


__all__ = ["Notifier", "NotifyCallback"]
