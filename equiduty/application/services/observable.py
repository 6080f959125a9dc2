"""State-change notification and in-flight guards for controllers.

Controllers are plain state containers. Views subscribe to be told when
state changed and then read whatever they need; controllers never reach
into the view.

All controller methods run on one event loop, so none of these helpers
lock. They exist because a view can dispatch a second action while the
first is still awaiting the backend.
"""

from __future__ import annotations

from typing import Callable

import structlog

Listener = Callable[[], None]
Unsubscribe = Callable[[], None]

logger = structlog.get_logger()


class Observable:
    """Publish/subscribe mixin for controller state changes."""

    _listeners: list[Listener]

    def _init_observable(self) -> None:
        self._listeners = []

    def subscribe(self, listener: Listener) -> Unsubscribe:
        """Register ``listener`` to be called after every state change.

        Returns:
            A callable that removes the listener. Calling it twice is a no-op.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self) -> None:
        # Copy so a listener may unsubscribe itself while being notified
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.error(
                    "state_listener_failed",
                    publisher=self.__class__.__name__,
                    exc_info=True,
                )


class ActionGuard:
    """Admits one mutating action at a time.

    A second action started while one is in flight is rejected, not queued.
    """

    def __init__(self) -> None:
        self._in_flight: str | None = None

    @property
    def in_flight(self) -> str | None:
        """Name of the action currently running, if any."""
        return self._in_flight

    @property
    def busy(self) -> bool:
        return self._in_flight is not None

    def try_begin(self, action: str) -> bool:
        """Claim the guard for ``action``.

        Returns:
            False if another action holds the guard.
        """
        if self._in_flight is not None:
            return False
        self._in_flight = action
        return True

    def end(self) -> None:
        self._in_flight = None


class LatestRequestTracker:
    """Tells a load whether a newer load has started since it began.

    Each ``begin()`` hands out a token; only the most recent token is
    current. A load that finishes with a stale token discards its result.
    """

    def __init__(self) -> None:
        self._generation = 0

    def begin(self) -> int:
        self._generation += 1
        return self._generation

    def is_current(self, token: int) -> bool:
        return token == self._generation

    def invalidate(self) -> None:
        """Make every outstanding token stale."""
        self._generation += 1
