"""
Minimal observable subject for publishing state changes.
"""

from typing import Callable, Generic, TypeVar

from cryptosage.infrastructure.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Unsubscribe = Callable[[], None]


class Subject(Generic[T]):
    """
    Synchronous publish/subscribe channel.

    Subscribers are called in subscription order on the emitting task.
    A failing subscriber is logged and does not prevent delivery to the rest.
    """

    def __init__(self, name: str = "subject"):
        self.name = name
        self._subscribers: list[Callable[[T], None]] = []

    def subscribe(self, callback: Callable[[T], None]) -> Unsubscribe:
        """
        Register a callback.

        Args:
            callback: Called with each emitted value

        Returns:
            Function that removes the subscription.
        """
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            self.unsubscribe(callback)

        return _unsubscribe

    def unsubscribe(self, callback: Callable[[T], None]) -> None:
        """Remove a callback if registered."""
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def emit(self, value: T) -> None:
        """Deliver a value to every current subscriber."""
        for callback in list(self._subscribers):
            try:
                callback(value)
            except Exception:
                logger.exception("Subscriber failed", subject=self.name)
