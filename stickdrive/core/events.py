from __future__ import annotations

from typing import Callable, Generic, List, TypeVar

T = TypeVar("T")


class Subscription:
    """Handle returned by Signal.subscribe. dispose() is idempotent."""

    def __init__(self, signal: "Signal", callback: Callable) -> None:
        self._signal = signal
        self._callback = callback
        self.disposed = False

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        self._signal._remove(self._callback)


class Signal(Generic[T]):
    """
    Minimal publish/subscribe topic.
    Listeners run synchronously, in subscription order, on the publisher's thread.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._listeners: List[Callable[[T], None]] = []

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        self._listeners.append(callback)
        return Subscription(self, callback)

    def publish(self, value: T) -> None:
        # copy: a listener may dispose itself while we iterate
        for cb in list(self._listeners):
            cb(value)

    def clear(self) -> None:
        self._listeners.clear()

    def __len__(self) -> int:
        return len(self._listeners)

    def _remove(self, callback: Callable) -> None:
        try:
            self._listeners.remove(callback)
        except ValueError:
            pass


class Disposables:
    """Bag of subscriptions torn down together, exactly once."""

    def __init__(self) -> None:
        self._items: List[Subscription] = []
        self.disposed = False

    def add(self, sub: Subscription) -> Subscription:
        if self.disposed:
            sub.dispose()
        else:
            self._items.append(sub)
        return sub

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        items, self._items = self._items, []
        for sub in reversed(items):
            sub.dispose()

    def __len__(self) -> int:
        return len(self._items)
