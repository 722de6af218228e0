"""In-process change notification bus.

Listeners take no arguments: a notification only means "something changed,
re-read what you need".
"""
from contextlib import contextmanager
from typing import Callable, Generator, List

from aislewise.utils.logger import get_logger

ChangeListener = Callable[[], None]


class ChangeBus:
    """Registry of change listeners, called in subscription order."""

    def __init__(self):
        self._listeners: List[ChangeListener] = []
        self._defer_depth = 0
        self._pending = False
        self.logger = get_logger(self.__class__.__name__)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """
        Register a listener.

        Args:
            listener: Zero-argument callable

        Returns:
            A function that removes this subscription
        """
        self._listeners.append(listener)
        subscribed = True

        def unsubscribe() -> None:
            nonlocal subscribed
            if not subscribed:
                return
            subscribed = False
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return unsubscribe

    def publish(self) -> None:
        """
        Notify every current listener.

        A failing listener does not stop the others. Failures are logged and
        raised together once every listener has run.

        Raises:
            ExceptionGroup: If one or more listeners raised
        """
        if self._defer_depth:
            self._pending = True
            return

        errors: List[Exception] = []
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                self.logger.opt(exception=e).error(
                    "Change listener failed",
                    listener=getattr(listener, "__qualname__", repr(listener))
                )
                errors.append(e)

        if errors:
            raise ExceptionGroup("change listener(s) failed", errors)

    @contextmanager
    def deferred(self) -> Generator[None, None, None]:
        """Collapse publishes made inside the block into one at exit.

        Nothing is published if the block published nothing. The pending
        notification is still delivered when the block raises, since writes
        committed before the error are already visible.
        """
        self._defer_depth += 1
        try:
            yield
        finally:
            self._defer_depth -= 1
            if self._defer_depth == 0 and self._pending:
                self._pending = False
                self.publish()
