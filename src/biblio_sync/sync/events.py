"""Minimal observer interface used between the collection and its views."""

from typing import Any, Callable, List

from ..utils.logging import get_logger

logger = get_logger(__name__)

Handler = Callable[..., Any]


class Signal:
    """
    Synchronous publish/subscribe channel.

    Handlers run in subscription order on the emitting thread (the event
    loop). A failing handler is logged and does not stop the others.

    Example:
        >>> changed = Signal("records_changed")
        >>> unsubscribe = changed.connect(lambda records: print(len(records)))
        >>> changed.emit([])
        0
        >>> unsubscribe()
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._handlers: List[Handler] = []

    def connect(self, handler: Handler) -> Callable[[], None]:
        """Subscribe ``handler``; returns a callable that unsubscribes it."""
        self._handlers.append(handler)

        def _unsubscribe() -> None:
            self.disconnect(handler)

        return _unsubscribe

    def disconnect(self, handler: Handler) -> None:
        try:
            self._handlers.remove(handler)
        except ValueError:
            pass

    def emit(self, *args: Any, **kwargs: Any) -> None:
        for handler in list(self._handlers):
            try:
                handler(*args, **kwargs)
            except Exception:
                logger.exception(f"Handler for {self.name} failed")

    def __len__(self) -> int:
        return len(self._handlers)

    def __repr__(self) -> str:
        return f"<Signal name={self.name} handlers={len(self._handlers)}>"
