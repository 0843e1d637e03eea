"""
State synchronisation between the remote collection and its views.

* :class:`RemoteCollection`: owns the canonical list and page cursor,
  performs list/search/CRUD calls and emits change signals.
* :class:`ListProjector`: debounces query and filter input, chooses
  between remote search and local filtering, and exposes the visible
  list.
* :class:`Debouncer` and :class:`Signal`: the timer and observer
  primitives both are built on.
"""

from .events import Signal
from .debounce import Debouncer
from .collection import ListState, RemoteCollection
from .projector import ListProjector

__all__ = [
    "Signal",
    "Debouncer",
    "ListState",
    "RemoteCollection",
    "ListProjector",
]
