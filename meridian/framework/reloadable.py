"""
Reloadable values.

A Reloadable holds the latest value derived from configuration and notifies
registered subscribers whenever its owning driver pushes an update. Values
are swapped atomically; subscribers run synchronously, in registration order,
on the thread that performs the update, and must therefore be non-blocking
and thread-safe.

State machine::

    OPEN_EMPTY <-> OPEN_PRESENT
         \\           /
          -> CLOSED <-      (terminal)

``None`` is the absent marker: subscribers receive ``None`` when a value is
cleared, and ``update(None)`` clears the value.
"""

import logging
import threading
from enum import Enum
from typing import Any, Callable, Generic, List, Optional, Tuple, TypeVar

from ..infrastructure.exceptions import ReloadableClosedError, ValueNotPresentError

logger = logging.getLogger(__name__)

T = TypeVar('T')
R = TypeVar('R')

Subscriber = Callable[[Optional[T]], None]


class ReloadableState(Enum):
    """Lifecycle states of a reloadable."""
    OPEN_EMPTY = "open_empty"
    OPEN_PRESENT = "open_present"
    CLOSED = "closed"


def _run_actions(owner: 'Reloadable', kind: str, actions: List[Callable[[], None]]) -> None:
    """Run deferred actions in order; a failing action does not stop the rest."""
    for action in actions:
        try:
            action()
        except Exception as e:
            logger.error(f"{owner!r}: error in {kind} callback: {e}", exc_info=True)


class Reloadable(Generic[T]):
    """
    Reactive single-value container.

    Mutation happens only through ``update``, called by the registry (or
    another driver) that owns the instance. ``update`` calls on one instance
    must be serialized by that driver.
    """

    def __init__(self, value: Optional[T] = None, name: str = ""):
        self.name = name
        # (state, value) swapped as a single reference so readers never see a mix
        self._current: Tuple[ReloadableState, Optional[T]] = (
            (ReloadableState.OPEN_PRESENT, value) if value is not None
            else (ReloadableState.OPEN_EMPTY, None)
        )
        self._subscribers: List[Subscriber] = []
        self._clear_actions: List[Callable[[], None]] = []
        self._close_actions: List[Callable[[], None]] = []
        self._lock = threading.RLock()
        # held while delivering values, so a first delivery and an update
        # fan-out never interleave
        self._notify_lock = threading.RLock()

    # ------------------------------------------------------------------
    # state inspection
    # ------------------------------------------------------------------
    @property
    def state(self) -> ReloadableState:
        return self._current[0]

    @property
    def is_closed(self) -> bool:
        return self._current[0] is ReloadableState.CLOSED

    def _check_open(self) -> Tuple[ReloadableState, Optional[T]]:
        current = self._current
        if current[0] is ReloadableState.CLOSED:
            raise ReloadableClosedError(f"Reloadable is closed: {self!r}")
        return current

    def is_present(self) -> bool:
        return self._check_open()[0] is ReloadableState.OPEN_PRESENT

    def is_empty(self) -> bool:
        return not self.is_present()

    # ------------------------------------------------------------------
    # value access
    # ------------------------------------------------------------------
    def get(self) -> T:
        """
        Get the current value.

        Raises:
            ValueNotPresentError: if no value is present
            ReloadableClosedError: if the reloadable is closed
        """
        state, value = self._check_open()
        if state is not ReloadableState.OPEN_PRESENT:
            raise ValueNotPresentError(f"No value present in {self!r}", path=self.name or None)
        return value

    def or_else(self, other: T) -> T:
        state, value = self._check_open()
        return value if state is ReloadableState.OPEN_PRESENT else other

    def or_else_get(self, supplier: Callable[[], T]) -> T:
        state, value = self._check_open()
        return value if state is ReloadableState.OPEN_PRESENT else supplier()

    def or_else_throw(self, exception_supplier: Optional[Callable[[], BaseException]] = None) -> T:
        """Get the value, raising the supplied exception (or ValueNotPresentError) if empty."""
        state, value = self._check_open()
        if state is ReloadableState.OPEN_PRESENT:
            return value
        if exception_supplier is None:
            raise ValueNotPresentError(f"No value present in {self!r}", path=self.name or None)
        raise exception_supplier()

    def if_present(self, consumer: Callable[[T], Any]) -> 'Reloadable[T]':
        """Invoke ``consumer`` once with the current value, if there is one."""
        state, value = self._check_open()
        if state is ReloadableState.OPEN_PRESENT:
            consumer(value)
        return self

    # ------------------------------------------------------------------
    # subscriptions
    # ------------------------------------------------------------------
    def register(self, subscriber: Subscriber) -> 'Reloadable[T]':
        """
        Register a standing subscriber.

        The subscriber is invoked immediately with the current value if one
        is present, then with every subsequent update (``None`` when the
        value gets cleared).
        """
        if subscriber is None:
            raise TypeError("subscriber cannot be None")
        with self._notify_lock:
            with self._lock:
                state, value = self._check_open()
                self._subscribers.append(subscriber)
            if state is ReloadableState.OPEN_PRESENT:
                subscriber(value)
        return self

    def if_present_and_register(self, subscriber: Subscriber) -> 'Reloadable[T]':
        """Same as ``register``; kept for readability at call sites."""
        return self.register(subscriber)

    def unregister(self, subscriber: Subscriber) -> bool:
        """Remove a subscriber. Returns True if it was registered."""
        with self._lock:
            try:
                self._subscribers.remove(subscriber)
                return True
            except ValueError:
                return False

    def on_clear(self, action: Callable[[], None]) -> 'Reloadable[T]':
        """Register an action run whenever the value goes from present to absent."""
        with self._lock:
            self._check_open()
            self._clear_actions.append(action)
        return self

    def on_close(self, action: Callable[[], None]) -> 'Reloadable[T]':
        """Register an action run once, in registration order, during ``close``."""
        with self._lock:
            self._check_open()
            self._close_actions.append(action)
        return self

    # ------------------------------------------------------------------
    # derived views
    # ------------------------------------------------------------------
    def map(self, mapper: Callable[[T], R]) -> 'Reloadable[R]':
        """
        Create a derived reloadable holding ``mapper(value)``.

        The derived instance follows every future update of this one. Closing
        it detaches it from this instance; closing this instance closes it.
        """
        return self._derive(
            lambda value: None if value is None else mapper(value),
            f"{self.name}.map" if self.name else "map"
        )

    def filter(self, predicate: Callable[[T], bool]) -> 'Reloadable[T]':
        """
        Create a derived reloadable that treats values failing ``predicate``
        as absent.
        """
        return self._derive(
            lambda value: value if value is not None and predicate(value) else None,
            f"{self.name}.filter" if self.name else "filter"
        )

    def _derive(self, transform: Callable[[Optional[T]], Any], name: str) -> 'Reloadable':
        self._check_open()
        child: Reloadable = Reloadable(name=name)

        def forward(value: Optional[T]) -> None:
            if not child.is_closed:
                child.update(transform(value))

        self.register(forward)
        child.on_close(lambda: self.unregister(forward))
        self.on_close(child.close)
        return child

    # ------------------------------------------------------------------
    # driver side
    # ------------------------------------------------------------------
    def update(self, value: Optional[T]) -> None:
        """
        Swap in a new value (``None`` clears it) and notify subscribers.

        Every subscriber is notified on each call that sets a value; an
        empty reloadable that is cleared again stays silent.

        Raises:
            ReloadableClosedError: if the reloadable is closed
        """
        with self._notify_lock:
            with self._lock:
                previous_state, _ = self._check_open()
                if value is None:
                    if previous_state is ReloadableState.OPEN_EMPTY:
                        return
                    self._current = (ReloadableState.OPEN_EMPTY, None)
                else:
                    self._current = (ReloadableState.OPEN_PRESENT, value)
                subscribers = list(self._subscribers)
                clear_actions = list(self._clear_actions) if value is None else []

            for subscriber in subscribers:
                try:
                    subscriber(value)
                except Exception as e:
                    logger.error(f"{self!r}: error in subscriber {subscriber!r}: {e}", exc_info=True)

            if clear_actions:
                _run_actions(self, "clear", clear_actions)

    def close(self) -> None:
        """
        Close the reloadable. Idempotent.

        Runs ``on_close`` actions in registration order; afterwards every
        other operation raises ReloadableClosedError.
        """
        with self._lock:
            if self._current[0] is ReloadableState.CLOSED:
                return
            self._current = (ReloadableState.CLOSED, None)
            close_actions = list(self._close_actions)
            self._close_actions.clear()
            self._clear_actions.clear()
            self._subscribers.clear()

        logger.debug(f"{self!r} closed")
        _run_actions(self, "close", close_actions)

    def __enter__(self) -> 'Reloadable[T]':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def __repr__(self) -> str:
        label = f" {self.name!r}" if self.name else ""
        return f"<Reloadable{label} {self._current[0].value}>"
