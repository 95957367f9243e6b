"""
Change notification for the stores.

A store keeps one state snapshot. Mutations build a new snapshot and hand it
to _set(); listeners are called with (new, old) for the whole state, or with
(new_slice, old_slice) when they subscribed with a selector and that slice
actually changed. Handing back the same snapshot object is a no-op.
"""
import logging
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

Listener = Callable[[Any, Any], None]
Selector = Callable[[Any], Any]


class StoreDisposed(RuntimeError):
    """Raised when subscribing to a store after dispose()."""
    pass


class ObservableState:
    """Holds a state snapshot and notifies subscribers when it is replaced."""

    def __init__(self, initial: Any):
        self._state = initial
        self._listeners: Dict[int, Tuple[Listener, Optional[Selector]]] = {}
        self._next_token = 0
        self._disposed = False

    @property
    def state(self) -> Any:
        return self._state

    @property
    def disposed(self) -> bool:
        return self._disposed

    def subscribe(self, listener: Listener, selector: Optional[Selector] = None) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        if self._disposed:
            raise StoreDisposed(f"{type(self).__name__} has been disposed")
        token = self._next_token
        self._next_token += 1
        self._listeners[token] = (listener, selector)

        def unsubscribe() -> None:
            self._listeners.pop(token, None)

        return unsubscribe

    def _set(self, new_state: Any) -> bool:
        """Replace the snapshot. Returns False when nothing changed."""
        old_state = self._state
        if new_state is old_state:
            return False
        self._state = new_state
        self._emit(new_state, old_state)
        return True

    def _emit(self, new_state: Any, old_state: Any) -> None:
        """Call every listener whose slice changed."""
        for listener, selector in list(self._listeners.values()):
            try:
                if selector is None:
                    listener(new_state, old_state)
                    continue
                new_slice = selector(new_state)
                old_slice = selector(old_state)
                if new_slice is old_slice or new_slice == old_slice:
                    continue
                listener(new_slice, old_slice)
            except Exception as e:
                logger.error(f"Error in {type(self).__name__} listener: {e}", exc_info=True)

    def dispose(self) -> None:
        """Drop all listeners; further subscribe() calls raise StoreDisposed."""
        self._listeners.clear()
        self._disposed = True
