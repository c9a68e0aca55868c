"""
Base Manager Classes

Every StreamClipper component is a manager with an initialize/cleanup
lifecycle, a class-named logger and a route to the shared ErrorHandler.
The five state components additionally derive from BaseStore, which holds
one immutable snapshot and publishes each replacement.
"""

from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Callable, Deque, Generic, List, Optional, Tuple, TypeVar
import dataclasses
import logging
import threading
from datetime import datetime

from PyQt6.QtCore import QObject, pyqtSignal


S = TypeVar('S')

Listener = Callable[[Any], None]


class BaseManager(ABC):
    """
    Lifecycle and error reporting shared by all managers.

    Subclasses implement ``initialize`` and ``cleanup``; everything else is
    optional. Collaborators are looked up by name in the dependency container.
    """

    def __init__(self, dependency_container=None):
        self.container = dependency_container
        self.logger = logging.getLogger(self.__class__.__name__)

        self._initialized = False
        self._initialization_time: Optional[datetime] = None
        self._is_cleaning_up = False
        self._error_count = 0

    @abstractmethod
    def initialize(self) -> bool:
        """Acquire collaborators and resources. Returns False on failure."""

    @abstractmethod
    def cleanup(self) -> None:
        """Release resources; called once when the container is cleared."""

    def is_initialized(self) -> bool:
        return self._initialized

    def get_initialization_time(self) -> Optional[datetime]:
        return self._initialization_time

    def handle_error(self, error: Exception, context: str,
                     user_friendly_message: Optional[str] = None) -> None:
        """
        Log ``error`` and pass it to the registered ErrorHandler, if any.

        Args:
            error: The exception that occurred
            context: What the manager was doing, e.g. "loading settings"
            user_friendly_message: Toast text to use instead of the generated one
        """
        self._error_count += 1
        self.logger.error(f"{context} failed: {error}", exc_info=error,
                          extra={'manager': self.__class__.__name__,
                                 'error_count': self._error_count})

        if not (self.container and self.container.has_service('error_handler')):
            return

        from .error_handling import ErrorContext, ErrorSeverity
        try:
            self.container.get_service('error_handler').handle_error(
                error, ErrorContext(component=self.__class__.__name__, operation=context),
                ErrorSeverity.ERROR, user_message=user_friendly_message)
        except Exception as handler_error:
            # Reporting must never raise into the caller
            self.logger.critical(f"ErrorHandler failed: {handler_error}", exc_info=True)

    def _mark_initialized(self) -> None:
        self._initialized = True
        self._initialization_time = datetime.now()
        self.logger.info(f"{self.__class__.__name__} ready")

    def _mark_cleanup_started(self) -> None:
        self._is_cleaning_up = True
        self.logger.debug(f"{self.__class__.__name__} cleaning up")

    def get_error_count(self) -> int:
        return self._error_count

    def reset_error_count(self) -> None:
        self._error_count = 0


class StoreSignals(QObject):
    """Signals for store communication with Qt consumers."""

    state_changed = pyqtSignal(object)  # new snapshot


class BaseStore(BaseManager, Generic[S]):
    """
    Manager holding one immutable snapshot.

    Mutations build a new snapshot from the current one and swap it in under
    a single-writer lock. Listeners run after the swap, outside the lock, so
    they always see a complete state.
    """

    def __init__(self, initial_state: S, dependency_container=None):
        super().__init__(dependency_container)

        self.signals = StoreSignals()

        self._initial_state = initial_state
        self._state = initial_state
        self._lock = threading.Lock()
        self._listeners: List[Listener] = []
        self._pending: Deque[Tuple[Listener, S]] = deque()
        self._notifying = False

    def initialize(self) -> bool:
        self._mark_initialized()
        return True

    def cleanup(self) -> None:
        self._mark_cleanup_started()
        self._listeners.clear()

    # ========================================
    # Snapshot access
    # ========================================

    @property
    def state(self) -> S:
        return self._state

    def get_snapshot(self) -> S:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener and call it with the current snapshot.

        Returns:
            A callable that removes the listener. Calling it again does nothing.
        """
        with self._lock:
            self._listeners.append(listener)
            snapshot = self._state

        active = [True]

        def unsubscribe() -> None:
            if not active[0]:
                return
            active[0] = False
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        listener(snapshot)
        return unsubscribe

    def listener_count(self) -> int:
        return len(self._listeners)

    # ========================================
    # Mutation
    # ========================================

    def _apply(self, transform: Callable[[S], S]) -> S:
        """
        Compute and swap in a new snapshot in one locked step, then notify.

        A transform that returns the current snapshot itself leaves the store
        untouched and notifies nobody. A change made while listeners are being
        notified is queued behind the pending deliveries, so every observer
        sees the snapshots in the order they were applied and ends on the
        latest one.
        """
        with self._lock:
            current = self._state
            new_state = transform(current)
            if new_state is current:
                return current
            self._state = new_state
            self._pending.extend((listener, new_state) for listener in self._listeners)
            self._pending.append((self.signals.state_changed.emit, new_state))
            if self._notifying:
                return new_state
            self._notifying = True

        self._drain_notifications()
        return new_state

    def _drain_notifications(self) -> None:
        while True:
            with self._lock:
                if not self._pending:
                    self._notifying = False
                    return
                listener, snapshot = self._pending.popleft()
            try:
                listener(snapshot)
            except Exception as e:
                self.logger.error(f"State listener {listener!r} failed: {e}", exc_info=True)

    def _set_state(self, new_state: S) -> S:
        return self._apply(lambda _: new_state)

    def _update(self, **changes) -> S:
        """Replace the named fields of the current snapshot."""
        return self._apply(lambda current: dataclasses.replace(current, **changes))

    def reset(self) -> None:
        """Return to the initial snapshot."""
        self._set_state(self._initial_state)
        self.logger.debug(f"{self.__class__.__name__} reset")
