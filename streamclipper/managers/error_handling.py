"""
Error Handling Framework

Turns failures from the backend, the stores and the wire decoders into one
logged record and one toast. No error here blocks later actions and nothing
is retried automatically; the user repeats the action if they want to.
"""

from collections import Counter, deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Deque, Dict, NamedTuple, Optional, Tuple
from datetime import datetime
from PyQt6.QtCore import QObject, pyqtSignal
import logging

from ..backend import BackendError
from ..models import WireFormatError
from .highlights import InvalidClipTimingError


class ErrorSeverity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass(frozen=True)
class ErrorContext:
    """Where a failure happened: the reporting component and what it was doing."""
    component: str
    operation: str
    user_action: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def error_id(self) -> str:
        return f"{self.component}_{self.operation}_{int(self.timestamp.timestamp())}"

    def __str__(self) -> str:
        text = f"[{self.component}] {self.operation}"
        if self.user_action:
            text += f" (while {self.user_action})"
        return f"{text} at {self.timestamp:%H:%M:%S}"


class ErrorRecord(NamedTuple):
    error: Exception
    context: ErrorContext
    severity: ErrorSeverity
    message: str


ErrorCallback = Callable[[Exception, ErrorContext, ErrorSeverity], None]

# Toast shortcut used for each severity; CRITICAL falls back to error
_TOAST_FOR_SEVERITY = {
    ErrorSeverity.INFO: 'info',
    ErrorSeverity.WARNING: 'warning',
}


class ErrorHandler(QObject):
    """
    Single reporting path for user-visible failures.

    Provides:
    - Logging at the level matching the severity
    - Toast text derived from the exception type
    - A short history of recent failures for diagnostics
    - Per-operation callbacks for components that want to react
    """

    error_occurred = pyqtSignal(str, str, str)  # severity, title, message
    critical_error = pyqtSignal(str)  # message

    HISTORY_SIZE = 10

    def __init__(self, notifications=None):
        """
        Args:
            notifications: NotificationManager that shows the toasts, optional
        """
        super().__init__()
        self.logger = logging.getLogger(__name__)
        self.notifications = notifications
        self.error_count = 0
        self._history: Deque[ErrorRecord] = deque(maxlen=self.HISTORY_SIZE)
        self._callbacks: Dict[Tuple[str, str], ErrorCallback] = {}

    def handle_error(self, error: Exception, context: ErrorContext,
                     severity: ErrorSeverity = ErrorSeverity.ERROR,
                     user_message: Optional[str] = None) -> str:
        """
        Log a failure, show it once and run any callback for its operation.

        Args:
            error: The exception that occurred
            context: Where it happened
            severity: How loudly to report it
            user_message: Toast text to use instead of the generated one

        Returns:
            The message shown to the user
        """
        message = user_message or self.get_user_friendly_message(error, context)
        self.error_count += 1
        self._history.append(ErrorRecord(error, context, severity, message))

        self._log(error, context, severity)

        if severity == ErrorSeverity.CRITICAL:
            self.critical_error.emit(message)
        else:
            self.error_occurred.emit(severity.value, f"{context.component} Error", message)

        self._notify(severity, message)
        self._run_callback(error, context, severity)
        return message

    def get_user_friendly_message(self, error: Exception, context: ErrorContext) -> str:
        """Toast text for an exception raised during ``context.operation``."""
        operation = context.operation
        if isinstance(error, InvalidClipTimingError):
            return "Clip end must be after its start."
        if isinstance(error, BackendError):
            return f"{operation.capitalize()} failed: {error.message}"
        if isinstance(error, WireFormatError):
            return f"Unexpected response during {operation}. Please update StreamClipper."
        if isinstance(error, FileNotFoundError):
            return f"File not found for {operation}. It may have been moved or deleted."
        if isinstance(error, PermissionError):
            return f"Permission denied while {operation}. Please check file permissions."
        if isinstance(error, TimeoutError):
            return f"Operation timed out: {operation}. Please try again."
        if isinstance(error, ConnectionError):
            return f"Could not reach the StreamClipper backend during {operation}."
        return f"An error occurred during {operation}: {error}"

    def _log(self, error: Exception, context: ErrorContext, severity: ErrorSeverity) -> None:
        text = f"{context} | {type(error).__name__}: {error}"
        if severity == ErrorSeverity.CRITICAL:
            self.logger.critical(text, exc_info=error)
        elif severity == ErrorSeverity.ERROR:
            self.logger.error(text, exc_info=error)
        elif severity == ErrorSeverity.WARNING:
            self.logger.warning(text)
        else:
            self.logger.info(text)

    def _notify(self, severity: ErrorSeverity, message: str) -> None:
        if self.notifications is None:
            return
        show = getattr(self.notifications, _TOAST_FOR_SEVERITY.get(severity, 'error'))
        try:
            show(message)
        except Exception as notify_error:
            self.logger.error(f"Could not show error toast: {notify_error}", exc_info=True)

    def _run_callback(self, error: Exception, context: ErrorContext,
                      severity: ErrorSeverity) -> None:
        callback = self._callbacks.get((context.component, context.operation))
        if callback is None:
            return
        try:
            callback(error, context, severity)
        except Exception as callback_error:
            self.logger.error(f"Callback for {context.component}.{context.operation} failed: "
                              f"{callback_error}")

    # ========================================
    # Callbacks and diagnostics
    # ========================================

    def register_error_callback(self, component: str, operation: str,
                                callback: ErrorCallback) -> None:
        self._callbacks[(component, operation)] = callback
        self.logger.debug(f"Registered error callback for {component}.{operation}")

    def unregister_error_callback(self, component: str, operation: str) -> bool:
        return self._callbacks.pop((component, operation), None) is not None

    def get_error_statistics(self) -> Dict[str, Any]:
        return {
            'total_errors': self.error_count,
            'recent_errors_count': len(self._history),
            'error_types': dict(Counter(type(r.error).__name__ for r in self._history)),
            'components_with_errors': dict(Counter(r.context.component for r in self._history)),
            'last_error_time': self._history[-1].context.timestamp if self._history else None,
        }

    def recent_errors(self) -> Tuple[ErrorRecord, ...]:
        return tuple(self._history)

    def clear_error_history(self) -> None:
        self._history.clear()
        self.error_count = 0

    def cleanup(self) -> None:
        self._callbacks.clear()
