"""
Notification Manager for StreamClipper.

Owns the transient toast queue and the modal visibility flags. Toasts with a
positive duration expire on a single-shot timer; each timer handle is kept
against its toast id until it fires or is cancelled, so a toast is removed
at most once whichever happens first.
"""

import dataclasses
import itertools
from typing import Callable, Dict, Optional, Set, Union

from PyQt6.QtCore import QTimer

from .base import BaseStore
from ..state import Toast, ToastSeverity, UIState


DEFAULT_TOAST_DURATION_MS = 5000

DEFAULT_DURATIONS = {
    ToastSeverity.SUCCESS: 5000,
    ToastSeverity.WARNING: 5000,
    ToastSeverity.INFO: 4000,
    ToastSeverity.ERROR: 7000,
}


class QtTimerHandle:
    def __init__(self, timer: QTimer, owner: Set[QTimer]):
        self._timer = timer
        self._owner = owner

    def cancel(self) -> None:
        self._timer.stop()
        self._owner.discard(self._timer)


class QtTimerScheduler:
    """Schedules callbacks on single-shot QTimers in the Qt event loop."""

    def __init__(self):
        # Fired timers are released on the next loop pass, never inside their own timeout
        self._timers: Set[QTimer] = set()

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> QtTimerHandle:
        timer = QTimer()
        timer.setSingleShot(True)
        timer.timeout.connect(callback)
        timer.timeout.connect(lambda: QTimer.singleShot(0, lambda: self._timers.discard(timer)))
        self._timers.add(timer)
        timer.start(delay_ms)
        return QtTimerHandle(timer, self._timers)


class NotificationManager(BaseStore[UIState]):
    """
    Manages toasts and modal flags.

    Handles:
    - Showing toasts with process-unique, increasing ids
    - Timed expiry and manual dismissal
    - Severity shortcuts sharing a single scheduling path
    - Independent open/close flags for each modal
    """

    _id_counter = itertools.count(1)

    def __init__(self, dependency_container=None, scheduler=None,
                 durations: Optional[Dict[ToastSeverity, int]] = None):
        super().__init__(UIState(), dependency_container)

        self.scheduler = scheduler if scheduler is not None else QtTimerScheduler()
        self.durations = dict(DEFAULT_DURATIONS)
        if durations:
            self.durations.update({ToastSeverity(k): v for k, v in durations.items()})

        # toast id -> pending expiry handle
        self._expiry_handles: Dict[int, object] = {}

    def cleanup(self) -> None:
        self._cancel_all_expiries()
        super().cleanup()

    def reset(self) -> None:
        self._cancel_all_expiries()
        super().reset()

    def _cancel_all_expiries(self) -> None:
        for handle in self._expiry_handles.values():
            handle.cancel()
        self._expiry_handles.clear()

    # ========================================
    # Toasts
    # ========================================

    def show(self, severity: Union[ToastSeverity, str], message: str,
             duration_ms: int = DEFAULT_TOAST_DURATION_MS) -> int:
        """
        Append a toast and schedule its expiry.

        Args:
            severity: Toast severity
            message: Text to display
            duration_ms: Display time; zero or less keeps it until dismissed

        Returns:
            The new toast id
        """
        toast = Toast(
            id=next(self._id_counter),
            severity=ToastSeverity(severity),
            message=message,
            duration_ms=duration_ms,
        )
        self._apply(lambda current: dataclasses.replace(current, toasts=current.toasts + (toast,)))

        if duration_ms > 0:
            self._expiry_handles[toast.id] = self.scheduler.schedule(
                duration_ms, lambda toast_id=toast.id: self._expire(toast_id))

        self.logger.debug(f"Toast {toast.id} [{toast.severity.value}]: {message}")
        return toast.id

    def dismiss(self, toast_id: int) -> None:
        """Remove a toast now. Unknown or already removed ids are ignored."""
        handle = self._expiry_handles.pop(toast_id, None)
        if handle is not None:
            handle.cancel()
        self._remove(toast_id)

    def clear(self) -> None:
        for toast in self.state.toasts:
            self.dismiss(toast.id)

    def success(self, message: str) -> int:
        return self.show(ToastSeverity.SUCCESS, message, self.durations[ToastSeverity.SUCCESS])

    def warning(self, message: str) -> int:
        return self.show(ToastSeverity.WARNING, message, self.durations[ToastSeverity.WARNING])

    def info(self, message: str) -> int:
        return self.show(ToastSeverity.INFO, message, self.durations[ToastSeverity.INFO])

    def error(self, message: str) -> int:
        return self.show(ToastSeverity.ERROR, message, self.durations[ToastSeverity.ERROR])

    def pending_expiry_count(self) -> int:
        return len(self._expiry_handles)

    def _expire(self, toast_id: int) -> None:
        # A dismissed toast has no handle left; its late expiry does nothing
        if self._expiry_handles.pop(toast_id, None) is None:
            return
        self._remove(toast_id)

    def _remove(self, toast_id: int) -> None:
        def transform(current: UIState) -> UIState:
            if not any(t.id == toast_id for t in current.toasts):
                return current
            return dataclasses.replace(
                current, toasts=tuple(t for t in current.toasts if t.id != toast_id))

        self._apply(transform)

    # ========================================
    # Modals
    # ========================================

    def open_settings_modal(self) -> None:
        self._update(settings_modal_open=True)

    def close_settings_modal(self) -> None:
        self._update(settings_modal_open=False)

    def open_license_modal(self) -> None:
        self._update(license_modal_open=True)

    def close_license_modal(self) -> None:
        self._update(license_modal_open=False)

    def open_preview_modal(self) -> None:
        self._update(preview_modal_open=True)

    def close_preview_modal(self) -> None:
        self._update(preview_modal_open=False)

    def open_keyword_editor(self) -> None:
        self._update(keyword_editor_open=True)

    def close_keyword_editor(self) -> None:
        self._update(keyword_editor_open=False)
