import json
import logging
from typing import Any, Callable, Dict, Optional, Tuple

import requests
from PyQt6.QtCore import QObject, QThread, pyqtSignal, pyqtSlot

logger = logging.getLogger(__name__)

SuccessCallback = Callable[[Any], None]
ErrorCallback = Callable[[Exception], None]


class TaskWorker(QObject):
    """Runs one blocking backend call off the UI thread."""
    finished = pyqtSignal(int, bool, object)  # task_id, success, result or exception

    def __init__(self, task_id: int, fn: Callable[[], Any], parent=None):
        super().__init__(parent)
        self.task_id = task_id
        self.fn = fn

    def run(self):
        try:
            result = self.fn()
        except Exception as e:
            self.finished.emit(self.task_id, False, e)
        else:
            self.finished.emit(self.task_id, True, result)


class ImmediateTaskRunner:
    """Runs tasks inline. Used by tests and by callers without an event loop."""

    def submit(self, fn: Callable[[], Any], on_success: SuccessCallback,
               on_error: ErrorCallback, name: str = "task") -> None:
        try:
            result = fn()
        except Exception as e:
            on_error(e)
        else:
            on_success(result)

    def cleanup(self) -> None:
        pass


class ThreadedTaskRunner(QObject):
    """
    Runs each task on its own QThread.

    Completion is delivered through a queued signal, so callbacks execute on
    the thread that owns the runner (the Qt main thread), the same context as
    user-triggered mutations.
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self._next_id = 0
        self._tasks: Dict[int, Tuple[QThread, TaskWorker, SuccessCallback, ErrorCallback, str]] = {}

    def submit(self, fn: Callable[[], Any], on_success: SuccessCallback,
               on_error: ErrorCallback, name: str = "task") -> None:
        self._next_id += 1
        task_id = self._next_id

        worker = TaskWorker(task_id, fn)
        thread = QThread()
        worker.moveToThread(thread)

        thread.started.connect(worker.run)
        worker.finished.connect(self._on_task_finished)

        self._tasks[task_id] = (thread, worker, on_success, on_error, name)
        logger.debug(f"Starting task {task_id} ({name})")
        thread.start()

    def active_count(self) -> int:
        return len(self._tasks)

    @pyqtSlot(int, bool, object)
    def _on_task_finished(self, task_id: int, success: bool, payload: object):
        entry = self._tasks.pop(task_id, None)
        if entry is None:
            return
        thread, _worker, on_success, on_error, name = entry

        thread.quit()
        thread.wait()
        logger.debug(f"Task {task_id} ({name}) finished, success={success}")

        if success:
            on_success(payload)
        else:
            on_error(payload)

    def cleanup(self):
        """Wait for running tasks; their results are discarded."""
        for thread, _worker, _ok, _err, name in list(self._tasks.values()):
            thread.quit()
            if not thread.wait(5000):
                logger.warning(f"Task {name} did not stop within 5 seconds")
        self._tasks.clear()


class EventStreamWorker(QObject):
    """
    Reads the backend's server-sent event stream and re-emits each event.

    The stream is a sequence of ``event: <channel>`` / ``data: <json>`` blocks
    separated by blank lines. No reconnection is attempted when it ends.
    """
    event_received = pyqtSignal(str, object)  # channel, payload
    finished = pyqtSignal(bool, str)  # clean stop, message

    def __init__(self, url: str, session: Optional[requests.Session] = None, parent=None):
        super().__init__(parent)
        self.url = url
        self.session = session or requests.Session()
        self._is_running = True
        self._response = None

    def run(self):
        channel = None
        data_lines = []
        try:
            with self.session.get(self.url, stream=True, timeout=(10, None)) as response:
                self._response = response
                response.raise_for_status()
                for raw in response.iter_lines(decode_unicode=True):
                    if not self._is_running:
                        break
                    line = raw or ''
                    if line.startswith('event:'):
                        channel = line[len('event:'):].strip()
                    elif line.startswith('data:'):
                        data_lines.append(line[len('data:'):].strip())
                    elif not line:
                        self._emit_event(channel, data_lines)
                        channel, data_lines = None, []

            self.finished.emit(True, "Event stream closed")

        except Exception as e:
            if self._is_running:
                logger.error(f"Event stream failed: {e}")
                self.finished.emit(False, f"Event stream failed: {e}")
            else:
                self.finished.emit(True, "Event stream stopped")

        finally:
            self._is_running = False
            self._response = None

    def _emit_event(self, channel: Optional[str], data_lines):
        if not channel or not data_lines:
            return
        try:
            payload = json.loads("\n".join(data_lines))
        except ValueError:
            logger.warning(f"Ignoring undecodable {channel} event")
            return
        self.event_received.emit(channel, payload)

    def stop(self):
        self._is_running = False
        if self._response is not None:
            self._response.close()
