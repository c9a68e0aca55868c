"""
Application assembly for StreamClipper.

Builds every manager explicitly, registers it in a DependencyContainer and
wires the backend's push events into the workflow. Nothing here is a
module-level singleton; tests and the command line each build their own.
"""

import logging
from pathlib import Path
from typing import Optional

from PyQt6.QtCore import QThread

from .backend import BackendClient, BackendEvents, HttpTransport
from .managers import (
    ConfigurationManager,
    DependencyContainer,
    ErrorHandler,
    HighlightsManager,
    LicenseManager,
    LoggingManager,
    NotificationManager,
    ProjectManager,
    SettingsManager,
    WorkflowController,
)
from .workers import EventStreamWorker

logger = logging.getLogger(__name__)


class ClipperApp:
    """A fully wired set of stores, backend client and workflow controller."""

    def __init__(self, transport=None, runner=None, scheduler=None,
                 base_dir: Optional[Path] = None, configure_logging: bool = False,
                 backend_url: Optional[str] = None):
        """
        Args:
            transport: Backend transport; an HttpTransport from configuration if omitted
            runner: Task runner for backend calls; runs inline if omitted
            scheduler: Toast expiry scheduler; Qt timers if omitted
            base_dir: Configuration root, ~/.streamclipper by default
            configure_logging: Install the rotating log handlers
            backend_url: Backend address overriding the configured one
        """
        self.container = DependencyContainer()

        self.configuration = ConfigurationManager(self.container, base_dir=base_dir)
        self.container.register_service('configuration', self.configuration)
        self.configuration.initialize()

        if configure_logging:
            self.container.register_service('logging', LoggingManager(self.container))

        if transport is None:
            transport = HttpTransport(
                backend_url or self.configuration.get_setting('backend.url'),
                timeout=self.configuration.get_setting('backend.timeout_seconds'),
            )
        self.transport = transport
        self.backend = BackendClient(transport)
        self.events = BackendEvents()

        self.notifications = NotificationManager(
            self.container, scheduler=scheduler,
            durations=self.configuration.get_toast_durations())
        self.error_handler = ErrorHandler(self.notifications)
        self.project = ProjectManager(self.container)
        self.highlights = HighlightsManager(self.container)
        self.settings = SettingsManager(self.container)
        self.license = LicenseManager(self.container)

        self.container.register_service('backend', self.backend)
        self.container.register_service('backend_events', self.events)
        self.container.register_service('notifications', self.notifications)
        self.container.register_service('error_handler', self.error_handler)
        self.container.register_service('project', self.project)
        self.container.register_service('highlights', self.highlights)
        self.container.register_service('settings', self.settings)
        self.container.register_service('license', self.license)

        self.workflow = WorkflowController(self.container, runner=runner)
        self.container.register_service('workflow', self.workflow)

        self._event_thread: Optional[QThread] = None
        self._event_worker: Optional[EventStreamWorker] = None

    def initialize(self) -> bool:
        return self.container.initialize_all()

    def start_event_stream(self) -> None:
        """Listen to the HTTP backend's event stream on a worker thread."""
        if not isinstance(self.transport, HttpTransport) or self._event_thread is not None:
            return

        url = self.transport.base_url + self.configuration.get_setting('backend.events_path')
        self._event_worker = EventStreamWorker(url)
        self._event_thread = QThread()
        self._event_worker.moveToThread(self._event_thread)

        self._event_thread.started.connect(self._event_worker.run)
        self._event_worker.event_received.connect(self.events.dispatch)
        self._event_worker.finished.connect(self._on_event_stream_finished)
        self._event_thread.start()
        logger.info(f"Listening for backend events at {url}")

    def _on_event_stream_finished(self, clean: bool, message: str) -> None:
        if clean:
            logger.info(message)
        else:
            self.notifications.warning("Lost connection to backend progress updates.")
            logger.warning(message)

    def stop_event_stream(self) -> None:
        if self._event_worker is not None:
            self._event_worker.stop()
        if self._event_thread is not None:
            self._event_thread.quit()
            self._event_thread.wait(5000)
        self._event_thread = None
        self._event_worker = None

    def shutdown(self) -> None:
        self.stop_event_stream()
        self.container.clear()
        if isinstance(self.transport, HttpTransport):
            self.transport.close()
