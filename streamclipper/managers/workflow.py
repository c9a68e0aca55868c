"""
Workflow Controller for StreamClipper.

Turns user actions into backend commands and folds their results, and the
backend's progress events, into the stores. Every command is a single
attempt: failures are reported once and retrying is left to the user.
"""

from typing import List

from PyQt6.QtCore import QObject, pyqtSignal

from .base import BaseManager
from .error_handling import ErrorContext, ErrorSeverity
from .highlights import clip_exports
from ..models import AnalyzeProgressEvent, AnalyzeResult, ExportProgressEvent, ExportResult
from ..workers import ImmediateTaskRunner


VIDEO_FILTERS = [{'name': 'Video', 'extensions': ['mp4', 'mkv', 'mov', 'webm', 'flv', 'avi']}]
CHAT_FILTERS = [{'name': 'Chat log', 'extensions': ['json', 'txt']}]


class WorkflowSignals(QObject):
    """Signals for workflow completion, for consumers that wait on results."""

    analysis_finished = pyqtSignal(bool, str)  # success, message
    export_finished = pyqtSignal(bool, str)  # all clips succeeded, message
    preview_ready = pyqtSignal(int, str)  # highlight_id, preview path


class WorkflowController(BaseManager):
    """
    Coordinates the backend with the state stores.

    Handles:
    - Loading video and chat sources
    - Running and cancelling analysis, folding progress into the project
    - Exporting the selection, folding progress into the highlights
    - Loading, saving and resetting settings
    - Refreshing, activating and deactivating the license
    """

    def __init__(self, dependency_container, backend=None, runner=None):
        super().__init__(dependency_container)

        self.signals = WorkflowSignals()

        self.backend = backend
        self.runner = runner if runner is not None else ImmediateTaskRunner()

        self.project = None
        self.highlights = None
        self.settings = None
        self.license = None
        self.notifications = None
        self.events = None
        self.error_handler = None

    def initialize(self) -> bool:
        try:
            if self.backend is None:
                self.backend = self.container.get_service('backend')
            self.project = self.container.get_service('project')
            self.highlights = self.container.get_service('highlights')
            self.settings = self.container.get_service('settings')
            self.license = self.container.get_service('license')
            self.notifications = self.container.get_service('notifications')
            if self.container.has_service('error_handler'):
                self.error_handler = self.container.get_service('error_handler')

            if self.container.has_service('backend_events'):
                self.events = self.container.get_service('backend_events')
                self.events.analyze_progress.connect(self.on_analyze_progress)
                self.events.export_progress.connect(self.on_export_progress)

            self._mark_initialized()
            return True

        except Exception as e:
            self.handle_error(e, "WorkflowController initialization")
            return False

    def cleanup(self) -> None:
        self._mark_cleanup_started()
        if self.events is not None:
            try:
                self.events.analyze_progress.disconnect(self.on_analyze_progress)
                self.events.export_progress.disconnect(self.on_export_progress)
            except TypeError:
                pass
        self.runner.cleanup()

    # ========================================
    # Error reporting
    # ========================================

    def _report(self, error: Exception, operation: str,
                severity: ErrorSeverity = ErrorSeverity.ERROR) -> str:
        """Log the failure and show it once through the notification queue."""
        self._error_count += 1
        if self.error_handler is not None:
            return self.error_handler.handle_error(
                error, ErrorContext(self.__class__.__name__, operation), severity)

        message = f"{operation.capitalize()} failed: {error}"
        self.logger.error(message, exc_info=error)
        self.notifications.error(message)
        return message

    # ========================================
    # Sources
    # ========================================

    def load_video(self, path: str) -> None:
        self.logger.info(f"Probing video: {path}")
        self.runner.submit(
            lambda: self.backend.get_video_info(path),
            lambda info: self.project.set_video(path, info),
            lambda e: self._on_source_failed(e, "loading video"),
            name="get_video_info",
        )

    def load_chat(self, path: str) -> None:
        self.logger.info(f"Probing chat log: {path}")
        self.runner.submit(
            lambda: self.backend.get_chat_info(path),
            lambda info: self.project.set_chat(path, info),
            lambda e: self._on_source_failed(e, "loading chat"),
            name="get_chat_info",
        )

    def pick_video(self) -> None:
        self.runner.submit(
            lambda: self.backend.pick_file(VIDEO_FILTERS),
            lambda path: self.load_video(path) if path else None,
            lambda e: self._report(e, "picking a video"),
            name="pick_file",
        )

    def pick_chat(self) -> None:
        self.runner.submit(
            lambda: self.backend.pick_file(CHAT_FILTERS),
            lambda path: self.load_chat(path) if path else None,
            lambda e: self._report(e, "picking a chat log"),
            name="pick_file",
        )

    def _on_source_failed(self, error: Exception, operation: str) -> None:
        # Previously loaded sources stay; only the error is recorded
        message = self._report(error, operation)
        self.project.set_error(message)

    # ========================================
    # Analysis
    # ========================================

    def analyze(self) -> bool:
        """
        Start analyzing the loaded video.

        Returns:
            False if there is no video or an analysis is already running
        """
        project = self.project.state
        if project.video_path is None:
            self.notifications.warning("Load a video before analyzing.")
            return False
        if not self.project.can_analyze():
            self.notifications.info("An analysis is already running.")
            return False

        video_path = project.video_path
        chat_path = project.chat_path
        request = self.settings.to_analyze_settings()

        self.project.start_analysis()

        self.runner.submit(
            lambda: self.backend.analyze_video(video_path, chat_path, request),
            self._on_analysis_done,
            self._on_analysis_failed,
            name="analyze_video",
        )
        return True

    def _on_analysis_done(self, result: AnalyzeResult) -> None:
        self.highlights.set_highlights(result.highlights, result.waveform_data,
                                       result.total_duration_secs)
        self.project.finish_analysis()

        count = len(result.highlights)
        message = f"Found {count} highlight{'s' if count != 1 else ''}"
        if count:
            self.notifications.success(message)
        else:
            self.notifications.info("No highlights found. Try adjusting the detection settings.")
        self.signals.analysis_finished.emit(True, message)

    def _on_analysis_failed(self, error: Exception) -> None:
        message = self._report(error, "analysis")
        self.project.set_error(message)
        self.signals.analysis_finished.emit(False, message)

    def cancel_analysis(self) -> None:
        self.runner.submit(
            self.backend.cancel_analysis,
            lambda _: self.logger.info("Analysis cancellation requested"),
            lambda e: self._report(e, "cancelling analysis", ErrorSeverity.WARNING),
            name="cancel_analysis",
        )

    def on_analyze_progress(self, event: AnalyzeProgressEvent) -> None:
        try:
            self.project.update_progress(event.stage, event.progress)
        except ValueError:
            self.logger.warning(f"Unknown analysis stage from backend: {event.stage}")

    # ========================================
    # Export
    # ========================================

    def export_selected(self) -> bool:
        """
        Export the selected highlights.

        Returns:
            False if nothing could be started
        """
        project = self.project.state
        clips = clip_exports(self.highlights.state)
        if project.video_path is None:
            self.notifications.warning("Load a video before exporting.")
            return False
        if not clips:
            self.notifications.warning("Select at least one highlight to export.")
            return False
        if self.highlights.state.is_exporting:
            self.notifications.info("An export is already running.")
            return False

        video_path = project.video_path
        # Watermark is a display-side decision from the cached license; the
        # backend applies its own entitlement check
        request = self.settings.to_export_settings(add_watermark=not self.license.is_pro)

        self.highlights.start_export(len(clips))
        self.runner.submit(
            lambda: self.backend.export_clips(video_path, clips, request),
            self._on_export_done,
            self._on_export_failed,
            name="export_clips",
        )
        return True

    def _on_export_done(self, results: List[ExportResult]) -> None:
        self.highlights.finish_export()

        failed = [r for r in results if not r.success]
        succeeded = len(results) - len(failed)
        for result in failed:
            self.logger.warning(f"Clip {result.highlight_id} failed: {result.error}")

        if not failed:
            message = f"Exported {succeeded} clip{'s' if succeeded != 1 else ''}"
            self.notifications.success(message)
        elif succeeded:
            message = f"Exported {succeeded} of {len(results)} clips; {len(failed)} failed"
            self.notifications.warning(message)
        else:
            message = "Export failed"
            self.notifications.error(message)

        self.signals.export_finished.emit(not failed, message)

    def _on_export_failed(self, error: Exception) -> None:
        self.highlights.finish_export()
        message = self._report(error, "export")
        self.signals.export_finished.emit(False, message)

    def cancel_export(self) -> None:
        self.runner.submit(
            self.backend.cancel_export,
            lambda _: self.logger.info("Export cancellation requested"),
            lambda e: self._report(e, "cancelling export", ErrorSeverity.WARNING),
            name="cancel_export",
        )

    def on_export_progress(self, event: ExportProgressEvent) -> None:
        self.highlights.update_export_progress(event.current, event.percent)

    def preview(self, highlight_id: int) -> bool:
        video_path = self.project.state.video_path
        target = next((h for h in self.highlights.state.items if h.id == highlight_id), None)
        if video_path is None or target is None:
            return False

        self.runner.submit(
            lambda: self.backend.preview_clip(video_path, target.start_secs, target.end_secs),
            lambda path: self._on_preview_ready(highlight_id, path),
            lambda e: self._report(e, "generating preview"),
            name="preview_clip",
        )
        return True

    def _on_preview_ready(self, highlight_id: int, path: str) -> None:
        self.notifications.open_preview_modal()
        self.signals.preview_ready.emit(highlight_id, path)

    def open_output_folder(self) -> None:
        folder = self.settings.state.output_folder
        if not folder:
            self.notifications.warning("No output folder is set.")
            return
        self.runner.submit(
            lambda: self.backend.open_folder(folder),
            lambda _: None,
            lambda e: self._report(e, "opening the output folder"),
            name="open_folder",
        )

    def cleanup_temp_files(self) -> None:
        self.runner.submit(
            self.backend.cleanup_temp_files,
            lambda count: self.logger.info(f"Removed {count} temporary files"),
            lambda e: self._report(e, "cleaning temporary files", ErrorSeverity.WARNING),
            name="cleanup_temp_files",
        )

    # ========================================
    # Settings
    # ========================================

    def load_settings(self) -> None:
        self.runner.submit(
            self.backend.get_settings,
            self._on_settings_loaded,
            lambda e: self._report(e, "loading settings"),
            name="get_settings",
        )

    def _on_settings_loaded(self, settings) -> None:
        self.settings.load_settings(settings)
        if not self.settings.state.output_folder:
            self.runner.submit(
                self.backend.get_default_output_folder,
                self.settings.set_output_folder,
                lambda e: self._report(e, "finding the default output folder", ErrorSeverity.WARNING),
                name="get_default_output_folder",
            )

    def save_settings(self) -> None:
        document = self.settings.to_settings()
        self.runner.submit(
            lambda: self.backend.save_settings(document),
            lambda _: self.notifications.success("Settings saved"),
            lambda e: self._report(e, "saving settings"),
            name="save_settings",
        )

    def reset_settings(self) -> None:
        self.runner.submit(
            self.backend.reset_settings,
            self._on_settings_reset,
            lambda e: self._report(e, "resetting settings"),
            name="reset_settings",
        )

    def _on_settings_reset(self, settings) -> None:
        self.settings.load_settings(settings)
        self.notifications.info("Settings reset to defaults")

    def choose_output_folder(self) -> None:
        self.runner.submit(
            self.backend.pick_folder,
            lambda folder: self.settings.set_output_folder(folder) if folder else None,
            lambda e: self._report(e, "choosing an output folder"),
            name="pick_folder",
        )

    # ========================================
    # License
    # ========================================

    def refresh_license(self) -> None:
        self.license.start_validating()
        self.runner.submit(
            self.backend.get_license_status,
            self.license.set_license,
            self._on_license_failed("checking the license"),
            name="get_license_status",
        )

    def activate_license(self, key: str) -> bool:
        key = key.strip()
        if not key:
            self.notifications.warning("Enter a license key.")
            return False

        self.license.start_validating()
        self.runner.submit(
            lambda: self.backend.activate_license(key),
            self._on_license_activated,
            self._on_license_failed("activating the license"),
            name="activate_license",
        )
        return True

    def _on_license_activated(self, info) -> None:
        self.license.set_license(info)
        if info.is_pro:
            self.notifications.success("StreamClipper Pro activated")
            self.notifications.close_license_modal()
        else:
            self.notifications.warning("That license key was not accepted.")

    def deactivate_license(self) -> None:
        self.runner.submit(
            self.backend.deactivate_license,
            self._on_license_deactivated,
            lambda e: self._report(e, "deactivating the license"),
            name="deactivate_license",
        )

    def _on_license_deactivated(self, _result) -> None:
        self.license.clear_license()
        self.notifications.info("License deactivated")

    def _on_license_failed(self, operation: str):
        def on_error(error: Exception) -> None:
            self.license.stop_validating()
            self._report(error, operation)
        return on_error
