"""
Backend client for StreamClipper.

Analysis, encoding and settings persistence run in a separate backend
process. This module wraps its command contract in typed methods and decodes
its push events. The transport underneath is a black box: any object with
``invoke(command, args) -> result`` will do. ``HttpTransport`` is the one
shipped here.

No call is ever retried; a failed command raises ``BackendError`` and the
caller decides what the user sees.
"""

import logging
from typing import Any, Dict, List, Optional

import requests
from requests.exceptions import RequestException
from PyQt6.QtCore import QObject, pyqtSignal, pyqtSlot

from .models import (
    AnalyzeProgressEvent,
    AnalyzeResult,
    AnalyzeSettings,
    ChatInfo,
    ClipExport,
    ExportProgressEvent,
    ExportResult,
    ExportSettings,
    LicenseInfo,
    Settings,
    VideoInfo,
    WireFormatError,
    clip_exports_to_wire,
)

logger = logging.getLogger(__name__)

ANALYZE_PROGRESS_CHANNEL = 'analyze-progress'
EXPORT_PROGRESS_CHANNEL = 'export-progress'


class BackendError(Exception):
    """A backend command was rejected or could not be delivered."""

    def __init__(self, command: str, message: str):
        super().__init__(f"{command}: {message}")
        self.command = command
        self.message = message


class HttpTransport:
    """Invokes backend commands as JSON POSTs to ``<base_url>/invoke/<command>``."""

    # Commands that run for the length of an analysis or encode
    LONG_COMMANDS = frozenset({'analyze_video', 'export_clips', 'preview_clip'})

    def __init__(self, base_url: str = "http://127.0.0.1:7420", timeout: float = 30.0,
                 long_timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None):
        """
        Args:
            base_url: Base URL of the backend's command endpoint
            timeout: Per-request timeout in seconds
            long_timeout: Timeout for LONG_COMMANDS, None waits indefinitely
            session: Optional preconfigured requests session
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.long_timeout = long_timeout
        self.session = session or requests.Session()

    def invoke(self, command: str, args: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}/invoke/{command}"
        timeout = self.long_timeout if command in self.LONG_COMMANDS else self.timeout
        try:
            response = self.session.post(url, json={'args': args or {}},
                                         timeout=timeout)
        except RequestException as e:
            raise BackendError(command, f"backend unreachable ({e})")

        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and body.get('error'):
            raise BackendError(command, str(body['error']))
        if not response.ok:
            raise BackendError(command, f"HTTP {response.status_code}")
        if not isinstance(body, dict) or 'result' not in body:
            raise BackendError(command, "malformed response")

        return body['result']

    def close(self) -> None:
        self.session.close()


class BackendClient:
    """Typed wrappers around the backend command contract."""

    def __init__(self, transport):
        self.transport = transport

    def _invoke(self, command: str, args: Optional[Dict[str, Any]] = None) -> Any:
        logger.debug(f"invoke {command}")
        try:
            return self.transport.invoke(command, args or {})
        except BackendError:
            raise
        except Exception as e:
            raise BackendError(command, str(e)) from e

    def _decode(self, command: str, decoder, payload: Any):
        try:
            return decoder(payload)
        except (WireFormatError, ValueError, TypeError, KeyError) as e:
            raise BackendError(command, f"unexpected response: {e}") from e

    # ========================================
    # Analyze
    # ========================================

    def get_video_info(self, path: str) -> VideoInfo:
        return self._decode('get_video_info', VideoInfo.from_dict,
                            self._invoke('get_video_info', {'path': path}))

    def get_chat_info(self, path: str) -> ChatInfo:
        return self._decode('get_chat_info', ChatInfo.from_dict,
                            self._invoke('get_chat_info', {'path': path}))

    def analyze_video(self, video_path: str, chat_path: Optional[str],
                      settings: AnalyzeSettings) -> AnalyzeResult:
        result = self._invoke('analyze_video', {
            'videoPath': video_path,
            'chatPath': chat_path,
            'settings': settings.to_dict(),
        })
        return self._decode('analyze_video', AnalyzeResult.from_dict, result)

    def cancel_analysis(self) -> None:
        self._invoke('cancel_analysis')

    # ========================================
    # Export
    # ========================================

    def export_clips(self, video_path: str, clips: List[ClipExport],
                     settings: ExportSettings) -> List[ExportResult]:
        result = self._invoke('export_clips', {
            'videoPath': video_path,
            'clips': clip_exports_to_wire(clips),
            'settings': settings.to_dict(),
        })
        return self._decode('export_clips',
                            lambda items: [ExportResult.from_dict(r) for r in items], result)

    def preview_clip(self, video_path: str, start_secs: float, end_secs: float) -> str:
        return self._invoke('preview_clip', {
            'videoPath': video_path,
            'startSecs': start_secs,
            'endSecs': end_secs,
        })

    def cancel_export(self) -> None:
        self._invoke('cancel_export')

    def open_folder(self, path: str) -> None:
        self._invoke('open_folder', {'path': path})

    def cleanup_temp_files(self) -> int:
        return int(self._invoke('cleanup_temp_files') or 0)

    # ========================================
    # Config
    # ========================================

    def get_settings(self) -> Settings:
        return self._decode('get_settings', Settings.from_dict, self._invoke('get_settings'))

    def save_settings(self, settings: Settings) -> None:
        self._invoke('save_settings', {'settings': settings.to_dict()})

    def reset_settings(self) -> Settings:
        return self._decode('reset_settings', Settings.from_dict, self._invoke('reset_settings'))

    def get_default_output_folder(self) -> str:
        return self._invoke('get_default_output_folder')

    def pick_folder(self) -> Optional[str]:
        return self._invoke('pick_folder')

    def pick_file(self, filters: List[Dict[str, Any]]) -> Optional[str]:
        return self._invoke('pick_file', {'filters': filters})

    # ========================================
    # License
    # ========================================

    def get_license_status(self) -> LicenseInfo:
        return self._decode('get_license_status', LicenseInfo.from_dict,
                            self._invoke('get_license_status'))

    def activate_license(self, key: str) -> LicenseInfo:
        return self._decode('activate_license', LicenseInfo.from_dict,
                            self._invoke('activate_license', {'key': key}))

    def deactivate_license(self) -> None:
        self._invoke('deactivate_license')


class BackendEvents(QObject):
    """Decodes backend push events into typed Qt signals."""

    analyze_progress = pyqtSignal(object)  # AnalyzeProgressEvent
    export_progress = pyqtSignal(object)  # ExportProgressEvent

    @pyqtSlot(str, object, result=bool)
    def dispatch(self, channel: str, payload: Dict[str, Any]) -> bool:
        """
        Deliver one event from the transport.

        Returns:
            True if the event was decoded and emitted
        """
        try:
            if channel == ANALYZE_PROGRESS_CHANNEL:
                self.analyze_progress.emit(AnalyzeProgressEvent.from_dict(payload))
            elif channel == EXPORT_PROGRESS_CHANNEL:
                self.export_progress.emit(ExportProgressEvent.from_dict(payload))
            else:
                logger.warning(f"Dropping event on unknown channel: {channel}")
                return False
        except (WireFormatError, ValueError, TypeError) as e:
            logger.warning(f"Dropping malformed {channel} event: {e}")
            return False
        return True
