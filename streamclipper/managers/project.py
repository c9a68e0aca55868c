"""
Project Manager for StreamClipper.

Holds the loaded video/chat sources and the analysis lifecycle:

    idle -> extracting -> analyzing_audio -> analyzing_chat -> scoring -> complete

with an orthogonal error message that can be set from any stage. Stage order
is reported by the backend and is not enforced here.
"""

import dataclasses
from typing import Union

from .base import BaseStore
from ..models import ChatInfo, VideoInfo
from ..state import AnalyzeStage, ProjectState


class ProjectManager(BaseStore[ProjectState]):
    """Manages source descriptors and analysis progress."""

    def __init__(self, dependency_container=None):
        super().__init__(ProjectState(), dependency_container)

    # ========================================
    # Sources
    # ========================================

    def set_video(self, path: str, info: VideoInfo) -> None:
        self._update(video_path=path, video_info=info, error=None)
        self.logger.info(f"Video loaded: {path}")

    def remove_video(self) -> None:
        self._update(video_path=None, video_info=None, error=None)

    def set_chat(self, path: str, info: ChatInfo) -> None:
        self._update(chat_path=path, chat_info=info, error=None)
        self.logger.info(f"Chat loaded: {path}")

    def remove_chat(self) -> None:
        self._update(chat_path=None, chat_info=None, error=None)

    # ========================================
    # Analysis lifecycle
    # ========================================

    def start_analysis(self) -> None:
        """Begin tracking a new analysis, discarding any previous progress."""
        if self.state.is_analyzing:
            self.logger.debug("start_analysis while analyzing, overwriting progress")
        self._update(
            is_analyzing=True,
            analyze_progress=0,
            analyze_stage=AnalyzeStage.EXTRACTING,
            error=None,
        )

    def update_progress(self, stage: Union[AnalyzeStage, str], progress: float) -> None:
        """Apply a progress report. Ignored unless an analysis is running."""
        stage = AnalyzeStage(stage)

        def transform(current: ProjectState) -> ProjectState:
            if not current.is_analyzing:
                self.logger.debug(f"Ignoring progress {stage.value}:{progress}, not analyzing")
                return current
            return dataclasses.replace(current, analyze_progress=progress, analyze_stage=stage)

        self._apply(transform)

    def finish_analysis(self) -> None:
        self._update(
            is_analyzing=False,
            analyze_progress=100,
            analyze_stage=AnalyzeStage.COMPLETE,
        )
        self.logger.info("Analysis complete")

    def set_error(self, message: str) -> None:
        """Stop analyzing and keep the message. Sources and stage are retained."""
        self._update(is_analyzing=False, error=message)
        self.logger.warning(f"Project error: {message}")

    # ========================================
    # Derived values
    # ========================================

    def has_video(self) -> bool:
        return self.state.video_path is not None

    def can_analyze(self) -> bool:
        current = self.state
        return current.video_path is not None and not current.is_analyzing
