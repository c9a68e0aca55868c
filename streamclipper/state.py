from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .models import (
    ChatInfo,
    DEFAULT_CHAT_KEYWORDS,
    Highlight,
    OutputFormat,
    OutputResolution,
    SETTINGS_VERSION,
    VideoInfo,
)


class AnalyzeStage(str, Enum):
    """Stages reported by the backend while a video is analyzed."""
    IDLE = "idle"
    EXTRACTING = "extracting"
    ANALYZING_AUDIO = "analyzing_audio"
    ANALYZING_CHAT = "analyzing_chat"
    SCORING = "scoring"
    COMPLETE = "complete"


class ToastSeverity(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class ProjectState:
    """Loaded sources and the analysis lifecycle."""
    video_path: Optional[str] = None
    video_info: Optional[VideoInfo] = None
    chat_path: Optional[str] = None
    chat_info: Optional[ChatInfo] = None
    is_analyzing: bool = False
    analyze_progress: float = 0
    analyze_stage: AnalyzeStage = AnalyzeStage.IDLE
    error: Optional[str] = None


@dataclass(frozen=True)
class HighlightsState:
    """Detected highlights, the user's selection and export progress."""
    items: tuple[Highlight, ...] = ()
    selected: frozenset[int] = frozenset()
    waveform_data: tuple[float, ...] = ()
    total_duration_secs: float = 0.0

    # Only meaningful while is_exporting is True
    is_exporting: bool = False
    export_progress: float = 0
    export_current_clip: int = 0
    export_total_clips: int = 0


@dataclass(frozen=True)
class SettingsState:
    """Flattened detection and export settings bound by the UI."""
    version: int = SETTINGS_VERSION

    # Detection
    audio_sensitivity: float = 1.5
    audio_min_duration: float = 2.0
    audio_merge_gap: float = 3.0
    chat_rate_multiplier: float = 3.0
    chat_window_size: float = 5.0
    chat_keywords: tuple[str, ...] = DEFAULT_CHAT_KEYWORDS
    audio_weight: float = 0.6
    chat_weight: float = 0.4
    combo_bonus: float = 1.5

    # Export
    output_folder: str = ''
    output_format: OutputFormat = OutputFormat.MP4
    output_resolution: OutputResolution = OutputResolution.R1080P
    padding_before: float = 3.0
    padding_after: float = 2.0
    vertical_crop: bool = False
    fade_effect: bool = False


@dataclass(frozen=True)
class LicenseState:
    """Cached entitlement. Display only, the backend is authoritative."""
    is_pro: bool = False
    license_key: Optional[str] = None
    activated_at: Optional[str] = None
    is_validating: bool = False


@dataclass(frozen=True)
class Toast:
    id: int
    severity: ToastSeverity
    message: str
    duration_ms: int


@dataclass(frozen=True)
class UIState:
    """Visible toasts and modal flags."""
    toasts: tuple[Toast, ...] = ()
    settings_modal_open: bool = False
    license_modal_open: bool = False
    preview_modal_open: bool = False
    keyword_editor_open: bool = False
