"""
Wire records exchanged with the StreamClipper backend.

Every record mirrors the backend's snake_cased JSON schema and converts with
``from_dict`` / ``to_dict``. Records are frozen; the stores hold them by
reference inside their snapshots.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class WireFormatError(ValueError):
    """Raised when a backend payload does not match the expected schema."""


def _require(data: Dict[str, Any], key: str, record: str) -> Any:
    try:
        return data[key]
    except (KeyError, TypeError):
        raise WireFormatError(f"{record} payload is missing '{key}'") from None


def _enum(enum_type, value: Any, record: str):
    try:
        return enum_type(value)
    except ValueError:
        raise WireFormatError(f"{record} payload has unknown {enum_type.__name__} {value!r}") from None


class ChatFormat(str, Enum):
    TWITCH_JSON = "TwitchJson"
    YOUTUBE_JSON = "YouTubeJson"
    GENERIC_TXT = "GenericTxt"
    UNKNOWN = "Unknown"


class HighlightType(str, Enum):
    AUDIO = "Audio"
    CHAT = "Chat"
    COMBO = "Combo"


class OutputFormat(str, Enum):
    MP4 = "Mp4"
    WEBM = "WebM"


class OutputResolution(str, Enum):
    R720P = "R720p"
    R1080P = "R1080p"
    R1440P = "R1440p"
    R4K = "R4K"
    SOURCE = "Source"

    def to_height(self) -> Optional[int]:
        return {
            OutputResolution.R720P: 720,
            OutputResolution.R1080P: 1080,
            OutputResolution.R1440P: 1440,
            OutputResolution.R4K: 2160,
        }.get(self)


# ========================================
# Sources
# ========================================

@dataclass(frozen=True)
class VideoInfo:
    """Probe result for a source video file."""
    path: str
    filename: str
    duration_secs: float
    width: int
    height: int
    fps: float
    codec: str
    file_size_bytes: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VideoInfo':
        return cls(
            path=_require(data, 'path', 'VideoInfo'),
            filename=_require(data, 'filename', 'VideoInfo'),
            duration_secs=float(_require(data, 'duration_secs', 'VideoInfo')),
            width=int(_require(data, 'width', 'VideoInfo')),
            height=int(_require(data, 'height', 'VideoInfo')),
            fps=float(_require(data, 'fps', 'VideoInfo')),
            codec=_require(data, 'codec', 'VideoInfo'),
            file_size_bytes=int(_require(data, 'file_size_bytes', 'VideoInfo')),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'path': self.path,
            'filename': self.filename,
            'duration_secs': self.duration_secs,
            'width': self.width,
            'height': self.height,
            'fps': self.fps,
            'codec': self.codec,
            'file_size_bytes': self.file_size_bytes,
        }


@dataclass(frozen=True)
class ChatInfo:
    """Probe result for a chat log file."""
    path: str
    format: ChatFormat
    total_messages: int
    duration_secs: float
    avg_rate_per_min: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ChatInfo':
        return cls(
            path=_require(data, 'path', 'ChatInfo'),
            format=_enum(ChatFormat, _require(data, 'format', 'ChatInfo'), 'ChatInfo'),
            total_messages=int(_require(data, 'total_messages', 'ChatInfo')),
            duration_secs=float(_require(data, 'duration_secs', 'ChatInfo')),
            avg_rate_per_min=float(_require(data, 'avg_rate_per_min', 'ChatInfo')),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'path': self.path,
            'format': self.format.value,
            'total_messages': self.total_messages,
            'duration_secs': self.duration_secs,
            'avg_rate_per_min': self.avg_rate_per_min,
        }


# ========================================
# Highlights
# ========================================

@dataclass(frozen=True)
class Highlight:
    """A scored time interval detected by the backend."""
    id: int
    start_secs: float
    end_secs: float
    duration_secs: float
    highlight_type: HighlightType
    score: float
    audio_score: Optional[float] = None
    chat_score: Optional[float] = None
    reasons: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Highlight':
        return cls(
            id=int(_require(data, 'id', 'Highlight')),
            start_secs=float(_require(data, 'start_secs', 'Highlight')),
            end_secs=float(_require(data, 'end_secs', 'Highlight')),
            duration_secs=float(_require(data, 'duration_secs', 'Highlight')),
            highlight_type=_enum(HighlightType, _require(data, 'highlight_type', 'Highlight'), 'Highlight'),
            score=float(_require(data, 'score', 'Highlight')),
            audio_score=data.get('audio_score'),
            chat_score=data.get('chat_score'),
            reasons=tuple(data.get('reasons') or ()),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'start_secs': self.start_secs,
            'end_secs': self.end_secs,
            'duration_secs': self.duration_secs,
            'highlight_type': self.highlight_type.value,
            'score': self.score,
            'audio_score': self.audio_score,
            'chat_score': self.chat_score,
            'reasons': list(self.reasons),
        }


@dataclass(frozen=True)
class AnalyzeResult:
    highlights: Tuple[Highlight, ...]
    waveform_data: Tuple[float, ...]
    total_duration_secs: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AnalyzeResult':
        return cls(
            highlights=tuple(Highlight.from_dict(h) for h in _require(data, 'highlights', 'AnalyzeResult')),
            waveform_data=tuple(float(v) for v in data.get('waveform_data') or ()),
            total_duration_secs=float(data.get('total_duration_secs', 0.0)),
        )


# ========================================
# Settings
# ========================================

DEFAULT_CHAT_KEYWORDS: Tuple[str, ...] = (
    'POG', 'POGGERS', 'LETS GO', 'OMG', 'WTF',
    'CLIP IT', 'GG', 'HOLY', 'INSANE', 'CRAZY',
)

SETTINGS_VERSION = 1


@dataclass(frozen=True)
class AnalyzeSettings:
    """Detection parameters sent with ``analyze_video``."""
    audio_sensitivity: float = 1.5
    audio_min_duration: float = 2.0
    audio_merge_gap: float = 3.0
    chat_rate_multiplier: float = 3.0
    chat_window_size: float = 5.0
    chat_keywords: Tuple[str, ...] = DEFAULT_CHAT_KEYWORDS
    audio_weight: float = 0.6
    chat_weight: float = 0.4
    combo_bonus: float = 1.5
    max_clips: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AnalyzeSettings':
        defaults = cls()
        keywords = data.get('chat_keywords')
        return cls(
            audio_sensitivity=data.get('audio_sensitivity', defaults.audio_sensitivity),
            audio_min_duration=data.get('audio_min_duration', defaults.audio_min_duration),
            audio_merge_gap=data.get('audio_merge_gap', defaults.audio_merge_gap),
            chat_rate_multiplier=data.get('chat_rate_multiplier', defaults.chat_rate_multiplier),
            chat_window_size=data.get('chat_window_size', defaults.chat_window_size),
            chat_keywords=tuple(keywords) if keywords is not None else defaults.chat_keywords,
            audio_weight=data.get('audio_weight', defaults.audio_weight),
            chat_weight=data.get('chat_weight', defaults.chat_weight),
            combo_bonus=data.get('combo_bonus', defaults.combo_bonus),
            max_clips=data.get('max_clips'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'audio_sensitivity': self.audio_sensitivity,
            'audio_min_duration': self.audio_min_duration,
            'audio_merge_gap': self.audio_merge_gap,
            'chat_rate_multiplier': self.chat_rate_multiplier,
            'chat_window_size': self.chat_window_size,
            'chat_keywords': list(self.chat_keywords),
            'audio_weight': self.audio_weight,
            'chat_weight': self.chat_weight,
            'combo_bonus': self.combo_bonus,
            'max_clips': self.max_clips,
        }


@dataclass(frozen=True)
class ExportSettings:
    """Encoding parameters sent with ``export_clips``."""
    output_folder: str = ''
    format: OutputFormat = OutputFormat.MP4
    resolution: OutputResolution = OutputResolution.R1080P
    padding_before: float = 3.0
    padding_after: float = 2.0
    vertical_crop: bool = False
    fade_effect: bool = False
    add_watermark: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExportSettings':
        defaults = cls()
        return cls(
            output_folder=data.get('output_folder', defaults.output_folder),
            format=_enum(OutputFormat, data.get('format', defaults.format), 'ExportSettings'),
            resolution=_enum(OutputResolution, data.get('resolution', defaults.resolution), 'ExportSettings'),
            padding_before=data.get('padding_before', defaults.padding_before),
            padding_after=data.get('padding_after', defaults.padding_after),
            vertical_crop=bool(data.get('vertical_crop', defaults.vertical_crop)),
            fade_effect=bool(data.get('fade_effect', defaults.fade_effect)),
            add_watermark=bool(data.get('add_watermark', defaults.add_watermark)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'output_folder': self.output_folder,
            'format': self.format.value,
            'resolution': self.resolution.value,
            'padding_before': self.padding_before,
            'padding_after': self.padding_after,
            'vertical_crop': self.vertical_crop,
            'fade_effect': self.fade_effect,
            'add_watermark': self.add_watermark,
        }


@dataclass(frozen=True)
class Settings:
    """Versioned settings document persisted by the backend."""
    version: int = SETTINGS_VERSION
    detection: AnalyzeSettings = field(default_factory=AnalyzeSettings)
    export: ExportSettings = field(default_factory=ExportSettings)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Settings':
        if not isinstance(data, dict):
            raise WireFormatError("Settings payload must be an object")
        return cls(
            version=int(data.get('version', SETTINGS_VERSION)),
            detection=AnalyzeSettings.from_dict(data.get('detection') or {}),
            export=ExportSettings.from_dict(data.get('export') or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'version': self.version,
            'detection': self.detection.to_dict(),
            'export': self.export.to_dict(),
        }


# ========================================
# Export
# ========================================

@dataclass(frozen=True)
class ClipExport:
    highlight_id: int
    start_secs: float
    end_secs: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'highlight_id': self.highlight_id,
            'start_secs': self.start_secs,
            'end_secs': self.end_secs,
        }


@dataclass(frozen=True)
class ExportResult:
    """Outcome of a single clip export; failures do not abort the batch."""
    highlight_id: int
    output_path: str
    success: bool
    error: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExportResult':
        return cls(
            highlight_id=int(_require(data, 'highlight_id', 'ExportResult')),
            output_path=data.get('output_path', ''),
            success=bool(_require(data, 'success', 'ExportResult')),
            error=data.get('error'),
        )


# ========================================
# License
# ========================================

@dataclass(frozen=True)
class LicenseInfo:
    is_pro: bool
    license_key: Optional[str]
    activated_at: Optional[str]
    machine_id: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LicenseInfo':
        return cls(
            is_pro=bool(_require(data, 'is_pro', 'LicenseInfo')),
            license_key=data.get('license_key'),
            activated_at=data.get('activated_at'),
            machine_id=data.get('machine_id', ''),
        )


# ========================================
# Push events
# ========================================

@dataclass(frozen=True)
class AnalyzeProgressEvent:
    stage: str
    progress: float
    message: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AnalyzeProgressEvent':
        return cls(
            stage=_require(data, 'stage', 'AnalyzeProgressEvent'),
            progress=float(_require(data, 'progress', 'AnalyzeProgressEvent')),
            message=data.get('message', ''),
        )


@dataclass(frozen=True)
class ExportProgressEvent:
    current: int
    total: int
    percent: float
    message: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExportProgressEvent':
        return cls(
            current=int(_require(data, 'current', 'ExportProgressEvent')),
            total=int(_require(data, 'total', 'ExportProgressEvent')),
            percent=float(_require(data, 'percent', 'ExportProgressEvent')),
            message=data.get('message', ''),
        )


def clip_exports_to_wire(clips: List[ClipExport]) -> List[Dict[str, Any]]:
    return [clip.to_dict() for clip in clips]
