"""
Settings Manager for StreamClipper.

Keeps detection and export settings in a flat snapshot for UI binding and
maps it to and from the backend's nested wire shape. The mapping is total
in both directions: every field loaded by ``load_settings`` is reproduced
unchanged by ``to_analyze_settings`` / ``to_export_settings``.

Persistence belongs to the backend; this manager never touches disk.
"""

from typing import Any, Dict, Iterable, Union

from .base import BaseStore
from ..models import (
    AnalyzeSettings,
    ExportSettings,
    OutputFormat,
    OutputResolution,
    Settings,
)
from ..state import SettingsState


def load_settings_state(wire: Union[Settings, Dict[str, Any]]) -> SettingsState:
    """Flatten a wire ``Settings`` document. Missing fields take defaults."""
    if not isinstance(wire, Settings):
        wire = Settings.from_dict(wire)

    detection = wire.detection
    export = wire.export
    return SettingsState(
        version=wire.version,
        audio_sensitivity=detection.audio_sensitivity,
        audio_min_duration=detection.audio_min_duration,
        audio_merge_gap=detection.audio_merge_gap,
        chat_rate_multiplier=detection.chat_rate_multiplier,
        chat_window_size=detection.chat_window_size,
        chat_keywords=tuple(detection.chat_keywords),
        audio_weight=detection.audio_weight,
        chat_weight=detection.chat_weight,
        combo_bonus=detection.combo_bonus,
        output_folder=export.output_folder,
        output_format=export.format,
        output_resolution=export.resolution,
        padding_before=export.padding_before,
        padding_after=export.padding_after,
        vertical_crop=export.vertical_crop,
        fade_effect=export.fade_effect,
    )


def to_analyze_settings(state: SettingsState) -> AnalyzeSettings:
    """Build the analyze request. Any clip cap is applied by the backend."""
    return AnalyzeSettings(
        audio_sensitivity=state.audio_sensitivity,
        audio_min_duration=state.audio_min_duration,
        audio_merge_gap=state.audio_merge_gap,
        chat_rate_multiplier=state.chat_rate_multiplier,
        chat_window_size=state.chat_window_size,
        chat_keywords=tuple(state.chat_keywords),
        audio_weight=state.audio_weight,
        chat_weight=state.chat_weight,
        combo_bonus=state.combo_bonus,
        max_clips=None,
    )


def to_export_settings(state: SettingsState, add_watermark: bool) -> ExportSettings:
    """Build the export request. ``add_watermark`` is decided by the caller."""
    return ExportSettings(
        output_folder=state.output_folder,
        format=state.output_format,
        resolution=state.output_resolution,
        padding_before=state.padding_before,
        padding_after=state.padding_after,
        vertical_crop=state.vertical_crop,
        fade_effect=state.fade_effect,
        add_watermark=add_watermark,
    )


def to_settings(state: SettingsState) -> Settings:
    """Full versioned document for ``save_settings``."""
    return Settings(
        version=state.version,
        detection=to_analyze_settings(state),
        export=to_export_settings(state, add_watermark=False),
    )


class SettingsManager(BaseStore[SettingsState]):
    """Manages detection and export settings."""

    def __init__(self, dependency_container=None):
        super().__init__(SettingsState(), dependency_container)

    # ========================================
    # Wire mapping
    # ========================================

    def load_settings(self, wire: Union[Settings, Dict[str, Any]]) -> None:
        self._set_state(load_settings_state(wire))
        self.logger.debug("Settings loaded from backend")

    def to_analyze_settings(self, state: SettingsState = None) -> AnalyzeSettings:
        return to_analyze_settings(state if state is not None else self.state)

    def to_export_settings(self, state: SettingsState = None,
                           add_watermark: bool = False) -> ExportSettings:
        return to_export_settings(state if state is not None else self.state, add_watermark)

    def to_settings(self, state: SettingsState = None) -> Settings:
        return to_settings(state if state is not None else self.state)

    # ========================================
    # Detection setters
    # ========================================

    def set_audio_sensitivity(self, value: float) -> None:
        self._update(audio_sensitivity=value)

    def set_audio_min_duration(self, value: float) -> None:
        self._update(audio_min_duration=value)

    def set_audio_merge_gap(self, value: float) -> None:
        self._update(audio_merge_gap=value)

    def set_chat_rate_multiplier(self, value: float) -> None:
        self._update(chat_rate_multiplier=value)

    def set_chat_window_size(self, value: float) -> None:
        self._update(chat_window_size=value)

    def set_chat_keywords(self, keywords: Iterable[str]) -> None:
        self._update(chat_keywords=tuple(keywords))

    def set_audio_weight(self, value: float) -> None:
        # Weights are independent; they are not normalized against each other
        self._update(audio_weight=value)

    def set_chat_weight(self, value: float) -> None:
        self._update(chat_weight=value)

    def set_combo_bonus(self, value: float) -> None:
        self._update(combo_bonus=value)

    # ========================================
    # Export setters
    # ========================================

    def set_output_folder(self, folder: str) -> None:
        self._update(output_folder=folder)

    def set_output_format(self, output_format: Union[OutputFormat, str]) -> None:
        self._update(output_format=OutputFormat(output_format))

    def set_output_resolution(self, resolution: Union[OutputResolution, str]) -> None:
        self._update(output_resolution=OutputResolution(resolution))

    def set_padding_before(self, value: float) -> None:
        self._update(padding_before=value)

    def set_padding_after(self, value: float) -> None:
        self._update(padding_after=value)

    def set_vertical_crop(self, value: bool) -> None:
        self._update(vertical_crop=bool(value))

    def set_fade_effect(self, value: bool) -> None:
        self._update(fade_effect=bool(value))
