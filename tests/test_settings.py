import pytest

from streamclipper.managers.settings import SettingsManager, load_settings_state
from streamclipper.models import (
    DEFAULT_CHAT_KEYWORDS,
    OutputFormat,
    OutputResolution,
    Settings,
    WireFormatError,
)
from streamclipper.state import SettingsState

from .conftest import SETTINGS_WIRE


@pytest.fixture
def settings():
    return SettingsManager()


def test_defaults():
    state = SettingsState()

    assert state.audio_sensitivity == 1.5
    assert state.chat_keywords == DEFAULT_CHAT_KEYWORDS
    assert (state.audio_weight, state.chat_weight) == (0.6, 0.4)
    assert state.output_format is OutputFormat.MP4
    assert state.output_resolution is OutputResolution.R1080P
    assert (state.padding_before, state.padding_after) == (3.0, 2.0)
    assert state.output_folder == ''


def test_load_flattens_wire_document(settings):
    settings.load_settings(SETTINGS_WIRE)

    state = settings.state
    assert state.audio_sensitivity == 2.25
    assert state.chat_keywords == ('KEKW', 'POG')
    assert state.output_folder == '/clips'
    assert state.output_format is OutputFormat.WEBM
    assert state.output_resolution is OutputResolution.R1440P
    assert state.vertical_crop is True


def test_round_trip_reproduces_every_field(settings):
    settings.load_settings(SETTINGS_WIRE)

    detection = settings.to_analyze_settings().to_dict()
    export = settings.to_export_settings(add_watermark=False).to_dict()

    assert detection == SETTINGS_WIRE['detection']
    assert export == SETTINGS_WIRE['export']
    assert settings.to_settings().to_dict() == SETTINGS_WIRE


def test_missing_fields_take_defaults():
    state = load_settings_state({'detection': {'audio_sensitivity': 3.0}})

    assert state.audio_sensitivity == 3.0
    assert state.audio_min_duration == 2.0
    assert state.chat_keywords == DEFAULT_CHAT_KEYWORDS
    assert state.output_format is OutputFormat.MP4
    assert state.version == 1


def test_load_accepts_decoded_settings(settings):
    settings.load_settings(Settings.from_dict(SETTINGS_WIRE))

    assert settings.state.combo_bonus == 2.0


def test_non_object_payload_is_rejected(settings):
    with pytest.raises(WireFormatError):
        settings.load_settings(['not', 'a', 'document'])


def test_max_clips_is_never_sent(settings):
    wire = dict(SETTINGS_WIRE, detection=dict(SETTINGS_WIRE['detection'], max_clips=10))
    settings.load_settings(wire)

    assert settings.to_analyze_settings().max_clips is None


@pytest.mark.parametrize("watermark", [True, False])
def test_watermark_is_passed_through(settings, watermark):
    assert settings.to_export_settings(add_watermark=watermark).add_watermark is watermark


def test_saved_document_never_carries_watermark(settings):
    assert settings.to_settings().export.add_watermark is False


def test_weights_are_not_normalized(settings):
    settings.set_audio_weight(0.9)
    settings.set_chat_weight(0.9)

    request = settings.to_analyze_settings()
    assert (request.audio_weight, request.chat_weight) == (0.9, 0.9)


def test_setters_update_one_field_each(settings):
    settings.set_audio_sensitivity(2.0)
    settings.set_audio_min_duration(1.0)
    settings.set_audio_merge_gap(5.0)
    settings.set_chat_rate_multiplier(4.0)
    settings.set_chat_window_size(8.0)
    settings.set_chat_keywords(['LUL'])
    settings.set_combo_bonus(1.2)
    settings.set_output_folder('/out')
    settings.set_padding_before(0.5)
    settings.set_padding_after(1.0)
    settings.set_vertical_crop(True)
    settings.set_fade_effect(True)

    state = settings.state
    assert state.audio_sensitivity == 2.0
    assert state.audio_min_duration == 1.0
    assert state.audio_merge_gap == 5.0
    assert state.chat_rate_multiplier == 4.0
    assert state.chat_window_size == 8.0
    assert state.chat_keywords == ('LUL',)
    assert state.combo_bonus == 1.2
    assert state.output_folder == '/out'
    assert (state.padding_before, state.padding_after) == (0.5, 1.0)
    assert state.vertical_crop and state.fade_effect


def test_format_and_resolution_accept_wire_names(settings):
    settings.set_output_format('WebM')
    settings.set_output_resolution('R4K')

    assert settings.state.output_format is OutputFormat.WEBM
    assert settings.state.output_resolution is OutputResolution.R4K
    assert settings.state.output_resolution.to_height() == 2160


def test_unknown_format_is_rejected(settings):
    with pytest.raises(ValueError):
        settings.set_output_format('Avi')
