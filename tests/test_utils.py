import pytest

from streamclipper.models import HighlightType
from streamclipper.utils import (
    format_duration,
    format_file_size,
    format_number,
    format_timestamp,
    get_highlight_color,
    get_score_class,
)


@pytest.mark.parametrize("secs,expected", [
    (0, "0:00"),
    (65, "1:05"),
    (3599.9, "59:59"),
    (5025, "1:23:45"),
    (-3, "0:00"),
])
def test_format_duration(secs, expected):
    assert format_duration(secs) == expected


@pytest.mark.parametrize("secs,expected", [
    (5, "00m05s"),
    (754, "12m34s"),
    (5025, "01h23m45s"),
])
def test_format_timestamp(secs, expected):
    assert format_timestamp(secs) == expected


@pytest.mark.parametrize("size,expected", [
    (0, "0 B"),
    (512, "512.0 B"),
    (1024, "1.0 KB"),
    (1536, "1.5 KB"),
    (5 * 1024 ** 3, "5.0 GB"),
])
def test_format_file_size(size, expected):
    assert format_file_size(size) == expected


def test_format_number():
    assert format_number(1234567) == "1,234,567"


@pytest.mark.parametrize("score,expected", [
    (95, 'score-high'),
    (80, 'score-high'),
    (79.9, 'score-medium'),
    (50, 'score-medium'),
    (10, 'score-low'),
])
def test_get_score_class(score, expected):
    assert get_score_class(score) == expected


def test_get_highlight_color():
    assert get_highlight_color(HighlightType.COMBO) == '#a855f7'
    assert get_highlight_color('Audio') == '#ef4444'
    assert get_highlight_color('Unknown') == '#6b7280'
