import pytest
from PyQt6.QtCore import QCoreApplication

from streamclipper.models import Highlight, HighlightType


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    yield app


class ManualHandle:
    def __init__(self, scheduler, due_ms, callback):
        self.scheduler = scheduler
        self.due_ms = due_ms
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Toast scheduler driven by a simulated clock."""

    def __init__(self):
        self.now_ms = 0
        self.handles = []

    def schedule(self, delay_ms, callback):
        handle = ManualHandle(self, self.now_ms + delay_ms, callback)
        self.handles.append(handle)
        return handle

    def advance(self, ms):
        self.now_ms += ms
        for handle in sorted(self.handles, key=lambda h: h.due_ms):
            if handle.due_ms <= self.now_ms and not handle.cancelled and not handle.fired:
                handle.fired = True
                handle.callback()

    def fire_all(self):
        """Fire every handle regardless of cancellation, like a stale timer would."""
        for handle in self.handles:
            handle.callback()


class FakeTransport:
    """Backend transport answering from a table of canned results."""

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def invoke(self, command, args=None):
        self.calls.append((command, args or {}))
        if command not in self.responses:
            return None
        response = self.responses[command]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(args or {})
        return response

    def commands(self):
        return [command for command, _ in self.calls]


@pytest.fixture
def scheduler():
    return ManualScheduler()


def make_highlight(highlight_id, start=10.0, end=20.0, score=50.0,
                   highlight_type=HighlightType.AUDIO):
    return Highlight(
        id=highlight_id,
        start_secs=start,
        end_secs=end,
        duration_secs=end - start,
        highlight_type=highlight_type,
        score=score,
        audio_score=score,
        chat_score=None,
        reasons=("Loud audio spike",),
    )


def highlight_wire(highlight_id, start=10.0, end=20.0, score=50.0, highlight_type="Audio"):
    return {
        'id': highlight_id,
        'start_secs': start,
        'end_secs': end,
        'duration_secs': end - start,
        'highlight_type': highlight_type,
        'score': score,
        'audio_score': score,
        'chat_score': None,
        'reasons': ['Loud audio spike'],
    }


VIDEO_WIRE = {
    'path': '/streams/vod.mp4',
    'filename': 'vod.mp4',
    'duration_secs': 7200.0,
    'width': 1920,
    'height': 1080,
    'fps': 60.0,
    'codec': 'h264',
    'file_size_bytes': 4_000_000_000,
}

CHAT_WIRE = {
    'path': '/streams/chat.json',
    'format': 'TwitchJson',
    'total_messages': 12000,
    'duration_secs': 7200.0,
    'avg_rate_per_min': 100.0,
}

SETTINGS_WIRE = {
    'version': 1,
    'detection': {
        'audio_sensitivity': 2.25,
        'audio_min_duration': 1.5,
        'audio_merge_gap': 4.0,
        'chat_rate_multiplier': 2.5,
        'chat_window_size': 10.0,
        'chat_keywords': ['KEKW', 'POG'],
        'audio_weight': 0.7,
        'chat_weight': 0.3,
        'combo_bonus': 2.0,
        'max_clips': None,
    },
    'export': {
        'output_folder': '/clips',
        'format': 'WebM',
        'resolution': 'R1440p',
        'padding_before': 1.5,
        'padding_after': 4.0,
        'vertical_crop': True,
        'fade_effect': True,
        'add_watermark': False,
    },
}
