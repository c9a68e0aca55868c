from .models import HighlightType


def format_duration(secs):
    """Clock-style duration: '1:23:45' or '23:45'."""
    total = max(0, int(secs))
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02}:{seconds:02}"
    return f"{minutes}:{seconds:02}"


def format_timestamp(secs):
    """Filename-safe timestamp: '01h23m45s' or '23m45s'."""
    total = max(0, int(secs))
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours > 0:
        return f"{hours:02}h{minutes:02}m{seconds:02}s"
    return f"{minutes:02}m{seconds:02}s"


def format_file_size(num_bytes):
    if num_bytes <= 0:
        return "0 B"
    units = ['B', 'KB', 'MB', 'GB', 'TB']
    size = float(num_bytes)
    i = 0
    while size >= 1024 and i < len(units) - 1:
        size /= 1024
        i += 1
    return f"{size:.1f} {units[i]}"


def format_number(num):
    return f"{num:,}"


def get_score_class(score):
    if score >= 80:
        return 'score-high'
    if score >= 50:
        return 'score-medium'
    return 'score-low'


HIGHLIGHT_COLORS = {
    HighlightType.AUDIO: '#ef4444',
    HighlightType.CHAT: '#eab308',
    HighlightType.COMBO: '#a855f7',
}


def get_highlight_color(highlight_type):
    try:
        return HIGHLIGHT_COLORS[HighlightType(highlight_type)]
    except ValueError:
        return '#6b7280'
