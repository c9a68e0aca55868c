"""
Highlights Manager for StreamClipper.

This module owns the detected highlight collection, the user's selection,
the waveform preview data and the export progress sub-state. Selected
highlights are never stored; they are projected from the snapshot on read.
"""

import dataclasses
from typing import Iterable, List, Sequence

from .base import BaseStore
from ..models import ClipExport, Highlight
from ..state import HighlightsState


# Number of items selected when a new result set arrives
DEFAULT_SELECTION_COUNT = 3


class InvalidClipTimingError(ValueError):
    """Raised when edited clip bounds are not a positive forward interval."""


def selected_highlights(state: HighlightsState) -> List[Highlight]:
    """Highlights in collection order whose ids are selected."""
    return [h for h in state.items if h.id in state.selected]


def selected_count(state: HighlightsState) -> int:
    return len(state.selected)


def clip_exports(state: HighlightsState) -> List[ClipExport]:
    """Export requests for the current selection."""
    return [
        ClipExport(highlight_id=h.id, start_secs=h.start_secs, end_secs=h.end_secs)
        for h in selected_highlights(state)
    ]


class HighlightsManager(BaseStore[HighlightsState]):
    """
    Manages highlights, selection and export progress.

    Handles:
    - Replacing the result set after an analysis
    - Selection toggling, keeping the selection a subset of known ids
    - Post-hoc edits of clip timing
    - Export progress tracking
    """

    def __init__(self, dependency_container=None):
        super().__init__(HighlightsState(), dependency_container)

    # ========================================
    # Collection
    # ========================================

    def set_highlights(self, items: Sequence[Highlight], waveform: Iterable[float],
                       total_duration_secs: float = 0.0) -> None:
        """
        Replace the collection and select its first items.

        The default selection is positional: the caller presents items in
        priority order and the first DEFAULT_SELECTION_COUNT of them are
        selected, whatever their scores.
        """
        items = tuple(items)
        self._update(
            items=items,
            waveform_data=tuple(waveform),
            total_duration_secs=total_duration_secs,
            selected=frozenset(h.id for h in items[:DEFAULT_SELECTION_COUNT]),
        )
        self.logger.info(f"Loaded {len(items)} highlights")

    def update_clip_timing(self, highlight_id: int, start_secs: float, end_secs: float) -> None:
        """
        Edit the bounds of one highlight.

        Raises:
            InvalidClipTimingError: If start is negative or end is not after start
        """
        if start_secs < 0 or end_secs <= start_secs:
            raise InvalidClipTimingError(
                f"Invalid timing for highlight {highlight_id}: {start_secs}s -> {end_secs}s"
            )

        def transform(current: HighlightsState) -> HighlightsState:
            if not any(h.id == highlight_id for h in current.items):
                self.logger.warning(f"update_clip_timing: unknown highlight {highlight_id}")
                return current
            items = tuple(
                dataclasses.replace(h, start_secs=start_secs, end_secs=end_secs,
                                    duration_secs=end_secs - start_secs)
                if h.id == highlight_id else h
                for h in current.items
            )
            return dataclasses.replace(current, items=items)

        self._apply(transform)

    # ========================================
    # Selection
    # ========================================

    def toggle_select(self, highlight_id: int) -> None:
        def transform(current: HighlightsState) -> HighlightsState:
            if highlight_id in current.selected:
                return dataclasses.replace(current, selected=current.selected - {highlight_id})
            if not any(h.id == highlight_id for h in current.items):
                self.logger.debug(f"toggle_select: ignoring unknown highlight {highlight_id}")
                return current
            return dataclasses.replace(current, selected=current.selected | {highlight_id})

        self._apply(transform)

    def select_all(self) -> None:
        self._apply(lambda current: dataclasses.replace(
            current, selected=frozenset(h.id for h in current.items)))

    def deselect_all(self) -> None:
        self._update(selected=frozenset())

    def selected_highlights(self) -> List[Highlight]:
        return selected_highlights(self.state)

    def selected_count(self) -> int:
        return selected_count(self.state)

    # ========================================
    # Export progress
    # ========================================

    def start_export(self, total: int) -> None:
        self._update(
            is_exporting=True,
            export_progress=0,
            export_current_clip=0,
            export_total_clips=total,
        )
        self.logger.info(f"Export started: {total} clips")

    def update_export_progress(self, current_clip: int, percent: float) -> None:
        """Apply an export progress report. Ignored unless exporting."""
        def transform(current: HighlightsState) -> HighlightsState:
            if not current.is_exporting:
                self.logger.debug(f"Ignoring export progress {current_clip}/{percent}%, not exporting")
                return current
            return dataclasses.replace(current, export_current_clip=current_clip,
                                       export_progress=percent)

        self._apply(transform)

    def finish_export(self) -> None:
        self._update(is_exporting=False, export_progress=100)
        self.logger.info("Export finished")
