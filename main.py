import sys
import argparse
import logging

from PyQt6.QtCore import QCoreApplication

from streamclipper.app import ClipperApp
from streamclipper.managers.highlights import selected_highlights
from streamclipper.utils import format_duration, format_timestamp
from streamclipper.workers import ThreadedTaskRunner


def log_uncaught_exceptions(exctype, value, tb):
    logging.critical("Uncaught exception", exc_info=(exctype, value, tb))

sys.excepthook = log_uncaught_exceptions


class CliSession:
    """Drives load -> analyze -> (export) from store updates, then quits."""

    def __init__(self, qt_app, clipper, video_path, chat_path=None, export=False):
        self.qt_app = qt_app
        self.clipper = clipper
        self.video_path = video_path
        self.chat_path = chat_path
        self.export = export
        self.exit_code = 0
        self._analysis_started = False
        self._last_line = None
        self._seen_toasts = set()

        clipper.project.subscribe(self._on_project)
        clipper.highlights.subscribe(self._on_highlights)
        clipper.notifications.subscribe(self._on_notifications)
        clipper.workflow.signals.analysis_finished.connect(self._on_analysis_finished)
        clipper.workflow.signals.export_finished.connect(self._on_export_finished)

    def start(self):
        workflow = self.clipper.workflow
        workflow.load_settings()
        workflow.refresh_license()
        if self.chat_path:
            workflow.load_chat(self.chat_path)
        workflow.load_video(self.video_path)

    def _print(self, line):
        if line != self._last_line:
            print(line, flush=True)
            self._last_line = line

    def _on_project(self, state):
        if state.error and not state.is_analyzing and not self._analysis_started:
            self._finish(1)
            return
        if state.video_info is not None and not self._analysis_started:
            if self.chat_path and state.chat_info is None:
                return
            self._analysis_started = True
            info = state.video_info
            self._print(f"{info.filename}: {format_duration(info.duration_secs)}, "
                        f"{info.width}x{info.height} @ {info.fps:g} fps")
            self.clipper.workflow.analyze()
        elif state.is_analyzing:
            self._print(f"[{state.analyze_stage.value}] {state.analyze_progress:.0f}%")

    def _on_highlights(self, state):
        if state.is_exporting and state.export_total_clips:
            self._print(f"Exporting clip {state.export_current_clip}/{state.export_total_clips} "
                        f"({state.export_progress:.0f}%)")

    def _on_notifications(self, state):
        for toast in state.toasts:
            if toast.id in self._seen_toasts:
                continue
            self._seen_toasts.add(toast.id)
            self._print(f"{toast.severity.value.upper()}: {toast.message}")

    def _on_analysis_finished(self, success, message):
        if not success:
            self._finish(1)
            return
        for h in selected_highlights(self.clipper.highlights.state):
            self._print(f"  #{h.id} {format_timestamp(h.start_secs)}-{format_timestamp(h.end_secs)} "
                        f"{h.highlight_type.value} score {h.score:.0f}")
        if self.export:
            if not self.clipper.workflow.export_selected():
                self._finish(1)
        else:
            self._finish(0)

    def _on_export_finished(self, success, message):
        self._finish(0 if success else 1)

    def _finish(self, code):
        self.exit_code = code
        self.qt_app.exit(code)


def build_parser():
    parser = argparse.ArgumentParser(prog="streamclipper",
                                     description="Find and export stream highlights.")
    parser.add_argument("--backend", help="Backend URL, overrides the configured one")
    parser.add_argument("--debug", action="store_true", help="Log at DEBUG level")
    commands = parser.add_subparsers(dest="command", required=True)

    analyze = commands.add_parser("analyze", help="Analyze a video for highlights")
    analyze.add_argument("video", help="Path to the video file")
    analyze.add_argument("--chat", help="Path to a chat log for the same stream")
    analyze.add_argument("--export", action="store_true",
                         help="Export the default selection after analysis")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    app = QCoreApplication(sys.argv)
    app.setOrganizationName("StreamClipper")
    app.setApplicationName("StreamClipper")

    clipper = ClipperApp(runner=ThreadedTaskRunner(), configure_logging=True,
                         backend_url=args.backend)
    if args.debug:
        clipper.configuration.set_setting('logging.default_level', 'DEBUG', save=False)

    if not clipper.initialize():
        logging.error("StreamClipper failed to initialize")
        return 1

    clipper.start_event_stream()
    session = CliSession(app, clipper, args.video, args.chat, args.export)
    session.start()

    try:
        app.exec()
    finally:
        clipper.shutdown()
    return session.exit_code


if __name__ == '__main__':
    sys.exit(main())
