import pytest

from streamclipper.app import ClipperApp
from streamclipper.backend import ANALYZE_PROGRESS_CHANNEL, EXPORT_PROGRESS_CHANNEL, BackendError
from streamclipper.state import AnalyzeStage, ToastSeverity

from .conftest import CHAT_WIRE, SETTINGS_WIRE, VIDEO_WIRE, FakeTransport, highlight_wire


ANALYZE_RESULT = {
    'highlights': [highlight_wire(i, start=i * 60.0, end=i * 60.0 + 15.0, score=90 - i) for i in range(1, 6)],
    'waveform_data': [0.2, 0.4, 0.6],
    'total_duration_secs': 7200.0,
}

PRO_LICENSE = {'is_pro': True, 'license_key': 'SC-PRO', 'activated_at': '2026-03-01', 'machine_id': 'm1'}
FREE_LICENSE = {'is_pro': False, 'license_key': None, 'activated_at': None, 'machine_id': 'm1'}


@pytest.fixture
def transport():
    return FakeTransport({
        'get_video_info': VIDEO_WIRE,
        'get_chat_info': CHAT_WIRE,
        'analyze_video': ANALYZE_RESULT,
        'get_settings': SETTINGS_WIRE,
        'get_license_status': FREE_LICENSE,
    })


@pytest.fixture
def clipper(transport, scheduler, tmp_path):
    app = ClipperApp(transport=transport, scheduler=scheduler, base_dir=tmp_path)
    assert app.initialize()
    yield app
    app.shutdown()


def toasts(clipper):
    return [(t.severity, t.message) for t in clipper.notifications.state.toasts]


class DeferredRunner:
    """Holds submitted tasks until the test runs them."""

    def __init__(self):
        self.pending = []

    def submit(self, fn, on_success, on_error, name="task"):
        self.pending.append((name, fn, on_success, on_error))

    def run_all(self):
        while self.pending:
            _name, fn, on_success, on_error = self.pending.pop(0)
            try:
                result = fn()
            except Exception as e:
                on_error(e)
            else:
                on_success(result)

    def cleanup(self):
        self.pending.clear()


def load_and_analyze(clipper):
    clipper.workflow.load_video('/streams/vod.mp4')
    assert clipper.workflow.analyze()


class TestSources:
    def test_load_video(self, clipper, transport):
        clipper.workflow.load_video('/streams/vod.mp4')

        state = clipper.project.state
        assert state.video_path == '/streams/vod.mp4'
        assert state.video_info.codec == 'h264'
        assert transport.calls[-1] == ('get_video_info', {'path': '/streams/vod.mp4'})

    def test_load_chat(self, clipper):
        clipper.workflow.load_chat('/streams/chat.json')

        assert clipper.project.state.chat_path == '/streams/chat.json'
        assert clipper.project.state.chat_info.total_messages == 12000

    def test_failed_chat_load_keeps_video(self, clipper, transport):
        clipper.workflow.load_video('/streams/vod.mp4')
        transport.responses['get_chat_info'] = BackendError('get_chat_info', 'unsupported format')

        clipper.workflow.load_chat('/streams/chat.xml')

        state = clipper.project.state
        assert state.video_path == '/streams/vod.mp4'
        assert state.chat_path is None
        assert state.error == "Loading chat failed: unsupported format"
        assert toasts(clipper)[-1] == (ToastSeverity.ERROR, "Loading chat failed: unsupported format")

    def test_pick_video_loads_chosen_file(self, clipper, transport):
        transport.responses['pick_file'] = '/streams/picked.mp4'

        clipper.workflow.pick_video()

        assert clipper.project.state.video_path == '/streams/picked.mp4'
        assert transport.calls[0][1]['filters'][0]['name'] == 'Video'

    def test_cancelled_pick_does_nothing(self, clipper, transport):
        transport.responses['pick_file'] = None

        clipper.workflow.pick_chat()

        assert 'get_chat_info' not in transport.commands()
        assert clipper.project.state.chat_path is None


class TestAnalysis:
    def test_analyze_without_video_warns(self, clipper, transport):
        assert not clipper.workflow.analyze()

        assert 'analyze_video' not in transport.commands()
        assert toasts(clipper) == [(ToastSeverity.WARNING, "Load a video before analyzing.")]

    def test_successful_analysis(self, clipper, transport):
        finished = []
        clipper.workflow.signals.analysis_finished.connect(lambda ok, msg: finished.append((ok, msg)))
        clipper.workflow.load_chat('/streams/chat.json')

        load_and_analyze(clipper)

        project = clipper.project.state
        assert not project.is_analyzing
        assert project.analyze_stage is AnalyzeStage.COMPLETE
        assert project.analyze_progress == 100

        highlights = clipper.highlights.state
        assert [h.id for h in highlights.items] == [1, 2, 3, 4, 5]
        assert highlights.selected == frozenset({1, 2, 3})
        assert highlights.total_duration_secs == 7200.0

        assert toasts(clipper)[-1] == (ToastSeverity.SUCCESS, "Found 5 highlights")
        assert finished == [(True, "Found 5 highlights")]

        args = transport.calls[-1][1]
        assert args['videoPath'] == '/streams/vod.mp4'
        assert args['chatPath'] == '/streams/chat.json'
        assert args['settings']['max_clips'] is None

    def test_analysis_uses_current_settings(self, clipper, transport):
        clipper.settings.set_audio_sensitivity(2.75)

        load_and_analyze(clipper)

        assert transport.calls[-1][1]['settings']['audio_sensitivity'] == 2.75

    def test_empty_result_shows_info(self, clipper, transport):
        transport.responses['analyze_video'] = {'highlights': [], 'waveform_data': [],
                                                'total_duration_secs': 60.0}

        load_and_analyze(clipper)

        assert clipper.highlights.state.items == ()
        assert toasts(clipper)[-1][0] is ToastSeverity.INFO

    def test_failed_analysis_keeps_sources(self, clipper, transport):
        finished = []
        clipper.workflow.signals.analysis_finished.connect(lambda ok, msg: finished.append((ok, msg)))
        clipper.workflow.load_chat('/streams/chat.json')
        transport.responses['analyze_video'] = BackendError('analyze_video', 'decoder crashed')

        load_and_analyze(clipper)

        project = clipper.project.state
        assert not project.is_analyzing
        assert project.error == "Analysis failed: decoder crashed"
        assert project.video_path == '/streams/vod.mp4'
        assert project.chat_path == '/streams/chat.json'
        assert finished == [(False, "Analysis failed: decoder crashed")]

        errors = [t for t in clipper.notifications.state.toasts if t.severity is ToastSeverity.ERROR]
        assert len(errors) == 1
        assert errors[0].duration_ms == 7000

    def test_progress_events_fold_into_project(self, clipper):
        clipper.workflow.load_video('/streams/vod.mp4')
        clipper.project.start_analysis()

        clipper.events.dispatch(ANALYZE_PROGRESS_CHANNEL, {'stage': 'analyzing_chat', 'progress': 55})

        assert clipper.project.state.analyze_stage is AnalyzeStage.ANALYZING_CHAT
        assert clipper.project.state.analyze_progress == 55

    def test_unknown_stage_event_is_ignored(self, clipper):
        clipper.project.start_analysis()
        before = clipper.project.state

        clipper.events.dispatch(ANALYZE_PROGRESS_CHANNEL, {'stage': 'uploading', 'progress': 10})

        assert clipper.project.state is before

    def test_cancel_analysis(self, clipper, transport):
        clipper.workflow.cancel_analysis()

        assert transport.commands() == ['cancel_analysis']

    def test_failed_cancel_is_a_warning(self, clipper, transport):
        transport.responses['cancel_analysis'] = BackendError('cancel_analysis', 'nothing running')

        clipper.workflow.cancel_analysis()

        assert toasts(clipper) == [(ToastSeverity.WARNING, "Cancelling analysis failed: nothing running")]

    def test_second_analyze_while_running_is_refused(self, transport, scheduler, tmp_path):
        runner = DeferredRunner()
        app = ClipperApp(transport=transport, runner=runner, scheduler=scheduler, base_dir=tmp_path)
        app.initialize()
        try:
            app.workflow.load_video('/streams/vod.mp4')
            runner.run_all()

            assert app.workflow.analyze()
            assert not app.workflow.analyze()
            assert [name for name, *_ in runner.pending] == ['analyze_video']
            assert toasts(app)[-1] == (ToastSeverity.INFO, "An analysis is already running.")

            app.events.dispatch(ANALYZE_PROGRESS_CHANNEL, {'stage': 'scoring', 'progress': 50})
            assert app.project.state.analyze_progress == 50

            runner.run_all()
            assert app.project.state.analyze_stage is AnalyzeStage.COMPLETE
            assert app.workflow.analyze()
        finally:
            app.shutdown()


class TestExport:
    def export_results(self, *outcomes):
        return [
            {'highlight_id': i, 'output_path': f'/clips/{i}.mp4' if ok else '', 'success': ok,
             'error': None if ok else 'encoder error'}
            for i, ok in enumerate(outcomes, start=1)
        ]

    def test_export_without_selection_warns(self, clipper, transport):
        load_and_analyze(clipper)
        clipper.highlights.deselect_all()

        assert not clipper.workflow.export_selected()
        assert 'export_clips' not in transport.commands()
        assert toasts(clipper)[-1][0] is ToastSeverity.WARNING

    def test_export_without_video_warns(self, clipper):
        assert not clipper.workflow.export_selected()
        assert toasts(clipper)[-1][0] is ToastSeverity.WARNING

    def test_free_license_requests_watermark(self, clipper, transport):
        transport.responses['export_clips'] = self.export_results(True, True, True)
        load_and_analyze(clipper)

        assert clipper.workflow.export_selected()

        args = transport.calls[-1][1]
        assert [c['highlight_id'] for c in args['clips']] == [1, 2, 3]
        assert args['settings']['add_watermark'] is True
        assert toasts(clipper)[-1] == (ToastSeverity.SUCCESS, "Exported 3 clips")

        state = clipper.highlights.state
        assert not state.is_exporting
        assert state.export_progress == 100

    def test_pro_license_drops_watermark(self, clipper, transport):
        transport.responses['get_license_status'] = PRO_LICENSE
        transport.responses['export_clips'] = self.export_results(True, True, True)
        clipper.workflow.refresh_license()
        load_and_analyze(clipper)

        clipper.workflow.export_selected()

        assert transport.calls[-1][1]['settings']['add_watermark'] is False

    def test_partial_failure_warns(self, clipper, transport):
        finished = []
        clipper.workflow.signals.export_finished.connect(lambda ok, msg: finished.append((ok, msg)))
        transport.responses['export_clips'] = self.export_results(True, False, True)
        load_and_analyze(clipper)

        clipper.workflow.export_selected()

        assert toasts(clipper)[-1] == (ToastSeverity.WARNING, "Exported 2 of 3 clips; 1 failed")
        assert finished == [(False, "Exported 2 of 3 clips; 1 failed")]

    def test_all_failed_shows_export_failed(self, clipper, transport):
        transport.responses['export_clips'] = self.export_results(False, False, False)
        load_and_analyze(clipper)

        clipper.workflow.export_selected()

        toast = clipper.notifications.state.toasts[-1]
        assert (toast.severity, toast.message, toast.duration_ms) == \
            (ToastSeverity.ERROR, "Export failed", 7000)

    def test_backend_failure_ends_export(self, clipper, transport):
        transport.responses['export_clips'] = BackendError('export_clips', 'disk full')
        load_and_analyze(clipper)

        clipper.workflow.export_selected()

        assert not clipper.highlights.state.is_exporting
        assert toasts(clipper)[-1] == (ToastSeverity.ERROR, "Export failed: disk full")

    def test_export_progress_events(self, clipper):
        load_and_analyze(clipper)
        clipper.highlights.start_export(3)

        clipper.events.dispatch(EXPORT_PROGRESS_CHANNEL, {'current': 2, 'total': 3, 'percent': 66})

        state = clipper.highlights.state
        assert (state.export_current_clip, state.export_progress) == (2, 66)

    def test_preview_opens_modal(self, clipper, transport):
        transport.responses['preview_clip'] = '/tmp/preview-2.mp4'
        ready = []
        clipper.workflow.signals.preview_ready.connect(lambda hid, path: ready.append((hid, path)))
        load_and_analyze(clipper)

        assert clipper.workflow.preview(2)

        assert transport.calls[-1][1] == {'videoPath': '/streams/vod.mp4', 'startSecs': 120.0,
                                          'endSecs': 135.0}
        assert clipper.notifications.state.preview_modal_open
        assert ready == [(2, '/tmp/preview-2.mp4')]

    def test_preview_unknown_highlight(self, clipper):
        load_and_analyze(clipper)

        assert not clipper.workflow.preview(99)


class TestSettingsAndLicense:
    def test_load_settings(self, clipper):
        clipper.workflow.load_settings()

        assert clipper.settings.state.output_folder == '/clips'
        assert clipper.settings.state.audio_sensitivity == 2.25

    def test_empty_output_folder_gets_default(self, clipper, transport):
        transport.responses['get_settings'] = {'version': 1}
        transport.responses['get_default_output_folder'] = '/home/user/Videos/StreamClipper'

        clipper.workflow.load_settings()

        assert clipper.settings.state.output_folder == '/home/user/Videos/StreamClipper'

    def test_save_settings(self, clipper, transport):
        clipper.workflow.load_settings()

        clipper.workflow.save_settings()

        assert transport.calls[-1] == ('save_settings', {'settings': SETTINGS_WIRE})
        assert toasts(clipper)[-1] == (ToastSeverity.SUCCESS, "Settings saved")

    def test_reset_settings(self, clipper, transport):
        transport.responses['reset_settings'] = {}
        clipper.workflow.load_settings()

        clipper.workflow.reset_settings()

        assert clipper.settings.state.audio_sensitivity == 1.5
        assert toasts(clipper)[-1][0] is ToastSeverity.INFO

    def test_activate_license(self, clipper, transport):
        transport.responses['activate_license'] = PRO_LICENSE
        clipper.notifications.open_license_modal()

        assert clipper.workflow.activate_license('  SC-PRO  ')

        assert transport.calls[-1] == ('activate_license', {'key': 'SC-PRO'})
        assert clipper.license.is_pro
        assert not clipper.license.state.is_validating
        assert not clipper.notifications.state.license_modal_open

    def test_rejected_license(self, clipper, transport):
        transport.responses['activate_license'] = BackendError('activate_license', 'invalid key')

        clipper.workflow.activate_license('bogus')

        assert not clipper.license.is_pro
        assert not clipper.license.state.is_validating
        assert toasts(clipper)[-1][0] is ToastSeverity.ERROR

    def test_blank_key_is_not_sent(self, clipper, transport):
        assert not clipper.workflow.activate_license('   ')
        assert 'activate_license' not in transport.commands()

    def test_deactivate_license(self, clipper, transport):
        transport.responses['get_license_status'] = PRO_LICENSE
        clipper.workflow.refresh_license()

        clipper.workflow.deactivate_license()

        assert not clipper.license.is_pro
        assert toasts(clipper)[-1] == (ToastSeverity.INFO, "License deactivated")
