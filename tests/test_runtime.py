import pytest  # noqa
import entab
import io

from unittest import mock

from rich.console import Console

from entab.download import Downloader
from entab.records import AssignmentDetails, AssignmentType, Attachment
from entab.tui._action import (
    AssignmentTypeChosen, ClearScreen, Error, Help, KeyEvent, Mode, ModeChange, Quit, Resize, StartDownload,
)
from entab.tui._entry import build_runtime
from entab.tui._runtime import ERROR_HISTORY, Runtime

from conftest import FakeDownloader, FakeRepository, make_records


def _keys(runtime: Runtime, *keys: str) -> None:
    for key in keys:
        character = key if len(key) == 1 else None
        runtime.handle_key_event(KeyEvent(key, character))


def _render(renderable, width: int = 100) -> str:
    console = Console(record=True, width=width, file=io.StringIO())
    console.print(renderable)
    return console.export_text()


class _Recorder:
    overlay = False

    def __init__(self, name, reactions=None):
        self.name = name
        self.mode = Mode.HOME
        self.reactions = reactions or dict()
        self.seen = list()
        self.send = None

    def register_action_handler(self, send):
        self.send = send

    def update(self, action):
        self.seen.append(action)
        return self.reactions.get(action)

    def handle_key_event(self, key):
        return self.reactions.get(key)

    def draw(self, width, height):
        return None


class TestModeGuard:
    def test_mode_change_enables_exactly_one_screen(self) -> None:
        runtime = build_runtime(FakeRepository())
        runtime.start()
        home, listing, details, picker = runtime.components
        assert home.enabled
        assert not listing.enabled
        runtime.dispatch(ModeChange(Mode.LIST_SCREEN))
        assert runtime.mode == Mode.LIST_SCREEN
        assert listing.enabled
        assert not home.enabled
        assert not details.enabled
        assert home.handle_key_event(KeyEvent('enter')) is None
        assert home.handle_key_event(KeyEvent('q', 'q')) is None

    def test_home_enter_loads_listing(self) -> None:
        repo = FakeRepository()
        runtime = build_runtime(repo)
        runtime.start()
        _keys(runtime, 'j', 'j', 'enter')
        assert repo.record_calls == [AssignmentType.HOMEWORK]
        assert runtime.mode == Mode.LIST_SCREEN
        assert len(runtime.components[1].engine.records) == 3

    def test_failed_listing_stays_home(self) -> None:
        repo = FakeRepository(records_error=entab.FetchError('portal down'))
        runtime = build_runtime(repo)
        runtime.start()
        _keys(runtime, 'enter')
        assert runtime.mode == Mode.HOME
        assert 'portal down' in runtime.errors[-1]
        assert runtime.drain_messages() == [('error', runtime.errors[-1])]
        assert runtime.drain_messages() == []


class TestDetailsFetch:
    def test_failed_fetch_keeps_list(self) -> None:
        repo = FakeRepository(details_error=entab.FetchError('boom'))
        runtime = build_runtime(repo)
        runtime.start()
        details = runtime.components[2]
        _keys(runtime, 'enter', 'j', 'enter')
        assert len(repo.detail_calls) == 1
        assert runtime.mode == Mode.LIST_SCREEN
        assert runtime.errors
        assert 'boom' in runtime.errors[-1]
        assert details.current_text is None

    def test_failed_fetch_keeps_previous_text(self) -> None:
        repo = FakeRepository()
        runtime = build_runtime(repo)
        runtime.start()
        details = runtime.components[2]
        _keys(runtime, 'enter', 'j', 'enter')
        assert runtime.mode == Mode.CURRENT_ASSIGNMENT_SCREEN
        assert details.current_text == 'Read chapter 4'
        _keys(runtime, 'escape')
        assert runtime.mode == Mode.LIST_SCREEN
        repo.details_error = entab.NormalizationError('bad payload')
        _keys(runtime, 'j', 'enter')
        assert runtime.mode == Mode.LIST_SCREEN
        assert details.current_text == 'Read chapter 4'

    def test_enter_without_selection_does_nothing(self) -> None:
        repo = FakeRepository()
        runtime = build_runtime(repo)
        runtime.start()
        _keys(runtime, 'enter', 'enter')
        assert repo.detail_calls == []
        assert runtime.mode == Mode.LIST_SCREEN
        assert not runtime.errors

    def test_open_and_back(self) -> None:
        repo = FakeRepository()
        runtime = build_runtime(repo)
        runtime.start()
        _keys(runtime, 'enter', 'j', 'j', 'enter')
        assert repo.detail_calls[0].serial == '2'
        details = runtime.components[2]
        assert details.assignment.serial == '2'
        assert details.attachment_count == 1
        _keys(runtime, 'escape', 'escape')
        assert runtime.mode == Mode.HOME


class TestDownloads:
    def _open(self, downloader, attachments=None):
        if attachments is None:
            attachments = [Attachment('a.pdf', 'x/a.pdf'), Attachment('b.pdf', 'x/b.pdf')]
        repo = FakeRepository(details=AssignmentDetails('Body', attachments))
        runtime = build_runtime(repo, downloader)
        runtime.start()
        _keys(runtime, 'enter', 'j', 'enter')
        assert runtime.mode == Mode.CURRENT_ASSIGNMENT_SCREEN
        return runtime

    def test_download_selected(self) -> None:
        downloader = FakeDownloader()
        runtime = self._open(downloader)
        details, picker = runtime.components[2], runtime.components[3]
        _keys(runtime, 'a')
        assert picker.visible
        assert details.popup_visible
        assert runtime.draw(100, 30).overlay is not None
        _keys(runtime, 'j', 'j', 'space', 'enter')
        assert downloader.calls == [(Attachment('b.pdf', 'x/b.pdf'),)]
        assert not picker.visible
        assert not details.popup_visible
        assert ('information', 'Saved 1 file(s)') in runtime.drain_messages()
        assert runtime.draw(100, 30).overlay is None

    def test_download_failure_keeps_popup(self) -> None:
        downloader = FakeDownloader(error=entab.DownloadError('disk full'))
        runtime = self._open(downloader)
        picker = runtime.components[3]
        _keys(runtime, 'a', 'j', 'space', 'enter')
        assert picker.visible
        assert runtime.errors[-1] == 'disk full'

    def test_unusable_download_dir_keeps_popup(self, tmp_path) -> None:
        blocker = tmp_path / 'blocker'
        blocker.write_text('not a directory')
        downloader = Downloader(FakeRepository(), session=mock.MagicMock(), outdir=str(blocker))
        runtime = self._open(downloader)
        picker = runtime.components[3]
        _keys(runtime, 'a', 'j', 'space', 'enter')
        assert picker.visible
        assert 'download directory' in runtime.errors[-1]
        assert runtime.mode == Mode.CURRENT_ASSIGNMENT_SCREEN

    def test_nothing_ticked(self) -> None:
        downloader = FakeDownloader()
        runtime = self._open(downloader)
        _keys(runtime, 'a', 'enter')
        assert downloader.calls == []
        assert runtime.errors

    def test_no_downloader(self) -> None:
        runtime = self._open(None)
        runtime.dispatch(StartDownload((Attachment('a.pdf', 'a.pdf'),)))
        assert runtime.errors

    def test_no_attachments(self) -> None:
        runtime = self._open(FakeDownloader(), attachments=[])
        _keys(runtime, 'a')
        assert not runtime.components[3].visible
        assert runtime.errors

    def test_details_keys_ignored_under_popup(self) -> None:
        runtime = self._open(FakeDownloader())
        _keys(runtime, 'a', 'escape')
        assert runtime.mode == Mode.CURRENT_ASSIGNMENT_SCREEN
        assert not runtime.components[3].visible


class TestRuntime:
    def test_quit_short_circuits(self) -> None:
        runtime = build_runtime(FakeRepository())
        runtime.start()
        _keys(runtime, 'q')
        assert runtime.should_quit
        assert not runtime.pending
        runtime.handle_key_event(KeyEvent('enter'))
        assert runtime.mode == Mode.HOME

    def test_quit_drops_queued_actions(self) -> None:
        first = _Recorder('first', {Help(): Quit()})
        second = _Recorder('second', {Help(): Error('never')})
        runtime = Runtime([first, second])
        runtime.dispatch(Help())
        assert runtime.should_quit
        assert not runtime.errors

    def test_breadth_first(self) -> None:
        first = _Recorder('first', {Help(): Error('one'), Error('one'): Resize(1, 1)})
        second = _Recorder('second', {Help(): Error('two')})
        runtime = Runtime([first, second])
        runtime.dispatch(Help())
        assert first.seen == [Help(), Error('one'), Error('two'), Resize(1, 1)]
        assert second.seen == first.seen
        assert list(runtime.errors) == ['one', 'two']
        assert (runtime.width, runtime.height) == (1, 1)

    def test_error_history_is_capped(self) -> None:
        runtime = Runtime([_Recorder('rec')])
        for idx in range(ERROR_HISTORY + 5):
            runtime.dispatch(Error(f'error {idx}'))
        assert len(runtime.errors) == ERROR_HISTORY
        assert runtime.errors[0] == 'error 5'
        assert runtime.errors[-1] == f'error {ERROR_HISTORY + 4}'

    def test_sent_actions_are_processed(self) -> None:
        recorder = _Recorder('rec')
        runtime = Runtime([recorder])
        recorder.send(ClearScreen())
        runtime.process()
        assert recorder.seen == [ClearScreen()]

    def test_every_component_sees_keys(self) -> None:
        first = _Recorder('first', {KeyEvent('x'): Help()})
        second = _Recorder('second', {KeyEvent('x'): AssignmentTypeChosen(AssignmentType.CIRCULAR)})
        runtime = Runtime([first, second])
        runtime.handle_key_event(KeyEvent('x'))
        assert first.seen == [Help(), AssignmentTypeChosen(AssignmentType.CIRCULAR)]
        assert runtime.take_help_request()
        assert not runtime.take_help_request()


class TestDraw:
    def test_only_active_mode_is_drawn(self) -> None:
        runtime = build_runtime(FakeRepository(records=make_records('[bold]Tricky', 'Plain')))
        runtime.start()
        text = _render(runtime.draw(80, 24).base)
        assert 'Circular' in text
        assert 'Tricky' not in text
        _keys(runtime, 'enter')
        text = _render(runtime.draw(100, 24).base)
        assert '[bold]Tricky' in text
        assert 'Modes' not in text
        assert not runtime.dirty

    def test_details_draw(self) -> None:
        runtime = build_runtime(FakeRepository())
        runtime.start()
        _keys(runtime, 'enter', 'j', 'enter')
        frame = runtime.draw(100, 24)
        assert frame.overlay is None
        assert 'Read chapter 4' in _render(frame.base)
