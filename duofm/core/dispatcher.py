"""
Command dispatcher: the root coordinator of duofm.

Owns the pane pair, the input sequencer and the background services, turns
resolved commands into pane mutations / transfers / preview requests and
reports back to the presenter. Everything here runs on the control thread;
``poll()`` collects background results.
"""
import logging
import time

from ..constants import NOTIFY_LONG_MS
from ..filemanager.editing import batch_rename, make_directories
from ..filemanager.thumbnails import NotSupported, Pending, Ready, build_pipeline
from ..filemanager.transfer import (
    ItemFailed,
    ItemSkipped,
    TransferEngine,
    TransferKind,
    TransferProgress,
)
from .actions import ActionResult, ActionType
from .clipboard import ClipboardSink
from .config import AppConfig
from .errors import TransferIOError
from .presenter import Presenter
from .search import SearchSession
from .sequencer import CommandKind, InputSequencer
from .system import DefaultAppOpener, TextEditor
from .tasks import Cancelled, Completed, Failed

LOGGER = logging.getLogger(__name__)

SORT_HINT = 'Sort: [n]ame [m]odtime [s]ize [e]xtension'


class CommandDispatcher:
    """Routes commands to panes, the transfer engine and the thumbnail pipeline."""

    def __init__(self, panes, presenter=None, *, config=None, engine=None, pipeline=None,
                 opener=None, clipboard=None, editor=None, clock=time.monotonic):
        self.config = config or AppConfig()
        self.panes = panes
        self.presenter = presenter or Presenter()
        self.engine = engine or TransferEngine(self.config.chunk_size)
        self.pipeline = pipeline or build_pipeline(self.config)
        self.opener = opener or DefaultAppOpener()
        self.clipboard = clipboard or ClipboardSink()
        self.editor = editor or TextEditor(self.config.editor)
        self.quick_jumps = dict(self.config.quick_jumps)
        self.sequencer = InputSequencer(self.quick_jumps, search_sink=self._search_input, clock=clock)
        self.search = None
        self.running = True
        self._transfer = None
        self._handlers = {
            CommandKind.MOVE_DOWN: lambda c: self.active.move(1),
            CommandKind.MOVE_UP: lambda c: self.active.move(-1),
            CommandKind.JUMP_TO_TOP: lambda c: self.active.top(),
            CommandKind.JUMP_TO_BOTTOM: lambda c: self.active.bottom(),
            CommandKind.PAGE_DOWN: lambda c: self.active.page(1, self.presenter.visible_rows()),
            CommandKind.PAGE_UP: lambda c: self.active.page(-1, self.presenter.visible_rows()),
            CommandKind.CENTER_SELECTION: lambda c: self.active.center_on_selection(self.presenter.visible_rows()),
            CommandKind.OPEN: lambda c: self.active.enter(self.opener),
            CommandKind.GO_UP: lambda c: self.active.up(),
            CommandKind.SWITCH_PANE: lambda c: self.panes.switch(),
            CommandKind.REFRESH: lambda c: self.active.reload(),
            CommandKind.QUICK_JUMP: self._quick_jump,
            CommandKind.QUIT: self._quit,
            CommandKind.COPY_PATH: self._copy_path,
            CommandKind.COPY: lambda c: self._start_transfer(TransferKind.COPY),
            CommandKind.MOVE: lambda c: self._start_transfer(TransferKind.MOVE),
            CommandKind.DELETE: lambda c: self._start_transfer(TransferKind.DELETE),
            CommandKind.CANCEL_TRANSFER: self._cancel_transfer,
            CommandKind.TOGGLE_MARK: lambda c: self.active.toggle_mark(),
            CommandKind.CLEAR_MARKS: lambda c: self.active.clear_marks(),
            CommandKind.PREVIEW: self._preview,
            CommandKind.MAKE_DIRECTORIES: self._make_directories,
            CommandKind.BATCH_RENAME: self._batch_rename,
            CommandKind.TOGGLE_DETAILS: lambda c: self.active.toggle_details(),
            CommandKind.ENTER_SEARCH: self._enter_search,
            CommandKind.EXIT_SEARCH: self._exit_search,
            CommandKind.SEARCH_NAVIGATE: self._search_navigate,
            CommandKind.ENTER_SORT: lambda c: ActionResult(ActionType.NOTIFY, SORT_HINT),
            CommandKind.EXIT_SORT: lambda c: ActionResult(ActionType.NOTIFY, 'Sort cancelled'),
            CommandKind.SORT_BY: self._sort_by,
        }

    @property
    def active(self):
        return self.panes.active

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def handle_key(self, event):
        """Feed one key event through the sequencer and execute the result."""
        command = self.sequencer.feed(event)
        if command is not None:
            self.execute(command)
        return command

    def execute(self, command):
        handler = self._handlers.get(command.kind)
        if handler is None:
            LOGGER.debug('No handler for %s', command.kind)
            return
        result = handler(command)
        self.dispatch_result(result)
        self.render()

    def dispatch_result(self, result):
        """Turn an ActionResult into presenter notifications."""
        if not isinstance(result, ActionResult):
            return
        LOGGER.debug('Dispatching result: type=%s payload=%r', result.type, result.payload)
        if result.type == ActionType.ERROR:
            self.presenter.notify(str(result.payload or 'Unknown error.'), NOTIFY_LONG_MS, prefix='Error: ')
        elif result.type in (ActionType.NOTIFY, ActionType.REFRESH) and result.payload:
            self.presenter.notify(str(result.payload))

    def render(self):
        rows = self.presenter.visible_rows()
        for pane in self.panes:
            pane.ensure_visible(rows)
            self.presenter.render(pane)

    # ------------------------------------------------------------------
    # Command handlers
    # ------------------------------------------------------------------

    def _quick_jump(self, command):
        target = self.quick_jumps.get(command.arg)
        if not target:
            return None
        return self.active.load(target)

    def _quit(self, command):
        self.shutdown()

    def shutdown(self):
        """Cancel background work and wait for it to clean up, then stop."""
        if self.engine.cancel():
            LOGGER.debug('Waiting for cancelled transfer to finish')
        if self.engine.current is not None:
            self.engine.current.join()
        self.pipeline.shutdown()
        self.running = False

    def _copy_path(self, command):
        selection = self.active.operation_selection()
        if not selection:
            return ActionResult(ActionType.ERROR, 'Nothing selected.')
        text = '\n'.join(entry.full_path for entry in selection)
        if not self.clipboard.write_text(text):
            return ActionResult(ActionType.ERROR, 'Clipboard unavailable.')
        if len(selection) == 1:
            return ActionResult(ActionType.NOTIFY, f'Copied path: {selection[0].full_path}')
        return ActionResult(ActionType.NOTIFY, f'Copied {len(selection)} paths')

    def _start_transfer(self, kind):
        if self.engine.busy:
            return ActionResult(ActionType.ERROR, 'Another transfer is already running.')
        source = self.active
        selection = source.operation_selection()
        if not selection:
            return ActionResult(ActionType.ERROR, 'Nothing selected.')
        destination = self.panes.other(source)
        try:
            if kind == TransferKind.DELETE:
                task = self.engine.delete(selection)
            elif kind == TransferKind.MOVE:
                task = self.engine.move(selection, destination.current_path)
            else:
                task = self.engine.copy(selection, destination.current_path)
        except TransferIOError as exc:
            return ActionResult(ActionType.ERROR, str(exc))
        self._transfer = (task, source, destination)
        self.presenter.show_progress(task.job.label)
        return None

    def _cancel_transfer(self, command):
        if self.engine.cancel():
            return ActionResult(ActionType.NOTIFY, 'Cancelling transfer...')
        return None

    def _preview(self, command):
        pane = self.active
        entry = pane.selected_entry()
        if entry is None or entry.is_dir:
            return ActionResult(ActionType.NOTIFY, 'Preview not supported.')
        outcome = self.pipeline.request(pane.index, entry.full_path)
        if isinstance(outcome, NotSupported):
            return ActionResult(ActionType.NOTIFY, f'Preview not supported for {entry.name}')
        if isinstance(outcome, Ready):
            self.presenter.show_preview(pane.index, outcome.image_path)
            return None
        if isinstance(outcome, Pending):
            return ActionResult(ActionType.NOTIFY, f'Generating preview for {entry.name}...')
        return None

    def _make_directories(self, command):
        pane = self.active
        result = make_directories(pane.current_path, self.editor)
        if result.type == ActionType.REFRESH:
            pane.reload()
        return result

    def _batch_rename(self, command):
        pane = self.active
        result = batch_rename(pane.current_path, pane.operation_selection(), self.editor)
        if result.type == ActionType.REFRESH:
            pane.clear_marks()
            pane.reload()
        return result

    def _enter_search(self, command):
        self.search = SearchSession(self.active.entries)
        self.presenter.show_search_overlay(self.search.results, self.search.selected)

    def _exit_search(self, command):
        session, self.search = self.search, None
        self.presenter.hide_search_overlay()
        if session is None or not command.arg:
            return None
        entry = session.current()
        if entry is not None:
            self.active.select_name(entry.name)
        return None

    def _search_navigate(self, command):
        if self.search is None:
            return None
        self.search.navigate(command.arg)
        self.presenter.show_search_overlay(self.search.results, self.search.selected)
        return None

    def _search_input(self, event):
        if self.search is not None and self.search.feed(event):
            self.presenter.show_search_overlay(self.search.results, self.search.selected)

    def _sort_by(self, command):
        self.active.sort(command.arg)
        return ActionResult(ActionType.NOTIFY, f'Sorted by {command.arg.value}')

    # ------------------------------------------------------------------
    # Background results
    # ------------------------------------------------------------------

    def poll(self):
        """Deliver background progress/results; return True when a redraw is due."""
        changed = self.sequencer.tick()
        changed = self._poll_transfer() or changed
        changed = self._poll_previews() or changed
        if changed:
            self.render()
        return changed

    def _poll_transfer(self):
        if self._transfer is None:
            return False
        task, source, destination = self._transfer
        finished = task.done
        events = task.drain()
        for event in events:
            if isinstance(event, TransferProgress):
                self.presenter.update_progress(event.percent)
            elif isinstance(event, ItemSkipped):
                self.presenter.notify(f'{event.name} ({event.reason})', prefix='Skipped: ')
            elif isinstance(event, ItemFailed):
                self.presenter.notify(f'{event.name}: {event.message}', NOTIFY_LONG_MS, prefix='Failed: ')
        if not finished:
            return bool(events)

        self._transfer = None
        self.presenter.hide_progress()
        for pane in (source, destination):
            result = pane.reload()
            if result is not None:
                self.dispatch_result(result)
        source.clear_marks()

        outcome = task.outcome
        if isinstance(outcome, (Completed, Cancelled)) and outcome.value is not None:
            self.presenter.notify(outcome.value.summary())
        elif isinstance(outcome, Failed):
            self.presenter.notify(outcome.message, NOTIFY_LONG_MS, prefix=f'{outcome.kind}: ')
        return True

    def _poll_previews(self):
        finished = self.pipeline.poll()
        for record in finished:
            outcome = record.outcome
            if isinstance(outcome, Completed):
                self.presenter.show_preview(record.pane_index, outcome.value)
            elif isinstance(outcome, Failed):
                self.presenter.notify(outcome.message, NOTIFY_LONG_MS, prefix=f'{outcome.kind}: ')
        return bool(finished)
