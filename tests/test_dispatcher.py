import os
import tempfile
import threading
import time
import unittest
from unittest import mock

from _support import FakeClipboard, FakeEditor, FakeOpener, RecordingPresenter, read_bytes, write_file

from duofm.core.actions import ActionResult, ActionType
from duofm.core.config import AppConfig
from duofm.core.dispatcher import SORT_HINT, CommandDispatcher
from duofm.core.sequencer import DOWN, ENTER, ESCAPE, TAB, KeyEvent
from duofm.core.tasks import BackgroundTask
from duofm.filemanager.core import SortMode
from duofm.filemanager.pane import PanePair
from duofm.filemanager.thumbnails import ThumbnailCache, ThumbnailPipeline


class StubProber:
    def probe_duration(self, path):
        return 30.0


class StubExtractor:
    def extract_frame(self, path, seconds, output_path):
        write_file(output_path, b"frame")
        return True


class StubComposer:
    def compose_grid(self, input_paths, output_path):
        write_file(output_path, b"sheet")
        return True


class DispatcherTestCase(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        root = os.path.realpath(self.tmp.name)
        self.left = os.path.join(root, "left")
        self.right = os.path.join(root, "right")
        self.jump = os.path.join(root, "jump")
        for path in (self.left, self.right, self.jump):
            os.mkdir(path)
        write_file(os.path.join(self.left, "alpha.txt"), "alpha")
        write_file(os.path.join(self.left, "beta.txt"), b"b" * 300)
        write_file(os.path.join(self.left, "clip.mp4"), "video")
        os.mkdir(os.path.join(self.left, "sub"))

        self.config = AppConfig(
            quick_jumps={"1": self.jump, "x": os.path.join(root, "missing")},
            chunk_size=16,
            cache_dir=os.path.join(root, "cache"),
        )
        self.presenter = RecordingPresenter(rows=10)
        self.clipboard = FakeClipboard()
        self.opener = FakeOpener()
        self.editor = FakeEditor("")
        self.pipeline = ThumbnailPipeline(
            ThumbnailCache(self.config.cache_dir), StubProber(), StubExtractor(), StubComposer(), frames=3,
        )
        self.panes = PanePair.open(self.left, self.right)
        self.dispatcher = CommandDispatcher(
            self.panes,
            self.presenter,
            config=self.config,
            pipeline=self.pipeline,
            opener=self.opener,
            clipboard=self.clipboard,
            editor=self.editor,
        )
        self.addCleanup(self.pipeline.cancel_all)
        self.addCleanup(self.dispatcher.engine.cancel)

    def keys(self, *names):
        for name in names:
            self.dispatcher.handle_key(KeyEvent(name))

    @property
    def active(self):
        return self.panes.active

    def finish_transfer(self):
        task = self.dispatcher.engine.current
        self.assertTrue(task.join(5))
        self.assertTrue(self.dispatcher.poll())


class NavigationTests(DispatcherTestCase):
    def test_motion_keys_move_selection(self):
        self.keys("j", "j")
        self.assertEqual(self.active.selected_name(), "beta.txt")
        self.keys("G")
        self.assertEqual(self.active.selected_name(), "clip.mp4")
        self.keys("g", "g")
        self.assertEqual(self.active.selected_name(), "sub")
        self.assertIn(("render", 0), self.presenter.calls)

    def test_enter_and_go_up(self):
        self.keys(ENTER)
        self.assertEqual(self.active.current_path, os.path.join(self.left, "sub"))
        self.keys("-")
        self.assertEqual(self.active.current_path, self.left)
        self.assertEqual(self.active.selected_name(), "sub")

    def test_open_file(self):
        self.keys("j", ENTER)
        self.assertEqual(self.opener.opened, [os.path.join(self.left, "alpha.txt")])

    def test_tab_switches_active_pane(self):
        self.keys(TAB)
        self.assertEqual(self.active.index, 1)
        self.keys("j")
        self.assertEqual(self.panes.panes[0].selected_index, 0)

    def test_page_down_uses_visible_rows(self):
        for i in range(20):
            write_file(os.path.join(self.left, f"n{i:02d}"))
        self.keys("g", "r")
        self.dispatcher.handle_key(KeyEvent("d", ctrl=True))
        self.assertEqual(self.active.selected_index, 5)
        self.dispatcher.handle_key(KeyEvent("u", ctrl=True))
        self.assertEqual(self.active.selected_index, 0)

    def test_quick_jump(self):
        self.keys("d", "1")
        self.assertEqual(self.active.current_path, self.jump)

    def test_quick_jump_unknown_key_does_nothing(self):
        self.keys("d", "q")
        self.assertEqual(self.active.current_path, self.left)
        self.assertTrue(self.dispatcher.running)

    def test_quick_jump_to_missing_directory_reports_error(self):
        self.keys("d", "x")
        self.assertEqual(self.active.current_path, self.left)
        self.assertTrue(self.presenter.notifications[-1].startswith("Error: "))

    def test_quit(self):
        self.keys("q")
        self.assertFalse(self.dispatcher.running)

    def test_marks_and_details(self):
        self.keys("j", "m", "m", "U")
        self.assertEqual(self.active.marked, set())
        self.keys("(")
        self.assertTrue(self.active.show_details)

    def test_dispatch_result(self):
        self.dispatcher.dispatch_result(ActionResult(ActionType.ERROR, "boom"))
        self.dispatcher.dispatch_result(ActionResult(ActionType.NOTIFY, "hello"))
        self.dispatcher.dispatch_result(ActionResult(ActionType.REFRESH))
        self.dispatcher.dispatch_result(None)
        self.assertEqual(self.presenter.notifications, ["Error: boom", "hello"])


class SortAndSearchTests(DispatcherTestCase):
    def test_sort_by_size_keeps_selection(self):
        self.keys("j")
        self.keys("s")
        self.assertEqual(self.presenter.notifications[-1], SORT_HINT)
        self.keys("s")
        self.assertEqual(self.active.sort_mode, SortMode.SIZE)
        self.assertEqual(self.active.selected_name(), "alpha.txt")
        self.assertEqual([e.name for e in self.active.entries][1], "beta.txt")

    def test_sort_escape(self):
        self.keys("s", ESCAPE)
        self.assertEqual(self.active.sort_mode, SortMode.NAME)
        self.assertEqual(self.presenter.notifications[-1], "Sort cancelled")

    def test_search_selects_match(self):
        self.keys("/")
        self.assertEqual(self.presenter.overlay[0], ["sub", "alpha.txt", "beta.txt", "clip.mp4"])
        self.keys("t", "x", "t")
        self.assertEqual(self.presenter.overlay[0], ["alpha.txt", "beta.txt"])
        self.keys(DOWN)
        self.assertEqual(self.presenter.overlay[1], 1)
        self.keys(ENTER)
        self.assertIsNone(self.presenter.overlay)
        self.assertEqual(self.active.selected_name(), "beta.txt")

    def test_search_escape_keeps_selection(self):
        self.keys("/", "c", ESCAPE)
        self.assertIsNone(self.presenter.overlay)
        self.assertEqual(self.active.selected_name(), "sub")

    def test_search_swallows_command_keys(self):
        self.keys("/", "q", "D")
        self.assertTrue(self.dispatcher.running)
        self.assertIsNone(self.dispatcher.engine.current)


class ClipboardTests(DispatcherTestCase):
    def test_copy_path(self):
        self.keys("j", "Y")
        path = os.path.join(self.left, "alpha.txt")
        self.assertEqual(self.clipboard.texts, [path])
        self.assertEqual(self.presenter.notifications[-1], f"Copied path: {path}")

    def test_copy_marked_paths(self):
        self.keys("j", "m", "m", "Y")
        self.assertEqual(self.clipboard.texts[0].splitlines(), [
            os.path.join(self.left, "alpha.txt"),
            os.path.join(self.left, "beta.txt"),
        ])

    def test_clipboard_unavailable(self):
        self.clipboard.ok = False
        self.keys("Y")
        self.assertEqual(self.presenter.notifications[-1], "Error: Clipboard unavailable.")


class TransferTests(DispatcherTestCase):
    def test_copy_into_other_pane(self):
        self.keys("j", "j", "C")
        self.assertIn(("show_progress", "Copying beta.txt"), self.presenter.calls)

        self.finish_transfer()

        self.assertEqual(read_bytes(os.path.join(self.right, "beta.txt")), b"b" * 300)
        self.assertEqual(self.presenter.progress[-1], 100.0)
        self.assertIn(("hide_progress",), self.presenter.calls)
        self.assertEqual(self.presenter.notifications[-1], "Copied 1")
        self.assertIn("beta.txt", [e.name for e in self.panes.panes[1].entries])

    def test_move_marked_and_clear_marks(self):
        self.keys("j", "m", "m", "R")
        self.finish_transfer()
        self.assertEqual(sorted(os.listdir(self.right)), ["alpha.txt", "beta.txt"])
        self.assertEqual([e.name for e in self.active.entries], ["sub", "clip.mp4"])
        self.assertEqual(self.active.marked, set())

    def test_copy_skips_existing(self):
        write_file(os.path.join(self.right, "alpha.txt"), "old")
        self.keys("j", "m", "m", "C")
        self.finish_transfer()
        self.assertIn("Skipped: alpha.txt (AlreadyExists)", self.presenter.notifications)
        self.assertEqual(self.presenter.notifications[-1], "Copied 1, skipped 1")
        self.assertEqual(read_bytes(os.path.join(self.right, "alpha.txt")), b"old")

    def test_delete(self):
        self.keys("G", "D")
        self.finish_transfer()
        self.assertFalse(os.path.exists(os.path.join(self.left, "clip.mp4")))
        self.assertEqual(self.presenter.notifications[-1], "Deleted 1")

    def test_busy_engine_refuses_and_escape_cancels(self):
        release = threading.Event()
        self.addCleanup(release.set)

        def worker(token, emit):
            release.wait(5)
            token.raise_if_cancelled()

        self.dispatcher.engine.current = BackgroundTask(worker).start()
        self.keys("C")
        self.assertEqual(self.presenter.notifications[-1], "Error: Another transfer is already running.")
        self.keys(ESCAPE)
        self.assertEqual(self.presenter.notifications[-1], "Cancelling transfer...")
        self.assertTrue(self.dispatcher.engine.current.token.cancelled)

    def test_quit_mid_copy_waits_and_leaves_no_partial_file(self):
        started = threading.Event()

        def stalled_copy(src, dst, token, on_chunk, chunk_size):
            with open(dst, "xb") as fout:
                fout.write(b"b" * chunk_size)
            on_chunk(chunk_size, chunk_size, 300)
            started.set()
            deadline = time.monotonic() + 5
            while not token.cancelled and time.monotonic() < deadline:
                time.sleep(0.01)
            token.raise_if_cancelled()

        with mock.patch("duofm.filemanager.transfer.copy_file_chunked", side_effect=stalled_copy):
            self.keys("j", "j", "C")
            self.assertTrue(started.wait(5))
            self.keys("q")

        self.assertFalse(self.dispatcher.running)
        self.assertTrue(self.dispatcher.engine.current.done)
        self.assertFalse(os.path.exists(os.path.join(self.right, "beta.txt")))
        self.assertEqual(os.listdir(self.right), [])

    def test_escape_without_transfer_is_quiet(self):
        self.keys(ESCAPE)
        self.assertEqual(self.presenter.notifications, [])

    def test_empty_directory_has_nothing_to_copy(self):
        self.keys(ENTER, "C")
        self.assertEqual(self.presenter.notifications[-1], "Error: Nothing selected.")


class PreviewTests(DispatcherTestCase):
    def test_preview_generates_then_serves_from_cache(self):
        self.keys("G", "i")
        self.assertEqual(self.presenter.notifications[-1], "Generating preview for clip.mp4...")
        generation = self.pipeline.active(0)
        self.assertTrue(generation.task.join(5))

        self.assertTrue(self.dispatcher.poll())
        self.assertEqual(self.presenter.previews, [(0, generation.cache_path)])

        self.keys("i")
        self.assertEqual(self.presenter.previews[-1], (0, generation.cache_path))
        self.assertIsNone(self.pipeline.active(0))

    def test_preview_not_supported(self):
        self.keys("j", "i")
        self.assertEqual(self.presenter.notifications[-1], "Preview not supported for alpha.txt")
        self.keys("g", "g", "i")
        self.assertEqual(self.presenter.notifications[-1], "Preview not supported.")


class EditorTests(DispatcherTestCase):
    def test_make_directories(self):
        self.editor.result = "new-one\nnew-two\n"
        self.keys("+")
        self.assertTrue(os.path.isdir(os.path.join(self.left, "new-one")))
        self.assertIn("new-two", [e.name for e in self.active.entries])
        self.assertEqual(self.presenter.notifications[-1], "Created 2 directories")

    def test_batch_rename_marked(self):
        self.editor.result = "first.txt\nsecond.txt\n"
        self.keys("j", "m", "m", "E")
        self.assertEqual(self.editor.seeds, ["alpha.txt\nbeta.txt\n"])
        names = [e.name for e in self.active.entries]
        self.assertIn("first.txt", names)
        self.assertIn("second.txt", names)
        self.assertEqual(self.active.marked, set())

    def test_editor_failure_is_reported(self):
        self.editor.result = "only-one\n"
        self.keys("j", "m", "m", "E")
        self.assertTrue(self.presenter.notifications[-1].startswith("Error: Expected 2 lines"))


if __name__ == "__main__":
    unittest.main()
