"""Shared test helpers.

Provides a small fake ``curses`` module, a presenter that records every call
and helpers to build directory trees.
"""

from __future__ import annotations

import os
import types

from duofm.core.presenter import Presenter


def make_fake_curses() -> types.ModuleType:
    """Return a minimal fake curses module for unit tests."""

    fake = types.ModuleType("curses")

    fake.A_BOLD = 1
    fake.A_REVERSE = 2
    fake.A_DIM = 4

    fake.KEY_UP = 259
    fake.KEY_DOWN = 258
    fake.KEY_BACKSPACE = 263
    fake.KEY_ENTER = 343
    fake.KEY_RESIZE = 410

    fake.error = Exception
    fake.doupdate = lambda: None
    fake.update_lines_cols = lambda: None
    fake.def_prog_mode = lambda: None
    fake.reset_prog_mode = lambda: None
    fake.endwin = lambda: None
    fake.curs_set = lambda _value: None

    return fake


class FakeStdscr:
    """Records addnstr calls on a fixed-size grid."""

    def __init__(self, h=24, w=100):
        self.h = h
        self.w = w
        self.lines = {}
        self.keys = []
        self.refreshed = 0

    def getmaxyx(self):
        return self.h, self.w

    def addnstr(self, y, x, text, n, attr=0):
        self.lines[(y, x)] = (text[:n], attr)

    def erase(self):
        self.lines = {}

    def noutrefresh(self):
        pass

    def refresh(self):
        self.refreshed += 1

    def timeout(self, _ms):
        pass

    def get_wch(self):
        if not self.keys:
            raise Exception("no input")
        return self.keys.pop(0)

    def text(self):
        return "\n".join(text for _pos, (text, _attr) in sorted(self.lines.items()))


class RecordingPresenter(Presenter):
    """Presenter that keeps a log of every call for assertions."""

    def __init__(self, rows=20):
        self.rows = rows
        self.calls = []
        self.notifications = []
        self.progress = []
        self.previews = []
        self.overlay = None

    def render(self, pane):
        self.calls.append(("render", pane.index))

    def notify(self, message, duration_ms=2000, prefix=""):
        self.notifications.append(prefix + message)

    def show_progress(self, label):
        self.calls.append(("show_progress", label))

    def update_progress(self, percent):
        self.progress.append(percent)

    def hide_progress(self):
        self.calls.append(("hide_progress",))

    def show_search_overlay(self, results, selected_index):
        self.overlay = ([entry.name for entry in results], selected_index)

    def hide_search_overlay(self):
        self.overlay = None

    def show_preview(self, pane_index, image_path):
        self.previews.append((pane_index, image_path))

    def visible_rows(self):
        return self.rows


class FakeEditor:
    """Text editor stand-in returning a canned buffer (or raising)."""

    def __init__(self, result="", error=None):
        self.result = result
        self.error = error
        self.seeds = []

    def edit(self, seed_text):
        self.seeds.append(seed_text)
        if self.error is not None:
            raise self.error
        if callable(self.result):
            return self.result(seed_text)
        return self.result


class FakeOpener:
    def __init__(self, ok=True):
        self.ok = ok
        self.opened = []

    def open(self, path):
        self.opened.append(path)
        return self.ok


class FakeClipboard:
    def __init__(self, ok=True):
        self.ok = ok
        self.texts = []

    def write_text(self, text):
        self.texts.append(text)
        return self.ok


def write_file(path, data=b"", mtime=None):
    """Create ``path`` (and parents) holding ``data``."""
    os.makedirs(os.path.dirname(path), exist_ok=True)
    if isinstance(data, str):
        data = data.encode("utf-8")
    with open(path, "wb") as stream:
        stream.write(data)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


def read_bytes(path):
    with open(path, "rb") as stream:
        return stream.read()
