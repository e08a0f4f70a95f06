"""
Curses presenter: draws both panes, the status line and overlays.
"""
import contextlib
import curses
import logging
import shutil
import subprocess
import time
from datetime import datetime

from ..constants import NOTIFY_SHORT_MS
from ..core.presenter import Presenter
from ..filemanager.core import fit_text_to_cells, format_size
from ..utils import check_unicode_support, safe_addstr

LOGGER = logging.getLogger(__name__)

HEADER_ROWS = 1
FOOTER_ROWS = 2


def _detect_image_preview_backend():
    """Select available command backend for image preview."""
    if shutil.which('chafa'):
        return 'chafa'
    if shutil.which('timg'):
        return 'timg'
    return None


def read_image_preview(path, max_lines, max_cols):
    """Render an image to text lines using chafa/timg when available."""
    if max_lines <= 0 or max_cols <= 0:
        return []
    backend = _detect_image_preview_backend()
    if not backend:
        return [f'Preview saved to {path}', '[install chafa/timg to view it here]']

    if backend == 'chafa':
        cmd = ['chafa', '--format=symbols', '--size', f'{max_cols}x{max_lines}', '--colors=none', path]
    else:
        cmd = ['timg', '-g', f'{max_cols}x{max_lines}', path]

    try:
        completed = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            timeout=2.0,
            check=False,
        )
    except (OSError, subprocess.SubprocessError):
        return [f'[image preview failed via {backend}]']

    if completed.returncode != 0:
        return [f'[image preview failed via {backend}]']
    lines = completed.stdout.splitlines()
    if not lines:
        return ['[empty image output]']
    return lines[:max_lines]


def entry_label(entry, marked, show_details, width):
    """Build the text of one list row."""
    mark = '*' if marked else ' '
    name = entry.name + ('/' if entry.is_dir else '')
    if not show_details or width < 40:
        return fit_text_to_cells(f'{mark} {name}', width)
    size = '-' if entry.is_dir else format_size(entry.size)
    stamp = datetime.fromtimestamp(entry.modified_at).strftime('%Y-%m-%d %H:%M') if entry.modified_at else '-'
    detail = f' {size:>10} {stamp}'
    return fit_text_to_cells(f'{mark} {name}', width - len(detail)) + detail


class CursesScreen(Presenter):
    """Presenter backed by a curses window."""

    def __init__(self, stdscr, clock=time.monotonic):
        self.stdscr = stdscr
        self._clock = clock
        self.use_unicode = check_unicode_support()
        self._panes = {}
        self._message = None
        self._progress = None
        self._search = None
        self._preview = None

    # ------------------------------------------------------------------
    # Presenter interface
    # ------------------------------------------------------------------

    def render(self, pane):
        self._panes[pane.index] = pane

    def notify(self, message, duration_ms=NOTIFY_SHORT_MS, prefix=''):
        LOGGER.debug('notify: %s%s', prefix, message)
        self._message = (f'{prefix}{message}', self._clock() + duration_ms / 1000.0)

    def show_progress(self, label):
        self._progress = [label, 0.0]

    def update_progress(self, percent):
        if self._progress is not None:
            self._progress[1] = percent

    def hide_progress(self):
        self._progress = None

    def show_search_overlay(self, results, selected_index):
        self._search = (list(results), selected_index)

    def hide_search_overlay(self):
        self._search = None

    def show_preview(self, pane_index, image_path):
        h, w = self.stdscr.getmaxyx()
        lines = read_image_preview(image_path, self.visible_rows(), max(1, w // 2 - 2))
        self._preview = (pane_index, lines)

    def clear_preview(self):
        self._preview = None

    def visible_rows(self):
        h, _ = self.stdscr.getmaxyx()
        return max(1, h - HEADER_ROWS - FOOTER_ROWS)

    @contextlib.contextmanager
    def suspend(self):
        """Hand the terminal to a child process (the text editor)."""
        curses.def_prog_mode()
        curses.endwin()
        try:
            yield
        finally:
            curses.reset_prog_mode()
            self.stdscr.refresh()

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------

    def draw_frame(self):
        self.stdscr.erase()
        h, w = self.stdscr.getmaxyx()
        half = w // 2
        for index, x, width in ((0, 0, half), (1, half, w - half)):
            pane = self._panes.get(index)
            if pane is None:
                continue
            if self._preview is not None and self._preview[0] != index:
                self._draw_preview(x, width)
            else:
                self._draw_pane(pane, x, width)
        if self._search is not None:
            self._draw_search(w)
        self._draw_footer(h, w)
        self.stdscr.noutrefresh()
        curses.doupdate()

    def _draw_pane(self, pane, x, width):
        header_attr = curses.A_BOLD if pane.is_active else 0
        safe_addstr(self.stdscr, 0, x, fit_text_to_cells(f' {pane.current_path}', width - 1), header_attr)
        rows = self.visible_rows()
        if not pane.entries:
            safe_addstr(self.stdscr, HEADER_ROWS, x, '  (empty)', curses.A_DIM)
            return
        visible = pane.entries[pane.scroll_offset:pane.scroll_offset + rows]
        for offset, entry in enumerate(visible):
            idx = pane.scroll_offset + offset
            attr = 0
            if idx == pane.selected_index:
                attr = curses.A_REVERSE if pane.is_active else curses.A_BOLD
            elif entry.is_dir:
                attr = curses.A_BOLD
            label = entry_label(entry, entry.name in pane.marked, pane.show_details, width - 1)
            safe_addstr(self.stdscr, HEADER_ROWS + offset, x, label, attr)

    def _draw_preview(self, x, width):
        _, lines = self._preview
        safe_addstr(self.stdscr, 0, x, fit_text_to_cells(' Preview', width - 1), curses.A_BOLD)
        for offset, line in enumerate(lines[:self.visible_rows()]):
            safe_addstr(self.stdscr, HEADER_ROWS + offset, x, line[:width - 1])

    def _draw_search(self, w):
        results, selected = self._search
        width = max(20, min(w - 4, 60))
        x = max(0, (w - width) // 2)
        rows = min(len(results), max(1, self.visible_rows() - 2))
        safe_addstr(self.stdscr, 1, x, fit_text_to_cells(f' Search ({len(results)})', width), curses.A_REVERSE)
        start = max(0, selected - rows + 1)
        for offset, entry in enumerate(results[start:start + rows]):
            attr = curses.A_REVERSE if start + offset == selected else 0
            safe_addstr(self.stdscr, 2 + offset, x, fit_text_to_cells(f' {entry.name}', width), attr)

    def _draw_footer(self, h, w):
        if self._progress is not None:
            label, percent = self._progress
            bar_w = max(10, w // 3)
            filled = int(bar_w * percent / 100)
            fill_char = '█' if self.use_unicode else '#'
            bar = fill_char * filled + '.' * (bar_w - filled)
            safe_addstr(self.stdscr, h - 2, 0, f' {label} [{bar}] {percent:5.1f}%')
        if self._message is not None:
            text, expires_at = self._message
            if self._clock() >= expires_at:
                self._message = None
            else:
                safe_addstr(self.stdscr, h - 1, 0, fit_text_to_cells(f' {text}', w - 1))
