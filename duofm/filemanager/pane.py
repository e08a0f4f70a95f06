"""
Pane state: one directory view with selection, marks and sort order.

Panes never reach into their sibling. ``PanePair`` owns both views and hands
the other pane to operations that need a destination.
"""
import logging
import os

from ..core.actions import ActionResult, ActionType
from ..core.errors import PathUnreadable
from ..constants import LEFT_PANE, RIGHT_PANE
from .core import SortMode, read_directory, sort_entries

LOGGER = logging.getLogger(__name__)


def _normalize_path(path):
    return os.path.realpath(os.path.abspath(os.path.expanduser(str(path))))


def _ancestors(path):
    """Yield parents of ``path`` from nearest to the filesystem root."""
    current = path
    while True:
        parent = os.path.dirname(current)
        if parent == current:
            return
        yield parent
        current = parent


class Pane:
    """State of one directory view."""

    def __init__(self, index=LEFT_PANE, *, sort_mode=SortMode.NAME, show_hidden=False,
                 show_details=False, reader=read_directory):
        self.index = index
        self.current_path = None
        self.entries = []
        self.selected_index = -1
        self.marked = set()
        self.is_active = False
        self.sort_mode = SortMode(sort_mode)
        self.show_hidden = bool(show_hidden)
        self.show_details = bool(show_details)
        self.scroll_offset = 0
        self._reader = reader

    def __repr__(self):
        return f'<Pane {self.index} {self.current_path!r} sel={self.selected_index}>'

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _read(self, path):
        return sort_entries(self._reader(path, show_hidden=self.show_hidden), self.sort_mode)

    def _apply(self, path, entries, keep_name):
        if path != self.current_path:
            self.marked = set()
            self.scroll_offset = 0
        self.current_path = path
        self.entries = entries
        names = {entry.name for entry in entries}
        self.marked &= names
        self.selected_index = 0 if entries else -1
        if keep_name is not None:
            self.select_name(keep_name)

    def _recover(self, failed_path):
        """Fall back to the last good path, or its nearest readable ancestor."""
        candidates = []
        if self.current_path is not None:
            if self.current_path != failed_path:
                candidates.append(self.current_path)
            candidates.extend(_ancestors(self.current_path))
        for candidate in candidates:
            try:
                entries = self._read(candidate)
            except PathUnreadable:
                continue
            keep = self.selected_name() if candidate == self.current_path else None
            self._apply(candidate, entries, keep)
            return True
        return False

    def load(self, path, preserve_selection=False):
        """Read ``path`` into this pane.

        Returns ``None`` on success or an ERROR ``ActionResult``; on failure
        the pane reverts to its previous (readable) location.
        """
        target = _normalize_path(path)
        keep_name = self.selected_name() if preserve_selection else None
        try:
            entries = self._read(target)
        except PathUnreadable as exc:
            LOGGER.debug('load(%s) failed: %s', target, exc)
            self._recover(target)
            return ActionResult(ActionType.ERROR, str(exc))
        self._apply(target, entries, keep_name)
        return None

    def reload(self):
        """Re-read the current directory keeping the selected entry."""
        if self.current_path is None:
            return ActionResult(ActionType.ERROR, 'Pane has no directory loaded.')
        return self.load(self.current_path, preserve_selection=True)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def selected_entry(self):
        if 0 <= self.selected_index < len(self.entries):
            return self.entries[self.selected_index]
        return None

    def selected_name(self):
        entry = self.selected_entry()
        return entry.name if entry is not None else None

    def select_name(self, name):
        """Select the entry called ``name``; return False when it is absent."""
        for idx, entry in enumerate(self.entries):
            if entry.name == name:
                self.selected_index = idx
                return True
        return False

    def move_to(self, index):
        if not self.entries:
            self.selected_index = -1
            return
        self.selected_index = max(0, min(int(index), len(self.entries) - 1))

    def move(self, delta):
        if not self.entries:
            return
        self.move_to(self.selected_index + delta)

    def top(self):
        self.move_to(0)

    def bottom(self):
        self.move_to(len(self.entries) - 1)

    def page(self, direction, rows):
        """Move half a page up (-1) or down (+1)."""
        self.move(direction * max(1, rows // 2))

    def ensure_visible(self, rows):
        """Adjust the scroll offset so the selection sits inside ``rows``."""
        rows = max(1, rows)
        if self.selected_index < 0:
            self.scroll_offset = 0
            return
        if self.selected_index < self.scroll_offset:
            self.scroll_offset = self.selected_index
        elif self.selected_index >= self.scroll_offset + rows:
            self.scroll_offset = self.selected_index - rows + 1
        max_offset = max(0, len(self.entries) - rows)
        self.scroll_offset = max(0, min(self.scroll_offset, max_offset))

    def center_on_selection(self, rows):
        rows = max(1, rows)
        if self.selected_index < 0:
            self.scroll_offset = 0
            return
        max_offset = max(0, len(self.entries) - rows)
        self.scroll_offset = max(0, min(self.selected_index - rows // 2, max_offset))

    # ------------------------------------------------------------------
    # Sorting / view
    # ------------------------------------------------------------------

    def sort(self, mode):
        keep_name = self.selected_name()
        self.sort_mode = SortMode(mode)
        self.entries = sort_entries(self.entries, self.sort_mode)
        if keep_name is not None:
            self.select_name(keep_name)

    def toggle_details(self):
        self.show_details = not self.show_details

    # ------------------------------------------------------------------
    # Marks
    # ------------------------------------------------------------------

    def toggle_mark(self):
        entry = self.selected_entry()
        if entry is None:
            return
        if entry.name in self.marked:
            self.marked.discard(entry.name)
        else:
            self.marked.add(entry.name)
            self.move(1)

    def clear_marks(self):
        self.marked = set()

    def operation_selection(self):
        """Entries an operation applies to: the marked set, else the selection."""
        if self.marked:
            return [entry for entry in self.entries if entry.name in self.marked]
        entry = self.selected_entry()
        return [entry] if entry is not None else []

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def enter(self, opener):
        """Descend into the selected directory or open the selected file."""
        entry = self.selected_entry()
        if entry is None:
            return None
        if entry.is_dir:
            return self.load(entry.full_path)
        if not opener.open(entry.full_path):
            return ActionResult(ActionType.ERROR, f'Could not open {entry.name}')
        return None

    def up(self):
        """Load the parent directory and re-select the one just left."""
        if self.current_path is None:
            return None
        parent = os.path.dirname(self.current_path)
        if parent == self.current_path:
            return None
        departed = os.path.basename(self.current_path)
        result = self.load(parent)
        if result is None:
            self.select_name(departed)
        return result


class PanePair:
    """Owns the two panes and which one is active."""

    def __init__(self, left, right):
        self.panes = (left, right)
        left.is_active = True
        right.is_active = False

    @classmethod
    def open(cls, left_path, right_path, **pane_options):
        """Build a pair, falling back to home and then ``/`` for unreadable starts."""
        panes = []
        for index, start in ((LEFT_PANE, left_path), (RIGHT_PANE, right_path)):
            pane = Pane(index, **pane_options)
            for candidate in (start, os.path.expanduser('~'), os.sep):
                if candidate and pane.load(candidate) is None:
                    break
            panes.append(pane)
        return cls(*panes)

    @property
    def active(self):
        return self.panes[0] if self.panes[0].is_active else self.panes[1]

    @property
    def inactive(self):
        return self.other(self.active)

    def other(self, pane):
        return self.panes[1] if pane is self.panes[0] else self.panes[0]

    def switch(self):
        current = self.active
        sibling = self.other(current)
        current.is_active = False
        sibling.is_active = True
        return sibling

    def __iter__(self):
        return iter(self.panes)
