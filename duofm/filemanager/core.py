"""
Core data structures and helpers for the file manager panes.
"""
import os
import stat
import unicodedata
from dataclasses import dataclass
from enum import Enum

from ..core.errors import PathUnreadable


def _cell_width(ch):
    """Return terminal cell width for a single character."""
    if not ch:
        return 0
    if unicodedata.combining(ch):
        return 0
    if unicodedata.east_asian_width(ch) in ('W', 'F'):
        return 2
    return 1


def fit_text_to_cells(text, max_cells):
    """Clip/pad text so rendered width does not exceed max_cells."""
    if max_cells <= 0:
        return ''
    out = []
    used = 0
    for ch in text:
        w = _cell_width(ch)
        if used + w > max_cells:
            break
        out.append(ch)
        used += w
    if used < max_cells:
        out.append(' ' * (max_cells - used))
    return ''.join(out)


def format_size(size):
    """Format a byte count as ``500.0 B`` / ``1.0 KB`` / ``1.0 MB`` ..."""
    value = float(size)
    for unit in ('B', 'KB', 'MB', 'GB'):
        if value < 1024 or unit == 'GB':
            return f'{value:.1f} {unit}'
        value /= 1024
    return f'{value:.1f} GB'


class SortMode(str, Enum):
    """Ordering applied to the files (and directories) of a pane."""

    NAME = 'name'
    MODTIME = 'modtime'
    SIZE = 'size'
    EXTENSION = 'extension'

    @classmethod
    def from_key(cls, key):
        """Map a sort-mode key (n/m/s/e) to a SortMode, or None."""
        return _SORT_KEYS.get(key)


_SORT_KEYS = {
    'n': SortMode.NAME,
    'm': SortMode.MODTIME,
    's': SortMode.SIZE,
    'e': SortMode.EXTENSION,
}


@dataclass(frozen=True)
class Entry:
    """Immutable snapshot of one directory child."""

    name: str
    is_dir: bool
    full_path: str
    size: int = 0
    modified_at: float = 0.0

    @property
    def extension(self):
        if self.is_dir:
            return ''
        return os.path.splitext(self.name)[1][1:].lower()


def _name_key(entry):
    return (entry.name.casefold(), entry.name)


def _sort_key(mode):
    if mode == SortMode.MODTIME:
        return lambda e: (not e.is_dir, -e.modified_at, _name_key(e))
    if mode == SortMode.SIZE:
        return lambda e: (not e.is_dir, -e.size, _name_key(e))
    if mode == SortMode.EXTENSION:
        return lambda e: (not e.is_dir, e.extension, _name_key(e))
    return lambda e: (not e.is_dir, _name_key(e))


def sort_entries(entries, mode=SortMode.NAME):
    """Return entries ordered for ``mode``; directories always come first."""
    return sorted(entries, key=_sort_key(SortMode(mode)))


def _entry_from_dirent(dirent):
    try:
        is_dir = dirent.is_dir()
    except OSError:
        is_dir = False
    try:
        st = dirent.stat()
    except OSError:
        # Broken symlinks and races still show up, just without metadata.
        return Entry(dirent.name, is_dir, dirent.path)
    size = 0 if is_dir or not stat.S_ISREG(st.st_mode) else st.st_size
    return Entry(dirent.name, is_dir, dirent.path, size, st.st_mtime)


def read_directory(path, show_hidden=True):
    """List ``path`` and stat each child.

    Raises ``PathUnreadable`` when the directory itself cannot be listed; a
    child whose stat fails is kept with zero size and timestamp.
    """
    entries = []
    try:
        with os.scandir(path) as it:
            for dirent in it:
                if not show_hidden and dirent.name.startswith('.'):
                    continue
                entries.append(_entry_from_dirent(dirent))
    except PermissionError as exc:
        raise PathUnreadable(f'Permission denied: {path}', path) from exc
    except OSError as exc:
        raise PathUnreadable(f'Cannot read {path}: {exc.strerror or exc}', path) from exc
    return entries
