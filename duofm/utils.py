"""
Utility functions for the duofm curses front end.
"""
import curses
import locale

from .core.sequencer import BACKSPACE, DOWN, ENTER, ESCAPE, TAB, UP, KeyEvent


def safe_addstr(win, y, x, text, attr=0):
    """Write string safely, clipping to window bounds."""
    h, w = win.getmaxyx()
    if y < 0 or y >= h or x >= w:
        return
    max_len = w - x - 1
    if max_len <= 0:
        return
    try:
        win.addnstr(y, x, text, max_len, attr)
    except curses.error:
        pass


def check_unicode_support():
    """Check if terminal supports Unicode."""
    try:
        '│'.encode(locale.getpreferredencoding())
        return True
    except (UnicodeEncodeError, LookupError):
        return False


_NAMED_CHARS = {
    '\n': ENTER,
    '\r': ENTER,
    '\x1b': ESCAPE,
    '\t': TAB,
    '\x7f': BACKSPACE,
    '\b': BACKSPACE,
}


def key_event_from_curses(key):
    """Convert a get_wch()/getch() value into a KeyEvent, or None."""
    if isinstance(key, int):
        named = {
            curses.KEY_UP: UP,
            curses.KEY_DOWN: DOWN,
            curses.KEY_BACKSPACE: BACKSPACE,
            curses.KEY_ENTER: ENTER,
        }.get(key)
        if named is not None:
            return KeyEvent(named)
        if 0 <= key < 256:
            key = chr(key)
        else:
            return None
    if not isinstance(key, str) or len(key) != 1:
        return None
    if key in _NAMED_CHARS:
        return KeyEvent(_NAMED_CHARS[key])
    code = ord(key)
    if 1 <= code <= 26:
        return KeyEvent(chr(code + 96), ctrl=True)
    if not key.isprintable():
        return None
    return KeyEvent(key)
