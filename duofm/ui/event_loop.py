"""Main loop helpers for duofm."""

import curses

from ..utils import key_event_from_curses

INPUT_TIMEOUT_MS = 100


def read_input_key(stdscr):
    """Read one key from curses, returning None on timeout/no input."""
    try:
        return stdscr.get_wch()
    except curses.error:
        return None


def dispatch_input(dispatcher, screen, key):
    """Dispatch one raw key to the dispatcher."""
    if key is None:
        return
    if isinstance(key, int) and key == curses.KEY_RESIZE:
        curses.update_lines_cols()
        dispatcher.render()
        return
    event = key_event_from_curses(key)
    if event is None:
        return
    screen.clear_preview()
    dispatcher.handle_key(event)


def run_app_loop(dispatcher, screen):
    """Run main draw/input loop until the dispatcher stops."""
    screen.stdscr.timeout(INPUT_TIMEOUT_MS)
    dispatcher.render()
    try:
        while dispatcher.running:
            dispatcher.poll()
            screen.draw_frame()
            key = read_input_key(screen.stdscr)
            dispatch_input(dispatcher, screen, key)
    finally:
        # Ctrl+C and crashes still wait for background work to clean up.
        if dispatcher.running:
            dispatcher.shutdown()
