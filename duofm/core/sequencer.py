"""
Key-chord sequencer.

A single finite-state machine turns raw ``KeyEvent`` values into resolved
``Command`` values. Prefix states (``d``, ``g``, ``z``) always consume the
next key before any direct binding is considered; modifiers are checked
before a key is treated as a prefix trigger, so Ctrl+d stays a page-down.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from ..constants import SORT_MODE_TIMEOUT
from ..filemanager.core import SortMode

LOGGER = logging.getLogger(__name__)

ESCAPE = 'Escape'
ENTER = 'Enter'
TAB = 'Tab'
BACKSPACE = 'Backspace'
UP = 'Up'
DOWN = 'Down'


@dataclass(frozen=True)
class KeyEvent:
    """One key press; ``key`` is a single character or a named key."""

    key: str
    ctrl: bool = False
    alt: bool = False

    @property
    def plain(self) -> bool:
        return not self.ctrl and not self.alt


class CommandKind(str, Enum):
    MOVE_DOWN = 'move_down'
    MOVE_UP = 'move_up'
    JUMP_TO_TOP = 'jump_to_top'
    JUMP_TO_BOTTOM = 'jump_to_bottom'
    PAGE_UP = 'page_up'
    PAGE_DOWN = 'page_down'
    CENTER_SELECTION = 'center_selection'
    OPEN = 'open'
    GO_UP = 'go_up'
    SWITCH_PANE = 'switch_pane'
    REFRESH = 'refresh'
    QUICK_JUMP = 'quick_jump'
    QUIT = 'quit'
    COPY_PATH = 'copy_path'
    COPY = 'copy'
    MOVE = 'move'
    DELETE = 'delete'
    CANCEL_TRANSFER = 'cancel_transfer'
    TOGGLE_MARK = 'toggle_mark'
    CLEAR_MARKS = 'clear_marks'
    PREVIEW = 'preview'
    MAKE_DIRECTORIES = 'make_directories'
    BATCH_RENAME = 'batch_rename'
    TOGGLE_DETAILS = 'toggle_details'
    ENTER_SEARCH = 'enter_search'
    EXIT_SEARCH = 'exit_search'
    SEARCH_NAVIGATE = 'search_navigate'
    ENTER_SORT = 'enter_sort'
    EXIT_SORT = 'exit_sort'
    SORT_BY = 'sort_by'


@dataclass(frozen=True)
class Command:
    kind: CommandKind
    arg: Any = None


class SequencerState(str, Enum):
    IDLE = 'idle'
    AWAITING_QUICK_JUMP_TARGET = 'awaiting_quick_jump_target'
    AWAITING_G = 'awaiting_g'
    AWAITING_Z = 'awaiting_z'
    SEARCH = 'search'
    SORT = 'sort'


# (key, ctrl) -> command kind, resolved only from IDLE.
DIRECT_BINDINGS = {
    ('j', False): CommandKind.MOVE_DOWN,
    (DOWN, False): CommandKind.MOVE_DOWN,
    ('k', False): CommandKind.MOVE_UP,
    (UP, False): CommandKind.MOVE_UP,
    ('G', False): CommandKind.JUMP_TO_BOTTOM,
    (ENTER, False): CommandKind.OPEN,
    ('-', False): CommandKind.GO_UP,
    (TAB, False): CommandKind.SWITCH_PANE,
    ('u', True): CommandKind.PAGE_UP,
    ('d', True): CommandKind.PAGE_DOWN,
    ('q', False): CommandKind.QUIT,
    ('Y', False): CommandKind.COPY_PATH,
    ('C', False): CommandKind.COPY,
    ('R', False): CommandKind.MOVE,
    ('D', False): CommandKind.DELETE,
    ('m', False): CommandKind.TOGGLE_MARK,
    ('U', False): CommandKind.CLEAR_MARKS,
    ('i', False): CommandKind.PREVIEW,
    ('+', False): CommandKind.MAKE_DIRECTORIES,
    ('E', False): CommandKind.BATCH_RENAME,
    ('(', False): CommandKind.TOGGLE_DETAILS,
    (ESCAPE, False): CommandKind.CANCEL_TRANSFER,
}

PREFIX_STATES = {
    'd': SequencerState.AWAITING_QUICK_JUMP_TARGET,
    'g': SequencerState.AWAITING_G,
    'z': SequencerState.AWAITING_Z,
}


class InputSequencer:
    """Chord-disambiguation state machine."""

    def __init__(self, quick_jump_keys=(), *, search_sink: Callable[[KeyEvent], None] | None = None,
                 clock: Callable[[], float] = time.monotonic, sort_timeout: float = SORT_MODE_TIMEOUT):
        self.quick_jump_keys = frozenset(quick_jump_keys)
        self.search_sink = search_sink
        self.state = SequencerState.IDLE
        self._clock = clock
        self._sort_timeout = sort_timeout
        self._sort_entered_at = 0.0

    def reset(self):
        self.state = SequencerState.IDLE

    def tick(self) -> bool:
        """Expire SORT mode after its idle timeout; return True when it expired."""
        if self.state != SequencerState.SORT:
            return False
        if self._clock() - self._sort_entered_at < self._sort_timeout:
            return False
        LOGGER.debug('sort mode expired')
        self.state = SequencerState.IDLE
        return True

    def feed(self, event: KeyEvent) -> Command | None:
        """Consume one key event and return the resolved command, if any."""
        self.tick()
        handler = {
            SequencerState.IDLE: self._from_idle,
            SequencerState.AWAITING_QUICK_JUMP_TARGET: self._from_quick_jump,
            SequencerState.AWAITING_G: self._from_g,
            SequencerState.AWAITING_Z: self._from_z,
            SequencerState.SEARCH: self._from_search,
            SequencerState.SORT: self._from_sort,
        }[self.state]
        command = handler(event)
        if command is not None:
            LOGGER.debug('key %r -> %s(%r)', event, command.kind.value, command.arg)
        return command

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _from_idle(self, event):
        if event.plain:
            prefix_state = PREFIX_STATES.get(event.key)
            if prefix_state is not None:
                self.state = prefix_state
                return None
            if event.key == '/':
                self.state = SequencerState.SEARCH
                return Command(CommandKind.ENTER_SEARCH)
            if event.key == 's':
                self.state = SequencerState.SORT
                self._sort_entered_at = self._clock()
                return Command(CommandKind.ENTER_SORT)
        if event.alt:
            return None
        kind = DIRECT_BINDINGS.get((event.key, event.ctrl))
        return Command(kind) if kind is not None else None

    def _from_quick_jump(self, event):
        self.state = SequencerState.IDLE
        if event.plain and event.key in self.quick_jump_keys:
            return Command(CommandKind.QUICK_JUMP, event.key)
        return None

    def _from_g(self, event):
        self.state = SequencerState.IDLE
        if not event.plain:
            return None
        if event.key == 'g':
            return Command(CommandKind.JUMP_TO_TOP)
        if event.key == 'r':
            return Command(CommandKind.REFRESH)
        return None

    def _from_z(self, event):
        self.state = SequencerState.IDLE
        if event.plain and event.key == 'z':
            return Command(CommandKind.CENTER_SELECTION)
        return None

    def _from_search(self, event):
        if event.plain and event.key in (ESCAPE, ENTER):
            self.state = SequencerState.IDLE
            return Command(CommandKind.EXIT_SEARCH, event.key == ENTER)
        if event.plain and event.key == DOWN:
            return Command(CommandKind.SEARCH_NAVIGATE, 1)
        if event.plain and event.key == UP:
            return Command(CommandKind.SEARCH_NAVIGATE, -1)
        if self.search_sink is not None:
            self.search_sink(event)
        return None

    def _from_sort(self, event):
        self.state = SequencerState.IDLE
        if not event.plain:
            return None
        if event.key == ESCAPE:
            return Command(CommandKind.EXIT_SORT)
        mode = SortMode.from_key(event.key)
        if mode is not None:
            return Command(CommandKind.SORT_BY, mode)
        return None
