"""
Typed action contract used by panes and operations to talk to the dispatcher.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ActionType(str, Enum):
    """Supported action kinds exchanged with the dispatcher."""

    REFRESH = "refresh"
    ERROR = "error"
    NOTIFY = "notify"


@dataclass(frozen=True)
class ActionResult:
    """Action message emitted by pane/operation handlers."""

    type: ActionType
    payload: Any = None
