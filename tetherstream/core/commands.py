from __future__ import annotations

import queue
from dataclasses import dataclass
from typing import Any, Optional

# command tags understood by the capture loop
FOCUS_DRIVE_START = "focus-drive-start"
FOCUS_DRIVE_CANCEL = "focus-drive-cancel"
MANUAL_FOCUS_STEP = "manual-focus-step"
GET_SETTING = "get-setting"
UPDATE_SETTING = "update-setting"
SHUTDOWN = "shutdown"

ACTIONS = (
    FOCUS_DRIVE_START,
    FOCUS_DRIVE_CANCEL,
    MANUAL_FOCUS_STEP,
    GET_SETTING,
    UPDATE_SETTING,
    SHUTDOWN,
)

# terminal result tags pushed by the capture loop on exit
RESULT_RESTART = "restart"
RESULT_ABORT = "abort"
RESULT_DONE = "done"

# get-setting accessors
ACCESS_VALUE = "value"
ACCESS_CHOICES = "choices"


@dataclass
class Command:
    action: str
    arg: Optional[str] = None
    # one-shot reply queue, set only when the sender waits for the result
    reply: "Optional[queue.Queue[Any]]" = None

    @property
    def waiting(self) -> bool:
        return self.reply is not None


@dataclass(frozen=True)
class Result:
    tag: str
    payload: Any = None
    message: str = ""

    @property
    def fatal(self) -> bool:
        return self.tag == RESULT_ABORT


def make_cmd(action: str, arg: Optional[str] = None, *, wait: bool = False) -> Command:
    reply: "Optional[queue.Queue[Any]]" = queue.Queue(maxsize=1) if wait else None
    return Command(action=action, arg=None if arg is None else str(arg), reply=reply)


def split_arg(arg: Optional[str]) -> tuple[str, Optional[str]]:
    """Split ``"name:value"`` on the first colon. No colon gives ``(name, None)``."""
    text = (arg or "").strip()
    name, sep, rest = text.partition(":")
    return name.strip(), (rest.strip() if sep else None)
