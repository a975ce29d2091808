from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional, Sequence, Tuple

from tetherstream.capture.worker import MANUAL_FOCUS, MANUAL_FOCUS_NEUTRAL
from tetherstream.commander.choices import focus_menu, index_of
from tetherstream.commander.prompt import Prompt
from tetherstream.commander.protocol import Channels
from tetherstream.core import commands as C
from tetherstream.core.state import ExitCode

log = logging.getLogger(__name__)

# device setting names differ between vendors; first one that answers wins
APERTURE = ("aperture", "f-number")
SHUTTER = ("shutterspeed", "shutterspeed2")
ISO = ("iso", "exposureiso")


class Dispatcher:
    """Interactive menu loop; the only thread that issues waiting requests."""

    def __init__(
        self,
        channels: Channels,
        prompt: Prompt,
        *,
        on_exit: Optional[Callable[[], None]] = None,
    ):
        self.channels = channels
        self.prompt = prompt
        self.on_exit = on_exit
        self._actions: List[Tuple[str, Callable[[], None]]] = [
            ("Autofocus", self.autofocus),
            ("Cancel autofocus", self.cancel_autofocus),
            ("Manual focus", self.manual_focus),
            ("Aperture", lambda: self.adjust("Aperture", APERTURE)),
            ("Shutter speed", lambda: self.adjust("Shutter speed", SHUTTER)),
            ("ISO", lambda: self.adjust("ISO", ISO)),
            ("Raw setting", self.raw_setting),
            ("Restart capture", self.restart),
        ]

    # ---------------- requests ----------------

    def _query(self, name: str, accessor: str) -> Any:
        return self.channels.send(C.GET_SETTING, f"{name}:{accessor}", wait=True)

    def _resolve(self, candidates: Sequence[str]) -> Tuple[Optional[str], List[str]]:
        for name in candidates:
            choices = self._query(name, C.ACCESS_CHOICES)
            if choices:
                return name, list(choices)
        return None, []

    # ---------------- actions ----------------

    def autofocus(self) -> None:
        self.channels.send(C.FOCUS_DRIVE_START)

    def cancel_autofocus(self) -> None:
        self.channels.send(C.FOCUS_DRIVE_CANCEL)

    def manual_focus(self) -> None:
        choices = self._query(MANUAL_FOCUS, C.ACCESS_CHOICES)
        if not choices:
            self.prompt.show("Manual focus is not available on this camera.")
            return
        menu = focus_menu(choices)
        labels = [label for label, _ in menu]
        default = index_of([raw for _, raw in menu], MANUAL_FOCUS_NEUTRAL)
        while True:
            picked = self.prompt.choose("Manual focus (Near <-> Far)", labels, default)
            if picked is None:
                return
            self.channels.send(C.MANUAL_FOCUS_STEP, menu[picked][1])
            default = picked

    def adjust(self, title: str, candidates: Sequence[str]) -> None:
        name, choices = self._resolve(candidates)
        if name is None:
            self.prompt.show(f"{title} cannot be set on this camera.")
            return
        while True:
            # the operator may have turned a dial on the body meanwhile
            choices = list(self._query(name, C.ACCESS_CHOICES) or choices)
            current = self._query(name, C.ACCESS_VALUE)
            picked = self.prompt.choose(f"{title} (current: {current})", choices, index_of(choices, current))
            if picked is None:
                return
            if choices[picked] != str(current):
                self.channels.send(C.UPDATE_SETTING, f"{name}:{choices[picked]}")

    def raw_setting(self) -> None:
        text = self.prompt.ask("Setting as name:value (empty to cancel): ")
        if not text:
            return
        self.channels.send(C.UPDATE_SETTING, text)

    def restart(self) -> None:
        self.prompt.show("Restarting capture...")
        outcome = self.channels.send(C.SHUTDOWN, wait=True)
        log.debug("shutdown answered with %r", outcome)

    # ---------------- main loop ----------------

    def run(self) -> int:
        labels = [label for label, _ in self._actions] + ["Exit"]
        while True:
            picked = self.prompt.choose("tetherstream", labels)
            if picked is None or picked == len(self._actions):
                break
            self._actions[picked][1]()
        if self.on_exit is not None:
            self.on_exit()
        return int(ExitCode.OK)
