from __future__ import annotations

import queue
from typing import Any, Optional

from tetherstream.core.commands import Command, Result, make_cmd


class Channels:
    """Command channel to the capture loop plus the shared result channel.

    Waiting sends get a private one-shot reply queue, so any number of
    threads may issue requests; the n-th waiting send from one thread gets
    the reply to its own command and nothing else. The shared result channel
    only carries terminal outcomes (restart/abort/done) for the supervisor.
    """

    def __init__(self) -> None:
        self.commands: "queue.Queue[Command]" = queue.Queue()
        self.results: "queue.Queue[Result]" = queue.Queue()

    def send(self, action: str, arg: Optional[str] = None, wait: bool = False) -> Any:
        cmd = make_cmd(action, arg, wait=wait)
        self.commands.put(cmd)
        if not wait:
            return None
        return cmd.reply.get()

    def next_command(self) -> Optional[Command]:
        try:
            return self.commands.get_nowait()
        except queue.Empty:
            return None

    def push(self, result: Result) -> None:
        self.results.put(result)

    def receive(self, fail_ok: bool = False) -> Optional[Result]:
        if not fail_ok:
            return self.results.get()
        try:
            return self.results.get_nowait()
        except queue.Empty:
            return None
