from __future__ import annotations

from typing import Callable, Optional, Sequence

BACK = ""


class Prompt:
    """Numbered terminal menus on plain stdin/stdout.

    ``choose`` returns the picked index or None when the operator backs out
    (empty line, "q" or end of input).
    """

    def __init__(
        self,
        input_fn: Callable[[str], str] = input,
        print_fn: Callable[..., None] = print,
    ):
        self._input = input_fn
        self._print = print_fn

    def _read(self, text: str) -> Optional[str]:
        try:
            return self._input(text)
        except EOFError:
            return None

    def choose(self, title: str, options: Sequence[str], default: Optional[int] = None) -> Optional[int]:
        while True:
            self._print(f"\n{title}")
            for i, label in enumerate(options, start=1):
                mark = "*" if default is not None and i - 1 == default else " "
                self._print(f" {mark}{i:>2}) {label}")
            hint = f" [{default + 1}]" if default is not None else ""
            raw = self._read(f"choice{hint} (enter/q = back): ")
            if raw is None:
                return None
            raw = raw.strip().lower()
            if raw in (BACK, "q"):
                return None
            try:
                picked = int(raw) - 1
            except ValueError:
                self._print(f"not a number: {raw!r}")
                continue
            if 0 <= picked < len(options):
                return picked
            self._print(f"pick 1-{len(options)}")

    def ask(self, text: str) -> str:
        raw = self._read(text)
        return "" if raw is None else raw.strip()

    def show(self, text: str) -> None:
        self._print(text)
