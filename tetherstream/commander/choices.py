from __future__ import annotations

import re
from typing import Iterable, List, Optional, Tuple

GLYPH = "+"

_STEP = re.compile(r"^\s*(near|far)\s*(\d+)\s*$", re.IGNORECASE)


def focus_magnitude(choice: str) -> int:
    """Signed step size of a manualfocusdrive choice.

    "Near 3" -> -3, "Far 2" -> 2, "None" (or anything unparseable) -> 0.
    """
    m = _STEP.match(choice)
    if m is None:
        return 0
    n = int(m.group(2))
    return -n if m.group(1).lower() == "near" else n


def sort_focus_choices(choices: Iterable[str]) -> List[str]:
    """Near steps from largest to smallest, then neutral, then far steps growing."""
    return sorted(choices, key=focus_magnitude)


def focus_label(choice: str) -> str:
    """Display label: "Near 3" -> "Near +++"."""
    m = _STEP.match(choice)
    if m is None:
        return choice
    return f"{m.group(1).capitalize()} {GLYPH * int(m.group(2))}"


def focus_menu(choices: Iterable[str]) -> List[Tuple[str, str]]:
    """(label, raw value) pairs in menu order."""
    return [(focus_label(c), c) for c in sort_focus_choices(choices)]


def index_of(values: List[str], value: object) -> Optional[int]:
    try:
        return values.index(str(value))
    except ValueError:
        return None
