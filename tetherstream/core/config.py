from __future__ import annotations

import logging
from dataclasses import fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from tetherstream.core.state import StreamConfig

log = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "~/.config/tetherstream/config.toml"


def _load_toml(config_path: str) -> Dict[str, Any]:
    p = Path(config_path).expanduser()
    if not p.exists():
        raise FileNotFoundError(f"Config file not found: {p}")
    txt = p.read_text()
    try:
        import tomllib  # py>=3.11
    except ImportError:
        import toml
        return toml.loads(txt)
    return tomllib.loads(txt)


def _get(d: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    cur: Any = d
    for k in keys:
        if not isinstance(cur, dict) or k not in cur:
            return default
        cur = cur[k]
    return cur


def parse_size(text: str) -> Tuple[int, int]:
    """Parse ``"1920x1080"`` into ``(1920, 1080)``."""
    w, sep, h = str(text).strip().lower().partition("x")
    if not sep:
        raise ValueError(f"size must look like WIDTHxHEIGHT, got {text!r}")
    width, height = int(w), int(h)
    if width <= 0 or height <= 0:
        raise ValueError(f"size must be positive, got {text!r}")
    return width, height


def _flag(key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be true or false, got {value!r}")
    return value


def _from_table(data: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}

    device = _get(data, "output", "device", default=_get(data, "device"))
    if device is not None:
        out["device"] = str(device)

    size = _get(data, "output", "size", default=_get(data, "size"))
    if size is not None:
        out["width"], out["height"] = parse_size(size)

    aspect = _get(data, "output", "preserve_aspect", default=_get(data, "preserve_aspect"))
    if aspect is not None:
        out["preserve_aspect"] = _flag("preserve_aspect", aspect)

    wait = _get(data, "capture", "wait", default=_get(data, "wait"))
    if wait is not None:
        out["wait_for_device"] = _flag("wait", wait)

    idle = _get(data, "capture", "idle_timeout", default=_get(data, "idle_timeout"))
    if idle is not None:
        # minutes in the file, seconds at runtime
        out["idle_timeout_s"] = float(idle) * 60.0

    backend = _get(data, "capture", "backend", default=_get(data, "backend"))
    if backend is not None:
        out["backend"] = str(backend).strip().lower()

    encoder = _get(data, "output", "encoder", default=_get(data, "encoder"))
    if encoder is not None:
        out["encoder"] = str(encoder)

    return out


def readStreamConfig(config_path: Optional[str] = None, **overrides: Any) -> StreamConfig:
    """Build the runtime config: defaults, then the TOML file, then ``overrides``.

    Overrides set to ``None`` are ignored so argparse namespaces can be passed
    straight through. A missing file is fine; an unreadable or malformed one
    logs a warning and the defaults are used instead.
    """
    cfg = StreamConfig()
    path = config_path or DEFAULT_CONFIG_PATH

    try:
        data = _load_toml(path)
    except FileNotFoundError:
        if config_path:
            log.warning("config file %s not found, using defaults", path)
        data = {}
    except Exception as e:
        log.warning("could not read config file %s (%s), using defaults", path, e)
        data = {}

    try:
        file_values = _from_table(data)
    except (TypeError, ValueError) as e:
        log.warning("malformed config file %s (%s), using defaults", path, e)
        file_values = {}

    known = {f.name for f in fields(StreamConfig)}
    cli_values = {k: v for k, v in overrides.items() if v is not None and k in known}
    unknown = set(overrides) - known
    if unknown:
        raise TypeError(f"unknown config keys: {sorted(unknown)}")

    merged = {**file_values, **cli_values, "config_path": path}
    return replace(cfg, **merged)
