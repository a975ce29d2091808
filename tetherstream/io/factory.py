from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from tetherstream.core.errors import NoDeviceFound
from tetherstream.core.state import StreamConfig

from .base import DeviceBackend, DeviceRef

log = logging.getLogger(__name__)


def make_backend(cfg: StreamConfig) -> DeviceBackend:
    """Create the device backend named by ``cfg.backend``: "gphoto2" | "null"."""

    mode = str(getattr(cfg, "backend", "gphoto2")).strip().lower()

    if mode == "gphoto2":
        from .gphoto_backend import GPhotoBackend

        return GPhotoBackend()

    elif mode == "null":
        from .null_backend import NullBackend

        return NullBackend()

    raise ValueError(f"Unknown device backend: {mode!r}")


def find_device(
    backend: DeviceBackend,
    *,
    wait: bool = False,
    poll_s: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
    on_wait: Optional[Callable[[], None]] = None,
) -> DeviceRef:
    """First detected device. With ``wait`` keep polling until one shows up."""
    announced = False
    while True:
        devices = backend.list_devices()
        if devices:
            log.info("found %d device(s), using %s", len(devices), devices[0].name)
            return devices[0]
        if not wait:
            raise NoDeviceFound("no camera detected")
        if not announced and on_wait is not None:
            on_wait()
            announced = True
        sleep(poll_s)
