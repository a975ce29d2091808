from __future__ import annotations

import io
import time
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

from PIL import Image

from tetherstream.core.errors import DeviceLost, SettingWriteFailed, UnknownSetting
from tetherstream.core.state import Setting

from .base import DeviceRef, Frame


def _default_settings() -> Dict[str, Setting]:
    return {
        "aperture": Setting("aperture", "5.6", ["2.8", "4", "5.6", "8", "11"]),
        "shutterspeed": Setting("shutterspeed", "1/60", ["1/30", "1/60", "1/125", "1/250"]),
        "iso": Setting("iso", "400", ["100", "200", "400", "800", "1600"]),
        "manualfocusdrive": Setting(
            "manualfocusdrive", "None",
            ["Near 1", "Near 2", "Near 3", "None", "Far 1", "Far 2", "Far 3"],
        ),
        "autofocusdrive": Setting("autofocusdrive", 0),
        "cancelautofocus": Setting("cancelautofocus", 0),
        "serialnumber": Setting("serialnumber", "0000", readonly=True),
    }


def _blank_jpeg(shape: Tuple[int, int]) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", shape, (16, 16, 16)).save(buf, format="JPEG")
    return buf.getvalue()


@dataclass
class NullDeviceSession:
    """In-process dummy camera.

    Serves the same small JPEG on every fetch and keeps settings in a dict.
    Useful for running the stream without hardware, and in tests:
    ``fail_after`` makes the n-th fetch raise ``DeviceLost``.
    """

    shape: Tuple[int, int] = (64, 48)
    settings: Dict[str, Setting] = field(default_factory=_default_settings)
    fail_after: Optional[int] = None
    writes: List[Tuple[str, Any]] = field(default_factory=list)
    closed: bool = False
    _frame_id: int = 0
    _jpeg: bytes = b""

    def fetch_preview_frame(self) -> Frame:
        if self.closed:
            raise DeviceLost("session closed")
        if self.fail_after is not None and self._frame_id >= self.fail_after:
            raise DeviceLost("null device unplugged")
        if not self._jpeg:
            self._jpeg = _blank_jpeg(self.shape)
        self._frame_id += 1
        return Frame(data=self._jpeg, t_s=time.time(), frame_id=self._frame_id)

    def read_setting(self, name: str) -> Setting:
        try:
            s = self.settings[name]
        except KeyError:
            raise UnknownSetting(name) from None
        return replace(s, choices=list(s.choices))

    def write_setting(self, name: str, value: Any) -> None:
        s = self.settings.get(name)
        if s is None or s.readonly:
            raise SettingWriteFailed(f"cannot write {name}")
        if s.choices and str(value) not in s.choices:
            raise SettingWriteFailed(f"{value!r} is not a valid choice for {name}")
        s.value = value
        self.writes.append((name, value))

    def close(self) -> None:
        self.closed = True


@dataclass
class NullBackend:
    """Device backend that always finds exactly one dummy camera."""

    shape: Tuple[int, int] = (64, 48)
    present: bool = True

    def list_devices(self) -> List[DeviceRef]:
        return [DeviceRef("Null Camera", "null:")] if self.present else []

    def open(self, ref: Optional[DeviceRef] = None) -> NullDeviceSession:
        if not self.present:
            raise DeviceLost("no null device present")
        return NullDeviceSession(shape=self.shape)
