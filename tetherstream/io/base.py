from __future__ import annotations
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol

from tetherstream.core.state import Setting


@dataclass(frozen=True)
class Frame:
    """Single preview frame (JPEG bytes) + basic metadata."""

    data: bytes
    t_s: float
    frame_id: int


@dataclass(frozen=True)
class DeviceRef:
    name: str
    address: str = ""


class DeviceSession(Protocol):
    """Exclusive handle on one device, owned by the live capture loop."""
    def fetch_preview_frame(self) -> Frame: ...
    def read_setting(self, name: str) -> Setting: ...
    def write_setting(self, name: str, value: Any) -> None: ...
    def close(self) -> None: ...


class DeviceBackend(Protocol):
    def list_devices(self) -> List[DeviceRef]: ...
    def open(self, ref: Optional[DeviceRef] = None) -> DeviceSession: ...


class EncoderHandle(Protocol):
    """One spawned encoder child fed with preview frames on stdin."""
    def write(self, data: bytes) -> None: ...
    def alive(self) -> bool: ...
    def terminate(self) -> None: ...
