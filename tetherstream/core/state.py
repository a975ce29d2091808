from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from fractions import Fraction
from typing import Any, List, Optional


class ExitCode(IntEnum):
    OK = 0
    MISSING_SINK = 1
    NO_DEVICE = 2
    DEVICE_LOST = 3
    IDLE_TIMEOUT = 4


class SessionState(Enum):
    NOT_STARTED = "not-started"
    RUNNING = "running"
    TERMINATED = "terminated"


class TerminationReason(Enum):
    CLEAN_SHUTDOWN = "clean-shutdown"
    PIPE_BROKEN = "pipe-broken"
    DEVICE_LOST = "device-lost"


@dataclass(frozen=True)
class StreamConfig:
    # output sink (v4l2loopback device)
    device: str = "/dev/video0"
    width: int = 1920
    height: int = 1080
    preserve_aspect: bool = True

    # startup behaviour
    wait_for_device: bool = False
    idle_timeout_s: float = 0.0  # <= 0 disables the idle check

    # collaborators
    backend: str = "gphoto2"  # gphoto2 | null
    encoder: str = "ffmpeg"

    config_path: Optional[str] = None

    @property
    def aspect(self) -> Fraction:
        return Fraction(self.width, self.height)


@dataclass(frozen=True)
class CaptureGeometry:
    """Shape of the first preview frame seen by a capture session."""

    width: int
    height: int

    @property
    def aspect(self) -> Fraction:
        return Fraction(self.width, self.height)


@dataclass
class Setting:
    """Snapshot of one device setting as the device reports it."""

    name: str
    value: Any = None
    choices: List[str] = field(default_factory=list)
    readonly: bool = False


@dataclass
class SessionLifecycle:
    state: SessionState = SessionState.NOT_STARTED
    reason: Optional[TerminationReason] = None
    message: str = ""

    def start(self) -> None:
        self.state = SessionState.RUNNING

    def terminate(self, reason: TerminationReason, message: str = "") -> None:
        # first reason wins; later teardown steps must not overwrite it
        if self.state is SessionState.TERMINATED:
            return
        self.state = SessionState.TERMINATED
        self.reason = reason
        self.message = message
