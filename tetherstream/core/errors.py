from __future__ import annotations

from typing import Optional

from tetherstream.core.state import ExitCode


class TetherStreamError(Exception):
    """Base class. `exit_code` is set for errors that end the process."""

    exit_code: Optional[int] = None


class MissingOutputSink(TetherStreamError):
    exit_code = int(ExitCode.MISSING_SINK)


class NoDeviceFound(TetherStreamError):
    exit_code = int(ExitCode.NO_DEVICE)


class DeviceLost(TetherStreamError):
    exit_code = int(ExitCode.DEVICE_LOST)


class IdleTimeoutExceeded(TetherStreamError):
    exit_code = int(ExitCode.IDLE_TIMEOUT)


class EncoderPipeBroken(TetherStreamError):
    """Encoder stdin closed under us. Recoverable: the worker is respawned."""


class SettingWriteFailed(TetherStreamError):
    """Device refused a setting write. Swallowed by the capture loop."""


class UnknownSetting(TetherStreamError, KeyError):
    """Device has no setting by that name."""
