from __future__ import annotations

import io
import logging
import threading
from typing import Any, Callable, Optional

from PIL import Image

from tetherstream.commander.protocol import Channels
from tetherstream.core import commands as C
from tetherstream.core.commands import Command, Result, split_arg
from tetherstream.core.errors import DeviceLost, EncoderPipeBroken, SettingWriteFailed, UnknownSetting
from tetherstream.core.state import (
    CaptureGeometry,
    SessionLifecycle,
    StreamConfig,
    TerminationReason,
)
from tetherstream.io.base import DeviceBackend, DeviceRef, DeviceSession, EncoderHandle
from tetherstream.io.encoder import spawn_encoder

log = logging.getLogger(__name__)

AUTOFOCUS = "autofocusdrive"
CANCEL_AUTOFOCUS = "cancelautofocus"
MANUAL_FOCUS = "manualfocusdrive"
MANUAL_FOCUS_NEUTRAL = "None"

EncoderFactory = Callable[[StreamConfig, CaptureGeometry], EncoderHandle]


def probe_geometry(jpeg: bytes) -> CaptureGeometry:
    with Image.open(io.BytesIO(jpeg)) as im:
        w, h = im.size
    return CaptureGeometry(width=w, height=h)


class CaptureThread(threading.Thread):
    """Preview -> encoder streaming loop that also executes operator commands.

    Owns the device session and the encoder child for its whole lifetime and
    releases both on every way out of ``run``. Terminal outcomes go to the
    shared result channel: "done" after a shutdown command, "restart" when the
    encoder pipe breaks, "abort" when the device goes away. Any other exception
    ends the thread without a result, which the supervisor reads as a crash.
    """

    def __init__(
        self,
        config: StreamConfig,
        backend: DeviceBackend,
        channels: Channels,
        *,
        device_ref: Optional[DeviceRef] = None,
        encoder_factory: EncoderFactory = spawn_encoder,
    ):
        super().__init__(daemon=True, name="capture")
        self.config = config
        self.backend = backend
        self.channels = channels
        self.device_ref = device_ref
        self.encoder_factory = encoder_factory

        self.lifecycle = SessionLifecycle()
        self.geometry: Optional[CaptureGeometry] = None
        self.session: Optional[DeviceSession] = None
        self.encoder: Optional[EncoderHandle] = None
        self._pending: Optional[Command] = None
        self._frames = 0

    # ---------------- commands ----------------

    def _write_quiet(self, name: str, value: Any) -> None:
        try:
            self.session.write_setting(name, value)
        except (SettingWriteFailed, UnknownSetting) as e:
            log.debug("setting write ignored: %s", e)

    def _get_setting(self, arg: Optional[str]) -> Any:
        name, accessor = split_arg(arg)
        try:
            setting = self.session.read_setting(name)
        except UnknownSetting:
            log.debug("get-setting: no such setting %r", name)
            return None
        if accessor is None:
            return setting
        if accessor == C.ACCESS_VALUE:
            return setting.value
        if accessor == C.ACCESS_CHOICES:
            return list(setting.choices)
        log.warning("get-setting: unknown accessor %r", accessor)
        return None

    def _apply_command(self, cmd: Command) -> bool:
        """Run one command. Returns True when the loop should stop."""
        self._pending = cmd
        out: Any = None
        t = cmd.action

        if t == C.FOCUS_DRIVE_START:
            self._write_quiet(AUTOFOCUS, 1)
        elif t == C.FOCUS_DRIVE_CANCEL:
            self._write_quiet(CANCEL_AUTOFOCUS, 1)
            self._write_quiet(AUTOFOCUS, 0)
        elif t == C.MANUAL_FOCUS_STEP:
            # the firmware reacts to the edge, so always return to neutral
            self._write_quiet(MANUAL_FOCUS, cmd.arg)
            self._write_quiet(MANUAL_FOCUS, MANUAL_FOCUS_NEUTRAL)
        elif t == C.GET_SETTING:
            out = self._get_setting(cmd.arg)
        elif t == C.UPDATE_SETTING:
            name, value = split_arg(cmd.arg)
            if not name or value is None:
                log.debug("update-setting: expected name:value, got %r", cmd.arg)
            else:
                self._write_quiet(name, value)
        elif t == C.SHUTDOWN:
            # answered from run() once the session is released
            return True
        else:
            log.warning("unknown command %r", t)

        if cmd.waiting:
            cmd.reply.put(out)
        self._pending = None
        return False

    # ---------------- lifecycle ----------------

    def _start(self) -> None:
        self.session = self.backend.open(self.device_ref)
        first = self.session.fetch_preview_frame()
        self.geometry = probe_geometry(first.data)
        log.info(
            "capture geometry %dx%d, output %dx%d",
            self.geometry.width, self.geometry.height, self.config.width, self.config.height,
        )
        self.encoder = self.encoder_factory(self.config, self.geometry)
        self.lifecycle.start()

    def _stream(self) -> None:
        while True:
            frame = self.session.fetch_preview_frame()
            # may block while the encoder is behind
            self.encoder.write(frame.data)
            self._frames += 1

            cmd = self.channels.next_command()
            if cmd is None:
                continue
            if self._apply_command(cmd):
                return

    def _teardown(self) -> None:
        try:
            if self.session is not None:
                self.session.close()
        except Exception as e:
            log.warning("closing device session failed: %s", e)
        finally:
            if self.encoder is not None and self.encoder.alive():
                self.encoder.terminate()

    def _run(self) -> Result:
        try:
            self._start()
            self._stream()
        except EncoderPipeBroken as e:
            log.warning("encoder pipe broken after %d frames: %s", self._frames, e)
            self.lifecycle.terminate(TerminationReason.PIPE_BROKEN, str(e))
            return Result(C.RESULT_RESTART, message=str(e))
        except DeviceLost as e:
            self.lifecycle.terminate(TerminationReason.DEVICE_LOST, str(e))
            return Result(C.RESULT_ABORT, message=f"Camera lost: {e}")
        self.lifecycle.terminate(TerminationReason.CLEAN_SHUTDOWN)
        return Result(C.RESULT_DONE)

    def run(self) -> None:
        result: Optional[Result] = None
        try:
            result = self._run()
        finally:
            try:
                self._teardown()
            finally:
                pending, self._pending = self._pending, None
                if pending is not None and pending.waiting:
                    done = result is not None and pending.action == C.SHUTDOWN
                    pending.reply.put(result.tag if done else None)
                if result is not None:
                    self.channels.push(result)
        log.debug("capture thread finished: %s", self.lifecycle.reason)
