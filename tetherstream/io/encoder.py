from __future__ import annotations

import logging
import subprocess
from typing import List, Optional

from tetherstream.core.errors import EncoderPipeBroken
from tetherstream.core.state import CaptureGeometry, StreamConfig

log = logging.getLogger(__name__)

INCREASE = "increase"
DECREASE = "decrease"


def aspect_filter(config: StreamConfig, geometry: CaptureGeometry) -> Optional[str]:
    """Pick the aspect-correction token for ffmpeg's scale filter.

    None when preservation is off or the aspects already match. Otherwise
    "increase" (scale up and crop) when the output is wider than the capture,
    "decrease" (scale down and pad) when it is narrower.
    """
    if not config.preserve_aspect:
        return None
    target, capture = config.aspect, geometry.aspect
    if target == capture:
        return None
    return INCREASE if target > capture else DECREASE


def _video_filter(width: int, height: int, token: Optional[str]) -> str:
    if token == INCREASE:
        return f"scale={width}:{height}:force_original_aspect_ratio=increase,crop={width}:{height}"
    if token == DECREASE:
        return (
            f"scale={width}:{height}:force_original_aspect_ratio=decrease,"
            f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2"
        )
    return f"scale={width}:{height}"


def build_encoder_command(
    *,
    width: int,
    height: int,
    sink: str,
    token: Optional[str] = None,
    program: str = "ffmpeg",
) -> List[str]:
    return [
        program,
        "-hide_banner",
        "-loglevel", "error",
        "-f", "mjpeg",
        "-i", "-",
        "-vf", _video_filter(width, height, token),
        "-pix_fmt", "yuv420p",
        "-f", "v4l2",
        sink,
    ]


class FFmpegEncoder:
    """Owned ffmpeg child. Frames go in on stdin, video comes out on the sink."""

    def __init__(self, argv: List[str], *, kill_timeout_s: float = 2.0):
        self.argv = argv
        self.kill_timeout_s = kill_timeout_s
        log.debug("spawning encoder: %s", " ".join(argv))
        self.proc = subprocess.Popen(
            argv,
            stdin=subprocess.PIPE,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )

    def write(self, data: bytes) -> None:
        try:
            self.proc.stdin.write(data)
            self.proc.stdin.flush()
        except (BrokenPipeError, ValueError) as e:
            # ValueError: stdin already closed
            raise EncoderPipeBroken(f"encoder input closed (rc={self.proc.poll()})") from e

    def alive(self) -> bool:
        return self.proc.poll() is None

    def terminate(self) -> None:
        try:
            self.proc.stdin.close()
        except OSError:
            pass
        if not self.alive():
            return
        self.proc.terminate()
        try:
            self.proc.wait(timeout=self.kill_timeout_s)
        except subprocess.TimeoutExpired:
            log.warning("encoder did not exit on SIGTERM, killing pid %d", self.proc.pid)
            self.proc.kill()
            self.proc.wait()


def spawn_encoder(config: StreamConfig, geometry: CaptureGeometry) -> FFmpegEncoder:
    token = aspect_filter(config, geometry)
    argv = build_encoder_command(
        width=config.width,
        height=config.height,
        sink=config.device,
        token=token,
        program=config.encoder,
    )
    return FFmpegEncoder(argv)
