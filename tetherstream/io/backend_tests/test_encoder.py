from __future__ import annotations

import shutil
from dataclasses import replace

import pytest

from tetherstream.core.errors import EncoderPipeBroken
from tetherstream.core.state import CaptureGeometry, StreamConfig
from tetherstream.io.encoder import (
    DECREASE,
    INCREASE,
    FFmpegEncoder,
    aspect_filter,
    build_encoder_command,
)

CAPTURE = CaptureGeometry(1280, 960)


def test_wider_target_scales_up():
    cfg = StreamConfig(width=1920, height=1280)
    assert aspect_filter(cfg, CAPTURE) == INCREASE


def test_narrower_target_scales_down():
    cfg = StreamConfig(width=1280, height=1280)
    assert aspect_filter(cfg, CAPTURE) == DECREASE


def test_equal_aspect_or_disabled_means_no_filter():
    assert aspect_filter(StreamConfig(width=640, height=480), CAPTURE) is None
    cfg = StreamConfig(width=1920, height=1280, preserve_aspect=False)
    assert aspect_filter(cfg, CAPTURE) is None


def test_command_line():
    argv = build_encoder_command(width=1920, height=1080, sink="/dev/video5", token=INCREASE)
    assert argv[0] == "ffmpeg"
    assert argv[-1] == "/dev/video5"
    assert argv[argv.index("-i") + 1] == "-"
    vf = argv[argv.index("-vf") + 1]
    assert "force_original_aspect_ratio=increase" in vf
    assert "crop=1920:1080" in vf


def test_command_line_without_token_only_scales():
    argv = build_encoder_command(width=640, height=480, sink="/dev/video0", program="/opt/ffmpeg")
    assert argv[0] == "/opt/ffmpeg"
    assert argv[argv.index("-vf") + 1] == "scale=640:480"

    pad = build_encoder_command(width=640, height=480, sink="/dev/video0", token=DECREASE)
    assert "pad=640:480" in pad[pad.index("-vf") + 1]


@pytest.mark.skipif(shutil.which("cat") is None, reason="needs cat")
def test_encoder_process_lifecycle():
    enc = FFmpegEncoder(["cat"])
    enc.write(b"\xff\xd8jpeg\xff\xd9")
    assert enc.alive()
    enc.terminate()
    assert not enc.alive()


@pytest.mark.skipif(shutil.which("true") is None, reason="needs true")
def test_dead_encoder_raises_pipe_broken():
    enc = FFmpegEncoder(["true"])
    enc.proc.wait(timeout=5)
    with pytest.raises(EncoderPipeBroken):
        enc.write(b"x" * 65536)
    enc.terminate()


@pytest.mark.skipif(shutil.which("sleep") is None, reason="needs sleep")
def test_terminate_kills_stubborn_child():
    # sh ignores SIGTERM here, so terminate() has to escalate
    enc = FFmpegEncoder(["sh", "-c", "trap '' TERM; sleep 30"], kill_timeout_s=0.2)
    enc.terminate()
    assert not enc.alive()


@pytest.mark.skipif(shutil.which("sh") is None, reason="needs sh")
def test_encoder_chatter_stays_off_the_terminal(capfd):
    enc = FFmpegEncoder(["sh", "-c", "echo encoder-noise >&2; cat > /dev/null"])
    enc.write(b"\xff\xd8jpeg\xff\xd9")
    enc.terminate()
    assert "encoder-noise" not in capfd.readouterr().err
