from __future__ import annotations

import logging
import os
import threading
from typing import Callable, Optional

from tetherstream.capture.supervisor import Supervisor
from tetherstream.capture.worker import CaptureThread, EncoderFactory
from tetherstream.commander.menu import Dispatcher
from tetherstream.commander.prompt import Prompt
from tetherstream.commander.protocol import Channels
from tetherstream.core import commands as C
from tetherstream.core.errors import MissingOutputSink, NoDeviceFound, TetherStreamError
from tetherstream.core.state import ExitCode, StreamConfig
from tetherstream.io.base import DeviceBackend
from tetherstream.io.factory import find_device, make_backend
from tetherstream.io.encoder import spawn_encoder
from tetherstream.io.readers import count_readers

log = logging.getLogger(__name__)


def _print_banner() -> None:
    banner = r"""
  _       _   _                  _
 | |_ ___| |_| |_  ___ _ _ _____| |_ _ _ ___ __ _ _ __
 |  _/ -_)  _| ' \/ -_) '_(_-<  _|  _| '_/ -_) _` | '  \
  \__\___|\__|_||_\___|_| /__/\__|\__|_| \___\__,_|_|_|_|
"""
    print(banner)


def _print_runtime_info(cfg: StreamConfig, device_name: str) -> None:
    idle = f"{cfg.idle_timeout_s / 60:.1f} min" if cfg.idle_timeout_s > 0 else "off"
    print("Runtime:")
    print(f"  camera:         {device_name}")
    print(f"  backend:        {cfg.backend}")
    print(f"  output:         {cfg.device}")
    print(f"  size:           {cfg.width}x{cfg.height}")
    print(f"  keep aspect:    {'ON' if cfg.preserve_aspect else 'OFF'}")
    print(f"  idle timeout:   {idle}")
    print(f"  config:         {cfg.config_path}")
    print("")


def check_output_sink(cfg: StreamConfig) -> None:
    if not os.path.exists(cfg.device):
        raise MissingOutputSink(
            f"Output device {cfg.device} does not exist (is v4l2loopback loaded?)"
        )


def main(
    cfg: StreamConfig,
    *,
    backend: Optional[DeviceBackend] = None,
    prompt: Optional[Prompt] = None,
    reader_counter: Callable[[str], int] = count_readers,
    encoder_factory: EncoderFactory = spawn_encoder,
) -> int:
    _print_banner()

    try:
        check_output_sink(cfg)
        backend = backend or make_backend(cfg)
        ref = find_device(
            backend,
            wait=cfg.wait_for_device,
            on_wait=lambda: print("Waiting for a camera to be connected..."),
        )
    except (MissingOutputSink, NoDeviceFound) as e:
        print(f"Error: {e}")
        return int(e.exit_code)

    _print_runtime_info(cfg, ref.name)

    stop_event = threading.Event()
    channels = Channels()

    def new_worker() -> CaptureThread:
        return CaptureThread(cfg, backend, channels, device_ref=ref, encoder_factory=encoder_factory)

    supervisor = Supervisor(
        cfg,
        channels,
        new_worker,
        count_readers=reader_counter,
        stop_event=stop_event,
    )

    def shutdown() -> None:
        stop_event.set()
        supervisor.join(timeout=2.0)
        worker = supervisor.worker
        if worker is not None and worker.is_alive():
            channels.send(C.SHUTDOWN)
            worker.join(timeout=5.0)

    dispatcher = Dispatcher(channels, prompt or Prompt(), on_exit=shutdown)

    supervisor.start()
    try:
        return dispatcher.run()
    except KeyboardInterrupt:
        shutdown()
        return int(ExitCode.OK)
    except TetherStreamError as e:
        shutdown()
        print(f"Error: {e}")
        return int(e.exit_code if e.exit_code is not None else 1)
