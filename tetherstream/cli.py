from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from tetherstream.app import main as app_main
from tetherstream.core.config import parse_size, readStreamConfig


def _size(text: str):
    try:
        return parse_size(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def _minutes(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number of minutes: {text!r}")
    if value < 0:
        raise argparse.ArgumentTypeError("idle timeout cannot be negative")
    return value


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Stream a tethered camera's live view to a v4l2loopback device.")
    ap.add_argument("--device", "-d", default=None, help="Output video device, e.g. /dev/video2")
    ap.add_argument("--size", "-s", type=_size, default=None, help="Output size WIDTHxHEIGHT, e.g. 1920x1080")
    aspect = ap.add_mutually_exclusive_group()
    aspect.add_argument("--aspect", dest="preserve_aspect", action="store_const", const=True, default=None,
                        help="Crop/pad to keep the camera's aspect ratio (default).")
    aspect.add_argument("--no-aspect", dest="preserve_aspect", action="store_const", const=False,
                        help="Stretch frames to the output size.")
    ap.add_argument("--wait", "-w", dest="wait_for_device", action="store_const", const=True, default=None,
                    help="Wait for a camera instead of exiting when none is connected.")
    ap.add_argument("--idle-timeout", "-t", type=_minutes, default=None,
                    help="Exit after this many minutes without readers on the output device (0 = never).")
    ap.add_argument("--config", "-c", default=None, help="Path to config file (TOML).")
    ap.add_argument("--backend", choices=["gphoto2", "null"], default=None, help="Device backend.")
    ap.add_argument("--verbose", "-v", action="store_true", help="Debug logging.")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    width, height = args.size if args.size else (None, None)
    idle_s = args.idle_timeout * 60.0 if args.idle_timeout is not None else None

    cfg = readStreamConfig(
        args.config,
        device=args.device,
        width=width,
        height=height,
        preserve_aspect=args.preserve_aspect,
        wait_for_device=args.wait_for_device,
        idle_timeout_s=idle_s,
        backend=args.backend,
    )
    return app_main(cfg)


if __name__ == "__main__":
    raise SystemExit(main())
