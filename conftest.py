from __future__ import annotations

from typing import Any, Callable, List, Optional

import pytest

from tetherstream.commander.prompt import Prompt
from tetherstream.commander.protocol import Channels
from tetherstream.core.errors import EncoderPipeBroken
from tetherstream.core.state import CaptureGeometry, StreamConfig
from tetherstream.io.base import DeviceRef
from tetherstream.io.null_backend import NullDeviceSession


class FakeEncoder:
    def __init__(self, config: StreamConfig, geometry: CaptureGeometry, *, break_after: Optional[int] = None):
        self.config = config
        self.geometry = geometry
        self.break_after = break_after
        self.frames: List[bytes] = []
        self.terminated = False
        self._alive = True

    def write(self, data: bytes) -> None:
        if self.break_after is not None and len(self.frames) >= self.break_after:
            self._alive = False
            raise EncoderPipeBroken("fake encoder went away")
        self.frames.append(data)

    def alive(self) -> bool:
        return self._alive

    def terminate(self) -> None:
        self.terminated = True
        self._alive = False


class FixedBackend:
    """Hands out the same session every time so tests can inspect it."""

    def __init__(self, session: Any):
        self.session = session
        self.opened = 0

    def list_devices(self) -> List[DeviceRef]:
        return [DeviceRef("Fixed Camera", "null:")]

    def open(self, ref: Optional[DeviceRef] = None) -> Any:
        self.opened += 1
        return self.session


def scripted_prompt(answers: List[str]) -> Prompt:
    queue = list(answers)
    shown: List[str] = []

    def _input(text: str) -> str:
        shown.append(text)
        if not queue:
            raise EOFError
        return queue.pop(0)

    prompt = Prompt(input_fn=_input, print_fn=lambda *a, **k: shown.append(" ".join(map(str, a))))
    prompt.shown = shown  # type: ignore[attr-defined]
    return prompt


@pytest.fixture
def config() -> StreamConfig:
    return StreamConfig(device="/dev/null", width=1920, height=1080, backend="null")


@pytest.fixture
def channels() -> Channels:
    return Channels()


@pytest.fixture
def session() -> NullDeviceSession:
    return NullDeviceSession()


@pytest.fixture
def backend(session: NullDeviceSession) -> FixedBackend:
    return FixedBackend(session)


@pytest.fixture
def encoders() -> List[FakeEncoder]:
    return []


@pytest.fixture
def encoder_factory(encoders: List[FakeEncoder]) -> Callable[..., FakeEncoder]:
    def factory(config: StreamConfig, geometry: CaptureGeometry) -> FakeEncoder:
        enc = FakeEncoder(config, geometry)
        encoders.append(enc)
        return enc

    return factory
