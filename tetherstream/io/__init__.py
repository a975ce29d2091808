from .base import Frame, DeviceRef, DeviceSession, DeviceBackend, EncoderHandle
from .factory import make_backend, find_device

__all__ = [
    "Frame",
    "DeviceRef",
    "DeviceSession",
    "DeviceBackend",
    "EncoderHandle",
    "make_backend",
    "find_device",
]
