"""libgphoto2 device backend (python-gphoto2)."""

from __future__ import annotations

import logging
import time
from typing import Any, List, Optional

import gphoto2 as gp

from tetherstream.core.errors import DeviceLost, SettingWriteFailed, UnknownSetting
from tetherstream.core.state import Setting

from .base import DeviceRef, Frame

log = logging.getLogger(__name__)

_CHOICE_TYPES = (gp.GP_WIDGET_RADIO, gp.GP_WIDGET_MENU)


def _coerce(widget: Any, value: Any) -> Any:
    """Convert a string from the menu into what the widget type expects."""
    kind = widget.get_type()
    if kind == gp.GP_WIDGET_TOGGLE:
        return int(value)
    if kind == gp.GP_WIDGET_RANGE:
        return float(value)
    return str(value)


class GPhotoSession:
    def __init__(self, camera: "gp.Camera", ref: Optional[DeviceRef] = None):
        self.camera = camera
        self.ref = ref
        self._frame_id = 0

    def fetch_preview_frame(self) -> Frame:
        try:
            camera_file = self.camera.capture_preview()
            data = bytes(camera_file.get_data_and_size())
        except gp.GPhoto2Error as e:
            raise DeviceLost(f"preview capture failed: {e}") from e
        self._frame_id += 1
        return Frame(data=data, t_s=time.time(), frame_id=self._frame_id)

    def _widget(self, config: Any, name: str) -> Any:
        try:
            return config.get_child_by_name(name)
        except gp.GPhoto2Error:
            raise UnknownSetting(name) from None

    def read_setting(self, name: str) -> Setting:
        try:
            config = self.camera.get_config()
        except gp.GPhoto2Error as e:
            raise DeviceLost(f"reading config failed: {e}") from e
        w = self._widget(config, name)
        choices: List[str] = []
        if w.get_type() in _CHOICE_TYPES:
            choices = [str(c) for c in w.get_choices()]
        return Setting(name=name, value=w.get_value(), choices=choices, readonly=bool(w.get_readonly()))

    def write_setting(self, name: str, value: Any) -> None:
        try:
            config = self.camera.get_config()
            w = self._widget(config, name)
            w.set_value(_coerce(w, value))
            self.camera.set_config(config)
        except (gp.GPhoto2Error, UnknownSetting, ValueError) as e:
            raise SettingWriteFailed(f"{name}={value!r}: {e}") from e

    def close(self) -> None:
        try:
            self.camera.exit()
        except gp.GPhoto2Error as e:
            log.debug("camera.exit failed: %s", e)


class GPhotoBackend:
    def list_devices(self) -> List[DeviceRef]:
        try:
            found = gp.Camera.autodetect()
        except gp.GPhoto2Error as e:
            log.debug("autodetect failed: %s", e)
            return []
        return [DeviceRef(name=name, address=addr) for name, addr in found]

    def open(self, ref: Optional[DeviceRef] = None) -> GPhotoSession:
        camera = gp.Camera()
        try:
            if ref is not None and ref.address:
                ports = gp.PortInfoList()
                ports.load()
                camera.set_port_info(ports[ports.lookup_path(ref.address)])
            camera.init()
        except gp.GPhoto2Error as e:
            raise DeviceLost(f"cannot open camera {ref.name if ref else ''}: {e}".strip()) from e
        log.info("opened camera %s", ref.name if ref else "(auto)")
        return GPhotoSession(camera, ref)
