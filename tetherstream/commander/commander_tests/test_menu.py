from __future__ import annotations

import pytest

from conftest import FixedBackend, scripted_prompt
from tetherstream.capture.worker import CaptureThread
from tetherstream.commander.menu import Dispatcher
from tetherstream.core import commands as C
from tetherstream.io.null_backend import NullDeviceSession

# main menu positions (1-based, as typed by the operator)
AUTOFOCUS, CANCEL_AF, MANUAL, APERTURE, SHUTTER, ISO, RAW, RESTART, EXIT = map(str, range(1, 10))


@pytest.fixture
def running(config, backend, channels, encoder_factory):
    w = CaptureThread(config, backend, channels, encoder_factory=encoder_factory)
    w.start()
    yield w
    if w.is_alive():
        channels.send(C.SHUTDOWN, wait=True)
    w.join(timeout=5.0)


def _dispatch(channels, answers, exits=None, flush=True):
    def on_exit():
        if exits is not None:
            exits.append(1)
        # flush everything queued so far before the test inspects the session
        if flush:
            channels.send(C.SHUTDOWN, wait=True)

    prompt = scripted_prompt(answers)
    return Dispatcher(channels, prompt, on_exit=on_exit).run(), prompt


def test_exit_returns_zero_and_stops(channels, running):
    exits = []
    code, _ = _dispatch(channels, [EXIT], exits)
    assert code == 0
    assert exits == [1]
    running.join(timeout=5.0)
    assert not running.is_alive()


def test_autofocus_start_and_cancel(channels, running, session):
    _dispatch(channels, [AUTOFOCUS, CANCEL_AF, EXIT])
    assert session.writes == [("autofocusdrive", 1), ("cancelautofocus", 1), ("autofocusdrive", 0)]


def test_manual_focus_steps_and_remembers_default(channels, running, session):
    # sorted menu: Near+++ Near++ Near+ None Far+ Far++ Far+++
    code, prompt = _dispatch(channels, [MANUAL, "1", "", EXIT])
    assert code == 0
    assert session.writes == [("manualfocusdrive", "Near 3"), ("manualfocusdrive", "None")]
    assert any("Near +++" in line for line in prompt.shown)
    assert any("*" in line and "Near +++" in line for line in prompt.shown)


def test_aperture_change(channels, running, session):
    # choices 2.8 4 5.6 8 11, current 5.6 -> pick 8
    _dispatch(channels, [APERTURE, "4", "", EXIT])
    assert session.settings["aperture"].value == "8"
    assert ("aperture", "8") in session.writes


def test_picking_current_value_writes_nothing(channels, running, session):
    _dispatch(channels, [ISO, "3", "", EXIT])
    assert session.writes == []


def test_shutter_falls_back_to_vendor_name(config, channels, encoder_factory):
    session = NullDeviceSession()
    session.settings["shutterspeed2"] = session.settings.pop("shutterspeed")
    session.settings["shutterspeed2"].name = "shutterspeed2"
    w = CaptureThread(config, FixedBackend(session), channels, encoder_factory=encoder_factory)
    w.start()
    _dispatch(channels, [SHUTTER, "1", "", EXIT])
    w.join(timeout=5.0)
    assert session.settings["shutterspeed2"].value == "1/30"


def test_unsupported_setting_is_reported(config, channels, encoder_factory):
    session = NullDeviceSession()
    del session.settings["manualfocusdrive"]
    w = CaptureThread(config, FixedBackend(session), channels, encoder_factory=encoder_factory)
    w.start()
    _, prompt = _dispatch(channels, [MANUAL, EXIT])
    w.join(timeout=5.0)
    assert any("not available" in line for line in prompt.shown)


def test_raw_setting_for_unknown_name_returns_normally(channels, running, session):
    code, _ = _dispatch(channels, [RAW, "doesnotexist:1", RAW, "iso:1600", RAW, "", EXIT])
    assert code == 0
    assert session.writes == [("iso", "1600")]


def test_restart_waits_for_done(channels, running, session):
    code, _ = _dispatch(channels, [RESTART, EXIT], flush=False)
    assert code == 0
    # the synchronous shutdown only returns once the worker has let go
    assert session.closed
    running.join(timeout=5.0)
    assert not running.is_alive()
    assert channels.receive(fail_ok=True).tag == C.RESULT_DONE
