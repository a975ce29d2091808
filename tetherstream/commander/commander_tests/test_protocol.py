from __future__ import annotations

import threading

from tetherstream.commander.protocol import Channels
from tetherstream.core import commands as C
from tetherstream.core.commands import Result, split_arg


def _echo_responder(channels: Channels, stop: threading.Event) -> threading.Thread:
    def run():
        while not stop.is_set():
            cmd = channels.next_command()
            if cmd is None:
                continue
            if cmd.waiting:
                cmd.reply.put(cmd.arg)

    t = threading.Thread(target=run, daemon=True)
    t.start()
    return t


def test_fire_and_forget_returns_immediately():
    ch = Channels()
    assert ch.send(C.FOCUS_DRIVE_START) is None
    cmd = ch.next_command()
    assert cmd.action == C.FOCUS_DRIVE_START
    assert cmd.arg is None
    assert not cmd.waiting
    assert ch.next_command() is None


def test_receive_fail_ok_does_not_block():
    ch = Channels()
    assert ch.receive(fail_ok=True) is None
    ch.push(Result(C.RESULT_DONE))
    assert ch.receive().tag == C.RESULT_DONE


def test_nth_wait_gets_nth_reply():
    ch = Channels()
    stop = threading.Event()
    t = _echo_responder(ch, stop)
    try:
        got = [ch.send(C.GET_SETTING, f"req{i}", wait=True) for i in range(50)]
    finally:
        stop.set()
        t.join(timeout=2.0)
    assert got == [f"req{i}" for i in range(50)]


def test_concurrent_requesters_never_cross_talk():
    ch = Channels()
    stop = threading.Event()
    responder = _echo_responder(ch, stop)
    mismatches = []

    def requester(n: int) -> None:
        for i in range(30):
            want = f"{n}:{i}"
            if ch.send(C.GET_SETTING, want, wait=True) != want:
                mismatches.append(want)

    threads = [threading.Thread(target=requester, args=(n,)) for n in range(4)]
    for th in threads:
        th.start()
    for th in threads:
        th.join(timeout=10.0)
    stop.set()
    responder.join(timeout=2.0)
    assert mismatches == []


def test_replies_do_not_touch_the_result_channel():
    ch = Channels()
    stop = threading.Event()
    t = _echo_responder(ch, stop)
    try:
        ch.send(C.GET_SETTING, "iso:value", wait=True)
    finally:
        stop.set()
        t.join(timeout=2.0)
    assert ch.receive(fail_ok=True) is None


def test_split_arg():
    assert split_arg("iso:400") == ("iso", "400")
    assert split_arg("shutterspeed:1/60") == ("shutterspeed", "1/60")
    assert split_arg("d100:a:b") == ("d100", "a:b")
    assert split_arg("iso") == ("iso", None)
    assert split_arg(None) == ("", None)
