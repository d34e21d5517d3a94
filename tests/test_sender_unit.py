# tests/test_sender_unit.py
import errno
import threading

import pytest

from pinger.brain.sender import SendError, send_one
from pinger.brain.state import SessionState
from pinger.config import Settings
from pinger.prober.codec import ICMP_HEADER
from pinger.prober.fake import FakeEndpoint
from pinger.prober.family import IPV4

FAST = Settings(send_backoff_s=0.0001, send_backoff_max_s=0.001)


def enobufs():
    return OSError(errno.ENOBUFS, "No buffer space available")


def test_send_one_advances_counters():
    fake = FakeEndpoint(auto_reply=False)
    run = SessionState()
    assert send_one(fake, run, FAST, IPV4) == 0
    assert send_one(fake, run, FAST, IPV4) == 1
    assert run.packets_sent == 2
    assert run.sequence == 2
    seqs = [ICMP_HEADER.unpack_from(p)[4] for p in fake.sent]
    assert seqs == [0, 1]


def test_send_one_retries_full_buffer_without_counting():
    """ENOBUFS means the packet never left; retry the same write, count it once."""
    fake = FakeEndpoint(auto_reply=False, write_errors=[enobufs(), enobufs(), enobufs()])
    run = SessionState()
    send_one(fake, run, FAST, IPV4)
    assert fake.write_attempts == 4
    assert len(fake.sent) == 1
    assert run.packets_sent == 1
    assert run.sequence == 1


def test_send_one_other_errors_are_reported_and_not_counted():
    fake = FakeEndpoint(auto_reply=False, write_errors=[OSError(errno.EHOSTUNREACH, "No route to host")])
    run = SessionState()
    with pytest.raises(SendError):
        send_one(fake, run, FAST, IPV4)
    assert run.packets_sent == 0
    assert run.sequence == 0
    assert fake.sent == []


def test_send_one_gives_up_on_full_buffer_once_stopped():
    fake = FakeEndpoint(auto_reply=False, write_errors=[enobufs()] * 10)
    run = SessionState()
    stop = threading.Event()
    stop.set()
    with pytest.raises(SendError):
        send_one(fake, run, FAST, IPV4, stop_event=stop)
    assert run.packets_sent == 0


def test_send_one_appends_padding():
    fake = FakeEndpoint(auto_reply=False)
    run = SessionState()
    send_one(fake, run, FAST, IPV4, padding=b"\x55\x40")
    assert fake.sent[0][-2:] == b"\x55\x40"
    assert len(fake.sent[0]) == 8 + 16 + 2
