# tests/test_reader_unit.py
import errno
import queue
import threading

from pinger.brain.reader import ReplyReader
from pinger.prober.fake import FakeEndpoint


def make_reader(fake, maxsize=5):
    candidates = queue.Queue(maxsize=maxsize)
    stop = threading.Event()
    return ReplyReader(fake, candidates, stop, read_timeout_s=0.02), candidates, stop


def test_reader_forwards_raw_candidates():
    """The reader passes bytes through untouched, with TTL and source."""
    fake = FakeEndpoint()
    fake.inject(b"not even icmp", ttl=12, source="10.1.1.1")
    reader, candidates, stop = make_reader(fake)
    reader.start()
    try:
        c = candidates.get(timeout=1.0)
    finally:
        stop.set()
        reader.join(timeout=1.0)
    assert c.data == b"not even icmp"
    assert c.ttl == 12
    assert c.source == "10.1.1.1"
    assert not reader.is_alive()
    assert reader.error is None


def test_reader_idles_through_timeouts_until_stopped():
    fake = FakeEndpoint()
    reader, candidates, stop = make_reader(fake)
    reader.start()
    reader.join(timeout=0.1)
    assert reader.is_alive()
    stop.set()
    reader.join(timeout=1.0)
    assert not reader.is_alive()
    assert candidates.empty()


def test_reader_fatal_error_stops_session():
    boom = OSError(errno.EBADF, "Bad file descriptor")
    fake = FakeEndpoint(read_errors=[boom])
    reader, _candidates, stop = make_reader(fake)
    reader.start()
    reader.join(timeout=1.0)
    assert not reader.is_alive()
    assert stop.is_set()
    assert reader.error is boom


def test_reader_blocked_on_full_queue_still_exits():
    """Backpressure: a full queue holds the reader, stop still releases it."""
    fake = FakeEndpoint()
    for i in range(3):
        fake.inject(bytes([i]))
    reader, candidates, stop = make_reader(fake, maxsize=1)
    reader.start()
    reader.join(timeout=0.1)
    assert reader.is_alive()
    assert candidates.full()
    stop.set()
    reader.join(timeout=1.0)
    assert not reader.is_alive()
    assert candidates.get_nowait().data == b"\x00"


def test_reader_treats_would_block_as_idle():
    """EAGAIN from a non-blocking read is the idle path, not a failure."""
    fake = FakeEndpoint(read_errors=[BlockingIOError(errno.EAGAIN, "Resource temporarily unavailable")])
    fake.inject(b"\x00\x00")
    reader, candidates, stop = make_reader(fake)
    reader.start()
    try:
        c = candidates.get(timeout=1.0)
    finally:
        stop.set()
        reader.join(timeout=1.0)
    assert c.data == b"\x00\x00"
    assert reader.error is None


def test_reader_unexpected_exception_still_stops_session():
    bad = ValueError("truncated datagram")
    fake = FakeEndpoint(read_errors=[bad])
    reader, _candidates, stop = make_reader(fake)
    reader.start()
    reader.join(timeout=1.0)
    assert not reader.is_alive()
    assert stop.is_set()
    assert reader.error is bad
