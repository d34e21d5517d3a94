# pinger/prober/fake.py
import queue
import socket
import threading
from collections import deque

from pinger.prober.base import Endpoint
from pinger.prober.codec import ICMP_HEADER, build_echo
from pinger.prober.family import IPV4, Family
from pinger.schemas import Candidate


class FakeEndpoint(Endpoint):
    """
    In-process loopback that answers every echo request it is given.

    script: dict[sequence] -> list of reply specs, one consumed per request
    with that sequence. A spec is a dict with any of:
        drop    -- swallow the request, no reply
        ttl     -- TTL reported with the reply
        source  -- source address reported with the reply
        raw     -- bytes delivered instead of the echoed reply
        copies  -- how many times the reply is delivered (default 1)
    If no scripted spec is left, the request is echoed back unchanged.

    write_errors / read_errors: exceptions raised by successive write() /
    read() calls before normal behaviour resumes.
    """

    def __init__(self, script=None, ttl: int = 64, source: str = "127.0.0.1",
                 auto_reply: bool = True, write_errors=None, read_errors=None):
        self.script = {}
        if script:
            for k, v in script.items():
                self.script[k] = deque(v)
        self.ttl = ttl
        self.source = source
        self.auto_reply = auto_reply
        self.write_errors = deque(write_errors or [])
        self.read_errors = deque(read_errors or [])
        self.family: Family = IPV4
        self.destination = source
        self.sent = []
        self.write_attempts = 0
        self.closed = False
        self.inbox: "queue.Queue[Candidate]" = queue.Queue()
        self._lock = threading.Lock()

    def open(self, family: Family, destination: str) -> "FakeEndpoint":
        """Stand-in for IcmpEndpoint.open, so it can be handed to a controller."""
        self.family = family
        self.destination = destination
        return self

    def add_script(self, sequence: int, *specs) -> None:
        self.script.setdefault(sequence, deque()).extend(specs)

    def inject(self, data: bytes, ttl=None, source=None) -> None:
        """Deliver an unsolicited message, as if some other host sent it."""
        self.inbox.put(Candidate(
            data=data,
            ttl=self.ttl if ttl is None else ttl,
            source=self.source if source is None else source,
        ))

    def write(self, packet: bytes) -> None:
        with self._lock:
            self.write_attempts += 1
            if self.write_errors:
                raise self.write_errors.popleft()
            self.sent.append(packet)

        if not self.auto_reply:
            return

        _type, _code, _csum, ident, seq = ICMP_HEADER.unpack_from(packet)
        spec = {}
        dq = self.script.get(seq)
        if dq:
            spec = dq.popleft()
        if spec.get("drop"):
            return

        raw = spec.get("raw")
        if raw is None:
            raw = build_echo(self.family.echo_reply, ident, seq,
                             packet[ICMP_HEADER.size:], self.family)
        for _ in range(spec.get("copies", 1)):
            self.inject(raw, ttl=spec.get("ttl"), source=spec.get("source"))

    def read(self, timeout_s: float) -> Candidate:
        if self.read_errors:
            raise self.read_errors.popleft()
        try:
            return self.inbox.get(timeout=timeout_s)
        except queue.Empty:
            raise socket.timeout("timed out") from None

    def close(self) -> None:
        self.closed = True
