# pinger/brain/sender.py
import errno
import logging
import threading
import time
from typing import Optional

from pinger.brain.state import SessionState
from pinger.config import Settings
from pinger.prober.base import Endpoint
from pinger.prober.codec import encode
from pinger.prober.family import Family

logger = logging.getLogger(__name__)


class SendError(Exception):
    pass


def send_one(endpoint: Endpoint, run: SessionState, settings: Settings, family: Family,
             padding: bytes = b"", stop_event: Optional[threading.Event] = None) -> int:
    """
    Encode and write one echo request; returns the sequence number used.

    A full output buffer (ENOBUFS) means the transport never took the packet,
    so the same write is retried with a capped backoff and nothing is counted
    until it goes through. Counters move only on a confirmed write.
    """
    seq = run.sequence
    packet = encode(seq, run.identifier, run.tracker, time.time_ns(), padding, family)

    delay = settings.send_backoff_s
    while True:
        try:
            endpoint.write(packet)
            break
        except OSError as e:
            if e.errno != errno.ENOBUFS:
                raise SendError(f"could not send icmp_seq={seq}: {e}") from e
            if stop_event is not None and stop_event.is_set():
                raise SendError(f"stopped while output buffer full (icmp_seq={seq})") from e
            logger.debug("output buffer full, retrying icmp_seq=%d in %.3fs", seq, delay)
            time.sleep(delay)
            delay = min(delay * 2, settings.send_backoff_max_s)

    run.matched.discard(seq & 0xFFFF)
    run.sequence += 1
    run.packets_sent += 1
    return seq
