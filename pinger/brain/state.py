# pinger/brain/state.py
import itertools
import random
from dataclasses import dataclass, field
from enum import Enum

from pinger.schemas import StopReason

# 16-bit identifiers handed out once per session; start at a random point so
# two processes rarely collide, then never repeat within this one.
_identifiers = itertools.count(random.randrange(1 << 16))


def next_identifier() -> int:
    return next(_identifiers) & 0xFFFF


def new_tracker() -> int:
    return random.getrandbits(63)


class SessionPhase(Enum):
    SETUP = "listening-setup"
    RUNNING = "running"
    DRAINING = "draining"
    DONE = "done"


@dataclass
class SessionState:
    # identity, fixed for the whole session
    identifier: int = field(default_factory=next_identifier)
    tracker: int = field(default_factory=new_tracker)

    # counters, written only by the controller thread
    sequence: int = 0
    packets_sent: int = 0
    packets_received: int = 0
    round_trip_times: list = field(default_factory=list)   # ms, in dequeue order
    exceeded_ttl: int = 0
    # wire sequences already matched, to drop duplicate replies
    matched: set = field(default_factory=set)

    phase: SessionPhase = SessionPhase.SETUP
    stop_reason: StopReason | None = None
