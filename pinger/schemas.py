# pinger/schemas.py
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class StopReason(str, Enum):
    CANCELLED = "cancelled"
    DEADLINE = "deadline"
    COUNT_REACHED = "count_reached"
    READ_ERROR = "read_error"


@dataclass(frozen=True)
class Candidate:
    """A raw ICMP message as read from the endpoint, before any validation."""
    data: bytes
    ttl: int = 0
    source: str = ""


@dataclass
class DecodedReply:
    sequence: int
    rtt_ms: float
    ttl: int
    source: str
    nbytes: int


@dataclass
class PingStatistics:
    destination: str
    packets_sent: int
    packets_received: int
    packets_lost: int
    exceeded_ttl: int
    percent_received: Optional[float] = None
    percent_lost: Optional[float] = None
    avg_rtt_ms: Optional[float] = None
    stop_reason: Optional[StopReason] = None

    @property
    def has_data(self) -> bool:
        return self.packets_sent > 0
