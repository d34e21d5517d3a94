# pinger/prober/base.py
from abc import ABC, abstractmethod

from pinger.schemas import Candidate


class Endpoint(ABC):
    """
    A raw ICMP endpoint shared by the sender (writes) and the reply reader
    (reads). Reads and writes may run on different threads at the same time.
    """

    @abstractmethod
    def write(self, packet: bytes) -> None:
        """Hand one ICMP message to the transport. Raises OSError on failure."""
        raise NotImplementedError

    @abstractmethod
    def read(self, timeout_s: float) -> Candidate:
        """Block for at most timeout_s; raise socket.timeout when nothing arrived."""
        raise NotImplementedError

    def close(self) -> None:
        pass
