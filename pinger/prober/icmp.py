# pinger/prober/icmp.py
import logging
import socket

from pinger.prober.base import Endpoint
from pinger.prober.family import Family
from pinger.schemas import Candidate

logger = logging.getLogger(__name__)


class IcmpEndpoint(Endpoint):
    """
    Raw-socket endpoint talking to one destination. Opening one needs root
    (or CAP_NET_RAW); the OSError from socket() is left for the caller.
    """

    def __init__(self, sock: socket.socket, family: Family, destination: str):
        self.sock = sock
        self.family = family
        self.destination = destination
        self._sockaddr = family.sockaddr(destination)

    @classmethod
    def open(cls, family: Family, destination: str) -> "IcmpEndpoint":
        sock = family.open_socket()
        logger.debug("listening for %s ICMP packets from %s", family.name, destination)
        return cls(sock, family, destination)

    def write(self, packet: bytes) -> None:
        self.sock.sendto(packet, self._sockaddr)

    def read(self, timeout_s: float) -> Candidate:
        self.sock.settimeout(timeout_s)
        return self.family.receive(self.sock)

    def close(self) -> None:
        self.sock.close()
