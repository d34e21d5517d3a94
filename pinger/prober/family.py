# pinger/prober/family.py
"""
Address-family strategies. One is picked when a session is built and carries
everything that differs between ICMPv4 and ICMPv6: protocol numbers, echo
message types, checksum policy, how the raw socket is opened and where the
TTL / hop-limit of a received datagram comes from.
"""
import socket
import struct
from abc import ABC, abstractmethod

from pinger.schemas import Candidate

RECV_BUFSIZE = 65535


class Family(ABC):
    name: str
    socket_family: int
    protocol: int
    echo_request: int
    echo_reply: int
    # ICMPv6 checksums cover a pseudo-header the kernel fills in for raw sockets
    kernel_checksum: bool = False

    @abstractmethod
    def open_socket(self) -> socket.socket:
        raise NotImplementedError

    @abstractmethod
    def receive(self, sock: socket.socket) -> Candidate:
        """Read one datagram and return the ICMP message with its TTL and source."""
        raise NotImplementedError

    def sockaddr(self, address: str) -> tuple:
        return (address, 0)

    def __repr__(self) -> str:
        return f"<Family {self.name}>"


class IPv4Family(Family):
    name = "ipv4"
    socket_family = socket.AF_INET
    protocol = socket.IPPROTO_ICMP          # 1
    echo_request = 8
    echo_reply = 0

    def open_socket(self) -> socket.socket:
        return socket.socket(socket.AF_INET, socket.SOCK_RAW, socket.IPPROTO_ICMP)

    def receive(self, sock: socket.socket) -> Candidate:
        data, addr = sock.recvfrom(RECV_BUFSIZE)
        # raw IPv4 sockets hand us the IP header too
        if not data:
            return Candidate(data=b"", ttl=0, source=addr[0])
        ihl = (data[0] & 0x0F) * 4
        ttl = data[8] if len(data) > 8 else 0
        return Candidate(data=data[ihl:], ttl=ttl, source=addr[0])


class IPv6Family(Family):
    name = "ipv6"
    socket_family = socket.AF_INET6
    protocol = socket.IPPROTO_ICMPV6        # 58
    echo_request = 128
    echo_reply = 129
    kernel_checksum = True

    def open_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET6, socket.SOCK_RAW, socket.IPPROTO_ICMPV6)
        try:
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_RECVHOPLIMIT, 1)
        except OSError:
            sock.close()
            raise
        return sock

    def receive(self, sock: socket.socket) -> Candidate:
        data, ancdata, _flags, addr = sock.recvmsg(
            RECV_BUFSIZE, socket.CMSG_SPACE(struct.calcsize("i"))
        )
        hop_limit = 0
        for level, ctype, cdata in ancdata:
            if level == socket.IPPROTO_IPV6 and ctype == socket.IPV6_HOPLIMIT:
                hop_limit = struct.unpack("i", cdata[:struct.calcsize("i")])[0]
        return Candidate(data=data, ttl=hop_limit, source=addr[0])

    def sockaddr(self, address: str) -> tuple:
        return (address, 0, 0, 0)


IPV4 = IPv4Family()
IPV6 = IPv6Family()


def family_for(ipv4: bool) -> Family:
    return IPV4 if ipv4 else IPV6
