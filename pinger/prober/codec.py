# pinger/prober/codec.py
"""
Echo request / reply codec.

Wire payload of every probe:
    8 bytes big-endian send time (ns since epoch)
    8 bytes big-endian tracker nonce
    optional padding bytes
"""
import struct
import time
from typing import Optional

from pinger.prober.family import IPV4, Family
from pinger.schemas import Candidate, DecodedReply

ICMP_HEADER = struct.Struct("!BBHHH")   # type, code, checksum, id, seq
PAYLOAD_HEADER = struct.Struct("!QQ")   # send time, tracker
MIN_PAYLOAD = PAYLOAD_HEADER.size       # 16


class DecodeError(Exception):
    pass


class IgnorableReply(DecodeError):
    """Someone else's traffic on the shared raw socket. Never reported."""


class NotAnEchoReply(IgnorableReply):
    pass


class IdentifierMismatch(IgnorableReply):
    pass


class TrackerMismatch(IgnorableReply):
    pass


class MalformedReply(DecodeError):
    pass


def checksum(data: bytes) -> int:
    """Internet checksum (RFC 1071) over *data*."""
    if len(data) % 2:
        data += b"\x00"

    total = 0
    for i in range(0, len(data), 2):
        total += (data[i] << 8) + data[i + 1]

    while total >> 16:
        total = (total & 0xFFFF) + (total >> 16)
    return ~total & 0xFFFF


def padding_bytes(pattern: str) -> bytes:
    """Pack a binary-digit pattern MSB first; the last byte is zero-filled on the right."""
    if not pattern:
        return b""
    out = bytearray()
    for i in range(0, len(pattern), 8):
        chunk = pattern[i:i + 8].ljust(8, "0")
        out.append(int(chunk, 2))
    return bytes(out)


def build_echo(icmp_type: int, identifier: int, sequence: int, payload: bytes,
               family: Family = IPV4) -> bytes:
    header = ICMP_HEADER.pack(icmp_type, 0, 0, identifier & 0xFFFF, sequence & 0xFFFF)
    if family.kernel_checksum:
        return header + payload
    csum = checksum(header + payload)
    header = ICMP_HEADER.pack(icmp_type, 0, csum, identifier & 0xFFFF, sequence & 0xFFFF)
    return header + payload


def encode(sequence: int, identifier: int, tracker: int, sent_ns: int,
           padding: bytes = b"", family: Family = IPV4) -> bytes:
    payload = PAYLOAD_HEADER.pack(sent_ns, tracker) + padding
    return build_echo(family.echo_request, identifier, sequence, payload, family)


def decode(candidate: Candidate, family: Family, identifier: int, tracker: int,
           now_ns: Optional[int] = None) -> DecodedReply:
    """
    Validate *candidate* against this session's identity and return the reply.

    Raises one of the IgnorableReply subclasses for foreign traffic and
    MalformedReply when the message is too short to carry our payload.
    """
    received_ns = time.time_ns() if now_ns is None else now_ns
    raw = candidate.data
    if len(raw) < ICMP_HEADER.size:
        raise MalformedReply(f"truncated ICMP header: {len(raw)} bytes")

    icmp_type, _code, _csum, ident, seq = ICMP_HEADER.unpack_from(raw)
    if icmp_type != family.echo_reply:
        raise NotAnEchoReply(f"icmp type {icmp_type}")
    if ident != identifier & 0xFFFF:
        raise IdentifierMismatch(f"identifier {ident}")

    data = raw[ICMP_HEADER.size:]
    if len(data) < MIN_PAYLOAD:
        raise MalformedReply(f"bad data, {len(data)} bytes {data!r}")

    sent_ns, their_tracker = PAYLOAD_HEADER.unpack_from(data)
    if their_tracker != tracker:
        raise TrackerMismatch(f"tracker {their_tracker}")

    return DecodedReply(
        sequence=seq,
        rtt_ms=(received_ns - sent_ns) / 1e6,
        ttl=candidate.ttl,
        source=candidate.source,
        nbytes=len(raw),
    )
