# tools/run_ping.py
# Usage examples:
#   sudo python3 -m tools.run_ping 8.8.8.8
#   sudo python3 -m tools.run_ping -c 5 -i 0.5 example.com
#   sudo python3 -m tools.run_ping -t 10 -w 1 --ttl 64 ::1
#   python3 -m tools.run_ping fake -c 3
#
# Raw ICMP sockets need root (or CAP_NET_RAW); 'fake' runs against an
# in-process endpoint and needs neither.

import argparse
import logging
import signal
import socket
import sys

from pinger.brain.controller import PingController, SetupError
from pinger.config import Settings, is_ipv4, is_ipv6, parse_padding, parse_ttl, positive_seconds
from pinger.logger_config import setup_logger


def resolve(destination: str):
    """Return (address literal, is_ipv4) for a host name or literal."""
    if is_ipv6(destination):
        return destination, False
    if is_ipv4(destination):
        return destination, True
    infos = socket.getaddrinfo(destination, None, proto=socket.IPPROTO_TCP)
    if not infos:
        raise OSError(f"no address for {destination}")
    family, _type, _proto, _canon, sockaddr = infos[0]
    return sockaddr[0], family == socket.AF_INET


def format_reply(reply, exceeded: bool) -> str:
    return (f"{reply.nbytes} bytes from {reply.source}: icmp_seq={reply.sequence} "
            f"time={reply.rtt_ms:.3f} ms ttl={reply.ttl} exceeded_max_ttl:{exceeded}")


def format_statistics(stats) -> str:
    lines = ["", "-----------ping statistics-----------"]
    if not stats.has_data:
        lines.append(f"no packets transmitted to {stats.destination}")
        return "\n".join(lines)
    lines.append(
        f"{stats.packets_sent} transmitted packets, {stats.packets_received} received packets, "
        f"{stats.packets_lost} lost packets, {stats.percent_received:.1f}% packet recovery, "
        f"{stats.percent_lost:.1f}% packet loss"
    )
    avg = "n/a" if stats.avg_rtt_ms is None else f"{stats.avg_rtt_ms:.3f} ms"
    lines.append(f"packets exceeded max ttl: {stats.exceeded_ttl} avg round trip: {avg}")
    return "\n".join(lines)


def build_settings(args, address: str, ipv4: bool) -> Settings:
    return Settings(
        destination=address,
        ipv4=ipv4,
        count=args.count,
        interval_s=args.interval,
        read_timeout_s=args.deadline,
        timeout_s=args.timeout,
        max_ttl=args.ttl,
        padding=args.padding,
    )


def build_argparser():
    ap = argparse.ArgumentParser(description="ICMP echo (ping) runner")
    ap.add_argument("destination", nargs="?", help="Destination host/IP (or 'fake' for an in-process endpoint)")
    ap.add_argument("-c", dest="count", type=int, default=0, help="Stop after this many replies (0 = forever)")
    ap.add_argument("-i", dest="interval", type=positive_seconds, default=1.0, help="Seconds between probes")
    ap.add_argument("-t", dest="timeout", type=positive_seconds, default=100000.0, help="Overall timeout in seconds")
    ap.add_argument("-w", dest="deadline", type=positive_seconds, default=1.0, help="Per-read deadline in seconds")
    ap.add_argument("-p", dest="padding", type=parse_padding, default="", help="Pad pattern of 0s and 1s")
    ap.add_argument("--ttl", type=parse_ttl, default=255, help="Max acceptable TTL of a reply (0-256)")
    ap.add_argument("-q", "--quiet_output", action="store_true", help="Only print the final statistics")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return ap


def main(argv=None) -> int:
    ap = build_argparser()
    args = ap.parse_args(argv)
    if not args.destination:
        ap.error("Provide a destination (e.g., 8.8.8.8) or 'fake'")

    setup_logger("pinger", logging.DEBUG if args.verbose else logging.WARNING)

    opener = None
    if args.destination == "fake":
        from pinger.prober.fake import FakeEndpoint
        address, ipv4 = "127.0.0.1", True
        opener = FakeEndpoint().open
    else:
        try:
            address, ipv4 = resolve(args.destination)
        except OSError as e:
            print(f"error: {e}")
            return 1

    ctrl = PingController(
        build_settings(args, address, ipv4),
        opener=opener,
        on_reply=None if args.quiet_output else (lambda r, x: print(format_reply(r, x))),
        on_complete=lambda stats: print(format_statistics(stats)),
    )
    signal.signal(signal.SIGINT, lambda *_: ctrl.stop())

    print(f"PING: {address}:")
    try:
        ctrl.run()
    except SetupError as e:
        print(e)
        print("Did you forget to run with sudo?")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
