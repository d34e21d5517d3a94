# pinger/config.py
import ipaddress
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    destination: str = "127.0.0.1"
    ipv4: bool = True
    count: int = 0                 # 0 = keep going until stopped or timed out
    interval_s: float = 1.0
    read_timeout_s: float = 1.0    # liveness bound on a single socket read
    timeout_s: float = 100000.0    # overall session deadline
    max_ttl: int = 255
    padding: str = ""              # binary digits, e.g. "01010101"
    queue_size: int = 5

    # pacing for retries while the kernel output buffer is full
    send_backoff_s: float = 0.001
    send_backoff_max_s: float = 0.05

    def __post_init__(self):
        if self.interval_s <= 0:
            raise ValueError("interval_s must be positive")
        if self.read_timeout_s <= 0:
            raise ValueError("read_timeout_s must be positive")
        if self.timeout_s < 0:
            raise ValueError("timeout_s cannot be negative")


def parse_ttl(option: str) -> int:
    result = int(option)
    if result < 0 or result > 256:
        raise ValueError("ttl must be between 0 and 256")
    return result


def positive_seconds(option: str) -> float:
    result = float(option)
    if result <= 0:
        raise ValueError("duration must be greater than 0")
    return result


def parse_padding(option: str) -> str:
    for char in option:
        if char not in "01":
            raise ValueError("invalid padding format: -p needs to be only 0s and 1s")
    return option


def is_ipv6(address: str) -> bool:
    try:
        return isinstance(ipaddress.ip_address(address), ipaddress.IPv6Address)
    except ValueError:
        return False


def is_ipv4(address: str) -> bool:
    try:
        return isinstance(ipaddress.ip_address(address), ipaddress.IPv4Address)
    except ValueError:
        return False
