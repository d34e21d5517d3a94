# pinger/brain/rules.py
from pinger.brain.state import SessionState
from pinger.schemas import PingStatistics


def send_allowed(count: int, packets_sent: int) -> bool:
    """A count of 0 means unbounded; otherwise stop sending once count probes went out."""
    return count <= 0 or packets_sent < count


def count_reached(count: int, packets_received: int) -> bool:
    return count > 0 and packets_received >= count


def exceeded_ttl(observed: int, max_ttl: int) -> bool:
    return observed > max_ttl


def summarize(run: SessionState, destination: str) -> PingStatistics:
    """
    Final statistics from the session counters. With nothing sent there is
    nothing to divide by: percentages and the average stay None.
    """
    sent = run.packets_sent
    received = run.packets_received
    stats = PingStatistics(
        destination=destination,
        packets_sent=sent,
        packets_received=received,
        packets_lost=max(0, sent - received),
        exceeded_ttl=run.exceeded_ttl,
        stop_reason=run.stop_reason,
    )
    if sent == 0:
        return stats

    stats.percent_received = received / sent * 100
    stats.percent_lost = (sent - received) / sent * 100
    if run.round_trip_times:
        stats.avg_rtt_ms = sum(run.round_trip_times) / len(run.round_trip_times)
    return stats
