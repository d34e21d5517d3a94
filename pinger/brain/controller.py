# pinger/brain/controller.py

import logging
import queue
import threading
import time
from typing import Callable, Optional

from pinger.brain import rules
from pinger.brain.reader import ReplyReader
from pinger.brain.sender import SendError, send_one
from pinger.brain.state import SessionPhase, SessionState
from pinger.config import Settings
from pinger.prober.base import Endpoint
from pinger.prober.codec import IgnorableReply, MalformedReply, decode, padding_bytes
from pinger.prober.family import Family, family_for
from pinger.prober.icmp import IcmpEndpoint
from pinger.schemas import Candidate, DecodedReply, PingStatistics, StopReason

logger = logging.getLogger(__name__)

# longest the loop sleeps before looking at the stop event again
POLL_S = 0.05

ReplyHandler = Callable[[DecodedReply, bool], None]
CompleteHandler = Callable[[PingStatistics], None]
Opener = Callable[[Family, str], Endpoint]


class SetupError(OSError):
    pass


class PingController:
    """
    Runs one ping session: sends a probe every interval, matches replies read
    by a ReplyReader thread, and stops on stop(), on the overall deadline or
    once `count` replies came back.

    Only the thread calling run() touches the session counters. Both handlers
    are invoked on that thread and should not block.
    """

    def __init__(self, settings: Settings, opener: Optional[Opener] = None,
                 on_reply: Optional[ReplyHandler] = None,
                 on_complete: Optional[CompleteHandler] = None):
        self.s = settings
        self.family = family_for(settings.ipv4)
        self.opener = opener or IcmpEndpoint.open
        self.on_reply = on_reply
        self.on_complete = on_complete
        self.state = SessionState()
        self.stop_event = threading.Event()
        self.padding = padding_bytes(settings.padding)
        self.reader: Optional[ReplyReader] = None

    def stop(self) -> None:
        """Request the session to end. Safe from any thread, any number of times."""
        self.stop_event.set()

    def run(self) -> PingStatistics:
        run = self.state
        try:
            endpoint = self.opener(self.family, self.s.destination)
        except OSError as e:
            run.phase = SessionPhase.DONE
            self.stop_event.set()
            logger.error("could not listen for ICMP packets for %s: %s", self.s.destination, e)
            raise SetupError(f"could not listen for ICMP packets for "
                             f"{self.s.destination}: {e}") from e

        candidates: "queue.Queue[Candidate]" = queue.Queue(maxsize=self.s.queue_size)
        self.reader = ReplyReader(endpoint, candidates, self.stop_event, self.s.read_timeout_s)
        run.phase = SessionPhase.RUNNING
        self.reader.start()
        try:
            self._loop(endpoint, candidates)
        finally:
            self.stop_event.set()
            run.phase = SessionPhase.DRAINING
            self.reader.join()
            endpoint.close()

        stats = rules.summarize(run, self.s.destination)
        run.phase = SessionPhase.DONE
        logger.info("ping %s finished (%s): %d sent, %d received",
                    self.s.destination, run.stop_reason.value if run.stop_reason else "unknown",
                    run.packets_sent, run.packets_received)
        if self.on_complete is not None:
            self.on_complete(stats)
        return stats

    def _loop(self, endpoint: Endpoint, candidates: "queue.Queue[Candidate]") -> None:
        run = self.state
        started = time.monotonic()
        deadline = started + self.s.timeout_s
        next_tick = started   # first probe goes out right away

        while True:
            if self.stop_event.is_set():
                if self.reader is not None and self.reader.error is not None:
                    run.stop_reason = StopReason.READ_ERROR
                else:
                    run.stop_reason = StopReason.CANCELLED
                return

            now = time.monotonic()
            if now >= deadline:
                run.stop_reason = StopReason.DEADLINE
                return

            if now >= next_tick:
                next_tick = self._next_tick(next_tick, now)
                self._on_interval(endpoint)
            else:
                wait = min(next_tick, deadline) - now
                try:
                    candidate = candidates.get(timeout=min(wait, POLL_S))
                except queue.Empty:
                    continue
                self._on_candidate(candidate)

            if rules.count_reached(self.s.count, run.packets_received):
                run.stop_reason = StopReason.COUNT_REACHED
                return

    def _next_tick(self, tick: float, now: float) -> float:
        # ticks missed while busy are dropped, not sent in a burst
        interval = self.s.interval_s
        missed = int((now - tick) // interval)
        return tick + (missed + 1) * interval

    def _on_interval(self, endpoint: Endpoint) -> None:
        run = self.state
        if not rules.send_allowed(self.s.count, run.packets_sent):
            return
        try:
            send_one(endpoint, run, self.s, self.family, self.padding, self.stop_event)
        except SendError as e:
            logger.warning("%s", e)

    def _on_candidate(self, candidate: Candidate) -> None:
        run = self.state
        try:
            reply = decode(candidate, self.family, run.identifier, run.tracker)
        except MalformedReply as e:
            logger.warning("malformed reply from %s: %s", candidate.source or "?", e)
            return
        except IgnorableReply as e:
            logger.debug("ignoring %s from %s", e.__class__.__name__, candidate.source or "?")
            return

        if reply.sequence in run.matched:
            logger.debug("duplicate reply for icmp_seq=%d", reply.sequence)
            return
        run.matched.add(reply.sequence)

        run.round_trip_times.append(reply.rtt_ms)
        run.packets_received += 1
        exceeded = rules.exceeded_ttl(reply.ttl, self.s.max_ttl)
        if exceeded:
            run.exceeded_ttl += 1

        if self.on_reply is not None:
            self.on_reply(reply, exceeded)
