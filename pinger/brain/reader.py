# pinger/brain/reader.py
import logging
import queue
import socket
import threading

from pinger.prober.base import Endpoint
from pinger.schemas import Candidate

logger = logging.getLogger(__name__)


class ReplyReader(threading.Thread):
    """
    Background loop pulling raw messages off the endpoint and handing them to
    the controller through a bounded queue. It never decodes anything.

    A read timeout is the idle path and just loops, which is what lets the
    thread notice the stop event. Any other error stops the whole session.
    """

    def __init__(self, endpoint: Endpoint, candidates: "queue.Queue[Candidate]",
                 stop_event: threading.Event, read_timeout_s: float):
        super().__init__(name="reply-reader", daemon=True)
        self.endpoint = endpoint
        self.candidates = candidates
        self.stop_event = stop_event
        self.read_timeout_s = read_timeout_s
        self.error: Exception | None = None

    def run(self) -> None:
        try:
            self._read_loop()
        except Exception as e:
            self.error = e
            logger.exception("reply reader died, stopping: %s", e)
        finally:
            # the controller must never wait on a reader that is gone
            self.stop_event.set()

    def _read_loop(self) -> None:
        while not self.stop_event.is_set():
            try:
                candidate = self.endpoint.read(self.read_timeout_s)
            except (socket.timeout, BlockingIOError):
                # a non-blocking socket reports "nothing yet" as EAGAIN
                continue
            except OSError as e:
                self.error = e
                logger.error("reading ICMP replies failed, stopping: %s", e)
                return
            self._forward(candidate)

    def _forward(self, candidate: Candidate) -> None:
        # block while the queue is full, but give up once stop is requested
        while not self.stop_event.is_set():
            try:
                self.candidates.put(candidate, timeout=self.read_timeout_s)
                return
            except queue.Full:
                continue
