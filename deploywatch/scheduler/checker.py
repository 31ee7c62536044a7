"""Task scheduler running independently cadenced periodic jobs.

Every registered job gets its own daemon thread and its own cancellation
token. Cancellation is cooperative: a job is checked before each invocation
and while waiting for its next tick, never interrupted mid-call.
"""

import logging
import queue
import threading
from typing import Callable, Dict, Hashable, List, Optional, Tuple, Union

logger = logging.getLogger("deploywatch.scheduler")

Interval = Union[float, Callable[[], float]]


class CancellationToken:
    """Idempotent cancellation flag shared between a job and its owner."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        """Request cancellation; repeated calls are no-ops."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Sleep up to `timeout` seconds, waking early on cancellation.

        Returns:
            True if the token is cancelled
        """
        return self._event.wait(timeout)


class RenderChannel:
    """Capacity-one hand-off between renderers and the dashboard consumer.

    `put` blocks until the consumer has taken the previous payload, so
    producers cannot race far ahead of the dashboard. Both ends give up
    once `closed` is cancelled.
    """

    def __init__(self, closed: CancellationToken, poll_interval: float = 0.1):
        self._queue: "queue.Queue[bytes]" = queue.Queue(maxsize=1)
        self._closed = closed
        self.poll_interval = poll_interval

    def put(self, payload: bytes) -> bool:
        """Hand a payload to the consumer.

        Returns:
            True if delivered, False if the channel closed first
        """
        while not self._closed.cancelled:
            try:
                self._queue.put(payload, timeout=self.poll_interval)
                return True
            except queue.Full:
                continue
        return False

    def get(self, token: Optional[CancellationToken] = None) -> Optional[bytes]:
        """Take the next payload.

        Args:
            token: Consumer token, checked alongside the channel's own

        Returns:
            Payload, or None once cancelled
        """
        while not self._closed.cancelled and not (token and token.cancelled):
            try:
                return self._queue.get(timeout=self.poll_interval)
            except queue.Empty:
                continue
        return None


class TaskScheduler:
    """Runs and cancels periodic jobs; shuts all of them down on request."""

    def __init__(self):
        self._lock = threading.Lock()
        self._shutdown = CancellationToken()
        self._tokens: List[CancellationToken] = []
        self._keyed: Dict[Tuple[Hashable, ...], CancellationToken] = {}
        self._threads: List[threading.Thread] = []
        self._signal_handled = False

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown.cancelled

    def create_channel(self) -> RenderChannel:
        """Create a render channel that closes when the scheduler shuts down."""
        return RenderChannel(self._shutdown)

    def _start(self, name: str, target: Callable[[], None], token: CancellationToken) -> bool:
        with self._lock:
            if self._shutdown.cancelled:
                logger.warning(f"Scheduler is shut down, not starting {name}")
                token.cancel()
                return False
            self._tokens.append(token)
            thread = threading.Thread(target=target, name=f"deploywatch-{name}", daemon=True)
            self._threads.append(thread)
        thread.start()
        return True

    @staticmethod
    def _next_interval(interval: Interval) -> float:
        return interval() if callable(interval) else interval

    @staticmethod
    def _invoke(name: str, call: Callable[[], None]):
        # last line of defence: jobs are expected to handle their own errors
        try:
            call()
        except Exception:
            logger.exception(f"Job {name} failed")

    def _loop(
        self,
        name: str,
        interval: Interval,
        call: Callable[[], None],
        token: CancellationToken
    ):
        while not token.cancelled:
            self._invoke(name, call)
            if token.wait(self._next_interval(interval)):
                break
        logger.debug(f"Job {name} stopped")

    def register(
        self,
        interval: Interval,
        job: Callable[[], None],
        name: Optional[str] = None
    ) -> CancellationToken:
        """Run `job` now and then every `interval` seconds until cancelled.

        Args:
            interval: Seconds between invocations, or a callable returning them
                (re-evaluated after every invocation)
            job: Zero-argument callable
            name: Name used in logs and the thread name

        Returns:
            Token cancelling only this job
        """
        name = name or getattr(job, "__name__", "job")
        token = CancellationToken()
        self._start(name, lambda: self._loop(name, interval, job, token), token)
        return token

    def register_keyed(
        self,
        interval: Interval,
        keys: Tuple[Hashable, ...],
        job: Callable[..., None]
    ) -> bool:
        """Run `job(*keys)` periodically, at most one task per key tuple.

        Args:
            interval: Seconds between invocations, or a callable returning them
            keys: Fixed arguments identifying the task (e.g. deployment, instance)
            job: Callable receiving the keys as positional arguments

        Returns:
            True if a new task started, False if one is already registered
        """
        keys = tuple(keys)
        name = "/".join(str(key) for key in keys)
        token = CancellationToken()

        with self._lock:
            existing = self._keyed.get(keys)
            if existing is not None and not existing.cancelled:
                return False
            self._keyed[keys] = token

        return self._start(name, lambda: self._loop(name, interval, lambda: job(*keys), token), token)

    def is_registered(self, keys: Tuple[Hashable, ...]) -> bool:
        """True if a live keyed task exists for `keys`."""
        with self._lock:
            token = self._keyed.get(tuple(keys))
            return token is not None and not token.cancelled

    def cancel(self, keys: Tuple[Hashable, ...]) -> bool:
        """Stop the keyed task for `keys` after its current invocation.

        Returns:
            True if a task was registered for `keys`
        """
        with self._lock:
            token = self._keyed.pop(tuple(keys), None)
        if token is None:
            return False
        token.cancel()
        return True

    def register_dedup_consumer(
        self,
        channel: RenderChannel,
        sink: Callable[[bytes], None]
    ) -> CancellationToken:
        """Forward payloads from `channel` to `sink`, skipping repeats.

        The first payload is always forwarded; afterwards `sink` is only
        called when the bytes differ from the last forwarded payload.

        Returns:
            Token cancelling the consumer
        """
        token = CancellationToken()

        def consume():
            last: Optional[bytes] = None
            while not token.cancelled:
                payload = channel.get(token)
                if payload is None:
                    break
                if payload != last:
                    last = payload
                    self._invoke("dashboard", lambda: sink(payload))
            logger.debug("Dashboard consumer stopped")

        self._start("dashboard", consume, token)
        return token

    def shutdown(self):
        """Signal every job to stop; returns without waiting for them."""
        with self._lock:
            if self._shutdown.cancelled:
                return
            logger.info("Starting to quit")
            self._shutdown.cancel()
            tokens = list(self._tokens)
            self._keyed.clear()

        for token in reversed(tokens):
            token.cancel()

    def on_external_signal(
        self,
        signal: threading.Event,
        cleanup: Callable[[], None],
        poll_interval: float = 0.2
    ) -> threading.Thread:
        """Shut down and run `cleanup` once `signal` is set.

        The waiter gives up silently if the scheduler is shut down by
        other means first.

        Args:
            signal: Event set by a key press or OS signal handler
            cleanup: Called exactly once, after `shutdown()`
            poll_interval: Seconds between shutdown checks while waiting

        Returns:
            The waiter thread
        """
        def wait_for_signal():
            while not signal.wait(poll_interval):
                if self._shutdown.cancelled:
                    return
            logger.info("Received quit signal")
            with self._lock:
                if self._signal_handled:
                    return
                self._signal_handled = True
            self.shutdown()
            cleanup()

        thread = threading.Thread(target=wait_for_signal, name="deploywatch-signal", daemon=True)
        thread.start()
        return thread

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for job threads to exit.

        Args:
            timeout: Seconds to wait per thread

        Returns:
            True if every thread has exited
        """
        with self._lock:
            threads = list(self._threads)
        for thread in threads:
            thread.join(timeout)
        return not any(thread.is_alive() for thread in threads)
