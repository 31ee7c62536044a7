"""Tests for the task scheduler and render channel."""

import threading
import time

import pytest

from deploywatch.scheduler.checker import CancellationToken, RenderChannel, TaskScheduler


def wait_until(predicate, timeout=2.0):
    """Poll `predicate` until it is true or `timeout` expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def scheduler():
    """Create a scheduler and shut it down after the test."""
    sched = TaskScheduler()
    yield sched
    sched.shutdown()
    sched.join(timeout=2.0)


class TestCancellationToken:
    """Test CancellationToken."""

    def test_cancel_is_idempotent(self):
        """Test repeated cancel calls are harmless."""
        token = CancellationToken()
        assert not token.cancelled

        token.cancel()
        token.cancel()

        assert token.cancelled
        assert token.wait(0) is True

    def test_wait_times_out(self):
        """Test wait returns False when not cancelled."""
        assert CancellationToken().wait(0.01) is False


class TestRenderChannel:
    """Test the capacity-one render channel."""

    def test_put_then_get(self):
        """Test a payload passes through the channel."""
        channel = RenderChannel(CancellationToken(), poll_interval=0.01)

        assert channel.put(b'frame') is True
        assert channel.get() == b'frame'

    def test_put_blocks_until_taken(self):
        """Test a second put waits for the consumer."""
        channel = RenderChannel(CancellationToken(), poll_interval=0.01)
        channel.put(b'first')
        delivered = threading.Event()

        def producer():
            channel.put(b'second')
            delivered.set()

        threading.Thread(target=producer, daemon=True).start()
        assert not delivered.wait(0.1)

        assert channel.get() == b'first'
        assert delivered.wait(1.0)
        assert channel.get() == b'second'

    def test_closed_channel(self):
        """Test both ends give up once closed."""
        closed = CancellationToken()
        channel = RenderChannel(closed, poll_interval=0.01)
        channel.put(b'fill')
        closed.cancel()

        assert channel.put(b'more') is False
        assert channel.get() is None


class TestRegister:
    """Test periodic job registration."""

    def test_job_runs_immediately_and_repeats(self, scheduler):
        """Test the first call is immediate and later calls follow the interval."""
        calls = []
        scheduler.register(0.01, lambda: calls.append(time.monotonic()))

        assert wait_until(lambda: len(calls) >= 3)

    def test_cancel_token_stops_job(self, scheduler):
        """Test cancelling the token stops further invocations."""
        calls = []
        token = scheduler.register(0.01, lambda: calls.append(1))
        assert wait_until(lambda: len(calls) >= 2)

        token.cancel()
        time.sleep(0.05)
        count = len(calls)
        time.sleep(0.1)

        assert len(calls) == count

    def test_callable_interval_reevaluated(self, scheduler):
        """Test a callable interval is consulted after every invocation."""
        intervals = []

        def interval():
            intervals.append(1)
            return 0.01

        calls = []
        scheduler.register(interval, lambda: calls.append(1))

        assert wait_until(lambda: len(intervals) >= 3)
        assert len(calls) >= len(intervals)

    def test_failing_job_keeps_running(self, scheduler):
        """Test an exception in one invocation does not stop the job."""
        calls = []

        def flaky():
            calls.append(1)
            raise RuntimeError('boom')

        scheduler.register(0.01, flaky, name='flaky')

        assert wait_until(lambda: len(calls) >= 3)


class TestRegisterKeyed:
    """Test keyed job registration."""

    def test_job_receives_keys(self, scheduler):
        """Test the keys are passed as positional arguments."""
        seen = []
        scheduler.register_keyed(0.01, ('d-1', 'i-1'), lambda dep, inst: seen.append((dep, inst)))

        assert wait_until(lambda: len(seen) >= 1)
        assert seen[0] == ('d-1', 'i-1')

    def test_duplicate_keys_ignored(self, scheduler):
        """Test a second registration for live keys is a no-op."""
        calls = []

        assert scheduler.register_keyed(10, ('d-1',), lambda dep: calls.append('first')) is True
        assert scheduler.register_keyed(10, ('d-1',), lambda dep: calls.append('second')) is False
        assert scheduler.is_registered(('d-1',))

        assert wait_until(lambda: len(calls) >= 1)
        time.sleep(0.05)
        assert calls == ['first']

    def test_cancel_then_reregister(self, scheduler):
        """Test a cancelled key can be registered again."""
        scheduler.register_keyed(10, ('d-1',), lambda dep: None)

        assert scheduler.cancel(('d-1',)) is True
        assert not scheduler.is_registered(('d-1',))
        assert scheduler.cancel(('d-1',)) is False
        assert scheduler.register_keyed(10, ('d-1',), lambda dep: None) is True

    def test_job_can_cancel_itself(self, scheduler):
        """Test a keyed job cancelling its own key stops after that call."""
        calls = []

        def job(dep):
            calls.append(dep)
            scheduler.cancel((dep,))

        scheduler.register_keyed(0.01, ('d-1',), job)
        assert wait_until(lambda: len(calls) >= 1)
        time.sleep(0.1)

        assert calls == ['d-1']


class TestDedupConsumer:
    """Test the dashboard consumer."""

    def test_only_changed_payloads_forwarded(self, scheduler):
        """Test repeated payloads are dropped and the first is always forwarded."""
        channel = scheduler.create_channel()
        received = []
        scheduler.register_dedup_consumer(channel, received.append)

        for payload in (b'a', b'a', b'b', b'b', b'a'):
            assert channel.put(payload)

        assert wait_until(lambda: len(received) >= 3)
        time.sleep(0.05)
        assert received == [b'a', b'b', b'a']

    def test_empty_first_payload_forwarded(self, scheduler):
        """Test an empty first rendering still reaches the sink."""
        channel = scheduler.create_channel()
        received = []
        scheduler.register_dedup_consumer(channel, received.append)

        channel.put(b'')

        assert wait_until(lambda: received == [b''])


class TestShutdown:
    """Test shutdown and external signals."""

    def test_shutdown_idempotent(self, scheduler):
        """Test shutdown can be called repeatedly."""
        scheduler.register(0.01, lambda: None)

        scheduler.shutdown()
        scheduler.shutdown()

        assert scheduler.is_shutdown
        assert scheduler.join(timeout=2.0)

    def test_register_after_shutdown_refused(self, scheduler):
        """Test jobs registered after shutdown never run."""
        scheduler.shutdown()
        calls = []

        token = scheduler.register(0.01, lambda: calls.append(1))
        keyed = scheduler.register_keyed(0.01, ('d-1',), lambda dep: calls.append(dep))
        time.sleep(0.05)

        assert token.cancelled
        assert keyed is False
        assert calls == []

    def test_shutdown_closes_channels(self, scheduler):
        """Test a blocked producer is released by shutdown."""
        channel = scheduler.create_channel()
        channel.put(b'fill')
        results = []

        producer = threading.Thread(target=lambda: results.append(channel.put(b'blocked')))
        producer.start()
        scheduler.shutdown()
        producer.join(timeout=2.0)

        assert results == [False]

    def test_external_signal_runs_cleanup_once(self, scheduler):
        """Test the signal shuts the scheduler down and cleans up exactly once."""
        quit_event = threading.Event()
        cleanups = []

        first = scheduler.on_external_signal(quit_event, lambda: cleanups.append(1), poll_interval=0.01)
        second = scheduler.on_external_signal(quit_event, lambda: cleanups.append(2), poll_interval=0.01)
        quit_event.set()
        first.join(timeout=2.0)
        second.join(timeout=2.0)

        assert scheduler.is_shutdown
        assert len(cleanups) == 1

    def test_external_waiter_exits_on_shutdown(self, scheduler):
        """Test the waiter gives up when shut down by other means."""
        cleanups = []
        waiter = scheduler.on_external_signal(threading.Event(), lambda: cleanups.append(1), poll_interval=0.01)

        scheduler.shutdown()
        waiter.join(timeout=2.0)

        assert not waiter.is_alive()
        assert cleanups == []


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
