"""Test adaptive poll scheduling"""

from datetime import timedelta
from unittest.mock import Mock

from onair.core.exceptions import FeedError, PayloadError
from onair.sync.scheduler import PollResult, PollScheduler, SchedulerState

from conftest import NOW


def _scheduler(fetch, timers, clock, on_result=None, **kwargs):
    return PollScheduler(
        "test",
        fetch=fetch,
        on_result=on_result or Mock(),
        clock=clock,
        timer_factory=timers,
        **kwargs
    )


class TestComputeDelay:
    """Test re-arm delay selection"""

    def test_server_hint_plus_buffer(self, timers, clock):
        """Test next_updated 10s ahead re-arms in 11s"""
        scheduler = _scheduler(Mock(), timers, clock)
        result = PollResult.success({}, NOW + timedelta(seconds=10))
        assert scheduler.compute_delay(result) == 11.0

    def test_stale_hint_uses_min_delay(self, timers, clock):
        scheduler = _scheduler(Mock(), timers, clock)
        result = PollResult.success({}, NOW - timedelta(minutes=5))
        assert scheduler.compute_delay(result) == 2.0

    def test_no_hint_uses_fallback(self, timers, clock):
        scheduler = _scheduler(Mock(), timers, clock)
        assert scheduler.compute_delay(PollResult.success({})) == 30.0

    def test_failure_uses_fallback(self, timers, clock):
        scheduler = _scheduler(Mock(), timers, clock)
        assert scheduler.compute_delay(PollResult.failure(FeedError("down"))) == 30.0

    def test_fixed_interval_ignores_hint(self, timers, clock):
        scheduler = _scheduler(Mock(), timers, clock, interval=3600.0)
        result = PollResult.success({}, NOW + timedelta(seconds=10))
        assert scheduler.compute_delay(result) == 3600.0


class TestPollScheduler:
    """Test the scheduler lifecycle"""

    def test_start_fetches_immediately(self, timers, clock):
        fetch = Mock(return_value=PollResult.success({}, NOW + timedelta(seconds=10)))
        on_result = Mock()
        scheduler = _scheduler(fetch, timers, clock, on_result=on_result)

        scheduler.start()
        assert timers.pending[0].delay == 0.0
        assert scheduler.state == SchedulerState.ARMED

        timers.fire_pending()

        fetch.assert_called_once()
        on_result.assert_called_once()
        assert on_result.call_args[0][0].ok
        assert scheduler.last_delay == 11.0
        assert len(timers.pending) == 1

    def test_start_twice_keeps_one_timer(self, timers, clock):
        scheduler = _scheduler(Mock(return_value=PollResult.success({})), timers, clock)
        scheduler.start()
        scheduler.start()
        assert len(timers.pending) == 1

    def test_failures_retry_after_fallback(self, timers, clock):
        """Test transport and payload failures both become failed results"""
        fetch = Mock(side_effect=[FeedError("timed out", is_timeout=True), PayloadError("not JSON")])
        on_result = Mock()
        scheduler = _scheduler(fetch, timers, clock, on_result=on_result)

        scheduler.start()
        timers.fire_pending()
        assert scheduler.last_delay == 30.0
        timers.fire_pending()
        assert scheduler.last_delay == 30.0

        errors = [c[0][0].error for c in on_result.call_args_list]
        assert isinstance(errors[0], FeedError)
        assert isinstance(errors[1], PayloadError)
        assert scheduler.is_running

    def test_unexpected_error_keeps_polling(self, timers, clock):
        scheduler = _scheduler(Mock(side_effect=KeyError("boom")), timers, clock)
        scheduler.start()
        timers.fire_pending()

        assert scheduler.last_delay == 30.0
        assert len(timers.pending) == 1

    def test_stop_cancels_timer(self, timers, clock):
        scheduler = _scheduler(Mock(), timers, clock)
        scheduler.start()
        scheduler.stop()

        assert timers.timers[0].cancelled
        assert timers.pending == []
        assert scheduler.state == SchedulerState.IDLE

    def test_result_after_stop_is_discarded(self, timers, clock):
        """Test a fetch finishing after stop neither delivers nor re-arms"""
        on_result = Mock()

        def fetch():
            scheduler.stop()
            return PollResult.success({}, NOW + timedelta(seconds=10))

        scheduler = _scheduler(fetch, timers, clock, on_result=on_result)
        scheduler.start()
        timers.fire_pending()

        on_result.assert_not_called()
        assert timers.pending == []

    def test_stale_timer_callback_ignored(self, timers, clock):
        """Test a timer from before stop/start does not fetch"""
        fetch = Mock(return_value=PollResult.success({}))
        scheduler = _scheduler(fetch, timers, clock)

        scheduler.start()
        old_timer = timers.timers[0]
        scheduler.stop()
        scheduler.start()

        old_timer.callback()
        fetch.assert_not_called()

    def test_poll_now_leaves_timer_alone(self, timers, clock):
        fetch = Mock(return_value=PollResult.success({}, NOW + timedelta(seconds=10)))
        on_result = Mock()
        scheduler = _scheduler(fetch, timers, clock, on_result=on_result)

        scheduler.start()
        armed = timers.pending[0]

        assert scheduler.poll_now() is True
        on_result.assert_called_once()
        assert timers.pending == [armed]

    def test_poll_now_refused_while_fetching(self, timers, clock):
        """Test only one fetch of a feed is in flight"""
        nested = []

        def fetch():
            nested.append(scheduler.poll_now())
            return PollResult.success({})

        scheduler = _scheduler(fetch, timers, clock)
        assert scheduler.poll_now() is True
        assert nested == [False]

    def test_timer_during_manual_poll_rearms(self, timers, clock):
        """Test a timer firing mid manual fetch retries after min_delay"""
        def fetch():
            timers.fire_pending()
            return PollResult.success({})

        scheduler = _scheduler(fetch, timers, clock)
        scheduler.start()
        scheduler.poll_now()

        assert scheduler.last_delay == 2.0
        assert len(timers.pending) == 1

    def test_handler_error_does_not_stop_polling(self, timers, clock):
        on_result = Mock(side_effect=RuntimeError("listener bug"))
        scheduler = _scheduler(Mock(return_value=PollResult.success({})), timers, clock, on_result=on_result)

        scheduler.start()
        timers.fire_pending()

        assert len(timers.pending) == 1
