import asyncio
import logging
import unittest
from unittest.mock import Mock

from hamcrest import assert_that, calling, is_, raises, greater_than_or_equal_to

from df1connector.scheduler import CycleScheduler, MIN_CYCLE_TIME, validate_cycle_time


async def settle(rounds=5):
    for _ in range(rounds):
        await asyncio.sleep(0)


class ValidateCycleTimeTest(unittest.TestCase):

    def test_valid(self):
        assert_that(validate_cycle_time(1000), is_((1000, False)))
        assert_that(validate_cycle_time("250"), is_((250, False)))
        assert_that(validate_cycle_time(100.0), is_((100, False)))

    def test_zero_disables(self):
        assert_that(validate_cycle_time(0), is_((0, False)))

    def test_short_times_are_clamped(self):
        assert_that(validate_cycle_time(10), is_((MIN_CYCLE_TIME, True)))
        assert_that(validate_cycle_time(MIN_CYCLE_TIME), is_((MIN_CYCLE_TIME, False)))

    def test_invalid(self):
        for value in (-5, "abc", None, True, 12.5, "", [100]):
            assert_that(calling(validate_cycle_time).with_args(value), raises(ValueError),
                        "expected %r to be rejected" % (value,))


class ReadStub:
    """ a read function whose calls complete when the test says so """

    def __init__(self):
        self.pending = []

    async def __call__(self):
        future = asyncio.get_running_loop().create_future()
        self.pending.append(future)
        return await future

    @property
    def calls(self):
        return len(self.pending)

    def complete(self, values, index=-1):
        self.pending[index].set_result(values)

    def fail(self, error, index=-1):
        self.pending[index].set_exception(error)


class CycleSchedulerTest(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.read = ReadStub()
        self.on_values = Mock()
        self.on_failure = Mock()
        self.ready = True
        self.sut = CycleScheduler(self.read, self.on_values, self.on_failure, lambda: self.ready)

    async def test_trigger_issues_read(self):
        self.sut.trigger()
        await settle()
        assert_that(self.read.calls, is_(1))
        assert_that(self.sut.in_progress, is_(True))
        self.read.complete({'a': 1})
        await settle()
        self.on_values.assert_called_once_with({'a': 1})
        assert_that(self.sut.in_progress, is_(False))

    async def test_not_ready_defers(self):
        self.ready = False
        self.sut.trigger()
        await settle()
        assert_that(self.read.calls, is_(0))
        assert_that(self.sut.deferred, is_(1))

    async def test_triggers_during_read_collapse_to_one_catch_up(self):
        for n in (1, 2, 7):
            read = ReadStub()
            sut = CycleScheduler(read, Mock(), Mock(), lambda: True)
            sut.trigger()
            await settle()
            for _ in range(n):
                sut.trigger()
            await settle()
            assert_that(read.calls, is_(1))
            assert_that(sut.deferred, is_(n))
            read.complete({'a': 1}, 0)
            await settle()
            assert_that(read.calls, is_(2))
            assert_that(sut.deferred, is_(0))
            read.complete({'a': 2}, 1)
            await settle()
            assert_that(read.calls, is_(2))

    async def test_catch_up_is_issued_before_values_are_processed(self):
        order = []
        self.on_values.side_effect = lambda values: order.append(('values', self.sut.in_progress))
        self.sut.trigger()
        await settle()
        self.sut.trigger()
        self.read.complete({'a': 1})
        await settle()
        assert_that(order, is_([('values', True)]))

    async def test_no_catch_up_when_no_longer_ready(self):
        self.sut.trigger()
        await settle()
        self.sut.trigger()
        self.ready = False
        self.read.complete({'a': 1})
        await settle()
        assert_that(self.read.calls, is_(1))
        assert_that(self.sut.deferred, is_(1))
        self.on_values.assert_called_once_with({'a': 1})

    async def test_failure_clears_progress_and_keeps_deferred(self):
        error = IOError("link down")
        self.sut.trigger()
        await settle()
        self.sut.trigger()
        self.read.fail(error)
        await settle()
        self.on_failure.assert_called_once_with(error)
        self.on_values.assert_not_called()
        assert_that(self.sut.in_progress, is_(False))
        assert_that(self.sut.deferred, is_(1))
        assert_that(self.read.calls, is_(1))

    async def test_stop_cancels_read_in_flight(self):
        self.sut.trigger()
        await settle()
        self.sut.stop()
        await settle()
        assert_that(self.read.pending[0].cancelled(), is_(True))
        assert_that(self.sut.in_progress, is_(False))
        self.on_values.assert_not_called()
        self.on_failure.assert_not_called()

    async def test_arm_and_disarm(self):
        self.sut.cycle_time = MIN_CYCLE_TIME
        self.sut.arm()
        assert_that(self.sut.armed, is_(True))
        await asyncio.sleep(0.12)
        assert_that(self.read.calls, is_(1))
        assert_that(self.sut.deferred, is_(greater_than_or_equal_to(1)))
        self.sut.disarm()
        assert_that(self.sut.armed, is_(False))

    async def test_arm_with_zero_cycle_time_stays_stopped(self):
        self.sut.cycle_time = 0
        self.sut.arm()
        assert_that(self.sut.armed, is_(False))

    async def test_reset(self):
        self.sut.in_progress = True
        self.sut.deferred = 3
        self.sut.reset()
        assert_that(self.sut.in_progress, is_(False))
        assert_that(self.sut.deferred, is_(0))

    async def test_handler_error_is_logged_and_polling_continues(self):
        self.on_values.side_effect = ValueError("bad subscriber")
        with self.assertLogs('df1connector.scheduler', logging.ERROR):
            self.sut.trigger()
            await settle()
            self.read.complete({'a': 1})
            await settle()
        assert_that(self.sut.in_progress, is_(False))
        self.sut.trigger()
        await settle()
        assert_that(self.read.calls, is_(2))
