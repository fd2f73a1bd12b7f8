"""
Periodic reads with overlap protection.

The serial link can't multiplex, so at most one read is outstanding per endpoint. Triggers that
arrive while a read is in flight are not queued: they are counted, and however many there were,
a single catch-up read is issued as soon as the current read completes.
"""
import asyncio
import logging

from df1connector.support.timers import PeriodicTimer

logger = logging.getLogger(__name__)

MIN_CYCLE_TIME = 50     # milliseconds


def validate_cycle_time(interval):
    """
    Validates a requested cycle time.
    :param interval: the cycle time in milliseconds. Integers, integral floats and
        strings of digits are accepted.
    :return: a tuple (cycle_time, clamped). A cycle time of 0 disables polling. Positive values
        below MIN_CYCLE_TIME are raised to MIN_CYCLE_TIME and clamped is True.
    :raises ValueError: when the interval is not a non-negative integer.

    >>> validate_cycle_time("100")
    (100, False)
    >>> validate_cycle_time(10)
    (50, True)
    """
    if isinstance(interval, bool) or interval is None:
        raise ValueError("invalid time interval: %r" % (interval,))
    if isinstance(interval, float):
        if not interval.is_integer():
            raise ValueError("invalid time interval: %r" % (interval,))
        interval = int(interval)
    try:
        time = int(str(interval).strip())
    except ValueError as e:
        raise ValueError("invalid time interval: %r" % (interval,)) from e
    if time < 0:
        raise ValueError("invalid time interval: %r" % (interval,))
    if 0 < time < MIN_CYCLE_TIME:
        return MIN_CYCLE_TIME, True
    return time, False


class CycleScheduler:
    """
    Decides when a read is actually issued.

    :param read: coroutine function that reads the address group and returns the values
    :param on_values: called with the values of each successful read
    :param on_failure: called with the exception of a failed read
    :param is_ready: callable returning True while reads can be issued (i.e. connected)
    :param cycle_time: the polling period in milliseconds, 0 for no polling
    """

    def __init__(self, read, on_values, on_failure, is_ready, cycle_time=0, loop=None):
        self._read = read
        self._on_values = on_values
        self._on_failure = on_failure
        self._is_ready = is_ready
        self.cycle_time = cycle_time
        self._loop = loop
        self._timer = None
        self._task = None
        self.in_progress = False
        self.deferred = 0

    @property
    def armed(self) -> bool:
        return self._timer is not None and self._timer.active

    def arm(self):
        """ (re)starts the periodic timer for the current cycle time. A cycle time of 0 leaves it stopped. """
        self.disarm()
        if self.cycle_time:
            self._timer = PeriodicTimer(self.cycle_time / 1000, self.trigger, self._loop).start()
            logger.debug("polling every %d ms" % self.cycle_time)

    def disarm(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def reset(self):
        self.in_progress = False
        self.deferred = 0

    def stop(self):
        """ stops polling and abandons any read in flight """
        self.disarm()
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
        self.reset()

    def trigger(self):
        """ requests a read: issued now if possible, otherwise deferred """
        if not self.in_progress and self._is_ready():
            self.in_progress = True
            loop = self._loop or asyncio.get_running_loop()
            self._task = loop.create_task(self._read_once())
        else:
            self.deferred += 1

    async def _read_once(self):
        try:
            values = await self._read()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.in_progress = False
            self._forget_current()
            self._on_failure(e)
            return
        self.in_progress = False
        self._forget_current()
        if self.deferred and self._is_ready():
            self.trigger()
            self.deferred = 0
        try:
            self._on_values(values)
        except Exception as e:
            logger.exception("unexpected exception '%s' delivering values, polling continues." % e)

    def _forget_current(self):
        if self._task is asyncio.current_task():
            self._task = None
