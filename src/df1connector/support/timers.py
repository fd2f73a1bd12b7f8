"""
Cancellable timers on top of the asyncio event loop.

The timers hold on to the loop handle they schedule and check it before rescheduling, so a
cancelled timer never fires again and a one-shot timer is never armed twice.
"""
import asyncio


class Timer:
    """ Base class for loop-driven timers. The delay is in seconds. """

    def __init__(self, delay, callback, loop=None):
        self.delay = delay
        self.callback = callback
        self._loop = loop
        self._handle = None

    @property
    def loop(self):
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    @property
    def active(self) -> bool:
        return self._handle is not None

    def cancel(self):
        handle = self._handle
        self._handle = None
        if handle is not None:
            handle.cancel()

    def _schedule(self):
        self._handle = self.loop.call_later(self.delay, self._expired)

    def _expired(self):
        raise NotImplementedError


class OneShotTimer(Timer):
    """
    Calls the callback once, `delay` seconds after start().
    Starting an armed timer does nothing, the original deadline is kept.
    """

    def start(self):
        if self._handle is None:
            self._schedule()
        return self

    def _expired(self):
        self._handle = None
        self.callback()


class PeriodicTimer(Timer):
    """
    Calls the callback every `delay` seconds until cancelled.
    The next tick is scheduled before the callback runs, so the callback may cancel the timer.
    """

    def start(self):
        self.cancel()
        self._schedule()
        return self

    @property
    def interval(self):
        return self.delay

    def _expired(self):
        if self._handle is None:
            return
        self._schedule()
        self.callback()
