"""
The endpoint owns one device connection: it drives the connect/poll/reconnect cycle,
keeps the last values read and publishes changes to subscribers.

States:

    offline -> connecting       on start, or when the reconnect timer fires
    connecting -> online        when the driver reports the link is up. The address group is
                                rebuilt and polling armed.
    connecting/online -> offline    on disconnection, link error or timeout. Errors and timeouts
                                also tear the driver down. A reconnect is scheduled RECONNECT_DELAY
                                ms later.

All state lives on the Endpoint instance and is only changed by its methods. Subscribers see copies
of values published on the channels in `events`.
"""
import asyncio
import logging

from df1connector.address_group import AddressGroup, AddressGroupError
from df1connector.change import ChangeDetector
from df1connector.driver.base import ReadTimeoutError, SessionConnectedEvent, SessionDisconnectedEvent, \
    SessionErrorEvent, SessionTimeoutEvent
from df1connector.scheduler import CycleScheduler, validate_cycle_time, MIN_CYCLE_TIME
from df1connector.status import EndpointStatus, StatusEvent
from df1connector.support.events import EventSource
from df1connector.support.mixins import CommonEqualityMixin, StringerMixin
from df1connector.support.timers import OneShotTimer

logger = logging.getLogger(__name__)

RECONNECT_DELAY = 5000      # milliseconds


class EndpointReport(CommonEqualityMixin, StringerMixin):
    """ A message for the operator. level is a logging level. """

    def __init__(self, level, message):
        self.level = level
        self.message = message

    def __repr__(self):
        return "EndpointReport(%s, %r)" % (logging.getLevelName(self.level), self.message)


class EndpointEvents:
    """
    The channels an endpoint publishes on, one per kind of event.

    - connected, disconnected: no arguments
    - status: StatusEvent
    - all_values: dict of every value read, on each read
    - value(name): the new value of one variable, when it changes
    - changed: ValueChange, for each variable that changes
    - all_changed: dict of every value read, when at least one changed
    - error, timeout: a description of the fault
    - reports: EndpointReport, errors and warnings for the operator
    """

    def __init__(self):
        self.connected = EventSource()
        self.disconnected = EventSource()
        self.status = EventSource()
        self.all_values = EventSource()
        self.changed = EventSource()
        self.all_changed = EventSource()
        self.error = EventSource()
        self.timeout = EventSource()
        self.reports = EventSource()
        self._values = {}

    def value(self, name) -> EventSource:
        channel = self._values.get(name)
        if channel is None:
            channel = self._values[name] = EventSource()
        return channel

    def has_value_channel(self, name) -> bool:
        return name in self._values

    def _channels(self):
        return [self.connected, self.disconnected, self.status, self.all_values, self.changed,
                self.all_changed, self.error, self.timeout, self.reports] + list(self._values.values())

    def clear(self):
        """ detaches every listener """
        for channel in self._channels():
            channel.clear()
        self._values = {}


class Endpoint:
    """
    The session manager for one device.

    :param config: the EndpointConfig
    :param driver_factory: a callable creating a SessionDriver from the config. When None, the
        endpoint cannot connect and reports a configuration error.
    :param reconnect_delay: milliseconds between a disconnection and the next connection attempt
    """

    def __init__(self, config, driver_factory=None, reconnect_delay=RECONNECT_DELAY):
        self.config = config
        self.events = EndpointEvents()
        self._driver_factory = driver_factory
        self._driver = None
        self._group = None
        self._connected = False
        self._closed = False
        self._status = None
        self._detector = ChangeDetector()
        self._scheduler = CycleScheduler(self._read_group, self._cycle_done, self._read_failed,
                                         lambda: self._connected)
        self._reconnect_timer = OneShotTimer(reconnect_delay / 1000, self._reconnect)
        self._tasks = set()
        self._teardowns = set()
        self._init_cycle_time(config.cycle_time)
        self._set_status(EndpointStatus.OFFLINE)

    def _init_cycle_time(self, cycle_time):
        try:
            self._scheduler.cycle_time, clamped = validate_cycle_time(cycle_time)
        except ValueError as e:
            self._report(logging.ERROR, str(e))
            return
        if clamped:
            self._report(logging.WARNING, "cycle time too short, using the minimum of %d ms" % MIN_CYCLE_TIME)

    # state

    @property
    def status(self) -> EndpointStatus:
        return self._status

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def cycle_time(self) -> int:
        return self._scheduler.cycle_time

    @property
    def values(self) -> dict:
        """ a copy of the last value seen for each variable """
        return self._detector.snapshot()

    @property
    def address_group(self):
        return self._group

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_timer.active

    @property
    def polling(self) -> bool:
        return self._scheduler.armed

    def _set_status(self, status: EndpointStatus):
        if self._closed or status is self._status:
            return
        self._status = status
        logger.debug("endpoint %s is %s" % (self.config.port_path, status.value))
        self.events.status.fire(StatusEvent(status))

    def request_status(self):
        """ republishes the current status, for subscribers that have just attached """
        if not self._closed:
            self.events.status.fire(StatusEvent(self._status))

    def _report(self, level, message):
        logger.log(level, message)
        if not self._closed:
            self.events.reports.fire(EndpointReport(level, message))

    def _report_link_fault(self, message):
        if self.config.error_report == 'silent':
            logger.debug(message)
        else:
            self._report(logging.ERROR, message)

    def _spawn(self, coro):
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # lifecycle

    def start(self):
        """ begins connecting. Must be called with the event loop running. """
        return self._spawn(self.connect())

    async def connect(self):
        if self._closed:
            return
        if self._driver_factory is None:
            self._report(logging.CRITICAL, "No session driver available, the endpoint cannot connect.")
            return

        self._set_status(EndpointStatus.CONNECTING)
        self._reconnect_timer.cancel()

        if self._driver is not None:
            await self.disconnect(reconnect=False)

        if self._closed:
            return

        if not self.config.port_path:
            self._set_status(EndpointStatus.OFFLINE)
            self._report(logging.ERROR, "Undefined port path!")
            return

        driver = self._driver_factory(self.config)
        self._driver = driver
        self._group = AddressGroup()
        self._scheduler.reset()
        driver.events.add(self._driver_event)
        logger.info("connecting to %s" % self.config.port_path)
        try:
            await driver.connect()
        except Exception as e:
            if driver is self._driver:
                self._on_error(e)

    async def disconnect(self, reconnect=True):
        """
        Tears down the session driver. Does nothing when there is no driver.
        :param reconnect: when False, the disconnection does not lead to a reconnection.
        """
        driver = self._driver
        if driver is None:
            return
        self._driver = None
        self._group = None
        self._connected = False
        self._scheduler.stop()
        if self._status is EndpointStatus.ONLINE:
            self._set_status(EndpointStatus.OFFLINE)

        if not reconnect:
            driver.events.remove(self._driver_event)
        # the destroy runs to completion even when this task is cancelled, close() waits for it
        teardown = asyncio.get_running_loop().create_task(self._destroy(driver))
        self._teardowns.add(teardown)
        teardown.add_done_callback(self._teardowns.discard)
        try:
            await asyncio.shield(teardown)
        finally:
            driver.events.remove(self._driver_event)
        logger.info("disconnected from %s" % self.config.port_path)

        if reconnect:
            self._schedule_reconnect()

    async def _destroy(self, driver):
        try:
            await driver.destroy()
        except Exception as e:
            logger.warning("error destroying session driver for %s: %s" % (self.config.port_path, e))

    async def close(self):
        """
        Tears the endpoint down: stops the timers, releases the driver and detaches every listener.
        No events are published afterwards.
        """
        if self._closed:
            return
        self._set_status(EndpointStatus.OFFLINE)
        self._scheduler.stop()
        self._reconnect_timer.cancel()
        self._closed = True

        current = asyncio.current_task()
        pending = [t for t in self._tasks if t is not current and not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        await self.disconnect(reconnect=False)
        teardowns = list(self._teardowns)
        if teardowns:
            await asyncio.gather(*teardowns, return_exceptions=True)
        self.events.clear()
        logger.info("endpoint %s closed" % self.config.port_path)

    def _schedule_reconnect(self):
        if self._closed:
            return
        if not self._reconnect_timer.active:
            logger.info("reconnecting to %s in %d ms" % (self.config.port_path, self._reconnect_timer.delay * 1000))
            self._reconnect_timer.start()

    def _reconnect(self):
        if not self._closed:
            self._spawn(self.connect())

    # driver events

    def _driver_event(self, event):
        if self._closed:
            return
        if event.driver is not self._driver:
            # a driver being torn down
            if isinstance(event, SessionDisconnectedEvent):
                self._on_disconnect()
            return
        if isinstance(event, SessionConnectedEvent):
            self._on_connect()
        elif isinstance(event, SessionDisconnectedEvent):
            self._on_disconnect()
        elif isinstance(event, SessionTimeoutEvent):
            self._on_timeout(event.error)
        elif isinstance(event, SessionErrorEvent):
            self._on_error(event.error)

    def _on_connect(self):
        if self._closed:
            return
        self._scheduler.reset()
        self._connected = True
        self.events.connected.fire()
        self._set_status(EndpointStatus.ONLINE)
        logger.info("connected to %s" % self.config.port_path)

        table = self.config.translation_table()
        self._group.clear()
        self._group.set_translation_cb(table.get)
        if not table:
            self._report(logging.WARNING, "No variables configured, nothing will be read.")
            return
        try:
            self._group.add_address(list(table))
        except AddressGroupError as e:
            self._report(logging.ERROR, str(e))
            return
        self._scheduler.arm()

    def _on_disconnect(self):
        self.events.disconnected.fire()
        self._set_status(EndpointStatus.OFFLINE)
        if self._connected:
            # the link dropped on its own, the stale driver is released on reconnection
            self._connected = False
            self._scheduler.stop()
        self._schedule_reconnect()

    def _on_error(self, error):
        self.events.error.fire(str(error))
        self._set_status(EndpointStatus.OFFLINE)
        self._report_link_fault(str(error))
        self._spawn(self.disconnect())

    def _on_timeout(self, error):
        self.events.timeout.fire(str(error))
        self._set_status(EndpointStatus.OFFLINE)
        self._report_link_fault(str(error))
        self._spawn(self.disconnect())

    # polling

    def set_cycle_time(self, interval) -> bool:
        """
        Changes the polling period.
        :param interval: milliseconds, 0 stops polling. Values below MIN_CYCLE_TIME are raised to it.
        :return: False when the interval is not a non-negative integer, in which case nothing changes.
        """
        try:
            time, clamped = validate_cycle_time(interval)
        except ValueError:
            self._report(logging.ERROR, "Invalid time interval: %r" % (interval,))
            return False
        if clamped:
            self._report(logging.WARNING, "Cycle time too short, using the minimum of %d ms" % MIN_CYCLE_TIME)
        self._scheduler.cycle_time = time
        if self._connected and self._group and not self._closed:
            self._scheduler.arm()
        return True

    def trigger(self):
        """ polls now, or as soon as the read in flight completes """
        if not self._closed:
            self._scheduler.trigger()

    async def _read_group(self):
        driver = self._driver
        result = await driver.read_address_group(self._group)
        return result.values

    def _read_failed(self, error):
        if self._closed:
            return
        if isinstance(error, ReadTimeoutError):
            self._on_timeout(error)
        else:
            self._on_error(error)

    def _cycle_done(self, values):
        if self._closed:
            return
        self._set_status(EndpointStatus.ONLINE)

        changes = self._detector.update(values)
        self.events.all_values.fire(dict(values))
        for change in changes:
            if self.events.has_value_channel(change.name):
                self.events.value(change.name).fire(change.value)
            self.events.changed.fire(change)
        if changes:
            self.events.all_changed.fire(dict(values))
