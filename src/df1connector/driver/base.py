"""
The contract between an endpoint and the session driver that owns the physical link.

The driver does the byte-level work of the protocol. The endpoint only asks it to connect,
to read an address group and to go away, and listens to the events it fires.
"""
import logging
from abc import abstractmethod
from collections import OrderedDict

from df1connector.support.events import EventSource
from df1connector.support.mixins import CommonEqualityMixin

logger = logging.getLogger(__name__)


class DriverError(Exception):
    """ Indicates an error condition on the link or in the protocol. """


class DriverNotConnectedError(DriverError):
    """ Indicates the driver is not connected when a connection is required. """


class ReadTimeoutError(DriverError):
    """ The device did not answer within the driver's timeout. """


class SessionEvent(CommonEqualityMixin):
    """ base class for session driver events. """
    def __init__(self, driver):
        self.driver = driver


class SessionConnectedEvent(SessionEvent):
    """ The link is up. """


class SessionDisconnectedEvent(SessionEvent):
    """ The link is down. """


class SessionErrorEvent(SessionEvent):
    """ A link or protocol error, outside of any read. """
    def __init__(self, driver, error):
        super().__init__(driver)
        self.error = error


class SessionTimeoutEvent(SessionErrorEvent):
    """ The device stopped answering. """


class ReadResult:
    """ The values of one address group read, name to value in read order. """

    def __init__(self, values=None):
        self.values = OrderedDict(values or ())

    def __repr__(self):
        return "ReadResult(%r)" % (dict(self.values),)


class SessionDriver:
    """
    Owns the physical connection to one device.

    Fires SessionConnectedEvent, SessionDisconnectedEvent, SessionErrorEvent and SessionTimeoutEvent
    on `events` as the link changes state.
    """

    def __init__(self):
        self.events = EventSource()

    @property
    @abstractmethod
    def connected(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def connect(self):
        """
        Starts connecting. Success is signalled with SessionConnectedEvent and failure with
        SessionErrorEvent.
        """
        raise NotImplementedError

    @abstractmethod
    async def destroy(self):
        """
        Closes the link and releases its resources. Fires SessionDisconnectedEvent if the link
        was up. Calling destroy() on a driver that is not connected does nothing.
        """
        raise NotImplementedError

    @abstractmethod
    async def read_address_group(self, group) -> ReadResult:
        """
        Reads every address in the group.
        :raises ReadTimeoutError: when the device did not answer in time
        :raises DriverError: for any other failure
        """
        raise NotImplementedError

    def _fire_connected(self):
        self.events.fire(SessionConnectedEvent(self))

    def _fire_disconnected(self):
        self.events.fire(SessionDisconnectedEvent(self))

    def _fire_error(self, error):
        self.events.fire(SessionErrorEvent(self, error))

    def _fire_timeout(self, error):
        self.events.fire(SessionTimeoutEvent(self, error))


def driver_factory(driver_class, **kwargs):
    """
    Creates a factory that builds a driver of the given class from an endpoint configuration.
    The driver class is called with the port path, baud rate and error mode, plus any extra
    keyword arguments given here.
    """
    def create_driver(config):
        logger.debug("creating %s for %s" % (driver_class.__name__, config.port_path))
        return driver_class(config.port_path, config.baud_rate, config.error_mode, **kwargs)

    return create_driver
