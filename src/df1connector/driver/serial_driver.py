"""
A session driver over a local serial port.

The port is opened, read and closed in the event loop's executor since pyserial blocks.
Framing and decoding of the device protocol are left to subclasses via _read_addresses().
"""
import asyncio
import logging

import serial
from serial import SerialException

from df1connector.driver.base import DriverError, DriverNotConnectedError, ReadResult, ReadTimeoutError, \
    SessionDriver

logger = logging.getLogger(__name__)


class SerialSessionDriver(SessionDriver):
    """
    Owns a serial port for the duration of one connection.

    :param port: the port path, or any URL understood by serial.serial_for_url (e.g. 'loop://')
    :param baud_rate: line speed
    :param error_mode: the protocol's error detection mode, passed on to _read_addresses
    :param timeout: read timeout in seconds for the serial port
    """

    def __init__(self, port, baud_rate=19200, error_mode='bcc', timeout=1.0):
        super().__init__()
        self.port = port
        self.baud_rate = baud_rate
        self.error_mode = error_mode
        self.timeout = timeout
        self._serial = None
        self._lock = asyncio.Lock()

    @property
    def connected(self) -> bool:
        return self._serial is not None and self._serial.is_open

    @property
    def serial(self):
        return self._serial

    def _create_serial(self):
        return serial.serial_for_url(self.port, baudrate=self.baud_rate, timeout=self.timeout,
                                     do_not_open=True)

    async def _run(self, fn, *args):
        return await asyncio.get_running_loop().run_in_executor(None, fn, *args)

    async def connect(self):
        if self.connected:
            return
        try:
            ser = self._create_serial()
            await self._run(ser.open)
        except (SerialException, ValueError) as e:
            logger.warning("error opening serial port %s: %s" % (self.port, e))
            self._fire_error(DriverError("unable to open %s: %s" % (self.port, e)))
            return
        self._serial = ser
        logger.info("opened serial port %s" % self.port)
        self._fire_connected()

    async def destroy(self):
        ser = self._serial
        self._serial = None
        if ser is None:
            return
        was_open = ser.is_open
        try:
            await self._run(ser.close)
        except SerialException as e:
            logger.warning("error closing serial port %s: %s" % (self.port, e))
        if was_open:
            logger.info("closed serial port %s" % self.port)
            self._fire_disconnected()

    async def read_address_group(self, group) -> ReadResult:
        async with self._lock:
            ser = self._serial
            if ser is None or not ser.is_open:
                raise DriverNotConnectedError("serial port %s is not open" % self.port)
            try:
                values = await self._run(self._read_addresses, ser, group.addresses)
            except ReadTimeoutError:
                raise
            except SerialException as e:
                raise DriverError("error reading from %s: %s" % (self.port, e)) from e
            return ReadResult(values)

    def _read_addresses(self, ser, addresses):
        """
        Template method for subclasses: performs the protocol exchange on the open port.
        Runs on an executor thread.
        :param ser: the open serial port
        :param addresses: ordered mapping of variable name to native address
        :return: an iterable of (name, value) pairs or a mapping, in the order of addresses
        :raises ReadTimeoutError: when the device does not answer
        """
        raise NotImplementedError
