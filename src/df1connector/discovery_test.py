import unittest
from unittest.mock import patch

from hamcrest import assert_that, empty, is_
from serial.tools.list_ports_common import ListPortInfo

from df1connector.discovery import describe_port, list_serial_ports, monitor, serial_port_info, serial_ports


def port_info(device, description='n/a'):
    info = ListPortInfo(device, skip_link_detection=True)
    info.description = description
    return info


class DiscoveryTest(unittest.TestCase):

    @patch('serial.tools.list_ports.comports')
    def test_serial_port_info(self, comports):
        ports = [port_info('/dev/ttyS0')]
        comports.return_value = ports
        assert_that(serial_port_info(), is_(tuple(ports)))
        comports.assert_called_once()

    def test_serial_ports(self):
        with patch('df1connector.discovery.serial_port_info') as mock:
            mock.return_value = (port_info('/dev/ttyS0'), port_info('/dev/ttyUSB0'))
            assert_that(list(serial_ports()), is_(['/dev/ttyS0', '/dev/ttyUSB0']))

    def test_describe_port(self):
        info = port_info('/dev/ttyUSB0', 'USB serial')
        info.manufacturer = 'FTDI'
        info.serial_number = 'A123'
        info.vid = 0x0403
        info.pid = 0x6001
        assert_that(describe_port(info), is_({
            'path': '/dev/ttyUSB0',
            'description': 'USB serial',
            'manufacturer': 'FTDI',
            'serial_number': 'A123',
            'vendor_id': 0x0403,
            'product_id': 0x6001,
        }))

    def test_list_serial_ports(self):
        with patch('df1connector.discovery.serial_port_info') as mock:
            mock.return_value = (port_info('/dev/ttyS0', 'ttyS0'),)
            ports = list_serial_ports()
            assert_that([p['path'] for p in ports], is_(['/dev/ttyS0']))

    def test_list_serial_ports_failure_is_empty(self):
        with patch('df1connector.discovery.serial_port_info', side_effect=OSError("no sysfs")):
            assert_that(list_serial_ports(), is_(empty()))

    def test_monitor(self):
        with patch('df1connector.discovery.serial_port_info', return_value=()):
            monitor()
