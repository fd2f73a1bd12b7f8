"""
Lists the local serial ports an endpoint can be configured with.
"""
import logging

from serial.tools import list_ports

logger = logging.getLogger(__name__)


def serial_port_info():
    """
    :return: a tuple of ListPortInfo for the local serial ports
    """
    return tuple(list_ports.comports())


def serial_ports():
    """
    Returns a generator for all available serial port device names.
    """
    for port in serial_port_info():
        yield port.device


def describe_port(port) -> dict:
    """ converts a ListPortInfo to a plain description """
    return {
        'path': port.device,
        'description': port.description,
        'manufacturer': port.manufacturer,
        'serial_number': port.serial_number,
        'vendor_id': port.vid,
        'product_id': port.pid,
    }


def list_serial_ports() -> list:
    """
    Describes the available serial ports. Failure to enumerate the ports is logged and
    results in an empty list.
    """
    try:
        return [describe_port(p) for p in serial_port_info()]
    except Exception as e:
        logger.error("unable to list serial ports: %s" % e)
        return []


def monitor():
    """ A helper function to list serial ports for manual testing. """
    logger.setLevel(logging.INFO)
    logger.addHandler(logging.StreamHandler())
    ports = list_serial_ports()
    if not ports:
        logger.info("no serial ports found")
    for p in ports:
        logger.info("%(path)s - %(description)s" % p)


if __name__ == '__main__':
    monitor()
