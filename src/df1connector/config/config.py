"""
Endpoint configuration.

Configuration files use ConfigObj syntax and are validated against ENDPOINT_CONFIGSPEC:

    port = /dev/ttyUSB0
    baud_rate = 19200
    error_mode = crc
    cycle_time = 500

    [variables]
    temperature = N7:0
    pressure = F8:1

Each entry in [variables] maps a variable name to its native address. Entries without an
address are kept here and dropped when the translation table is built.
"""
import logging
import os

from configobj import ConfigObj, ConfigObjError, flatten_errors
from validate import Validator

from df1connector.address_group import create_translation_table
from df1connector.support.mixins import CommonEqualityMixin, StringerMixin

logger = logging.getLogger(__name__)

ENDPOINT_CONFIGSPEC = """
port = string(default='')
baud_rate = integer(min=1, default=19200)
error_mode = option('bcc', 'crc', default='bcc')
error_report = option('log', 'silent', default='log')
cycle_time = integer(min=0, default=1000)
[variables]
__many__ = string(default='')
""".splitlines()


class EndpointConfig(CommonEqualityMixin, StringerMixin):
    """
    The configuration of one endpoint. Not changed once the endpoint is created.

    :param port_path: the serial port path
    :param baud_rate: line speed
    :param error_mode: the protocol error detection mode, 'bcc' or 'crc'
    :param cycle_time: initial polling period in milliseconds, 0 for no polling
    :param error_report: 'log' to report link errors to the operator, 'silent' to only log them at debug level
    :param variables: (name, address) pairs, or mappings with 'name' and 'addr' keys
    """

    def __init__(self, port_path='', baud_rate=19200, error_mode='bcc', cycle_time=1000, error_report='log',
                 variables=()):
        self.port_path = port_path
        self.baud_rate = baud_rate
        self.error_mode = error_mode
        self.cycle_time = cycle_time
        self.error_report = error_report
        self.variables = list(variables)

    def translation_table(self):
        return create_translation_table(self.variables)


def load_config_file_base(file, must_exist=True):
    """
    Loads a configuration file
    :param file:        The configuration file to load
    :param must_exist:  when True, the file must exist or an exception is thrown.
    :return: The ConfigObj instance for the file.
    """
    try:
        return ConfigObj(file, configspec=ENDPOINT_CONFIGSPEC, file_error=must_exist) \
            if must_exist or os.path.exists(file) else ConfigObj(configspec=ENDPOINT_CONFIGSPEC)
    except ConfigObjError as e:
        raise type(e)(str(e) + ' at ' + file)


def _describe_errors(config, result):
    errors = []
    for section_list, key, res in flatten_errors(config, result):
        location = '.'.join(section_list + [key] if key is not None else section_list)
        errors.append("%s: %s" % (location, res if res is not False else 'missing'))
    return ', '.join(errors)


def validate_config(config: ConfigObj, name) -> EndpointConfig:
    """
    Validates a loaded configuration and converts it to an EndpointConfig.
    :param config: a ConfigObj created with the endpoint configspec
    :param name: names the configuration in error messages
    """
    result = config.validate(Validator(), preserve_errors=True)
    if result is not True:
        raise ConfigObjError("the config %s failed validation: %s" % (name, _describe_errors(config, result)))
    variables = list(config.get('variables', {}).items())
    return EndpointConfig(port_path=config['port'], baud_rate=config['baud_rate'], error_mode=config['error_mode'],
                          cycle_time=config['cycle_time'], error_report=config['error_report'], variables=variables)


def load_endpoint_config(file) -> EndpointConfig:
    """
    Loads and validates an endpoint configuration file.
    :raises IOError: when the file does not exist
    :raises ConfigObjError: when the file cannot be parsed or fails validation
    """
    config = load_config_file_base(file)
    endpoint_config = validate_config(config, file)
    logger.debug("loaded endpoint config %s" % endpoint_config)
    return endpoint_config


def endpoint_config_from_dict(values: dict) -> EndpointConfig:
    """
    Validates configuration given as a dictionary, such as a node configuration handed over by a host runtime.
    Values may be strings, as they are converted by the validator.
    """
    config = ConfigObj(configspec=ENDPOINT_CONFIGSPEC)
    config.merge(values)
    return validate_config(config, 'dict')
