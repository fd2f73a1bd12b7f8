"""
Control messages for an endpoint.

A message's function is 'trigger' to poll now, or 'cycletime' to change the polling period to
the message payload, in milliseconds.
"""
import logging

from df1connector.status import status_display

logger = logging.getLogger(__name__)

TRIGGER = 'trigger'
CYCLE_TIME = 'cycletime'


class ControlPeer:
    """
    Applies control messages to an endpoint.
    :param endpoint: the Endpoint to control
    :param function: the function applied to every message. When None, each message names its own.
    """

    def __init__(self, endpoint, function=None):
        self.endpoint = endpoint
        self.function = function
        self.status = status_display(endpoint.status)
        endpoint.events.status.add(self._on_status)
        endpoint.request_status()

    def _on_status(self, event):
        self.status = status_display(event.status)

    def handle(self, message):
        """
        :return: the message, to be passed on, when the function was applied. None otherwise.
        """
        function = self.function or getattr(message, 'function', None)
        if function == TRIGGER:
            self.endpoint.trigger()
            return message
        if function == CYCLE_TIME:
            return message if self.endpoint.set_cycle_time(message.payload) else None
        logger.error("invalid control function: %s" % (function,))
        return None

    def close(self):
        self.endpoint.events.status.remove(self._on_status)
