from enum import Enum

from df1connector.support.mixins import CommonEqualityMixin, StringerMixin


class EndpointStatus(Enum):
    """ connection status of an endpoint """
    OFFLINE = 'offline'
    CONNECTING = 'connecting'
    ONLINE = 'online'


class StatusEvent(CommonEqualityMixin, StringerMixin):
    """
    Published on the status channel.
    :param status: the current EndpointStatus
    :param value: an optional value to show alongside the status
    """

    def __init__(self, status: EndpointStatus, value=None):
        self.status = status
        self.value = value

    def __repr__(self):
        return "StatusEvent(%s, %r)" % (self.status, self.value)


def status_display(status, value=None) -> dict:
    """
    Describes how a status is shown to the operator.

    >>> status_display(EndpointStatus.ONLINE, 12)['text']
    '12'
    >>> status_display(EndpointStatus.OFFLINE)['fill']
    'red'
    """
    if status is EndpointStatus.ONLINE:
        if not isinstance(value, (str, int, float, bool)):
            value = 'online'
        return {'fill': 'green', 'shape': 'dot', 'text': str(value)}
    if status is EndpointStatus.OFFLINE:
        return {'fill': 'red', 'shape': 'dot', 'text': 'offline'}
    if status is EndpointStatus.CONNECTING:
        return {'fill': 'yellow', 'shape': 'dot', 'text': 'connecting'}
    return {'fill': 'grey', 'shape': 'dot', 'text': 'unknown'}
