"""
Delivers endpoint values to a consumer as messages.

A subscriber picks one subscription mode when it is created. The mode decides which endpoint
channel it listens to and how each value is turned into a Message:

=============== ============== ==================================================
mode            channel        messages
=============== ============== ==================================================
All             all_values     every read, all values in one message
AllSplit        all_values     every read, one message per variable
Single          all_values     every read, the value of one variable
AllDiff         all_changed    reads where something changed, all values
AllSplitDiff    changed        one message per changed variable
SingleDiff      value(name)    the value of one variable, when it changed
=============== ============== ==================================================
"""
import logging
from datetime import datetime

from df1connector.status import status_display
from df1connector.support.mixins import CommonEqualityMixin, StringerMixin

logger = logging.getLogger(__name__)


def epoch_millis(value: datetime) -> int:
    return int(round(value.timestamp() * 1000))


class Message(CommonEqualityMixin, StringerMixin):
    """
    A value sent to a consumer.
    :param payload: the value, or a dict of values
    :param topic: the variable name, or '' when the payload holds all variables
    :param function: the control function requested by a message sent to a ControlPeer
    """

    def __init__(self, payload, topic='', function=None):
        self.payload = payload
        self.topic = topic
        self.function = function

    def __repr__(self):
        return "Message(%r, %r)" % (self.payload, self.topic)


class SubscriptionMode(CommonEqualityMixin, StringerMixin):
    """
    Base class for subscription modes. bind() attaches the handlers the mode needs and
    returns the (channel, handler) pairs so they can be detached later.
    deliver is called as deliver(payload, topic, split).
    """

    def bind(self, events, deliver) -> list:
        raise NotImplementedError

    @staticmethod
    def _attach(channel, handler):
        channel.add(handler)
        return [(channel, handler)]


class All(SubscriptionMode):

    def bind(self, events, deliver):
        return self._attach(events.all_values, lambda values: deliver(values, '', False))


class AllSplit(SubscriptionMode):

    def bind(self, events, deliver):
        def split(values):
            for name, value in values.items():
                deliver(value, name, True)
        return self._attach(events.all_values, split)


class Single(SubscriptionMode):

    def __init__(self, variable):
        self.variable = variable

    def bind(self, events, deliver):
        return self._attach(events.all_values, lambda values: deliver(values.get(self.variable), self.variable, False))


class AllDiff(SubscriptionMode):

    def bind(self, events, deliver):
        return self._attach(events.all_changed, lambda values: deliver(values, '', False))


class AllSplitDiff(SubscriptionMode):

    def bind(self, events, deliver):
        return self._attach(events.changed, lambda change: deliver(change.value, change.name, True))


class SingleDiff(SubscriptionMode):

    def __init__(self, variable):
        self.variable = variable

    def bind(self, events, deliver):
        return self._attach(events.value(self.variable), lambda value: deliver(value, self.variable, False))


def subscription_mode(mode, diff=False, variable=None) -> SubscriptionMode:
    """
    Maps the mode names used in node configuration to a subscription mode.
    :param mode: 'all', 'all-split' or 'single'. Anything else is treated as 'all'.
    :param diff: only deliver values that changed
    :param variable: the variable name for 'single'
    """
    if mode == 'all-split':
        return AllSplitDiff() if diff else AllSplit()
    if mode == 'single':
        return SingleDiff(variable) if diff else Single(variable)
    return AllDiff() if diff else All()


class Subscriber:
    """
    Sends the values published by an endpoint to a consumer.

    :param endpoint: the Endpoint to subscribe to
    :param mode: a SubscriptionMode
    :param send: called with each Message
    """

    def __init__(self, endpoint, mode: SubscriptionMode, send):
        self.endpoint = endpoint
        self.mode = mode
        self.send = send
        self.status = status_display(endpoint.status)
        self._status_value = None
        events = endpoint.events
        self._bindings = mode.bind(events, self._deliver)
        events.status.add(self._on_status)
        self._bindings.append((events.status, self._on_status))
        endpoint.request_status()

    def _deliver(self, payload, topic, split):
        if isinstance(payload, datetime):
            payload = epoch_millis(payload)
        # split messages show only the status, there is no single value to display
        self._status_value = None if split else payload
        self.send(Message(payload, topic))
        self.endpoint.request_status()

    def _on_status(self, event):
        self.status = status_display(event.status, self._status_value)

    def close(self):
        for channel, handler in self._bindings:
            channel.remove(handler)
        self._bindings = []
