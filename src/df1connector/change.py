"""
Change detection for polled values.

Values read from the device are scalars, timestamps or short sequences. Two reads are considered
the same when:

- the values are identical, or equal scalars of the same kind (numbers, bools, strings, bytes)
- both are datetimes for the same instant
- both are sequences of the same length whose elements are pairwise equal scalars

Anything else, including None on either side, is a change.
"""
import numbers
from datetime import datetime

from df1connector.support.mixins import CommonEqualityMixin, StringerMixin


def _strict_equals(a, b) -> bool:
    if a is b:
        return True
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    if isinstance(a, numbers.Number) and isinstance(b, numbers.Number):
        return a == b
    if isinstance(a, (str, bytes)) and type(a) is type(b):
        return a == b
    return False


def values_equal(a, b) -> bool:
    """
    >>> values_equal([1, 2, 3], [1, 2, 3])
    True
    >>> values_equal(None, 0)
    False
    """
    if _strict_equals(a, b):
        return True
    if a is None or b is None:
        return False
    if isinstance(a, datetime) and isinstance(b, datetime):
        return a == b
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        if len(a) != len(b):
            return False
        return all(_strict_equals(x, y) for x, y in zip(a, b))
    return False


def _cached(value):
    """ sequences are copied so that later changes by subscribers don't alter the cache """
    if isinstance(value, list):
        return list(value)
    return value


class ValueChange(CommonEqualityMixin, StringerMixin):
    """ A variable that changed value in the most recent read. """

    def __init__(self, name, value):
        self.name = name
        self.value = value

    def __repr__(self):
        return "ValueChange(%r, %r)" % (self.name, self.value)


class ChangeDetector:
    """
    Compares each read with the previously seen values.
    The cache is only ever updated entry by entry, so values from before a reconnection
    are kept and compared against the first read after it.
    """

    def __init__(self):
        self._values = {}

    def update(self, values) -> list:
        """
        Compares the read values with the cache, updating the cache as it goes.
        :param values: mapping of variable name to value, in read order.
        :return: the changes, in the iteration order of values.
        """
        changes = []
        for name, value in values.items():
            if name not in self._values or not values_equal(self._values[name], value):
                self._values[name] = _cached(value)
                changes.append(ValueChange(name, value))
        return changes

    def snapshot(self) -> dict:
        return {name: _cached(value) for name, value in self._values.items()}

    def __len__(self):
        return len(self._values)
