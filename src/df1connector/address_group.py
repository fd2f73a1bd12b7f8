"""
The set of named addresses read from the device on each poll.

Names are what subscribers see; the translation callback maps each name to the native address
understood by the session driver. The group is built once per connection and replaced on
reconnection.
"""
import logging
from collections import OrderedDict
from collections.abc import Mapping

logger = logging.getLogger(__name__)


class AddressGroupError(Exception):
    """ Indicates a misuse of an address group, such as adding names before a translation is set. """


def _entry_pair(entry):
    if isinstance(entry, Mapping):
        address = entry.get('addr')
        if address is None:
            address = entry.get('address')
        return entry.get('name'), address
    name, address = entry
    return name, address


def create_translation_table(variables) -> OrderedDict:
    """
    Builds the name to address table from the configured variables.
    :param variables: an iterable of mappings with 'name' and 'addr' (or 'address') keys, or
        (name, address) pairs.
    :return: an ordered mapping from name to native address. Incomplete entries are skipped and
        when a name repeats, the last address wins.

    >>> list(create_translation_table([('a', 'N7:0'), ('', 'N7:1'), ('b', None)]).items())
    [('a', 'N7:0')]
    """
    table = OrderedDict()
    for entry in variables or ():
        name, address = _entry_pair(entry)
        if not name or not address:
            logger.debug("skipping incomplete variable entry %r" % (entry,))
            continue
        table[name] = address
    return table


class AddressGroup:
    """
    An ordered group of variable names, each resolved to a native address through the translation
    callback. This is the unit handed to the session driver for a read.
    """

    def __init__(self, translation_cb=None):
        self._translate = translation_cb
        self._addresses = OrderedDict()

    def set_translation_cb(self, translation_cb):
        self._translate = translation_cb

    def translate(self, name):
        if self._translate is None:
            raise AddressGroupError("no translation set for the address group")
        return self._translate(name)

    def add_address(self, names):
        """
        Adds one name, or an iterable of names, to the group.
        Raises AddressGroupError when no translation is set or a name cannot be translated.
        """
        if isinstance(names, str):
            names = [names]
        resolved = []
        for name in names:
            address = self.translate(name)
            if address is None:
                raise AddressGroupError("unknown variable '%s'" % name)
            resolved.append((name, address))
        self._addresses.update(resolved)

    def clear(self):
        self._addresses.clear()

    @property
    def names(self):
        return list(self._addresses.keys())

    @property
    def addresses(self):
        """ a copy of the name to native address mapping, in insertion order """
        return OrderedDict(self._addresses)

    def __len__(self):
        return len(self._addresses)

    def __iter__(self):
        return iter(self.names)

    def __contains__(self, name):
        return name in self._addresses

    def __repr__(self):
        return "AddressGroup(%r)" % (list(self._addresses.items()),)
