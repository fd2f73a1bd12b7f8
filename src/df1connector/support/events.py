

class EventSource(object):
    """
    A single publish/subscribe channel. Handlers are called in the order they were added.
    The handler list is copied before firing, so a handler may remove itself (or others)
    while the event is being delivered.
    """

    def __init__(self):
        self._handlers = []

    def __iadd__(self, handler):
        return self.add(handler)

    def __isub__(self, handler):
        return self.remove(handler)

    def __len__(self):
        return len(self._handlers)

    def add(self, handler):
        self._handlers.append(handler)
        return self

    def remove(self, handler):
        if handler in self._handlers:
            self._handlers.remove(handler)
        return self

    def clear(self):
        """ detaches all handlers """
        self._handlers = []

    def handlers(self):
        return tuple(self._handlers)

    def fire(self, *args, **kwargs):
        for handler in tuple(self._handlers):
            handler(*args, **kwargs)

    def fire_all(self, events):
        for e in events:
            self.fire(e)
