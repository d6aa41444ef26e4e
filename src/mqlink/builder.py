""" Fluent construction of a :class:`MapMessage`, sent through the producer
    of the owning :class:`Connector`. Typical use::

        connector.start_map_message().add_string('name', 'luke').add_int('age', 29).send()
"""

import enum

from .errors import UsageError
from .message import MapMessage


class State(enum.Enum):
    UNSTARTED = 'unstarted'
    BUILDING = 'building'


class MapMessageBuilder:
    """ The builder is either idle, or holds exactly one pending
        :class:`MapMessage`. :func:`start` creates the pending message,
        :func:`send` transmits it and returns the builder to idle. The
        add methods only make sense in between; calling them at any other
        time raises :class:`UsageError`.

        Instances are owned by a :class:`Connector` and should be obtained
        from :func:`Connector.start_map_message`.
    """

    def __init__(self, connector):
        self.connector = connector
        self.pending = None


    @property
    def state(self):
        if self.pending is None:
            return State.UNSTARTED
        return State.BUILDING


    @property
    def is_building(self):
        return self.pending is not None


    def start(self):
        """ Begin a new message, discarding any message already in progress.
            A ready producer is required, and is established here if needed.
            The earlier message is discarded even if that fails.
        """

        with self.connector.lock:
            self.pending = None
            self.connector._validate_producer()
            self.pending = MapMessage()

        return self


    def _require_pending(self):

        pending = self.pending

        if pending is None:
            raise UsageError('start_map_message() must be called before adding to or sending a map message')

        return pending


    def add_string(self, key, value):
        self._require_pending().set_string(key, value)
        return self


    def add_int(self, key, value):
        self._require_pending().set_int(key, value)
        return self


    def add_float(self, key, value):
        self._require_pending().set_float(key, value)
        return self


    def add_boolean(self, key, value):
        self._require_pending().set_boolean(key, value)
        return self


    def add_string_map(self, entries):
        """ Add every key/value pair in the *entries* mapping as a string.
            Keys already present are overwritten.
        """

        pending = self._require_pending()

        for key, value in entries.items():
            pending.set_string(key, value)

        return self


    def send(self):
        """ Send the pending message. If the send fails the message remains
            pending, and :func:`send` can be called again.
        """

        with self.connector.lock:
            pending = self._require_pending()
            self.connector._send(pending)
            self.pending = None


    def discard(self):
        self.pending = None


# end of class MapMessageBuilder


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
