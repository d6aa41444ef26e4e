""" Message classes for mqlink, and the encoding used to put them on the
    wire. Two kinds of message exist: a :class:`TextMessage` carries a single
    string, a :class:`MapMessage` carries typed key/value entries.
"""

import math
import time as timemodule
import uuid

from . import json


# Value type tags for map entries. The order of the checks in _tag() matters:
# bool is a subclass of int, and must be identified first.

STRING = 'string'
INT = 'int'
FLOAT = 'float'
BOOLEAN = 'boolean'

valid_value_types = (STRING, INT, FLOAT, BOOLEAN)

# Integers travel as signed 64-bit values.

INT_MIN = -2 ** 63
INT_MAX = 2 ** 63 - 1


class Message:
    """ The :class:`Message` is the common base for everything that travels
        over a queue. Instances are created without a *message_id* or
        *destination*; both are assigned when the message is sent, or
        restored when a message is received.

        :ivar kind: The message type on the wire, 'text' or 'map'.
        :ivar message_id: Unique identifier assigned on send.
        :ivar timestamp: UNIX epoch timestamp assigned on send.
        :ivar destination: Physical name of the queue the message went to.
    """

    kind = None

    def __init__(self):
        self.message_id = None
        self.timestamp = None
        self.destination = None


    def __repr__(self):
        return '%s(id=%r, destination=%r)' % (self.__class__.__name__, self.message_id, self.destination)


    def stamp(self, destination):
        """ Assign the identifier, timestamp, and destination immediately
            prior to sending.
        """

        self.message_id = uuid.uuid4().hex
        self.timestamp = timemodule.time()
        self.destination = destination


    def body(self):
        raise NotImplementedError('subclasses must implement body()')


    def encapsulate(self):
        """ Return the bytes representation of this message.
        """

        header = dict()
        header['kind'] = self.kind
        header['id'] = self.message_id
        header['time'] = self.timestamp
        header['destination'] = self.destination
        header['body'] = self.body()

        return json.dumps(header)


# end of class Message



class TextMessage(Message):

    kind = 'text'

    def __init__(self, text=''):
        Message.__init__(self)

        if not isinstance(text, str):
            raise TypeError('text messages carry str, not ' + type(text).__name__)

        self.text = text


    def __eq__(self, other):
        if isinstance(other, TextMessage):
            return self.text == other.text
        return NotImplemented


    def body(self):
        return self.text


# end of class TextMessage



class MapMessage(Message):
    """ A :class:`MapMessage` holds key/value entries with a declared type
        for each value. Keys are unique; setting a key again replaces both
        the value and its type. No ordering is promised.
    """

    kind = 'map'

    def __init__(self):
        Message.__init__(self)
        self._entries = dict()


    def __contains__(self, key):
        return key in self._entries


    def __eq__(self, other):
        if isinstance(other, MapMessage):
            return self._entries == other._entries
        return NotImplemented


    def __len__(self):
        return len(self._entries)


    def keys(self):
        return self._entries.keys()


    def items(self):
        """ Return an iterable of (key, value) pairs, without type tags.
        """

        return ((key, value) for key, (_tag, value) in self._entries.items())


    def type_of(self, key):
        return self._entries[key][0]


    def get(self, key):
        return self._entries[key][1]


    def set(self, key, tag, value):
        """ Store *value* for *key*, declared as type *tag*. Raises
            :class:`TypeError` if the value does not agree with the tag,
            and :class:`ValueError` if the value cannot be put on the wire:
            integers outside the signed 64-bit range, or floats that are not
            finite.
        """

        if not isinstance(key, str) or key == '':
            raise ValueError('map keys must be non-empty strings: ' + repr(key))

        if tag not in valid_value_types:
            raise ValueError('unsupported map value type: ' + repr(tag))

        if _tag(value) != tag:
            raise TypeError("value %r for key '%s' is not a %s" % (value, key, tag))

        if tag == INT and not INT_MIN <= value <= INT_MAX:
            raise ValueError("value %r for key '%s' exceeds the 64-bit integer range" % (value, key))

        if tag == FLOAT and not math.isfinite(value):
            raise ValueError("value %r for key '%s' is not a finite float" % (value, key))

        self._entries[key] = (tag, value)


    def set_string(self, key, value):
        self.set(key, STRING, value)

    def set_int(self, key, value):
        self.set(key, INT, value)

    def set_float(self, key, value):
        self.set(key, FLOAT, value)

    def set_boolean(self, key, value):
        self.set(key, BOOLEAN, value)


    def get_string(self, key):
        return self._get_typed(key, STRING)

    def get_int(self, key):
        return self._get_typed(key, INT)

    def get_float(self, key):
        return self._get_typed(key, FLOAT)

    def get_boolean(self, key):
        return self._get_typed(key, BOOLEAN)


    def _get_typed(self, key, tag):

        actual, value = self._entries[key]

        if actual != tag:
            raise TypeError("key '%s' holds a %s, not a %s" % (key, actual, tag))

        return value


    def body(self):

        body = dict()
        for key, (tag, value) in self._entries.items():
            body[key] = [tag, value]

        return body


# end of class MapMessage



def _tag(value):

    if isinstance(value, bool):
        return BOOLEAN
    if isinstance(value, int):
        return INT
    if isinstance(value, float):
        return FLOAT
    if isinstance(value, str):
        return STRING

    return None



def decode(data):
    """ Reconstruct a :class:`Message` from the bytes generated by
        :func:`Message.encapsulate`. Raises :class:`ValueError` if the bytes
        do not describe a known message.
    """

    try:
        header = json.loads(data)
    except (TypeError, ValueError) as e:
        raise ValueError('message is not valid JSON: ' + str(e)) from e

    if not isinstance(header, dict):
        raise ValueError('message header must be a JSON object')

    kind = header.get('kind')
    body = header.get('body')

    if kind not in (TextMessage.kind, MapMessage.kind):
        raise ValueError('unknown message kind: ' + repr(kind))

    try:
        if kind == TextMessage.kind:
            message = TextMessage(body)
        else:
            message = MapMessage()
            for key, (tag, value) in body.items():
                message.set(key, tag, value)
    except (AttributeError, TypeError, ValueError) as e:
        raise ValueError('malformed %s message body: %s' % (kind, e)) from e

    message.message_id = header.get('id')
    message.timestamp = header.get('time')
    message.destination = header.get('destination')

    return message


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
