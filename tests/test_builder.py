import math

import mqlink
import pytest

from mqlink.builder import State


def test_empty_message(fake):

    connector = mqlink.Connector('fake://broker', 'users')
    connector.start_map_message().send()

    assert len(fake.sent) == 1

    sent = fake.sent[0]
    assert isinstance(sent, mqlink.MapMessage)
    assert len(sent) == 0


def test_chaining(fake):

    connector = mqlink.Connector('fake://broker', 'users')

    builder = connector.start_map_message()
    assert builder.state is State.BUILDING
    assert builder.add_string('name', 'luke') is builder
    assert builder.add_int('age', 29) is builder
    assert builder.add_float('height', 1.8) is builder
    assert builder.add_boolean('admin', False) is builder
    assert builder.add_string_map({'city': 'Waimea'}) is builder

    builder.send()
    assert builder.state is State.UNSTARTED
    assert builder.is_building == False

    sent = fake.sent[0]
    assert sent.get_string('name') == 'luke'
    assert sent.get_int('age') == 29
    assert sent.get_float('height') == 1.8
    assert sent.get_boolean('admin') is False
    assert sent.get_string('city') == 'Waimea'


def test_start_requires_producer(fake):

    connector = mqlink.Connector('fake://broker', 'users')
    connector.start_map_message()

    assert connector.producer is not None
    assert fake.calls['producer'] == 1
    assert fake.calls['send'] == 0


def test_add_before_start(fake):

    connector = mqlink.Connector('fake://broker', 'users')

    with pytest.raises(mqlink.UsageError):
        connector.builder.add_string('k', 'v')

    with pytest.raises(mqlink.UsageError):
        connector.builder.add_int('k', 1)

    with pytest.raises(mqlink.UsageError):
        connector.builder.add_string_map({'k': 'v'})

    with pytest.raises(mqlink.UsageError):
        connector.builder.send()

    with pytest.raises(mqlink.UsageError):
        connector.send_map_message()

    # Out of order use is not a recoverable messaging error.

    assert not issubclass(mqlink.UsageError, mqlink.MessagingError)
    assert len(fake.calls) == 0


def test_add_after_send(fake):

    connector = mqlink.Connector('fake://broker', 'users')
    builder = connector.start_map_message().add_string('k', 'v')
    builder.send()

    with pytest.raises(mqlink.UsageError):
        builder.add_string('k', 'v')

    with pytest.raises(mqlink.UsageError):
        builder.send()

    assert len(fake.sent) == 1


def test_last_write_wins(fake):

    connector = mqlink.Connector('fake://broker', 'users')

    builder = connector.start_map_message()
    builder.add_string_map({'a': '1', 'b': '2'})
    builder.add_string('a', '3')
    builder.send()

    sent = fake.sent[0]
    assert len(sent) == 2
    assert sent.get_string('a') == '3'
    assert sent.get_string('b') == '2'


def test_overwrite_changes_type(fake):

    connector = mqlink.Connector('fake://broker', 'users')
    connector.start_map_message().add_string('a', '1').add_int('a', 1).send()

    sent = fake.sent[0]
    assert sent.type_of('a') == mqlink.message.INT
    assert sent.get_int('a') == 1

    with pytest.raises(TypeError):
        sent.get_string('a')


def test_value_types(fake):

    connector = mqlink.Connector('fake://broker', 'users')
    builder = connector.start_map_message()

    with pytest.raises(TypeError):
        builder.add_int('age', '29')

    with pytest.raises(TypeError):
        builder.add_int('flag', True)

    with pytest.raises(TypeError):
        builder.add_string('name', 55)

    with pytest.raises(TypeError):
        builder.add_string_map({'name': None})

    with pytest.raises(ValueError):
        builder.add_string('', 'empty key')

    assert builder.is_building == True


def test_values_must_fit_the_wire(fake):

    connector = mqlink.Connector('fake://broker', 'users')
    builder = connector.start_map_message().add_float('ratio', 0.5)

    with pytest.raises(ValueError):
        builder.add_float('ratio', math.nan)

    with pytest.raises(ValueError):
        builder.add_float('limit', math.inf)

    with pytest.raises(ValueError):
        builder.add_int('n', 2 ** 70)

    builder.send()

    sent = fake.sent[0]
    assert set(sent.keys()) == set(('ratio',))

    decoded = mqlink.message.decode(sent.encapsulate())
    assert decoded.get_float('ratio') == 0.5


def test_restart_discards_pending(fake):

    connector = mqlink.Connector('fake://broker', 'users')

    connector.start_map_message().add_string('first', 'x')
    connector.start_map_message().add_string('second', 'y')
    connector.send_map_message()

    sent = fake.sent[0]
    assert 'first' not in sent
    assert 'second' in sent


def test_failed_send_keeps_pending(fake):

    connector = mqlink.Connector('fake://broker', 'users')
    builder = connector.start_map_message().add_int('attempt', 1)

    fake.fail.add('send')

    with pytest.raises(mqlink.TransportError):
        builder.send()

    assert builder.is_building == True

    fake.fail.clear()
    builder.send()

    assert fake.sent[0].get_int('attempt') == 1
    assert builder.is_building == False


def test_close_discards_pending(fake):

    connector = mqlink.Connector('fake://broker', 'users')
    builder = connector.start_map_message().add_string('k', 'v')

    connector.close()
    assert builder.is_building == False

    with pytest.raises(mqlink.UsageError):
        builder.send()

    assert len(fake.sent) == 0


def test_start_failure(fake):

    connector = mqlink.Connector('fake://broker', 'users')
    fake.fail.add('producer')

    with pytest.raises(mqlink.TransportError):
        connector.start_map_message()

    assert connector.builder.is_building == False
    assert connector.destination is not None


def test_failed_restart_discards_pending(fake):

    connector = mqlink.Connector('fake://broker', 'users')
    builder = connector.start_map_message().add_string('stale', 'x')

    # Drop the producer so that start() has to establish it again.

    connector.producer = None
    fake.fail.add('producer')

    with pytest.raises(mqlink.TransportError):
        builder.start()

    assert builder.is_building == False

    with pytest.raises(mqlink.UsageError):
        builder.send()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
