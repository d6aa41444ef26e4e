import collections
import socket
import uuid

import mqlink
import pytest


class Recorder:
    """ Shared state for one fake broker: counts every handle created,
        holds the queued messages, and can be told to fail at specific
        steps.
    """

    def __init__(self):
        self.calls = collections.Counter()
        self.fail = set()
        self.fail_close = set()
        self.queue = collections.deque()
        self.sent = list()
        self.timeouts = list()

    def step(self, name):
        self.calls[name] += 1
        if name in self.fail:
            raise mqlink.TransportError('induced failure: ' + name)

    def closing(self, name):
        self.calls['close.' + name] += 1
        if name in self.fail_close:
            raise RuntimeError('induced close failure: ' + name)


def fake_factory_class(recorder):

    class FakeFactory(mqlink.transport.ConnectionFactory):
        def __init__(self, url):
            mqlink.transport.ConnectionFactory.__init__(self, url)
            recorder.step('factory')

        def create_connection(self):
            recorder.step('connection')
            return FakeConnection()

    class FakeConnection(mqlink.transport.Connection):
        def start(self):
            recorder.step('start')

        def create_session(self):
            recorder.step('session')
            return FakeSession()

        def close(self):
            recorder.closing('connection')

    class FakeSession(mqlink.transport.Session):
        def create_queue(self, name):
            recorder.step('queue')
            return mqlink.transport.Queue(name)

        def create_producer(self, destination):
            recorder.step('producer')
            return FakeProducer(destination)

        def create_consumer(self, destination):
            recorder.step('consumer')
            return FakeConsumer(destination)

        def close(self):
            recorder.closing('session')

    class FakeProducer(mqlink.transport.Producer):
        def send(self, msg):
            recorder.step('send')
            msg.stamp(self.destination.name)
            recorder.sent.append(msg)
            recorder.queue.append(msg)

        def close(self):
            recorder.closing('producer')

    class FakeConsumer(mqlink.transport.Consumer):
        def receive(self, timeout=None):
            recorder.step('receive')
            recorder.timeouts.append(timeout)
            if recorder.queue:
                return recorder.queue.popleft()
            return None

        def close(self):
            recorder.closing('consumer')

    return FakeFactory


@pytest.fixture
def fake():
    """ Register a counting fake transport for the 'fake' URL scheme.
    """

    recorder = Recorder()
    mqlink.transport.register('fake', fake_factory_class(recorder))

    yield recorder

    mqlink.transport.unregister('fake')


@pytest.fixture
def naming_file(tmp_path):
    """ Write a naming file pointing at the fake transport.
    """

    path = tmp_path / 'mqlink.properties'
    path.write_text(
        '# Test naming file\n'
        'connectionfactory.connectionFactory = fake://broker\n'
        'connectionfactory.Other = fake://other\n'
        'queue.UserQueue = users\n'
        'queue.Orders = orders.incoming\n'
    )
    return str(path)


@pytest.fixture
def endpoint():
    """ A unique in-process ZeroMQ endpoint.
    """

    return 'inproc://mqlink-test-' + uuid.uuid4().hex


@pytest.fixture
def tcp_endpoint():

    probe = socket.socket()
    probe.bind(('127.0.0.1', 0))
    port = probe.getsockname()[1]
    probe.close()

    return 'tcp://127.0.0.1:%d' % (port)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
