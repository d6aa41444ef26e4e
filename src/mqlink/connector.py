""" The :class:`Connector` manages the lifetime of everything needed to talk
    to one queue: naming context, connection factory, connection, session,
    destination, producer, and consumer. None of these are created until
    they are first needed, and once created they are reused until
    :func:`Connector.close` is called.
"""

import datetime
import logging
import threading

from . import naming
from .builder import MapMessageBuilder
from .config import ConnectionConfig, Mode
from .message import TextMessage


logger = logging.getLogger(__name__)


# The order in which handles are released by close(). Dependents go first.

_release_order = ('producer', 'consumer', 'session', 'connection', 'context')


class Connector:
    """ Send and receive messages on a single queue. There are two ways to
        construct a :class:`Connector`:

        * ``Connector(queue_name)`` looks up the broker and the queue in the
          naming file; see :mod:`mqlink.naming`.

        * ``Connector(broker_url, queue_name)`` uses the broker and queue
          exactly as given.

        Construction performs no I/O. Every handle is established on first
        use by the ``_validate_*`` methods, each of which does nothing if its
        handle is already present, and otherwise validates its prerequisite
        before creating the handle. If a step fails the exception propagates
        and the handles established before it are kept, so that a later
        call resumes where the failed one stopped.

        Always call :func:`close` when finished, or use the instance as a
        context manager. After :func:`close` the instance can be used again;
        it will reconnect from scratch.

        All public methods serialize on a per-instance lock. Sharing one
        instance between threads is safe, but gains nothing; a
        :func:`consume` call waiting for a message holds the lock.

        :ivar config: The :class:`ConnectionConfig` describing the queue.
        :ivar lock: The :class:`threading.RLock` guarding the handles.
    """

    def __init__(self, *arguments):

        if len(arguments) == 1:
            config = ConnectionConfig.lookup(arguments[0])
        elif len(arguments) == 2:
            config = ConnectionConfig.direct(*arguments)
        else:
            raise TypeError('expected (queue_name) or (broker_url, queue_name), got %d arguments' % (len(arguments)))

        self._setup(config)


    @classmethod
    def from_config(cls, config):
        connector = cls.__new__(cls)
        connector._setup(config)
        return connector


    def _setup(self, config):

        self.config = config
        self.lock = threading.RLock()
        self.builder = MapMessageBuilder(self)

        self.context = None
        self.factory = None
        self.connection = None
        self.session = None
        self.destination = None
        self.producer = None
        self.consumer = None


    def __enter__(self):
        return self


    def __exit__(self, exc_type, exc_value, traceback):
        self.close()


    def __repr__(self):
        config = self.config

        if config.mode is Mode.DIRECT:
            where = '%s, %s' % (repr(config.broker_url), repr(config.queue_name))
        else:
            where = repr(config.queue_name)

        return 'Connector(%s)' % (where)


    @property
    def is_connected(self):
        return self.connection is not None


    def _validate_context(self):

        if self.config.mode is not Mode.DIRECTORY:
            return

        if self.context is None:
            self.context = naming.open_context(self.config)
            logger.debug('%r: naming context opened', self)


    def _validate_factory(self):

        if self.factory is None:
            self._validate_context()
            self.factory = naming.resolve_connection_factory(self.config, self.context)
            logger.debug('%r: connection factory resolved for %s', self, self.factory.url)


    def _validate_connection(self):

        if self.connection is None:
            self._validate_factory()
            connection = self.factory.create_connection()

            try:
                connection.start()
            except BaseException:
                _release(connection, 'connection')
                raise

            self.connection = connection
            logger.debug('%r: connection started', self)


    def _validate_session(self):

        if self.session is None:
            self._validate_connection()
            self.session = self.connection.create_session()
            logger.debug('%r: session created', self)


    def _validate_destination(self):

        if self.destination is None:
            self._validate_session()
            self.destination = naming.resolve_destination(self.config, self.context, self.session)
            logger.debug('%r: destination resolved to %r', self, self.destination)


    def _validate_producer(self):

        if self.producer is None:
            self._validate_destination()
            self.producer = self.session.create_producer(self.destination)
            logger.debug('%r: producer created', self)


    def _validate_consumer(self):

        if self.consumer is None:
            self._validate_destination()
            self.consumer = self.session.create_consumer(self.destination)
            logger.debug('%r: consumer created', self)


    def _send(self, message):

        with self.lock:
            self._validate_producer()
            self.producer.send(message)


    def consume(self, timeout=None):
        """ Receive the next message from the queue. With no *timeout* this
            call blocks until a message arrives. A *timeout* in seconds (or a
            :class:`datetime.timedelta`) bounds the wait; None is returned if
            it expires. A *timeout* of zero checks once without waiting.

            The returned message is a :class:`TextMessage` or
            :class:`MapMessage`.
        """

        if isinstance(timeout, datetime.timedelta):
            timeout = timeout.total_seconds()

        if timeout is not None:
            timeout = float(timeout)
            if timeout < 0:
                raise ValueError('timeout cannot be negative: ' + repr(timeout))

        with self.lock:
            self._validate_consumer()
            return self.consumer.receive(timeout)


    def consume_no_wait(self):
        """ Return the next message if one is immediately available, and None
            otherwise.
        """

        with self.lock:
            self._validate_consumer()
            return self.consumer.receive_no_wait()


    def send_text(self, text):
        """ Send *text* as a :class:`TextMessage`.
        """

        self._send(TextMessage(text))


    def start_map_message(self):
        """ Begin building a :class:`MapMessage`. Chain calls to the add
            methods of the returned builder, then finish with ``send()``::

                connector.start_map_message().add_string('name', 'luke').send()
        """

        return self.builder.start()


    def send_map_message(self):
        self.builder.send()


    def close(self):
        """ Release every established handle. A failure releasing one handle
            does not prevent the others from being released, and is not
            raised. Every handle is then reset, along with any map message
            in progress, so the next operation reconnects from scratch. This
            method is idempotent.
        """

        with self.lock:
            for name in _release_order:
                handle = getattr(self, name)
                if handle is not None:
                    _release(handle, name)

            self.context = None
            self.factory = None
            self.connection = None
            self.session = None
            self.destination = None
            self.producer = None
            self.consumer = None

            self.builder.discard()


# end of class Connector



def _release(handle, name):
    """ Close *handle*, logging and discarding any exception.
    """

    try:
        handle.close()
    except Exception:
        logger.debug('ignoring failure closing %s', name, exc_info=True)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
