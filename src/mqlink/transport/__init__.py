"""Transport layer implementations, selected by broker URL scheme."""

import threading
import urllib.parse

from ..errors import ConfigResolutionError
from .base import (
    TransportError,
    TransportTimeout,
    TransportConnectionError,
    Queue,
    ConnectionFactory,
    Connection,
    Session,
    Producer,
    Consumer,
)

# Scheme -> "module:ClassName". Built-in backends are imported on first use
# so that pika is not required to use the zmq transport, and vice versa.

_BUILTIN = {
    "amqp": "rabbitmq",
    "amqps": "rabbitmq",
    "tcp": "zmq",
    "ipc": "zmq",
    "inproc": "zmq",
}

_registry = {}
_registry_lock = threading.Lock()


def register(scheme, factory_class):
    """Use *factory_class* (a ConnectionFactory subclass) for broker URLs
    with the given *scheme*. Replaces any existing registration."""

    with _registry_lock:
        _registry[scheme.lower()] = factory_class


def unregister(scheme):
    with _registry_lock:
        _registry.pop(scheme.lower(), None)


def scheme(url):
    parsed = urllib.parse.urlsplit(url)
    if parsed.scheme == "":
        raise ConfigResolutionError(f"broker URL has no scheme: {url!r}")
    return parsed.scheme.lower()


def factory_class(url):
    found = scheme(url)

    with _registry_lock:
        try:
            return _registry[found]
        except KeyError:
            pass

    try:
        backend = _BUILTIN[found]
    except KeyError:
        raise ConfigResolutionError(
            f"no transport registered for scheme {found!r} ({url!r})"
        ) from None

    if backend == "rabbitmq":
        from .rabbitmq import RabbitConnectionFactory as cls
    else:
        from .zmq import ZmqConnectionFactory as cls

    return cls


def connection_factory(url):
    """Return a ConnectionFactory for the broker at *url*."""

    return factory_class(url)(url)
