"""ZeroMQ point-to-point transport.

There is no broker: the broker URL is a ZeroMQ endpoint. Consumers bind a
PULL socket to it, producers connect a PUSH socket to it. A producer may
connect before any consumer has bound; messages are held on the producer
side until one does.

Frames on the wire:
    queue_name, message_bytes

One endpoint is expected to carry one queue; a consumer discards frames
addressed to any other queue name.
"""

from __future__ import annotations

import logging
import time
from typing import List, Optional

import zmq

from ..message import Message, decode
from .base import (
    Connection,
    ConnectionFactory,
    Consumer,
    Producer,
    Queue,
    Session,
    TransportConnectionError,
    TransportError,
    TransportTimeout,
)


logger = logging.getLogger(__name__)

zmq_context = zmq.Context()

# Milliseconds. A send blocks at most this long when the outgoing pipe is
# full; unsent messages are held this long after a producer closes.
send_timeout = 10000
linger = 1000

_SCHEMES = ("tcp://", "ipc://", "inproc://")


class ZmqConnectionFactory(ConnectionFactory):

    def create_connection(self) -> "ZmqConnection":
        if not self.url.startswith(_SCHEMES):
            raise TransportConnectionError(f"not a ZeroMQ endpoint: {self.url!r}")
        return ZmqConnection(self.url)


class ZmqConnection(Connection):

    def __init__(self, endpoint: str):
        self.endpoint = endpoint
        self.started = False
        self._sessions: List["ZmqSession"] = []

    def start(self) -> None:
        self.started = True

    def create_session(self) -> "ZmqSession":
        session = ZmqSession(self.endpoint)
        self._sessions.append(session)
        return session

    def close(self) -> None:
        sessions = self._sessions
        self._sessions = []
        for session in sessions:
            session.close()


class ZmqSession(Session):

    def __init__(self, endpoint: str):
        self.endpoint = endpoint
        self._sockets: List[zmq.Socket] = []

    def create_queue(self, name: str) -> Queue:
        return Queue(name)

    def _socket(self, kind: int) -> zmq.Socket:
        socket = zmq_context.socket(kind)
        self._sockets.append(socket)
        return socket

    def create_producer(self, destination: Queue) -> "ZmqProducer":
        socket = self._socket(zmq.PUSH)
        socket.setsockopt(zmq.LINGER, linger)
        socket.setsockopt(zmq.SNDTIMEO, send_timeout)

        try:
            socket.connect(self.endpoint)
        except zmq.ZMQError as exc:
            raise TransportConnectionError(
                f"cannot connect to {self.endpoint!r}: {exc}"
            ) from exc

        return ZmqProducer(socket, destination)

    def create_consumer(self, destination: Queue) -> "ZmqConsumer":
        socket = self._socket(zmq.PULL)
        socket.setsockopt(zmq.LINGER, 0)

        try:
            socket.bind(self.endpoint)
        except zmq.ZMQError as exc:
            raise TransportConnectionError(
                f"cannot bind {self.endpoint!r}: {exc}"
            ) from exc

        return ZmqConsumer(socket, destination)

    def close(self) -> None:
        sockets = self._sockets
        self._sockets = []
        for socket in sockets:
            socket.close()


class ZmqProducer(Producer):

    def __init__(self, socket: zmq.Socket, destination: Queue):
        Producer.__init__(self, destination)
        self.socket = socket

    def send(self, msg: Message) -> None:
        msg.stamp(self.destination.name)
        frames = (self.destination.name.encode(), msg.encapsulate())

        try:
            self.socket.send_multipart(frames)
        except zmq.Again as exc:
            raise TransportTimeout(
                f"send to {self.destination.name!r}: no room after {send_timeout} ms"
            ) from exc
        except zmq.ZMQError as exc:
            raise TransportError(
                f"send to {self.destination.name!r} failed: {exc}"
            ) from exc

    def close(self) -> None:
        self.socket.close()


class ZmqConsumer(Consumer):

    def __init__(self, socket: zmq.Socket, destination: Queue):
        Consumer.__init__(self, destination)
        self.socket = socket
        self._name = destination.name.encode()

    def receive(self, timeout: Optional[float] = None) -> Optional[Message]:
        deadline = None if timeout is None else time.monotonic() + timeout

        while True:
            if deadline is None:
                wait = None
            else:
                wait = max(0, int((deadline - time.monotonic()) * 1000))

            try:
                if not self.socket.poll(wait, zmq.POLLIN):
                    return None
                parts = self.socket.recv_multipart(flags=zmq.NOBLOCK)
            except zmq.Again:
                continue
            except zmq.ZMQError as exc:
                raise TransportError(
                    f"receive from {self.destination.name!r} failed: {exc}"
                ) from exc

            if len(parts) != 2 or parts[0] != self._name:
                # Past the deadline the poll wait is zero, so frames already
                # queued are still drained before giving up.
                logger.debug("discarding frames not addressed to %r", self.destination.name)
                continue

            try:
                return decode(parts[1])
            except ValueError as exc:
                raise TransportError(
                    f"discarded undecodable message from {self.destination.name!r}: {exc}"
                ) from exc

    def close(self) -> None:
        self.socket.close()
