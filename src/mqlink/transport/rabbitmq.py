"""RabbitMQ point-to-point transport.

A session is one channel on a blocking connection. Queues are published to
through the default exchange, so the routing key is the queue name.
"""

from __future__ import annotations

import collections
import logging
import os
import time
import urllib.parse
from typing import Deque, Optional, Tuple

import pika
import pika.exceptions

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
)


logger = logging.getLogger(__name__)

_HEARTBEAT = int(os.environ.get("MQLINK_AMQP_HEARTBEAT", "600"))
_BLOCKED_TIMEOUT = int(os.environ.get("MQLINK_AMQP_BLOCKED_TIMEOUT", "300"))

_PERSISTENT = 2


def _broker_params(url: str) -> pika.URLParameters:
    params = pika.URLParameters(url)

    # Values given in the URL query string take precedence.
    query = urllib.parse.parse_qs(urllib.parse.urlsplit(url).query)
    if "heartbeat" not in query:
        params.heartbeat = _HEARTBEAT
    if "blocked_connection_timeout" not in query:
        params.blocked_connection_timeout = _BLOCKED_TIMEOUT

    return params


class RabbitConnectionFactory(ConnectionFactory):

    def create_connection(self) -> "RabbitConnection":
        try:
            params = _broker_params(self.url)
        except (ValueError, TypeError) as exc:
            raise TransportConnectionError(f"invalid AMQP URL {self.url!r}: {exc}") from exc

        try:
            blocking = pika.BlockingConnection(params)
        except pika.exceptions.AMQPError as exc:
            raise TransportConnectionError(
                f"cannot connect to AMQP broker at {self.url!r}: {exc!r}"
            ) from exc

        logger.info("connected to AMQP broker at %s:%s", params.host, params.port)
        return RabbitConnection(blocking)


class RabbitConnection(Connection):

    def __init__(self, blocking: pika.BlockingConnection):
        self._connection = blocking
        self.started = False

    def start(self) -> None:
        # Consumers receive as soon as they are created; there is nothing to
        # switch on, but the flag is kept for symmetry with other transports.
        self.started = True

    def create_session(self) -> "RabbitSession":
        try:
            channel = self._connection.channel()
        except pika.exceptions.AMQPError as exc:
            raise TransportError(f"cannot open channel: {exc!r}") from exc
        return RabbitSession(self._connection, channel)

    def close(self) -> None:
        if self._connection.is_open:
            self._connection.close()
            logger.info("AMQP connection closed")


class RabbitSession(Session):

    def __init__(self, blocking: pika.BlockingConnection, channel):
        self._connection = blocking
        self._channel = channel
        self._declared = set()

    def _declare(self, name: str) -> None:
        # Queues found through the naming directory arrive here without
        # having been declared on this channel.
        if name in self._declared:
            return
        try:
            self._channel.queue_declare(queue=name, durable=True)
        except pika.exceptions.AMQPError as exc:
            raise TransportError(f"cannot declare queue {name!r}: {exc!r}") from exc
        self._declared.add(name)

    def create_queue(self, name: str) -> Queue:
        self._declare(name)
        return Queue(name)

    def create_producer(self, destination: Queue) -> "RabbitProducer":
        self._declare(destination.name)
        return RabbitProducer(self._channel, destination)

    def create_consumer(self, destination: Queue) -> "RabbitConsumer":
        self._declare(destination.name)
        return RabbitConsumer(self._connection, self._channel, destination)

    def close(self) -> None:
        if self._channel.is_open:
            self._channel.close()


class RabbitProducer(Producer):

    def __init__(self, channel, destination: Queue):
        Producer.__init__(self, destination)
        self._channel = channel
        self._closed = False

    def send(self, msg: Message) -> None:
        if self._closed:
            raise TransportError("producer is closed")

        msg.stamp(self.destination.name)
        properties = pika.BasicProperties(
            content_type="application/json",
            type=msg.kind,
            message_id=msg.message_id,
            timestamp=int(msg.timestamp),
            delivery_mode=_PERSISTENT,
        )

        try:
            self._channel.basic_publish(
                exchange="",
                routing_key=self.destination.name,
                body=msg.encapsulate(),
                properties=properties,
            )
        except pika.exceptions.AMQPError as exc:
            raise TransportError(
                f"send to {self.destination.name!r} failed: {exc!r}"
            ) from exc

    def close(self) -> None:
        self._closed = True


class RabbitConsumer(Consumer):
    """Receive from a queue, one unacknowledged message at a time.

    Each message is acknowledged as it is handed to the caller; anything
    delivered but not yet received is returned to the queue when the channel
    closes.
    """

    def __init__(self, blocking: pika.BlockingConnection, channel, destination: Queue):
        Consumer.__init__(self, destination)
        self._connection = blocking
        self._channel = channel
        self._inbox: Deque[Tuple[int, bytes]] = collections.deque()

        try:
            self._channel.basic_qos(prefetch_count=1)
            self._tag = self._channel.basic_consume(
                queue=destination.name,
                on_message_callback=self._on_message,
            )
        except pika.exceptions.AMQPError as exc:
            raise TransportError(
                f"cannot consume from {destination.name!r}: {exc!r}"
            ) from exc

    def _on_message(self, _ch, method, _properties, body: bytes) -> None:
        self._inbox.append((method.delivery_tag, body))

    def _wait(self, timeout: Optional[float]) -> None:
        """Process broker I/O until a message is buffered or the timeout
        expires. The connection blocks in select(); it does not spin."""

        if timeout is None:
            while not self._inbox:
                self._connection.process_data_events(time_limit=None)
            return

        deadline = time.monotonic() + timeout
        self._connection.process_data_events(time_limit=0)

        while not self._inbox:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            self._connection.process_data_events(time_limit=remaining)

    def receive(self, timeout: Optional[float] = None) -> Optional[Message]:
        try:
            if not self._inbox:
                self._wait(timeout)

            if not self._inbox:
                return None

            delivery_tag, body = self._inbox.popleft()

            try:
                msg = decode(body)
            except ValueError as exc:
                self._channel.basic_nack(delivery_tag=delivery_tag, requeue=False)
                raise TransportError(
                    f"discarded undecodable message from {self.destination.name!r}: {exc}"
                ) from exc

            self._channel.basic_ack(delivery_tag=delivery_tag)
        except pika.exceptions.AMQPError as exc:
            raise TransportError(
                f"receive from {self.destination.name!r} failed: {exc!r}"
            ) from exc

        return msg

    def close(self) -> None:
        if self._channel.is_open:
            self._channel.basic_cancel(self._tag)
