"""Transport interface.

This is the (small) contract that transport implementations should follow.
The connector only ever talks to these classes; it never imports pika or zmq.

Objects are created in a fixed order::

    ConnectionFactory -> Connection -> Session -> Queue
                                              \\-> Producer / Consumer
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from ..errors import (
    TransportError,
    TransportTimeout,
    TransportConnectionError,
)
from ..message import Message


__all__ = [
    "TransportError",
    "TransportTimeout",
    "TransportConnectionError",
    "Queue",
    "ConnectionFactory",
    "Connection",
    "Session",
    "Producer",
    "Consumer",
]


class Queue:
    """A point-to-point destination, identified by its physical name."""

    def __init__(self, name: str):
        self.name = name

    def __eq__(self, other) -> bool:
        if isinstance(other, Queue):
            return self.name == other.name
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.name)

    def __repr__(self) -> str:
        return f"Queue({self.name!r})"


class ConnectionFactory(ABC):
    """Creates connections to one broker address."""

    def __init__(self, url: str):
        self.url = url

    @abstractmethod
    def create_connection(self) -> "Connection":
        """Open a new connection. Raises TransportConnectionError."""


class Connection(ABC):

    @abstractmethod
    def start(self) -> None:
        """Begin delivery of incoming messages."""

    @abstractmethod
    def create_session(self) -> "Session":
        """Open a session on this connection."""

    @abstractmethod
    def close(self) -> None:
        """Tear down the connection and every session on it."""


class Session(ABC):

    @abstractmethod
    def create_queue(self, name: str) -> Queue:
        """Return a queue destination scoped to this session."""

    @abstractmethod
    def create_producer(self, destination: Queue) -> "Producer":
        """Create a producer sending to *destination*."""

    @abstractmethod
    def create_consumer(self, destination: Queue) -> "Consumer":
        """Create a consumer receiving from *destination*."""

    @abstractmethod
    def close(self) -> None:
        """Close the session."""


class Producer(ABC):

    def __init__(self, destination: Queue):
        self.destination = destination

    @abstractmethod
    def send(self, msg: Message) -> None:
        """Send one message to the producer's destination."""

    @abstractmethod
    def close(self) -> None:
        """Release the producer."""


class Consumer(ABC):

    def __init__(self, destination: Queue):
        self.destination = destination

    @abstractmethod
    def receive(self, timeout: Optional[float] = None) -> Optional[Message]:
        """Receive the next message.

        ``None`` waits forever; ``0`` returns immediately; any other value
        waits at most that many seconds. Returns None if nothing arrived.
        """

    def receive_no_wait(self) -> Optional[Message]:
        return self.receive(0)

    @abstractmethod
    def close(self) -> None:
        """Release the consumer."""
