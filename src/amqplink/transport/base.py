"""Transport interface.

This is the (small) contract that broker protocol implementations should
follow. The connection, publish, and consume layers only ever talk to these
two classes, which keeps them independent of any particular AMQP library.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterator, Optional

from ..message import InboundMessage, OutboundMessage


class TransportError(Exception):
    """Base class for all transport-layer errors."""


class Channel(ABC):
    """One channel multiplexed over a :class:`Connection`."""

    @abstractmethod
    def queue_declare(
        self,
        queue: str,
        durable: bool = False,
        auto_delete: bool = False,
        exclusive: bool = False,
        arguments: Optional[dict] = None,
    ) -> None:
        """Declare *queue*, waiting for the broker to confirm."""

    @abstractmethod
    def queue_bind(self, queue: str, exchange: str, routing_key: str) -> None:
        """Bind *queue* to *exchange* under the *routing_key* pattern."""

    @abstractmethod
    def consume(
        self,
        queue: str,
        consumer_tag: str = "",
        inactivity_timeout: Optional[float] = None,
    ) -> Iterator[Optional[InboundMessage]]:
        """Register a manual-ack consumer on *queue*.

        Registration happens before this method returns; the returned
        iterator is lazy and ends when the channel is closed. If
        *inactivity_timeout* is set the iterator yields None every time that
        many seconds pass without a delivery.
        """

    @abstractmethod
    def publish(self, message: OutboundMessage) -> None:
        """Send one message."""

    def flush(self) -> None:
        """Push out any acknowledgments still queued for the broker.

        Called by the thread that consumed from this channel. Transports
        that settle deliveries synchronously have nothing to do.
        """

    @abstractmethod
    def close(self) -> None:
        """Close the channel."""

    @property
    def is_open(self) -> bool:
        return False


class Connection(ABC):
    """A dialed connection to the broker."""

    @abstractmethod
    def channel(self) -> Channel:
        """Open a new channel on this connection."""

    @abstractmethod
    def close(self) -> None:
        """Close the connection and any channels still open on it."""

    @property
    def is_open(self) -> bool:
        """Whether the broker connection is currently usable."""
        return False
