"""RabbitMQ transport backed by pika's blocking adapter."""

from __future__ import annotations

import collections
import logging
import threading
from typing import Deque, Iterator, Optional

import pika
import pika.exceptions

from ..message import InboundMessage, OutboundMessage
from .base import Channel, Connection, TransportError


logger = logging.getLogger(__name__)

_errors = (pika.exceptions.AMQPError, OSError)
_stream_closed = (
    pika.exceptions.AMQPConnectionError,
    pika.exceptions.ChannelClosed,
)


def _broker_params(address: str) -> pika.URLParameters:
    parameters = pika.URLParameters(address)

    # Give up on a broker that blocks this connection for five minutes,
    # unless the URL asks for something else.
    if parameters.blocked_connection_timeout is None:
        parameters.blocked_connection_timeout = 300

    return parameters


def dial(address: str) -> RabbitConnection:
    """Open a blocking connection to the broker at *address*."""

    try:
        parameters = _broker_params(address)
        connection = pika.BlockingConnection(parameters)
    except ValueError as exc:
        raise TransportError(f"invalid AMQP URL: {exc}") from exc
    except _errors as exc:
        raise TransportError(f"cannot reach AMQP broker: {exc!r}") from exc

    return RabbitConnection(connection)


class Delivery(InboundMessage):
    """An inbound message received on a :class:`RabbitChannel`."""

    def __init__(self, channel: RabbitChannel, method, properties, body: bytes):
        super().__init__(
            method.routing_key,
            body,
            delivery_tag=method.delivery_tag,
            exchange=method.exchange,
            content_type=properties.content_type,
            redelivered=method.redelivered,
        )
        self._channel = channel

    def _ack(self) -> None:
        self._channel._threadsafe(
            self._channel.pika_channel.basic_ack,
            delivery_tag=self.delivery_tag,
            multiple=False,
        )

    def _reject(self, requeue: bool) -> None:
        self._channel._threadsafe(
            self._channel.pika_channel.basic_reject,
            delivery_tag=self.delivery_tag,
            requeue=requeue,
        )


class RabbitChannel(Channel):
    """Channel wrapper translating pika failures into TransportError."""

    def __init__(self, connection: RabbitConnection, pika_channel):
        self.connection = connection
        self.pika_channel = pika_channel

        # pika is not thread safe; the thread driving the delivery stream
        # owns the channel, anyone else has to go through
        # add_callback_threadsafe().
        self._owner = threading.get_ident()

    @property
    def is_open(self) -> bool:
        return self.pika_channel.is_open

    def queue_declare(self, queue, durable=False, auto_delete=False,
                      exclusive=False, arguments=None) -> None:
        try:
            self.pika_channel.queue_declare(
                queue=queue,
                durable=durable,
                auto_delete=auto_delete,
                exclusive=exclusive,
                arguments=arguments,
            )
        except _errors as exc:
            raise TransportError(f"queue_declare {queue!r}: {exc!r}") from exc

    def queue_bind(self, queue: str, exchange: str, routing_key: str) -> None:
        try:
            self.pika_channel.queue_bind(
                queue=queue,
                exchange=exchange,
                routing_key=routing_key,
            )
        except _errors as exc:
            raise TransportError(
                f"queue_bind {queue!r} to {exchange!r} as {routing_key!r}: {exc!r}"
            ) from exc

    def consume(self, queue, consumer_tag="", inactivity_timeout=None):
        inbox: Deque[Delivery] = collections.deque()

        def on_message(_ch, method, properties, body: bytes) -> None:
            inbox.append(Delivery(self, method, properties, body))

        try:
            self.pika_channel.basic_consume(
                queue=queue,
                on_message_callback=on_message,
                auto_ack=False,
                exclusive=False,
                consumer_tag=consumer_tag or None,
            )
        except _errors as exc:
            raise TransportError(f"basic_consume {queue!r}: {exc!r}") from exc

        return self._deliveries(inbox, inactivity_timeout)

    def _deliveries(
        self, inbox: Deque[Delivery], inactivity_timeout: Optional[float]
    ) -> Iterator[Optional[Delivery]]:
        self._owner = threading.get_ident()
        pika_connection = self.connection.pika_connection

        while True:
            while inbox:
                yield inbox.popleft()

            if not self.pika_channel.is_open:
                break

            try:
                pika_connection.process_data_events(time_limit=inactivity_timeout)
            except _stream_closed as exc:
                logger.info("delivery stream closed: %r", exc)
                break

            if not inbox and inactivity_timeout is not None:
                yield None

        if inbox:
            logger.warning(
                "discarding %d unhandled deliveries on a closed channel", len(inbox)
            )

    def publish(self, message: OutboundMessage) -> None:
        if message.immediate:
            raise TransportError("RabbitMQ does not support the immediate flag")

        properties = pika.BasicProperties(content_type=message.content_type)

        try:
            self.pika_channel.basic_publish(
                exchange=message.exchange,
                routing_key=message.routing_key,
                body=message.body,
                properties=properties,
                mandatory=message.mandatory,
            )
        except _errors as exc:
            raise TransportError(
                f"basic_publish to {message.routing_key!r}: {exc!r}"
            ) from exc

    def flush(self) -> None:
        # Only the owning thread may drive the connection; the callbacks
        # queued by add_callback_threadsafe() run inside this call.
        if threading.get_ident() != self._owner:
            return

        pika_connection = self.connection.pika_connection
        if not pika_connection.is_open:
            return

        try:
            pika_connection.process_data_events(time_limit=0)
        except _errors as exc:
            raise TransportError(f"flush: {exc!r}") from exc

    def close(self) -> None:
        if not self.pika_channel.is_open:
            return

        try:
            self.pika_channel.close()
        except _errors as exc:
            raise TransportError(f"channel close: {exc!r}") from exc

    def _threadsafe(self, method, **kwargs) -> None:
        """Invoke a channel method from whichever thread settles a delivery."""

        if threading.get_ident() == self._owner:
            try:
                method(**kwargs)
            except _errors as exc:
                raise TransportError(f"{method.__name__}: {exc!r}") from exc
            return

        def callback():
            # Runs on the owning thread inside process_data_events(); a
            # failure here must not tear down the delivery stream.
            try:
                method(**kwargs)
            except _errors:
                logger.exception("%s failed for %r", method.__name__, kwargs)

        try:
            self.connection.pika_connection.add_callback_threadsafe(callback)
        except _errors as exc:
            raise TransportError(f"{method.__name__}: {exc!r}") from exc


class RabbitConnection(Connection):
    """Connection wrapper around :class:`pika.BlockingConnection`."""

    def __init__(self, pika_connection: pika.BlockingConnection):
        self.pika_connection = pika_connection

    @property
    def is_open(self) -> bool:
        return self.pika_connection.is_open

    def channel(self) -> RabbitChannel:
        try:
            pika_channel = self.pika_connection.channel()
        except _errors as exc:
            raise TransportError(f"cannot open channel: {exc!r}") from exc

        return RabbitChannel(self, pika_channel)

    def close(self) -> None:
        if self.pika_connection.is_closed:
            return

        try:
            self.pika_connection.close()
        except _errors as exc:
            raise TransportError(f"connection close: {exc!r}") from exc
