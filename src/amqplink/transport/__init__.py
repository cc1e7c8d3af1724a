"""Transport layer implementations."""

from .base import (
    Channel,
    Connection,
    TransportError,
)

from . import rabbitmq

dial = rabbitmq.dial
