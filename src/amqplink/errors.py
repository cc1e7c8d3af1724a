"""Exceptions raised by the connection, publish, consume, and worker layers.

Transport implementations raise :class:`amqplink.transport.TransportError`;
the layers above translate those failures into the classes defined here,
chaining the original exception as the cause.
"""


class LinkError(Exception):
    """Base class for all amqplink errors."""


class ConnectError(LinkError):
    """Dialing the broker failed."""


class ChannelError(LinkError):
    """A channel could not be opened on an established connection."""


class DeclareError(LinkError):
    """The broker rejected a queue declaration."""


class BindError(LinkError):
    """The broker rejected a queue binding."""


class ConsumeError(LinkError):
    """The broker refused to open a delivery stream."""


class EncodeError(LinkError):
    """A payload could not be serialized; nothing was sent."""


class ReconnectError(LinkError):
    """The implicit reconnect before a publish failed.

    The underlying :class:`ConnectError` or :class:`ChannelError` is kept
    as :attr:`cause` in addition to being chained.
    """

    def __init__(self, message, cause=None):
        super().__init__(message)
        self.cause = cause


class PublishError(LinkError):
    """The transport rejected a publish on a usable link."""


class DuplicateEventError(LinkError):
    """A handler is already registered for the event name."""


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
