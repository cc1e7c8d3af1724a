""" Queue setup for consumers: declare, bind, and open a delivery stream.
"""

import logging

from . import errors
from . import transport


logger = logging.getLogger(__name__)


class Consumer:
    """ Set up deliveries on the channel owned by *link*. This is setup-phase
        machinery; nothing here is retried, the caller decides what to do
        about a failure.
    """

    def __init__(self, link):

        self.link = link
        self.config = link.config


    def bind(self, queue, pattern, consumer_tag='', inactivity_timeout=None):
        """ Declare *queue* (non-durable, not auto-deleted, not exclusive),
            bind it to the configured exchange under the *pattern* topic,
            and begin consuming from it with manual acknowledgment.

            The steps happen in that order and the first failure stops the
            sequence, raising :class:`amqplink.errors.DeclareError`,
            :class:`amqplink.errors.BindError`, or
            :class:`amqplink.errors.ConsumeError` respectively. A consume
            failure leaves the queue declared and bound; calling
            :func:`bind` again is safe.

            Returns an iterator of :class:`amqplink.message.InboundMessage`
            instances that ends when the channel is closed. If
            *inactivity_timeout* is set the iterator also yields None after
            every idle period of that many seconds.
        """

        channel = self.link.channel
        exchange = self.config.exchange

        try:
            channel.queue_declare(queue, durable=False, auto_delete=False, exclusive=False, arguments=None)
        except transport.TransportError as exc:
            raise errors.DeclareError(str(exc)) from exc

        try:
            channel.queue_bind(queue, exchange, pattern)
        except transport.TransportError as exc:
            raise errors.BindError(str(exc)) from exc

        try:
            messages = channel.consume(queue, consumer_tag, inactivity_timeout)
        except transport.TransportError as exc:
            raise errors.ConsumeError(str(exc)) from exc

        logger.info('consuming %r bound to %r as %r', queue, exchange, pattern)
        return messages


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
