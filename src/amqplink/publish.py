""" Publishing JSON-encoded messages through a :class:`amqplink.link.Link`.
"""

import logging

from . import errors
from . import json
from . import transport
from .message import OutboundMessage


logger = logging.getLogger(__name__)


class Publisher:
    """ Publish payloads on the channel owned by *link*. A dead connection
        is repaired, once, before each publish that needs it; there is no
        further retry.
    """

    def __init__(self, link):

        self.link = link
        self.config = link.config


    def publish(self, exchange, topic, payload):
        """ Encode *payload* as JSON and publish it to *exchange* with
            *topic* as the routing key, used exactly as given.

            Raises :class:`amqplink.errors.EncodeError` if the payload can't
            be encoded (nothing is sent),
            :class:`amqplink.errors.ReconnectError` if the link was down and
            could not be brought back, and
            :class:`amqplink.errors.PublishError` if the transport rejected
            the message.
        """

        try:
            body = json.dumps(payload)
        except json.encode_errors as exc:
            raise errors.EncodeError('error while encoding payload for %s: %s' % (topic, exc)) from exc

        message = OutboundMessage(
            exchange=exchange,
            routing_key=topic,
            body=body,
            content_type=self.config.content_type,
            mandatory=self.config.mandatory,
            immediate=self.config.immediate,
        )

        # Hold the lock across the publish so another thread can't swap
        # the channel out from under us.

        with self.link.lock:
            channel = self.link.repair()

            try:
                channel.publish(message)
            except transport.TransportError as exc:
                raise errors.PublishError(str(exc)) from exc

        logger.debug('published %d bytes to %r on %r', len(body), topic, exchange)


    def send(self, topic, payload):
        """ Publish *payload* to the configured exchange, with the short
            *topic* qualified by the configured topic prefix.
        """

        topic = self.config.qualify(topic)
        self.publish(self.config.exchange, topic, payload)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
