""" Class representations of the messages that pass through a link: the
    :class:`InboundMessage` handed to event handlers, and the
    :class:`OutboundMessage` assembled for every publish.
"""

import dataclasses
import threading

from . import json


class InboundMessage:
    """ A single delivery from the broker. The *routing_key* is the
        dot-delimited topic the message was published under, and *body* is
        the raw bytes of the message; decoding the body is the handler's
        responsibility, though :func:`json` is available as a convenience.

        A delivery can be settled exactly once, either with :func:`ack` or
        :func:`reject`. Transport implementations subclass this class and
        provide the :func:`_ack` and :func:`_reject` methods that talk to
        the broker.

        :ivar delivery_tag: The broker-assigned identifier for this delivery.
        :ivar settled: None until settled, then 'ack' or 'reject'.
    """

    def __init__(self, routing_key, body, delivery_tag=None, exchange='',
                 content_type=None, redelivered=False):

        self.routing_key = routing_key
        self.body = body
        self.delivery_tag = delivery_tag
        self.exchange = exchange
        self.content_type = content_type
        self.redelivered = redelivered
        self.settled = None

        self._settle_lock = threading.Lock()


    def __repr__(self):
        return '%s(%r, tag=%r)' % (type(self).__name__, self.routing_key, self.delivery_tag)


    def ack(self):
        """ Acknowledge this delivery, single message, no requeue. Calling
            this a second time (or after :func:`reject`) is an error.
        """

        self._settle('ack', self._ack)


    def reject(self, requeue=False):
        """ Negatively acknowledge this delivery. The broker will drop or
            dead-letter it unless *requeue* is True.
        """

        self._settle('reject', self._reject, requeue)


    def json(self):
        """ Decode the body as JSON.
        """

        return json.loads(self.body)


    def _settle(self, how, method, *args):
        """ Invoke the transport *method* and record the delivery as settled
            only if it succeeds, so a failed acknowledgment can be retried.
        """

        with self._settle_lock:
            if self.settled is not None:
                raise RuntimeError('delivery %r already settled (%s)' % (self.delivery_tag, self.settled))

            method(*args)
            self.settled = how


    def _ack(self):
        raise NotImplementedError('_ack() must be implemented by the transport')


    def _reject(self, requeue):
        raise NotImplementedError('_reject() must be implemented by the transport')



@dataclasses.dataclass(frozen=True)
class OutboundMessage:
    """ Everything the transport needs for a single publish. The
        *routing_key* is fully qualified by the time it gets here.
    """

    exchange: str
    routing_key: str
    body: bytes
    content_type: str
    mandatory: bool = False
    immediate: bool = False


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
