""" The event table maps event names to handlers. Event names are pulled out
    of the routing key of each inbound message by an extraction strategy;
    :func:`last_part` is the common case, where a routing key such as
    'orders.created' is handled by whatever is registered for 'created'.

    A handler is either a plain callable accepting an
    :class:`amqplink.message.InboundMessage` and returning True on success,
    or any object with a :func:`handle` method of the same signature.
"""

import threading

from . import errors


def last_part(routing_key):
    """ 'orders.item.created' -> 'created'; a key without dots is returned
        unchanged.
    """

    return routing_key.rsplit('.', 1)[-1]


def first_part(routing_key):
    """ 'orders.item.created' -> 'orders'
    """

    return routing_key.split('.', 1)[0]


def full_key(routing_key):
    return routing_key



class EventTable:
    """ Registry of handlers keyed by event name. Registration happens during
        setup; once :func:`freeze` is called (the worker does so when it
        starts dispatching) the table is read-only and safe to share across
        dispatch threads without further locking.
    """

    def __init__(self):

        self._handlers = dict()
        self._lock = threading.Lock()
        self.frozen = False


    def __contains__(self, event):
        return event in self._handlers


    def __iter__(self):
        return iter(self._handlers)


    def __len__(self):
        return len(self._handlers)


    def add(self, event, handler):
        """ Register *handler* for *event*. Raises
            :class:`amqplink.errors.DuplicateEventError` if a handler is
            already registered for that name; the existing handler stays in
            place.
        """

        try:
            handler = handler.handle
        except AttributeError:
            pass

        if not callable(handler):
            raise TypeError('handler for %r is not callable: %r' % (event, handler))

        with self._lock:
            if self.frozen:
                raise RuntimeError('cannot add handler for %r, the event table is frozen' % (event,))

            if event in self._handlers:
                raise errors.DuplicateEventError('the event %r already exists' % (event,))

            self._handlers[event] = handler


    def freeze(self):
        """ Disallow any further registration.
        """

        with self._lock:
            self.frozen = True


    def get(self, event):
        """ Return the handler registered for *event*, or None.
        """

        return self._handlers.get(event)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
