""" A :class:`Worker` consumes messages from one queue and dispatches each of
    them to the handler registered for its event name, acknowledging the
    message when the handler reports success.

    Typical use::

        link = amqplink.Link(config)
        link.start()

        worker = amqplink.Worker(link, 'orders-service')
        worker.add_handler('created', on_created)
        worker.add_handler('deleted', on_deleted)
        worker.bind()
        worker.run()

    :func:`create` does the first four steps in one call.
"""

import concurrent.futures
import enum
import logging
import threading

from . import events
from . import transport
from .consume import Consumer
from .link import Link
from .publish import Publisher


logger = logging.getLogger(__name__)


class State(enum.Enum):
    CREATED = 'created'
    BOUND = 'bound'
    RUNNING = 'running'
    STOPPED = 'stopped'



class Worker:
    """ Consume from *queue* on *link* and dispatch by event name.

        *pattern* is the topic the queue is bound under; the default is
        every topic under the configured prefix. *extract* is the strategy
        that turns a routing key into an event name, :func:`events.last_part`
        unless otherwise specified.

        In concurrent mode at most *concurrency* messages are being handled
        at any one time; the worker stops drawing new deliveries until a
        slot frees up. Handlers must be safe to run in parallel with one
        another, and should enforce their own timeouts.

        With the pika transport a handler that publishes through
        :attr:`publisher` must run in sequential mode, since pika only allows
        the thread driving the connection to use it.

        Messages that no handler is registered for are logged and left
        unacknowledged, or rejected without requeue if *reject_unroutable*
        is True. *idle* is how often, in seconds, a waiting worker checks
        whether :func:`stop` has been called.

        :ivar publisher: A :class:`amqplink.publish.Publisher` sharing the
            same link, for handlers that need to emit follow-up messages.
    """

    def __init__(self, link, queue, pattern=None, extract=events.last_part,
                 concurrency=8, reject_unroutable=False, idle=1.0):

        if concurrency < 1:
            raise ValueError('concurrency must be at least 1, not ' + repr(concurrency))

        if pattern is None:
            pattern = link.config.qualify('#')

        self.link = link
        self.queue = queue
        self.pattern = pattern
        self.extract = extract
        self.concurrency = concurrency
        self.reject_unroutable = reject_unroutable
        self.idle = idle

        self.events = events.EventTable()
        self.consumer = Consumer(link)
        self.publisher = Publisher(link)
        self.state = State.CREATED

        self._messages = None
        self._channel = None
        self._stop = threading.Event()


    def add_handler(self, event, handler):
        """ Register *handler* for the *event* name. This must happen before
            :func:`run` is called; see :func:`events.EventTable.add` for
            the exceptions raised.
        """

        if self.state is State.RUNNING:
            raise RuntimeError('cannot add handlers to a running worker')

        self.events.add(event, handler)


    def bind(self):
        """ Declare and bind the queue, and open the delivery stream. Errors
            from :func:`amqplink.consume.Consumer.bind` are raised unchanged.
        """

        if self.state is State.RUNNING:
            raise RuntimeError('worker is already running')
        if self.state is State.BOUND:
            raise RuntimeError('worker is already bound')

        self._messages = self.consumer.bind(self.queue, self.pattern, inactivity_timeout=self.idle)
        self._channel = self.link.channel
        self._stop.clear()
        self.state = State.BOUND


    def close(self):
        """ Stop dispatching and close the underlying link.
        """

        self.stop()
        self.link.close()


    def dispatch(self, message):
        """ Hand *message* to the handler registered for its event name.
            Returns True if the handler succeeded, in which case the message
            has been acknowledged. A handler that raises an exception is
            treated as having failed.
        """

        event = self.extract(message.routing_key)
        handler = self.events.get(event)

        if handler is None:
            if self.reject_unroutable:
                logger.warning('no handler for %r (routing key %r), rejecting', event, message.routing_key)
                try:
                    message.reject(requeue=False)
                except transport.TransportError:
                    logger.exception('failed to reject %r', message)
            else:
                logger.warning('no handler for %r (routing key %r), dropping', event, message.routing_key)
            return False

        try:
            result = handler(message)
        except Exception:
            logger.exception('handler for %r raised an exception', event)
            return False

        if result:
            try:
                message.ack()
            except transport.TransportError:
                logger.exception('failed to acknowledge %r', message)
            return True

        logger.debug('handler for %r declined %r', event, message)
        return False


    def run(self, sequential=False):
        """ Draw deliveries and dispatch them until the delivery stream ends
            or :func:`stop` is called. If *sequential* is True each message
            is handled and acknowledged before the next one is drawn, which
            preserves delivery order; otherwise messages are handled in
            parallel, in no particular order.

            :func:`bind` has to be called before every :func:`run`.
        """

        if self.state is not State.BOUND:
            raise RuntimeError('worker must be bound before running, state is ' + self.state.value)

        messages = self._messages
        self._messages = None

        self.events.freeze()
        self.state = State.RUNNING

        if not sequential:
            pool = concurrent.futures.ThreadPoolExecutor(max_workers=self.concurrency)
            slots = threading.BoundedSemaphore(self.concurrency)
        else:
            pool = None
            slots = None

        def finished(future):
            slots.release()
            exception = future.exception()
            if exception is not None:
                logger.error('dispatch failed', exc_info=exception)

        logger.info('worker running on %r, %d handlers', self.queue, len(self.events))

        try:
            for message in messages:
                if self._stop.is_set():
                    break

                # The delivery stream yields None when it has been idle.

                if message is None:
                    continue

                if pool is None:
                    self.dispatch(message)
                else:
                    slots.acquire()
                    future = pool.submit(self.dispatch, message)
                    future.add_done_callback(finished)
        finally:
            if pool is not None:
                pool.shutdown(wait=True)

            # Acknowledgments made on pool threads may still be queued on
            # the transport; push them out before anyone closes the link.

            try:
                self._channel.flush()
            except transport.TransportError:
                logger.exception('failed to flush pending acknowledgments')

            self.state = State.STOPPED
            logger.info('worker on %r stopped', self.queue)


    def stop(self):
        """ Ask a running worker to return from :func:`run`. Handlers already
            in progress are allowed to finish.
        """

        self._stop.set()



def create(config, queue, pattern=None, dial=None, **kwargs):
    """ Return a connected, bound :class:`Worker`. The *config* is a
        :class:`amqplink.config.LinkConfig`; additional keyword arguments
        are passed to the :class:`Worker` constructor. Handlers still need
        to be registered before calling :func:`Worker.run`.
    """

    link = Link(config, dial=dial)
    link.start()

    worker = Worker(link, queue, pattern, **kwargs)

    try:
        worker.bind()
    except Exception:
        link.close()
        raise

    return worker


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
