""" The :class:`Link` owns the one connection and channel used to talk to the
    broker. It is the only thing allowed to create, replace, or discard them,
    and the single place anyone asks whether they are safe to use.
"""

import logging
import threading

from . import errors
from . import transport


logger = logging.getLogger(__name__)


class Link:
    """ Connection manager for a single broker connection plus channel. The
        *config* is a :class:`amqplink.config.LinkConfig`; *dial* is the
        transport factory, a callable accepting the broker address and
        returning a :class:`amqplink.transport.Connection`. The default is
        the pika-backed RabbitMQ transport.

        The connection and channel are either both present or both absent.
        Every method that changes them holds :attr:`lock`, an
        :class:`threading.RLock` that callers also hold while they use the
        channel for a publish.
    """

    def __init__(self, config, dial=None):

        if dial is None:
            dial = transport.dial

        self.config = config
        self.dial = dial
        self.lock = threading.RLock()

        self._connection = None
        self._channel = None


    def __enter__(self):
        self.start()
        return self


    def __exit__(self, *exc_info):
        self.close()


    @property
    def channel(self):
        """ The live channel. Raises :class:`amqplink.errors.LinkError` if
            the link has not been started, or has since been closed.
        """

        channel = self._channel

        if channel is None:
            raise errors.LinkError('link is not started')

        return channel


    @property
    def usable(self):
        """ True if the transport reports the connection as open. A link
            that was never started, or has been closed, is not usable.
        """

        connection = self._connection

        if connection is None:
            return False

        return connection.is_open


    def start(self):
        """ Dial the broker and open a channel on the new connection.
            Raises :class:`amqplink.errors.ConnectError` if the dial fails,
            :class:`amqplink.errors.ChannelError` if the channel cannot be
            opened; in either case the link is left with neither.
        """

        with self.lock:
            if self._connection is not None:
                raise RuntimeError('link already started; close() it first')

            try:
                connection = self.dial(self.config.address)
            except transport.TransportError as exc:
                raise errors.ConnectError('error while dialing the broker: ' + str(exc)) from exc

            try:
                channel = connection.channel()
            except transport.TransportError as exc:
                # Don't leak the connection we just made; the channel
                # failure is the error worth reporting.
                try:
                    connection.close()
                except transport.TransportError:
                    logger.debug('closing connection after channel failure', exc_info=True)

                raise errors.ChannelError('error while creating a channel: ' + str(exc)) from exc

            self._connection = connection
            self._channel = channel

        logger.info('connected to broker, exchange %r', self.config.exchange)


    def close(self):
        """ Close the channel, then the connection. If closing the channel
            fails the exception is raised without attempting to close the
            connection. Either way the link is reset: after this method
            returns or raises, neither handle is retained.

            Closing a link that was never started does nothing.
        """

        with self.lock:
            try:
                if self._channel is not None:
                    self._channel.close()

                if self._connection is not None:
                    self._connection.close()
                    logger.info('closed broker connection')
            finally:
                self._clean()


    def repair(self):
        """ Make sure the link is usable, starting or restarting it if it is
            not, and return the live channel. At most one connection attempt
            is made. Any failure is raised as
            :class:`amqplink.errors.ReconnectError`.
        """

        with self.lock:
            if self.usable:
                return self._channel

            try:
                if self._connection is None:
                    self.start()
                else:
                    logger.warning('broker connection is closed, reconnecting')
                    self._restart()
            except (errors.ConnectError, errors.ChannelError) as exc:
                raise errors.ReconnectError('error while reconnecting to the broker: ' + str(exc), exc) from exc

            return self._channel


    def _clean(self):
        """ Drop the connection and channel handles.
        """

        self._channel = None
        self._connection = None


    def _restart(self):
        """ Discard the current (dead) handles and start again. The old
            handles are not closed; by the time this is called the transport
            has already reported the connection as gone.
        """

        with self.lock:
            self._clean()
            self.start()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
