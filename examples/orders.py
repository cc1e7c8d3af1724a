""" An order-processing worker. Connection details come from the AMQPLINK_*
    environment variables; every 'created' order is acknowledged and
    announced again as 'accepted', everything else is left for another
    consumer.
"""

import logging
import signal

import amqplink


def main():

    logging.basicConfig(level=logging.INFO)

    config = amqplink.LinkConfig.from_environment(topic_prefix='orders')
    worker = amqplink.worker.create(config, 'orders-accept')

    def created(message):
        order = message.json()

        try:
            worker.publisher.send('accepted', {'id': order['id']})
        except amqplink.errors.LinkError:
            logging.exception('could not announce order %r', order.get('id'))
            return False

        return True

    worker.add_handler('created', created)

    signal.signal(signal.SIGTERM, lambda signum, frame: worker.stop())

    try:
        # The handler publishes on the consuming connection, which pika only
        # allows from the thread driving it.

        worker.run(sequential=True)
    except KeyboardInterrupt:
        pass
    finally:
        worker.close()


if __name__ == '__main__':
    main()

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
