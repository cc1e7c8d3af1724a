import amqplink
import pytest
import threading
import time

from amqplink import errors
from amqplink import events
from amqplink.transport import TransportError
from amqplink.worker import State

from unitbroker import FakeMessage


def test_default_pattern(link):

    worker = amqplink.Worker(link, 'orders-service')
    assert worker.pattern == 'orders.#'
    assert worker.state is State.CREATED


def test_end_to_end(link, broker):

    worker = amqplink.Worker(link, 'orders-service')
    worker.add_handler('created', lambda message: True)
    worker.bind()
    assert worker.state is State.BOUND
    assert broker.bound == [('orders-service', 'events', 'orders.#')]

    created = broker.deliver('orders.created')
    unknown = broker.deliver('orders.unknown')
    broker.hangup()

    worker.run(sequential=True)
    assert worker.state is State.STOPPED

    assert created.acks == 1
    assert unknown.acks == 0
    assert unknown.rejects == []


def test_handler_failure(link, broker):

    seen = list()

    def declined(message):
        seen.append(message)
        return False

    worker = amqplink.Worker(link, 'orders-service')
    worker.add_handler('created', declined)
    worker.bind()

    message = broker.deliver('orders.created')
    broker.hangup()
    worker.run()

    assert seen == [message]
    assert message.acks == 0


def test_handler_exception(link, broker):

    def broken(message):
        raise ValueError('bad body')

    worker = amqplink.Worker(link, 'orders-service')
    worker.add_handler('created', broken)

    message = broker.deliver('orders.created')
    assert worker.dispatch(message) == False
    assert message.acks == 0


def test_dispatch_result(link, broker):

    worker = amqplink.Worker(link, 'orders-service')
    worker.add_handler('created', lambda message: True)

    message = broker.deliver('orders.created')
    assert worker.dispatch(message) == True
    assert message.acks == 1


def test_handler_object(link, broker):

    class Counter:
        def __init__(self):
            self.count = 0

        def handle(self, message):
            self.count += 1
            return True

    counter = Counter()
    worker = amqplink.Worker(link, 'orders-service')
    worker.add_handler('deleted', counter)
    worker.bind()

    message = broker.deliver('orders.item.deleted')
    broker.hangup()
    worker.run(sequential=True)

    assert counter.count == 1
    assert message.acks == 1


def test_reject_unroutable(link, broker):

    worker = amqplink.Worker(link, 'orders-service', reject_unroutable=True)
    worker.add_handler('created', lambda message: True)
    worker.bind()

    message = broker.deliver('orders.unknown')
    broker.hangup()
    worker.run(sequential=True)

    assert message.acks == 0
    assert message.rejects == [False]


def test_reject_failure(link, broker):
    """ A reject the transport refuses is logged; the worker keeps going
        and handles the deliveries behind it.
    """

    class Unreachable(FakeMessage):
        def _reject(self, requeue):
            raise TransportError('channel gone')

    worker = amqplink.Worker(link, 'orders-service', reject_unroutable=True)
    worker.add_handler('created', lambda message: True)
    worker.bind()

    unknown = Unreachable('orders.unknown', b'{}', delivery_tag=1)
    broker.inbox.put(unknown)
    created = broker.deliver('orders.created')
    broker.hangup()

    worker.run(sequential=True)

    assert worker.state is State.STOPPED
    assert unknown.settled is None
    assert created.acks == 1


def test_flush_after_run(link, broker):

    worker = amqplink.Worker(link, 'orders-service')
    worker.add_handler('created', lambda message: True)
    worker.bind()

    broker.deliver('orders.created')
    broker.hangup()
    worker.run()

    assert link.channel.flushes == 1


def test_bind_twice(link, broker):

    worker = amqplink.Worker(link, 'orders-service')
    worker.bind()

    with pytest.raises(RuntimeError):
        worker.bind()

    assert len(broker.consumers) == 1
    assert worker.state is State.BOUND


def test_extraction_strategy(link, broker):

    worker = amqplink.Worker(link, 'orders-service', extract=events.first_part)
    worker.add_handler('orders', lambda message: True)
    worker.bind()

    first = broker.deliver('orders.created')
    second = broker.deliver('orders.deleted')
    other = broker.deliver('billing.created')
    broker.hangup()
    worker.run(sequential=True)

    assert first.acks == 1
    assert second.acks == 1
    assert other.acks == 0


def test_duplicate_handler(link):

    def first(message):
        return True

    worker = amqplink.Worker(link, 'orders-service')
    worker.add_handler('created', first)

    with pytest.raises(errors.DuplicateEventError):
        worker.add_handler('created', lambda message: False)

    assert worker.events.get('created') is first


def test_sequential_order(link, broker):

    order = list()

    def record(message):
        order.append(message.delivery_tag)
        return True

    worker = amqplink.Worker(link, 'orders-service')
    worker.add_handler('created', record)
    worker.bind()

    sent = [broker.deliver('orders.created') for i in range(10)]
    broker.hangup()
    worker.run(sequential=True)

    assert order == [message.delivery_tag for message in sent]


def test_concurrent(link, broker):

    worker = amqplink.Worker(link, 'orders-service', concurrency=4)
    worker.add_handler('created', lambda message: True)
    worker.bind()

    sent = [broker.deliver('orders.created') for i in range(50)]
    broker.hangup()
    worker.run()

    # run() waits for in-flight handlers before returning.

    for message in sent:
        assert message.acks == 1


def test_concurrency_ceiling(link, broker):

    lock = threading.Lock()
    active = [0]
    peak = [0]

    def slow(message):
        with lock:
            active[0] += 1
            peak[0] = max(peak[0], active[0])

        time.sleep(0.01)

        with lock:
            active[0] -= 1

        return True

    worker = amqplink.Worker(link, 'orders-service', concurrency=3)
    worker.add_handler('created', slow)
    worker.bind()

    sent = [broker.deliver('orders.created') for i in range(20)]
    broker.hangup()
    worker.run()

    assert peak[0] <= 3
    assert all(message.acks == 1 for message in sent)


def test_invalid_concurrency(link):

    with pytest.raises(ValueError):
        amqplink.Worker(link, 'orders-service', concurrency=0)


def test_run_requires_bind(link, broker):

    worker = amqplink.Worker(link, 'orders-service')

    with pytest.raises(RuntimeError):
        worker.run()

    worker.bind()
    broker.hangup()
    worker.run()
    assert worker.state is State.STOPPED

    # A stopped worker needs a fresh bind before it can run again.

    with pytest.raises(RuntimeError):
        worker.run()


def test_rebind(link, broker):

    worker = amqplink.Worker(link, 'orders-service')
    worker.add_handler('created', lambda message: True)
    worker.bind()
    broker.hangup()
    worker.run()

    worker.bind()
    assert worker.state is State.BOUND

    message = broker.deliver('orders.created')
    broker.hangup()
    worker.run()
    assert message.acks == 1


def test_no_late_registration(link, broker):

    worker = amqplink.Worker(link, 'orders-service')
    worker.add_handler('created', lambda message: True)
    worker.bind()
    broker.hangup()
    worker.run()

    with pytest.raises(RuntimeError):
        worker.add_handler('deleted', lambda message: True)


def test_stop(link, broker):

    worker = amqplink.Worker(link, 'orders-service', idle=0.01)
    worker.add_handler('created', lambda message: True)
    worker.bind()

    message = broker.deliver('orders.created')

    thread = threading.Thread(target=worker.run)
    thread.start()

    begin = time.time()
    while message.acks == 0 and time.time() - begin < 5:
        time.sleep(0.01)

    worker.stop()
    thread.join(5)

    assert thread.is_alive() == False
    assert worker.state is State.STOPPED
    assert message.acks == 1


def test_publisher_shares_link(link, broker):

    worker = amqplink.Worker(link, 'orders-service')
    assert worker.publisher.link is link

    worker.publisher.send('shipped', {'id': 44})
    assert broker.published[0].routing_key == 'orders.shipped'


def test_create(config, broker):

    worker = amqplink.worker.create(config, 'orders-service', dial=broker.dial)
    assert worker.state is State.BOUND
    assert worker.link.usable == True
    assert broker.bound == [('orders-service', 'events', 'orders.#')]

    worker.close()
    assert worker.link.usable == False


def test_create_bind_failure(config, broker):

    broker.fail.add('bind')

    with pytest.raises(errors.BindError):
        amqplink.worker.create(config, 'orders-service', dial=broker.dial)

    assert broker.connection.closes == 1


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
