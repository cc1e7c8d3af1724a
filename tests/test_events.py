import amqplink
import pytest

from amqplink import errors
from amqplink import events


def test_last_part():

    assert events.last_part('a.b.created') == 'created'
    assert events.last_part('orders.created') == 'created'
    assert events.last_part('deleted') == 'deleted'
    assert events.last_part('orders.') == ''


def test_other_strategies():

    assert events.first_part('a.b.created') == 'a'
    assert events.first_part('deleted') == 'deleted'
    assert events.full_key('a.b.created') == 'a.b.created'


def test_add():

    def created(message):
        return True

    table = events.EventTable()
    table.add('created', created)

    assert 'created' in table
    assert len(table) == 1
    assert list(table) == ['created']
    assert table.get('created') is created
    assert table.get('deleted') is None


def test_duplicate():

    def first(message):
        return True

    def second(message):
        return False

    table = events.EventTable()
    table.add('created', first)

    with pytest.raises(errors.DuplicateEventError):
        table.add('created', second)

    assert table.get('created') is first


def test_handler_object():

    class Handler:
        def handle(self, message):
            return True

    handler = Handler()
    table = events.EventTable()
    table.add('created', handler)

    assert table.get('created') == handler.handle


def test_not_callable():

    table = events.EventTable()

    with pytest.raises(TypeError):
        table.add('created', 'not a handler')

    assert len(table) == 0


def test_frozen():

    table = events.EventTable()
    table.add('created', lambda message: True)
    table.freeze()

    with pytest.raises(RuntimeError):
        table.add('deleted', lambda message: True)

    assert 'deleted' not in table


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
