import json
import amqplink
import pytest


def test_json_encode_and_decode():
    encode_and_decode(json.dumps, json.loads, dump_is_bytes=False)


def test_amqplink_encode_and_decode():
    encode_and_decode(amqplink.json.dumps, amqplink.json.loads)


def test_unencodable():

    with pytest.raises(amqplink.json.encode_errors):
        amqplink.json.dumps(object())


def test_undecodable():

    with pytest.raises(amqplink.json.decode_errors):
        amqplink.json.loads(b'{not json')


def encode_and_decode(dumps, loads, dump_is_bytes=True):

    input_dictionary = dict()
    input_dictionary['list'] = [1, 2, 3, 'a', 'b', None, 'c', 'z']
    input_dictionary['dict'] = {'one': 1, 'two': 2}
    input_dictionary['none'] = None
    input_dictionary['true'] = True
    input_dictionary['false'] = False
    input_dictionary['float'] = 35.5

    encoded = dumps(input_dictionary)

    if dump_is_bytes:
        assert isinstance(encoded, bytes)
    else:
        assert isinstance(encoded, str)

    # Don't compare the encoded JSON against a pre-set notion of what it
    # should look like; msgspec and orjson differ from the standard library
    # in their handling of whitespace.

    decoded = loads(encoded)
    assert isinstance(decoded, dict)
    assert decoded == input_dictionary


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
