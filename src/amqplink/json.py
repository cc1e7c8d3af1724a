''' Wrapper module to select the most performant available library to handle
    the equivalent of :func:`json.loads` and :func:`json.dumps`.
'''

# msgspec is optional; orjson is a hard requirement of this package and is
# used whenever msgspec is not installed.

msgspec = None

try:
    import msgspec
except ImportError:
    pass

import orjson


# Both the msgspec 'encode' operation and orjson.dumps return bytes, which
# is what goes out on the wire as a message body.

if msgspec is not None:
    encoder = msgspec.json.Encoder()
    decoder = msgspec.json.Decoder()
    dumps = encoder.encode
    loads = decoder.decode

    # msgspec raises TypeError for unsupported types, and its own
    # EncodeError for values it recognizes but cannot represent.

    encode_errors = (TypeError, ValueError, msgspec.EncodeError)
    decode_errors = (msgspec.DecodeError,)
else:
    dumps = orjson.dumps
    loads = orjson.loads
    encode_errors = (TypeError, ValueError)
    decode_errors = (orjson.JSONDecodeError,)

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
