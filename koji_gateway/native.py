# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
"""
Values of the hub's native call protocol.

Koji speaks XML-RPC, so a native value is one of: int, float, str, bool,
None, list, dict with str keys, binary (``xmlrpc.client.Binary`` or bytes)
and ``xmlrpc.client.DateTime``. Values are trees; a structure containing
itself is rejected on both directions of the conversion.
"""

import base64
import datetime
from collections import namedtuple
from xmlrpc.client import Binary, DateTime

from koji_gateway.errors import TransportError, ValidationError


class NativeCall(namedtuple("NativeCall", ["method", "args"])):
    """ One positional call of a hub method. """

    __slots__ = ()

    def __new__(cls, method, args=()):
        return super(NativeCall, cls).__new__(cls, method, tuple(args))

    def __repr__(self):
        return "<NativeCall %s%r>" % (self.method, self.args)


def _walk(value, convert, path, seen, error):
    if isinstance(value, (list, tuple, dict)):
        if id(value) in seen:
            raise error("Cyclic structure at %s" % (path or "<root>"))
        seen = seen | {id(value)}

    if isinstance(value, dict):
        result = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise error("Mapping key %r at %s is not text" % (key, path or "<root>"))
            result[key] = _walk(item, convert, "%s.%s" % (path, key) if path else key, seen, error)
        return result
    if isinstance(value, (list, tuple)):
        return [_walk(item, convert, "%s[%d]" % (path, i), seen, error)
                for i, item in enumerate(value)]
    return convert(value, path)


def _scalar_to_json(value, path):
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Binary):
        return base64.b64encode(value.data).decode("ascii")
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, DateTime):
        return datetime.datetime.strptime(value.value, "%Y%m%dT%H:%M:%S").isoformat()
    if isinstance(value, datetime.datetime):
        return value.isoformat()
    raise TransportError("Unsupported native value %r at %s" % (value, path or "<root>"))


def _scalar_to_native(value, path):
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    raise ValidationError("Unsupported JSON value %r at %s" % (value, path or "<root>"))


def to_json(value):
    """
    Convert a value returned by the hub into something json.dumps accepts.

    Binary blobs become base64 text, timestamps ISO-8601 text.
    """
    return _walk(value, _scalar_to_json, "", frozenset(), TransportError)


def to_native(value):
    """
    Check a decoded JSON value can be sent to the hub and return a copy
    with tuples turned into lists.
    """
    return _walk(value, _scalar_to_native, "", frozenset(), ValidationError)
