# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
"""
Call translator: JSON request bodies to positional hub calls, and hub
results or faults back to JSON responses.
"""

import koji

from koji_gateway import log
from koji_gateway.errors import ValidationError, error_body
from koji_gateway.native import NativeCall, to_json, to_native

_MISSING = object()

# HTTP status per upstream fault class; anything else is 422
FAULT_STATUS = {
    koji.ParameterError.faultCode: 400,
    koji.ActionNotAllowed.faultCode: 403,
    koji.LockError.faultCode: 409,
    koji.FunctionDeprecated.faultCode: 410,
    koji.AuthError.faultCode: 502,
    koji.AuthLockError.faultCode: 502,
    koji.AuthExpired.faultCode: 502,
    koji.SequenceError.faultCode: 502,
    koji.RetryError.faultCode: 502,
    koji.ServerOffline.faultCode: 503,
}
DEFAULT_FAULT_STATUS = 422


def fault_status(fault):
    return FAULT_STATUS.get(fault.code, DEFAULT_FAULT_STATUS)


TYPE_NAMES = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    list: "list",
    dict: "object",
    type(None): "null",
}


class Binding(object):
    """
    Binds one JSON field to the next positional argument of a hub call.

    :param path: dotted path of the field in the request body, e.g.
        ``opts.scratch``
    :param required: reject requests without the field
    :param default: argument sent when the field is absent but a later
        argument is present
    :param types: accepted Python types of the decoded JSON value
    :param validator: callable raising ValidationError for bad values
    """

    def __init__(self, path, required=False, default=None, types=None, validator=None):
        self.path = path
        self.required = required
        self.default = default
        self.types = tuple(types) if types else None
        self.validator = validator

    def __repr__(self):
        return "<Binding %s%s>" % (self.path, "" if self.required else "?")

    def lookup(self, body):
        value = body
        for part in self.path.split("."):
            if not isinstance(value, dict) or part not in value:
                return _MISSING
            value = value[part]
        return value

    def check(self, value):
        if self.types is not None:
            # bool is an int subclass, but true is not a task priority
            ok = isinstance(value, self.types) and not (
                isinstance(value, bool) and bool not in self.types)
            if not ok:
                expected = " or ".join(TYPE_NAMES.get(t, t.__name__) for t in self.types)
                raise ValidationError("Field %s must be of type %s" % (self.path, expected))
        if self.validator is not None:
            self.validator(value)
        return to_native(value)


class GatewayOperation(object):
    """
    Static description of one externally exposed operation.

    :param name: operation name, also the HTTP route
    :param method: hub method called
    :param bindings: ordered list of Binding, one per positional argument
    :param triggering: the hub returns a task id to be tracked
    :param not_found_on_null: a None result means the object doesn't exist
    """

    def __init__(self, name, method, bindings=(), triggering=False, not_found_on_null=False,
                 description=""):
        self.name = name
        self.method = method
        self.bindings = tuple(bindings)
        self.triggering = triggering
        self.not_found_on_null = not_found_on_null
        self.description = description

    def __repr__(self):
        return "<GatewayOperation %s -> %s%s>" % (
            self.name, self.method, " (triggering)" if self.triggering else "")

    @property
    def route(self):
        return "/" + self.name


class CallTranslator(object):

    def to_native(self, operation, body):
        """
        Build the hub call for ``operation`` from a decoded JSON body.

        Nothing is sent anywhere; every field is checked first so a
        partially valid request never reaches the hub.
        """
        if body is None:
            body = {}
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object")

        args = []
        pending_defaults = []
        for binding in operation.bindings:
            value = binding.lookup(body)
            if value is _MISSING:
                if binding.required:
                    raise ValidationError("Missing required field %s" % binding.path)
                pending_defaults.append(binding.default)
                continue
            # an absent optional argument before a present one gets its default
            args.extend(pending_defaults)
            pending_defaults = []
            args.append(binding.check(value))

        return NativeCall(operation.method, args)

    def from_native(self, operation, value=None, fault=None):
        """
        Map the outcome of a hub call to ``(status, body)``.

        Triggering operations answer with the task id, which is always
        rendered as text.
        """
        if fault is not None:
            return self.fault_response(fault)

        if value is None and operation.not_found_on_null:
            return 404, error_body("not_found", "No such object for %s" % operation.name)

        if operation.triggering:
            return 202, {"task_id": str(value)}
        return 200, {"result": to_json(value)}

    def fault_response(self, fault):
        status = fault_status(fault)
        log.info("Hub fault %s mapped to HTTP %s: %s" % (fault.code, status, fault.message))
        return status, error_body(fault.code, fault.message)
