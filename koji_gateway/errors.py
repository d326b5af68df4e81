# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" Defines custom exceptions and error handling functions """

from flask import jsonify


class GatewayError(Exception):
    """ Base class for errors raised by the gateway itself """

    code = "gateway_error"


class ValidationError(GatewayError, ValueError):
    code = "validation_error"


class Forbidden(GatewayError, ValueError):
    code = "forbidden"


class NotFound(GatewayError, ValueError):
    code = "not_found"


class TaskNotFound(NotFound):
    code = "task_not_found"


class Conflict(GatewayError, ValueError):
    code = "conflict"


class AuthError(GatewayError, RuntimeError):
    """ Acquiring or refreshing the hub session failed """

    code = "auth_error"


class TransportError(GatewayError, RuntimeError):
    """
    Connection level failure talking to the hub.

    ``retryable`` is True only when the request never reached the hub, so
    repeating it cannot duplicate its effect.
    """

    code = "transport_error"

    def __init__(self, message, retryable=False):
        super(TransportError, self).__init__(message)
        self.retryable = retryable


class GatewayTimeout(GatewayError, RuntimeError):
    code = "timeout"


class Fault(Exception):
    """ Application error reported by the hub instead of a value """

    def __init__(self, code, message):
        super(Fault, self).__init__(code, message)
        self.code = code
        self.message = message

    def __str__(self):
        return "Fault %s: %s" % (self.code, self.message)

    @classmethod
    def from_koji(cls, exc):
        """
        Build a Fault from what koji.ClientSession raised.

        :param exc: a koji.GenericError subclass converted from the XML-RPC
            fault, or a raw xmlrpc.client.Fault for codes koji doesn't know.
        """
        if hasattr(exc, "faultString"):
            return cls(exc.faultCode, exc.faultString)
        return cls(getattr(exc, "faultCode", 1000), str(exc))


def error_body(code, message):
    return {"error": {"code": code, "message": message}}


def json_error(status, code, message):
    response = jsonify(error_body(code, message))
    response.status_code = status
    return response
