# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
"""A JSON gateway for the Koji build system.

The gateway sits in front of a Koji hub and is responsible for:

- Translating JSON requests into the hub's positional XML-RPC calls and
  the answers and faults back into JSON.
- Logging in to the hub and keeping that session valid, so clients never
  deal with session keys.
- Tracking tasks started through the gateway (builds, tagging, repo
  regeneration) and serving their state to any number of pollers without
  multiplying the load on the hub.
"""

from importlib import metadata
from logging import getLogger

from flask import Flask

from koji_gateway.errors import (
    ValidationError, Forbidden, NotFound, Conflict, AuthError, TransportError,
    GatewayTimeout, Fault, json_error)
from koji_gateway.config import init_config
from koji_gateway.logger import init_logging, level_flags

try:
    version = metadata.version("koji-gateway")
except metadata.PackageNotFoundError:
    version = "unknown"

app = Flask(__name__)
conf = init_config(app)

init_logging(conf)
log = getLogger(__name__)


def create_app(debug=False, verbose=False, quiet=False):
    # logging (intended for manage.py)
    if debug:
        log.setLevel(level_flags["debug"])
    elif verbose:
        log.setLevel(level_flags["verbose"])
    elif quiet:
        log.setLevel(level_flags["quiet"])

    return app


@app.errorhandler(ValidationError)
def validationerror_error(e):
    """Flask error handler for ValidationError exceptions"""
    return json_error(400, e.code, str(e))


@app.errorhandler(Forbidden)
def forbidden_error(e):
    """Flask error handler for Forbidden exceptions"""
    return json_error(403, e.code, str(e))


@app.errorhandler(NotFound)
def notfound_error(e):
    """Flask error handler for NotFound and TaskNotFound exceptions"""
    return json_error(404, e.code, str(e))


@app.errorhandler(Conflict)
def conflict_error(e):
    """Flask error handler for Conflict exceptions"""
    return json_error(409, e.code, str(e))


@app.errorhandler(AuthError)
def autherror_error(e):
    """Flask error handler for AuthError exceptions"""
    return json_error(502, e.code, str(e))


@app.errorhandler(TransportError)
def transporterror_error(e):
    """Flask error handler for TransportError exceptions"""
    return json_error(503 if e.retryable else 502, e.code, str(e))


@app.errorhandler(GatewayTimeout)
def gatewaytimeout_error(e):
    """Flask error handler for GatewayTimeout exceptions"""
    return json_error(504, e.code, str(e))


@app.errorhandler(RuntimeError)
def runtimeerror_error(e):
    """Flask error handler for RuntimeError exceptions"""
    log.exception("RuntimeError exception raised")
    return json_error(500, "internal_error", str(e))


from koji_gateway.gateway import Gateway  # noqa: E402
from koji_gateway.translator import fault_status  # noqa: E402


@app.errorhandler(Fault)
def fault_error(e):
    """Flask error handler for hub faults not answered by the gateway"""
    return json_error(fault_status(e), e.code, e.message)


gateway = Gateway.from_config(conf)


def load_views():
    from koji_gateway import views

    assert views


load_views()
