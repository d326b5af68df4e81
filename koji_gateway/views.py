# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" The gateway's public JSON API.

Every catalogue operation is served as ``POST /<operation>``; tasks the
operations start are served under ``/tasks/<task_id>``.
"""

import json
import math

from flask import request, jsonify
from flask.views import MethodView

from koji_gateway import app, gateway, log
from koji_gateway.errors import ValidationError


def get_json_body():
    data = request.get_data()
    if not data or not data.strip():
        return {}
    try:
        return json.loads(data.decode("utf-8"))
    except ValueError:
        log.error("Invalid JSON submitted")
        raise ValidationError("Invalid JSON submitted")


def get_wait_arg():
    wait = request.args.get("wait", None)
    if wait is None:
        return None
    try:
        wait = float(wait)
    except ValueError:
        raise ValidationError("The wait parameter must be a number of seconds")
    if not math.isfinite(wait):
        raise ValidationError("The wait parameter must be a finite number of seconds")
    if wait < 0:
        raise ValidationError("The wait parameter must not be negative")
    return wait


def respond(result):
    status, body = result
    return jsonify(body), status


class OperationAPI(MethodView):

    def post(self, operation):
        return respond(gateway.dispatch(operation, get_json_body()))


class PassthroughAPI(MethodView):

    def post(self, method):
        return respond(gateway.call(method, get_json_body()))


class TaskAPI(MethodView):

    def get(self, task_id):
        return respond(gateway.task_status(task_id, wait=get_wait_arg()))


class TaskCancelAPI(MethodView):

    def post(self, task_id):
        return respond(gateway.cancel(task_id))


class BuildInfoAPI(MethodView):

    def get(self, buildid):
        return respond(gateway.buildinfo(buildid))


def register_api():
    """ Registers the gateway API. """
    operation_view = OperationAPI.as_view("operations")
    for operation in gateway.operations.values():
        app.add_url_rule(operation.route, view_func=operation_view, methods=["POST"],
                         defaults={"operation": operation.name},
                         endpoint="operation_%s" % operation.name)
    app.add_url_rule("/call/<method>", view_func=PassthroughAPI.as_view("passthrough"),
                     methods=["POST"])
    app.add_url_rule("/tasks/<task_id>", view_func=TaskAPI.as_view("tasks"),
                     methods=["GET"])
    app.add_url_rule("/tasks/<task_id>/cancel", view_func=TaskCancelAPI.as_view("task_cancel"),
                     methods=["POST"])
    app.add_url_rule("/buildinfo/<buildid>", view_func=BuildInfoAPI.as_view("buildinfo"),
                     methods=["GET"])


register_api()
