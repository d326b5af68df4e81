# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
"""
The gateway facade.

Composes translator, session manager, transport and task tracker into
the operations served over HTTP. It is the only place that knows which
hub calls start a task (answered with a task id to poll) and which ones
return data right away.
"""

import koji

from koji_gateway import log
from koji_gateway.buildinfo import build_info, validate_buildid
from koji_gateway.errors import Fault, Forbidden, NotFound, TaskNotFound, TransportError, \
    ValidationError
from koji_gateway.native import NativeCall, to_json, to_native
from koji_gateway.operations import CATALOGUE, get_operation
from koji_gateway.session import KojiLogin, SessionManager
from koji_gateway.tasks import CANCELED, COMPLETED, FAILED, PENDING, RUNNING, TaskSnapshot, \
    TaskTracker
from koji_gateway.translator import CallTranslator
from koji_gateway.transport import KojiTransport

KOJI_TASK_STATES = {
    koji.TASK_STATES["FREE"]: PENDING,
    koji.TASK_STATES["ASSIGNED"]: PENDING,
    koji.TASK_STATES["OPEN"]: RUNNING,
    koji.TASK_STATES["CLOSED"]: COMPLETED,
    koji.TASK_STATES["FAILED"]: FAILED,
    koji.TASK_STATES["CANCELED"]: CANCELED,
}


class Gateway(object):
    """
    :param config: koji_gateway.config.Config instance
    :param transport: object with ``invoke(call, session)``, usually a
        KojiTransport
    :param acquire: credential acquisition callable for the SessionManager
    :param operations: operation catalogue, name -> GatewayOperation
    """

    def __init__(self, config, transport, acquire, operations=None):
        self.config = config
        self.transport = transport
        self.operations = operations if operations is not None else CATALOGUE
        self.translator = CallTranslator()
        self.sessions = SessionManager(
            acquire,
            invalid_codes=config.session_invalid_fault_codes,
            auth_timeout=config.auth_timeout,
        )
        self.tracker = TaskTracker(
            self.poll_task,
            cache_ttl=config.task_cache_ttl,
            terminal_ttl=config.task_terminal_ttl,
            retention=config.task_retention,
            idle_retention=config.task_idle_retention,
            wait_initial_interval=config.task_wait_initial_interval,
            wait_backoff_factor=config.task_wait_backoff_factor,
            wait_max_interval=config.task_wait_max_interval,
            workers=config.poll_workers,
        )

    @classmethod
    def from_config(cls, config):
        """
        Gateway talking to the hub of the configured Koji profile. The
        profile is read lazily, on the first hub call.
        """
        return cls(config, LazyKojiTransport(config), KojiLogin(config))

    def __repr__(self):
        return "<Gateway %r>" % self.transport

    def invoke(self, call):
        """ Perform one hub call with a valid session. """
        return self.sessions.with_session(lambda session: self.transport.invoke(call, session))

    def dispatch(self, name, body):
        """
        Run the catalogue operation ``name`` with the decoded JSON ``body``.

        :return: ``(status, body)`` tuple
        """
        operation = get_operation(name, self.operations)

        call = self.translator.to_native(operation, body)
        try:
            value = self.invoke(call)
        except Fault as fault:
            return self.translator.from_native(operation, fault=fault)

        if operation.triggering:
            if isinstance(value, bool) or not isinstance(value, int):
                raise TransportError("Hub returned %r instead of a task id for %s" % (
                    value, call.method))
            self.tracker.register(value)
            log.info("%s started task %s" % (operation.name, value))
        return self.translator.from_native(operation, value)

    def call(self, method, body):
        """
        Generic passthrough of a positional call, for methods on the
        configured allowlist only.
        """
        if method not in self.config.passthrough_methods:
            raise Forbidden("Method %s is not allowed through the gateway" % method)
        if body is None:
            body = {}
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object")
        args = body.get("args", [])
        if not isinstance(args, list):
            raise ValidationError("Field args must be of type list")

        call = NativeCall(method, to_native(args))
        try:
            value = self.invoke(call)
        except Fault as fault:
            return self.translator.fault_response(fault)
        return 200, {"result": to_json(value)}

    def poll_task(self, native_id):
        """
        Query the hub for the state of a task; used by the tracker.

        Finished tasks also fetch their result, failed ones the fault
        that failed them.
        """
        info = self.invoke(NativeCall("getTaskInfo", [native_id]))
        if info is None:
            raise TaskNotFound("Task %s is unknown to the hub" % native_id)

        try:
            state = KOJI_TASK_STATES[info["state"]]
        except KeyError:
            raise TransportError("Hub reported unknown state %r for task %s" % (
                info.get("state"), native_id))
        result = error = None
        if state == COMPLETED:
            result = to_json(self.invoke(NativeCall("getTaskResult", [native_id])))
        elif state == FAILED:
            try:
                self.invoke(NativeCall("getTaskResult", [native_id]))
            except Fault as fault:
                error = fault.message
            else:
                error = "Task %s failed" % native_id
        return TaskSnapshot(str(native_id), state, result, error)

    def task_status(self, task_id, wait=None):
        """
        :param wait: seconds to wait for the task to finish, None for a
            plain status query
        """
        try:
            if wait is None:
                snapshot = self.tracker.poll(task_id)
            else:
                wait = min(wait, self.config.task_wait_max_timeout)
                snapshot = self.tracker.wait(task_id, wait)
        except Fault as fault:
            return self.translator.fault_response(fault)
        return 200, snapshot.json()

    def cancel(self, task_id):
        handle = self.tracker.get(task_id)
        try:
            self.invoke(NativeCall("cancelTask", [handle.native_id]))
            log.info("Canceled task %s" % task_id)
            snapshot = self.tracker.poll(task_id, max_age=0)
        except Fault as fault:
            return self.translator.fault_response(fault)
        return 200, snapshot.json()

    def buildinfo(self, buildid):
        """
        Build NVR, id, kojipkgs location and RPM file names per arch.
        """
        validate_buildid(buildid)
        build_ref = int(buildid) if buildid.isdigit() else buildid
        try:
            build = self.invoke(NativeCall("getBuild", [build_ref]))
            if build is None:
                raise NotFound("No such build: %s" % buildid)
            rpms = self.invoke(NativeCall("listBuildRPMs", [build["id"]]))
        except Fault as fault:
            return self.translator.fault_response(fault)
        return 200, {"result": to_json(build_info(build, rpms, self.config.kojipkgs_url))}

    def shutdown(self):
        self.tracker.shutdown()
        self.sessions.shutdown()


class LazyKojiTransport(object):
    """ KojiTransport built from the Koji profile on first use. """

    def __init__(self, config):
        self.config = config
        self._transport = None

    def __repr__(self):
        return "<LazyKojiTransport profile: %r>" % self.config.koji_profile

    def invoke(self, call, credential=None):
        if self._transport is None:
            self._transport = KojiTransport.from_config(self.config)
        return self._transport.invoke(call, credential)
