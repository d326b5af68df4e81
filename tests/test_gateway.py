# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
import koji
import pytest
from mock import patch

from koji_gateway.errors import (
    Fault, Forbidden, NotFound, TaskNotFound, TransportError, ValidationError)
from koji_gateway.gateway import Gateway
from koji_gateway.native import NativeCall
from koji_gateway.operations import CATALOGUE
from koji_gateway.tasks import CANCELED, COMPLETED, FAILED, RUNNING

from tests import FakeHub, FakeLogin, make_config, make_gateway

SCM_URL = "git+https://src.fedoraproject.org/rpms/foo.git#7c2f3a1"


def task_info(state, task_id=12345):
    return {"id": task_id, "method": "build", "state": koji.TASK_STATES[state]}


class TestGateway:

    def setup_method(self, test_method):
        self.hub = FakeHub(
            build=12345,
            getTaskInfo=task_info("OPEN"),
            getTaskResult={"rpms": ["foo-1.0-1.fc33.x86_64.rpm"], "srpms": []},
        )
        self.login = FakeLogin()
        self.gateway = make_gateway(self.hub, self.login)

    def teardown_method(self, test_method):
        self.gateway.shutdown()

    def test_build_then_poll_until_completed(self):
        self.hub.set_result("getTaskInfo", task_info("OPEN"), task_info("CLOSED"))

        status, body = self.gateway.dispatch("build", {"package": SCM_URL, "target": "f33"})
        assert status == 202
        assert body == {"task_id": "12345"}
        assert self.hub.calls_to("build") == [NativeCall("build", [SCM_URL, "f33"])]

        status, body = self.gateway.task_status("12345")
        assert status == 200
        assert body == {"state": RUNNING, "result": None, "error": None}

        status, body = self.gateway.task_status("12345")
        assert body == {
            "state": COMPLETED,
            "result": {"rpms": ["foo-1.0-1.fc33.x86_64.rpm"], "srpms": []},
            "error": None,
        }
        assert len(self.hub.calls_to("build")) == 1

    def test_session_expiry_in_the_middle(self):
        def rejecting_first_session(call, session):
            if session.token["session-id"] == 1:
                return Fault(koji.AuthExpired.faultCode, "session expired")
            return task_info("OPEN")

        self.hub.set_result("getTaskInfo", rejecting_first_session)

        status, body = self.gateway.dispatch("build", {"package": SCM_URL, "target": "f33"})
        assert status == 202

        status, body = self.gateway.task_status(body["task_id"])
        assert status == 200
        assert body["state"] == RUNNING
        assert self.login.count == 2
        sessions = [session.token["session-id"] for call, session in self.hub.calls
                    if call.method == "getTaskInfo"]
        assert sessions == [1, 2]

    def test_invalid_request_never_reaches_the_hub(self):
        with pytest.raises(ValidationError):
            self.gateway.dispatch("build", {"package": SCM_URL})
        assert self.hub.calls == []
        assert self.login.count == 0

    def test_unknown_operation(self):
        with pytest.raises(NotFound):
            self.gateway.dispatch("delete-everything", {})

    def test_hub_fault(self):
        self.hub.set_result("build", Fault(koji.GenericError.faultCode, "No such build target: f99"))

        status, body = self.gateway.dispatch("build", {"package": SCM_URL, "target": "f99"})

        assert status == 422
        assert body == {"error": {"code": 1000, "message": "No such build target: f99"}}
        assert len(self.gateway.tracker) == 0

    def test_permission_fault(self):
        self.hub.set_result("tagBuild", Fault(koji.ActionNotAllowed.faultCode, "tag permission"))

        status, body = self.gateway.dispatch(
            "tag-build", {"tag": "f33-updates", "build": "foo-1.0-1.fc33"})

        assert status == 403
        assert body["error"]["code"] == koji.ActionNotAllowed.faultCode

    def test_task_id_must_be_an_integer(self):
        self.hub.set_result("build", "12345")
        with pytest.raises(TransportError):
            self.gateway.dispatch("build", {"package": SCM_URL, "target": "f33"})
        assert len(self.gateway.tracker) == 0

    def test_unknown_task(self):
        with pytest.raises(TaskNotFound):
            self.gateway.task_status("424242")

    def test_failed_task(self):
        self.hub.set_result("getTaskInfo", task_info("FAILED"))
        self.hub.set_result("getTaskResult", Fault(
            koji.BuildError.faultCode, "error building package (arch x86_64), mock exited"))
        self.gateway.dispatch("build", {"package": SCM_URL, "target": "f33"})

        status, body = self.gateway.task_status("12345")

        assert body == {
            "state": FAILED,
            "result": None,
            "error": "error building package (arch x86_64), mock exited",
        }

    def test_task_unknown_to_the_hub(self):
        self.hub.set_result("getTaskInfo", None)
        self.gateway.dispatch("build", {"package": SCM_URL, "target": "f33"})

        with pytest.raises(TaskNotFound):
            self.gateway.task_status("12345")

    def test_wait_for_task(self):
        self.hub.set_result("getTaskInfo", task_info("OPEN"), task_info("CLOSED"))
        self.gateway.dispatch("build", {"package": SCM_URL, "target": "f33"})

        status, body = self.gateway.task_status("12345", wait=2)

        assert body["state"] == COMPLETED

    def test_wait_is_capped(self):
        self.gateway.dispatch("build", {"package": SCM_URL, "target": "f33"})
        with patch.object(self.gateway.tracker, "wait") as wait:
            wait.return_value = self.gateway.tracker.current("12345")
            self.gateway.task_status("12345", wait=3600)
        wait.assert_called_once_with("12345", self.gateway.config.task_wait_max_timeout)

    def test_cancel(self):
        self.hub.set_result("cancelTask", None)
        self.hub.set_result("getTaskInfo", task_info("OPEN"), task_info("CANCELED"))
        self.gateway.dispatch("build", {"package": SCM_URL, "target": "f33"})
        self.gateway.task_status("12345")

        status, body = self.gateway.cancel("12345")

        assert status == 200
        assert body["state"] == CANCELED
        assert self.hub.calls_to("cancelTask") == [NativeCall("cancelTask", [12345])]
        assert self.hub.calls_to("getTaskResult") == []

    def test_cancel_unknown_task(self):
        with pytest.raises(TaskNotFound):
            self.gateway.cancel("424242")
        assert self.hub.calls == []

    def test_passthrough(self):
        self.hub.set_result("getTag", {"id": 10, "name": "f33", "arches": "x86_64 aarch64"})

        status, body = self.gateway.call("getTag", {"args": ["f33"]})

        assert status == 200
        assert body == {"result": {"id": 10, "name": "f33", "arches": "x86_64 aarch64"}}
        assert self.hub.calls_to("getTag") == [NativeCall("getTag", ["f33"])]

    def test_passthrough_without_body(self):
        self.hub.set_result("listTags", [])
        assert self.gateway.call("listTags", None) == (200, {"result": []})

    def test_passthrough_method_not_allowed(self):
        with pytest.raises(Forbidden):
            self.gateway.call("deleteBuild", {"args": ["foo-1.0-1.fc33"]})
        assert self.hub.calls == []

    def test_passthrough_args_not_a_list(self):
        with pytest.raises(ValidationError):
            self.gateway.call("getTag", {"args": "f33"})

    def test_buildinfo(self):
        self.hub.set_result("getBuild", {
            "id": 1657648, "nvr": "rpm-ostree-2020.10-1.fc34", "name": "rpm-ostree"})
        self.hub.set_result("listBuildRPMs", [
            {"name": "rpm-ostree", "version": "2020.10", "release": "1.fc34", "arch": "src"},
            {"name": "rpm-ostree", "version": "2020.10", "release": "1.fc34", "arch": "x86_64"},
            {"name": "rpm-ostree-libs", "version": "2020.10", "release": "1.fc34",
             "arch": "x86_64"},
        ])

        status, body = self.gateway.buildinfo("1657648")

        assert status == 200
        assert body == {"result": {
            "nvr": "rpm-ostree-2020.10-1.fc34",
            "id": 1657648,
            "kojipkgs-url-prefix":
                "https://kojipkgs.stg.fedoraproject.org/packages/rpm-ostree/2020.10/1.fc34",
            "rpms": {
                "src": ["rpm-ostree-2020.10-1.fc34.src.rpm"],
                "x86_64": [
                    "rpm-ostree-2020.10-1.fc34.x86_64.rpm",
                    "rpm-ostree-libs-2020.10-1.fc34.x86_64.rpm",
                ],
            },
        }}
        assert self.hub.calls_to("getBuild") == [NativeCall("getBuild", [1657648])]
        assert self.hub.calls_to("listBuildRPMs") == [NativeCall("listBuildRPMs", [1657648])]

    def test_buildinfo_by_nvr(self):
        self.hub.set_result("getBuild", None)

        with pytest.raises(NotFound):
            self.gateway.buildinfo("rpm-ostree-2020.10-1.fc34")
        assert self.hub.calls_to("getBuild") == [
            NativeCall("getBuild", ["rpm-ostree-2020.10-1.fc34"])]

    def test_buildinfo_invalid_id(self):
        with pytest.raises(ValidationError):
            self.gateway.buildinfo("../bar.rpm")
        assert self.hub.calls == []

    def test_hub_fault_while_polling(self):
        self.hub.set_result("getTaskInfo", Fault(koji.ServerOffline.faultCode, "hub offline"))
        self.gateway.dispatch("build", {"package": SCM_URL, "target": "f33"})

        status, body = self.gateway.task_status("12345")

        assert status == 503
        assert body == {"error": {"code": koji.ServerOffline.faultCode, "message": "hub offline"}}
        assert self.login.count == 1

    def test_unknown_task_state(self):
        self.hub.set_result("getTaskInfo", {"id": 12345, "state": 42})
        self.gateway.dispatch("build", {"package": SCM_URL, "target": "f33"})

        with pytest.raises(TransportError):
            self.gateway.task_status("12345")

    def test_custom_catalogue(self):
        gateway = Gateway(make_config(), self.hub, FakeLogin(),
                          operations={"build": CATALOGUE["build"]})
        try:
            assert gateway.dispatch("build", {"package": SCM_URL, "target": "f33"})[0] == 202
            with pytest.raises(NotFound):
                gateway.dispatch("tag-info", {"tag": "f33"})
        finally:
            gateway.shutdown()
