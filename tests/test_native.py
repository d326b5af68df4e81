# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
from xmlrpc.client import Binary, DateTime

import pytest

from koji_gateway.errors import TransportError, ValidationError
from koji_gateway.native import NativeCall, to_json, to_native


class TestNativeCall:

    def test_args_are_a_tuple(self):
        call = NativeCall("getBuild", ["foo-1.0-1.fc33"])
        assert call.method == "getBuild"
        assert call.args == ("foo-1.0-1.fc33",)

    def test_no_args(self):
        assert NativeCall("getAPIVersion").args == ()


class TestToJson:

    def test_nested_values(self):
        value = {
            "id": 1657648,
            "nvr": "rpm-ostree-2020.10-1.fc34",
            "extra": None,
            "volume": {"name": "DEFAULT", "id": 0},
            "tags": ["f34", "f34-updates"],
            "size": 12.5,
            "draft": False,
        }
        assert to_json(value) == value

    def test_binary_is_base64(self):
        assert to_json({"data": Binary(b"koji")}) == {"data": "a29qaQ=="}
        assert to_json(b"koji") == "a29qaQ=="

    def test_datetime_is_iso(self):
        assert to_json(DateTime("20201015T12:30:00")) == "2020-10-15T12:30:00"

    def test_tuples_become_lists(self):
        assert to_json(("a", ("b",))) == ["a", ["b"]]

    def test_non_text_key(self):
        with pytest.raises(TransportError):
            to_json({1: "one"})

    def test_cycle(self):
        value = {"a": []}
        value["a"].append(value)
        with pytest.raises(TransportError) as exc:
            to_json(value)
        assert "Cyclic" in str(exc.value)

    def test_shared_subtree_is_not_a_cycle(self):
        shared = {"arch": "x86_64"}
        assert to_json([shared, shared]) == [shared, shared]


class TestToNative:

    def test_plain_json(self):
        assert to_native({"scratch": True, "arches": ["x86_64"]}) == \
            {"scratch": True, "arches": ["x86_64"]}

    def test_unsupported_value(self):
        with pytest.raises(ValidationError):
            to_native({"when": object()})
