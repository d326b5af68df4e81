# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
"""
The catalogue of operations exposed over HTTP.

Each entry binds request fields to the positional arguments of one hub
method. The catalogue is built once at import time and never changes.
"""

from koji_gateway.errors import NotFound, ValidationError
from koji_gateway.translator import Binding, GatewayOperation


def non_empty(value):
    if isinstance(value, str) and not value.strip():
        raise ValidationError("Empty string is not allowed")


def non_empty_list(value):
    if not value:
        raise ValidationError("At least one item is required")


NAME_OR_ID = (str, int)

OPERATIONS = (
    GatewayOperation(
        "build", "build", triggering=True,
        description="Build a package from an SCM URL or an uploaded SRPM",
        bindings=[
            Binding("package", required=True, types=[str], validator=non_empty),
            Binding("target", required=True, types=[str], validator=non_empty),
            Binding("opts", types=[dict]),
            Binding("priority", types=[int]),
        ]),
    GatewayOperation(
        "chain-build", "chainBuild", triggering=True,
        description="Build groups of sources in order",
        bindings=[
            Binding("sources", required=True, types=[list], validator=non_empty_list),
            Binding("target", required=True, types=[str], validator=non_empty),
            Binding("opts", types=[dict]),
            Binding("priority", types=[int]),
        ]),
    GatewayOperation(
        "tag-build", "tagBuild", triggering=True,
        description="Tag a build",
        bindings=[
            Binding("tag", required=True, types=NAME_OR_ID, validator=non_empty),
            Binding("build", required=True, types=NAME_OR_ID, validator=non_empty),
            Binding("force", default=False, types=[bool]),
        ]),
    GatewayOperation(
        "untag-build", "untagBuild",
        description="Remove a build from a tag",
        bindings=[
            Binding("tag", required=True, types=NAME_OR_ID, validator=non_empty),
            Binding("build", required=True, types=NAME_OR_ID, validator=non_empty),
            Binding("strict", default=True, types=[bool]),
            Binding("force", default=False, types=[bool]),
        ]),
    GatewayOperation(
        "newrepo", "newRepo", triggering=True,
        description="Regenerate the repository of a tag",
        bindings=[
            Binding("tag", required=True, types=NAME_OR_ID, validator=non_empty),
        ]),
    GatewayOperation(
        "build-info", "getBuild", not_found_on_null=True,
        description="Build metadata by NVR or id",
        bindings=[
            Binding("build", required=True, types=NAME_OR_ID, validator=non_empty),
        ]),
    GatewayOperation(
        "package-info", "getPackage", not_found_on_null=True,
        description="Package metadata by name or id",
        bindings=[
            Binding("package", required=True, types=NAME_OR_ID, validator=non_empty),
        ]),
    GatewayOperation(
        "tag-info", "getTag", not_found_on_null=True,
        description="Tag metadata by name or id",
        bindings=[
            Binding("tag", required=True, types=NAME_OR_ID, validator=non_empty),
            Binding("strict", default=False, types=[bool]),
            Binding("event", types=[int]),
        ]),
    GatewayOperation(
        "build-target", "getBuildTarget", not_found_on_null=True,
        description="Build target by name or id",
        bindings=[
            Binding("target", required=True, types=NAME_OR_ID, validator=non_empty),
        ]),
    GatewayOperation(
        "latest-builds", "getLatestBuilds",
        description="Latest builds in a tag",
        bindings=[
            Binding("tag", required=True, types=NAME_OR_ID, validator=non_empty),
            Binding("event", types=[int]),
            Binding("package", types=[str]),
        ]),
    GatewayOperation(
        "list-tagged", "listTagged",
        description="Builds tagged into a tag",
        bindings=[
            Binding("tag", required=True, types=NAME_OR_ID, validator=non_empty),
            Binding("event", types=[int]),
            Binding("inherit", default=False, types=[bool]),
            Binding("prefix", types=[str]),
            Binding("latest", default=False, types=[bool]),
            Binding("package", types=[str]),
        ]),
)

CATALOGUE = dict((op.name, op) for op in OPERATIONS)


def get_operation(name, catalogue=None):
    """
    :param catalogue: operations to look in, the built-in CATALOGUE by default
    :raises NotFound: there is no such operation
    """
    if catalogue is None:
        catalogue = CATALOGUE
    try:
        return catalogue[name]
    except KeyError:
        raise NotFound("No such operation: %s" % name)
