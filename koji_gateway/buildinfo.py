# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
"""
Build information in the shape client tooling wants: the build's NVR and
id, where its files live on kojipkgs, and its RPM file names per arch.
"""

from koji_gateway.errors import ValidationError


def validate_buildid(buildid):
    """
    Accepts build ids and NVRs such as ``42`` or
    ``rpm-ostree-2020.10-1.fc34``.

    The first character has to be alphanumeric, which shuts out path
    tricks like ``../bar.rpm`` and option-like ``-foo``.
    """
    if not buildid:
        raise ValidationError("Invalid empty buildid")
    for c in buildid:
        if ord(c) > 127:
            raise ValidationError("Invalid non-ASCII character %s in buildid" % c)
    if not buildid[0].isalnum():
        raise ValidationError("Invalid non-alphanumeric first character %s in buildid" % buildid[0])


def split_nvr(nvr):
    """
    Splits ``name-version-release`` into its three parts.

    The name may contain dashes, version and release may not.
    """
    try:
        pkgver, release = nvr.rsplit("-", 1)
    except ValueError:
        raise ValidationError("Invalid NVR %r, missing a '-'" % nvr)
    try:
        name, version = pkgver.rsplit("-", 1)
    except ValueError:
        raise ValidationError("Invalid NVR %r, missing the version '-'" % nvr)
    if not name:
        raise ValidationError("Invalid NVR %r with empty name" % nvr)
    if not version:
        raise ValidationError("Invalid NVR %r with empty version" % nvr)
    if not release:
        raise ValidationError("Invalid NVR %r with empty release" % nvr)
    return name, version, release


def kojipkgs_url_prefix(kojipkgs_url, nvr):
    name, version, release = split_nvr(nvr)
    return "%s/%s/%s/%s" % (kojipkgs_url, name, version, release)


def rpm_filename(rpm):
    return "%(name)s-%(version)s-%(release)s.%(arch)s.rpm" % rpm


def group_rpms(rpms):
    """
    :param rpms: RPM entries as listBuildRPMs returns them
    :return: dict mapping arch to the list of RPM file names of that arch
    """
    grouped = {}
    for rpm in rpms:
        grouped.setdefault(rpm["arch"], []).append(rpm_filename(rpm))
    return grouped


def build_info(build, rpms, kojipkgs_url):
    return {
        "nvr": build["nvr"],
        "id": build["id"],
        "kojipkgs-url-prefix": kojipkgs_url_prefix(kojipkgs_url, build["nvr"]),
        "rpms": group_rpms(rpms),
    }
