# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
import pytest

from koji_gateway.buildinfo import (
    build_info, group_rpms, kojipkgs_url_prefix, split_nvr, validate_buildid)
from koji_gateway.errors import ValidationError

KOJIPKGS = "https://kojipkgs.fedoraproject.org/packages"


def rpm(name, arch, version="2020.10", release="1.fc34"):
    return {"name": name, "version": version, "release": release, "arch": arch}


class TestValidateBuildid:

    @pytest.mark.parametrize("buildid", ["42", "rpm-ostree-2020.10-1.fc34"])
    def test_valid(self, buildid):
        validate_buildid(buildid)

    @pytest.mark.parametrize("buildid", ["", "-foo", "../bar.rpm", "föö-1-1"])
    def test_invalid(self, buildid):
        with pytest.raises(ValidationError):
            validate_buildid(buildid)


class TestSplitNvr:

    def test_dashed_name(self):
        assert split_nvr("rpm-ostree-2020.10-1.fc34") == ("rpm-ostree", "2020.10", "1.fc34")

    @pytest.mark.parametrize("nvr", ["rpm", "rpm-1", "-1.0-1", "foo--1", "foo-1.0-"])
    def test_invalid(self, nvr):
        with pytest.raises(ValidationError):
            split_nvr(nvr)


class TestBuildInfo:

    def test_prefix(self):
        assert kojipkgs_url_prefix(KOJIPKGS, "rpm-ostree-2020.10-1.fc34") == \
            KOJIPKGS + "/rpm-ostree/2020.10/1.fc34"

    def test_group_rpms(self):
        grouped = group_rpms([
            rpm("rpm-ostree", "src"),
            rpm("rpm-ostree", "x86_64"),
            rpm("rpm-ostree", "aarch64"),
            rpm("rpm-ostree-libs", "x86_64"),
        ])
        assert grouped == {
            "src": ["rpm-ostree-2020.10-1.fc34.src.rpm"],
            "x86_64": [
                "rpm-ostree-2020.10-1.fc34.x86_64.rpm",
                "rpm-ostree-libs-2020.10-1.fc34.x86_64.rpm",
            ],
            "aarch64": ["rpm-ostree-2020.10-1.fc34.aarch64.rpm"],
        }

    def test_build_without_rpms(self):
        build = {"id": 1657648, "nvr": "rpm-ostree-2020.10-1.fc34"}
        assert build_info(build, [], KOJIPKGS) == {
            "nvr": "rpm-ostree-2020.10-1.fc34",
            "id": 1657648,
            "kojipkgs-url-prefix": KOJIPKGS + "/rpm-ostree/2020.10/1.fc34",
            "rpms": {},
        }
