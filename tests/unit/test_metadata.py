"""Tests for the build-environment, system-packages and opam-switch parsers."""

from __future__ import annotations

import pytest

from buildrepro.core.errors import Corrupt
from buildrepro.core.metadata import (
    parse_environment,
    parse_switch_export,
    parse_system_packages,
)

SWITCH = '''
opam-version: "2.0"
compiler: ["ocaml-base-compiler.4.14.1"]
roots: ["solo5.0.8.0" "mirage.4.4.0"]
installed: ["dune.3.11.1" "ocaml.4.14.1" "solo5.0.8.0" "mirage.4.4.0"]
package "dune" {
  opam-version: "2.0"
  version: "3.11.1"
  synopsis: "Fast, portable, and opinionated build system"
  depends: [
    "ocaml" {>= "4.08"}
    "base-unix" | "base-threads"
  ]
  build: [
    ["ocaml" "boot/bootstrap.ml" "-j" jobs]
    ["./_boot/dune.exe" "build" "dune.install" "--release" "--profile" "dune-bootstrap" "-j" jobs]
  ]
  url {
    src: "https://github.com/ocaml/dune/releases/download/3.11.1/dune-3.11.1.tbz"
    checksum: "sha256=866f2307adadaf7604f3bf9d98bb4098792baa046953a6726c96c40fc5ed3f71"
  }
}
package "solo5" {
  version: "0.8.0"
  build: [make "V=1" "-j%{jobs}%"] # single command form
  install: [
    [make "install" "PREFIX=%{prefix}%"]
    ["sh" "-c" "echo done"] {with-test}
  ]
  description: """
multi-line
description"""
  url { src: "git+https://github.com/solo5/solo5.git#v0.8.0" }
}
'''


class TestEnvironment:
    def test_parse(self):
        env = parse_environment("PATH=/usr/bin:/bin\nHOME=/home/builder\n\nEMPTY=\nEQ=a=b\n")
        assert env == {
            "PATH": "/usr/bin:/bin",
            "HOME": "/home/builder",
            "EMPTY": "",
            "EQ": "a=b",
        }

    def test_malformed(self):
        with pytest.raises(Corrupt, match="line 2"):
            parse_environment("A=1\nnot an assignment\n")


class TestSystemPackages:
    def test_parse(self):
        pkgs = parse_system_packages("gmp 6.2.1\nlibseccomp 2.5.4_1\n\n")
        assert pkgs == {"gmp": "6.2.1", "libseccomp": "2.5.4_1"}

    def test_missing_version(self):
        with pytest.raises(Corrupt):
            parse_system_packages("gmp\n")


class TestSwitchExport:
    def test_installed_packages(self):
        packages = parse_switch_export(SWITCH)
        assert list(packages) == ["dune", "mirage", "ocaml", "solo5"]
        assert packages["mirage"].version == "4.4.0"
        assert packages["mirage"].build == []

    def test_package_sections(self):
        dune = parse_switch_export(SWITCH)["dune"]
        assert dune.version == "3.11.1"
        assert dune.build[0] == ("ocaml", "boot/bootstrap.ml", "-j", "jobs")
        assert len(dune.build) == 2
        assert dune.url.startswith("https://github.com/ocaml/dune/")

    def test_single_command_and_filters(self):
        solo5 = parse_switch_export(SWITCH)["solo5"]
        assert solo5.build == [("make", "V=1", "-j%{jobs}%")]
        assert solo5.install == [
            ("make", "install", "PREFIX=%{prefix}%"),
            ("sh", "-c", "echo done", "{with-test}"),
        ]
        assert solo5.url == "git+https://github.com/solo5/solo5.git#v0.8.0"

    def test_empty(self):
        assert parse_switch_export("") == {}

    @pytest.mark.parametrize(
        "text",
        [
            'installed: ["dune.3.0"',
            'package "dune" { version: "1"',
            'version: "unterminated',
            'installed: ["noversion"]',
            'package "x" { build: [] }',
            "installed: ]",
            "(* unterminated comment",
        ],
    )
    def test_malformed(self, text: str):
        with pytest.raises(Corrupt):
            parse_switch_export(text)
