"""Tests for the diff engine: map, command and package diffs."""

from __future__ import annotations

from buildrepro.core.diff_engine import diff_commands, diff_map, diff_packages
from buildrepro.models.diff import Change, Package


def _pkgs(*packages: Package) -> dict[str, Package]:
    return {p.name: p for p in packages}


LEFT_ENV = {"PATH": "/bin", "HOME": "/home/a", "OLD": "1", "SAME": "x"}
RIGHT_ENV = {"PATH": "/usr/bin", "HOME": "/home/a", "NEW": "2", "SAME": "x"}


class TestDiffMap:
    def test_partition(self):
        diff = diff_map(LEFT_ENV, RIGHT_ENV)
        assert diff.added == {"NEW": "2"}
        assert diff.removed == {"OLD": "1"}
        assert diff.changed == [Change(key="PATH", old="/bin", new="/usr/bin")]
        assert diff.unchanged == {"HOME": "/home/a", "SAME": "x"}
        assert not diff.is_empty

    def test_symmetry(self):
        forward = diff_map(LEFT_ENV, RIGHT_ENV)
        backward = diff_map(RIGHT_ENV, LEFT_ENV)
        assert forward.added == backward.removed
        assert forward.removed == backward.added
        assert [(c.key, c.old, c.new) for c in forward.changed] == [
            (c.key, c.new, c.old) for c in backward.changed
        ]
        assert forward.unchanged == backward.unchanged

    def test_identical(self):
        assert diff_map(LEFT_ENV, dict(LEFT_ENV)).is_empty


class TestDiffCommands:
    def test_strips_common_prefix(self):
        old = [("./configure",), ("make", "-j4"), ("make", "install")]
        new = [("./configure",), ("make", "-j8"), ("make", "install")]
        diff = diff_commands(old, new)
        assert diff.old == [("make", "-j4"), ("make", "install")]
        assert diff.new == [("make", "-j8"), ("make", "install")]

    def test_one_side_longer(self):
        diff = diff_commands([("a",)], [("a",), ("b",)])
        assert diff.old == []
        assert diff.new == [("b",)]


class TestDiffPackages:
    LEFT = _pkgs(
        Package(name="dune", version="3.11.1", build=[("dune", "build")]),
        Package(name="fmt", version="0.9.0"),
        Package(name="gone", version="1.0"),
        Package(name="cstruct", version="6.2.0", url="https://a/cstruct.tbz"),
    )
    RIGHT = _pkgs(
        Package(name="dune", version="3.11.1", build=[("dune", "build"), ("dune", "test")]),
        Package(name="fmt", version="0.9.0"),
        Package(name="fresh", version="2.0"),
        Package(name="cstruct", version="6.2.1", url="https://a/cstruct.tbz"),
    )

    def test_partition(self):
        diff = diff_packages(self.LEFT, self.RIGHT)
        assert [str(p) for p in diff.same] == ["fmt.0.9.0"]
        assert [str(p) for p in diff.added] == ["fresh.2.0"]
        assert [str(p) for p in diff.removed] == ["gone.1.0"]
        assert [(v.name, v.old_version, v.new_version) for v in diff.version_changed] == [
            ("cstruct", "6.2.0", "6.2.1")
        ]
        [change] = diff.metadata_changed
        assert change.name == "dune"
        assert change.build is not None
        assert change.build.old == []
        assert change.build.new == [("dune", "test")]
        assert change.install is None
        assert change.url is None

    def test_url_change(self):
        left = _pkgs(Package(name="x", version="1", url="https://old"))
        right = _pkgs(Package(name="x", version="1", url="https://new"))
        [change] = diff_packages(left, right).metadata_changed
        assert (change.url.old, change.url.new) == ("https://old", "https://new")

    def test_symmetry(self):
        forward = diff_packages(self.LEFT, self.RIGHT)
        backward = diff_packages(self.RIGHT, self.LEFT)
        assert forward.added == backward.removed
        assert forward.removed == backward.added
        assert forward.same == backward.same
        assert [(v.name, v.old_version, v.new_version) for v in forward.version_changed] == [
            (v.name, v.new_version, v.old_version) for v in backward.version_changed
        ]
