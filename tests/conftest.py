"""Shared fixtures for the tempbind test suite."""

from __future__ import annotations

import pytest

from tempbind.constructs import ConstructLog


@pytest.fixture
def log():
    return ConstructLog()


@pytest.fixture
def project(tmp_path):
    """A directory with a tempbind.toml and two sources."""
    (tmp_path / "tempbind.toml").write_text(
        '[lower]\nprefix = "_t"\ntarget = "es2015"\nshadow_warnings = true\n'
        '[output]\nextension = ".js"\nsources = ["*.tbjs"]\n'
    )
    (tmp_path / "main.tbjs").write_text("const($) x = 10, $ + 2, $ * 2;\nconsole.log(x);\n")
    sub = tmp_path / "lib"
    sub.mkdir()
    (sub / "util.tbjs").write_text("function last(xs) {\n  return let(a) = xs, a[a.length - 1];\n}\n")
    return tmp_path
