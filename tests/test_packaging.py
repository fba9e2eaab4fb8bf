from __future__ import annotations

from pathlib import Path

import pytest


def test_project_metadata_installs_cli_and_package():
    tomllib = pytest.importorskip("tomllib")
    pyproject = Path(__file__).resolve().parents[1] / "pyproject.toml"
    data = tomllib.loads(pyproject.read_text(encoding="utf-8"))

    project = data["project"]
    assert project["name"] == "facematch"
    # no long description; the repo has no README
    assert "readme" not in project
    assert project["scripts"]["face-match"] == "face_match:main"
    assert "face_match" in data["tool"]["setuptools"]["py-modules"]
