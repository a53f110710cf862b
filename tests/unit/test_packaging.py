"""Checks that pyproject.toml matches what the package actually uses."""

import re
import tomllib
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]

# Distribution name -> top-level import name
IMPORT_NAMES = {
    "pyjwt": "jwt",
    "python-dotenv": "dotenv",
    "pydantic-settings": "pydantic_settings",
}


def _project():
    with open(ROOT / "pyproject.toml", "rb") as f:
        return tomllib.load(f)["project"]


def _dist_name(requirement: str) -> str:
    return re.split(r"[\[<>=!~ ;]", requirement, maxsplit=1)[0].lower()


def _imported_modules() -> set[str]:
    pattern = re.compile(r"^\s*(?:from|import)\s+([A-Za-z_][A-Za-z0-9_]*)", re.MULTILINE)
    modules = set()
    for path in (ROOT / "inkwell").rglob("*.py"):
        modules.update(pattern.findall(path.read_text()))
    return modules


class TestDependencies:
    """Tests for the declared runtime dependencies."""

    def test_every_runtime_dependency_is_imported(self):
        imported = _imported_modules()

        unused = [
            requirement
            for requirement in _project()["dependencies"]
            if IMPORT_NAMES.get(_dist_name(requirement), _dist_name(requirement)) not in imported
        ]

        assert unused == []

    def test_readme_is_a_real_readme(self):
        readme = _project()["readme"]

        assert readme == "README.md"
        assert (ROOT / readme).exists()
