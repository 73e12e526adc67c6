"""Shared fixtures for pyswag tests.

Sample services live under tests/testdata/. They are parsed, never imported.
Unit tests build modules from inline source with ``make_module``.
"""

from __future__ import annotations

import ast
import textwrap
from pathlib import Path

import pytest

from pyswag.catalog import TypeCatalog
from pyswag.config import Config
from pyswag.errors import Fault, OutputError
from pyswag.loader import SourceModule
from pyswag.resolver import TypeResolver

TESTDATA = Path(__file__).parent / "testdata"


# ---------------------------------------------------------------------------
# Inline source modules
# ---------------------------------------------------------------------------

def make_module(source: str, name: str = "models", path: str | None = None, is_package: bool = False) -> SourceModule:
    """Parse dedented source into a SourceModule without touching the filesystem."""
    source = textwrap.dedent(source)
    return SourceModule(Path(path or f"{name.replace('.', '/')}.py"), name, source, ast.parse(source), is_package)


def make_resolver(*modules: SourceModule, faults: list[Fault] | None = None) -> TypeResolver:
    catalog = TypeCatalog(faults)
    catalog.populate(modules)
    return TypeResolver(catalog, catalog.faults)


# ---------------------------------------------------------------------------
# Output sinks
# ---------------------------------------------------------------------------

class MemorySink:
    """Collects artifacts in a dict instead of writing files."""

    def __init__(self):
        self.files: dict[str, bytes] = {}

    def write_all(self, artifacts: dict[str, bytes]) -> None:
        self.files.update(artifacts)

    def text(self, name: str) -> str:
        return self.files[name].decode("utf-8")


class FailingSink(MemorySink):
    """Refuses any batch that includes one artifact name."""

    def __init__(self, fail_on: str):
        super().__init__()
        self.fail_on = fail_on

    def write_all(self, artifacts: dict[str, bytes]) -> None:
        if self.fail_on in artifacts:
            raise OutputError(f"cannot write {self.fail_on}: disk full")
        super().write_all(artifacts)


@pytest.fixture
def sink() -> MemorySink:
    return MemorySink()


# ---------------------------------------------------------------------------
# Sample service configs
# ---------------------------------------------------------------------------

@pytest.fixture
def simple_config(tmp_path) -> Config:
    """The clean sample service, writing into a fresh directory."""
    return Config(search_dir=TESTDATA / "simple", output_dir=tmp_path / "docs")


@pytest.fixture
def faults_config(tmp_path) -> Config:
    """A service whose docstrings carry one of each recoverable problem."""
    return Config(search_dir=TESTDATA / "faults", output_dir=tmp_path / "docs")
