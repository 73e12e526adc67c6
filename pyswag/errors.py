"""Fault records and the exception hierarchy.

Faults accumulate during a run and stay inspectable on the build result.
Exceptions are raised only for conditions that stop a run (or one artifact).
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class FaultKind(str, Enum):
    CONFIG = "config"
    SOURCE = "source"
    DIRECTIVE = "directive"
    RESOLUTION = "resolution"
    DUPLICATE = "duplicate"
    SERIALIZATION = "serialization"
    TEMPLATE = "template"
    IO = "io"


class Fault(BaseModel):
    """A single recorded problem, with its source location when known."""

    kind: FaultKind
    message: str
    location: str = ""

    def __str__(self) -> str:
        if self.location:
            return f"{self.location}: {self.message}"
        return self.message


class PyswagError(Exception):
    """Base class for errors that abort a build or an artifact."""

    kind = FaultKind.CONFIG

    def __init__(self, message: str, faults: list[Fault] | None = None):
        super().__init__(message)
        self.faults = list(faults or [])


class ConfigError(PyswagError):
    kind = FaultKind.CONFIG


class SearchDirNotFoundError(ConfigError):
    pass


class EntryPointNotFoundError(ConfigError):
    pass


class OutputError(PyswagError):
    kind = FaultKind.IO


class NoOperationsError(PyswagError):
    kind = FaultKind.DIRECTIVE


class SerializationError(PyswagError):
    kind = FaultKind.SERIALIZATION


class TemplateRenderError(PyswagError):
    kind = FaultKind.TEMPLATE
