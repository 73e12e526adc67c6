"""Runtime registry for generated docs.py modules.

A generated stub registers its SwaggerInfo on import; a documentation route
in the service then serves ``read_doc()``. Host, base path and the other
info fields may be changed on the SwaggerInfo at runtime (for example to
match the deployment host) and are applied when the document is read.
"""

from __future__ import annotations

import json
import threading
from typing import Any

_lock = threading.Lock()
_registry: dict[str, SwaggerInfo] = {}


class SwaggerInfo:
    """Document metadata exposed by a generated stub."""

    def __init__(
        self,
        version: str = "",
        host: str = "",
        base_path: str = "",
        schemes: list[str] | None = None,
        title: str = "",
        description: str = "",
        instance_name: str = "swagger",
        swagger_template: str = "",
    ):
        self.version = version
        self.host = host
        self.base_path = base_path
        self.schemes = list(schemes or [])
        self.title = title
        self.description = description
        self.instance_name = instance_name
        self.swagger_template = swagger_template

    def read_doc(self) -> str:
        """The embedded document with the current info fields applied."""
        doc: dict[str, Any] = json.loads(self.swagger_template)
        info = doc.setdefault("info", {})
        for key, value in (("title", self.title), ("version", self.version), ("description", self.description)):
            if value:
                info[key] = value
        if self.host:
            doc["host"] = self.host
        if self.base_path:
            doc["basePath"] = self.base_path
        if self.schemes:
            doc["schemes"] = list(self.schemes)
        return json.dumps(doc, indent=4, ensure_ascii=False)


def register(name: str, info: SwaggerInfo) -> None:
    """Register a document under ``name``; registering one name twice is an error."""
    with _lock:
        if name in _registry:
            raise ValueError(f"document {name!r} is already registered")
        _registry[name] = info


def unregister(name: str) -> None:
    with _lock:
        _registry.pop(name, None)


def get(name: str = "swagger") -> SwaggerInfo | None:
    with _lock:
        return _registry.get(name)


def read_doc(name: str = "swagger") -> str:
    info = get(name)
    if info is None:
        raise LookupError(f"no document registered as {name!r}")
    return info.read_doc()
