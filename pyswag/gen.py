"""Run one generation: scan, resolve, assemble, emit, write.

Each build starts from scratch: a new catalog, resolver and fault list. The
catalog is populated completely before the first type is resolved, and
nothing is written until the document and all artifacts are in memory.
"""

from __future__ import annotations

import ast
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterator, Protocol

import yaml
from pydantic import BaseModel, Field

from . import codegen
from .assembler import assemble
from .catalog import TypeCatalog
from .config import Config
from .directives import has_directives, tokenize_block
from .errors import (
    EntryPointNotFoundError,
    Fault,
    FaultKind,
    NoOperationsError,
    OutputError,
    SearchDirNotFoundError,
    SerializationError,
    TemplateRenderError,
)
from .info import InfoBuilder
from .loader import ModuleLocator, SourceModule, iter_source_files, load_module
from .models import ApiInfo, Operation, SourceLocation
from .operation import OperationBuilder
from .resolver import TypeResolver

logger = logging.getLogger(__name__)

JSON_FILE = "swagger.json"
YAML_FILE = "swagger.yaml"
STUB_FILE = "docs.py"


class OutputSink(Protocol):
    def write_all(self, artifacts: dict[str, bytes]) -> None: ...


class DirectorySink:
    """Writes artifacts into a directory.

    Every file is staged next to its target before any target is replaced, so a
    failed write leaves the previous run's files as they were.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def check(self) -> None:
        """Fail early, without side effects, when the directory cannot be written."""
        target = self.directory
        if target.exists():
            if not target.is_dir():
                raise OutputError(f"output location {target} is not a directory")
            if not os.access(target, os.W_OK):
                raise OutputError(f"output directory {target} is not writable")
            return
        parent = target.parent
        while not parent.exists() and parent != parent.parent:
            parent = parent.parent
        if not parent.is_dir() or not os.access(parent, os.W_OK):
            raise OutputError(f"cannot create output directory {target}")

    def write(self, name: str, data: bytes) -> None:
        self.write_all({name: data})

    def write_all(self, artifacts: dict[str, bytes]) -> None:
        staged: dict[str, str] = {}
        path = self.directory
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            for name, data in artifacts.items():
                path = self.directory / name
                with tempfile.NamedTemporaryFile(dir=self.directory, prefix=f".{name}.", delete=False) as tmp:
                    staged[name] = tmp.name
                    tmp.write(data)
            for name in list(staged):
                path = self.directory / name
                os.replace(staged[name], path)
                del staged[name]
        except OSError as exc:
            for tmp_name in staged.values():
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
            raise OutputError(f"cannot write {path}: {exc}") from exc


class BuildResult(BaseModel):
    spec: dict[str, Any] = Field(default_factory=dict)
    info: ApiInfo = Field(default_factory=ApiInfo)
    operations: list[Operation] = Field(default_factory=list)
    faults: list[Fault] = Field(default_factory=list)
    written: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.faults


def _iter_functions(body: list[ast.stmt]) -> Iterator[ast.FunctionDef | ast.AsyncFunctionDef]:
    """Functions and methods in source order."""
    for stmt in body:
        if isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef)):
            yield stmt
        elif isinstance(stmt, ast.ClassDef):
            yield from _iter_functions(stmt.body)


def _docstring_line(node: ast.AST) -> int:
    body = getattr(node, "body", [])
    return body[0].lineno if body else getattr(node, "lineno", 0)


class Generator:
    """Builds the API document for one service.

    The serializers and the formatter are injectable so that each failure
    path can be exercised on its own.
    """

    def __init__(
        self,
        json_indent: Callable[[dict[str, Any]], str] = codegen.json_indent,
        json_to_yaml: Callable[[str], str] = codegen.json_to_yaml,
        format_source: Callable[[str], str] = codegen.format_source,
        clock: Callable[[], datetime] | None = None,
    ):
        self.json_indent = json_indent
        self.json_to_yaml = json_to_yaml
        self.format_source = format_source
        self.clock = clock

    def build(self, config: Config, sink: OutputSink | None = None) -> BuildResult:
        faults: list[Fault] = []
        self._check_config(config)
        if sink is None:
            directory_sink = DirectorySink(config.output_dir)
            directory_sink.check()
            sink = directory_sink

        modules = self._load_modules(config, faults)
        entry_path = config.main_api_path.resolve()
        entry = next((m for m in modules if m.path.resolve() == entry_path), None)

        catalog = TypeCatalog(faults)
        locator = ModuleLocator.for_search_dir(config.search_dir) if config.parse_dependency else None
        catalog.populate(modules, locator)
        logger.debug("Catalog holds %d types from %d modules", len(catalog), len(catalog.modules))

        resolver = TypeResolver(catalog, faults)
        info = self._parse_info(entry, faults)
        operations = self._parse_operations(modules, resolver, faults)
        if not operations:
            raise NoOperationsError(f"no documented operations found under {config.search_dir}", faults)

        spec, merge_faults = assemble(info, operations, resolver.definitions, config.prop_naming_strategy)
        faults.extend(merge_faults)

        artifacts, yaml_error = self._emit(spec, config, faults)
        try:
            sink.write_all(artifacts)
        except OutputError as exc:
            faults.append(Fault(kind=FaultKind.IO, message=str(exc)))
            exc.faults = list(faults)
            raise
        written = list(artifacts)
        if yaml_error is not None:
            yaml_error.faults = list(faults)
            raise yaml_error

        logger.info(
            "Generated %s (%d operations, %d definitions, %d faults)",
            ", ".join(written), len(operations), len(spec.get("definitions", {})), len(faults),
        )
        return BuildResult(spec=spec, info=info, operations=operations, faults=faults, written=written)

    # ------------------------------------------------------------------

    @staticmethod
    def _check_config(config: Config) -> None:
        if not config.search_dir.is_dir():
            raise SearchDirNotFoundError(f"search dir {config.search_dir} does not exist")
        if not config.main_api_path.is_file():
            raise EntryPointNotFoundError(f"entry-point file {config.main_api_path} does not exist")

    @staticmethod
    def _load_modules(config: Config, faults: list[Fault]) -> list[SourceModule]:
        output_dir = config.output_dir.resolve()
        paths = [
            p for p in iter_source_files(config.search_dir, config.exclude)
            if output_dir not in p.resolve().parents
        ]
        entry = config.main_api_path
        if entry.resolve() not in {p.resolve() for p in paths}:
            paths.append(entry)

        modules: list[SourceModule] = []
        for path in paths:
            try:
                modules.append(load_module(path))
            except (SyntaxError, OSError, UnicodeDecodeError) as exc:
                fault = Fault(kind=FaultKind.SOURCE, message=f"cannot parse module: {exc}", location=str(path))
                logger.warning("%s", fault)
                faults.append(fault)
        return modules

    @staticmethod
    def _parse_info(entry: SourceModule | None, faults: list[Fault]) -> ApiInfo:
        if entry is None:
            return ApiInfo()
        directives = tokenize_block(entry.docstring, str(entry.path), _docstring_line(entry.tree) or 1)
        return InfoBuilder(faults).add_all(directives).finalize()

    @staticmethod
    def _parse_operations(modules: list[SourceModule], resolver: TypeResolver, faults: list[Fault]) -> list[Operation]:
        operations: list[Operation] = []
        for module in sorted(modules, key=lambda m: str(m.path)):
            for func in _iter_functions(module.tree.body):
                docstring = ast.get_docstring(func, clean=True)
                if not has_directives(docstring):
                    continue
                location = SourceLocation(path=str(module.path), line=func.lineno)
                directives = tokenize_block(docstring, str(module.path), _docstring_line(func))
                builder = OperationBuilder(func.name, resolver, module, location, faults)
                operation = builder.add_all(directives).finalize()
                if operation is not None:
                    logger.debug("Found %s %s in %s", operation.method.upper(), operation.path, location)
                    operations.append(operation)
        return operations

    def _emit(
        self, spec: dict[str, Any], config: Config, faults: list[Fault]
    ) -> tuple[dict[str, bytes], SerializationError | None]:
        """Produce every artifact in memory.

        A JSON failure aborts the run; a YAML failure is fatal to swagger.yaml
        only and is returned for the caller to raise after the other writes.
        """
        try:
            doc = self.json_indent(spec)
        except (TypeError, ValueError) as exc:
            faults.append(Fault(kind=FaultKind.SERIALIZATION, message=f"cannot encode {JSON_FILE}: {exc}"))
            raise SerializationError(f"cannot encode {JSON_FILE}: {exc}", faults) from exc

        yaml_error: SerializationError | None = None
        artifacts: dict[str, bytes] = {JSON_FILE: doc.encode("utf-8")}
        try:
            artifacts[YAML_FILE] = self.json_to_yaml(doc).encode("utf-8")
        except (yaml.YAMLError, TypeError, ValueError) as exc:
            fault = Fault(kind=FaultKind.SERIALIZATION, message=f"cannot encode {YAML_FILE}: {exc}")
            logger.warning("%s", fault)
            faults.append(fault)
            yaml_error = SerializationError(str(fault.message), faults)

        template = config.template if config.template is not None else codegen.default_template()
        context = codegen.build_stub_context(
            spec,
            doc,
            package_name=config.package_name,
            instance_name=config.instance_name,
            generated_time=config.generated_time,
            now=self.clock() if self.clock else None,
        )
        try:
            rendered = codegen.render_stub(template, context)
        except TemplateRenderError as exc:
            faults.append(Fault(kind=FaultKind.TEMPLATE, message=str(exc)))
            exc.faults = list(faults)
            raise
        artifacts[STUB_FILE] = self.format_source(rendered).encode("utf-8")
        return artifacts, yaml_error
