"""Registry of type declarations found in the scanned sources.

The catalog is filled completely before any type is resolved: a record may
refer to a class declared in a module that the walk visits later. Each build
constructs its own catalog.
"""

from __future__ import annotations

import ast
import logging
from collections import Counter
from typing import Iterable

from .errors import Fault, FaultKind
from .loader import ModuleLocator, SourceModule, is_stdlib, load_module

logger = logging.getLogger(__name__)

RECORD = "record"
ENUM = "enum"
ALIAS = "alias"

_ENUM_BASES = {"Enum", "IntEnum", "StrEnum", "Flag", "IntFlag"}
_GENERIC_BASES = {"Generic", "Protocol"}

# Bound on re-export chains (``from .models import User`` in an __init__)
_MAX_REEXPORT_DEPTH = 8


def dotted_name(node: ast.expr) -> str:
    """Return ``a.b.c`` for Name/Attribute chains, "" otherwise."""
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        base = dotted_name(node.value)
        return f"{base}.{node.attr}" if base else ""
    return ""


def _subscript_args(node: ast.Subscript) -> list[ast.expr]:
    if isinstance(node.slice, ast.Tuple):
        return list(node.slice.elts)
    return [node.slice]


class TypeDecl:
    """One declared type: a class, an enum, or a type alias."""

    def __init__(self, module: SourceModule, name: str, node: ast.AST, kind: str):
        self.module = module
        self.name = name
        self.node = node
        self.kind = kind
        self.qualname = f"{module.name}.{name}" if module.name else name
        self.definition_name = f"{module.short_name}.{name}" if module.name else name
        self.type_params: list[str] = []

    @property
    def bases(self) -> list[ast.expr]:
        if isinstance(self.node, ast.ClassDef):
            return list(self.node.bases)
        return []

    @property
    def body(self) -> list[ast.stmt]:
        if isinstance(self.node, ast.ClassDef):
            return list(self.node.body)
        return []

    @property
    def value(self) -> ast.expr | None:
        """Aliased expression of an ALIAS declaration."""
        if isinstance(self.node, ast.AnnAssign):
            return self.node.value
        return getattr(self.node, "value", None)

    @property
    def docstring(self) -> str | None:
        if isinstance(self.node, ast.ClassDef):
            return ast.get_docstring(self.node, clean=True)
        return None

    @property
    def is_generic(self) -> bool:
        return bool(self.type_params)

    def __repr__(self) -> str:
        return f"TypeDecl({self.qualname!r}, {self.kind})"


def _type_vars(module: SourceModule) -> set[str]:
    """Names bound at module level by ``T = TypeVar("T")``."""
    names: set[str] = set()
    for stmt in module.tree.body:
        if isinstance(stmt, ast.Assign) and isinstance(stmt.value, ast.Call):
            if dotted_name(stmt.value.func).rpartition(".")[2] in ("TypeVar", "ParamSpec"):
                names.update(t.id for t in stmt.targets if isinstance(t, ast.Name))
    return names


def _class_type_params(node: ast.ClassDef, type_vars: set[str]) -> list[str]:
    params = [p.name for p in getattr(node, "type_params", []) or []]
    if params:
        return params
    implied: list[str] = []
    for base in node.bases:
        if not isinstance(base, ast.Subscript):
            continue
        args = [dotted_name(a) for a in _subscript_args(base)]
        if dotted_name(base.value).rpartition(".")[2] in _GENERIC_BASES:
            return [a for a in args if a]
        implied.extend(a for a in args if a in type_vars and a not in implied)
    return implied


def _is_alias_annotation(node: ast.expr) -> bool:
    return dotted_name(node).rpartition(".")[2] == "TypeAlias"


class TypeCatalog:
    """Type declarations keyed by fully qualified name."""

    def __init__(self, faults: list[Fault] | None = None):
        self.modules: dict[str, SourceModule] = {}
        self.decls: dict[str, TypeDecl] = {}
        self.faults = faults if faults is not None else []
        self._sealed = False

    def __len__(self) -> int:
        return len(self.decls)

    def __contains__(self, qualname: str) -> bool:
        return qualname in self.decls

    # ------------------------------------------------------------------
    # Population
    # ------------------------------------------------------------------

    def add_module(self, module: SourceModule) -> None:
        if self._sealed:
            raise RuntimeError("catalog is sealed; populate it before resolving types")
        if module.name in self.modules:
            return
        self.modules[module.name] = module
        type_vars = _type_vars(module)

        for stmt in module.tree.body:
            decl: TypeDecl | None = None
            if isinstance(stmt, ast.ClassDef):
                kind = ENUM if self._has_enum_base(stmt) else RECORD
                decl = TypeDecl(module, stmt.name, stmt, kind)
                decl.type_params = _class_type_params(stmt, type_vars)
            elif (
                isinstance(stmt, ast.AnnAssign)
                and isinstance(stmt.target, ast.Name)
                and stmt.value is not None
                and _is_alias_annotation(stmt.annotation)
            ):
                decl = TypeDecl(module, stmt.target.id, stmt, ALIAS)
            elif type(stmt).__name__ == "TypeAlias":
                decl = TypeDecl(module, stmt.name.id, stmt, ALIAS)
                decl.type_params = [p.name for p in getattr(stmt, "type_params", []) or []]
            if decl is not None:
                self.decls[decl.qualname] = decl

    @staticmethod
    def _has_enum_base(node: ast.ClassDef) -> bool:
        return any(dotted_name(b).rpartition(".")[2] in _ENUM_BASES for b in node.bases)

    def populate(self, modules: Iterable[SourceModule], locator: ModuleLocator | None = None) -> None:
        """Add every module, then (with a locator) follow their imports.

        Imports leaving the scanned sources are followed only when a locator
        is given. Inside a followed module only imports of its own top-level
        package are followed further.
        """
        roots = list(modules)
        for module in roots:
            self.add_module(module)

        if locator is not None:
            self._follow_imports(roots, locator)

        self.seal()

    def _follow_imports(self, roots: list[SourceModule], locator: ModuleLocator) -> None:
        queue = list(roots)
        scanned = {m.name for m in roots}
        missing: set[str] = set()

        while queue:
            module = queue.pop(0)
            own_top = module.name.split(".")[0]
            for target in sorted(set(module.imports.values())):
                if module.name not in scanned and target.split(".")[0] != own_top:
                    continue
                for candidate in (target, target.rpartition(".")[0]):
                    if not candidate or candidate in self.modules or candidate in missing:
                        continue
                    if is_stdlib(candidate):
                        continue
                    path = locator.locate(candidate)
                    if path is None:
                        missing.add(candidate)
                        continue
                    try:
                        dependency = load_module(path, name=candidate)
                    except (SyntaxError, OSError, UnicodeDecodeError) as exc:
                        missing.add(candidate)
                        self._fault(FaultKind.SOURCE, f"cannot parse dependency {candidate}: {exc}", str(path))
                        continue
                    logger.debug("Following dependency %s (%s)", candidate, path)
                    self.add_module(dependency)
                    queue.append(dependency)
                    break

    def seal(self) -> None:
        """Fix definition names; no modules may be added afterwards.

        Declarations sharing a short ``module.Class`` name fall back to their
        fully qualified name.
        """
        counts = Counter(d.definition_name for d in self.decls.values())
        for decl in self.decls.values():
            if counts[decl.definition_name] > 1:
                decl.definition_name = decl.qualname
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _candidates(self, dotted: str, module: SourceModule | None) -> list[str]:
        candidates: list[str] = []
        if module is not None:
            head, _, rest = dotted.partition(".")
            if dotted in module.imports:
                candidates.append(module.imports[dotted])
            if head in module.imports:
                target = module.imports[head]
                candidates.append(f"{target}.{rest}" if rest else target)
            if module.name:
                candidates.append(f"{module.name}.{dotted}")
        candidates.append(dotted)
        return list(dict.fromkeys(candidates))

    def _find_qualified(self, qualname: str, depth: int = 0) -> TypeDecl | None:
        decl = self.decls.get(qualname)
        if decl is not None or depth >= _MAX_REEXPORT_DEPTH:
            return decl
        owner, _, attr = qualname.rpartition(".")
        module = self.modules.get(owner)
        if module is not None and attr in module.imports:
            target = module.imports[attr]
            if target != qualname:
                return self._find_qualified(target, depth + 1)
        return None

    def lookup(self, dotted: str, module: SourceModule | None = None, suffix_match: bool = True) -> TypeDecl | None:
        """Find the declaration a dotted name refers to from inside ``module``."""
        for candidate in self._candidates(dotted, module):
            decl = self._find_qualified(candidate)
            if decl is not None:
                return decl
        if suffix_match:
            tail = "." + dotted
            matches = sorted(q for q in self.decls if q.endswith(tail) or self.decls[q].definition_name == dotted)
            if matches:
                if len(matches) > 1:
                    logger.debug("Ambiguous type %s: %s; using %s", dotted, matches, matches[0])
                return self.decls[matches[0]]
        return None

    def external_module(self, dotted: str, module: SourceModule | None) -> str:
        """Name of the unscanned module an unresolved name was imported from, "" if none."""
        if module is None:
            return ""
        head = dotted.partition(".")[0]
        target = module.imports.get(dotted) or module.imports.get(head)
        if not target:
            return ""
        owner = target if dotted not in module.imports else target.rpartition(".")[0]
        if owner in self.modules:
            return ""
        return owner or target

    def _fault(self, kind: FaultKind, message: str, location: str = "") -> None:
        fault = Fault(kind=kind, message=message, location=location)
        logger.warning("%s", fault)
        self.faults.append(fault)
