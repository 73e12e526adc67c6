"""Load Python source modules for scanning.

Reads each file once, parses it with ``ast``, and records what the later
stages need: the dotted module name, the import map used to qualify names,
and trailing comments keyed by line (field override directives live there).
"""

from __future__ import annotations

import ast
import io
import logging
import sys
import tokenize
from pathlib import Path
from typing import Iterable, Iterator

logger = logging.getLogger(__name__)


class SourceModule:
    """One parsed source file."""

    def __init__(self, path: Path, name: str, source: str, tree: ast.Module, is_package: bool = False):
        self.path = path
        self.name = name
        self.source = source
        self.tree = tree
        self.is_package = is_package
        self.comments = _collect_comments(source)
        self.imports = _collect_imports(tree, self.package)

    @property
    def package(self) -> str:
        """The package relative imports are resolved against."""
        if self.is_package:
            return self.name
        return self.name.rpartition(".")[0]

    @property
    def short_name(self) -> str:
        return self.name.rpartition(".")[2] or self.name

    @property
    def docstring(self) -> str | None:
        return ast.get_docstring(self.tree, clean=True)

    def __repr__(self) -> str:
        return f"SourceModule({self.name!r}, {str(self.path)!r})"


def _collect_comments(source: str) -> dict[int, str]:
    """Map line number -> comment text (without the leading ``#``)."""
    comments: dict[int, str] = {}
    try:
        for tok in tokenize.generate_tokens(io.StringIO(source).readline):
            if tok.type == tokenize.COMMENT:
                comments[tok.start[0]] = tok.string.lstrip("#").strip()
    except (tokenize.TokenError, SyntaxError) as exc:
        logger.debug("Could not tokenize comments: %s", exc)
    return comments


def _resolve_relative(package: str, level: int, module: str | None) -> str:
    base = package.split(".") if package else []
    if level > 1:
        base = base[: len(base) - (level - 1)]
    parts = [p for p in base if p]
    if module:
        parts.append(module)
    return ".".join(parts)


def _collect_imports(tree: ast.Module, package: str) -> dict[str, str]:
    """Map each local name bound by an import to the dotted name it stands for.

    ``import a.b``            a -> a, a.b -> a.b
    ``import a.b as m``       m -> a.b
    ``from a.b import X``     X -> a.b.X
    ``from .m import X as Y`` Y -> <package>.m.X
    """
    imports: dict[str, str] = {}
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                if alias.asname:
                    imports[alias.asname] = alias.name
                else:
                    head = alias.name.split(".")[0]
                    imports.setdefault(head, head)
                    imports[alias.name] = alias.name
        elif isinstance(node, ast.ImportFrom):
            if node.level:
                source = _resolve_relative(package, node.level, node.module)
            else:
                source = node.module or ""
            for alias in node.names:
                if alias.name == "*":
                    continue
                target = f"{source}.{alias.name}" if source else alias.name
                imports[alias.asname or alias.name] = target
    return imports


def module_name_for(path: Path) -> tuple[str, bool]:
    """Derive the dotted module name of a file from its package layout.

    Climbs parent directories for as long as they contain ``__init__.py``.
    Returns the name and whether the file is a package ``__init__``.
    """
    path = path.resolve()
    is_package = path.name == "__init__.py"
    parts: list[str] = [] if is_package else [path.stem]
    directory = path.parent
    while (directory / "__init__.py").exists():
        parts.insert(0, directory.name)
        if directory.parent == directory:
            break
        directory = directory.parent
    return ".".join(parts), is_package


def load_module(path: Path, name: str | None = None) -> SourceModule:
    """Read and parse one source file.

    Raises SyntaxError, OSError or UnicodeDecodeError for unreadable sources.
    """
    source = path.read_text(encoding="utf-8")
    tree = ast.parse(source, filename=str(path))
    derived, is_package = module_name_for(path)
    return SourceModule(path, name or derived, source, tree, is_package)


def iter_source_files(search_dir: Path, exclude: Iterable[str] = ()) -> Iterator[Path]:
    """Yield every ``*.py`` file under search_dir, sorted, skipping excluded directories."""
    excluded = set(exclude)
    for path in sorted(search_dir.rglob("*.py")):
        rel_parts = path.relative_to(search_dir).parts[:-1]
        if any(part in excluded or part.startswith(".") for part in rel_parts):
            continue
        yield path


class ModuleLocator:
    """Find source files for dotted module names without importing them."""

    def __init__(self, roots: Iterable[Path]):
        self.roots: list[Path] = []
        for root in roots:
            if root.is_dir() and root not in self.roots:
                self.roots.append(root)

    @classmethod
    def for_search_dir(cls, search_dir: Path) -> ModuleLocator:
        """Search the directory above the top package, then sys.path."""
        search_dir = search_dir.resolve()
        top = search_dir
        while (top / "__init__.py").exists() and top.parent != top:
            top = top.parent
        roots = [search_dir, top] + [Path(p) for p in sys.path if p]
        return cls(roots)

    def locate(self, name: str) -> Path | None:
        parts = name.split(".")
        for root in self.roots:
            candidate = root.joinpath(*parts)
            for path in (candidate.with_suffix(".py"), candidate / "__init__.py"):
                if path.is_file():
                    return path
        return None


def is_stdlib(name: str) -> bool:
    top = name.split(".")[0]
    return top in sys.stdlib_module_names or top in sys.builtin_module_names
