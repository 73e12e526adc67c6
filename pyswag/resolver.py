"""Resolve type references into schema nodes.

Handles:
- Primitive mapping (int -> integer, datetime -> string/date-time, ...)
- Containers (list/tuple/set -> array, dict/Mapping -> map)
- Optional / Union / Annotated / ClassVar unwrapping, Literal -> inline enum
- Records: annotated class fields, base classes flattened into the child
- Per-field overrides from trailing comments and Field()/field() calls
- Generic classes instantiated with arguments (Page[User] -> models.Page-models_User)
- Enum subclasses -> enum definitions
- Cycles: a named type under construction resolves to a reference

Every named type ends up exactly once in ``definitions``; all other
occurrences are reference nodes. The resolver never applies a naming
strategy; property names stay as declared.
"""

from __future__ import annotations

import ast
import logging
import re
import shlex
import threading
from typing import Any, Callable

from pydantic import BaseModel

from .catalog import ALIAS, ENUM, RECORD, TypeCatalog, TypeDecl, dotted_name
from .directives import Tag, tokenize_block
from .errors import Fault, FaultKind
from .loader import SourceModule
from .models import Property, SchemaKind, SchemaNode

logger = logging.getLogger(__name__)

# Fully qualified (or builtin) names -> (type, format)
_PRIMITIVES: dict[str, tuple[str, str]] = {
    "int": ("integer", ""),
    "float": ("number", ""),
    "str": ("string", ""),
    "bool": ("boolean", ""),
    "bytes": ("string", "byte"),
    "bytearray": ("string", "byte"),
    "datetime.datetime": ("string", "date-time"),
    "datetime.date": ("string", "date"),
    "datetime.time": ("string", "time"),
    "datetime.timedelta": ("string", "duration"),
    "uuid.UUID": ("string", "uuid"),
    "decimal.Decimal": ("number", ""),
    "pydantic.EmailStr": ("string", "email"),
    "pydantic.HttpUrl": ("string", "uri"),
    "pydantic.AnyUrl": ("string", "uri"),
    # directive spellings
    "string": ("string", ""),
    "integer": ("integer", ""),
    "number": ("number", ""),
    "boolean": ("boolean", ""),
    "file": ("file", ""),
    "int32": ("integer", "int32"),
    "int64": ("integer", "int64"),
    "uint": ("integer", ""),
    "float32": ("number", "float"),
    "float64": ("number", "double"),
}

# Bare names accepted without an import (``datetime`` in a directive)
_SHORT_PRIMITIVES: dict[str, tuple[str, str]] = {
    name.rpartition(".")[2]: value for name, value in _PRIMITIVES.items() if "." in name
}

_OPAQUE = {"Any", "object", "interface{}", "Json", "JsonValue"}

_WRAPPERS = {"Optional", "Annotated", "ClassVar", "Final", "Required", "NotRequired", "ReadOnly"}
_SEQUENCES = {
    "list", "List", "Sequence", "MutableSequence", "set", "Set", "frozenset", "FrozenSet",
    "AbstractSet", "MutableSet", "tuple", "Tuple", "Iterable", "Iterator", "Collection",
    "deque", "Deque",
}
_TUPLES = {"tuple", "Tuple"}
_MAPPINGS = {"dict", "Dict", "Mapping", "MutableMapping", "OrderedDict", "defaultdict", "DefaultDict"}

# Base classes that carry no fields of their own
_NON_EMBEDDED = {
    "object", "Generic", "Protocol", "BaseModel", "TypedDict", "NamedTuple", "ABC",
    "SQLModel", "Struct", "Exception",
}

_FIELD_CALLS = {"Field", "field"}

# Marker separating a field comment's description from its override options
_OVERRIDE_MARK = "swag:"


class FieldOverrides(BaseModel):
    """Per-field options from a trailing comment.

    ``name: str  # Login handle swag: rename=login required example=jane``
    """

    description: str = ""
    rename: str = ""
    ignore: bool = False
    required: bool = False
    example: str | None = None
    format: str = ""
    unknown: list[str] = []


def parse_field_overrides(comment: str) -> FieldOverrides:
    text, mark, options = comment.partition(_OVERRIDE_MARK)
    overrides = FieldOverrides(description=text.strip())
    if not mark:
        return overrides
    try:
        tokens = shlex.split(options)
    except ValueError:
        tokens = options.split()
    for token in tokens:
        key, _, value = token.partition("=")
        key = key.strip().lower()
        if key in ("rename", "json", "name"):
            if value == "-":
                overrides.ignore = True
            else:
                overrides.rename = value
        elif key in ("ignore", "swaggerignore"):
            overrides.ignore = value.lower() not in ("false", "0", "no")
        elif key == "required":
            overrides.required = value.lower() not in ("false", "0", "no")
        elif key == "example":
            overrides.example = value
        elif key == "format":
            overrides.format = value
        else:
            overrides.unknown.append(token)
    return overrides


def normalize_type_text(text: str) -> str:
    """Rewrite directive spellings into Python expressions.

    ``[]models.User`` -> ``list[models.User]``, ``map[string]int`` ->
    ``dict[string, int]``, ``interface{}`` -> ``Any``.
    """
    text = text.strip()
    if text.startswith("[]"):
        return f"list[{normalize_type_text(text[2:])}]"
    match = re.match(r"^map\[([^\]]+)\](.+)$", text)
    if match:
        return f"dict[{normalize_type_text(match.group(1))}, {normalize_type_text(match.group(2))}]"
    if text == "interface{}":
        return "Any"
    return text


def describe_docstring(docstring: str | None) -> str:
    """Free text of a docstring with directive lines removed."""
    parts = [
        d.text if d.tag is Tag.UNKNOWN else d.args
        for d in tokenize_block(docstring)
        if d.tag in (Tag.UNKNOWN, Tag.DESCRIPTION)
    ]
    return "\n".join(p for p in parts if p).strip()


class _Context:
    """Where a type expression appears: its module and bound type variables."""

    __slots__ = ("module", "bindings", "location")

    def __init__(self, module: SourceModule | None, bindings: dict[str, SchemaNode] | None = None, location: str = ""):
        self.module = module
        self.bindings = bindings or {}
        self.location = location

    def at(self, location: str) -> _Context:
        return _Context(self.module, self.bindings, location)


def _field_call_info(value: ast.expr | None) -> dict[str, Any]:
    """Inspect a field's default: plain value, pydantic Field(...) or dataclasses field(...)."""
    info: dict[str, Any] = {"has_default": value is not None, "alias": "", "description": "", "example": None}
    if not isinstance(value, ast.Call) or dotted_name(value.func).rpartition(".")[2] not in _FIELD_CALLS:
        return info

    def is_ellipsis(node: ast.expr) -> bool:
        return isinstance(node, ast.Constant) and node.value is Ellipsis

    has_default = bool(value.args) and not is_ellipsis(value.args[0])
    for kw in value.keywords:
        if kw.arg in ("default", "default_factory") and not is_ellipsis(kw.value):
            has_default = True
        elif kw.arg in ("alias", "serialization_alias") and isinstance(kw.value, ast.Constant):
            info["alias"] = str(kw.value.value)
        elif kw.arg in ("description", "title") and isinstance(kw.value, ast.Constant) and not info["description"]:
            info["description"] = str(kw.value.value)
        elif kw.arg == "example":
            info["example"] = _literal(kw.value)
        elif kw.arg == "examples" and isinstance(kw.value, (ast.List, ast.Tuple)) and kw.value.elts:
            info["example"] = _literal(kw.value.elts[0])
    info["has_default"] = has_default
    return info


def _literal(node: ast.expr) -> Any:
    try:
        return ast.literal_eval(node)
    except (ValueError, SyntaxError, TypeError):
        return None


def _is_none(node: ast.expr) -> bool:
    return (isinstance(node, ast.Constant) and node.value is None) or dotted_name(node) in ("None", "NoneType")


def _union_members(node: ast.expr) -> list[ast.expr]:
    if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
        return _union_members(node.left) + _union_members(node.right)
    return [node]


def _subscript_args(node: ast.Subscript) -> list[ast.expr]:
    if isinstance(node.slice, ast.Tuple):
        return list(node.slice.elts)
    return [node.slice]


def _enum_type(values: list[Any]) -> str:
    if values and all(isinstance(v, int) and not isinstance(v, bool) for v in values):
        return "integer"
    if values and all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in values):
        return "number"
    return "string"


class TypeResolver:
    """Turns type expressions into schema nodes, filling ``definitions``.

    One resolver per build. Public entry points hold a re-entrant lock, so
    handlers may be resolved from several threads.
    """

    def __init__(self, catalog: TypeCatalog, faults: list[Fault] | None = None):
        if not catalog.sealed:
            raise RuntimeError("type catalog must be fully populated before resolution")
        self.catalog = catalog
        self.faults = faults if faults is not None else []
        self.definitions: dict[str, SchemaNode] = {}
        self._in_progress: set[str] = set()
        self._aliases_in_progress: set[str] = set()
        self._generic_names: dict[tuple[str, tuple[str, ...]], str] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve(self, node: ast.expr, module: SourceModule | None, location: str = "") -> SchemaNode:
        with self._lock:
            return self._resolve(node, _Context(module, location=location))

    def resolve_text(self, text: str, module: SourceModule | None, location: str = "") -> SchemaNode:
        """Resolve a type written in a directive (``models.User``, ``[]int``)."""
        source = normalize_type_text(text)
        try:
            node = ast.parse(source, mode="eval").body
        except SyntaxError:
            self._fault(f"cannot parse type expression {text!r}", location)
            return SchemaNode.opaque()
        return self.resolve(node, module, location)

    def dereference(self, node: SchemaNode) -> SchemaNode:
        """Follow a reference node to its definition."""
        if node.is_reference:
            return self.definitions.get(node.ref, node)
        return node

    def generic_name(self, decl: TypeDecl, args: list[SchemaNode]) -> str:
        """Concrete definition name for a generic instantiation, computed once per argument combination."""
        key = (decl.qualname, tuple(self._arg_part(a) for a in args))
        with self._lock:
            name = self._generic_names.get(key)
            if name is None:
                name = "-".join((decl.definition_name,) + key[1])
                self._generic_names[key] = name
            return name

    @property
    def generic_instantiations(self) -> dict[tuple[str, tuple[str, ...]], str]:
        return dict(self._generic_names)

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def _resolve(self, node: ast.expr | None, ctx: _Context) -> SchemaNode:
        if node is None:
            return SchemaNode.opaque()
        if isinstance(node, ast.Constant):
            if isinstance(node.value, str):
                try:
                    parsed = ast.parse(node.value, mode="eval").body
                except SyntaxError:
                    self._fault(f"cannot parse forward reference {node.value!r}", ctx.location)
                    return SchemaNode.opaque()
                return self._resolve(parsed, ctx)
            return SchemaNode.opaque()
        if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
            return self._resolve_union(_union_members(node), ctx)
        if isinstance(node, (ast.Name, ast.Attribute)):
            return self._resolve_name(dotted_name(node), [], ctx)
        if isinstance(node, ast.Subscript):
            return self._resolve_name(dotted_name(node.value), _subscript_args(node), ctx)
        self._fault(f"unsupported type expression {ast.unparse(node)!r}", ctx.location)
        return SchemaNode.opaque()

    def _canonical(self, dotted: str, module: SourceModule | None) -> str:
        """Qualify a name through the module's imports (``dt.datetime`` -> ``datetime.datetime``)."""
        if module is None or not dotted:
            return dotted
        head, _, rest = dotted.partition(".")
        target = module.imports.get(head)
        if target is None:
            return dotted
        canonical = f"{target}.{rest}" if rest else target
        return canonical.replace("typing_extensions.", "typing.")

    def _resolve_name(self, dotted: str, args: list[ast.expr], ctx: _Context) -> SchemaNode:
        if not dotted:
            self._fault("unsupported type expression", ctx.location)
            return SchemaNode.opaque()
        if not args and dotted in ctx.bindings:
            return ctx.bindings[dotted]

        canonical = self._canonical(dotted, ctx.module)
        last = canonical.rpartition(".")[2]

        if last in _WRAPPERS:
            return self._resolve(args[0], ctx) if args else SchemaNode.opaque()
        if last == "Union":
            return self._resolve_union(args, ctx)
        if last == "Literal":
            values = [_literal(a) for a in args]
            return SchemaNode(kind=SchemaKind.ENUM, type=_enum_type(values), enum=values)
        if last in _SEQUENCES:
            return SchemaNode.array(self._sequence_items(last, args, ctx))
        if last in _MAPPINGS:
            value = self._resolve(args[1], ctx) if len(args) >= 2 else SchemaNode.opaque()
            return SchemaNode.mapping(value)
        if last in _OPAQUE or canonical == "typing.Any":
            return SchemaNode.opaque()

        primitive = _PRIMITIVES.get(canonical) or _PRIMITIVES.get(dotted)
        if primitive is None and "." not in dotted:
            primitive = _SHORT_PRIMITIVES.get(dotted)
        if primitive is not None:
            return SchemaNode.primitive(*primitive)

        decl = self.catalog.lookup(dotted, ctx.module)
        if decl is not None:
            return self._resolve_decl(decl, args, ctx)

        external = self.catalog.external_module(dotted, ctx.module)
        if external:
            self._fault(
                f"type {dotted} is declared in {external}, outside the scanned sources; "
                "using an opaque object (enable parse_dependency to resolve it)",
                ctx.location,
            )
        else:
            self._fault(f"cannot find type {dotted}; using an opaque object", ctx.location)
        return SchemaNode.opaque()

    def _sequence_items(self, last: str, args: list[ast.expr], ctx: _Context) -> SchemaNode:
        if not args:
            return SchemaNode.opaque()
        if last in _TUPLES and len(args) > 1:
            if isinstance(args[-1], ast.Constant) and args[-1].value is Ellipsis:
                return self._resolve(args[0], ctx)
            members = [self._resolve(a, ctx) for a in args]
            if all(m == members[0] for m in members):
                return members[0]
            self._fault("tuple of mixed member types mapped to an opaque object", ctx.location)
            return SchemaNode.opaque()
        return self._resolve(args[0], ctx)

    def _resolve_union(self, members: list[ast.expr], ctx: _Context) -> SchemaNode:
        present = [m for m in members if not _is_none(m)]
        if len(present) == 1:
            return self._resolve(present[0], ctx)
        resolved = [self._resolve(m, ctx) for m in present]
        if resolved and all(r == resolved[0] for r in resolved):
            return resolved[0]
        self._fault(f"union of {len(present)} distinct types mapped to an opaque object", ctx.location)
        return SchemaNode.opaque()

    def _split_optional(self, node: ast.expr, ctx: _Context) -> tuple[ast.expr, bool]:
        """Strip Optional/None-unions and NotRequired; report whether the field may be absent."""
        members = _union_members(node)
        if len(members) > 1:
            present = [m for m in members if not _is_none(m)]
            if len(present) == 1:
                return present[0], True
            return node, False
        if isinstance(node, ast.Subscript):
            last = self._canonical(dotted_name(node.value), ctx.module).rpartition(".")[2]
            args = _subscript_args(node)
            if last in ("Optional", "NotRequired"):
                inner, _ = self._split_optional(args[0], ctx)
                return inner, True
            if last == "Union":
                present = [m for m in args if not _is_none(m)]
                if len(present) == 1 and len(args) > 1:
                    return present[0], True
            if last in ("Annotated", "Required", "Final"):
                return self._split_optional(args[0], ctx)
        return node, False

    def _arg_part(self, node: SchemaNode) -> str:
        if node.kind == SchemaKind.REFERENCE:
            return node.ref.replace(".", "_")
        if node.kind == SchemaKind.ARRAY and node.items is not None:
            return "array_" + self._arg_part(node.items)
        if node.kind == SchemaKind.MAP and node.additional is not None:
            return "map_" + self._arg_part(node.additional)
        if node.kind == SchemaKind.ENUM:
            return "enum_" + "_".join(str(v) for v in node.enum)
        part = node.type or "object"
        if node.format:
            part += "_" + node.format
        return part

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    def _resolve_decl(self, decl: TypeDecl, args: list[ast.expr], ctx: _Context) -> SchemaNode:
        if decl.kind == ALIAS:
            return self._resolve_alias(decl, args, ctx)
        if decl.kind == ENUM:
            name = decl.definition_name
            return self._named(name, lambda: self._build_enum(decl, name))

        bindings: dict[str, SchemaNode] = {}
        name = decl.definition_name
        if decl.type_params:
            resolved = [self._resolve(a, ctx) for a in args]
            bound = resolved + [SchemaNode.opaque()] * (len(decl.type_params) - len(resolved))
            bindings = dict(zip(decl.type_params, bound))
            if resolved:
                name = self.generic_name(decl, resolved)
        return self._named(name, lambda: self._build_record(decl, name, bindings))

    def _resolve_alias(self, decl: TypeDecl, args: list[ast.expr], ctx: _Context) -> SchemaNode:
        if decl.qualname in self._aliases_in_progress:
            self._fault(f"type alias {decl.qualname} refers to itself; using an opaque object", ctx.location)
            return SchemaNode.opaque()
        resolved = [self._resolve(a, ctx) for a in args]
        bindings = dict(zip(decl.type_params, resolved))
        self._aliases_in_progress.add(decl.qualname)
        try:
            return self._resolve(decl.value, _Context(decl.module, bindings, ctx.location))
        finally:
            self._aliases_in_progress.discard(decl.qualname)

    def _named(self, name: str, build: Callable[[], SchemaNode]) -> SchemaNode:
        """Build a named definition once; cycles and repeats become references."""
        if name in self.definitions or name in self._in_progress:
            return SchemaNode.reference(name)
        self._in_progress.add(name)
        try:
            node = build()
        finally:
            self._in_progress.discard(name)
        self.definitions[name] = node
        return SchemaNode.reference(name)

    def _build_enum(self, decl: TypeDecl, name: str) -> SchemaNode:
        is_str_enum = any(
            dotted_name(b).rpartition(".")[2] in ("StrEnum", "str") for b in decl.bases
        )
        values: list[Any] = []
        names: list[str] = []
        last_int = 0
        for stmt in decl.body:
            if not (isinstance(stmt, ast.Assign) and len(stmt.targets) == 1 and isinstance(stmt.targets[0], ast.Name)):
                continue
            member = stmt.targets[0].id
            if member.startswith("_"):
                continue
            if isinstance(stmt.value, ast.Call) and dotted_name(stmt.value.func).rpartition(".")[2] == "auto":
                if is_str_enum:
                    value: Any = member.lower()
                else:
                    last_int += 1
                    value = last_int
            else:
                value = _literal(stmt.value)
                if value is None:
                    self._fault(f"enum member {decl.qualname}.{member} has no literal value", self._where(decl, stmt))
                    continue
                if isinstance(value, tuple):
                    value = value[0] if value else member
                if isinstance(value, int) and not isinstance(value, bool):
                    last_int = value
            values.append(value)
            names.append(member)

        kind = _enum_type(values)
        if kind == "string":
            values = [v if isinstance(v, str) else str(v) for v in values]
        return SchemaNode(
            name=name,
            kind=SchemaKind.ENUM,
            type=kind,
            enum=values,
            enum_names=names,
            description=describe_docstring(decl.docstring),
        )

    def _build_record(self, decl: TypeDecl, name: str, bindings: dict[str, SchemaNode]) -> SchemaNode:
        properties: dict[str, Property] = {}
        required: list[str] = []
        self._collect_fields(decl, _Context(decl.module, bindings), properties, required, {decl.qualname})
        return SchemaNode(
            name=name,
            kind=SchemaKind.OBJECT,
            type="object",
            properties=list(properties.values()),
            required=[r for r in required if r in properties],
            description=describe_docstring(decl.docstring),
        )

    def _collect_fields(
        self,
        decl: TypeDecl,
        ctx: _Context,
        properties: dict[str, Property],
        required: list[str],
        seen: set[str],
    ) -> None:
        """Add the fields of ``decl`` (bases first) to ``properties``."""
        for base in decl.bases:
            self._embed_base(base, ctx, properties, required, seen)

        node = decl.node
        total = not any(
            kw.arg == "total" and isinstance(kw.value, ast.Constant) and kw.value.value is False
            for kw in getattr(node, "keywords", [])
        )
        body = decl.body
        for index, stmt in enumerate(body):
            if not (isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name)):
                continue
            field_name = stmt.target.id
            if field_name.startswith("_") or self._is_classvar(stmt.annotation, ctx):
                continue

            where = self._where(decl, stmt)
            comment = decl.module.comments.get(stmt.end_lineno or stmt.lineno) or decl.module.comments.get(stmt.lineno, "")
            overrides = parse_field_overrides(comment)
            for option in overrides.unknown:
                self._fault(f"unknown field option {option!r} on {decl.qualname}.{field_name}", where)
            if overrides.ignore:
                properties.pop(field_name, None)
                if field_name in required:
                    required.remove(field_name)
                continue

            info = _field_call_info(stmt.value)
            inner, optional = self._split_optional(stmt.annotation, ctx)
            schema = self._resolve(inner, ctx.at(where))
            if overrides.format and schema.kind == SchemaKind.PRIMITIVE:
                schema = schema.model_copy(update={"format": overrides.format})

            description = overrides.description or info["description"] or self._attribute_doc(body, index)
            example = info["example"]
            if overrides.example is not None:
                example = self._coerce_example(overrides.example, schema, where)

            properties[field_name] = Property(
                name=field_name,
                schema=schema,
                alias=overrides.rename or info["alias"],
                description=description,
                example=example,
            )
            is_required = overrides.required or (total and not optional and not info["has_default"])
            if is_required and field_name not in required:
                required.append(field_name)
            elif not is_required and field_name in required:
                required.remove(field_name)

    def _embed_base(
        self,
        base: ast.expr,
        ctx: _Context,
        properties: dict[str, Property],
        required: list[str],
        seen: set[str],
    ) -> None:
        target = base.value if isinstance(base, ast.Subscript) else base
        dotted = dotted_name(target)
        if not dotted or dotted.rpartition(".")[2] in _NON_EMBEDDED:
            return
        base_decl = self.catalog.lookup(dotted, ctx.module, suffix_match=False)
        if base_decl is None or base_decl.kind != RECORD or base_decl.qualname in seen:
            logger.debug("Base class %s is not embedded", dotted)
            return
        args = _subscript_args(base) if isinstance(base, ast.Subscript) else []
        resolved = [self._resolve(a, ctx) for a in args]
        bound = resolved + [SchemaNode.opaque()] * (len(base_decl.type_params) - len(resolved))
        base_ctx = _Context(base_decl.module, dict(zip(base_decl.type_params, bound)), ctx.location)
        self._collect_fields(base_decl, base_ctx, properties, required, seen | {base_decl.qualname})

    def _is_classvar(self, annotation: ast.expr, ctx: _Context) -> bool:
        target = annotation.value if isinstance(annotation, ast.Subscript) else annotation
        return self._canonical(dotted_name(target), ctx.module).rpartition(".")[2] == "ClassVar"

    @staticmethod
    def _attribute_doc(body: list[ast.stmt], index: int) -> str:
        """Description from a string literal directly below the field."""
        if index + 1 < len(body):
            following = body[index + 1]
            if (
                isinstance(following, ast.Expr)
                and isinstance(following.value, ast.Constant)
                and isinstance(following.value.value, str)
            ):
                return following.value.value.strip()
        return ""

    def _coerce_example(self, raw: str, schema: SchemaNode, where: str) -> Any:
        target = self.dereference(schema)
        try:
            if target.kind == SchemaKind.ARRAY and target.items is not None:
                return [self._coerce_example(part.strip(), target.items, where) for part in raw.split(",")]
            kind = target.type
            if kind == "integer":
                return int(raw)
            if kind == "number":
                return float(raw)
            if kind == "boolean":
                return raw.lower() in ("true", "1", "yes")
        except ValueError:
            self._fault(f"example {raw!r} does not match type {target.type}", where)
        return raw

    @staticmethod
    def _where(decl: TypeDecl, stmt: ast.stmt) -> str:
        return f"{decl.module.path}:{stmt.lineno}"

    def _fault(self, message: str, location: str = "") -> None:
        fault = Fault(kind=FaultKind.RESOLUTION, message=message, location=location)
        logger.warning("%s", fault)
        self.faults.append(fault)
