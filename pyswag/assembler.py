"""Assemble the Swagger 2.0 document.

Merges general info, operations and resolved definitions into one dict.
This is the only place the property naming strategy is applied; paths,
parameter names and definition names are emitted exactly as declared.

assemble() is a pure function of its inputs: it neither mutates them nor
keeps anything between calls.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from .errors import Fault, FaultKind
from .models import ApiInfo, Operation, ParameterSpec, Property, ResponseSpec, SchemaKind, SchemaNode, SecurityScheme
from .naming import NamingStrategy, get_strategy

logger = logging.getLogger(__name__)

SWAGGER_VERSION = "2.0"
DEFINITIONS_PREFIX = "#/definitions/"

# Emission order of methods within one path
_METHOD_ORDER = ("get", "put", "post", "delete", "options", "head", "patch")

Rename = Callable[[str], str]


def _method_index(method: str) -> int:
    return _METHOD_ORDER.index(method) if method in _METHOD_ORDER else len(_METHOD_ORDER)


def _code_key(code: str) -> tuple[int, str]:
    return (0, code.zfill(3)) if code.isdigit() else (1, code)


def emitted_name(prop: Property, rename: Rename) -> str:
    """An explicit rename wins over the naming strategy."""
    return prop.alias or rename(prop.name)


def render_schema(node: SchemaNode, rename: Rename) -> dict[str, Any]:
    """Render one schema node, applying ``rename`` to object property names."""
    if node.kind == SchemaKind.REFERENCE:
        return {"$ref": DEFINITIONS_PREFIX + node.ref}
    if node.kind == SchemaKind.PRIMITIVE:
        out: dict[str, Any] = {"type": node.type}
        if node.format:
            out["format"] = node.format
        return out
    if node.kind == SchemaKind.ARRAY:
        items = render_schema(node.items, rename) if node.items is not None else {"type": "object"}
        return {"type": "array", "items": items}
    if node.kind == SchemaKind.MAP:
        value = render_schema(node.additional, rename) if node.additional is not None else {"type": "object"}
        return {"type": "object", "additionalProperties": value}
    if node.kind == SchemaKind.ENUM:
        out = {"type": node.type or "string", "enum": list(node.enum)}
        if node.format:
            out["format"] = node.format
        if node.enum_names:
            out["x-enum-varnames"] = list(node.enum_names)
        return out

    out = {"type": "object"}
    if not node.properties:
        return out
    names = {p.name: emitted_name(p, rename) for p in node.properties}
    required = [names[r] for r in node.required if r in names]
    if required:
        out["required"] = required
    out["properties"] = {names[p.name]: _render_property(p, rename) for p in node.properties}
    return out


def _render_property(prop: Property, rename: Rename) -> dict[str, Any]:
    schema = render_schema(prop.schema_, rename)
    extra: dict[str, Any] = {}
    if prop.description:
        extra["description"] = prop.description
    if prop.example is not None:
        extra["example"] = prop.example
    if not extra:
        return schema
    if "$ref" in schema:
        # siblings of $ref are ignored by Swagger 2.0 tooling
        return {**extra, "allOf": [schema]}
    return {**schema, **extra}


def render_definition(node: SchemaNode, rename: Rename) -> dict[str, Any]:
    out = render_schema(node, rename)
    if node.description:
        out = {"description": node.description, **out}
    return out


def _render_parameter(param: ParameterSpec, rename: Rename) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if param.location == "body":
        out["description"] = param.description
        out["name"] = param.name
        out["in"] = "body"
        out["required"] = param.required
        out["schema"] = render_schema(param.schema_, rename)
        return out

    schema = render_schema(param.schema_, rename)
    out["type"] = schema.get("type", "string")
    if param.format or schema.get("format"):
        out["format"] = param.format or schema["format"]
    if "items" in schema:
        out["items"] = schema["items"]
        out["collectionFormat"] = param.collection_format or "csv"
    elif param.collection_format:
        out["collectionFormat"] = param.collection_format
    if param.enum:
        out["enum"] = list(param.enum)
    if param.default is not None:
        out["default"] = param.default
    if param.minimum is not None:
        out["minimum"] = param.minimum
    if param.maximum is not None:
        out["maximum"] = param.maximum
    if param.min_length is not None:
        out["minLength"] = param.min_length
    if param.max_length is not None:
        out["maxLength"] = param.max_length
    if param.example is not None:
        out["x-example"] = param.example
    out["description"] = param.description
    out["name"] = param.name
    out["in"] = param.location
    out["required"] = param.required
    return out


def _render_response(response: ResponseSpec, rename: Rename) -> dict[str, Any]:
    out: dict[str, Any] = {"description": response.description}
    if response.schema_ is not None:
        out["schema"] = render_schema(response.schema_, rename)
    if response.headers:
        out["headers"] = {
            name: {"type": header.type, "description": header.description}
            for name, header in sorted(response.headers.items())
        }
    return out


def render_operation(op: Operation, rename: Rename) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if op.description:
        out["description"] = op.description
    if op.consumes:
        out["consumes"] = list(op.consumes)
    if op.produces:
        out["produces"] = list(op.produces)
    if op.tags:
        out["tags"] = list(op.tags)
    if op.summary:
        out["summary"] = op.summary
    if op.id:
        out["operationId"] = op.id
    if op.parameters:
        out["parameters"] = [_render_parameter(p, rename) for p in op.parameters]
    out["responses"] = {
        code: _render_response(op.responses[code], rename)
        for code in sorted(op.responses, key=_code_key)
    }
    if op.security:
        out["security"] = [dict(req) for req in op.security]
    if op.deprecated:
        out["deprecated"] = True
    for key in sorted(op.extensions):
        out[key] = op.extensions[key]
    return out


def _render_security(scheme: SecurityScheme) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if scheme.description:
        out["description"] = scheme.description
    out["type"] = scheme.type
    if scheme.type == "apiKey":
        out["name"] = scheme.param_name
        out["in"] = scheme.location
    elif scheme.type == "oauth2":
        out["flow"] = scheme.flow
        if scheme.authorization_url:
            out["authorizationUrl"] = scheme.authorization_url
        if scheme.token_url:
            out["tokenUrl"] = scheme.token_url
        out["scopes"] = dict(sorted(scheme.scopes.items()))
    return out


def _render_info(info: ApiInfo) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if info.description:
        out["description"] = info.description
    out["title"] = info.title
    if info.terms_of_service:
        out["termsOfService"] = info.terms_of_service
    out["contact"] = dict(info.contact)
    if info.license:
        out["license"] = dict(info.license)
    out["version"] = info.version
    return out


def _render_tag(tag) -> dict[str, Any]:
    out: dict[str, Any] = {"name": tag.name}
    if tag.description:
        out["description"] = tag.description
    if tag.docs_url:
        docs = {"url": tag.docs_url}
        if tag.docs_description:
            docs["description"] = tag.docs_description
        out["externalDocs"] = docs
    return out


def _collect_refs(value: Any, found: set[str]) -> None:
    if isinstance(value, dict):
        ref = value.get("$ref")
        if isinstance(ref, str) and ref.startswith(DEFINITIONS_PREFIX):
            found.add(ref[len(DEFINITIONS_PREFIX):])
        for item in value.values():
            _collect_refs(item, found)
    elif isinstance(value, list):
        for item in value:
            _collect_refs(item, found)


def _reachable(paths: dict[str, Any], rendered: dict[str, dict[str, Any]]) -> set[str]:
    """Names of the definitions the rendered paths refer to, directly or through other definitions."""
    pending: set[str] = set()
    _collect_refs(paths, pending)
    seen: set[str] = set()
    while pending:
        name = pending.pop()
        if name in seen or name not in rendered:
            continue
        seen.add(name)
        _collect_refs(rendered[name], pending)
    return seen


def assemble(
    info: ApiInfo,
    operations: list[Operation],
    definitions: dict[str, SchemaNode],
    strategy: NamingStrategy | str = NamingStrategy.ORIGINAL,
) -> tuple[dict[str, Any], list[Fault]]:
    """Build the document and return it with the faults found while merging.

    Operations are taken in scan order: when two share a (path, method), the
    later one is kept and a DUPLICATE fault names both. Only definitions
    reachable from the kept operations are emitted.
    """
    rename = get_strategy(strategy)
    faults: list[Fault] = []

    registered: dict[tuple[str, str], Operation] = {}
    for op in operations:
        key = (op.path, op.method)
        previous = registered.get(key)
        if previous is not None:
            fault = Fault(
                kind=FaultKind.DUPLICATE,
                message=(
                    f"{op.method.upper()} {op.path} is documented by both {previous.id} "
                    f"({previous.location}) and {op.id}; keeping {op.id}"
                ),
                location=str(op.location),
            )
            logger.warning("%s", fault)
            faults.append(fault)
        registered[key] = op

    paths: dict[str, dict[str, Any]] = {}
    for path, method in sorted(registered, key=lambda k: (k[0], _method_index(k[1]))):
        paths.setdefault(path, {})[method] = render_operation(registered[(path, method)], rename)

    spec: dict[str, Any] = {"swagger": SWAGGER_VERSION, "info": _render_info(info)}
    if info.schemes:
        spec["schemes"] = list(info.schemes)
    if info.host:
        spec["host"] = info.host
    if info.base_path:
        spec["basePath"] = info.base_path
    spec["paths"] = paths
    rendered = {name: render_definition(node, rename) for name, node in definitions.items()}
    used = _reachable(paths, rendered)
    if used:
        spec["definitions"] = {name: rendered[name] for name in sorted(used)}
    if info.security_definitions:
        spec["securityDefinitions"] = {
            s.name: _render_security(s) for s in sorted(info.security_definitions, key=lambda s: s.name)
        }
    if info.tags:
        spec["tags"] = [_render_tag(t) for t in info.tags]
    for key in sorted(info.extensions):
        spec[key] = info.extensions[key]
    return spec, faults
