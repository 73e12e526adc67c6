"""Accumulate one handler's directives into an Operation.

One builder per annotated handler. Directives arrive in docstring order;
parameters keep that order and responses are last-wins per status code.
Malformed directives are recorded as faults and skipped; a handler without
a usable @Router yields no Operation at all.
"""

from __future__ import annotations

import json
import logging
import re
from http import HTTPStatus
from typing import Any, Callable

from .directives import Directive, Tag
from .errors import Fault, FaultKind
from .loader import SourceModule
from .models import HeaderSpec, Operation, ParameterSpec, ResponseSpec, SchemaKind, SchemaNode, SourceLocation
from .resolver import TypeResolver

logger = logging.getLogger(__name__)

_METHODS = ("get", "put", "post", "delete", "options", "head", "patch")

_LOCATIONS: dict[str, str] = {
    "query": "query",
    "path": "path",
    "header": "header",
    "body": "body",
    "formdata": "formData",
    "form": "formData",
}

# @Accept / @Produce shorthands
MIME_ALIASES: dict[str, str] = {
    "json": "application/json",
    "xml": "text/xml",
    "plain": "text/plain",
    "html": "text/html",
    "mpfd": "multipart/form-data",
    "x-www-form-urlencoded": "application/x-www-form-urlencoded",
    "json-api": "application/vnd.api+json",
    "json-stream": "application/x-json-stream",
    "octet-stream": "application/octet-stream",
    "png": "image/png",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
}

_RESPONSE_KINDS = {"object", "array", "string", "integer", "number", "boolean", "primitive", "file"}

_PARAM_RE = re.compile(r'^(\S+)\s+(\S+)\s+(\S+)\s+(\S+)(?:\s+"((?:[^"\\]|\\.)*)")?\s*(.*)$')
_ATTR_RE = re.compile(r"(\w+)\(([^)]*)\)")
_ROUTER_RE = re.compile(r"^(\S+)\s+\[(\w+)\]$")
_PLACEHOLDER_RE = re.compile(r"\{([^}/]+)\}")
_SECURITY_RE = re.compile(r"^([\w.\-]+)(?:\[([^\]]*)\])?$")


def _split_quoted(text: str) -> tuple[str, str]:
    """Split ``body "description"`` into (body, description)."""
    start = text.find('"')
    if start < 0:
        return text.strip(), ""
    end = text.rfind('"')
    description = text[start + 1:end] if end > start else text[start + 1:]
    return text[:start].strip(), description.replace('\\"', '"')


def _parse_bool(text: str) -> bool | None:
    lowered = text.lower()
    if lowered in ("true", "required", "yes", "1"):
        return True
    if lowered in ("false", "optional", "no", "0"):
        return False
    return None


def _coerce(value: str, type_: str) -> Any:
    value = value.strip()
    if type_ == "integer":
        return int(value)
    if type_ == "number":
        return float(value)
    if type_ == "boolean":
        return value.lower() == "true"
    return value


def _status_text(code: str) -> str:
    try:
        return HTTPStatus(int(code)).phrase
    except ValueError:
        return ""


def default_tag(module: SourceModule | None) -> str:
    """Grouping used when a handler has no @Tags: its module's last name segment."""
    if module is None:
        return ""
    return module.short_name


class OperationBuilder:
    """Builds one Operation from the directives of one handler docstring."""

    def __init__(
        self,
        handler: str,
        resolver: TypeResolver,
        module: SourceModule | None = None,
        location: SourceLocation | None = None,
        faults: list[Fault] | None = None,
    ):
        self.handler = handler
        self.resolver = resolver
        self.module = module
        self.location = location or SourceLocation()
        self.faults = faults if faults is not None else []
        self.operation = Operation(location=self.location)
        self._descriptions: list[str] = []
        self._headers: list[tuple[str, str, HeaderSpec]] = []
        self._router_seen = False
        self._router_ok = False
        self._handlers: dict[Tag, Callable[[Directive], None]] = {
            Tag.UNKNOWN: self._free_text,
            Tag.DESCRIPTION: self._description,
            Tag.SUMMARY: self._summary,
            Tag.ID: self._id,
            Tag.TAGS: self._tags,
            Tag.ACCEPT: self._accept,
            Tag.PRODUCE: self._produce,
            Tag.PARAM: self._param,
            Tag.SUCCESS: self._response,
            Tag.FAILURE: self._response,
            Tag.RESPONSE: self._response,
            Tag.HEADER: self._header,
            Tag.ROUTER: self._router,
            Tag.SECURITY: self._security,
            Tag.DEPRECATED: self._deprecated,
            Tag.EXTENSION: self._extension,
        }

    def add(self, directive: Directive) -> None:
        handler = self._handlers.get(directive.tag)
        if handler is None:
            # a general-info tag inside a handler docstring: keep it as prose
            self._free_text(directive)
            return
        handler(directive)

    def add_all(self, directives: list[Directive]) -> OperationBuilder:
        for directive in directives:
            self.add(directive)
        return self

    def finalize(self) -> Operation | None:
        """Complete the Operation, or return None when the handler has no route."""
        if not self._router_ok:
            if not self._router_seen:
                self._fault(f"handler {self.handler} has no @Router directive; skipped", self.location)
            return None

        op = self.operation
        op.description = "\n".join(self._descriptions).strip()
        if not op.id:
            op.id = self.handler
        if not op.tags:
            tag = default_tag(self.module)
            op.tags = [tag] if tag else []

        self._apply_headers()

        declared = {p.name for p in op.parameters if p.location == "path"}
        for placeholder in _PLACEHOLDER_RE.findall(op.path):
            if placeholder not in declared:
                self._fault(
                    f"path {op.path} declares {{{placeholder}}} but {self.handler} has no "
                    f"path parameter named {placeholder!r}",
                    self.location,
                )
        if not op.responses:
            logger.debug("Operation %s %s declares no responses", op.method, op.path)
        return op

    # ------------------------------------------------------------------
    # Directive handlers
    # ------------------------------------------------------------------

    def _free_text(self, d: Directive) -> None:
        if d.text:
            self._descriptions.append(d.text)

    def _description(self, d: Directive) -> None:
        if d.args:
            self._descriptions.append(d.args)

    def _summary(self, d: Directive) -> None:
        self.operation.summary = d.args

    def _id(self, d: Directive) -> None:
        if not d.args:
            self._fault("@ID needs a value", d.location)
            return
        self.operation.id = d.args.split()[0]

    def _tags(self, d: Directive) -> None:
        for tag in d.args.split(","):
            tag = tag.strip()
            if tag and tag not in self.operation.tags:
                self.operation.tags.append(tag)

    def _mimes(self, d: Directive) -> list[str]:
        mimes = []
        for alias in d.args.split(","):
            alias = alias.strip()
            if not alias:
                continue
            mime = MIME_ALIASES.get(alias.lower())
            if mime is None and "/" in alias:
                mime = alias
            if mime is None:
                self._fault(f"{d.keyword} {alias!r} is not a known mime type", d.location)
                continue
            mimes.append(mime)
        return mimes

    def _accept(self, d: Directive) -> None:
        for mime in self._mimes(d):
            if mime not in self.operation.consumes:
                self.operation.consumes.append(mime)

    def _produce(self, d: Directive) -> None:
        for mime in self._mimes(d):
            if mime not in self.operation.produces:
                self.operation.produces.append(mime)

    def _param(self, d: Directive) -> None:
        match = _PARAM_RE.match(d.args)
        if not match:
            self._fault(
                f"malformed @Param {d.args!r}; expected: name location type required \"description\"",
                d.location,
            )
            return
        name, raw_location, type_text, raw_required, description, rest = match.groups()
        location = _LOCATIONS.get(raw_location.lower())
        if location is None:
            self._fault(f"@Param {name}: unknown location {raw_location!r}", d.location)
            return
        required = _parse_bool(raw_required)
        if required is None:
            self._fault(f"@Param {name}: required flag {raw_required!r} is not true/false", d.location)
            return
        if location == "path":
            required = True
        if description is None:
            description = _ATTR_RE.sub("", rest or "").strip()

        where = str(d.location)
        schema = self.resolver.resolve_text(type_text, self.module, where)
        param = ParameterSpec(
            name=name,
            location=location,
            schema=schema,
            required=required,
            description=description.replace('\\"', '"'),
        )
        if location != "body":
            param.schema_ = self._simple_param_schema(param, schema, d)
        self._param_attributes(param, rest or "", d)

        for i, existing in enumerate(self.operation.parameters):
            if existing.name == name and existing.location == location:
                self.operation.parameters[i] = param
                return
        self.operation.parameters.append(param)

    def _simple_param_schema(self, param: ParameterSpec, schema: SchemaNode, d: Directive) -> SchemaNode:
        """Non-body parameters carry primitives, arrays of primitives or enums."""
        target = self.resolver.dereference(schema)
        if target.kind == SchemaKind.ENUM:
            param.enum = list(target.enum)
            return SchemaNode.primitive(target.type)
        if target.kind == SchemaKind.ARRAY and target.items is not None:
            items = self.resolver.dereference(target.items)
            if items.kind == SchemaKind.ENUM:
                return SchemaNode.array(SchemaNode(kind=SchemaKind.ENUM, type=items.type, enum=list(items.enum)))
            if items.kind == SchemaKind.PRIMITIVE:
                return target
        if target.kind == SchemaKind.PRIMITIVE:
            return target
        self._fault(
            f"@Param {param.name}: {param.location} parameters must be primitive or arrays of primitives; "
            "using string",
            d.location,
        )
        return SchemaNode.primitive("string")

    def _param_attributes(self, param: ParameterSpec, text: str, d: Directive) -> None:
        type_ = param.schema_.items.type if param.schema_.kind == SchemaKind.ARRAY and param.schema_.items else param.schema_.type
        for key, value in _ATTR_RE.findall(text):
            key = key.lower()
            try:
                if key == "default":
                    param.default = _coerce(value, type_)
                elif key == "enums":
                    param.enum = [_coerce(v, type_) for v in value.split(",") if v.strip()]
                elif key == "minimum":
                    param.minimum = float(value)
                elif key == "maximum":
                    param.maximum = float(value)
                elif key == "minlength":
                    param.min_length = int(value)
                elif key == "maxlength":
                    param.max_length = int(value)
                elif key == "format":
                    param.format = value.strip()
                elif key == "collectionformat":
                    param.collection_format = value.strip()
                elif key == "example":
                    param.example = _coerce(value, type_)
                else:
                    self._fault(f"@Param {param.name}: unknown attribute {key}()", d.location)
            except ValueError:
                self._fault(f"@Param {param.name}: {key}({value}) does not match type {type_}", d.location)

    def _response(self, d: Directive) -> None:
        head, description = _split_quoted(d.args)
        codes_text, _, rest = head.partition(" ")
        rest = rest.strip()
        if not codes_text:
            self._fault(f"malformed {d.keyword}: missing status code", d.location)
            return

        schema: SchemaNode | None = None
        if rest:
            kind_match = re.match(r"^\{(\w+)\}\s*(.*)$", rest)
            if not kind_match:
                self._fault(f"malformed {d.keyword} {d.args!r}; expected: code {{kind}} type \"description\"", d.location)
                return
            kind, type_text = kind_match.group(1).lower(), kind_match.group(2).strip()
            if kind not in _RESPONSE_KINDS:
                self._fault(f"{d.keyword}: unknown response kind {{{kind}}}", d.location)
                return
            type_text = type_text or (kind if kind not in ("object", "array", "primitive") else "object")
            schema = self.resolver.resolve_text(type_text, self.module, str(d.location))
            if kind == "array":
                schema = SchemaNode.array(schema)

        for code in codes_text.split(","):
            code = code.strip().lower()
            if code != "default" and not code.isdigit():
                self._fault(f"{d.keyword}: {code!r} is not a status code", d.location)
                continue
            self.operation.responses[code] = ResponseSpec(
                code=code,
                description=description or _status_text(code),
                schema=schema,
            )

    def _header(self, d: Directive) -> None:
        head, description = _split_quoted(d.args)
        match = re.match(r"^(\S+)\s+\{(\w+)\}\s+(\S+)$", head)
        if not match:
            self._fault(f"malformed @Header {d.args!r}; expected: code|all {{type}} name \"description\"", d.location)
            return
        codes, type_, name = match.groups()
        header = HeaderSpec(type=type_.lower(), description=description)
        for code in codes.split(","):
            self._headers.append((code.strip().lower(), name, header))

    def _apply_headers(self) -> None:
        for code, name, header in self._headers:
            targets = list(self.operation.responses.values()) if code == "all" else [self.operation.responses.get(code)]
            if not any(targets):
                self._fault(f"@Header {name}: no response declared for code {code}", self.location)
                continue
            for response in targets:
                if response is not None:
                    response.headers[name] = header

    def _router(self, d: Directive) -> None:
        self._router_seen = True
        match = _ROUTER_RE.match(d.args.strip())
        if not match or match.group(2).lower() not in _METHODS:
            self._fault(f"malformed @Router {d.args!r}; expected: /path [method]", d.location)
            return
        if self._router_ok:
            self._fault(f"{self.handler} declares more than one @Router; keeping the last", d.location)
        self.operation.path = match.group(1)
        self.operation.method = match.group(2).lower()
        self._router_ok = True

    def _security(self, d: Directive) -> None:
        for alternative in d.args.split("||"):
            requirement: dict[str, list[str]] = {}
            for part in alternative.split("&&"):
                part = part.strip()
                if not part:
                    continue
                match = _SECURITY_RE.match(part.replace(" ", ""))
                if not match:
                    self._fault(f"malformed @Security {part!r}", d.location)
                    continue
                scopes = [s for s in (match.group(2) or "").split(",") if s]
                requirement[match.group(1)] = scopes
            if requirement:
                self.operation.security.append(requirement)

    def _deprecated(self, d: Directive) -> None:
        self.operation.deprecated = True

    def _extension(self, d: Directive) -> None:
        key = d.keyword.lstrip("@")
        try:
            value = json.loads(d.args) if d.args else True
        except json.JSONDecodeError:
            value = d.args
        self.operation.extensions[key] = value

    def _fault(self, message: str, location: SourceLocation) -> None:
        fault = Fault(kind=FaultKind.DIRECTIVE, message=message, location=str(location))
        logger.warning("%s", fault)
        self.faults.append(fault)
