"""Data model shared by the resolver, operation builder and assembler.

Everything here is naming-agnostic: property names are stored exactly as
declared and only the assembler maps them to their emitted form.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SourceLocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str = ""
    line: int = 0

    def __str__(self) -> str:
        if not self.path:
            return ""
        return f"{self.path}:{self.line}"


class SchemaKind(str, Enum):
    PRIMITIVE = "primitive"
    OBJECT = "object"
    ARRAY = "array"
    MAP = "map"
    ENUM = "enum"
    REFERENCE = "reference"


class SchemaNode(BaseModel):
    """Normalized, language-agnostic description of one data type."""

    name: str = ""
    kind: SchemaKind = SchemaKind.OBJECT
    type: str = ""
    format: str = ""
    properties: list[Property] = Field(default_factory=list)
    required: list[str] = Field(default_factory=list)
    items: SchemaNode | None = None
    additional: SchemaNode | None = None
    enum: list[Any] = Field(default_factory=list)
    enum_names: list[str] = Field(default_factory=list)
    ref: str = ""
    description: str = ""

    @classmethod
    def primitive(cls, type_: str, format_: str = "") -> SchemaNode:
        return cls(kind=SchemaKind.PRIMITIVE, type=type_, format=format_)

    @classmethod
    def opaque(cls) -> SchemaNode:
        return cls(kind=SchemaKind.OBJECT, type="object")

    @classmethod
    def array(cls, items: SchemaNode) -> SchemaNode:
        return cls(kind=SchemaKind.ARRAY, type="array", items=items)

    @classmethod
    def mapping(cls, value: SchemaNode) -> SchemaNode:
        return cls(kind=SchemaKind.MAP, type="object", additional=value)

    @classmethod
    def reference(cls, name: str) -> SchemaNode:
        return cls(kind=SchemaKind.REFERENCE, ref=name)

    @property
    def is_reference(self) -> bool:
        return self.kind == SchemaKind.REFERENCE


class Property(BaseModel):
    name: str
    schema_: SchemaNode = Field(alias="schema")
    alias: str = ""
    description: str = ""
    example: Any = None

    model_config = ConfigDict(populate_by_name=True)


class HeaderSpec(BaseModel):
    type: str = "string"
    description: str = ""


class ParameterSpec(BaseModel):
    name: str
    location: str
    schema_: SchemaNode = Field(alias="schema")
    required: bool = False
    description: str = ""
    default: Any = None
    enum: list[Any] = Field(default_factory=list)
    minimum: float | None = None
    maximum: float | None = None
    min_length: int | None = None
    max_length: int | None = None
    format: str = ""
    collection_format: str = ""
    example: Any = None

    model_config = ConfigDict(populate_by_name=True)


class ResponseSpec(BaseModel):
    code: str
    description: str = ""
    schema_: SchemaNode | None = Field(default=None, alias="schema")
    headers: dict[str, HeaderSpec] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)


class Operation(BaseModel):
    """The documented contract of one handler."""

    id: str = ""
    method: str = ""
    path: str = ""
    tags: list[str] = Field(default_factory=list)
    summary: str = ""
    description: str = ""
    consumes: list[str] = Field(default_factory=list)
    produces: list[str] = Field(default_factory=list)
    parameters: list[ParameterSpec] = Field(default_factory=list)
    responses: dict[str, ResponseSpec] = Field(default_factory=dict)
    security: list[dict[str, list[str]]] = Field(default_factory=list)
    deprecated: bool = False
    extensions: dict[str, Any] = Field(default_factory=dict)
    location: SourceLocation = Field(default_factory=SourceLocation)


class SecurityScheme(BaseModel):
    name: str
    type: str
    flow: str = ""
    location: str = ""
    param_name: str = ""
    token_url: str = ""
    authorization_url: str = ""
    scopes: dict[str, str] = Field(default_factory=dict)
    description: str = ""


class TagSpec(BaseModel):
    name: str
    description: str = ""
    docs_url: str = ""
    docs_description: str = ""


class ApiInfo(BaseModel):
    """General API information gathered from the entry module docstring."""

    title: str = ""
    version: str = ""
    description: str = ""
    terms_of_service: str = ""
    contact: dict[str, str] = Field(default_factory=dict)
    license: dict[str, str] = Field(default_factory=dict)
    host: str = ""
    base_path: str = ""
    schemes: list[str] = Field(default_factory=list)
    tags: list[TagSpec] = Field(default_factory=list)
    security_definitions: list[SecurityScheme] = Field(default_factory=list)
    extensions: dict[str, Any] = Field(default_factory=dict)


SchemaNode.model_rebuild()
