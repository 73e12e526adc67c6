"""Tests for the operation builder."""

from pyswag.directives import tokenize_block
from pyswag.errors import FaultKind
from pyswag.models import SchemaKind, SourceLocation
from pyswag.operation import OperationBuilder

from conftest import make_module, make_resolver

_MODELS = make_module("""
    from enum import Enum

    class Account:
        id: int

    class APIError:
        message: str

    class Status(str, Enum):
        ACTIVE = "active"
        CLOSED = "closed"
""", name="app.models")

_HANDLERS = make_module("from app.models import Account, APIError, Status\n", name="app.accounts")


def _build(doc: str, handler: str = "show_account"):
    resolver = make_resolver(_MODELS, _HANDLERS)
    builder = OperationBuilder(handler, resolver, _HANDLERS, SourceLocation(path="app/accounts.py", line=5))
    return builder.add_all(tokenize_block(doc, "app/accounts.py", 6)).finalize(), builder.faults, resolver


class TestRouter:
    def test_basic_operation(self):
        op, faults, _ = _build("""
            @Summary  Show an account
            @Param    id  path  int  true  "Account ID"
            @Success  200  {object}  Account
            @Router   /accounts/{id} [get]
        """)
        assert faults == []
        assert (op.method, op.path) == ("get", "/accounts/{id}")
        assert op.summary == "Show an account"
        assert op.id == "show_account"

    def test_missing_router_yields_nothing(self):
        op, faults, _ = _build("@Summary Helper")
        assert op is None
        assert [f.kind for f in faults] == [FaultKind.DIRECTIVE]

    def test_malformed_router(self):
        op, faults, _ = _build("@Router /accounts [fetch]")
        assert op is None
        assert "malformed @Router" in faults[0].message

    def test_explicit_id(self):
        op, _, _ = _build("@ID getAccount\n@Router /accounts/{id} [get]\n@Param id path int true \"id\"")
        assert op.id == "getAccount"


class TestTagsAndDescription:
    def test_default_tag_is_module_name(self):
        op, _, _ = _build("@Router /accounts [get]")
        assert op.tags == ["accounts"]

    def test_explicit_tags(self):
        op, _, _ = _build("@Tags accounts, admin\n@Router /accounts [get]")
        assert op.tags == ["accounts", "admin"]

    def test_free_text_and_description_joined(self):
        op, _, _ = _build("Lists every account.\n\n@Description Paged.\n@Router /accounts [get]")
        assert op.description == "Lists every account.\nPaged."

    def test_unknown_tag_after_router_kept_as_text(self):
        op, faults, _ = _build("@Router /x [get]\n@Author jane")
        assert faults == []
        assert op.path == "/x"
        assert op.description == "@Author jane"

    def test_unknown_tag_after_param_kept_as_text(self):
        op, faults, _ = _build('@Param id path int true "ID"\n@internal not public\n@Router /a/{id} [get]')
        assert faults == []
        assert op.parameters[0].description == "ID"
        assert op.description == "@internal not public"


class TestMimeTypes:
    def test_aliases(self):
        op, _, _ = _build("@Accept json, mpfd\n@Produce application/xml\n@Router /a [post]")
        assert op.consumes == ["application/json", "multipart/form-data"]
        assert op.produces == ["application/xml"]

    def test_unknown_alias(self):
        op, faults, _ = _build("@Accept jsonish\n@Router /a [post]")
        assert op.consumes == []
        assert len(faults) == 1


class TestParams:
    def test_order_preserved(self):
        op, _, _ = _build("""
            @Param  b  query  string  false  "second letter"
            @Param  a  query  string  false  "first letter"
            @Router /letters [get]
        """)
        assert [p.name for p in op.parameters] == ["b", "a"]

    def test_path_param_forced_required(self):
        op, _, _ = _build('@Param id path int false "Account ID"\n@Router /accounts/{id} [get]')
        assert op.parameters[0].required

    def test_body_param_reference(self):
        op, _, resolver = _build('@Param account body Account true "New account"\n@Router /accounts [post]')
        param = op.parameters[0]
        assert param.location == "body"
        assert param.schema_.ref == "models.Account"
        assert "models.Account" in resolver.definitions

    def test_form_alias(self):
        op, _, _ = _build('@Param file form file true "upload"\n@Router /upload [post]')
        assert op.parameters[0].location == "formData"
        assert op.parameters[0].schema_.type == "file"

    def test_enum_query_param(self):
        op, faults, _ = _build('@Param status query Status false "filter"\n@Router /accounts [get]')
        param = op.parameters[0]
        assert faults == []
        assert param.schema_.type == "string"
        assert param.enum == ["active", "closed"]

    def test_array_query_param(self):
        op, _, _ = _build('@Param ids query []int false "ids" collectionFormat(multi)\n@Router /a [get]')
        param = op.parameters[0]
        assert param.schema_.kind == SchemaKind.ARRAY
        assert param.collection_format == "multi"

    def test_attributes(self):
        op, faults, _ = _build(
            '@Param page query int false "page" default(1) minimum(1) maximum(100) example(3)\n@Router /a [get]'
        )
        param = op.parameters[0]
        assert faults == []
        assert param.default == 1
        assert (param.minimum, param.maximum) == (1.0, 100.0)
        assert param.example == 3

    def test_unquoted_description(self):
        op, faults, _ = _build("@Param id path int true Account ID default(1)\n@Router /a/{id} [get]")
        assert faults == []
        assert op.parameters[0].description == "Account ID"
        assert op.parameters[0].default == 1

    def test_record_query_param_rejected(self):
        op, faults, _ = _build('@Param filter query Account false "filter"\n@Router /a [get]')
        assert op.parameters[0].schema_.type == "string"
        assert len(faults) == 1

    def test_malformed(self):
        op, faults, _ = _build("@Param onlyname\n@Router /a [get]")
        assert op.parameters == []
        assert "malformed @Param" in faults[0].message

    def test_unknown_location(self):
        op, faults, _ = _build('@Param id cookie string true "session"\n@Router /a [get]')
        assert op.parameters == []
        assert len(faults) == 1

    def test_missing_path_param_is_fault(self):
        op, faults, _ = _build('@Param q query string false "q"\n@Router /items/{id} [get]')
        assert op is not None
        assert len(faults) == 1
        assert "{id}" in faults[0].message


class TestResponses:
    def test_last_wins_per_code(self):
        op, _, _ = _build("""
            @Success  200  {object}  Account  "first"
            @Success  200  {string}  string   "second"
            @Router   /a [get]
        """)
        assert list(op.responses) == ["200"]
        assert op.responses["200"].description == "second"
        assert op.responses["200"].schema_.type == "string"

    def test_default_description_is_status_phrase(self):
        op, _, _ = _build("@Failure 404 {object} APIError\n@Router /a [get]")
        assert op.responses["404"].description == "Not Found"

    def test_array_kind(self):
        op, _, _ = _build("@Success 200 {array} Account\n@Router /a [get]")
        schema = op.responses["200"].schema_
        assert schema.kind == SchemaKind.ARRAY
        assert schema.items.ref == "models.Account"

    def test_no_body(self):
        op, _, _ = _build('@Success 204 "No Content"\n@Router /a [delete]')
        assert op.responses["204"].schema_ is None
        assert op.responses["204"].description == "No Content"

    def test_several_codes(self):
        op, _, _ = _build("@Failure 400,404 {object} APIError\n@Router /a [get]")
        assert sorted(op.responses) == ["400", "404"]

    def test_header(self):
        op, faults, _ = _build("""
            @Success 200 {string} string "ok"
            @Header  200 {integer} X-Rate-Limit "requests left"
            @Router  /a [get]
        """)
        assert faults == []
        header = op.responses["200"].headers["X-Rate-Limit"]
        assert (header.type, header.description) == ("integer", "requests left")

    def test_header_without_response(self):
        _, faults, _ = _build('@Header 500 {string} X-Trace "trace id"\n@Router /a [get]')
        assert len(faults) == 1


class TestSecurityAndExtensions:
    def test_alternatives_and_combinations(self):
        op, _, _ = _build("@Security OAuth2[write, admin] || ApiKey && Basic\n@Router /a [get]")
        assert op.security == [{"OAuth2": ["write", "admin"]}, {"ApiKey": [], "Basic": []}]

    def test_deprecated(self):
        op, _, _ = _build("@Deprecated\n@Router /a [get]")
        assert op.deprecated

    def test_extension(self):
        op, _, _ = _build('@x-codegen {"skip": true}\n@Router /a [get]')
        assert op.extensions == {"x-codegen": {"skip": True}}
