"""General API information from the entry module's docstring.

    @title           Accounts API
    @version         1.0
    @description     Manages accounts.
    @host            localhost:8080
    @BasePath        /api/v1

    @securityDefinitions.apikey ApiKeyAuth
    @in              header
    @name            Authorization

Security definitions and tags open a section: the @in/@name/@tokenUrl/
@authorizationUrl/@scope.* and @description directives that follow apply to
the open section until the next one starts.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Callable

from .directives import OPERATION_TAGS, Directive, Tag
from .errors import Fault, FaultKind
from .models import ApiInfo, SecurityScheme, SourceLocation, TagSpec

logger = logging.getLogger(__name__)

_SECURITY_TYPES: dict[Tag, tuple[str, str]] = {
    Tag.SECURITY_BASIC: ("basic", ""),
    Tag.SECURITY_APIKEY: ("apiKey", ""),
    Tag.SECURITY_OAUTH2_APPLICATION: ("oauth2", "application"),
    Tag.SECURITY_OAUTH2_IMPLICIT: ("oauth2", "implicit"),
    Tag.SECURITY_OAUTH2_PASSWORD: ("oauth2", "password"),
    Tag.SECURITY_OAUTH2_ACCESS_CODE: ("oauth2", "accessCode"),
}

# Attributes each oauth2 flow must declare
_FLOW_REQUIRES: dict[str, tuple[str, ...]] = {
    "application": ("token_url",),
    "password": ("token_url",),
    "implicit": ("authorization_url",),
    "accessCode": ("token_url", "authorization_url"),
}


class InfoBuilder:
    """Collects general-info directives into an ApiInfo."""

    def __init__(self, faults: list[Fault] | None = None):
        self.faults = faults if faults is not None else []
        self.info = ApiInfo()
        self._descriptions: list[str] = []
        self._scheme: SecurityScheme | None = None
        self._scheme_location = SourceLocation()
        self._tag: TagSpec | None = None
        self._handlers: dict[Tag, Callable[[Directive], None]] = {
            Tag.UNKNOWN: self._free_text,
            Tag.TITLE: lambda d: setattr(self.info, "title", d.args),
            Tag.VERSION: lambda d: setattr(self.info, "version", d.args),
            Tag.DESCRIPTION: self._description,
            Tag.TERMS_OF_SERVICE: lambda d: setattr(self.info, "terms_of_service", d.args),
            Tag.CONTACT_NAME: lambda d: self.info.contact.__setitem__("name", d.args),
            Tag.CONTACT_URL: lambda d: self.info.contact.__setitem__("url", d.args),
            Tag.CONTACT_EMAIL: lambda d: self.info.contact.__setitem__("email", d.args),
            Tag.LICENSE_NAME: lambda d: self.info.license.__setitem__("name", d.args),
            Tag.LICENSE_URL: lambda d: self.info.license.__setitem__("url", d.args),
            Tag.HOST: lambda d: setattr(self.info, "host", d.args),
            Tag.BASE_PATH: lambda d: setattr(self.info, "base_path", d.args),
            Tag.SCHEMES: self._schemes,
            Tag.TAG_NAME: self._tag_name,
            Tag.TAG_DESCRIPTION: self._tag_attr("description"),
            Tag.TAG_DOCS_URL: self._tag_attr("docs_url"),
            Tag.TAG_DOCS_DESCRIPTION: self._tag_attr("docs_description"),
            Tag.IN: self._scheme_attr("location"),
            Tag.NAME: self._scheme_attr("param_name"),
            Tag.TOKEN_URL: self._scheme_attr("token_url"),
            Tag.AUTHORIZATION_URL: self._scheme_attr("authorization_url"),
            Tag.SCOPE: self._scope,
            Tag.EXTENSION: self._extension,
        }
        for tag in _SECURITY_TYPES:
            self._handlers[tag] = self._security_definition

    def add(self, directive: Directive) -> None:
        handler = self._handlers.get(directive.tag)
        if handler is not None:
            handler(directive)
        elif directive.tag in OPERATION_TAGS:
            logger.debug("Ignoring %s in general info at %s", directive.keyword, directive.location)

    def add_all(self, directives: list[Directive]) -> InfoBuilder:
        for directive in directives:
            self.add(directive)
        return self

    def finalize(self) -> ApiInfo:
        self._close_scheme()
        self.info.description = "\n".join(self._descriptions).strip()
        return self.info

    # ------------------------------------------------------------------

    def _free_text(self, d: Directive) -> None:
        if self._scheme is None and d.text:
            self._descriptions.append(d.text)

    def _description(self, d: Directive) -> None:
        if self._scheme is not None:
            self._scheme.description = d.args
        else:
            self._descriptions.append(d.args)

    def _schemes(self, d: Directive) -> None:
        for scheme in re.split(r"[\s,]+", d.args):
            if scheme and scheme not in self.info.schemes:
                self.info.schemes.append(scheme)

    def _tag_name(self, d: Directive) -> None:
        self._close_scheme()
        self._tag = TagSpec(name=d.args)
        self.info.tags.append(self._tag)

    def _tag_attr(self, attr: str) -> Callable[[Directive], None]:
        def apply(d: Directive) -> None:
            if self._tag is None:
                self._fault(f"{d.keyword} without a preceding @tag.name", d.location)
                return
            setattr(self._tag, attr, d.args)
        return apply

    def _security_definition(self, d: Directive) -> None:
        self._close_scheme()
        self._tag = None
        name = d.args.split()[0] if d.args else ""
        if not name:
            self._fault(f"{d.keyword} needs a name", d.location)
            return
        type_, flow = _SECURITY_TYPES[d.tag]
        self._scheme = SecurityScheme(name=name, type=type_, flow=flow)
        self._scheme_location = d.location

    def _scheme_attr(self, attr: str) -> Callable[[Directive], None]:
        def apply(d: Directive) -> None:
            if self._scheme is None:
                self._fault(f"{d.keyword} outside a @securityDefinitions section", d.location)
                return
            setattr(self._scheme, attr, d.args)
        return apply

    def _scope(self, d: Directive) -> None:
        if self._scheme is None or self._scheme.type != "oauth2":
            self._fault(f"{d.keyword} outside an oauth2 @securityDefinitions section", d.location)
            return
        self._scheme.scopes[d.suffix] = d.args

    def _extension(self, d: Directive) -> None:
        try:
            value = json.loads(d.args) if d.args else True
        except json.JSONDecodeError:
            value = d.args
        self.info.extensions[d.keyword.lstrip("@")] = value

    def _close_scheme(self) -> None:
        scheme, self._scheme = self._scheme, None
        if scheme is None:
            return
        missing: list[str] = []
        if scheme.type == "apiKey":
            if scheme.location not in ("header", "query"):
                missing.append("@in header|query")
            if not scheme.param_name:
                missing.append("@name")
        for attr in _FLOW_REQUIRES.get(scheme.flow, ()):
            if not getattr(scheme, attr):
                missing.append("@" + attr.replace("_url", "Url"))
        if missing:
            self._fault(
                f"security definition {scheme.name} is missing {', '.join(missing)}; dropped",
                self._scheme_location,
            )
            return
        self.info.security_definitions.append(scheme)

    def _fault(self, message: str, location: SourceLocation) -> None:
        fault = Fault(kind=FaultKind.DIRECTIVE, message=message, location=str(location))
        logger.warning("%s", fault)
        self.faults.append(fault)
