"""Split docstrings into directives.

A directive is one ``@Tag arguments`` line, optionally continued on the
following lines until a blank line or the next tag:

    Show a single account.

    @Summary      Show an account
    @Description  get string by ID
                  and some more words
    @Param        id path int true "Account ID"
    @Success      200 {object} models.Account
    @Router       /accounts/{id} [get]

Tags are matched case-insensitively against a closed table. Text that does
not start with a known tag becomes an UNKNOWN directive; owners append it to
their description instead of rejecting it.
"""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict

from .models import SourceLocation


class Tag(str, Enum):
    UNKNOWN = ""

    # General API info
    TITLE = "@title"
    VERSION = "@version"
    DESCRIPTION = "@description"
    TERMS_OF_SERVICE = "@termsofservice"
    CONTACT_NAME = "@contact.name"
    CONTACT_URL = "@contact.url"
    CONTACT_EMAIL = "@contact.email"
    LICENSE_NAME = "@license.name"
    LICENSE_URL = "@license.url"
    HOST = "@host"
    BASE_PATH = "@basepath"
    SCHEMES = "@schemes"
    TAG_NAME = "@tag.name"
    TAG_DESCRIPTION = "@tag.description"
    TAG_DOCS_URL = "@tag.docs.url"
    TAG_DOCS_DESCRIPTION = "@tag.docs.description"
    SECURITY_BASIC = "@securitydefinitions.basic"
    SECURITY_APIKEY = "@securitydefinitions.apikey"
    SECURITY_OAUTH2_APPLICATION = "@securitydefinitions.oauth2.application"
    SECURITY_OAUTH2_IMPLICIT = "@securitydefinitions.oauth2.implicit"
    SECURITY_OAUTH2_PASSWORD = "@securitydefinitions.oauth2.password"
    SECURITY_OAUTH2_ACCESS_CODE = "@securitydefinitions.oauth2.accesscode"
    IN = "@in"
    NAME = "@name"
    TOKEN_URL = "@tokenurl"
    AUTHORIZATION_URL = "@authorizationurl"
    SCOPE = "@scope."
    EXTENSION = "@x-"

    # Operations
    SUMMARY = "@summary"
    ID = "@id"
    TAGS = "@tags"
    ACCEPT = "@accept"
    PRODUCE = "@produce"
    PARAM = "@param"
    SUCCESS = "@success"
    FAILURE = "@failure"
    RESPONSE = "@response"
    HEADER = "@header"
    ROUTER = "@router"
    SECURITY = "@security"
    DEPRECATED = "@deprecated"


_TAGS: dict[str, Tag] = {t.value: t for t in Tag if t.value and not t.value.endswith((".", "-"))}

# Tags whose keyword carries a suffix: @scope.write, @x-logo
_PREFIX_TAGS: tuple[Tag, ...] = (Tag.SCOPE, Tag.EXTENSION)

# Continuation lines of these tags keep their line breaks
_MULTILINE_TAGS = {Tag.DESCRIPTION, Tag.UNKNOWN}

OPERATION_TAGS = frozenset({
    Tag.SUMMARY, Tag.ID, Tag.TAGS, Tag.ACCEPT, Tag.PRODUCE, Tag.PARAM,
    Tag.SUCCESS, Tag.FAILURE, Tag.RESPONSE, Tag.HEADER, Tag.ROUTER,
    Tag.SECURITY, Tag.DEPRECATED,
})

_KEYWORD_RE = re.compile(r"^(@[\w.\-]+)\s*(.*)$", re.DOTALL)


class Directive(BaseModel):
    """One parsed annotation; immutable once built."""

    model_config = ConfigDict(frozen=True)

    tag: Tag
    args: str = ""
    keyword: str = ""
    location: SourceLocation = SourceLocation()

    @property
    def suffix(self) -> str:
        """The part of a prefix tag's keyword after the prefix (``write`` in ``@scope.write``)."""
        if self.tag in _PREFIX_TAGS:
            return self.keyword[len(self.tag.value):]
        return ""

    @property
    def text(self) -> str:
        """Free text of an UNKNOWN directive: the whole line as written."""
        if self.keyword:
            return f"{self.keyword} {self.args}".strip()
        return self.args


def lookup_tag(keyword: str) -> Tag:
    """Map a leading ``@keyword`` to its tag, UNKNOWN when not in the table."""
    lowered = keyword.lower()
    tag = _TAGS.get(lowered)
    if tag is not None:
        return tag
    for prefix in _PREFIX_TAGS:
        if lowered.startswith(prefix.value) and len(lowered) > len(prefix.value):
            return prefix
    return Tag.UNKNOWN


def tokenize_line(line: str, location: SourceLocation | None = None) -> Directive:
    """Turn one stripped comment line into a directive."""
    location = location or SourceLocation()
    text = line.strip()
    match = _KEYWORD_RE.match(text)
    if not match:
        return Directive(tag=Tag.UNKNOWN, args=text, location=location)
    keyword, args = match.group(1), match.group(2).strip()
    tag = lookup_tag(keyword)
    if tag is Tag.UNKNOWN:
        return Directive(tag=Tag.UNKNOWN, args=text, location=location)
    return Directive(tag=tag, args=args, keyword=keyword, location=location)


def _starts_with_tag(text: str) -> bool:
    return _KEYWORD_RE.match(text) is not None


def _continue(directive: Directive, text: str) -> Directive:
    sep = "\n" if directive.tag in _MULTILINE_TAGS else " "
    args = f"{directive.args}{sep}{text}" if directive.args else text
    return directive.model_copy(update={"args": args})


def tokenize_block(docstring: str | None, path: str = "", first_line: int = 0) -> list[Directive]:
    """Tokenize a whole docstring.

    ``first_line`` is the source line of the docstring's first line, used to
    give every directive its own location.
    """
    if not docstring:
        return []

    directives: list[Directive] = []
    current: Directive | None = None

    for offset, raw in enumerate(docstring.splitlines()):
        text = raw.strip()
        if not text:
            if current is not None:
                directives.append(current)
                current = None
            continue

        if current is not None and not _starts_with_tag(text):
            current = _continue(current, text)
            continue

        if current is not None:
            directives.append(current)
        current = tokenize_line(text, SourceLocation(path=path, line=first_line + offset))

    if current is not None:
        directives.append(current)
    return directives


def has_directives(docstring: str | None, tags: frozenset[Tag] = OPERATION_TAGS) -> bool:
    """Cheap check: does any line of the docstring start with one of ``tags``?"""
    if not docstring or "@" not in docstring:
        return False
    for raw in docstring.splitlines():
        match = _KEYWORD_RE.match(raw.strip())
        if match and lookup_tag(match.group(1)) in tags:
            return True
    return False
