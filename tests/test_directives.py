"""Tests for the directives tokenizer."""

from pyswag.directives import Tag, has_directives, lookup_tag, tokenize_block, tokenize_line


class TestLookupTag:
    def test_case_insensitive(self):
        assert lookup_tag("@Summary") is Tag.SUMMARY
        assert lookup_tag("@SUMMARY") is Tag.SUMMARY
        assert lookup_tag("@BasePath") is Tag.BASE_PATH

    def test_dotted_tag(self):
        assert lookup_tag("@securityDefinitions.apikey") is Tag.SECURITY_APIKEY

    def test_scope_prefix(self):
        assert lookup_tag("@scope.write") is Tag.SCOPE

    def test_extension_prefix(self):
        assert lookup_tag("@x-logo") is Tag.EXTENSION

    def test_bare_prefix_is_unknown(self):
        assert lookup_tag("@scope.") is Tag.UNKNOWN

    def test_unknown(self):
        assert lookup_tag("@Frobnicate") is Tag.UNKNOWN


class TestTokenizeLine:
    def test_tag_and_args(self):
        d = tokenize_line("@Param  id  path  int  true  \"Account ID\"")
        assert d.tag is Tag.PARAM
        assert d.args == 'id  path  int  true  "Account ID"'
        assert d.keyword == "@Param"

    def test_free_text(self):
        d = tokenize_line("Show a single account.")
        assert d.tag is Tag.UNKNOWN
        assert d.text == "Show a single account."

    def test_unknown_tag_keeps_whole_line(self):
        d = tokenize_line("@Frobnicate all the things")
        assert d.tag is Tag.UNKNOWN
        assert d.text == "@Frobnicate all the things"

    def test_scope_suffix(self):
        d = tokenize_line("@scope.admin Grants admin access")
        assert d.suffix == "admin"
        assert d.args == "Grants admin access"

    def test_tag_without_args(self):
        d = tokenize_line("@Deprecated")
        assert d.tag is Tag.DEPRECATED
        assert d.args == ""


_DOC = """Show an account.

@Summary      Show an account
@Description  get string by ID
              and some more words
@Param        id path int true "Account ID"
@Router       /accounts/{id} [get]
"""


class TestTokenizeBlock:
    def test_order_preserved(self):
        tags = [d.tag for d in tokenize_block(_DOC)]
        assert tags == [Tag.UNKNOWN, Tag.SUMMARY, Tag.DESCRIPTION, Tag.PARAM, Tag.ROUTER]

    def test_description_continuation_keeps_line_break(self):
        description = tokenize_block(_DOC)[2]
        assert description.args == "get string by ID\nand some more words"

    def test_continuation_of_other_tags_joined_with_space(self):
        directives = tokenize_block("@Summary Show\n  an account")
        assert directives[0].args == "Show an account"

    def test_unknown_tag_line_starts_new_directive(self):
        directives = tokenize_block("@Router /x [get]\n@Author jane")
        assert [d.tag for d in directives] == [Tag.ROUTER, Tag.UNKNOWN]
        assert directives[0].args == "/x [get]"
        assert directives[1].text == "@Author jane"

    def test_blank_line_ends_directive(self):
        directives = tokenize_block("@Summary Show\n\nan account")
        assert [d.tag for d in directives] == [Tag.SUMMARY, Tag.UNKNOWN]

    def test_locations(self):
        directives = tokenize_block(_DOC, path="api.py", first_line=10)
        assert str(directives[0].location) == "api.py:10"
        assert str(directives[1].location) == "api.py:12"
        assert directives[-1].location.line == 16

    def test_empty(self):
        assert tokenize_block(None) == []
        assert tokenize_block("") == []


class TestHasDirectives:
    def test_handler_docstring(self):
        assert has_directives(_DOC)

    def test_plain_docstring(self):
        assert not has_directives("Return the user's e-mail address.")

    def test_general_info_only(self):
        assert not has_directives("@title Accounts API\n@version 1.0")
