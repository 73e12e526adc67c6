"""Tests for the naming module."""

import pytest

from pyswag.naming import NamingStrategy, apply_strategy, camel_to_snake, get_strategy, to_lower_camel, to_snake


class TestCamelToSnake:
    def test_camel(self):
        assert camel_to_snake("userName") == "user_name"

    def test_pascal(self):
        assert camel_to_snake("UserName") == "user_name"

    def test_acronym_run(self):
        assert camel_to_snake("HTTPServer") == "http_server"

    def test_already_snake(self):
        assert camel_to_snake("user_name") == "user_name"


class TestToSnake:
    def test_collapses_double_underscores(self):
        assert to_snake("User_Name") == "user_name"

    def test_single_word(self):
        assert to_snake("ID") == "id"


class TestToLowerCamel:
    def test_pascal(self):
        assert to_lower_camel("UserName") == "userName"

    def test_snake(self):
        assert to_lower_camel("user_name") == "userName"

    def test_acronym_prefix(self):
        """The last capital of a leading run starts the next word."""
        assert to_lower_camel("HTTPServer") == "httpServer"

    def test_all_caps(self):
        assert to_lower_camel("ID") == "id"

    def test_already_lower_camel(self):
        assert to_lower_camel("userName") == "userName"

    def test_leading_underscore_kept(self):
        assert to_lower_camel("_private_value") == "_privateValue"


class TestStrategies:
    """UserName is the canonical example for each strategy."""

    @pytest.mark.parametrize(
        ("strategy", "expected"),
        [
            (NamingStrategy.ORIGINAL, "UserName"),
            (NamingStrategy.SNAKE_CASE, "user_name"),
            (NamingStrategy.LOWER_CAMEL_CASE, "userName"),
        ],
    )
    def test_user_name(self, strategy, expected):
        assert apply_strategy("UserName", strategy) == expected

    def test_lookup_by_value(self):
        assert get_strategy("snake_case")("UserName") == "user_name"

    def test_unknown_strategy(self):
        with pytest.raises(ValueError):
            get_strategy("kebab")
