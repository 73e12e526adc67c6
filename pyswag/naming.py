"""Property naming strategies.

A strategy maps a declared property name to the name emitted in the
document:

  original        UserName -> UserName, user_name -> user_name
  snake_case      UserName -> user_name, HTTPServer -> http_server
  lowerCamelCase  UserName -> userName, user_name -> userName

Strategies are applied by the assembler only. Paths, parameter names and
definition names are never transformed.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Callable


class NamingStrategy(str, Enum):
    ORIGINAL = "original"
    SNAKE_CASE = "snake_case"
    LOWER_CAMEL_CASE = "lowerCamelCase"


def camel_to_snake(name: str) -> str:
    """Convert camelCase or PascalCase to snake_case."""
    s1 = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", name)
    return re.sub(r"([a-z\d])([A-Z])", r"\1_\2", s1).lower()


def _lower_leading(word: str) -> str:
    """Lower the leading capital run: UserName -> userName, HTTPServer -> httpServer."""
    match = re.match(r"[A-Z]+", word)
    if not match:
        return word
    run = match.group(0)
    if len(run) == len(word) or len(run) == 1:
        return word[: len(run)].lower() + word[len(run):]
    # keep the last capital of the run: it starts the next word
    return run[:-1].lower() + word[len(run) - 1:]


def to_lower_camel(name: str) -> str:
    """Convert snake_case or PascalCase to lowerCamelCase."""
    leading = len(name) - len(name.lstrip("_"))
    parts = [p for p in name.split("_") if p]
    if not parts:
        return name
    head = _lower_leading(parts[0])
    tail = "".join(p[:1].upper() + p[1:] for p in parts[1:])
    return "_" * leading + head + tail


def to_snake(name: str) -> str:
    """Convert any declared name to snake_case."""
    snake = camel_to_snake(name)
    return re.sub(r"_+", "_", snake)


_STRATEGIES: dict[NamingStrategy, Callable[[str], str]] = {
    NamingStrategy.ORIGINAL: lambda name: name,
    NamingStrategy.SNAKE_CASE: to_snake,
    NamingStrategy.LOWER_CAMEL_CASE: to_lower_camel,
}


def get_strategy(strategy: NamingStrategy | str) -> Callable[[str], str]:
    """Return the transform for a naming strategy."""
    return _STRATEGIES[NamingStrategy(strategy)]


def apply_strategy(name: str, strategy: NamingStrategy | str) -> str:
    return get_strategy(strategy)(name)
