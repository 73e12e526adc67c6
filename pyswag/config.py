"""Generation settings.

One Config value drives one build; nothing here is process-wide state.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from .naming import NamingStrategy

# Accepted spellings for each naming strategy (matched case-insensitively)
_STRATEGY_ALIASES: dict[str, NamingStrategy] = {
    "": NamingStrategy.ORIGINAL,
    "original": NamingStrategy.ORIGINAL,
    "pascalcase": NamingStrategy.ORIGINAL,
    "snake_case": NamingStrategy.SNAKE_CASE,
    "snakecase": NamingStrategy.SNAKE_CASE,
    "lowercamelcase": NamingStrategy.LOWER_CAMEL_CASE,
    "camelcase": NamingStrategy.LOWER_CAMEL_CASE,
}

DEFAULT_EXCLUDES = [
    ".git", ".hg", ".tox", ".venv", "venv", "__pycache__", "node_modules",
    "build", "dist",
]


class Config(BaseModel):
    search_dir: Path = Path(".")
    main_api_file: str = "main.py"
    output_dir: Path = Path("docs")
    prop_naming_strategy: NamingStrategy = NamingStrategy.ORIGINAL
    parse_dependency: bool = False
    generated_time: bool = False
    package_name: str = "docs"
    instance_name: str = "swagger"
    template: str | None = None
    exclude: list[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDES))

    @field_validator("prop_naming_strategy", mode="before")
    @classmethod
    def _normalize_strategy(cls, value):
        if isinstance(value, NamingStrategy) or value is None:
            return value or NamingStrategy.ORIGINAL
        key = str(value).strip().lower()
        if key not in _STRATEGY_ALIASES:
            raise ValueError(f"unknown property naming strategy: {value!r}")
        return _STRATEGY_ALIASES[key]

    @property
    def main_api_path(self) -> Path:
        return self.search_dir / self.main_api_file
