"""Serialize the document and render the docs.py stub.

swagger.json is the primary encoding; swagger.yaml is a format transform of
that JSON text, so both always describe the same value. The stub embeds the
JSON and is passed through ruff format on a best-effort basis.
"""

from __future__ import annotations

import json
import logging
import subprocess
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import jinja2
import yaml

from .errors import TemplateRenderError

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"
DEFAULT_TEMPLATE = "docs.py.j2"


def json_indent(spec: dict[str, Any]) -> str:
    """Primary encoding: 4-space indented JSON, keys in assembly order."""
    return json.dumps(spec, indent=4, ensure_ascii=False) + "\n"


def json_to_yaml(data: str) -> str:
    """Line-oriented encoding of the same value, transformed from the JSON text."""
    return yaml.safe_dump(
        json.loads(data),
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
        width=120,
    )


def escape_literal(text: str) -> str:
    """Escape text for embedding inside a triple-quoted Python string."""
    return text.replace("\\", "\\\\").replace('"""', '\\"\\"\\"')


def default_template() -> str:
    return (TEMPLATE_DIR / DEFAULT_TEMPLATE).read_text(encoding="utf-8")


def _environment() -> jinja2.Environment:
    env = jinja2.Environment(
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
        undefined=jinja2.StrictUndefined,
        autoescape=False,
    )
    env.filters["pystr"] = repr
    return env


def build_stub_context(
    spec: dict[str, Any],
    doc: str,
    package_name: str,
    instance_name: str = "swagger",
    generated_time: bool = False,
    now: datetime | None = None,
) -> dict[str, Any]:
    info = spec.get("info", {})
    context: dict[str, Any] = {
        "doc": escape_literal(doc),
        "package_name": package_name,
        "instance_name": instance_name,
        "generated_time": generated_time,
        "timestamp": "",
        "title": info.get("title", ""),
        "version": info.get("version", ""),
        "description": info.get("description", ""),
        "host": spec.get("host", ""),
        "base_path": spec.get("basePath", ""),
        "schemes": list(spec.get("schemes", [])),
    }
    if generated_time:
        context["timestamp"] = (now or datetime.now(timezone.utc)).isoformat(timespec="seconds")
    return context


def render_stub(template: str, context: dict[str, Any]) -> str:
    """Render the stub template; syntax errors and missing fields raise TemplateRenderError."""
    try:
        return _environment().from_string(template).render(**context)
    except jinja2.TemplateSyntaxError as exc:
        raise TemplateRenderError(f"stub template syntax error at line {exc.lineno}: {exc.message}") from exc
    except jinja2.UndefinedError as exc:
        raise TemplateRenderError(f"stub template references a missing field: {exc.message}") from exc
    except jinja2.TemplateError as exc:
        raise TemplateRenderError(f"cannot render stub template: {exc}") from exc


def format_source(source: str) -> str:
    """Format generated Python with ``ruff format``; return the input unchanged if that fails."""
    cmd = [sys.executable, "-m", "ruff", "format", "--stdin-filename", "docs.py", "-"]
    try:
        result = subprocess.run(cmd, input=source, capture_output=True, text=True, check=True, timeout=60)
    except subprocess.CalledProcessError as exc:
        logger.warning("Could not format generated source, keeping it unformatted: %s", exc.stderr.strip() or exc)
        return source
    except (OSError, subprocess.SubprocessError) as exc:
        logger.warning("Could not run ruff, keeping generated source unformatted: %s", exc)
        return source
    return result.stdout
