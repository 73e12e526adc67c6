"""Entry point: python -m pyswag init

Scans the search dir, writes swagger.json, swagger.yaml and docs.py into
the output dir.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from .config import DEFAULT_EXCLUDES, Config
from .errors import PyswagError
from .gen import Generator


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log per-handler detail.")
def main(verbose: bool) -> None:
    """pyswag: generate Swagger 2.0 documents from handler docstrings."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.option("-d", "--dir", "search_dir", default="./", type=click.Path(path_type=Path), help="Directory to scan.")
@click.option("-g", "--generalInfo", "main_api_file", default="main.py", help="Entry module holding the general API info, relative to --dir.")
@click.option("-o", "--output", "output_dir", default="./docs", type=click.Path(path_type=Path), help="Output directory.")
@click.option(
    "-p", "--propertyStrategy", "strategy", default="original",
    type=click.Choice(["original", "snakecase", "snake_case", "camelcase", "lowerCamelCase"], case_sensitive=False),
    help="Property naming strategy.",
)
@click.option("--parseDependency", "parse_dependency", is_flag=True, help="Resolve types from imported modules outside --dir.")
@click.option("--generatedTime", "generated_time", is_flag=True, help="Embed the generation time in docs.py.")
@click.option("--packageName", "package_name", default="docs", help="Package name written into docs.py.")
@click.option("--instanceName", "instance_name", default="swagger", help="Registry name used by docs.py.")
@click.option("--template", "template_path", default=None, type=click.Path(exists=True, path_type=Path), help="Custom docs.py template.")
@click.option("--exclude", multiple=True, help="Directory names to skip (repeatable).")
def init(
    search_dir: Path,
    main_api_file: str,
    output_dir: Path,
    strategy: str,
    parse_dependency: bool,
    generated_time: bool,
    package_name: str,
    instance_name: str,
    template_path: Path | None,
    exclude: tuple[str, ...],
) -> None:
    """Generate the API document."""
    config = Config(
        search_dir=search_dir,
        main_api_file=main_api_file,
        output_dir=output_dir,
        prop_naming_strategy=strategy,
        parse_dependency=parse_dependency,
        generated_time=generated_time,
        package_name=package_name,
        instance_name=instance_name,
        template=template_path.read_text(encoding="utf-8") if template_path else None,
        exclude=DEFAULT_EXCLUDES + list(exclude),
    )
    try:
        result = Generator().build(config)
    except PyswagError as exc:
        for fault in exc.faults:
            click.echo(f"  {fault.kind.value}: {fault}", err=True)
        click.echo(f"Error ({exc.kind.value}): {exc}", err=True)
        sys.exit(1)

    for fault in result.faults:
        click.echo(f"  {fault.kind.value}: {fault}", err=True)
    click.echo(f"Generated {', '.join(result.written)} in {output_dir} ({len(result.operations)} operations)")


if __name__ == "__main__":
    main()
