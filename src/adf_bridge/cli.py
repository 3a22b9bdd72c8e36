"""CLI entrypoint for adf-bridge.

Translates between flavored markdown and Atlassian Document Format (ADF)
JSON on the command line.  Every command reads a file argument or stdin
and writes to stdout, so commands compose in pipelines::

    adf-bridge to-markdown --registry ids.json issue.json > issue.md
    $EDITOR issue.md
    adf-bridge to-adf --registry ids.json issue.md > issue.json
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import click
from pydantic import ValidationError

from adf_bridge.adf.model import Document
from adf_bridge.config import Settings, email_resolver, load_user_mapping
from adf_bridge.converter import (
    DIALECTS,
    AdfToMarkdownConverter,
    IdentityRegistry,
    MarkdownToAdfConverter,
    RegistryStore,
    UnsupportedContentError,
    ensure_supported,
    roundtrip_diff,
)

_FILE = click.argument("source", type=click.File("r", encoding="utf-8"), default="-")
_USER_MAPPING = click.option(
    "--user-mapping",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON file mapping @local@domain mentions to user ids.",
)


def _user_mapping(settings: Settings, path: str | None) -> dict[str, str]:
    if path:
        return load_user_mapping(path)
    return settings.user_mapping()


def _load_document(raw: str) -> Document:
    try:
        return Document.from_json(raw)
    except ValidationError as exc:
        click.echo(f"Error: input is not a valid ADF document:\n{exc}", err=True)
        sys.exit(1)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """adf-bridge CLI: translate between markdown and ADF documents."""
    settings = Settings()
    try:
        settings.validate()
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    ctx.obj = settings


@cli.command()
@_FILE
@_USER_MAPPING
@click.option(
    "--registry",
    "registry_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Registry file written by to-markdown; restores media and cards "
    "(default: ADF_BRIDGE_REGISTRY_FILE).",
)
@click.option("--check", is_flag=True, help="Fail if the result uses unsupported node types.")
@click.option("--indent", type=int, default=2, show_default=True, help="JSON indentation.")
@click.pass_obj
def to_adf(
    settings: Settings,
    source: TextIO,
    user_mapping: str | None,
    registry_path: str | None,
    check: bool,
    indent: int,
) -> None:
    """Convert markdown to ADF JSON."""
    registry_path = registry_path or settings.registry_file
    registry = RegistryStore(registry_path).load() if registry_path else IdentityRegistry()
    builder = MarkdownToAdfConverter(
        user_mapping=_user_mapping(settings, user_mapping),
        registry=registry,
    )
    doc = builder.convert(source.read())

    if check:
        try:
            ensure_supported(doc)
        except UnsupportedContentError as exc:
            click.echo(f"FAIL: {exc}", err=True)
            sys.exit(1)

    click.echo(doc.to_json(indent=indent or None))


@cli.command()
@_FILE
@_USER_MAPPING
@click.option(
    "--dialect",
    type=click.Choice(sorted(DIALECTS)),
    default=None,
    help="Output dialect (default: ADF_BRIDGE_DIALECT or markdown).",
)
@click.option(
    "--registry",
    "registry_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Merge media and card identities into this file for a later to-adf "
    "(default: ADF_BRIDGE_REGISTRY_FILE).",
)
@click.pass_obj
def to_markdown(
    settings: Settings,
    source: TextIO,
    user_mapping: str | None,
    dialect: str | None,
    registry_path: str | None,
) -> None:
    """Convert ADF JSON to markdown."""
    registry_path = registry_path or settings.registry_file
    doc = _load_document(source.read())
    store = RegistryStore(registry_path) if registry_path else None
    renderer = AdfToMarkdownConverter(
        dialect=dialect or settings.dialect,
        registry=store.load() if store is not None else None,
        email_resolver=email_resolver(_user_mapping(settings, user_mapping)),
    )
    click.echo(renderer.convert(doc), nl=False)

    if store is not None:
        store.save(renderer.registry)
        click.echo(f"Saved {len(renderer.registry)} identities to {registry_path}", err=True)


@cli.command()
@_FILE
@_USER_MAPPING
@click.pass_obj
def check(settings: Settings, source: TextIO, user_mapping: str | None) -> None:
    """Report node types in markdown that downstream editors reject."""
    builder = MarkdownToAdfConverter(user_mapping=_user_mapping(settings, user_mapping))
    try:
        builder.check_compatibility(source.read())
    except UnsupportedContentError as exc:
        click.echo(f"FAIL: {exc}", err=True)
        sys.exit(1)
    click.echo("OK: no unsupported node types")


@cli.command()
@_FILE
@click.option(
    "--dialect",
    type=click.Choice(sorted(DIALECTS)),
    default=None,
    help="Dialect used to render the round trip.",
)
@click.pass_obj
def roundtrip(settings: Settings, source: TextIO, dialect: str | None) -> None:
    """Show what markdown loses on a trip through ADF and back."""
    mapping = settings.user_mapping()
    renderer = AdfToMarkdownConverter(
        dialect=dialect or settings.dialect,
        email_resolver=email_resolver(mapping),
    )
    builder = MarkdownToAdfConverter(user_mapping=mapping, registry=renderer.registry)
    diff = roundtrip_diff(source.read(), builder, renderer)
    if diff:
        click.echo(diff)
        sys.exit(1)
    click.echo("OK: round trip is lossless")


@cli.command()
@click.argument("old")
@click.argument("new")
@_FILE
@click.option("--indent", type=int, default=2, show_default=True, help="JSON indentation.")
def replace(old: str, new: str, source: TextIO, indent: int) -> None:
    """Replace OLD with NEW in every text node of an ADF document."""
    doc = _load_document(source.read())
    doc.replace_all(old, new)
    click.echo(doc.to_json(indent=indent or None))


if __name__ == "__main__":
    cli()
