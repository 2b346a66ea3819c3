"""Command line interface for :mod:`rdfexplore`."""

import asyncio
import json
import logging
from typing import Any, Optional, TextIO

import click
from pydantic import BaseModel, ValidationError

from .config import Config, split_csv
from .errors import RdfExploreError
from .models import FilterRequest, SearchType
from .provider import ProviderOptions, SparqlDataProvider
from .settings import available_dialects, load_dialect_file, resolve

__all__ = [
    "main",
]


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(exclude_none=True)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    return value


def _echo_json(value: Any) -> None:
    click.echo(json.dumps(_jsonable(value), indent=2, ensure_ascii=False))


def _run(ctx: click.Context, operation: str, *args: Any) -> None:
    """Run one provider coroutine and print its result as JSON."""
    try:
        provider = _provider(ctx)
        result = asyncio.run(getattr(provider, operation)(*args))
    except (RdfExploreError, ValidationError) as e:
        click.echo(f"Error: {e}", err=True)
        raise click.Abort()
    _echo_json(result)


def _provider(ctx: click.Context) -> SparqlDataProvider:
    obj = ctx.obj
    if not obj["endpoint"]:
        raise click.UsageError("--endpoint is required (or set RDFEXPLORE_ENDPOINT)")
    if obj["dialect_file"]:
        load_dialect_file(obj["dialect_file"])
    options = ProviderOptions(
        endpoint_url=obj["endpoint"],
        query_method="POST" if obj["post"] else Config.QUERY_METHOD,
        timeout=obj["timeout"],
        label_property=obj["label_property"],
        image_property_uris=list(obj["image_property"]) or split_csv(Config.IMAGE_PROPERTIES),
    )
    return SparqlDataProvider(options, resolve(obj["dialect"]))


@click.group()
@click.version_option()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option("--endpoint", default=Config.ENDPOINT or None, help="SPARQL endpoint URL")
@click.option(
    "--dialect",
    default=Config.DIALECT,
    show_default=True,
    help="Dialect preset used to phrase queries",
)
@click.option("--dialect-file", default=Config.DIALECT_FILE or None, help="Extra YAML dialect to register")
@click.option("--post", is_flag=True, help="Send queries with POST instead of GET")
@click.option("--timeout", type=float, default=None, help="Request timeout in seconds")
@click.option("--label-property", default=Config.LABEL_PROPERTY or None, help="Instance label property")
@click.option("--image-property", multiple=True, help="Image property IRI (repeatable)")
@click.pass_context
def main(
    ctx: click.Context,
    verbose: bool,
    endpoint: Optional[str],
    dialect: str,
    dialect_file: Optional[str],
    post: bool,
    timeout: Optional[float],
    label_property: Optional[str],
    image_property: tuple[str, ...],
) -> None:
    r"""rdfexplore - graph exploration over SPARQL endpoints.

    Lists classes and link types, looks up elements and searches for
    them, printing canonical records as JSON.


    Example:
      rdfexplore --endpoint https://dbpedia.org/sparql --dialect dbpedia search --text Berlin
    """
    ctx.ensure_object(dict)
    ctx.obj.update(
        verbose=verbose,
        endpoint=endpoint,
        dialect=dialect,
        dialect_file=dialect_file,
        post=post,
        timeout=timeout,
        label_property=label_property,
        image_property=image_property,
    )

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            force=True,
        )
        logging.getLogger("rdfexplore").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s", force=True)


@main.command()
def dialects() -> None:
    """List the available dialect presets."""
    for name in available_dialects():
        description = resolve(name).description
        click.echo(f"{name}\t{description}" if description else name)


@main.command("class-tree")
@click.pass_context
def class_tree(ctx: click.Context) -> None:
    """Print the class hierarchy."""
    _run(ctx, "class_tree")


@main.command("link-types")
@click.pass_context
def link_types(ctx: click.Context) -> None:
    """Print all link types."""
    _run(ctx, "link_types")


@main.command("element-info")
@click.argument("element_ids", nargs=-1, required=True)
@click.pass_context
def element_info(ctx: click.Context, element_ids: tuple[str, ...]) -> None:
    """Print classes, labels and properties of ELEMENT_IDS."""
    _run(ctx, "element_info", list(element_ids))


@main.command("link-types-of")
@click.argument("element_id")
@click.pass_context
def link_types_of(ctx: click.Context, element_id: str) -> None:
    """Print link type statistics around ELEMENT_ID."""
    _run(ctx, "link_types_of", element_id)


@main.command()
@click.argument("element_ids", nargs=-1, required=True)
@click.pass_context
def links(ctx: click.Context, element_ids: tuple[str, ...]) -> None:
    """Print links between ELEMENT_IDS."""
    _run(ctx, "links_info", list(element_ids))


@main.command()
@click.option("--text", help="Free-text search string")
@click.option("--type", "element_type", help="Restrict to instances of this class")
@click.option("--ref-element", help="Restrict to neighbours of this element")
@click.option("--ref-link", help="Only follow this link type")
@click.option("--direction", type=click.Choice(["in", "out"]), help="Link direction")
@click.option(
    "--search-type",
    type=click.Choice(SearchType.ALL, case_sensitive=False),
    help="Search mode (dialects with extended search)",
)
@click.option("--limit", type=int, default=100, show_default=True)
@click.option("--offset", type=int, default=0, show_default=True)
@click.pass_context
def search(
    ctx: click.Context,
    text: Optional[str],
    element_type: Optional[str],
    ref_element: Optional[str],
    ref_link: Optional[str],
    direction: Optional[str],
    search_type: Optional[str],
    limit: int,
    offset: int,
) -> None:
    """Search for elements by text, type or neighbourhood."""
    request = FilterRequest(
        text=text,
        element_type_id=element_type,
        ref_element_id=ref_element,
        ref_element_link_id=ref_link,
        link_direction=direction,
        search_type=search_type,
        limit=limit,
        offset=offset,
    )
    if not request.has_criteria():
        raise click.UsageError("Give at least one of --text, --type, --ref-element")
    _run(ctx, "filter_extended" if search_type else "filter", request)


@main.command()
@click.argument("query_file", type=click.File("r"))
@click.pass_context
def construct(ctx: click.Context, query_file: TextIO) -> None:
    """Run the CONSTRUCT query in QUERY_FILE ('-' for stdin) and print its triples."""
    _run(ctx, "construct", query_file.read())


if __name__ == "__main__":
    main()
