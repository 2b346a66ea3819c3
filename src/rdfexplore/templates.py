"""Placeholder substitution for SPARQL query templates.

Templates carry ``${name}`` tokens.  Substitution replaces each full token
in a single pass over the template, so query text is never interpreted and
a value containing ``$``, ``\\`` or another token is inserted verbatim.

Usage:
    from rdfexplore.templates import fill

    fill("SELECT * WHERE { ${elementIri} ?p ?o }", {"elementIri": "<http://ex/a>"})
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping

from rdfexplore.errors import CompositionError

__all__ = [
    "fill",
    "iri",
    "placeholders",
    "string_literal",
    "values_block",
]

PLACEHOLDER_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def placeholders(template: str) -> list[str]:
    """Return the distinct placeholder names of *template* in order."""
    seen: dict[str, None] = {}
    for match in PLACEHOLDER_PATTERN.finditer(template):
        seen.setdefault(match.group(1), None)
    return list(seen)


def _merge_sources(sources: Iterable[Mapping[str, str]]) -> dict[str, str]:
    merged: dict[str, str] = {}
    for source in sources:
        for name, value in source.items():
            if name in merged and merged[name] != value:
                raise CompositionError(
                    f"Placeholder '{name}' supplied twice with different values"
                )
            merged[name] = value
    return merged


def fill(template: str, *sources: Mapping[str, str]) -> str:
    """
    Substitute every ``${name}`` token of *template*.

    Args:
        template: Query text with ``${name}`` tokens
        *sources: Mappings of placeholder name to literal replacement.
            Names the template does not use are ignored.

    Returns:
        The template with all tokens replaced

    Raises:
        CompositionError: If a name is given conflicting values, or if any
            token is left unresolved after substitution
    """
    values = _merge_sources(sources)

    remaining = [name for name in placeholders(template) if name not in values]
    if remaining:
        raise CompositionError(
            f"Unresolved placeholder(s): {', '.join('${' + n + '}' for n in remaining)}"
        )

    # One pass over the template, so tokens inside values are never expanded.
    return PLACEHOLDER_PATTERN.sub(lambda m: values[m.group(1)], template)


def iri(value: str) -> str:
    """Wrap an identifier in angle brackets."""
    return f"<{value}>"


def values_block(ids: Iterable[str]) -> str:
    """Render the body of a one-variable ``VALUES`` clause."""
    return " ".join(f"({iri(i)})" for i in ids)


def string_literal(text: str) -> str:
    """Escape *text* for use inside a double-quoted SPARQL literal."""
    return (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )
