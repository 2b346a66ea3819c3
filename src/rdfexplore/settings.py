"""
Dialect settings and the preset registry.

A dialect describes how one backend / ontology convention phrases each
query: the PREFIX block, the class tree query, the full-text search clause
and so on.  Presets are YAML files in the ``dialects`` directory next to
this module; a preset either defines every field or names a base preset
under ``extends`` and lists only the fields it overrides.

Usage:
    from rdfexplore.settings import compose, resolve

    stardog = resolve("stardog")
    custom = compose(resolve("owl_rdfs"), {"data_label_property": "skos:prefLabel"})
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from rdfexplore.errors import DialectConfigError, DialectNotFoundError

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_DIALECT",
    "DialectRegistry",
    "DialectSettings",
    "FullTextSearchSettings",
    "available_dialects",
    "compose",
    "default_registry",
    "load_dialect_file",
    "resolve",
]

PRESET_DIR = Path(__file__).parent / "dialects"

# Preset used by the data provider when no settings are passed.
DEFAULT_DIALECT = "owl_stats"


class FullTextSearchSettings(BaseModel):
    """Full-text search clause of a dialect."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    prefix: str = Field("", description="PREFIX lines needed by the clause")
    query_pattern: str = Field(
        ..., description="Clause binding ?inst and ?score for ${text}"
    )
    extract_label: bool = Field(
        False, description="Derive ?extractedLabel from the instance IRI"
    )


class DialectSettings(BaseModel):
    """Immutable bundle of query templates for one backend convention."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    description: str = ""
    default_prefix: str
    schema_label_property: str
    data_label_property: str
    full_text_search: FullTextSearchSettings
    class_tree_query: str
    link_types_pattern: str
    element_info_query: str
    image_query_pattern: str
    link_types_of_query: str
    filter_ref_element_link_pattern: str
    filter_type_pattern: str
    filter_element_info_pattern: str
    filter_additional_restriction: str
    search_patterns: dict[str, str] = Field(default_factory=dict)

    def search_pattern(self, mode: str | None) -> str | None:
        """Return the clause for search *mode*, or None if the dialect lacks it."""
        if not mode:
            return None
        return self.search_patterns.get(mode.lower())


def _validate(data: Mapping[str, Any], source: str) -> DialectSettings:
    try:
        return DialectSettings.model_validate(dict(data))
    except ValidationError as e:
        raise DialectConfigError(f"Invalid dialect definition ({source}): {e}") from e


def compose(base: DialectSettings, overrides: Mapping[str, Any]) -> DialectSettings:
    """
    Build a new dialect from *base* with the fields in *overrides* replaced.

    ``full_text_search`` overrides are merged key by key into the base
    record, every other field is replaced as a whole.  Fields that are
    not overridden are inherited.

    Raises:
        DialectConfigError: If *overrides* names an unknown field or the
            result fails validation
    """
    unknown = set(overrides) - set(DialectSettings.model_fields)
    if unknown:
        raise DialectConfigError(
            f"Unknown dialect field(s) in override of '{base.name}': "
            f"{', '.join(sorted(unknown))}"
        )

    data = base.model_dump()
    for key, value in overrides.items():
        if key == "full_text_search" and isinstance(value, Mapping):
            merged = dict(data["full_text_search"])
            merged.update(value)
            data[key] = merged
        else:
            data[key] = value

    return _validate(data, f"override of '{base.name}'")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise DialectConfigError(f"Cannot read dialect file {path}: {e}") from e

    if not isinstance(raw, dict):
        raise DialectConfigError(f"Dialect file {path} must contain a mapping")
    raw.setdefault("name", path.stem)
    return raw


class DialectRegistry:
    """Named dialect presets, resolved once when loaded."""

    def __init__(self) -> None:
        self._dialects: dict[str, DialectSettings] = {}

    def register(self, settings: DialectSettings) -> DialectSettings:
        """Add (or replace) a dialect under its own name."""
        self._dialects[settings.name] = settings
        logger.debug(f"Registered dialect {settings.name!r}")
        return settings

    def resolve(self, name: str) -> DialectSettings:
        """Return the dialect registered as *name*."""
        try:
            return self._dialects[name]
        except KeyError:
            raise DialectNotFoundError(
                f"Unknown dialect '{name}'. Available: {', '.join(self.names())}"
            ) from None

    def names(self) -> list[str]:
        """Registered dialect names, sorted."""
        return sorted(self._dialects)

    def __contains__(self, name: object) -> bool:
        return name in self._dialects

    def load_directory(self, directory: Path) -> None:
        """
        Load every ``*.yaml`` preset in *directory*.

        Presets may extend each other in any file order; a preset that
        extends itself through a chain, or extends an unknown name, is
        rejected.
        """
        raw_by_name: dict[str, dict[str, Any]] = {}
        for path in sorted(directory.glob("*.yaml")):
            raw = _read_yaml(path)
            raw_by_name[raw["name"]] = raw

        resolving: set[str] = set()

        def build(name: str) -> DialectSettings:
            if name in self._dialects and name not in raw_by_name:
                return self._dialects[name]
            if name in resolving:
                raise DialectConfigError(f"Cyclic 'extends' chain at dialect '{name}'")
            if name not in raw_by_name:
                raise DialectNotFoundError(f"Unknown base dialect '{name}'")

            resolving.add(name)
            raw = dict(raw_by_name.pop(name))
            parent = raw.pop("extends", None)
            if parent:
                settings = compose(build(parent), raw)
            else:
                settings = _validate(raw, name)
            resolving.discard(name)
            return self.register(settings)

        while raw_by_name:
            build(next(iter(raw_by_name)))

    def load_file(self, path: str | Path) -> DialectSettings:
        """Load one preset file; its ``extends`` must already be registered."""
        raw = _read_yaml(Path(path))
        parent = raw.pop("extends", None)
        if parent:
            settings = compose(self.resolve(parent), raw)
        else:
            settings = _validate(raw, str(path))
        return self.register(settings)


def _build_default_registry() -> DialectRegistry:
    registry = DialectRegistry()
    registry.load_directory(PRESET_DIR)
    return registry


default_registry = _build_default_registry()


def resolve(name: str) -> DialectSettings:
    """Return the shipped (or registered) dialect called *name*."""
    return default_registry.resolve(name)


def available_dialects() -> list[str]:
    """Names of all registered dialects."""
    return default_registry.names()


def load_dialect_file(path: str | Path) -> DialectSettings:
    """Load a YAML dialect file into the default registry."""
    return default_registry.load_file(path)
