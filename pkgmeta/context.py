"""Precedence rules that combine project properties with assembly attributes."""

from __future__ import annotations

from functools import cached_property
from typing import Optional, Sequence

from .attributes.query import (
    get_assembly_version,
    get_company,
    get_description,
    get_semantic_version,
)
from .errors import ResolutionError
from .logging import get_logger
from .models import AttributeEntry, PropertyBag, ResolvedMetadata, SemanticVersion


def split_semantic_version(version: Optional[str], suffix_override: Optional[str]) -> SemanticVersion:
    """Split ``version`` into prefix and suffix, applying ``suffix_override``.

    Without an override the original string is returned unchanged and the
    suffix is only reported when the version contains exactly one ``-``. An
    override always replaces whatever suffix the version carried.
    """
    if not version:
        return SemanticVersion(full=version, prefix=None, suffix=None)

    parts = version.split("-")
    prefix = parts[0]

    if not suffix_override:
        suffix = parts[1] if len(parts) == 2 else None
        return SemanticVersion(full=version, prefix=prefix, suffix=suffix)

    return SemanticVersion(
        full=f"{prefix}-{suffix_override}", prefix=prefix, suffix=suffix_override
    )


class MetadataContext:
    """Resolves package metadata from project properties and assembly attributes.

    Each output is computed on first access and cached for the lifetime of
    the context. Project properties win when non-empty; attributes are the
    fallback.
    """

    def __init__(self, properties: PropertyBag, attributes: Sequence[AttributeEntry]) -> None:
        self.properties = properties
        self.attributes = attributes
        self.logger = get_logger("context")

    @cached_property
    def assembly_version(self) -> str:
        value = self.properties.value("AssemblyVersion")
        if value:
            return value
        return get_assembly_version(self.attributes)

    @cached_property
    def author(self) -> Optional[str]:
        value = self.properties.value("Authors")
        if value:
            return value
        return get_company(self.attributes)

    @cached_property
    def description(self) -> Optional[str]:
        value = self.properties.value("Description")
        if value:
            return value
        return get_description(self.attributes)

    @property
    def semantic_version(self) -> Optional[str]:
        return self._semantic_version.full

    @property
    def semantic_version_prefix(self) -> Optional[str]:
        return self._semantic_version.prefix

    @property
    def semantic_version_suffix(self) -> Optional[str]:
        return self._semantic_version.suffix

    @cached_property
    def _semantic_version(self) -> SemanticVersion:
        suffix_override = self.properties.value("VersionSuffix") or None
        package_version = self.properties.value("PackageVersion")

        if package_version:
            self.logger.debug("Semantic version taken from PackageVersion")
            return split_semantic_version(package_version, suffix_override)

        prefix = self.properties.value("VersionPrefix")
        if prefix:
            self.logger.debug("Semantic version taken from VersionPrefix")
            full = f"{prefix}-{suffix_override}" if suffix_override else prefix
            return SemanticVersion(full=full, prefix=prefix, suffix=suffix_override)

        assembly_version = self.properties.value("AssemblyVersion")
        if assembly_version:
            self.logger.debug("Semantic version derived from the AssemblyVersion property")
            separator = assembly_version.rfind(".")
            if separator < 0:
                raise ResolutionError(
                    f"AssemblyVersion '{assembly_version}' has no '.' separated revision to drop"
                )
            full = assembly_version[:separator]
            # The suffix override is reported but not joined into the full version here.
            return SemanticVersion(full=full, prefix=full, suffix=suffix_override)

        self.logger.debug("Semantic version taken from assembly attributes")
        return split_semantic_version(get_semantic_version(self.attributes), suffix_override)

    def resolve(self) -> ResolvedMetadata:
        """Return every resolved field."""
        return ResolvedMetadata(
            assembly_version=self.assembly_version,
            semantic_version=self._semantic_version,
            author=self.author,
            description=self.description,
        )


__all__ = ["MetadataContext", "split_semantic_version"]
