"""Lookups over a sequence of assembly attributes."""

from __future__ import annotations

from typing import Iterable, Optional

from ..models import AttributeEntry

DEFAULT_ASSEMBLY_VERSION = "0.0.0.0"


def find_first_value(attributes: Iterable[AttributeEntry], name: str) -> Optional[str]:
    """Return the first constructor argument of the first attribute named ``name``."""
    if not name:
        raise ValueError("attribute name must not be empty")
    for attribute in attributes:
        if attribute.name == name:
            return attribute.arguments[0] if attribute.arguments else None
    return None


def get_description(attributes: Iterable[AttributeEntry]) -> Optional[str]:
    return find_first_value(attributes, "AssemblyDescription")


def get_company(attributes: Iterable[AttributeEntry]) -> Optional[str]:
    return find_first_value(attributes, "AssemblyCompany")


def get_assembly_version(attributes: Iterable[AttributeEntry]) -> str:
    """Return the declared assembly version, or ``0.0.0.0`` when there is none."""
    version = find_first_value(attributes, "AssemblyVersion")
    return version or DEFAULT_ASSEMBLY_VERSION


def get_semantic_version(attributes: Iterable[AttributeEntry]) -> str:
    """Return the informational version, falling back to the assembly version."""
    # Materialise once so generators can be searched twice.
    entries = list(attributes)
    version = find_first_value(entries, "AssemblyInformationalVersion")
    return version or get_assembly_version(entries)


__all__ = [
    "DEFAULT_ASSEMBLY_VERSION",
    "find_first_value",
    "get_assembly_version",
    "get_company",
    "get_description",
    "get_semantic_version",
]
