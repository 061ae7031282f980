"""Assembly attribute discovery and lookup."""

from __future__ import annotations

from .base import AttributeCompiler
from .index import (
    DEFAULT_ASSEMBLY_INFO_PATTERN,
    AttributeIndex,
    attributes_for,
    compile_assembly_info_pattern,
)
from .query import (
    DEFAULT_ASSEMBLY_VERSION,
    find_first_value,
    get_assembly_version,
    get_company,
    get_description,
    get_semantic_version,
)

__all__ = [
    "AttributeCompiler",
    "AttributeIndex",
    "DEFAULT_ASSEMBLY_INFO_PATTERN",
    "DEFAULT_ASSEMBLY_VERSION",
    "attributes_for",
    "compile_assembly_info_pattern",
    "find_first_value",
    "get_assembly_version",
    "get_company",
    "get_description",
    "get_semantic_version",
]
