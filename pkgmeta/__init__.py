"""Resolve package metadata from project properties and assembly attributes."""

from __future__ import annotations

from .context import MetadataContext, split_semantic_version
from .errors import MetadataError
from .models import ResolvedMetadata, SemanticVersion, SourceItem
from .tasks import GetPackageMetadata, ResolvePackageReference, resolve

__version__ = "0.1.0"

__all__ = [
    "GetPackageMetadata",
    "MetadataContext",
    "MetadataError",
    "ResolvePackageReference",
    "ResolvedMetadata",
    "SemanticVersion",
    "SourceItem",
    "resolve",
    "split_semantic_version",
]
