"""Host-facing tasks that publish package metadata for a source project."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Mapping, Optional, Sequence

from .attributes.base import AttributeCompiler
from .attributes.index import AttributeIndex
from .attributes.tree_sitter import CSharpAttributeCompiler
from .context import MetadataContext
from .logging import get_logger
from .models import PropertyBag, ResolvedMetadata, SourceItem
from .project import ProjectReader


def resolve(
    properties: Mapping[str, str],
    source_items: Sequence[SourceItem],
    *,
    base_directory: Path,
    assembly_info_pattern: Optional[str] = None,
    suffix_override: Optional[str] = None,
    assembly_name: str = "",
    compiler: AttributeCompiler | None = None,
) -> ResolvedMetadata:
    """Resolve package metadata for one component.

    ``suffix_override`` replaces the ``VersionSuffix`` property when given.
    Raises a ``MetadataError`` subclass when a matched source file cannot be
    read or parsed.
    """
    bag = PropertyBag(properties)
    if suffix_override is not None:
        bag["VersionSuffix"] = suffix_override
    index = AttributeIndex(
        source_items,
        base_directory,
        compiler or CSharpAttributeCompiler(),
        pattern=assembly_info_pattern,
        assembly_name=assembly_name or bag.value("AssemblyName"),
    )
    return MetadataContext(bag, index).resolve()


class AssemblyMetadataTask(ABC):
    """Base task that reads metadata from a source project.

    Callers set ``source_project_path`` (required) and optionally
    ``assembly_info_file_pattern`` and ``global_properties``, then call
    ``execute()``. Subclasses decide which outputs to publish and whether the
    result is valid.
    """

    def __init__(
        self,
        source_project_path: Path | str | None = None,
        *,
        assembly_info_file_pattern: Optional[str] = None,
        global_properties: Mapping[str, str] | None = None,
        compiler: AttributeCompiler | None = None,
    ) -> None:
        self.source_project_path = source_project_path
        self.assembly_info_file_pattern = assembly_info_file_pattern
        self.global_properties = dict(global_properties or {})
        self.is_valid = False
        self._compiler = compiler
        self.logger = get_logger("tasks")

    def execute(self) -> bool:
        """Run the task and return whether it produced valid metadata."""
        if not self.source_project_path:
            raise ValueError("source_project_path is required")

        self.is_valid = False
        project = ProjectReader(self.global_properties).read(Path(self.source_project_path))
        self.logger.info("Reading package metadata from %s", project.path)

        index = AttributeIndex(
            project.compile_items,
            project.directory,
            self._compiler or CSharpAttributeCompiler(),
            pattern=self.assembly_info_file_pattern,
            assembly_name=project.assembly_name,
        )
        context = MetadataContext(project.properties, index)

        self.is_valid = True
        try:
            self.populate_metadata(context)
        except Exception:
            self.is_valid = False
            raise
        return self.is_valid

    @abstractmethod
    def populate_metadata(self, context: MetadataContext) -> None:
        """Copy the outputs this task publishes from ``context``."""

    @abstractmethod
    def outputs(self) -> dict[str, Optional[str]]:
        """Return the published outputs keyed by their host-visible names."""


class GetPackageMetadata(AssemblyMetadataTask):
    """Publishes the version, author and description for a package manifest."""

    def __init__(self, *args, **kwargs) -> None:  # type: ignore[no-untyped-def]
        super().__init__(*args, **kwargs)
        self.assembly_version: Optional[str] = None
        self.semantic_version: Optional[str] = None
        self.semantic_version_prefix: Optional[str] = None
        self.semantic_version_suffix: Optional[str] = None
        self.author: Optional[str] = None
        self.description: Optional[str] = None

    def populate_metadata(self, context: MetadataContext) -> None:
        self.assembly_version = context.assembly_version
        self.semantic_version = context.semantic_version
        self.semantic_version_prefix = context.semantic_version_prefix
        self.semantic_version_suffix = context.semantic_version_suffix
        self.author = context.author
        self.description = context.description

    def outputs(self) -> dict[str, Optional[str]]:
        return {
            "AssemblyVersion": self.assembly_version,
            "SemanticVersion": self.semantic_version,
            "SemanticVersionPrefix": self.semantic_version_prefix,
            "SemanticVersionSuffix": self.semantic_version_suffix,
            "Author": self.author,
            "Description": self.description,
        }


class ResolvePackageReference(AssemblyMetadataTask):
    """Resolves the package version a referencing project should depend on.

    The task is only valid when a semantic version could be resolved.
    """

    def __init__(self, *args, **kwargs) -> None:  # type: ignore[no-untyped-def]
        super().__init__(*args, **kwargs)
        self.assembly_version: Optional[str] = None
        self.semantic_version: Optional[str] = None
        self.semantic_version_prefix: Optional[str] = None
        self.semantic_version_suffix: Optional[str] = None

    def populate_metadata(self, context: MetadataContext) -> None:
        self.assembly_version = context.assembly_version
        self.semantic_version = context.semantic_version
        self.semantic_version_prefix = context.semantic_version_prefix
        self.semantic_version_suffix = context.semantic_version_suffix
        self.is_valid = bool(self.semantic_version)

    def outputs(self) -> dict[str, Optional[str]]:
        return {
            "AssemblyVersion": self.assembly_version,
            "SemanticVersion": self.semantic_version,
            "SemanticVersionPrefix": self.semantic_version_prefix,
            "SemanticVersionSuffix": self.semantic_version_suffix,
        }


__all__ = [
    "AssemblyMetadataTask",
    "GetPackageMetadata",
    "ResolvePackageReference",
    "resolve",
]
