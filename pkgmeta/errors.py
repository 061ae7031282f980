"""Exception types raised while resolving package metadata."""


class MetadataError(RuntimeError):
    """Base class for fatal metadata resolution failures."""


class ProjectError(MetadataError):
    """Raised when a project file cannot be read or evaluated."""


class SourceReadError(MetadataError):
    """Raised when a matched assembly information file cannot be read."""


class AttributeCompileError(MetadataError):
    """Raised when assembly information source text cannot be parsed."""


class ResolutionError(MetadataError):
    """Raised when configured values cannot be decomposed into a version."""


__all__ = [
    "AttributeCompileError",
    "MetadataError",
    "ProjectError",
    "ResolutionError",
    "SourceReadError",
]
