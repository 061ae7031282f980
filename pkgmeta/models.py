"""Core data models shared across pkgmeta components."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, Mapping, MutableMapping, Optional, Tuple


class PropertyBag(MutableMapping[str, str]):
    """Case-insensitive property mapping where missing names read as empty."""

    def __init__(self, values: Mapping[str, str] | None = None) -> None:
        self._values: Dict[str, Tuple[str, str]] = {}
        if values:
            self.update(values)

    def __getitem__(self, name: str) -> str:
        return self._values[name.lower()][1]

    def __setitem__(self, name: str, value: str) -> None:
        self._values[name.lower()] = (name, value)

    def __delitem__(self, name: str) -> None:
        del self._values[name.lower()]

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._values.values())

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._values

    def value(self, name: str) -> str:
        """Return the property value, or an empty string when undefined."""
        entry = self._values.get(name.lower())
        return entry[1] if entry is not None else ""

    def __repr__(self) -> str:
        return f"PropertyBag({dict(self.items())!r})"


@dataclass(frozen=True)
class SourceItem:
    """A declared compile item with its evaluated include path."""

    include: str


@dataclass(frozen=True)
class SourceText:
    """Full text of a source file handed to an attribute compiler."""

    path: Path
    text: str


@dataclass(frozen=True)
class AttributeEntry:
    """A single assembly-level attribute declaration."""

    name: str
    arguments: Tuple[Optional[str], ...] = ()
    source: Optional[Path] = None
    line: int = 0


@dataclass(frozen=True)
class SemanticVersion:
    """A resolved semantic version split into its prefix and suffix."""

    full: Optional[str]
    prefix: Optional[str]
    suffix: Optional[str]


@dataclass
class ResolvedMetadata:
    """Final metadata values published to the host."""

    assembly_version: Optional[str]
    semantic_version: SemanticVersion
    author: Optional[str]
    description: Optional[str]

    def as_fields(self) -> Dict[str, Optional[str]]:
        """Return the metadata keyed by the host-visible output names."""
        return {
            "AssemblyVersion": self.assembly_version,
            "SemanticVersion": self.semantic_version.full,
            "SemanticVersionPrefix": self.semantic_version.prefix,
            "SemanticVersionSuffix": self.semantic_version.suffix,
            "Author": self.author,
            "Description": self.description,
        }


@dataclass
class Project:
    """An evaluated project: its properties and declared compile items."""

    path: Path
    properties: PropertyBag = field(default_factory=PropertyBag)
    compile_items: list[SourceItem] = field(default_factory=list)

    @property
    def directory(self) -> Path:
        return self.path.parent

    @property
    def assembly_name(self) -> str:
        return self.properties.value("AssemblyName") or self.path.stem
