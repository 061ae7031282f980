"""Discovery of assembly attributes from a project's declared source items."""

from __future__ import annotations

import os
import re
from functools import cached_property
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Union, overload

from ..errors import SourceReadError
from ..logging import get_logger
from ..models import AttributeEntry, SourceItem, SourceText
from .base import AttributeCompiler

DEFAULT_ASSEMBLY_INFO_PATTERN = ".*AssemblyInfo.cs"

_LOGGER = get_logger("attributes")


def compile_assembly_info_pattern(pattern: Optional[str] = None) -> re.Pattern[str]:
    """Return the regular expression used to match assembly information files."""
    if not pattern:
        pattern = DEFAULT_ASSEMBLY_INFO_PATTERN
    return re.compile(pattern, re.IGNORECASE | re.DOTALL)


def match_source_items(
    items: Sequence[SourceItem], pattern: re.Pattern[str]
) -> List[SourceItem]:
    """Return the items whose include path matches ``pattern``, in declared order."""
    return [item for item in items if pattern.search(item.include)]


def read_sources(items: Sequence[SourceItem], base_directory: Path) -> List[SourceText]:
    """Read every item relative to ``base_directory``."""
    sources: List[SourceText] = []
    for item in items:
        path = _resolve_include(item.include, base_directory)
        try:
            text = path.read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as exc:
            raise SourceReadError(f"Unable to read {path}: {exc}") from exc
        sources.append(SourceText(path=path, text=text))
    return sources


def attributes_for(
    items: Sequence[SourceItem],
    base_directory: Path,
    pattern: Optional[str],
    assembly_name: str,
    compiler: AttributeCompiler,
) -> List[AttributeEntry]:
    """Compile the matching source items in isolation and return their attributes."""
    regex = compile_assembly_info_pattern(pattern)
    # Declared items only; linked includes may point outside base_directory.
    matched = match_source_items(items, regex)
    _LOGGER.debug(
        "Matched %d of %d source item(s) with %r",
        len(matched),
        len(items),
        regex.pattern,
    )
    for item in matched:
        _LOGGER.debug("Assembly information file: %s", item.include)
    sources = read_sources(matched, base_directory)
    return list(compiler.compile(sources, assembly_name))


class AttributeIndex(Sequence[AttributeEntry]):
    """Read-only list of assembly attributes, evaluated on first access."""

    def __init__(
        self,
        items: Sequence[SourceItem],
        base_directory: Path,
        compiler: AttributeCompiler,
        *,
        pattern: Optional[str] = None,
        assembly_name: str = "",
    ) -> None:
        self._items = list(items)
        self._base_directory = base_directory
        self._compiler = compiler
        self._pattern = pattern or DEFAULT_ASSEMBLY_INFO_PATTERN
        self._assembly_name = assembly_name

    @cached_property
    def _attributes(self) -> List[AttributeEntry]:
        return attributes_for(
            self._items,
            self._base_directory,
            self._pattern,
            self._assembly_name,
            self._compiler,
        )

    @overload
    def __getitem__(self, index: int) -> AttributeEntry: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[AttributeEntry]: ...

    def __getitem__(
        self, index: Union[int, slice]
    ) -> Union[AttributeEntry, Sequence[AttributeEntry]]:
        return self._attributes[index]

    def __len__(self) -> int:
        return len(self._attributes)

    def __iter__(self) -> Iterator[AttributeEntry]:
        return iter(self._attributes)


def _resolve_include(include: str, base_directory: Path) -> Path:
    normalised = include.replace("\\", "/")
    return Path(os.path.abspath(base_directory / normalised))


__all__ = [
    "AttributeIndex",
    "DEFAULT_ASSEMBLY_INFO_PATTERN",
    "attributes_for",
    "compile_assembly_info_pattern",
    "match_source_items",
    "read_sources",
]
