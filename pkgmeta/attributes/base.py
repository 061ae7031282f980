"""Base classes for attribute compilers."""

from abc import ABC, abstractmethod
from typing import List, Sequence

from ..models import AttributeEntry, SourceText


class AttributeCompiler(ABC):
    """Contract for extractors that turn source text into assembly attributes."""

    @abstractmethod
    def compile(self, sources: Sequence[SourceText], unit_name: str) -> List[AttributeEntry]:
        """Return the assembly-level attributes declared across ``sources``."""
