"""Minimal MSBuild project evaluation: properties and compile items."""

from __future__ import annotations

import glob
import os
import posixpath
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional, Set, Tuple

from .errors import ProjectError
from .logging import get_logger
from .models import Project, PropertyBag, SourceItem

DIRECTORY_BUILD_PROPS = "Directory.Build.props"

_PROPERTY_REFERENCE = re.compile(r"\$\(\s*([A-Za-z_][\w-]*)\s*\)")
_CONDITION_SPLIT = re.compile(
    r"\s+(and|or)\s+(?=(?:[^']*'[^']*')*[^']*$)", re.IGNORECASE
)
_COMPARISON = re.compile(r"^'([^']*)'\s*(==|!=)\s*'([^']*)'$")
_EXISTS = re.compile(r"^(!\s*)?Exists\(\s*'([^']*)'\s*\)$", re.IGNORECASE)
_WILDCARD_CHARS = ("*", "?")
_DEFAULT_COMPILE_GLOB = "**/*.cs"
_DEFAULT_EXCLUDED_DIRS = ("bin/", "obj/")


class _UnsupportedCondition(Exception):
    pass


@dataclass
class _Evaluation:
    project_path: Path
    global_properties: PropertyBag
    reserved: PropertyBag = field(default_factory=PropertyBag)
    properties: PropertyBag = field(default_factory=PropertyBag)
    # Item groups are evaluated after every property: (element, defining file).
    item_groups: List[Tuple[ET.Element, Path]] = field(default_factory=list)
    visited: Set[Path] = field(default_factory=set)

    @property
    def project_dir(self) -> Path:
        return self.project_path.parent

    def lookup(self, name: str) -> str:
        for bag in (self.reserved, self.global_properties, self.properties):
            if name in bag:
                return bag[name]
        return ""

    def merged(self) -> PropertyBag:
        bag = PropertyBag(self.properties)
        bag.update(self.global_properties)
        bag.update(self.reserved)
        return bag


class ProjectReader:
    """Evaluates the subset of MSBuild needed to describe a component.

    Supported: property groups with ``$(Name)`` expansion, simple ``==``/``!=``
    and ``Exists()`` conditions, ``Directory.Build.props`` and explicit file
    imports, and ``Compile`` items with wildcards, ``Exclude`` and ``Remove``.
    Global properties win over anything the project declares.
    """

    def __init__(self, global_properties: Mapping[str, str] | None = None) -> None:
        self.global_properties = PropertyBag(global_properties or {})
        self.logger = get_logger("project")

    def read(self, path: Path) -> Project:
        project_path = Path(path).expanduser()
        if not project_path.is_file():
            raise FileNotFoundError(f"Project file not found: {project_path}")
        project_path = project_path.resolve()

        state = _Evaluation(project_path=project_path, global_properties=self.global_properties)
        self._set_reserved_properties(state)

        root = self._parse(project_path)
        if state.lookup("ImportDirectoryBuildProps").lower() != "false":
            props = _find_directory_build_props(project_path.parent)
            if props is not None:
                self.logger.debug("Importing %s", props)
                self._evaluate_file(state, props)

        state.visited.add(project_path)
        self._evaluate_element(state, root, project_path)

        is_sdk_project = bool(root.get("Sdk")) or any(
            _local_name(child.tag) == "Sdk" for child in root
        )
        items = self._evaluate_items(state, is_sdk_project)
        properties = state.merged()
        if not properties.value("AssemblyName"):
            properties["AssemblyName"] = project_path.stem

        self.logger.debug(
            "Evaluated %s: %d properties, %d compile item(s)",
            project_path.name,
            len(properties),
            len(items),
        )
        return Project(path=project_path, properties=properties, compile_items=items)

    # -- property pass -------------------------------------------------

    def _set_reserved_properties(self, state: _Evaluation) -> None:
        path = state.project_path
        directory = str(path.parent)
        state.reserved["MSBuildProjectName"] = path.stem
        state.reserved["MSBuildProjectFile"] = path.name
        state.reserved["MSBuildProjectExtension"] = path.suffix
        state.reserved["MSBuildProjectFullPath"] = str(path)
        state.reserved["MSBuildProjectDirectory"] = directory

    def _parse(self, path: Path) -> ET.Element:
        try:
            return ET.parse(path).getroot()
        except ET.ParseError as exc:
            raise ProjectError(f"Failed to parse {path}: {exc}") from exc
        except OSError as exc:
            raise ProjectError(f"Unable to read {path}: {exc}") from exc

    def _evaluate_file(self, state: _Evaluation, path: Path) -> None:
        resolved = path.resolve()
        if resolved in state.visited:
            self.logger.debug("Skipping circular import of %s", resolved)
            return
        state.visited.add(resolved)
        self._evaluate_element(state, self._parse(resolved), resolved)

    def _evaluate_element(self, state: _Evaluation, root: ET.Element, this_file: Path) -> None:
        for element in root:
            tag = _local_name(element.tag)
            if tag == "PropertyGroup":
                if self._condition_holds(state, element, this_file):
                    self._evaluate_property_group(state, element, this_file)
            elif tag == "ItemGroup":
                state.item_groups.append((element, this_file))
            elif tag == "Import":
                self._evaluate_import(state, element, this_file)
            elif tag == "Choose":
                self.logger.debug("Choose elements are not evaluated (%s)", this_file.name)

    def _evaluate_property_group(
        self, state: _Evaluation, group: ET.Element, this_file: Path
    ) -> None:
        for element in group:
            if not isinstance(element.tag, str):
                continue
            name = _local_name(element.tag)
            if not self._condition_holds(state, element, this_file):
                continue
            if name in state.reserved:
                raise ProjectError(f"Reserved property '{name}' cannot be modified in {this_file}")
            if name in state.global_properties:
                self.logger.debug("Global property %s overrides the value in %s", name, this_file.name)
                continue
            state.properties[name] = self._expand(state, element.text or "", this_file).strip()

    def _evaluate_import(self, state: _Evaluation, element: ET.Element, this_file: Path) -> None:
        if element.get("Sdk") is not None:
            return
        project = element.get("Project")
        if not project or not self._condition_holds(state, element, this_file):
            return
        target = self._expand(state, project, this_file).replace("\\", "/")
        candidate = Path(target)
        if not candidate.is_absolute():
            candidate = this_file.parent / candidate
        if not candidate.is_file():
            self.logger.debug("Import %s does not exist; skipping", candidate)
            return
        self._evaluate_file(state, candidate)

    # -- item pass -----------------------------------------------------

    def _evaluate_items(self, state: _Evaluation, is_sdk_project: bool) -> List[SourceItem]:
        includes: List[str] = []
        if is_sdk_project and _enabled(state.lookup("EnableDefaultItems")) and _enabled(
            state.lookup("EnableDefaultCompileItems")
        ):
            includes.extend(
                path
                for path in self._glob(state.project_dir, _DEFAULT_COMPILE_GLOB)
                if not path.startswith(_DEFAULT_EXCLUDED_DIRS)
            )

        for group, this_file in state.item_groups:
            if not self._condition_holds(state, group, this_file):
                continue
            for element in group:
                if not isinstance(element.tag, str) or _local_name(element.tag) != "Compile":
                    continue
                if not self._condition_holds(state, element, this_file):
                    continue
                self._apply_compile_item(state, element, this_file, includes)

        seen: Set[str] = set()
        items: List[SourceItem] = []
        for include in includes:
            key = _item_key(include)
            if key in seen:
                continue
            seen.add(key)
            items.append(SourceItem(include=include))
        return items

    def _apply_compile_item(
        self, state: _Evaluation, element: ET.Element, this_file: Path, includes: List[str]
    ) -> None:
        remove = element.get("Remove")
        if remove is not None:
            removed = self._expand_item_spec(state, remove, this_file)
            keys = {_item_key(path) for path in removed}
            includes[:] = [path for path in includes if _item_key(path) not in keys]
            return

        include = element.get("Include")
        if include is None:
            return
        excluded_keys = {
            _item_key(path)
            for path in self._expand_item_spec(state, element.get("Exclude", ""), this_file)
        }
        for path in self._expand_item_spec(state, include, this_file):
            if _item_key(path) not in excluded_keys:
                includes.append(path)

    def _expand_item_spec(self, state: _Evaluation, spec: str, this_file: Path) -> List[str]:
        paths: List[str] = []
        for part in self._expand(state, spec, this_file).split(";"):
            part = part.strip()
            if not part:
                continue
            if any(char in part for char in _WILDCARD_CHARS):
                paths.extend(self._glob(state.project_dir, part.replace("\\", "/")))
            else:
                paths.append(part)
        return paths

    @staticmethod
    def _glob(directory: Path, pattern: str) -> List[str]:
        matches = glob.glob(pattern, root_dir=directory, recursive=True)
        return sorted(
            match.replace(os.sep, "/")
            for match in matches
            if (directory / match).is_file()
        )

    # -- expressions ---------------------------------------------------

    def _expand(self, state: _Evaluation, text: str, this_file: Path) -> str:
        def _replace(match: re.Match[str]) -> str:
            name = match.group(1)
            if name.lower() == "msbuildthisfiledirectory":
                return str(this_file.parent) + os.sep
            if name.lower() == "msbuildthisfile":
                return this_file.name
            return state.lookup(name)

        return _PROPERTY_REFERENCE.sub(_replace, text)

    def _condition_holds(self, state: _Evaluation, element: ET.Element, this_file: Path) -> bool:
        condition = element.get("Condition")
        if condition is None or not condition.strip():
            return True
        try:
            return self._evaluate_condition(state, condition, this_file)
        except _UnsupportedCondition:
            self.logger.debug("Unsupported condition %r treated as false", condition)
            return False

    def _evaluate_condition(self, state: _Evaluation, condition: str, this_file: Path) -> bool:
        parts = _CONDITION_SPLIT.split(condition.strip())
        clauses = parts[0::2]
        operators = [operator.lower() for operator in parts[1::2]]

        satisfied = False
        current = self._evaluate_clause(state, clauses[0], this_file)
        for operator, clause in zip(operators, clauses[1:]):
            value = self._evaluate_clause(state, clause, this_file)
            if operator == "and":
                current = current and value
            else:
                satisfied = satisfied or current
                current = value
        return satisfied or current

    def _evaluate_clause(self, state: _Evaluation, clause: str, this_file: Path) -> bool:
        clause = clause.strip()
        if clause.lower() in {"true", "false"}:
            return clause.lower() == "true"

        comparison = _COMPARISON.match(clause)
        if comparison is not None:
            left = self._expand(state, comparison.group(1), this_file).strip().lower()
            right = self._expand(state, comparison.group(3), this_file).strip().lower()
            equal = left == right
            return equal if comparison.group(2) == "==" else not equal

        exists = _EXISTS.match(clause)
        if exists is not None:
            target = Path(self._expand(state, exists.group(2), this_file).replace("\\", "/"))
            if not target.is_absolute():
                target = state.project_dir / target
            found = target.exists()
            return not found if exists.group(1) else found

        raise _UnsupportedCondition(clause)


def read_project(path: Path, global_properties: Mapping[str, str] | None = None) -> Project:
    """Evaluate the project at ``path``."""
    return ProjectReader(global_properties).read(path)


def _find_directory_build_props(start: Path) -> Optional[Path]:
    for directory in (start, *start.parents):
        candidate = directory / DIRECTORY_BUILD_PROPS
        if candidate.is_file():
            return candidate
    return None


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _enabled(value: str) -> bool:
    return value.strip().lower() != "false"


def _item_key(include: str) -> str:
    return posixpath.normpath(include.replace("\\", "/")).lower()


__all__ = ["DIRECTORY_BUILD_PROPS", "ProjectReader", "read_project"]
