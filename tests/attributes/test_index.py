"""Tests for pkgmeta.attributes.index."""

from __future__ import annotations

from pathlib import Path

import pytest

from pkgmeta.attributes.index import (
    DEFAULT_ASSEMBLY_INFO_PATTERN,
    AttributeIndex,
    attributes_for,
    compile_assembly_info_pattern,
    match_source_items,
)
from pkgmeta.errors import SourceReadError
from pkgmeta.models import SourceItem
from tests._fixtures.compilers import RecordingCompiler, entry
from tests._fixtures.project_builder import ProjectBuilder


def _items(*includes: str) -> list[SourceItem]:
    return [SourceItem(include=include) for include in includes]


def test_default_pattern_matches_assembly_info_case_insensitively() -> None:
    regex = compile_assembly_info_pattern(None)
    assert regex.pattern == DEFAULT_ASSEMBLY_INFO_PATTERN
    matched = match_source_items(
        _items(
            "Program.cs",
            "Properties\\AssemblyInfo.cs",
            "properties/assemblyinfo.CS",
            "..\\Shared\\SharedAssemblyInfo.cs",
        ),
        regex,
    )
    assert [item.include for item in matched] == [
        "Properties\\AssemblyInfo.cs",
        "properties/assemblyinfo.CS",
        "..\\Shared\\SharedAssemblyInfo.cs",
    ]


def test_empty_pattern_uses_default() -> None:
    assert compile_assembly_info_pattern("").pattern == DEFAULT_ASSEMBLY_INFO_PATTERN


def test_custom_pattern_is_searched_anywhere_in_the_include() -> None:
    matched = match_source_items(
        _items("Version.cs", "Properties/AssemblyInfo.cs", "Build/Version.props"),
        compile_assembly_info_pattern(r"Version\.cs$"),
    )
    assert [item.include for item in matched] == ["Version.cs"]


def test_attributes_for_reads_matched_files_relative_to_base(
    project_builder: ProjectBuilder,
) -> None:
    project_builder.write(
        {
            "src/Widgets/Properties/AssemblyInfo.cs": "// local\n",
            "src/Shared/SharedAssemblyInfo.cs": "// shared\n",
            "src/Widgets/Program.cs": "// program\n",
        }
    )
    base = project_builder.path() / "src" / "Widgets"
    compiler = RecordingCompiler([entry("AssemblyCompany", "Contoso")])

    result = attributes_for(
        _items("Program.cs", "Properties\\AssemblyInfo.cs", "..\\Shared\\SharedAssemblyInfo.cs"),
        base,
        None,
        "Contoso.Widgets",
        compiler,
    )

    assert result == [entry("AssemblyCompany", "Contoso")]
    assert len(compiler.calls) == 1
    sources, unit_name = compiler.calls[0]
    assert unit_name == "Contoso.Widgets"
    assert [source.text for source in sources] == ["// local\n", "// shared\n"]
    assert sources[1].path == project_builder.path() / "src" / "Shared" / "SharedAssemblyInfo.cs"
    assert all(source.path.is_absolute() for source in sources)


def test_attributes_for_strips_byte_order_mark(project_builder: ProjectBuilder) -> None:
    path = project_builder.path() / "AssemblyInfo.cs"
    path.write_bytes(b"\xef\xbb\xbf// bom\n")
    compiler = RecordingCompiler()

    attributes_for(_items("AssemblyInfo.cs"), project_builder.path(), None, "Widgets", compiler)

    assert compiler.calls[0][0][0].text == "// bom\n"


def test_unreadable_file_aborts_before_compiling(tmp_path: Path) -> None:
    compiler = RecordingCompiler()
    with pytest.raises(SourceReadError) as excinfo:
        attributes_for(_items("Properties/AssemblyInfo.cs"), tmp_path, None, "Widgets", compiler)
    assert "AssemblyInfo.cs" in str(excinfo.value)
    assert compiler.calls == []


def test_index_is_lazy_and_evaluated_once(project_builder: ProjectBuilder) -> None:
    project_builder.write({"Properties/AssemblyInfo.cs": "// attributes\n"})
    compiler = RecordingCompiler(
        [entry("AssemblyVersion", "1.0.0.0"), entry("AssemblyCompany", "Contoso")]
    )
    index = AttributeIndex(
        _items("Properties/AssemblyInfo.cs"),
        project_builder.path(),
        compiler,
        assembly_name="Widgets",
    )

    assert compiler.calls == []
    assert len(index) == 2
    assert index[0].name == "AssemblyVersion"
    assert [attribute.name for attribute in index] == ["AssemblyVersion", "AssemblyCompany"]
    assert len(compiler.calls) == 1


def test_index_with_no_matching_items_compiles_nothing(tmp_path: Path) -> None:
    compiler = RecordingCompiler()
    index = AttributeIndex(_items("Program.cs"), tmp_path, compiler)
    assert list(index) == []
    assert compiler.calls[0][0] == []
