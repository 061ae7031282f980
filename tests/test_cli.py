"""CLI behaviour tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from pkgmeta.cli import _build_parser, main
from tests._fixtures.project_builder import ProjectBuilder

_ASSEMBLY_INFO = """
[assembly: System.Reflection.AssemblyCompany("Contoso")]
[assembly: System.Reflection.AssemblyInformationalVersion("1.5.0-beta")]
"""


def _project(project_builder: ProjectBuilder, **properties: str) -> Path:
    project_builder.write({"src/Contoso.Widgets/Properties/AssemblyInfo.cs": _ASSEMBLY_INFO})
    return project_builder.project(properties=properties)


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "package", "Widgets.csproj"])
    assert args.verbose is True
    assert args.command == "package"


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["reference", "Widgets.csproj", "--verbose"])
    assert args.verbose is True
    assert args.command == "reference"


def test_cli_collects_repeated_properties() -> None:
    parser = _build_parser()
    args = parser.parse_args(
        ["package", "Widgets.csproj", "-p", "Configuration=Release", "--property", "Authors=Contoso"]
    )
    assert args.properties == ["Configuration=Release", "Authors=Contoso"]
    assert args.format == "text"


def test_package_command_prints_fields(
    project_builder: ProjectBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    path = _project(project_builder)

    main(["package", str(path), "--version-suffix", "ci.3", "-p", "Description=Widgets"])

    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        "AssemblyVersion=0.0.0.0",
        "SemanticVersion=1.5.0-ci.3",
        "SemanticVersionPrefix=1.5.0",
        "SemanticVersionSuffix=ci.3",
        "Author=Contoso",
        "Description=Widgets",
    ]


def test_reference_command_prints_json(
    project_builder: ProjectBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    path = _project(project_builder, PackageVersion="1.6.0")

    main(["reference", str(path), "--format", "json"])

    payload = json.loads(capsys.readouterr().out)
    assert payload == {
        "AssemblyVersion": "0.0.0.0",
        "SemanticVersion": "1.6.0",
        "SemanticVersionPrefix": "1.6.0",
        "SemanticVersionSuffix": None,
        "IsValid": True,
    }


def test_config_file_supplies_defaults(
    project_builder: ProjectBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    path = _project(project_builder)
    (path.parent / ".pkgmeta.yml").write_text(
        "version_suffix: nightly\nproperties:\n  Authors: Fabrikam\n", encoding="utf-8"
    )

    main(["package", str(path), "--format", "json"])

    payload = json.loads(capsys.readouterr().out)
    assert payload["SemanticVersion"] == "1.5.0-nightly"
    assert payload["Author"] == "Fabrikam"


def test_invalid_reference_exits_with_failure(
    project_builder: ProjectBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    path = _project(project_builder, AssemblyVersion=".1")

    with pytest.raises(SystemExit) as excinfo:
        main(["reference", str(path)])

    assert excinfo.value.code == 1
    assert "SemanticVersion=" in capsys.readouterr().out


def test_missing_project_exits_with_message(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["package", str(tmp_path / "Missing.csproj")])

    assert excinfo.value.code == 1
    assert "Missing.csproj" in capsys.readouterr().err


def test_malformed_property_is_a_usage_error(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["package", str(tmp_path / "Widgets.csproj"), "-p", "NoEquals"])
    assert excinfo.value.code == 2
