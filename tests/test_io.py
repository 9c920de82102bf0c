"""Tests for script loading, imports and result export in funqy._io."""

import tomllib
from pathlib import Path

import pytest

from funqy._errors import InvalidOperation
from funqy._eval_engine import FixedSequenceSource
from funqy._io import (
    ScriptImporter,
    ScriptNotFoundError,
    export_results_to_toml,
    load_script,
    resolve_script,
    results_to_dict,
)
from funqy._program import run_program, run_source

GATES = """
data Bool = F | T
fn had { F => sup(F, T), T => sup(F, phf(T)) }
fn not { F => T, T => F }
"""


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


class TestResolveScript:
    """Tests for resolve_script()."""

    def test_exact_path(self, tmp_path: Path) -> None:
        script = write(tmp_path / "bell.fqy", "")
        assert resolve_script(script) == script.resolve()

    def test_extension_optional(self, tmp_path: Path) -> None:
        script = write(tmp_path / "bell.fqy", "")
        assert resolve_script("bell", tmp_path) == script.resolve()

    def test_relative_to_base_dir(self, tmp_path: Path) -> None:
        script = write(tmp_path / "lib" / "gates.fqy", "")
        assert resolve_script("lib/gates", tmp_path) == script.resolve()

    def test_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ScriptNotFoundError, match="nothing"):
            resolve_script("nothing", tmp_path)

    def test_load_script_parses(self, tmp_path: Path) -> None:
        write(tmp_path / "bell.fqy", GATES)
        path, program = load_script(tmp_path / "bell")
        assert path.name == "bell.fqy"
        assert len(program.decls) == 3


class TestScriptImporter:
    """Tests for import declarations resolved through ScriptImporter."""

    def test_import_binds_top_level_names(self, tmp_path: Path) -> None:
        write(tmp_path / "gates.fqy", GATES)
        main = write(tmp_path / "main.fqy", 'import "gates"\nnot(F)')
        _, program = load_script(main)

        result = run_program(program, importer=ScriptImporter(base_dir=tmp_path))

        assert str(result.value) == "T"

    def test_nested_import_is_relative_to_importing_script(self, tmp_path: Path) -> None:
        write(tmp_path / "lib" / "base.fqy", "data Bool = F | T")
        write(tmp_path / "lib" / "gates.fqy", 'import "base"\nfn not { F => T, T => F }')
        main = write(tmp_path / "main.fqy", 'import "lib/gates"\nnot(T)')
        _, program = load_script(main)

        result = run_program(program, importer=ScriptImporter(base_dir=tmp_path))

        assert str(result.value) == "F"

    def test_import_cycle(self, tmp_path: Path) -> None:
        write(tmp_path / "a.fqy", 'import "b"')
        write(tmp_path / "b.fqy", 'import "a"')
        importer = ScriptImporter(base_dir=tmp_path)

        with pytest.raises(InvalidOperation, match="cycle"):
            importer("a")

    def test_missing_import(self, tmp_path: Path) -> None:
        with pytest.raises(ScriptNotFoundError):
            run_source('import "missing"', importer=ScriptImporter(base_dir=tmp_path))

    def test_imported_prints_are_not_repeated(self, tmp_path: Path) -> None:
        write(tmp_path / "gates.fqy", GATES + "print T")
        result = run_source('import "gates"\nprint F', importer=ScriptImporter(base_dir=tmp_path))
        assert result.printed == ("F",)

    def test_shares_random_source(self, tmp_path: Path) -> None:
        write(tmp_path / "gates.fqy", GATES + "let m = measure(had(F))")
        source = FixedSequenceSource([0.1, 0.9])
        importer = ScriptImporter(base_dir=tmp_path, random_source=source)

        importer("gates")

        # The imported script consumed the first draw
        assert source.next() == 0.9


class TestExport:
    """Tests for results_to_dict() and export_results_to_toml()."""

    def test_results_to_dict(self) -> None:
        result = run_source(GATES + "print had(F)\nassert T == T\nhad(T)")
        data = results_to_dict(result)
        assert data == {
            "success": True,
            "printed": ["{F: 0.7071, T: 0.7071}"],
            "assertions": [{"expected": "T", "actual": "T", "passed": True}],
            "value": "{F: 0.7071, T: -0.7071}",
        }

    def test_value_omitted_when_absent(self) -> None:
        data = results_to_dict(run_source(GATES))
        assert "value" not in data
        assert data["printed"] == []

    def test_precision(self) -> None:
        data = results_to_dict(run_source(GATES + "had(F)"), precision=2)
        assert data["value"] == "{F: 0.71, T: 0.71}"

    def test_export_round_trip(self, tmp_path: Path) -> None:
        result = run_source(GATES + "print not(F)\nassert F == T", fail_fast=False)
        output = tmp_path / "out.toml"

        export_results_to_toml(result, output)

        with output.open("rb") as f:
            data = tomllib.load(f)
        assert data["success"] is False
        assert data["printed"] == ["T"]
        assert data["assertions"] == [{"expected": "F", "actual": "T", "passed": False}]
