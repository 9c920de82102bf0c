"""Tests for the funqy command-line interface."""

import tomllib
from pathlib import Path

import pytest
from typer.testing import CliRunner

from funqy._cli.main import app

runner = CliRunner()

BELL = """
data Bool = F | T
fn had { F => sup(F, T), T => sup(F, phf(T)) }
fn cnot { (F, y) => (F, y), (T, F) => (T, T), (T, T) => (T, F) }
let bell = cnot(had(F), F)
assert bell == sup((F, F), (T, T))
print had(F)
bell
"""


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run every command outside of any project configuration."""
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def bell_script(tmp_path: Path) -> Path:
    script = tmp_path / "bell.fqy"
    script.write_text(BELL)
    return script


class TestRun:
    """Tests for `funqy run`."""

    def test_prints_output_and_value(self, bell_script: Path) -> None:
        result = runner.invoke(app, ["run", str(bell_script)])

        assert result.exit_code == 0, result.output
        assert ":: {F: 0.7071, T: 0.7071}" in result.output
        assert ">> {(F, F): 0.7071, (T, T): 0.7071}" in result.output

    def test_extension_optional(self, bell_script: Path) -> None:
        result = runner.invoke(app, ["run", str(bell_script.with_suffix(""))])

        assert result.exit_code == 0, result.output

    def test_export(self, bell_script: Path, tmp_path: Path) -> None:
        output = tmp_path / "out.toml"

        result = runner.invoke(app, ["run", str(bell_script), "-o", str(output)])

        assert result.exit_code == 0, result.output
        with output.open("rb") as f:
            data = tomllib.load(f)
        assert data["success"] is True
        assert data["printed"] == ["{F: 0.7071, T: 0.7071}"]
        assert data["value"] == "{(F, F): 0.7071, (T, T): 0.7071}"

    def test_failed_assertion_exits_non_zero(self, tmp_path: Path) -> None:
        script = tmp_path / "fail.fqy"
        script.write_text("data Bool = F | T\nassert F == T\nprint T\n")
        output = tmp_path / "out.toml"

        result = runner.invoke(app, ["run", str(script), "-o", str(output)])

        assert result.exit_code == 1
        assert "Assertion failed" in result.output
        # Recording continues past the failure
        assert ":: T" in result.output
        with output.open("rb") as f:
            assert tomllib.load(f)["assertions"][0]["passed"] is False

    def test_missing_script(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["run", str(tmp_path / "nothing")])

        assert result.exit_code == 1
        assert "ScriptNotFoundError" in result.output

    def test_syntax_error(self, tmp_path: Path) -> None:
        script = tmp_path / "bad.fqy"
        script.write_text("let = F\n")

        result = runner.invoke(app, ["run", str(script)])

        assert result.exit_code == 1
        assert "ParseError" in result.output

    def test_evaluation_error(self, tmp_path: Path) -> None:
        script = tmp_path / "unbound.fqy"
        script.write_text("missing\n")

        result = runner.invoke(app, ["run", str(script)])

        assert result.exit_code == 1
        assert "UnboundIdentifier" in result.output

    def test_seed_makes_runs_reproducible(self, tmp_path: Path) -> None:
        script = tmp_path / "coins.fqy"
        script.write_text(
            "data Bool = F | T\n" + "".join("print measure(sup(F, T))\n" for _ in range(16)),
        )

        first = runner.invoke(app, ["run", str(script), "--seed", "11"])
        second = runner.invoke(app, ["run", str(script), "--seed", "11"])

        assert first.exit_code == 0, first.output
        assert first.output == second.output

    def test_configuration_from_pyproject(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text("[tool.funqy]\nprecision = 2\n")
        script = tmp_path / "had.fqy"
        script.write_text("data Bool = F | T\nsup(F, T)\n")

        result = runner.invoke(app, ["run", str(script)])

        assert result.exit_code == 0, result.output
        assert ">> {F: 0.71, T: 0.71}" in result.output

    def test_invalid_configuration(self, tmp_path: Path, bell_script: Path) -> None:
        (tmp_path / "pyproject.toml").write_text("[tool.funqy]\nmax_depth = 0\n")

        result = runner.invoke(app, ["run", str(bell_script)])

        assert result.exit_code == 1
        assert "ConfigError" in result.output

    def test_imports_relative_to_script(self, tmp_path: Path) -> None:
        lib = tmp_path / "lib"
        lib.mkdir()
        (lib / "gates.fqy").write_text("data Bool = F | T\nfn not { F => T, T => F }\n")
        script = tmp_path / "main.fqy"
        script.write_text('import "lib/gates"\nnot(F)\n')

        result = runner.invoke(app, ["run", str(script)])

        assert result.exit_code == 0, result.output
        assert ">> T" in result.output


    def test_bundled_example(self) -> None:
        script = Path(__file__).parent.parent / "examples" / "bell.fqy"

        result = runner.invoke(app, ["run", str(script), "--seed", "3"])

        assert result.exit_code == 0, result.output
        assert ":: {(F, F): 0.7071, (T, T): 0.7071}" in result.output


class TestRepl:
    """Tests for `funqy repl`."""

    def test_scope_persists_between_lines(self) -> None:
        session = "data Bool = F | T\nfn not { F => T, T => F }\nnot(F)\n"

        result = runner.invoke(app, ["repl"], input=session)

        assert result.exit_code == 0, result.output
        assert ">> T" in result.output

    def test_errors_do_not_end_session(self) -> None:
        session = "data Bool = F | T\nmissing\nlet = \nprint T\n"

        result = runner.invoke(app, ["repl"], input=session)

        assert result.exit_code == 0, result.output
        assert "UnboundIdentifier" in result.output
        assert "ParseError" in result.output
        assert ":: T" in result.output

    def test_history_file(self, tmp_path: Path) -> None:
        pytest.importorskip("readline")
        history = tmp_path / "history"

        result = runner.invoke(app, ["repl", "--history", str(history)], input="data Bool = F | T\n")

        assert result.exit_code == 0, result.output
        assert history.exists()


class TestCheck:
    """Tests for `funqy check`."""

    def test_summary(self, bell_script: Path) -> None:
        result = runner.invoke(app, ["check", str(bell_script)])

        assert result.exit_code == 0, result.output
        assert "well-formed" in result.output
        assert "Fn" in result.output
        assert "Assert" in result.output

    def test_does_not_evaluate(self, tmp_path: Path) -> None:
        script = tmp_path / "unbound.fqy"
        script.write_text("missing\n")

        result = runner.invoke(app, ["check", str(script)])

        assert result.exit_code == 0, result.output

    def test_syntax_error(self, tmp_path: Path) -> None:
        script = tmp_path / "bad.fqy"
        script.write_text("data Bool = f\n")

        result = runner.invoke(app, ["check", str(script)])

        assert result.exit_code == 1
        assert "ParseError" in result.output
