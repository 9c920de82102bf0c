"""Loading scripts from disk and exporting run results."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import tomli_w

from ._errors import InvalidOperation
from ._parser import parse_program
from ._program import run_program
from ._settings import InterpreterSettings
from ._values import format_value

if TYPE_CHECKING:
    from ._ast import Program
    from ._eval_engine import RandomSource
    from ._program import ProgramResult
    from ._values import Value

logger = logging.getLogger(__name__)

SCRIPT_SUFFIX = ".fqy"


class ScriptNotFoundError(FileNotFoundError):
    """A script path resolves to no file, with or without the ``.fqy`` suffix."""


def resolve_script(path: Path | str, base_dir: Path | None = None) -> Path:
    """Find the script a path refers to.

    Relative paths are taken relative to ``base_dir`` (the current directory if
    omitted). The ``.fqy`` suffix may be left out.

    Raises:
        ScriptNotFoundError: If neither the path nor the path with ``.fqy`` appended exists.

    """
    script = Path(path)
    if not script.is_absolute() and base_dir is not None:
        script = base_dir / script

    candidates = [script]
    if script.suffix != SCRIPT_SUFFIX:
        candidates.append(script.with_name(script.name + SCRIPT_SUFFIX))
    for candidate in candidates:
        if candidate.is_file():
            return candidate.resolve()

    msg = f"Script not found: {path}"
    raise ScriptNotFoundError(msg)


def load_script(path: Path | str, base_dir: Path | None = None) -> tuple[Path, Program]:
    """Resolve and parse a script.

    Returns:
        The resolved script path and its parsed program.

    Raises:
        ScriptNotFoundError: If the script does not exist.
        ParseError: If the script is not a well-formed program.

    """
    script = resolve_script(path, base_dir)
    logger.debug("Loading script %s", script)
    return script, parse_program(script.read_text(encoding="utf-8"))


@dataclass(slots=True)
class ScriptImporter:
    """Resolves ``import "path"`` declarations by running other scripts.

    Paths are relative to the directory of the importing script. The imported
    script runs in a fresh scope with the same settings and random source, and
    every top-level name it binds becomes visible to the importer.
    """

    base_dir: Path
    settings: InterpreterSettings = field(default_factory=InterpreterSettings)
    random_source: RandomSource | None = None
    active: frozenset[Path] = frozenset()

    def __call__(self, path: str) -> dict[str, Value]:
        script, program = load_script(path, self.base_dir)
        if script in self.active:
            msg = f"Import cycle through {script}"
            raise InvalidOperation(msg)

        logger.debug("Importing %s", script)
        nested = ScriptImporter(
            base_dir=script.parent,
            settings=self.settings,
            random_source=self.random_source,
            active=self.active | {script},
        )
        result = run_program(
            program,
            settings=self.settings,
            random_source=self.random_source,
            importer=nested,
        )
        return result.env.flatten()


def results_to_dict(result: ProgramResult, precision: int = 4) -> dict[str, Any]:
    """Convert a run result to a TOML-compatible dictionary."""
    data: dict[str, Any] = {
        "success": result.success,
        "printed": list(result.printed),
        "assertions": [
            {"expected": record.expected, "actual": record.actual, "passed": record.passed}
            for record in result.assertions
        ],
    }
    # TOML has no null
    if result.value is not None:
        data["value"] = format_value(result.value, precision)
    return data


def export_results_to_toml(result: ProgramResult, output_path: Path | str, precision: int = 4) -> None:
    """Write printed values, assertion outcomes and the final value to a TOML file.

    Args:
        result: The result of ``run_program``.
        output_path: Path to the output TOML file.
        precision: Decimals used for amplitudes in the final value.

    """
    output_path = Path(output_path)
    with output_path.open("wb") as f:
        tomli_w.dump(results_to_dict(result, precision), f)

    logger.debug("Exported results to %s", output_path)
