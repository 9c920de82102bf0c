"""Configuration loading from pyproject.toml."""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from funqy._settings import InterpreterSettings


class ConfigError(Exception):
    """Error in funqy configuration."""


@dataclass(slots=True, frozen=True)
class FunqyConfig:
    """Configuration loaded from pyproject.toml.

    Attributes:
        settings: Interpreter settings from the ``[tool.funqy]`` section.
        project_root: Directory containing pyproject.toml, if one was found.

    """

    settings: InterpreterSettings = field(default_factory=InterpreterSettings)
    project_root: Path | None = None

    def with_overrides(self, **overrides: Any) -> InterpreterSettings:
        """Settings with the given fields replaced; None values are ignored.

        Raises:
            ConfigError: If an override is out of range.

        """
        values = {key: value for key, value in overrides.items() if value is not None}
        if not values:
            return self.settings
        return _validate({**self.settings.model_dump(), **values}, "command-line options")


def find_pyproject_toml(start_dir: Path | None = None) -> Path | None:
    """Find pyproject.toml by walking up from start_dir.

    Args:
        start_dir: Starting directory. Defaults to current working directory.

    Returns:
        Path to pyproject.toml if found, None otherwise.

    """
    if start_dir is None:
        start_dir = Path.cwd()

    current = start_dir.resolve()

    while True:
        candidate = current / "pyproject.toml"
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            # Reached filesystem root
            return None
        current = parent


def _validate(data: object, origin: str) -> InterpreterSettings:
    try:
        return InterpreterSettings.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in e.errors()
        )
        msg = f"Invalid [tool.funqy] configuration in {origin}: {problems}"
        raise ConfigError(msg) from e


def load_config(pyproject_path: Path) -> FunqyConfig:
    """Load and validate [tool.funqy] config from pyproject.toml.

    Args:
        pyproject_path: Path to pyproject.toml

    Returns:
        Parsed FunqyConfig

    Raises:
        ConfigError: If the configuration is invalid

    """
    project_root = pyproject_path.parent

    with pyproject_path.open("rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            msg = f"Invalid TOML in {pyproject_path}: {e}"
            raise ConfigError(msg) from e

    # Extract [tool.funqy] section
    tool_section = data.get("tool", {})
    funqy_section = tool_section.get("funqy", {})

    if not funqy_section:
        # No [tool.funqy] section - defaults
        return FunqyConfig(project_root=project_root)

    if not isinstance(funqy_section, dict):
        msg = f"Invalid [tool.funqy] in {pyproject_path}: expected a table"
        raise ConfigError(msg)

    return FunqyConfig(settings=_validate(funqy_section, str(pyproject_path)), project_root=project_root)


def get_config() -> FunqyConfig:
    """Get config from pyproject.toml in current directory or parents.

    Returns:
        FunqyConfig (defaults if no pyproject.toml or no [tool.funqy] section)

    """
    pyproject_path = find_pyproject_toml()
    if pyproject_path is None:
        return FunqyConfig()
    return load_config(pyproject_path)
