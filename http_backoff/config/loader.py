"""Reads backoff tables from YAML files, expanding ${VAR} references from the environment."""

import os
import re
from pathlib import Path
from typing import Any

import yaml

from ..exceptions import ConfigurationError
from .models import BackoffConfig

ENV_REFERENCE = re.compile(r"\$\{([^}]+)\}")


class ConfigLoader:
  """Loads named backoff configurations from a directory of ``.yaml``/``.yml`` files."""

  def __init__(self, config_dir: Path):
    self.config_dir = Path(config_dir)

  def load_config(self, config_name: str = "default-backoff") -> BackoffConfig:
    """Load and validate one configuration.

    Args:
      config_name: File name without extension

    Returns:
      BackoffConfig built from the file

    Raises:
      ConfigurationError: If the file is missing or unreadable, is not a YAML
        mapping, references an unset variable, or holds invalid values
    """
    config_file = self._config_path(config_name)

    try:
      with open(config_file, 'r', encoding='utf-8') as f:
        raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
      raise ConfigurationError(f"Invalid YAML in configuration file: {e}", config_file=str(config_file))
    except OSError as e:
      raise ConfigurationError(f"Error reading configuration file: {e}", config_file=str(config_file))

    if raw is None:
      raise ConfigurationError("Configuration file is empty", config_file=str(config_file))
    if not isinstance(raw, dict):
      raise ConfigurationError(
        "Configuration file must contain a YAML dictionary", config_file=str(config_file)
      )

    try:
      expanded = _expand_env(raw)
    except ConfigurationError as e:
      e.config_file = str(config_file)
      raise

    return BackoffConfig.from_dict(expanded, str(config_file))

  def list_available_configs(self) -> list[str]:
    """Return the sorted names of the configurations in the directory.

    Raises:
      ConfigurationError: If the directory does not exist
    """
    if not self.config_dir.is_dir():
      raise ConfigurationError(f"Configuration directory not found: {self.config_dir}")

    return sorted({
      path.stem
      for pattern in ("*.yaml", "*.yml")
      for path in self.config_dir.glob(pattern)
      if path.is_file()
    })

  def _config_path(self, config_name: str) -> Path:
    # .yaml wins when both extensions exist
    for suffix in (".yaml", ".yml"):
      path = self.config_dir / f"{config_name}{suffix}"
      if path.exists():
        return path
    raise ConfigurationError(
      f"Configuration file not found: {config_name}.yaml or {config_name}.yml",
      config_file=str(self.config_dir / f"{config_name}.yaml"),
    )


def _expand_env(value: Any, field: str = "") -> Any:
  """Replace ``${VAR}`` references in string leaves, tracking the dotted field name."""
  if isinstance(value, dict):
    return {
      key: _expand_env(item, f"{field}.{key}" if field else str(key))
      for key, item in value.items()
    }

  if not isinstance(value, str):
    return value

  def lookup(match: "re.Match[str]") -> str:
    name = match.group(1)
    env_value = os.getenv(name)
    if env_value is None:
      where = f" at {field}" if field else ""
      raise ConfigurationError(
        f"Environment variable '{name}' is not set{where}", field=field or None
      )
    return env_value

  expanded = ENV_REFERENCE.sub(lookup, value)
  # A lone reference is typed the way YAML would type the literal
  if expanded != value and ENV_REFERENCE.fullmatch(value):
    return yaml.safe_load(expanded)
  return expanded
