"""Wizard configuration loading.

Config search order (first existing file wins):
1. Explicit path passed to load_config()
2. OIINIT_CONFIG environment variable
3. ./.oiinit.yaml (project config)
4. <user config dir>/oiinit/config.yaml (platformdirs)

A missing config file is not an error - the defaults below are used.

Example .oiinit.yaml:
    locale: en
    editor_command: codium
    companion_packages:
      - ms-vscode.cpptools
      - ms-python.python
    step_delay: 0.0
"""

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional

import yaml
from platformdirs import user_config_dir

from oiinit.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

APP_NAME = "oiinit"

PROJECT_CONFIG_NAME = ".oiinit.yaml"

DEFAULT_COMPANION_PACKAGES = ("ms-vscode.cpptools", "ms-python.python")


def default_settings_path() -> Path:
    """Location of the persisted key/value settings store.

    OIINIT_SETTINGS overrides the platform default:
    - Unix/Linux: ~/.config/oiinit/settings.yaml
    - macOS: ~/Library/Application Support/oiinit/settings.yaml
    - Windows: %LOCALAPPDATA%/oiinit/settings.yaml
    """
    env_path = os.environ.get("OIINIT_SETTINGS")
    if env_path:
        return Path(env_path).expanduser()
    return Path(user_config_dir(APP_NAME)) / "settings.yaml"


@dataclass(frozen=True)
class WizardConfig:
    """Tunable wizard behaviour.

    Attributes:
        locale: Locale written by the first setup task
        companion_packages: Package ids installed by the third setup task
        editor_command: Editor CLI used to install packages and open folders
        settings_path: Where resolved toolchain paths are persisted
        command_timeout: Timeout for discovery/install commands (seconds)
        version_timeout: Timeout for `--version` probes (seconds)
        step_delay: Pause after each progress update (seconds)
        finalize_delay: Pause in the finalization task (seconds)
        download_delay: Duration of the simulated download (seconds)
    """

    locale: str = "zh-cn"
    companion_packages: tuple[str, ...] = DEFAULT_COMPANION_PACKAGES
    editor_command: str = "code"
    settings_path: Optional[Path] = None
    command_timeout: float = 10.0
    version_timeout: float = 2.0
    step_delay: float = 0.1
    finalize_delay: float = 0.5
    download_delay: float = 3.0

    def resolved_settings_path(self) -> Path:
        """settings_path, or the platform default when unset."""
        return self.settings_path if self.settings_path is not None else default_settings_path()


_FLOAT_FIELDS = {"command_timeout", "version_timeout", "step_delay", "finalize_delay", "download_delay"}
_STRING_FIELDS = {"locale", "editor_command"}


def find_config_file(path: Optional[Path] = None) -> Optional[Path]:
    """Locate the wizard config file.

    Args:
        path: Explicit config path (must exist if given)

    Returns:
        First existing config path, or None if none exists

    Raises:
        ConfigurationError: If an explicitly requested file does not exist
    """
    if path is not None:
        if not path.exists():
            raise ConfigurationError("Config file not found", file_path=str(path))
        return path

    candidates = []
    env_path = os.environ.get("OIINIT_CONFIG")
    if env_path:
        candidates.append(Path(env_path).expanduser())
    candidates.append(Path.cwd() / PROJECT_CONFIG_NAME)
    candidates.append(Path(user_config_dir(APP_NAME)) / "config.yaml")

    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def load_config(path: Optional[Path] = None) -> WizardConfig:
    """Load wizard configuration, falling back to defaults.

    Args:
        path: Explicit config file (optional)

    Returns:
        WizardConfig with file values applied over defaults

    Raises:
        ConfigurationError: If the file is unreadable, not a mapping, or has bad values
    """
    config_path = find_config_file(path)
    if config_path is None:
        logger.debug("No wizard config found, using defaults")
        return WizardConfig()

    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        line = None
        mark = getattr(e, "problem_mark", None)
        if mark is not None:
            line = mark.line + 1
        raise ConfigurationError(f"Invalid YAML: {e}", file_path=str(config_path), line_number=line) from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read config: {e}", file_path=str(config_path)) from e

    if data is None:
        return WizardConfig()

    config = config_from_dict(data, source=str(config_path))
    logger.info(f"Loaded wizard config from {config_path}")
    return config


def config_from_dict(data: Any, source: Optional[str] = None) -> WizardConfig:  # noqa: PLR0912 - Validation logic
    """Build a WizardConfig from parsed YAML.

    Args:
        data: Parsed YAML document
        source: File the data came from (for error messages)

    Returns:
        WizardConfig

    Raises:
        ConfigurationError: If data is not a mapping or a value has the wrong type

    Examples:
        >>> config_from_dict({"locale": "en", "step_delay": 0}).step_delay
        0.0
        >>> config_from_dict({"companion_packages": ["a.b"]}).companion_packages
        ('a.b',)
    """
    if not isinstance(data, dict):
        raise ConfigurationError("Config must be a mapping", file_path=source)

    known = {f.name for f in fields(WizardConfig)}
    values: dict[str, Any] = {}

    for key, value in data.items():
        if key not in known:
            logger.warning(f"Ignoring unknown config key: {key}")
            continue

        if key in _FLOAT_FIELDS:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(f"{key} must be a number", file_path=source)
            if value < 0:
                raise ConfigurationError(f"{key} must not be negative", file_path=source)
            values[key] = float(value)
        elif key in _STRING_FIELDS:
            if not isinstance(value, str) or not value.strip():
                raise ConfigurationError(f"{key} must be a non-empty string", file_path=source)
            values[key] = value.strip()
        elif key == "companion_packages":
            if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
                raise ConfigurationError("companion_packages must be a list of strings", file_path=source)
            values[key] = tuple(value)
        elif key == "settings_path":
            if not isinstance(value, str):
                raise ConfigurationError("settings_path must be a string", file_path=source)
            values[key] = Path(value).expanduser()

    for key in ("command_timeout", "version_timeout"):
        if key in values and values[key] == 0:
            raise ConfigurationError(f"{key} must be positive", file_path=source)

    return replace(WizardConfig(), **values)
