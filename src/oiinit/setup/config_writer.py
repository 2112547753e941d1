"""Persisted key/value settings for the oiinit setup wizard.

Stores the values the setup tasks write (locale, compiler path, interpreter
path) in a YAML file with atomic writes, metadata tracking, and a
timestamped backup when an unreadable file has to be replaced.

File layout:
    _metadata:
      generated_at: 2025-01-07T12:05:30+00:00
      wizard_version: 0.1.0
      last_modified_by: setup-wizard
    settings:
      locale: zh-cn
      oi-code.cpp.compilerPath: /usr/bin/g++
      python.defaultInterpreterPath: /usr/bin/python3
"""

import logging
import sys
import threading
from contextlib import suppress
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import yaml

from oiinit.exceptions import ConfigurationError, PersistenceError

logger = logging.getLogger(__name__)

WIZARD_VERSION = "0.1.0"

# Settings keys written by the setup tasks
LOCALE_KEY = "locale"
CPP_COMPILER_KEY = "oi-code.cpp.compilerPath"
PYTHON_INTERPRETER_KEY = "python.defaultInterpreterPath"

# File permissions (Unix only - ignored on Windows)
CONFIG_DIR_PERMS = 0o755  # rwxr-xr-x
CONFIG_FILE_PERMS = 0o644  # rw-r--r--


def safe_mkdir(path: Path, mode: int = CONFIG_DIR_PERMS) -> None:
    """Create directory with platform-appropriate permissions.

    On Unix/Linux/macOS, applies specified mode.
    On Windows, creates directory with default ACLs (mode is ignored).

    Args:
        path: Directory path to create
        mode: Unix permission bits (ignored on Windows)
    """
    path.mkdir(parents=True, exist_ok=True)
    if sys.platform != "win32":
        # Permission setting failed - not critical for settings files
        with suppress(OSError, NotImplementedError):
            path.chmod(mode)


def safe_chmod(path: Path, mode: int) -> None:
    """Set file permissions (Unix only)."""
    if sys.platform != "win32":
        with suppress(OSError, NotImplementedError):
            path.chmod(mode)


@dataclass(frozen=True)
class WriteResult:
    """Result of a settings file write.

    Attributes:
        success: Whether write completed successfully
        config_path: Path where settings were written
        backup_path: Path to backup file (None if no backup created)
        error: Error message if write failed (None on success)
    """

    success: bool
    config_path: Path
    backup_path: Optional[Path]
    error: Optional[str]


def create_backup(config_path: Path) -> Optional[Path]:
    """Create timestamped backup of an existing settings file.

    Args:
        config_path: Path to settings file to backup

    Returns:
        Path to backup file, or None if backup failed

    Example:
        >>> backup = create_backup(Path("settings.yaml"))
        >>> print(backup)  # settings.yaml.backup.20250107_120530
    """
    if not config_path.exists():
        return None

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    backup_path = config_path.with_suffix(f"{config_path.suffix}.backup.{timestamp}")

    try:
        backup_path.write_text(config_path.read_text(encoding="utf-8"), encoding="utf-8")
        return backup_path
    except Exception as e:
        logger.warning(f"Failed to create backup: {e}")
        return None


def write_yaml_atomic(path: Path, data: dict[str, Any]) -> None:
    """Write YAML file atomically using temp file + rename.

    Args:
        path: Destination path
        data: Dict to serialize as YAML

    Raises:
        OSError: If write or rename fails
        yaml.YAMLError: If serialization fails
    """
    temp_path = path.with_suffix(path.suffix + ".tmp")

    try:
        with temp_path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(
                data,
                f,
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True,
            )

        safe_chmod(temp_path, CONFIG_FILE_PERMS)

        # Atomic rename
        temp_path.replace(path)
    except Exception:
        # Clean up temp file on failure
        if temp_path.exists():
            temp_path.unlink()
        raise


def generate_settings_yaml(values: dict[str, Any]) -> dict[str, Any]:
    """Build the on-disk document for a settings mapping."""
    return {
        "_metadata": {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "wizard_version": WIZARD_VERSION,
            "last_modified_by": "setup-wizard",
        },
        "settings": dict(values),
    }


def validate_settings_yaml(document: Any) -> list[str]:
    """Validate a settings document read from disk.

    Args:
        document: Parsed YAML

    Returns:
        List of validation errors (empty if valid)

    Examples:
        >>> validate_settings_yaml({"settings": {"locale": "en"}})
        []
        >>> validate_settings_yaml(["not", "a", "mapping"])
        ['Settings file must be a mapping']
    """
    errors: list[str] = []

    if not isinstance(document, dict):
        return ["Settings file must be a mapping"]

    settings = document.get("settings", {})
    if settings is None:
        settings = {}
    if not isinstance(settings, dict):
        errors.append("settings section must be a mapping")
    else:
        for key in settings:
            if not isinstance(key, str):
                errors.append(f"Settings key must be a string: {key!r}")

    metadata = document.get("_metadata")
    if metadata is not None and not isinstance(metadata, dict):
        errors.append("_metadata section must be a mapping")

    return errors


def write_settings(values: dict[str, Any], config_path: Path, create_backup_flag: bool = False) -> WriteResult:
    """Write a settings mapping to disk.

    Args:
        values: Settings key/value mapping
        config_path: Destination file
        create_backup_flag: Whether to backup the existing file first

    Returns:
        WriteResult with success status and paths
    """
    backup_path: Optional[Path] = None

    try:
        if create_backup_flag and config_path.exists():
            backup_path = create_backup(config_path)
            if backup_path:
                logger.info(f"Created backup: {backup_path}")

        safe_mkdir(config_path.parent, CONFIG_DIR_PERMS)
        write_yaml_atomic(config_path, generate_settings_yaml(values))
        logger.debug(f"Settings written to {config_path}")

        return WriteResult(success=True, config_path=config_path, backup_path=backup_path, error=None)

    except Exception as e:
        logger.error(f"Failed to write settings: {e}")
        return WriteResult(success=False, config_path=config_path, backup_path=backup_path, error=str(e))


class SettingsStore:
    """Durable key/value settings backed by a YAML file.

    `set_value` is idempotent: writing the value a key already holds leaves
    the file untouched.

    Example:
        >>> store = SettingsStore(Path("settings.yaml"))
        >>> store.set_value("python.defaultInterpreterPath", "/usr/bin/python3")
        True
        >>> store.get_value("python.defaultInterpreterPath")
        '/usr/bin/python3'
    """

    def __init__(self, path: Path):
        self.path = path
        self._lock = threading.Lock()

    def load(self) -> dict[str, Any]:
        """Read all settings.

        Returns:
            Settings mapping (empty if the file does not exist)

        Raises:
            ConfigurationError: If the file is not valid YAML or has the wrong shape
        """
        if not self.path.exists():
            return {}

        try:
            document = yaml.safe_load(self.path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML: {e}", file_path=str(self.path)) from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read settings: {e}", file_path=str(self.path)) from e

        if document is None:
            return {}

        errors = validate_settings_yaml(document)
        if errors:
            raise ConfigurationError("; ".join(errors), file_path=str(self.path))

        return dict(document.get("settings") or {})

    def get_value(self, key: str, default: Any = None) -> Any:
        """Read one setting (default if unset)."""
        return self.load().get(key, default)

    def set_value(self, key: str, value: Any) -> bool:
        """Persist one setting.

        Args:
            key: Settings key
            value: New value (must be YAML-serializable)

        Returns:
            True if the file changed, False if the key already held value

        Raises:
            PersistenceError: If the settings file cannot be written
        """
        with self._lock:
            backup = False
            try:
                values = self.load()
            except ConfigurationError as e:
                # Unreadable file - keep a copy and start over
                logger.warning(f"Replacing unreadable settings file: {e}")
                values = {}
                backup = True

            if not backup and key in values and values[key] == value:
                logger.debug(f"Setting {key} unchanged")
                return False

            values[key] = value
            result = write_settings(values, self.path, create_backup_flag=backup)
            if not result.success:
                raise PersistenceError(key, "could not write settings file", RuntimeError(result.error))

            logger.info(f"Set {key} = {value}")
            return True
