"""Custom exceptions for the oiinit setup wizard.

This module defines exception types for setup failures:
- ConfigurationError: Raised when a wizard config or settings file is invalid
- PersistenceError: Raised when a setting cannot be written to the store
- InstallError: Raised when a companion package fails to install
"""

from typing import Optional


class ConfigurationError(Exception):
    """Raised when configuration is invalid.

    Used for:
    - Invalid YAML syntax in the wizard config or settings store
    - Config files whose top level is not a mapping
    - Config values of the wrong type

    Includes file path and line number context when available.

    Args:
        message: Error description
        file_path: Path to problematic config file (optional)
        line_number: Line number where error occurred (optional)

    Example:
        >>> raise ConfigurationError(
        ...     "step_delay must be a number",
        ...     file_path=".oiinit.yaml",
        ...     line_number=3
        ... )
    """

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        line_number: Optional[int] = None,
    ):
        """Initialize ConfigurationError with context.

        Args:
            message: Human-readable error description
            file_path: Path to configuration file with error (if applicable)
            line_number: Line number in file where error occurred (if known)
        """
        self.message = message
        self.file_path = file_path
        self.line_number = line_number
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with file/line context if available."""
        parts = [self.message]
        if self.file_path:
            parts.append(f"in file: {self.file_path}")
        if self.line_number:
            parts.append(f"at line: {self.line_number}")
        return " ".join(parts)

    def __str__(self) -> str:
        """Return formatted error message."""
        return self._format_message()


class PersistenceError(Exception):
    """Raised when a setting cannot be persisted.

    Args:
        key: Settings key that failed to write
        message: Error description
        original_error: Underlying OS/YAML error (optional)
    """

    def __init__(self, key: str, message: str, original_error: Optional[Exception] = None):
        self.key = key
        self.message = message
        self.original_error = original_error
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.key}: {self.message} (original: {self.original_error})"
        return f"{self.key}: {self.message}"


class InstallError(Exception):
    """Raised when a companion package fails to install."""

    def __init__(self, package_id: str, message: str):
        self.package_id = package_id
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.package_id}: {self.message}"
