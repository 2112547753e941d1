"""Editor CLI integration for companion packages and workspaces.

The wizard does not install anything itself. It asks the editor's command
line tool to do it:

    code --install-extension ms-python.python
    code --new-window /path/to/workspace

Usage:
    from oiinit.integrations.installer import CompanionInstaller

    installer = CompanionInstaller(runner, editor_command="code")
    installer.install("ms-python.python")  # raises InstallError on failure
"""

import logging
import re
import shutil
import threading
from typing import Optional

from oiinit.core.runner import RETURNCODE_NOT_FOUND, CommandRunner
from oiinit.exceptions import InstallError

logger = logging.getLogger(__name__)

# Marketplace identifiers look like publisher.name
_PACKAGE_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9-]*\.[A-Za-z0-9][A-Za-z0-9._-]*$")

# Maximum stderr characters carried into an error message
_MAX_ERROR_LENGTH = 200


def is_valid_package_id(package_id: str) -> bool:
    """Check a package identifier looks like `publisher.name`.

    Examples:
        >>> is_valid_package_id("ms-python.python")
        True
        >>> is_valid_package_id("--force")
        False
    """
    return bool(_PACKAGE_ID_PATTERN.match(package_id))


class CompanionInstaller:
    """Installs companion packages and opens folders through the editor CLI."""

    def __init__(self, runner: CommandRunner, editor_command: str = "code", timeout: Optional[float] = None):
        self.runner = runner
        self.editor_command = editor_command
        self.timeout = timeout

    def is_available(self) -> bool:
        """Whether the editor command is on PATH."""
        return shutil.which(self.editor_command) is not None

    def _editor_argv(self, *args: str) -> list[str]:
        # Popen does not apply PATHEXT, so code.cmd on Windows needs its full path
        return [shutil.which(self.editor_command) or self.editor_command, *args]

    def install(self, package_id: str, cancel_event: Optional[threading.Event] = None) -> str:
        """Install one companion package.

        Args:
            package_id: Marketplace identifier (publisher.name)
            cancel_event: Stops or terminates the install when set

        Returns:
            First line of installer output (may be empty)

        Raises:
            InstallError: If the id is malformed, the editor is missing, the
                install fails, or it was cancelled
        """
        if not is_valid_package_id(package_id):
            raise InstallError(package_id, "invalid package identifier")

        result = self.runner.execute(
            self._editor_argv("--install-extension", package_id),
            timeout=self.timeout,
            cancel_event=cancel_event,
        )

        if result.cancelled:
            raise InstallError(package_id, "installation cancelled")
        if result.returncode == RETURNCODE_NOT_FOUND:
            raise InstallError(package_id, f"editor command not found: {self.editor_command}")
        if not result.ok:
            detail = result.stderr.strip()[:_MAX_ERROR_LENGTH] or f"exit status {result.returncode}"
            raise InstallError(package_id, detail)

        lines = result.lines
        logger.info(f"Installed {package_id}")
        return lines[0] if lines else ""

    def open_folder(self, folder: str) -> bool:
        """Open a folder in a new editor window.

        Returns:
            True if the editor accepted the request
        """
        result = self.runner.execute(self._editor_argv("--new-window", folder), timeout=self.timeout)
        if not result.ok:
            logger.warning(f"Could not open {folder} with {self.editor_command} (status {result.returncode})")
            return False
        return True
