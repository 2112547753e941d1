"""First-run tracking for the setup wizard.

The wizard shows itself automatically only once. A small JSON state file
records whether it has been displayed; the flag is read once at process start
and written once after the first successful display.

State Location:
    Default:
        Unix/Linux: ~/.local/share/oiinit/state.json
        macOS: ~/Library/Application Support/oiinit/state.json
        Windows: %LOCALAPPDATA%/oiinit/state.json
    Can be overridden via OIINIT_STATE environment variable
"""

import json
import logging
import os
from contextlib import suppress
from pathlib import Path
from typing import Optional

from platformdirs import user_data_dir

logger = logging.getLogger(__name__)

HAS_LAUNCHED_BEFORE_KEY = "hasLaunchedBefore"


def default_state_path() -> Path:
    """Platform-specific state file path (OIINIT_STATE overrides)."""
    env_path = os.environ.get("OIINIT_STATE")
    if env_path:
        return Path(env_path).expanduser()
    return Path(user_data_dir("oiinit")) / "state.json"


class LaunchState:
    """Persisted "has the wizard been shown" flag.

    Example:
        >>> state = LaunchState()
        >>> if state.should_show():
        ...     run_wizard()
        ...     state.mark_launched()
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = path if path is not None else default_state_path()
        self.has_launched_before = self._read_flag()

    def _read_flag(self) -> bool:
        if not self.path.exists():
            return False
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read launch state from {self.path}: {e}")
            return False
        if not isinstance(data, dict):
            return False
        return bool(data.get(HAS_LAUNCHED_BEFORE_KEY, False))

    def should_show(self) -> bool:
        """Whether the wizard should open automatically."""
        return not self.has_launched_before

    def mark_launched(self) -> None:
        """Record that the wizard has been shown.

        Write failures are logged; the wizard will simply show again next time.
        """
        if self.has_launched_before:
            return

        data: dict = {}
        if self.path.exists():
            with suppress(OSError, json.JSONDecodeError):
                existing = json.loads(self.path.read_text(encoding="utf-8"))
                if isinstance(existing, dict):
                    data = existing
        data[HAS_LAUNCHED_BEFORE_KEY] = True

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError as e:
            logger.warning(f"Failed to save launch state to {self.path}: {e}")
            return

        self.has_launched_before = True
        logger.debug(f"Launch state saved to {self.path}")
