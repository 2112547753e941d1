"""External tool integrations.

- installer: Editor CLI (companion package installs, opening workspaces)
"""

from oiinit.integrations.installer import CompanionInstaller, is_valid_package_id

__all__ = [
    "CompanionInstaller",
    "is_valid_package_id",
]
