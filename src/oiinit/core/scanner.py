"""Toolchain discovery for the oiinit setup wizard.

Finds installed C++ compilers and Python interpreters by asking the platform's
PATH lookup tool for every known binary name, deduplicates the results and
fetches a version string for each path. Version checks run in parallel with a
thread pool; every probe goes through the fail-soft CommandRunner, so a scan
never raises.
"""

import logging
import sys
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from oiinit.core.runner import CommandRunner

logger = logging.getLogger(__name__)


class ToolchainKind(str, Enum):
    """Toolchain families the wizard configures."""

    CPP = "cpp"
    PYTHON = "python"

    @property
    def label(self) -> str:
        """Human-readable family name."""
        return "C++" if self is ToolchainKind.CPP else "Python"


# Binary names probed per family
BINARY_NAMES: dict[ToolchainKind, tuple[str, ...]] = {
    ToolchainKind.CPP: ("g++", "gcc", "clang", "clang++"),
    ToolchainKind.PYTHON: ("python", "python3"),
}

# Substituted when `<path> --version` yields nothing usable
VERSION_UNAVAILABLE = "(version unavailable)"

# Version check timeout (seconds)
VERSION_CHECK_TIMEOUT = 2.0


@dataclass(frozen=True)
class ToolchainCandidate:
    """A discovered toolchain executable.

    Attributes:
        path: Executable path exactly as reported by the lookup command
        version: First line of `--version` output, or VERSION_UNAVAILABLE
    """

    path: str
    version: str

    @property
    def label(self) -> str:
        return f"{self.version} - {self.path}"


@dataclass(frozen=True)
class ScanResult:
    """Result of a toolchain scan.

    Attributes:
        cpp: C++ compiler candidates (unique paths)
        python: Python interpreter candidates (unique paths)
        scan_time_ms: Total time for all probes
    """

    cpp: list[ToolchainCandidate] = field(default_factory=list)
    python: list[ToolchainCandidate] = field(default_factory=list)
    scan_time_ms: float = 0.0

    def for_kind(self, kind: ToolchainKind) -> list[ToolchainCandidate]:
        """Return the candidate list for one toolchain family."""
        return self.cpp if kind is ToolchainKind.CPP else self.python


def discovery_commands(kind: ToolchainKind, windows: Optional[bool] = None) -> list[str]:
    """Build the PATH lookup commands for a toolchain family.

    Args:
        kind: Toolchain family
        windows: Use `where` instead of `which -a` (defaults to current platform)

    Returns:
        One command per binary name

    Examples:
        >>> discovery_commands(ToolchainKind.PYTHON, windows=False)
        ['which -a python', 'which -a python3']
        >>> discovery_commands(ToolchainKind.PYTHON, windows=True)
        ['where python', 'where python3']
    """
    if windows is None:
        windows = sys.platform == "win32"

    lookup = "where" if windows else "which -a"
    return [f"{lookup} {name}" for name in BINARY_NAMES[kind]]


def dedupe_paths(paths: list[str]) -> list[str]:
    """Remove duplicate path strings, keeping first occurrences.

    Paths are compared literally; two spellings of the same file stay distinct.

    Examples:
        >>> dedupe_paths(["/usr/bin/g++", "/usr/bin/g++", "/usr/bin/gcc"])
        ['/usr/bin/g++', '/usr/bin/gcc']
    """
    return list(dict.fromkeys(paths))


class ToolchainScanner:
    """Discovers C++ and Python toolchains on the current machine.

    Example:
        >>> result = ToolchainScanner().scan()
        >>> for candidate in result.python:
        ...     print(candidate.label)
    """

    def __init__(
        self,
        runner: Optional[CommandRunner] = None,
        windows: Optional[bool] = None,
        version_timeout: float = VERSION_CHECK_TIMEOUT,
    ):
        self.runner = runner if runner is not None else CommandRunner()
        self.windows = windows
        self.version_timeout = version_timeout

    def scan(self) -> ScanResult:
        """Scan PATH for both toolchain families.

        Returns:
            ScanResult with unique, versioned candidates per family
        """
        start_time = time.perf_counter()

        cpp = self._scan_kind(ToolchainKind.CPP)
        python = self._scan_kind(ToolchainKind.PYTHON)

        scan_time_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(f"Scan found {len(cpp)} C++ and {len(python)} Python candidates in {scan_time_ms:.1f}ms")

        return ScanResult(cpp=cpp, python=python, scan_time_ms=scan_time_ms)

    def find_paths(self, kind: ToolchainKind) -> list[str]:
        """Run every discovery command for a family and dedupe the output."""
        paths: list[str] = []
        for command in discovery_commands(kind, self.windows):
            try:
                paths.extend(self.runner.run(command))
            except Exception as e:
                # Graceful degradation - one broken probe must not end the scan
                logger.warning(f"Error running {command!r}: {e}")
        return dedupe_paths(paths)

    def get_version(self, path: str) -> str:
        """Get the version line for a toolchain executable.

        Args:
            path: Executable path

        Returns:
            First non-blank line of `<path> --version`, or VERSION_UNAVAILABLE
        """
        try:
            lines = self.runner.run([path, "--version"], timeout=self.version_timeout)
        except Exception as e:
            logger.warning(f"Error getting version for {path}: {e}")
            return VERSION_UNAVAILABLE

        if not lines:
            logger.debug(f"No version output from {path}")
            return VERSION_UNAVAILABLE
        return lines[0].strip()

    def _scan_kind(self, kind: ToolchainKind) -> list[ToolchainCandidate]:
        paths = self.find_paths(kind)
        if not paths:
            return []

        versions: dict[str, str] = {}

        # Keyed by path so each version lands on its own candidate regardless of completion order
        with ThreadPoolExecutor(max_workers=len(paths)) as executor:
            futures = {executor.submit(self.get_version, path): path for path in paths}

            for future in as_completed(futures):
                path = futures[future]
                try:
                    versions[path] = future.result()
                except Exception as e:
                    logger.warning(f"Version check for {path} failed: {e}")
                    versions[path] = VERSION_UNAVAILABLE

        return [ToolchainCandidate(path=path, version=versions[path]) for path in paths]


def scan_toolchains(windows: Optional[bool] = None) -> ScanResult:
    """Scan with a fresh ToolchainScanner (see ToolchainScanner.scan)."""
    return ToolchainScanner(windows=windows).scan()
