"""Tests for toolchain discovery."""

import time
from unittest.mock import MagicMock, patch

import pytest
from fakes import FakeRunner

from oiinit.core.runner import CommandResult
from oiinit.core.scanner import (
    BINARY_NAMES,
    VERSION_UNAVAILABLE,
    ScanResult,
    ToolchainCandidate,
    ToolchainKind,
    ToolchainScanner,
    dedupe_paths,
    discovery_commands,
    scan_toolchains,
)


class TestToolchainCandidate:
    """Test suite for ToolchainCandidate dataclass."""

    def test_candidate_immutable(self):
        candidate = ToolchainCandidate(path="/usr/bin/g++", version="g++ 13")
        with pytest.raises(AttributeError):
            candidate.path = "/usr/bin/gcc"

    def test_label(self):
        candidate = ToolchainCandidate(path="/usr/bin/python3", version="Python 3.12.1")
        assert candidate.label == "Python 3.12.1 - /usr/bin/python3"


class TestScanResult:
    """Test suite for ScanResult dataclass."""

    def test_defaults_empty(self):
        result = ScanResult()
        assert result.cpp == []
        assert result.python == []

    def test_for_kind(self):
        cpp = [ToolchainCandidate("/usr/bin/g++", "g++")]
        python = [ToolchainCandidate("/usr/bin/python3", "Python 3")]
        result = ScanResult(cpp=cpp, python=python)

        assert result.for_kind(ToolchainKind.CPP) is cpp
        assert result.for_kind(ToolchainKind.PYTHON) is python


class TestDiscoveryCommands:
    """Test suite for discovery_commands."""

    def test_posix_uses_which_all(self):
        commands = discovery_commands(ToolchainKind.CPP, windows=False)
        assert commands == ["which -a g++", "which -a gcc", "which -a clang", "which -a clang++"]

    def test_windows_uses_where(self):
        commands = discovery_commands(ToolchainKind.CPP, windows=True)
        assert all(command.startswith("where ") for command in commands)
        assert len(commands) == len(BINARY_NAMES[ToolchainKind.CPP])

    def test_kind_labels(self):
        assert ToolchainKind.CPP.label == "C++"
        assert ToolchainKind.PYTHON.label == "Python"


class TestDedupePaths:
    """Test suite for dedupe_paths."""

    def test_keeps_first_occurrence_order(self):
        assert dedupe_paths(["/b", "/a", "/b", "/c", "/a"]) == ["/b", "/a", "/c"]

    def test_literal_comparison(self):
        """Different spellings of the same file are not merged."""
        assert dedupe_paths(["/usr/bin/g++", "/usr/bin/../bin/g++"]) == ["/usr/bin/g++", "/usr/bin/../bin/g++"]


class TestToolchainScanner:
    """Test suite for ToolchainScanner."""

    def test_duplicate_discovery_yields_one_candidate(self):
        """Duplicated lookup output produces exactly one candidate per path."""
        runner = FakeRunner(
            {
                "which -a g++": ["/usr/bin/g++", "/usr/bin/g++"],
                "/usr/bin/g++ --version": ["g++ (GCC) 13.2.0", "Copyright (C) 2023"],
            }
        )
        result = ToolchainScanner(runner=runner, windows=False).scan()

        assert result.cpp == [ToolchainCandidate(path="/usr/bin/g++", version="g++ (GCC) 13.2.0")]
        assert result.python == []

    def test_duplicates_across_binary_names(self):
        """A path reported by two lookups (gcc and g++ symlinked) appears once."""
        runner = FakeRunner(
            {
                "which -a g++": ["/usr/bin/g++"],
                "which -a gcc": ["/usr/bin/gcc", "/usr/bin/g++"],
            }
        )
        result = ToolchainScanner(runner=runner, windows=False).scan()
        assert [c.path for c in result.cpp] == ["/usr/bin/g++", "/usr/bin/gcc"]

    def test_version_placeholder(self):
        """A path whose version probe fails keeps its entry with a placeholder version."""
        runner = FakeRunner(
            {
                "which -a python3": ["/opt/python3"],
                "/opt/python3 --version": CommandResult(returncode=1, stderr="boom"),
            }
        )
        result = ToolchainScanner(runner=runner, windows=False).scan()
        assert result.python == [ToolchainCandidate(path="/opt/python3", version=VERSION_UNAVAILABLE)]

    def test_versions_paired_with_their_paths(self):
        """Versions finishing out of order still land on the right candidate."""
        paths = [f"/toolchains/{i}/python" for i in range(5)]

        def slow_version(argv):
            index = int(argv[0].split("/")[2])
            time.sleep(0.05 * (5 - index))
            return CommandResult(returncode=0, stdout=f"Python 3.{index}\n")

        runner = FakeRunner({"which -a python": paths})
        for path in paths:
            runner.add([path, "--version"], slow_version)

        result = ToolchainScanner(runner=runner, windows=False).scan()

        assert [c.path for c in result.python] == paths
        assert [c.version for c in result.python] == [f"Python 3.{i}" for i in range(5)]

    def test_nothing_found(self):
        result = ToolchainScanner(runner=FakeRunner(), windows=False).scan()
        assert result.cpp == []
        assert result.python == []
        assert result.scan_time_ms >= 0

    def test_runner_exceptions_do_not_escape(self):
        """A scan never raises, even if the runner itself blows up."""
        runner = MagicMock()
        runner.run.side_effect = RuntimeError("boom")

        result = ToolchainScanner(runner=runner, windows=False).scan()

        assert result.cpp == []
        assert result.python == []

    def test_get_version_runner_exception(self):
        runner = MagicMock()
        runner.run.side_effect = OSError("no such file")
        assert ToolchainScanner(runner=runner).get_version("/usr/bin/g++") == VERSION_UNAVAILABLE

    def test_windows_lookup_commands_used(self):
        runner = FakeRunner({"where python": ["C:\\Python312\\python.exe"]})
        result = ToolchainScanner(runner=runner, windows=True).scan()

        assert [c.path for c in result.python] == ["C:\\Python312\\python.exe"]
        assert ["where", "g++"] in runner.calls

    def test_scan_toolchains_helper(self):
        with patch.object(ToolchainScanner, "scan", return_value=ScanResult()) as mock_scan:
            assert scan_toolchains(windows=False) == ScanResult()
        mock_scan.assert_called_once()
