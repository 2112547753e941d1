"""Pytest configuration and shared fixtures."""

import pytest
from fakes import FakeRunner

from oiinit.config import WizardConfig
from oiinit.core.progress import ProgressReporter, RecordingSink
from oiinit.core.scanner import ToolchainScanner
from oiinit.integrations.installer import CompanionInstaller
from oiinit.setup.config_writer import SettingsStore
from oiinit.setup.session import SetupSession


@pytest.fixture(autouse=True)
def no_editor_on_path(monkeypatch):
    """Keep editor argv as the bare command name whatever is installed locally."""
    monkeypatch.setattr("oiinit.integrations.installer.shutil.which", lambda name: None)


@pytest.fixture
def sink():
    """RecordingSink capturing every status-channel message."""
    return RecordingSink()


@pytest.fixture
def reporter(sink):
    """ProgressReporter writing to the recording sink."""
    return ProgressReporter(sink)


@pytest.fixture
def fake_runner():
    """FakeRunner with no registered responses."""
    return FakeRunner()


@pytest.fixture
def settings_path(tmp_path):
    """Settings file inside the test's temp directory."""
    return tmp_path / "settings.yaml"


@pytest.fixture
def store(settings_path):
    """SettingsStore backed by a temp file."""
    return SettingsStore(settings_path)


@pytest.fixture
def make_session(settings_path, reporter):
    """Factory for SetupSession instances with zero delays and fake collaborators."""

    def _create(runner=None, prompter=None, **overrides):
        runner = runner if runner is not None else FakeRunner()
        values = {
            "settings_path": settings_path,
            "step_delay": 0.0,
            "finalize_delay": 0.0,
            "download_delay": 0.0,
        }
        values.update(overrides)
        config = WizardConfig(**values)
        return SetupSession(
            config=config,
            reporter=reporter,
            runner=runner,
            store=SettingsStore(config.resolved_settings_path()),
            installer=CompanionInstaller(runner, editor_command=config.editor_command),
            scanner=ToolchainScanner(runner=runner, windows=False),
            prompter=prompter,
        )

    return _create
