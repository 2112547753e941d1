"""Tests for the wizard message loop."""

from fakes import FakeRunner, ScriptedPrompter

from oiinit.core.orchestrator import OrchestratorState
from oiinit.core.progress import MessageKind
from oiinit.core.runner import CommandResult
from oiinit.core.scanner import ToolchainKind
from oiinit.setup.selector import SIMULATED_PATHS, SelectionAction
from oiinit.setup.session import ResolvedSettings, WorkspaceSelection
from oiinit.setup.wizard import (
    WORKSPACE_STEP,
    SetupWizard,
    WizardCommand,
    WizardMessage,
    format_settings_review,
    validate_resolved_settings,
)


class TestDispatch:
    """Test suite for SetupWizard.dispatch."""

    def test_unknown_command_reported(self, make_session, sink):
        wizard = SetupWizard(make_session())

        assert wizard.dispatch(WizardMessage("reticulate-splines")) is None
        assert len(sink.errors) == 1
        assert sink.errors[0].startswith("Operation failed:")

    def test_handler_exception_reported(self, make_session, sink):
        """A failing handler becomes an error message and the wizard stays usable."""
        wizard = SetupWizard(make_session())

        assert wizard.dispatch(WizardMessage("configure-languages", {"languages": "cpp"})) is None
        assert sink.errors == ["Operation failed: languages must be a list"]

        wizard.dispatch(WizardMessage("continue-config"))
        assert wizard.closed is True

    def test_command_values(self):
        assert [c.value for c in WizardCommand] == [
            "configure-languages",
            "select-folder",
            "initialize",
            "cancel-initialization",
            "open-workspace",
            "continue-config",
        ]


class TestHandlers:
    """Test suite for the individual command handlers."""

    def test_configure_languages(self, make_session, sink):
        prompter = ScriptedPrompter(choices=[1, 2])
        session = make_session(prompter=prompter)
        wizard = SetupWizard(session)

        outcomes = wizard.dispatch(WizardMessage("configure-languages", {"languages": ["cpp", "python"]}))

        assert outcomes[ToolchainKind.CPP].action is SelectionAction.SIMULATED_DOWNLOAD
        assert outcomes[ToolchainKind.PYTHON].is_skipped
        assert session.settings.cpp.path == SIMULATED_PATHS[ToolchainKind.CPP]
        assert session.settings.python is None
        assert sink.payloads(MessageKind.GO_TO_STEP) == [WORKSPACE_STEP]

    def test_configure_only_requested_languages(self, make_session):
        prompter = ScriptedPrompter(choices=[2])
        wizard = SetupWizard(make_session(prompter=prompter))

        outcomes = wizard.dispatch(WizardMessage("configure-languages", {"languages": ["python", "rust"]}))

        assert list(outcomes) == [ToolchainKind.PYTHON]
        assert prompter.menus[0][0] == "Configure Python environment"

    def test_select_folder(self, make_session, tmp_path):
        session = make_session(prompter=ScriptedPrompter(folders=[str(tmp_path)]))
        assert SetupWizard(session).dispatch(WizardMessage("select-folder")) == str(tmp_path)
        assert session.settings.workspace == WorkspaceSelection(path=str(tmp_path))

    def test_initialize(self, make_session, sink):
        wizard = SetupWizard(make_session(companion_packages=()))

        assert wizard.dispatch(WizardMessage("initialize")) is OrchestratorState.COMPLETED
        assert sink.completions == ["completed"]

    def test_initialize_again_runs_fresh_sequence(self, make_session, sink):
        wizard = SetupWizard(make_session(companion_packages=()))
        wizard.dispatch(WizardMessage("initialize"))
        wizard.dispatch(WizardMessage("initialize"))
        assert sink.completions == ["completed", "completed"]

    def test_cancel_without_run(self, make_session, sink):
        wizard = SetupWizard(make_session())
        assert wizard.dispatch(WizardMessage("cancel-initialization")) is False
        assert sink.messages == []

    def test_cancel_before_run_starts(self, make_session, sink):
        """A cancel landing between preparing and running the sequence is not lost."""
        wizard = SetupWizard(make_session(companion_packages=()))
        orchestrator = wizard.prepare_initialization()

        assert wizard.dispatch(WizardMessage("cancel-initialization")) is True
        assert wizard.dispatch(WizardMessage("initialize")) is OrchestratorState.CANCELLED

        assert wizard.orchestrator is orchestrator
        assert orchestrator.progress.completed_tasks == 0
        assert sink.completions == ["cancelled"]

    def test_prepare_reuses_idle_orchestrator(self, make_session):
        wizard = SetupWizard(make_session(companion_packages=()))
        first = wizard.prepare_initialization()

        assert wizard.prepare_initialization() is first
        wizard.dispatch(WizardMessage("initialize"))
        assert first.state is OrchestratorState.COMPLETED
        assert wizard.prepare_initialization() is not first

    def test_open_workspace(self, make_session, tmp_path):
        runner = FakeRunner({("code", "--new-window", str(tmp_path)): CommandResult(returncode=0)})
        session = make_session(runner=runner)
        session.settings.workspace = WorkspaceSelection(path=str(tmp_path))
        wizard = SetupWizard(session)

        assert wizard.dispatch(WizardMessage("open-workspace")) is True
        assert wizard.closed is True

    def test_open_workspace_failure(self, make_session, sink, tmp_path):
        session = make_session()
        session.settings.workspace = WorkspaceSelection(path=str(tmp_path))
        wizard = SetupWizard(session)

        assert wizard.dispatch(WizardMessage("open-workspace")) is False
        assert sink.errors == [f"Error opening workspace: {tmp_path}"]
        assert wizard.closed is True

    def test_open_workspace_without_folder(self, make_session, sink):
        wizard = SetupWizard(make_session())
        assert wizard.dispatch(WizardMessage("open-workspace")) is False
        assert sink.errors == []

    def test_continue_config(self, make_session, sink, settings_path):
        wizard = SetupWizard(make_session())
        wizard.dispatch(WizardMessage("continue-config"))
        assert sink.payloads(MessageKind.INFO) == [f"You can continue configuring oiinit in {settings_path}"]


class TestSettingsReview:
    """Test suite for format_settings_review and validate_resolved_settings."""

    def test_review_lines(self, tmp_path):
        settings = ResolvedSettings()
        settings.set(ToolchainKind.CPP, "/usr/bin/g++")
        settings.workspace = WorkspaceSelection(path="/home/me/oi")

        review = format_settings_review(settings, tmp_path / "settings.yaml")

        assert "✓ C++ compiler: /usr/bin/g++" in review
        assert "✗ Python interpreter: not configured" in review
        assert "✓ Workspace: /home/me/oi" in review
        assert f"Settings will be written to: {tmp_path / 'settings.yaml'}" in review

    def test_validate_missing_paths(self, tmp_path):
        settings = ResolvedSettings()
        settings.set(ToolchainKind.CPP, str(tmp_path / "missing-g++"))
        settings.workspace = WorkspaceSelection(path=str(tmp_path / "nowhere"))

        warnings = validate_resolved_settings(settings)

        assert len(warnings) == 2
        assert warnings[0].startswith("C++ path does not exist:")
        assert warnings[1].startswith("Workspace folder does not exist:")

    def test_validate_skips_simulated_paths(self, tmp_path):
        interpreter = tmp_path / "python3"
        interpreter.write_text("", encoding="utf-8")
        settings = ResolvedSettings()
        settings.set(ToolchainKind.CPP, SIMULATED_PATHS[ToolchainKind.CPP])
        settings.set(ToolchainKind.PYTHON, str(interpreter))
        settings.workspace = WorkspaceSelection(path=str(tmp_path))

        assert validate_resolved_settings(settings) == []
