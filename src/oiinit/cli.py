"""Command line entry point for oiinit.

Usage:
    oiinit scan [--json]                 List detected compilers/interpreters
    oiinit run [--languages cpp,python]  Run the setup wizard
    oiinit welcome [--force]             Run the wizard on first launch only

Exit codes:
    0: Setup completed (or nothing to do)
    1: Setup cancelled
    2: Configuration error
"""

import argparse
import json
import logging
import os
import sys
import threading
from dataclasses import asdict
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from oiinit import __version__
from oiinit.config import WizardConfig, load_config
from oiinit.core.orchestrator import OrchestratorState
from oiinit.core.progress import ConsoleSink, FanOutSink, LoggingSink, ProgressReporter
from oiinit.core.runner import CommandRunner
from oiinit.core.scanner import ToolchainKind, ToolchainScanner
from oiinit.exceptions import ConfigurationError
from oiinit.setup.launch_state import LaunchState
from oiinit.setup.selector import RichPrompter
from oiinit.setup.session import SetupSession
from oiinit.setup.wizard import (
    SetupWizard,
    WizardCommand,
    WizardMessage,
    format_settings_review,
    validate_resolved_settings,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CANCELLED = 1
EXIT_CONFIG_ERROR = 2


def configure_logging(verbose: bool = False) -> None:
    """Send log output to stderr; OIINIT_LOG_LEVEL sets the default level."""
    if verbose:
        level = logging.DEBUG
    else:
        level_name = os.environ.get("OIINIT_LOG_LEVEL", "WARNING").upper()
        level = getattr(logging, level_name, logging.WARNING)
        if not isinstance(level, int):
            level = logging.WARNING

    logging.basicConfig(level=level, format="[oiinit] %(levelname)s: %(message)s", stream=sys.stderr)


def parse_languages(value: str) -> list[str]:
    """Parse a comma-separated language list.

    Examples:
        >>> parse_languages("cpp, python")
        ['cpp', 'python']
    """
    languages = [item.strip().lower() for item in value.split(",") if item.strip()]
    valid = {kind.value for kind in ToolchainKind}
    for lang in languages:
        if lang not in valid:
            raise argparse.ArgumentTypeError(f"unknown language: {lang} (choose from {', '.join(sorted(valid))})")
    return languages


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="oiinit", description="First-run toolchain setup wizard")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", type=Path, help="Wizard config file (YAML)")

    subparsers = parser.add_subparsers(dest="command")

    scan_parser = subparsers.add_parser("scan", help="List detected compilers and interpreters")
    scan_parser.add_argument("--json", action="store_true", help="Print JSON instead of a table")

    run_parser = subparsers.add_parser("run", help="Run the setup wizard")
    run_parser.add_argument(
        "--languages",
        type=parse_languages,
        help="Comma-separated toolchains to configure (cpp,python); asked interactively if omitted",
    )

    welcome_parser = subparsers.add_parser("welcome", help="Run the wizard if it has never been shown")
    welcome_parser.add_argument("--force", action="store_true", help="Run even if shown before")
    welcome_parser.add_argument("--languages", type=parse_languages, help="See `oiinit run --languages`")

    return parser


def cmd_scan(config: WizardConfig, as_json: bool, console: Console) -> int:
    """Print the scan result."""
    scanner = ToolchainScanner(
        runner=CommandRunner(timeout=config.command_timeout),
        version_timeout=config.version_timeout,
    )
    result = scanner.scan()

    if as_json:
        data = {
            "cpp": [asdict(c) for c in result.cpp],
            "python": [asdict(c) for c in result.python],
        }
        print(json.dumps(data, indent=2))
        return EXIT_OK

    for kind in ToolchainKind:
        candidates = result.for_kind(kind)
        table = Table(title=f"{kind.label} ({len(candidates)} found)", title_justify="left")
        table.add_column("Version")
        table.add_column("Path", style="dim")
        for candidate in candidates:
            table.add_row(Text(candidate.version), Text(candidate.path))
        console.print(table)

    return EXIT_OK


def _initialize(wizard: SetupWizard, console: Console) -> Optional[OrchestratorState]:
    """Run initialization on a worker thread; Ctrl+C cancels it."""
    outcome: dict[str, Optional[OrchestratorState]] = {"state": None}
    wizard.prepare_initialization()

    def target() -> None:
        outcome["state"] = wizard.dispatch(WizardMessage(WizardCommand.INITIALIZE.value))

    worker = threading.Thread(target=target, name="oiinit-initialize", daemon=True)
    worker.start()

    while worker.is_alive():
        try:
            worker.join(0.2)
        except KeyboardInterrupt:
            console.print("[yellow]Cancelling...[/yellow]")
            wizard.dispatch(WizardMessage(WizardCommand.CANCEL_INITIALIZATION.value))

    return outcome["state"]


def run_wizard(session: SetupSession, console: Console, languages: Optional[list[str]] = None) -> int:
    """Drive the full wizard flow for a session.

    Returns:
        Exit code
    """
    wizard = SetupWizard(session)
    prompter = session.prompter

    if languages is None:
        languages = [
            kind.value
            for kind in ToolchainKind
            if prompter.confirm(f"Configure a {kind.label} environment?", default=True)
        ]

    wizard.dispatch(WizardMessage(WizardCommand.CONFIGURE_LANGUAGES.value, {"languages": languages}))

    if prompter.confirm("Choose a workspace folder?", default=True):
        wizard.dispatch(WizardMessage(WizardCommand.SELECT_FOLDER.value))

    console.print()
    console.print(Text(format_settings_review(session.settings, session.config.resolved_settings_path())))
    for warning in validate_resolved_settings(session.settings):
        console.print(Text(f"! {warning}", style="yellow"))

    if not session.installer.is_available():
        console.print(
            Text(
                f"! Editor command '{session.config.editor_command}' not found; companion installs will fail.",
                style="yellow",
            )
        )

    if not prompter.confirm("Start initialization?", default=True):
        wizard.dispatch(WizardMessage(WizardCommand.CONTINUE_CONFIG.value))
        return EXIT_OK

    console.print()
    state = _initialize(wizard, console)

    if session.settings.workspace is not None and prompter.confirm("Open the workspace now?", default=True):
        wizard.dispatch(WizardMessage(WizardCommand.OPEN_WORKSPACE.value))
    else:
        wizard.dispatch(WizardMessage(WizardCommand.CONTINUE_CONFIG.value))

    return EXIT_CANCELLED if state is OrchestratorState.CANCELLED else EXIT_OK


def _welcome_panel(console: Console) -> None:
    console.print(
        Panel(
            "Let's find your compilers and interpreters and get your environment ready.\n"
            "[dim]Press Ctrl+C during initialization to cancel.[/dim]",
            title=f"oiinit {__version__}",
            border_style="cyan",
        )
    )


def _build_session(config: WizardConfig, console: Console) -> SetupSession:
    reporter = ProgressReporter(FanOutSink(ConsoleSink(console), LoggingSink()))
    return SetupSession.create(config=config, reporter=reporter, prompter=RichPrompter(console))


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    console = Console()

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        console.print(Text(f"Configuration error: {e}", style="red"))
        return EXIT_CONFIG_ERROR

    command = args.command or "run"

    if command == "scan":
        return cmd_scan(config, args.json, console)

    languages = getattr(args, "languages", None)

    if command == "welcome":
        launch_state = LaunchState()
        if not launch_state.should_show() and not args.force:
            logger.info("Wizard already shown; use --force to run it again")
            return EXIT_OK

        _welcome_panel(console)
        launch_state.mark_launched()
        return run_wizard(_build_session(config, console), console, languages)

    _welcome_panel(console)
    return run_wizard(_build_session(config, console), console, languages)


if __name__ == "__main__":
    sys.exit(main())
