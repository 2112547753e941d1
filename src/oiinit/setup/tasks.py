"""The fixed environment-initialization sequence.

Four tasks, always in this order:
1. set_locale: write the locale preference
2. persist_toolchains: write resolved compiler/interpreter paths
3. install_companions: install companion packages one at a time
4. finalize: short pause before the completion signal

Every task reports its own sub-step failures as status lines and carries on;
only an unexpected exception escapes to the orchestrator, which reports it
the same way.
"""

import logging

from oiinit.core.orchestrator import SetupOrchestrator, SetupTask, TaskContext
from oiinit.core.scanner import ToolchainKind
from oiinit.exceptions import InstallError, PersistenceError
from oiinit.setup.config_writer import CPP_COMPILER_KEY, LOCALE_KEY, PYTHON_INTERPRETER_KEY
from oiinit.setup.session import SetupSession

logger = logging.getLogger(__name__)

# Settings key each toolchain family is persisted under
TOOLCHAIN_SETTING_KEYS = {
    ToolchainKind.CPP: CPP_COMPILER_KEY,
    ToolchainKind.PYTHON: PYTHON_INTERPRETER_KEY,
}


def set_locale(session: SetupSession, context: TaskContext) -> None:
    locale = session.config.locale
    try:
        session.store.set_value(LOCALE_KEY, locale)
    except PersistenceError as e:
        context.status(f"Failed to set interface language: {e}")
        return
    context.status(f"Interface language set to {locale}.")


def persist_toolchains(session: SetupSession, context: TaskContext) -> None:
    """Write each resolved toolchain path to the settings store.

    Writing the same settings twice leaves the store unchanged, so the task
    can be re-run safely.
    """
    configured = session.settings.configured_kinds()
    if not configured:
        context.status("No toolchain configured.")
        return

    for kind in configured:
        selection = session.settings.get(kind)
        key = TOOLCHAIN_SETTING_KEYS[kind]
        try:
            session.store.set_value(key, selection.path)
        except PersistenceError as e:
            logger.error(f"Failed to save {kind.label} path: {e}")
            context.status(f"  - Failed to save {kind.label} path: {e}")
            continue

        if kind is ToolchainKind.PYTHON:
            # python.defaultInterpreterPath is what the Python tooling reads
            context.status(f"  - Python interpreter: {selection.path} (Python tooling configured)")
        else:
            context.status(f"  - C++ compiler: {selection.path} (saved to settings)")

    context.status("Compiler/interpreter settings saved.")


def install_companions(session: SetupSession, context: TaskContext) -> None:
    packages = session.config.companion_packages
    if not packages:
        context.status("No companion packages to install.")
        return

    for package_id in packages:
        if context.cancelled:
            return

        context.status(f"  - Installing {package_id}...")
        try:
            session.installer.install(package_id, cancel_event=context.cancel_event)
        except InstallError as e:
            if context.cancelled:
                return
            logger.warning(f"Failed to install {package_id}: {e.message}")
            context.status(f"  - {package_id} failed to install: {e.message}")
            continue
        context.status(f"  - {package_id} installed.")

    context.status("Companion packages processed.")


def finalize(session: SetupSession, context: TaskContext) -> None:
    context.wait(session.config.finalize_delay)


def default_tasks(session: SetupSession) -> list[SetupTask]:
    """Build the four-task initialization sequence bound to a session."""
    return [
        SetupTask(
            name="set_locale",
            message="Setting interface language...",
            effect=lambda context: set_locale(session, context),
        ),
        SetupTask(
            name="persist_toolchains",
            message="Saving compiler/interpreter settings...",
            effect=lambda context: persist_toolchains(session, context),
        ),
        SetupTask(
            name="install_companions",
            message="Installing companion packages...",
            effect=lambda context: install_companions(session, context),
        ),
        SetupTask(
            name="finalize",
            message="Finalizing initialization...",
            effect=lambda context: finalize(session, context),
        ),
    ]


def build_orchestrator(session: SetupSession) -> SetupOrchestrator:
    """Create an orchestrator for the default sequence of a session."""
    return SetupOrchestrator(
        default_tasks(session),
        session.reporter,
        runner=session.runner,
        step_delay=session.config.step_delay,
    )
