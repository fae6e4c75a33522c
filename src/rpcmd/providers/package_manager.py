"""Package-manager detection and script execution."""
from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from ..cancellation import CancellationToken, OperationInterrupted

LOGGER = logging.getLogger(__name__)

YARN_LOCK = "yarn.lock"
PNPM_LOCK = "pnpm-lock.yaml"


class ScriptError(RuntimeError):
    """Base class for script launch and execution failures."""


class ScriptSpawnFailed(ScriptError):
    """Raised when the package manager process cannot be started."""

    def __init__(self, manager: str, reason: str) -> None:
        super().__init__(f"Failed to start '{manager}': {reason}")
        self.manager = manager
        self.reason = reason


@dataclass(frozen=True, slots=True)
class PackageManager:
    """How scripts are launched for a given lock-file flavour."""

    name: str
    lock_file: str | None = None

    def args_for(self, script: str) -> list[str]:
        """Return the arguments that run *script* (excluding the executable)."""
        if self.name == "yarn":
            return [script]
        return ["run", script]

    def command_line(self, script: str) -> list[str]:
        """Return the full unresolved command line for *script*."""
        return [self.name, *self.args_for(script)]


NPM = PackageManager("npm")
YARN = PackageManager("yarn", YARN_LOCK)
PNPM = PackageManager("pnpm", PNPM_LOCK)


def detect_package_manager(directory: str | Path | None = None) -> PackageManager:
    """Pick the package manager from lock files in *directory* (default: cwd).

    ``yarn.lock`` wins over ``pnpm-lock.yaml``; without either, npm is used.
    """
    root = Path.cwd() if directory is None else Path(directory)
    for manager in (YARN, PNPM):
        if manager.lock_file and (root / manager.lock_file).exists():
            return manager
    return NPM


@dataclass(frozen=True, slots=True)
class ScriptOutcome:
    """Result of running a script through the package manager."""

    name: str
    manager: PackageManager
    argv: tuple[str, ...]
    returncode: int

    @property
    def succeeded(self) -> bool:
        """Return ``True`` when the child exited with status 0."""
        return self.returncode == 0

    @property
    def exit_status(self) -> int:
        """Return a shell-style status; signals map to ``128 + signal``."""
        if self.returncode < 0:
            return 128 - self.returncode
        return self.returncode


class ScriptExecutionFailed(ScriptError):
    """Raised when the script exits with a non-zero or missing exit code."""

    def __init__(self, outcome: ScriptOutcome) -> None:
        if outcome.returncode < 0:
            detail = f"was terminated by signal {-outcome.returncode}"
        else:
            detail = f"failed with exit code {outcome.returncode}"
        super().__init__(f"Script '{outcome.name}' {detail}")
        self.outcome = outcome

    @property
    def returncode(self) -> int:
        """Return the raw child return code."""
        return self.outcome.returncode

    @property
    def exit_status(self) -> int:
        """Return the status ``rpc`` should exit with."""
        return self.outcome.exit_status


class ScriptRunner:
    """Spawn scripts with the terminal attached and wait for them."""

    def __init__(
        self,
        cwd: Path,
        token: CancellationToken,
        *,
        console: Console | None = None,
        poll_interval: float = 0.1,
        terminate_grace: float = 5.0,
    ) -> None:
        """Bind the runner to a working directory and cancellation token."""
        self.cwd = cwd
        self.token = token
        self.console = console
        self.poll_interval = poll_interval
        self.terminate_grace = terminate_grace

    def resolve(self, name: str, command: str) -> tuple[PackageManager, list[str]]:
        """Return the package manager and unresolved argv for *name*."""
        manager = detect_package_manager(self.cwd)
        LOGGER.debug("Script %s (%s) resolved via %s", name, command, manager.name)
        return manager, manager.command_line(name)

    def run(self, name: str, command: str) -> ScriptOutcome:
        """Run *name* and return its outcome.

        Raises :class:`ScriptSpawnFailed` when the package manager cannot be
        launched, :class:`ScriptExecutionFailed` when it exits non-zero and
        :class:`~rpcmd.cancellation.OperationInterrupted` when the token is
        cancelled or the user interrupts the wait.
        """
        self.token.raise_if_cancelled()
        manager, argv = self.resolve(name, command)
        if self.console is not None:
            self.console.print(
                f"\n[blue]> Executing: [bold]{escape(name)}[/bold] ({escape(command)})[/blue]\n"
            )

        executable = shutil.which(manager.name)
        if executable is None:
            raise ScriptSpawnFailed(manager.name, "executable not found on PATH")

        process = self._spawn([executable, *argv[1:]], manager)
        returncode = self._wait(process)
        outcome = ScriptOutcome(
            name=name,
            manager=manager,
            argv=tuple(argv),
            returncode=returncode,
        )
        if not outcome.succeeded:
            raise ScriptExecutionFailed(outcome)
        return outcome

    def _spawn(self, argv: Sequence[str], manager: PackageManager) -> subprocess.Popen[bytes]:
        try:
            return subprocess.Popen(list(argv), cwd=str(self.cwd))  # noqa: S603
        except OSError as exc:
            raise ScriptSpawnFailed(manager.name, exc.strerror or str(exc)) from exc

    def _wait(self, process: subprocess.Popen[bytes]) -> int:
        try:
            while True:
                try:
                    return process.wait(timeout=self.poll_interval)
                except subprocess.TimeoutExpired:
                    if self.token.cancelled:
                        self._terminate(process)
                        raise OperationInterrupted(self.token.reason or "interrupted") from None
        except KeyboardInterrupt:
            self.token.cancel("keyboard interrupt")
            self._terminate(process)
            raise OperationInterrupted("keyboard interrupt") from None

    def _terminate(self, process: subprocess.Popen[bytes]) -> None:
        if process.poll() is not None:
            return
        LOGGER.debug("Terminating child process %s", process.pid)
        process.terminate()
        try:
            process.wait(timeout=self.terminate_grace)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()


__all__ = [
    "NPM",
    "PNPM",
    "PNPM_LOCK",
    "PackageManager",
    "ScriptError",
    "ScriptExecutionFailed",
    "ScriptOutcome",
    "ScriptRunner",
    "ScriptSpawnFailed",
    "YARN",
    "YARN_LOCK",
    "detect_package_manager",
]
