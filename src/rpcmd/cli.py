"""Typer-powered command line for ``rpc``.

``rpc run [NAME]`` runs a ``package.json`` script through npm, yarn or pnpm,
prompting for one when NAME is omitted. ``rpc doctor`` reports on the
installation. Any other first argument is treated as a script name, so
``rpc build`` is shorthand for ``rpc run build``.
"""
from __future__ import annotations

import json
import sys
import textwrap
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.markup import escape

from . import __version__
from .cancellation import CancellationToken, OperationInterrupted
from .config import AppConfig, ConfigError, load_config
from .conflicts import RESERVED_COMMANDS, Resolution, resolve_conflict
from .doctor import (
    DoctorEngine,
    DoctorReport,
    ProbeStatus,
    collect_probes,
    create_probe_context,
    serialize_report,
)
from .exit_codes import ExitCode
from .logging import OperationScope, StructuredLogger, configure_logging
from .manifest import (
    ManifestInvalid,
    ManifestNotFound,
    ScriptManifest,
    ScriptNotFound,
    load_manifest,
)
from .prompts import ConsolePrompter, PromptCancelled, Prompter, select_script
from .providers.package_manager import (
    ScriptExecutionFailed,
    ScriptRunner,
    ScriptSpawnFailed,
)

console = Console()

CONFIG_FILE_OPTION = typer.Option(
    None,
    "--config-file",
    dir_okay=False,
    help="Override the path to rpc's YAML config file.",
)
VERBOSE_OPTION = typer.Option(
    False,
    "--verbose",
    "-v",
    help="Log debug details to stderr.",
)
FORCE_SCRIPT_OPTION = typer.Option(
    False,
    "--script",
    "-s",
    help="Treat NAME as a script even if it matches a built-in command.",
)
DOCTOR_JSON_OPTION = typer.Option(
    False,
    "--json",
    help="Emit a JSON doctor report.",
)

# Root options that consume the following argument.
_ROOT_VALUE_OPTIONS = frozenset({"--config-file"})

_PROBE_STATUS_STYLE = {
    ProbeStatus.GREEN: "[green]PASS[/green]",
    ProbeStatus.YELLOW: "[yellow]WARN[/yellow]",
    ProbeStatus.UNKNOWN: "[magenta]UNKNOWN[/magenta]",
}

app = typer.Typer(
    add_completion=False,
    help=textwrap.dedent(
        """
        Run Project Commands: pick and run package.json scripts.

        Run without arguments to choose a script interactively, or pass a
        script name to run it directly.
        """
    ).strip(),
)


@dataclass
class RuntimeContext:
    """Aggregated runtime objects shared by commands."""

    config: AppConfig
    logger: StructuredLogger
    token: CancellationToken
    prompter: Prompter
    cwd: Path


def _ensure_runtime(
    ctx: typer.Context,
    config_file: Path | None,
    verbose: bool = False,
) -> RuntimeContext:
    runtime = ctx.obj
    if isinstance(runtime, RuntimeContext):
        return runtime

    try:
        config = load_config(config_file=config_file)
    except ConfigError as exc:
        console.print(f"[red]Configuration error: {escape(str(exc))}[/red]")
        raise typer.Exit(code=ExitCode.FAILURE) from exc

    configure_logging("DEBUG" if verbose else config.log_level)
    runtime = RuntimeContext(
        config=config,
        logger=StructuredLogger(config.logs_dir),
        token=CancellationToken(),
        prompter=ConsolePrompter(console),
        cwd=Path.cwd(),
    )
    ctx.obj = runtime
    return runtime


def _get_runtime(ctx: typer.Context) -> RuntimeContext:
    runtime = ctx.obj
    if isinstance(runtime, RuntimeContext):
        return runtime
    return _ensure_runtime(ctx, None)


@app.callback(invoke_without_command=True)
def _root(  # noqa: D401 - Typer displays help for us, docstring optional.
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show the rpc version and exit.",
    ),
    config_file: Path | None = CONFIG_FILE_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Entry point callback invoked for every CLI execution."""
    if version:
        console.print(f"rpc {__version__}")
        raise typer.Exit(code=ExitCode.OK)

    runtime = _ensure_runtime(ctx, config_file, verbose)

    if ctx.invoked_subcommand is None:
        _invoke_run(ctx, runtime, None, force_script=False)


@app.command("run")
def run_command(
    ctx: typer.Context,
    name: str | None = typer.Argument(
        None,
        help="Script to run. Omit to choose one interactively.",
        show_default=False,
    ),
    force_script: bool = FORCE_SCRIPT_OPTION,
) -> None:
    """Run a package.json script."""
    runtime = _get_runtime(ctx)
    _invoke_run(ctx, runtime, name, force_script=force_script)


@app.command()
def doctor(
    ctx: typer.Context,
    json_output: bool = DOCTOR_JSON_OPTION,
) -> None:
    """Check the installation, version freshness and runtimes."""
    runtime = _get_runtime(ctx)
    _run_doctor(runtime, json_output=json_output)


@app.command("help")
def help_command(ctx: typer.Context) -> None:
    """Show this message and exit."""
    console.print(ctx.find_root().get_help(), markup=False, highlight=False)


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


def _invoke_run(
    ctx: typer.Context,
    runtime: RuntimeContext,
    name: str | None,
    *,
    force_script: bool,
) -> None:
    with runtime.logger.operation(
        "run",
        args={"name": name, "force_script": force_script},
        target={"kind": "script", "cwd": runtime.cwd},
    ) as op:
        try:
            _run_flow(ctx, runtime, op, name, force_script=force_script)
        except ManifestNotFound as exc:
            _command_error(
                op,
                f"No {exc.path.name} found in the current directory.",
                rc=ExitCode.FAILURE,
            )
        except ManifestInvalid as exc:
            _command_error(op, str(exc), rc=ExitCode.FAILURE)
        except ScriptNotFound as exc:
            console.print(
                f"[red]Script '{escape(exc.name)}' not found in "
                f"{escape(runtime.config.manifest_name)}[/red]"
            )
            if exc.scripts:
                console.print("[yellow]Available scripts:[/yellow]")
                for available, command in exc.scripts.items():
                    console.print(
                        f"  [cyan]{escape(available)}[/cyan]: [dim]{escape(command)}[/dim]"
                    )
            op.error(str(exc), rc=ExitCode.FAILURE, context={"available": exc.available})
            raise typer.Exit(code=ExitCode.FAILURE) from exc
        except ScriptSpawnFailed as exc:
            _command_error(
                op,
                f"✗ Failed to execute script: {exc}",
                rc=ExitCode.FAILURE,
            )
        except ScriptExecutionFailed as exc:
            _command_error(op, f"✗ {exc}", rc=exc.exit_status)
        except PromptCancelled:
            console.print("[yellow]Selection cancelled.[/yellow]")
            op.warning("Selection cancelled by user.", warnings=["cancelled"])
        except (OperationInterrupted, KeyboardInterrupt) as exc:
            runtime.token.cancel("keyboard interrupt")
            console.print("\n[yellow]Interrupted.[/yellow]")
            op.error("Interrupted by user.", rc=ExitCode.INTERRUPTED)
            raise typer.Exit(code=ExitCode.INTERRUPTED) from exc


def _run_flow(
    ctx: typer.Context,
    runtime: RuntimeContext,
    op: OperationScope,
    name: str | None,
    *,
    force_script: bool,
) -> None:
    manifest = load_manifest(runtime.cwd, filename=runtime.config.manifest_name)
    count = len(manifest)
    op.add_step("manifest.load", status="success", detail=f"{count} script(s)")

    if name is None:
        console.print(
            f"[green]Found {count} script{'' if count == 1 else 's'} in "
            f"{escape(manifest.path.name)}[/green]"
        )
        name = select_script(
            manifest.scripts,
            prompter=runtime.prompter,
            token=runtime.token,
            auto_select_single=runtime.config.auto_select_single,
        )
        op.add_step("script.select", status="success", detail=name)
    elif not force_script:
        resolution = resolve_conflict(
            name,
            manifest.scripts,
            prompter=runtime.prompter,
            token=runtime.token,
        )
        op.add_step("conflict.resolve", status="success", detail=resolution.value)
        if resolution is Resolution.COMMAND:
            _dispatch_builtin(ctx, runtime, op, name, manifest)
            return

    command = manifest.require(name)
    runner = ScriptRunner(runtime.cwd, runtime.token, console=console)
    outcome = runner.run(name, command)
    console.print(f"\n[green]✓ Script [bold]{escape(name)}[/bold] completed successfully[/green]")
    op.success(
        f"Script '{name}' completed.",
        context={"argv": outcome.argv, "manager": outcome.manager.name},
    )


def _dispatch_builtin(
    ctx: typer.Context,
    runtime: RuntimeContext,
    op: OperationScope,
    name: str,
    manifest: ScriptManifest,
) -> None:
    op.add_step("builtin.dispatch", status="info", detail=name)
    if name == "doctor":
        _run_doctor(runtime, json_output=False)
    elif name == "help":
        console.print(ctx.find_root().get_help(), markup=False, highlight=False)
    elif name == "run":
        _run_flow(ctx, runtime, op, None, force_script=False)
        return
    else:  # pragma: no cover - RESERVED_COMMANDS and this dispatch must stay in sync
        raise ScriptNotFound(name, manifest.scripts)
    op.success(f"Dispatched '{name}' as a built-in command.")


def _command_error(op: OperationScope, message: str, *, rc: int) -> NoReturn:
    console.print(f"[red]{escape(message)}[/red]")
    op.error(message, rc=rc)
    raise typer.Exit(code=rc)


# ---------------------------------------------------------------------------
# doctor
# ---------------------------------------------------------------------------


def _render_doctor_report(report: DoctorReport, config: AppConfig) -> None:
    """Render a doctor report in a human-friendly format."""
    for result in report.results:
        status_label = _PROBE_STATUS_STYLE[result.status]
        category = escape(f"[{result.category}]")
        console.print(f"{status_label} {category} {escape(result.message)}")
        if result.remediation:
            console.print(f"  [yellow]Tip:[/yellow] {escape(result.remediation)}")

    totals = report.summary.totals
    console.print()
    console.print(
        "[bold blue]Doctor summary:[/bold blue] "
        f"pass={totals.get(ProbeStatus.GREEN, 0)} "
        f"warn={totals.get(ProbeStatus.YELLOW, 0)} "
        f"unknown={totals.get(ProbeStatus.UNKNOWN, 0)}"
    )
    if config.issues_url:
        console.print("[dim]If you encounter any issues, please report them at:[/dim]")
        console.print(escape(config.issues_url))


def _run_doctor(runtime: RuntimeContext, *, json_output: bool) -> None:
    with runtime.logger.operation(
        "doctor",
        args={"json": json_output},
        target={"kind": "system", "scope": "health"},
    ) as op:
        if not json_output:
            console.print("\n[bold blue]rpc doctor - checking system...[/bold blue]\n")
        context = create_probe_context(runtime.config, cwd=runtime.cwd)
        engine = DoctorEngine(context)
        report = engine.run(collect_probes(), metadata={"rpc_version": __version__})
        payload = serialize_report(report)

        if json_output:
            console.print(
                json.dumps(payload, indent=2),
                markup=False,
                highlight=False,
                soft_wrap=True,
            )
        else:
            _render_doctor_report(report, runtime.config)

        flagged = [result.id for result in report.results if result.is_warning]
        if flagged:
            op.warning(
                "Doctor completed with warnings.",
                warnings=flagged,
                context={"report": payload},
            )
        else:
            op.success("Doctor completed successfully.", context={"report": payload})


# ---------------------------------------------------------------------------
# entry point
# ---------------------------------------------------------------------------


def rewrite_shorthand(argv: Sequence[str]) -> list[str]:
    """Insert ``run`` before a leading script name (``rpc build``)."""
    args = list(argv)
    index = 0
    while index < len(args):
        arg = args[index]
        if arg == "--":
            break
        if arg in _ROOT_VALUE_OPTIONS:
            index += 2
            continue
        if arg.startswith("-"):
            index += 1
            continue
        if arg not in RESERVED_COMMANDS:
            args.insert(index, "run")
        break
    return args


def main() -> None:
    """Console script entry point."""
    app(args=rewrite_shorthand(sys.argv[1:]), prog_name="rpc")
