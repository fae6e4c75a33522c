"""End-to-end tests for the ``rpc`` command line."""
from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner, Result

from helpers import write_manifest
from rpcmd import __version__
from rpcmd import config as config_module
from rpcmd.cli import app, rewrite_shorthand
from rpcmd.doctor import engine as doctor_engine
from rpcmd.providers.node import NodeVersionInfo
from rpcmd.providers.registry import InstallStatus

runner = CliRunner()

SCRIPTS = {"build": "tsc", "test": "jest"}


def _invoke(args: list[str], env: dict[str, str], **kwargs: object) -> Result:
    return runner.invoke(app, rewrite_shorthand(args), env=env, **kwargs)


def _recorded(path: Path) -> list[str]:
    return path.read_text(encoding="utf-8").splitlines()[:-1]


@pytest.fixture
def offline_doctor(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make the doctor's runtime probes deterministic."""
    monkeypatch.setattr(
        doctor_engine,
        "detect_node_version",
        lambda: NodeVersionInfo(raw="v20.11.1", version="20.11.1", major=20, minor=11, patch=1),
    )
    monkeypatch.setattr(
        doctor_engine,
        "inspect_install",
        lambda distribution, command: InstallStatus(
            distribution, "0.4.0", command, f"/usr/local/bin/{command}"
        ),
    )


def test_version_flag(cli_env: dict[str, str]) -> None:
    """``--version`` prints the version and exits cleanly."""
    result = _invoke(["--version"], cli_env)

    assert result.exit_code == 0
    assert f"rpc {__version__}" in result.output


def test_run_named_script_uses_npm(
    project_dir: Path, fake_bin: Path, recorded_args: Path, cli_env: dict[str, str]
) -> None:
    """``rpc run test`` runs ``npm run test`` in the project directory."""
    write_manifest(project_dir, SCRIPTS)

    result = _invoke(["run", "test"], cli_env)

    assert result.exit_code == 0, result.output
    assert _recorded(recorded_args) == ["npm", "run", "test"]
    assert "> Executing: test (jest)" in result.output
    assert "✓ Script test completed successfully" in result.output


def test_shorthand_runs_script(
    project_dir: Path, fake_bin: Path, recorded_args: Path, cli_env: dict[str, str]
) -> None:
    """``rpc build`` is shorthand for ``rpc run build``."""
    write_manifest(project_dir, SCRIPTS)

    result = _invoke(["build"], cli_env)

    assert result.exit_code == 0, result.output
    assert _recorded(recorded_args) == ["npm", "run", "build"]


@pytest.mark.parametrize(
    ("lock_file", "expected"),
    [("yarn.lock", ["yarn", "build"]), ("pnpm-lock.yaml", ["pnpm", "run", "build"])],
)
def test_run_honours_lock_files(
    project_dir: Path,
    fake_bin: Path,
    recorded_args: Path,
    cli_env: dict[str, str],
    lock_file: str,
    expected: list[str],
) -> None:
    """Lock files pick the matching package manager."""
    write_manifest(project_dir, SCRIPTS)
    (project_dir / lock_file).write_text("", encoding="utf-8")

    result = _invoke(["run", "build"], cli_env)

    assert result.exit_code == 0, result.output
    assert _recorded(recorded_args) == expected


def test_script_failure_propagates_exit_code(
    project_dir: Path,
    fake_bin: Path,
    cli_env: dict[str, str],
) -> None:
    """A failing script makes rpc exit with the script's status."""
    write_manifest(project_dir, SCRIPTS)

    result = _invoke(["run", "test"], {**cli_env, "RPC_TEST_EXIT_CODE": "2"})

    assert result.exit_code == 2
    assert "Script 'test' failed with exit code 2" in result.output


def test_missing_package_manager_fails(
    project_dir: Path, empty_path: Path, cli_env: dict[str, str]
) -> None:
    """An unavailable package manager is reported as a launch failure."""
    write_manifest(project_dir, SCRIPTS)

    result = _invoke(["run", "test"], cli_env)

    assert result.exit_code == 1
    assert "Failed to execute script" in result.output


def test_unknown_script_lists_available(
    project_dir: Path, fake_bin: Path, recorded_args: Path, cli_env: dict[str, str]
) -> None:
    """Unknown names exit 1 and list the declared scripts."""
    write_manifest(project_dir, SCRIPTS)

    result = _invoke(["deploy"], cli_env)

    assert result.exit_code == 1
    assert "Script 'deploy' not found in package.json" in result.output
    assert "Available scripts:" in result.output
    assert "build: tsc" in result.output
    assert "test: jest" in result.output
    assert not recorded_args.exists()


def test_missing_manifest(project_dir: Path, cli_env: dict[str, str]) -> None:
    """A directory without package.json exits 1."""
    result = _invoke(["run", "build"], cli_env)

    assert result.exit_code == 1
    assert "No package.json found in the current directory." in result.output


def test_manifest_in_parent_is_ignored(
    project_dir: Path, cli_env: dict[str, str], monkeypatch: pytest.MonkeyPatch
) -> None:
    """Parent directories are never searched."""
    write_manifest(project_dir, SCRIPTS)
    nested = project_dir / "src"
    nested.mkdir()
    monkeypatch.chdir(nested)

    result = _invoke(["run", "build"], cli_env)

    assert result.exit_code == 1
    assert "No package.json found" in result.output


def test_manifest_without_scripts(project_dir: Path, cli_env: dict[str, str]) -> None:
    """A manifest with no scripts exits 1."""
    write_manifest(project_dir, {})

    result = _invoke([], cli_env)

    assert result.exit_code == 1
    assert "no scripts defined" in result.output


def test_interactive_selection(
    project_dir: Path, fake_bin: Path, recorded_args: Path, cli_env: dict[str, str]
) -> None:
    """Running without arguments offers a numbered script list."""
    write_manifest(project_dir, SCRIPTS)

    result = _invoke([], cli_env, input="2\n")

    assert result.exit_code == 0, result.output
    assert "Found 2 scripts in package.json" in result.output
    assert "1) build → tsc" in result.output
    assert "2) test → jest" in result.output
    assert _recorded(recorded_args) == ["npm", "run", "test"]


def test_run_without_name_prompts(
    project_dir: Path, fake_bin: Path, recorded_args: Path, cli_env: dict[str, str]
) -> None:
    """``rpc run`` with no name also prompts."""
    write_manifest(project_dir, SCRIPTS)

    result = _invoke(["run"], cli_env, input="build\n")

    assert result.exit_code == 0, result.output
    assert _recorded(recorded_args) == ["npm", "run", "build"]


def test_single_script_is_auto_selected(
    project_dir: Path, fake_bin: Path, recorded_args: Path, cli_env: dict[str, str]
) -> None:
    """A lone script runs without prompting."""
    write_manifest(project_dir, {"start": "node index.js"})

    result = _invoke([], cli_env)

    assert result.exit_code == 0, result.output
    assert "Select" not in result.output
    assert _recorded(recorded_args) == ["npm", "run", "start"]


def test_selection_cancel_exits_zero(
    project_dir: Path, fake_bin: Path, recorded_args: Path, cli_env: dict[str, str]
) -> None:
    """Choosing the cancel action exits cleanly without running anything."""
    write_manifest(project_dir, SCRIPTS)

    result = _invoke([], cli_env, input="q\n")

    assert result.exit_code == 0
    assert "Selection cancelled." in result.output
    assert not recorded_args.exists()


def test_selection_end_of_input_is_interrupt(
    project_dir: Path, fake_bin: Path, recorded_args: Path, cli_env: dict[str, str]
) -> None:
    """Ctrl-C or end of input at the prompt exits with 130."""
    write_manifest(project_dir, SCRIPTS)

    result = _invoke([], cli_env, input="")

    assert result.exit_code == 130
    assert "Interrupted." in result.output
    assert not recorded_args.exists()


def test_conflict_prompts_once_and_runs_script(
    project_dir: Path, fake_bin: Path, recorded_args: Path, cli_env: dict[str, str]
) -> None:
    """A script named like a built-in asks once, then runs the script."""
    write_manifest(project_dir, {"doctor": "node scripts/doctor.js", "build": "tsc"})

    result = _invoke(["run", "doctor"], cli_env, input="1\n")

    assert result.exit_code == 0, result.output
    assert result.output.count("exists as both a script and an rpc command") == 1
    assert result.output.count("Select 1-2") == 1
    assert _recorded(recorded_args) == ["npm", "run", "doctor"]


def test_conflict_choosing_command_runs_doctor(
    project_dir: Path,
    fake_bin: Path,
    recorded_args: Path,
    cli_env: dict[str, str],
    offline_doctor: None,
) -> None:
    """Picking the built-in runs the doctor instead of the script."""
    write_manifest(project_dir, {"doctor": "node scripts/doctor.js"})

    result = _invoke(["run", "doctor"], cli_env, input="2\n")

    assert result.exit_code == 0, result.output
    assert "Doctor summary:" in result.output
    assert not recorded_args.exists()


def test_force_script_skips_conflict_prompt(
    project_dir: Path, fake_bin: Path, recorded_args: Path, cli_env: dict[str, str]
) -> None:
    """``--script`` runs the script without asking."""
    write_manifest(project_dir, {"help": "echo help"})

    result = _invoke(["run", "--script", "help"], cli_env)

    assert result.exit_code == 0, result.output
    assert "exists as both" not in result.output
    assert _recorded(recorded_args) == ["npm", "run", "help"]


def test_doctor_reports_and_exits_zero(
    project_dir: Path, fake_bin: Path, cli_env: dict[str, str], offline_doctor: None
) -> None:
    """The doctor never fails; an offline version check is unknown."""
    result = _invoke(["doctor"], cli_env)

    assert result.exit_code == 0, result.output
    assert "rpc doctor - checking system..." in result.output
    assert "UNKNOWN [version] Could not check for updates" in result.output
    assert "PASS [install]" in result.output
    assert "Doctor summary: pass=4 warn=0 unknown=1" in result.output


def test_doctor_json(
    project_dir: Path, fake_bin: Path, cli_env: dict[str, str], offline_doctor: None
) -> None:
    """``--json`` emits a machine-readable report."""
    result = _invoke(["doctor", "--json"], cli_env)

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["summary"]["exit_code"] == 0
    assert payload["summary"]["totals"] == {"green": 4, "yellow": 0, "unknown": 1}
    statuses = {item["id"]: item["status"] for item in payload["results"]}
    assert statuses["version"] == "unknown"
    assert payload["metadata"]["rpc_version"] == __version__


def test_doctor_shows_issues_url(
    project_dir: Path, fake_bin: Path, cli_env: dict[str, str], offline_doctor: None
) -> None:
    """A configured issue tracker is printed after the summary."""
    env = {**cli_env, "RPC_ISSUES_URL": "https://example.invalid/issues"}

    result = _invoke(["doctor"], env)

    assert result.exit_code == 0
    assert "https://example.invalid/issues" in result.output


def test_help_command(cli_env: dict[str, str]) -> None:
    """``rpc help`` prints usage."""
    result = _invoke(["help"], cli_env)

    assert result.exit_code == 0
    assert "Usage" in result.output


def test_invalid_config_exits_one(project_dir: Path, tmp_path: Path, cli_env: dict[str, str]) -> None:
    """Configuration errors are reported before any command runs."""
    cfg = tmp_path / "bad.yml"
    cfg.write_text("unexpected: true\n", encoding="utf-8")

    result = _invoke(["--config-file", str(cfg), "run", "build"], cli_env)

    assert result.exit_code == 1
    assert "Configuration error" in result.output


def test_operations_log_written(
    project_dir: Path,
    fake_bin: Path,
    tmp_path: Path,
    cli_env: dict[str, str],
) -> None:
    """Each command appends a structured record when a log directory is set."""
    write_manifest(project_dir, SCRIPTS)
    logs_dir = tmp_path / "logs"

    result = _invoke(["run", "test"], {**cli_env, "RPC_LOGS_DIR": str(logs_dir)})

    assert result.exit_code == 0, result.output
    (line,) = (logs_dir / "operations.jsonl").read_text(encoding="utf-8").splitlines()
    record = json.loads(line)
    assert record["command"] == "run"
    assert record["result"]["status"] == "success"
    assert record["result"]["context"]["argv"] == ["npm", "run", "test"]


@pytest.mark.parametrize(
    ("argv", "expected"),
    [
        ([], []),
        (["build"], ["run", "build"]),
        (["doctor"], ["doctor"]),
        (["run", "build"], ["run", "build"]),
        (["-v", "build"], ["-v", "run", "build"]),
        (["--config-file", "cfg.yml", "test"], ["--config-file", "cfg.yml", "run", "test"]),
        (["--version"], ["--version"]),
        (["--", "build"], ["--", "build"]),
    ],
)
def test_rewrite_shorthand(argv: list[str], expected: list[str]) -> None:
    """Only a leading non-command positional gains a ``run`` prefix."""
    assert rewrite_shorthand(argv) == expected


def test_unrelated_rpc_env_does_not_break_commands(
    project_dir: Path,
    fake_bin: Path,
    recorded_args: Path,
    cli_env: dict[str, str],
    offline_doctor: None,
) -> None:
    """Variables such as ``RPC_URL`` belong to other tools and are ignored."""
    write_manifest(project_dir, SCRIPTS)
    env = {**cli_env, "RPC_URL": "http://localhost:8545"}

    run_result = _invoke(["run", "test"], env)
    doctor_result = _invoke(["doctor"], env)

    assert run_result.exit_code == 0, run_result.output
    assert _recorded(recorded_args) == ["npm", "run", "test"]
    assert doctor_result.exit_code == 0, doctor_result.output
    assert "Configuration error" not in doctor_result.output


def test_invalid_utf8_manifest_exits_one(project_dir: Path, cli_env: dict[str, str]) -> None:
    """An undecodable package.json is reported instead of crashing."""
    (project_dir / "package.json").write_bytes(b'{"scripts": {"build": "echo \xff"}}')

    result = _invoke(["run", "build"], cli_env)

    assert result.exit_code == 1
    assert "not valid UTF-8" in result.output


def test_doctor_footer_uses_project_issue_tracker(
    project_dir: Path,
    fake_bin: Path,
    cli_env: dict[str, str],
    offline_doctor: None,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Without configuration the footer links the distribution's issue tracker."""

    class _Metadata:
        def get_all(self, name: str) -> list[str]:
            return ["Issues, https://example.invalid/rpc/issues"]

    monkeypatch.setattr(config_module.metadata, "metadata", lambda name: _Metadata())

    result = _invoke(["doctor"], cli_env)

    assert result.exit_code == 0, result.output
    assert "If you encounter any issues, please report them at:" in result.output
    assert "https://example.invalid/rpc/issues" in result.output
