"""``tfplan-wrap doctor``: can a plan run here?

Each check mirrors something ``tfplan-wrap plan`` depends on: the
terraform binary (as the runner would resolve it) and what it reports
through ``terraform version -json``, the working directory terraform
writes into, the configuration found there, and the temp directory that
holds the state and plan files.

Checks return :class:`Check` rows with a plain ``OK``/``WARN``/``FAIL``
status; markup is only applied when rendering.
"""

from __future__ import annotations

import dataclasses
import os
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path

from tfplan_wrap.cli import exit_codes
from tfplan_wrap.cli.console import console
from tfplan_wrap.core.models import TerraformSettings
from tfplan_wrap.core.protocols import CommandRunner
from tfplan_wrap.exceptions import TempFileError, TerraformExecutionError
from tfplan_wrap.infra.temp_files import create_temp_file, release_temp_file
from tfplan_wrap.infra.terraform_detector import read_terraform_version, resolve_terraform
from tfplan_wrap.infra.terraform_runner import SubprocessCommandRunner
from tfplan_wrap.version import __version__

OK = "OK"
WARN = "WARN"
FAIL = "FAIL"

_STATUS_STYLE: dict[str, str] = {OK: "green", WARN: "yellow", FAIL: "red"}

_CONFIG_PATTERNS: tuple[str, ...] = ("*.tf", "*.tf.json")


@dataclass(frozen=True, slots=True)
class Check:
    """One row of the doctor table."""

    label: str
    value: str
    status: str = OK


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------

def _python_check() -> Check:
    ok = sys.version_info[:2] >= (3, 10)
    return Check(
        "Python",
        ".".join(str(part) for part in sys.version_info[:3]),
        OK if ok else FAIL,
    )


def _terraform_checks(
    settings: TerraformSettings,
    runner: CommandRunner | None,
) -> list[Check]:
    """Rows for the executable and the version it reports."""
    path = resolve_terraform(settings)
    if path is None:
        return [Check("terraform", f"{settings.exec_path} not found", FAIL)]

    rows = [Check("terraform", str(path))]
    if runner is None:
        # version needs no working directory; a missing --chdir is
        # reported by its own row.
        runner = SubprocessCommandRunner(
            dataclasses.replace(settings, exec_path=str(path), working_dir=None),
        )
    try:
        info = read_terraform_version(runner)
    except TerraformExecutionError as exc:
        first_line = str(exc).splitlines()[0] if str(exc) else "failed"
        rows.append(Check("version", first_line, FAIL))
        return rows

    value = info.version if info.platform is None else f"{info.version} ({info.platform})"
    if info.outdated:
        rows.append(Check("version", f"{value}, newer release available", WARN))
    else:
        rows.append(Check("version", value))
    return rows


def _working_dir_checks(settings: TerraformSettings) -> list[Check]:
    """Rows for the directory terraform runs in and its configuration."""
    directory = settings.working_dir if settings.working_dir is not None else Path.cwd()
    if not directory.exists():
        return [Check("working dir", f"{directory} does not exist", FAIL)]
    if not directory.is_dir():
        return [Check("working dir", f"{directory} is not a directory", FAIL)]
    if not os.access(directory, os.W_OK):
        return [Check("working dir", f"{directory} is not writable", FAIL)]

    rows = [Check("working dir", str(directory))]

    config_files = [
        match for pattern in _CONFIG_PATTERNS for match in directory.glob(pattern)
    ]
    if not config_files:
        rows.append(Check("configuration", "no .tf files", WARN))
    elif not (directory / ".terraform").is_dir():
        rows.append(
            Check(
                "configuration",
                f"{len(config_files)} file(s), not initialized (run terraform init)",
                WARN,
            )
        )
    else:
        rows.append(Check("configuration", f"{len(config_files)} file(s), initialized"))
    return rows


def _temp_dir_check() -> Check:
    """State and plan files are staged here for every run."""
    directory = tempfile.gettempdir()
    try:
        path = create_temp_file(b"", prefix="tfplan-wrap-doctor-")
    except TempFileError:
        return Check("temp dir", f"{directory} is not writable", FAIL)
    release_temp_file(path)
    return Check("temp dir", directory)


def collect_checks(
    settings: TerraformSettings,
    *,
    runner: CommandRunner | None = None,
) -> list[Check]:
    """Run every check in display order."""
    return [
        Check("tfplan-wrap", __version__),
        _python_check(),
        *_terraform_checks(settings, runner),
        *_working_dir_checks(settings),
        _temp_dir_check(),
    ]


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def _render_rich(checks: list[Check]) -> bool:
    """Render with Rich; ``False`` when Rich is not installed."""
    try:
        from rich.markup import escape
        from rich.table import Table
    except ModuleNotFoundError:
        return False

    table = Table(title="tfplan-wrap doctor", header_style="bold cyan", border_style="dim")
    table.add_column("Check", style="bold", min_width=13)
    table.add_column("Value", min_width=20)
    table.add_column("Status", justify="center", min_width=6)
    for check in checks:
        style = _STATUS_STYLE[check.status]
        table.add_row(
            escape(check.label),
            escape(check.value),
            f"[{style}]{check.status}[/{style}]",
        )

    console.print()
    console.print(table)
    console.print()
    return True


def _render_plain(checks: list[Check]) -> None:
    width = max(len(check.label) for check in checks)
    print("\ntfplan-wrap doctor", file=sys.stderr)
    for check in checks:
        print(f"  {check.status:<4}  {check.label:<{width}}  {check.value}", file=sys.stderr)
    print(file=sys.stderr)


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def run_doctor(
    settings: TerraformSettings | None = None,
    *,
    runner: CommandRunner | None = None,
) -> int:
    """Run all checks and print a summary.

    Returns
    -------
    int
        :data:`exit_codes.SUCCESS` unless a check failed, then
        :data:`exit_codes.GENERAL_ERROR`.  Warnings do not fail.
    """
    checks = collect_checks(settings or TerraformSettings(), runner=runner)
    rich = _render_rich(checks)
    if not rich:
        _render_plain(checks)

    failures = sum(check.status == FAIL for check in checks)
    warnings = sum(check.status == WARN for check in checks)

    if failures:
        message = f"{failures} check(s) failed."
        console.print(f"[bold red]{message}[/bold red]" if rich else message)
        return exit_codes.GENERAL_ERROR

    message = "All checks passed."
    if warnings:
        message = f"All checks passed with {warnings} warning(s)."
    console.print(f"[bold green]{message}[/bold green]" if rich else message)
    return exit_codes.SUCCESS
