"""CLI application entry point and command routing for tfplan-wrap.

This module is the **sole error boundary** for the entire application.
It catches :class:`~tfplan_wrap.exceptions.TfPlanWrapError`,
``KeyboardInterrupt``, and any unexpected ``Exception``, rendering
user-friendly messages via Rich and returning well-defined exit codes.

Architecture notes
------------------
* No business logic lives here — all work is delegated to the core and
  infrastructure layers.
* ``print()`` is forbidden outside the CLI layer; Rich console is used
  exclusively.
* This module is the only place that translates between the domain world
  and the OS process exit code.
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import shlex
import sys
from pathlib import Path

from tfplan_wrap.cli import exit_codes
from tfplan_wrap.cli.console import console
from tfplan_wrap.core.models import TerraformSettings
from tfplan_wrap.exceptions import TfPlanWrapError
from tfplan_wrap.version import __version__

PASSTHROUGH_SEPARATOR: str = "--"


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    """Construct the top-level argument parser.

    Supported forms:
    * ``tfplan-wrap plan [options] [-- terraform-options...]``
    * ``tfplan-wrap doctor``
    * ``tfplan-wrap --version``
    """
    parser = argparse.ArgumentParser(
        prog="tfplan-wrap",
        description="Run terraform plan and capture the plan artifact.",
        epilog="Options after -- are passed to terraform plan verbatim.",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log terraform invocations and temp file handling.",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="<command>")

    plan_parser = subparsers.add_parser(
        "plan",
        help="Run terraform plan and capture the plan file.",
    )
    plan_parser.add_argument(
        "--state",
        type=Path,
        default=None,
        help="Prior state file, passed to terraform through a temporary copy.",
    )
    plan_parser.add_argument(
        "--save",
        type=Path,
        default=None,
        help="Write the captured plan to this file.",
    )
    plan_parser.add_argument(
        "--ignore-output-diffs",
        action="store_true",
        default=None,
        help="Do not fail when terraform reports changes to outputs only.",
    )
    _add_terraform_arguments(plan_parser)

    doctor_parser = subparsers.add_parser(
        "doctor",
        help="Check the runtime environment.",
    )
    _add_terraform_arguments(doctor_parser)

    return parser


def _add_terraform_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--chdir",
        type=Path,
        default=None,
        help="Directory to run terraform in.",
    )
    parser.add_argument(
        "--terraform",
        default=None,
        metavar="PATH",
        help="terraform executable "
        "(default: $TFPLAN_WRAP_TERRAFORM, $TERRAFORM_BINARY or 'terraform').",
    )


def _split_passthrough(argv: list[str]) -> tuple[list[str], list[str]]:
    """Split *argv* at the first ``--``; the tail goes to terraform."""
    if PASSTHROUGH_SEPARATOR not in argv:
        return argv, []
    index = argv.index(PASSTHROUGH_SEPARATOR)
    return argv[:index], argv[index + 1:]


def _configure_logging(verbose: bool) -> None:
    """Send package logs to the Rich console when *verbose* is set."""
    if not verbose:
        return
    from tfplan_wrap.cli.console import get_rich_log_handler

    handler = get_rich_log_handler()
    package_logger = logging.getLogger("tfplan_wrap")
    if not any(type(existing) is type(handler) for existing in package_logger.handlers):
        package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG)


def _settings_from_args(args: argparse.Namespace) -> TerraformSettings:
    """Layer CLI flags over environment-derived settings."""
    settings = TerraformSettings.from_env()
    overrides: dict[str, object] = {}
    if args.terraform:
        overrides["exec_path"] = args.terraform
    if args.chdir is not None:
        overrides["working_dir"] = args.chdir
    if getattr(args, "ignore_output_diffs", None):
        overrides["ignore_output_diffs"] = True
    return dataclasses.replace(settings, **overrides)


# ---------------------------------------------------------------------------
# File helpers
# ---------------------------------------------------------------------------

def _load_state(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise TfPlanWrapError(
            f"Cannot read state file {path}: {exc}",
            hint="Check the --state path.",
        ) from exc


def _save_plan(path: Path, data: bytes) -> None:
    try:
        path.write_bytes(data)
    except OSError as exc:
        raise TfPlanWrapError(
            f"Cannot write plan file {path}: {exc}",
            hint="Check the --save path.",
        ) from exc


# ---------------------------------------------------------------------------
# Command dispatch
# ---------------------------------------------------------------------------

def _handle_plan(args: argparse.Namespace, passthrough: list[str]) -> int:
    """Dispatch a single ``terraform plan`` run.

    Flow:
    1. Resolve settings from environment and flags.
    2. Resolve terraform the way the runner will launch it.
    3. Run the plan and save the artifact when ``--save`` is given, also
       when terraform failed after writing a plan.
    """
    from tfplan_wrap.core.models import State
    from tfplan_wrap.exceptions import TerraformExecutionError
    from tfplan_wrap.infra.terraform_cli import TerraformCLI
    from tfplan_wrap.infra.terraform_detector import require_terraform

    settings = _settings_from_args(args)
    # Launch the exact file that was checked.
    settings = dataclasses.replace(settings, exec_path=str(require_terraform(settings)))

    state = State(_load_state(args.state)) if args.state is not None else None
    terraform = TerraformCLI(settings=settings)

    console.print(
        f"\n[bold]Running terraform plan…[/bold]  "
        f"{console.escape(shlex.join(passthrough))}\n"
    )

    try:
        plan = terraform.plan(state, *passthrough)
    except TerraformExecutionError as exc:
        if args.save is not None and exc.plan:
            _save_plan(args.save, exc.plan.to_bytes())
        raise

    if args.save is not None:
        _save_plan(args.save, plan.to_bytes())
        target = console.escape(str(args.save))
        console.print(f"[bold green]Plan captured.[/bold green]  {len(plan)} bytes → {target}")
    else:
        console.print(f"[bold green]Plan captured.[/bold green]  {len(plan)} bytes")
    return exit_codes.SUCCESS


def _handle_doctor(args: argparse.Namespace) -> int:
    """Dispatch the ``doctor`` diagnostics command."""
    from tfplan_wrap.cli.doctor import run_doctor

    return run_doctor(_settings_from_args(args))


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    """Run the tfplan-wrap CLI.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.  Accepting *argv* enables deterministic testing without
        monkeypatching.

    Returns
    -------
    int
        OS process exit code.
    """
    raw = list(sys.argv[1:] if argv is None else argv)
    own_args, passthrough = _split_passthrough(raw)

    parser = _build_parser()
    args = parser.parse_args(own_args)

    if args.command is None:
        parser.print_help()
        return exit_codes.SUCCESS

    _configure_logging(args.verbose)

    if args.command == "doctor":
        return _handle_doctor(args)

    return _handle_plan(args, passthrough)


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point.

    This function wraps :func:`main` and guarantees the process never
    exits with a raw stack trace during normal usage.
    """
    try:
        code = main()
        sys.exit(code)
    except TfPlanWrapError as exc:
        console.print(f"[bold red]Error:[/bold red] {console.escape(str(exc))}")
        if exc.hint:
            console.print(f"[yellow]Hint:[/yellow] {console.escape(exc.hint)}")
        sys.exit(exit_codes.GENERAL_ERROR)
    except KeyboardInterrupt:
        console.print("\n[yellow]Aborted by user.[/yellow]")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        console.print(
            "[bold red]Unexpected error.[/bold red] "
            "Please report this issue.\n"
            f"  {type(exc).__name__}: {console.escape(str(exc))}"
        )
        sys.exit(exit_codes.UNEXPECTED_ERROR)
