"""subprocess backed implementation of :class:`~tfplan_wrap.core.protocols.CommandRunner`.

This module is the **only** place in the codebase that starts the
terraform process.  ``OSError`` and nonzero exits are caught here and
re-raised as :class:`~tfplan_wrap.exceptions.TerraformExecutionError`
with the captured output attached; nothing raw escapes the
infrastructure boundary.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import threading
from collections.abc import Sequence

from tfplan_wrap.core.models import RunResult, TerraformSettings
from tfplan_wrap.exceptions import TerraformCancelledError, TerraformExecutionError

logger = logging.getLogger(__name__)

DETAILED_EXITCODE_CHANGES: int = 2
"""Exit status of ``terraform plan -detailed-exitcode`` when a diff exists."""


class SubprocessCommandRunner:
    """Concrete :class:`CommandRunner` backed by :mod:`subprocess`.

    Usage::

        runner = SubprocessCommandRunner(TerraformSettings(working_dir=Path("infra")))
        result = runner.run(["plan", "-input=false"])

    This class satisfies the :class:`~tfplan_wrap.core.protocols.CommandRunner`
    protocol structurally — no explicit inheritance required.
    """

    def __init__(
        self,
        settings: TerraformSettings | None = None,
        *,
        poll_interval: float = 0.1,
    ) -> None:
        self._settings: TerraformSettings = settings or TerraformSettings()
        self._poll_interval: float = poll_interval

    @property
    def settings(self) -> TerraformSettings:
        return self._settings

    def _build_env(self) -> dict[str, str] | None:
        """Return the child environment, or ``None`` to inherit ours."""
        if not self._settings.env:
            return None
        return {**os.environ, **self._settings.env}

    # ------------------------------------------------------------------
    # Protocol method
    # ------------------------------------------------------------------

    def run(
        self,
        args: Sequence[str],
        *,
        cancel: threading.Event | None = None,
    ) -> RunResult:
        """Run terraform with *args* and wait for it to exit.

        Raises
        ------
        TerraformCancelledError
            When *cancel* was set while the process was running.
        TerraformExecutionError
            When the process exits nonzero or cannot be started.
        """
        command = [self._settings.exec_path, *args]
        logger.debug("running %s", shlex.join(command))

        try:
            proc = subprocess.Popen(
                command,
                cwd=self._settings.working_dir,
                env=self._build_env(),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            raise TerraformExecutionError(
                f"Failed to start {self._settings.exec_path}: {exc}",
                command=command,
                hint="Check that terraform is installed and on PATH, "
                "or set TFPLAN_WRAP_TERRAFORM to its location.",
            ) from exc

        try:
            stdout, stderr, cancelled = self._wait(proc, cancel)
        except BaseException:
            proc.kill()
            proc.wait()
            raise

        if cancelled:
            logger.info("terraform %s cancelled", args[0] if args else "")
            raise TerraformCancelledError(
                f"{shlex.join(command)} was cancelled",
                command=command,
                stdout=stdout,
                stderr=stderr,
                exit_code=proc.returncode,
            )

        if proc.returncode != 0:
            raise self._failure(command, stdout, stderr, proc.returncode)

        logger.debug("terraform exited 0")
        return RunResult(
            args=tuple(args),
            stdout=stdout,
            stderr=stderr,
            exit_code=proc.returncode,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _wait(
        self,
        proc: subprocess.Popen[str],
        cancel: threading.Event | None,
    ) -> tuple[str, str, bool]:
        """Collect output, killing *proc* once *cancel* is set.

        ``communicate`` may be retried after a timeout without losing
        output, so the process is polled in short slices.
        """
        if cancel is None:
            stdout, stderr = proc.communicate()
            return stdout, stderr, False

        while True:
            if cancel.is_set():
                proc.kill()
                stdout, stderr = proc.communicate()
                return stdout, stderr, True
            try:
                stdout, stderr = proc.communicate(timeout=self._poll_interval)
            except subprocess.TimeoutExpired:
                continue
            return stdout, stderr, False

    @staticmethod
    def _failure(
        command: list[str],
        stdout: str,
        stderr: str,
        exit_code: int,
    ) -> TerraformExecutionError:
        """Build the error for a nonzero exit, keeping stderr in the message."""
        message = f"{shlex.join(command)} exited with status {exit_code}"
        detail = stderr.strip()
        if detail:
            message = f"{message}:\n{detail}"

        hint: str | None = None
        if exit_code == DETAILED_EXITCODE_CHANGES and "-detailed-exitcode" in command:
            hint = "With -detailed-exitcode, status 2 means the plan contains changes."

        logger.debug("terraform exited %d", exit_code)
        return TerraformExecutionError(
            message,
            command=command,
            stdout=stdout,
            stderr=stderr,
            exit_code=exit_code,
            hint=hint,
        )
