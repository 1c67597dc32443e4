"""Custom exception hierarchy for tfplan-wrap.

All exceptions that cross layer boundaries must inherit from
:class:`TfPlanWrapError`.  Raw ``OSError`` and ``subprocess`` exceptions
must NEVER propagate beyond the infrastructure layer — they must be
caught and re-raised as a typed subclass defined here.

Hierarchy
---------
TfPlanWrapError
├── OptionConflictError
│   └── StateOptionConflictError
├── TempFileError
├── TerraformExecutionError
│   └── TerraformCancelledError
├── TerraformNotFoundError
└── EnvironmentError
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tfplan_wrap.core.models import Plan


class TfPlanWrapError(Exception):
    """Base exception for all tfplan-wrap errors.

    Every user-visible error condition must map to a subclass of this
    exception so that the CLI error boundary can render a clean message
    without leaking internal stack traces.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""


# --- Argument building -----------------------------------------------------

class OptionConflictError(TfPlanWrapError):
    """Raised when structured inputs collide with passthrough options."""


class StateOptionConflictError(OptionConflictError):
    """Raised when a prior state and a ``-state=`` option are both given."""


# --- Temporary artifacts ---------------------------------------------------

class TempFileError(TfPlanWrapError):
    """Raised when a temporary state or plan file cannot be prepared."""


# --- Terraform execution ---------------------------------------------------

class TerraformExecutionError(TfPlanWrapError):
    """Raised when terraform exits nonzero or cannot be started.

    The captured output is kept on the exception so that callers (and the
    plan executor) can inspect what terraform printed before failing.
    """

    def __init__(
        self,
        message: str,
        *,
        command: Sequence[str] = (),
        stdout: str = "",
        stderr: str = "",
        exit_code: int | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.command: tuple[str, ...] = tuple(command)
        self.stdout: str = stdout
        self.stderr: str = stderr
        self.exit_code: int | None = exit_code
        """Process exit status, or ``None`` when the process never ran."""
        self.plan: Plan | None = None
        """Plan artifact read after the failed run, attached by the executor."""


class TerraformCancelledError(TerraformExecutionError):
    """Raised when a running terraform process was killed on cancellation."""


# --- Environment / tooling -------------------------------------------------

class TerraformNotFoundError(TfPlanWrapError):
    """Raised when the terraform binary cannot be located on PATH."""


class EnvironmentError(TfPlanWrapError):
    """Raised when a required runtime dependency is not available."""
