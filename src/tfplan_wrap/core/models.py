"""Domain models for tfplan-wrap.

All models are **frozen** dataclasses — immutable value objects with no
behaviour beyond data access.  They carry zero I/O and zero dependencies
on external packages.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path


# ---------------------------------------------------------------------------
# Opaque artifacts
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class State:
    """Serialized snapshot of previously known infrastructure.

    The content is opaque to tfplan-wrap; it is only ever written to a
    temporary file so that terraform can read it via ``-state=``.
    """

    data: bytes = b""

    def to_bytes(self) -> bytes:
        return self.data


@dataclass(frozen=True, slots=True)
class Plan:
    """Plan artifact produced by ``terraform plan -out=...``.

    Built from whatever bytes could be read back from the plan file, so it
    may be empty when terraform failed before writing anything.
    """

    data: bytes = b""

    def to_bytes(self) -> bytes:
        return self.data

    def __len__(self) -> int:
        return len(self.data)

    def __bool__(self) -> bool:
        return len(self.data) > 0


# ---------------------------------------------------------------------------
# Command execution
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class RunResult:
    """Outcome of a terraform process that exited successfully."""

    args: tuple[str, ...]
    """Arguments passed after the executable (subcommand first)."""

    stdout: str
    """Captured standard output."""

    stderr: str
    """Captured standard error."""

    exit_code: int = 0


@dataclass(frozen=True, slots=True)
class PlanInvocation:
    """Arguments and file locations prepared for one ``plan`` run."""

    args: tuple[str, ...]
    """Full argument list, ``"plan"`` first."""

    state_path: Path | None
    """Temporary state file passed via ``-state=``, if any."""

    plan_path: Path
    """File terraform writes the plan to."""

    owns_plan_file: bool
    """``True`` when *plan_path* is a temporary file removed after the run."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

_TRUTHY: frozenset[str] = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True, slots=True)
class TerraformSettings:
    """Per-instance configuration for driving the terraform CLI."""

    exec_path: str = "terraform"
    """Executable name or path of the terraform binary."""

    working_dir: Path | None = None
    """Directory terraform runs in; the current directory when ``None``."""

    env: Mapping[str, str] = field(default_factory=dict)
    """Extra environment variables layered over the parent environment."""

    ignore_output_diffs: bool = False
    """Initial value of the ignore-output-diffs policy."""

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> TerraformSettings:
        """Build settings from environment variables.

        * ``TFPLAN_WRAP_TERRAFORM`` (or ``TERRAFORM_BINARY``) — executable.
        * ``TFPLAN_WRAP_IGNORE_OUTPUT_DIFFS`` — ``1``/``true``/``yes``/``on``.
        """
        source = os.environ if environ is None else environ
        exec_path = (
            source.get("TFPLAN_WRAP_TERRAFORM")
            or source.get("TERRAFORM_BINARY")
            or "terraform"
        )
        ignore = source.get("TFPLAN_WRAP_IGNORE_OUTPUT_DIFFS", "").strip().lower()
        return cls(exec_path=exec_path, ignore_output_diffs=ignore in _TRUTHY)
