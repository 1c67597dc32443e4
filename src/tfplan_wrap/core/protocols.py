"""Protocols (interfaces) consumed by the core and executor layers.

These define the contracts that infrastructure adapters must satisfy.
Orchestration code depends ONLY on these protocols — never on concrete
implementations — preserving the dependency inversion principle.
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from typing import Protocol

from tfplan_wrap.core.models import RunResult


class CommandRunner(Protocol):
    """Contract for terraform process backends.

    Any object that implements :meth:`run` with the correct signature
    satisfies this protocol structurally (no explicit inheritance
    required).
    """

    def run(
        self,
        args: Sequence[str],
        *,
        cancel: threading.Event | None = None,
    ) -> RunResult:
        """Run terraform with *args* (subcommand first) and wait for it.

        Parameters
        ----------
        args:
            Arguments following the executable, e.g. ``["plan", "-out=x"]``.
        cancel:
            Optional event; once set, the implementation must terminate
            the running process and return promptly.

        Raises
        ------
        TerraformExecutionError
            When the process exits nonzero, cannot be launched, or is
            cancelled.  Captured stdout must be preserved on the
            exception.
        """
        ...  # pragma: no cover


class OutputClassifier(Protocol):
    """Strategy deciding whether captured output shows an output-only diff."""

    def is_output_only_diff(self, text: str) -> bool:
        """Return ``True`` when *text* reports changes to outputs only."""
        ...  # pragma: no cover
