"""Pure argument rules for ``terraform plan``.

Nothing here touches the filesystem: temporary files are allocated by
the executor, which then feeds the resulting paths back into
:func:`assemble_plan_args`.

Reserved prefixes
-----------------
* ``-state=`` — must not be combined with an explicit prior state.
* ``-out=`` — when present, the caller owns the plan file location.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from tfplan_wrap.core.models import State
from tfplan_wrap.exceptions import StateOptionConflictError

PLAN_SUBCOMMAND: str = "plan"
STATE_PREFIX: str = "-state="
OUT_PREFIX: str = "-out="


# ---------------------------------------------------------------------------
# Option lookup
# ---------------------------------------------------------------------------

def has_prefix_option(opts: Sequence[str], prefix: str) -> bool:
    """Return ``True`` if any option in *opts* starts with *prefix*."""
    return any(opt.startswith(prefix) for opt in opts)


def get_option_value(opts: Sequence[str], prefix: str) -> str:
    """Return the value of the last option starting with *prefix*.

    terraform applies repeated flags left to right, so the last one
    wins.  Returns an empty string when no option matches.
    """
    value = ""
    for opt in opts:
        if opt.startswith(prefix):
            value = opt[len(prefix):]
    return value


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def check_state_conflict(state: State | None, opts: Sequence[str]) -> None:
    """Reject a prior *state* combined with a ``-state=`` option.

    Raises
    ------
    StateOptionConflictError
        When both mechanisms for specifying state are used at once.
    """
    if state is not None and has_prefix_option(opts, STATE_PREFIX):
        raise StateOptionConflictError(
            "The state argument and the -state= option cannot be set at the "
            f"same time: opts={list(opts)}",
            hint="Pass the prior state either as a State object or as a "
            "-state= option, not both.",
        )


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------

def assemble_plan_args(
    opts: Sequence[str],
    *,
    state_path: Path | str | None = None,
    plan_out: Path | str | None = None,
) -> list[str]:
    """Build ``[plan, -state=?, -out=?, *opts]``.

    *plan_out* is only given when the plan file was synthesized; a
    caller-supplied ``-out=`` stays where it is inside *opts*.
    """
    args = [PLAN_SUBCOMMAND]
    if state_path is not None:
        args.append(f"{STATE_PREFIX}{state_path}")
    if plan_out is not None:
        args.append(f"{OUT_PREFIX}{plan_out}")
    args.extend(opts)
    return args
