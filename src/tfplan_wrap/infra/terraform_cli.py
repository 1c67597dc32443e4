"""terraform plan executor.

:class:`TerraformCLI` drives a :class:`~tfplan_wrap.core.protocols.CommandRunner`
through one ``terraform plan`` run:

1. **Build** — validate options and allocate temp state/plan files.
2. **Execute** — run terraform.
3. **Read** — load the plan file, whatever the outcome of the run.
4. **Decide** — return the plan, or re-raise the execution error unless
   the ignore-output-diffs policy applies.

Guarantees
----------
* Every temp file allocated for a run is removed before :meth:`TerraformCLI.plan`
  returns or raises.
* A plan file named by the caller via ``-out=`` is never removed.
* Only :class:`~tfplan_wrap.exceptions.TfPlanWrapError` subclasses escape.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from contextlib import ExitStack
from pathlib import Path

from tfplan_wrap.core.models import Plan, PlanInvocation, RunResult, State, TerraformSettings
from tfplan_wrap.core.output_classifier import MarkerOutputClassifier
from tfplan_wrap.core.plan_args import (
    OUT_PREFIX,
    assemble_plan_args,
    check_state_conflict,
    get_option_value,
    has_prefix_option,
)
from tfplan_wrap.core.protocols import CommandRunner, OutputClassifier
from tfplan_wrap.exceptions import TerraformExecutionError, TfPlanWrapError
from tfplan_wrap.infra.temp_files import read_plan_file, scoped_temp_file
from tfplan_wrap.infra.terraform_runner import SubprocessCommandRunner

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Argument building with temp file allocation
# ---------------------------------------------------------------------------

def build_plan_args(
    stack: ExitStack,
    state: State | None,
    opts: Sequence[str],
) -> PlanInvocation:
    """Prepare the arguments and files for one ``terraform plan`` run.

    Temp files are entered on *stack* as soon as they exist, so closing
    the stack removes them whatever happens afterwards.

    Raises
    ------
    StateOptionConflictError
        When *state* is given and *opts* already holds ``-state=``.  No
        file is created in that case.
    TempFileError
        When a temp file cannot be created or written.
    """
    check_state_conflict(state, opts)

    state_path: Path | None = None
    if state is not None:
        state_path = stack.enter_context(
            scoped_temp_file(state.to_bytes(), prefix="tfstate-"),
        )

    # The plan is always written to a file so it can be returned; reuse
    # the caller's -out= location when there is one.
    if has_prefix_option(opts, OUT_PREFIX):
        plan_path = Path(get_option_value(opts, OUT_PREFIX))
        plan_out: Path | None = None
        owns_plan_file = False
    else:
        plan_path = stack.enter_context(scoped_temp_file(prefix="tfplan-"))
        plan_out = plan_path
        owns_plan_file = True

    args = assemble_plan_args(opts, state_path=state_path, plan_out=plan_out)
    return PlanInvocation(
        args=tuple(args),
        state_path=state_path,
        plan_path=plan_path,
        owns_plan_file=owns_plan_file,
    )


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------

class TerraformCLI:
    """Runs ``terraform plan`` and captures the plan artifact.

    Parameters
    ----------
    runner:
        Any object satisfying the :class:`CommandRunner` protocol.  A
        :class:`SubprocessCommandRunner` built from *settings* is used when
        omitted.
    settings:
        Executable, working directory and initial policy.
    classifier:
        Strategy deciding whether failed-run output is an output-only
        diff.  Defaults to :class:`MarkerOutputClassifier`.
    """

    def __init__(
        self,
        runner: CommandRunner | None = None,
        *,
        settings: TerraformSettings | None = None,
        classifier: OutputClassifier | None = None,
    ) -> None:
        self._settings: TerraformSettings = settings or TerraformSettings()
        self._runner: CommandRunner = (
            runner if runner is not None else SubprocessCommandRunner(self._settings)
        )
        self._classifier: OutputClassifier = classifier or MarkerOutputClassifier()
        self._ignore_output_diffs: bool = self._settings.ignore_output_diffs

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def ignore_output_diffs(self) -> bool:
        return self._ignore_output_diffs

    def set_ignore_output_diffs(self, value: bool) -> None:
        """Treat a failed run that only changes outputs as a success.

        Not safe to call while a :meth:`plan` call is in flight on this
        instance.
        """
        self._ignore_output_diffs = value

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def plan(
        self,
        state: State | None = None,
        *opts: str,
        cancel: threading.Event | None = None,
    ) -> Plan:
        """Compute a plan, optionally against a prior *state*.

        Parameters
        ----------
        state:
            Prior state passed to terraform via a temporary ``-state=``
            file.  Must not be combined with a ``-state=`` option.
        opts:
            Options forwarded verbatim after the synthesized ones.
        cancel:
            Event forwarded to the runner to abort a long run.

        Returns
        -------
        Plan
            The plan file contents (possibly empty).

        Raises
        ------
        StateOptionConflictError
            When *state* and a ``-state=`` option are both given.
        TempFileError
            When a temp file cannot be prepared.
        TerraformExecutionError
            When terraform fails and the failure is not an ignorable
            output-only diff.  The plan read after the run is attached
            as ``exc.plan``.
        """
        with ExitStack() as stack:
            invocation = build_plan_args(stack, state, opts)
            plan_path = self._resolve(invocation.plan_path)
            logger.debug("plan args: %s", list(invocation.args))
            if invocation.state_path is not None:
                logger.debug("prior state staged at %s", invocation.state_path)
            logger.debug(
                "plan file %s (%s)",
                plan_path,
                "temporary" if invocation.owns_plan_file else "kept, caller supplied -out=",
            )

            try:
                self._run(invocation.args, cancel)
            except TerraformExecutionError as exc:
                # With -detailed-exitcode terraform exits 2 on a diff, so a
                # failed run may still have written a usable plan.
                plan = Plan(read_plan_file(plan_path))
                if self._ignore_output_diffs and self._classifier.is_output_only_diff(
                    exc.stdout,
                ):
                    logger.info("ignoring output-only diff (exit code %s)", exc.exit_code)
                    return plan
                exc.plan = plan
                raise

            return Plan(read_plan_file(plan_path))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve(self, path: Path) -> Path:
        """Resolve a relative plan path against terraform's working dir."""
        if path.is_absolute() or self._settings.working_dir is None:
            return path
        return self._settings.working_dir / path

    def _run(
        self,
        args: Sequence[str],
        cancel: threading.Event | None,
    ) -> RunResult:
        """Call the runner and ensure only our exceptions escape."""
        try:
            return self._runner.run(args, cancel=cancel)
        except TfPlanWrapError:
            # Already one of ours, propagate unchanged.
            raise
        except Exception as exc:
            raise TerraformExecutionError(
                f"Unexpected runner error: {exc}",
                command=args,
            ) from exc
