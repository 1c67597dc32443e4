"""Core layer — pure domain models, argument rules and output policy.

Rules
-----
* No ``print()`` calls.
* No filesystem, subprocess or network I/O.
* No imports from ``cli`` or ``infra``.
* All functions must be fully typed and deterministic.
"""

from tfplan_wrap.core.models import Plan, PlanInvocation, RunResult, State, TerraformSettings
from tfplan_wrap.core.output_classifier import MarkerOutputClassifier, is_output_only_diff
from tfplan_wrap.core.protocols import CommandRunner, OutputClassifier

__all__: list[str] = [
    "CommandRunner",
    "MarkerOutputClassifier",
    "OutputClassifier",
    "Plan",
    "PlanInvocation",
    "RunResult",
    "State",
    "TerraformSettings",
    "is_output_only_diff",
]
