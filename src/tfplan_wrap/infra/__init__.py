"""Infrastructure layer — external system integration.

This layer wraps all interaction with the terraform process and the
filesystem.  Every raw ``OSError`` or ``subprocess`` exception must be
caught here and re-raised as a :class:`~tfplan_wrap.exceptions.TfPlanWrapError`
subclass.

Rules
-----
* No imports from ``cli``.
* No user-facing output (no ``print()``, no Rich rendering).
* Must expose clean, typed interfaces built on the core protocols.
"""

from tfplan_wrap.infra.terraform_cli import TerraformCLI, build_plan_args
from tfplan_wrap.infra.terraform_detector import (
    TerraformVersion,
    read_terraform_version,
    require_terraform,
    resolve_terraform,
)
from tfplan_wrap.infra.terraform_runner import SubprocessCommandRunner

__all__: list[str] = [
    "SubprocessCommandRunner",
    "TerraformCLI",
    "TerraformVersion",
    "build_plan_args",
    "read_terraform_version",
    "require_terraform",
    "resolve_terraform",
]
