"""Infrastructure: locating the terraform executable and its version.

The runner starts terraform with ``cwd=working_dir``, so a relative
executable such as ``./bin/terraform`` means a file below the working
directory.  :func:`resolve_terraform` applies the same rule and returns
an absolute path; callers hand that path to the runner so the check and
the launch can never look at different files.
"""

from __future__ import annotations

import json
import logging
import os
import re
import shutil
from dataclasses import dataclass
from pathlib import Path

from tfplan_wrap.core.models import TerraformSettings
from tfplan_wrap.core.protocols import CommandRunner
from tfplan_wrap.exceptions import TerraformNotFoundError

logger = logging.getLogger(__name__)

INSTALL_DOCS_URL: str = "https://developer.hashicorp.com/terraform/install"

_TEXT_VERSION = re.compile(r"Terraform v(\S+)")


@dataclass(frozen=True, slots=True)
class TerraformVersion:
    """What ``terraform version`` reported."""

    version: str
    platform: str | None = None
    outdated: bool = False
    """``True`` when terraform itself says a newer release exists."""


# ---------------------------------------------------------------------------
# Executable resolution
# ---------------------------------------------------------------------------

def _has_directory_part(exec_path: str) -> bool:
    return os.sep in exec_path or (os.altsep is not None and os.altsep in exec_path)


def resolve_terraform(settings: TerraformSettings) -> Path | None:
    """Return the absolute path terraform will be launched from.

    Bare names are looked up on ``PATH``.  Relative paths with a directory
    part are taken relative to ``settings.working_dir`` when one is set.
    Returns ``None`` when no executable file exists there.
    """
    exec_path = settings.exec_path
    if (
        settings.working_dir is not None
        and _has_directory_part(exec_path)
        and not Path(exec_path).is_absolute()
    ):
        exec_path = str(settings.working_dir / exec_path)

    found = shutil.which(exec_path)
    if found is None:
        logger.debug("no executable at %s", exec_path)
        return None
    return Path(found).absolute()


def require_terraform(settings: TerraformSettings) -> Path:
    """Resolve terraform or raise :class:`TerraformNotFoundError`."""
    path = resolve_terraform(settings)
    if path is None:
        where = (
            f" (relative to {settings.working_dir})"
            if settings.working_dir is not None and _has_directory_part(settings.exec_path)
            else ""
        )
        raise TerraformNotFoundError(
            f"{settings.exec_path}{where} is not installed or not executable.",
            hint=f"Install terraform from {INSTALL_DOCS_URL}, or point "
            "--terraform / TFPLAN_WRAP_TERRAFORM at the binary.",
        )
    return path


# ---------------------------------------------------------------------------
# Version
# ---------------------------------------------------------------------------

def read_terraform_version(runner: CommandRunner) -> TerraformVersion:
    """Ask terraform for its version through *runner*.

    ``version -json`` is preferred; releases that predate it print the
    usual text banner instead, which is parsed as a fallback.  Execution
    errors from the runner propagate.
    """
    result = runner.run(["version", "-json"])
    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError:
        return TerraformVersion(version=_parse_text_version(result.stdout))
    if not isinstance(data, dict):
        return TerraformVersion(version=_parse_text_version(result.stdout))

    return TerraformVersion(
        version=str(data.get("terraform_version") or "unknown"),
        platform=data.get("platform"),
        outdated=bool(data.get("terraform_outdated", False)),
    )


def _parse_text_version(text: str) -> str:
    match = _TEXT_VERSION.search(text)
    if match is not None:
        return match.group(1)
    lines = text.strip().splitlines()
    return lines[0] if lines else "unknown"
