"""Infrastructure: scoped temporary files for state and plan artifacts.

terraform exchanges state and plan data through files, so every plan run
needs short-lived files in the system temp directory.  Each file is
handed out through a context manager which removes it on every exit
path, including exceptions raised after creation.

Rules
-----
* Files are created with :func:`tempfile.mkstemp` — unique paths, so
  concurrent runs never collide.
* The handle is always closed before the path is handed out.
* Removing a path that no longer exists is not an error.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from tfplan_wrap.exceptions import TempFileError

logger = logging.getLogger(__name__)

DEFAULT_PREFIX: str = "tfplan-wrap-"


def create_temp_file(content: bytes | None = None, *, prefix: str = DEFAULT_PREFIX) -> Path:
    """Create a temp file, optionally write *content*, and close it.

    Prefer :func:`scoped_temp_file`; a path returned from here must be
    released by the caller.

    Raises
    ------
    TempFileError
        When the file cannot be created, written or closed.  A partially
        written file is removed before raising.
    """
    try:
        fd, name = tempfile.mkstemp(prefix=prefix)
    except OSError as exc:
        raise TempFileError(f"Failed to create temporary file: {exc}") from exc

    path = Path(name)
    try:
        with os.fdopen(fd, "wb") as handle:
            if content is not None:
                handle.write(content)
    except OSError as exc:
        release_temp_file(path)
        raise TempFileError(
            f"Failed to write temporary file {path}: {exc}",
            hint="Check free space and permissions of the temp directory.",
        ) from exc

    logger.debug("created temporary file %s (%d bytes)", path, len(content or b""))
    return path


def release_temp_file(path: Path) -> None:
    """Remove *path*; a missing file is silently accepted."""
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        # Cleanup must not mask the outcome of the run.
        logger.warning("could not remove temporary file %s: %s", path, exc)
        return
    logger.debug("removed temporary file %s", path)


@contextmanager
def scoped_temp_file(
    content: bytes | None = None,
    *,
    prefix: str = DEFAULT_PREFIX,
) -> Iterator[Path]:
    """Yield the path of a fresh temp file and remove it on exit.

    Usage::

        with scoped_temp_file(state.to_bytes()) as state_path:
            runner.run(["plan", f"-state={state_path}"])
    """
    path = create_temp_file(content, prefix=prefix)
    try:
        yield path
    finally:
        release_temp_file(path)


def read_plan_file(path: Path) -> bytes:
    """Read *path* best-effort.

    Any read failure yields ``b""``: the outcome of the terraform run, not
    the readability of its plan file, decides success.
    """
    try:
        return path.read_bytes()
    except OSError as exc:
        logger.debug("could not read plan file %s: %s", path, exc)
        return b""
