"""Allow ``python -m tfplan_wrap`` invocation.

This module simply delegates to the CLI error-boundary entry point so
that ``python -m tfplan_wrap`` behaves identically to the
``tfplan-wrap`` console script.
"""

from __future__ import annotations

from tfplan_wrap.cli.app import cli

if __name__ == "__main__":
    cli()
