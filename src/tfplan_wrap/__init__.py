"""tfplan-wrap — terraform plan orchestration.

Drives the ``terraform`` CLI to compute a plan and capture the plan
artifact, with a strict layered architecture.
"""

from tfplan_wrap.version import __version__

__all__: list[str] = ["__version__"]
