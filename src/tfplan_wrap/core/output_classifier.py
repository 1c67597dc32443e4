"""Pure classification of human-readable ``terraform plan`` output.

Every check here is a case-sensitive substring test against a fixed
marker, without parsing the plan structure.  The markers come
from terraform's human-readable output, which is not a stable interface:
they may change across terraform versions.  Callers needing something
sturdier can pass their own :class:`~tfplan_wrap.core.protocols.OutputClassifier`.
"""

from __future__ import annotations


OUTPUT_CHANGES: str = "Changes to Outputs:"
"""Header printed when output values would change."""

CHANGES_START: str = "Terraform will perform the following actions:"
"""Header printed before the list of resource changes."""

CHANGES_END: str = "Plan: "
"""Summary line printed after the list of resource changes."""


# ---------------------------------------------------------------------------
# Marker checks
# ---------------------------------------------------------------------------

def has_output_changes(text: str) -> bool:
    """Return ``True`` when *text* contains the output-changes header."""
    return OUTPUT_CHANGES in text


def has_resource_changes(text: str) -> bool:
    """Return ``True`` when *text* contains either resource-change marker."""
    return CHANGES_START in text or CHANGES_END in text


def is_output_only_diff(text: str) -> bool:
    """Return ``True`` when the only reported changes are to outputs."""
    return has_output_changes(text) and not has_resource_changes(text)


# ---------------------------------------------------------------------------
# Default strategy
# ---------------------------------------------------------------------------

class MarkerOutputClassifier:
    """Default :class:`OutputClassifier` backed by the marker checks above."""

    def is_output_only_diff(self, text: str) -> bool:
        return is_output_only_diff(text)
