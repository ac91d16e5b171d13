"""
Allocation-related enumerations.
"""

import enum


class AllocationFailure(str, enum.Enum):
    """Per-item failure reasons in a batch allocation."""
    NOT_FOUND = "NOT_FOUND"
    ALREADY_ALLOCATED = "ALREADY_ALLOCATED"
