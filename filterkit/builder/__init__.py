"""
Builder for filter trees.

This module provides the mutable, self-validating filter tree used by an
editing surface.
"""

from .checks import validate_condition
from .ids import IdProvider, SequentialIdProvider, UuidIdProvider
from .tree import FilterBuilder, NodeError, TreeValidation

__all__ = [
    "FilterBuilder",
    "NodeError",
    "TreeValidation",
    "IdProvider",
    "SequentialIdProvider",
    "UuidIdProvider",
    "validate_condition",
]
