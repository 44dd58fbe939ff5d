"""
Filter model for the filterkit engine.

This module provides operators, value kinds, the condition/group tree nodes,
and the JSON schema of the wire payload.
"""

from .models import (
    Operator,
    RHSType,
    FieldValueKind,
    LOGICAL_OPERATORS,
    CONDITION_OPERATORS,
    ORDERING_OPERATORS,
    RANGE_OPERATORS,
    MEMBERSHIP_OPERATORS,
    EMPTINESS_OPERATORS,
    STRING_OPERATORS,
    Condition,
    Group,
    Node,
    FILTER_SCHEMA,
    as_operator,
    as_rhs_type,
)

__all__ = [
    "Operator",
    "RHSType",
    "FieldValueKind",
    "LOGICAL_OPERATORS",
    "CONDITION_OPERATORS",
    "ORDERING_OPERATORS",
    "RANGE_OPERATORS",
    "MEMBERSHIP_OPERATORS",
    "EMPTINESS_OPERATORS",
    "STRING_OPERATORS",
    "Condition",
    "Group",
    "Node",
    "FILTER_SCHEMA",
    "as_operator",
    "as_rhs_type",
]
