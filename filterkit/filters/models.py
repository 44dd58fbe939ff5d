# filterkit/filters/models.py
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Union

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Operator(str, Enum):
    EQ = "EQ"
    NE = "NE"
    GT = "GT"
    GTE = "GTE"
    LT = "LT"
    LTE = "LTE"
    BETWEEN = "Between"
    NOT_BETWEEN = "NotBetween"
    IN = "IN"
    NIN = "NIN"
    CONTAINS = "Contains"
    NOT_CONTAINS = "NotContains"
    MIN_LENGTH = "MinLength"
    MAX_LENGTH = "MaxLength"
    EMPTY = "Empty"
    NOT_EMPTY = "NotEmpty"
    AND = "And"
    OR = "Or"
    NOT = "Not"

    @property
    def is_logical(self) -> bool:
        return self in LOGICAL_OPERATORS


LOGICAL_OPERATORS = frozenset({Operator.AND, Operator.OR, Operator.NOT})
CONDITION_OPERATORS = frozenset(op for op in Operator if op not in LOGICAL_OPERATORS)

ORDERING_OPERATORS = frozenset({Operator.GT, Operator.GTE, Operator.LT, Operator.LTE})
RANGE_OPERATORS = frozenset({Operator.BETWEEN, Operator.NOT_BETWEEN})
MEMBERSHIP_OPERATORS = frozenset({Operator.IN, Operator.NIN})
EMPTINESS_OPERATORS = frozenset({Operator.EMPTY, Operator.NOT_EMPTY})
STRING_OPERATORS = frozenset(
    {Operator.CONTAINS, Operator.NOT_CONTAINS, Operator.MIN_LENGTH, Operator.MAX_LENGTH}
)


class RHSType(str, Enum):
    CONSTANT = "Constant"
    FIELD_REFERENCE = "FieldReference"
    VARIABLE = "Variable"


class FieldValueKind(str, Enum):
    STRING = "String"
    NUMBER = "Number"
    DATE = "Date"
    BOOLEAN = "Boolean"
    CURRENCY = "Currency"
    ENUMERATION = "Enumeration"


def as_operator(value: Union[str, Operator]) -> Operator:
    """
    Coerce a wire spelling ("EQ", "Between", "And") to an Operator.
    """
    if isinstance(value, Operator):
        return value
    try:
        return Operator(value)
    except ValueError:
        raise ValueError(f"Unknown operator: {value!r}") from None


def as_rhs_type(value: Union[str, RHSType, None]) -> RHSType:
    if value is None:
        return RHSType.CONSTANT
    if isinstance(value, RHSType):
        return value
    try:
        return RHSType(value)
    except ValueError:
        raise ValueError(f"Unknown RHSType: {value!r}") from None


# ---------------------------------------------------------------------------
# Tree nodes
# ---------------------------------------------------------------------------

@dataclass
class Condition:
    """
    Leaf of a filter tree: a field, a comparison operator, and a right-hand side.
    """
    id: str
    operator: Operator
    field: str
    value: Any = None
    rhs_type: RHSType = RHSType.CONSTANT
    is_valid: bool = False
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Operator": self.operator.value,
            "LHSField": self.field,
            "RHSValue": self.value,
            "RHSType": self.rhs_type.value,
        }


@dataclass
class Group:
    """
    Logical node combining child nodes with And, Or or Not.

    Children are held as node ids; the owning builder resolves them.
    """
    id: str
    operator: Operator = Operator.AND
    children: List[str] = field(default_factory=list)
    is_valid: bool = False
    errors: List[str] = field(default_factory=list)


Node = Union[Condition, Group]


# ---------------------------------------------------------------------------
# JSON Schema for the wire payload
# ---------------------------------------------------------------------------

FILTER_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "$id": "urn:filterkit:filter.schema.json",
    "title": "Filter",
    "$defs": {
        "Node": {
            "type": "object",
            "required": ["Operator"],
            "properties": {"Operator": {"type": "string"}},
            "if": {
                "properties": {"Operator": {"enum": [op.value for op in Operator if op.is_logical]}},
            },
            "then": {"$ref": "#/$defs/LogicalNode"},
            "else": {"$ref": "#/$defs/LeafNode"},
        },
        "LogicalNode": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "Operator": {"enum": ["And", "Or", "Not"]},
                "Condition": {
                    "type": "array",
                    "minItems": 1,
                    "items": {"$ref": "#/$defs/Node"},
                },
            },
            "required": ["Operator", "Condition"],
            "allOf": [
                # Not negates exactly one child
                {
                    "if": {"properties": {"Operator": {"const": "Not"}}},
                    "then": {"properties": {"Condition": {"maxItems": 1}}},
                },
            ],
        },
        "LeafNode": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "Operator": {"enum": sorted(op.value for op in CONDITION_OPERATORS)},
                "LHSField": {"type": "string"},
                "RHSValue": {},
                "RHSType": {"enum": [t.value for t in RHSType]},
            },
            "required": ["Operator", "LHSField", "RHSValue"],
        },
    },
    "$ref": "#/$defs/Node",
}


# ---------------------------------------------------------------------------
# Public exports
# ---------------------------------------------------------------------------

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
