from __future__ import annotations
from typing import Any, List, Sequence

from ..filters import Operator, RHSType, Node, EMPTINESS_OPERATORS, RANGE_OPERATORS, MEMBERSHIP_OPERATORS
from ..registry import FieldTypeDefinition
from ..validation import ValidationResult, unsupported_operator_error, validate_reference_value


def validate_condition(
    field_name: str,
    operator: Operator,
    value: Any,
    rhs_type: RHSType,
    definition: FieldTypeDefinition,
) -> ValidationResult:
    """
    Validate one leaf against its field definition.

    Legality is checked before the value: the kind's operator set first,
    then the field's own allowed set. Either failure short-circuits.
    """
    if not field_name:
        return ValidationResult(valid=False, errors=["Field is required for condition operators"])

    problem = unsupported_operator_error(definition.kind, operator)
    if problem:
        return ValidationResult(valid=False, errors=[problem])
    if operator not in definition.allowed_operators:
        return ValidationResult(
            valid=False,
            errors=[f"Operator {operator.value} is not allowed for field {field_name}"],
        )

    single = operator not in EMPTINESS_OPERATORS | RANGE_OPERATORS | MEMBERSHIP_OPERATORS
    if single and (value is None or value == ""):
        return ValidationResult(valid=False, errors=["Value is required for this operator"])

    if rhs_type is not RHSType.CONSTANT:
        return validate_reference_value(value, operator)
    return definition.validate(value, operator)


def group_errors(operator: Operator, children: Sequence[Node]) -> List[str]:
    """Structural errors of a logical group, ignoring its children's own validity."""
    if not children:
        return ["Group requires at least one condition"]
    if operator is Operator.NOT and len(children) > 1:
        return ["Not operator can only have one child condition"]
    return []


def aggregate_errors(own: Sequence[str], children: Sequence[Node]) -> List[str]:
    errors = list(own)
    for i, child in enumerate(children, start=1):
        errors.extend(f"Child {i}: {e}" for e in child.errors)
    return errors
