from __future__ import annotations
import math, re, datetime as dt
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence

from ..filters import (
    Operator,
    FieldValueKind,
    CONDITION_OPERATORS,
    ORDERING_OPERATORS,
    RANGE_OPERATORS,
    MEMBERSHIP_OPERATORS,
    EMPTINESS_OPERATORS,
    STRING_OPERATORS,
    as_operator,
)

_INVALID = object()
_CURRENCY_RE = re.compile(r"^(\d+(?:\.\d{2})?)\s([A-Z]{3})$")

_EQUALITY_ONLY = frozenset(
    {Operator.EQ, Operator.NE, Operator.IN, Operator.NIN, Operator.EMPTY, Operator.NOT_EMPTY}
)

KIND_OPERATORS: Dict[FieldValueKind, frozenset] = {
    FieldValueKind.STRING: CONDITION_OPERATORS - ORDERING_OPERATORS - RANGE_OPERATORS,
    FieldValueKind.NUMBER: CONDITION_OPERATORS - STRING_OPERATORS,
    FieldValueKind.DATE: CONDITION_OPERATORS - STRING_OPERATORS,
    FieldValueKind.CURRENCY: CONDITION_OPERATORS - STRING_OPERATORS,
    FieldValueKind.BOOLEAN: _EQUALITY_ONLY,
    FieldValueKind.ENUMERATION: _EQUALITY_ONLY,
}


@dataclass
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: Sequence[str]) -> "ValidationResult":
        return cls(valid=not errors, errors=list(errors))


def unsupported_operator_error(kind: FieldValueKind, operator: Operator) -> Optional[str]:
    """
    Return the legality error for using `operator` on a field of `kind`, or None.
    """
    if operator in KIND_OPERATORS[kind]:
        return None
    if kind is FieldValueKind.STRING:
        if operator in RANGE_OPERATORS:
            return "Between operators are not supported for string fields"
        if operator in ORDERING_OPERATORS:
            return "Comparison operators are not supported for string fields"
    return f"Operator {operator.value} is not supported for {kind.value.lower()} fields"


# ---------------------------------------------------------------------------
# Value coercion
# ---------------------------------------------------------------------------

class Money(NamedTuple):
    amount: float
    code: Optional[str]


def _is_blank(value: Any) -> bool:
    return value is None or value == "" or (isinstance(value, (list, tuple)) and not value)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _parse_number(v: Any) -> Any:
    if isinstance(v, bool) or (isinstance(v, Decimal) and v.is_nan()):
        return _INVALID
    if isinstance(v, (int, float, Decimal)):
        f = float(v)
    elif isinstance(v, str):
        try:
            f = float(v.strip())
        except ValueError:
            return _INVALID
    else:
        return _INVALID
    return f if math.isfinite(f) else _INVALID


def _as_utc(value: dt.datetime) -> dt.datetime:
    # naive values are taken to be UTC so they compare with aware ones
    return value if value.tzinfo else value.replace(tzinfo=dt.timezone.utc)


def _parse_date(v: Any) -> Any:
    if isinstance(v, dt.datetime):
        return _as_utc(v)
    if isinstance(v, dt.date):
        return dt.datetime.combine(v, dt.time(), tzinfo=dt.timezone.utc)
    if isinstance(v, bool):
        return _INVALID
    try:
        if isinstance(v, (int, float)):
            if not math.isfinite(v):
                return _INVALID
            # epoch milliseconds
            return dt.datetime.fromtimestamp(v / 1000, tz=dt.timezone.utc)
        if isinstance(v, str):
            s = v.strip()
            if s.endswith(("Z", "z")):
                s = s[:-1] + "+00:00"
            return _as_utc(dt.datetime.fromisoformat(s))
        if isinstance(v, dict):
            # API encodings: {"$__dt__": unix seconds} / {"$__d__": "YYYY-MM-DD"}
            if "$__dt__" in v and _parse_number(v["$__dt__"]) is not _INVALID:
                return dt.datetime.fromtimestamp(float(v["$__dt__"]), tz=dt.timezone.utc)
            if isinstance(v.get("$__d__"), str):
                d = dt.date.fromisoformat(v["$__d__"])
                return dt.datetime.combine(d, dt.time(), tzinfo=dt.timezone.utc)
    except (ValueError, OverflowError, OSError):
        return _INVALID
    return _INVALID


def _parse_currency(v: Any) -> Any:
    if isinstance(v, dict):
        amount = v.get("amount", v.get("value"))
        code = v.get("currencyCode", v.get("currency"))
        if isinstance(amount, bool) or not isinstance(amount, (int, float, Decimal)):
            return _INVALID
        if isinstance(amount, Decimal) and amount.is_nan():
            return _INVALID
        if not (isinstance(code, str) and len(code) == 3 and code.isalpha()):
            return _INVALID
        if not math.isfinite(float(amount)):
            return _INVALID
        return Money(float(amount), code.upper())
    if isinstance(v, str):
        m = _CURRENCY_RE.match(v)
        return Money(float(m.group(1)), m.group(2)) if m else _INVALID
    if isinstance(v, bool) or not isinstance(v, (int, float, Decimal)):
        return _INVALID
    if isinstance(v, Decimal) and v.is_nan():
        return _INVALID
    f = float(v)
    return Money(f, None) if math.isfinite(f) else _INVALID


def _parse_string(v: Any) -> Any:
    return v if isinstance(v, str) else _INVALID


def _parse_boolean(v: Any) -> Any:
    return v if isinstance(v, bool) else _INVALID


def _parse_name(v: Any) -> Any:
    return v if isinstance(v, str) and v.strip() else _INVALID


# ---------------------------------------------------------------------------
# Range ordering
# ---------------------------------------------------------------------------

def _ascending(first: Any, second: Any) -> Optional[str]:
    if first < second:
        return None
    return "Range values are out of order: first value must be less than second value"


def _dates_ascending(first: dt.datetime, second: dt.datetime) -> Optional[str]:
    if first < second:
        return None
    return "Range values are out of order: start date must be before end date"


def _money_ascending(first: Money, second: Money) -> Optional[str]:
    if first.code and second.code and first.code != second.code:
        return "Between values must use the same currency"
    return _ascending(first.amount, second.amount)


def _unordered(first: Any, second: Any) -> Optional[str]:
    return None


# ---------------------------------------------------------------------------
# Generic shape by operator class
# ---------------------------------------------------------------------------

def _check_shape(
    value: Any,
    operator: Operator,
    parse: Callable[[Any], Any],
    noun: str,
    order: Callable[[Any, Any], Optional[str]] = _ascending,
) -> List[str]:
    if operator in EMPTINESS_OPERATORS:
        if not _is_blank(value):
            return [f"{operator.value} operator does not take a value"]
        return []
    if operator in RANGE_OPERATORS:
        if not _is_sequence(value) or len(value) != 2:
            return [f"Between operators require exactly two {noun} values"]
        first, second = parse(value[0]), parse(value[1])
        if first is _INVALID or second is _INVALID:
            return [f"Between values must be valid {noun} values"]
        problem = order(first, second)
        return [problem] if problem else []
    if operator in MEMBERSHIP_OPERATORS:
        if not _is_sequence(value) or not value:
            return [f"IN/NIN operators require a non-empty array of {noun} values"]
        if any(parse(v) is _INVALID for v in value):
            return [f"All values in array must be valid {noun} values"]
        return []
    if parse(value) is _INVALID:
        return [f"Value must be a valid {noun}"]
    return []


def _run(kind: FieldValueKind, value: Any, operator: Any, check: Callable[[Operator], List[str]]) -> ValidationResult:
    operator = as_operator(operator)
    problem = unsupported_operator_error(kind, operator)
    if problem:
        return ValidationResult(valid=False, errors=[problem])
    return ValidationResult.from_errors(check(operator))


# ---------------------------------------------------------------------------
# Validators, one per value kind
# ---------------------------------------------------------------------------

def validate_string_value(value: Any, operator: Any) -> ValidationResult:
    def check(op: Operator) -> List[str]:
        if op in (Operator.MIN_LENGTH, Operator.MAX_LENGTH):
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                return [f"{op.value} value must be a non-negative integer"]
            return []
        return _check_shape(value, op, _parse_string, "string")

    return _run(FieldValueKind.STRING, value, operator, check)


def validate_number_value(value: Any, operator: Any) -> ValidationResult:
    return _run(
        FieldValueKind.NUMBER, value, operator,
        lambda op: _check_shape(value, op, _parse_number, "number"),
    )


def validate_date_value(value: Any, operator: Any) -> ValidationResult:
    return _run(
        FieldValueKind.DATE, value, operator,
        lambda op: _check_shape(value, op, _parse_date, "date", _dates_ascending),
    )


def validate_currency_value(value: Any, operator: Any) -> ValidationResult:
    return _run(
        FieldValueKind.CURRENCY, value, operator,
        lambda op: _check_shape(value, op, _parse_currency, "currency", _money_ascending),
    )


def validate_boolean_value(value: Any, operator: Any) -> ValidationResult:
    return _run(
        FieldValueKind.BOOLEAN, value, operator,
        lambda op: _check_shape(value, op, _parse_boolean, "boolean"),
    )


def _option_values(options: Sequence[Any]) -> List[Any]:
    out = []
    for o in options:
        if isinstance(o, dict):
            out.append(o.get("value"))
        else:
            out.append(getattr(o, "value", o))
    return out


def _is_option(value: Any, allowed: Sequence[Any]) -> bool:
    # True == 1 in Python; a bool only matches a bool option
    return any(
        value == a and isinstance(value, bool) == isinstance(a, bool)
        for a in allowed
    )


def validate_enumeration_value(value: Any, operator: Any, options: Optional[Sequence[Any]] = None) -> ValidationResult:
    """
    Enumeration values must be members of the field's option set.

    `options` may hold objects with a `value` attribute, `{label, value}`
    dicts, or bare values.
    """
    def check(op: Operator) -> List[str]:
        if op in EMPTINESS_OPERATORS:
            return _check_shape(value, op, _parse_string, "option")
        if not options:
            return ["No options defined for this field"]
        allowed = _option_values(options)
        if op in MEMBERSHIP_OPERATORS:
            if not _is_sequence(value) or not value:
                return ["IN/NIN operators require a non-empty array of values"]
            if not all(_is_option(v, allowed) for v in value):
                return ["All values must be from the available options"]
            return []
        if not _is_option(value, allowed):
            return ["Value must be one of the available options"]
        return []

    return _run(FieldValueKind.ENUMERATION, value, operator, check)


def validate_reference_value(value: Any, operator: Any) -> ValidationResult:
    """
    Right-hand sides naming another field or a runtime variable hold names,
    not values of the field's kind.
    """
    op = as_operator(operator)
    return ValidationResult.from_errors(
        _check_shape(value, op, _parse_name, "field or variable name", _unordered)
    )


VALIDATORS: Dict[FieldValueKind, Callable[..., ValidationResult]] = {
    FieldValueKind.STRING: validate_string_value,
    FieldValueKind.NUMBER: validate_number_value,
    FieldValueKind.DATE: validate_date_value,
    FieldValueKind.BOOLEAN: validate_boolean_value,
    FieldValueKind.CURRENCY: validate_currency_value,
    FieldValueKind.ENUMERATION: validate_enumeration_value,
}
