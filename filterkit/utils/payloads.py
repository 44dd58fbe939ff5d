from __future__ import annotations
import copy, json, logging, datetime as dt
from typing import Any, Iterable, List, Optional, Union

from ..codec import Payload, is_well_formed
from ..filters import Operator, RHSType, EMPTINESS_OPERATORS, as_operator

log = logging.getLogger("filters")

_COMMUTATIVE = {Operator.AND.value, Operator.OR.value}
_LOGICAL = {op.value for op in Operator if op.is_logical}


def clone_payload(payload: Optional[Payload]) -> Optional[Payload]:
    """Deep copy; the clone shares no containers with the source."""
    return copy.deepcopy(payload)


# ---------------------------------------------------------------------------
# Equality
# ---------------------------------------------------------------------------

def _value_key(value: Any) -> str:
    # JSON text keeps True distinct from 1 and dict key order irrelevant
    return json.dumps(value, sort_keys=True, default=str)


def _canonical(node: Payload) -> list:
    op = node.get("Operator")
    if op in _LOGICAL:
        kids = [_canonical(c) for c in node.get("Condition") or []]
        if op in _COMMUTATIVE and len(kids) == 1:
            # And(x) and Or(x) select exactly what x selects
            return kids[0]
        if op in _COMMUTATIVE:
            kids.sort(key=_value_key)
        return [op, kids]
    return [
        op,
        node.get("LHSField"),
        _value_key(node.get("RHSValue")),
        node.get("RHSType") or RHSType.CONSTANT.value,
    ]


def payloads_equal(a: Optional[Payload], b: Optional[Payload]) -> bool:
    """
    Structural equality of two payloads.

    Children of And/Or are compared regardless of order, at every depth,
    and an And/Or with a single child equals that child. A leaf without
    RHSType equals the same leaf with RHSType "Constant".
    """
    if a is None or b is None:
        return a is None and b is None
    return _canonical(a) == _canonical(b)


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------

def merge_payloads(
    payloads: Iterable[Union[str, Payload, None]],
    operator: Union[str, Operator] = Operator.AND,
) -> Optional[Payload]:
    """
    Combine filters under one And/Or node.

    Inputs may be dicts or JSON text. Absent or malformed inputs are
    dropped. A single survivor is returned as a clone. Otherwise the
    top-level conditions of each And/Or input are flattened into the result;
    a Not or bare-leaf input is kept whole as one child so its meaning is
    preserved.
    """
    op = as_operator(operator)
    if op not in (Operator.AND, Operator.OR):
        raise ValueError(f"Filters can only be merged with And or Or, not {op.value}")

    kept: List[Payload] = []
    for p in payloads:
        if not is_well_formed(p):
            log.debug("Dropping malformed filter from merge")
            continue
        # strings passed the check above, so they decode
        data = json.loads(p) if isinstance(p, str) else p
        if data is not None:
            kept.append(data)

    if not kept:
        return None
    if len(kept) == 1:
        return clone_payload(kept[0])

    conditions: List[Payload] = []
    for p in kept:
        if p["Operator"] in _COMMUTATIVE:
            conditions.extend(clone_payload(c) for c in p["Condition"])
        else:
            conditions.append(clone_payload(p))
    return {"Operator": op.value, "Condition": conditions}


# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------

def _display_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_display_value(v) for v in value) + "]"
    if isinstance(value, (dt.date, dt.datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        if "amount" in value and "currencyCode" in value:
            return f"{value['amount']} {value['currencyCode']}"
        return json.dumps(value, sort_keys=True, default=str)
    return str(value)


def _render(node: Payload) -> str:
    op = node["Operator"]
    if op not in _LOGICAL:
        field = node.get("LHSField", "")
        value = node.get("RHSValue")
        if op in {o.value for o in EMPTINESS_OPERATORS} and value in (None, ""):
            return f"{field} {op}"
        return f"{field} {op} {_display_value(value)}"

    parts = [_render(c) for c in node.get("Condition") or []]
    if len(parts) == 1:
        return f"NOT ({parts[0]})" if op == Operator.NOT.value else parts[0]
    return "(" + f" {op.upper()} ".join(parts) + ")"


def payload_to_string(payload: Optional[Payload]) -> str:
    """Infix rendering for read-only display, e.g. "(Price GT 10 AND Status EQ active)"."""
    if payload is None:
        return "No filters"
    return _render(payload)
