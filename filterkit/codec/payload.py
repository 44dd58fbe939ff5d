from __future__ import annotations
import copy, json, logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from jsonschema import Draft202012Validator
from jsonschema.exceptions import best_match

from ..builder import FilterBuilder, IdProvider, NodeError
from ..filters import FILTER_SCHEMA, Condition, Node, Operator, as_operator
from ..registry import FieldTypeRegistry

log = logging.getLogger("filters")

_VALIDATOR = Draft202012Validator(FILTER_SCHEMA)

Payload = Dict[str, Any]


class PayloadError(ValueError):
    """A filter payload is structurally malformed and cannot be loaded."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(f"{message} (at {path})" if path else message)
        self.path = path


@dataclass
class PayloadResult:
    payload: Optional[Payload]
    has_invalid_nodes: bool
    errors: List[NodeError] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Tree -> payload
# ---------------------------------------------------------------------------

def _emit(builder: FilterBuilder, node: Node) -> Payload:
    # only called for valid nodes, so every descendant is valid too
    if isinstance(node, Condition):
        return node.to_dict()
    return {
        "Operator": node.operator.value,
        "Condition": [_emit(builder, c) for c in builder.children(node.id)],
    }


def _emit_group(builder: FilterBuilder, operator: Operator, children: Sequence[Node]) -> Optional[Payload]:
    if operator is Operator.NOT and len(children) != 1:
        log.debug("Refusing to emit Not group with %d children", len(children))
        return None
    emitted = []
    for c in children:
        if not c.is_valid:
            log.debug("Leaving invalid node %s out of payload", c.id)
            continue
        emitted.append(_emit(builder, c))
    if not emitted:
        return None
    return {"Operator": operator.value, "Condition": emitted}


def to_payload(builder: FilterBuilder) -> Optional[Payload]:
    """
    Serialize the valid part of a tree.

    An invalid node, leaf or group, is left out whole: a group is never
    emitted with some of its children missing, since that would change
    what it selects. Returns None when no valid top-level node remains.
    """
    return _emit_group(builder, builder.root_operator, builder.roots)


def build_payload(builder: FilterBuilder) -> PayloadResult:
    """Serialize a tree and report whether anything was left out."""
    validation = builder.validate_all()
    return PayloadResult(
        payload=to_payload(builder),
        has_invalid_nodes=not validation.valid,
        errors=validation.errors,
    )


# ---------------------------------------------------------------------------
# Payload -> tree
# ---------------------------------------------------------------------------

def _decode(payload: Union[str, Payload, None]) -> Any:
    return json.loads(payload) if isinstance(payload, str) else payload


def is_well_formed(payload: Union[str, Payload, None]) -> bool:
    """
    Structural check only; field types and values are not validated.

    An absent filter (None) is well formed: it means "no filtering".
    """
    try:
        data = _decode(payload)
    except json.JSONDecodeError:
        return False
    return data is None or _VALIDATOR.is_valid(data)


def check_payload(data: Any) -> None:
    error = best_match(_VALIDATOR.iter_errors(data))
    if error is not None:
        raise PayloadError(f"Malformed filter payload: {error.message}", error.json_path)


def _load(builder: FilterBuilder, item: Payload, parent_id: Optional[str]) -> None:
    op = as_operator(item["Operator"])
    if op.is_logical:
        group_id = builder.add_group(op, parent_id)
        for child in item["Condition"]:
            _load(builder, child, group_id)
    else:
        builder.add_condition(
            item["LHSField"],
            op,
            copy.deepcopy(item["RHSValue"]),
            item.get("RHSType"),
            parent_id,
        )


def from_payload(
    payload: Union[str, Payload, None],
    registry: Optional[FieldTypeRegistry] = None,
    *,
    id_provider: Optional[IdProvider] = None,
) -> FilterBuilder:
    """
    Rebuild an editable tree from a payload (dict or JSON string).

    Every node gets a fresh id and is validated against `registry`, so a
    payload written against another schema may come back partly invalid.
    Raises PayloadError when the payload is structurally malformed.
    """
    try:
        data = _decode(payload)
    except json.JSONDecodeError as e:
        raise PayloadError(f"Filter payload is not valid JSON: {e}") from e

    builder = FilterBuilder(registry, id_provider=id_provider)
    if data is None:
        return builder
    check_payload(data)

    op = as_operator(data["Operator"])
    if op.is_logical:
        builder.set_root_operator(op)
        for child in data["Condition"]:
            _load(builder, child, None)
    else:
        _load(builder, data, None)
    builder.mark_initial()
    log.debug("Loaded filter payload with %d nodes", builder.node_count())
    return builder
