from __future__ import annotations
import copy, logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

from ..filters import (
    Operator,
    RHSType,
    Condition,
    Group,
    Node,
    as_operator,
    as_rhs_type,
)
from ..registry import FALLBACK_DEFINITION, FieldTypeDefinition, FieldTypeRegistry
from ..validation import ValidationResult
from .checks import aggregate_errors, group_errors, validate_condition
from .ids import IdProvider, UuidIdProvider

log = logging.getLogger("filters")

_CONDITION_FIELDS = ("field", "operator", "value", "rhs_type")


@dataclass
class NodeError:
    node_id: Optional[str]
    field: str
    message: str


@dataclass
class TreeValidation:
    valid: bool
    errors: List[NodeError] = field(default_factory=list)


def _condition_operator(operator: Union[str, Operator]) -> Operator:
    op = as_operator(operator)
    if op.is_logical:
        raise ValueError(f"{op.value} is a logical operator; use add_group for groups")
    return op


def _group_operator(operator: Union[str, Operator]) -> Operator:
    op = as_operator(operator)
    if not op.is_logical:
        raise ValueError(f"{op.value} is not a logical operator (expected And, Or or Not)")
    return op


class FilterBuilder:
    """
    Incrementally built filter tree.

    Nodes live in a flat map keyed by id; groups reference their children by
    id and every node records its parent. The top level is an ordered list of
    nodes combined by `root_operator`. Every mutation revalidates the touched
    node and then recomputes validity up its ancestor chain.
    """

    def __init__(
        self,
        registry: Optional[FieldTypeRegistry] = None,
        *,
        root_operator: Union[str, Operator] = Operator.AND,
        id_provider: Optional[IdProvider] = None,
    ):
        self.registry = registry
        self._ids = id_provider or UuidIdProvider()
        self._nodes: Dict[str, Node] = {}
        self._parents: Dict[str, Optional[str]] = {}
        self._roots: List[str] = []
        self._root_operator = _group_operator(root_operator)
        self._initial = self._snapshot()

    # ---- Read accessors --------------------------------------------------

    @property
    def root_operator(self) -> Operator:
        return self._root_operator

    @property
    def roots(self) -> List[Node]:
        return [copy.deepcopy(self._nodes[i]) for i in self._roots]

    @property
    def is_valid(self) -> bool:
        return not self._root_errors() and all(self._nodes[i].is_valid for i in self._roots)

    def get_node(self, node_id: str) -> Optional[Node]:
        """Return a copy of the node, or None when the id is unknown."""
        node = self._nodes.get(node_id)
        return copy.deepcopy(node) if node is not None else None

    def children(self, node_id: str) -> List[Node]:
        node = self._require(node_id)
        if not isinstance(node, Group):
            return []
        return [copy.deepcopy(self._nodes[c]) for c in node.children]

    def parent(self, node_id: str) -> Optional[Node]:
        self._require(node_id)
        parent_id = self._parents[node_id]
        return self.get_node(parent_id) if parent_id is not None else None

    def nodes(self) -> Iterator[Node]:
        """Depth-first, in child order."""
        stack = list(reversed(self._roots))
        while stack:
            node = self._nodes[stack.pop()]
            yield copy.deepcopy(node)
            if isinstance(node, Group):
                stack.extend(reversed(node.children))

    def has_nodes(self) -> bool:
        return bool(self._roots)

    def node_count(self) -> int:
        return len(self._nodes)

    def leaf_count(self) -> int:
        return sum(1 for n in self._nodes.values() if isinstance(n, Condition))

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    # ---- Mutation --------------------------------------------------------

    def add_condition(
        self,
        field: str,
        operator: Union[str, Operator],
        value: Any = None,
        rhs_type: Union[str, RHSType, None] = RHSType.CONSTANT,
        parent_id: Optional[str] = None,
    ) -> str:
        node = Condition(
            id=self._new_id(),
            operator=_condition_operator(operator),
            field=field,
            value=value,
            rhs_type=as_rhs_type(rhs_type),
        )
        self._attach(node, parent_id)
        self._validate_leaf(node)
        self._propagate(parent_id)
        log.debug("Added condition %s: %s %s", node.id, field, node.operator.value)
        return node.id

    def add_group(self, operator: Union[str, Operator], parent_id: Optional[str] = None) -> str:
        node = Group(id=self._new_id(), operator=_group_operator(operator))
        self._attach(node, parent_id)
        self._refresh_group(node)
        self._propagate(parent_id)
        log.debug("Added %s group %s", node.operator.value, node.id)
        return node.id

    def update_condition(self, node_id: str, **changes: Any) -> bool:
        """
        Merge `changes` (any of field, operator, value, rhs_type) into a leaf.

        Returns False when the id is unknown.
        """
        unknown = set(changes) - set(_CONDITION_FIELDS)
        if unknown:
            raise TypeError(f"Unknown condition attributes: {sorted(unknown)}")
        node = self._nodes.get(node_id)
        if node is None:
            return False
        if not isinstance(node, Condition):
            raise ValueError(f"Node {node_id} is a group; use update_group_operator")
        # coerce everything before touching the node so a bad change leaves it as it was
        operator = _condition_operator(changes["operator"]) if "operator" in changes else node.operator
        rhs_type = as_rhs_type(changes["rhs_type"]) if "rhs_type" in changes else node.rhs_type
        node.operator, node.rhs_type = operator, rhs_type
        node.field = changes.get("field", node.field)
        node.value = changes.get("value", node.value)
        self._validate_leaf(node)
        self._propagate(self._parents[node_id])
        log.debug("Updated condition %s (valid=%s)", node_id, node.is_valid)
        return True

    def replace_condition(
        self,
        node_id: str,
        field: str,
        operator: Union[str, Operator],
        value: Any = None,
        rhs_type: Union[str, RHSType, None] = RHSType.CONSTANT,
    ) -> bool:
        return self.update_condition(
            node_id, field=field, operator=operator, value=value, rhs_type=rhs_type
        )

    def update_group_operator(self, node_id: str, operator: Union[str, Operator]) -> bool:
        node = self._nodes.get(node_id)
        if node is None:
            return False
        if not isinstance(node, Group):
            raise ValueError(f"Node {node_id} is a condition; use update_condition")
        node.operator = _group_operator(operator)
        self._refresh_group(node)
        self._propagate(self._parents[node_id])
        return True

    def remove_node(self, node_id: str) -> bool:
        """Remove a node and, for a group, its whole subtree."""
        if node_id not in self._nodes:
            return False
        parent_id = self._detach(node_id)
        for nid in self._subtree_ids(node_id):
            del self._nodes[nid]
            del self._parents[nid]
        self._propagate(parent_id)
        log.debug("Removed node %s", node_id)
        return True

    def move_node(self, node_id: str, parent_id: Optional[str] = None, index: Optional[int] = None) -> bool:
        """
        Move a node (with its subtree) under `parent_id`, or to the top level
        when `parent_id` is None, at `index` (appended when omitted).
        """
        if node_id not in self._nodes:
            return False
        if parent_id is not None:
            target = self._require(parent_id)
            if not isinstance(target, Group):
                raise ValueError(f"Node {parent_id} is a condition and cannot hold children")
            ancestor: Optional[str] = parent_id
            while ancestor is not None:
                if ancestor == node_id:
                    raise ValueError(f"Cannot move node {node_id} into its own subtree")
                ancestor = self._parents[ancestor]
        old_parent = self._detach(node_id)
        self._attach(self._nodes[node_id], parent_id, index)
        self._propagate(old_parent)
        self._propagate(parent_id)
        return True

    def set_root_operator(self, operator: Union[str, Operator]) -> None:
        self._root_operator = _group_operator(operator)

    def clear(self) -> None:
        self._nodes.clear()
        self._parents.clear()
        self._roots.clear()

    def mark_initial(self) -> None:
        """Make the current tree the state `reset()` returns to."""
        self._initial = self._snapshot()

    def reset(self) -> None:
        nodes, parents, roots, root_operator = copy.deepcopy(self._initial)
        self._nodes, self._parents, self._roots = nodes, parents, roots
        self._root_operator = root_operator

    # ---- Saved state -----------------------------------------------------

    def export_state(self) -> Dict[str, Any]:
        """
        The whole editing state as plain data, invalid nodes included.

        `to_payload` drops invalid nodes; this does not, so a half-finished
        filter can be saved and later restored with `import_state`.
        """
        return {
            "root_operator": self._root_operator.value,
            "nodes": [self._export(i) for i in self._roots],
        }

    def import_state(self, state: Mapping[str, Any]) -> None:
        """
        Replace the tree with an exported state and revalidate every node.

        Node ids are kept; a node without one gets a fresh id. On a bad
        entry, ValueError is raised and the tree is left unchanged.
        """
        saved = (self._nodes, self._parents, self._roots, self._root_operator)
        self._nodes, self._parents, self._roots = {}, {}, []
        try:
            self._root_operator = _group_operator(state.get("root_operator", Operator.AND))
            for item in state.get("nodes") or []:
                self._import(item, None)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            self._nodes, self._parents, self._roots, self._root_operator = saved
            raise ValueError(f"Bad filter state: {e}") from e
        for root_id in self._roots:
            self._revalidate_subtree(root_id)
        log.debug("Imported filter state with %d nodes", len(self._nodes))

    # ---- Validation ------------------------------------------------------

    def validate_node(self, node_id: str) -> ValidationResult:
        node = self._require(node_id)
        self._revalidate_subtree(node_id)
        self._propagate(self._parents[node_id])
        return ValidationResult(valid=node.is_valid, errors=list(node.errors))

    def validate_all(self) -> TreeValidation:
        """
        Revalidate every node and list each node's own errors.

        Group entries carry only structural problems of the group itself;
        their children report separately.
        """
        for root_id in self._roots:
            self._revalidate_subtree(root_id)
        errors = [NodeError(node_id=None, field="", message=m) for m in self._root_errors()]
        for node in self._walk():
            if isinstance(node, Condition):
                errors.extend(NodeError(node.id, node.field, m) for m in node.errors)
            else:
                own = group_errors(node.operator, [self._nodes[c] for c in node.children])
                errors.extend(NodeError(node.id, "", m) for m in own)
        return TreeValidation(valid=not errors, errors=errors)

    # ---- Payload ---------------------------------------------------------

    def to_payload(self) -> Optional[Dict[str, Any]]:
        from ..codec import to_payload

        return to_payload(self)

    def build_payload(self):
        from ..codec import build_payload

        return build_payload(self)

    # ---- Internals -------------------------------------------------------

    def _snapshot(self):
        return copy.deepcopy((self._nodes, self._parents, self._roots, self._root_operator))

    def _new_id(self) -> str:
        # imported states may already hold ids the provider would hand out
        node_id = self._ids.new_id()
        while node_id in self._nodes:
            node_id = self._ids.new_id()
        return node_id

    def _export(self, node_id: str) -> Dict[str, Any]:
        node = self._nodes[node_id]
        if isinstance(node, Group):
            return {
                "id": node.id,
                "operator": node.operator.value,
                "children": [self._export(c) for c in node.children],
            }
        return {
            "id": node.id,
            "operator": node.operator.value,
            "field": node.field,
            "value": copy.deepcopy(node.value),
            "rhs_type": node.rhs_type.value,
        }

    def _import(self, item: Mapping[str, Any], parent_id: Optional[str]) -> None:
        node_id = item.get("id") or self._new_id()
        if node_id in self._nodes:
            raise ValueError(f"Duplicate node id: {node_id}")
        op = as_operator(item["operator"])
        if op.is_logical:
            self._attach(Group(id=node_id, operator=op), parent_id)
            for child in item.get("children") or []:
                self._import(child, node_id)
        else:
            node = Condition(
                id=node_id,
                operator=op,
                field=item.get("field") or "",
                value=copy.deepcopy(item.get("value")),
                rhs_type=as_rhs_type(item.get("rhs_type")),
            )
            self._attach(node, parent_id)

    def _require(self, node_id: str) -> Node:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise KeyError(f"Unknown node: {node_id}") from None

    def _definition(self, field_name: str) -> FieldTypeDefinition:
        definition = self.registry.lookup(field_name) if self.registry is not None else None
        if definition is None:
            log.debug("No definition for field %r; using string defaults", field_name)
            return FALLBACK_DEFINITION
        return definition

    def _attach(self, node: Node, parent_id: Optional[str], index: Optional[int] = None) -> None:
        if parent_id is None:
            siblings = self._roots
        else:
            parent = self._require(parent_id)
            if not isinstance(parent, Group):
                raise ValueError(f"Node {parent_id} is a condition and cannot hold children")
            siblings = parent.children
        if index is None:
            siblings.append(node.id)
        else:
            siblings.insert(index, node.id)
        self._nodes[node.id] = node
        self._parents[node.id] = parent_id

    def _detach(self, node_id: str) -> Optional[str]:
        parent_id = self._parents[node_id]
        if parent_id is None:
            self._roots.remove(node_id)
        else:
            self._nodes[parent_id].children.remove(node_id)
        return parent_id

    def _subtree_ids(self, node_id: str) -> List[str]:
        out, stack = [], [node_id]
        while stack:
            nid = stack.pop()
            out.append(nid)
            node = self._nodes[nid]
            if isinstance(node, Group):
                stack.extend(reversed(node.children))
        return out

    def _walk(self) -> Iterator[Node]:
        for root_id in self._roots:
            for nid in self._subtree_ids(root_id):
                yield self._nodes[nid]

    def _validate_leaf(self, node: Condition) -> None:
        result = validate_condition(
            node.field, node.operator, node.value, node.rhs_type, self._definition(node.field)
        )
        node.is_valid, node.errors = result.valid, list(result.errors)

    def _refresh_group(self, node: Group) -> None:
        kids = [self._nodes[c] for c in node.children]
        own = group_errors(node.operator, kids)
        node.is_valid = not own and all(k.is_valid for k in kids)
        node.errors = aggregate_errors(own, kids)

    def _revalidate_subtree(self, node_id: str) -> None:
        # children before parents
        for nid in reversed(self._subtree_ids(node_id)):
            node = self._nodes[nid]
            if isinstance(node, Condition):
                self._validate_leaf(node)
            else:
                self._refresh_group(node)

    def _propagate(self, parent_id: Optional[str]) -> None:
        while parent_id is not None:
            self._refresh_group(self._nodes[parent_id])
            parent_id = self._parents[parent_id]

    def _root_errors(self) -> List[str]:
        if self._root_operator is Operator.NOT and len(self._roots) > 1:
            return ["Not operator can only have one child condition"]
        return []
