"""
filterkit: typed filter-expression engine.

Build, validate and serialize boolean filter trees over a schema of typed
fields, and load canonical filter payloads back into editable trees.
"""

from .filters import Operator, RHSType, FieldValueKind, Condition, Group
from .registry import Registry, FieldTypeDefinition, default_definition
from .builder import FilterBuilder
from .codec import PayloadError, from_payload, is_well_formed, to_payload
from .utils import clone_payload, merge_payloads, payload_to_string, payloads_equal

__all__ = [
    "Operator",
    "RHSType",
    "FieldValueKind",
    "Condition",
    "Group",
    "Registry",
    "FieldTypeDefinition",
    "default_definition",
    "FilterBuilder",
    "PayloadError",
    "from_payload",
    "is_well_formed",
    "to_payload",
    "clone_payload",
    "merge_payloads",
    "payload_to_string",
    "payloads_equal",
]
