"""
Field type registry for the filterkit engine.

Maps field names to their value kind, legal operators and option sets.
"""

from .registry import (
    EnumOption,
    FieldTypeDefinition,
    FieldTypeRegistry,
    Registry,
    FALLBACK_DEFINITION,
    as_kind,
    default_definition,
)

__all__ = [
    "EnumOption",
    "FieldTypeDefinition",
    "FieldTypeRegistry",
    "Registry",
    "FALLBACK_DEFINITION",
    "as_kind",
    "default_definition",
]
