"""
Payload codec for the filterkit engine.

Converts filter trees to and from the canonical nested wire payload.
"""

from .payload import (
    Payload,
    PayloadError,
    PayloadResult,
    build_payload,
    check_payload,
    from_payload,
    is_well_formed,
    to_payload,
)

__all__ = [
    "Payload",
    "PayloadError",
    "PayloadResult",
    "build_payload",
    "check_payload",
    "from_payload",
    "is_well_formed",
    "to_payload",
]
