"""
Payload utilities: deep copy, equality, merging and display rendering.
"""

from .payloads import (
    clone_payload,
    merge_payloads,
    payload_to_string,
    payloads_equal,
)

__all__ = [
    "clone_payload",
    "merge_payloads",
    "payload_to_string",
    "payloads_equal",
]
