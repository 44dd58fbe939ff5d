"""
HTTP surface for the filterkit engine.
"""

from .endpoints import router, REG, get_registry

__all__ = ["router", "REG", "get_registry"]
