"""
Provider lifecycle: per-provider state and the registry that drives it.
"""

from .instance import ProviderInstance, ProviderState
from .registry import ProviderRegistry

__all__ = [
    "ProviderInstance",
    "ProviderState",
    "ProviderRegistry",
]
