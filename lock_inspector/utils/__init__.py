"""
Utilities package for the InnoDB Lock Inspector.

Exports shared helpers for logging, profiling, and other cross-cutting concerns.
Keep this package lightweight and free of domain-specific logic.
"""

from lock_inspector.utils.logging import configure_logging, get_logger
from lock_inspector.utils.profiler import ProfileStats, profile_block

__all__ = [
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "profile_block",
]
