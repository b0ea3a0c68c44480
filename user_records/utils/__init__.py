"""
Utilities package for the user records service.

Exports shared helpers for cross-cutting concerns (logging). Keep this
package lightweight and free of domain-specific logic.
"""

from user_records.utils.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
]
