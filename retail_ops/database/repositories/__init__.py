# retail_ops/database/repositories/__init__.py
"""
Repository layer public API.

Usage:
    from retail_ops.database.repositories import StateRepo, StateDomainError
"""

from .state_repo import StateRepo, DomainError as StateDomainError

__all__ = [
    "StateRepo",
    "StateDomainError",
]
