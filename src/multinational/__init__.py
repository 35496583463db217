"""
Multinational ownership resolution.

Resolves corporate ownership hierarchies: companies, their subsidiaries,
the stores they operate and the accounting currency of each, inherited
along the ownership chain when not recorded explicitly.

Usage:
    from multinational import create_service

    service = create_service()
    service.load(program_text)
    service.get_hierarchy("intl")
"""

from multinational.api.service import OwnershipService, create_service
from multinational.contracts.config import ResolutionConfig
from multinational.contracts.errors import (
    AmbiguousOwnershipError,
    CyclicOwnershipError,
    MalformedFactError,
    OwnershipError,
    ResolutionFailure,
    UnknownEntityError,
)

__version__ = "0.1.0"

__all__ = [
    "OwnershipService",
    "create_service",
    "ResolutionConfig",
    "OwnershipError",
    "MalformedFactError",
    "UnknownEntityError",
    "CyclicOwnershipError",
    "AmbiguousOwnershipError",
    "ResolutionFailure",
]
