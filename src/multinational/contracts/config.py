"""
Configuration for the ownership resolution engine.

ResolutionConfig: Frozen dataclass controlling traversal bounds, display
fallbacks, the load gate and program parsing strictness.

Usage:
    from multinational.contracts.config import ResolutionConfig

    config = ResolutionConfig.default()
    strict = ResolutionConfig.strict(max_depth=16)
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ResolutionConfig:
    """
    Settings shared by the resolvers and the query façade.

    Attributes:
        max_depth: Upper bound on upward walks. None uses the company count
            of the loaded snapshot.
        undefined_currency_display: Text shown for entities without any
            currency on their ownership chain
        load_wait_seconds: How long queries wait for the first load before
            failing. 0 fails immediately.
        strict_predicates: Reject unknown predicates in fact programs instead
            of skipping them
    """

    max_depth: int | None = None
    undefined_currency_display: str = "-"
    load_wait_seconds: float = 0.0
    strict_predicates: bool = False

    def __post_init__(self) -> None:
        if self.max_depth is not None and self.max_depth < 1:
            raise ValueError(f"max_depth must be positive, got {self.max_depth}")
        if self.load_wait_seconds < 0:
            raise ValueError(
                f"load_wait_seconds must be non-negative, got {self.load_wait_seconds}"
            )

    def depth_limit(self, company_count: int) -> int:
        """Effective walk bound for a snapshot with ``company_count`` companies."""
        if self.max_depth is not None:
            return self.max_depth
        return max(company_count, 1)

    @classmethod
    def default(cls, **overrides) -> ResolutionConfig:
        """Lenient configuration used by the presentation layer."""
        return cls(**overrides)

    @classmethod
    def strict(cls, **overrides) -> ResolutionConfig:
        """Configuration that rejects any clause it does not understand."""
        overrides.setdefault("strict_predicates", True)
        return cls(**overrides)
