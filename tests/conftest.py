"""
Shared fixtures for ownership resolution tests.

Provides the BigCo fact set as a bundle, a published snapshot and a loaded
service, so unit tests can target one component without rebuilding the
stack by hand.
"""

import pytest

from multinational.api.service import OwnershipService
from multinational.contracts.bundles import FactBundle
from multinational.contracts.config import ResolutionConfig
from multinational.engine.pipeline import OwnershipSnapshot, build_snapshot
from tests.fixtures.facts import BIGCO_PROGRAM, create_bigco_bundle


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def config() -> ResolutionConfig:
    """Default resolution configuration."""
    return ResolutionConfig.default()


# =============================================================================
# Fact Fixtures
# =============================================================================


@pytest.fixture
def bigco_bundle() -> FactBundle:
    """BigCo facts as a FactBundle."""
    return create_bigco_bundle()


@pytest.fixture
def bigco(bigco_bundle: FactBundle, config: ResolutionConfig) -> OwnershipSnapshot:
    """BigCo facts assembled into a snapshot."""
    return build_snapshot(bigco_bundle, config, generation=1)


@pytest.fixture
def service(config: ResolutionConfig) -> OwnershipService:
    """Service with the BigCo program loaded."""
    service = OwnershipService(config)
    service.load(BIGCO_PROGRAM)
    return service
