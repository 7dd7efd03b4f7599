import pytest
from unittest.mock import AsyncMock, MagicMock

from src.domain.key_derivation import SeedMaterial
from tests.fakes import TEST_MNEMONIC


@pytest.fixture
def mock_uow():
    """Mock unit of work"""
    uow = MagicMock()
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=None)
    return uow


@pytest.fixture(scope="session")
def seed():
    """Seed material for the well-known development mnemonic"""
    return SeedMaterial.from_mnemonic(TEST_MNEMONIC)


@pytest.fixture
def mock_notification_service():
    """Notification service that records published messages"""
    service = MagicMock()
    service.publish = AsyncMock(return_value=True)
    return service
