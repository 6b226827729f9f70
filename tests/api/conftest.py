"""
Fixtures for API tests: the FastAPI app with service dependencies replaced.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from app.api.api_v1.deps import get_alert_service, get_extraction_service
from app.db.session import get_db
from app.main import app


@pytest.fixture
def extraction_service():
    service = MagicMock()
    service.process_queue_item = AsyncMock()
    service.list_queue = AsyncMock(return_value=[])
    service.approve_extraction = AsyncMock()
    service.reject_extraction = AsyncMock()
    return service


@pytest.fixture
def alert_service():
    service = MagicMock()
    service.run_alert_sweep = AsyncMock()
    service.list_alerts = AsyncMock(return_value=[])
    service.acknowledge_alert = AsyncMock()
    service.resolve_alert = AsyncMock()
    return service


@pytest.fixture
def db_session():
    session = MagicMock()
    session.execute = AsyncMock()
    return session


@pytest.fixture
def client(extraction_service, alert_service, db_session):
    """Test client without lifespan; services are mocks."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_extraction_service] = lambda: extraction_service
    app.dependency_overrides[get_alert_service] = lambda: alert_service
    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
