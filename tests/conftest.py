"""
Pytest configuration and fixtures for the logistics automation core.
"""

import os

# Settings are read at import time; point them at throwaway backends first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("STORAGE_TYPE", "local")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.pop("NOTIFICATION_WEBHOOK_URL", None)
os.environ.pop("LLM_API_KEY", None)

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  registers every table on Base.metadata
from app.db.session import Base
from app.services.action_applier import ExtractionThresholds
from app.services.alert_rules import AlertThresholds


@pytest.fixture
async def async_engine():
    """Create async engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Clean up
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def async_session(async_engine):
    """Create async session for testing."""
    session_factory = async_sessionmaker(
        async_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with session_factory() as session:
        yield session


@pytest.fixture
def extraction_thresholds():
    return ExtractionThresholds(auto_action=0.85, review=0.5)


@pytest.fixture
def alert_thresholds():
    return AlertThresholds()


@pytest.fixture
def fake_storage():
    """Storage collaborator returning a small PDF-looking payload."""
    storage = MagicMock()
    storage.download = AsyncMock(return_value=b"%PDF-1.4 fake document")
    return storage


@pytest.fixture
def fake_llm():
    """AI completion collaborator; set ``completion`` to change the reply."""
    llm = MagicMock()
    llm.extract_document = AsyncMock(return_value=json.dumps({
        "document_type": "unknown",
        "confidence": 0,
        "data": {},
        "raw_text": "",
    }))
    return llm


@pytest.fixture
def fake_notifier():
    """Notification dispatcher that records every send."""
    notifier = MagicMock()
    notifier.send = AsyncMock(return_value=None)
    return notifier
