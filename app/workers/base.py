"""
Base task that runs async service code inside a Celery worker.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

from celery import Task
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.config import settings

logger = logging.getLogger(__name__)


class DatabaseTask(Task):
    """Task with a per-run async engine bound to the task's own event loop."""

    abstract = True

    def run_with_session(self, work: Callable[[AsyncSession], Awaitable[Any]]) -> Any:
        """Run ``work(session)`` to completion in a fresh event loop."""
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            return loop.run_until_complete(self._run(work))
        finally:
            loop.close()
            asyncio.set_event_loop(None)

    async def _run(self, work: Callable[[AsyncSession], Awaitable[Any]]) -> Any:
        # Pooled connections are tied to the loop that opened them
        engine = create_async_engine(settings.DATABASE_URL, poolclass=NullPool)
        session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        try:
            async with session_factory() as session:
                return await work(session)
        finally:
            await engine.dispose()
