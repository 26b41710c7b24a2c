"""
Database core functionality for async SQLAlchemy
"""

import re

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from ..config import settings

DATABASE_URL = settings.database_url

# Convert PostgreSQL URL to async version
if DATABASE_URL.startswith("postgresql://"):
    DATABASE_URL = DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")

# Remove sslmode parameter if present (asyncpg handles SSL differently)
if "?sslmode=" in DATABASE_URL or "&sslmode=" in DATABASE_URL:
    DATABASE_URL = re.sub(r'[?&]sslmode=\w+', '', DATABASE_URL)


def build_engine(url: str, **overrides):
    """Create an async engine; pool sizing only applies to server databases."""
    options = {"pool_pre_ping": True, "echo": False}
    if not url.startswith("sqlite"):
        options.update(pool_size=20, max_overflow=40, pool_recycle=3600)
    options.update(overrides)
    return create_async_engine(url, **options)


engine = build_engine(DATABASE_URL)

# Create async SessionLocal class
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)

# Create Base class for models
Base = declarative_base()


async def get_db():
    """Async dependency to get database session"""
    async with AsyncSessionLocal() as session:
        yield session
