"""
Shared fixtures for Scrutiny backend integration tests.

Runs against a throwaway SQLite file through aiosqlite unless TEST_DATABASE_URL
points at another database (e.g. a Postgres test instance). Each test function
gets its own session; tables are created before and dropped after every test.
"""
from __future__ import annotations

import io
import os
import tempfile
from typing import AsyncGenerator, Callable, Iterable, Union

import pytest
import pytest_asyncio
from docx import Document
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

_TMP_DIR = tempfile.mkdtemp(prefix="scrutiny-tests-")

# Override DATABASE_URL and UPLOAD_DIR *before* any app module is imported, so
# that settings and the global engine point at the test locations.
TEST_DATABASE_URL = os.environ.get(
    "TEST_DATABASE_URL",
    f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'scrutiny_test.db')}",
)
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")

from scrutiny.database import Base, get_db  # noqa: E402
from scrutiny.main import app  # noqa: E402
from scrutiny.models import database_models  # noqa: E402,F401


# ---------------------------------------------------------------------------
# Per-test fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a DB session for each test. Tables are dropped afterwards so each
    test starts with a clean slate.
    """
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx AsyncClient wired to the FastAPI app with the DB dependency
    overridden to use the per-test session.
    """

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

Paragraph = Union[str, Iterable[str]]


def build_docx(paragraphs: Iterable[Paragraph]) -> bytes:
    """
    Word document with one paragraph per item. A string is one run; a list of
    strings becomes one run per element, the way Word splits edited text.
    """
    document = Document()
    for item in paragraphs:
        if isinstance(item, str):
            document.add_paragraph(item)
        else:
            paragraph = document.add_paragraph()
            for text in item:
                paragraph.add_run(text)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def make_docx() -> Callable[[Iterable[Paragraph]], bytes]:
    return build_docx
