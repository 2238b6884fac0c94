import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import jwt
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine


def _ensure_local_project_on_path() -> None:
    root_dir = Path(__file__).resolve().parents[1]
    if str(root_dir) not in sys.path:
        sys.path.insert(0, str(root_dir))


_ensure_local_project_on_path()

from carecall.models import Base  # noqa: E402

TEST_JWT_SECRET = "test-session-secret"


def make_session_token(
    subject: str = "user-1",
    *,
    secret: str = TEST_JWT_SECRET,
    audience: str | None = "authenticated",
    expires_in: timedelta = timedelta(hours=1),
) -> str:
    claims: dict[str, object] = {
        "sub": subject,
        "email": f"{subject}@example.com",
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    if audience:
        claims["aud"] = audience
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest_asyncio.fixture()
async def session() -> AsyncSession:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with session_factory() as db_session:
        yield db_session

    await engine.dispose()
