# Test env must be in place before app.core.config is imported
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("OUTBOX_WORKER_ENABLED", "false")
os.environ.pop("REDIS_URL", None)

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import app.models  # noqa: F401
from app.core.db import Base
from app.core.deps import WorkspaceContext
from app.models.partner import Partner
from app.models.program import Program, ProgramEnrollment
from app.models.workspace import User, Workspace, WorkspaceUser

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeRedis:
    """In-memory stand-in for the async redis client (get/set/delete only)."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.deleted: list[str] = []

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value):
        self.store[key] = value
        return True

    async def delete(self, *keys):
        n = 0
        for k in keys:
            self.deleted.append(k)
            if self.store.pop(k, None) is not None:
                n += 1
        return n


@pytest_asyncio.fixture
async def engine(tmp_path):
    # file db so concurrent sessions get their own connections
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def seeded(session_factory):
    """
    ws_1 owns prog_1 with partners pa, pb, pc enrolled (no discounts, no default).
    ws_2 owns prog_2 with partner pd.
    """
    async with session_factory() as s:
        ws1 = Workspace(id="ws_1", name="Acme", slug="acme", default_program_id="prog_1")
        ws2 = Workspace(id="ws_2", name="Other", slug="other", default_program_id="prog_2")
        user = User(id="user_1", name="Alice", email="alice@acme.test")
        other_user = User(id="user_2", name="Bob", email="bob@other.test")
        s.add_all([ws1, ws2, user, other_user])
        await s.flush()

        s.add_all(
            [
                WorkspaceUser(workspace_id="ws_1", user_id="user_1", role="owner"),
                WorkspaceUser(workspace_id="ws_2", user_id="user_2", role="owner"),
                Program(id="prog_1", workspace_id="ws_1", name="Acme Partners"),
                Program(id="prog_2", workspace_id="ws_2", name="Other Partners"),
            ]
        )
        for pid in ["pa", "pb", "pc", "pd"]:
            s.add(Partner(id=pid, name=f"Partner {pid}", email=f"{pid}@partners.test", image=None))
        await s.flush()

        for i, pid in enumerate(["pa", "pb", "pc"]):
            s.add(
                ProgramEnrollment(
                    id=f"pe_{i + 1}",
                    program_id="prog_1",
                    partner_id=pid,
                    created_at=T0 + timedelta(minutes=i),
                )
            )
        s.add(ProgramEnrollment(id="pe_9", program_id="prog_2", partner_id="pd", created_at=T0))
        await s.commit()

    return {"workspace": ws1, "user": user, "other_workspace": ws2, "other_user": other_user}


@pytest.fixture
def ctx(seeded):
    return WorkspaceContext(workspace=seeded["workspace"], user=seeded["user"])


@pytest.fixture
def other_ctx(seeded):
    return WorkspaceContext(workspace=seeded["other_workspace"], user=seeded["other_user"])


@pytest.fixture
def fake_redis():
    return FakeRedis()
