"""
Shared fixtures: a throwaway SQLite database per test, fake derivation
capabilities, and an HTTP client wired to the FastAPI app.
"""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select

from app.db import Base, build_engine, build_sessionmaker, get_db
from app.main import app
from app.models.story import Story
from app.models.user import User
from app.services.derivation import Derivers, get_derivers
from app.utils.config import EMBEDDING_DIMENSIONS

# Deliberately awkward floats so the storage round trip is actually tested
SAMPLE_EMBEDDING = [((i % 97) / 97.0) - 0.5 + i * 1e-7 for i in range(EMBEDDING_DIMENSIONS)]

SAMPLE_TIMELINE = {
    "events": [
        {"date": "2019", "description": "Moved to Berlin", "category": "relocation"},
        {"date": "2019", "description": "Started a new job", "confidence": 0.875},
    ]
}


def _fake_timeline(text):
    return SAMPLE_TIMELINE


def _fake_embedding(text):
    return list(SAMPLE_EMBEDDING)


def _fake_title(text):
    return "A New Start"


def build_derivers(embedding=None, timeline=None, title=None, leg_timeout=2.0):
    return Derivers(
        embedding=embedding or _fake_embedding,
        timeline=timeline or _fake_timeline,
        title=title or _fake_title,
        leg_timeout=leg_timeout,
    )


@pytest.fixture
def make_derivers():
    return build_derivers


@pytest.fixture
def sample_embedding():
    return list(SAMPLE_EMBEDDING)


@pytest.fixture
def sample_timeline():
    return SAMPLE_TIMELINE


@pytest.fixture
async def engine(tmp_path):
    eng = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'stories.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return build_sessionmaker(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def use_derivers():
    """Swap the derivation capabilities the app hands to request handlers."""
    def _use(derivers):
        app.dependency_overrides[get_derivers] = lambda: derivers
    return _use


@pytest.fixture
async def client(session_factory, use_derivers):
    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    use_derivers(build_derivers())
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def post_story(client):
    async def _post(text, principal="u1", cookie=None, username=None):
        # Only send what the test asks for, never what the jar picked up
        client.cookies.clear()
        headers = {}
        if principal:
            headers["x-auth-user-id"] = principal
        if username:
            headers["x-auth-username"] = username
        if cookie:
            headers["Cookie"] = f"sessionId={cookie}"
        return await client.post("/api/story", json={"story": text}, headers=headers)
    return _post


@pytest.fixture
def counts(session_factory):
    async def _counts():
        async with session_factory() as s:
            users = (await s.execute(select(func.count()).select_from(User))).scalar_one()
            stories = (await s.execute(select(func.count()).select_from(Story))).scalar_one()
        return users, stories
    return _counts


@pytest.fixture
def fetch_all(session_factory):
    async def _fetch(model):
        async with session_factory() as s:
            return (await s.execute(select(model))).scalars().all()
    return _fetch
