import os
import sys
import pathlib
import tempfile
import warnings

import pytest
import pytest_asyncio

# The engine and token settings are read at import time, so point them at a
# throwaway database and a test-only key before anything imports mustdo.
_TMP_DIR = tempfile.mkdtemp(prefix='mustdo-tests-')
os.environ['DATABASE_URL'] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ.setdefault('SECRET_KEY', 'test-secret-key-for-unit-tests')

# ensure project root is on PYTHONPATH for test runs
ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from sqlalchemy.exc import SAWarning
warnings.filterwarnings("ignore", category=SAWarning)

# Reduce SQLAlchemy logger verbosity during tests
import logging as _logging
for _name in ('sqlalchemy', 'sqlalchemy.engine', 'sqlalchemy.pool', 'sqlmodel'):
    _logging.getLogger(_name).setLevel(_logging.ERROR)

from httpx import AsyncClient, ASGITransport
from sqlalchemy import delete as sqlalchemy_delete

from mustdo.main import app
from mustdo.db import init_db, async_session
from mustdo.models import Task, User


async def reset_db():
    await init_db()
    async with async_session() as sess:
        await sess.exec(sqlalchemy_delete(Task))
        await sess.exec(sqlalchemy_delete(User))
        await sess.commit()


@pytest_asyncio.fixture
async def ensure_db():
    await reset_db()
    yield


@pytest_asyncio.fixture
async def client(ensure_db):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def register_user(ac: AsyncClient, username: str = 'alice', password: str = 'secret1') -> dict:
    """Register through the API and return bearer headers for the new user."""
    r = await ac.post('/auth/register', json={'username': username, 'password': password})
    assert r.status_code == 201, r.text
    return {'Authorization': f"Bearer {r.json()['token']}"}


@pytest.fixture
def auth_headers():
    return register_user
