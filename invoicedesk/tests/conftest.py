"""
Test configuration for InvoiceDesk tests.

Every test gets a fresh SQLite database file (aiosqlite) with tables created
from Base.metadata, so no Postgres or migrations are needed. The mail provider
and document storage are replaced on app.state by in-memory fakes.

Tokens are minted with PyJWT against settings.jwt_secret, the same way the
identity provider signs them.
"""
from __future__ import annotations

import time
from email.message import EmailMessage

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from invoicedesk.config import settings
from invoicedesk.database import Base, build_engine, build_sessionmaker
from invoicedesk.errors import NotFoundError, UpstreamError
from invoicedesk.main import create_app
from invoicedesk.models.consultant import ConsultantORM
from invoicedesk.results import Err, Ok


# ---------------------------------------------------------------------------
# Fakes for the outbound HTTP clients
# ---------------------------------------------------------------------------

class FakeMailer:
    """Records every message; fail=True makes the provider reject them."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, EmailMessage]] = []
        self.fail = False

    async def send(self, access_token: str, message: EmailMessage):
        if self.fail:
            return Err(UpstreamError("Mail provider returned 500"))
        self.sent.append((access_token, message))
        return Ok(f"msg-{len(self.sent)}")


class FakeDocuments:
    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.fail = False

    async def upload(self, path: str, data: bytes, content_type: str = "application/pdf"):
        if self.fail:
            return Err(UpstreamError("Document storage is unavailable"))
        self.objects[path] = data
        return Ok(path)

    async def download(self, path: str):
        if path not in self.objects:
            return Err(NotFoundError(f"Stored document {path} not found"))
        return Ok(self.objects[path])


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'invoicedesk.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def sessionmaker(engine):
    return build_sessionmaker(engine)


@pytest_asyncio.fixture
async def db(sessionmaker):
    """A session for calling components directly. Uncommitted work is discarded."""
    async with sessionmaker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def seed(sessionmaker):
    """Insert committed consultant rows before exercising the API."""

    async def _seed(**fields) -> ConsultantORM:
        async with sessionmaker() as session:
            consultant = ConsultantORM(**fields)
            session.add(consultant)
            await session.commit()
            return consultant

    return _seed


# ---------------------------------------------------------------------------
# App / HTTP fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def documents():
    return FakeDocuments()


@pytest.fixture
def app(sessionmaker, mailer, documents):
    app = create_app(use_lifespan=False)
    app.state.sessionmaker = sessionmaker
    app.state.mailer = mailer
    app.state.documents = documents
    return app


@pytest_asyncio.fixture
async def client(app):
    """Async httpx client using ASGI transport — no live server needed."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


def make_token(email: str, name: str | None = None, ttl: int = 3600) -> str:
    now = int(time.time())
    claims = {
        "sub": email,
        "email": email,
        "aud": settings.jwt_audience,
        "iat": now,
        "exp": now + ttl,
    }
    if name:
        claims["user_metadata"] = {"full_name": name}
    return jwt.encode(claims, settings.jwt_secret, algorithm="HS256")


@pytest.fixture
def auth():
    """auth("a@b.com") -> Authorization header dict for that address."""

    def _auth(email: str, name: str | None = None) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(email, name)}"}

    return _auth
