"""
Shared pytest fixtures.

Every test gets its own SQLite database file. The app talks to it through an
aiosqlite engine injected by overriding ``get_db``; tests seed rows through a
plain synchronous session on the same file.
"""
import asyncio
import os

# Settings are read at import time, so configure the environment first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["ENV"] = "test"
os.environ["FITMATE_ENV_FILE"] = os.path.join(os.path.dirname(__file__), "missing.env")

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

from fitmate.core.admission import utc_now
from fitmate.core.security import generate_token, get_password_hash
from fitmate.db.session import get_db
from fitmate.main import app
from fitmate.services.mail_service import Mailer, get_mailer
from fitmate.utils.storage import ProofStore, get_proof_store
from fitmate.models import Base, ClassCategory, ClassEnrollment, FitnessClass, Review, User
from fitmate.schemas.enums import Role

PASSWORD = "secret123"
PASSWORD_HASH = get_password_hash(PASSWORD)


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "fitmate.db"


@pytest.fixture
def sync_engine(db_path):
    engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def async_session_factory(db_path, sync_engine):
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)

    # Run the engine's first-connect initialisation now: it is guarded by an
    # asyncio lock that deadlocks when first hit from several event loops
    # (one per TestClient thread in the parallel enroll tests).
    async def _first_connect():
        async with engine.connect():
            pass

    asyncio.run(_first_connect())
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
def db(sync_engine):
    """Synchronous session for seeding and inspecting rows."""
    with Session(sync_engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def client(async_session_factory):
    async def override_get_db():
        async with async_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(role: Role = Role.USER, email: str | None = None, name: str | None = None) -> User:
        counter["n"] += 1
        db_user = User(
            email=email or f"{role.value.lower()}{counter['n']}@fitmate.io",
            password_hash=PASSWORD_HASH,
            name=name or f"{role.value.title()} {counter['n']}",
            role=role,
        )
        db.add(db_user)
        db.commit()
        return db_user

    return _make_user


@pytest.fixture
def make_class(db):
    def _make_class(
        trainer: User,
        created_by: User,
        starts_in: timedelta = timedelta(days=1),
        duration: timedelta = timedelta(hours=1),
        capacity: int | None = None,
        required_role: Role | None = None,
        category: ClassCategory | None = None,
        title: str = "Morning Flow",
    ) -> FitnessClass:
        start_time = utc_now() + starts_in
        db_class = FitnessClass(
            title=title,
            start_time=start_time,
            end_time=start_time + duration,
            capacity=capacity,
            required_role=required_role,
            trainer_id=trainer.id,
            created_by_id=created_by.id,
            category_id=category.id if category else None,
        )
        db.add(db_class)
        db.commit()
        return db_class

    return _make_class


@pytest.fixture
def make_category(db):
    def _make_category(name: str = "Yoga", description: str | None = None) -> ClassCategory:
        db_category = ClassCategory(name=name, description=description)
        db.add(db_category)
        db.commit()
        return db_category

    return _make_category


@pytest.fixture
def enroll(db):
    def _enroll(db_user: User, db_class: FitnessClass) -> ClassEnrollment:
        enrollment = ClassEnrollment(user_id=db_user.id, class_id=db_class.id)
        db.add(enrollment)
        db.commit()
        return enrollment

    return _enroll


@pytest.fixture
def make_review(db):
    def _make_review(reviewer: User, trainer: User, rating: int, comment: str | None = None) -> Review:
        db_review = Review(reviewer_id=reviewer.id, trainer_id=trainer.id, rating=rating, comment=comment)
        db.add(db_review)
        db.commit()
        return db_review

    return _make_review


def token_for(db_user: User, expires_delta: timedelta | None = None) -> str:
    return generate_token(
        {"id": db_user.id, "email": db_user.email, "role": db_user.role.value},
        expires_delta=expires_delta,
    )


@pytest.fixture
def auth_headers():
    def _auth_headers(db_user: User, expires_delta: timedelta | None = None) -> dict[str, str]:
        return {"Authorization": f"Bearer {token_for(db_user, expires_delta)}"}

    return _auth_headers


@pytest.fixture
def admin(make_user):
    return make_user(Role.ADMIN, email="admin@fitmate.io", name="Admin")


@pytest.fixture
def trainer(make_user):
    return make_user(Role.TRAINER, email="coach@fitmate.io", name="Coach Ann")


@pytest.fixture
def member(make_user):
    return make_user(Role.USER, email="member@fitmate.io", name="Member")


@pytest.fixture
def password():
    """Plain password of every seeded user."""
    return PASSWORD


class OutboxMailer(Mailer):
    """Keeps sent messages in memory."""

    def __init__(self):
        self.sent: list[dict[str, str]] = []

    async def send(self, *, to: str, subject: str, body: str) -> None:
        self.sent.append({"to": to, "subject": subject, "body": body})


class MemoryProofStore(ProofStore):
    def __init__(self):
        self.files: dict[str, bytes] = {}

    async def save(self, key: str, content: bytes) -> None:
        self.files[key] = content

    async def load(self, key: str) -> bytes | None:
        return self.files.get(key)

    async def delete(self, key: str) -> None:
        self.files.pop(key, None)


@pytest.fixture
def outbox(client):
    """Route outgoing mail to an in-memory outbox."""
    mailer = OutboxMailer()
    app.dependency_overrides[get_mailer] = lambda: mailer
    return mailer


@pytest.fixture
def proof_store(client):
    store = MemoryProofStore()
    app.dependency_overrides[get_proof_store] = lambda: store
    return store
