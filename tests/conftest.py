"""
Shared fixtures: in-memory SQLite for the relational backend, an in-memory
Firestore double for the document backend, and a TestClient wired to both.
"""
import os

os.environ.setdefault("ENV", "development")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "finboard-test-secret-key-0123456789abcdef")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from fake_firestore import FakeFirestoreClient
from finboard.core.security import create_access_token, hash_password
from finboard.db import get_db
from finboard.main import create_app
from finboard.models import Base, Profile, User
from finboard.repositories.document import DocumentRepository
from finboard.repositories.factory import get_firestore_factory
from finboard.repositories.relational import RelationalRepository
from finboard.seed import seed_default_categories


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    seed_default_categories(session)
    yield session
    session.close()


@pytest.fixture
def firestore_client():
    return FakeFirestoreClient()


@pytest.fixture
def user(db_session):
    db_user = User(email="ada@example.com", name="Ada Lovelace", hashed_password=hash_password("secret-pass"))
    db_session.add(db_user)
    db_session.flush()
    db_session.add(Profile(id=db_user.id, email=db_user.email, full_name="Ada Lovelace"))
    db_session.commit()
    db_session.refresh(db_user)
    return db_user


@pytest.fixture
def other_user(db_session):
    db_user = User(email="grace@example.com", name="Grace Hopper", hashed_password=hash_password("secret-pass"))
    db_session.add(db_user)
    db_session.flush()
    db_session.add(Profile(id=db_user.id, email=db_user.email, full_name="Grace Hopper"))
    db_session.commit()
    db_session.refresh(db_user)
    return db_user


@pytest.fixture
def auth_headers(user):
    token = create_access_token(sub=str(user.id), email=user.email, name=user.name)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def document_headers(auth_headers):
    return {**auth_headers, "X-Database-Backend": "document"}


@pytest.fixture
def relational_repo(db_session, user):
    return RelationalRepository(db_session, str(user.id))


@pytest.fixture
def document_repo(firestore_client, user):
    repo = DocumentRepository(firestore_client, str(user.id))
    repo.create_profile(email=user.email, full_name=user.name)
    return repo


@pytest.fixture(params=["relational", "document"])
def repo(request):
    """Runs a test once against each storage backend."""
    return request.getfixturevalue(f"{request.param}_repo")


@pytest.fixture
def app(session_factory, db_session, firestore_client):
    app = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_firestore_factory] = lambda: (lambda: firestore_client)
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
