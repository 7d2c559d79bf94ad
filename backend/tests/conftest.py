import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from main import app
from database import Base, get_db, make_engine
from models import User
from auth import get_password_hash, create_access_token

# One shared in-memory connection so the app and the test see the same data
engine = make_engine("sqlite:///:memory:", poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)

@pytest.fixture(scope="function")
def client(db_session):
    """Create a FastAPI TestClient with overridden database dependency."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.pop(get_db, None)

def create_user(session, email, name, currency="USD"):
    user = User(
        email=email,
        hashed_password=get_password_hash("password123"),
        full_name=name,
        is_active=True,
        default_currency=currency
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user

def headers_for(user):
    access_token = create_access_token(data={"sub": user.email})
    return {"Authorization": f"Bearer {access_token}"}

@pytest.fixture
def test_user(db_session):
    """Create a test user and return the user object."""
    return create_user(db_session, "test@example.com", "Test User")

@pytest.fixture
def other_user(db_session):
    return create_user(db_session, "other@example.com", "Other User")

@pytest.fixture
def auth_headers(test_user):
    """Return authorization headers for the test user."""
    return headers_for(test_user)

@pytest.fixture
def other_headers(other_user):
    return headers_for(other_user)

def link_users(client, user, friend):
    """Request and accept a link between two users over the API."""
    resp = client.post("/friends", headers=headers_for(user), json={"email": friend.email})
    assert resp.status_code == 200
    resp = client.post(f"/friends/{user.id}/accept", headers=headers_for(friend))
    assert resp.status_code == 200

@pytest.fixture
def linked_friends(client, test_user, other_user):
    """test_user and other_user with an accepted link."""
    link_users(client, test_user, other_user)
    return test_user, other_user
