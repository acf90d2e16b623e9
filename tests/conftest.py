import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, text


def _ensure_app_on_path():
    repo_root = Path(__file__).resolve().parent.parent
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))
    return repo_root


_ensure_app_on_path()

from mocktest.auth_utils import hash_password
from mocktest.database import get_session
from mocktest.deps import get_storage
from mocktest.main import app
from mocktest.models import Course, MockTest, Question, User
from mocktest.storage import MemStorage

# ============================================================================
# IN-MEMORY DATABASE FOR TESTING
# ============================================================================

# StaticPool: every connection shares the same in-memory database
test_engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

PASSWORD = "testpass123"

# Five questions whose correct options are [0, 1, 1, 0, 3]
FIVE_QUESTION_KEY = [0, 1, 1, 0, 3]


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    """Create all tables in the test database once per session."""
    SQLModel.metadata.create_all(test_engine)
    yield
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(autouse=True)
def cleanup_db_between_tests():
    """Clean up test data after each test."""
    yield

    # FK-safe order
    with Session(test_engine) as session:
        session.execute(text("DELETE FROM testattempt"))
        session.execute(text("DELETE FROM question"))
        session.execute(text("DELETE FROM mocktest"))
        session.execute(text("DELETE FROM course"))
        session.execute(text("DELETE FROM user"))
        session.commit()


def override_get_session():
    with Session(test_engine) as session:
        yield session


# ============================================================================
# FASTAPI APP & TEST CLIENTS
# ============================================================================


@pytest.fixture
def client():
    """Test client backed by the in-memory SQLite database."""
    app.dependency_overrides[get_session] = override_get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def mem_storage():
    return MemStorage()


@pytest.fixture
def mem_client(mem_storage):
    """Test client backed by MemStorage instead of a database."""
    app.dependency_overrides[get_storage] = lambda: mem_storage
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def session():
    """Provide a database session for tests."""
    with Session(test_engine) as session:
        yield session


def login(client, username, password=PASSWORD):
    response = client.post("/api/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return response


# ============================================================================
# ENTITY FIXTURES
# ============================================================================


def _create_user(username):
    with Session(test_engine) as session:
        user = User(username=username, password_hash=hash_password(PASSWORD))
        session.add(user)
        session.commit()
        session.refresh(user)
        user_id = user.id

    with Session(test_engine) as session:
        return session.get(User, user_id)


@pytest.fixture
def alice():
    """A registered user who authors the sample mock test."""
    return _create_user("alice")


@pytest.fixture
def bob():
    return _create_user("bob")


@pytest.fixture
def alice_client(client, alice):
    login(client, "alice")
    return client


@pytest.fixture
def courses(alice):
    """Two catalog courses, the first one featured."""
    with Session(test_engine) as session:
        items = [
            Course(
                title="Intro to Python",
                description="Learn Python basics",
                image_url="https://example.com/python.png",
                author_id=alice.id,
                duration="6 weeks",
                price=49,
                featured=True,
            ),
            Course(
                title="Data Science",
                description="Statistics and pandas",
                image_url="https://example.com/ds.png",
                author_id=alice.id,
                duration="10 weeks",
                price=99,
            ),
        ]
        session.add_all(items)
        session.commit()
        ids = [c.id for c in items]

    with Session(test_engine) as session:
        return [session.get(Course, course_id) for course_id in ids]


@pytest.fixture
def mock_test(alice):
    """A 5-question, 30-minute test with correct options [0, 1, 1, 0, 3]."""
    with Session(test_engine) as session:
        test = MockTest(
            title="Python Quiz",
            description="Five questions on Python",
            duration_minutes=30,
            total_questions=5,
            difficulty="beginner",
            image_url="https://example.com/quiz.png",
            author_id=alice.id,
        )
        session.add(test)
        session.commit()
        session.refresh(test)
        test_id = test.id

        for i, correct in enumerate(FIVE_QUESTION_KEY):
            session.add(
                Question(
                    mock_test_id=test_id,
                    text=f"Question {i + 1}?",
                    options=["Option A", "Option B", "Option C", "Option D"],
                    correct_option=correct,
                    explanation=f"Explanation {i + 1}",
                )
            )
        session.commit()

    with Session(test_engine) as session:
        return session.get(MockTest, test_id)


@pytest.fixture
def empty_mock_test(alice):
    """A mock test without any questions."""
    with Session(test_engine) as session:
        test = MockTest(
            title="Empty",
            description="No questions yet",
            duration_minutes=10,
            total_questions=3,
            difficulty="advanced",
            image_url="https://example.com/empty.png",
            author_id=alice.id,
        )
        session.add(test)
        session.commit()
        session.refresh(test)
        test_id = test.id

    with Session(test_engine) as session:
        return session.get(MockTest, test_id)
