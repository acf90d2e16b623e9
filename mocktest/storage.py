"""
Storage interface and its backends.

Routers and services depend on ``Storage`` only. ``SqlStorage`` wraps a
SQLModel session (production); ``MemStorage`` keeps everything in dicts
(tests, demos).
"""

import itertools
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from sqlmodel import Session, col, or_, select

from mocktest.models import Course, MockTest, Question, TestAttempt, User


class Storage(ABC):
    """get / list / create per entity. Questions and attempts are never updated."""

    # Users
    @abstractmethod
    def get_user(self, user_id: int) -> Optional[User]:
        pass

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]:
        pass

    @abstractmethod
    def create_user(self, user: User) -> User:
        pass

    # Courses
    @abstractmethod
    def list_courses(
        self, search: Optional[str] = None, featured: Optional[bool] = None
    ) -> List[Course]:
        pass

    @abstractmethod
    def get_course(self, course_id: int) -> Optional[Course]:
        pass

    @abstractmethod
    def create_course(self, course: Course) -> Course:
        pass

    # Mock tests
    @abstractmethod
    def list_mock_tests(
        self, difficulty: Optional[str] = None, featured: Optional[bool] = None
    ) -> List[MockTest]:
        pass

    @abstractmethod
    def get_mock_test(self, mock_test_id: int) -> Optional[MockTest]:
        pass

    @abstractmethod
    def create_mock_test(self, mock_test: MockTest) -> MockTest:
        pass

    # Questions (ordered by id, i.e. creation order)
    @abstractmethod
    def list_questions(self, mock_test_id: int) -> List[Question]:
        pass

    @abstractmethod
    def create_question(self, question: Question) -> Question:
        pass

    # Attempts
    @abstractmethod
    def create_attempt(self, attempt: TestAttempt) -> TestAttempt:
        pass

    @abstractmethod
    def list_attempts(
        self, user_id: int, mock_test_id: Optional[int] = None
    ) -> List[TestAttempt]:
        """Attempts of one user, most recently recorded first."""
        pass

    def latest_attempt(self, user_id: int, mock_test_id: int) -> Optional[TestAttempt]:
        attempts = self.list_attempts(user_id, mock_test_id=mock_test_id)
        return attempts[0] if attempts else None


def _matches_search(course: Course, search: str) -> bool:
    needle = search.lower()
    return needle in course.title.lower() or needle in course.description.lower()


class MemStorage(Storage):
    """In-memory backend keyed by auto-incremented ids."""

    def __init__(self) -> None:
        self._users: Dict[int, User] = {}
        self._courses: Dict[int, Course] = {}
        self._mock_tests: Dict[int, MockTest] = {}
        self._questions: Dict[int, Question] = {}
        self._attempts: Dict[int, TestAttempt] = {}
        self._ids = {
            name: itertools.count(1)
            for name in ("user", "course", "mock_test", "question", "attempt")
        }

    def _insert(self, table: Dict[int, object], kind: str, record):
        record.id = next(self._ids[kind])
        table[record.id] = record
        return record

    def get_user(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        return next((u for u in self._users.values() if u.username == username), None)

    def create_user(self, user: User) -> User:
        return self._insert(self._users, "user", user)

    def list_courses(
        self, search: Optional[str] = None, featured: Optional[bool] = None
    ) -> List[Course]:
        courses = list(self._courses.values())
        if search:
            courses = [c for c in courses if _matches_search(c, search)]
        if featured is not None:
            courses = [c for c in courses if bool(c.featured) == featured]
        return courses

    def get_course(self, course_id: int) -> Optional[Course]:
        return self._courses.get(course_id)

    def create_course(self, course: Course) -> Course:
        return self._insert(self._courses, "course", course)

    def list_mock_tests(
        self, difficulty: Optional[str] = None, featured: Optional[bool] = None
    ) -> List[MockTest]:
        tests = list(self._mock_tests.values())
        if difficulty:
            tests = [t for t in tests if t.difficulty == difficulty]
        if featured is not None:
            tests = [t for t in tests if bool(t.featured) == featured]
        return tests

    def get_mock_test(self, mock_test_id: int) -> Optional[MockTest]:
        return self._mock_tests.get(mock_test_id)

    def create_mock_test(self, mock_test: MockTest) -> MockTest:
        return self._insert(self._mock_tests, "mock_test", mock_test)

    def list_questions(self, mock_test_id: int) -> List[Question]:
        return [q for q in self._questions.values() if q.mock_test_id == mock_test_id]

    def create_question(self, question: Question) -> Question:
        question.options = list(question.options)
        return self._insert(self._questions, "question", question)

    def create_attempt(self, attempt: TestAttempt) -> TestAttempt:
        return self._insert(self._attempts, "attempt", attempt)

    def list_attempts(
        self, user_id: int, mock_test_id: Optional[int] = None
    ) -> List[TestAttempt]:
        attempts = [
            a
            for a in self._attempts.values()
            if a.user_id == user_id
            and (mock_test_id is None or a.mock_test_id == mock_test_id)
        ]
        return sorted(attempts, key=lambda a: a.id, reverse=True)


class SqlStorage(Storage):
    """SQLModel backend. Each create commits immediately."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _add(self, record):
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return record

    def get_user(self, user_id: int) -> Optional[User]:
        return self.session.get(User, user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self.session.exec(select(User).where(User.username == username)).first()

    def create_user(self, user: User) -> User:
        return self._add(user)

    def list_courses(
        self, search: Optional[str] = None, featured: Optional[bool] = None
    ) -> List[Course]:
        stmt = select(Course)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(col(Course.title).ilike(pattern), col(Course.description).ilike(pattern))
            )
        if featured is not None:
            stmt = stmt.where(Course.featured == featured)
        return list(self.session.exec(stmt.order_by(Course.id)).all())

    def get_course(self, course_id: int) -> Optional[Course]:
        return self.session.get(Course, course_id)

    def create_course(self, course: Course) -> Course:
        return self._add(course)

    def list_mock_tests(
        self, difficulty: Optional[str] = None, featured: Optional[bool] = None
    ) -> List[MockTest]:
        stmt = select(MockTest)
        if difficulty:
            stmt = stmt.where(MockTest.difficulty == difficulty)
        if featured is not None:
            stmt = stmt.where(MockTest.featured == featured)
        return list(self.session.exec(stmt.order_by(MockTest.id)).all())

    def get_mock_test(self, mock_test_id: int) -> Optional[MockTest]:
        return self.session.get(MockTest, mock_test_id)

    def create_mock_test(self, mock_test: MockTest) -> MockTest:
        return self._add(mock_test)

    def list_questions(self, mock_test_id: int) -> List[Question]:
        stmt = (
            select(Question)
            .where(Question.mock_test_id == mock_test_id)
            .order_by(Question.id)
        )
        return list(self.session.exec(stmt).all())

    def create_question(self, question: Question) -> Question:
        return self._add(question)

    def create_attempt(self, attempt: TestAttempt) -> TestAttempt:
        return self._add(attempt)

    def list_attempts(
        self, user_id: int, mock_test_id: Optional[int] = None
    ) -> List[TestAttempt]:
        stmt = select(TestAttempt).where(TestAttempt.user_id == user_id)
        if mock_test_id is not None:
            stmt = stmt.where(TestAttempt.mock_test_id == mock_test_id)
        stmt = stmt.order_by(col(TestAttempt.id).desc())
        return list(self.session.exec(stmt).all())
