"""HTTP client for the JSON API, used by quiz sessions running outside the server."""

import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel

from mocktest.config import settings
from mocktest.errors import (
    ForbiddenError,
    NotFoundError,
    TransportFailure,
    UnauthorizedError,
    ValidationFailure,
)
from mocktest.quiz.ports import AnswerKeyStore, AttemptRecorder
from mocktest.schemas import (
    AttemptCreate,
    AttemptRead,
    CourseRead,
    MockTestRead,
    QuestionRead,
    ReviewRead,
    UserRead,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and "detail" in body:
        return str(body["detail"])
    return str(body)


def _decode(response: httpx.Response, model: Type[ModelT]) -> ModelT:
    """Parse a success body; a malformed one is a server-side failure."""
    try:
        return model.model_validate(response.json())
    except ValueError as exc:
        raise TransportFailure(
            f"Unexpected {model.__name__} body from {response.request.url}: {exc}"
        ) from exc


def _decode_list(response: httpx.Response, model: Type[ModelT]) -> List[ModelT]:
    try:
        return [model.model_validate(item) for item in response.json()]
    except (TypeError, ValueError) as exc:
        raise TransportFailure(
            f"Unexpected {model.__name__} list from {response.request.url}: {exc}"
        ) from exc


def _validation_errors(response: httpx.Response) -> List[Dict[str, str]]:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("errors"), list):
        return body["errors"]
    return [{"field": "body", "message": _error_detail(response)}]


class MockTestApiClient(AnswerKeyStore, AttemptRecorder):
    """Cookie-carrying async client for the mock test API.

    Usage::

        async with MockTestApiClient("http://localhost:8000") as api:
            await api.login("alice", "secret123")
            session = QuizSession(1, api, api)
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        api_prefix: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_prefix = settings.API_PREFIX if api_prefix is None else api_prefix
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=settings.QUIZ_HTTP_TIMEOUT if timeout is None else timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "MockTestApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self.api_prefix}{path}"
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise TransportFailure(f"{method} {url} failed: {exc}") from exc

        status_code = response.status_code
        if status_code < 400:
            return response
        if status_code == 401:
            raise UnauthorizedError(_error_detail(response))
        if status_code == 403:
            raise ForbiddenError(_error_detail(response))
        if status_code == 404:
            raise NotFoundError(_error_detail(response))
        if status_code in (400, 422):
            raise ValidationFailure(_validation_errors(response))
        raise TransportFailure(
            f"{method} {url} returned {status_code}: {_error_detail(response)}"
        )

    # --- auth ---

    async def register(self, username: str, password: str) -> UserRead:
        response = await self._request(
            "POST", "/register", json={"username": username, "password": password}
        )
        return _decode(response, UserRead)

    async def login(self, username: str, password: str) -> UserRead:
        response = await self._request(
            "POST", "/login", json={"username": username, "password": password}
        )
        return _decode(response, UserRead)

    async def logout(self) -> None:
        await self._request("POST", "/logout")

    async def current_user(self) -> UserRead:
        response = await self._request("GET", "/user")
        return _decode(response, UserRead)

    # --- catalog ---

    async def list_courses(self, search: Optional[str] = None) -> List[CourseRead]:
        params = {"search": search} if search else None
        response = await self._request("GET", "/courses", params=params)
        return _decode_list(response, CourseRead)

    async def list_mock_tests(self) -> List[MockTestRead]:
        response = await self._request("GET", "/mock-tests")
        return _decode_list(response, MockTestRead)

    async def get_test(self, mock_test_id: int) -> MockTestRead:
        response = await self._request("GET", f"/mock-tests/{mock_test_id}")
        return _decode(response, MockTestRead)

    async def get_questions(self, mock_test_id: int) -> List[QuestionRead]:
        response = await self._request("GET", f"/mock-tests/{mock_test_id}/questions")
        return _decode_list(response, QuestionRead)

    async def get_review(self, mock_test_id: int) -> ReviewRead:
        response = await self._request("GET", f"/mock-tests/{mock_test_id}/review")
        return _decode(response, ReviewRead)

    # --- attempts ---

    async def create_attempt(self, submission: AttemptCreate) -> AttemptRead:
        body = submission.model_dump(mode="json", by_alias=True, exclude_none=True)
        response = await self._request("POST", "/test-attempts", json=body)
        return _decode(response, AttemptRead)

    async def list_attempts(self, mock_test_id: Optional[int] = None) -> List[AttemptRead]:
        params = {"mockTestId": mock_test_id} if mock_test_id is not None else None
        response = await self._request("GET", "/test-attempts", params=params)
        return _decode_list(response, AttemptRead)
