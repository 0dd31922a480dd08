"""Remote meal API client - implements IMealApi port.

Key Features:
- Bearer token auth, Idempotency-Key header on create
- Circuit breaker (5 failures -> 60s open)
- Retry logic (3 attempts, exponential backoff) on transport errors,
  429 and 5xx; 4xx responses are never retried
"""

from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
import structlog
from circuitbreaker import CircuitBreakerError, circuit
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from mealchat.domain.meals.entities import MealRecord, MealTemplate, RemoteMeal
from mealchat.domain.shared.errors import ExternalServiceError
from mealchat.infrastructure.http.models import (
    MealPayload,
    MealTemplatePayload,
    meal_record_to_json,
)

logger = structlog.get_logger(__name__)

RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


class MealApiClient:
    """
    HTTP client for the meal persistence API.

    Example:
        >>> async with MealApiClient("https://api.example.com/api", token="...") as client:
        ...     meal = await client.create_meal(record, idempotency_key="abc")
        ...     print(meal.id)
    """

    TIMEOUT_S = 8.0

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout_s: float = TIMEOUT_S,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_wait: Optional[wait_base] = None,
    ) -> None:
        """
        Initialize client.

        Args:
            base_url: API root (e.g. "https://host/api")
            token: Bearer token, if any
            timeout_s: Per-request timeout
            transport: Custom httpx transport (tests use httpx.MockTransport)
            retry_wait: Backoff strategy between retries
        """
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout_s = timeout_s
        self._transport = transport
        self._session: Optional[httpx.AsyncClient] = None

        with_retry = retry(
            stop=stop_after_attempt(3),
            wait=retry_wait or wait_exponential(multiplier=1, min=2, max=10),
            retry=retry_if_exception_type((httpx.TransportError, httpx.HTTPStatusError)),
            reraise=True,
        )(self._send)

        self._request: Callable[..., Awaitable[httpx.Response]] = circuit(
            failure_threshold=5,
            recovery_timeout=60,
            expected_exception=httpx.HTTPError,
            name=f"meal_api_{id(self)}",
        )(with_retry)

    async def __aenter__(self) -> "MealApiClient":
        """Async context manager entry."""
        self._session = self._build_session()
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.aclose()

    async def aclose(self) -> None:
        if self._session:
            await self._session.aclose()
            self._session = None

    async def create_meal(
        self, record: MealRecord, idempotency_key: Optional[str] = None
    ) -> RemoteMeal:
        """
        Create a meal entry.

        Raises:
            ExternalServiceError: On any failure after retries
        """
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        data = await self._call(
            "POST", "/meals", json=meal_record_to_json(record), headers=headers
        )

        try:
            meal = MealPayload.model_validate(data.get("meal"))
        except ValidationError as e:
            raise ExternalServiceError(f"Malformed meal response: {e}") from e

        logger.info("Meal created", meal_id=meal.id, idempotency_key=idempotency_key)
        return meal.to_remote()

    async def delete_meal(self, meal_id: str) -> None:
        """
        Delete a meal entry.

        Raises:
            ExternalServiceError: On any failure after retries
        """
        await self._call("DELETE", f"/meals/{meal_id}")
        logger.info("Meal deleted", meal_id=meal_id)

    async def use_favorite(self, favorite_id: str) -> MealTemplate:
        """
        Record a favorite use and return its meal template.

        Raises:
            ExternalServiceError: On any failure after retries
        """
        data = await self._call("POST", f"/meals/favorites/{favorite_id}/use")

        try:
            template = MealTemplatePayload.model_validate(data.get("mealTemplate"))
        except ValidationError as e:
            raise ExternalServiceError(f"Malformed favorite response: {e}") from e

        return template.to_template()

    async def _call(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        try:
            response = await self._request(method, path, json=json, headers=headers)
        except CircuitBreakerError as e:
            logger.warning("Meal API circuit open", method=method, path=path)
            raise ExternalServiceError(f"Meal API unavailable: {e}") from e
        except httpx.HTTPStatusError as e:
            logger.error(
                "Meal API server error",
                method=method,
                path=path,
                status_code=e.response.status_code,
            )
            raise ExternalServiceError(
                f"Meal API error {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.error("Meal API transport error", method=method, path=path, error=str(e))
            raise ExternalServiceError(f"Meal API unreachable: {e}") from e

        if response.status_code == 204 or not response.content:
            return {}

        try:
            body = response.json()
        except ValueError as e:
            raise ExternalServiceError("Meal API returned invalid JSON") from e

        if not isinstance(body, dict):
            raise ExternalServiceError("Meal API returned an unexpected payload")

        data = body.get("data")
        return data if isinstance(data, dict) else {}

    async def _send(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        session = self._session or self._ensure_session()

        logger.debug("Meal API request", method=method, path=path)
        response = await session.request(method, path, json=json, headers=headers)

        if response.status_code in RETRYABLE_STATUS:
            logger.warning(
                "Meal API retryable error",
                method=method,
                path=path,
                status_code=response.status_code,
            )
            response.raise_for_status()

        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning(
                "Meal API rejected request",
                method=method,
                path=path,
                status_code=response.status_code,
                message=message,
            )
            raise ExternalServiceError(message, status_code=response.status_code)

        return response

    def _ensure_session(self) -> httpx.AsyncClient:
        self._session = self._build_session()
        return self._session

    def _build_session(self) -> httpx.AsyncClient:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=httpx.Timeout(self._timeout_s),
            transport=self._transport,
        )


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"Meal API error {response.status_code}"
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or f"Meal API error {response.status_code}")
    return f"Meal API error {response.status_code}"
