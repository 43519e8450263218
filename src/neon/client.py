from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from .._util import NEON_API_URL, Result
from ..exceptions import TrifectaRedirectError, TrifectaRemoteError, TrifectaTransportError

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class NeonApi:
    API_TIMEOUT_SECONDS: float = 10.0

    def __init__(
        self,
        api_key: str,
        *,
        endpoint: str = NEON_API_URL,
        client: httpx.AsyncClient | None = None,
        timeout: float | httpx.Timeout | None = None,
    ) -> None:
        self._endpoint = endpoint.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout if timeout is not None else self.API_TIMEOUT_SECONDS
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self._endpoint,
            timeout=self._timeout,
            follow_redirects=False,
        )

    async def __aenter__(self) -> NeonApi:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

    async def _send(
        self,
        endpoint: str,
        method: str,
        body: Any | None,
        params: Mapping[str, str] | None,
    ) -> Result[httpx.Response]:
        url = f"{self._endpoint}{endpoint}"
        try:
            response = await self._client.request(
                method,
                url,
                headers=self._headers(),
                json=body,
                params=params,
                follow_redirects=False,
            )
        except (httpx.HTTPError, OSError) as exc:
            logger.debug("Transport failure for %s %s", method, endpoint, exc_info=True)
            error = TrifectaTransportError(f"{method} {endpoint} failed: {exc}")
            error.__cause__ = exc
            return Result.fail(error)

        if response.is_redirect or 300 <= response.status_code < 400:
            location = response.headers.get("location")
            logger.error("Refusing redirect from %s %s to %s", method, endpoint, location)
            return Result.fail(TrifectaRedirectError(location))

        if not response.is_success:
            return Result.fail(TrifectaRemoteError(response.status_code, response.text))

        return Result.ok(response)

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        body: Any | None = None,
        *,
        params: Mapping[str, str] | None = None,
    ) -> Result[Any]:
        """Issue a single call against the control plane.

        Redirects are never followed: credentials must not be replayed against a host
        other than the configured endpoint, so any 3xx is reported as a failure. No
        retries happen at this layer.
        """

        sent = await self._send(endpoint, method, body, params)
        if not sent.success:
            return sent
        return _decode(sent.value)

    async def request_model(
        self,
        model: type[ModelT],
        endpoint: str,
        method: str = "GET",
        body: Any | None = None,
        *,
        params: Mapping[str, str] | None = None,
    ) -> Result[ModelT]:
        """Like `request`, validating the JSON payload into `model`."""

        sent = await self._send(endpoint, method, body, params)
        if not sent.success:
            return sent
        response = sent.value
        result = _decode(response)
        if not result.success:
            return result
        try:
            return Result.ok(model.model_validate(result.value if result.value is not None else {}))
        except ValidationError as exc:
            error = TrifectaRemoteError(response.status_code, f"Unexpected response for {endpoint}: {exc}")
            error.__cause__ = exc
            return Result.fail(error)


def _decode(response: httpx.Response) -> Result[Any]:
    if not response.content:
        return Result.ok()

    try:
        return Result.ok(response.json())
    except ValueError as exc:
        error = TrifectaRemoteError(response.status_code, response.text)
        error.__cause__ = exc
        return Result.fail(error)
