"""HTTP client for the code-intelligence service."""

from __future__ import annotations

import logging
from typing import Any, Protocol, Sequence

import httpx

from .config import ServiceConfig
from .protocol import Command, MalformedResponseError


logger = logging.getLogger(__name__)


class ServiceClient(Protocol):
    def send(self, commands: Sequence[Command]) -> list[Any]: ...

    def notify(self, command: Command) -> None: ...

    def close(self) -> None: ...


class ServiceError(RuntimeError):
    def __init__(self, status_code: int, payload: Any) -> None:
        super().__init__(f"Code-intelligence request failed ({status_code})")
        self.status_code = status_code
        self.payload = payload


class HttpServiceClient:
    def __init__(
        self,
        config: ServiceConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config = config
        self._client = httpx.Client(
            base_url=config.base_url.rstrip("/"),
            timeout=config.timeout_seconds,
            transport=transport,
        )

    def send(self, commands: Sequence[Command]) -> list[Any]:
        payload = {"commands": [command.to_payload() for command in commands]}
        response = self._post("/commands", payload)
        try:
            body = response.json()
        except ValueError as exc:
            raise MalformedResponseError("Response body is not JSON") from exc
        results = body.get("commands") if isinstance(body, dict) else None
        if not isinstance(results, list):
            raise MalformedResponseError("Response is missing the 'commands' list")
        return results

    def notify(self, command: Command) -> None:
        self._post("/notify", command.to_payload())

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpServiceClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _post(self, path: str, payload: dict[str, Any]) -> httpx.Response:
        try:
            response = self._client.post(path, json=payload)
        except httpx.RequestError as exc:
            raise ServiceError(0, str(exc)) from exc
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            try:
                body: Any = response.json()
            except ValueError:
                body = response.text
            raise ServiceError(response.status_code, body) from exc
        logger.debug("POST %s -> %s", path, response.status_code)
        return response
