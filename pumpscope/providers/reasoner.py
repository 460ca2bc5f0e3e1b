"""Async client for the remote reasoning (doc-search) backend."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from ..config import settings
from ..errors import MalformedArguments, TransportError
from ..types.reasoner import ReasonerMessage, ReasonerRequest, ReasonerResponse

logger = logging.getLogger(__name__)


class ReasonerClient:
    """Posts conversation turns to ``/doc-search/search/{project_id}``."""

    name = "reasoner"

    def __init__(
        self,
        *,
        endpoint: Optional[str] = None,
        api_key: Optional[str] = None,
        default_project_id: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        env_endpoint, env_api_key, env_project_id = settings.reasoner_target
        self.endpoint = (endpoint if endpoint is not None else env_endpoint).rstrip("/")
        self.api_key = api_key if api_key is not None else env_api_key
        self.default_project_id = default_project_id if default_project_id is not None else env_project_id
        self.timeout_s = timeout_s or settings.request_timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.endpoint,
                timeout=self.timeout_s,
                headers={"Content-Type": "application/json", "apikey": self.api_key},
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def ready(self) -> bool:
        return bool(self.endpoint and self.api_key)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "Reasoning backend not configured"}
        return {"status": "healthy", "project_id": self.default_project_id}

    def project_for(self, routing_context: str) -> str:
        return routing_context or self.default_project_id

    async def search(self, texts: List[str], routing_context: str = "") -> ReasonerResponse:
        project_id = self.project_for(routing_context)
        request = ReasonerRequest(messages=[ReasonerMessage(text=text) for text in texts])
        body = request.model_dump(by_alias=True)
        logger.info(f"Reasoner request: project={project_id} messages={len(texts)}")

        try:
            response = await self._get_client().post(f"/doc-search/search/{project_id}", json=body)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise TransportError(
                f"Reasoner API error ({status}): {exc.response.text}",
                upstream=self.name,
                status_code=status,
            ) from exc
        except httpx.RequestError as exc:
            raise TransportError(f"Reasoner request error: {exc}", upstream=self.name) from exc
        except ValueError as exc:
            raise TransportError("Reasoner returned a non-JSON body", upstream=self.name) from exc

        try:
            return ReasonerResponse.model_validate(data)
        except ValidationError as exc:
            raise MalformedArguments("Reasoner response failed to decode", function=self.name) from exc
