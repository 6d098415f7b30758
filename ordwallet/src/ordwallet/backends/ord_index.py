"""
ord index server JSON API client.

Every request sends ``Accept: application/json`` so the server answers with
JSON instead of HTML.
"""

from __future__ import annotations

from typing import Any, TypeVar

import httpx
from loguru import logger
from pydantic import BaseModel, ValidationError

from ordwallet.constants import DEFAULT_INDEX_TIMEOUT
from ordwallet.errors import NotFoundError, TransportError
from ordwallet.models import InscriptionInfo, OutPoint, OutputInfo, RuneInfo, ServerStatus

ModelT = TypeVar("ModelT", bound=BaseModel)


class OrdIndexClient:
    """
    Client for a running ord index server.

    The server may be a background process started for the duration of a
    command, or a long-running instance configured by URL.
    """

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:80",
        timeout: float = DEFAULT_INDEX_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(timeout=timeout, headers={"Accept": "application/json"})

    async def _get(self, path: str) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            response = await self.client.get(url)
        except httpx.HTTPError as e:
            logger.error(f"Index request failed: GET {path} - {e}")
            raise TransportError(f"index request GET {path} failed: {e}") from e
        logger.trace(f"GET {path} -> {response.status_code}")
        return response

    def _json(self, response: httpx.Response, path: str) -> Any:
        if response.status_code != 200:
            logger.error(f"Index request GET {path} returned HTTP {response.status_code}")
            raise TransportError(f"index request GET {path} returned HTTP {response.status_code}")
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"index request GET {path} returned invalid JSON") from e

    def _validate(self, model: type[ModelT], response: httpx.Response, path: str) -> ModelT:
        try:
            return model.model_validate(self._json(response, path))
        except ValidationError as e:
            logger.error(f"Index request GET {path} returned an unexpected body: {e}")
            raise TransportError(f"index request GET {path} returned an unexpected body") from e

    async def get_block_count(self) -> int:
        """Number of blocks the index has processed (tip height + 1)."""
        response = await self._get("/blockcount")
        if response.status_code != 200:
            raise TransportError(
                f"index request GET /blockcount returned HTTP {response.status_code}"
            )
        try:
            return int(response.text.strip())
        except ValueError as e:
            raise TransportError(f"index returned invalid block count: {response.text!r}") from e

    async def get_output(self, outpoint: OutPoint) -> OutputInfo:
        path = f"/output/{outpoint}"
        return self._validate(OutputInfo, await self._get(path), path)

    async def get_inscription(self, inscription_id: str) -> InscriptionInfo:
        path = f"/inscription/{inscription_id}"
        response = await self._get(path)
        if response.is_client_error:
            raise NotFoundError(f"inscription {inscription_id} not found")
        return self._validate(InscriptionInfo, response, path)

    async def get_rune(self, spaced_rune: str) -> RuneInfo | None:
        """Rune details, or None if the index does not know the rune."""
        path = f"/rune/{spaced_rune}"
        response = await self._get(path)
        if response.is_client_error:
            return None
        return self._validate(RuneInfo, response, path)

    async def get_status(self) -> ServerStatus:
        return self._validate(ServerStatus, await self._get("/status"), "/status")

    async def close(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> OrdIndexClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
