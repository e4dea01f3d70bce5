"""Read-only access to the hosted room_stats table over the Supabase REST API."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Mapping, Optional

import httpx

from services.errors import FailureKind, FetchError

logger = logging.getLogger(__name__)


class SupabaseRoomStatsSource:
    """Fetches the most recent rows of a PostgREST table with an anon key."""

    def __init__(
        self,
        url: str,
        anon_key: str,
        table: str = "room_stats",
        timestamp_column: str = "timestamp",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.table = table
        self.timestamp_column = timestamp_column
        self._client = httpx.AsyncClient(
            base_url=f"{url.rstrip('/')}/rest/v1",
            headers={
                "apikey": anon_key,
                "Authorization": f"Bearer {anon_key}",
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_recent(self, limit: int) -> List[Mapping[str, Any]]:
        """Return up to ``limit`` rows, newest first."""
        params: Dict[str, Any] = {
            "select": "*",
            "order": f"{self.timestamp_column}.desc",
            "limit": limit,
        }
        start_time = time.perf_counter()
        try:
            response = await self._client.get(f"/{self.table}", params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise self._status_error(exc) from exc
        except httpx.RequestError as exc:
            raise FetchError(
                FailureKind.network,
                f"Could not reach the data store: {exc}",
            ) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchError(
                FailureKind.malformed_response,
                "Data store returned a non-JSON response.",
                status_code=response.status_code,
            ) from exc

        if not isinstance(payload, list):
            raise FetchError(
                FailureKind.malformed_response,
                "Data store returned an unexpected payload shape.",
                status_code=response.status_code,
            )

        logger.debug(
            "Fetched room_stats rows",
            extra={
                "row_count": len(payload),
                "limit": limit,
                "fetch_ms": int((time.perf_counter() - start_time) * 1000),
            },
        )
        return payload

    def _status_error(self, exc: httpx.HTTPStatusError) -> FetchError:
        status_code = exc.response.status_code
        detail: Optional[str]
        try:
            data = exc.response.json()
            detail = data.get("message") if isinstance(data, dict) else None
        except ValueError:
            detail = exc.response.text.strip() or None

        if status_code in (401, 403):
            kind = FailureKind.authorization
        elif status_code == 404:
            kind = FailureKind.missing_table
        else:
            kind = FailureKind.http

        message = f"Data store responded with {status_code}: {detail or 'no detail provided.'}"
        return FetchError(kind, message, status_code=status_code)
