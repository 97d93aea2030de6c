"""HTTP clients for the bibliographic services used by metadata lookup.

The clients only fetch raw JSON payloads; picking and normalizing fields
from those payloads is done by :mod:`clipsync.lookup.resolver`.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Protocol

import httpx

from clipsync.lookup.config import LookupSettings
from clipsync.lookup.models import LookupQuery


_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

Sleep = Callable[[float], Awaitable[None]]


@dataclass(slots=True)
class LookupRequestError(RuntimeError):
    """Domain error raised for failed lookup requests or invalid payloads."""

    source: str
    stage: str
    message: str

    def __str__(self) -> str:
        return f"{self.message} (source={self.source}, stage={self.stage})"


class BibliographicSource(Protocol):
    """A searchable bibliographic service returning its raw JSON payload."""

    name: str

    async def search(self, query: LookupQuery) -> Mapping[str, Any]: ...


class _JsonSearchClient:
    name = "http"

    def __init__(
        self,
        base_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 10.0,
        max_retries: int = 2,
        retry_base_seconds: float = 0.5,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        if retry_base_seconds < 0:
            raise ValueError("retry_base_seconds cannot be negative")

        self._base_url = base_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._max_retries = max_retries
        self._retry_base_seconds = retry_base_seconds
        self._sleep = sleep

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def _get_json(self, params: Mapping[str, Any]) -> Mapping[str, Any]:
        attempts = self._max_retries + 1
        last_error: Exception | None = None

        for attempt in range(attempts):
            try:
                response = await self._client.get(self._base_url, params=params)
            except httpx.TransportError as exc:
                last_error = exc
            else:
                if response.status_code not in _RETRYABLE_STATUS_CODES:
                    return self._decode(response)
                last_error = LookupRequestError(
                    source=self.name,
                    stage="request",
                    message=f"HTTP {response.status_code}",
                )

            if attempt < self._max_retries:
                await self._sleep(self._retry_base_seconds * (2**attempt))

        detail = str(last_error) if last_error is not None else "unknown lookup error"
        raise LookupRequestError(
            source=self.name,
            stage="request",
            message=f"Lookup request failed after {attempts} attempt(s): {detail}",
        ) from last_error

    def _decode(self, response: httpx.Response) -> Mapping[str, Any]:
        if response.is_error:
            raise LookupRequestError(source=self.name, stage="request", message=f"HTTP {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise LookupRequestError(source=self.name, stage="decode", message="Response is not JSON") from exc
        if not isinstance(payload, dict):
            raise LookupRequestError(source=self.name, stage="decode", message="Response payload is not an object")
        return payload


class GoogleBooksClient(_JsonSearchClient):
    """Google Books volumes search (no API key needed for low volume)."""

    name = "google"

    async def search(self, query: LookupQuery) -> Mapping[str, Any]:
        terms = f"intitle:{query.title}"
        if query.author:
            terms += f" inauthor:{query.author}"
        return await self._get_json(
            {
                "q": terms,
                "maxResults": 5,
                "printType": "books",
                "langRestrict": "en",
            }
        )


class OpenLibraryClient(_JsonSearchClient):
    """Open Library search API."""

    name = "openlibrary"

    async def search(self, query: LookupQuery) -> Mapping[str, Any]:
        params: dict[str, Any] = {"title": query.title, "limit": 5}
        if query.author:
            params["author"] = query.author
        return await self._get_json(params)


def build_default_sources(
    settings: LookupSettings,
    *,
    client: httpx.AsyncClient | None = None,
) -> tuple[GoogleBooksClient, OpenLibraryClient]:
    """Google Books as primary source, Open Library as secondary."""

    google = GoogleBooksClient(
        settings.google_books_url,
        client=client,
        timeout_seconds=settings.timeout_seconds,
        max_retries=settings.max_retries,
    )
    open_library = OpenLibraryClient(
        settings.open_library_url,
        client=client,
        timeout_seconds=settings.timeout_seconds,
        max_retries=settings.max_retries,
    )
    return google, open_library
