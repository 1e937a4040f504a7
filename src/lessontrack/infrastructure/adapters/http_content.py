"""HTTP Content Provider: fetches lessons from the lessons API."""

import logging
from urllib.parse import quote

import httpx

from lessontrack.domain.constants import REQUEST_TIMEOUT
from lessontrack.domain.errors import ContentFetchError
from lessontrack.domain.models import Lesson
from lessontrack.domain.ports import ContentProvider


class HttpContentProvider(ContentProvider):
    """
    Reads ``GET {base_url}/api/lessons/content/{key}``.

    The response carries ``content`` and optionally ``frontmatter`` with a
    ``title``.
    """

    def __init__(self, base_url: str, client: httpx.AsyncClient | None = None):
        self.logger = logging.getLogger(__name__)
        self.base_url = base_url.rstrip("/")
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=REQUEST_TIMEOUT)
        return self._client

    async def fetch_content(self, lesson_key: str) -> Lesson:
        url = f"{self.base_url}/api/lessons/content/{quote(lesson_key)}"
        try:
            resp = await self._get_client().get(url)
        except httpx.HTTPError as e:
            raise ContentFetchError(lesson_key, str(e), retryable=True) from e

        if resp.status_code == 404:
            raise ContentFetchError(lesson_key, "not found")
        if resp.status_code >= 400:
            raise ContentFetchError(
                lesson_key, f"HTTP {resp.status_code}", retryable=resp.status_code >= 500
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise ContentFetchError(lesson_key, f"invalid JSON: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("content"), str):
            raise ContentFetchError(lesson_key, "response has no content")

        frontmatter = data.get("frontmatter") or {}
        title = frontmatter.get("title") if isinstance(frontmatter, dict) else None
        self.logger.debug(f"Fetched lesson '{lesson_key}' from {url}")
        return Lesson(
            key=lesson_key,
            content=data["content"],
            title=title,
            frontmatter=frontmatter if isinstance(frontmatter, dict) else {},
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
