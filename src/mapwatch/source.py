"""Map page fetching and cell extraction.

The page is plain HTML; every ``.map-cell`` element carries three text
fragments (bottom-left, bottom-right, top-right). Extraction is
deliberately dumb: sanitizing and flag detection happen downstream.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import Any

import aiohttp
from bs4 import BeautifulSoup, Tag

from mapwatch._constants import (
    CELL_SELECTOR,
    LEFT_TEXT_SELECTOR,
    MAP_URL,
    RIGHT_TEXT_SELECTOR,
    TOP_TEXT_SELECTOR,
    USER_AGENT,
)
from mapwatch.exceptions import FetchError, MapwatchError
from mapwatch.models.snapshot import MapCell, Snapshot

_logger = logging.getLogger(__name__)


def _fragment(cell: Tag, selector: str) -> str:
    node = cell.select_one(selector)
    if node is None:
        return ""
    return node.get_text()


def parse_map_html(html: str) -> tuple[MapCell, ...]:
    """Extract every map cell from *html*, in document order.

    Raises :class:`FetchError` when the document holds no map cells,
    which is what error pages and layout changes look like.
    """
    soup = BeautifulSoup(html, "html.parser")
    cells = soup.select(CELL_SELECTOR)
    if not cells:
        raise FetchError(f"No {CELL_SELECTOR} elements in page")
    return tuple(
        MapCell(
            left_text=_fragment(cell, LEFT_TEXT_SELECTOR),
            right_text=_fragment(cell, RIGHT_TEXT_SELECTOR),
            top_text=_fragment(cell, TOP_TEXT_SELECTOR).strip(),
        )
        for cell in cells
    )


class MapPageSource:
    """Fetch the map page and turn it into a :class:`Snapshot`.

    Usage::

        async with MapPageSource(url) as source:
            snapshot = await source.fetch_snapshot()
    """

    def __init__(
        self,
        url: str = MAP_URL,
        *,
        session: aiohttp.ClientSession | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._url = url
        self._external_session = session is not None
        self._http_session = session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    @property
    def url(self) -> str:
        return self._url

    @property
    def is_open(self) -> bool:
        return self._http_session is not None and not self._http_session.closed

    async def __aenter__(self) -> MapPageSource:
        await self.open()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def open(self) -> None:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession(headers={"user-agent": USER_AGENT})

    async def close(self) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    def _require_session(self) -> aiohttp.ClientSession:
        if self._http_session is None:
            raise MapwatchError("Source not initialized. Use 'async with MapPageSource(...) as source:'")
        return self._http_session

    async def fetch_snapshot(self) -> Snapshot:
        """GET the map page and extract its cells.

        Raises
        ------
        FetchError
            Network failure, timeout, non-200 status, undecodable body,
            or a page without map cells.
        """
        session = self._require_session()
        fetched_at = datetime.now(UTC)

        _logger.debug("GET %s", self._url)

        try:
            async with session.get(self._url, timeout=self._timeout) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise FetchError(
                        f"HTTP {resp.status} from {self._url}: {text[:200]}",
                        status_code=resp.status,
                        url=self._url,
                    )
        except FetchError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise FetchError(f"Request to {self._url} failed: {exc!r}", url=self._url) from exc
        except UnicodeDecodeError as exc:
            raise FetchError(f"Undecodable response from {self._url}: {exc}", url=self._url) from exc

        try:
            cells = parse_map_html(text)
        except FetchError as exc:
            raise FetchError(f"{exc} ({self._url})", url=self._url) from exc

        return Snapshot(cells=cells, fetched_at=fetched_at, source_url=self._url)
