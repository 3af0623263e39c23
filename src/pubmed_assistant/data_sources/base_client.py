"""
Base client for external data source clients.

Provides: request pacing, a bounded per-call timeout, structured logging,
and the exception hierarchy shared by every client.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Iterable
from typing import Any, TypeVar

import aiohttp
from pydantic import BaseModel

from pubmed_assistant.constants import DEFAULT_REQUEST_DELAY, DEFAULT_TIMEOUT

logger = logging.getLogger("pubmed_assistant.data_sources")

_T = TypeVar("_T")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ClientConfig(BaseModel):
    """Pacing and timeout settings for a client."""

    delay_seconds: float = DEFAULT_REQUEST_DELAY
    timeout_seconds: float = DEFAULT_TIMEOUT


# ---------------------------------------------------------------------------
# Request pacer (single-concurrency, fixed delay)
# ---------------------------------------------------------------------------


class RequestPacer:
    """
    Fixed-delay request gate.

    Every `wait()` sleeps `delay_seconds` while holding a lock, so callers
    sharing a pacer go out one at a time and never closer together than the
    delay.  `paced()` wraps an iterable and waits before yielding each item.
    """

    def __init__(self, delay_seconds: float = DEFAULT_REQUEST_DELAY):
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")
        self.delay = delay_seconds
        self._lock = asyncio.Lock()

    async def wait(self) -> None:
        async with self._lock:
            if self.delay > 0:
                logger.debug("Pacer: sleeping %.2fs", self.delay)
                await asyncio.sleep(self.delay)

    async def paced(self, items: Iterable[_T]) -> AsyncIterator[_T]:
        for item in items:
            await self.wait()
            yield item


# ---------------------------------------------------------------------------
# Request context (for structured logging)
# ---------------------------------------------------------------------------


class RequestContext(BaseModel):
    """Metadata attached to every outgoing request for logging."""

    source: str  # e.g. "pubmed"
    method: str  # e.g. "search_ids"
    params: dict[str, Any] = {}


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class DataSourceError(Exception):
    """Base exception for data source failures."""

    def __init__(self, source: str, message: str, status_code: int | None = None):
        self.source = source
        self.status_code = status_code
        super().__init__(f"[{source}] {message}")


class RetrievalFailed(DataSourceError):
    """Raised when a stage the whole search depends on fails."""

    pass


class AbstractUnavailable(DataSourceError):
    """Raised when a single paper's abstract cannot be fetched or parsed."""

    pass


# ---------------------------------------------------------------------------
# Base client
# ---------------------------------------------------------------------------


class BaseClient(ABC):
    """
    Abstract base for external API clients.

    Subclasses implement `_source_name` and their own typed methods that
    call `_rest_get()` or `_rest_get_xml()`.  No retries are attempted:
    a failed call raises `DataSourceError` straight away.
    """

    def __init__(self, config: ClientConfig | None = None):
        self.config = config or ClientConfig()
        self.pacer = RequestPacer(self.config.delay_seconds)
        self._session: aiohttp.ClientSession | None = None

    @property
    @abstractmethod
    def _source_name(self) -> str:
        """Identifier for this data source, e.g. 'pubmed'."""
        ...

    # -- Session management --------------------------------------------------

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()

    # -- Core request --------------------------------------------------------

    async def _request(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        as_text: bool = False,
        context: RequestContext | None = None,
    ) -> Any:
        """
        Make a single GET request and return the decoded body.

        Parameters
        ----------
        url : str
            Full URL.
        params : dict, optional
            Query string parameters.
        as_text : bool
            Return the raw body text instead of decoded JSON.
        context : RequestContext, optional
            Logging context.
        """
        ctx = context or RequestContext(source=self._source_name, method="unknown")
        start = time.monotonic()

        logger.info("Request [%s.%s] url=%s", ctx.source, ctx.method, url)

        try:
            session = await self._get_session()
            resp = await session.get(url, params=params)

            if resp.status >= 400:
                body = await resp.text()
                raise DataSourceError(
                    ctx.source,
                    f"HTTP {resp.status}: {body[:500]}",
                    status_code=resp.status,
                )

            if as_text:
                data = await resp.text()
            else:
                data = await resp.json(content_type=None)

        except asyncio.TimeoutError:
            elapsed = time.monotonic() - start
            raise DataSourceError(ctx.source, f"Timeout after {elapsed:.1f}s")
        except aiohttp.ClientError as e:
            raise DataSourceError(ctx.source, f"Connection error: {e}") from e
        except ValueError as e:
            raise DataSourceError(ctx.source, f"Invalid JSON: {e}") from e

        logger.info(
            "Success [%s.%s] elapsed=%.2fs",
            ctx.source,
            ctx.method,
            time.monotonic() - start,
        )
        return data

    # -- Convenience methods for subclasses ----------------------------------

    async def _rest_get(
        self,
        url: str,
        params: dict[str, Any],
        *,
        context: RequestContext | None = None,
    ) -> Any:
        """GET a JSON endpoint and return the decoded payload."""
        return await self._request(url, params=params, context=context)

    async def _rest_get_xml(
        self,
        url: str,
        params: dict[str, Any],
        *,
        context: RequestContext | None = None,
    ) -> str:
        """GET an XML endpoint and return the raw body text."""
        return await self._request(url, params=params, as_text=True, context=context)
