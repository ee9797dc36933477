# === NAVMAP v1 ===
# {
#   "module": "LlmsDotTxt.ManifestWatch.fetcher",
#   "purpose": "Single-GET manifest probe over an injectable HTTPX async client",
#   "sections": [
#     {
#       "id": "build-http-client",
#       "name": "build_http_client",
#       "anchor": "function-build-http-client",
#       "kind": "function"
#     },
#     {
#       "id": "manifestfetcher",
#       "name": "ManifestFetcher",
#       "anchor": "class-manifestfetcher",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Manifest probe client.

**Purpose**
-----------
Issue exactly one ``GET`` per detection attempt to the candidate URL and turn
whatever comes back into a :class:`ClassificationResult`. The probe never
raises for network trouble: transport errors, timeouts and non-2xx statuses
all become ``ABSENT``.

**Resource ownership**
----------------------
The HTTPX client is a handle owned by whoever constructs the fetcher. Pass a
client in to share a connection pool (tests pass one built on
``httpx.MockTransport``); otherwise the fetcher builds its own and closes it
on :meth:`ManifestFetcher.aclose` / ``async with`` exit. There is no
module-level client.

**Ordering**
------------
The response is streamed: status and ``Content-Type`` are classified first,
and the body is only downloaded when the headers are inconclusive. The whole
probe runs under one deadline (``http.timeout_s``); expiry counts as
``ABSENT`` with reason ``timeout``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx

from LlmsDotTxt.ManifestWatch.classifications import Classification, ReasonCode
from LlmsDotTxt.ManifestWatch.classifier import (
    ClassificationResult,
    classify_failure,
    classify_headers,
    classify_response,
)
from LlmsDotTxt.ManifestWatch.config.models import HttpClientConfig

LOGGER = logging.getLogger(__name__)

ACCEPT_HEADER = "text/plain"


def build_http_client(config: HttpClientConfig) -> httpx.AsyncClient:
    """Build an async client with the probe's timeouts and polite headers."""

    timeout = httpx.Timeout(config.timeout_s, connect=config.connect_timeout_s)
    client = httpx.AsyncClient(
        timeout=timeout,
        verify=config.verify_tls,
        follow_redirects=config.follow_redirects,
        headers={"User-Agent": config.user_agent, "Accept": ACCEPT_HEADER},
    )
    LOGGER.debug(
        "HTTP client created: UA=%s, timeout=%ss, connect=%ss",
        config.user_agent,
        config.timeout_s,
        config.connect_timeout_s,
    )
    return client


class ManifestFetcher:
    """Probe candidate manifest URLs and classify the responses."""

    def __init__(
        self,
        config: Optional[HttpClientConfig] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config or HttpClientConfig()
        self._owns_client = client is None
        self._client = client if client is not None else build_http_client(self._config)

    async def __aenter__(self) -> "ManifestFetcher":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
            LOGGER.debug("HTTP client closed")

    async def fetch(self, url: str) -> ClassificationResult:
        """Probe ``url`` once; never raises for network-level failures."""

        try:
            result = await asyncio.wait_for(self._probe(url), timeout=self._config.timeout_s)
        except (asyncio.TimeoutError, httpx.HTTPError, httpx.InvalidURL) as exc:
            result = classify_failure(exc)
        result = result.with_url(url)
        LOGGER.debug(
            "Probe %s -> %s (%s)",
            url,
            result.classification.value,
            result.reason.value,
            extra={"extra_fields": result.to_dict()},
        )
        return result

    async def _probe(self, url: str) -> ClassificationResult:
        async with self._client.stream(
            "GET", url, headers={"Accept": ACCEPT_HEADER}
        ) as response:
            status = response.status_code
            content_type = response.headers.get("content-type")
            decided = classify_headers(status, content_type)
            if decided is not None:
                return decided

            raw = await self._read_capped(response)
            if raw is None:
                return ClassificationResult(
                    Classification.ABSENT,
                    ReasonCode.PAYLOAD_TOO_LARGE,
                    status=status,
                    content_type=content_type,
                    detail=f"body exceeds {self._config.max_bytes} bytes",
                )
            return classify_response(status, content_type, self._decode(raw, response))

    async def _read_capped(self, response: httpx.Response) -> Optional[bytes]:
        limit = self._config.max_bytes
        buffer = bytearray()
        async for chunk in response.aiter_bytes():
            buffer.extend(chunk)
            if limit is not None and len(buffer) > limit:
                return None
        return bytes(buffer)

    @staticmethod
    def _decode(raw: bytes, response: httpx.Response) -> str:
        encoding = response.charset_encoding or "utf-8"
        try:
            return raw.decode(encoding, errors="replace")
        except LookupError:
            return raw.decode("utf-8", errors="replace")


__all__ = ("ACCEPT_HEADER", "ManifestFetcher", "build_http_client")
