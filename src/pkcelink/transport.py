"""Asynchronous HTTP transport for token endpoint calls.

:class:`HttpTransport` wraps :class:`httpx.AsyncClient` and exposes the one
call the OAuth2 flow needs: a form-encoded POST that expects JSON back.
Network-level failures are mapped to
:class:`~pkcelink.exceptions.TransientNetworkError`; HTTP error statuses are
returned untouched so the caller can classify them (``invalid_grant`` vs.
anything else).

No timeout is configured.  Callers that need one wrap the awaiting
coroutine in :func:`asyncio.wait_for`, which cancels the request cleanly.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from pkcelink.exceptions import TransientNetworkError

logger = logging.getLogger(__name__)


class HttpTransport:
    """Form-POST transport for OAuth2 endpoints.

    Args:
        client: Optional pre-configured :class:`httpx.AsyncClient`.  Tests
            pass one built on :class:`httpx.MockTransport`.  When omitted a
            client without timeout is created lazily and owned by this
            transport.

    Example::

        async with HttpTransport() as transport:
            response = await transport.post_form(
                "https://idp.example.com/token", {"grant_type": "refresh_token"}
            )
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None) -> None:
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> HttpTransport:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=None, follow_redirects=True)
        return self._client

    async def post_form(
        self,
        url: str,
        data: dict[str, str],
        headers: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        """POST *data* as ``application/x-www-form-urlencoded``.

        Args:
            url: Absolute endpoint URL.
            data: Form fields.
            headers: Extra request headers, merged over the defaults.

        Returns:
            The :class:`httpx.Response`, whatever its status code.

        Raises:
            TransientNetworkError: On connection, DNS, protocol, redirect or
                decoding errors.
        """
        merged_headers = {"Accept": "application/json"}
        merged_headers.update(headers or {})
        try:
            response = await self._get_client().post(url, data=data, headers=merged_headers)
        except httpx.HTTPError as exc:
            logger.warning("Request to %s failed: %s", url, exc)
            raise TransientNetworkError(f"Request to {url} failed: {exc}") from exc
        logger.debug("POST %s -> %s", url, response.status_code)
        return response

    async def aclose(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
