from http.cookiejar import CookieJar, DefaultCookiePolicy
from typing import Any, Mapping

import httpx
from httpx import AsyncClient, Response

from .errors import TransportError


class Transport:
    """Thin wrapper over one ``httpx.AsyncClient`` bound to the panel root.

    It keeps no cookie jar: the session token is owned by
    :class:`~xui_api.session.SessionManager` and attached per request.
    Network failures surface as :class:`TransportError`.
    """

    def __init__(self, base_url: str, *, timeout: float = 10.0, verify: bool = True,
                 transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.verify = verify
        self._transport = transport
        self._client: AsyncClient | None = None

    @property
    def connected(self) -> bool:
        return self._client is not None

    def connect(self) -> None:
        if self._client is not None:
            return
        self._client = AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            verify=self.verify,
            transport=self._transport,
            cookies=CookieJar(policy=DefaultCookiePolicy(allowed_domains=[])),
            headers={"Accept": "application/json"},
        )

    async def request(self, method: str, path: str, *,
                      data: Mapping[str, Any] | None = None,
                      json: Any | None = None,
                      headers: Mapping[str, str] | None = None) -> Response:
        """Send one request relative to the panel root.

        Raises:
            TransportError: If the request could not be completed.
        """
        if self._client is None:
            self.connect()
        try:
            return await self._client.request(method, path, data=data, json=json, headers=headers)
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {path} failed: {exc!r}", endpoint=path) from exc

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
