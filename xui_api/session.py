import logging
from typing import Dict

from .errors import AuthenticationError, TransportError
from .transport import Transport

LOGIN_PATH = "login"


class SessionManager:
    """Owns the panel session token.

    The token is fetched lazily and kept until a request reveals that the
    panel no longer accepts it; there is no expiry timer. Callers must hold
    the client's gate while calling :meth:`ensure_session` or
    :meth:`invalidate`, which is what keeps concurrent callers from logging
    in twice.
    """

    def __init__(self, transport: Transport, username: str, password: str, *,
                 two_factor_code: str | None = None,
                 logger: logging.Logger | logging.LoggerAdapter | None = None) -> None:
        self._transport = transport
        self.username = username
        self._password = password
        self.two_factor_code = two_factor_code
        self._logger = logger or logging.getLogger(__name__)
        self._token: str = ""
        self.logins = 0

    @property
    def has_session(self) -> bool:
        return bool(self._token)

    def auth_headers(self) -> Dict[str, str]:
        return {"Cookie": self._token}

    def invalidate(self) -> None:
        if self._token:
            self._logger.debug("Session token discarded")
        self._token = ""

    async def ensure_session(self) -> None:
        """Log in unless a session token is already held.

        Raises:
            AuthenticationError: If the panel refused the login, answered
                without a session cookie, or could not be reached.
        """
        if self._token:
            return
        await self.login()

    async def login(self) -> None:
        self._token = ""
        payload = {
            "username": self.username,
            "password": self._password,
        }
        if self.two_factor_code:
            payload["twoFactorCode"] = self.two_factor_code

        self._logger.debug("POST /%s as %s", LOGIN_PATH, self.username)
        try:
            resp = await self._transport.request("POST", LOGIN_PATH, data=payload)
        except TransportError as exc:
            raise AuthenticationError(f"Login request failed: {exc}", endpoint=LOGIN_PATH) from exc

        if resp.status_code != 200:
            raise AuthenticationError(f"Login returned status code {resp.status_code}", endpoint=LOGIN_PATH)
        try:
            resp_json = resp.json()
        except ValueError as exc:
            raise AuthenticationError("Login answered with a non-JSON body", endpoint=LOGIN_PATH) from exc
        if not isinstance(resp_json, dict) or resp_json.get("success") is not True:
            raise AuthenticationError("Wrong credentials or failed login", endpoint=LOGIN_PATH)

        cookies = [header.split(";", 1)[0].strip() for header in resp.headers.get_list("set-cookie")]
        cookies = [cookie for cookie in cookies if cookie.partition("=")[2]]
        if not cookies:
            raise AuthenticationError("Login succeeded but no session cookie was set", endpoint=LOGIN_PATH)

        # the panel may set several cookies; the session one comes last
        self._token = cookies[-1]
        self.logins += 1
        self._logger.info("Session initialized")
