"""API endpoint handlers for the 3X-UI panel.

This module provides endpoint classes that wrap the raw inbound and client
endpoints of the panel. They perform exactly one logical request per call,
know nothing about the cache, and expect the caller to hold the client's gate.
"""

import asyncio
from typing import TYPE_CHECKING, Any, List, Optional
from urllib.parse import quote

from . import util
from .errors import DBLockedError, OperationFailedError, ProtocolError, TransportError
from .models import ClientSettingsPayload, ClientStat, Inbound, InboundOptions

if TYPE_CHECKING:
    from .api import XUIClient

# statuses with which the panel turns away a request whose session it no longer knows
SESSION_EXPIRED_STATUSES = frozenset({302, 401, 404})


def _segment(value: Any) -> str:
    return quote(str(value), safe="@")


class BaseEndpoint:
    """Base class for API endpoint handlers.

    Provides the request pipeline shared by every endpoint: session
    establishment, the dual success check (HTTP 200 and ``success: true``),
    one re-login when the panel rejects the session, and retries while the
    panel database is locked.

    Attributes:
        _url: The base URL path for this endpoint group.
        client: Reference to the owning XUIClient instance.
    """
    _url: str

    def __init__(self, client: "XUIClient") -> None:
        self.client = client

    async def _request(self, method: str, caller_endpoint: str, *, json: Any | None = None) -> Any:
        """Perform one request and return the 'obj' field of the response.

        Args:
            method: "GET" or "POST".
            caller_endpoint: The endpoint path below this group's base URL.
            json: Optional JSON body.

        Raises:
            AuthenticationError: If a (re-)login was needed and failed.
            TransportError: On network failure or an unexpected status code.
            ProtocolError: If the panel reported failure or sent a malformed body.
            DBLockedError: If the database stayed locked for every retry.
        """
        endpoint_url = f"{self._url}{caller_endpoint}"
        session = self.client.session
        attempt = 0
        relogged = False
        while True:
            await session.ensure_session()
            self.client.logger.debug("%s /%s", method, endpoint_url)
            resp = await self.client.transport.request(method, endpoint_url, json=json,
                                                       headers=session.auth_headers())

            if resp.status_code in SESSION_EXPIRED_STATUSES and not relogged:
                self.client.logger.info("Session rejected by /%s, logging in again", endpoint_url)
                session.invalidate()
                relogged = True
                continue
            if resp.status_code != 200:
                raise TransportError(f"Server returned status code {resp.status_code}",
                                     endpoint=endpoint_url, status_code=resp.status_code)

            try:
                status = util.check_xui_response_validity(resp)
            except ProtocolError as exc:
                exc.endpoint = endpoint_url
                raise
            if status == "OK":
                return resp.json().get("obj")
            if status == "DB_LOCKED":
                attempt += 1
                if attempt >= self.client.max_retries:
                    raise DBLockedError("Database locked: max retries exceeded", endpoint=endpoint_url)
                await asyncio.sleep(self.client.retry_delay)
                continue
            panel_message = str(resp.json().get("msg") or "")
            raise OperationFailedError(f"Unsuccessful operation: {panel_message or 'no message'}",
                                       endpoint=endpoint_url, panel_message=panel_message)

    async def _simple_get(self, caller_endpoint: str) -> Any:
        return await self._request("GET", caller_endpoint)

    async def _simple_post(self, caller_endpoint: str, json: Any | None = None) -> Any:
        return await self._request("POST", caller_endpoint, json=json)


class Inbounds(BaseEndpoint):
    """Handler for inbound-related API endpoints.

    Endpoints:
        - /panel/api/inbounds/list
        - /panel/api/inbounds/get/{id}
        - /panel/api/inbounds/add
        - /panel/api/inbounds/update/{id}
        - /panel/api/inbounds/del/{id}
        - /panel/api/inbounds/resetAllTraffics
        - /panel/api/inbounds/resetAllClientTraffics/{id}
        - /panel/api/inbounds/createbackup
    """
    _url = "panel/api/inbounds/"

    async def get_all(self) -> List[Inbound]:
        """Retrieve all inbounds, with their client stats."""
        obj = await self._simple_get("list")
        return Inbound.from_list(obj)

    async def get_specific_inbound(self, inbound_id: int) -> Inbound:
        obj = await self._simple_get(f"get/{_segment(inbound_id)}")
        if obj is None:
            raise ProtocolError(f"Inbound {inbound_id} came back empty", endpoint=f"{self._url}get/{inbound_id}")
        return Inbound.from_obj(obj)

    async def add_inbound(self, options: InboundOptions) -> Inbound:
        obj = await self._simple_post("add", options.to_payload())
        return Inbound.from_obj(obj)

    async def update_inbound(self, inbound_id: int, options: InboundOptions) -> Optional[Inbound]:
        obj = await self._simple_post(f"update/{_segment(inbound_id)}", options.to_payload())
        return Inbound.from_obj(obj) if obj else None

    async def delete_inbound_by_id(self, inbound_id: int) -> None:
        await self._simple_post(f"del/{_segment(inbound_id)}")

    async def reset_all_traffics(self) -> None:
        await self._simple_post("resetAllTraffics")

    async def reset_all_client_traffics(self, inbound_id: int) -> None:
        await self._simple_post(f"resetAllClientTraffics/{_segment(inbound_id)}")

    async def create_backup(self) -> None:
        """Ask the panel to export its database (it is sent to the panel's bot)."""
        await self._simple_get("createbackup")


class Clients(BaseEndpoint):
    """Handler for client-related API endpoints.

    Endpoints:
        - /panel/api/inbounds/getClientTraffics/{email}
        - /panel/api/inbounds/addClient
        - /panel/api/inbounds/updateClient/{uuid|password}
        - /panel/api/inbounds/{inbound_id}/delClient/{uuid|password}
        - /panel/api/inbounds/clientIps/{email}
        - /panel/api/inbounds/clearClientIps/{email}
        - /panel/api/inbounds/{inbound_id}/resetClientTraffic/{email}
        - /panel/api/inbounds/delDepletedClients/{inbound_id}
        - /panel/api/inbounds/onlines
    """
    _url = "panel/api/inbounds/"

    async def get_client_traffics(self, identifier: str) -> Optional[ClientStat]:
        """Retrieve client statistics; the panel answers ``obj: null`` for unknown clients."""
        obj = await self._simple_get(f"getClientTraffics/{_segment(identifier)}")
        return ClientStat.from_obj(obj) if obj else None

    async def add_client(self, payload: ClientSettingsPayload) -> None:
        # settings must travel as a JSON string, not as a nested object
        await self._simple_post("addClient", payload.model_dump(by_alias=True))

    async def update_client(self, identifier: str, payload: ClientSettingsPayload) -> None:
        """Replace one client's options.

        Args:
            identifier: The client's protocol identifier *before* the update.
            payload: The parent inbound id and the single, complete client record.
        """
        if len(payload.settings.clients) != 1:
            raise ValueError(f"You can only update 1 client at a time, instead got {len(payload.settings.clients)}")
        await self._simple_post(f"updateClient/{_segment(identifier)}", payload.model_dump(by_alias=True))

    async def delete_client(self, inbound_id: int, identifier: str) -> None:
        await self._simple_post(f"{_segment(inbound_id)}/delClient/{_segment(identifier)}")

    async def client_ips(self, email: str) -> List[str]:
        obj = await self._simple_post(f"clientIps/{_segment(email)}")
        return util.parse_ip_list(obj)

    async def clear_client_ips(self, email: str) -> None:
        await self._simple_post(f"clearClientIps/{_segment(email)}")

    async def reset_client_traffic(self, inbound_id: int, email: str) -> None:
        await self._simple_post(f"{_segment(inbound_id)}/resetClientTraffic/{_segment(email)}")

    async def delete_depleted_clients(self, inbound_id: int = -1) -> None:
        """Delete depleted clients of one inbound, or of every inbound with -1."""
        await self._simple_post(f"delDepletedClients/{_segment(inbound_id)}")

    async def onlines(self) -> List[str]:
        obj = await self._simple_post("onlines")
        if obj is None:
            return []
        if not isinstance(obj, list):
            raise ProtocolError("Expected a list of online emails", endpoint=f"{self._url}onlines")
        return [str(email) for email in obj]
