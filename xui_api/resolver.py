"""Decomposition of fetched inbounds into cache entries.

One inbound yields entries for itself, for each client's options and for
each client's live stats, cross-indexed by email and by protocol identifier
(UUID for vmess/vless, password for trojan/shadowsocks).
"""

import logging
from typing import Optional, Sequence

from . import cache as keys
from .cache import KeyedCache
from .models import ClientOptionsBase, ClientStat, Inbound


class EntityResolver:
    """Populates and queries the client-related aliases of a :class:`KeyedCache`.

    Writes must happen while the client's gate is held; lookups are plain
    cache reads and may run on the fast path.
    """

    def __init__(self, cache: KeyedCache, logger: logging.Logger | logging.LoggerAdapter | None = None) -> None:
        self.cache = cache
        self._logger = logger or logging.getLogger(__name__)

    def absorb(self, inbound: Inbound) -> None:
        """Cache ``inbound`` and every client record embedded in it."""
        self.cache.set(keys.inbound_key(inbound.id), inbound)

        for options in inbound.clients():
            self.absorb_options(options, inbound.id)

        for stat in inbound.clientStats:
            self.absorb_stat(stat)
        self._logger.debug("Inbound %s saved in cache (%d clients)", inbound.id, len(inbound.clientStats))

    def absorb_options(self, options: ClientOptionsBase, inbound_id: int) -> None:
        identifier = options.identifier.value
        self.cache.set(keys.client_identifier_key(options.email), identifier)
        self.cache.set(keys.client_inbound_key(options.email), inbound_id)
        self.cache.set(keys.client_key("options", "email", options.email), options)
        self.cache.set(keys.client_key("options", "id", identifier), options)

    def absorb_stat(self, stat: ClientStat) -> None:
        """Cache ``stat`` under its email and, when known, its protocol identifier.

        A stat whose client has no options entry yet only gets the email key.
        """
        self.cache.set(keys.client_key("stat", "email", stat.email), stat)
        identifier = self.cache.get(keys.client_identifier_key(stat.email))
        if identifier:
            self.cache.set(keys.client_key("stat", "id", identifier), stat)

    def absorb_ips(self, email: str, ips: Sequence[str]) -> None:
        self.cache.set(keys.client_key("ips", "email", email), ips)
        identifier = self.cache.get(keys.client_identifier_key(email))
        if identifier:
            self.cache.set(keys.client_key("ips", "id", identifier), ips)

    def forget_ips(self, email: str) -> None:
        """Narrow invalidation of one client's ip list, under every alias."""
        stale = [keys.client_key("ips", "email", email)]
        identifier = self.cache.get(keys.client_identifier_key(email))
        if identifier:
            stale.append(keys.client_key("ips", "id", identifier))
        self.cache.delete(*stale)

    def lookup_options(self, identifier: str) -> Optional[ClientOptionsBase]:
        return self.cache.first(keys.client_lookup_keys("options", identifier))

    def lookup_stat(self, identifier: str) -> Optional[ClientStat]:
        return self.cache.first(keys.client_lookup_keys("stat", identifier))

    def lookup_ips(self, identifier: str) -> Optional[Sequence[str]]:
        return self.cache.first(keys.client_lookup_keys("ips", identifier))

    def lookup_inbound_id(self, identifier: str) -> Optional[int]:
        """Parent inbound of the client known by ``identifier`` (email or protocol id)."""
        options = self.lookup_options(identifier)
        if options is not None:
            inbound_id = self.cache.get(keys.client_inbound_key(options.email))
            if inbound_id is not None:
                return inbound_id
        stat = self.lookup_stat(identifier)
        return stat.inboundId if stat is not None else None
