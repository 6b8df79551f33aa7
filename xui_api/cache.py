"""Short-lived keyed read cache.

One entity is usually reachable under several alias keys (a client by email
and by protocol identifier). Aliases are independent entries: each holds its
own copy and expires on its own, so whoever refreshes one alias refreshes all
of them.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Literal, Optional

DEFAULT_TTL = 10  # seconds

INBOUNDS_KEY = "inbounds"
ONLINE_CLIENTS_KEY = "clients:online"

ClientRecord = Literal["options", "stat", "ips"]
AliasNamespace = Literal["email", "id"]


def inbound_key(inbound_id: int) -> str:
    return f"inbound:{inbound_id}"


def client_key(record: ClientRecord, namespace: AliasNamespace, value: str) -> str:
    """Key of one client record under one alias.

    Emails and protocol identifiers live in separate namespaces, so an email
    that happens to equal another client's password never overwrites it.
    """
    return f"client:{record}:{namespace}:{value}"


def client_lookup_keys(record: ClientRecord, identifier: str) -> List[str]:
    """Keys to probe for a caller-supplied identifier, email namespace first."""
    return [client_key(record, "email", identifier), client_key(record, "id", identifier)]


def client_identifier_key(email: str) -> str:
    """Key of the email -> protocol identifier lookup."""
    return f"client:identifier:{email}"


def client_inbound_key(email: str) -> str:
    """Key of the email -> parent inbound id lookup."""
    return f"client:inbound:{email}"


@dataclass(frozen=True)
class _Entry:
    value: Any
    expires_at: Optional[float]


class KeyedCache:
    """A TTL keyed store with lazy expiry.

    Expired entries are dropped when they are next looked at; there is no
    background sweep.

    Attributes:
        ttl: Default time-to-live in seconds. 0 disables expiry.
    """

    def __init__(self, ttl: float = DEFAULT_TTL, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: Dict[str, _Entry] = {}
        self._clock = clock
        self.ttl = ttl

    @property
    def ttl(self) -> float:
        return self._ttl

    @ttl.setter
    def ttl(self, value: float) -> None:
        if value < 0:
            raise ValueError("Cache TTL must be 0 (no expiry) or a positive number of seconds")
        self._ttl = value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        ttl = self._ttl if ttl is None else ttl
        expires_at = self._clock() + ttl if ttl > 0 else None
        self._entries[key] = _Entry(value, expires_at)

    def _live_entry(self, key: str) -> Optional[_Entry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._live_entry(key)
        return default if entry is None else entry.value

    def has(self, key: str) -> bool:
        return self._live_entry(key) is not None

    def first(self, keys: Iterable[str], default: Any = None) -> Any:
        """Value of the first live key among ``keys``."""
        for key in keys:
            entry = self._live_entry(key)
            if entry is not None:
                return entry.value
        return default

    def delete(self, *keys: str) -> None:
        for key in keys:
            self._entries.pop(key, None)

    def invalidate_all(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return sum(1 for key in list(self._entries) if self._live_entry(key) is not None)

    def __contains__(self, key: str) -> bool:
        return self.has(key)
