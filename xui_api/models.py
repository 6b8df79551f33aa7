import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Mapping, Optional, Self, TypeAlias, Union

import pydantic
from pydantic import Field, field_serializer, field_validator, model_validator

from .base_model import BaseModel
from .errors import ValidationError
from .util import parse_json_blob, stringify_json_blob

timestamp: TypeAlias = int

ProtocolName: TypeAlias = Literal[
    "vmess", "vless", "trojan", "shadowsocks", "dokodemo-door", "socks", "http", "https", "wireguard",
]

logger = logging.getLogger(__name__)


class IdentifierKind(str, Enum):
    UUID = "uuid"
    PASSWORD = "password"


@dataclass(frozen=True)
class ClientIdentifier:
    """The protocol-specific identifier of a client: its UUID or its password."""
    kind: IdentifierKind
    value: str

    def __str__(self) -> str:
        return self.value


class ClientStat(BaseModel):
    """Live traffic counters of one client, as reported by the panel.

    Attributes:
        id: Internal database ID of the stat record.
        inboundId: The ID of the inbound this client belongs to.
        enable: Whether the client is currently enabled.
        email: The client's email identifier (unique within an inbound).
        up: Total uploaded bytes.
        down: Total downloaded bytes.
        expiryTime: Client expiry time as UNIX timestamp in ms (0 = never).
        total: Total data quota in bytes (0 = unlimited).
        reset: Counter for traffic resets.
    """
    id: int
    inboundId: int
    enable: bool
    email: str
    up: int = 0  # bytes
    down: int = 0  # bytes
    expiryTime: timestamp = 0
    total: int = 0  # bytes
    reset: int = 0
    # only sent by newer panel builds
    uuid: Optional[str] = None
    subId: Optional[str] = None
    allTime: Optional[int] = None
    lastOnline: Optional[timestamp] = None


class ClientOptionsBase(BaseModel):
    """Configuration-side record of a client, embedded in ``settings.clients``.

    Concrete variants fix which wire field identifies the client: ``id`` (a
    UUID) for vmess/vless, ``password`` for trojan/shadowsocks. Exactly one of
    the two may be set.
    """
    identifier_kind: ClassVar[IdentifierKind]
    identifier_attr: ClassVar[str]
    identifier_field: ClassVar[str]
    other_identifier_field: ClassVar[str]

    email: str
    limit_ip: Annotated[int, Field(alias="limitIp")] = 0
    total_gb: Annotated[int, Field(alias="totalGB")] = 0  # bytes, despite the name
    expiry_time: Annotated[timestamp, Field(alias="expiryTime")] = 0
    enable: bool = True
    tg_id: Annotated[Union[int, str, None], Field(alias="tgId")] = None
    sub_id: Annotated[Optional[str], Field(alias="subId")] = None
    reset: Optional[int] = None

    @model_validator(mode="after")
    def check_identifier(self) -> Self:
        if not getattr(self, self.identifier_attr):
            raise ValueError(f"{self.identifier_field!r} must be a non-empty string")
        if (self.model_extra or {}).get(self.other_identifier_field):
            raise ValueError("a client carries either 'id' or 'password', never both")
        return self

    @property
    def identifier(self) -> ClientIdentifier:
        return ClientIdentifier(self.identifier_kind, getattr(self, self.identifier_attr))

    def merged(self, changes: Mapping[str, Any]) -> Self:
        """Shallow-merge ``changes`` onto a copy of these options.

        Args:
            changes: Field values keyed by python or wire name.

        Returns:
            A new options record of the same variant.

        Raises:
            ValidationError: If the merged record is no longer valid.
        """
        data = self.to_payload()
        data.update(self.wire_keys(changes))
        try:
            return type(self).model_validate(data)
        except pydantic.ValidationError as exc:
            raise ValidationError(f"Invalid options for client {self.email}: {exc.errors()[0]['msg']}") from exc


class _UuidClientOptions(ClientOptionsBase):
    identifier_kind: ClassVar[IdentifierKind] = IdentifierKind.UUID
    identifier_attr: ClassVar[str] = "uuid"
    identifier_field: ClassVar[str] = "id"
    other_identifier_field: ClassVar[str] = "password"

    uuid: Annotated[str, Field(alias="id")]  # yes, the panel calls it "id"


class _PasswordClientOptions(ClientOptionsBase):
    identifier_kind: ClassVar[IdentifierKind] = IdentifierKind.PASSWORD
    identifier_attr: ClassVar[str] = "password"
    identifier_field: ClassVar[str] = "password"
    other_identifier_field: ClassVar[str] = "id"

    password: str


class VmessClientOptions(_UuidClientOptions):
    pass


class VlessClientOptions(_UuidClientOptions):
    flow: Optional[str] = None  # "", "xtls-rprx-vision", "xtls-rprx-vision-udp443"


class TrojanClientOptions(_PasswordClientOptions):
    flow: Optional[str] = None


class ShadowsocksClientOptions(_PasswordClientOptions):
    method: Optional[str] = None


ClientOptions: TypeAlias = Union[
    VmessClientOptions, VlessClientOptions, TrojanClientOptions, ShadowsocksClientOptions,
]

CLIENT_OPTIONS_BY_PROTOCOL: Dict[str, type[ClientOptionsBase]] = {
    "vmess": VmessClientOptions,
    "vless": VlessClientOptions,
    "trojan": TrojanClientOptions,
    "shadowsocks": ShadowsocksClientOptions,
}


def parse_client_options(data: Mapping[str, Any] | ClientOptionsBase,
                         protocol: str | None = None) -> ClientOptionsBase:
    """Pick the client options variant for ``data`` and validate it.

    The parent inbound's protocol decides the variant when it is one of the
    four client-carrying protocols. Otherwise the identifier field decides:
    ``id`` means vless (with ``flow``) or vmess, ``password`` means
    shadowsocks (with ``method``) or trojan.

    Args:
        data: Raw client settings in wire form, or an already parsed record.
        protocol: The protocol of the parent inbound, if known.

    Returns:
        The parsed options record.

    Raises:
        ValidationError: If the record has no identifier, both
            identifiers, or otherwise fails validation.
    """
    if isinstance(data, ClientOptionsBase):
        return data
    options_cls = CLIENT_OPTIONS_BY_PROTOCOL.get(protocol or "")
    if options_cls is None:
        has_id, has_password = bool(data.get("id")), bool(data.get("password"))
        if has_id == has_password:
            raise ValidationError(
                f"Client {data.get('email')!r} must carry exactly one of 'id' or 'password'")
        if has_id:
            options_cls = VlessClientOptions if "flow" in data else VmessClientOptions
        else:
            options_cls = ShadowsocksClientOptions if "method" in data else TrojanClientOptions
    try:
        return options_cls.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError(
            f"Invalid options for client {data.get('email')!r}: {exc.errors()[0]['msg']}") from exc


class _EmbeddedBlobs(BaseModel):
    """The three JSON blobs an inbound carries as text over the wire."""
    settings: Dict[str, Any] = {}
    streamSettings: Dict[str, Any] = {}
    sniffing: Dict[str, Any] = {}

    # noinspection PyNestedDecorators
    @field_validator("settings", "streamSettings", "sniffing", mode="before")
    @classmethod
    def parse_json_fields(cls, value: Any) -> Dict[str, Any]:
        """Parse JSON string fields into dictionaries (empty string -> {})."""
        return parse_json_blob(value)

    @field_serializer("settings", "streamSettings", "sniffing")
    def stringify_json_fields(self, value: Dict[str, Any]) -> str:
        """When sending data back to the API, these fields must be JSON strings."""
        return stringify_json_blob(value)


class Inbound(_EmbeddedBlobs):
    """Represents a configured listening endpoint on the panel.

    Attributes:
        id: The unique identifier for this inbound.
        up: Total uploaded bytes through this inbound.
        down: Total downloaded bytes through this inbound.
        total: Total data limit in bytes.
        remark: Human-readable name/description for the inbound.
        enable: Whether the inbound is currently enabled.
        expiryTime: Inbound expiry time as UNIX timestamp (0 = never).
        clientStats: Live statistics of every configured client.
        listen: The IP address the inbound listens on.
        port: The port number the inbound listens on.
        protocol: One of the known protocols, or any newer protocol name.
        settings: Decoded settings, including the ``clients`` array.
        streamSettings: Decoded stream configuration.
        tag: Internal tag identifier for routing.
        sniffing: Decoded sniffing configuration.
    """
    id: int
    up: int = 0  # bytes
    down: int = 0  # bytes
    total: int = 0  # bytes
    remark: str = ""
    enable: bool = True
    expiryTime: timestamp = 0
    clientStats: List[ClientStat] = []
    listen: str = ""
    port: int
    protocol: Union[ProtocolName, str]
    tag: str = ""
    # only sent by newer panel builds
    allTime: Optional[int] = None
    trafficReset: Optional[str] = None  # "never", "daily", "weekly", "monthly"
    lastTrafficResetTime: Optional[timestamp] = None

    # noinspection PyNestedDecorators
    @field_validator("clientStats", mode="before")
    @classmethod
    def null_stats_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    def clients(self) -> List[ClientOptionsBase]:
        """Return the typed options of every client in ``settings.clients``.

        Entries the panel stores in a shape this client cannot identify are
        skipped with a warning rather than failing the whole inbound.
        """
        parsed = []
        for raw in self.settings.get("clients") or []:
            try:
                parsed.append(parse_client_options(raw, self.protocol))
            except ValidationError as exc:
                logger.warning("Inbound %s: skipping client: %s", self.id, exc)
        return parsed


class InboundOptions(_EmbeddedBlobs):
    """Payload for adding an inbound, or the merged record sent on update."""
    enable: bool = True
    remark: str = ""
    listen: str = ""
    port: int
    protocol: Union[ProtocolName, str]
    expiryTime: timestamp = 0


class ClientSettingsPayload(pydantic.BaseModel):
    """Write payload of the client endpoints.

    Attributes:
        inbound_id: The ID of the parent inbound (aliased as 'id').
        settings: The settings object containing the client list.
    """
    model_config = pydantic.ConfigDict(populate_by_name=True)

    class Settings(pydantic.BaseModel):
        clients: List[ClientOptions]

    inbound_id: Annotated[int, Field(alias="id")]
    settings: Settings

    @field_serializer("settings")
    def stringify_settings(self, value: Settings) -> str:
        """The 3X-UI API expects settings as a JSON string, not an object."""
        return json.dumps({"clients": [client.to_payload() for client in value.clients]}, ensure_ascii=False)

    @classmethod
    def for_clients(cls, inbound_id: int, clients: List[ClientOptionsBase]) -> Self:
        return cls(inbound_id=inbound_id, settings=cls.Settings(clients=clients))
