"""Async client for the 3X-UI panel API."""

import logging

from .api import XUIClient
from .cache import KeyedCache
from .errors import (AuthenticationError, DBLockedError, ErrorKind, OperationFailedError, ProtocolError, Result,
                     TransportError, ValidationError, XUIError)
from .models import (ClientIdentifier, ClientOptionsBase, ClientStat, IdentifierKind, Inbound, InboundOptions,
                     ShadowsocksClientOptions, TrojanClientOptions, VlessClientOptions, VmessClientOptions,
                     parse_client_options)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "XUIClient",
    "KeyedCache",
    "AuthenticationError",
    "DBLockedError",
    "ErrorKind",
    "OperationFailedError",
    "ProtocolError",
    "Result",
    "TransportError",
    "ValidationError",
    "XUIError",
    "ClientIdentifier",
    "ClientOptionsBase",
    "ClientStat",
    "IdentifierKind",
    "Inbound",
    "InboundOptions",
    "ShadowsocksClientOptions",
    "TrojanClientOptions",
    "VlessClientOptions",
    "VmessClientOptions",
    "parse_client_options",
]
