from typing import Any, Dict, List, Mapping, Self

import pydantic
from pydantic import ConfigDict

from .errors import ProtocolError


class BaseModel(pydantic.BaseModel):
    """Common base for every record exchanged with the panel.

    Records are frozen so cached entries are replaced, never mutated. Decoded
    blobs (``settings`` and friends) are plain dicts, so callers get deep
    copies of cached records rather than the cached instances themselves.
    Unknown fields are kept so a read-modify-write never drops data the
    panel added in a newer release.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    @classmethod
    def from_obj(cls, obj: Any) -> Self:
        """Build one record from a response ``obj``, mapping schema errors to ProtocolError."""
        try:
            return cls.model_validate(obj)
        except pydantic.ValidationError as exc:
            raise ProtocolError(f"Unexpected {cls.__name__} payload: {exc.error_count()} error(s)") from exc

    @classmethod
    def from_list(cls, args: List[Dict[str, Any]] | None) -> List[Self]:
        if args is None:
            return []
        if not isinstance(args, list):
            raise ProtocolError(f"Expected a list of {cls.__name__}, got {type(args).__name__}")
        return [cls.from_obj(obj) for obj in args]

    @classmethod
    def wire_keys(cls, changes: Mapping[str, Any]) -> Dict[str, Any]:
        """Rename python field names in ``changes`` to the panel's wire names.

        Keys already in wire form, and keys the model does not know, pass through.
        """
        renamed = {}
        for key, value in changes.items():
            field = cls.model_fields.get(key)
            renamed[field.alias if field is not None and field.alias else key] = value
        return renamed

    def to_payload(self) -> Dict[str, Any]:
        """Dump the record the way the panel expects it on the wire."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
