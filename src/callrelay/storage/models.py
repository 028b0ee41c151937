"""Pydantic models for the persisted relay document."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator
from pydantic.alias_generators import to_camel

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)

AUTH_CODES = "authCodes"
REGISTRATIONS = "registrations"


class AuthCode(BaseModel):
    """Pending one-time code for a receiver."""

    model_config = _CAMEL

    code: str
    expires_at: datetime
    created_at: datetime

    @model_validator(mode="before")
    @classmethod
    def _legacy_expires(cls, data: Any) -> Any:
        # Older documents store "expires" as epoch milliseconds.
        if isinstance(data, dict) and "expiresAt" not in data and "expires" in data:
            data = dict(data)
            expires = data.pop("expires")
            if isinstance(expires, int | float) and not isinstance(expires, bool):
                data["expiresAt"] = datetime.fromtimestamp(expires / 1000, UTC)
        return data

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class Registration(BaseModel):
    """Push subscription bound to a receiver."""

    model_config = _CAMEL

    subscription: dict[str, Any] = Field(
        description="Opaque Web Push subscription (endpoint + keys)"
    )
    registered_at: datetime
    updated_at: datetime | None = None


class StoreDocument(BaseModel):
    """The whole persisted state, read and written as one unit.

    Entries that failed validation on load are kept verbatim in
    ``unparsed`` and written back on save unless a valid entry
    now occupies the same key.
    """

    model_config = _CAMEL

    auth_codes: dict[str, AuthCode] = Field(default_factory=dict)
    registrations: dict[str, Registration] = Field(default_factory=dict)

    _unparsed: dict[str, dict[str, Any]] = PrivateAttr(
        default_factory=lambda: {AUTH_CODES: {}, REGISTRATIONS: {}}
    )

    @property
    def unparsed(self) -> dict[str, dict[str, Any]]:
        return self._unparsed

    def to_data(self) -> dict[str, Any]:
        data = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        for section, entries in self._unparsed.items():
            target = data.setdefault(section, {})
            for key, value in entries.items():
                target.setdefault(key, value)
        return data
