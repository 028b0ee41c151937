"""VAPID key helpers for Web Push."""

import base64
from dataclasses import dataclass

from cryptography.hazmat.primitives.serialization import (
    Encoding,
    PublicFormat,
)
from py_vapid import Vapid02


@dataclass(frozen=True)
class VapidKeyPair:
    public_key: str
    private_key: str


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def _public_key_b64url(vapid: Vapid02) -> str:
    """Extract application server key as URL-safe base64."""
    raw = vapid.public_key.public_bytes(
        encoding=Encoding.X962,
        format=PublicFormat.UncompressedPoint,
    )
    return _b64url(raw)


def generate_vapid_keys() -> VapidKeyPair:
    """Create a new P-256 key pair in Web Push string form.

    The private key is the raw 32-byte scalar and the public
    key the uncompressed point, both URL-safe base64 without
    padding.
    """
    vapid = Vapid02()
    vapid.generate_keys()
    scalar = vapid.private_key.private_numbers().private_value
    return VapidKeyPair(
        public_key=_public_key_b64url(vapid),
        private_key=_b64url(scalar.to_bytes(32, "big")),
    )


def public_key_from_private(private_key: str) -> str:
    """Derive the application server key from a private key string."""
    return _public_key_b64url(Vapid02.from_string(private_key))
