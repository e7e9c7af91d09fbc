"""Principal identifiers and their textual form."""

from __future__ import annotations

import base64
import binascii
import zlib
from dataclasses import dataclass

__all__ = ["PrincipalError", "Principal"]

MAX_LENGTH = 29
_CHECKSUM_SIZE = 4
_GROUP = 5


class PrincipalError(ValueError):
    """Raised for malformed principal bytes or text."""


@dataclass(frozen=True, order=True)
class Principal:
    """An opaque identifier of up to 29 bytes."""

    raw: bytes = b""

    def __post_init__(self) -> None:
        raw = bytes(self.raw)
        if len(raw) > MAX_LENGTH:
            raise PrincipalError(
                f"principal is {len(raw)} bytes long, at most {MAX_LENGTH} allowed"
            )
        object.__setattr__(self, "raw", raw)

    @classmethod
    def anonymous(cls) -> "Principal":
        """The anonymous principal."""
        return cls(b"\x04")

    @classmethod
    def management_canister(cls) -> "Principal":
        """The management canister's principal (empty bytes)."""
        return cls(b"")

    @classmethod
    def from_text(cls, text: str) -> "Principal":
        """Parse the dashed, checksummed base32 form."""
        compact = text.replace("-", "").upper()
        padded = compact + "=" * (-len(compact) % 8)
        try:
            decoded = base64.b32decode(padded)
        except (binascii.Error, ValueError) as exc:
            raise PrincipalError(f"invalid principal text {text!r}: {exc}") from exc
        if len(decoded) < _CHECKSUM_SIZE:
            raise PrincipalError(f"principal text {text!r} is too short")
        checksum, raw = decoded[:_CHECKSUM_SIZE], decoded[_CHECKSUM_SIZE:]
        principal = cls(raw)
        if checksum != _crc(raw):
            raise PrincipalError(f"checksum mismatch in principal text {text!r}")
        if principal.to_text() != text.lower():
            raise PrincipalError(f"principal text {text!r} is not grouped canonically")
        return principal

    def to_text(self) -> str:
        """Render the dashed, checksummed base32 form."""
        encoded = base64.b32encode(_crc(self.raw) + self.raw).decode("ascii")
        encoded = encoded.rstrip("=").lower()
        return "-".join(
            encoded[start:start + _GROUP] for start in range(0, len(encoded), _GROUP)
        )

    def __str__(self) -> str:
        return self.to_text()

    def __bytes__(self) -> bytes:
        return self.raw


def _crc(data: bytes) -> bytes:
    return (zlib.crc32(data) & 0xFFFFFFFF).to_bytes(4, "big")