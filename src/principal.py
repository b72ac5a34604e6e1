"""
Principal identity values.

A principal is an opaque 32-byte identity. The calling boundary is
responsible for authenticating that the caller controls it; the core only
compares principals for equality.
"""

import secrets
from dataclasses import dataclass

from errors import InvalidPrincipal

PRINCIPAL_SIZE = 32


@dataclass(frozen=True, order=True)
class Principal:
    """An opaque fixed-size identity."""

    value: bytes

    def __post_init__(self):
        if not isinstance(self.value, bytes) or len(self.value) != PRINCIPAL_SIZE:
            raise InvalidPrincipal(
                f"Principal must be exactly {PRINCIPAL_SIZE} bytes",
            )

    @classmethod
    def zero(cls) -> "Principal":
        """The all-zero principal (never a valid role holder)."""
        return cls(bytes(PRINCIPAL_SIZE))

    @classmethod
    def generate(cls) -> "Principal":
        return cls(secrets.token_bytes(PRINCIPAL_SIZE))

    @classmethod
    def from_hex(cls, text: str) -> "Principal":
        """Parse a 64-character hex rendering."""
        if not isinstance(text, str) or len(text) != PRINCIPAL_SIZE * 2:
            raise InvalidPrincipal(f"Principal must be {PRINCIPAL_SIZE * 2} hex characters")
        try:
            return cls(bytes.fromhex(text))
        except ValueError as e:
            raise InvalidPrincipal(f"Principal is not valid hex: {e}") from e

    @property
    def is_zero(self) -> bool:
        return self.value == bytes(PRINCIPAL_SIZE)

    def to_hex(self) -> str:
        return self.value.hex()

    def short(self) -> str:
        """Abbreviated form for log lines."""
        h = self.to_hex()
        return f"{h[:6]}...{h[-4:]}"

    def __str__(self) -> str:
        return self.to_hex()


def optional_hex(principal: Principal | None) -> str | None:
    return principal.to_hex() if principal is not None else None


def optional_principal(text: str | None) -> Principal | None:
    return Principal.from_hex(text) if text else None
