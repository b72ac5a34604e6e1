"""
OpenShelf - Input Validation

Pure functions checking catalog text fields, catalog identifiers and
content pointers against fixed rules. No state, no I/O.

Every check raises a specific ValidationError subclass on failure, and
all checks for an operation run before any write happens.
"""

import re
import uuid

from errors import (
    FieldEmpty,
    FieldTooLong,
    InvalidCharacter,
    InvalidContentPointer,
    InvalidIdentifier,
    InvalidPublicationYear,
)


IDENTIFIER_SIZE = 16

# Field length bounds (inclusive)
TITLE_MIN, TITLE_MAX = 1, 100
AUTHOR_MIN, AUTHOR_MAX = 1, 50
CATEGORY_MIN, CATEGORY_MAX = 1, 30

PUBLICATION_YEAR_MIN, PUBLICATION_YEAR_MAX = 1, 9999

# Printable ASCII, space through tilde
PRINTABLE_ASCII = re.compile(r"[\x20-\x7e]*")

# CIDv0: "Qm" + 44 base58btc characters (no 0, O, I, l)
BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
CIDV0_PATTERN = re.compile(r"Qm[1-9A-HJ-NP-Za-km-z]{44}")
CIDV0_LENGTH = 46

# CIDv1: "baf" + lowercase RFC 4648 base32
CIDV1_PATTERN = re.compile(r"baf[a-z2-7]+")
CIDV1_MIN_LENGTH = 32


def validate_text(field: str, value: str, min_len: int, max_len: int) -> str:
    """
    Validate a free-text catalog field.

    Args:
        field: Field name, reported on the error
        value: The text to check
        min_len: Minimum length (inclusive)
        max_len: Maximum length (inclusive)

    Returns:
        The value unchanged

    Raises:
        FieldEmpty: Shorter than min_len
        FieldTooLong: Longer than max_len
        InvalidCharacter: Any character outside 0x20-0x7E
    """
    if not isinstance(value, str):
        raise InvalidCharacter(field, f"Field '{field}' must be a string")

    if len(value) < min_len:
        raise FieldEmpty(
            field,
            f"Field '{field}' must be at least {min_len} characters",
            min_length=min_len,
        )

    if len(value) > max_len:
        raise FieldTooLong(
            field,
            f"Field '{field}' exceeds maximum length of {max_len}",
            max_length=max_len,
            length=len(value),
        )

    if not PRINTABLE_ASCII.fullmatch(value):
        raise InvalidCharacter(field, f"Field '{field}' must contain printable ASCII only")

    return value


def validate_title(value: str) -> str:
    return validate_text("title", value, TITLE_MIN, TITLE_MAX)


def validate_author(value: str) -> str:
    return validate_text("author", value, AUTHOR_MIN, AUTHOR_MAX)


def validate_category(value: str) -> str:
    return validate_text("category", value, CATEGORY_MIN, CATEGORY_MAX)


def validate_identifier(value: bytes) -> bytes:
    """
    Structural UUID v4 check on a 16-byte catalog identifier.

    Not a randomness or uniqueness guarantee: uniqueness is enforced by
    record addressing when the entry is created.

    Raises:
        InvalidIdentifier: Wrong size, all zero, wrong version or variant
    """
    if not isinstance(value, (bytes, bytearray)) or len(value) != IDENTIFIER_SIZE:
        raise InvalidIdentifier(f"Catalog identifier must be {IDENTIFIER_SIZE} bytes")

    value = bytes(value)

    if value == bytes(IDENTIFIER_SIZE):
        raise InvalidIdentifier("Catalog identifier cannot be all zeros")

    # Version nibble lives in the high half of byte 6
    if (value[6] >> 4) & 0x0F != 0x4:
        raise InvalidIdentifier("Catalog identifier must carry UUID version 4")

    # Variant: top two bits of byte 8 must be 10
    if (value[8] >> 6) & 0x03 != 0b10:
        raise InvalidIdentifier("Catalog identifier must carry the RFC 4122 variant")

    return value


def validate_content_pointer(value: str) -> str:
    """
    Validate a content pointer (CIDv0 or CIDv1 text form).

    Raises:
        InvalidContentPointer: Neither accepted shape
    """
    if not isinstance(value, str):
        raise InvalidContentPointer()

    if value.startswith("Qm"):
        if len(value) == CIDV0_LENGTH and CIDV0_PATTERN.fullmatch(value):
            return value
        raise InvalidContentPointer(
            "CIDv0 pointer must be 'Qm' followed by 44 base58 characters"
        )

    if value.startswith("baf"):
        if len(value) >= CIDV1_MIN_LENGTH and CIDV1_PATTERN.fullmatch(value):
            return value
        raise InvalidContentPointer(
            f"CIDv1 pointer must be lowercase base32 and at least {CIDV1_MIN_LENGTH} characters"
        )

    raise InvalidContentPointer()


def validate_publication_year(value: int | None) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidPublicationYear()
    if not PUBLICATION_YEAR_MIN <= value <= PUBLICATION_YEAR_MAX:
        raise InvalidPublicationYear(year=value)
    return value


# =============================================================================
# Identifier helpers
# =============================================================================


def coerce_identifier(value: "str | bytes | uuid.UUID") -> bytes:
    """
    Raw bytes of an identifier given in one of its accepted external forms.

    Accepts 16 raw bytes, a uuid.UUID, or UUID text (canonical or 32 hex).
    Only the form is checked here; see validate_identifier for the rules.
    """
    if isinstance(value, uuid.UUID):
        return value.bytes
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        try:
            return uuid.UUID(value).bytes
        except ValueError as e:
            raise InvalidIdentifier(f"Catalog identifier is not UUID text: {e}") from e
    raise InvalidIdentifier()


def parse_identifier(value: "str | bytes | uuid.UUID") -> bytes:
    """Coerce an identifier from its external form and validate it."""
    return validate_identifier(coerce_identifier(value))


def generate_catalog_id() -> bytes:
    """Fresh random version-4 catalog identifier."""
    return uuid.uuid4().bytes


def format_identifier(value: bytes) -> str:
    return str(uuid.UUID(bytes=value))
