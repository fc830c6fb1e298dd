"""Identifier validation and name/plate normalization.

Turkish national IDs (TC Kimlik No) and tax IDs (Vergi Kimlik No) are plain
digit strings. Names are compared after folding Turkish letters to their
ASCII upper-case counterparts, so "Ayşe Yılmaz" and "AYSE YILMAZ" compare
equal.
"""

from brokerdesk.db.models.customer import (
    ADDRESS_MAX_LENGTH,
    FIRST_NAME_MAX_LENGTH,
    LAST_NAME_MAX_LENGTH,
)
from brokerdesk.utils.text import normalize_name

NATIONAL_ID_LENGTH = 11
TAX_ID_LENGTH = 10

__all__ = [
    "clean",
    "is_blank",
    "is_valid_national_id",
    "is_valid_tax_id",
    "names_conflict",
    "normalize_name",
    "normalize_plate",
    "split_full_name",
    "truncate",
    "truncate_address",
]


def clean(value: str | None) -> str | None:
    """Trim a raw value; blank becomes None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def is_blank(value: object) -> bool:
    """True for None and for strings that are empty after trimming."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _is_ascii_digits(value: str) -> bool:
    return value.isascii() and value.isdigit()


def is_valid_national_id(value: str | None) -> bool:
    """Check a national ID: exactly 11 digits, not starting with 0."""
    value = clean(value)
    if value is None or len(value) != NATIONAL_ID_LENGTH:
        return False
    return _is_ascii_digits(value) and value[0] != "0"


def is_valid_tax_id(value: str | None) -> bool:
    """Check a tax ID: exactly 10 digits."""
    value = clean(value)
    if value is None or len(value) != TAX_ID_LENGTH:
        return False
    return _is_ascii_digits(value)


def names_conflict(left: str | None, right: str | None) -> bool:
    """True when both names are present and differ after normalization."""
    if is_blank(left) or is_blank(right):
        return False
    return normalize_name(left) != normalize_name(right)


def normalize_plate(plate: str | None) -> str | None:
    """Upper-case a vehicle plate and strip all whitespace."""
    if is_blank(plate):
        return None
    return "".join(plate.split()).upper()


def truncate(value: str | None, max_length: int) -> str | None:
    """Trim a value and cut it to a column width."""
    value = clean(value)
    if value is None:
        return None
    return value[:max_length]


def split_full_name(name: str | None, surname: str | None = None) -> tuple[str | None, str | None]:
    """Split an insured name into first and last name.

    A separately supplied surname wins. Otherwise the last word of the name is
    the surname and the rest is the first name; a single word is a first name
    only. Both parts are cut to their column widths.

    Args:
        name: Insured name, possibly including the surname
        surname: Separately supplied surname

    Returns:
        Tuple of (first_name, last_name)
    """
    first: str | None = None
    last: str | None = None

    if not is_blank(surname):
        first = clean(name)
        last = surname.strip()
    elif not is_blank(name):
        parts = name.split()
        if len(parts) >= 2:
            first = " ".join(parts[:-1])
            last = parts[-1]
        else:
            first = parts[0]

    return truncate(first, FIRST_NAME_MAX_LENGTH), truncate(last, LAST_NAME_MAX_LENGTH)


def truncate_address(address: str | None) -> str | None:
    """Trim an address and cut it to its column width."""
    return truncate(address, ADDRESS_MAX_LENGTH)
