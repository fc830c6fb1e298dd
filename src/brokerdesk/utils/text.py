"""Text folding shared by the customer model and the identity matchers."""

_TURKISH_FOLD = str.maketrans(
    {
        "İ": "I",
        "ı": "I",
        "i": "I",
        "Ğ": "G",
        "ğ": "G",
        "Ü": "U",
        "ü": "U",
        "Ş": "S",
        "ş": "S",
        "Ö": "O",
        "ö": "O",
        "Ç": "C",
        "ç": "C",
    }
)


def normalize_name(name: str | None) -> str:
    """Fold a name for comparison.

    Turkish letters map to ASCII (İ, ı and i all become I), the result is
    upper-cased and runs of whitespace collapse to one space.

    Args:
        name: Free-text name

    Returns:
        Normalized name, empty string for a blank input
    """
    if name is None:
        return ""
    return " ".join(name.translate(_TURKISH_FOLD).upper().split())
