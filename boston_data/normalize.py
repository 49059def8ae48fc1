"""Address canonicalisation for local matching against loosely formatted rows."""

import re
from typing import Optional

# Longer synonyms first so "STREET" is never seen as "ST" + "REET".
_SUFFIXES = [
    (re.compile(r"\bSTREET\b", re.IGNORECASE), "ST"),
    (re.compile(r"\bST\b", re.IGNORECASE), "ST"),
    (re.compile(r"\bAVENUE\b", re.IGNORECASE), "AV"),
    (re.compile(r"\bAVE\b", re.IGNORECASE), "AV"),
    (re.compile(r"\bAV\b", re.IGNORECASE), "AV"),
]


def normalize_address(address: Optional[str]) -> str:
    """
    Canonicalize a street address so differently spelled forms compare equal.

    Periods are removed, STREET/St collapse to ST and AVENUE/Ave to AV, and the
    result is uppercased and trimmed. ``None`` normalizes to an empty string.

    >>> normalize_address("65 Commonwealth Avenue")
    '65 COMMONWEALTH AV'
    """
    if not address:
        return ""
    # Uppercase before substituting: some characters only expand to a
    # suffix once uppercased.
    text = str(address).upper().replace(".", "")
    for pattern, replacement in _SUFFIXES:
        text = pattern.sub(replacement, text)
    return text.strip()
