"""
Input validation and sanitization for tool arguments before they reach the datastore.
"""

import json
import logging
import re
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

logger = logging.getLogger("security")

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def sanitize_string(value: str, max_length: int = 200) -> str:
    """Remove control characters, enforce a length limit and trim whitespace."""
    if not isinstance(value, str):
        raise ValueError("Value must be a string")

    if len(value) > max_length:
        log_security_event("input_too_long", {"length": len(value), "max_length": max_length}, severity="WARNING")
        raise ValueError(f"String too long. Maximum {max_length} characters allowed.")

    value = _CONTROL_CHARS.sub("", value)

    return value.strip()


def clean_optional(value: Optional[str], max_length: int = 200) -> Optional[str]:
    """Sanitize an optional argument. Blank values become ``None``."""
    if value is None:
        return None
    value = sanitize_string(value, max_length=max_length)
    return value or None


def join_terms(terms: Iterable[Optional[str]]) -> Optional[str]:
    """Space-join the fuzzy search phrases that were supplied, or ``None``."""
    parts = [term for term in (clean_optional(t) for t in terms) if term]
    return " ".join(parts) if parts else None


def build_filters(filters: Dict[str, Any]) -> Dict[str, str]:
    """
    Build exact-match datastore filters, skipping empty values.

    Keys are datastore column names; values are sent as strings.
    """
    if not isinstance(filters, dict):
        raise ValueError("Filters must be a dictionary")

    sanitized_filters = {}
    for key, value in filters.items():
        if value is None:
            continue
        sanitized_value = clean_optional(str(value), max_length=100)
        if sanitized_value:
            sanitized_filters[key] = sanitized_value

    return sanitized_filters


def log_security_event(event_type: str, details: Dict[str, Any], severity: str = "INFO"):
    """Log security-related events for monitoring."""
    log_entry = {
        "timestamp": datetime.now().isoformat(),
        "event_type": event_type,
        "severity": severity,
        "details": details,
    }

    logger.log(logging.getLevelName(severity), "SECURITY_EVENT: %s", json.dumps(log_entry))
