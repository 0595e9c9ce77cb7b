"""
Field validators shared by the library and accounts schemas.

Each helper takes the raw value and returns the normalised value, raising
ValueError so pydantic reports it against the field.
"""

from __future__ import annotations

import re
from typing import Optional

PHONE_RE = re.compile(r"^[0-9]{10}$")
GST_RE = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z]{1}[1-9A-Z]{1}Z[0-9A-Z]{1}$")
PIN_RE = re.compile(r"^[0-9]{6}$")


def blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def required_name(value: Optional[str]) -> str:
    cleaned = blank_to_none(value)
    if cleaned is None:
        raise ValueError("name is required")
    return cleaned


def phone_number(value: Optional[str]) -> Optional[str]:
    cleaned = blank_to_none(value)
    if cleaned is None:
        return None
    digits = re.sub(r"[\s-]", "", cleaned)
    if not PHONE_RE.match(digits):
        raise ValueError("phone must be 10 digits")
    return digits


def gst_number(value: Optional[str]) -> Optional[str]:
    cleaned = blank_to_none(value)
    if cleaned is None:
        return None
    cleaned = cleaned.upper()
    if not GST_RE.match(cleaned):
        raise ValueError("invalid GST number format")
    return cleaned


def pin_code(value: Optional[str]) -> Optional[str]:
    cleaned = blank_to_none(value)
    if cleaned is None:
        return None
    if not PIN_RE.match(cleaned):
        raise ValueError("PIN code must be 6 digits")
    return cleaned
