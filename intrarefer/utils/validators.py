"""Custom validators and sanitizers"""

import re
from typing import List, Optional
import bleach

PHONE_PATTERN = re.compile(r"^[0-9]{10}$")
LINKEDIN_PATTERN = re.compile(r"^https?://(www\.)?linkedin\.com/.*$")
GITHUB_PATTERN = re.compile(r"^https?://(www\.)?github\.com/.*$")
URL_PATTERN = re.compile(r"^https?://.*$")

def sanitize_text(text: str) -> str:
    """Strip all markup from free text"""
    text = text.replace("\x00", "")
    return bleach.clean(text, tags=[], attributes={}, strip=True).strip()

def normalize_text(text: str) -> str:
    """Collapse whitespace and remove zero-width characters"""
    text = re.sub(r"[\u200b\u200c\u200d\ufeff]", "", text)
    return " ".join(text.split())

def validate_string_list(
    values: List[str],
    field_name: str,
    max_length: int,
    allow_empty: bool = False
) -> List[str]:
    """Trim entries and enforce non-empty strings of bounded length"""
    if not values and not allow_empty:
        raise ValueError(f"{field_name} array cannot be empty.")

    cleaned = []
    for value in values:
        value = normalize_text(value)
        if not value or len(value) > max_length:
            raise ValueError(
                f"Each {field_name.lower()} entry must be a non-empty string up to {max_length} characters."
            )
        cleaned.append(value)
    return cleaned

def validate_pattern(value: Optional[str], pattern: re.Pattern, message: str) -> Optional[str]:
    """Match optional value against a compiled pattern"""
    if value is None:
        return value
    value = value.strip()
    if not pattern.match(value):
        raise ValueError(message)
    return value
