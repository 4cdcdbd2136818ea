"""
Validation utilities for the BaaS proxy
"""

import re
from typing import Any

DEVICE_ID_PATTERN = re.compile(
    r"[0-9A-F]{8}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{12}",
    re.IGNORECASE,
)


def is_valid_device_id(device_id: Any) -> bool:
    """
    Check that a device ID is a UUID in canonical 8-4-4-4-12 hex form.
    Case-insensitive; no braces, URN prefix or surrounding whitespace.
    """
    if not isinstance(device_id, str):
        return False
    return DEVICE_ID_PATTERN.fullmatch(device_id) is not None


def is_valid_http_url(url: Any) -> bool:
    """Check that a URL is an absolute http(s) URL with a host"""
    if not isinstance(url, str):
        return False
    return re.match(r"^https?://[^/\s?#]+", url, re.IGNORECASE) is not None
