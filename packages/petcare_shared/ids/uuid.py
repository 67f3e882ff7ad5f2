"""Entity and operation ids: canonical hyphenated UUID strings.

Any UUID version is accepted on input. Generated ids are version 4.
"""

from __future__ import annotations

import re
import uuid

UUID_STRING_LENGTH = 36
_CANONICAL = re.compile(r"[0-9a-f]{8}(-[0-9a-f]{4}){3}-[0-9a-f]{12}", re.IGNORECASE)


def is_uuid(value: object) -> bool:
    """True for a string in 8-4-4-4-12 hex form; braces and urn forms fail."""
    return isinstance(value, str) and _CANONICAL.fullmatch(value) is not None


def generate_uuid_str() -> str:
    return str(uuid.uuid4())
