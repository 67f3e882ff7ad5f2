"""UUID id helpers and the matching SQLAlchemy column."""

from packages.petcare_shared.ids.sqlalchemy import uuid_string_column
from packages.petcare_shared.ids.uuid import UUID_STRING_LENGTH, generate_uuid_str, is_uuid

__all__ = ["generate_uuid_str", "is_uuid", "UUID_STRING_LENGTH", "uuid_string_column"]
