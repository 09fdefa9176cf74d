"""
Utilities module: exceptions, validators, schemas, field mapping.
"""

from shared.utils.exceptions import (
    NotFoundError,
    ForbiddenError,
    ValidationError,
    ConflictError,
)
from shared.utils.validators import (
    validate_image_url,
    validate_hhmm,
    normalize_notes,
)
from shared.utils.field_mapping import add_mirror_fields, to_storage_fields

__all__ = [
    # exceptions
    "NotFoundError",
    "ForbiddenError",
    "ValidationError",
    "ConflictError",
    # validators
    "validate_image_url",
    "validate_hhmm",
    "normalize_notes",
    # field mapping
    "add_mirror_fields",
    "to_storage_fields",
]
