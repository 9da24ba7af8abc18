"""
Utilities module: Exceptions, validators, lot codes.
"""

from shared.utils.exceptions import (
    NotFoundError,
    ValidationError,
    ConflictError,
    InvalidProductionContextError,
    DatabaseError,
)
from shared.utils.validators import (
    clean_optional_text,
    escape_like_pattern,
    sanitize_search_term,
)
from shared.utils.lot_code import (
    generate_production_lot,
    decode_production_lot,
    is_valid_lot_format,
)

__all__ = [
    # exceptions
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "InvalidProductionContextError",
    "DatabaseError",
    # validators
    "clean_optional_text",
    "escape_like_pattern",
    "sanitize_search_term",
    # lot codes
    "generate_production_lot",
    "decode_production_lot",
    "is_valid_lot_format",
]
