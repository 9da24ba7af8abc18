"""
Centralized HTTP exceptions for consistent error handling.

Every exception carries a machine-readable ``code`` so the boundary can tell
"your production reference is stale" apart from "something broke".

Usage:
    from shared.utils.exceptions import NotFoundError, ValidationError

    raise NotFoundError("Recipe", recipe_id)
    raise ValidationError("Unknown recipe field", field="colour")
"""

from typing import Any

from fastapi import HTTPException, status

from shared.config.constants import ErrorCode
from shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(HTTPException):
    """
    Base exception with automatic logging.

    All custom exceptions should inherit from this class
    to ensure consistent logging and response format.
    """

    def __init__(
        self,
        status_code: int,
        detail: str,
        code: str,
        log_level: str = "warning",
        headers: dict[str, str] | None = None,
        **log_context: Any,
    ):
        self.code = code
        log_fn = getattr(logger, log_level, logger.warning)
        log_fn(detail, status_code=status_code, code=code, **log_context)

        super().__init__(status_code=status_code, detail=detail, headers=headers)


# =============================================================================
# 404 Not Found Errors
# =============================================================================


class NotFoundError(AppException):
    """
    Entity not found error (404).

    Usage:
        raise NotFoundError("Recipe", 123)
        raise NotFoundError("Version", version_id, recipe_id=recipe_id)
    """

    def __init__(self, entity: str, entity_id: int | str | None = None, **log_context: Any):
        if entity_id is not None:
            detail = f"{entity} with ID {entity_id} not found"
        else:
            detail = f"{entity} not found"

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            code=ErrorCode.NOT_FOUND,
            entity=entity,
            entity_id=entity_id,
            **log_context,
        )


class RecipeNotFoundError(NotFoundError):
    """Recipe not found."""

    def __init__(self, recipe_id: int | None = None, **log_context: Any):
        super().__init__("Recipe", recipe_id, **log_context)


# =============================================================================
# 401 Unauthorized Errors
# =============================================================================


class UnauthorizedError(AppException):
    """Missing or invalid credentials (401)."""

    def __init__(self, detail: str = "Not authenticated", **log_context: Any):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            code=ErrorCode.UNAUTHORIZED,
            headers={"WWW-Authenticate": "Bearer"},
            **log_context,
        )


# =============================================================================
# 400 Bad Request Errors
# =============================================================================


class ValidationError(AppException):
    """
    Input validation error (400).

    Usage:
        raise ValidationError("Body id does not match route id")
        raise ValidationError("Unknown ingredient", sku="FLOUR-00")
    """

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            code=ErrorCode.VALIDATION_ERROR,
            **log_context,
        )


# =============================================================================
# 409 Conflict Errors
# =============================================================================


class ConflictError(AppException):
    """
    Resource conflict error (409).

    Usage:
        raise ConflictError("There is already an active production for this recipe")
    """

    def __init__(self, detail: str, code: str = ErrorCode.CONFLICT, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            code=code,
            **log_context,
        )


class InvalidProductionContextError(ConflictError):
    """
    Production reference is missing, finished, or belongs to another recipe.
    Raised before any store write.
    """

    def __init__(self, recipe_id: int, production_id: int | None, reason: str, **log_context: Any):
        detail = f"Invalid or inactive production: {reason}"
        super().__init__(
            detail,
            code=ErrorCode.INVALID_PRODUCTION_CONTEXT,
            recipe_id=recipe_id,
            production_id=production_id,
            **log_context,
        )


class InvalidStateError(ConflictError):
    """Entity is in an invalid state for the operation."""

    def __init__(self, entity: str, current_state: str, expected_states: list[str] | None = None, **log_context: Any):
        if expected_states:
            states_str = ", ".join(expected_states)
            detail = f"{entity} is in state '{current_state}', expected: {states_str}"
        else:
            detail = f"{entity} cannot be in state '{current_state}' for this operation"

        super().__init__(detail, entity=entity, current_state=current_state, **log_context)


# =============================================================================
# 500 Internal Server Errors
# =============================================================================


class InternalError(AppException):
    """
    Internal server error (500).

    Usage:
        raise InternalError("Failed to parse recipe snapshot", version_id=12)
    """

    def __init__(self, detail: str = "Internal server error", **log_context: Any):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            code=ErrorCode.INTERNAL,
            log_level="error",
            **log_context,
        )


class DatabaseError(InternalError):
    """Database operation failed; the transaction has already been rolled back."""

    def __init__(self, operation: str, **log_context: Any):
        detail = f"Database error during {operation}. Please try again."
        super().__init__(detail, operation=operation, **log_context)
