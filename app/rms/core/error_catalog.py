from dataclasses import dataclass
from fastapi import status


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int


class ErrorCatalog:
    NOT_FOUND = ErrorDefinition("NOT_FOUND", "Resource not found", status.HTTP_404_NOT_FOUND)
    INVALID_STATE = ErrorDefinition("INVALID_STATE", "Invalid state", status.HTTP_409_CONFLICT)
    VALIDATION_ERROR = ErrorDefinition(
        "VALIDATION_ERROR",
        "Validation error",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    PERMISSION_DENIED = ErrorDefinition(
        "PERMISSION_DENIED",
        "Permission denied",
        status.HTTP_403_FORBIDDEN,
    )
    UNAUTHENTICATED = ErrorDefinition(
        "UNAUTHENTICATED",
        "Authentication required",
        status.HTTP_401_UNAUTHORIZED,
    )
    INVALID_TOKEN = ErrorDefinition("INVALID_TOKEN", "Invalid token", status.HTTP_401_UNAUTHORIZED)
    DB_UNAVAILABLE = ErrorDefinition(
        "DB_UNAVAILABLE",
        "Database unavailable",
        status.HTTP_503_SERVICE_UNAVAILABLE,
    )
    LOCK_TIMEOUT = ErrorDefinition(
        "LOCK_TIMEOUT",
        "Lock wait timeout",
        status.HTTP_409_CONFLICT,
    )
    INTERNAL_ERROR = ErrorDefinition(
        "INTERNAL_ERROR",
        "Internal server error",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


# Errors whose message is safe to hand back to the caller unchanged.
CALLER_FACING_CODES = frozenset(
    {
        ErrorCatalog.NOT_FOUND.code,
        ErrorCatalog.INVALID_STATE.code,
        ErrorCatalog.VALIDATION_ERROR.code,
        ErrorCatalog.PERMISSION_DENIED.code,
        ErrorCatalog.UNAUTHENTICATED.code,
        ErrorCatalog.INVALID_TOKEN.code,
    }
)


class AppError(Exception):
    def __init__(self, error: ErrorDefinition, message: str | None = None, details: object | None = None):
        self.error = error
        self.message = message or error.message
        self.details = details
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return self.error.code

    @property
    def is_caller_facing(self) -> bool:
        return self.error.code in CALLER_FACING_CODES


def not_found(message: str, details: object | None = None) -> AppError:
    return AppError(ErrorCatalog.NOT_FOUND, message, details)


def invalid_state(message: str, details: object | None = None) -> AppError:
    return AppError(ErrorCatalog.INVALID_STATE, message, details)


def validation_error(message: str, details: object | None = None) -> AppError:
    return AppError(ErrorCatalog.VALIDATION_ERROR, message, details)


def forbidden(message: str, details: object | None = None) -> AppError:
    return AppError(ErrorCatalog.PERMISSION_DENIED, message, details)


def unauthenticated(message: str, details: object | None = None) -> AppError:
    return AppError(ErrorCatalog.UNAUTHENTICATED, message, details)
