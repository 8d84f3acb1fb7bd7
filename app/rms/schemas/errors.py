from pydantic import BaseModel


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: dict | list | None = None
    trace_id: str | None = None


class FieldError(BaseModel):
    field: str | None = None
    message: str
    type: str
    loc: list[str | int] | None = None


ERROR_RESPONSES = {
    401: {"model": ErrorResponse, "description": "Authentication required or token invalid"},
    403: {"model": ErrorResponse, "description": "Actor lacks the required store role"},
    404: {"model": ErrorResponse, "description": "Entity missing or outside the caller's store"},
    409: {"model": ErrorResponse, "description": "Operation not allowed in the current state"},
    422: {"model": ErrorResponse, "description": "Request failed validation"},
}
