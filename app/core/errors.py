from enum import Enum


class ErrorType(Enum):
    NOT_FOUND = "not_found"
    BAD_REQUEST = "bad_request"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    STORAGE = "storage"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    SERVICE_UNAVAILABLE = "service_unavailable"
    INTERNAL_ERROR = "internal_error"


# Map error types to HTTP status codes
ERROR_STATUS_MAP = {
    ErrorType.NOT_FOUND: 404,
    ErrorType.BAD_REQUEST: 400,
    ErrorType.VALIDATION: 400,
    ErrorType.CONFLICT: 409,
    ErrorType.STORAGE: 400,
    ErrorType.UNAUTHORIZED: 401,
    ErrorType.FORBIDDEN: 403,
    ErrorType.SERVICE_UNAVAILABLE: 503,
    ErrorType.INTERNAL_ERROR: 500,
}

# Names reported in the errorType field of the error envelope
ERROR_NAME_MAP = {
    ErrorType.NOT_FOUND: "NotFoundError",
    ErrorType.BAD_REQUEST: "ValidationError",
    ErrorType.VALIDATION: "ValidationError",
    ErrorType.CONFLICT: "ConflictError",
    ErrorType.STORAGE: "ValidationError",
    ErrorType.UNAUTHORIZED: "UnauthorizedError",
    ErrorType.FORBIDDEN: "ForbiddenError",
    ErrorType.SERVICE_UNAVAILABLE: "ServiceUnavailableError",
    ErrorType.INTERNAL_ERROR: "InternalError",
}

STATUS_ERROR_MAP = {
    400: ErrorType.BAD_REQUEST,
    401: ErrorType.UNAUTHORIZED,
    403: ErrorType.FORBIDDEN,
    404: ErrorType.NOT_FOUND,
    409: ErrorType.CONFLICT,
}
