from dataclasses import dataclass
from typing import Any, Optional

from app.core.errors import ErrorType
from app.core.exceptions import AppException


@dataclass(frozen=True)
class DomainError:
    error_type: ErrorType
    message: str


@dataclass(frozen=True)
class ServiceResult:
    """Outcome of a domain operation: either a value or a typed error."""
    value: Any = None
    error: Optional[DomainError] = None

    @property
    def is_success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, value: Any = None) -> "ServiceResult":
        return cls(value=value)

    @classmethod
    def fail(cls, error_type: ErrorType, message: str) -> "ServiceResult":
        return cls(error=DomainError(error_type, message))

    def unwrap(self) -> Any:
        """Return the value, raising AppException for a failed result."""
        if self.error is not None:
            raise AppException.from_error(self.error)
        return self.value
