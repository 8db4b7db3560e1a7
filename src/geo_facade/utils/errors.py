from typing import Any, Optional
from enum import StrEnum
from pydantic import ValidationError


class ErrorKind(StrEnum):
    INVALID_INPUT = "InvalidInput"
    RATE_LIMITED = "RateLimited"
    PROVIDER_REJECTED = "ProviderRejected"
    PROVIDER_UNAVAILABLE = "ProviderUnavailable"


class GeoFacadeError(Exception):
    """Base for every error raised by geo_facade."""


class ConfigurationError(GeoFacadeError):
    """Missing or unusable configuration (e.g. no provider API key)."""


class ProviderError(GeoFacadeError):
    """
    A typed failure of a facade operation.

    `code` is 400 for input/classification failures and 490 for anything
    the provider did (or failed to do).
    """
    kind: ErrorKind = ErrorKind.PROVIDER_REJECTED

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def code(self) -> int:
        return 400 if self.kind is ErrorKind.INVALID_INPUT else 490

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class InvalidInputError(ProviderError):
    kind = ErrorKind.INVALID_INPUT

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        errors: Optional[list[dict[str, Any]]] = None,
        original: ValidationError | None = None,
    ):
        self.errors = errors or []
        self.original = original
        super().__init__(message, details)

    @classmethod
    def from_validation_error(cls, source: str, exc: ValidationError) -> "InvalidInputError":
        errors = exc.errors()
        return cls(
            f"Validation failed for {len(errors)} field(s) of {source}",
            errors=list(errors),
            original=exc,
        )

    def summary(self, limit: int = 5) -> str:
        """Human-readable summary of the first few validation issues."""
        lines = []
        for err in self.errors[:limit]:
            loc = ".".join(str(p) for p in err.get("loc", []))
            lines.append(f"- {loc}: {err.get('msg')} ({err.get('type')})")
        if len(self.errors) > limit:
            lines.append(f"... ({len(self.errors) - limit} more)")
        return "\n".join(lines)


class RateLimitedError(ProviderError):
    kind = ErrorKind.RATE_LIMITED


class ProviderRejectedError(ProviderError):
    kind = ErrorKind.PROVIDER_REJECTED


class ProviderUnavailableError(ProviderError):
    kind = ErrorKind.PROVIDER_UNAVAILABLE
