import pytest
from pydantic import BaseModel, ValidationError

from geo_facade.settings import Settings
from geo_facade.utils.errors import (
    ErrorKind,
    InvalidInputError,
    ProviderRejectedError,
    ProviderUnavailableError,
    RateLimitedError,
)


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("GEO_API_KEY", "from-env")
    monkeypatch.setenv("GEO_BUCKET_CAPACITY", "7")
    monkeypatch.setenv("GEO_BUCKET_REFILL_INTERVAL_S", "120")

    settings = Settings(_env_file=None)

    assert settings.api_key == "from-env"
    assert settings.bucket_capacity == 7
    assert settings.bucket_refill_interval_s == 120.0
    assert settings.max_attempts == 2


def test_settings_defaults(monkeypatch):
    monkeypatch.delenv("GEO_API_KEY", raising=False)
    settings = Settings(_env_file=None)

    assert settings.api_key is None
    assert settings.bucket_refill_interval_s == 3600.0


@pytest.mark.parametrize("error_cls, kind, code", [
    (InvalidInputError, ErrorKind.INVALID_INPUT, 400),
    (RateLimitedError, ErrorKind.RATE_LIMITED, 490),
    (ProviderRejectedError, ErrorKind.PROVIDER_REJECTED, 490),
    (ProviderUnavailableError, ErrorKind.PROVIDER_UNAVAILABLE, 490),
])
def test_error_codes(error_cls, kind, code):
    err = error_cls("boom", details={"a": 1})

    assert err.kind is kind
    assert err.code == code
    assert err.to_dict() == {"kind": kind.value, "code": code, "message": "boom", "details": {"a": 1}}
    assert str(err) == "boom"


def test_invalid_input_from_validation_error():
    class Model(BaseModel):
        a: int
        b: int
        c: int

    with pytest.raises(ValidationError) as excinfo:
        Model(a="x", b="y", c="z")

    err = InvalidInputError.from_validation_error("model", excinfo.value)

    assert err.original is excinfo.value
    assert len(err.errors) == 3
    assert "Validation failed for 3 field(s) of model" == err.message
    assert err.summary(limit=2).splitlines()[-1] == "... (1 more)"
