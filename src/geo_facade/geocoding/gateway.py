"""
Rate-limited gateway around provider calls.

Every outbound call takes one token from the shared bucket, then runs
through a bounded retry loop. Transport failures are retried; anything
the provider answered is classified once and never retried.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import requests

from .base import RateLimiter
from ..utils.errors import (
    GeoFacadeError,
    ProviderRejectedError,
    ProviderUnavailableError,
    RateLimitedError,
)

logger = logging.getLogger(__name__)

STATUS_OK = "OK"
STATUS_ZERO_RESULTS = "ZERO_RESULTS"
QUOTA_STATUSES = frozenset({"OVER_QUERY_LIMIT", "OVER_DAILY_LIMIT"})


@dataclass(frozen=True)
class ResponseShape:
    """
    Where a provider response keeps its status and its result collection.

    status_key: None when the provider has no status field
    results_key: collection that must be non-empty on success
    allow_empty: accept ZERO_RESULTS / an empty collection as success
    """
    name: str
    status_key: Optional[str] = "status"
    results_key: Optional[str] = "results"
    allow_empty: bool = False


class RateLimitedGateway:
    """
    Throttle + bounded retry wrapper for provider calls.

    One token is acquired per call, not per attempt; retries share it.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        max_attempts: int = 2,
        retry_delay_s: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            rate_limiter: Limiter shared by all calls (usually the process-wide TokenBucket)
            max_attempts: Attempts per call, including the first (2 = one retry)
            retry_delay_s: Pause between attempts
            sleep: Sleep function (injectable for tests)
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.rate_limiter = rate_limiter
        self.max_attempts = max_attempts
        self.retry_delay_s = retry_delay_s
        self._sleep = sleep

    def call(
        self,
        invoke: Callable[..., dict[str, Any]],
        *args: Any,
        shape: ResponseShape = ResponseShape("provider"),
        **kwargs: Any,
    ) -> dict[str, Any]:
        """
        Invoke a provider call and classify its response.

        Args:
            invoke: Provider callable returning the decoded JSON body
            *args, **kwargs: Passed to `invoke` unchanged on every attempt
            shape: How to read status and results from the body

        Returns:
            The provider response, unmodified

        Raises:
            RateLimitedError: quota exceeded (HTTP 429 or quota status)
            ProviderRejectedError: non-OK status, empty results, HTTP 4xx,
                or a non-transport exception raised by `invoke`
            ProviderUnavailableError: transport failed on every attempt
        """
        self.rate_limiter.wait()

        last_error: Optional[requests.RequestException] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                response = invoke(*args, **kwargs)
            except requests.HTTPError as e:
                status = e.response.status_code if e.response is not None else None
                if status is not None and status < 500:
                    self._raise_for_http_status(shape, status, e)
                last_error = e
            except requests.RequestException as e:
                last_error = e
            except GeoFacadeError:
                raise
            except Exception as e:
                logger.error(f"{shape.name}: provider call raised {type(e).__name__}: {e}")
                raise ProviderRejectedError(
                    f"{shape.name} provider call failed: {e}",
                    details={"error": type(e).__name__},
                ) from e
            else:
                return self._classify(shape, response)

            logger.warning(
                f"{shape.name}: attempt {attempt}/{self.max_attempts} failed: {last_error}"
            )
            if attempt < self.max_attempts and self.retry_delay_s > 0:
                self._sleep(self.retry_delay_s)

        logger.error(f"{shape.name}: provider unavailable after {self.max_attempts} attempts")
        raise ProviderUnavailableError(
            f"{shape.name} provider unavailable: {last_error}",
            details={"attempts": self.max_attempts},
        ) from last_error

    @staticmethod
    def _raise_for_http_status(shape: ResponseShape, status: int, error: Exception) -> None:
        if status == 429:
            raise RateLimitedError(
                f"{shape.name} rate limit exceeded",
                details={"http_status": status},
            ) from error
        raise ProviderRejectedError(
            f"{shape.name} request rejected with HTTP {status}",
            details={"http_status": status},
        ) from error

    @staticmethod
    def _classify(shape: ResponseShape, response: Any) -> dict[str, Any]:
        if not isinstance(response, dict):
            raise ProviderRejectedError(f"{shape.name} returned an unreadable response")

        status = response.get(shape.status_key) if shape.status_key else STATUS_OK
        message = response.get("error_message") or ""

        if status in QUOTA_STATUSES:
            logger.error(f"{shape.name}: quota exceeded ({status})")
            raise RateLimitedError(
                f"{shape.name} quota exceeded: {status} {message}".strip(),
                details={"status": status},
            )

        if status == STATUS_ZERO_RESULTS and shape.allow_empty:
            return response

        if status != STATUS_OK:
            raise ProviderRejectedError(
                f"{shape.name} rejected the request: {status} {message}".strip(),
                details={"status": status},
            )

        if shape.results_key and not response.get(shape.results_key) and not shape.allow_empty:
            raise ProviderRejectedError(
                f"{shape.name} returned no {shape.results_key}",
                details={"status": status},
            )

        return response
