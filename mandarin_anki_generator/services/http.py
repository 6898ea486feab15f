"""
Shared HTTP plumbing for the external services.

Every request goes through a ``requests`` session whose adapter enforces the
configured timeout, and every call is wrapped in a bounded ``tenacity`` retry
with randomized exponential backoff. Failures surface as
:class:`ServiceUnavailableError`; ``retryable`` decides whether another
attempt is made.
"""

import logging
from typing import Any, Callable, TypeVar

import requests
from requests.adapters import HTTPAdapter
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_random_exponential,
)

from ..config import NetworkConfig
from ..errors import ServiceUnavailableError


logger = logging.getLogger(__name__)

T = TypeVar("T")

# Response bodies are logged at DEBUG up to this many characters
LOG_BODY_LIMIT = 2000


class TimeoutHTTPAdapter(HTTPAdapter):
    """HTTP adapter that applies a default timeout to every request."""

    def __init__(self, timeout, *args, **kwargs):
        self.timeout = timeout
        super().__init__(*args, **kwargs)

    def send(self, request, **kwargs):
        kwargs['timeout'] = kwargs.get('timeout') or self.timeout
        return super().send(request, **kwargs)


def create_session(network: NetworkConfig) -> requests.Session:
    """Create a session bound to the configured request timeout."""
    session = requests.Session()
    adapter = TimeoutHTTPAdapter(timeout=network.timeout_seconds)
    session.mount('https://', adapter)
    session.mount('http://', adapter)
    return session


def is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, ServiceUnavailableError) and error.retryable


def retry_policy(network: NetworkConfig) -> Retrying:
    """Bounded retry with jittered exponential backoff for one external call."""
    return Retrying(
        stop=stop_after_attempt(network.retry_attempts),
        wait=wait_random_exponential(multiplier=network.retry_min_wait,
                                     max=network.retry_max_wait),
        retry=retry_if_exception(_is_retryable),
        before_sleep=before_sleep_log(logger, logging.DEBUG),
        reraise=True,
    )


def call_with_retry(network: NetworkConfig, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """
    Run ``func`` under the retry policy.

    Raises:
        ServiceUnavailableError: The last failure once retries are exhausted,
            or immediately for failures a retry cannot fix
    """
    return retry_policy(network)(func, *args, **kwargs)


def post(session: requests.Session, service: str, url: str, **kwargs) -> requests.Response:
    """
    POST to an external service and translate failures.

    Args:
        session: Session created by :func:`create_session`
        service: Service name used in errors and logs
        url: Endpoint URL
        **kwargs: Passed through to ``session.post``

    Returns:
        Successful response

    Raises:
        ServiceUnavailableError: On network errors or a 4xx/5xx status
    """
    logger.debug(f"[{service}] POST {url} params={kwargs.get('params')} "
                 f"body={str(kwargs.get('json', kwargs.get('data')))[:LOG_BODY_LIMIT]}")
    try:
        response = session.post(url, **kwargs)
    except requests.Timeout as e:
        raise ServiceUnavailableError(service, f"Request timed out: {e}", retryable=True)
    except requests.ConnectionError as e:
        raise ServiceUnavailableError(service, f"Connection failed: {e}", retryable=True)
    except requests.RequestException as e:
        raise ServiceUnavailableError(service, f"Request failed: {e}", retryable=False)

    content_type = response.headers.get('Content-Type', '')
    if content_type.startswith('audio/'):
        logger.debug(f"[{service}] HTTP {response.status_code} {len(response.content)} bytes of {content_type}")
    else:
        logger.debug(f"[{service}] HTTP {response.status_code} {response.text[:LOG_BODY_LIMIT]}")

    if response.status_code >= 400:
        raise ServiceUnavailableError(
            service,
            f"HTTP {response.status_code}: {response.text[:LOG_BODY_LIMIT]}",
            retryable=is_retryable_status(response.status_code),
            status_code=response.status_code,
        )
    return response
