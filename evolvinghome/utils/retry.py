"""
Caller-side retry for boundary operations.

Nothing inside the core retries. Callers that can afford to wait (the CLI
``--retries`` flag, batch jobs) wrap a call so that ``UpstreamUnavailable``
is retried with exponential backoff. Validation and not-found errors are
deterministic and are re-raised immediately.

Usage:
    from evolvinghome.utils.retry import retry_with_backoff

    resolve = retry_with_backoff(lambda: ops.resolve_building(postcode="TV1 2AB").unwrap(),
                                 max_retries=3)
    footprint = resolve()
"""

import functools
import logging
import random
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

from ..core.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    max_retries: int = 3
    base_delay: float = 1.0  # seconds before the first retry
    max_delay: float = 30.0
    exponential_base: float = 2.0
    jitter: bool = True  # stretch each delay by up to 25 %
    retry_on: Tuple[Type[Exception], ...] = (UpstreamUnavailable,)


DEFAULT_RETRY_CONFIG = RetryConfig()


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Seconds to wait before retry number ``attempt + 1``."""
    delay = min(config.base_delay * config.exponential_base ** attempt, config.max_delay)
    if config.jitter:
        delay *= 1 + random.uniform(0, 0.25)
    return delay


def retry_with_backoff(
    func: Optional[Callable[..., T]] = None,
    *,
    config: Optional[RetryConfig] = None,
    max_retries: Optional[int] = None,
    on_retry: Optional[Callable[[Exception, int], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Callable[..., T]:
    """
    Wrap ``func`` so retryable errors are retried with backoff.

    Works as a plain wrapper, a bare decorator, or a decorator factory.
    ``on_retry(exc, attempt)`` runs before each sleep; ``sleep`` is
    injectable so tests do not wait.
    """
    policy = config or DEFAULT_RETRY_CONFIG
    if max_retries is not None:
        policy = replace(policy, max_retries=max_retries)

    def decorator(fn: Callable[..., T]) -> Callable[..., T]:
        name = getattr(fn, "__name__", repr(fn))

        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            attempt = 0
            while True:
                try:
                    return fn(*args, **kwargs)
                except policy.retry_on as exc:
                    if attempt >= policy.max_retries:
                        logger.error(f"{name} still failing after {policy.max_retries} retries: {exc}")
                        raise
                    delay = calculate_delay(attempt, policy)
                    logger.warning(f"{name} failed ({exc}); retry {attempt + 1}/{policy.max_retries} in {delay:.1f}s")
                    if on_retry:
                        on_retry(exc, attempt)
                    sleep(delay)
                    attempt += 1

        return wrapper

    return decorator(func) if func is not None else decorator
