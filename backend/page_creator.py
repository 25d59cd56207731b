"""
Page Creator

Submits the compiled page in a single call. Rate-limited attempts are retried
with exponential backoff (base, 2x base, 4x base, ...) up to a fixed number of
attempts; any other failure is fatal for the artboard.

    Submitting -> Succeeded
    Submitting -> Backoff(n) -> Submitting      (rate limited, n < max_attempts)
    Submitting -> Fatal                         (other failure, or attempts exhausted)
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List

from errors import PageCreationError, RateLimitedError
from platform_communicator import CommandExecutionError

logger = logging.getLogger(__name__)

DEFAULT_BASE_DELAY = 3.0
DEFAULT_MAX_ATTEMPTS = 5

_RATE_LIMIT_MARKERS = ("rate_limit", "RATE_LIMITED", "rate limited")

CreatePageFn = Callable[[str, float, float, List[Dict[str, Any]]], Awaitable[Any]]
Sleep = Callable[[float], Awaitable[None]]


def backoff_schedule(base_delay: float, attempts: int) -> List[float]:
    """Delay attached to each attempt: base * 2**(n-1)."""
    return [base_delay * (2 ** n) for n in range(attempts)]


def as_rate_limit(error: Exception) -> RateLimitedError | None:
    """Classify a host failure as rate limiting, or return None."""
    if isinstance(error, RateLimitedError):
        return error
    texts = [str(error)]
    if isinstance(error, CommandExecutionError):
        texts.append(error.code)
    if any(marker.lower() in text.lower() for text in texts for marker in _RATE_LIMIT_MARKERS):
        return RateLimitedError(str(error), {"cause": type(error).__name__})
    return None


async def create_page_with_retry(
    create_page: CreatePageFn,
    title: str,
    width: float,
    height: float,
    elements: List[Dict[str, Any]],
    base_delay: float = DEFAULT_BASE_DELAY,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    sleep: Sleep = asyncio.sleep,
) -> Any:
    """Create the page, retrying only on rate limiting.

    Raises:
        PageCreationError: on a non-rate-limit failure or after `max_attempts` rate-limited attempts.
    """
    schedule = backoff_schedule(base_delay, max_attempts)
    waited: List[float] = []
    logger.info(f"📄 add_page '{title}': {len(elements)} element(s)")

    for attempt in range(1, max_attempts + 1):
        try:
            result = await create_page(title, width, height, elements)
            logger.info(f"✅ Page '{title}' created (attempt {attempt})")
            return result
        except Exception as e:
            rate_limited = as_rate_limit(e)
            if rate_limited is None:
                logger.error(f"❌ Page creation failed: {e}")
                raise PageCreationError(f"Page creation failed: {e}", attempts=attempt, delays=waited) from e
            if attempt >= max_attempts:
                logger.error(f"❌ Still rate limited after {attempt} attempts")
                raise PageCreationError(
                    f"Rate limited after {attempt} attempts", attempts=attempt, delays=waited,
                    details={"schedule": schedule},
                ) from rate_limited
            delay = schedule[attempt - 1]
            logger.warning(f"⏳ Rate limit → retrying in {delay:g}s (attempt {attempt}/{max_attempts})")
            waited.append(delay)
            await sleep(delay)

    raise PageCreationError("No page creation attempts were made", attempts=0, delays=waited)
