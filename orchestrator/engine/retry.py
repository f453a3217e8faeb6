"""Per-node retry and timeout policy.

Read from the node's runtime config at call time, so an update-node call
changes the policy without recompiling:

    {"timeout": 30, "retry": {"max_attempts": 3, "backoff_seconds": 1.0,
                              "backoff_multiplier": 2.0, "jitter": 0.25,
                              "retry_on": ["LLMClientError", "TimeoutError"]}}
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional, Tuple

from .. import settings
from ..errors import NodeExecutionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff with +/- jitter.

    Attributes:
        max_attempts: Total attempts including the first (1 = no retry)
        backoff_seconds: Delay before the second attempt
        backoff_multiplier: Growth factor per further attempt
        jitter: Relative jitter applied to each delay (0.25 = +/-25%)
        retry_on: Exception class names that are retried; empty retries any Exception
        timeout: Per-attempt timeout in seconds (None = unbounded)
    """

    max_attempts: int = 1
    backoff_seconds: float = 1.0
    backoff_multiplier: float = 2.0
    jitter: float = 0.25
    retry_on: Tuple[str, ...] = ()
    timeout: Optional[float] = None

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.backoff_seconds < 0:
            raise ValueError("backoff_seconds cannot be negative")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be positive")

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "RetryPolicy":
        """Build a policy from a node runtime config.

        Raises:
            ValueError: ``retry`` is not a mapping or a value has the wrong type
        """
        retry = config.get("retry") or {}
        if not isinstance(retry, Mapping):
            raise ValueError(f"retry must be a mapping, got {type(retry).__name__}")
        retry_on = retry.get("retry_on", ())
        if isinstance(retry_on, str):
            retry_on = (retry_on,)
        timeout = config.get("timeout", settings.NODE_DEFAULT_TIMEOUT)
        try:
            return cls(
                max_attempts=int(retry.get("max_attempts", settings.NODE_RETRY_MAX_ATTEMPTS)),
                backoff_seconds=float(retry.get("backoff_seconds", settings.NODE_RETRY_BACKOFF_SECONDS)),
                backoff_multiplier=float(
                    retry.get("backoff_multiplier", settings.NODE_RETRY_BACKOFF_MULTIPLIER)
                ),
                jitter=float(retry.get("jitter", settings.NODE_RETRY_JITTER)),
                retry_on=tuple(str(name) for name in retry_on),
                timeout=float(timeout) if timeout else None,
            )
        except TypeError as e:
            raise ValueError(f"invalid retry/timeout config: {e}") from e

    def should_retry(self, exc: BaseException) -> bool:
        if not isinstance(exc, Exception):
            return False
        if not self.retry_on:
            return True
        names = {klass.__name__ for klass in type(exc).__mro__}
        return any(name in names for name in self.retry_on)

    def delay_for(self, attempt: int) -> float:
        """Delay after failed ``attempt`` (1-based)."""
        base = self.backoff_seconds * (self.backoff_multiplier ** (attempt - 1))
        if self.jitter:
            base *= 1.0 + random.uniform(-self.jitter, self.jitter)
        return max(base, 0.0)


async def call_with_retry(
    call: Callable[[int], Awaitable[Any]],
    policy: RetryPolicy,
    node_name: str,
) -> Any:
    """Run ``call(attempt)`` under ``policy``.

    Raises:
        NodeExecutionError: when the last attempt fails or the error is not retryable
    """
    last_error: Optional[BaseException] = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            if policy.timeout:
                return await asyncio.wait_for(call(attempt), timeout=policy.timeout)
            return await call(attempt)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            last_error = e
            if attempt >= policy.max_attempts or not policy.should_retry(e):
                raise NodeExecutionError(node_name, e, attempts=attempt) from e

            delay = policy.delay_for(attempt)
            logger.warning(
                f"Node '{node_name}' attempt {attempt}/{policy.max_attempts} failed "
                f"({type(e).__name__}: {e}), retrying in {delay:.2f}s"
            )
            await asyncio.sleep(delay)

    raise NodeExecutionError(node_name, last_error or RuntimeError("no attempts made"))
