"""Exponential back-off between failed list-watch cycles."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, wait_exponential_jitter


@dataclass(frozen=True)
class Backoff:
    """Delay policy for retrying a failing list-watch cycle.

    The n-th consecutive failure waits ``initial * factor ** (n - 1)`` seconds
    plus up to ``jitter`` seconds of random spread, never more than
    ``maximum``.
    """

    initial: float = 0.8
    factor: float = 2.0
    maximum: float = 30.0
    jitter: float = 0.4

    def __post_init__(self) -> None:
        if self.initial <= 0 or self.maximum < self.initial:
            raise ValueError(f"invalid backoff bounds: initial={self.initial}, maximum={self.maximum}")
        if self.factor < 1:
            raise ValueError(f"backoff factor must be >= 1, got {self.factor}")
        if self.jitter < 0:
            raise ValueError(f"backoff jitter must be >= 0, got {self.jitter}")

    def wait(self) -> wait_exponential_jitter:
        return wait_exponential_jitter(
            initial=self.initial,
            max=self.maximum,
            exp_base=self.factor,
            jitter=self.jitter,
        )

    def retrying(
        self,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        before_sleep: Callable[[RetryCallState], None] | None = None,
    ) -> AsyncRetrying:
        """Retry every ``Exception`` forever with this policy's delays.

        Cancellation and other ``BaseException`` subclasses propagate at once.
        A fresh ``AsyncRetrying`` starts counting from the first attempt again.
        """
        return AsyncRetrying(
            wait=self.wait(),
            retry=retry_if_exception_type(Exception),
            sleep=sleep,
            before_sleep=before_sleep,
        )
