"""Async retry helpers."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")


@dataclass
class AsyncRetryConfig:
    attempts: int = 2
    backoff_seconds: float = 0.5
    retry_on: tuple[type[BaseException], ...] = field(default=(Exception,))


async def async_with_retry(
    fn: Callable[[], Awaitable[T]], config: AsyncRetryConfig | None = None
) -> T:
    cfg = config or AsyncRetryConfig()
    attempt = 0
    while True:
        try:
            return await fn()
        except cfg.retry_on:
            attempt += 1
            if attempt >= cfg.attempts:
                raise
            await asyncio.sleep(cfg.backoff_seconds * attempt)
