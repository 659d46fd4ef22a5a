"""
Deadline helpers.

Every boundary (launch, navigation, field strategy, whole scrape) declares
its own budget through with_deadline. Optional page interactions go through
best_effort, which is the only place a failure is turned into None.
"""
import asyncio
from typing import Awaitable, Optional, Type, TypeVar

from playwright.async_api import Error as PlaywrightError

from book_scraper.errors import DeadlineExceeded
from book_scraper.utils.logger import LayerLogger

T = TypeVar("T")

logger = LayerLogger("deadline")


async def with_deadline(
    operation: Awaitable[T],
    timeout_ms: int,
    label: str = "operation",
    error_cls: Type[DeadlineExceeded] = DeadlineExceeded,
) -> T:
    """
    Await an operation under a hard wall-clock timeout.

    The awaiting side is cancelled on expiry; engine-side work that was
    already dispatched may still finish and its result is dropped.

    Args:
        operation: Coroutine or future to await
        timeout_ms: Budget in milliseconds
        label: Operation name used in the error message
        error_cls: DeadlineExceeded subclass to raise on expiry

    Raises:
        error_cls: When the budget elapses first
    """
    try:
        return await asyncio.wait_for(operation, timeout=timeout_ms / 1000)
    except asyncio.TimeoutError as exc:
        raise error_cls(label, timeout_ms) from exc


async def best_effort(operation: Awaitable[T], label: str) -> Optional[T]:
    """
    Await an optional operation, mapping engine or deadline failures to None.

    Any other exception propagates.
    """
    try:
        return await operation
    except (PlaywrightError, DeadlineExceeded) as exc:
        logger.log_suppressed(label, str(exc))
        return None


async def succeeded(operation: Awaitable, label: str) -> bool:
    """Run a best-effort action that returns nothing; report whether it worked."""

    async def run() -> bool:
        await operation
        return True

    return bool(await best_effort(run(), label))
