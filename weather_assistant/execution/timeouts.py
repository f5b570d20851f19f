import asyncio
from typing import Awaitable, Optional, TypeVar

from ..exceptions import ProviderError

T = TypeVar("T")


async def call_with_timeout(
    awaitable: Awaitable[T],
    timeout: float,
    description: str,
    provider: Optional[str] = None,
) -> T:
    """Awaits an external call with a fixed bound. A timeout becomes ProviderError(kind="timeout")."""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise ProviderError(
            f"{description} timed out after {timeout:g}s.",
            kind="timeout",
            provider=provider,
        ) from e
