"""
Parallel Gathering - Concurrent store lookups for reconciliation.

Store lookups are the only fan-out in a run. Each provider's blocking
``lookup`` runs on a worker thread under its own timeout; a timeout turns
that provider's result into "unknown" without affecting its siblings, and
asks the provider to cancel so its thread does not outlive the run.

Can be used with or without asyncio - provides both sync and async interfaces.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from versionsync.core.domain.entities import ObservedVersion
from versionsync.core.domain.enums import VersionSource
from versionsync.core.domain.value_objects import VersionTag, max_version
from versionsync.core.exceptions import ProviderTimeoutError
from versionsync.core.ports.store_provider import StoreProviderPort


logger = logging.getLogger("parallel_gather")

DEFAULT_CONCURRENCY = 2


@dataclass
class GatherResult:
    """
    Result of gathering store versions.

    Tracks every provider's observation and which ones timed out.
    """

    observed: dict[VersionSource, ObservedVersion] = field(default_factory=dict)
    timed_out: list[VersionSource] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.observed)

    @property
    def known(self) -> dict[VersionSource, VersionTag]:
        """Sources that reported a version."""
        return {s: o.version for s, o in self.observed.items() if o.version is not None}

    @property
    def best(self) -> VersionTag | None:
        """Highest reported version, if any."""
        return max_version(self.known.values())

    @property
    def success_rate(self) -> float:
        """Calculate success rate (0.0 to 1.0)."""
        if self.total == 0:
            return 1.0
        return len(self.known) / self.total

    @property
    def all_succeeded(self) -> bool:
        return len(self.known) == self.total

    def __str__(self) -> str:
        return f"gather_store_versions: {len(self.known)}/{self.total} known ({len(self.timed_out)} timed out)"


def run_async(coro: Any) -> Any:
    """
    Run an async coroutine from sync code.

    Handles event loop creation and cleanup.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        # No running loop - safe to create one
        return asyncio.run(coro)

    coro.close()
    raise RuntimeError(
        "Cannot run parallel operations from within an async context. "
        "Use the async functions directly instead."
    )


async def gather_store_versions_async(
    providers: Sequence[StoreProviderPort],
    concurrency: int = DEFAULT_CONCURRENCY,
) -> GatherResult:
    """
    Look up every provider concurrently (async).

    Args:
        providers: Store providers to query
        concurrency: Max lookups in flight

    Returns:
        GatherResult with one observation per provider
    """
    result = GatherResult()
    if not providers:
        return result

    loop = asyncio.get_running_loop()
    semaphore = asyncio.Semaphore(max(1, concurrency))
    # One thread per provider so a hung lookup never queues its siblings
    executor = ThreadPoolExecutor(max_workers=len(providers), thread_name_prefix="store-lookup")

    async def lookup(provider: StoreProviderPort) -> ObservedVersion:
        async with semaphore:
            try:
                return await asyncio.wait_for(
                    loop.run_in_executor(executor, provider.lookup),
                    timeout=provider.timeout,
                )
            except asyncio.CancelledError:
                provider.cancel()
                raise
            except asyncio.TimeoutError:
                logger.warning(f"{provider.name} did not answer within {provider.timeout:.0f}s")
                provider.cancel()
                result.timed_out.append(provider.source)
                error = ProviderTimeoutError(
                    f"{provider.name} timed out after {provider.timeout:.0f}s", store=provider.name
                )
                return ObservedVersion.unknown(
                    provider.source, error=error, confidence=provider.confidence, detail="timeout"
                )

    try:
        observations = await asyncio.gather(*(lookup(p) for p in providers))
    finally:
        # Timed-out lookups were cancelled and stop at their next checkpoint
        executor.shutdown(wait=False, cancel_futures=True)

    for observation in observations:
        result.observed[observation.source] = observation

    logger.debug(str(result))
    return result


def gather_store_versions(
    providers: Sequence[StoreProviderPort],
    concurrency: int = DEFAULT_CONCURRENCY,
) -> GatherResult:
    """Look up every provider concurrently (sync wrapper)."""
    return run_async(gather_store_versions_async(providers, concurrency=concurrency))
