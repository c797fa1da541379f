"""
Concurrent fan-out/join primitives.

Two join disciplines are used by the read path:

- ``first_success``: run every branch concurrently, return the first one
  that succeeds and cancel the rest
- ``settle_all``: run every branch concurrently and wait for all of them,
  successes and failures alike

Branches are keyed (by node URL in practice) and never share state; their
results are only combined at the join point.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Hashable, Mapping, Tuple, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")

BranchFactory = Callable[[], Awaitable[T]]


class FanOutError(Exception):
    """Every branch of a ``first_success`` join failed."""

    def __init__(self, errors: Dict[Hashable, BaseException]) -> None:
        super().__init__(f"All {len(errors)} branches failed")
        self.errors = errors


async def first_success(branches: Mapping[K, BranchFactory[T]]) -> Tuple[K, T]:
    """
    Return ``(key, result)`` of the first branch to succeed.

    Losing branches are cancelled and awaited before returning, so no task
    outlives the call.

    Raises:
        FanOutError: If every branch raised; ``errors`` keeps branch order
    """
    if not branches:
        raise FanOutError({})

    tasks = {asyncio.ensure_future(factory()): key for key, factory in branches.items()}
    pending = set(tasks)
    errors: Dict[Hashable, BaseException] = {}

    try:
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                error = task.exception()
                if error is None:
                    return tasks[task], task.result()
                errors[tasks[task]] = error
    finally:
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.debug(f"Cancelled {len(pending)} losing branches")

    raise FanOutError({key: errors[key] for key in branches if key in errors})


async def settle_all(
    branches: Mapping[K, BranchFactory[T]],
) -> Tuple[Dict[K, T], Dict[K, BaseException]]:
    """
    Wait for every branch to finish.

    Returns:
        ``(successes, failures)`` keyed by branch, each in branch order
    """
    keys = list(branches)
    results = await asyncio.gather(*(branches[key]() for key in keys), return_exceptions=True)

    successes: Dict[K, T] = {}
    failures: Dict[K, BaseException] = {}
    for key, result in zip(keys, results):
        if isinstance(result, BaseException):
            failures[key] = result
        else:
            successes[key] = result
    return successes, failures
