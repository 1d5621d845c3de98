"""有界并发执行器：同一时刻最多运行 N 个异步任务。"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Awaitable, Callable, Iterable, Optional, TypeVar

from site_builder.core.exceptions import BatchError

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def default_worker_limit(configured: Optional[int] = None) -> int:
    """并发上限：优先使用配置值，否则取逻辑 CPU 数量，最小为 1。"""

    if configured is not None:
        return max(1, configured)
    return max(1, os.cpu_count() or 1)


async def run_bounded(items: Iterable[T], worker: Callable[[T], Awaitable[R]], limit: int) -> list[R]:
    """对每个元素调用 ``worker``，同时在途的调用不超过 ``limit`` 个。

    单个元素失败不会中断其他元素；全部结束后若存在失败，抛出 :class:`BatchError`，
    其中按元素顺序保存所有错误。成功时按输入顺序返回结果。
    """

    semaphore = asyncio.Semaphore(max(1, limit))

    async def _guarded(item: T) -> R:
        async with semaphore:
            return await worker(item)

    results = await asyncio.gather(*(_guarded(item) for item in items), return_exceptions=True)

    errors = [result for result in results if isinstance(result, BaseException)]
    if errors:
        for error in errors:
            LOGGER.debug("并发任务失败：%r", error)
        raise BatchError(errors)
    return results  # type: ignore[return-value]
