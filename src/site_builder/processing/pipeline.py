"""构建流水线：并发运行各类资源处理器并汇总统计。"""

from __future__ import annotations

import asyncio
import logging
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Awaitable, Callable

from site_builder.core.config import BuildConfig
from site_builder.core.exceptions import BatchError
from site_builder.core.models import BuildContext, BuildReport, FileOutcome
from site_builder.core.report import write_csv_report
from site_builder.core.stats import CompressionStats
from site_builder.processing.images import process_images
from site_builder.processing.runner import default_worker_limit
from site_builder.processing.scripts import build_library_bundle, compress_page_bundles
from site_builder.processing.stylesheets import process_stylesheets

LOGGER = logging.getLogger(__name__)

DISTRIBUTION_NAME = "puttputtplanet-build"

Processor = Callable[[BuildContext], Awaitable[list[FileOutcome]]]


def build_version() -> str:
    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        return "unknown"


def select_processors(config: BuildConfig) -> dict[str, Processor]:
    """按配置挑选需要运行的处理器。"""

    processors: dict[str, Processor] = {
        "scripts": compress_page_bundles,
        "libraries": build_library_bundle,
        "images": process_images,
    }
    if config.optimize_css:
        processors["stylesheets"] = process_stylesheets
    return processors


def create_context(config: BuildConfig) -> BuildContext:
    return BuildContext(
        config=config,
        stats=CompressionStats(),
        worker_limit=default_worker_limit(config.max_workers),
    )


async def run_build(config: BuildConfig) -> BuildReport:
    """并发运行所有处理器，全部结束后输出汇总；单个处理器失败不会中断构建。"""

    context = create_context(config)
    processors = select_processors(config)
    LOGGER.info(
        "开始构建版本 %s：optimizeImages=%s；JS compress/mangle=%s/%s；并发上限 %d%s",
        build_version(),
        _yes_no(config.optimize_images),
        _yes_no(config.compress_javascript),
        _yes_no(config.mangle_javascript),
        context.worker_limit,
        "（演练模式）" if config.dry_run else "",
    )

    results = await asyncio.gather(
        *(processor(context) for processor in processors.values()),
        return_exceptions=True,
    )

    errors: list[BaseException] = []
    for name, result in zip(processors, results):
        if isinstance(result, BaseException):
            errors.append(result)
            _log_processor_failure(name, result)

    context.stats.finish()
    LOGGER.info("全部构建任务结束")
    LOGGER.info(context.stats.summary(build_version()))

    report = BuildReport(stats=context.stats, outcomes=context.outcomes, errors=errors)
    if config.report_file is not None:
        _write_report(config.report_file, report)
    return report


def build(config: BuildConfig) -> BuildReport:
    """同步入口。"""

    return asyncio.run(run_build(config))


def _log_processor_failure(name: str, error: BaseException) -> None:
    if isinstance(error, BatchError):
        LOGGER.error("处理器 %s 有 %d 个任务异常：%r", name, len(error.errors), error.first)
        for item in error.errors:
            LOGGER.debug("处理器 %s 异常详情", name, exc_info=item)
    else:
        LOGGER.error("处理器 %s 执行失败：%r", name, error, exc_info=error)


def _write_report(report_file: Path, report: BuildReport) -> None:
    try:
        path = write_csv_report(report.outcomes, report_file)
    except OSError as exc:
        LOGGER.error("写入报告失败：%s", exc)
        return
    LOGGER.info("报告文件：%s", path)


def _yes_no(value: bool) -> str:
    return "Yes" if value else "No"
