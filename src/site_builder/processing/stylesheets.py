"""样式表压缩。"""

from __future__ import annotations

import asyncio
import logging

import csscompressor

from site_builder.core.exceptions import DestinationOutsideRootError
from site_builder.core.models import CATEGORY_CSS, BuildContext, FileOutcome, FileTask
from site_builder.core.output_manager import OutputManager, OutputWriteError
from site_builder.core.scanner import enumerate_files, load_exclude_patterns, mirror_destination
from site_builder.core.stats import format_bytes
from site_builder.processing.images import describe_savings
from site_builder.processing.runner import run_bounded

LOGGER = logging.getLogger(__name__)


def minify_css(text: str) -> str:
    return csscompressor.compress(text, preserve_exclamation_comments=True)


async def process_stylesheets(context: BuildContext) -> list[FileOutcome]:
    """压缩 ``css_source`` 下的所有 .css 文件，写入镜像路径。"""

    config = context.config
    writer = OutputManager(dry_run=config.dry_run)
    LOGGER.info("开始 CSS 压缩：%s/**/*.css -> %s", config.css_source, config.css_destination)

    tasks: list[FileTask] = []
    for source in enumerate_files(config.css_source, "css", load_exclude_patterns(config.exclude)):
        try:
            destination = mirror_destination(source, config.css_source, config.css_destination)
        except DestinationOutsideRootError as exc:
            LOGGER.error("%s -- %s", source, exc)
            context.add_outcome(
                FileOutcome(source_path=source, status="error-destination", category=CATEGORY_CSS, message=str(exc))
            )
            continue
        tasks.append(FileTask(source_path=source, dest_path=destination, category=CATEGORY_CSS))

    async def _worker(task: FileTask) -> FileOutcome:
        return context.add_outcome(await _minify_one(task, writer))

    outcomes = await run_bounded(tasks, _worker, context.worker_limit)
    done = [outcome for outcome in outcomes if outcome.counted]
    saved = sum(outcome.original_size - outcome.compressed_size for outcome in done)
    LOGGER.info("CSS 压缩完成：%d 个文件，节省 %s", len(done), format_bytes(saved))
    return outcomes


async def _minify_one(task: FileTask, writer: OutputManager) -> FileOutcome:
    try:
        raw = await asyncio.to_thread(task.source_path.read_bytes)
    except OSError as exc:
        LOGGER.error("%s -- 读取失败：%s", task.source_path, exc)
        return FileOutcome(source_path=task.source_path, status="error-read", category=CATEGORY_CSS, message=str(exc))

    if not raw.strip():
        LOGGER.error("%s -- 文件为空，跳过", task.source_path)
        return FileOutcome(source_path=task.source_path, status="skip-empty", category=CATEGORY_CSS)

    try:
        minified = await asyncio.to_thread(minify_css, raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError, IndexError) as exc:
        LOGGER.error("%s -- CSS 压缩出错：%s", task.source_path, exc)
        return FileOutcome(source_path=task.source_path, status="error-minify", category=CATEGORY_CSS, message=str(exc))

    data = minified.encode("utf-8")
    try:
        await asyncio.to_thread(writer.write_bytes, task.dest_path, data)
    except OutputWriteError as exc:
        LOGGER.error("%s -- %s", task.source_path, exc)
        return FileOutcome(source_path=task.source_path, status="error-write", category=CATEGORY_CSS, message=str(exc))

    LOGGER.info("%s -- 写入 %s -- %s", task.source_path, task.dest_path, describe_savings(len(raw), len(data)))
    return FileOutcome(
        source_path=task.source_path,
        status="minified",
        category=CATEGORY_CSS,
        output_path=task.dest_path,
        original_size=len(raw),
        compressed_size=len(data),
    )
